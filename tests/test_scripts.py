"""
Tests for script detection and language selection.
"""

import pytest


class TestDetectScript:
    """Test dominant script detection."""

    @pytest.mark.parametrize("text,expected", [
        ("Hello world, this is English", "LATIN"),
        ("Ça va très bien, merci", "LATIN"),
        ("مرحبا بالعالم", "ARABIC"),
        ("Привет мир", "CYRILLIC"),
        ("你好世界", "CJK"),
        ("こんにちは", "CJK"),
    ])
    def test_detect(self, text, expected):
        from scanocr.utils.scripts import detect_script, Script

        assert detect_script(text) is Script[expected]

    def test_mixed_text_majority_wins(self):
        from scanocr.utils.scripts import detect_script, Script

        assert detect_script("Invoice رقم 12 total amount due") is Script.LATIN

    def test_tie_resolved_in_enum_order(self):
        from scanocr.utils.scripts import detect_script, Script

        assert detect_script("ab مر") is Script.ARABIC

    @pytest.mark.parametrize("text", ["", "   ", "12345 !!! ---"])
    def test_unknown(self, text):
        from scanocr.utils.scripts import detect_script, Script

        assert detect_script(text) is Script.UNKNOWN


class TestSelectLanguage:
    """Test language selection from the enabled set."""

    def test_empty_enabled_defaults_to_english(self):
        from scanocr.utils.scripts import select_best_language, Script

        assert select_best_language(Script.ARABIC, []) == "eng"

    def test_single_enabled_returned_as_is(self):
        from scanocr.utils.scripts import select_best_language, Script

        assert select_best_language(Script.ARABIC, ["fra"]) == "fra"

    def test_arabic_selected(self):
        from scanocr.utils.scripts import select_best_language, Script

        assert select_best_language(Script.ARABIC, ["eng", "ara", "fra"]) == "ara"

    def test_latin_prefers_english(self):
        from scanocr.utils.scripts import select_best_language, Script

        assert select_best_language(Script.LATIN, ["fra", "ara", "eng"]) == "eng"

    def test_latin_without_english(self):
        from scanocr.utils.scripts import select_best_language, Script

        assert select_best_language(Script.LATIN, ["ara", "deu", "fra"]) == "fra"

    def test_no_match_falls_back_to_first(self):
        from scanocr.utils.scripts import select_best_language, Script

        assert select_best_language(Script.CYRILLIC, ["ara", "eng"]) == "ara"

    def test_unknown_prefers_english(self):
        from scanocr.utils.scripts import select_best_language, Script

        assert select_best_language(Script.UNKNOWN, ["ara", "eng"]) == "eng"

    def test_detect_and_select(self):
        from scanocr.utils.scripts import detect_and_select_language

        assert detect_and_select_language("هذا نص عربي طويل", ["eng", "ara"]) == "ara"
        assert detect_and_select_language("Plain English text", ["eng", "ara"]) == "eng"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
