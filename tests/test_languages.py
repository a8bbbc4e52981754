"""
Tests for traineddata asset management.
"""

import pytest


class TestSelectorString:
    """Test the combined language string."""

    def test_join(self):
        from scanocr.utils.languages import language_selector_string

        assert language_selector_string(["eng", "ara"]) == "eng+ara"

    def test_unsupported_dropped(self):
        from scanocr.utils.languages import language_selector_string

        assert language_selector_string(["eng", "klingon", "fra"]) == "eng+fra"

    def test_fallback(self):
        from scanocr.utils.languages import language_selector_string

        assert language_selector_string([]) == "eng"
        assert language_selector_string(["xx"]) == "eng"

    def test_duplicates_removed(self):
        from scanocr.utils.languages import language_selector_string

        assert language_selector_string(["ara", "ara", "eng"]) == "ara+eng"


class TestLanguageAssetManager:
    """Test asset materialization and validation."""

    def test_ensure_available_copies(self, asset_manager):
        assert asset_manager.ensure_available(["eng", "ara"])

        assert asset_manager.is_language_available("eng")
        assert asset_manager.is_language_available("ara")
        assert asset_manager.available_languages() == ["ara", "eng"]

    def test_ensure_available_idempotent(self, asset_manager):
        assert asset_manager.ensure_available(["eng"])
        mtime = asset_manager.asset_path("eng").stat().st_mtime_ns

        assert asset_manager.ensure_available(["eng"])
        assert asset_manager.asset_path("eng").stat().st_mtime_ns == mtime

    def test_corrupt_file_rematerialized(self, asset_manager):
        asset_manager.data_dir.mkdir(parents=True)
        corrupt = asset_manager.asset_path("eng")
        corrupt.write_bytes(b"truncated")
        assert not asset_manager.is_language_available("eng")

        assert asset_manager.ensure_available(["eng"])

        assert corrupt.stat().st_size == 256
        assert asset_manager.get_asset("eng").validated

    def test_missing_in_bundle(self, asset_manager):
        assert not asset_manager.ensure_available(["eng", "rus"])

        assert asset_manager.is_language_available("eng")
        assert not asset_manager.asset_path("rus").exists()

    def test_undersized_bundle_file_rejected(self, asset_manager, tessdata_bundle):
        (tessdata_bundle / "spa.traineddata").write_bytes(b"\x00" * 10)

        assert not asset_manager.ensure_available(["spa"])
        assert not asset_manager.asset_path("spa").exists()

    def test_only_unsupported(self, asset_manager):
        assert not asset_manager.ensure_available(["xx", "yy"])

    def test_unsupported_ignored_when_others_valid(self, asset_manager):
        assert asset_manager.ensure_available(["eng", "xx"])

    def test_get_asset(self, asset_manager):
        asset = asset_manager.get_asset("ara")

        assert asset.display_name == "Arabic"
        assert asset.path.name == "ara.traineddata"
        assert asset.validated is False

        with pytest.raises(ValueError):
            asset_manager.get_asset("xx")

    def test_clear_all_languages(self, asset_manager):
        asset_manager.ensure_available(["eng"])

        assert asset_manager.clear_all_languages()
        assert not asset_manager.data_dir.exists()
        assert asset_manager.available_languages() == []


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
