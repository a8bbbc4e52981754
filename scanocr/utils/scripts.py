"""
Script detection from recognized text.

Used to pick a single recognition language when several are enabled,
since single-language initialization is more accurate than a mixed set.
"""

import logging
from enum import Enum
from typing import Dict, List, Sequence

from ..config import DEFAULT_LANGUAGE

logger = logging.getLogger(__name__)


class Script(Enum):
    """Writing systems and the language codes that use them."""
    ARABIC = ("ara",)
    LATIN = ("eng", "fra", "spa", "deu", "ita", "por")
    CYRILLIC = ("rus",)
    CJK = ("chi_sim", "jpn")
    UNKNOWN = ()

    @property
    def languages(self) -> List[str]:
        return list(self.value)


def _classify_char(code: int) -> Script:
    if 0x0600 <= code <= 0x06FF or 0x0750 <= code <= 0x077F:
        return Script.ARABIC
    if (0x41 <= code <= 0x5A or 0x61 <= code <= 0x7A
            or 0x00C0 <= code <= 0x00FF or 0x0100 <= code <= 0x017F):
        return Script.LATIN
    if 0x0400 <= code <= 0x04FF:
        return Script.CYRILLIC
    if 0x4E00 <= code <= 0x9FFF or 0x3040 <= code <= 0x309F or 0x30A0 <= code <= 0x30FF:
        return Script.CJK
    return Script.UNKNOWN


def count_scripts(text: str) -> Dict[Script, int]:
    """Count characters per script bucket."""
    counts = {
        Script.ARABIC: 0,
        Script.LATIN: 0,
        Script.CYRILLIC: 0,
        Script.CJK: 0,
    }
    for char in text:
        script = _classify_char(ord(char))
        if script is not Script.UNKNOWN:
            counts[script] += 1
    return counts


def detect_script(text: str) -> Script:
    """
    Detect the dominant script of a text sample.

    Returns:
        The script with the most characters, or UNKNOWN if none matched
    """
    if not text or not text.strip():
        return Script.UNKNOWN

    counts = count_scripts(text)
    logger.debug(
        "Script counts: " + ", ".join(f"{s.name}={n}" for s, n in counts.items())
    )

    dominant = max(counts, key=counts.get)
    if counts[dominant] == 0:
        return Script.UNKNOWN

    logger.debug(f"Detected dominant script: {dominant.name}")
    return dominant


def select_best_language(script: Script, enabled_languages: Sequence[str]) -> str:
    """
    Select the best single language from the enabled set for a script.

    Args:
        script: Detected script
        enabled_languages: User's enabled language codes, in preference order

    Returns:
        Matching language code, or the first enabled language as fallback
    """
    if not enabled_languages:
        return DEFAULT_LANGUAGE
    if len(enabled_languages) == 1:
        return enabled_languages[0]

    # Latin covers several enabled languages and Unknown covers none; both
    # resolve to the default when it is enabled.
    if script in (Script.LATIN, Script.UNKNOWN) and DEFAULT_LANGUAGE in enabled_languages:
        return DEFAULT_LANGUAGE

    matching = [code for code in script.languages if code in enabled_languages]
    if matching:
        return matching[0]

    return enabled_languages[0]


def detect_and_select_language(sample_text: str, enabled_languages: Sequence[str]) -> str:
    """Detect the script of sample_text and select a language for it."""
    return select_best_language(detect_script(sample_text), enabled_languages)
