"""
Tesseract traineddata management.

Handles:
- Copying language models from a read-only bundle into a writable tessdata directory
- Size-based integrity validation and re-materialization of corrupt files
- Building the engine's multi-language selector string
"""

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Sequence, Union

from ..config import (
    DEFAULT_LANGUAGE,
    LANGUAGE_SEPARATOR,
    MIN_TRAINEDDATA_SIZE,
    TRAINEDDATA_SUFFIX,
)

logger = logging.getLogger(__name__)


SUPPORTED_LANGUAGES: Dict[str, str] = {
    "ara": "Arabic",
    "eng": "English",
    "fra": "French",
    "spa": "Spanish",
    "deu": "German",
    "ita": "Italian",
    "por": "Portuguese",
    "rus": "Russian",
    "chi_sim": "Chinese (Simplified)",
    "jpn": "Japanese",
}


@dataclass
class LanguageAsset:
    """A traineddata file materialized in the writable tessdata directory."""
    code: str
    display_name: str
    path: Path
    validated: bool = False


def filter_supported(codes: Sequence[str]) -> List[str]:
    """Keep supported codes in order, dropping duplicates."""
    valid = []
    for code in codes:
        if code in SUPPORTED_LANGUAGES and code not in valid:
            valid.append(code)
    return valid


def language_selector_string(codes: Sequence[str]) -> str:
    """
    Get the combined language string for Tesseract, e.g. "eng+ara".

    Unsupported codes are dropped with a warning; if nothing valid remains
    the default language is used.
    """
    valid = filter_supported(codes)
    dropped = [code for code in codes if code not in SUPPORTED_LANGUAGES]
    if dropped:
        logger.warning(f"Dropping unsupported languages: {dropped}")
    if not valid:
        logger.warning(f"No valid languages in {list(codes)}, falling back to '{DEFAULT_LANGUAGE}'")
        return DEFAULT_LANGUAGE
    return LANGUAGE_SEPARATOR.join(valid)


class LanguageAssetManager:
    """
    Ensures traineddata files are present and valid in a writable directory.

    Args:
        bundle_dir: Read-only directory holding <code>.traineddata files
        data_dir: Writable tessdata directory passed to the engine
        min_size: Minimum size in bytes for a file to count as valid
    """

    def __init__(
        self,
        bundle_dir: Union[str, Path],
        data_dir: Union[str, Path],
        min_size: int = MIN_TRAINEDDATA_SIZE
    ):
        self.bundle_dir = Path(bundle_dir)
        self.data_dir = Path(data_dir)
        self.min_size = min_size

    def asset_path(self, code: str) -> Path:
        return self.data_dir / f"{code}{TRAINEDDATA_SUFFIX}"

    def validate(self, path: Path) -> bool:
        """Validate a traineddata file by existence and size."""
        if not path.is_file():
            return False
        size = path.stat().st_size
        if size < self.min_size:
            logger.warning(f"Traineddata file too small ({size} bytes): {path.name}")
            return False
        return True

    def is_language_available(self, code: str) -> bool:
        """Check if a language is materialized and valid."""
        return self.validate(self.asset_path(code))

    def get_asset(self, code: str) -> LanguageAsset:
        """Describe the asset for a language code."""
        if code not in SUPPORTED_LANGUAGES:
            raise ValueError(f"Unsupported language: {code}")
        path = self.asset_path(code)
        return LanguageAsset(
            code=code,
            display_name=SUPPORTED_LANGUAGES[code],
            path=path,
            validated=self.validate(path)
        )

    def available_languages(self) -> List[str]:
        """List languages already materialized and valid."""
        if not self.data_dir.is_dir():
            return []
        return sorted(
            f.name[:-len(TRAINEDDATA_SUFFIX)]
            for f in self.data_dir.iterdir()
            if f.name.endswith(TRAINEDDATA_SUFFIX) and self.validate(f)
        )

    def ensure_available(self, codes: Sequence[str]) -> bool:
        """
        Ensure the requested languages are materialized.

        Copies missing or corrupt files from the bundle. Idempotent.

        Returns:
            True if every supported requested language is available
        """
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Failed to create tessdata directory at {self.data_dir}: {e}")
            return False

        valid = filter_supported(codes)
        if not valid:
            logger.error(f"No valid languages in list: {list(codes)}")
            return False
        if len(valid) != len(set(codes)):
            logger.warning(f"Some languages not supported: {sorted(set(codes) - set(valid))}")

        all_success = True
        for code in valid:
            available = self.is_language_available(code)
            logger.debug(f"Checking language '{code}': available={available}")
            if available:
                continue

            existing = self.asset_path(code)
            if existing.exists():
                logger.warning(f"Corrupt traineddata detected, re-extracting: {code}")
                try:
                    existing.unlink()
                except OSError as e:
                    logger.error(f"Failed to delete corrupt asset {existing}: {e}")
                    all_success = False
                    continue

            if self._extract_from_bundle(code):
                logger.debug(f"Successfully extracted '{code}'")
            else:
                logger.error(f"Failed to extract language: {code}")
                all_success = False

        return all_success

    def _extract_from_bundle(self, code: str) -> bool:
        """Copy one traineddata file from the bundle and validate it."""
        source = self.bundle_dir / f"{code}{TRAINEDDATA_SUFFIX}"
        target = self.asset_path(code)

        if not source.is_file():
            logger.error(f"Asset not found: {source}")
            return False

        try:
            shutil.copyfile(source, target)
        except OSError as e:
            logger.error(f"Failed to copy {source} -> {target}: {e}")
            target.unlink(missing_ok=True)
            return False

        if not self.validate(target):
            logger.error(f"Extracted file validation failed: {code}")
            target.unlink(missing_ok=True)
            return False

        logger.debug(f"Extracted {target.name} ({target.stat().st_size} bytes)")
        return True

    def language_selector_string(self, codes: Sequence[str]) -> str:
        return language_selector_string(codes)

    def clear_all_languages(self) -> bool:
        """Remove the writable tessdata directory."""
        if not self.data_dir.exists():
            return True
        try:
            shutil.rmtree(self.data_dir)
            logger.debug(f"Removed directory: {self.data_dir}")
            return True
        except OSError as e:
            logger.error(f"Failed to clear languages in {self.data_dir}: {e}")
            return False
