# Config
"""
Configuration for the taxquote analyzer.
Values can be overridden with TAXQUOTE_* environment variables.
"""

import os
from pathlib import Path
from typing import Optional

from taxquote.utils.errors import ConfigurationError


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer", {"value": raw})


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    def __init__(self) -> None:
        # Logging
        self.log_level = os.getenv("TAXQUOTE_LOG_LEVEL", "INFO").upper()
        self.dev_mode = _env_bool("TAXQUOTE_DEV_MODE", False)
        self.log_file = os.getenv("TAXQUOTE_LOG_FILE") or None

        # Upload guard
        self.max_pdf_size_bytes = _env_int("TAXQUOTE_MAX_PDF_SIZE_BYTES", 50 * 1024 * 1024)  # 50MB
        self.accepted_type_marker = os.getenv("TAXQUOTE_ACCEPTED_TYPE_MARKER", "pdf")

        # PDF processing
        self.page_text_separator = " "
        self.show_mupdf_errors = _env_bool("TAXQUOTE_SHOW_MUPDF_ERRORS", False)

        # Export
        self.export_filename = os.getenv("TAXQUOTE_EXPORT_FILENAME", "tax-quote-summary.pdf")

        if self.max_pdf_size_bytes <= 0:
            raise ConfigurationError(
                "TAXQUOTE_MAX_PDF_SIZE_BYTES must be positive",
                {"value": self.max_pdf_size_bytes},
            )

    def get_log_file_path(self) -> Optional[Path]:
        return Path(self.log_file) if self.log_file else None


# Singleton instance
_settings = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next call re-reads the environment."""
    global _settings
    _settings = None
