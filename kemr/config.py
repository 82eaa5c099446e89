"""
Runtime configuration for the dashboard.

All settings come from environment variables so the same code runs under
the CLI, the web server and the test suite.
"""

import logging
import os
from pathlib import Path
from typing import Optional

from rich.logging import RichHandler


DEFAULT_DATA_DIR = Path.home() / ".kemr"
DEFAULT_CLINICIAN = "Dr. Current User"
DEFAULT_MODEL = "claude-sonnet-4-20250514"


class Settings:
    """Configuration read from the environment."""

    def __init__(self):
        self.data_dir = Path(os.environ.get("KEMR_DATA_DIR") or DEFAULT_DATA_DIR)
        self.store_backend = os.environ.get("KEMR_STORE", "local").lower()
        self.clinician_name = os.environ.get("KEMR_CLINICIAN", DEFAULT_CLINICIAN)
        self.draft_delay = float(os.environ.get("KEMR_DRAFT_DELAY", "1.0"))
        self.log_level = os.environ.get("KEMR_LOG_LEVEL", "INFO").upper()
        self.llm_model = os.environ.get("KEMR_LLM_MODEL", DEFAULT_MODEL)
        self.anthropic_api_key = os.environ.get("ANTHROPIC_API_KEY")
        self.jwt_secret = os.environ.get("SUPABASE_JWT_SECRET")

    @property
    def state_path(self) -> Path:
        return self.data_dir / "state.json"

    @property
    def llm_cache_dir(self) -> Path:
        return self.data_dir / "cache"

    def validate(self) -> None:
        """Raise error if the configuration is inconsistent."""
        if self.store_backend not in ("local", "supabase"):
            raise ValueError(f"Unknown KEMR_STORE backend: {self.store_backend}")
        if self.draft_delay < 0:
            raise ValueError("KEMR_DRAFT_DELAY must not be negative")


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the settings (singleton)."""
    global _settings
    if _settings is None:
        _settings = Settings()
        _settings.validate()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the environment is read again."""
    global _settings
    _settings = None


def configure_logging(level: str | None = None, rich_output: bool = False) -> None:
    """
    Install the root log handler.

    The CLI uses rich formatting; the server keeps plain lines so they
    interleave cleanly with uvicorn's own output.
    """
    level = (level or get_settings().log_level).upper()
    if rich_output:
        logging.basicConfig(
            level=level,
            format="%(message)s",
            datefmt="[%X]",
            handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
            force=True,
        )
    else:
        logging.basicConfig(
            level=level,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
            force=True,
        )
