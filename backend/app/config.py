"""
Caesar Backend — Application Configuration
============================================

What:  Centralized configuration management using Pydantic Settings.
Why:   The router holds no state of its own; everything it needs to reach the
       outside world (three Gemini keys, one storage URL) comes from the
       environment and is validated once.
How:   Pydantic Settings reads environment variables (or a .env file),
       validates types, and exposes a singleton `settings` object.
Who:   Imported by main.py and by build_dispatcher(); services receive the
       individual values explicitly instead of importing this module.
When:  Loaded once at module import time; checked during app startup.

Credential layout:
    One Gemini API key per use case keeps quota and billing separated:
        CAESAR_ANALYSIS → receipt image analysis
        CAESAR_FOLDER   → folder-name suggestion
        CAESAR_SEARCH   → natural-language search
    GAS_WEB_APP_URL points at the Apps Script web app backing the spreadsheet.
"""

from typing import Dict, List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Every credential defaults to an empty string so the app can boot (and
    answer /health) before secrets are provisioned. Missing values are
    reported by validate_required_for_production() at startup.
    """

    # ── Google Gemini ─────────────────────────────────────────────────────
    caesar_analysis: str = Field(
        default="",
        description="Gemini API key used for receipt image analysis",
    )
    caesar_folder: str = Field(
        default="",
        description="Gemini API key used for folder-name suggestions",
    )
    caesar_search: str = Field(
        default="",
        description="Gemini API key used for natural-language search",
    )

    # What: Which Gemini model serves all three use cases
    gemini_model: str = Field(default="gemini-2.0-flash-exp")

    # ── Storage (Google Apps Script web app) ──────────────────────────────
    gas_web_app_url: str = Field(
        default="",
        description="Apps Script web app URL backing folder/receipt storage",
    )

    # What: Seconds to wait for the storage endpoint
    # None means no timeout; a hung endpoint stalls the request until the
    # hosting platform cuts it off.
    storage_timeout: Optional[float] = Field(default=None, gt=0)

    # ── Server ────────────────────────────────────────────────────────────
    backend_host: str = Field(default="0.0.0.0")
    backend_port: int = Field(default=8000, ge=1024, le=65535)

    # Valid: DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    # ── Pydantic Settings Config ──────────────────────────────────────────
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,  # CAESAR_ANALYSIS and caesar_analysis both work
    }

    @property
    def credential_status(self) -> Dict[str, str]:
        """
        What: Maps each outbound dependency to "configured" or "missing".
        Who:  The health endpoint; never exposes the values themselves.
        """
        values = {
            "analysis": self.caesar_analysis,
            "folder": self.caesar_folder,
            "search": self.caesar_search,
            "storage": self.gas_web_app_url,
        }
        return {name: "configured" if value else "missing" for name, value in values.items()}

    def missing_settings(self) -> List[str]:
        """Environment variable names that are required but empty."""
        required = {
            "CAESAR_ANALYSIS": self.caesar_analysis,
            "CAESAR_FOLDER": self.caesar_folder,
            "CAESAR_SEARCH": self.caesar_search,
            "GAS_WEB_APP_URL": self.gas_web_app_url,
        }
        return [name for name, value in required.items() if not value]

    def validate_required_for_production(self) -> None:
        """
        What:  Validates that every credential and the storage URL are set.
        When:  Called during app startup (lifespan).
        How:   Raises ValueError listing every missing variable at once.
        """
        missing = self.missing_settings()
        if missing:
            raise ValueError(
                "Configuration validation failed:\n"
                + "\n".join(f"  - {name} is not set" for name in missing)
            )


# Singleton instance, read by the application factory and lifespan
settings = Settings()
