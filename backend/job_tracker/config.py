"""Application configuration with Pydantic Settings validation."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Keys copied verbatim from the .env template are treated as "not configured".
PLACEHOLDER_API_KEYS = frozenset({"your_gemini_api_key_here", "your_openai_api_key_here"})


class AppConfig(BaseSettings):
    """All application settings, loaded from environment / .env file."""

    model_config = SettingsConfigDict(
        env_file=("../.env", ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── IMAP (optional email source) ──────────────────────
    imap_host: Optional[str] = None
    imap_port: int = 993
    email_username: Optional[str] = None
    email_password: SecretStr = SecretStr("")
    email_folder: str = "INBOX"
    imap_timeout_sec: int = 30

    # ── Database ──────────────────────────────────────────
    database_url: str = "sqlite:///job_tracker.db"

    # ── Scanning ──────────────────────────────────────────
    max_scan_emails: int = 50
    scan_lookback_days: int = 180

    # ── LLM ───────────────────────────────────────────────
    llm_enabled: bool = True
    llm_provider: str = "gemini"  # gemini | openai
    llm_model: str = "gemini-1.5-flash"
    llm_api_key: SecretStr = SecretStr("")
    google_gemini_api_key: SecretStr = SecretStr("")  # backward compat
    gemini_api_key: SecretStr = SecretStr("")  # backward compat
    openai_api_key: SecretStr = SecretStr("")  # backward compat
    gemini_endpoint: str = "https://generativelanguage.googleapis.com/v1beta/models"
    llm_timeout_sec: int = 45
    llm_temperature: float = 0.1
    llm_max_content_chars: int = 2000

    # ── Classification ────────────────────────────────────
    ai_min_confidence: float = 0.3
    min_retained_confidence: float = 0.2

    # ── Recategorization ──────────────────────────────────
    recategorize_stale_after_days: int = 7
    ai_call_delay_sec: float = 0.1

    # ── Server ────────────────────────────────────────────
    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: str = "http://localhost:3000"

    # ── Logging ───────────────────────────────────────────
    log_level: str = "INFO"
    log_file: Optional[str] = None
    log_json: bool = False

    # ── Validators ────────────────────────────────────────
    @field_validator("llm_enabled", mode="before")
    @classmethod
    def parse_bool(cls, v: object) -> bool:
        if isinstance(v, str):
            return v.strip().lower() in {"1", "true", "yes", "on"}
        return bool(v)

    @field_validator("cors_origins", mode="before")
    @classmethod
    def ensure_string(cls, v: object) -> str:
        return str(v).strip()

    @field_validator("ai_min_confidence", "min_retained_confidence")
    @classmethod
    def check_unit_interval(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError("confidence thresholds must lie in [0, 1]")
        return v

    @model_validator(mode="after")
    def _resolve_api_key(self) -> "AppConfig":
        """Fall back to the provider-specific key if LLM_API_KEY is empty."""
        if self.llm_api_key.get_secret_value():
            return self
        if self.llm_provider.lower() == "openai":
            candidates = (self.openai_api_key,)
        else:
            candidates = (self.google_gemini_api_key, self.gemini_api_key)
        for candidate in candidates:
            if candidate.get_secret_value():
                self.llm_api_key = candidate
                break
        return self

    @property
    def llm_configured(self) -> bool:
        """True when the LLM is enabled and a usable API key is present."""
        key = self.llm_api_key.get_secret_value().strip()
        return self.llm_enabled and bool(key) and key not in PLACEHOLDER_API_KEYS

    @property
    def imap_configured(self) -> bool:
        return bool(self.imap_host and self.email_username)

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def database_path(self) -> Optional[Path]:
        """Return the SQLite file path, or None for non-file databases."""
        if self.database_url.startswith("sqlite:///"):
            return Path(self.database_url.replace("sqlite:///", ""))
        return None


def get_config() -> AppConfig:
    """Load and return validated application config."""
    return AppConfig()
