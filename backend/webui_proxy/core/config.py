# ------------------------------------------------------------
# Module: webui_proxy/core/config.py
# Purpose: Central, typed proxy settings loaded from .env / process environment.
# ------------------------------------------------------------

"""Typed configuration hub for the proxy.

Responsibilities
----------------
- Load `.env` (if present) into the process environment via python-dotenv.
- Provide strongly-typed browser, timing, and logging knobs.
- Validate timing bounds early so a typo never produces a silent zero wait.

Notes
-----
- Field names match the environment variable names (no prefix).
- Import `settings` anywhere; tests build their own `Settings(...)` instead of
  mutating the singleton.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

# Load variables from .env file (if present)
load_dotenv()


class Settings(BaseModel):
    """
    Proxy configuration.

    Notes
    -----
    - Extras are forbidden to surface typos/unknown keys early.
    - All durations are milliseconds.
    """

    model_config = dict(extra="forbid")

    # HTTP server
    HOST: str = "127.0.0.1"
    PORT: int = Field(8033, ge=1, le=65535)
    CORS_ORIGINS: list[str] = ["*"]

    # Browser / target page
    HEADLESS: bool = False
    USER_DATA_DIR: Path = Path(".browser-profile")
    TARGET_URL: str = "https://gemini.google.com/app"
    WAIT_READY_MS: int = Field(3000, ge=0)
    # False keeps the lifespan from launching a browser (tests, dry runs).
    LAUNCH_SURFACE: bool = True

    # Capture timing
    MAX_ANSWER_MS: int = Field(120_000, ge=100, description="Hard capture timeout")
    STABLE_MS: int = Field(1500, ge=0, description="No-change window ending a reply")
    POLL_INTERVAL_MS: int = Field(80, ge=1, description="Capture poll period")

    # Submission timing
    AFTER_INPUT_SETTLE_MS: int = Field(1000, ge=0)
    IDLE_WAIT_MS: int = Field(15_000, ge=0)
    VERIFY_MS: int = Field(1800, ge=0)
    COMMIT_WAIT_MS: int = Field(4000, ge=0)
    COMMIT_RETRY_WAIT_MS: int = Field(2000, ge=0)

    # Session watchdog fires at MAX_ANSWER_MS + WATCHDOG_MARGIN_MS.
    WATCHDOG_MARGIN_MS: int = Field(2000, ge=0)

    # Model id advertised on /v1/models and echoed in completions.
    MODEL_ID: str = "gemini-webui"

    # App toggles
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    ACCESS_LOG: bool = True
    MUTE_ALL_LOGS: bool = False

    # Internal/debug exposure (keep False in prod)
    EXPOSE_INTERNALS: bool = False

    # Accept comma-separated string or list for CORS_ORIGINS; normalize to list[str].
    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def _coerce_origins(cls, v: str | list[str]):
        if isinstance(v, str):
            return [s.strip() for s in v.split(",") if s.strip()]
        return v

    @field_validator("USER_DATA_DIR", mode="before")
    @classmethod
    def _coerce_path(cls, v: str | Path):
        return v if isinstance(v, Path) else Path(v).expanduser()

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def _upper_level(cls, v: str):
        return v.upper() if isinstance(v, str) else v

    @property
    def watchdog_ms(self) -> int:
        return self.MAX_ANSWER_MS + self.WATCHDOG_MARGIN_MS

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None, **overrides) -> Settings:
        """Build settings from environment variables named after the fields.

        Unset or empty variables keep the code default; explicit `overrides`
        win over the environment.
        """
        env = os.environ if environ is None else environ
        values: dict = {}
        for name in cls.model_fields:
            raw = env.get(name)
            if raw is not None and raw.strip() != "":
                values[name] = raw.strip()
        values.update(overrides)
        return cls(**values)


# Eagerly instantiate once at import.
# Import `settings` anywhere; do not re-create Settings() in app code.
settings = Settings.from_env()
