"""
Application configuration.

Responsibilities:
- Load deployment-specific configuration
- Read environment variables
- Provide a typed, immutable config object

Non-responsibilities:
- No session logic
- No audio/wire constants (see constants.py)
- No runtime mutation
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from constants import (
    DEFAULT_KEYWORD,
    DEFAULT_LIVE_MODEL,
    DEFAULT_SYSTEM_INSTRUCTION,
)


def _optional_device(raw: str | None) -> int | str | None:
    """sounddevice accepts either a device index or a name substring."""
    if raw is None or raw.strip() == "":
        return None
    raw = raw.strip()
    return int(raw) if raw.isdigit() else raw


@dataclass(frozen=True)
class AppConfig:
    """
    Immutable application configuration.

    Constructed once at process startup.
    Passed downward to the session controller and the server.
    """

    # ------------------------------------------------------------------
    # Environment
    # ------------------------------------------------------------------

    env: str
    log_level: str

    # ------------------------------------------------------------------
    # Remote service
    # ------------------------------------------------------------------

    gemini_api_key: str | None
    live_model: str
    system_instruction: str

    # ------------------------------------------------------------------
    # Counting
    # ------------------------------------------------------------------

    keyword: str

    # ------------------------------------------------------------------
    # Audio devices (None = host default)
    # ------------------------------------------------------------------

    input_device: int | str | None
    output_device: int | str | None

    # ------------------------------------------------------------------
    # Observability
    # ------------------------------------------------------------------

    enable_json_logs: bool

    # ------------------------------------------------------------------
    # Server
    # ------------------------------------------------------------------

    host: str
    port: int

    # ------------------------------------------------------------------
    # Factory
    # ------------------------------------------------------------------

    @staticmethod
    def load_from_env() -> AppConfig:
        """
        Load configuration from environment variables.

        Raises:
            ValueError if PORT is not an integer.
        """
        keyword = os.environ.get("KEYWORD", DEFAULT_KEYWORD).strip() or DEFAULT_KEYWORD
        return AppConfig(
            env=os.environ.get("ENV", "dev"),
            log_level=os.environ.get("LOG_LEVEL", "INFO"),

            gemini_api_key=os.environ.get("GEMINI_API_KEY") or os.environ.get("API_KEY"),
            live_model=os.environ.get("LIVE_MODEL", DEFAULT_LIVE_MODEL),
            system_instruction=os.environ.get(
                "SYSTEM_INSTRUCTION",
                DEFAULT_SYSTEM_INSTRUCTION.format(keyword=keyword),
            ),

            keyword=keyword,

            input_device=_optional_device(os.environ.get("INPUT_DEVICE")),
            output_device=_optional_device(os.environ.get("OUTPUT_DEVICE")),

            enable_json_logs=os.environ.get("ENABLE_JSON_LOGS", "1") == "1",

            host=os.environ.get("HOST", "127.0.0.1"),
            port=int(os.environ.get("PORT", "8000")),
        )
