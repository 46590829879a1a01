"""
Application configuration.

Responsibilities:
- Load deployment-specific configuration
- Read environment variables
- Provide a typed, immutable config object

Non-responsibilities:
- No orchestration logic
- No behavioural constants (see constants.py)
- No runtime mutation
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from constants import DEFAULT_BACKEND_BASE_URL, RESOLVE_TIMEOUT_S


@dataclass(frozen=True)
class AppConfig:
    """
    Immutable application configuration.

    Constructed once at process startup.
    Passed downward to the app factory and every SessionGateway.
    """

    # ------------------------------------------------------------------
    # Environment
    # ------------------------------------------------------------------

    env: str
    log_level: str

    # ------------------------------------------------------------------
    # Remote text-processing service
    # ------------------------------------------------------------------

    backend_base_url: str
    resolve_timeout_s: float

    # ------------------------------------------------------------------
    # Static assets (greeting audio)
    # ------------------------------------------------------------------

    static_dir: str

    # ------------------------------------------------------------------
    # Observability
    # ------------------------------------------------------------------

    enable_json_logs: bool

    # ------------------------------------------------------------------
    # Factory
    # ------------------------------------------------------------------

    @staticmethod
    def load_from_env() -> AppConfig:
        """
        Load configuration from environment variables.

        Raises:
            ValueError if RESOLVE_TIMEOUT_S is not a number.
        """
        return AppConfig(
            env=os.environ.get("ENV", "dev"),
            log_level=os.environ.get("LOG_LEVEL", "INFO"),

            backend_base_url=os.environ.get(
                "BACKEND_BASE_URL", DEFAULT_BACKEND_BASE_URL
            ).rstrip("/"),
            resolve_timeout_s=float(
                os.environ.get("RESOLVE_TIMEOUT_S", str(RESOLVE_TIMEOUT_S))
            ),

            static_dir=os.environ.get("STATIC_DIR", "public"),

            enable_json_logs=os.environ.get("ENABLE_JSON_LOGS", "1") == "1",
        )
