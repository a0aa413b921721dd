"""
Static configuration management for the pet economy engine.

Purpose
-------
Provides centralized static configuration loaded from environment variables
with sensible defaults, type validation, and bounds checking. This module
handles settings that are fixed for the lifetime of a session.

Responsibilities
----------------
- Load configuration from environment variables with .env support
- Provide type-safe access to all static configuration values
- Validate critical settings on startup
- Track which values came from the environment versus defaults

Non-Responsibilities
--------------------
- Economy balance tables (handled by ConfigManager + YAML)
- Catalog content (handled by CatalogService)
- Secrets management (use environment variables)

Configuration Categories
------------------------
1. Environment: environment type, logging
2. Ledger Service: base URL, API key, timeout
3. Data files: economy and catalog YAML overrides
4. Artwork: asset-transform service base URL and bucket

Environment Variables
---------------------
Optional (with defaults):
- ENVIRONMENT: Environment type (default: development)
- LOG_LEVEL: Logging level (default: INFO)
- LOG_JSON / LOG_COLORS: Console output format
- LOGS_DIR: Directory for the rotating JSON log file (disabled when unset)
- LEDGER_BASE_URL: Ledger Service RPC endpoint
- LEDGER_API_KEY: Bearer token for the Ledger Service
- LEDGER_TIMEOUT_SECONDS: Request timeout (default: 10)
- ECONOMY_CONFIG_PATH: YAML file overriding bundled economy defaults
- CATALOG_PATH: YAML catalog file (defaults to the bundled catalog)
- ARTWORK_BASE_URL: Storage base URL for pet artwork
- ARTWORK_BUCKET: Storage bucket for pet artwork (default: pet-images)
"""

import logging
import os
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Environment(Enum):
    """Deployment environment types."""

    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"

    @classmethod
    def from_string(cls, value: str) -> "Environment":
        """
        Parse environment string safely with fallback.

        Example
        -------
        >>> Environment.from_string("production") == Environment.PRODUCTION
        True
        >>> Environment.from_string("invalid") == Environment.DEVELOPMENT
        True
        """
        try:
            return cls(value.lower())
        except ValueError:
            # Structured logger not yet initialized during bootstrap
            logging.warning(
                f"Unknown environment '{value}', defaulting to development"
            )
            return cls.DEVELOPMENT


class _ConfigLoadMetrics:
    """Tracks which configuration values came from the environment."""

    def __init__(self):
        self.env_vars_loaded: Dict[str, bool] = {}
        self.validation_errors: Dict[str, str] = {}
        self.defaults_used: Dict[str, Any] = {}
        self.last_reload: Optional[str] = None

    def record_env_load(self, key: str, from_env: bool, default: Any):
        self.env_vars_loaded[key] = from_env
        if not from_env:
            self.defaults_used[key] = default

    def record_validation_error(self, key: str, error: str):
        self.validation_errors[key] = error

    def get_summary(self) -> Dict[str, Any]:
        return {
            "total_configs": len(self.env_vars_loaded),
            "from_environment": sum(1 for v in self.env_vars_loaded.values() if v),
            "from_defaults": sum(1 for v in self.env_vars_loaded.values() if not v),
            "validation_errors": len(self.validation_errors),
            "defaults_used": list(self.defaults_used.keys()),
            "last_reload": self.last_reload,
        }


class Config:
    """
    Centralized static configuration for the pet economy engine.

    All values are loaded from environment variables with sensible defaults.
    Invalid values fall back to the default and are recorded as validation
    errors rather than crashing the session.

    Usage
    -----
    >>> Config.LEDGER_BASE_URL
    'http://localhost:54321'
    >>> Config.is_production()
    False
    """

    _metrics: Optional[_ConfigLoadMetrics] = None

    # =========================================================================
    # Environment Configuration
    # =========================================================================

    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    LOG_JSON: Optional[bool] = None
    LOG_COLORS: bool = True
    LOGS_DIR: Optional[Path] = None

    # =========================================================================
    # Ledger Service
    # =========================================================================

    LEDGER_BASE_URL: str = "http://localhost:54321"
    LEDGER_API_KEY: str = ""
    LEDGER_TIMEOUT_SECONDS: float = 10.0

    # =========================================================================
    # Data Files
    # =========================================================================

    PACKAGE_ROOT = Path(__file__).resolve().parents[2]
    DATA_DIR = PACKAGE_ROOT / "data"
    ECONOMY_CONFIG_PATH: Optional[Path] = None
    CATALOG_PATH: Path = DATA_DIR / "catalog.yaml"

    # =========================================================================
    # Artwork
    # =========================================================================

    ARTWORK_BASE_URL: str = "http://localhost:54321/storage/v1"
    ARTWORK_BUCKET: str = "pet-images"

    # =========================================================================
    # Helper Methods
    # =========================================================================

    @classmethod
    def _init_metrics(cls):
        if cls._metrics is None:
            cls._metrics = _ConfigLoadMetrics()

    @classmethod
    def _record_error(cls, key: str, error: str) -> None:
        logging.warning(error)
        if cls._metrics:
            cls._metrics.record_validation_error(key, error)

    @classmethod
    def _safe_float(
        cls,
        key: str,
        default: float,
        min_val: Optional[float] = None,
        max_val: Optional[float] = None,
    ) -> float:
        """
        Safely parse a float from the environment with bounds checking.

        Example
        -------
        >>> Config._safe_float("LEDGER_TIMEOUT_SECONDS", 10.0, min_val=0.1)
        10.0
        """
        cls._init_metrics()

        raw_value = os.getenv(key)
        if raw_value is None:
            cls._metrics.record_env_load(key, False, default)
            return default

        try:
            value = float(raw_value)
        except ValueError:
            cls._record_error(
                key, f"{key}='{raw_value}' is not a valid number, using default {default}"
            )
            return default

        if min_val is not None and value < min_val:
            cls._record_error(
                key, f"{key}={value} is below minimum {min_val}, using default {default}"
            )
            return default

        if max_val is not None and value > max_val:
            cls._record_error(
                key, f"{key}={value} exceeds maximum {max_val}, using default {default}"
            )
            return default

        cls._metrics.record_env_load(key, True, default)
        return value

    @classmethod
    def _safe_bool(cls, key: str, default: Optional[bool]) -> Optional[bool]:
        """
        Safely parse boolean from environment.

        Recognizes: true/false, yes/no, 1/0, on/off (case-insensitive).
        """
        cls._init_metrics()

        raw_value = os.getenv(key)
        if raw_value is None:
            cls._metrics.record_env_load(key, False, default)
            return default

        normalized = raw_value.lower().strip()
        if normalized in {"true", "yes", "1", "on"}:
            value = True
        elif normalized in {"false", "no", "0", "off"}:
            value = False
        else:
            cls._record_error(
                key, f"{key}='{raw_value}' is not a valid boolean, using default {default}"
            )
            return default

        cls._metrics.record_env_load(key, True, default)
        return value

    @classmethod
    def _safe_str(cls, key: str, default: str) -> str:
        cls._init_metrics()
        value = os.getenv(key, default)
        cls._metrics.record_env_load(key, key in os.environ, default)
        return value

    @classmethod
    def _safe_path(cls, key: str, default: Optional[Path]) -> Optional[Path]:
        cls._init_metrics()
        raw_value = os.getenv(key)
        cls._metrics.record_env_load(key, raw_value is not None, default)
        if not raw_value:
            return default
        return Path(raw_value).expanduser()

    # =========================================================================
    # Configuration Loading
    # =========================================================================

    @classmethod
    def load(cls) -> None:
        """
        Load all configuration from environment variables with validation.

        Called automatically on module import; can be called again (e.g. in
        tests after patching the environment).
        """
        cls._init_metrics()

        cls.ENVIRONMENT = cls._safe_str("ENVIRONMENT", "development")
        cls.LOG_LEVEL = cls._safe_str("LOG_LEVEL", "INFO")
        cls.LOG_JSON = cls._safe_bool("LOG_JSON", None)
        cls.LOG_COLORS = bool(cls._safe_bool("LOG_COLORS", True))
        cls.LOGS_DIR = cls._safe_path("LOGS_DIR", None)

        cls.LEDGER_BASE_URL = cls._safe_str(
            "LEDGER_BASE_URL", "http://localhost:54321"
        ).rstrip("/")
        cls.LEDGER_API_KEY = cls._safe_str("LEDGER_API_KEY", "")
        cls.LEDGER_TIMEOUT_SECONDS = cls._safe_float(
            "LEDGER_TIMEOUT_SECONDS", 10.0, min_val=0.1, max_val=300.0
        )

        cls.ECONOMY_CONFIG_PATH = cls._safe_path("ECONOMY_CONFIG_PATH", None)
        cls.CATALOG_PATH = cls._safe_path("CATALOG_PATH", cls.DATA_DIR / "catalog.yaml")

        cls.ARTWORK_BASE_URL = cls._safe_str(
            "ARTWORK_BASE_URL", "http://localhost:54321/storage/v1"
        ).rstrip("/")
        cls.ARTWORK_BUCKET = cls._safe_str("ARTWORK_BUCKET", "pet-images")

        valid_log_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if cls.LOG_LEVEL.upper() not in valid_log_levels:
            cls._record_error("LOG_LEVEL", f"Invalid LOG_LEVEL '{cls.LOG_LEVEL}', using INFO")
            cls.LOG_LEVEL = "INFO"

        if cls.is_production() and not cls.LEDGER_API_KEY:
            cls._record_error(
                "LEDGER_API_KEY", "LEDGER_API_KEY is not set in production"
            )

        cls._metrics.last_reload = datetime.now(timezone.utc).isoformat()

    # =========================================================================
    # Environment Checks
    # =========================================================================

    @classmethod
    def is_production(cls) -> bool:
        return Environment.from_string(cls.ENVIRONMENT) is Environment.PRODUCTION

    @classmethod
    def is_testing(cls) -> bool:
        return Environment.from_string(cls.ENVIRONMENT) is Environment.TESTING

    # =========================================================================
    # Metrics & Summary
    # =========================================================================

    @classmethod
    def get_config_summary(cls) -> Dict[str, Any]:
        """Get non-sensitive configuration summary for debugging."""
        return {
            "environment": cls.ENVIRONMENT,
            "log_level": cls.LOG_LEVEL,
            "ledger_base_url": cls.LEDGER_BASE_URL,
            "ledger_api_key_set": bool(cls.LEDGER_API_KEY),
            "ledger_timeout_seconds": cls.LEDGER_TIMEOUT_SECONDS,
            "economy_config_path": str(cls.ECONOMY_CONFIG_PATH) if cls.ECONOMY_CONFIG_PATH else None,
            "catalog_path": str(cls.CATALOG_PATH),
            "load_metrics": cls._metrics.get_summary() if cls._metrics else {},
        }


# Load on import
Config.load()
