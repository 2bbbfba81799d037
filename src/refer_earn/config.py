"""
Configuration management for the Refer & Earn service.

Builds configuration from sensible defaults, an optional JSON file and
environment variables. The loaded configuration is cached per process.
"""

import json
import os
import secrets
from pathlib import Path
from typing import Dict, Any, Optional, List
from dataclasses import dataclass, asdict, field
import logging
import sys

# List of known weak/default JWT secrets that should be rejected
WEAK_JWT_SECRETS = {
    "your-secret-key-change-in-production",
    "secret",
    "key",
    "password",
    "jwt-secret",
    "secret-key",
    "change-me",
    "default",
    "test",
    "development",
    "dev",
    "demo",
    "example",
    "sample",
}

ENV_PREFIX = "REFER_EARN_"


def _validate_jwt_secret_key(jwt_secret_key: str) -> None:
    """Validate JWT secret key security and reject weak/default keys.

    Args:
        jwt_secret_key: The JWT secret key to validate

    Raises:
        SystemExit: If the secret key is weak, default, or insecure
    """
    if not jwt_secret_key:
        logging.critical(
            "JWT secret key is empty - this is a critical security vulnerability"
        )
        sys.exit(1)

    if len(jwt_secret_key) < 32:
        logging.critical(
            f"JWT secret key is too short ({len(jwt_secret_key)} chars). "
            f"Minimum 32 characters required for security."
        )
        sys.exit(1)

    if jwt_secret_key.lower() in WEAK_JWT_SECRETS:
        logging.critical(
            f"JWT secret key '{jwt_secret_key}' is a known weak/default secret. "
            f"Set {ENV_PREFIX}JWT_SECRET_KEY environment variable with a secure key."
        )
        sys.exit(1)

    unique_chars = len(set(jwt_secret_key))
    if unique_chars < 8:
        logging.critical(
            f"JWT secret key has insufficient entropy ({unique_chars} unique characters). "
            f"Use a cryptographically secure random key."
        )
        sys.exit(1)

    if any(
        pattern in jwt_secret_key.lower()
        for pattern in ["123", "abc", "password", "secret", "qwerty", "admin"]
    ):
        logging.warning(
            "JWT secret key contains common patterns that may indicate weak security. "
            "Consider using a fully random key generated with secrets.token_urlsafe(64)."
        )

    logging.debug(
        f"JWT secret key validation passed ({len(jwt_secret_key)} chars, {unique_chars} unique)"
    )


def _env_flag(name: str, default: bool) -> bool:
    """Read a boolean flag from the environment."""
    value = os.getenv(f"{ENV_PREFIX}{name}")
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str) -> Optional[int]:
    """Read an integer from the environment, ignoring malformed values."""
    value = os.getenv(f"{ENV_PREFIX}{name}")
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        logging.warning(f"Ignoring non-integer value for {ENV_PREFIX}{name}: {value!r}")
        return None


@dataclass
class DatabaseConfig:
    """Database configuration."""

    url: str = "sqlite:///./refer_earn.db"
    echo: bool = False
    log_queries: bool = False  # Enable slow query logging
    create_schema: bool = True  # create_all at startup; disable when using Alembic


@dataclass
class ServerConfig:
    """Server configuration."""

    host: str = "127.0.0.1"
    port: int = 6000
    debug: bool = False
    auto_reload: bool = False
    workers: int = 1
    allowed_origins: List[str] = field(
        default_factory=lambda: ["http://127.0.0.1:3000", "http://localhost:3000"]
    )


@dataclass
class AppConfig:
    """Main application configuration."""

    app_name: str = "Refer & Earn"
    version: str = "1.0.0"
    description: str = "Referral graph and two-level commission tracking service"

    # Security Configuration
    password_hash_iterations: int = 120_000  # PBKDF2 iterations
    jwt_secret_key: str = ""  # Must be set at runtime - no default for security
    jwt_access_token_expires_minutes: int = 60 * 24
    auth_cookie_name: str = "token"

    # Logging
    log_level: str = "INFO"
    log_to_file: bool = True
    log_dir: str = "logs"


@dataclass
class ReferEarnConfig:
    """Complete configuration for the service."""

    app: AppConfig
    server: ServerConfig
    database: DatabaseConfig

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "app": asdict(self.app),
            "server": asdict(self.server),
            "database": asdict(self.database),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReferEarnConfig":
        """Create from dictionary."""
        return cls(
            app=AppConfig(**data.get("app", {})),
            server=ServerConfig(**data.get("server", {})),
            database=DatabaseConfig(**data.get("database", {})),
        )


class ConfigManager:
    """Manages configuration loading and environment overrides."""

    def __init__(self):
        self.config_file: Optional[Path] = None
        self.config: Optional[ReferEarnConfig] = None

    def get_config_file_path(self) -> Optional[Path]:
        """Get the path of the optional JSON config file."""
        config_file = os.getenv(f"{ENV_PREFIX}CONFIG_FILE")
        return Path(config_file) if config_file else None

    def _read_file(self) -> Dict[str, Any]:
        self.config_file = self.get_config_file_path()
        if self.config_file is None:
            return {}
        if not self.config_file.exists():
            logging.warning(f"Config file {self.config_file} not found, using defaults")
            return {}

        try:
            with open(self.config_file, "r", encoding="utf-8") as f:
                data = json.load(f)
            logging.info(f"Loaded configuration from {self.config_file}")
            return data
        except (OSError, json.JSONDecodeError) as e:
            logging.warning(f"Failed to load config from {self.config_file}: {e}")
            return {}

    def _apply_environment(self, config: ReferEarnConfig) -> None:
        """Overlay environment variables on top of file/default values."""
        db_url = os.getenv(f"{ENV_PREFIX}DATABASE_URL") or os.getenv("DATABASE_URL")
        if db_url:
            config.database.url = db_url

        debug = _env_flag("DEBUG", config.server.debug)
        config.server.debug = debug
        if debug:
            config.app.log_level = "DEBUG"

        config.app.log_to_file = _env_flag("LOG_TO_FILE", config.app.log_to_file)
        config.app.log_dir = os.getenv(f"{ENV_PREFIX}LOG_DIR", config.app.log_dir)
        config.database.create_schema = _env_flag(
            "CREATE_SCHEMA", config.database.create_schema
        )
        config.database.log_queries = _env_flag(
            "LOG_QUERIES", config.database.log_queries
        )

        iterations = _env_int("PASSWORD_HASH_ITERATIONS")
        if iterations:
            config.app.password_hash_iterations = iterations

        token_minutes = _env_int("ACCESS_TOKEN_MINUTES")
        if token_minutes:
            config.app.jwt_access_token_expires_minutes = token_minutes

        port = _env_int("PORT")
        if port:
            config.server.port = port

        jwt_secret_key = os.getenv(f"{ENV_PREFIX}JWT_SECRET_KEY")
        if jwt_secret_key:
            config.app.jwt_secret_key = jwt_secret_key
            logging.info(
                f"Using JWT secret key from {ENV_PREFIX}JWT_SECRET_KEY environment variable"
            )
        elif not config.app.jwt_secret_key:
            config.app.jwt_secret_key = secrets.token_urlsafe(64)
            logging.info("Generated new JWT secret key (not from environment)")

    def load_config(self) -> ReferEarnConfig:
        """Load configuration once and cache it."""
        if self.config is not None:
            return self.config

        config = ReferEarnConfig.from_dict(self._read_file())
        self._apply_environment(config)
        _validate_jwt_secret_key(config.app.jwt_secret_key)

        self.config = config
        return self.config

    def reset(self) -> None:
        """Drop the cached configuration so the next load re-reads everything."""
        self.config = None
        self.config_file = None

    def save_config(self, config: Optional[ReferEarnConfig] = None) -> bool:
        """Save configuration to the configured JSON file."""
        if config is None:
            config = self.config

        if config is None:
            logging.error("No configuration to save")
            return False

        path = self.get_config_file_path()
        if path is None:
            logging.error(f"{ENV_PREFIX}CONFIG_FILE is not set, cannot save configuration")
            return False

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                json.dump(config.to_dict(), f, indent=2, ensure_ascii=False)
            logging.info(f"Saved configuration to {path}")
            return True
        except OSError as e:
            logging.error(f"Failed to save config to {path}: {e}")
            return False


# Global config manager instance
config_manager = ConfigManager()


def get_config() -> ReferEarnConfig:
    """Get the current configuration."""
    return config_manager.load_config()


def reset_config() -> None:
    """Forget the cached configuration (used by tests and reloads)."""
    config_manager.reset()


def get_database_url() -> str:
    """Get the database URL."""
    return get_config().database.url
