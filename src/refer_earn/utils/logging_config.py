"""
Centralized logging configuration for the Refer & Earn service.
Provides component-specific loggers with separate log files.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional, Dict, Any
from datetime import datetime

from ..config import get_config


DETAILED_FORMAT = (
    "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - "
    "%(funcName)s() - %(message)s"
)
SIMPLE_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


class ComponentLogger:
    """Manages component-specific logging with separate files."""

    _loggers: Dict[str, logging.Logger] = {}
    _initialized = False
    _log_dir: Optional[Path] = None
    _to_file = True
    _debug = False

    # Component definitions with their log levels
    COMPONENTS = {
        "api": {"level": logging.INFO, "file": "api.log"},
        "database": {"level": logging.INFO, "file": "database.log"},
        "auth": {"level": logging.INFO, "file": "auth.log"},
        "referrals": {"level": logging.INFO, "file": "referrals.log"},
        "commissions": {"level": logging.INFO, "file": "commissions.log"},
        "main": {"level": logging.INFO, "file": "main.log"},
        "error": {"level": logging.ERROR, "file": "errors.log"},  # Centralized error log
    }

    @classmethod
    def initialize(
        cls,
        log_dir: Optional[str] = None,
        debug: Optional[bool] = None,
        to_file: Optional[bool] = None,
    ) -> None:
        """
        Initialize the logging system with component-specific loggers.

        Args:
            log_dir: Directory for log files. Defaults to config.app.log_dir
            debug: Enable debug logging for all components
            to_file: Write rotating log files instead of logging to stderr only
        """
        if cls._initialized:
            return

        config = get_config()
        cls._debug = config.app.log_level.upper() == "DEBUG" if debug is None else debug
        cls._to_file = config.app.log_to_file if to_file is None else to_file

        if cls._to_file:
            base_dir = Path(log_dir or config.app.log_dir)
            session_dir = datetime.now().strftime("%Y%m%d_%H%M%S")
            cls._log_dir = base_dir / session_dir
            cls._log_dir.mkdir(parents=True, exist_ok=True)

        root_level = logging.DEBUG if cls._debug else logging.INFO
        logging.getLogger().setLevel(root_level)

        for component_name, component_config in cls.COMPONENTS.items():
            level = logging.DEBUG if cls._debug else component_config["level"]
            cls._loggers[component_name] = cls._build_logger(
                component_name, level, component_config["file"]
            )

        # Mark as initialized before logging to avoid recursion
        cls._initialized = True

        main_logger = cls._loggers["main"]
        main_logger.info("Refer & Earn logging initialized")
        main_logger.debug(f"Log directory: {cls._log_dir}, debug mode: {cls._debug}")

    @classmethod
    def _build_logger(cls, component: str, level: int, file_name: str) -> logging.Logger:
        logger = logging.getLogger(f"refer_earn.{component}")
        logger.handlers.clear()
        logger.propagate = False
        logger.setLevel(level)

        if cls._to_file and cls._log_dir is not None:
            file_handler = logging.handlers.RotatingFileHandler(
                cls._log_dir / file_name,
                maxBytes=10 * 1024 * 1024,  # 10MB
                backupCount=5,
                encoding="utf-8",
            )
            file_handler.setLevel(level)
            file_handler.setFormatter(
                logging.Formatter(DETAILED_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
            )
            logger.addHandler(file_handler)

            # Errors still reach the console when logging to files
            if component in ("error", "main"):
                console_handler = logging.StreamHandler(sys.stderr)
                console_handler.setLevel(logging.ERROR)
                console_handler.setFormatter(
                    logging.Formatter(SIMPLE_FORMAT, datefmt="%H:%M:%S")
                )
                logger.addHandler(console_handler)
        else:
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setLevel(level)
            console_handler.setFormatter(
                logging.Formatter(SIMPLE_FORMAT, datefmt="%H:%M:%S")
            )
            logger.addHandler(console_handler)

        return logger

    @classmethod
    def get_logger(cls, component: str) -> logging.Logger:
        """
        Get a logger for a specific component.

        Args:
            component: Component name (api, database, auth, referrals, ...)
                      Can also be a module path like 'refer_earn.core.referral_graph'

        Returns:
            Logger instance for the component
        """
        if not cls._initialized:
            cls.initialize()

        if component.startswith("refer_earn."):
            parts = component.split(".")
            if parts[1] in ("db", "repositories"):
                component = "database"
            elif parts[-1] == "referral_graph":
                component = "referrals"
            elif parts[-1] == "commission_engine":
                component = "commissions"
            elif len(parts) > 1:
                component = parts[1]

        if component not in cls._loggers:
            level = logging.DEBUG if cls._debug else logging.INFO
            cls._loggers[component] = cls._build_logger(
                component, level, f"{component}.log"
            )

        return cls._loggers[component]

    @classmethod
    def log_exception(
        cls, component: str, exc: Exception, context: Optional[Dict[str, Any]] = None
    ) -> None:
        """
        Log an exception with context to both component and error logs.

        Args:
            component: Component where the exception occurred
            exc: The exception to log
            context: Additional context information
        """
        component_logger = cls.get_logger(component)
        error_logger = cls.get_logger("error")

        context_str = ""
        if context:
            context_str = " | Context: " + ", ".join(f"{k}={v}" for k, v in context.items())

        component_logger.error(
            f"Exception in {component}: {type(exc).__name__}: {exc}{context_str}",
            exc_info=exc,
        )
        error_logger.error(
            f"[{component}] {type(exc).__name__}: {exc}{context_str}", exc_info=exc
        )

    @classmethod
    def get_log_directory(cls) -> Optional[Path]:
        """Get the current log directory path."""
        return cls._log_dir

    @classmethod
    def reset(cls) -> None:
        """Close handlers and forget all loggers."""
        for logger in cls._loggers.values():
            for handler in list(logger.handlers):
                handler.close()
                logger.removeHandler(handler)
        cls._loggers = {}
        cls._initialized = False
        cls._log_dir = None


# Convenience functions
def get_logger(component: str) -> logging.Logger:
    """Get a logger for a specific component."""
    return ComponentLogger.get_logger(component)


def initialize_logging(
    log_dir: Optional[str] = None,
    debug: Optional[bool] = None,
    to_file: Optional[bool] = None,
) -> None:
    """Initialize the logging system."""
    ComponentLogger.initialize(log_dir=log_dir, debug=debug, to_file=to_file)


def log_exception(
    component: str, exc: Exception, context: Optional[Dict[str, Any]] = None
) -> None:
    """Log an exception with context."""
    ComponentLogger.log_exception(component, exc, context)


def get_log_directory() -> Optional[Path]:
    """Get the current log directory path."""
    return ComponentLogger.get_log_directory()
