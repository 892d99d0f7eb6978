"""Utility functions for PII Scout"""

import logging
import os
from pathlib import Path


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def get_int_env(key: str) -> int:
    """Get integer value from environment variable, return 0 if not set or invalid."""
    val = os.getenv(key)
    if val is None:
        return 0
    try:
        return int(val)
    except ValueError:
        return 0


def get_str_env(key: str, default: str) -> str:
    """
    Get string from environment variable, return default if not set.

    Args:
        key: Environment variable name
        default: Default value if not set

    Returns:
        String value or default
    """
    return os.getenv(key, default)


def get_log_level() -> int:
    """Resolve SCOUT_LOG_LEVEL to a logging level, INFO when unset or unknown."""
    level_name = get_str_env('SCOUT_LOG_LEVEL', 'INFO').upper()
    return getattr(logging, level_name, logging.INFO)


def setup_logging(level: int | None = None):
    """Configure root logging for CLI and server entry points."""
    logging.basicConfig(level=level if level is not None else get_log_level(), format=LOG_FORMAT)


class ShutdownFilter(logging.Filter):
    """
    Logging filter to suppress shutdown-related error tracebacks.

    Filters out KeyboardInterrupt, CancelledError, and SystemExit errors
    that occur during graceful shutdown of uvicorn/asyncio servers.
    """

    def filter(self, record):
        if record.levelname == 'ERROR':
            msg = str(record.getMessage())
            if any(x in msg for x in ['KeyboardInterrupt', 'CancelledError', 'Shutting down']):
                return False
            if record.exc_info:
                exc_type = record.exc_info[0]
                if exc_type and exc_type.__name__ in ('KeyboardInterrupt', 'CancelledError', 'SystemExit'):
                    return False
        return True


def setup_shutdown_filter():
    """Apply ShutdownFilter to uvicorn and asyncio loggers before running the server."""
    shutdown_filter = ShutdownFilter()
    for logger_name in ['uvicorn.error', 'uvicorn', 'asyncio']:
        logger = logging.getLogger(logger_name)
        logger.addFilter(shutdown_filter)


def get_scout_config_base() -> Path:
    """Get the configuration directory for PII Scout.

    Priority:
    1. SCOUT_CONFIG_DIR environment variable (if set)
    2. XDG_CONFIG_HOME environment variable (if set) + /piiscout
    3. ~/.config/piiscout (default)
    """
    scout_config = os.environ.get('SCOUT_CONFIG_DIR')
    if scout_config:
        return Path(scout_config)

    xdg_config = os.environ.get('XDG_CONFIG_HOME')
    if xdg_config:
        base = Path(xdg_config)
    else:
        base = Path.home() / '.config'

    return base / 'piiscout'


def get_patterns_file() -> Path:
    """Path of the persisted pattern catalog (SCOUT_PATTERNS_FILE overrides)."""
    explicit = os.environ.get('SCOUT_PATTERNS_FILE')
    if explicit:
        return Path(explicit)
    return get_scout_config_base() / 'patterns.json'


def get_log_file() -> Path:
    """Proxy log file served by the web API."""
    return Path(get_str_env('SCOUT_LOG_FILE', 'proxy-access.log'))
