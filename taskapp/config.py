"""Simple runtime configuration for the task API server.

Control flags are read from environment variables to allow toggling in
development or production without code changes.
"""
import os


def _trueish(v: str | None) -> bool:
    if not v:
        return False
    return v.lower() in ('1', 'true', 'yes', 'on')


# Logging level for the server's own loggers (DEBUG, INFO, WARNING, ...).
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()

# When true, the server is considered to be running in development mode and
# echoes SQL statements to the log.
DEV_MODE = _trueish(os.getenv('DEV_MODE', '0'))

# Priority given to tasks created without one.
DEFAULT_PRIORITY = os.getenv('DEFAULT_PRIORITY', 'medium').lower()

# Optional local overrides: define variables in taskapp/local_config.py to
# override the defaults above without changing versioned config.
try:
    from .local_config import *  # type: ignore  # noqa: F401,F403
except ImportError:
    # No local overrides present; proceed with defaults.
    pass
