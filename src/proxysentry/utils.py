"""Utility functions for proxysentry"""

import logging
import os


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def get_int_env(key: str, default: int = 0) -> int:
    """Get integer value from environment variable, return default if not set or invalid."""
    val = os.getenv(key)
    if val is None:
        return default
    try:
        return int(val)
    except ValueError:
        return default


def get_float_env(key: str, default: float) -> float:
    """Get float value from environment variable, return default if not set or invalid."""
    val = os.getenv(key)
    if val is None:
        return default
    try:
        return float(val)
    except ValueError:
        return default


def get_str_env(key: str, default: str) -> str:
    """Get string value from environment variable, return default if not set."""
    return os.getenv(key, default)


def get_bool_env(key: str, default: bool) -> bool:
    """Get boolean value from environment variable (true/yes/1 or false/no/0, any case).

    Unset or unrecognized values give default.
    """
    val = os.getenv(key)
    if val is None:
        return default
    flag = val.strip().lower()
    if flag in ('true', 'yes', '1'):
        return True
    if flag in ('false', 'no', '0'):
        return False
    return default


def setup_logging(default_level: str = 'WARNING'):
    """Configure root logging from PROXYSENTRY_LOG_LEVEL."""
    level_name = get_str_env('PROXYSENTRY_LOG_LEVEL', default_level).upper()
    level = getattr(logging, level_name, logging.WARNING)
    logging.basicConfig(level=level, format=LOG_FORMAT)
