"""
Central configuration for the agent runtime.
Loads environment variables from a .env file at import time.
"""
from __future__ import annotations

import os

from dotenv import load_dotenv

# --- Load .env early so everything importing config sees the vars ---
# This looks for a .env in the current working dir or parents.
load_dotenv()

#: Environment variable names
GROQ_API_KEY_ENV = "GROQ_API_KEY"
GROQ_MODEL_ENV = "GROQ_MODEL"
MAX_TURNS_ENV = "AGENT_MAX_TURNS"
BASH_TIMEOUT_ENV = "AGENT_BASH_TIMEOUT"
LOG_LEVEL_ENV = "AGENT_LOG_LEVEL"

#: Upper bound on model round-trips for a single `execute` call.
DEFAULT_MAX_TURNS = 20

#: Seconds a whitelisted shell command may run before it is killed.
DEFAULT_BASH_TIMEOUT = 30

DEFAULT_LOG_LEVEL = "INFO"


def require_env(var_name: str) -> str:
    """
    Return the value of an environment variable or raise a clear error.

    Raises
    ------
    RuntimeError
        If the environment variable is missing or empty.
    """
    try:
        value = os.environ[var_name]
    except KeyError as exc:
        raise RuntimeError(f"Required environment variable '{var_name}' is not set.") from exc
    if not value:
        raise RuntimeError(f"Environment variable '{var_name}' is empty.")
    return value


def get_int_env(var_name: str, default: int) -> int:
    """
    Read an integer setting, falling back to `default` when unset.

    Raises
    ------
    RuntimeError
        If the variable is set but is not a positive integer.
    """
    raw = os.environ.get(var_name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise RuntimeError(f"Environment variable '{var_name}' must be an integer, got '{raw}'.") from exc
    if value <= 0:
        raise RuntimeError(f"Environment variable '{var_name}' must be positive, got {value}.")
    return value


def get_groq_api_key() -> str:
    """
    Convenience accessor specifically for the Groq API key.
    """
    return require_env(GROQ_API_KEY_ENV)


def get_model_name() -> str:
    """Model name used when agents are built without an explicit model."""
    return require_env(GROQ_MODEL_ENV)


def get_max_turns() -> int:
    return get_int_env(MAX_TURNS_ENV, DEFAULT_MAX_TURNS)


def get_bash_timeout() -> int:
    return get_int_env(BASH_TIMEOUT_ENV, DEFAULT_BASH_TIMEOUT)


def get_log_level() -> str:
    return os.environ.get(LOG_LEVEL_ENV, DEFAULT_LOG_LEVEL).upper()
