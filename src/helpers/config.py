"""Configuration management and environment variable utilities."""

import os

from dotenv import load_dotenv


# Load environment variables from .env file
load_dotenv()


def get_optional_env(key: str, default: str | None = None) -> str | None:
    """Get an optional environment variable with a default value.

    Args:
        key: Environment variable name
        default: Default value if not set

    Returns:
        Environment variable value or default
    """
    return os.getenv(key, default)


def get_int_env(key: str, default: int) -> int:
    """Get an integer environment variable.

    Args:
        key: Environment variable name
        default: Value used when the variable is unset or empty

    Returns:
        Parsed integer value

    Raises:
        ValueError: If the variable is set but is not an integer

    Example:
        ```python
        from src.helpers.config import get_int_env

        batch_size = get_int_env("INDEXER_BATCH_SIZE", 10)
        ```
    """
    value = os.getenv(key)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        msg = f"{key} must be an integer, got {value!r}"
        raise ValueError(msg) from None


def get_float_env(key: str, default: float) -> float:
    """Get a float environment variable.

    Args:
        key: Environment variable name
        default: Value used when the variable is unset or empty

    Returns:
        Parsed float value

    Raises:
        ValueError: If the variable is set but is not a number
    """
    value = os.getenv(key)
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        msg = f"{key} must be a number, got {value!r}"
        raise ValueError(msg) from None


def get_bool_env(key: str, *, default: bool = False) -> bool:
    """Get a boolean environment variable ("1", "true", "yes", "on" are true)."""
    value = os.getenv(key)
    if not value:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def get_rpc_url(rpc_url: str | None = None) -> str:
    """Get the chain JSON-RPC URL from parameter or environment.

    Args:
        rpc_url: Optional RPC URL to use directly

    Returns:
        Chain JSON-RPC URL

    Raises:
        ValueError: If RPC URL is not provided and CHAIN_RPC_URL env var is not set

    Example:
        ```python
        from src.helpers.config import get_rpc_url

        # Get from environment
        rpc_url = get_rpc_url()

        # Or provide explicitly
        rpc_url = get_rpc_url("https://rpc.testnet.arc.network")
        ```
    """
    if rpc_url:
        return rpc_url

    env_rpc_url = os.getenv("CHAIN_RPC_URL")
    if not env_rpc_url:
        msg = "CHAIN_RPC_URL must be provided or set in environment variables"
        raise ValueError(msg)

    return env_rpc_url


__all__ = [
    "get_bool_env",
    "get_float_env",
    "get_int_env",
    "get_optional_env",
    "get_rpc_url",
]
