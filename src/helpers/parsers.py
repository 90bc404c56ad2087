"""Parsing utilities for common data transformations."""

from datetime import UTC, datetime
from urllib.parse import urlsplit, urlunsplit


def parse_hex_int(hex_value: str | None, default: int = 0) -> int:
    """Parse hex string to integer.

    Args:
        hex_value: Hex-encoded string or None
        default: Default value if hex_value is None or empty

    Returns:
        int: Parsed integer value

    Example:
        >>> parse_hex_int("0xff")
        255
        >>> parse_hex_int(None, 0)
        0
    """
    if not hex_value:
        return default
    return int(hex_value, 16)


def timestamp_to_datetime(seconds: int) -> datetime:
    """Convert Unix seconds to a timezone-aware UTC datetime."""
    return datetime.fromtimestamp(seconds, tz=UTC)


def normalize_address(address: str | None) -> str | None:
    """Canonicalize an address for storage and comparison.

    Args:
        address: Hex address as returned by the node, or None

    Returns:
        str | None: Lowercased, stripped address, or None if empty

    Example:
        >>> normalize_address("0xAbC0000000000000000000000000000000000001")
        '0xabc0000000000000000000000000000000000001'
        >>> normalize_address("")
        None
    """
    if address is None:
        return None
    address = address.strip().lower()
    return address or None


def mask_rpc_url(url: str) -> str:
    """Hide the last path segment of an RPC URL, where providers keep API keys.

    Example:
        >>> mask_rpc_url("https://arc-testnet.g.alchemy.com/v2/secret")
        'https://arc-testnet.g.alchemy.com/v2/***'
    """
    parts = urlsplit(url)
    path = parts.path.rstrip("/")
    if "/" not in path or path == "":
        return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))
    head, _, _ = path.rpartition("/")
    return urlunsplit((parts.scheme, parts.netloc, f"{head}/***", "", ""))


__all__ = [
    "mask_rpc_url",
    "normalize_address",
    "parse_hex_int",
    "timestamp_to_datetime",
]
