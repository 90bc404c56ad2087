"""Common configuration constants used across the application."""

# Indexer Constants
INDEXER_BATCH_SIZE = 10
"""Maximum number of blocks fetched in one indexer cycle"""

LOOKBACK_BLOCKS = 100
"""Blocks behind the chain head where a cold start begins indexing"""

CYCLE_INTERVAL_SECONDS = 120.0
"""Seconds between scheduled indexer cycles"""

MAX_MISSING_BLOCK_ATTEMPTS = 0
"""Attempts before a missing block is skipped (0 keeps retrying forever)"""

# HTTP and Network Constants
DEFAULT_TIMEOUT = 30.0
"""Default HTTP request timeout in seconds"""

CONNECTION_TIMEOUT = 5.0
"""Timeout for establishing connections"""

MAX_KEEPALIVE_CONNECTIONS = 5
"""Maximum number of keepalive connections in pool"""

MAX_CONNECTIONS = 10
"""Maximum total number of connections"""

# Database Constants
DB_POOL_SIZE = 20
"""Maximum number of pooled database connections"""

DB_POOL_RECYCLE_SECONDS = 30 * 60
"""Seconds before a pooled connection is recycled"""

ADDRESS_LENGTH = 42
"""Length of a 0x-prefixed hex address"""


__all__ = [
    "ADDRESS_LENGTH",
    "CONNECTION_TIMEOUT",
    "CYCLE_INTERVAL_SECONDS",
    "DB_POOL_RECYCLE_SECONDS",
    "DB_POOL_SIZE",
    "DEFAULT_TIMEOUT",
    "INDEXER_BATCH_SIZE",
    "LOOKBACK_BLOCKS",
    "MAX_CONNECTIONS",
    "MAX_KEEPALIVE_CONNECTIONS",
    "MAX_MISSING_BLOCK_ATTEMPTS",
]
