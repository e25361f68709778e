"""
Configuration module for the IPNS record library.

Centralizes tunables with environment variable support. Values are read once
at import time; the helper functions re-read the environment so tests and
long-running processes can flip them.
"""

import os

# ============================================================
# Record Defaults
# ============================================================

# Advisory time-to-live written into new records (nanoseconds, 1 hour)
DEFAULT_TTL_NS = int(os.getenv("IPNS_DEFAULT_TTL_NS", "3600000000000"))

# Records larger than this are rejected before decoding (bytes)
MAX_RECORD_SIZE = int(os.getenv("IPNS_MAX_RECORD_SIZE", str(1024 * 10)))

# Whether new records carry the legacy V1 signature unless told otherwise
V1_COMPATIBLE = os.getenv("IPNS_V1_COMPATIBLE", "true").lower() in ("1", "true", "yes")

# ============================================================
# Logging
# ============================================================

LOG_LEVEL = os.getenv("IPNS_LOG_LEVEL", "WARNING")
LOG_JSON = os.getenv("IPNS_LOG_JSON", "false").lower() in ("1", "true", "yes")


# ============================================================
# Feature Flags
# ============================================================

def is_v1_compatible_default() -> bool:
    """Check whether records are built with a V1 signature by default."""
    value = os.getenv("IPNS_V1_COMPATIBLE")
    if value is None:
        return V1_COMPATIBLE
    return value.lower() in ("1", "true", "yes")


def max_record_size() -> int:
    """Maximum accepted size of a marshaled record."""
    value = os.getenv("IPNS_MAX_RECORD_SIZE")
    return int(value) if value else MAX_RECORD_SIZE


def default_ttl_ns() -> int:
    """TTL used when the caller does not pass one."""
    value = os.getenv("IPNS_DEFAULT_TTL_NS")
    return int(value) if value else DEFAULT_TTL_NS


def is_debug() -> bool:
    """Check if debug mode is enabled."""
    return os.getenv("IPNS_DEBUG", "").lower() in ("1", "true", "yes")
