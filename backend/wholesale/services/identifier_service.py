# Overview: Generation of string identifiers for catalog, dispensary and order records.

from __future__ import annotations

import secrets
import time


def generate_id(prefix: str) -> str:
    """Random opaque id, e.g. "tmpl-3f9a1c2b"."""
    return f"{prefix}-{secrets.token_hex(4)}"


def timestamp_order_id() -> str:
    """
    Timestamp-based order id ("order1718000000000-a1b2").

    The millisecond timestamp keeps ids roughly sortable by creation time;
    the random suffix keeps two orders placed in the same millisecond apart.
    """
    return f"order{int(time.time() * 1000)}-{secrets.token_hex(2)}"
