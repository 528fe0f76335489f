"""Small utilities shared by the ledger modules."""

from __future__ import annotations

import os
from datetime import date, datetime, timezone


_CROCKFORD32 = "0123456789abcdefghjkmnpqrstvwxyz"


def _encode_crockford_base32(value: int, length: int) -> str:
    chars: list[str] = []
    for _ in range(length):
        chars.append(_CROCKFORD32[value & 31])
        value >>= 5
    return "".join(reversed(chars))


def generate_id(prefix: str, *, length: int = 8) -> str:
    """
    Generate a prefixed random id.

    Example: generate_id("trg") -> "trg_4k9pq2mz"
    """
    randomness = int.from_bytes(os.urandom(length), "big")
    return f"{prefix}_{_encode_crockford_base32(randomness, length)}"


def utc_now() -> datetime:
    """Current UTC time, truncated to the millisecond precision stored on disk."""
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


def today(now: datetime | None = None) -> str:
    """Current UTC date as YYYY-MM-DD."""
    return (now or utc_now()).astimezone(timezone.utc).date().isoformat()


def format_timestamp(dt: datetime) -> str:
    """ISO 8601 in UTC with millisecond precision and a trailing Z."""
    dt = dt.astimezone(timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def parse_timestamp(value: object) -> datetime | None:
    """
    Parse a persisted timestamp.

    Accepts full ISO timestamps (with or without a trailing Z) and bare
    YYYY-MM-DD dates. Naive values are taken as UTC. Anything else is None.
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            try:
                d = date.fromisoformat(text)
            except ValueError:
                return None
            dt = datetime(d.year, d.month, d.day)
    else:
        return None

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt
