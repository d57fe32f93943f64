from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any


def format_ugnot(amount: int) -> str:
    return f"{amount} ugnot"


def format_duration(d: timedelta) -> str:
    secs = int(d.total_seconds())
    if secs < 60:
        return f"{secs}s"
    if secs < 3600:
        return f"{secs // 60}m{secs % 60}s"
    if secs < 86400:
        return f"{secs // 3600}h{(secs // 60) % 60}m"
    return f"{secs // 86400}d{(secs // 3600) % 24}h"


def truncate(s: str, max_len: int) -> str:
    if len(s) <= max_len:
        return s
    if max_len <= 3:
        return s[:max_len]
    return s[:max_len - 3] + "..."


def format_address(addr: str) -> str:
    if len(addr) <= 16:
        return addr
    return addr[:8] + "..." + addr[-6:]


def parse_deadline(text: str) -> datetime:
    """RFC 3339 deadline, e.g. 2025-10-28T12:00:00Z."""
    try:
        dt = datetime.fromisoformat(text.strip().replace("Z", "+00:00"))
    except ValueError as e:
        raise ValueError(f"invalid deadline format (expected RFC3339): {e}")
    if dt.tzinfo is None:
        raise ValueError("invalid deadline format (expected RFC3339): missing timezone offset")
    return dt.astimezone(timezone.utc)


def print_kv(key: str, value: Any) -> None:
    print(f"  {key + ':':<20} {value}")


def print_section(title: str) -> None:
    print()
    print("=" * 60)
    print(f"  {title.upper()}")
    print("=" * 60)


def print_success(message: str) -> None:
    print(f"✓ {message}")


def print_error(message: str) -> None:
    print(f"✗ {message}")


def print_warning(message: str) -> None:
    print(f"⚠ {message}")


def print_info(message: str) -> None:
    print(f"ℹ {message}")
