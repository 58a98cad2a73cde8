"""
Utility functions for SplitLedger
"""
from __future__ import annotations
import itertools
import os
import time
from datetime import date, datetime, timezone

_id_counter = itertools.count()
_last_ms = 0


def now_iso() -> str:
    """Current UTC timestamp as ISO string"""
    return datetime.now(timezone.utc).isoformat()


def parse_date(s: str) -> date:
    """Parse YYYY-MM-DD date string"""
    return datetime.strptime(s.strip(), "%Y-%m-%d").date()


def parse_timestamp(s: str) -> datetime:
    """
    Parse a stored date or timestamp. Accepts plain dates, ISO timestamps and
    the trailing 'Z' form written by JavaScript clients. Naive values are UTC.
    """
    text = s.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    dt = datetime.fromisoformat(text)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def new_id() -> str:
    """
    Time-ordered unique id: epoch milliseconds plus a sequence suffix so ids
    minted within the same millisecond still sort in creation order.
    """
    global _last_ms
    ms = int(time.time() * 1000)
    if ms <= _last_ms:
        ms = _last_ms
    _last_ms = ms
    return f"{ms}-{next(_id_counter) % 1000000:06d}"


def word_count(text: str) -> int:
    return len(text.split()) if text else 0


def app_dir() -> str:
    """
    Get application data directory. SPLIT_LEDGER_HOME overrides the default
    ~/.split_ledger. Creates directory if it doesn't exist.
    """
    path = os.getenv("SPLIT_LEDGER_HOME") or os.path.join(os.path.expanduser("~"), ".split_ledger")
    os.makedirs(path, exist_ok=True)
    return path
