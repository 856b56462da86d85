"""
Shared helpers for feed normalizers.
"""
from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional

from ingestion.signals import coerce_timestamp, utc_now


def payload_timestamp(data: dict, now: Optional[datetime] = None) -> datetime:
    """The payload's own timestamp, or now when the feed omitted it."""
    return coerce_timestamp(data.get("timestamp"), default=now or utc_now())


def epoch_ms(ts: datetime) -> int:
    """Millisecond epoch used in signal ids so ids stay stable across runs."""
    return int(ts.timestamp() * 1000)


def unique(ids: Iterable[str]) -> list[str]:
    """Order-preserving dedup."""
    return list(dict.fromkeys(ids))


def signed(value: float, digits: int = 2) -> str:
    return f"{value:+.{digits}f}"
