"""
Central-bank meeting calendar → proximity signals.

Pre-decision signals are direction-neutral; their strength grows as the
meeting approaches and vanishes once it has passed or is more than a week out.
"""
from __future__ import annotations

import math
from datetime import datetime
from typing import Optional

from ingestion.normalizers.common import epoch_ms, payload_timestamp
from ingestion.signals import NormalizedSignal, coerce_timestamp

INSTITUTION_ENTITIES: dict[str, list[str]] = {
    "FOMC": ["inst:fed", "asset:USDKRW", "asset:KS11", "asset:US10Y", "asset:DXY"],
    "BOK": ["inst:bok", "asset:USDKRW", "asset:KS11"],
    "BOJ": ["inst:boj", "asset:USDJPY", "asset:KS11"],
    "ECB": ["region:europe", "asset:SPX"],
}


def urgency_to_strength(days_until: int) -> float:
    if days_until < 0:
        return 0
    if days_until == 0:
        return 70
    if days_until == 1:
        return 55
    if days_until <= 3:
        return 40
    if days_until <= 7:
        return 25
    return 0


def days_until(event: dict, now: datetime) -> Optional[int]:
    """Explicit days_until when the feed provides it, else derived from the date.

    None when the explicit value is not a number; such events are skipped.
    """
    if event.get("days_until") is not None:
        try:
            return int(event["days_until"])
        except (TypeError, ValueError):
            return None
    target = coerce_timestamp(event.get("date"), default=now)
    days = (target - now).total_seconds() / 86400
    # Round half up (built-in round() is half-to-even)
    return math.floor(days + 0.5)


def normalize_economic_calendar(data: dict, now: Optional[datetime] = None) -> list[NormalizedSignal]:
    ts = payload_timestamp(data, now)
    reference = now or ts
    signals = []

    for event in data.get("events") or []:
        if not isinstance(event, dict):
            continue
        days = days_until(event, reference)
        if days is None:
            continue
        strength = urgency_to_strength(days)
        if strength == 0:
            continue

        institution = str(event.get("institution", "")).upper()
        entities = INSTITUTION_ENTITIES.get(institution)
        if entities is None:
            continue

        when = "today" if days == 0 else f"in {days} day(s)"
        signals.append(NormalizedSignal(
            id=f"economic_calendar:{event.get('id') or institution}:{epoch_ms(ts)}",
            source="economic_calendar",
            strength=strength,
            direction="neutral",
            affected_entity_ids=list(entities),
            confidence=0.90,
            timestamp=ts,
            headline=f"{event.get('title', institution)} — scheduled {when}",
            raw=event,
        ))

    return signals


def calendar_proximity(data: Optional[dict], now: datetime) -> list[tuple[str, int]]:
    """(title, days_until) pairs for the inference context."""
    if not isinstance(data, dict):
        return []
    pairs = []
    for event in data.get("events") or []:
        if not isinstance(event, dict):
            continue
        days = days_until(event, now)
        if days is not None:
            pairs.append((str(event.get("title", event.get("institution", ""))), days))
    return pairs
