"""
Normalized signal contract shared by every upstream feed.

Each feed payload is reduced by its normalizer to a list of NormalizedSignal
records: a 0-100 strength, a market direction, a confidence, and the entity
ids it touches. Strength and confidence are clamped on construction, which
also covers copies made with dataclasses.replace().
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Literal, Optional, Union

from knowledge_base.schema import clamp

SignalDirection = Literal["risk_on", "risk_off", "neutral", "ambiguous"]

SignalSource = Literal[
    "blackswan:financial",
    "blackswan:pandemic",
    "blackswan:nuclear",
    "blackswan:cyber",
    "blackswan:geopolitical",
    "blackswan:supply_chain",
    "vip_aircraft",
    "convergence_zone",
    "event_tagger",
    "impact_score",
    "pattern_matcher",
    "market_data",
    "economic_calendar",
]

SIGNAL_DIRECTIONS: tuple[str, ...] = SignalDirection.__args__
SIGNAL_SOURCES: tuple[str, ...] = SignalSource.__args__

TimestampLike = Union[datetime, int, float, str, None]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def coerce_timestamp(value: TimestampLike, default: Optional[datetime] = None) -> datetime:
    """
    Normalize feed timestamps to timezone-aware UTC datetimes.

    Accepts datetimes (naive ones are taken as UTC), epoch milliseconds
    (the convention of the upstream JSON feeds), epoch seconds for small
    values, and ISO-8601 strings. Missing or unparseable values fall back
    to `default` (or now).
    """
    fallback = default or utc_now()
    if value is None:
        return fallback
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, (int, float)):
        # Anything past ~2001-09 in seconds is > 1e9; milliseconds are > 1e12
        seconds = value / 1000.0 if abs(value) > 1e11 else float(value)
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return fallback
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


@dataclass
class NormalizedSignal:
    """One observation from one feed, mapped onto graph entities."""
    id: str
    source: SignalSource
    strength: float
    direction: SignalDirection
    affected_entity_ids: list[str]
    confidence: float
    timestamp: datetime = field(default_factory=utc_now)
    headline: Optional[str] = None
    raw: Any = None

    def __post_init__(self) -> None:
        self.strength = clamp(float(self.strength), 0.0, 100.0)
        self.confidence = clamp(float(self.confidence), 0.0, 1.0)
        self.timestamp = coerce_timestamp(self.timestamp)
        self.affected_entity_ids = list(self.affected_entity_ids)

    def age_seconds(self, now: datetime) -> float:
        """Age relative to now; signals from the future count as fresh."""
        return max(0.0, (now - self.timestamp).total_seconds())


# A normalizer turns one provider payload into signals. Reference
# normalizers also accept an optional `now` keyword for deterministic tests.
Normalizer = Callable[..., list[NormalizedSignal]]
