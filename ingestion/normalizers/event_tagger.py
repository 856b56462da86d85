"""
Tagged news events → signals.

An upstream tagger classifies each headline with a signal type, region,
related tickers, a 1-5 impact score, a market direction and a confidence
level. The tag is mapped onto graph entities through three lookup tables.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from ingestion.normalizers.common import epoch_ms, payload_timestamp, unique
from ingestion.signals import NormalizedSignal, coerce_timestamp

SIGNAL_TYPE_ENTITIES: dict[str, list[str]] = {
    "military": ["sector:defense", "asset:GOLD", "asset:KS11"],
    "diplomatic": ["asset:KS11", "asset:USDKRW"],
    "economic": ["asset:KS11", "asset:SPX", "asset:USDKRW"],
    "pandemic": ["event:pandemic", "sector:bio_pharma", "asset:KS11"],
    "cyber": ["sector:cybersecurity", "sector:finance"],
    "natural_disaster": ["asset:KS11", "asset:OIL"],
    "political": ["asset:KS11", "asset:USDKRW", "asset:KQ11"],
    "energy": ["asset:OIL", "sector:energy", "asset:KS11"],
    "financial": ["asset:KS11", "asset:VIX", "asset:GOLD", "asset:BTC"],
    "supply_chain": ["sector:shipping", "sector:semiconductor", "asset:KS11"],
}

REGION_ENTITIES: dict[str, list[str]] = {
    "korea": ["region:korean_peninsula", "country:south_korea"],
    "asia": ["region:east_asia"],
    "middleeast": ["region:middle_east"],
    "europe": ["region:europe"],
    "global": [],
}

TICKER_ENTITIES: dict[str, str] = {
    "^KS11": "asset:KS11",
    "KRW=X": "asset:USDKRW",
    "GC=F": "asset:GOLD",
    "GLD": "asset:GOLD",
    "CL=F": "asset:OIL",
    "WTI": "asset:OIL",
    "^VIX": "asset:VIX",
    "BTC-USD": "asset:BTC",
    "BTC-KRW": "asset:BTC",
}

DIRECTION_MAP = {"bullish": "risk_on", "bearish": "risk_off", "neutral": "neutral"}
CONFIDENCE_MAP = {"high": 0.85, "medium": 0.65}


def ticker_to_entity(ticker: str) -> Optional[str]:
    if ticker in TICKER_ENTITIES:
        return TICKER_ENTITIES[ticker]
    # Any other Korean listing rolls up to the benchmark
    if "KS" in ticker:
        return "asset:KS11"
    return None


def normalize_event_tag(
    tag: dict, title: str, timestamp: datetime, signal_id: str,
) -> NormalizedSignal:
    assets = [ticker_to_entity(t) for t in tag.get("related_assets") or []]
    entities = unique(
        SIGNAL_TYPE_ENTITIES.get(tag.get("signal_type", ""), [])
        + REGION_ENTITIES.get(tag.get("region", ""), [])
        + [a for a in assets if a is not None]
    )
    return NormalizedSignal(
        id=signal_id,
        source="event_tagger",
        strength=float(tag.get("impact_score", 0)) * 18,
        direction=DIRECTION_MAP.get(tag.get("impact_direction"), "ambiguous"),
        affected_entity_ids=entities,
        confidence=CONFIDENCE_MAP.get(tag.get("confidence"), 0.45),
        timestamp=timestamp,
        headline=title,
        raw=tag,
    )


def normalize_event_tags(data: dict, now: Optional[datetime] = None) -> list[NormalizedSignal]:
    """Normalize a batch payload: {"events": [{"tag": {...}, "title": ..., "timestamp": ...}]}."""
    batch_ts = payload_timestamp(data, now)
    signals = []
    for i, event in enumerate(data.get("events") or []):
        ts = coerce_timestamp(event.get("timestamp"), default=batch_ts)
        signals.append(normalize_event_tag(
            event.get("tag") or {},
            event.get("title", ""),
            ts,
            signal_id=f"event_tagger:{epoch_ms(ts)}:{i}",
        ))
    return signals
