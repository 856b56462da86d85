"""
Historical pattern analysis → signals.

The upstream matcher compares the current situation with historical episodes
and returns an expected benchmark outlook plus sector rotation calls. Nothing
is emitted unless at least one pattern matched.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from ingestion.normalizers.common import epoch_ms, payload_timestamp
from ingestion.signals import NormalizedSignal

OUTLOOK_STRENGTH = {"down_sharp": 70, "down_mild": 40, "up": 40}
OUTLOOK_CONFIDENCE = {"high": 0.75, "medium": 0.55}
SECTOR_DIRECTIONS = {"bearish": "risk_off", "bullish": "risk_on"}
MAX_SECTOR_SIGNALS = 4
MIN_SECTOR_CONFIDENCE = 0.65


def normalize_pattern_analysis(data: dict, now: Optional[datetime] = None) -> list[NormalizedSignal]:
    if not data.get("matched_patterns"):
        return []

    ts = payload_timestamp(data, now)
    stamp = epoch_ms(ts)
    signals = []

    expected = (data.get("outlook") or {}).get("kospi_expected")
    strength = OUTLOOK_STRENGTH.get(expected, 0)
    if strength > 0:
        level = data.get("confidence_level", "low")
        analogues = data.get("top_analogues") or [{}]
        analogue = analogues[0].get("title", "similar episodes")
        signals.append(NormalizedSignal(
            id=f"pattern_matcher:outlook:{stamp}",
            source="pattern_matcher",
            strength=strength,
            direction="risk_off" if expected.startswith("down") else "risk_on",
            affected_entity_ids=["asset:KS11", "asset:USDKRW"],
            confidence=OUTLOOK_CONFIDENCE.get(level, 0.40),
            timestamp=ts,
            headline=f"Historical pattern analysis: resembles {analogue} ({level} confidence)",
            raw=analogues[0],
        ))

    for sector in (data.get("sector_signals") or [])[:MAX_SECTOR_SIGNALS]:
        confidence = float(sector.get("confidence", 0.0))
        if confidence < MIN_SECTOR_CONFIDENCE:
            continue
        name = sector["sector"]
        direction = SECTOR_DIRECTIONS.get(sector.get("direction"), "neutral")
        signals.append(NormalizedSignal(
            id=f"pattern_matcher:sector:{name}:{stamp}",
            source="pattern_matcher",
            strength=round(confidence * 65),
            direction=direction,
            affected_entity_ids=[f"sector:{name}"],
            confidence=confidence,
            timestamp=ts,
            headline=(
                f"{sector.get('sector_name', name)}: "
                f"{'weakness' if direction == 'risk_off' else 'strength'} expected "
                f"({sector.get('basis', 'historical analogues')})"
            ),
            raw=sector,
        ))

    return signals
