"""
Aggregated event impact scores (-10..+10 composites) → signals.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from ingestion.normalizers.common import epoch_ms, payload_timestamp, signed
from ingestion.signals import NormalizedSignal

COMPOSITE_THRESHOLD = 1.5
SAFE_HAVEN_THRESHOLD = 50


def impact_to_strength_and_direction(score: float) -> tuple[float, str]:
    strength = min(100.0, abs(score) * 10)
    if score < -COMPOSITE_THRESHOLD:
        return strength, "risk_off"
    if score > COMPOSITE_THRESHOLD:
        return strength, "risk_on"
    return strength, "neutral"


def normalize_aggregated_impact(data: dict, now: Optional[datetime] = None) -> list[NormalizedSignal]:
    ts = payload_timestamp(data, now)
    stamp = epoch_ms(ts)
    signals = []

    kospi = float(data.get("kospi_composite", 0.0))
    if abs(kospi) > COMPOSITE_THRESHOLD:
        strength, direction = impact_to_strength_and_direction(kospi)
        signals.append(NormalizedSignal(
            id=f"impact_score:kospi:{stamp}",
            source="impact_score",
            strength=strength,
            direction=direction,
            affected_entity_ids=["asset:KS11", "asset:USDKRW", "country:south_korea"],
            confidence=0.70,
            timestamp=ts,
            headline=(
                f"Composite KOSPI impact: {signed(kospi, 1)}/10 "
                f"({data.get('korean_market_risk', 'n/a')})"
            ),
            raw={"kospi_composite": kospi, "korean_market_risk": data.get("korean_market_risk")},
        ))

    krw = float(data.get("krw_composite", 0.0))
    if abs(krw) > COMPOSITE_THRESHOLD:
        strength, direction = impact_to_strength_and_direction(krw)
        signals.append(NormalizedSignal(
            id=f"impact_score:krw:{stamp}",
            source="impact_score",
            strength=strength,
            direction=direction,
            affected_entity_ids=["asset:USDKRW", "asset:KS11"],
            confidence=0.70,
            timestamp=ts,
            headline=f"KRW direction signal: {'stronger' if krw > 0 else 'weaker'} ({krw:.1f}/10)",
            raw={"krw_composite": krw},
        ))

    pressure = float(data.get("safe_haven_pressure", 0.0))
    if pressure > SAFE_HAVEN_THRESHOLD:
        signals.append(NormalizedSignal(
            id=f"impact_score:safehaven:{stamp}",
            source="impact_score",
            strength=min(80.0, pressure),
            direction="risk_off",
            affected_entity_ids=["asset:GOLD", "asset:USDJPY", "asset:US10Y", "asset:DXY"],
            confidence=0.75,
            timestamp=ts,
            headline=f"Safe-haven pressure {pressure:.0f}%: gold/yen demand expected to rise",
            raw={"safe_haven_pressure": pressure},
        ))

    return signals
