"""
Korean market snapshot (KOSPI, USD/KRW, kimchi premium) → signals.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from ingestion.normalizers.common import epoch_ms, payload_timestamp, signed
from ingestion.signals import NormalizedSignal

# Absolute % moves for (watch, elevated, critical)
KOSPI_THRESHOLDS = (1.5, 3.0, 5.0)
KRW_THRESHOLDS = (1.0, 2.0, 3.5)
KIMCHI_PREMIUM_THRESHOLD = 3.0


def change_to_strength(change_pct: float, thresholds: tuple[float, float, float]) -> float:
    watch, elevated, critical = thresholds
    move = abs(change_pct)
    if move >= critical:
        return 75
    if move >= elevated:
        return 55
    if move >= watch:
        return 35
    return 0


def normalize_market_data(data: dict, now: Optional[datetime] = None) -> list[NormalizedSignal]:
    ts = payload_timestamp(data, now)
    stamp = epoch_ms(ts)
    signals = []

    kospi = data.get("kospi") or {}
    if kospi.get("change_percent") is not None:
        change = float(kospi["change_percent"])
        strength = change_to_strength(change, KOSPI_THRESHOLDS)
        if strength > 0:
            signals.append(NormalizedSignal(
                id=f"market_data:kospi:{stamp}",
                source="market_data",
                strength=strength,
                direction="risk_off" if change < 0 else "risk_on",
                affected_entity_ids=["asset:KS11", "country:south_korea"],
                confidence=0.95,
                timestamp=ts,
                headline=f"KOSPI {signed(change)}% ({kospi.get('price', '?')})",
                raw=kospi,
            ))

    usdkrw = data.get("usdkrw") or {}
    if usdkrw.get("change_percent") is not None:
        change = float(usdkrw["change_percent"])
        strength = change_to_strength(change, KRW_THRESHOLDS)
        if strength > 0:
            # USD/KRW up means a weaker won
            signals.append(NormalizedSignal(
                id=f"market_data:usdkrw:{stamp}",
                source="market_data",
                strength=strength,
                direction="risk_off" if change > 0 else "risk_on",
                affected_entity_ids=["asset:USDKRW", "asset:KS11", "country:south_korea"],
                confidence=0.95,
                timestamp=ts,
                headline=f"USD/KRW {signed(change)}% ({usdkrw.get('rate', '?')} KRW)",
                raw=usdkrw,
            ))

    premium = data.get("kimchi_premium")
    if premium is not None and abs(premium) > KIMCHI_PREMIUM_THRESHOLD:
        signals.append(NormalizedSignal(
            id=f"market_data:kimchi:{stamp}",
            source="market_data",
            strength=min(70, abs(premium) * 8),
            direction="risk_on" if premium > 0 else "risk_off",
            affected_entity_ids=["asset:BTC", "asset:KS11"],
            confidence=0.80,
            timestamp=ts,
            headline=f"Kimchi premium {signed(premium, 1)}%",
            raw={"kimchi_premium": premium},
        ))

    return signals
