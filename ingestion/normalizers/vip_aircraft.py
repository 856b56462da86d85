"""
VIP / military aircraft positions → signals (one per airborne aircraft).
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from ingestion.normalizers.common import epoch_ms, payload_timestamp, unique
from ingestion.signals import NormalizedSignal

# category → (base strength, entity ids, confidence)
CATEGORY_CONFIG: dict[str, tuple[float, tuple[str, ...], float]] = {
    "military_command": (80, ("event:nk_nuclear", "event:nk_missile"), 0.90),
    "head_of_state": (55, (), 0.85),
    "intelligence": (50, (), 0.80),
    "government": (35, (), 0.75),
    "unknown": (25, (), 0.60),
}

NEAR_KOREA_BONUS = 20
HIGH_ALERT_BONUS = 15


def is_near_korean_peninsula(lat: float, lng: float) -> bool:
    return 33 < lat < 43 and 124 < lng < 132


def normalize_vip_aircraft(data: dict, now: Optional[datetime] = None) -> list[NormalizedSignal]:
    ts = payload_timestamp(data, now)
    signals = []

    for aircraft in data.get("aircraft") or []:
        lat, lng = aircraft.get("lat"), aircraft.get("lng")
        if aircraft.get("on_ground") or lat is None or lng is None:
            continue

        category = aircraft.get("category", "unknown")
        strength, entities, confidence = CATEGORY_CONFIG.get(category, CATEGORY_CONFIG["unknown"])
        entity_ids = list(entities)

        near_korea = is_near_korean_peninsula(lat, lng)
        if near_korea:
            strength = min(100, strength + NEAR_KOREA_BONUS)
            entity_ids += ["region:korean_peninsula", "asset:KS11", "asset:USDKRW"]
        else:
            entity_ids.append("region:east_asia")

        if aircraft.get("is_high_alert"):
            strength = min(100, strength + HIGH_ALERT_BONUS)

        label = aircraft.get("label", aircraft.get("icao24", "unknown"))
        where = ", near Korean Peninsula" if near_korea else ""
        signals.append(NormalizedSignal(
            id=f"vip_aircraft:{aircraft.get('icao24', label)}:{epoch_ms(ts)}",
            source="vip_aircraft",
            strength=strength,
            direction="risk_off",
            affected_entity_ids=unique(entity_ids),
            confidence=confidence,
            timestamp=ts,
            headline=f"{label} airborne ({category}{where})",
            raw=aircraft,
        ))

    return signals


def airborne_labels(data: Optional[dict]) -> list[str]:
    """Labels of airborne aircraft, as used by the inference context."""
    if not isinstance(data, dict):
        return []
    return [
        a.get("label", a.get("icao24", "unknown"))
        for a in data.get("aircraft") or []
        if isinstance(a, dict) and not a.get("on_ground")
    ]
