"""
Geographic convergence zones → signals.

A zone is a spatial cluster where several independent signal types (military
flights, protests, outages, ...) coincide. Only zones flagged as converging
produce a signal; the zone is mapped to graph entities by its region id or,
failing that, by the bounding box its centroid falls in.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from ingestion.normalizers.common import epoch_ms, payload_timestamp, unique
from ingestion.signals import NormalizedSignal

KOREA_ENTITIES = ["region:korean_peninsula", "asset:KS11", "asset:USDKRW"]
TAIWAN_ENTITIES = ["region:taiwan_strait", "sector:semiconductor", "company:tsmc"]
MIDDLE_EAST_ENTITIES = ["region:middle_east", "asset:OIL", "sector:energy"]

KNOWN_REGION_MAP: dict[str, list[str]] = {
    "korea": KOREA_ENTITIES,
    "korean_peninsula": KOREA_ENTITIES,
    "taiwan": TAIWAN_ENTITIES,
    "middle_east": MIDDLE_EAST_ENTITIES,
    "europe": ["region:europe"],
}

# (lat_min, lat_max, lng_min, lng_max, entities), first match wins
REGION_BOXES: list[tuple[float, float, float, float, list[str]]] = [
    (33, 43, 124, 132, KOREA_ENTITIES),
    (21, 26, 117, 123, TAIWAN_ENTITIES),
    (12, 42, 25, 63, MIDDLE_EAST_ENTITIES),
    (0, 55, 90, 150, ["region:east_asia", "asset:KS11"]),
    (35, 70, -10, 45, ["region:europe"]),
]


def infer_region_entities(lat: float, lng: float) -> list[str]:
    for lat_min, lat_max, lng_min, lng_max, entities in REGION_BOXES:
        if lat_min < lat < lat_max and lng_min < lng < lng_max:
            return list(entities)
    return ["region:east_asia"]


def zone_entities(zone: dict) -> list[str]:
    region_id = zone.get("region_id")
    if region_id and region_id in KNOWN_REGION_MAP:
        return list(KNOWN_REGION_MAP[region_id])
    centroid = zone.get("centroid") or {}
    return infer_region_entities(centroid.get("lat", 0.0), centroid.get("lng", 0.0))


def normalize_convergence(data: dict, now: Optional[datetime] = None) -> list[NormalizedSignal]:
    ts = payload_timestamp(data, now)
    zones = data.get("zones") or data.get("clusters") or []
    signals = []

    for i, zone in enumerate(z for z in zones if z.get("is_converging")):
        types = zone.get("signal_types") or []
        count = zone.get("signal_count", 0)
        strength = zone.get("score") or (len(types) * 25 + min(count, 5) * 5)

        signals.append(NormalizedSignal(
            id=f"convergence:{i}:{epoch_ms(ts)}",
            source="convergence_zone",
            strength=min(100, strength),
            direction="risk_off",
            affected_entity_ids=unique(zone_entities(zone)),
            confidence=0.65 + min(0.25, len(types) * 0.05),
            timestamp=ts,
            headline=(
                f"Signal convergence: {len(types)} types, {count} events "
                f"({zone.get('region_id') or 'unnamed region'})"
            ),
            raw=zone,
        ))

    return signals
