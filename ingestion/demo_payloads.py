"""
Bundled demo payloads — a plausible tense morning on the Korean Peninsula.

Used by the CLI when no live API base URL is given. Timestamps are relative
to `now` so decay behaves as it would for fresh feed data.
"""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Optional

from ingestion.normalizers.common import epoch_ms
from ingestion.signals import utc_now


def demo_payloads(now: Optional[datetime] = None) -> dict[str, Any]:
    now = now or utc_now()

    def ago(minutes: int) -> int:
        return epoch_ms(now - timedelta(minutes=minutes))

    return {
        "blackswan": {
            "timestamp": ago(20),
            "tail_risk_score": 48,
            "modules": {
                "financial": {"score": 42, "signals": {"vix": 24.8}},
                "pandemic": {"score": 8},
                "nuclear": {"score": 64},
                "cyber": {"score": 22},
                "geopolitical": {"score": 58},
                "supply_chain": {"score": 31},
            },
        },
        "vip_aircraft": {
            "timestamp": ago(10),
            "aircraft": [
                {"icao24": "adfeb3", "label": "E-4B Nightwatch", "category": "military_command",
                 "lat": 36.2, "lng": 127.9, "on_ground": False, "is_high_alert": True},
                {"icao24": "ae0413", "label": "RC-135S Cobra Ball", "category": "intelligence",
                 "lat": 38.1, "lng": 125.4, "on_ground": False},
                {"icao24": "71be01", "label": "ROK Air Force One", "category": "head_of_state",
                 "lat": 37.46, "lng": 126.44, "on_ground": True},
            ],
        },
        "convergence": {
            "timestamp": ago(15),
            "zones": [
                {"centroid": {"lat": 38.0, "lng": 127.0}, "signal_types": ["military", "flights", "outages"],
                 "signal_count": 7, "is_converging": True, "region_id": "korean_peninsula"},
                {"centroid": {"lat": 26.5, "lng": 56.2}, "signal_types": ["military", "shipping"],
                 "signal_count": 4, "is_converging": True},
                {"centroid": {"lat": 48.5, "lng": 35.0}, "signal_types": ["protest"],
                 "signal_count": 2, "is_converging": False},
            ],
        },
        "market_data": {
            "timestamp": ago(5),
            "kospi": {"price": 2484.3, "change_percent": -2.1},
            "kosdaq": {"price": 701.9, "change_percent": -2.8},
            "usdkrw": {"rate": 1398.5, "change_percent": 1.2},
            "kimchi_premium": 6.2,
        },
        "economic_calendar": {
            "timestamp": ago(60),
            "events": [
                {"id": "fomc-next", "title": "FOMC rate decision", "institution": "FOMC", "days_until": 2},
                {"id": "bok-next", "title": "Bank of Korea MPC meeting", "institution": "BOK", "days_until": 9},
            ],
        },
        "event_tagger": {
            "events": [
                {
                    "title": "North Korea fires ballistic missile into East Sea",
                    "timestamp": ago(35),
                    "tag": {"signal_type": "military", "region": "korea", "related_assets": ["^KS11", "KRW=X"],
                            "impact_score": 4, "impact_direction": "bearish", "confidence": "high"},
                },
                {
                    "title": "Tanker traffic slows near Strait of Hormuz",
                    "timestamp": ago(90),
                    "tag": {"signal_type": "energy", "region": "middleeast", "related_assets": ["CL=F"],
                            "impact_score": 3, "impact_direction": "bearish", "confidence": "medium"},
                },
            ],
        },
        "impact_score": {
            "timestamp": ago(30),
            "kospi_composite": -3.4,
            "krw_composite": -2.0,
            "safe_haven_pressure": 62,
            "korean_market_risk": "elevated",
        },
        "pattern_matcher": {
            "timestamp": ago(30),
            "matched_patterns": ["nk-2022-icbm", "nk-icbm-2017"],
            "outlook": {"kospi_expected": "down_mild"},
            "confidence_level": "medium",
            "top_analogues": [{"id": "nk-2022-icbm", "title": "North Korea Hwasong-17 ICBM test (2022)"}],
            "sector_signals": [
                {"sector": "defense", "sector_name": "Defense", "direction": "bullish",
                 "confidence": 0.8, "basis": "defense names rallied in past provocations"},
                {"sector": "shipping", "sector_name": "Shipping", "direction": "bearish",
                 "confidence": 0.5, "basis": "weak historical relationship"},
            ],
        },
    }
