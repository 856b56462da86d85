from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from ingestion.normalizers.blackswan import normalize_blackswan
from ingestion.normalizers.common import epoch_ms
from ingestion.normalizers.convergence import infer_region_entities, normalize_convergence
from ingestion.normalizers.economic_calendar import (
    calendar_proximity,
    days_until,
    normalize_economic_calendar,
    urgency_to_strength,
)
from ingestion.normalizers.event_tagger import normalize_event_tags, ticker_to_entity
from ingestion.normalizers.impact_scoring import normalize_aggregated_impact
from ingestion.normalizers.market_data import change_to_strength, normalize_market_data
from ingestion.normalizers.pattern_matcher import normalize_pattern_analysis
from ingestion.normalizers.vip_aircraft import airborne_labels, normalize_vip_aircraft
from ingestion.signals import NormalizedSignal, coerce_timestamp

NOW = datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)
STAMP = epoch_ms(NOW)


# ── Signal contract ───────────────────────────────────────────────────────────

def test_signal_clamps_strength_and_confidence():
    sig = NormalizedSignal("x", "market_data", 140, "risk_off", ["asset:KS11"], 1.5, timestamp=NOW)
    assert sig.strength == 100
    assert sig.confidence == 1.0
    low = NormalizedSignal("y", "market_data", -5, "risk_off", [], -0.2, timestamp=NOW)
    assert low.strength == 0
    assert low.confidence == 0


def test_signal_age_never_negative():
    sig = NormalizedSignal("x", "market_data", 10, "neutral", [], 0.5, timestamp=NOW + timedelta(minutes=5))
    assert sig.age_seconds(NOW) == 0


def test_coerce_timestamp_formats():
    assert coerce_timestamp(STAMP) == NOW
    assert coerce_timestamp(STAMP / 1000) == NOW
    assert coerce_timestamp("2025-03-01T09:00:00Z") == NOW
    assert coerce_timestamp(datetime(2025, 3, 1, 9, 0)) == NOW
    assert coerce_timestamp("not a date", default=NOW) == NOW
    assert coerce_timestamp(None, default=NOW) == NOW


# ── Black swan ────────────────────────────────────────────────────────────────

def test_blackswan_thresholds_and_direction():
    data = {
        "timestamp": STAMP,
        "modules": {
            "financial": {"score": 72, "signals": {"vix": 31.2}},
            "pandemic": {"score": 19},
            "nuclear": {"score": 40},
        },
    }
    signals = normalize_blackswan(data, now=NOW)
    by_source = {s.source: s for s in signals}
    assert set(by_source) == {"blackswan:financial", "blackswan:nuclear"}
    assert by_source["blackswan:financial"].direction == "risk_off"
    assert by_source["blackswan:financial"].headline == "Financial stress 72/100 (VIX: 31.2)"
    assert by_source["blackswan:nuclear"].direction == "neutral"
    assert "region:korean_peninsula" in by_source["blackswan:nuclear"].affected_entity_ids
    assert by_source["blackswan:nuclear"].id == f"blackswan:nuclear:{STAMP}"


def test_blackswan_empty_payload():
    assert normalize_blackswan({}, now=NOW) == []


# ── VIP aircraft ──────────────────────────────────────────────────────────────

def test_vip_command_aircraft_near_korea():
    data = {"aircraft": [
        {"icao24": "adfeb3", "label": "E-4B Nightwatch", "category": "military_command",
         "lat": 36.0, "lng": 127.0, "is_high_alert": True},
        {"icao24": "aaaaaa", "label": "Parked", "category": "government",
         "lat": 36.0, "lng": 127.0, "on_ground": True},
        {"icao24": "bbbbbb", "label": "Gov jet", "category": "government", "lat": 50.0, "lng": 10.0},
    ]}
    signals = normalize_vip_aircraft(data, now=NOW)
    assert len(signals) == 2
    command = signals[0]
    assert command.strength == 100
    assert command.affected_entity_ids[:2] == ["event:nk_nuclear", "event:nk_missile"]
    assert "region:korean_peninsula" in command.affected_entity_ids
    assert signals[1].strength == 35
    assert signals[1].affected_entity_ids == ["region:east_asia"]
    assert airborne_labels(data) == ["E-4B Nightwatch", "Gov jet"]


def test_vip_missing_position_skipped():
    assert normalize_vip_aircraft({"aircraft": [{"icao24": "x", "category": "intelligence"}]}, now=NOW) == []
    assert airborne_labels(None) == []


# ── Convergence ───────────────────────────────────────────────────────────────

def test_convergence_only_converging_zones():
    data = {"zones": [
        {"centroid": {"lat": 24.0, "lng": 120.0}, "signal_types": ["military", "shipping"],
         "signal_count": 4, "is_converging": True},
        {"centroid": {"lat": 48.0, "lng": 30.0}, "signal_types": ["protest"], "is_converging": False},
        {"region_id": "korean_peninsula", "signal_types": ["military"], "signal_count": 9,
         "is_converging": True, "score": 140},
    ]}
    signals = normalize_convergence(data, now=NOW)
    assert len(signals) == 2
    assert signals[0].affected_entity_ids[0] == "region:taiwan_strait"
    assert signals[0].strength == 70
    assert signals[0].confidence == pytest.approx(0.75)
    assert signals[1].strength == 100
    assert signals[1].affected_entity_ids[0] == "region:korean_peninsula"


def test_region_boxes_fall_back_to_east_asia():
    assert infer_region_entities(26.5, 56.2)[0] == "region:middle_east"
    assert infer_region_entities(-30.0, -60.0) == ["region:east_asia"]


# ── Market data ───────────────────────────────────────────────────────────────

def test_change_to_strength_bands():
    thresholds = (1.5, 3.0, 5.0)
    assert change_to_strength(-1.0, thresholds) == 0
    assert change_to_strength(-2.1, thresholds) == 35
    assert change_to_strength(3.0, thresholds) == 55
    assert change_to_strength(-6.0, thresholds) == 75


def test_market_data_signals():
    data = {
        "kospi": {"price": 2484.3, "change_percent": -2.1},
        "usdkrw": {"rate": 1398.5, "change_percent": 1.2},
        "kimchi_premium": 6.2,
    }
    signals = {s.id.split(":")[1]: s for s in normalize_market_data(data, now=NOW)}
    assert signals["kospi"].direction == "risk_off"
    assert signals["kospi"].headline == "KOSPI -2.10% (2484.3)"
    assert signals["usdkrw"].direction == "risk_off"
    assert signals["usdkrw"].strength == 35
    assert signals["kimchi"].strength == pytest.approx(49.6)
    assert signals["kimchi"].direction == "risk_on"


def test_market_data_quiet_day():
    data = {"kospi": {"change_percent": 0.3}, "usdkrw": {"change_percent": -0.2}, "kimchi_premium": 1.0}
    assert normalize_market_data(data, now=NOW) == []


# ── Economic calendar ─────────────────────────────────────────────────────────

def test_urgency_curve():
    assert [urgency_to_strength(d) for d in (-1, 0, 1, 2, 3, 5, 7, 8)] == [0, 70, 55, 40, 40, 25, 25, 0]


def test_days_until_from_date_rounds_half_up():
    assert days_until({"date": (NOW + timedelta(days=1, hours=12)).isoformat()}, NOW) == 2
    assert days_until({"date": (NOW + timedelta(hours=11)).isoformat()}, NOW) == 0
    assert days_until({"days_until": 4, "date": "ignored"}, NOW) == 4


def test_calendar_skips_unparseable_days():
    data = {"events": [
        {"id": "boj", "title": "BOJ meeting", "institution": "BOJ", "days_until": "soon"},
        "not-an-event",
        {"id": "fomc", "title": "FOMC rate decision", "institution": "FOMC", "days_until": "1"},
    ]}
    assert days_until(data["events"][0], NOW) is None
    signals = normalize_economic_calendar(data, now=NOW)
    assert [s.strength for s in signals] == [55]
    assert calendar_proximity(data, NOW) == [("FOMC rate decision", 1)]
    assert calendar_proximity(["x"], NOW) == []


def test_calendar_signals_are_neutral():
    data = {"events": [
        {"id": "fomc", "title": "FOMC rate decision", "institution": "FOMC", "days_until": 0},
        {"id": "bok", "title": "BOK meeting", "institution": "bok", "days_until": 9},
        {"id": "rba", "title": "RBA meeting", "institution": "RBA", "days_until": 1},
    ]}
    signals = normalize_economic_calendar(data, now=NOW)
    assert len(signals) == 1
    assert signals[0].direction == "neutral"
    assert signals[0].strength == 70
    assert signals[0].affected_entity_ids[0] == "inst:fed"
    assert signals[0].headline.endswith("scheduled today")
    assert calendar_proximity(data, NOW) == [("FOMC rate decision", 0), ("BOK meeting", 9), ("RBA meeting", 1)]


# ── Event tagger ──────────────────────────────────────────────────────────────

def test_ticker_mapping():
    assert ticker_to_entity("GC=F") == "asset:GOLD"
    assert ticker_to_entity("005930.KS") == "asset:KS11"
    assert ticker_to_entity("AAPL") is None


def test_event_tags_map_type_region_and_assets():
    data = {"events": [{
        "title": "North Korea fires ballistic missile",
        "timestamp": STAMP,
        "tag": {"signal_type": "military", "region": "korea", "related_assets": ["^KS11", "KRW=X", "AAPL"],
                "impact_score": 4, "impact_direction": "bearish", "confidence": "high"},
    }, {
        "title": "Unclear rumor",
        "tag": {"signal_type": "unknown", "impact_score": 1, "impact_direction": "sideways"},
    }]}
    first, second = normalize_event_tags(data, now=NOW)
    assert first.id == f"event_tagger:{STAMP}:0"
    assert first.strength == 72
    assert first.direction == "risk_off"
    assert first.confidence == 0.85
    assert first.affected_entity_ids == [
        "sector:defense", "asset:GOLD", "asset:KS11",
        "region:korean_peninsula", "country:south_korea", "asset:USDKRW",
    ]
    assert second.direction == "ambiguous"
    assert second.confidence == 0.45
    assert second.affected_entity_ids == []


# ── Impact scoring ────────────────────────────────────────────────────────────

def test_aggregated_impact_thresholds():
    data = {"kospi_composite": -3.4, "krw_composite": 1.0, "safe_haven_pressure": 62, "korean_market_risk": "elevated"}
    signals = normalize_aggregated_impact(data, now=NOW)
    assert [s.id.split(":")[1] for s in signals] == ["kospi", "safehaven"]
    assert signals[0].strength == pytest.approx(34.0)
    assert signals[0].direction == "risk_off"
    assert signals[1].strength == 62


# ── Pattern matcher ───────────────────────────────────────────────────────────

def test_pattern_analysis_requires_match():
    assert normalize_pattern_analysis({"matched_patterns": [], "outlook": {"kospi_expected": "down_sharp"}}) == []


def test_pattern_analysis_outlook_and_sectors():
    data = {
        "matched_patterns": ["nk-2022-icbm"],
        "outlook": {"kospi_expected": "down_mild"},
        "confidence_level": "medium",
        "top_analogues": [{"title": "Hwasong-17 test"}],
        "sector_signals": [
            {"sector": "defense", "sector_name": "Defense", "direction": "bullish", "confidence": 0.8},
            {"sector": "shipping", "direction": "bearish", "confidence": 0.5},
        ],
    }
    outlook, sector = normalize_pattern_analysis(data, now=NOW)
    assert outlook.strength == 40
    assert outlook.confidence == 0.55
    assert "Hwasong-17 test" in outlook.headline
    assert sector.affected_entity_ids == ["sector:defense"]
    assert sector.strength == 52
    assert sector.direction == "risk_on"
