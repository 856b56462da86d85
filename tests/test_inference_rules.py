from __future__ import annotations

from datetime import datetime, timezone

from knowledge_base.entity_graph import get_entity_graph
from processing.fusion import FusedEntitySignal, FusionResult
from processing.inference_engine import CalendarProximity, InferenceContext, InferenceEngine
from processing.inference_rules import (
    INFERENCE_RULES,
    bok_rate_decision,
    calm_market,
    fed_dovish_pivot,
    fed_hawkish,
    financial_stress,
    kimchi_premium_anomaly,
    multi_region_convergence,
    nk_compound_crisis,
    nk_provocation,
    oil_shock,
    semi_supply_disruption,
    taiwan_crisis,
    vip_aircraft_unusual,
)
from processing.state import InsightState

NOW = datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)
GRAPH = get_entity_graph()


def _fusion(strengths=None, directions=None, zones=None, risk=0) -> FusionResult:
    strengths = strengths or {}
    directions = directions or {}
    entities = [
        FusedEntitySignal(
            entity_id=eid,
            signals=[],
            fused_strength=value,
            fused_direction=directions.get(eid, "risk_off"),
        )
        for eid, value in strengths.items()
    ]
    return FusionResult(
        timestamp=NOW,
        entity_signals=entities,
        global_risk_level=risk,
        active_convergence_zones=zones or [],
    )


def _ctx(fusion, **kwargs) -> InferenceContext:
    return InferenceContext(fusion=fusion, **kwargs)


# ── Korean Peninsula ──────────────────────────────────────────────────────────

def test_nk_compound_crisis_needs_command_aircraft():
    fusion = _fusion({"region:korean_peninsula": 70})
    assert nk_compound_crisis(fusion, _ctx(fusion), GRAPH) is None

    ctx = _ctx(fusion, vip_aircraft_active=["E-4B Nightwatch"])
    result = nk_compound_crisis(fusion, ctx, GRAPH)
    assert result.severity == "CRITICAL"
    assert result.affected_entity_ids[0] == "region:korean_peninsula"
    assert result.expected_impact.benchmark_range == (-3, -7)
    assert result.historical_pattern_ids == ["nk-icbm-2017"]


def test_nk_compound_crisis_below_threshold():
    fusion = _fusion({"region:korean_peninsula": 59})
    assert nk_compound_crisis(fusion, _ctx(fusion, vip_aircraft_active=["E-4B"]), GRAPH) is None


def test_nk_provocation_severity_bands():
    high = _fusion({"country:north_korea": 70})
    assert nk_provocation(high, _ctx(high), GRAPH).severity == "ELEVATED"

    low = _fusion({"country:north_korea": 40})
    assert nk_provocation(low, _ctx(low), GRAPH).severity == "WATCH"

    quiet = _fusion({"country:north_korea": 30, "region:korean_peninsula": 20})
    assert nk_provocation(quiet, _ctx(quiet), GRAPH) is None


# ── Regional and sector rules ────────────────────────────────────────────────

def test_taiwan_crisis_lists_semiconductor_companies():
    fusion = _fusion({"region:taiwan_strait": 80})
    result = taiwan_crisis(fusion, _ctx(fusion), GRAPH)
    assert result.severity == "CRITICAL"
    assert "Samsung Electronics" in result.summary

    mild = _fusion({"region:taiwan_strait": 50})
    assert taiwan_crisis(mild, _ctx(mild), GRAPH).severity == "ELEVATED"


def test_semi_disruption_lists_korean_listings_only():
    fusion = _fusion({"company:tsmc": 45})
    result = semi_supply_disruption(fusion, _ctx(fusion), GRAPH)
    assert "Samsung Electronics, SK Hynix" in result.summary
    assert "TSMC" not in result.summary.split("Affected companies:")[1]


def test_oil_shock_requires_both_inputs():
    only_oil = _fusion({"asset:OIL": 60})
    assert oil_shock(only_oil, _ctx(only_oil), GRAPH) is None

    fusion = _fusion({"asset:OIL": 50, "region:middle_east": 30})
    result = oil_shock(fusion, _ctx(fusion), GRAPH)
    assert result.severity == "ELEVATED"
    assert "Energy" in result.suggested_action


def test_safe_havens_reflect_bid_assets():
    fusion = _fusion(
        {"asset:OIL": 50, "region:middle_east": 30, "asset:GOLD": 35, "asset:US10Y": 35},
        directions={"asset:GOLD": "risk_on", "asset:US10Y": "risk_off"},
    )
    result = oil_shock(fusion, _ctx(fusion), GRAPH)
    assert result.expected_impact.safe_havens == ["asset:GOLD"]


def test_financial_stress_bands():
    fusion = _fusion()
    assert financial_stress(fusion, _ctx(fusion, tail_risk_score=85), GRAPH).severity == "CRITICAL"
    assert financial_stress(fusion, _ctx(fusion, tail_risk_score=60), GRAPH).severity == "ELEVATED"
    assert financial_stress(fusion, _ctx(fusion, tail_risk_score=40), GRAPH) is None

    vix = _fusion({"asset:VIX": 65})
    assert financial_stress(vix, _ctx(vix), GRAPH).severity == "ELEVATED"


# ── Calendar rules ────────────────────────────────────────────────────────────

def test_fed_rules_follow_won_direction():
    calendar = [CalendarProximity("FOMC rate decision", 2)]

    dovish = _fusion({"asset:USDKRW": 30}, directions={"asset:USDKRW": "risk_on"})
    assert fed_dovish_pivot(dovish, _ctx(dovish, economic_calendar=calendar), GRAPH).rule_id == "FED_DOVISH_PIVOT"
    assert fed_hawkish(dovish, _ctx(dovish, economic_calendar=calendar), GRAPH) is None

    hawkish = _fusion({"asset:USDKRW": 30}, directions={"asset:USDKRW": "risk_off"})
    result = fed_hawkish(hawkish, _ctx(hawkish, economic_calendar=calendar), GRAPH)
    assert result.expected_impact.currency_direction == "weaken"


def test_fed_rules_ignore_distant_meetings():
    calendar = [CalendarProximity("FOMC rate decision", 5)]
    fusion = _fusion({"asset:USDKRW": 30}, directions={"asset:USDKRW": "risk_on"})
    assert fed_dovish_pivot(fusion, _ctx(fusion, economic_calendar=calendar), GRAPH) is None


def test_bok_decision_today():
    fusion = _fusion()
    ctx = _ctx(fusion, economic_calendar=[CalendarProximity("Bank of Korea MPC meeting", 0)])
    result = bok_rate_decision(fusion, ctx, GRAPH)
    assert "today" in result.summary
    assert result.expected_impact is None


# ── Market-structure rules ────────────────────────────────────────────────────

def test_kimchi_premium_both_signs():
    fusion = _fusion()
    positive = kimchi_premium_anomaly(fusion, _ctx(fusion, kimchi_premium=6.2), GRAPH)
    assert positive.severity == "INFO"
    assert positive.title == "Kimchi premium anomaly (+6.2%)"

    negative = kimchi_premium_anomaly(fusion, _ctx(fusion, kimchi_premium=-7.0), GRAPH)
    assert "discount 7.0%" in negative.summary

    assert kimchi_premium_anomaly(fusion, _ctx(fusion, kimchi_premium=3.0), GRAPH) is None
    assert kimchi_premium_anomaly(fusion, _ctx(fusion), GRAPH) is None


def test_multi_region_convergence_needs_two_zones():
    one = _fusion({"region:middle_east": 50}, zones=["region:middle_east"])
    assert multi_region_convergence(one, _ctx(one), GRAPH) is None

    two = _fusion(
        {"region:middle_east": 50, "region:korean_peninsula": 50},
        zones=["region:middle_east", "region:korean_peninsula"],
    )
    result = multi_region_convergence(two, _ctx(two), GRAPH)
    assert "Middle East, Korean Peninsula" in result.summary
    assert result.affected_entity_ids[:2] == ["region:middle_east", "region:korean_peninsula"]


def test_vip_aircraft_unusual_lists_first_three():
    fusion = _fusion()
    ctx = _ctx(fusion, vip_aircraft_active=["A", "B", "C", "D"])
    result = vip_aircraft_unusual(fusion, ctx, GRAPH)
    assert "A, B, C and others" in result.summary
    assert vip_aircraft_unusual(fusion, _ctx(fusion, vip_aircraft_active=["A", "B"]), GRAPH) is None


def test_calm_market():
    fusion = _fusion()
    assert calm_market(fusion, _ctx(fusion, tail_risk_score=10), GRAPH).rule_id == "CALM_MARKET"
    assert calm_market(fusion, _ctx(fusion, tail_risk_score=30), GRAPH) is None

    busy = _fusion(risk=25)
    assert calm_market(busy, _ctx(busy), GRAPH) is None


# ── Registry ──────────────────────────────────────────────────────────────────

def test_registry_priorities_unique():
    priorities = [r.priority for r in INFERENCE_RULES]
    assert len(set(priorities)) == len(priorities)
    assert max(INFERENCE_RULES, key=lambda r: r.priority).rule_id == "CALM_MARKET"


def test_registry_run_on_peninsula_crisis():
    fusion = _fusion({"region:korean_peninsula": 70, "country:north_korea": 70}, risk=70)
    ctx = _ctx(fusion, tail_risk_score=45, vip_aircraft_active=["E-4B Nightwatch"])
    results = InferenceEngine(INFERENCE_RULES, InsightState()).run(fusion, ctx, GRAPH, now=NOW)
    ids = [r.rule_id for r in results]
    assert ids[0] == "NK_COMPOUND_CRISIS"
    assert "NK_PROVOCATION" in ids
    assert "CALM_MARKET" not in ids
