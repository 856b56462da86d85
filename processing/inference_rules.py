"""
Inference rule registry.

Each rule is a plain function over (fusion, ctx, graph) returning an
InferenceResult or None, registered with a priority and an optional primary
entity. Affected assets are discovered by graph traversal from the primary
entity rather than listed per rule.

Thresholds are fused strengths on the 0-100 scale.
"""
from __future__ import annotations

import re
from typing import Optional

from config.settings import MAX_AFFECTED_ENTITIES, SAFE_HAVEN_IDS
from knowledge_base.entity_graph import EntityGraph
from processing.fusion import FusionResult
from processing.inference_engine import (
    ExpectedImpact,
    InferenceContext,
    InferenceResult,
    InferenceRule,
)

COMMAND_AIRCRAFT_PATTERN = re.compile(r"nightwatch|e-4b|e-6b|tacamo|naoc", re.IGNORECASE)
FOMC_PATTERN = re.compile(r"fomc", re.IGNORECASE)
BOK_PATTERN = re.compile(r"bok|bank of korea", re.IGNORECASE)


# ─── Helpers ─────────────────────────────────────────────────────────────────

def signal_ids(fusion: FusionResult, entity_id: str, limit: Optional[int] = None) -> list[str]:
    fused = fusion.get(entity_id)
    if fused is None:
        return []
    signals = fused.signals if limit is None else fused.signals[:limit]
    return [s.id for s in signals]


def active_safe_havens(fusion: FusionResult) -> list[str]:
    """Safe-haven assets currently bid (fused strength > 20, direction risk_on)."""
    havens = []
    for eid in SAFE_HAVEN_IDS:
        fused = fusion.get(eid)
        if fused and fused.fused_strength > 20 and fused.fused_direction == "risk_on":
            havens.append(eid)
    return havens


def build_result(
    *,
    rule_id: str,
    severity: str,
    title: str,
    summary: str,
    suggested_action: str,
    primary_entity_id: str,
    graph: EntityGraph,
    fusion: FusionResult,
    confidence: float,
    trigger_signals: list[str],
    historical_pattern_ids: Optional[list[str]] = None,
    benchmark_range: Optional[tuple[float, float]] = None,
    currency_direction: str = "weaken",
) -> InferenceResult:
    """Result for an entity-anchored rule; affected ids come from graph traversal."""
    affected = [primary_entity_id]
    for node in graph.get_affected_assets(primary_entity_id, max_depth=2):
        if node.entity_id not in affected:
            affected.append(node.entity_id)

    impact = None
    if benchmark_range is not None:
        impact = ExpectedImpact(
            benchmark_range=benchmark_range,
            currency_direction=currency_direction,
            safe_havens=active_safe_havens(fusion),
        )

    return InferenceResult(
        rule_id=rule_id,
        severity=severity,
        title=title,
        summary=summary,
        affected_entity_ids=affected[:MAX_AFFECTED_ENTITIES],
        suggested_action=suggested_action,
        confidence=confidence,
        trigger_signals=trigger_signals,
        historical_pattern_ids=historical_pattern_ids or [],
        expected_impact=impact,
    )


def _upcoming(ctx: InferenceContext, pattern: re.Pattern, max_days: int):
    for item in ctx.economic_calendar:
        if pattern.search(item.event) and 0 <= item.days_until <= max_days:
            return item
    return None


def _company_names(graph: EntityGraph, sector_id: str, ticker_suffix: str = "") -> str:
    companies = graph.get_companies_in_sector(sector_id)
    if ticker_suffix:
        companies = [c for c in companies if c.ticker.endswith(ticker_suffix)]
    return ", ".join(c.name for c in companies)


# ─── Rules ───────────────────────────────────────────────────────────────────

def nk_compound_crisis(fusion, ctx, graph):
    """Peninsula threat while US nuclear command aircraft are airborne."""
    strength = fusion.strength("region:korean_peninsula")
    has_command = any(COMMAND_AIRCRAFT_PATTERN.search(a) for a in ctx.vip_aircraft_active)
    if strength < 60 or not has_command:
        return None

    return build_result(
        rule_id="NK_COMPOUND_CRISIS", severity="CRITICAL", graph=graph, fusion=fusion,
        primary_entity_id="region:korean_peninsula",
        title="Compound geopolitical-military threat on the Korean Peninsula",
        summary=(
            f"Compound threat signals on the Korean Peninsula (strength {strength:.0f}/100) "
            "while US nuclear command aircraft are airborne. The pattern resembles the "
            "2017 North Korea nuclear crisis."
        ),
        suggested_action=(
            "Urgently review KOSPI exposure. Watch defense momentum (Hanwha Aerospace, KAI). "
            "Strengthen dollar and gold hedges; prepare for 30%+ higher short-term volatility."
        ),
        historical_pattern_ids=["nk-icbm-2017"],
        benchmark_range=(-3, -7), currency_direction="weaken",
        confidence=0.85,
        trigger_signals=signal_ids(fusion, "region:korean_peninsula"),
    )


def nk_provocation(fusion, ctx, graph):
    nk = fusion.strength("country:north_korea")
    peninsula = fusion.strength("region:korean_peninsula")
    if nk < 35 and peninsula < 30:
        return None

    combined = max(nk, peninsula)
    return build_result(
        rule_id="NK_PROVOCATION",
        severity="ELEVATED" if combined > 65 else "WATCH",
        graph=graph, fusion=fusion,
        primary_entity_id="country:north_korea",
        title="North Korean provocation signals",
        summary=(
            f"North Korea threat signals (strength {combined:.0f}/100) crossed the alert "
            "threshold. Markets have built tolerance to repeated provocations, but expect "
            "initial downside pressure."
        ),
        suggested_action=(
            "Short-term focus on defense names (Hanwha Aerospace, KAI). KOSPI may fall "
            "1-3% within 1-3 days; historically it rebounds within a week."
        ),
        historical_pattern_ids=["nk-2022-icbm"],
        benchmark_range=(-1, -3), currency_direction="weaken",
        confidence=0.70,
        trigger_signals=signal_ids(fusion, "country:north_korea"),
    )


def taiwan_crisis(fusion, ctx, graph):
    strength = fusion.strength("region:taiwan_strait")
    if strength < 45:
        return None

    companies = _company_names(graph, "sector:semiconductor")
    return build_result(
        rule_id="TAIWAN_CRISIS",
        severity="CRITICAL" if strength > 75 else "ELEVATED",
        graph=graph, fusion=fusion,
        primary_entity_id="region:taiwan_strait",
        title="Taiwan Strait tension rising",
        summary=(
            f"Compound Taiwan Strait signals (strength {strength:.0f}/100). Semiconductor "
            f"supply chain disruption risk. Affected companies: "
            f"{companies or 'TSMC, Samsung Electronics, SK Hynix'}."
        ),
        suggested_action=(
            "Expect wider semiconductor volatility: short-term weakness in Samsung and "
            "SK Hynix may coexist with TSMC substitution demand. South China Sea shipping "
            "routes may be disrupted."
        ),
        historical_pattern_ids=["us-china-tariffs-2018"],
        benchmark_range=(-2, -6), currency_direction="weaken",
        confidence=0.70,
        trigger_signals=signal_ids(fusion, "region:taiwan_strait"),
    )


def korean_political_crisis(fusion, ctx, graph):
    strength = max(fusion.strength("country:south_korea"), fusion.strength("event:korea_politics"))
    if strength < 40:
        return None

    triggers = signal_ids(fusion, "event:korea_politics") + signal_ids(fusion, "country:south_korea", 2)
    return build_result(
        rule_id="KOREAN_POLITICAL_CRISIS", severity="ELEVATED", graph=graph, fusion=fusion,
        primary_entity_id="event:korea_politics",
        title="Domestic political risk emerging in Korea",
        summary=(
            f"Political instability signals in South Korea (strength {strength:.0f}/100), "
            "similar to the 2024 martial law and impeachment episode. Risk of foreign "
            "outflows and KRW weakness."
        ),
        suggested_action=(
            "Watch for foreign net selling and consider hedging KRW weakness. Past episodes "
            "saw V-shaped rebounds once uncertainty cleared; prefer waiting over selling."
        ),
        historical_pattern_ids=["kospi-martial-law-2024"],
        benchmark_range=(-2, -5), currency_direction="weaken",
        confidence=0.65,
        trigger_signals=triggers,
    )


def financial_stress(fusion, ctx, graph):
    vix = fusion.strength("asset:VIX")
    if ctx.tail_risk_score < 55 and vix < 60:
        return None

    severity = "CRITICAL" if ctx.tail_risk_score > 80 or vix > 80 else "ELEVATED"
    return build_result(
        rule_id="FINANCIAL_STRESS", severity=severity, graph=graph, fusion=fusion,
        primary_entity_id="asset:VIX",
        title="Global financial stress alert",
        summary=(
            f"Tail risk index {ctx.tail_risk_score:.0f}/100. VIX spiking alongside compound "
            "financial stress signals, a pattern similar to the early COVID-19 shock of 2020."
        ),
        suggested_action=(
            "Raise cash. Cut high-beta exposure (KOSDAQ, crypto). Allocate defensively to "
            "US Treasuries and gold; remove leveraged KOSPI ETFs."
        ),
        historical_pattern_ids=["covid-2020", "gfc-2008"],
        benchmark_range=(-3, -8), currency_direction="weaken",
        confidence=0.80,
        trigger_signals=signal_ids(fusion, "asset:VIX"),
    )


def oil_shock(fusion, ctx, graph):
    oil = fusion.strength("asset:OIL")
    middle_east = fusion.strength("region:middle_east")
    if oil < 45 or middle_east < 25:
        return None

    sectors = ", ".join(
        graph.entity_name(n.entity_id)
        for n in graph.get_impact_chain("event:oil_shock", max_depth=2, min_weight=0.5)
        if graph.get_entity(n.entity_id).type == "sector"
    )
    return build_result(
        rule_id="OIL_SHOCK", severity="ELEVATED", graph=graph, fusion=fusion,
        primary_entity_id="asset:OIL",
        title="Oil supply shock risk",
        summary=(
            f"Middle East tension ({middle_east:.0f}/100) and abnormal crude oil signals "
            f"({oil:.0f}/100) detected together. Broad pressure on the energy-importing "
            "Korean economy."
        ),
        suggested_action=(
            "Energy and refiners benefit; airlines, shipping and chemicals face cost pressure. "
            f"Affected sectors: {sectors or 'energy, transport, chemicals'}. Prepare for KRW weakness."
        ),
        historical_pattern_ids=["aramco-attack-2019"],
        benchmark_range=(-1, -4), currency_direction="weaken",
        confidence=0.65,
        trigger_signals=signal_ids(fusion, "asset:OIL") + signal_ids(fusion, "region:middle_east", 2),
    )


def pandemic_risk(fusion, ctx, graph):
    strength = fusion.strength("event:pandemic")
    if strength < 45:
        return None

    beneficiaries = _company_names(graph, "sector:bio_pharma")
    return build_result(
        rule_id="PANDEMIC_RISK",
        severity="CRITICAL" if strength > 75 else "WATCH",
        graph=graph, fusion=fusion,
        primary_entity_id="event:pandemic",
        title="Pandemic risk rising",
        summary=(
            f"Outbreak anomaly signals from health and news feeds (strength {strength:.0f}/100). "
            "Early-stage pattern resembles the run-up to the 2020 COVID-19 shock."
        ),
        suggested_action=(
            f"Watch bio/pharma ({beneficiaries or 'Celltrion'}). Be cautious on airlines and "
            "tourism. Not yet confirmed, so avoid excessive repositioning."
        ),
        historical_pattern_ids=["covid-2020", "mers-2015"],
        benchmark_range=(-1, -4), currency_direction="neutral",
        confidence=0.50,
        trigger_signals=signal_ids(fusion, "event:pandemic"),
    )


def fed_dovish_pivot(fusion, ctx, graph):
    meeting = _upcoming(ctx, FOMC_PATTERN, 3)
    if meeting is None or fusion.direction("asset:USDKRW") != "risk_on":
        return None

    return build_result(
        rule_id="FED_DOVISH_PIVOT", severity="WATCH", graph=graph, fusion=fusion,
        primary_entity_id="inst:fed",
        title="Fed dovish pivot signals",
        summary=(
            f"FOMC in {meeting.days_until} day(s). A falling USD/KRW (stronger won) reflects "
            "growing rate-cut expectations."
        ),
        suggested_action=(
            "Expect foreign net buying and upside momentum in KOSPI and KOSDAQ. Consider "
            "adding growth and tech; batteries and IT benefit."
        ),
        benchmark_range=(1, 4), currency_direction="strengthen",
        confidence=0.55,
        trigger_signals=signal_ids(fusion, "inst:fed"),
    )


def fed_hawkish(fusion, ctx, graph):
    meeting = _upcoming(ctx, FOMC_PATTERN, 3)
    if meeting is None or fusion.direction("asset:USDKRW") != "risk_off":
        return None

    return build_result(
        rule_id="FED_HAWKISH", severity="WATCH", graph=graph, fusion=fusion,
        primary_entity_id="inst:fed",
        title="Hawkish Fed surprise risk",
        summary=(
            f"FOMC in {meeting.days_until} day(s). Won weakness reflects concern about "
            "continued hikes or prolonged tightening."
        ),
        suggested_action=(
            "Risk of foreign outflows. Be careful with high-multiple growth names. Favor "
            "dollar assets and short-duration bonds; expect KOSDAQ volatility."
        ),
        benchmark_range=(-2, -4), currency_direction="weaken",
        confidence=0.55,
        trigger_signals=signal_ids(fusion, "inst:fed"),
    )


def bok_rate_decision(fusion, ctx, graph):
    meeting = _upcoming(ctx, BOK_PATTERN, 2)
    if meeting is None:
        return None

    when = "today" if meeting.days_until == 0 else f"in {meeting.days_until} day(s)"
    return build_result(
        rule_id="BOK_RATE_DECISION", severity="WATCH", graph=graph, fusion=fusion,
        primary_entity_id="inst:bok",
        title="Bank of Korea rate decision imminent",
        summary=(
            f"Bank of Korea monetary policy meeting {when}. Watch FX, bonds and "
            "foreign fund flows."
        ),
        suggested_action=(
            "Hold: market neutral. Cut: construction, real estate and banks benefit, KRW "
            "weakens. Hike: banks benefit, growth stocks pressured."
        ),
        confidence=0.60,
        trigger_signals=signal_ids(fusion, "inst:bok"),
    )


def semi_supply_disruption(fusion, ctx, graph):
    strength = max(fusion.strength("sector:semiconductor"), fusion.strength("company:tsmc"))
    if strength < 40:
        return None

    korean_chips = _company_names(graph, "sector:semiconductor", ticker_suffix=".KS")
    return build_result(
        rule_id="SEMI_SUPPLY_DISRUPTION", severity="WATCH", graph=graph, fusion=fusion,
        primary_entity_id="sector:semiconductor",
        title="Semiconductor supply chain disruption",
        summary=(
            f"Compound semiconductor sector signals (strength {strength:.0f}/100). "
            f"Affected companies: {korean_chips or 'Samsung Electronics, SK Hynix'}."
        ),
        suggested_action=(
            "Short-term sector volatility. A TSMC disruption could mean substitution demand "
            "for Samsung and Hynix or plain risk-off; confirm earnings momentum first."
        ),
        benchmark_range=(-1, -3), currency_direction="neutral",
        confidence=0.60,
        trigger_signals=(
            signal_ids(fusion, "sector:semiconductor") + signal_ids(fusion, "company:tsmc", 2)
        ),
    )


def multi_region_convergence(fusion, ctx, graph):
    zones = fusion.active_convergence_zones
    if len(zones) < 2:
        return None

    zone_names = ", ".join(graph.entity_name(z) for z in zones)
    triggers = [
        s.id
        for e in fusion.entity_signals if e.entity_id in zones
        for s in e.signals
    ]
    return InferenceResult(
        rule_id="MULTI_REGION_CONVERGENCE",
        severity="ELEVATED",
        title="Simultaneous crisis signals across regions",
        summary=(
            f"Compound threat signals are converging at once in {zone_names}. "
            "Global risk-off with safe-haven preference."
        ),
        affected_entity_ids=list(zones) + ["asset:KS11", "asset:GOLD", "asset:VIX"],
        suggested_action=(
            "Global crisis mode may be near. Allocate defensively to cash, gold and dollars; "
            "watch for foreign net selling of Korean equities."
        ),
        confidence=0.70,
        trigger_signals=triggers[:8],
        expected_impact=ExpectedImpact(
            benchmark_range=(-3, -6),
            currency_direction="weaken",
            safe_havens=["asset:GOLD", "asset:US10Y"],
        ),
    )


def vip_aircraft_unusual(fusion, ctx, graph):
    active = ctx.vip_aircraft_active
    if len(active) < 3:
        return None

    listed = ", ".join(active[:3]) + (" and others" if len(active) > 3 else "")
    return InferenceResult(
        rule_id="VIP_AIRCRAFT_UNUSUAL",
        severity="WATCH",
        title="Multiple VIP/military aircraft airborne",
        summary=f"{len(active)} key military/government aircraft airborne at once: {listed}.",
        affected_entity_ids=["region:east_asia", "asset:KS11"],
        suggested_action=(
            "Possible undisclosed diplomatic or military activity. Monitor for further "
            "signals; not enough on its own to reposition."
        ),
        confidence=0.50,
    )


def kimchi_premium_anomaly(fusion, ctx, graph):
    premium = ctx.kimchi_premium
    if premium is None or abs(premium) < 5:
        return None

    if premium > 0:
        summary = (
            "Surging domestic crypto demand; retail risk appetite overheating. Past premiums "
            "above 10% were often followed by short-term corrections."
        )
        action = "Contrarian: consider taking profits at high premiums; a short-term correction may be near."
    else:
        summary = (
            f"Kimchi premium inverted (discount {abs(premium):.1f}%). Signals capital outflow "
            "or cooling sentiment."
        )
        action = "Sentiment is cooling. May be a bottoming zone, but confirm the trend before entering."

    return InferenceResult(
        rule_id="KIMCHI_PREMIUM_ANOMALY",
        severity="INFO",
        title=f"Kimchi premium anomaly ({premium:+.1f}%)",
        summary=summary,
        affected_entity_ids=["asset:BTC", "asset:KS11", "asset:KQ11"],
        suggested_action=action,
        confidence=0.55,
        trigger_signals=signal_ids(fusion, "asset:BTC"),
    )


def calm_market(fusion, ctx, graph):
    if fusion.global_risk_level >= 20 or fusion.active_convergence_zones:
        return None
    if ctx.tail_risk_score >= 30:
        return None

    return InferenceResult(
        rule_id="CALM_MARKET",
        severity="INFO",
        title="Market in a stable phase",
        summary=(
            "Major geopolitical and financial threat signals are below threshold. "
            "Global risk is currently low."
        ),
        affected_entity_ids=["asset:KS11"],
        suggested_action="Normal market environment. Keep the base strategy and focus on fundamentals.",
        confidence=0.85,
    )


# ─── Registry ────────────────────────────────────────────────────────────────

INFERENCE_RULES: list[InferenceRule] = [
    InferenceRule("NK_COMPOUND_CRISIS", 1, nk_compound_crisis, "region:korean_peninsula"),
    InferenceRule("NK_PROVOCATION", 2, nk_provocation, "country:north_korea"),
    InferenceRule("TAIWAN_CRISIS", 3, taiwan_crisis, "region:taiwan_strait"),
    InferenceRule("KOREAN_POLITICAL_CRISIS", 4, korean_political_crisis, "event:korea_politics"),
    InferenceRule("FINANCIAL_STRESS", 5, financial_stress, "asset:VIX"),
    InferenceRule("OIL_SHOCK", 6, oil_shock, "asset:OIL"),
    InferenceRule("PANDEMIC_RISK", 7, pandemic_risk, "event:pandemic"),
    InferenceRule("FED_DOVISH_PIVOT", 8, fed_dovish_pivot, "inst:fed"),
    InferenceRule("FED_HAWKISH", 9, fed_hawkish, "inst:fed"),
    InferenceRule("BOK_RATE_DECISION", 10, bok_rate_decision, "inst:bok"),
    InferenceRule("SEMI_SUPPLY_DISRUPTION", 11, semi_supply_disruption, "sector:semiconductor"),
    InferenceRule("MULTI_REGION_CONVERGENCE", 12, multi_region_convergence),
    InferenceRule("VIP_AIRCRAFT_UNUSUAL", 13, vip_aircraft_unusual),
    InferenceRule("KIMCHI_PREMIUM_ANOMALY", 14, kimchi_premium_anomaly, "asset:BTC"),
    InferenceRule("CALM_MARKET", 99, calm_market),
]
