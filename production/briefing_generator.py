"""
Insight Briefing Generator — one end-to-end pass over all upstream feeds.

  gather → normalize → fuse → infer → narrate → InsightBriefing

Pipeline:
  1. Collect every feed concurrently (or take supplied payloads)
  2. Fuse the normalized signals against the entity graph
  3. Build the inference context from the raw payloads and run the rules
  4. Blend fused risk with an inference severity bonus into the headline score
  5. Write the narrative (LLM when configured, template otherwise)
  6. Assemble the summary, benchmark outlook and hedge suggestions

Collaborator failures (feeds, normalizers, rules, the narrative provider)
degrade the briefing — stale warnings, missing inferences, template text —
but never raise out of generate().
"""
from __future__ import annotations

import logging
import math
import time
from dataclasses import asdict, dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Optional, Sequence

from config.settings import (
    BENCHMARK_ENTITY_ID,
    FUSION_RISK_WEIGHT,
    MAX_SEVERITY_BONUS,
    NarrativeSettings,
    SEVERITY_BONUS,
    SEVERITY_ORDER,
    SEVERITY_RISK_WEIGHT,
    TOP_ENTITIES,
    TOP_INFERENCES,
    get_risk_label,
)
from ingestion.normalizers.economic_calendar import calendar_proximity
from ingestion.normalizers.vip_aircraft import airborne_labels
from ingestion.pipeline import SignalFeed, default_feeds, gather_signals
from ingestion.signals import utc_now
from knowledge_base.entity_graph import EntityGraph, get_entity_graph
from processing.fusion import FusionEngine, FusionResult
from processing.inference_engine import (
    CalendarProximity,
    InferenceContext,
    InferenceEngine,
    InferenceResult,
    InferenceRule,
    collapse_criticals,
    synthesize_crisis_rule,
)
from processing.inference_rules import INFERENCE_RULES
from processing.llm_interface import BaseLLMProvider, get_llm_provider
from processing.narrative import NarrativeAssembler
from processing.state import InsightState, get_default_state

logger = logging.getLogger(__name__)

MAX_KEY_RISKS = 3
MAX_OPPORTUNITIES = 2
MAX_HEDGES = 3


# ─── Briefing Structure ──────────────────────────────────────────────────────

@dataclass
class TopEntity:
    entity_id: str
    name: str
    localized_name: str
    fused_strength: int


@dataclass
class SignalSummary:
    total: int
    by_severity: dict[str, int]
    top_entities: list[TopEntity] = field(default_factory=list)


@dataclass
class MarketOutlook:
    """Benchmark direction plus the headline risks, opportunities and hedges."""
    benchmark_sentiment: str
    key_risks: list[str] = field(default_factory=list)
    key_opportunities: list[str] = field(default_factory=list)
    hedge_suggestions: list[str] = field(default_factory=list)


@dataclass
class BriefingMeta:
    processing_ms: int
    signal_count: int
    rules_evaluated: int


@dataclass
class InsightBriefing:
    """Complete briefing deliverable."""
    generated_at: datetime
    global_risk_score: int
    risk_label: str
    top_inferences: list[InferenceResult]
    narrative: str
    narrative_method: str
    signal_summary: SignalSummary
    market_outlook: MarketOutlook
    stale_warnings: list[str] = field(default_factory=list)
    meta: Optional[BriefingMeta] = None

    def to_dict(self) -> dict:
        """JSON-serializable representation."""
        data = asdict(self)
        data["generated_at"] = self.generated_at.isoformat()
        return data

    def to_markdown(self) -> str:
        lines = [
            f"# Insight Briefing — {self.generated_at:%Y-%m-%d %H:%M} UTC",
            "",
            f"**Risk:** {self.risk_label} ({self.global_risk_score}/100)  ",
            f"**Benchmark sentiment:** {self.market_outlook.benchmark_sentiment}",
            "",
            "## Narrative",
            "",
            self.narrative,
            "",
            f"*({self.narrative_method})*",
            "",
        ]

        if self.top_inferences:
            lines.extend(["## Inferences", ""])
            for inf in self.top_inferences:
                lines.extend([
                    f"### [{inf.severity}] {inf.title}",
                    "",
                    inf.summary,
                    "",
                    f"- Action: {inf.suggested_action}",
                    f"- Confidence: {inf.confidence:.0%}",
                ])
                if inf.expected_impact:
                    low, high = inf.expected_impact.benchmark_range
                    lines.append(f"- Expected benchmark move: {low}% to {high}%")
                lines.append("")

        if self.signal_summary.top_entities:
            lines.extend(["## Top Entities", "", "| Entity | Strength |", "|---|---|"])
            for ent in self.signal_summary.top_entities:
                lines.append(f"| {ent.name} | {ent.fused_strength} |")
            lines.append("")

        if self.market_outlook.hedge_suggestions:
            lines.append(f"**Hedges:** {', '.join(self.market_outlook.hedge_suggestions)}")
            lines.append("")

        if self.stale_warnings:
            lines.extend(["## Stale Data", ""])
            lines.extend(f"- ⚠️ {w}" for w in self.stale_warnings)
            lines.append("")

        return "\n".join(lines).rstrip() + "\n"

    def write_markdown(self, output_path: Path) -> Path:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(self.to_markdown(), encoding="utf-8")
        logger.info("Briefing written to %s", output_path)
        return output_path


# ─── Helpers ─────────────────────────────────────────────────────────────────

def _as_dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def _as_float(value: Any) -> Optional[float]:
    """Numeric feed field, or None when missing or not a number."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def build_inference_context(
    payloads: dict[str, Any], fusion: FusionResult, now: datetime,
) -> InferenceContext:
    """Side information for the rules, read straight from the raw feed payloads.

    Malformed fields read as absent: non-object sections are empty, and
    non-numeric values fall back to 0 or None.
    """
    blackswan = _as_dict(payloads.get("blackswan"))
    market = _as_dict(payloads.get("market_data"))
    kospi = _as_dict(market.get("kospi"))

    return InferenceContext(
        fusion=fusion,
        tail_risk_score=_as_float(blackswan.get("tail_risk_score")) or 0.0,
        vip_aircraft_active=airborne_labels(payloads.get("vip_aircraft")),
        economic_calendar=[
            CalendarProximity(event=title, days_until=days)
            for title, days in calendar_proximity(payloads.get("economic_calendar"), now)
        ],
        benchmark_change=_as_float(kospi.get("change_percent")),
        kimchi_premium=_as_float(market.get("kimchi_premium")),
    )


def count_by_severity(inferences: Sequence[InferenceResult]) -> dict[str, int]:
    counts = {severity: 0 for severity in SEVERITY_ORDER}
    for inf in inferences:
        counts[inf.severity] += 1
    return counts


def compute_risk_score(fusion_risk: float, by_severity: dict[str, int]) -> int:
    bonus = sum(SEVERITY_BONUS.get(sev, 0) * n for sev, n in by_severity.items())
    blended = fusion_risk * FUSION_RISK_WEIGHT + min(MAX_SEVERITY_BONUS, bonus) * SEVERITY_RISK_WEIGHT
    # Half up, so .5 scores round toward the higher risk
    return min(100, math.floor(blended + 0.5))


def build_market_outlook(
    fusion: FusionResult, inferences: Sequence[InferenceResult], graph: EntityGraph,
) -> MarketOutlook:
    hedges: list[str] = []
    for inf in inferences:
        if inf.expected_impact is None:
            continue
        for eid in inf.expected_impact.safe_havens:
            name = graph.entity_name(eid)
            if name not in hedges:
                hedges.append(name)

    return MarketOutlook(
        benchmark_sentiment=fusion.direction(BENCHMARK_ENTITY_ID) or "neutral",
        key_risks=[i.title for i in inferences if i.severity != "INFO"][:MAX_KEY_RISKS],
        key_opportunities=[
            i.suggested_action for i in inferences
            if i.expected_impact is not None and i.expected_impact.benchmark_range[1] > 0
        ][:MAX_OPPORTUNITIES],
        hedge_suggestions=hedges[:MAX_HEDGES],
    )


# ─── Orchestrator ────────────────────────────────────────────────────────────

class BriefingGenerator:
    """
    Runs the full insight pipeline and assembles an InsightBriefing.

    Usage:
        generator = BriefingGenerator(feeds=default_feeds("https://host"))
        briefing = await generator.generate()

        # Offline, from supplied payloads:
        briefing = await BriefingGenerator().generate(raw_payloads=demo_payloads())
    """

    def __init__(
        self,
        graph: Optional[EntityGraph] = None,
        feeds: Optional[list[SignalFeed]] = None,
        provider: Optional[BaseLLMProvider] = None,
        state: Optional[InsightState] = None,
        settings: Optional[NarrativeSettings] = None,
        rules: Optional[Sequence[InferenceRule]] = None,
        synthesize_crisis: bool = False,
    ):
        self.graph = graph or get_entity_graph()
        self.feeds = feeds if feeds is not None else default_feeds()
        self.state = state or get_default_state()
        self.fusion_engine = FusionEngine(self.graph)
        self.inference_engine = InferenceEngine(rules if rules is not None else INFERENCE_RULES, self.state)
        self.narrator = NarrativeAssembler(provider, self.state, settings)
        self.synthesize_crisis = synthesize_crisis

    async def generate(
        self,
        raw_payloads: Optional[dict[str, Any]] = None,
        now: Optional[datetime] = None,
    ) -> InsightBriefing:
        now = now or utc_now()
        started = time.perf_counter()

        logger.info("=" * 70)
        logger.info("INSIGHT BRIEFING START (%d feeds%s)",
                    len(self.feeds), ", supplied payloads" if raw_payloads is not None else "")
        logger.info("=" * 70)

        # ── Gather + normalize ────────────────────────────────────────────
        gathered = await gather_signals(self.feeds, raw_payloads=raw_payloads, now=now)

        # ── Fuse ──────────────────────────────────────────────────────────
        fusion = self.fusion_engine.fuse(gathered.signals, now=now)

        # ── Infer ─────────────────────────────────────────────────────────
        stale_warnings = list(gathered.stale_warnings)
        try:
            ctx = build_inference_context(gathered.payloads, fusion, now)
        except Exception as exc:
            logger.error("FAIL: inference context — %s", exc)
            stale_warnings.append(f"inference context: unreadable feed data ({exc})")
            ctx = InferenceContext(fusion=fusion)
        inferences = self.inference_engine.run(fusion, ctx, self.graph, now=now)

        if self.synthesize_crisis:
            eligible = self.inference_engine.evaluate_eligible(fusion, ctx, self.graph)
            crisis = synthesize_crisis_rule(eligible)
            if crisis is not None:
                logger.warning("Systemic crisis synthesized from %d CRITICAL conditions",
                               sum(1 for r in eligible if r.severity == "CRITICAL"))
                inferences = collapse_criticals(inferences, crisis)

        # ── Score ─────────────────────────────────────────────────────────
        by_severity = count_by_severity(inferences)
        risk_score = compute_risk_score(fusion.global_risk_level, by_severity)
        risk_label = get_risk_label(risk_score)

        # ── Narrate ───────────────────────────────────────────────────────
        outcome = await self.narrator.generate(
            fusion, inferences, risk_score, risk_label, self.graph.entity_name, now=now,
        )

        # ── Assemble ──────────────────────────────────────────────────────
        top_entities = [
            TopEntity(
                entity_id=e.entity_id,
                name=self.graph.entity_name(e.entity_id),
                localized_name=self.graph.localized_name(e.entity_id),
                fused_strength=int(round(e.fused_strength)),
            )
            for e in fusion.entity_signals[:TOP_ENTITIES]
        ]

        briefing = InsightBriefing(
            generated_at=now,
            global_risk_score=risk_score,
            risk_label=risk_label,
            top_inferences=inferences[:TOP_INFERENCES],
            narrative=outcome.text,
            narrative_method=outcome.method,
            signal_summary=SignalSummary(
                total=len(gathered.signals),
                by_severity=by_severity,
                top_entities=top_entities,
            ),
            market_outlook=build_market_outlook(fusion, inferences, self.graph),
            stale_warnings=stale_warnings,
            meta=BriefingMeta(
                processing_ms=int((time.perf_counter() - started) * 1000),
                signal_count=len(gathered.signals),
                rules_evaluated=len(self.inference_engine.rules),
            ),
        )

        logger.info("=" * 70)
        logger.info(
            "BRIEFING COMPLETE: risk %d (%s), %d inferences, %d signals, narrative=%s, %d stale",
            risk_score, risk_label, len(inferences), len(gathered.signals),
            outcome.method, len(stale_warnings),
        )
        logger.info("=" * 70)
        return briefing


async def generate_briefing(
    raw_payloads: Optional[dict[str, Any]] = None,
    base_url: Optional[str] = None,
    settings: Optional[NarrativeSettings] = None,
    provider: Optional[BaseLLMProvider] = None,
    state: Optional[InsightState] = None,
    synthesize_crisis: bool = False,
) -> InsightBriefing:
    """
    One-call briefing with the shared graph and the default feed set.

    The provider defaults to whatever the narrative settings (environment)
    configure; pass one explicitly to override.
    """
    settings = settings or NarrativeSettings.from_env()
    if provider is None:
        provider = get_llm_provider(settings)

    generator = BriefingGenerator(
        feeds=default_feeds(base_url),
        provider=provider,
        state=state,
        settings=settings,
        synthesize_crisis=synthesize_crisis,
    )
    return await generator.generate(raw_payloads=raw_payloads)
