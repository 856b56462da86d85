"""
Inference Engine — turns a fusion result into ranked, deduplicated alerts.

Rules are evaluated in priority order against the fusion result, the
inference context and the entity graph. Three guards keep the output
readable:
  - TTL dedup: a rule that fired within the last 4 hours stays silent
  - Primary-entity dedup: once a rule about an entity fires, lower-priority
    rules about the same entity are skipped for this pass
  - CRITICAL cap: after two CRITICAL results, further CRITICAL results are
    dropped (WATCH/INFO still flow through)

A rule that raises is logged and skipped; it never aborts the pass.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Callable, Literal, Optional, Sequence

from config.settings import MAX_AFFECTED_ENTITIES, MAX_CRITICAL, RULE_DEDUP_TTL, SEVERITY_ORDER
from ingestion.signals import utc_now
from knowledge_base.entity_graph import EntityGraph
from knowledge_base.schema import clamp
from processing.fusion import FusionResult
from processing.state import InsightState, get_default_state

logger = logging.getLogger(__name__)

Severity = Literal["CRITICAL", "ELEVATED", "WATCH", "INFO"]
CurrencyDirection = Literal["strengthen", "weaken", "neutral"]


@dataclass
class ExpectedImpact:
    """Expected market reaction: benchmark % move range, currency, safe havens."""
    benchmark_range: tuple[float, float]
    currency_direction: CurrencyDirection = "weaken"
    safe_havens: list[str] = field(default_factory=list)


@dataclass
class InferenceResult:
    rule_id: str
    severity: Severity
    title: str
    summary: str
    affected_entity_ids: list[str]
    suggested_action: str
    confidence: float
    trigger_signals: list[str] = field(default_factory=list)
    historical_pattern_ids: list[str] = field(default_factory=list)
    expected_impact: Optional[ExpectedImpact] = None

    def __post_init__(self) -> None:
        self.confidence = clamp(float(self.confidence), 0.0, 1.0)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class CalendarProximity:
    event: str
    days_until: int


@dataclass
class InferenceContext:
    """Side information the rules need beyond fused entity strengths."""
    fusion: FusionResult
    tail_risk_score: float = 0.0
    vip_aircraft_active: list[str] = field(default_factory=list)
    economic_calendar: list[CalendarProximity] = field(default_factory=list)
    benchmark_change: Optional[float] = None
    kimchi_premium: Optional[float] = None


RuleFn = Callable[[FusionResult, InferenceContext, EntityGraph], Optional[InferenceResult]]


@dataclass(frozen=True)
class InferenceRule:
    """A named, prioritized condition over the fused picture (lower priority runs first)."""
    rule_id: str
    priority: int
    evaluate_fn: RuleFn
    primary_entity_id: Optional[str] = None

    def evaluate(
        self, fusion: FusionResult, ctx: InferenceContext, graph: EntityGraph,
    ) -> Optional[InferenceResult]:
        return self.evaluate_fn(fusion, ctx, graph)


def sort_results(results: list[InferenceResult]) -> list[InferenceResult]:
    """Severity rank first, then confidence descending."""
    return sorted(results, key=lambda r: (SEVERITY_ORDER[r.severity], -r.confidence))


class InferenceEngine:
    """
    Runs a rule set with TTL, primary-entity and CRITICAL-cap dedup.

    Usage:
        engine = InferenceEngine(INFERENCE_RULES, state)
        results = engine.run(fusion, ctx, graph)
    """

    def __init__(self, rules: Sequence[InferenceRule], state: Optional[InsightState] = None):
        self.rules = sorted(rules, key=lambda r: r.priority)
        self.state = state or get_default_state()

    def run(
        self,
        fusion: FusionResult,
        ctx: InferenceContext,
        graph: EntityGraph,
        now: Optional[datetime] = None,
    ) -> list[InferenceResult]:
        now = now or utc_now()
        results: list[InferenceResult] = []
        claimed: set[str] = set()
        critical_count = 0

        for rule in self.rules:
            if not self.state.can_fire(rule.rule_id, now, RULE_DEDUP_TTL):
                logger.debug("Rule %s suppressed (fired within TTL)", rule.rule_id)
                continue
            if rule.primary_entity_id and rule.primary_entity_id in claimed:
                continue

            result = self._safe_evaluate(rule, fusion, ctx, graph)
            if result is None:
                continue
            if result.severity == "CRITICAL" and critical_count >= MAX_CRITICAL:
                logger.info("Rule %s dropped: CRITICAL cap reached", rule.rule_id)
                continue

            results.append(result)
            if rule.primary_entity_id:
                claimed.add(rule.primary_entity_id)
            self.state.mark_fired(rule.rule_id, now)
            if result.severity == "CRITICAL":
                critical_count += 1

        logger.info(
            "Inference: %d rules evaluated, %d fired (%d CRITICAL)",
            len(self.rules), len(results), critical_count,
        )
        return sort_results(results)

    def evaluate_eligible(
        self,
        fusion: FusionResult,
        ctx: InferenceContext,
        graph: EntityGraph,
    ) -> list[InferenceResult]:
        """Every rule whose condition holds, ignoring TTL, dedup and caps. Read-only."""
        results = []
        for rule in self.rules:
            result = self._safe_evaluate(rule, fusion, ctx, graph)
            if result is not None:
                results.append(result)
        return sort_results(results)

    @staticmethod
    def _safe_evaluate(
        rule: InferenceRule,
        fusion: FusionResult,
        ctx: InferenceContext,
        graph: EntityGraph,
    ) -> Optional[InferenceResult]:
        try:
            return rule.evaluate(fusion, ctx, graph)
        except Exception:
            logger.exception("Rule %s failed", rule.rule_id)
            return None


# ─── Systemic crisis synthesis ───────────────────────────────────────────────

def synthesize_crisis_rule(
    results: Sequence[InferenceResult], min_critical: int = 3,
) -> Optional[InferenceResult]:
    """
    Collapse simultaneous CRITICAL conditions into one SYSTEMIC_CRISIS alert.

    Returns None when fewer than min_critical CRITICAL results are present.
    """
    criticals = [r for r in results if r.severity == "CRITICAL"]
    if len(criticals) < min_critical:
        return None

    entities: list[str] = []
    for r in criticals:
        for eid in r.affected_entity_ids:
            if eid not in entities:
                entities.append(eid)

    triggers = [sig for r in criticals for sig in r.trigger_signals]
    return InferenceResult(
        rule_id="SYSTEMIC_CRISIS",
        severity="CRITICAL",
        title="Systemic compound crisis detected",
        summary=(
            f"Simultaneous crisis signals across {len(criticals)} domains: "
            + " | ".join(r.title for r in criticals)
        ),
        affected_entity_ids=entities[:MAX_AFFECTED_ENTITIES],
        suggested_action=(
            "Switch to a defensive posture immediately. Raise cash above 50%, "
            "hedge with gold and dollars, remove all leverage."
        ),
        confidence=0.90,
        trigger_signals=triggers[:20],
        expected_impact=ExpectedImpact(
            benchmark_range=(-5, -15),
            currency_direction="weaken",
            safe_havens=["asset:GOLD", "asset:US10Y", "asset:USDJPY"],
        ),
    )


def collapse_criticals(
    results: Sequence[InferenceResult], crisis: InferenceResult,
) -> list[InferenceResult]:
    """Replace every CRITICAL result with the synthesized crisis result."""
    kept = [r for r in results if r.severity != "CRITICAL"]
    return sort_results([crisis] + kept)
