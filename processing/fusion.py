"""
Signal Fusion Engine — combines normalized signals into per-entity scores.

Pipeline:
  1. Recency decay (6h half-life)
  2. Entity grouping + 1-hop propagation along strong graph edges
  3. Per-entity fusion: strongest-per-source dedup, max/mean blend
  4. Convergence amplification when 3+ independent sources agree
  5. Cross-validation boost (news confirmed by market or factual sources)
  6. Weak-signal accumulation floor
  7. Direction vote weighted by strength × confidence
  8. Rank-weighted global risk level and active convergence zones

The engine is stateless; the same inputs and `now` always produce the same
FusionResult.
"""
from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Sequence

import numpy as np
import polars as pl

from config.settings import (
    CONVERGENCE_STEP,
    CONVERGENCE_THRESHOLD,
    CROSS_VALIDATION_BOOST_STEP,
    DIRECTION_DOMINANCE_RATIO,
    DOMINANT_SOURCE_LIMIT,
    GLOBAL_RISK_TOP_N,
    HALF_LIFE,
    MAX_CONVERGENCE_MULT,
    MAX_CROSS_VALIDATION_BONUS,
    MIN_PROPAGATION_EDGE_WEIGHT,
    PROPAGATION_EDGE_TYPES,
    PROPAGATION_WEIGHT_FACTOR,
    WEAK_SIGNAL_ACCUMULATED,
    WEAK_SIGNAL_FLOOR,
    WEAK_SIGNAL_MIN_COUNT,
)
from ingestion.signals import NormalizedSignal, SIGNAL_DIRECTIONS, utc_now
from knowledge_base.entity_graph import EntityGraph
from knowledge_base.schema import clamp

logger = logging.getLogger(__name__)


@dataclass
class FusedEntitySignal:
    """All evidence about one entity, collapsed to a single score."""
    entity_id: str
    signals: list[NormalizedSignal]
    fused_strength: float
    fused_direction: str
    convergence_multiplier: float = 1.0
    direction_dominant: bool = False
    signal_count: int = 0
    dominant_sources: list[str] = field(default_factory=list)


@dataclass
class FusionResult:
    timestamp: datetime
    entity_signals: list[FusedEntitySignal]
    global_risk_level: int
    active_convergence_zones: list[str] = field(default_factory=list)

    def get(self, entity_id: str) -> Optional[FusedEntitySignal]:
        for fused in self.entity_signals:
            if fused.entity_id == entity_id:
                return fused
        return None

    def strength(self, entity_id: str) -> float:
        """Fused strength for an entity, 0 when nothing touched it."""
        fused = self.get(entity_id)
        return fused.fused_strength if fused else 0.0

    def direction(self, entity_id: str) -> Optional[str]:
        fused = self.get(entity_id)
        return fused.fused_direction if fused else None

    @property
    def signal_count(self) -> int:
        return sum(e.signal_count for e in self.entity_signals)

    def to_frame(self) -> pl.DataFrame:
        """Per-entity table, strongest first."""
        return pl.DataFrame(
            {
                "entity_id": [e.entity_id for e in self.entity_signals],
                "fused_strength": [round(e.fused_strength, 2) for e in self.entity_signals],
                "direction": [e.fused_direction for e in self.entity_signals],
                "dominant": [e.direction_dominant for e in self.entity_signals],
                "convergence": [e.convergence_multiplier for e in self.entity_signals],
                "signals": [e.signal_count for e in self.entity_signals],
                "sources": [", ".join(e.dominant_sources) for e in self.entity_signals],
            },
            schema={
                "entity_id": pl.Utf8,
                "fused_strength": pl.Float64,
                "direction": pl.Utf8,
                "dominant": pl.Boolean,
                "convergence": pl.Float64,
                "signals": pl.Int64,
                "sources": pl.Utf8,
            },
        )


# ─── Helpers ─────────────────────────────────────────────────────────────────

def decay_strength(strength: float, age_seconds: float) -> float:
    """Exponential recency decay; negative ages are treated as zero."""
    age = max(0.0, age_seconds)
    return strength * 0.5 ** (age / HALF_LIFE.total_seconds())


def is_news_source(source: str) -> bool:
    return source.startswith("blackswan:") or source in ("event_tagger", "pattern_matcher")


def is_market_source(source: str) -> bool:
    return source in ("market_data", "blackswan:financial", "impact_score")


def is_factual_source(source: str) -> bool:
    return source in ("vip_aircraft", "convergence_zone", "economic_calendar")


def vote_direction(signals: Sequence[NormalizedSignal]) -> tuple[str, bool]:
    """
    Strength × confidence vote across directions.

    Returns (direction, dominant). All-zero votes are neutral and not
    dominant; ties go to the first direction in declaration order.
    """
    votes = {d: 0.0 for d in SIGNAL_DIRECTIONS}
    for s in signals:
        votes[s.direction] += s.strength * s.confidence
    ranked = sorted(votes.items(), key=lambda kv: kv[1], reverse=True)
    top_dir, top_vote = ranked[0]
    if top_vote == 0:
        return "neutral", False
    runner_up = ranked[1][1]
    return top_dir, top_vote > runner_up * DIRECTION_DOMINANCE_RATIO


def convergence_multiplier(source_count: int) -> float:
    if source_count < CONVERGENCE_THRESHOLD:
        return 1.0
    step = source_count - CONVERGENCE_THRESHOLD + 1
    return min(MAX_CONVERGENCE_MULT, 1.0 + step * CONVERGENCE_STEP)


def cross_validation_boost(sources: Sequence[str]) -> float:
    has_news = any(is_news_source(s) for s in sources)
    has_market = any(is_market_source(s) for s in sources)
    has_factual = any(is_factual_source(s) for s in sources)
    pairs = (has_news and has_market) + (has_news and has_factual) + (has_market and has_factual)
    return pairs * CROSS_VALIDATION_BOOST_STEP


def global_risk(strengths: Sequence[float]) -> int:
    """Rank-weighted mean of the strongest entities (weights N..1)."""
    top_n = min(GLOBAL_RISK_TOP_N, len(strengths))
    if top_n == 0:
        return 0
    top = np.sort(np.asarray(strengths, dtype=float))[::-1][:top_n]
    weights = np.arange(top_n, 0, -1, dtype=float)
    level = float(np.dot(top, weights) / weights.sum())
    return int(round(min(100.0, level)))


# ─── Engine ──────────────────────────────────────────────────────────────────

class FusionEngine:
    """
    Fuses normalized signals against an entity graph.

    Usage:
        engine = FusionEngine(get_entity_graph())
        result = engine.fuse(signals)
    """

    def __init__(self, graph: EntityGraph):
        self.graph = graph

    def fuse(
        self,
        signals: Sequence[NormalizedSignal],
        now: Optional[datetime] = None,
    ) -> FusionResult:
        now = now or utc_now()

        decayed = [
            dataclasses.replace(s, strength=decay_strength(s.strength, s.age_seconds(now)))
            for s in signals
        ]

        entity_map = self._group_by_entity(decayed)
        fused = [self._fuse_entity(eid, group) for eid, group in entity_map.items() if group]
        fused.sort(key=lambda e: e.fused_strength, reverse=True)

        zones = [
            e.entity_id for e in fused
            if e.convergence_multiplier > 1.0 and self._is_region(e.entity_id)
        ]

        result = FusionResult(
            timestamp=now,
            entity_signals=fused,
            global_risk_level=global_risk([e.fused_strength for e in fused]),
            active_convergence_zones=zones,
        )
        logger.info(
            "Fused %d signals into %d entities (global risk %d, %d convergence zones)",
            len(signals), len(fused), result.global_risk_level, len(zones),
        )
        return result

    def _is_region(self, entity_id: str) -> bool:
        entity = self.graph.get_entity(entity_id)
        return entity is not None and entity.type == "region"

    def _group_by_entity(
        self, signals: Sequence[NormalizedSignal],
    ) -> dict[str, list[NormalizedSignal]]:
        """Direct assignment plus one hop of attenuated propagation."""
        entity_map: dict[str, list[NormalizedSignal]] = {}

        for signal in signals:
            for eid in signal.affected_entity_ids:
                entity_map.setdefault(eid, []).append(signal)

            direct = set(signal.affected_entity_ids)
            for eid in signal.affected_entity_ids:
                hops = self.graph.traverse(
                    eid, PROPAGATION_EDGE_TYPES,
                    max_depth=1, min_weight=MIN_PROPAGATION_EDGE_WEIGHT,
                )
                for hop in hops:
                    if hop.entity_id in direct:
                        continue
                    propagated = dataclasses.replace(
                        signal,
                        id=f"{signal.id}:prop:{hop.entity_id}",
                        strength=signal.strength * hop.cumulative_weight * PROPAGATION_WEIGHT_FACTOR,
                        affected_entity_ids=[hop.entity_id],
                    )
                    entity_map.setdefault(hop.entity_id, []).append(propagated)

        return entity_map

    def _fuse_entity(self, entity_id: str, signals: list[NormalizedSignal]) -> FusedEntitySignal:
        # Strongest signal per source; insertion order gives dominant sources
        by_source: dict[str, NormalizedSignal] = {}
        for s in signals:
            existing = by_source.get(s.source)
            if existing is None or s.strength > existing.strength:
                by_source[s.source] = s
        deduped = list(by_source.values())
        sources = list(by_source.keys())

        strengths = np.array([s.strength for s in deduped], dtype=float)
        fused = float(strengths.max() * 0.6 + strengths.mean() * 0.4)

        multiplier = convergence_multiplier(len(sources))
        fused *= multiplier

        fused += min(MAX_CROSS_VALIDATION_BONUS, cross_validation_boost(sources) * fused)

        weak = strengths[strengths < WEAK_SIGNAL_FLOOR]
        if len(weak) >= WEAK_SIGNAL_MIN_COUNT and weak.sum() >= WEAK_SIGNAL_ACCUMULATED:
            fused = max(fused, WEAK_SIGNAL_ACCUMULATED * 0.9)

        direction, dominant = vote_direction(deduped)

        return FusedEntitySignal(
            entity_id=entity_id,
            signals=deduped,
            fused_strength=clamp(fused, 0.0, 100.0),
            fused_direction=direction,
            convergence_multiplier=multiplier,
            direction_dominant=dominant,
            signal_count=len(deduped),
            dominant_sources=sources[:DOMINANT_SOURCE_LIMIT],
        )
