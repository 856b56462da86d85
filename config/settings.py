"""
Insight Engine — Configuration

Tuning constants for signal fusion, rule inference and narrative generation,
plus the single credential that selects how the briefing narrative is written.
"""
from __future__ import annotations
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Optional
import logging
import os

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
)

# ─── Storage Paths ───────────────────────────────────────────────────────────

# Only used by the CLI for exports; the engine itself persists nothing
DEV_DATA_ROOT = Path(__file__).parent.parent / "data"
DEV_GRAPH_DIR = DEV_DATA_ROOT / "graph"


# ─── Fusion ──────────────────────────────────────────────────────────────────

HALF_LIFE = timedelta(hours=6)

CONVERGENCE_THRESHOLD = 3           # distinct sources before amplification
CONVERGENCE_STEP = 0.25             # multiplier increment per extra source
MAX_CONVERGENCE_MULT = 2.0

CROSS_VALIDATION_BOOST_STEP = 0.12  # per confirmed category pair
MAX_CROSS_VALIDATION_BONUS = 15.0

PROPAGATION_EDGE_TYPES = ("affects", "belongs_to_sector", "supply_chain_dependency")
PROPAGATION_WEIGHT_FACTOR = 0.60
MIN_PROPAGATION_EDGE_WEIGHT = 0.45

WEAK_SIGNAL_FLOOR = 25.0            # individual "weak" threshold
WEAK_SIGNAL_ACCUMULATED = 60.0      # combined threshold
WEAK_SIGNAL_MIN_COUNT = 3

DIRECTION_DOMINANCE_RATIO = 1.4
GLOBAL_RISK_TOP_N = 8
DOMINANT_SOURCE_LIMIT = 3


# ─── Inference ───────────────────────────────────────────────────────────────

MAX_CRITICAL = 2
RULE_DEDUP_TTL = timedelta(hours=4)
SEVERITY_ORDER: dict[str, int] = {"CRITICAL": 0, "ELEVATED": 1, "WATCH": 2, "INFO": 3}
MAX_AFFECTED_ENTITIES = 8
SAFE_HAVEN_IDS = ("asset:GOLD", "asset:USDJPY", "asset:US10Y")

# Reference benchmark for the market outlook block
BENCHMARK_ENTITY_ID = "asset:KS11"


# ─── Briefing ────────────────────────────────────────────────────────────────

# Descending thresholds; first match wins
RISK_LABELS: list[tuple[int, str]] = [
    (80, "Crisis"),
    (60, "Severe"),
    (40, "Alert"),
    (20, "Caution"),
    (0, "Stable"),
]

SEVERITY_BONUS: dict[str, int] = {"CRITICAL": 20, "ELEVATED": 10, "WATCH": 5}
MAX_SEVERITY_BONUS = 30
FUSION_RISK_WEIGHT = 0.7
SEVERITY_RISK_WEIGHT = 0.3

TOP_INFERENCES = 5
TOP_ENTITIES = 5

DEFAULT_FEED_TIMEOUT = 8.0          # seconds
FAST_FEED_TIMEOUT = 5.0


# ─── Narrative / LLM ─────────────────────────────────────────────────────────

@dataclass
class NarrativeSettings:
    """Text-generation settings. A missing api_key means template-only narratives."""
    api_key: Optional[str] = None
    mode: str = "groq"                 # "groq" (OpenAI-compatible) or "claude"
    base_url: str = "https://api.groq.com/openai/v1"
    model: str = "llama-3.3-70b-versatile"
    temperature: float = 0.3
    max_tokens: int = 400
    timeout_seconds: float = 8.0
    cache_ttl: timedelta = timedelta(minutes=15)
    min_length: int = 50

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    @classmethod
    def from_env(cls) -> "NarrativeSettings":
        """
        Resolve the narrative credential from the environment.

        INSIGHT_LLM_MODE picks the provider; the matching key
        (GROQ_API_KEY or ANTHROPIC_API_KEY) is the only switch between
        the llm and template methods.
        """
        mode = os.environ.get("INSIGHT_LLM_MODE", "groq").lower()
        if mode == "claude":
            return cls(
                api_key=os.environ.get("ANTHROPIC_API_KEY") or None,
                mode="claude",
                model=os.environ.get("INSIGHT_LLM_MODEL", "claude-sonnet-4-20250514"),
            )
        return cls(
            api_key=os.environ.get("GROQ_API_KEY") or None,
            mode=mode,
            base_url=os.environ.get("INSIGHT_LLM_BASE_URL", cls.base_url),
            model=os.environ.get("INSIGHT_LLM_MODEL", cls.model),
        )


def get_risk_label(score: float) -> str:
    """Map a 0-100 risk score to its label."""
    for threshold, label in RISK_LABELS:
        if score >= threshold:
            return label
    return RISK_LABELS[-1][1]
