"""
Narrative Assembler — investor briefing text from fused risk and inferences.

Two methods, always reported to the caller:
  llm       the configured provider wrote (or recently wrote) the text
  template  deterministic text built from the same structured input

Provider output is cached process-wide for 15 minutes; any provider failure,
timeout or too-short response drops to the template without raising.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Literal, Optional, Sequence

from config.settings import NarrativeSettings
from ingestion.signals import utc_now
from knowledge_base.entity_seed import describe_pattern
from processing.fusion import FusionResult
from processing.inference_engine import InferenceResult
from processing.llm_interface import BaseLLMProvider
from processing.state import InsightState, get_default_state

logger = logging.getLogger(__name__)

NarrativeMethod = Literal["llm", "template"]

MAX_PROMPT_INFERENCES = 4
MAX_TEMPLATE_INFERENCES = 3

SYSTEM_PROMPT = """You are a geopolitical risk analyst writing for individual investors in Korean markets.
Write an investment briefing from the structured threat analysis below.

Rules:
- English only, at most 250 characters, 3-4 short paragraphs
- First paragraph: one-line summary of the current threat level
- Middle: the 2-3 key threat or opportunity factors
- Last: a concrete action (name sectors or stocks)
- No speculation or hype; keep a risk-management perspective
- Add no information beyond the data given
- Always mention the historical analogue when one is provided"""


@dataclass
class NarrativeInference:
    title: str
    summary: str
    severity: str
    suggested_action: str
    historical_ref: Optional[str] = None


@dataclass
class NarrativeInput:
    risk_score: int
    risk_label: str
    inferences: list[NarrativeInference] = field(default_factory=list)
    signal_count: int = 0
    convergence_zone_names: list[str] = field(default_factory=list)


@dataclass
class NarrativeOutcome:
    text: str
    method: NarrativeMethod


def build_narrative_input(
    fusion: FusionResult,
    inferences: Sequence[InferenceResult],
    risk_score: int,
    risk_label: str,
    name_fn: Callable[[str], str],
) -> NarrativeInput:
    return NarrativeInput(
        risk_score=risk_score,
        risk_label=risk_label,
        inferences=[
            NarrativeInference(
                title=inf.title,
                summary=inf.summary,
                severity=inf.severity,
                suggested_action=inf.suggested_action,
                historical_ref=(
                    describe_pattern(inf.historical_pattern_ids[0])
                    if inf.historical_pattern_ids else None
                ),
            )
            for inf in inferences[:MAX_PROMPT_INFERENCES]
        ],
        signal_count=fusion.signal_count,
        convergence_zone_names=[name_fn(z) for z in fusion.active_convergence_zones],
    )


def build_user_prompt(data: NarrativeInput) -> str:
    zones = ", ".join(data.convergence_zone_names) or "none"
    lines = [
        f"Threat level: {data.risk_score}/100 ({data.risk_label})",
        f"Active signals: {data.signal_count}",
        f"Convergence zones: {zones}",
        "",
        "Key findings:",
    ]
    for i, inf in enumerate(data.inferences, start=1):
        entry = f"{i}. [{inf.severity}] {inf.title}\n   {inf.summary}\n   Suggested: {inf.suggested_action}"
        if inf.historical_ref:
            entry += f"\n   Reference: {inf.historical_ref}"
        lines.append(entry)
    return "\n".join(lines)


def build_template(data: NarrativeInput) -> str:
    """Deterministic narrative used whenever the provider path yields nothing."""
    if not data.inferences:
        return (
            f"[Briefing] Risk level {data.risk_label} ({data.risk_score}/100) — major threat "
            "signals are below threshold. Normal market environment."
        )

    lines = [
        f"[Briefing] Risk level: {data.risk_label} ({data.risk_score}/100) | "
        f"Active signals: {data.signal_count}",
        "",
    ]
    for inf in data.inferences[:MAX_TEMPLATE_INFERENCES]:
        lines.append(f"▸ {inf.title}")
        lines.append(f"  {inf.summary}")
        lines.append(f"  Action: {inf.suggested_action}")
        if inf.historical_ref:
            lines.append(f"  Reference: {inf.historical_ref}")
        lines.append("")

    if data.convergence_zone_names:
        lines.append(f"Convergence zones: {', '.join(data.convergence_zone_names)}")

    return "\n".join(lines).strip()


class NarrativeAssembler:
    """
    Chooses between the cached/provider narrative and the template.

    Usage:
        assembler = NarrativeAssembler(get_llm_provider(), state)
        outcome = await assembler.generate(fusion, inferences, 42, "Alert", graph.entity_name)
    """

    def __init__(
        self,
        provider: Optional[BaseLLMProvider] = None,
        state: Optional[InsightState] = None,
        settings: Optional[NarrativeSettings] = None,
    ):
        self.provider = provider
        self.state = state or get_default_state()
        self.settings = settings or NarrativeSettings()

    async def generate(
        self,
        fusion: FusionResult,
        inferences: Sequence[InferenceResult],
        risk_score: int,
        risk_label: str,
        name_fn: Optional[Callable[[str], str]] = None,
        now: Optional[datetime] = None,
    ) -> NarrativeOutcome:
        now = now or utc_now()
        data = build_narrative_input(
            fusion, inferences, risk_score, risk_label, name_fn or (lambda eid: eid),
        )

        if self.provider is not None:
            cached = self.state.cached_narrative(now, self.settings.cache_ttl)
            if cached is not None:
                return NarrativeOutcome(cached, "llm")

            text = await self._call_provider(data)
            if text is not None:
                self.state.store_narrative(text, now)
                return NarrativeOutcome(text, "llm")

        return NarrativeOutcome(build_template(data), "template")

    async def _call_provider(self, data: NarrativeInput) -> Optional[str]:
        try:
            response = await asyncio.wait_for(
                self.provider.complete(
                    SYSTEM_PROMPT,
                    build_user_prompt(data),
                    temperature=self.settings.temperature,
                    max_tokens=self.settings.max_tokens,
                ),
                timeout=self.settings.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning("Narrative provider timed out after %.0fs, using template",
                           self.settings.timeout_seconds)
            return None
        except Exception as exc:
            logger.warning("Narrative provider failed, using template: %s", exc)
            return None

        text = (response.raw_text or "").strip()
        if len(text) <= self.settings.min_length:
            logger.warning("Narrative provider returned %d chars, using template", len(text))
            return None
        return text
