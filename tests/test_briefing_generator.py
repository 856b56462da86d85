from __future__ import annotations

import asyncio
import json
from datetime import datetime, timedelta, timezone

from config.settings import NarrativeSettings
from ingestion.demo_payloads import demo_payloads
from ingestion.pipeline import SignalFeed
from ingestion.normalizers.market_data import normalize_market_data
from processing.fusion import FusionResult
from processing.inference_engine import ExpectedImpact, InferenceResult
from processing.llm_interface import BaseLLMProvider, LLMResponse
from processing.state import InsightState
from production.briefing_generator import (
    BriefingGenerator,
    build_market_outlook,
    compute_risk_score,
    count_by_severity,
    generate_briefing,
)
from knowledge_base.entity_graph import get_entity_graph

NOW = datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)


class StaticProvider(BaseLLMProvider):
    async def complete(self, system_prompt, user_prompt, temperature=0.3, max_tokens=400):
        return LLMResponse(raw_text="Peninsula risk is elevated; trim KOSPI beta and hold gold hedges. " * 2)


def _generator(state=None, **kwargs) -> BriefingGenerator:
    return BriefingGenerator(state=state or InsightState(), settings=NarrativeSettings(), **kwargs)


def _generate(generator, payloads=None, now=NOW):
    return asyncio.run(generator.generate(raw_payloads=payloads, now=now))


# ── Scoring ───────────────────────────────────────────────────────────────────

def test_compute_risk_score_blend():
    assert compute_risk_score(60, {"CRITICAL": 1, "ELEVATED": 1}) == 51
    # Severity bonus capped at 30
    assert compute_risk_score(100, {"CRITICAL": 3}) == 79
    assert compute_risk_score(0, {}) == 0


def test_compute_risk_score_rounds_half_up():
    # ELEVATED 10 + WATCH 5 -> 15 * 0.3 = 4.5
    assert compute_risk_score(0, {"ELEVATED": 1, "WATCH": 1}) == 5


def test_count_by_severity_has_every_level():
    counts = count_by_severity([])
    assert counts == {"CRITICAL": 0, "ELEVATED": 0, "WATCH": 0, "INFO": 0}


def test_market_outlook_hedges_and_opportunities():
    fusion = FusionResult(timestamp=NOW, entity_signals=[], global_risk_level=0)
    inferences = [
        InferenceResult("A", "ELEVATED", "Risk A", "s", [], "Hedge now", 0.7,
                        expected_impact=ExpectedImpact((-1, -3), "weaken", ["asset:GOLD", "asset:US10Y"])),
        InferenceResult("B", "WATCH", "Rally B", "s", [], "Add growth", 0.5,
                        expected_impact=ExpectedImpact((1, 4), "strengthen", ["asset:GOLD"])),
        InferenceResult("C", "INFO", "Info C", "s", [], "Nothing", 0.5),
    ]
    outlook = build_market_outlook(fusion, inferences, get_entity_graph())
    assert outlook.benchmark_sentiment == "neutral"
    assert outlook.key_risks == ["Risk A", "Rally B"]
    assert outlook.key_opportunities == ["Add growth"]
    assert outlook.hedge_suggestions == ["Gold", "US 10Y Treasury"]


# ── End to end ────────────────────────────────────────────────────────────────

def test_demo_briefing_template_narrative():
    briefing = _generate(_generator(), demo_payloads(NOW))

    assert briefing.narrative_method == "template"
    assert briefing.narrative.startswith("[Briefing]")
    assert briefing.stale_warnings == []
    assert briefing.signal_summary.total > 10
    assert briefing.signal_summary.by_severity["CRITICAL"] >= 1
    assert "NK_COMPOUND_CRISIS" in [r.rule_id for r in briefing.top_inferences]
    assert briefing.risk_label != "Stable"
    assert len(briefing.signal_summary.top_entities) == 5
    assert briefing.market_outlook.benchmark_sentiment == "risk_off"
    assert briefing.meta.rules_evaluated == 15


def test_briefing_serializes_to_json():
    briefing = _generate(_generator(), demo_payloads(NOW))
    data = json.loads(json.dumps(briefing.to_dict(), ensure_ascii=False))
    assert data["generated_at"] == NOW.isoformat()
    assert data["top_inferences"][0]["severity"] == "CRITICAL"


def test_rules_deduplicated_across_briefings():
    state = InsightState()
    generator = _generator(state)
    first = _generate(generator, demo_payloads(NOW))
    second = _generate(generator, demo_payloads(NOW + timedelta(hours=1)), now=NOW + timedelta(hours=1))
    first_ids = {r.rule_id for r in first.top_inferences}
    second_ids = {r.rule_id for r in second.top_inferences}
    assert "NK_COMPOUND_CRISIS" in first_ids
    assert "NK_COMPOUND_CRISIS" not in second_ids


def test_llm_narrative_when_provider_configured():
    briefing = _generate(_generator(provider=StaticProvider()), demo_payloads(NOW))
    assert briefing.narrative_method == "llm"
    assert briefing.narrative.startswith("Peninsula risk is elevated")


def test_feed_failures_degrade_gracefully():
    market = demo_payloads(NOW)["market_data"]

    async def ok():
        return market

    async def down():
        raise ConnectionError("upstream 502")

    feeds = [
        SignalFeed("market_data", normalize_market_data, ok),
        SignalFeed("blackswan", normalize_market_data, down),
    ]
    briefing = _generate(_generator(feeds=feeds))
    assert briefing.stale_warnings == ["blackswan: data collection failed (upstream 502)"]
    assert briefing.signal_summary.total == 3
    assert "## Stale Data" in briefing.to_markdown()


def test_empty_inputs_give_calm_briefing():
    briefing = _generate(_generator(feeds=[]))
    assert briefing.global_risk_score == 0
    assert briefing.risk_label == "Stable"
    assert [r.rule_id for r in briefing.top_inferences] == ["CALM_MARKET"]


def test_write_markdown(tmp_path):
    briefing = _generate(_generator(), demo_payloads(NOW))
    path = briefing.write_markdown(tmp_path / "briefings" / "out.md")
    text = path.read_text(encoding="utf-8")
    assert text.startswith("# Insight Briefing — 2025-03-01 09:00 UTC")
    assert "## Inferences" in text


def test_generate_briefing_one_call():
    briefing = asyncio.run(generate_briefing(
        raw_payloads=demo_payloads(),
        settings=NarrativeSettings(),
        state=InsightState(),
    ))
    assert briefing.narrative_method == "template"
    assert briefing.top_inferences


def test_malformed_payloads_become_stale_warnings():
    payloads = demo_payloads(NOW)
    payloads["blackswan"] = ["not", "a", "dict"]
    payloads["market_data"] = {"kospi": {"change_percent": "n/a"}}
    payloads["economic_calendar"] = 42

    briefing = _generate(_generator(), payloads)

    stale_feeds = sorted(w.split(":")[0] for w in briefing.stale_warnings)
    assert stale_feeds == ["blackswan", "economic_calendar", "market_data"]
    assert briefing.signal_summary.total > 0
    assert briefing.top_inferences


def test_malformed_fields_read_as_absent():
    payloads = demo_payloads(NOW)
    payloads["blackswan"]["tail_risk_score"] = None
    payloads["market_data"]["kimchi_premium"] = None
    payloads["economic_calendar"]["events"].append(
        {"id": "boj-next", "title": "BOJ meeting", "institution": "BOJ", "days_until": "soon"},
    )

    briefing = _generate(_generator(), payloads)

    assert briefing.stale_warnings == []
    assert briefing.top_inferences
