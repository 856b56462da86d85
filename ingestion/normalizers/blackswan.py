"""
Black-swan tail-risk modules → signals.

Each module (financial, pandemic, nuclear, cyber, geopolitical, supply_chain)
reports a 0-100 score; scores above the module threshold become one signal
on the module's fixed entity set. Scores above 50 read as risk-off.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from ingestion.normalizers.common import epoch_ms, payload_timestamp
from ingestion.signals import NormalizedSignal

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BlackSwanModule:
    key: str
    source: str
    entities: tuple[str, ...]
    confidence: float
    threshold: float
    label: Callable[[dict], str]


def _financial_label(m: dict) -> str:
    vix = (m.get("signals") or {}).get("vix", "?")
    return f"Financial stress {m['score']}/100 (VIX: {vix})"


BLACKSWAN_MODULES: list[BlackSwanModule] = [
    BlackSwanModule(
        "financial", "blackswan:financial",
        ("asset:KS11", "asset:SPX", "asset:VIX", "asset:USDKRW", "asset:BTC"),
        0.85, 15, _financial_label,
    ),
    BlackSwanModule(
        "pandemic", "blackswan:pandemic",
        ("event:pandemic", "sector:bio_pharma", "asset:KS11", "sector:shipping"),
        0.55, 20, lambda m: "Pandemic alert signals detected (ProMED/WHO)",
    ),
    BlackSwanModule(
        "nuclear", "blackswan:nuclear",
        ("event:nk_nuclear", "region:korean_peninsula", "asset:KS11", "sector:defense", "asset:GOLD"),
        0.60, 15, lambda m: f"Nuclear/radiation keywords detected ({m['score']}/100)",
    ),
    BlackSwanModule(
        "cyber", "blackswan:cyber",
        ("sector:cybersecurity", "sector:finance", "asset:KS11"),
        0.55, 20, lambda m: f"Cyber threat detected ({m['score']}/100)",
    ),
    BlackSwanModule(
        "geopolitical", "blackswan:geopolitical",
        ("asset:KS11", "asset:GOLD", "asset:OIL", "asset:USDKRW"),
        0.50, 15, lambda m: f"Geopolitical risk keywords surging ({m['score']}/100)",
    ),
    BlackSwanModule(
        "supply_chain", "blackswan:supply_chain",
        ("sector:shipping", "sector:semiconductor", "asset:KS11"),
        0.70, 20, lambda m: f"Supply chain stress ({m['score']}/100)",
    ),
]


def normalize_blackswan(data: dict, now: Optional[datetime] = None) -> list[NormalizedSignal]:
    ts = payload_timestamp(data, now)
    modules = data.get("modules") or {}
    signals = []

    for module in BLACKSWAN_MODULES:
        module_data = modules.get(module.key)
        if not module_data or module_data.get("score", 0) < module.threshold:
            continue
        score = float(module_data["score"])
        signals.append(NormalizedSignal(
            id=f"{module.source}:{epoch_ms(ts)}",
            source=module.source,
            strength=score,
            direction="risk_off" if score > 50 else "neutral",
            affected_entity_ids=list(module.entities),
            confidence=module.confidence,
            timestamp=ts,
            headline=module.label(module_data),
            raw=module_data,
        ))

    logger.debug("blackswan: %d modules above threshold", len(signals))
    return signals
