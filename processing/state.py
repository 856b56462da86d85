"""
Process-wide mutable state shared between briefings.

Holds the per-rule last-fire timestamps used for inference dedup and the
single narrative cache slot. Everything else in the pipeline is recomputed
per briefing. Tests and isolated runs pass their own InsightState; the CLI
and generate_briefing() share get_default_state().
"""
from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional


@dataclass
class CachedNarrative:
    text: str
    created_at: datetime


class InsightState:
    def __init__(self):
        self._lock = threading.Lock()
        self._rule_fired_at: dict[str, datetime] = {}
        self._narrative: Optional[CachedNarrative] = None

    # ─── Rule fire history ───────────────────────────────────────────────

    def can_fire(self, rule_id: str, now: datetime, ttl: timedelta) -> bool:
        """True when the rule never fired or its last firing is older than ttl."""
        with self._lock:
            last = self._rule_fired_at.get(rule_id)
        return last is None or now - last > ttl

    def mark_fired(self, rule_id: str, now: datetime) -> None:
        with self._lock:
            self._rule_fired_at[rule_id] = now

    def last_fired(self, rule_id: str) -> Optional[datetime]:
        with self._lock:
            return self._rule_fired_at.get(rule_id)

    # ─── Narrative cache ─────────────────────────────────────────────────

    def cached_narrative(self, now: datetime, ttl: timedelta) -> Optional[str]:
        with self._lock:
            cached = self._narrative
        if cached is None or now - cached.created_at >= ttl:
            return None
        return cached.text

    def store_narrative(self, text: str, now: datetime) -> None:
        with self._lock:
            self._narrative = CachedNarrative(text=text, created_at=now)

    def reset(self) -> None:
        with self._lock:
            self._rule_fired_at.clear()
            self._narrative = None


_default_state = InsightState()


def get_default_state() -> InsightState:
    return _default_state
