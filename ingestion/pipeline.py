"""
Ingestion pipeline — concurrent feed collection and normalization.

Every upstream source is a SignalFeed: an async loader returning the raw JSON
payload plus the normalizer that turns it into NormalizedSignals. All loaders
run concurrently under per-feed timeouts; normalization then runs in feed
order. A feed that fails to load or normalize contributes a stale warning and
no signals — it never aborts the briefing.

Payloads can also be supplied directly (raw_payloads), which bypasses the
loaders entirely; that is how the CLI demo and the tests run.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional

import httpx

from config.settings import DEFAULT_FEED_TIMEOUT, FAST_FEED_TIMEOUT
from ingestion.normalizers.blackswan import normalize_blackswan
from ingestion.normalizers.convergence import normalize_convergence
from ingestion.normalizers.economic_calendar import normalize_economic_calendar
from ingestion.normalizers.event_tagger import normalize_event_tags
from ingestion.normalizers.impact_scoring import normalize_aggregated_impact
from ingestion.normalizers.market_data import normalize_market_data
from ingestion.normalizers.pattern_matcher import normalize_pattern_analysis
from ingestion.normalizers.vip_aircraft import normalize_vip_aircraft
from ingestion.signals import NormalizedSignal, Normalizer, utc_now

logger = logging.getLogger(__name__)

Loader = Callable[[], Awaitable[Optional[dict]]]


@dataclass
class SignalFeed:
    """One upstream source: how to load it and how to normalize it."""
    name: str
    normalizer: Normalizer
    loader: Optional[Loader] = None
    timeout: float = DEFAULT_FEED_TIMEOUT


@dataclass
class GatherResult:
    signals: list[NormalizedSignal] = field(default_factory=list)
    payloads: dict[str, Any] = field(default_factory=dict)
    stale_warnings: list[str] = field(default_factory=list)
    feed_counts: dict[str, int] = field(default_factory=dict)


def http_json_loader(
    url: str,
    timeout: float = DEFAULT_FEED_TIMEOUT,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Loader:
    """Loader that GETs a JSON document; non-2xx responses raise."""
    async def load() -> Optional[dict]:
        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            resp = await client.get(url)
            resp.raise_for_status()
            return resp.json()
    return load


# Feed name → normalizer, in the order feeds are processed
NORMALIZERS: dict[str, Normalizer] = {
    "blackswan": normalize_blackswan,
    "vip_aircraft": normalize_vip_aircraft,
    "convergence": normalize_convergence,
    "market_data": normalize_market_data,
    "economic_calendar": normalize_economic_calendar,
    "event_tagger": normalize_event_tags,
    "impact_score": normalize_aggregated_impact,
    "pattern_matcher": normalize_pattern_analysis,
}

# Feed name → (path under the API base URL, timeout); others are client-side
FEED_ENDPOINTS: dict[str, tuple[str, float]] = {
    "blackswan": ("/api/blackswan", DEFAULT_FEED_TIMEOUT),
    "vip_aircraft": ("/api/vip-aircraft", FAST_FEED_TIMEOUT),
    "convergence": ("/api/convergence", FAST_FEED_TIMEOUT),
    "market_data": ("/api/korea-market", FAST_FEED_TIMEOUT),
    "economic_calendar": ("/api/economic-calendar", FAST_FEED_TIMEOUT),
}


def default_feeds(
    base_url: Optional[str] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> list[SignalFeed]:
    """
    The standard feed set. Without a base_url no loaders are attached and
    the feeds only accept supplied payloads.
    """
    feeds = []
    for name, normalizer in NORMALIZERS.items():
        loader, timeout = None, DEFAULT_FEED_TIMEOUT
        if base_url and name in FEED_ENDPOINTS:
            path, timeout = FEED_ENDPOINTS[name]
            loader = http_json_loader(base_url.rstrip("/") + path, timeout, transport)
        feeds.append(SignalFeed(name=name, normalizer=normalizer, loader=loader, timeout=timeout))
    return feeds


async def _load(feed: SignalFeed) -> Optional[dict]:
    if feed.loader is None:
        return None
    return await asyncio.wait_for(feed.loader(), timeout=feed.timeout)


async def gather_signals(
    feeds: list[SignalFeed],
    raw_payloads: Optional[dict[str, Any]] = None,
    now: Optional[datetime] = None,
) -> GatherResult:
    """
    Load every feed concurrently, then normalize each payload.

    Args:
        feeds: Feeds to collect
        raw_payloads: Feed name → payload; when given, loaders are not called
        now: Reference time passed to normalizers

    Returns:
        GatherResult with signals, payloads by feed and stale warnings
    """
    now = now or utc_now()
    result = GatherResult()

    if raw_payloads is not None:
        loaded: list[Any] = [raw_payloads.get(feed.name) for feed in feeds]
    else:
        loaded = await asyncio.gather(*(_load(feed) for feed in feeds), return_exceptions=True)

    for feed, payload in zip(feeds, loaded):
        if isinstance(payload, BaseException):
            reason = "timed out" if isinstance(payload, asyncio.TimeoutError) else str(payload)
            logger.error("FAIL: %s load — %s", feed.name, reason or type(payload).__name__)
            result.stale_warnings.append(f"{feed.name}: data collection failed ({reason or type(payload).__name__})")
            continue
        if payload is None:
            continue
        if not isinstance(payload, dict):
            reason = f"expected an object, got {type(payload).__name__}"
            logger.error("FAIL: %s normalize — %s", feed.name, reason)
            result.stale_warnings.append(f"{feed.name}: normalization failed ({reason})")
            continue

        try:
            signals = feed.normalizer(payload, now=now)
        except Exception as exc:
            logger.error("FAIL: %s normalize — %s", feed.name, exc)
            result.stale_warnings.append(f"{feed.name}: normalization failed ({exc})")
            continue

        # Only payloads that normalized cleanly feed the inference context
        result.payloads[feed.name] = payload
        result.signals.extend(signals)
        result.feed_counts[feed.name] = len(signals)

    logger.info(
        "Gathered %d signals from %d feeds (%d stale)",
        len(result.signals), len(result.feed_counts), len(result.stale_warnings),
    )
    return result
