"""
Geo Insight Engine — Main Entry Point

Runs the signal fusion and inference pipeline:
1. Gather upstream feeds (live API or bundled demo payloads)
2. Normalize and fuse signals against the entity graph
3. Evaluate inference rules
4. Write the narrative and assemble the briefing

Usage:
    # Briefing from the bundled demo payloads (template narrative without a key)
    python main.py --mode briefing

    # Briefing from a live API host, LLM narrative via GROQ_API_KEY
    python main.py --mode briefing --base-url https://example.org

    # Fused entity table only
    python main.py --mode fusion

    # Entity graph stats + node-link export
    python main.py --mode graph
"""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

import polars as pl

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from config.settings import DEV_DATA_ROOT, DEV_GRAPH_DIR, NarrativeSettings
from ingestion.demo_payloads import demo_payloads
from ingestion.pipeline import default_feeds, gather_signals
from knowledge_base.entity_graph import get_entity_graph
from processing.fusion import FusionEngine
from processing.llm_interface import get_llm_provider
from production.briefing_generator import BriefingGenerator

logger = logging.getLogger("main")


async def run_briefing(args: argparse.Namespace) -> None:
    settings = NarrativeSettings.from_env()
    generator = BriefingGenerator(
        feeds=default_feeds(args.base_url),
        provider=get_llm_provider(settings),
        settings=settings,
        synthesize_crisis=args.synthesize_crisis,
    )
    payloads = None if args.base_url else demo_payloads()
    briefing = await generator.generate(raw_payloads=payloads)

    if args.output:
        briefing.write_markdown(Path(args.output))
    else:
        stamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
        briefing.write_markdown(DEV_DATA_ROOT / "briefings" / f"briefing_{stamp}.md")

    print(json.dumps(briefing.to_dict(), indent=2, ensure_ascii=False, default=str))


async def run_fusion(args: argparse.Namespace) -> None:
    payloads = None if args.base_url else demo_payloads()
    gathered = await gather_signals(default_feeds(args.base_url), raw_payloads=payloads)
    fusion = FusionEngine(get_entity_graph()).fuse(gathered.signals)

    logger.info("\n" + "=" * 70)
    logger.info("FUSED ENTITIES — global risk %d", fusion.global_risk_level)
    logger.info("=" * 70)
    with pl.Config(tbl_rows=50, tbl_width_chars=140, fmt_str_lengths=60):
        print(fusion.to_frame())
    if fusion.active_convergence_zones:
        logger.info("Convergence zones: %s", ", ".join(fusion.active_convergence_zones))
    for warning in gathered.stale_warnings:
        logger.warning("Stale: %s", warning)


def run_graph(args: argparse.Namespace) -> None:
    graph = get_entity_graph()
    stats = graph.stats()

    logger.info("\n" + "=" * 70)
    logger.info("ENTITY GRAPH")
    logger.info("=" * 70)
    logger.info("  Entities: %d", stats.entities)
    logger.info("  Edges: %d", stats.edges)
    logger.info("  Density: %.4f", stats.density)
    for entity_type, count in sorted(stats.by_type.items()):
        logger.info("    %-16s %3d", entity_type, count)
    for edge_type, count in sorted(stats.by_edge_type.items()):
        logger.info("    %-24s %3d", edge_type, count)

    output = Path(args.output) if args.output else DEV_GRAPH_DIR / "entity_graph.json"
    graph.export_graph(output)


async def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Geo Insight Engine")
    parser.add_argument(
        "--mode",
        choices=["briefing", "fusion", "graph"],
        default="briefing",
        help="Execution mode",
    )
    parser.add_argument("--base-url", type=str, default=None, help="Live feed API base URL (default: demo payloads)")
    parser.add_argument("--output", type=str, default=None, help="Output path (briefing markdown or graph JSON)")
    parser.add_argument("--synthesize-crisis", action="store_true", help="Collapse 3+ CRITICAL conditions into one alert")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    if args.mode == "graph":
        run_graph(args)
        return

    if args.mode == "fusion":
        await run_fusion(args)
        return

    await run_briefing(args)


def cli() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    cli()
