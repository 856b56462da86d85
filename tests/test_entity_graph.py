from __future__ import annotations

import json

import pytest

from knowledge_base.entity_graph import EntityGraph, GraphSeedError, get_entity_graph
from knowledge_base.entity_seed import HISTORICAL_PATTERNS, SEED_EDGES, SEED_ENTITIES, describe_pattern
from knowledge_base.schema import Edge, Entity


def _small_graph() -> EntityGraph:
    entities = [
        Entity("event:a", "event_template", "Event A", "이벤트 A"),
        Entity("country:b", "country", "B", "비", ("bee",)),
        Entity("asset:c", "asset", "C", "씨", ("cee", "index")),
        Entity("asset:d", "asset", "D", "디"),
        Entity("sector:e", "sector", "E", "이"),
    ]
    edges = [
        Edge("event:a", "country:b", "affects", 0.9),
        Edge("event:a", "asset:c", "affects", 0.5),
        Edge("country:b", "asset:d", "affects", 0.8),
        Edge("asset:c", "asset:d", "affects", 1.0),
        Edge("asset:c", "sector:e", "affects", 0.3),
        Edge("asset:d", "sector:e", "historically_correlated", 0.6, directional=False),
    ]
    return EntityGraph(entities, edges)


# ── Construction ──────────────────────────────────────────────────────────────

def test_seed_graph_builds():
    """The bundled seed data loads without dangling edges."""
    graph = get_entity_graph()
    stats = graph.stats()
    assert stats.entities == len(SEED_ENTITIES)
    assert stats.edges == len(SEED_EDGES)
    assert stats.by_type["country"] >= 10
    assert stats.by_type["company"] >= 8
    assert graph.has_entity("asset:KS11")
    assert get_entity_graph() is graph


def test_duplicate_entity_rejected():
    dup = [Entity("asset:x", "asset", "X", "X"), Entity("asset:x", "asset", "X2", "X2")]
    with pytest.raises(GraphSeedError):
        EntityGraph(dup, [])


def test_dangling_edge_rejected():
    entities = [Entity("asset:x", "asset", "X", "X")]
    with pytest.raises(GraphSeedError):
        EntityGraph(entities, [Edge("asset:x", "asset:missing", "affects", 0.5)])


def test_edge_weight_clamped():
    assert Edge("a:a", "b:b", "affects", 1.7).weight == 1.0
    assert Edge("a:a", "b:b", "affects", -0.2).weight == 0.0


# ── Lookups ───────────────────────────────────────────────────────────────────

def test_entity_name_falls_back_to_suffix():
    graph = _small_graph()
    assert graph.entity_name("country:b") == "B"
    assert graph.localized_name("asset:c") == "씨"
    assert graph.entity_name("asset:UNKNOWN") == "UNKNOWN"
    assert graph.get_entity("asset:UNKNOWN") is None


def test_neighbors_filtered_by_edge_type():
    graph = _small_graph()
    ids = {n.entity_id for n in graph.get_neighbors("event:a", ["affects"])}
    assert ids == {"country:b", "asset:c"}
    assert graph.get_neighbors("event:a", ["located_in"]) == []
    assert graph.get_neighbors("nowhere:x") == []


def test_non_directional_edge_walkable_both_ways():
    graph = _small_graph()
    forward = {n.entity_id for n in graph.get_neighbors("asset:d", ["historically_correlated"])}
    backward = {n.entity_id for n in graph.get_neighbors("sector:e", ["historically_correlated"])}
    assert forward == {"sector:e"}
    assert backward == {"asset:d"}


def test_reverse_neighbors_skip_mirrored_copy():
    """Reverse lookups report the stored orientation only."""
    graph = _small_graph()
    reverse = graph.get_reverse_neighbors("asset:d", ["historically_correlated"])
    assert reverse == []
    reverse = graph.get_reverse_neighbors("sector:e", ["historically_correlated"])
    assert [n.entity_id for n in reverse] == ["asset:d"]


def test_find_by_tags_substring_either_way():
    graph = _small_graph()
    assert {e.id for e in graph.find_by_tags(["ind"])} == {"asset:c"}
    assert {e.id for e in graph.find_by_tags(["BEEHIVE"])} == {"country:b"}


# ── Traversal ─────────────────────────────────────────────────────────────────

def test_traverse_multiplies_weights_and_sorts():
    graph = _small_graph()
    nodes = graph.traverse("event:a", ["affects"], max_depth=2, min_weight=0.4)
    ids = [n.entity_id for n in nodes]
    assert "event:a" not in ids
    # b: 0.9, d via b: 0.72, c: 0.5; sector:e edge is below min_weight
    assert ids == ["country:b", "asset:d", "asset:c"]
    by_id = {n.entity_id: n for n in nodes}
    assert by_id["asset:d"].cumulative_weight == pytest.approx(0.72)
    assert by_id["asset:d"].path == ["event:a", "country:b", "asset:d"]
    assert by_id["asset:d"].depth == 2


def test_traverse_first_path_wins():
    """A node reached at depth 1 is not revisited through a heavier later path."""
    graph = _small_graph()
    nodes = graph.traverse("event:a", ["affects"], max_depth=3, min_weight=0.0)
    assert [n.entity_id for n in nodes].count("asset:d") == 1
    e = next(n for n in nodes if n.entity_id == "sector:e")
    assert e.path == ["event:a", "asset:c", "sector:e"]


def test_traverse_respects_max_depth():
    graph = _small_graph()
    nodes = graph.traverse("event:a", ["affects"], max_depth=1, min_weight=0.0)
    assert {n.entity_id for n in nodes} == {"country:b", "asset:c"}


def test_affected_assets_and_sectors_on_seed():
    graph = get_entity_graph()
    assets = [n.entity_id for n in graph.get_affected_assets("event:nk_missile")]
    assert assets[0] == "asset:USDKRW"
    assert "asset:KS11" in assets
    sectors = [n.entity_id for n in graph.get_affected_sectors("event:nk_missile")]
    assert "sector:defense" in sectors


def test_affected_asset_direction_hint():
    graph = get_entity_graph()
    ks11 = next(n for n in graph.get_affected_assets("event:nk_missile") if n.entity_id == "asset:KS11")
    assert ks11.direction == "risk_off"


def test_companies_in_sector():
    graph = get_entity_graph()
    ids = {e.id for e in graph.get_companies_in_sector("sector:defense")}
    assert ids == {"company:hanwha_aero", "company:kai", "company:hhi"}


def test_adversaries_cover_both_orientations():
    graph = get_entity_graph()
    assert {e.id for e in graph.get_adversaries("country:south_korea")} == {"country:north_korea"}
    assert {e.id for e in graph.get_adversaries("country:israel")} == {"country:iran"}


def test_explain_impact_path():
    graph = get_entity_graph()
    assert graph.explain_impact("event:nk_missile", "asset:KS11") == ["event:nk_missile", "asset:KS11"]
    assert graph.explain_impact("asset:BTC", "asset:GOLD") == ["asset:BTC", "asset:GOLD"]


def test_export_graph_node_link(tmp_path):
    graph = _small_graph()
    out = tmp_path / "graph" / "entity_graph.json"
    graph.export_graph(out)
    data = json.loads(out.read_text(encoding="utf-8"))
    assert len(data["nodes"]) == 5
    assert any(node["localized_name"] == "씨" for node in data["nodes"])


# ── Historical patterns ───────────────────────────────────────────────────────

def test_describe_pattern():
    pattern_id = next(iter(HISTORICAL_PATTERNS))
    info = HISTORICAL_PATTERNS[pattern_id]
    assert describe_pattern(pattern_id) == f"{info['title']} ({info['year']})"
    assert describe_pattern("no-such-pattern") == "no-such-pattern"
