"""
Entity Graph — typed, weighted knowledge graph over the seed entities.

Backed by a networkx MultiDiGraph so parallel edges of different types
(e.g. `affects` and `historically_correlated` between the same pair) can
coexist. Non-directional edges are stored twice; the mirrored copy is
flagged so reverse lookups report only the original orientation.

Traversal is a breadth-first walk with a global visited set: the first path
to reach a node wins, and cumulative weight is the product of edge weights
along that path.
"""
from __future__ import annotations

import json
import logging
from collections import Counter, deque
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional, Sequence

import networkx as nx

from knowledge_base.entity_seed import SEED_EDGES, SEED_ENTITIES
from knowledge_base.schema import Edge, Entity

logger = logging.getLogger(__name__)

ASSET_EDGE_TYPES = ("affects", "belongs_to_sector", "supply_chain_dependency")
SECTOR_EDGE_TYPES = ("affects", "supply_chain_dependency")
IMPACT_CHAIN_EDGE_TYPES = ("affects", "located_in", "belongs_to_sector", "adversary_of")


class GraphSeedError(ValueError):
    """Seed data is inconsistent (duplicate ids, dangling edge endpoints)."""


@dataclass(frozen=True)
class Neighbor:
    entity_id: str
    edge: Edge


@dataclass
class TraversalNode:
    """A node reached by traverse(), with the path that reached it."""
    entity_id: str
    depth: int
    cumulative_weight: float
    path: list[str] = field(default_factory=list)
    edge: Optional[Edge] = None

    @property
    def direction(self) -> Optional[str]:
        return self.edge.direction_hint if self.edge else None


@dataclass
class GraphStats:
    entities: int = 0
    edges: int = 0
    by_type: dict[str, int] = field(default_factory=dict)
    by_edge_type: dict[str, int] = field(default_factory=dict)
    density: float = 0.0


class EntityGraph:
    """
    Immutable entity graph with neighbor lookups and typed BFS traversal.

    Built once from entity and edge lists; safe to share across concurrent
    briefings since no operation mutates it after construction.
    """

    def __init__(self, entities: Iterable[Entity], edges: Iterable[Edge]):
        self.graph = nx.MultiDiGraph()
        self._entities: dict[str, Entity] = {}
        self._edges: list[Edge] = []

        for entity in entities:
            if entity.id in self._entities:
                raise GraphSeedError(f"Duplicate entity id: {entity.id}")
            self._entities[entity.id] = entity
            self.graph.add_node(entity.id, entity=entity, node_type=entity.type)

        for edge in edges:
            for endpoint in (edge.source, edge.target):
                if endpoint not in self._entities:
                    raise GraphSeedError(
                        f"Edge {edge.source} -[{edge.type}]-> {edge.target} "
                        f"references unknown entity {endpoint}"
                    )
            self._edges.append(edge)
            self.graph.add_edge(
                edge.source, edge.target,
                edge=edge, edge_type=edge.type, weight=edge.weight, mirrored=False,
            )
            if not edge.directional:
                self.graph.add_edge(
                    edge.target, edge.source,
                    edge=edge, edge_type=edge.type, weight=edge.weight, mirrored=True,
                )

        logger.debug(
            "Entity graph built: %d entities, %d edges (%d adjacency entries)",
            len(self._entities), len(self._edges), self.graph.number_of_edges(),
        )

    # ─── Entity access ───────────────────────────────────────────────────

    def get_entity(self, entity_id: str) -> Optional[Entity]:
        return self._entities.get(entity_id)

    def has_entity(self, entity_id: str) -> bool:
        return entity_id in self._entities

    def entity_name(self, entity_id: str) -> str:
        entity = self._entities.get(entity_id)
        return entity.name if entity else _id_suffix(entity_id)

    def localized_name(self, entity_id: str) -> str:
        """Localized display name, falling back to the part after the namespace."""
        entity = self._entities.get(entity_id)
        return entity.localized_name if entity else _id_suffix(entity_id)

    def all_entities(self) -> list[Entity]:
        return list(self._entities.values())

    def entities_by_type(self, entity_type: str) -> list[Entity]:
        return [e for e in self._entities.values() if e.type == entity_type]

    def find_by_tags(self, tags: Sequence[str]) -> list[Entity]:
        """Entities with any tag matching any query (case-insensitive substring, either way)."""
        wanted = [t.lower() for t in tags]
        matches = []
        for entity in self._entities.values():
            own = [t.lower() for t in entity.tags]
            if any(q in t or t in q for q in wanted for t in own):
                matches.append(entity)
        return matches

    # ─── Neighbor access ─────────────────────────────────────────────────

    def get_neighbors(
        self, entity_id: str, edge_types: Optional[Sequence[str]] = None,
    ) -> list[Neighbor]:
        if entity_id not in self.graph:
            return []
        return [
            Neighbor(target, data["edge"])
            for _, target, data in self.graph.out_edges(entity_id, data=True)
            if edge_types is None or data["edge_type"] in edge_types
        ]

    def get_reverse_neighbors(
        self, entity_id: str, edge_types: Optional[Sequence[str]] = None,
    ) -> list[Neighbor]:
        if entity_id not in self.graph:
            return []
        return [
            Neighbor(source, data["edge"])
            for source, _, data in self.graph.in_edges(entity_id, data=True)
            if not data["mirrored"]
            and (edge_types is None or data["edge_type"] in edge_types)
        ]

    # ─── Traversal ───────────────────────────────────────────────────────

    def traverse(
        self,
        start_id: str,
        edge_types: Sequence[str],
        max_depth: int = 2,
        min_weight: float = 0.4,
    ) -> list[TraversalNode]:
        """
        Breadth-first walk from start_id over edges of the given types.

        Args:
            start_id: Entity to start from (excluded from the result)
            edge_types: Edge types that may be followed
            max_depth: Maximum number of hops
            min_weight: Edges lighter than this are not followed

        Returns:
            Reached nodes sorted by cumulative weight, descending
        """
        visited = {start_id}
        queue = deque([TraversalNode(start_id, 0, 1.0, [start_id])])
        results: list[TraversalNode] = []

        while queue:
            current = queue.popleft()
            if current.depth > 0:
                results.append(current)
            if current.depth >= max_depth:
                continue

            for neighbor in self.get_neighbors(current.entity_id, edge_types):
                if neighbor.entity_id in visited or neighbor.edge.weight < min_weight:
                    continue
                visited.add(neighbor.entity_id)
                queue.append(TraversalNode(
                    entity_id=neighbor.entity_id,
                    depth=current.depth + 1,
                    cumulative_weight=current.cumulative_weight * neighbor.edge.weight,
                    path=current.path + [neighbor.entity_id],
                    edge=neighbor.edge,
                ))

        # Stable sort keeps BFS order among equal weights
        results.sort(key=lambda n: n.cumulative_weight, reverse=True)
        return results

    def get_affected_assets(self, entity_id: str, max_depth: int = 2) -> list[TraversalNode]:
        return self._reached_of_type(self.traverse(entity_id, ASSET_EDGE_TYPES, max_depth), "asset")

    def get_affected_sectors(self, entity_id: str, max_depth: int = 2) -> list[TraversalNode]:
        return self._reached_of_type(self.traverse(entity_id, SECTOR_EDGE_TYPES, max_depth), "sector")

    def get_companies_in_sector(self, sector_id: str) -> list[Entity]:
        return [
            self._entities[n.entity_id]
            for n in self.get_reverse_neighbors(sector_id, ["belongs_to_sector"])
        ]

    def get_impact_chain(
        self, trigger_id: str, max_depth: int = 3, min_weight: float = 0.5,
    ) -> list[TraversalNode]:
        """Downstream impacts of a trigger entity, used to explain causal chains."""
        return self.traverse(trigger_id, IMPACT_CHAIN_EDGE_TYPES, max_depth, min_weight)

    def get_adversaries(self, entity_id: str) -> list[Entity]:
        found = self.get_neighbors(entity_id, ["adversary_of"])
        found += self.get_reverse_neighbors(entity_id, ["adversary_of"])
        seen: dict[str, Entity] = {}
        for n in found:
            if n.entity_id != entity_id:
                seen.setdefault(n.entity_id, self._entities[n.entity_id])
        return list(seen.values())

    def explain_impact(self, source_id: str, asset_id: str) -> list[str]:
        """Entity ids on the impact-chain path from source_id to asset_id."""
        for node in self.get_impact_chain(source_id):
            if node.entity_id == asset_id:
                return list(node.path)
        return [source_id, asset_id]

    def _reached_of_type(self, nodes: list[TraversalNode], entity_type: str) -> list[TraversalNode]:
        return [n for n in nodes if self._entities[n.entity_id].type == entity_type]

    # ─── Stats & export ──────────────────────────────────────────────────

    def stats(self) -> GraphStats:
        return GraphStats(
            entities=len(self._entities),
            edges=len(self._edges),
            by_type=dict(Counter(e.type for e in self._entities.values())),
            by_edge_type=dict(Counter(e.type for e in self._edges)),
            density=nx.density(self.graph),
        )

    def export_graph(self, output_path: Path) -> None:
        """Export the graph to node-link JSON for visualization."""
        export = nx.MultiDiGraph()
        for entity in self._entities.values():
            export.add_node(
                entity.id, type=entity.type, name=entity.name,
                localized_name=entity.localized_name, tags=list(entity.tags),
            )
        for edge in self._edges:
            export.add_edge(
                edge.source, edge.target, type=edge.type,
                weight=edge.weight, directional=edge.directional, **edge.meta,
            )
        data = nx.node_link_data(export)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False, default=str)
        logger.info("Graph exported to %s", output_path)


def _id_suffix(entity_id: str) -> str:
    return entity_id.split(":", 1)[1] if ":" in entity_id else entity_id


# ─── Process-wide instance ───────────────────────────────────────────────────

_graph: Optional[EntityGraph] = None


def get_entity_graph() -> EntityGraph:
    """The shared seed graph, built on first use."""
    global _graph
    if _graph is None:
        _graph = EntityGraph(SEED_ENTITIES, SEED_EDGES)
    return _graph
