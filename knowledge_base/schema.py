"""
Entity graph schema — typed nodes and weighted, typed edges.

Entities are namespaced ("country:south_korea", "asset:KS11") and immutable
once loaded. Edges carry a weight in [0, 1]; weights outside the range are
clamped on construction.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Optional

EntityType = Literal[
    "country",
    "region",
    "asset",
    "sector",
    "company",
    "event_template",
    "institution",
    "commodity",
]

EdgeType = Literal[
    "affects",
    "located_in",
    "belongs_to_sector",
    "historically_correlated",
    "supply_chain_dependency",
    "adversary_of",
    "ally_of",
    "produces",
    "consumes",
    "monitors",
]

ENTITY_TYPES: tuple[str, ...] = EntityType.__args__
EDGE_TYPES: tuple[str, ...] = EdgeType.__args__


def clamp(value: float, low: float, high: float) -> float:
    """Clamp value into [low, high]."""
    return max(low, min(high, value))


@dataclass(frozen=True)
class Entity:
    """A typed, named node in the knowledge graph."""
    id: str
    type: EntityType
    name: str
    localized_name: str
    tags: tuple[str, ...] = ()
    meta: dict[str, Any] = field(default_factory=dict, hash=False, compare=False)

    @property
    def namespace(self) -> str:
        return self.id.split(":", 1)[0]

    @property
    def ticker(self) -> str:
        return str(self.meta.get("ticker", ""))


@dataclass(frozen=True)
class Edge:
    """A weighted, typed relationship used for signal propagation."""
    source: str
    target: str
    type: EdgeType
    weight: float
    directional: bool = True
    meta: dict[str, Any] = field(default_factory=dict, hash=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "weight", clamp(float(self.weight), 0.0, 1.0))

    @property
    def direction_hint(self) -> Optional[str]:
        """Expected market direction annotated on the edge, if any."""
        return self.meta.get("direction")
