from dataclasses import dataclass, field
from enum import Enum


class GraphType(str, Enum):
    SEQUENCE = "sequence"
    CO_OCCURRENCE = "co_occurrence"


@dataclass
class GraphNode:
    id: int
    name: str
    weight: float
    centrality: float = 0.0


@dataclass(frozen=True)
class GraphEdge:
    source: int
    target: int
    weight: float


@dataclass
class GraphNetwork:
    """In-memory mirror of one persisted document graph."""

    id: str
    document_id: str
    type: GraphType
    nodes: list[GraphNode] = field(default_factory=list)
    edges: list[GraphEdge] = field(default_factory=list)
    centroid: GraphNode | None = None
    created_at: int = 0


@dataclass(frozen=True)
class CentroidResult:
    """Closeness statistics of one node.

    `total_connections` is the number of other nodes reachable from `node`.
    """

    node: GraphNode
    average_path_length: float
    closeness: float
    total_connections: int


def graph_id_for(document_id: str) -> str:
    return f"graph_{document_id}"


def centroid_cache_key(document_id: str) -> str:
    return f"centroid:{document_id}"


def centroid_payload(document_id: str, result: CentroidResult) -> dict[str, object]:
    """JSON-ready summary of a document's centroid, as cached for readers."""
    return {
        "document_id": document_id,
        "centroid_node": {
            "name": result.node.name,
            "centrality": result.closeness,
            "frequency": result.node.weight,
        },
        "average_path_length": result.average_path_length,
        "closeness": result.closeness,
        "total_connections": result.total_connections,
    }
