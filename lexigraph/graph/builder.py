import time
from collections.abc import Callable
from typing import Any

from lexigraph.exceptions import StorageError
from lexigraph.graph.models import GraphEdge, GraphNetwork, GraphNode, GraphType, graph_id_for
from lexigraph.logging.logger import Log
from lexigraph.nlp.models import NounEntity, RelationshipMatrix
from lexigraph.storage.base import BaseGraphStore

NODE_LABEL = "Word"
RELATIONSHIP_TYPES = {
    GraphType.SEQUENCE: "FOLLOWS",
    GraphType.CO_OCCURRENCE: "RELATES_TO",
}


class GraphBuilder:
    """Thresholds nouns and relationships into a graph and persists it.

    Rebuilding a document's graph first removes everything tagged with its
    graph id, so the persisted graph is always replaced, never extended.
    """

    def __init__(self, graph_store: BaseGraphStore) -> None:
        self._graph_store = graph_store

    def build(
        self,
        document_id: str,
        graph_type: GraphType,
        nouns: list[NounEntity],
        matrix: RelationshipMatrix,
        threshold: int,
    ) -> GraphNetwork:
        """Persist the thresholded graph and return its in-memory mirror.

        Raises:
            StorageError: if the graph store rejects a call. Nodes and edges
                written before the failure are left in place.
        """
        graph_id = graph_id_for(document_id)
        try:
            self._graph_store.delete_tagged(graph_id)
        except StorageError as exc:
            raise StorageError(f"Failed to clear existing graph {graph_id}: {exc}") from exc

        node_ids: dict[str, int] = {}
        nodes: list[GraphNode] = []
        for noun in nouns:
            if noun.frequency < self._inclusion_threshold(graph_type, threshold):
                continue
            node = GraphNode(id=len(nodes) + 1, name=noun.word, weight=float(noun.frequency))
            nodes.append(node)
            node_ids[noun.word] = node.id
            self._persist(
                f"node '{noun.word}'",
                self._graph_store.create_node,
                NODE_LABEL,
                noun.word,
                {
                    "graph_id": graph_id,
                    "graph_type": graph_type.value,
                    "frequency": noun.frequency,
                    "stemmed": noun.stemmed,
                },
            )

        edges: list[GraphEdge] = []
        rel_type = RELATIONSHIP_TYPES[graph_type]
        for source, row in matrix.items():
            source_id = node_ids.get(source)
            if source_id is None:
                continue
            for target, weight in row.items():
                target_id = node_ids.get(target)
                if target_id is None or weight < self._inclusion_threshold(graph_type, threshold):
                    continue
                edges.append(GraphEdge(source=source_id, target=target_id, weight=float(weight)))
                self._persist(
                    f"relationship '{source}' -> '{target}'",
                    self._graph_store.create_relationship,
                    source,
                    target,
                    rel_type,
                    {
                        "weight": weight,
                        "graph_id": graph_id,
                        "graph_type": graph_type.value,
                    },
                )

        Log.info(
            f"Built {graph_type.value} graph {graph_id}: "
            f"{len(nodes)} nodes, {len(edges)} edges (threshold {threshold})"
        )
        return GraphNetwork(
            id=graph_id,
            document_id=document_id,
            type=graph_type,
            nodes=nodes,
            edges=edges,
            created_at=int(time.time()),
        )

    @staticmethod
    def _inclusion_threshold(graph_type: GraphType, threshold: int) -> int:
        """Sequence graphs keep every noun and every observed pair."""
        return 1 if graph_type is GraphType.SEQUENCE else threshold

    @staticmethod
    def _persist(what: str, call: Callable[..., None], *args: Any) -> None:
        try:
            call(*args)
        except StorageError as exc:
            raise StorageError(f"Failed to create graph {what}: {exc}") from exc
