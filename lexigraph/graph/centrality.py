import math

import networkx as nx

from lexigraph.exceptions import ValidationError
from lexigraph.graph.models import CentroidResult, GraphNetwork
from lexigraph.logging.logger import Log
from lexigraph.storage.base import BaseGraphStore


def edge_distance(weight: float) -> float:
    """Stronger relations are shorter: distance is 1/weight, clamped to 1.0 when not positive."""
    if weight == 0:
        return math.inf
    distance = 1.0 / weight
    return distance if distance > 0 else 1.0


class CentralityEngine:
    """Closeness centrality over a document graph, treated as undirected and weighted."""

    def __init__(self, graph_store: BaseGraphStore) -> None:
        self._graph_store = graph_store

    def find_centroid(self, network: GraphNetwork) -> CentroidResult | None:
        """Select the node with the smallest positive average shortest-path length.

        Candidates are visited in name order and only a strictly smaller
        average replaces the current best, so ties go to the lexicographically
        first name. Returns None when no node reaches any other node.

        Raises:
            ValidationError: if the network has no nodes.
            StorageError: if the centroid's centrality cannot be persisted.
        """
        best: CentroidResult | None = None
        for result in sorted(self.closeness(network), key=lambda r: (r.node.name, r.node.id)):
            average = result.average_path_length
            if not 0 < average < math.inf:
                continue
            if best is None or _strictly_less(average, best.average_path_length):
                best = result

        if best is None:
            Log.info(f"Graph {network.id} has no connected nodes, no centroid selected")
            return None

        best.node.centrality = best.closeness
        network.centroid = best.node
        self._graph_store.set_centrality(network.id, best.node.name, best.closeness)
        Log.info(
            f"Centroid of {network.id} is '{best.node.name}' "
            f"(avg path {best.average_path_length:.4f}, closeness {best.closeness:.4f})"
        )
        return best

    def top_central_nodes(self, network: GraphNetwork, top_n: int) -> list[CentroidResult]:
        """Rank nodes by closeness descending, then by average path length ascending."""
        results = self.closeness(network)
        results.sort(key=lambda r: (-r.closeness, r.average_path_length, r.node.name))
        return results[: max(top_n, 0)]

    def closeness(self, network: GraphNetwork) -> list[CentroidResult]:
        """Closeness statistics for every node, in network order."""
        if not network.nodes:
            raise ValidationError("graph has no nodes")

        graph = self.distance_graph(network)
        lengths = dict(nx.all_pairs_dijkstra_path_length(graph, weight="distance"))

        results: list[CentroidResult] = []
        for node in network.nodes:
            distances = [
                distance
                for other, distance in lengths.get(node.id, {}).items()
                if other != node.id
            ]
            total = sum(distances)
            if distances and total > 0:
                average = total / len(distances)
                closeness = len(distances) / total
            else:
                average = math.inf
                closeness = 0.0
            results.append(
                CentroidResult(
                    node=node,
                    average_path_length=average,
                    closeness=closeness,
                    total_connections=len(distances),
                )
            )
        return results

    @staticmethod
    def distance_graph(network: GraphNetwork) -> nx.Graph:
        """Undirected graph keyed by node id with a `distance` attribute per edge.

        Both directions of a pair collapse into one edge carrying the shorter
        distance; self-loops and zero-weight edges are dropped.
        """
        graph = nx.Graph()
        graph.add_nodes_from(node.id for node in network.nodes)
        for edge in network.edges:
            if edge.source == edge.target:
                continue
            if not (graph.has_node(edge.source) and graph.has_node(edge.target)):
                continue
            distance = edge_distance(edge.weight)
            if math.isinf(distance):
                continue
            if graph.has_edge(edge.source, edge.target):
                distance = min(distance, graph[edge.source][edge.target]["distance"])
            graph.add_edge(edge.source, edge.target, distance=distance)
        return graph


def _strictly_less(candidate: float, current: float) -> bool:
    return candidate < current and not math.isclose(candidate, current, rel_tol=1e-9)
