import pytest

from lexigraph.exceptions import StorageError
from lexigraph.graph.builder import GraphBuilder
from lexigraph.graph.models import GraphType
from lexigraph.nlp.models import NounEntity


def _nouns(**frequencies: int) -> list[NounEntity]:
    return [
        NounEntity(word=word, frequency=frequency, stemmed=word[:4])
        for word, frequency in frequencies.items()
    ]


class TestCoOccurrenceGraph:
    def test_keeps_nodes_and_edges_meeting_threshold(self, graph_store) -> None:
        nouns = _nouns(alpha=3, beta=3, gamma=3, delta=1)
        matrix = {
            "alpha": {"beta": 5, "gamma": 1},
            "beta": {"alpha": 5, "gamma": 5},
            "gamma": {"beta": 5},
            "delta": {"alpha": 4},
        }

        network = GraphBuilder(graph_store).build("doc-1", GraphType.CO_OCCURRENCE, nouns, matrix, 2)

        assert network.id == "graph_doc-1"
        assert network.document_id == "doc-1"
        assert [(n.id, n.name, n.weight) for n in network.nodes] == [
            (1, "alpha", 3.0),
            (2, "beta", 3.0),
            (3, "gamma", 3.0),
        ]
        assert {(e.source, e.target, e.weight) for e in network.edges} == {
            (1, 2, 5.0),
            (2, 1, 5.0),
            (2, 3, 5.0),
            (3, 2, 5.0),
        }

    def test_persists_tagged_nodes_and_relationships(self, graph_store) -> None:
        nouns = _nouns(alpha=3, beta=3)
        matrix = {"alpha": {"beta": 2}, "beta": {}}

        GraphBuilder(graph_store).build("doc-1", GraphType.CO_OCCURRENCE, nouns, matrix, 2)

        assert graph_store.nodes[0] == {
            "label": "Word",
            "name": "alpha",
            "graph_id": "graph_doc-1",
            "graph_type": "co_occurrence",
            "frequency": 3,
            "stemmed": "alph",
        }
        assert graph_store.relationships == [
            {
                "from": "alpha",
                "to": "beta",
                "type": "RELATES_TO",
                "weight": 2,
                "graph_id": "graph_doc-1",
                "graph_type": "co_occurrence",
            }
        ]

    def test_network_mirrors_persisted_graph(self, graph_store) -> None:
        nouns = _nouns(alpha=2, beta=2, gamma=1)
        matrix = {"alpha": {"beta": 3, "gamma": 3}, "beta": {"alpha": 1}}

        network = GraphBuilder(graph_store).build("doc-1", GraphType.CO_OCCURRENCE, nouns, matrix, 2)

        assert len(network.nodes) == len(graph_store.nodes)
        assert len(network.edges) == len(graph_store.relationships)


class TestSequenceGraph:
    def test_includes_every_noun_and_pair(self, graph_store) -> None:
        nouns = _nouns(alpha=1, beta=1)
        matrix = {"alpha": {"beta": 1}, "beta": {}}

        network = GraphBuilder(graph_store).build("doc-1", GraphType.SEQUENCE, nouns, matrix, 10)

        assert [n.name for n in network.nodes] == ["alpha", "beta"]
        assert [(e.source, e.target) for e in network.edges] == [(1, 2)]
        assert graph_store.relationships[0]["type"] == "FOLLOWS"
        assert graph_store.nodes[0]["graph_type"] == "sequence"


class TestRebuild:
    def test_clears_previous_graph_first(self, graph_store) -> None:
        builder = GraphBuilder(graph_store)
        builder.build("doc-1", GraphType.SEQUENCE, _nouns(alpha=1, beta=1), {"alpha": {"beta": 1}}, 1)

        network = builder.build("doc-1", GraphType.SEQUENCE, _nouns(gamma=1), {}, 1)

        assert graph_store.deleted == ["graph_doc-1", "graph_doc-1"]
        assert [n["name"] for n in graph_store.nodes] == ["gamma"]
        assert graph_store.relationships == []
        assert [n.id for n in network.nodes] == [1]

    def test_other_documents_are_untouched(self, graph_store) -> None:
        builder = GraphBuilder(graph_store)
        builder.build("doc-1", GraphType.SEQUENCE, _nouns(alpha=1), {}, 1)

        builder.build("doc-2", GraphType.SEQUENCE, _nouns(beta=1), {}, 1)

        assert {n["graph_id"] for n in graph_store.nodes} == {"graph_doc-1", "graph_doc-2"}


class TestStorageFailures:
    def test_clear_failure_is_reported(self, graph_store) -> None:
        graph_store.fail_on.add("delete_tagged")

        with pytest.raises(StorageError, match="Failed to clear existing graph graph_doc-1"):
            GraphBuilder(graph_store).build("doc-1", GraphType.SEQUENCE, _nouns(alpha=1), {}, 1)

    def test_relationship_failure_leaves_nodes_in_place(self, graph_store) -> None:
        graph_store.fail_on.add("create_relationship")
        nouns = _nouns(alpha=1, beta=1)

        with pytest.raises(StorageError, match="relationship 'alpha' -> 'beta'"):
            GraphBuilder(graph_store).build(
                "doc-1", GraphType.SEQUENCE, nouns, {"alpha": {"beta": 1}}, 1
            )

        assert [n["name"] for n in graph_store.nodes] == ["alpha", "beta"]
