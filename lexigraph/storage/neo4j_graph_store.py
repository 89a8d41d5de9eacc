import re
from typing import Any

import neo4j
from neo4j import GraphDatabase, Query
from neo4j.exceptions import DriverError, Neo4jError

from lexigraph.config.settings import Settings
from lexigraph.exceptions import StorageError
from lexigraph.storage.base import BaseGraphStore

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _checked_identifier(value: str) -> str:
    """Labels and relationship types cannot be query parameters, so only plain names are allowed."""
    if not _IDENTIFIER.match(value):
        raise ValueError(f"Invalid graph identifier '{value}'")
    return value


class Neo4jGraphStore(BaseGraphStore):
    """Graph persistence on Neo4j; every node carries the `graph_id` it belongs to."""

    def __init__(self, driver: neo4j.Driver, database: str, timeout_seconds: float) -> None:
        self._driver = driver
        self._database = database
        self._timeout = timeout_seconds

    @classmethod
    def from_settings(cls, settings: Settings) -> "Neo4jGraphStore":
        driver = GraphDatabase.driver(
            settings.neo4j_uri,
            auth=(settings.neo4j_username, settings.neo4j_password),
            connection_timeout=settings.neo4j_timeout_seconds,
        )
        return cls(driver, settings.neo4j_database, settings.neo4j_timeout_seconds)

    def close(self) -> None:
        self._driver.close()

    def delete_tagged(self, graph_id: str) -> None:
        self._run(
            "MATCH (n {graph_id: $graph_id}) DETACH DELETE n",
            {"graph_id": graph_id},
        )

    def create_node(self, label: str, name: str, properties: dict[str, Any]) -> None:
        self._run(
            f"CREATE (n:{_checked_identifier(label)} {{name: $name}}) SET n += $properties",
            {"name": name, "properties": properties},
        )

    def create_relationship(
        self,
        from_name: str,
        to_name: str,
        rel_type: str,
        properties: dict[str, Any],
    ) -> None:
        self._run(
            f"""
            MATCH (a {{name: $from_name, graph_id: $graph_id}}),
                  (b {{name: $to_name, graph_id: $graph_id}})
            CREATE (a)-[r:{_checked_identifier(rel_type)}]->(b)
            SET r += $properties
            """,
            {
                "from_name": from_name,
                "to_name": to_name,
                "graph_id": properties.get("graph_id"),
                "properties": properties,
            },
        )

    def set_centrality(self, graph_id: str, name: str, centrality: float) -> None:
        self._run(
            "MATCH (n {graph_id: $graph_id, name: $name}) SET n.centrality = $centrality",
            {"graph_id": graph_id, "name": name, "centrality": centrality},
        )

    def query(self, statement: str, params: dict[str, Any]) -> list[dict[str, Any]]:
        return self._run(statement, params)

    def _run(self, statement: str, params: dict[str, Any]) -> list[dict[str, Any]]:
        try:
            records, _summary, _keys = self._driver.execute_query(
                Query(statement, timeout=self._timeout),
                params,
                database_=self._database,
            )
        except (Neo4jError, DriverError) as exc:
            raise StorageError(f"Graph store query failed: {exc}") from exc
        return [record.data() for record in records]
