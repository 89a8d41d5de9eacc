from collections.abc import Generator
from contextlib import contextmanager
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Any

import psycopg
from psycopg import sql
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from lexigraph.database.connection import get_connection
from lexigraph.documents.models import Document, DocumentStatus
from lexigraph.exceptions import DocumentNotFoundError, StorageError
from lexigraph.nlp.models import NounEntity, ProcessedText
from lexigraph.pdf.models import ExtractedText

_COLUMNS = (
    "id, filename, content_type, size, object_key, uploaded_at, processed_at, "
    "status, extracted_text, processed_text, graph_id, error_message"
)

_UPDATABLE_FIELDS = frozenset(
    {"processed_at", "extracted_text", "processed_text", "graph_id", "error_message"}
)
_JSON_FIELDS = frozenset({"extracted_text", "processed_text"})

_SCHEMA = """
CREATE TABLE IF NOT EXISTS documents (
    id TEXT PRIMARY KEY,
    filename TEXT NOT NULL,
    content_type TEXT NOT NULL,
    size BIGINT NOT NULL,
    object_key TEXT NOT NULL,
    uploaded_at TIMESTAMPTZ NOT NULL,
    processed_at TIMESTAMPTZ,
    status TEXT NOT NULL,
    extracted_text JSONB,
    processed_text JSONB,
    graph_id TEXT,
    error_message TEXT
);
CREATE INDEX IF NOT EXISTS documents_status_uploaded_at_idx
    ON documents (status, uploaded_at);
"""


@contextmanager
def _storage_errors(action: str) -> Generator[None, None, None]:
    try:
        yield
    except psycopg.Error as exc:
        raise StorageError(f"Document store failed to {action}: {exc}") from exc


class DocumentRepository:
    """Database operations for the documents table."""

    def ensure_schema(self) -> None:
        with _storage_errors("create schema"), get_connection() as conn:
            conn.execute(_SCHEMA)
            conn.commit()

    def insert(self, document: Document) -> None:
        with _storage_errors(f"insert document {document.id}"), get_connection() as conn:
            conn.execute(
                f"""
                INSERT INTO documents ({_COLUMNS})
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                """,
                self._to_params(document),
            )
            conn.commit()

    def upsert_processing(self, document: Document) -> None:
        """Insert the document as `processing`, or move an existing row to `processing`."""
        with _storage_errors(f"register document {document.id}"), get_connection() as conn:
            conn.execute(
                f"""
                INSERT INTO documents ({_COLUMNS})
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                ON CONFLICT (id) DO UPDATE
                SET status = EXCLUDED.status, error_message = NULL
                """,
                self._to_params(document, status=DocumentStatus.PROCESSING),
            )
            conn.commit()

    def update_status(self, document_id: str, status: DocumentStatus, **fields: Any) -> None:
        """Set the status and any of the processing result columns.

        Raises:
            ValueError: if a field is not a processing result column.
            DocumentNotFoundError: if no document with this ID exists.
        """
        unknown = set(fields) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update document fields: {sorted(unknown)}")

        assignments = [sql.SQL("status = %s")]
        values: list[Any] = [status.value]
        for name, value in fields.items():
            assignments.append(sql.SQL("{} = %s").format(sql.Identifier(name)))
            values.append(self._to_column_value(name, value))
        values.append(document_id)

        statement = sql.SQL("UPDATE documents SET {} WHERE id = %s").format(
            sql.SQL(", ").join(assignments)
        )
        with _storage_errors(f"update document {document_id}"), get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(statement, values)
                if cur.rowcount == 0:
                    raise DocumentNotFoundError(f"Document {document_id} not found")
            conn.commit()

    def mark_completed(
        self,
        document_id: str,
        extracted_text: ExtractedText,
        processed_text: ProcessedText,
        graph_id: str,
    ) -> None:
        self.update_status(
            document_id,
            DocumentStatus.COMPLETED,
            processed_at=datetime.now(timezone.utc),
            extracted_text=extracted_text,
            processed_text=processed_text,
            graph_id=graph_id,
            error_message=None,
        )

    def mark_error(self, document_id: str, message: str) -> None:
        self.update_status(
            document_id,
            DocumentStatus.ERROR,
            processed_at=datetime.now(timezone.utc),
            error_message=message,
        )

    def find_by_id(self, document_id: str) -> Document:
        """Find a document by ID.

        Raises:
            DocumentNotFoundError: if no document with this ID exists.
        """
        with _storage_errors(f"load document {document_id}"), get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"SELECT {_COLUMNS} FROM documents WHERE id = %s",
                    (document_id,),
                )
                row = cur.fetchone()

        if row is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        return self._from_row(row)

    def claim_next_uploaded(self, conn: psycopg.Connection[Any]) -> Document | None:
        """Move the oldest `uploaded` document to `processing` using FOR UPDATE SKIP LOCKED."""
        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                f"""
                UPDATE documents
                SET status = 'processing'
                WHERE id = (
                    SELECT id FROM documents
                    WHERE status = 'uploaded'
                    ORDER BY uploaded_at
                    LIMIT 1
                    FOR UPDATE SKIP LOCKED
                )
                RETURNING {_COLUMNS}
                """
            )
            row = cur.fetchone()
        conn.commit()

        if row is None:
            return None
        return self._from_row(row)

    def _to_params(self, document: Document, status: DocumentStatus | None = None) -> tuple:
        return (
            document.id,
            document.filename,
            document.content_type,
            document.size,
            document.object_key,
            document.uploaded_at,
            document.processed_at,
            (status or document.status).value,
            self._to_column_value("extracted_text", document.extracted_text),
            self._to_column_value("processed_text", document.processed_text),
            document.graph_id,
            document.error_message,
        )

    @staticmethod
    def _to_column_value(name: str, value: Any) -> Any:
        if name in _JSON_FIELDS and value is not None:
            return Jsonb(asdict(value))
        return value

    @staticmethod
    def _from_row(row: dict[str, Any]) -> Document:
        extracted = row.get("extracted_text")
        processed = row.get("processed_text")
        return Document(
            id=row["id"],
            filename=row["filename"],
            content_type=row["content_type"],
            size=row["size"],
            object_key=row["object_key"],
            uploaded_at=row["uploaded_at"],
            status=DocumentStatus(row["status"]),
            processed_at=row.get("processed_at"),
            extracted_text=ExtractedText(**extracted) if extracted else None,
            processed_text=(
                ProcessedText(
                    nouns=[NounEntity(**noun) for noun in processed.get("nouns", [])],
                    sentences=processed.get("sentences", []),
                    word_count=processed.get("word_count", 0),
                )
                if processed
                else None
            ),
            graph_id=row.get("graph_id"),
            error_message=row.get("error_message"),
        )
