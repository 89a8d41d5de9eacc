import os
import uuid
from collections.abc import Generator
from datetime import datetime, timezone
from typing import Any

import psycopg
import pytest

from lexigraph.config.settings import Settings
from lexigraph.database.connection import close_pool, get_connection, init_pool
from lexigraph.database.repositories.document_repository import DocumentRepository
from lexigraph.documents.models import Document, DocumentStatus


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "lexigraph_test")
    return Settings()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def integration_pool(test_settings: Settings) -> Generator[None, None, None]:
    try:
        init_pool(test_settings)
        DocumentRepository().ensure_schema()
    except Exception as e:
        close_pool()
        pytest.skip(f"PostgreSQL test DB not available: {e}. Set DB_* env to run.")
    try:
        yield
    finally:
        close_pool()


@pytest.fixture
def db_conn(integration_pool: None) -> Generator[psycopg.Connection[Any], None, None]:
    with get_connection() as conn:
        yield conn


@pytest.fixture
def integration_cleanup(integration_pool: None) -> Generator[list[str], None, None]:
    cleanup: list[str] = []
    yield cleanup
    if not cleanup:
        return
    with get_connection() as conn:
        with conn.cursor() as cur:
            cur.execute("DELETE FROM documents WHERE id = ANY(%s)", (cleanup,))
        conn.commit()


@pytest.fixture
def seed_document(integration_cleanup: list[str]) -> Document:
    document = Document(
        id=f"it-{uuid.uuid4()}",
        filename="report.pdf",
        content_type="application/pdf",
        size=1024,
        object_key="documents/it/report.pdf",
        uploaded_at=datetime(2000, 1, 1, tzinfo=timezone.utc),
        status=DocumentStatus.UPLOADED,
    )
    DocumentRepository().insert(document)
    integration_cleanup.append(document.id)
    return document
