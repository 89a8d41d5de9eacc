import logging

import pytest

from lexigraph.logging.logger import Log, _ContextFormatter


def _record(context: dict | None) -> logging.LogRecord:
    record = logging.makeLogRecord({"msg": "Chunk stored", "levelname": "INFO"})
    if context is not None:
        record.context = context
    return record


class TestContextFormatter:
    def test_appends_sorted_context_fields(self) -> None:
        formatter = _ContextFormatter("%(message)s")

        line = formatter.format(_record({"session_id": "s-1", "chunk": 2}))

        assert line == "Chunk stored | chunk=2 session_id=s-1"

    def test_plain_message_without_context(self) -> None:
        formatter = _ContextFormatter("%(message)s")

        assert formatter.format(_record({})) == "Chunk stored"
        assert formatter.format(_record(None)) == "Chunk stored"


class TestLog:
    def test_context_reaches_record(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.INFO, logger="lexigraph"):
            Log.info("Upload session initiated", session_id="s-1")

        assert caplog.records[-1].context == {"session_id": "s-1"}

    def test_configure_quiets_library_loggers(self) -> None:
        Log.configure("INFO")

        assert logging.getLogger("botocore").level == logging.WARNING
