"""Logging configuration tests"""

import pytest
from loguru import logger

from snaplake.core.logging import _format, _resolve_level, _slack_text, snapshot_logger


class TestLogging:
    @pytest.mark.parametrize(
        "raw, expected",
        [(None, "INFO"), (" debug ", "DEBUG"), ("warn", "WARNING"), ("FATAL", "CRITICAL"), ("verbose", "INFO")],
    )
    def test_resolve_level(self, raw, expected):
        assert _resolve_level(raw) == expected

    def test_snapshot_logger_binds_context(self):
        records = []
        handler_id = logger.add(lambda message: records.append(message.record), level="DEBUG")
        try:
            snapshot_logger("chunks", "production_jobs", 7).info("chunk written")
        finally:
            logger.remove(handler_id)

        assert records[0]["extra"] == {"name": "chunks", "table": "production_jobs", "snapshot_id": 7}

    def test_format_includes_escaped_context(self):
        template = _format({"extra": {"name": "chunks", "table": "odd{name}", "snapshot_id": 3}})
        assert "[table=odd{{name}} snapshot_id=3]" in template
        assert template.endswith(" | {message}\n{exception}")

    def test_format_without_context(self):
        assert "[" not in _format({"extra": {"name": "api"}})

    def test_slack_text(self):
        class Level:
            name = "ERROR"

        record = {
            "level": Level(),
            "function": "snapshot",
            "line": 42,
            "message": "Snapshot write failed: bucket unreachable",
            "extra": {"name": "snapshot_service", "table": "production_jobs", "snapshot_id": 9},
        }

        assert _slack_text(record) == (
            "[ERROR] snapshot_service:snapshot:42 [table=production_jobs snapshot_id=9]\n"
            "Snapshot write failed: bucket unreachable"
        )
