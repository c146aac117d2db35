"""Tests for audit sinks."""

import logging

from config import Settings
from contracts import AuditRecord, ContractType, Mode
from governance.audit import (
    InMemoryAuditSink,
    JsonlAuditSink,
    LoggingAuditSink,
    NullAuditSink,
    build_audit_sink,
)


def make_record(**overrides):
    fields = dict(
        contract_type=ContractType.JSON_FIX,
        json_only=True,
        mode=Mode.CHAT,
        validation_passed=True,
        retry_attempts=1,
        secrets_detected=False,
        errors_found=[],
        duration_ms=12.5,
    )
    fields.update(overrides)
    return AuditRecord(**fields)


class TestJsonlAuditSink:
    def test_appends_one_line_per_record(self, tmp_path):
        path = tmp_path / "audit" / "governance.jsonl"
        sink = JsonlAuditSink(path)
        first = make_record()
        second = make_record(validation_passed=False, errors_found=["invalid JSON: x"])

        sink.write(first)
        sink.write(second)

        lines = path.read_text(encoding="utf-8").splitlines()
        assert len(lines) == 2
        assert AuditRecord.model_validate_json(lines[0]) == first
        assert AuditRecord.model_validate_json(lines[1]).errors_found == ["invalid JSON: x"]

    def test_keeps_existing_content(self, tmp_path):
        path = tmp_path / "governance.jsonl"
        path.write_text("previous\n", encoding="utf-8")
        JsonlAuditSink(path).write(make_record())
        assert path.read_text(encoding="utf-8").startswith("previous\n")


class TestOtherSinks:
    def test_logging_sink(self, caplog):
        with caplog.at_level(logging.INFO, logger="governance.audit"):
            LoggingAuditSink().write(make_record(retry_attempts=2))
        assert "contract=json_fix" in caplog.text
        assert "attempts=2" in caplog.text

    def test_in_memory_sink(self):
        sink = InMemoryAuditSink()
        record = make_record()
        sink.write(record)
        assert sink.records == [record]

    def test_null_sink(self):
        assert NullAuditSink().write(make_record()) is None


class TestBuildAuditSink:
    def test_jsonl_when_path_configured(self, tmp_path):
        sink = build_audit_sink(Settings(audit_log_path=str(tmp_path / "audit.jsonl")))
        assert isinstance(sink, JsonlAuditSink)

    def test_logging_by_default(self):
        assert isinstance(build_audit_sink(Settings(audit_log_path="")), LoggingAuditSink)
