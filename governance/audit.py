"""Audit sinks for governance records.

A sink only needs ``write(record)``. Records are appended, never read back.
"""

import logging
import threading
from pathlib import Path
from typing import List, Optional, Protocol, Union

from config import Settings, settings
from contracts import AuditRecord

logger = logging.getLogger(__name__)


class AuditSink(Protocol):
    def write(self, record: AuditRecord) -> None:
        ...


class NullAuditSink:
    """Discards records."""

    def write(self, record: AuditRecord) -> None:
        return None


class LoggingAuditSink:
    """Emits one log line per record."""

    def __init__(self, log: Optional[logging.Logger] = None, level: int = logging.INFO):
        self.log = log or logger
        self.level = level

    def write(self, record: AuditRecord) -> None:
        self.log.log(
            self.level,
            "audit contract=%s mode=%s json_only=%s passed=%s attempts=%d secrets=%s errors=%d duration_ms=%.1f",
            record.contract_type.value,
            record.mode.value,
            record.json_only,
            record.validation_passed,
            record.retry_attempts,
            record.secrets_detected,
            len(record.errors_found),
            record.duration_ms,
        )


class JsonlAuditSink:
    """Appends records as JSON lines to a file.

    Each record is serialized first and written with a single call on a
    file opened in append mode, so concurrent writers never interleave
    partial lines.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def write(self, record: AuditRecord) -> None:
        line = record.model_dump_json() + "\n"
        with self._lock:
            with self.path.open("a", encoding="utf-8") as fh:
                fh.write(line)


class InMemoryAuditSink:
    """Keeps records in a list (tests and the CLI summary)."""

    def __init__(self):
        self.records: List[AuditRecord] = []

    def write(self, record: AuditRecord) -> None:
        self.records.append(record)


def build_audit_sink(config: Optional[Settings] = None) -> AuditSink:
    """Pick the sink configured in settings: JSONL when a path is set, logging otherwise."""
    path = (config or settings).get_audit_log_path()
    if path is not None:
        return JsonlAuditSink(path)
    return LoggingAuditSink()
