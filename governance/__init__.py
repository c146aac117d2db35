"""Output governance: contracts, validation, auto-retry and formatting of LLM responses."""

from .audit import (
    AuditSink,
    InMemoryAuditSink,
    JsonlAuditSink,
    LoggingAuditSink,
    NullAuditSink,
    build_audit_sink,
)
from .auto_retry import AutoRetryEngine, RegenerateFn, call_regenerate
from .contract_catalog import CONTRACTS, Contract, ContractCatalog, OutputRule, verify_catalog
from .errors import ConfigurationError, GovernanceError, RegenerationFailure, SecretLeakWarning
from .json_extraction import JsonIsland, fenced_json, find_json_island, strip_json
from .notifier import LoggingNotifier, Notifier, NullNotifier
from .orchestrator import GovernanceOrchestrator
from .response_formatter import ResponseFormatter
from .schema_validator import JSON_REQUIRED_ERROR, SchemaValidator
from .secret_scanner import SecretScanner, mask_secrets, scan_secrets

__all__ = [
    # Pipeline
    "GovernanceOrchestrator",
    "AutoRetryEngine",
    "RegenerateFn",
    "call_regenerate",
    "SchemaValidator",
    "JSON_REQUIRED_ERROR",
    "ResponseFormatter",
    # Contracts
    "CONTRACTS",
    "Contract",
    "ContractCatalog",
    "OutputRule",
    "verify_catalog",
    # Secrets and JSON
    "SecretScanner",
    "scan_secrets",
    "mask_secrets",
    "JsonIsland",
    "find_json_island",
    "fenced_json",
    "strip_json",
    # Audit and notifications
    "AuditSink",
    "NullAuditSink",
    "LoggingAuditSink",
    "JsonlAuditSink",
    "InMemoryAuditSink",
    "build_audit_sink",
    "Notifier",
    "NullNotifier",
    "LoggingNotifier",
    # Errors
    "GovernanceError",
    "ConfigurationError",
    "RegenerationFailure",
    "SecretLeakWarning",
]
