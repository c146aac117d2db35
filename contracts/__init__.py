"""Pydantic contracts for the Output Governance pipeline.

All stage-to-stage handoffs are typed through these contracts.
"""

from .governance_contracts import (
    ContractType,
    Mode,
    DegradedReason,
    FileRef,
    GovernanceOptions,
    ValidationOutcome,
    RetryOk,
    RetryDegraded,
    RetryOutcome,
    DetailPayload,
    FormattedOutput,
    LivePayload,
    AuditRecord,
    GovernanceOk,
    GovernanceDegraded,
    GovernanceResult,
    LiveResult,
)

from .secret_contracts import (
    SecretKind,
    SecretMatch,
    ScanResult,
    MaskResult,
)

__all__ = [
    # Governance
    "ContractType",
    "Mode",
    "DegradedReason",
    "FileRef",
    "GovernanceOptions",
    "ValidationOutcome",
    "RetryOk",
    "RetryDegraded",
    "RetryOutcome",
    "DetailPayload",
    "FormattedOutput",
    "LivePayload",
    "AuditRecord",
    "GovernanceOk",
    "GovernanceDegraded",
    "GovernanceResult",
    "LiveResult",
    # Secrets
    "SecretKind",
    "SecretMatch",
    "ScanResult",
    "MaskResult",
]
