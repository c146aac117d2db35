"""Governance contracts: validation, retry, formatting and audit records.

Every stage of the pipeline hands the next one one of these models. Results
that can end in a degraded state are tagged unions on ``status`` so callers
have to look at which branch they got.
"""

from pydantic import BaseModel, Field, computed_field
from typing import Annotated, Any, List, Literal, Optional, Union
from enum import Enum
from datetime import datetime


class ContractType(str, Enum):
    """Expected shape/genre of an answer. Closed set."""
    GENERAL = "general"
    JSON_FIX = "json_fix"
    LOG_ANALYSIS = "log_analysis"
    SPREADSHEET_ANALYSIS = "spreadsheet_analysis"
    DOC_SUMMARY = "doc_summary"
    VISUAL_TROUBLESHOOTING = "visual_troubleshooting"
    ACTION_EXECUTION = "action_execution"
    INCIDENT = "incident"


class Mode(str, Enum):
    """Client channel the result is produced for."""
    CHAT = "chat"
    MULTIMODAL = "multimodal"
    LIVE = "live"


class DegradedReason(str, Enum):
    """Why a retry cycle ended without a valid response."""
    EXHAUSTED_RETRIES = "exhausted_retries"
    REGENERATION_FAILED = "regeneration_failed"


class FileRef(BaseModel):
    """An attached file, described only by its MIME type."""
    type: str = Field(..., description="MIME type, e.g. image/png or text/plain")


class GovernanceOptions(BaseModel):
    """Per-call options for the orchestrator."""
    files: List[FileRef] = Field(default_factory=list, description="Attachments used for intent detection")
    mode: Mode = Field(default=Mode.CHAT, description="Channel the caller serves")


class ValidationOutcome(BaseModel):
    """Result of one validation pass over a candidate response."""
    valid: bool
    errors: List[str] = Field(default_factory=list)
    secrets_detected: bool = False
    secrets_masked: List[str] = Field(default_factory=list, description="Labels of matched secret patterns")
    sanitized_data: Optional[Any] = Field(None, description="Parsed JSON with secrets masked")

    model_config = {"frozen": True}


class _RetryOutcomeBase(BaseModel):
    text: str = Field(..., description="Final (masked) candidate text")
    attempts: int = Field(..., ge=0, description="Correction rounds performed")
    errors: List[str] = Field(default_factory=list)
    secrets_detected: bool = False
    secrets_masked: List[str] = Field(default_factory=list)


class RetryOk(_RetryOutcomeBase):
    """Retry cycle ended with a response that passed validation."""
    status: Literal["ok"] = "ok"

    @computed_field
    @property
    def success(self) -> bool:
        return True


class RetryDegraded(_RetryOutcomeBase):
    """Retry cycle ended with a best-effort response."""
    status: Literal["degraded"] = "degraded"
    reason: DegradedReason

    @computed_field
    @property
    def success(self) -> bool:
        return False


RetryOutcome = Annotated[Union[RetryOk, RetryDegraded], Field(discriminator="status")]


class DetailPayload(BaseModel):
    """Structured payload for detail panes and live-mode side channels."""
    type: ContractType
    content: Any = Field(..., description="Parsed JSON for json-only answers, markdown otherwise")
    json_data: Optional[Any] = None
    timestamp: datetime = Field(default_factory=datetime.now)


class FormattedOutput(BaseModel):
    """Views derived from an accepted response."""
    markdown: str
    voice_script: str
    detail_payload: DetailPayload
    has_json: bool = False
    json_data: Optional[Any] = None
    secrets_warning: bool = False


class LivePayload(BaseModel):
    """Formatter projection for live mode."""
    voice_script: str
    chat_payload: str
    json_data: Optional[Any] = None


class AuditRecord(BaseModel):
    """Write-once log entry for one governance invocation."""
    contract_type: ContractType
    json_only: bool
    mode: Mode = Mode.CHAT
    validation_passed: bool
    retry_attempts: int = Field(..., ge=0)
    secrets_detected: bool
    errors_found: List[str] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=datetime.now)
    duration_ms: float = Field(..., ge=0.0)

    model_config = {"frozen": True}


class _GovernanceResultBase(BaseModel):
    text: str
    markdown: str
    voice_script: str
    detail_payload: DetailPayload
    contract_type: ContractType
    json_only: bool
    retry_attempts: int = Field(..., ge=0)
    errors: List[str] = Field(default_factory=list)
    secrets_detected: bool = False
    secrets_masked: List[str] = Field(default_factory=list)
    audit: AuditRecord


class GovernanceOk(_GovernanceResultBase):
    """Governed response that passed its contract."""
    status: Literal["ok"] = "ok"

    @computed_field
    @property
    def valid(self) -> bool:
        return True


class GovernanceDegraded(_GovernanceResultBase):
    """Best-effort governed response; show ``notice`` alongside it."""
    status: Literal["degraded"] = "degraded"
    reason: DegradedReason
    notice: str = Field(
        default="A correção automática não conseguiu validar totalmente esta resposta.",
        description="User-facing notice for degraded results",
    )

    @computed_field
    @property
    def valid(self) -> bool:
        return False


GovernanceResult = Annotated[Union[GovernanceOk, GovernanceDegraded], Field(discriminator="status")]


class LiveResult(BaseModel):
    """What the live assistant consumes: speech, chat text and data."""
    voice_script: str
    chat_payload: str
    json_data: Optional[Any] = None
    audit: AuditRecord
