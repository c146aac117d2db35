"""Governance orchestrator: the single entry point for chat, multimodal and live modes.

Pipeline for one response:
1. Detect the contract and the json-only flag from the user's prompt
2. Run the auto-retry engine (validation + correction rounds)
3. Derive the chat, voice and detail views
4. Build the audit record and append it to the sink
"""

import logging
import time
from typing import Any, Dict, List, Optional, Sequence, Union

from contracts import (
    AuditRecord,
    ContractType,
    FileRef,
    GovernanceDegraded,
    GovernanceOk,
    GovernanceOptions,
    GovernanceResult,
    LiveResult,
    Mode,
    RetryOk,
)

from .audit import AuditSink, build_audit_sink
from .auto_retry import AutoRetryEngine, RegenerateFn, call_regenerate
from .contract_catalog import ContractCatalog
from .notifier import Notifier, NullNotifier
from .response_formatter import ResponseFormatter
from .secret_scanner import SecretScanner

logger = logging.getLogger(__name__)

USER_REQUEST_HEADER = "\n\n=== PEDIDO DO USUÁRIO ===\n"

FileLike = Union[FileRef, Dict[str, Any]]


def _file_refs(files: Optional[Sequence[FileLike]]) -> List[FileRef]:
    return [f if isinstance(f, FileRef) else FileRef.model_validate(f) for f in files or []]


class GovernanceOrchestrator:
    """Applies output contracts to model responses.

    Instances hold no per-call state and can be shared between concurrent tasks.
    """

    def __init__(
        self,
        audit_sink: Optional[AuditSink] = None,
        notifier: Optional[Notifier] = None,
        retry_engine: Optional[AutoRetryEngine] = None,
        formatter: Optional[ResponseFormatter] = None,
        catalog: Optional[ContractCatalog] = None,
    ):
        """Initialize the orchestrator.

        Args:
            audit_sink: Where audit records go (default: build_audit_sink())
            notifier: Thinking-step notifier (default: NullNotifier)
            retry_engine: Engine for validation/correction rounds
            formatter: Formatter for the output views
            catalog: Contract catalog and intent heuristics
        """
        self.catalog = catalog or ContractCatalog()
        scanner = SecretScanner()
        self.retry_engine = retry_engine or AutoRetryEngine(catalog=self.catalog, scanner=scanner)
        self.formatter = formatter or ResponseFormatter(scanner=scanner)
        self.audit_sink = audit_sink if audit_sink is not None else build_audit_sink()
        self.notifier = notifier or NullNotifier()

    def select_contract(self, prompt: str, files: Optional[Sequence[FileLike]] = None) -> ContractType:
        refs = _file_refs(files)
        return self.catalog.detect_intent(prompt, bool(refs), [f.type for f in refs])

    def enrich_prompt(self, prompt: str, files: Optional[Sequence[FileLike]] = None) -> str:
        """Prefix the user's prompt with the instructions of its contract."""
        contract_type = self.select_contract(prompt, files)
        contract_prompt = self.catalog.build_contract_prompt(
            contract_type,
            json_only=self.catalog.is_json_requested(prompt),
            is_incident=self.catalog.is_incident(prompt),
        )
        return f"{contract_prompt}{USER_REQUEST_HEADER}{prompt}"

    async def apply(
        self,
        raw_response: str,
        prompt: str,
        regenerate: RegenerateFn,
        options: Union[GovernanceOptions, Dict[str, Any], None] = None,
    ) -> GovernanceResult:
        """Govern one model response.

        Args:
            raw_response: First completion returned by the model
            prompt: The user's original prompt
            regenerate: Callback that asks the model again with a correction prompt
            options: GovernanceOptions (or an equivalent dict) with files and mode

        Returns:
            GovernanceOk when the response satisfies its contract,
            GovernanceDegraded with a user-facing notice otherwise
        """
        if options is None:
            options = GovernanceOptions()
        elif not isinstance(options, GovernanceOptions):
            options = GovernanceOptions.model_validate(options)

        start = time.perf_counter()

        contract_type = self.select_contract(prompt, options.files)
        json_only = self.catalog.is_json_requested(prompt)
        logger.info("Contract: %s, json only: %s, mode: %s", contract_type.value, json_only, options.mode.value)
        self._notify("contract_selected", {"contract_type": contract_type.value, "json_only": json_only})

        async def correcting(correction_prompt: str) -> str:
            self._notify("correcting", {"contract_type": contract_type.value})
            return await call_regenerate(regenerate, correction_prompt)

        outcome = await self.retry_engine.execute(raw_response, contract_type, correcting, json_only=json_only)

        self._notify("formatting", {"contract_type": contract_type.value})
        formatted = self.formatter.format(
            outcome.text,
            contract_type,
            secrets_detected=outcome.secrets_detected,
            json_only=json_only,
        )

        audit = AuditRecord(
            contract_type=contract_type,
            json_only=json_only,
            mode=options.mode,
            validation_passed=outcome.success,
            retry_attempts=outcome.attempts,
            secrets_detected=outcome.secrets_detected,
            errors_found=list(outcome.errors),
            duration_ms=(time.perf_counter() - start) * 1000,
        )
        logger.info(
            "Governance done in %.1fms. Retries: %d, valid: %s, secrets: %s",
            audit.duration_ms, audit.retry_attempts, audit.validation_passed, audit.secrets_detected,
        )
        self._record(audit)

        fields = dict(
            text=outcome.text,
            markdown=formatted.markdown,
            voice_script=formatted.voice_script,
            detail_payload=formatted.detail_payload,
            contract_type=contract_type,
            json_only=json_only,
            retry_attempts=outcome.attempts,
            errors=list(outcome.errors),
            secrets_detected=outcome.secrets_detected,
            secrets_masked=list(outcome.secrets_masked),
            audit=audit,
        )
        if isinstance(outcome, RetryOk):
            result = GovernanceOk(**fields)
        else:
            result = GovernanceDegraded(reason=outcome.reason, **fields)

        self._notify("done", {"status": result.status, "retry_attempts": outcome.attempts})
        return result

    async def for_chat(self, raw_response: str, prompt: str, regenerate: RegenerateFn) -> GovernanceResult:
        return await self.apply(raw_response, prompt, regenerate, GovernanceOptions(mode=Mode.CHAT))

    async def for_multimodal(
        self,
        raw_response: str,
        prompt: str,
        regenerate: RegenerateFn,
        files: Optional[Sequence[FileLike]] = None,
    ) -> GovernanceResult:
        options = GovernanceOptions(mode=Mode.MULTIMODAL, files=_file_refs(files))
        return await self.apply(raw_response, prompt, regenerate, options)

    async def for_live(self, raw_response: str, prompt: str, regenerate: RegenerateFn) -> LiveResult:
        """Govern a response for live mode: speech goes apart from the chat payload."""
        result = await self.apply(raw_response, prompt, regenerate, GovernanceOptions(mode=Mode.LIVE))
        return LiveResult(
            voice_script=result.voice_script,
            chat_payload=result.markdown,
            json_data=result.detail_payload.json_data,
            audit=result.audit,
        )

    def _record(self, audit: AuditRecord) -> None:
        try:
            self.audit_sink.write(audit)
        except Exception as e:
            logger.warning("Audit sink failed, record dropped: %s", e)

    def _notify(self, step: str, detail: Dict[str, Any]) -> None:
        try:
            self.notifier.notify(step, detail)
        except Exception as e:
            logger.warning("Notifier failed on step %s: %s", step, e)
