"""Auto-retry engine: validate, ask for a correction, validate again.

State machine, bounded by max_retries:

    Validating -> Succeeded
    Validating -> Correcting -> Validating
    Validating -> ExhaustedFailed   (no attempts left, or regeneration raised)

Each correction round awaits the regeneration callback before validating
again; correction prompts depend on the previous attempt's errors.
"""

import inspect
import json
import logging
from typing import Awaitable, Callable, List, Optional, Union

from config import settings
from contracts import ContractType, DegradedReason, RetryDegraded, RetryOk, RetryOutcome

from .contract_catalog import ContractCatalog
from .errors import RegenerationFailure
from .json_extraction import fenced_json, find_json_island, replace_island
from .schema_validator import SchemaValidator
from .secret_scanner import SecretScanner

logger = logging.getLogger(__name__)

RegenerateFn = Callable[[str], Union[Awaitable[str], str]]


async def call_regenerate(regenerate: RegenerateFn, prompt: str) -> str:
    """Invoke a regeneration callback, awaiting it when it returns an awaitable."""
    result = regenerate(prompt)
    if inspect.isawaitable(result):
        result = await result
    return result if isinstance(result, str) else str(result)


class AutoRetryEngine:
    """Drives a response through validation and correction rounds."""

    def __init__(
        self,
        validator: Optional[SchemaValidator] = None,
        catalog: Optional[ContractCatalog] = None,
        scanner: Optional[SecretScanner] = None,
        max_retries: Optional[int] = None,
        preview_chars: Optional[int] = None,
    ):
        """Initialize the engine.

        Args:
            validator: SchemaValidator to use (a default one shares ``catalog``/``scanner``)
            catalog: Contract catalog for correction-prompt rules
            scanner: Secret scanner used to mask the final text
            max_retries: Correction rounds allowed (default: settings.max_retries)
            preview_chars: Response preview length in correction prompts
        """
        self.catalog = catalog or ContractCatalog()
        self.scanner = scanner or SecretScanner()
        self.validator = validator or SchemaValidator(scanner=self.scanner, catalog=self.catalog)
        self.max_retries = settings.max_retries if max_retries is None else max_retries
        self.preview_chars = preview_chars or settings.correction_preview_chars

    def build_correction_prompt(
        self,
        original_response: str,
        errors: List[str],
        contract_type: ContractType,
        json_only: bool = False,
    ) -> str:
        """Build the prompt that asks the model to repair its answer.

        The quoted response is masked so secrets never travel back to the model.
        """
        masked = self.scanner.mask(original_response).masked
        preview = masked[:self.preview_chars]
        if len(masked) > self.preview_chars:
            preview += "...[truncado]"

        contract = self.catalog.get_contract(contract_type, json_only)
        parts = [
            "A resposta anterior contém erros que precisam ser corrigidos.\n\n",
            "ERROS DETECTADOS:\n",
        ]
        for i, error in enumerate(errors, 1):
            parts.append(f"{i}. {error}\n")
        parts.append(f"\nRESPOSTA COM PROBLEMAS:\n```\n{preview}\n```\n\n")
        parts.append(f"REGRAS DE CORREÇÃO ({contract.type.value.upper()}):\n")
        for i, rule in enumerate(contract.rule_texts, 1):
            parts.append(f"{i}. {rule}\n")
        parts.append("\nRetorne APENAS a versão corrigida. Se for JSON, retorne SOMENTE o JSON válido.")

        return "".join(parts)

    async def execute(
        self,
        initial_text: str,
        contract_type: ContractType,
        regenerate: RegenerateFn,
        json_only: bool = False,
    ) -> RetryOutcome:
        """Run the validate/correct cycle.

        Args:
            initial_text: First completion from the model
            contract_type: Contract the answer must follow
            regenerate: Callback taking a correction prompt and returning new text
                        (coroutine functions and plain callables both work)
            json_only: Whether the answer must be JSON only

        Returns:
            RetryOk or RetryDegraded; content problems never raise
        """
        current_text = initial_text
        attempts = 0
        secrets_detected = False
        secrets_masked: List[str] = []

        while True:
            validation = self.validator.validate(current_text, json_only=json_only, contract_type=contract_type)

            if validation.secrets_detected:
                secrets_detected = True
                for label in validation.secrets_masked:
                    if label not in secrets_masked:
                        secrets_masked.append(label)

            if validation.valid:
                if validation.sanitized_data is not None:
                    current_text = self._rebuild(current_text, validation.sanitized_data, json_only)
                return RetryOk(
                    text=self._final_text(current_text, secrets_detected),
                    attempts=attempts,
                    errors=[],
                    secrets_detected=secrets_detected,
                    secrets_masked=secrets_masked,
                )

            if attempts >= self.max_retries:
                logger.warning(
                    "Retries exhausted for %s after %d attempt(s): %s",
                    contract_type.value, attempts, "; ".join(validation.errors),
                )
                return RetryDegraded(
                    reason=DegradedReason.EXHAUSTED_RETRIES,
                    text=self._final_text(current_text, secrets_detected),
                    attempts=attempts,
                    errors=list(validation.errors),
                    secrets_detected=secrets_detected,
                    secrets_masked=secrets_masked,
                )

            attempts += 1
            logger.warning(
                "Correction attempt %d/%d for %s. Errors: %d",
                attempts, self.max_retries, contract_type.value, len(validation.errors),
            )
            correction_prompt = self.build_correction_prompt(current_text, validation.errors, contract_type, json_only)

            try:
                current_text = await call_regenerate(regenerate, correction_prompt)
            except Exception as e:
                failure = RegenerationFailure(e)
                logger.error("Regeneration failed on attempt %d: %s", attempts, e)
                return RetryDegraded(
                    reason=DegradedReason.REGENERATION_FAILED,
                    text=self._final_text(current_text, secrets_detected),
                    attempts=attempts,
                    errors=[*validation.errors, str(failure)],
                    secrets_detected=secrets_detected,
                    secrets_masked=secrets_masked,
                )

    @staticmethod
    def _rebuild(text: str, sanitized: object, json_only: bool) -> str:
        """Put the sanitized JSON back where the island was.

        Prose answers are left untouched when sanitizing changed nothing.
        """
        if json_only:
            return json.dumps(sanitized, indent=2, ensure_ascii=False, allow_nan=False)
        island = find_json_island(text)
        if island is None or not island.parsed or island.value == sanitized:
            return text
        return replace_island(text, island, fenced_json(sanitized))

    def _final_text(self, text: str, secrets_detected: bool) -> str:
        return self.scanner.mask(text).masked if secrets_detected else text
