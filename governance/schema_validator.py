"""Validates a candidate response against its contract.

One pass:
1. Locate the JSON island (balanced-bracket scan, fenced blocks preferred)
2. Parse it; missing or broken JSON is an error only in json-only mode
3. Repair mechanical JSON mistakes (key casing, pricing values, scopes)
4. Scan the full text for secrets and mask them inside the parsed JSON
5. Run the contract's rule checks, plus the JSON safety checks whenever
   JSON parsed, over the sanitized data
6. valid = no errors
"""

import logging
import warnings
from typing import List, Optional

from contracts import ContractType, ValidationOutcome

from .contract_catalog import ContractCatalog
from .errors import SecretLeakWarning
from .json_extraction import find_json_island
from .rule_checks import JSON_SAFETY_CHECKS, RuleInput, sanitize
from .secret_scanner import SecretScanner

logger = logging.getLogger(__name__)

JSON_REQUIRED_ERROR = "response must contain JSON only."


class SchemaValidator:
    """Structural and safety validation of model output."""

    def __init__(
        self,
        scanner: Optional[SecretScanner] = None,
        catalog: Optional[ContractCatalog] = None,
    ):
        self.scanner = scanner or SecretScanner()
        self.catalog = catalog or ContractCatalog()

    def validate(
        self,
        text: str,
        json_only: bool = False,
        contract_type: ContractType = ContractType.GENERAL,
    ) -> ValidationOutcome:
        """Validate a response.

        Args:
            text: Candidate response text
            json_only: Whether the answer must be parseable JSON
            contract_type: Contract whose rule checks apply

        Returns:
            ValidationOutcome (never raises for content problems)
        """
        errors: List[str] = []
        island = find_json_island(text)

        data = None
        if island is None:
            if json_only:
                errors.append(JSON_REQUIRED_ERROR)
        elif not island.parsed:
            if json_only:
                errors.append(f"invalid JSON: {island.error}")
        else:
            data = sanitize(island.value)

        scan = self.scanner.scan(text)
        labels = scan.labels()
        if scan.found:
            logger.info("Secrets detected in response: %s", ", ".join(labels))
            warnings.warn(f"masked secret-like data: {', '.join(labels)}", SecretLeakWarning, stacklevel=2)
            if data is not None:
                data = self.scanner.mask_value(data)

        contract = self.catalog.get_contract(contract_type, json_only)
        rule_input = RuleInput(text=text, island=island, data=data, json_only=json_only)
        checks = list(contract.checks)
        if data is not None:
            checks.extend(c for c in JSON_SAFETY_CHECKS if c not in checks)
        for check in checks:
            errors.extend(check(rule_input))

        return ValidationOutcome(
            valid=not errors,
            errors=errors,
            secrets_detected=scan.found,
            secrets_masked=labels,
            sanitized_data=data,
        )
