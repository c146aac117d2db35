"""Intent classifier for choosing an output contract.

Keyword heuristics over the user prompt plus the MIME types of attached
files. No model call: the decision has to be deterministic and cheap because
it runs before the first generation and again when governing the answer.
"""

import re
from typing import Iterable, List, Optional, Sequence, Tuple

from contracts import ContractType


class IntentClassifier:
    """Maps a prompt (and attachments) to a ContractType.

    Priority order, first match wins:
    1. action_execution - the user wants something created or sent
    2. json_fix - the user explicitly asks for JSON / a payload
    3. log_analysis - log keywords or text/log attachments
    4. visual_troubleshooting - image attachments
    5. spreadsheet_analysis - spreadsheet keywords or sheet/csv attachments
    6. doc_summary - pdf/word/document attachments
    7. incident - the user disputes a previous answer
    8. general
    """

    ACTION_EXECUTION_INDICATORS = [
        "criar planilha", "gerar planilha", "crie uma planilha", "faz uma planilha",
        "criar documento", "gerar doc", "enviar email", "agendar evento",
        "create spreadsheet", "make a sheet", "sheets", "docs", "no excel", "excel",
    ]

    JSON_FIX_INDICATORS = [
        "traga um json", "me mostre o json", "formato json", "payload", "estrutura de dados",
        "gerar json", "api response", "raw data", "json format", "corrija o json", "fix the json",
    ]

    LOG_ANALYSIS_INDICATORS = [
        "log", "logs", "console", "stack trace", "traceback", "exception", "exceptions",
        "debug", "debugar", "warning", "warnings", "error log",
    ]

    SPREADSHEET_INDICATORS = [
        "analise a planilha", "detalhe a tabela", "estatísticas da planilha",
        "o que tem nesse excel", "análise de dados",
    ]

    INCIDENT_INDICATORS = [
        "está errado", "não foi isso que eu pedi", "corrija isso", "re-audite",
        "verifique novamente", "você se confundiu", "that's wrong", "not what i asked",
    ]

    JSON_ONLY_INDICATORS = [
        "apenas json", "apenas o json", "somente json", "somente o json", "só json", "só o json",
        "json puro", "only json", "json only", "just json", "just the json", "pure json",
        "raw json", "nothing but json",
    ]

    LOG_FILE_MARKERS = ["text/", "log"]
    SPREADSHEET_FILE_MARKERS = ["spreadsheet", "excel", "csv"]
    DOCUMENT_FILE_MARKERS = ["pdf", "word", "document"]

    def classify(
        self,
        prompt: str,
        has_files: bool = False,
        file_types: Optional[Sequence[str]] = None,
    ) -> Tuple[ContractType, str]:
        """Classify the prompt.

        Args:
            prompt: User prompt text
            has_files: Whether files were attached
            file_types: MIME types of the attached files

        Returns:
            Tuple of (ContractType, evidence)
        """
        content_lower = prompt.casefold()
        types = [t.casefold() for t in (file_types or [])] if has_files else []

        hit = self._first_indicator(content_lower, self.ACTION_EXECUTION_INDICATORS)
        if hit:
            return ContractType.ACTION_EXECUTION, f"Contains '{hit}'"

        hit = self._first_indicator(content_lower, self.JSON_FIX_INDICATORS)
        if hit:
            return ContractType.JSON_FIX, f"Contains '{hit}'"

        hit = self._first_indicator(content_lower, self.LOG_ANALYSIS_INDICATORS)
        if hit:
            return ContractType.LOG_ANALYSIS, f"Contains '{hit}'"
        if self._any_file(types, self.LOG_FILE_MARKERS):
            return ContractType.LOG_ANALYSIS, "Text/log attachment"

        if any(t.startswith("image/") for t in types):
            return ContractType.VISUAL_TROUBLESHOOTING, "Image attachment"

        hit = self._first_indicator(content_lower, self.SPREADSHEET_INDICATORS)
        if hit:
            return ContractType.SPREADSHEET_ANALYSIS, f"Contains '{hit}'"
        if self._any_file(types, self.SPREADSHEET_FILE_MARKERS):
            return ContractType.SPREADSHEET_ANALYSIS, "Spreadsheet attachment"

        if self._any_file(types, self.DOCUMENT_FILE_MARKERS):
            return ContractType.DOC_SUMMARY, "Document attachment"

        hit = self._first_indicator(content_lower, self.INCIDENT_INDICATORS)
        if hit:
            return ContractType.INCIDENT, f"Contains '{hit}'"

        return ContractType.GENERAL, "No strong indicators found"

    def detect_intent(
        self,
        prompt: str,
        has_files: bool = False,
        file_types: Optional[Sequence[str]] = None,
    ) -> ContractType:
        """Return only the contract type from ``classify``."""
        return self.classify(prompt, has_files, file_types)[0]

    def is_json_requested(self, prompt: str) -> bool:
        """True if the prompt explicitly asks for JSON and nothing else."""
        return self._first_indicator(prompt.casefold(), self.JSON_ONLY_INDICATORS) is not None

    def is_incident(self, prompt: str) -> bool:
        """True if the user is disputing a previous answer."""
        return self._first_indicator(prompt.casefold(), self.INCIDENT_INDICATORS) is not None

    @staticmethod
    def _first_indicator(content_lower: str, indicators: Iterable[str]) -> Optional[str]:
        # Whole-word match: "log" must not fire on "login" or "catalog"
        for indicator in indicators:
            if re.search(rf"(?<!\w){re.escape(indicator)}(?!\w)", content_lower):
                return indicator
        return None

    @staticmethod
    def _any_file(file_types: List[str], markers: Iterable[str]) -> bool:
        return any(marker in t for t in file_types for marker in markers)


def detect_intent(
    prompt: str,
    has_files: bool = False,
    file_types: Optional[Sequence[str]] = None,
) -> ContractType:
    """Convenience function for classifying a prompt.

    Args:
        prompt: User prompt text
        has_files: Whether files were attached
        file_types: MIME types of the attached files

    Returns:
        ContractType for the prompt
    """
    classifier = IntentClassifier()
    return classifier.detect_intent(prompt, has_files, file_types)
