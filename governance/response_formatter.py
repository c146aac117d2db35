"""Derives the chat, voice and detail views of an accepted response."""

import re
from typing import Dict, List, Optional

from config import settings
from contracts import ContractType, DetailPayload, FormattedOutput, LivePayload

from .json_extraction import find_json_island, strip_json
from .secret_scanner import SecretScanner

SAFETY_NOTICE = "Atenção: removi alguns dados sensíveis por segurança."
DETAILS_SUFFIX = "Os detalhes completos estão no chat."
EMPTY_FALLBACK = "A resposta está disponível no chat."
JSON_FIX_DONE = "Pronto! Gerei o JSON corrigido e deixei no chat para você copiar."
JSON_FIX_NO_COUNT = "Verifique as alterações no chat."

# Contracts whose voice script never depends on the response content
VOICE_TEMPLATES: Dict[ContractType, str] = {
    ContractType.LOG_ANALYSIS: "Analisei os logs e identifiquei a causa raiz. A correção está no chat.",
    ContractType.SPREADSHEET_ANALYSIS: "Processei a planilha e separei os principais achados. Veja os detalhes no chat.",
    ContractType.DOC_SUMMARY: "Resumi o documento com os pontos principais e as ações recomendadas.",
    ContractType.VISUAL_TROUBLESHOOTING: "Identifiquei o problema na imagem e detalhei a correção passo a passo.",
    ContractType.ACTION_EXECUTION: "A ação solicitada foi concluída. Veja os detalhes no chat.",
}

CHANGE_HEADING = re.compile(r"(?:alterações|alteracoes|changes|modificações|corrigido|correções)", re.IGNORECASE)
BULLET = re.compile(r"^\s*(?:[-•*]|\d+[.)])\s+\S")
MARKDOWN_NOISE = re.compile(r"^\s*(?:#{1,6}\s+|[-•*]\s+|>\s+)|[*_`]{1,3}")


class ResponseFormatter:
    """Formats a governed response for chat UIs and the voice assistant."""

    def __init__(
        self,
        scanner: Optional[SecretScanner] = None,
        word_budget: Optional[int] = None,
        hard_cap: Optional[int] = None,
    ):
        self.scanner = scanner or SecretScanner()
        self.word_budget = word_budget or settings.voice_word_budget
        self.hard_cap = hard_cap or settings.voice_word_hard_cap

    def format(
        self,
        text: str,
        contract_type: ContractType,
        secrets_detected: bool = False,
        json_only: bool = False,
    ) -> FormattedOutput:
        """Build every view of a response.

        Args:
            text: Accepted (or best-effort) response text
            contract_type: Contract the response was governed under
            secrets_detected: Whether secrets were found during validation
            json_only: Whether the caller demanded JSON-only output

        Returns:
            FormattedOutput with markdown, voice script and detail payload
        """
        markdown = self.scanner.mask(text).masked if secrets_detected else text

        island = find_json_island(markdown)
        has_json = island is not None and island.parsed
        json_data = island.value if has_json else None

        voice_script = self.generate_voice_script(markdown, contract_type, has_json, secrets_detected)

        detail_payload = DetailPayload(
            type=contract_type,
            content=json_data if json_only and has_json else markdown,
            json_data=json_data,
        )

        return FormattedOutput(
            markdown=markdown,
            voice_script=voice_script,
            detail_payload=detail_payload,
            has_json=has_json,
            json_data=json_data,
            secrets_warning=secrets_detected,
        )

    def format_for_live(
        self,
        text: str,
        contract_type: ContractType,
        secrets_detected: bool = False,
    ) -> LivePayload:
        """Project the formatted views onto what live mode consumes."""
        formatted = self.format(text, contract_type, secrets_detected=secrets_detected)
        return LivePayload(
            voice_script=formatted.voice_script,
            chat_payload=formatted.markdown,
            json_data=formatted.json_data,
        )

    def generate_voice_script(
        self,
        text: str,
        contract_type: ContractType,
        has_json: bool,
        secrets_detected: bool,
    ) -> str:
        """Short speakable summary, never longer than the hard word cap."""
        parts: List[str] = []
        if secrets_detected:
            parts.append(SAFETY_NOTICE)

        if contract_type == ContractType.JSON_FIX and has_json:
            parts.append(JSON_FIX_DONE)
            parts.append(self._change_summary(text))
        elif contract_type in VOICE_TEMPLATES:
            parts.append(VOICE_TEMPLATES[contract_type])
        else:
            parts.append(self._summarize(text))

        return self._cap(" ".join(parts))

    def _change_summary(self, text: str) -> str:
        """Count bullet items listed under a changes heading."""
        lines = text.splitlines()
        for index, line in enumerate(lines):
            if not CHANGE_HEADING.search(line):
                continue
            count = 0
            for following in lines[index + 1:]:
                if not following.strip():
                    if count:
                        break
                    continue
                if BULLET.match(following):
                    count += 1
                elif count:
                    break
            if count == 1:
                return "Fiz 1 correção principal."
            if count > 1:
                return f"Fiz {count} correções principais."
        return JSON_FIX_NO_COUNT

    def _summarize(self, text: str) -> str:
        """Greedily keep whole lines until the word budget is reached."""
        lines = [MARKDOWN_NOISE.sub("", line).strip() for line in strip_json(text).splitlines()]
        lines = [line for line in lines if line]
        if not lines:
            return EMPTY_FALLBACK

        words: List[str] = []
        for line in lines:
            line_words = line.split()
            if len(words) + len(line_words) > self.word_budget:
                break
            words.extend(line_words)

        if not words:
            words = lines[0].split()[:self.word_budget]
        return " ".join(words)

    def _cap(self, script: str) -> str:
        words = script.split()
        if len(words) <= self.hard_cap:
            return script.strip()
        keep = max(1, self.hard_cap - len(DETAILS_SUFFIX.split()))
        return " ".join(words[:keep]).rstrip(".,;:") + "... " + DETAILS_SUFFIX
