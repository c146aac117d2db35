"""Static catalog of output contracts.

A contract names the genre of an answer and carries the rules an acceptable
response must follow. Rule texts are rendered into prompts (before the first
generation and in correction rounds); rule checks are run by the validator.

The catalog is a table keyed by ContractType and is verified against the
enum at import time, so an unknown contract can only mean a programming
defect (ConfigurationError), never a runtime condition.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, Sequence, Tuple, Union

from contracts import ContractType
from router import IntentClassifier

from .errors import ConfigurationError
from .rule_checks import (
    RuleCheck,
    check_env_ref_strings,
    check_no_payload,
    check_no_raw_json,
    check_pricing_format,
    check_required_env_refs,
    check_sensitive_fields,
    check_snake_case_keys,
    check_value_types,
)


@dataclass(frozen=True)
class OutputRule:
    """A human-readable rule, optionally backed by a predicate."""
    text: str
    check: Optional[RuleCheck] = None


@dataclass(frozen=True)
class Contract:
    """Allowed output shape for one ContractType."""
    type: ContractType
    system_instructions: str
    output_rules: Tuple[OutputRule, ...] = field(default_factory=tuple)
    json_only: bool = False

    @property
    def rule_texts(self) -> Tuple[str, ...]:
        return tuple(rule.text for rule in self.output_rules)

    @property
    def checks(self) -> Tuple[RuleCheck, ...]:
        return tuple(rule.check for rule in self.output_rules if rule.check is not None)


MASTER_INSTRUCTION = """PROTOCOLO OPERACIONAL:
A) Nunca exiba JSON, schemas ou logs técnicos, a menos que o usuário peça explicitamente.
B) Toda comunicação deve ser em Português do Brasil (PT-BR).
C) Classifique o pedido e extraia apenas o necessário.
D) Valide tecnicamente: chaves em snake_case, nenhum segredo exposto.
E) Responda EXATAMENTE ao que foi pedido.
F) Se não puder fazer algo, diga com sinceridade que ainda não é suportado.
G) Entregue de forma humanizada e acionável, sem tutoriais manuais."""

INCIDENT_PROTOCOL = (
    "⚠️ PROTOCOLO DE INCIDENTE ATIVADO: o usuário questionou o resultado anterior.\n"
    "Você deve: 1. Comparar o pedido original com a sua última saída. "
    "2. Rodar uma validação rigorosa. 3. Identificar as lacunas. 4. Corrigir.\n"
)

JSON_ONLY_BANNER = "\n⚠️ MODO JSON ONLY ATIVO: retorne APENAS o JSON."

NO_RAW_JSON = OutputRule("Resposta em linguagem natural, sem estruturas de dados cruas", check_no_raw_json)


def _json_fix(json_only: bool) -> Contract:
    instructions = (
        "RESPONDA EXCLUSIVAMENTE COM JSON VÁLIDO. Sem texto, sem explicações."
        if json_only
        else f"{MASTER_INSTRUCTION}\nRetorne o JSON final corrigido, seguido de um checklist curto "
             "(máx. 6 itens) com as alterações feitas."
    )
    return Contract(
        type=ContractType.JSON_FIX,
        system_instructions=instructions,
        json_only=json_only,
        output_rules=(
            OutputRule("100% snake_case em todas as chaves", check_snake_case_keys),
            OutputRule('Proibido "env_ref:CHAVE" como string; use campos *_env_ref: "CHAVE"', check_env_ref_strings),
            OutputRule("Campos sensíveis (api_key, client_secret, senha...) só como *_env_ref", check_sensitive_fields),
            OutputRule("Campos obrigatórios *_env_ref (como client_id_env_ref) nunca vazios", check_required_env_refs),
            OutputRule("Chaves de pricing exatas: input_per_1M e output_per_1M, com valores numéricos", check_pricing_format),
            OutputRule("Booleanos e contadores com tipos nativos, nunca como string", check_value_types),
            OutputRule("Nunca vazar tokens, JWT ou chaves sk- reais"),
        ),
    )


def _doc_summary(json_only: bool) -> Contract:
    return Contract(
        type=ContractType.DOC_SUMMARY,
        system_instructions=f"{MASTER_INSTRUCTION}\nResuma o documento focando no objetivo. Proibido colar o documento inteiro.",
        output_rules=(
            OutputRule("Resumo executivo (3-6 linhas)"),
            OutputRule("Dados-chave em bullets"),
            OutputRule("Pontos de atenção e ações recomendadas"),
            OutputRule("Referências (páginas/trechos, máx. 3-5)"),
            NO_RAW_JSON,
        ),
    )


def _visual_troubleshooting(json_only: bool) -> Contract:
    return Contract(
        type=ContractType.VISUAL_TROUBLESHOOTING,
        system_instructions=f"{MASTER_INSTRUCTION}\nTrate como troubleshooting visual, com foco no que foi marcado ou evidenciado.",
        output_rules=(
            OutputRule("O que foi marcado e o que a evidência mostra"),
            OutputRule("Causa provável (top 1-3)"),
            OutputRule("Correção passo a passo e como validar"),
            OutputRule("Proibido resumo geral se houver marcação"),
            NO_RAW_JSON,
        ),
    )


def _spreadsheet_analysis(json_only: bool) -> Contract:
    return Contract(
        type=ContractType.SPREADSHEET_ANALYSIS,
        system_instructions=f"{MASTER_INSTRUCTION}\nSe o usuário pedir para detalhar, explique em texto rico e amigável. Não use JSON por padrão.",
        output_rules=(
            OutputRule("Explique o conteúdo em linguagem natural (PT-BR)"),
            OutputRule("Destaque tendências e insights sem IDs técnicos"),
            OutputRule("Sugestões de melhoria acionáveis"),
            OutputRule("JSON apenas se solicitado explicitamente", check_no_raw_json),
        ),
    )


def _log_analysis(json_only: bool) -> Contract:
    return Contract(
        type=ContractType.LOG_ANALYSIS,
        system_instructions=f"{MASTER_INSTRUCTION}\nIdentifique o erro raiz e o impacto.",
        output_rules=(
            OutputRule("Erro raiz detectado"),
            OutputRule("Contexto e impacto"),
            OutputRule("Correção exata e como validar"),
            NO_RAW_JSON,
        ),
    )


def _action_execution(json_only: bool) -> Contract:
    return Contract(
        type=ContractType.ACTION_EXECUTION,
        system_instructions=(
            f"{MASTER_INSTRUCTION}\n"
            "Use a ferramenta apropriada e entregue o resultado. Não dê instruções manuais.\n"
            "Se houver um link de planilha no histórico, reutilize o mesmo arquivo em vez de criar outro."
        ),
        output_rules=(
            OutputRule("Usar a ferramenta apropriada, sem instruções manuais"),
            OutputRule("Confirmação curta da ação executada em PT-BR, com link direto"),
            OutputRule("Proibido exibir JSON, payloads ou estruturas técnicas", check_no_payload),
            OutputRule("Resposta máxima: 2 frases + link"),
        ),
    )


def _incident(json_only: bool) -> Contract:
    return Contract(
        type=ContractType.INCIDENT,
        system_instructions=f"{MASTER_INSTRUCTION}\nO usuário contestou a resposta anterior. Reaudite antes de responder.",
        output_rules=(
            OutputRule("Reconheça objetivamente o que estava errado"),
            OutputRule("Liste as lacunas encontradas na resposta anterior"),
            OutputRule("Entregue a versão corrigida completa"),
            NO_RAW_JSON,
        ),
    )


def _general(json_only: bool) -> Contract:
    return Contract(
        type=ContractType.GENERAL,
        system_instructions=MASTER_INSTRUCTION,
        output_rules=(
            OutputRule("Curto, estruturado e acionável"),
            OutputRule("Sem respostas genéricas"),
            OutputRule("Mascarar segredos"),
            NO_RAW_JSON,
        ),
    )


CONTRACTS: Dict[ContractType, Callable[[bool], Contract]] = {
    ContractType.GENERAL: _general,
    ContractType.JSON_FIX: _json_fix,
    ContractType.LOG_ANALYSIS: _log_analysis,
    ContractType.SPREADSHEET_ANALYSIS: _spreadsheet_analysis,
    ContractType.DOC_SUMMARY: _doc_summary,
    ContractType.VISUAL_TROUBLESHOOTING: _visual_troubleshooting,
    ContractType.ACTION_EXECUTION: _action_execution,
    ContractType.INCIDENT: _incident,
}


def verify_catalog(table: Dict[ContractType, Callable[[bool], Contract]]) -> None:
    """Ensure every ContractType has an entry that builds its own type."""
    missing = [t.value for t in ContractType if t not in table]
    if missing:
        raise ConfigurationError(f"contract catalog has no entry for: {', '.join(missing)}")
    for contract_type, build in table.items():
        built = build(False).type
        if built != contract_type:
            raise ConfigurationError(f"catalog entry {contract_type.value} builds a {built.value} contract")


verify_catalog(CONTRACTS)


class ContractCatalog:
    """Contract registry plus intent-detection heuristics."""

    def __init__(
        self,
        classifier: Optional[IntentClassifier] = None,
        table: Optional[Dict[ContractType, Callable[[bool], Contract]]] = None,
    ):
        self.classifier = classifier or IntentClassifier()
        self.table = CONTRACTS if table is None else table
        if table is not None:
            verify_catalog(table)

    def detect_intent(
        self,
        prompt: str,
        has_files: bool = False,
        file_types: Optional[Sequence[str]] = None,
    ) -> ContractType:
        return self.classifier.detect_intent(prompt, has_files, file_types)

    def is_json_requested(self, prompt: str) -> bool:
        return self.classifier.is_json_requested(prompt)

    def is_incident(self, prompt: str) -> bool:
        return self.classifier.is_incident(prompt)

    def get_contract(self, contract_type: Union[ContractType, str], json_only: bool = False) -> Contract:
        """Look up a contract.

        Args:
            contract_type: ContractType (or its string value)
            json_only: Whether the caller demanded JSON-only output

        Returns:
            Contract for the type

        Raises:
            ConfigurationError: If the type is not in the catalog
        """
        try:
            return self.table[ContractType(contract_type)](json_only)
        except (KeyError, ValueError) as e:
            raise ConfigurationError(f"no contract registered for {contract_type!r}") from e

    def build_contract_prompt(
        self,
        contract_type: Union[ContractType, str],
        json_only: bool = False,
        is_incident: bool = False,
    ) -> str:
        """Render a contract into an instruction block for the model."""
        contract = self.get_contract(contract_type, json_only)

        parts = [f"=== CONTRATO DE OUTPUT: {contract.type.value.upper()} ===\n"]
        if is_incident:
            parts.append(INCIDENT_PROTOCOL + "\n")
        parts.append(contract.system_instructions + "\n\n")
        parts.append("REGRAS OBRIGATÓRIAS DE EXCELÊNCIA:\n")
        for i, rule in enumerate(contract.rule_texts, 1):
            parts.append(f"{i}. {rule}\n")
        if json_only:
            parts.append(JSON_ONLY_BANNER)

        return "".join(parts)
