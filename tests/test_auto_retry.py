"""Tests for the auto-retry engine."""

import asyncio
import json
import warnings
from unittest.mock import MagicMock

import pytest

from contracts import ContractType, DegradedReason, RetryDegraded, RetryOk
from governance.auto_retry import AutoRetryEngine
from governance.schema_validator import JSON_REQUIRED_ERROR


OPENAI_KEY = "sk-" + "a1b2c3d4" * 6


@pytest.fixture(autouse=True)
def quiet_secret_warnings():
    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        yield


@pytest.fixture
def engine():
    return AutoRetryEngine(max_retries=2)


def run(engine, text, contract_type, regenerate, json_only=False):
    return asyncio.run(engine.execute(text, contract_type, regenerate, json_only=json_only))


class TestSuccess:
    def test_valid_first_response(self, engine):
        regenerate = MagicMock(return_value="nunca usado")
        outcome = run(engine, "Tudo certo, o serviço está no ar.", ContractType.GENERAL, regenerate)
        assert isinstance(outcome, RetryOk)
        assert outcome.success
        assert outcome.attempts == 0
        assert outcome.text == "Tudo certo, o serviço está no ar."
        regenerate.assert_not_called()

    def test_json_only_with_secret_is_rebuilt_and_masked(self, engine):
        """Prose around the JSON is dropped and the key is masked."""
        text = f'Aqui está: {{"foo":1,"bar":"{OPENAI_KEY}"}}'
        outcome = run(engine, text, ContractType.JSON_FIX, MagicMock(), json_only=True)
        assert outcome.success
        assert outcome.attempts == 0
        assert outcome.secrets_masked == ["openai_key"]
        assert json.loads(outcome.text) == {"foo": 1, "bar": "[OPENAI_KEY_MASKED]"}
        assert OPENAI_KEY not in outcome.text

    def test_prose_is_not_rewritten_without_secrets(self, engine):
        text = "Veja a referência [1] no final."
        outcome = run(engine, text, ContractType.GENERAL, MagicMock())
        assert outcome.text == text

    def test_non_standard_constants_force_a_correction(self, engine):
        regenerate = MagicMock(return_value='{"ratio": 0.5}')
        outcome = run(engine, '{"ratio": NaN}', ContractType.JSON_FIX, regenerate, json_only=True)
        assert outcome.success
        assert outcome.attempts == 1
        assert json.loads(outcome.text) == {"ratio": 0.5}
        assert "non-standard JSON constant NaN" in regenerate.call_args[0][0]

    def test_repaired_json_is_written_back_into_prose(self, engine):
        text = 'Configuração pronta: {"agentName": "lia"} Qualquer dúvida, me avise.'
        outcome = run(engine, text, ContractType.GENERAL, MagicMock())
        assert outcome.attempts == 0
        assert outcome.text == (
            'Configuração pronta: ```json\n{\n  "agent_name": "lia"\n}\n``` Qualquer dúvida, me avise.'
        )


class TestCorrection:
    def test_one_correction_round(self, engine):
        """Missing JSON is repaired by the regeneration callback."""
        prompts = []

        async def regenerate(prompt):
            prompts.append(prompt)
            return '{"user_name": "ana"}'

        outcome = run(engine, "Sure, here's info", ContractType.JSON_FIX, regenerate, json_only=True)

        assert isinstance(outcome, RetryOk)
        assert outcome.attempts == 1
        assert outcome.text == json.dumps({"user_name": "ana"}, indent=2)
        assert len(prompts) == 1
        assert f"1. {JSON_REQUIRED_ERROR}" in prompts[0]
        assert "REGRAS DE CORREÇÃO (JSON_FIX)" in prompts[0]

    def test_sync_callback(self, engine):
        regenerate = MagicMock(return_value='{"user_name": "ana"}')
        outcome = run(engine, "sem json", ContractType.JSON_FIX, regenerate, json_only=True)
        assert outcome.success
        regenerate.assert_called_once()

    def test_secrets_accumulate_across_passes(self, engine):
        prompts = []

        async def regenerate(prompt):
            prompts.append(prompt)
            return json.dumps({"token": OPENAI_KEY})

        outcome = run(engine, "Contato: joao.silva@example.com", ContractType.JSON_FIX, regenerate, json_only=True)

        assert outcome.success
        assert outcome.secrets_detected
        assert outcome.secrets_masked == ["email", "openai_key"]
        assert OPENAI_KEY not in outcome.text
        # the rejected answer is quoted back masked
        assert "j***@example.com" in prompts[0]
        assert "joao.silva" not in prompts[0]


class TestDegraded:
    def test_regeneration_failure(self, engine):
        async def regenerate(prompt):
            raise TimeoutError("took too long")

        outcome = run(engine, "Claro! Aqui vai.", ContractType.JSON_FIX, regenerate, json_only=True)

        assert isinstance(outcome, RetryDegraded)
        assert not outcome.success
        assert outcome.reason == DegradedReason.REGENERATION_FAILED
        assert outcome.attempts == 1
        assert outcome.errors == [JSON_REQUIRED_ERROR, "regeneration failed: took too long"]
        assert outcome.text == "Claro! Aqui vai."

    def test_exhausted_retries(self, engine):
        regenerate = MagicMock(return_value="ainda sem json")
        outcome = run(engine, "sem json", ContractType.JSON_FIX, regenerate, json_only=True)

        assert outcome.reason == DegradedReason.EXHAUSTED_RETRIES
        assert outcome.attempts == 2
        assert regenerate.call_count == 2
        assert outcome.errors == [JSON_REQUIRED_ERROR]

    def test_zero_retries(self):
        regenerate = MagicMock(return_value="{}")
        engine = AutoRetryEngine(max_retries=0)
        outcome = run(engine, "sem json", ContractType.JSON_FIX, regenerate, json_only=True)
        assert outcome.reason == DegradedReason.EXHAUSTED_RETRIES
        assert outcome.attempts == 0
        regenerate.assert_not_called()

    @pytest.mark.parametrize("max_retries", [0, 1, 3])
    def test_attempts_never_exceed_max_retries(self, max_retries):
        engine = AutoRetryEngine(max_retries=max_retries)
        outcome = run(engine, "x", ContractType.JSON_FIX, MagicMock(return_value="y"), json_only=True)
        assert outcome.attempts == max_retries

    def test_degraded_text_is_masked(self, engine):
        regenerate = MagicMock(return_value=f"a chave é {OPENAI_KEY}")
        outcome = run(engine, "sem json", ContractType.JSON_FIX, regenerate, json_only=True)
        assert not outcome.success
        assert outcome.text == "a chave é [OPENAI_KEY_MASKED]"


class TestCorrectionPrompt:
    def test_preview_is_masked_and_truncated(self):
        engine = AutoRetryEngine(preview_chars=100)
        response = f"chave {OPENAI_KEY} " + "x" * 300
        prompt = engine.build_correction_prompt(response, ["erro um", "erro dois"], ContractType.GENERAL)

        assert OPENAI_KEY not in prompt
        assert "[OPENAI_KEY_MASKED]" in prompt
        assert "...[truncado]" in prompt
        assert "1. erro um\n2. erro dois\n" in prompt
        assert prompt.endswith("retorne SOMENTE o JSON válido.")
