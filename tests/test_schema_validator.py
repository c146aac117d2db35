"""Tests for the schema validator."""

import json

import pytest

from contracts import ContractType
from governance.errors import SecretLeakWarning
from governance.rule_checks import sanitize
from governance.schema_validator import JSON_REQUIRED_ERROR, SchemaValidator


OPENAI_KEY = "sk-" + "a1b2c3d4" * 6


@pytest.fixture
def validator():
    return SchemaValidator()


def validate_json(validator, data, contract_type=ContractType.JSON_FIX):
    return validator.validate(json.dumps(data), json_only=True, contract_type=contract_type)


class TestJsonPresence:
    def test_json_only_requires_json(self, validator):
        outcome = validator.validate("Claro! Aqui vai a explicação.", json_only=True)
        assert not outcome.valid
        assert outcome.errors == [JSON_REQUIRED_ERROR]

    def test_json_only_reports_parse_error(self, validator):
        outcome = validator.validate('{"a": 1,}', json_only=True, contract_type=ContractType.JSON_FIX)
        assert not outcome.valid
        assert outcome.errors[0].startswith("invalid JSON:")

    def test_prose_without_json_is_fine(self, validator):
        outcome = validator.validate("O serviço está saudável.", contract_type=ContractType.GENERAL)
        assert outcome.valid
        assert outcome.sanitized_data is None

    def test_parsed_value_is_returned(self, validator):
        outcome = validate_json(validator, {"user_name": "ana", "max_calls": 10})
        assert outcome.valid
        assert outcome.sanitized_data == {"user_name": "ana", "max_calls": 10}


class TestJsonFixRules:
    def test_snake_case_keys(self, validator):
        outcome = validate_json(validator, {"agent": {"user-name": "ana"}})
        assert 'key "agent.user-name" must be snake_case' in outcome.errors

    def test_pricing_keys_are_exempt(self, validator):
        outcome = validate_json(validator, {"pricing": {"input_per_1M": 0.15, "output_per_1M": 0.6}})
        assert outcome.valid

    def test_pricing_key_spelling_and_type(self, validator):
        outcome = validate_json(validator, {"pricing": {"Input_Per_1m": 1, "output_per_1M": "grátis"}})
        assert any('use exactly "input_per_1M"' in e for e in outcome.errors)
        assert "pricing.output_per_1M: must be a number" in outcome.errors

    def test_env_ref_string(self, validator):
        outcome = validate_json(validator, {"client_id": "env_ref:CLIENT_ID"})
        assert outcome.errors == [
            'field "client_id": use "client_id_env_ref" with the variable name instead of an env_ref string'
        ]

    def test_literal_sensitive_value(self, validator):
        outcome = validate_json(validator, {"client_secret": "hunter2"})
        assert outcome.errors == ['field "client_secret" must be "client_secret_env_ref" holding an environment variable name']

    def test_required_env_ref_not_empty(self, validator):
        outcome = validate_json(validator, {"auth": {"client_id_env_ref": ""}})
        assert 'required field "auth.client_id_env_ref" must not be empty' in outcome.errors

    def test_string_booleans_and_counters(self, validator):
        outcome = validate_json(validator, {"enabled": "true", "max_calls": "10", "user_id": "10"})
        assert 'field "enabled": "true" must be a boolean, not a string' in outcome.errors
        assert 'field "max_calls": "10" must be a number, not a string' in outcome.errors
        assert len(outcome.errors) == 2


class TestSanitize:
    def test_mechanical_mistakes_are_repaired(self, validator):
        outcome = validate_json(validator, {
            "agentName": "lia",
            "pricing": {"inputPer1M": "0.15", "OutputPer1M": " 2 "},
            "auth": {"scopes": "read, write  admin"},
        })
        assert outcome.valid
        assert outcome.sanitized_data == {
            "agent_name": "lia",
            "pricing": {"input_per_1M": 0.15, "output_per_1M": 2},
            "auth": {"scopes": ["read", "write", "admin"]},
        }

    def test_unparseable_pricing_string_is_kept(self):
        assert sanitize({"input_per_1M": "nan"}) == {"input_per_1M": "nan"}

    def test_lists_are_walked(self):
        assert sanitize([{"userId": 1}, "x"]) == [{"user_id": 1}, "x"]


class TestJsonSafetyOnEveryContract:
    def test_literal_credential_under_general(self, validator):
        outcome = validator.validate(
            '{"db_password": "hunter2", "userName": "x"}',
            json_only=True,
            contract_type=ContractType.GENERAL,
        )
        assert outcome.errors == ['field "db_password" must be "db_password_env_ref" holding an environment variable name']

    def test_env_ref_string_in_prose_answer(self, validator):
        outcome = validator.validate(
            'Segue a configuração sugerida: {"client_id": "env_ref:CLIENT_ID"}',
            contract_type=ContractType.DOC_SUMMARY,
        )
        assert not outcome.valid
        assert "client_id_env_ref" in outcome.errors[0]


class TestSecrets:
    def test_secrets_are_masked_in_sanitized_data(self, validator):
        text = json.dumps({"note": OPENAI_KEY, "owner": "joao.silva@example.com"})
        with pytest.warns(SecretLeakWarning):
            outcome = validator.validate(text, json_only=True, contract_type=ContractType.JSON_FIX)
        assert outcome.valid
        assert outcome.secrets_detected
        assert outcome.secrets_masked == ["openai_key", "email"]
        assert outcome.sanitized_data == {"note": "[OPENAI_KEY_MASKED]", "owner": "j***@example.com"}

    def test_masked_sensitive_field_is_accepted(self, validator):
        with pytest.warns(SecretLeakWarning):
            outcome = validate_json(validator, {"api_key": OPENAI_KEY})
        assert outcome.valid
        assert outcome.sanitized_data == {"api_key": "[OPENAI_KEY_MASKED]"}

    def test_secrets_outside_json_are_reported(self, validator):
        with pytest.warns(SecretLeakWarning):
            outcome = validator.validate("Meu email é ana@example.com")
        assert outcome.valid
        assert outcome.secrets_masked == ["email"]


class TestProseRules:
    def test_unwanted_raw_json(self, validator):
        outcome = validator.validate('{"resumo": "ok", "itens": [1, 2]}', contract_type=ContractType.GENERAL)
        assert not outcome.valid
        assert outcome.errors[0].startswith("unwanted raw JSON")

    def test_json_after_prose_is_allowed(self, validator):
        outcome = validator.validate('Segue o resultado solicitado: {"a": 1}', contract_type=ContractType.GENERAL)
        assert outcome.valid

    def test_raw_json_allowed_when_requested(self, validator):
        outcome = validator.validate('{"resumo": "ok"}', json_only=True, contract_type=ContractType.LOG_ANALYSIS)
        assert outcome.valid

    def test_action_confirmation_without_payload(self, validator):
        outcome = validator.validate(
            "Planilha criada! https://docs.example.com/sheet/1",
            contract_type=ContractType.ACTION_EXECUTION,
        )
        assert outcome.valid

    def test_action_confirmation_with_payload(self, validator):
        outcome = validator.validate(
            'Planilha criada! {"sheet_id": 1, "rows": 10}',
            contract_type=ContractType.ACTION_EXECUTION,
        )
        assert outcome.errors == ["action confirmations must not display JSON or payloads"]
