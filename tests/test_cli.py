"""Tests for the command-line interface."""

import json
from unittest.mock import AsyncMock, MagicMock, patch

from click.testing import CliRunner

from main import cli


class TestCli:
    def test_contracts_lists_every_type(self):
        result = CliRunner().invoke(cli, ["contracts"])
        assert result.exit_code == 0
        assert "json_fix" in result.output
        assert "visual_troubleshooting" in result.output

    def test_contracts_show(self):
        result = CliRunner().invoke(cli, ["contracts", "--show", "log_analysis"])
        assert result.exit_code == 0
        assert "CONTRATO DE OUTPUT: LOG_ANALYSIS" in result.output

    def test_enrich(self):
        result = CliRunner().invoke(cli, ["enrich", "analise esses logs"])
        assert result.exit_code == 0
        assert "log_analysis" in result.output
        assert "PEDIDO DO USUÁRIO" in result.output

    def test_govern_valid_response(self, tmp_path):
        response = tmp_path / "answer.md"
        response.write_text("O erro raiz é um timeout no banco.", encoding="utf-8")
        result = CliRunner().invoke(cli, ["govern", "-p", "analise esses logs", "-r", str(response)])
        assert result.exit_code == 0
        assert "OK" in result.output
        assert "Analisei os logs" in result.output

    def test_govern_degrades_without_model(self):
        result = CliRunner().invoke(cli, [
            "govern", "-p", "corrija o json, apenas json", "-r", "sem json aqui", "--json-output",
        ])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["status"] == "degraded"
        assert data["reason"] == "regeneration_failed"
        assert data["retry_attempts"] == 1

    def test_govern_rejects_empty_response(self):
        result = CliRunner().invoke(cli, ["govern", "-p", "oi", "-r", "   "])
        assert result.exit_code == 1

    def test_govern_regenerates_through_litellm(self):
        response = MagicMock()
        response.choices = [MagicMock()]
        response.choices[0].message.content = "O erro raiz é um timeout no banco."
        response.usage = MagicMock(prompt_tokens=10, completion_tokens=5)
        response._hidden_params = {}
        response.model = "gpt-4o-mini"

        with patch("litellm.acompletion", new=AsyncMock(return_value=response)) as mock_acompletion:
            result = CliRunner().invoke(cli, [
                "govern", "-p", "analise esses logs", "-r", '{"erro": "timeout"}',
                "--model", "gpt-4o-mini", "--json-output",
            ])

        assert result.exit_code == 0
        call_kw = mock_acompletion.call_args[1]
        assert call_kw["metadata"] == {"contract_type": "log_analysis", "mode": "chat"}
        assert "CONTRATO DE OUTPUT: LOG_ANALYSIS" in call_kw["messages"][0]["content"]
        data = json.loads(result.output[result.output.index("{"):])
        assert data["valid"] is True
        assert data["retry_attempts"] == 1
