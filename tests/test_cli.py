"""
Tests for the CLI interface.
"""
import json
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import yaml
from typer.testing import CliRunner

from salesgrow_ai.cli.main import EXIT_CODE_FAIL, EXIT_CODE_PASS, app
from salesgrow_ai.coach.feedback import DIMENSIONS
from salesgrow_ai.core.gateway import AIGatewayError, GatewayErrorCode
from salesgrow_ai.core.token_counter import TokenUsage
from salesgrow_ai.core.types import AIResponse, ResponseFormat, TaskType, UserPlan
from salesgrow_ai.storage.models import AIUsageEvent
from salesgrow_ai.storage.repository import UsageRepository
from salesgrow_ai.storage.store import InMemoryStore

runner = CliRunner()


def ai_response(content, cached=False):
    return AIResponse(
        content=content,
        model="deepseek-chat",
        provider="deepseek",
        usage=TokenUsage(input_tokens=10, output_tokens=5, estimated_cost_usd=0.0001),
        cached=cached,
        latency_ms=42,
    )


@pytest.fixture
def mock_gateway():
    """Patch gateway construction with a double sharing an in-memory store."""
    gateway = MagicMock()
    gateway.cache.store = InMemoryStore()
    gateway.complete = AsyncMock()
    with patch('salesgrow_ai.cli.main.build_gateway', return_value=gateway):
        yield gateway


@pytest.fixture
def ledger_config(tmp_path):
    """Settings file pointing the ledger at a temporary database."""
    db_path = str(tmp_path / "ledger.db")
    config_path = tmp_path / "settings.yaml"
    config_path.write_text(yaml.dump({"storage": {"db_path": db_path}}), encoding="utf-8")
    return str(config_path), db_path


class TestInspectionCommands:
    """Test the read-only table commands."""

    def test_models(self):
        result = runner.invoke(app, ["models"])
        assert result.exit_code == EXIT_CODE_PASS
        assert "Models" in result.output

    def test_routes(self):
        result = runner.invoke(app, ["routes", "--plan", "pro"])
        assert result.exit_code == EXIT_CODE_PASS
        assert "coach" in result.output

    def test_scenarios(self):
        result = runner.invoke(app, ["scenarios"])
        assert result.exit_code == EXIT_CODE_PASS
        assert "cold_call" in result.output

    def test_bad_settings_file(self, tmp_path):
        config_path = tmp_path / "bad.yaml"
        config_path.write_text("budget: {}\n", encoding="utf-8")
        result = runner.invoke(app, ["--config", str(config_path), "models"])
        assert result.exit_code == EXIT_CODE_FAIL
        assert "Error loading settings" in result.output

    def test_malformed_yaml_settings_file(self, tmp_path):
        config_path = tmp_path / "broken.yaml"
        config_path.write_text("cache: [unclosed\n", encoding="utf-8")
        result = runner.invoke(app, ["--config", str(config_path), "models"])
        assert result.exit_code == EXIT_CODE_FAIL
        assert "Error loading settings" in result.output
        assert result.exception is None or isinstance(result.exception, SystemExit)


class TestAskCommand:
    """Test one-off gateway requests."""

    def test_prints_reply(self, mock_gateway):
        mock_gateway.complete.return_value = ai_response("Sounds good.")

        result = runner.invoke(app, ["ask", "coach", "Hello", "--plan", "pro", "--system", "Be brief", "--json"])

        assert result.exit_code == EXIT_CODE_PASS
        assert "Sounds good." in result.output
        request = mock_gateway.complete.call_args.args[0]
        assert request.task == TaskType.COACH
        assert request.user_plan == UserPlan.PRO
        assert request.user_id == "cli-user"
        assert [m.role for m in request.messages] == ["system", "user"]
        assert request.response_format == ResponseFormat.JSON

    def test_gateway_error(self, mock_gateway):
        mock_gateway.complete.side_effect = AIGatewayError(
            GatewayErrorCode.QUOTA_EXCEEDED, "Daily limit reached for coach. Upgrade your plan for more."
        )

        result = runner.invoke(app, ["ask", "coach", "Hello"])

        assert result.exit_code == EXIT_CODE_FAIL
        assert "QUOTA_EXCEEDED" in result.output

    def test_invalid_task(self):
        result = runner.invoke(app, ["ask", "karaoke", "Hello"])
        assert result.exit_code != EXIT_CODE_PASS


class TestPracticeCommand:
    """Test interactive coach sessions."""

    FEEDBACK = json.dumps({
        "totalScore": 0,
        "dimensions": {
            json_key: {"score": 16, "maxScore": 20, "feedback": "solid"}
            for json_key in DIMENSIONS.values()
        },
        "strengths": ["Friendly opener"],
        "improvements": ["Qualify the budget"],
        "encouragement": "Keep it up!",
    })

    def test_session_until_end_command(self, mock_gateway):
        mock_gateway.complete.side_effect = [ai_response("Who is this?"), ai_response(self.FEEDBACK)]

        result = runner.invoke(app, ["practice", "cold_call", "--locale", "en"], input="Hi, it's Sam\n/end\n")

        assert result.exit_code == EXIT_CODE_PASS
        assert "Hello? Who is this?" in result.output
        assert "Who is this?" in result.output
        assert "80/100" in result.output
        assert "Keep it up!" in result.output
        assert mock_gateway.complete.call_count == 2

    def test_gateway_error(self, mock_gateway):
        mock_gateway.complete.side_effect = AIGatewayError(GatewayErrorCode.ALL_MODELS_FAILED, "All AI models failed")

        result = runner.invoke(app, ["practice", "cold_call"], input="Hello\n")

        assert result.exit_code == EXIT_CODE_FAIL
        assert "All AI models failed" in result.output


class TestLedgerCommands:
    """Test init-ledger and usage."""

    def test_usage_without_ledger(self, ledger_config):
        config_path, _ = ledger_config
        result = runner.invoke(app, ["--config", config_path, "usage"])
        assert result.exit_code == EXIT_CODE_PASS
        assert "No usage ledger found" in result.output

    def test_init_then_empty_usage(self, ledger_config):
        config_path, _ = ledger_config
        assert runner.invoke(app, ["--config", config_path, "init-ledger"]).exit_code == EXIT_CODE_PASS

        result = runner.invoke(app, ["--config", config_path, "usage", "--days", "7"])

        assert result.exit_code == EXIT_CODE_PASS
        assert "No usage recorded in the last 7 days" in result.output

    def test_usage_summary(self, ledger_config):
        config_path, db_path = ledger_config
        repository = UsageRepository(db_path)
        repository.initialize_schema()
        repository.record(AIUsageEvent(
            timestamp=datetime.now(timezone.utc),
            user_id="u1",
            task="coach",
            model="deepseek-chat",
            provider="deepseek",
            input_tokens=100,
            output_tokens=20,
            total_tokens=120,
            estimated_cost=0.5,
            cached=False,
            latency_ms=300,
        ))

        result = runner.invoke(app, ["--config", config_path, "usage"])

        assert result.exit_code == EXIT_CODE_PASS
        assert "coach" in result.output
        assert "$0.5000" in result.output
