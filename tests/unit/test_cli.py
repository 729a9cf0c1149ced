"""Unit tests for CLI interface."""

import asyncio
import json
from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest
from click.testing import CliRunner

from similar_products.errors import CircuitOpenError, UpstreamNotFound, UpstreamUnavailable
from similar_products.models.data_models import AggregatedResult, ProductDetail
from similar_products.pipeline.main import EXIT_NOT_FOUND, EXIT_UNAVAILABLE, cli


@pytest.fixture
def mock_result():
    """Create a mock lookup result."""
    return AggregatedResult(
        root_id="1",
        products=(
            ProductDetail(id="2", name="Dress", price=Decimal("29.99"), availability=True),
            ProductDetail(id="4", name="Boots", price=Decimal("49.99"), availability=True),
        ),
        requested=3,
    )


def test_cli_help():
    """Test that CLI help message works."""
    runner = CliRunner()
    result = runner.invoke(cli, ["--help"])

    assert result.exit_code == 0
    assert "Similar Products" in result.output
    assert "lookup" in result.output
    assert "serve" in result.output


def test_lookup_help():
    runner = CliRunner()
    result = runner.invoke(cli, ["lookup", "--help"])

    assert result.exit_code == 0
    assert "--config" in result.output
    assert "--base-url" in result.output
    assert "--output" in result.output


def test_cli_version():
    """Test that version flag works."""
    runner = CliRunner()
    result = runner.invoke(cli, ["--version"])

    assert result.exit_code == 0
    assert "1.0.0" in result.output


class TestLookup:

    def test_success_displays_table(self, mock_result):
        runner = CliRunner()
        with patch("similar_products.pipeline.main._run_lookup", AsyncMock(return_value=mock_result)):
            result = runner.invoke(cli, ["lookup", "1"])

        assert result.exit_code == 0
        assert "Dress" in result.output
        assert "Resolved 2 of 3 similar products" in result.output

    def test_base_url_override_reaches_config(self, mock_result):
        runner = CliRunner()
        run_lookup = AsyncMock(return_value=mock_result)
        with patch("similar_products.pipeline.main._run_lookup", run_lookup):
            result = runner.invoke(cli, ["lookup", "1", "--base-url", "http://other:9000", "-l", "debug"])

        assert result.exit_code == 0
        config, product_id = run_lookup.await_args.args
        assert config.upstream_base_url == "http://other:9000"
        assert config.log_level == "DEBUG"
        assert product_id == "1"

    def test_output_written(self, mock_result, tmp_path):
        output = tmp_path / "out" / "similar.json"
        runner = CliRunner()
        with patch("similar_products.pipeline.main._run_lookup", AsyncMock(return_value=mock_result)):
            result = runner.invoke(cli, ["lookup", "1", "--output", str(output)])

        assert result.exit_code == 0
        data = json.loads(output.read_text())
        assert data["summary"] == {"requested": 3, "resolved": 2, "missing": 1}

    @pytest.mark.parametrize("error,exit_code", [
        (UpstreamNotFound("999"), EXIT_NOT_FOUND),
        (UpstreamUnavailable("1", reason="HTTP 503"), EXIT_UNAVAILABLE),
        (CircuitOpenError("1", "similar_ids"), EXIT_UNAVAILABLE),
        (asyncio.TimeoutError(), EXIT_UNAVAILABLE),
        (RuntimeError("boom"), 1),
    ])
    def test_errors_map_to_exit_codes(self, error, exit_code):
        runner = CliRunner()
        with patch("similar_products.pipeline.main._run_lookup", AsyncMock(side_effect=error)):
            result = runner.invoke(cli, ["lookup", "1"])

        assert result.exit_code == exit_code

    def test_timeout_message(self):
        runner = CliRunner()
        with patch("similar_products.pipeline.main._run_lookup", AsyncMock(side_effect=asyncio.TimeoutError())):
            result = runner.invoke(cli, ["lookup", "1"])

        assert "request timed out" in result.output

    def test_invalid_config_exits_with_error(self, tmp_path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text("worker_pool_size: 0\n")
        runner = CliRunner()

        result = runner.invoke(cli, ["lookup", "1", "--config", str(config_file)])

        assert result.exit_code == 1


def test_serve_runs_uvicorn_with_overrides(tmp_path):
    runner = CliRunner()
    with patch("uvicorn.run") as run:
        result = runner.invoke(cli, [
            "serve", "--config", str(tmp_path / "missing.yaml"), "--host", "127.0.0.1", "--port", "8081"
        ])

    assert result.exit_code == 0
    assert run.call_args.kwargs["host"] == "127.0.0.1"
    assert run.call_args.kwargs["port"] == 8081
    assert run.call_args.kwargs["log_level"] == "info"
