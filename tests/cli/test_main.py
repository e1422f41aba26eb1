"""Tests for the neuralgraph CLI against a temp SQLite store."""

import pytest
from typer.testing import CliRunner

from neuralgraph.cli.context import NeuralGraphContext
from neuralgraph.cli.main import app
from neuralgraph.config import settings

runner = CliRunner()


@pytest.fixture(autouse=True)
def workspace(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "db_path", tmp_path / "ws" / "graph.db")
    monkeypatch.setattr(NeuralGraphContext, "_instance", None)
    yield tmp_path


def test_genesis_then_status():
    result = runner.invoke(app, ["genesis"])
    assert result.exit_code == 0
    assert "12 nodes" in result.output

    result = runner.invoke(app, ["status"])
    assert result.exit_code == 0
    assert "genesis" in result.output


def test_evolve_and_pending():
    runner.invoke(app, ["genesis"])

    result = runner.invoke(app, ["evolve"])
    assert result.exit_code == 0
    assert "Cycle complete" in result.output

    result = runner.invoke(app, ["pending"])
    assert result.exit_code == 0
    assert "No pending proposals" in result.output


def test_route_known_type():
    result = runner.invoke(app, ["route", "--type", "training"])
    assert result.exit_code == 0
    assert "model-trainer" in result.output


def test_approve_unknown_exits_nonzero():
    result = runner.invoke(app, ["approve", "missing-id"])
    assert result.exit_code == 1
    assert "Error" in result.output


def test_version():
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert "neuralgraph v" in result.output
