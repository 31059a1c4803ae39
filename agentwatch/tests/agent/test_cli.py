"""Tests for the agentwatch command-line interface."""

import json
import os
from unittest.mock import patch

import pytest

from agentwatch.agent.cli import create_parser, main
from agentwatch.agent.context import AgentContextManager
from agentwatch.agent.models import AgentStatus
from agentwatch.tests.helpers import make_run_log


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    for key in list(os.environ):
        if key.startswith("AGENTWATCH_"):
            monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)


@pytest.fixture(autouse=True)
def mock_logging():
    with patch("agentwatch.agent.cli.configure_logging") as mock_configure:
        yield mock_configure


def run_cli(workspace, *args):
    return main(["--workspace", str(workspace), *args])


class TestParser:
    """Test argument parsing."""

    def test_start(self):
        args = create_parser().parse_args(["start", "Watch errors", "--name", "error-monitor"])
        assert args.command == "start"
        assert args.instruction == "Watch errors"
        assert args.name == "error-monitor"

    def test_history_defaults(self):
        args = create_parser().parse_args(["history", "error-monitor"])
        assert args.limit == 5
        assert args.raw is False

    def test_start_requires_name(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args(["start", "Watch errors"])

    def test_limit_must_be_positive(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args(["history", "error-monitor", "--limit", "0"])

    def test_command_required(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args([])


class TestStartCommand:
    """Test 'agentwatch start'."""

    def test_creates_agent(self, tmp_path, capsys):
        assert run_cli(tmp_path, "start", "Alert when error rate exceeds 5%", "--name", "error-monitor") == 0

        out = capsys.readouterr().out
        assert "✓ Created agent: error-monitor" in out
        assert "Instruction: Alert when error rate exceeds 5%" in out
        assert (tmp_path / "agents" / "error-monitor" / "instruction.md").is_file()

    def test_duplicate(self, tmp_path, capsys):
        run_cli(tmp_path, "start", "first", "--name", "error-monitor")
        capsys.readouterr()

        assert run_cli(tmp_path, "start", "second", "--name", "error-monitor") == 1
        err = capsys.readouterr().err
        assert "✗ Failed to create agent: Agent 'error-monitor' already exists" in err

    def test_invalid_name(self, tmp_path, capsys):
        assert run_cli(tmp_path, "start", "x", "--name", "../escape") == 1
        assert "✗ Failed to create agent: Invalid agent name" in capsys.readouterr().err


class TestListCommand:
    """Test 'agentwatch list'."""

    def test_empty(self, tmp_path, capsys):
        assert run_cli(tmp_path, "list") == 0
        assert "No agents found." in capsys.readouterr().out

    def test_lists_agents(self, tmp_path, capsys):
        manager = AgentContextManager(tmp_path)
        manager.create_agent("alpha", "watch a")
        manager.create_agent("beta", "watch b")
        manager.set_agent_status("beta", AgentStatus.PAUSED)

        assert run_cli(tmp_path, "list") == 0
        out = capsys.readouterr().out
        assert "alpha" in out
        assert "beta" in out
        assert "paused" in out

    def test_missing_workspace(self, tmp_path, capsys):
        assert run_cli(tmp_path / "missing", "list") == 1
        assert "✗ Failed to list agents:" in capsys.readouterr().err


class TestHistoryAndReport:
    """Test 'agentwatch history' and 'agentwatch report'."""

    @pytest.fixture
    def manager(self, tmp_path):
        manager = AgentContextManager(tmp_path)
        manager.create_agent("error-monitor", "Alert when error rate exceeds 5%")
        return manager

    def test_no_history(self, tmp_path, manager, capsys):
        assert run_cli(tmp_path, "history", "error-monitor") == 0
        assert "No run history for agent 'error-monitor'." in capsys.readouterr().out

    def test_single_run_prints_report(self, tmp_path, manager, capsys):
        manager.record_run("error-monitor", make_run_log())

        assert run_cli(tmp_path, "history", "error-monitor", "--raw") == 0
        out = capsys.readouterr().out
        assert out.startswith("# Agent Run Report: error-monitor — Run #0001")
        assert "| **Total Tokens** | 10,500 (prompt: 10,000, completion: 500) |" in out

    def test_several_runs_print_table(self, tmp_path, manager, capsys):
        for _ in range(3):
            manager.record_run("error-monitor", make_run_log())

        assert run_cli(tmp_path, "history", "error-monitor", "--limit", "2") == 0
        out = capsys.readouterr().out
        assert "Run History (error-monitor)" in out
        assert "#3" in out
        assert "#2" in out
        assert "#1" not in out

    def test_history_missing_agent(self, tmp_path, capsys):
        assert run_cli(tmp_path, "history", "ghost") == 1
        assert "✗ Failed to get history: Agent 'ghost' not found" in capsys.readouterr().err

    def test_report_latest(self, tmp_path, manager, capsys):
        manager.record_run("error-monitor", make_run_log(findings="first"))
        manager.record_run("error-monitor", make_run_log(findings="second"))

        assert run_cli(tmp_path, "report", "error-monitor", "--raw") == 0
        out = capsys.readouterr().out
        assert "Run #0002" in out
        assert "second" in out

    def test_report_by_id(self, tmp_path, manager, capsys):
        manager.record_run("error-monitor", make_run_log(findings="first"))
        manager.record_run("error-monitor", make_run_log(findings="second"))

        assert run_cli(tmp_path, "report", "error-monitor", "--run", "1", "--raw") == 0
        assert "Run #0001" in capsys.readouterr().out

    def test_report_rendered(self, tmp_path, manager, capsys):
        manager.record_run("error-monitor", make_run_log())

        assert run_cli(tmp_path, "report", "error-monitor") == 0
        assert "Agent Run Report" in capsys.readouterr().out

    def test_report_unknown_run(self, tmp_path, manager, capsys):
        assert run_cli(tmp_path, "report", "error-monitor", "--run", "9") == 1
        assert "has no run #9" in capsys.readouterr().err


class TestStatusCommands:
    """Test 'agentwatch pause' and 'agentwatch resume'."""

    def test_pause_and_resume(self, tmp_path, capsys):
        manager = AgentContextManager(tmp_path)
        manager.create_agent("error-monitor", "watch")

        assert run_cli(tmp_path, "pause", "error-monitor") == 0
        assert "✓ Agent 'error-monitor' paused." in capsys.readouterr().out
        assert manager.get_agent("error-monitor").status == AgentStatus.PAUSED

        assert run_cli(tmp_path, "resume", "error-monitor") == 0
        assert "✓ Agent 'error-monitor' resumed." in capsys.readouterr().out
        assert manager.get_agent("error-monitor").status == AgentStatus.ACTIVE

    def test_pause_missing_agent(self, tmp_path, capsys):
        assert run_cli(tmp_path, "pause", "ghost") == 1
        assert "✗ Failed to pause agent: Agent 'ghost' not found" in capsys.readouterr().err


class TestConfiguration:
    """Test config file and logging options."""

    def test_config_file_workspace(self, tmp_path, capsys):
        workspace = tmp_path / "ws"
        workspace.mkdir()
        config = tmp_path / "config.json"
        config.write_text(json.dumps({"workspacePath": str(workspace)}), encoding="utf-8")

        assert main(["--config", str(config), "start", "watch", "--name", "a"]) == 0
        assert (workspace / "agents" / "a" / "instruction.md").is_file()

    def test_missing_config_file(self, tmp_path, capsys):
        assert main(["--config", str(tmp_path / "nope.json"), "list"]) == 1
        assert "Config file not found" in capsys.readouterr().err

    def test_log_level_from_settings(self, tmp_path, mock_logging):
        config = tmp_path / "config.json"
        config.write_text(json.dumps({"logLevel": "error"}), encoding="utf-8")

        main(["--config", str(config), "--workspace", str(tmp_path), "list"])
        mock_logging.assert_called_once_with("ERROR")

    def test_debug_flag(self, tmp_path, mock_logging):
        main(["--debug", "--workspace", str(tmp_path), "list"])
        mock_logging.assert_called_once_with("DEBUG")
