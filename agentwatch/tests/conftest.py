"""Shared pytest fixtures for agentwatch tests."""

from pathlib import Path

import pytest

from agentwatch.agent.context import AgentContextManager


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """An empty workspace directory."""
    return tmp_path


@pytest.fixture
def manager(workspace: Path) -> AgentContextManager:
    return AgentContextManager(workspace)


@pytest.fixture
def agent_name(manager: AgentContextManager) -> str:
    """Name of an agent created in the workspace."""
    manager.create_agent("error-monitor", "Alert when error rate exceeds 5%")
    return "error-monitor"
