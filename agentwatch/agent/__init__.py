"""Agent lifecycle, persistence and run reporting."""

from .context import AgentContextManager
from .models import (
    ActionStatus,
    Agent,
    AgentAction,
    AgentRunLog,
    AgentRunSummary,
    AgentState,
    AgentStatus,
    LLMUsage,
    ResolvedIssue,
    StateChanges,
    StateSnapshot,
    ToolCallEntry,
)
from .report import generate_run_report

__all__ = [
    "AgentContextManager",
    "generate_run_report",
    "ActionStatus",
    "Agent",
    "AgentAction",
    "AgentRunLog",
    "AgentRunSummary",
    "AgentState",
    "AgentStatus",
    "LLMUsage",
    "ResolvedIssue",
    "StateChanges",
    "StateSnapshot",
    "ToolCallEntry",
]
