"""Record builders shared by the agentwatch tests."""

from typing import List, Optional

from agentwatch.agent.models import (
    ActionStatus,
    AgentAction,
    AgentRunLog,
    LLMUsage,
    StateChanges,
    StateSnapshot,
    ToolCallEntry,
)


def make_run_log(
    agent_name: str = "error-monitor",
    run_id: int = 0,
    timestamp: str = "2026-02-24T10:00:00.000Z",
    findings: str = "Error rate is 2.1%, below threshold.",
    summary: str = "",
    tool_calls: Optional[List[ToolCallEntry]] = None,
    actions: Optional[List[AgentAction]] = None,
    state_changes: Optional[StateChanges] = None,
    state_at_start: Optional[StateSnapshot] = None,
    duration_ms: int = 12500,
) -> AgentRunLog:
    """Build a run record with realistic defaults."""
    tool_calls = tool_calls if tool_calls is not None else []
    return AgentRunLog(
        run_id=run_id,
        agent_name=agent_name,
        timestamp=timestamp,
        duration_ms=duration_ms,
        instruction="Alert when error rate exceeds 5%",
        state_at_start=state_at_start or StateSnapshot(),
        llm=LLMUsage(
            model="gpt-4o",
            prompt_tokens=10000,
            completion_tokens=500,
            total_tokens=10500,
            tool_call_count=len(tool_calls),
        ),
        tool_calls=tool_calls,
        assessment="No action needed.",
        findings=findings,
        summary=summary,
        actions=actions or [],
        state_changes=state_changes or StateChanges(),
    )


def make_action(status: ActionStatus = ActionStatus.SENT, run: int = 1, **details) -> AgentAction:
    return AgentAction(
        run=run,
        type="teams-webhook",
        timestamp="2026-02-24T10:00:12.000Z",
        status=status,
        details=details,
    )
