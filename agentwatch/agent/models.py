"""
Agent data models.

These models describe the three artifacts kept for every agent (instruction,
state record, run history) and the in-memory view returned to callers.
Attributes are snake_case; the JSON written to disk uses camelCase keys.
"""

from enum import Enum
from typing import Any, Dict, List

from pydantic import Field

from agentwatch.core.models import StrictBaseModel


class AgentStatus(str, Enum):
    """Lifecycle status of an agent."""

    ACTIVE = "active"
    PAUSED = "paused"


class ActionStatus(str, Enum):
    """Reported outcome of an outbound notification."""

    SENT = "sent"
    FAILED = "failed"


class ToolCallEntry(StrictBaseModel):
    """One tool invocation made during a run."""

    sequence: int = Field(..., ge=1, description="1-based position within the run")
    tool: str = Field(..., description="Tool identifier")
    args: Dict[str, Any] = Field(default_factory=dict, description="Tool arguments")
    result_summary: str = Field(default="", description="Short description of the result")
    duration_ms: int = Field(default=0, ge=0)


class AgentAction(StrictBaseModel):
    """An outbound notification attempt and its outcome."""

    run: int = Field(..., ge=0, description="Run id that produced the action")
    type: str = Field(..., description="Channel identifier, e.g. 'teams-webhook'")
    timestamp: str = Field(..., description="ISO-8601 time of the attempt")
    status: ActionStatus
    details: Dict[str, Any] = Field(default_factory=dict)


class StateSnapshot(StrictBaseModel):
    """Agent state as it was when a run started."""

    summary: str = ""
    active_issue_count: int = Field(default=0, ge=0)
    run_count: int = Field(default=0, ge=0)


class LLMUsage(StrictBaseModel):
    """Model usage accounting for a run."""

    model: str
    prompt_tokens: int = Field(default=0, ge=0)
    completion_tokens: int = Field(default=0, ge=0)
    total_tokens: int = Field(default=0, ge=0)
    tool_call_count: int = Field(default=0, ge=0)


class StateChanges(StrictBaseModel):
    """Issue and summary changes reported by a run."""

    issues_created: List[str] = Field(default_factory=list)
    issues_updated: List[str] = Field(default_factory=list)
    issues_resolved: List[str] = Field(default_factory=list)
    summary_updated: bool = False

    @property
    def is_empty(self) -> bool:
        return not (
            self.issues_created
            or self.issues_updated
            or self.issues_resolved
            or self.summary_updated
        )


class AgentRunLog(StrictBaseModel):
    """Immutable audit record of one completed run.

    A caller submitting a record to AgentContextManager.record_run may leave
    run_id at 0; the store assigns the real id.
    """

    run_id: int = Field(default=0, ge=0)
    agent_name: str
    timestamp: str = Field(..., description="Run start, ISO-8601 UTC")
    duration_ms: int = Field(default=0, ge=0)
    instruction: str
    state_at_start: StateSnapshot = Field(default_factory=StateSnapshot)
    llm: LLMUsage
    tool_calls: List[ToolCallEntry] = Field(default_factory=list)
    assessment: str = ""
    findings: str = ""
    summary: str = Field(default="", description="Digest produced by this run")
    actions: List[AgentAction] = Field(default_factory=list)
    state_changes: StateChanges = Field(default_factory=StateChanges)


class AgentRunSummary(StrictBaseModel):
    """Compact entry kept in the state record's recent-runs window."""

    run_id: int = Field(..., ge=1)
    timestamp: str
    duration_ms: int = Field(default=0, ge=0)
    tool_calls: List[str] = Field(default_factory=list)
    findings: str = ""
    actions: List[AgentAction] = Field(default_factory=list)


class ResolvedIssue(StrictBaseModel):
    """An issue that a run reported as resolved."""

    id: str
    resolved_at: str = Field(..., description="Timestamp of the resolving run")


class AgentState(StrictBaseModel):
    """Contents of an agent's state.json."""

    agent_name: str
    created: str
    last_run: str = ""
    status: AgentStatus = AgentStatus.ACTIVE
    summary: str = ""
    run_count: int = Field(default=0, ge=0)
    active_issue_count: int = Field(default=0, ge=0)
    active_issues: List[str] = Field(default_factory=list)
    resolved_issues: List[ResolvedIssue] = Field(default_factory=list)
    last_run_id: int = Field(default=0, ge=0)
    recent_runs: List[AgentRunSummary] = Field(default_factory=list)


class Agent(StrictBaseModel):
    """Current view of an agent, combining its instruction and state."""

    name: str
    instruction: str
    status: AgentStatus
    run_count: int = Field(default=0, ge=0)
    summary: str = ""
    active_issue_count: int = Field(default=0, ge=0)
    created: str = ""
    last_run: str = ""

    @classmethod
    def from_state(cls, name: str, instruction: str, state: AgentState) -> "Agent":
        return cls(
            name=name,
            instruction=instruction,
            status=state.status,
            run_count=state.run_count,
            summary=state.summary,
            active_issue_count=state.active_issue_count,
            created=state.created,
            last_run=state.last_run,
        )
