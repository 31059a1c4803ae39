"""
Agent Context Manager.

Owns agent lifecycle on top of AgentStore: creation, listing, status
transitions, and the append-only run history. Every call re-reads the
workspace; nothing is cached between calls.

Counters in the state record are derived from the run history. The next run
id is computed from the run files on disk, and if the state record lags the
history (a crash between publishing a run and publishing the state) the
missing runs are replayed before the new one is folded in.
"""

import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Iterable, List, Optional, Union

from agentwatch.agent.locks import DEFAULT_LOCK_TIMEOUT, agent_lock
from agentwatch.agent.models import (
    Agent,
    AgentRunLog,
    AgentRunSummary,
    AgentState,
    AgentStatus,
    ResolvedIssue,
    StateSnapshot,
)
from agentwatch.agent.report import generate_run_report
from agentwatch.agent.store import AgentStore, is_valid_agent_name
from agentwatch.core.errors import (
    AgentAlreadyExistsError,
    AgentNotFoundError,
    InvalidAgentNameError,
    RunNotFoundError,
    WorkspaceNotFoundError,
)

logger = logging.getLogger(__name__)

DEFAULT_CONTEXT_WINDOW_RUNS = 5
DEFAULT_RESOLVED_ISSUE_TTL_DAYS = 30


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _parse_timestamp(value: str) -> Optional[datetime]:
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class AgentContextManager:
    """Manage agents stored under one workspace directory."""

    def __init__(
        self,
        workspace_path: Union[str, Path],
        context_window_runs: int = DEFAULT_CONTEXT_WINDOW_RUNS,
        write_reports: bool = True,
        resolved_issue_ttl_days: int = DEFAULT_RESOLVED_ISSUE_TTL_DAYS,
        lock_timeout: float = DEFAULT_LOCK_TIMEOUT,
    ):
        """Initialize the context manager.

        Args:
            workspace_path: Workspace root; agents live in its ``agents/`` directory
            context_window_runs: Size of the recent-runs window kept in state.json
            write_reports: Also write a Markdown report next to each run record
            resolved_issue_ttl_days: Days a resolved issue stays in state.json
            lock_timeout: Seconds to wait for another process holding the agent lock
        """
        if context_window_runs <= 0:
            raise ValueError("context_window_runs must be positive")
        if resolved_issue_ttl_days <= 0:
            raise ValueError("resolved_issue_ttl_days must be positive")
        self.workspace_path = Path(workspace_path)
        self.context_window_runs = context_window_runs
        self.write_reports = write_reports
        self.resolved_issue_ttl_days = resolved_issue_ttl_days
        self.lock_timeout = lock_timeout
        self._store = AgentStore(self.workspace_path)

    @property
    def agents_dir(self) -> Path:
        return self._store.agents_dir

    # ─── Read Operations ─────────────────────────────────────────────────

    def list_agents(self) -> List[Agent]:
        """List all agents in the workspace, sorted by name.

        Raises:
            WorkspaceNotFoundError: If the workspace root does not exist
        """
        if not self._store.workspace_exists():
            raise WorkspaceNotFoundError(str(self.workspace_path), operation="list_agents")
        return [self._load_agent(name) for name in self._store.agent_names()]

    def agent_exists(self, name: str) -> bool:
        return self._store.exists(name)

    def get_agent(self, name: str) -> Agent:
        """Return the current state of an agent.

        Raises:
            AgentNotFoundError: If the agent does not exist
            InvalidStateError: If its state record is corrupt
        """
        self._require_agent(name, "get_agent")
        return self._load_agent(name)

    def load_instruction(self, name: str) -> str:
        self._require_agent(name, "load_instruction")
        return self._store.read_instruction(name)

    def snapshot(self, name: str) -> StateSnapshot:
        """Capture the state a new run starts from."""
        self._require_agent(name, "snapshot")
        state = self._load_state(name)
        return StateSnapshot(
            summary=state.summary,
            active_issue_count=state.active_issue_count,
            run_count=state.run_count,
        )

    def get_history(self, name: str, limit: Optional[int] = None) -> List[AgentRunLog]:
        """Return run records, most recent first.

        Args:
            name: Agent name
            limit: Maximum number of records; all records when None

        Raises:
            AgentNotFoundError: If the agent does not exist
            InvalidStateError: If a selected run record is corrupt
            ValueError: If limit is not positive
        """
        if limit is not None and limit < 1:
            raise ValueError(f"limit must be a positive integer, got {limit}")
        self._require_agent(name, "get_history")

        run_files = list(reversed(self._store.list_run_files(name)))
        if limit is not None:
            run_files = run_files[:limit]
        return [self._store.read_run(path) for _, path in run_files]

    def get_run(self, name: str, run_id: int) -> AgentRunLog:
        """Return one run record by id.

        Raises:
            AgentNotFoundError: If the agent does not exist
            RunNotFoundError: If the agent has no such run
        """
        self._require_agent(name, "get_run")
        for existing_id, path in self._store.list_run_files(name):
            if existing_id == run_id:
                return self._store.read_run(path)
        raise RunNotFoundError(name, run_id)

    # ─── Write Operations ────────────────────────────────────────────────

    def create_agent(self, name: str, instruction: str) -> Agent:
        """Create a new agent with status active and no runs.

        Raises:
            InvalidAgentNameError: If the name is not filesystem-safe
            WorkspaceNotFoundError: If the workspace root does not exist
            AgentAlreadyExistsError: If an agent directory with this name exists
        """
        if not is_valid_agent_name(name):
            raise InvalidAgentNameError(name)
        if not self._store.workspace_exists():
            raise WorkspaceNotFoundError(str(self.workspace_path), operation="create_agent")

        with self._lock(name):
            if self._store.directory_exists(name):
                raise AgentAlreadyExistsError(name)

            state = AgentState(agent_name=name, created=_utc_now_iso())
            try:
                self._store.materialize(name, instruction, state)
            except FileExistsError as e:
                raise AgentAlreadyExistsError(name) from e

        logger.info("Created agent '%s' in %s", name, self.agents_dir)
        return Agent.from_state(name, instruction, state)

    def set_agent_status(self, name: str, status: Union[AgentStatus, str]) -> Agent:
        """Set an agent's status. Setting the current status is a no-op.

        Raises:
            AgentNotFoundError: If the agent does not exist
            ValueError: If status is not a known status value
        """
        status = AgentStatus(status)
        self._require_agent(name, "set_agent_status")

        with self._lock(name):
            state = self._load_state(name)
            if state.status != status:
                state = state.model_copy(update={"status": status})
                self._store.write_state(name, state)
                logger.info("Agent '%s' is now %s", name, status.value)
            else:
                logger.debug("Agent '%s' already %s", name, status.value)

        return Agent.from_state(name, self._store.read_instruction(name), state)

    def record_run(self, name: str, run_log: AgentRunLog) -> AgentRunLog:
        """Append a completed run and fold it into the agent's state.

        The record's run id is replaced by the next id for this agent, its
        agent name by ``name``, and the run of each action by the new id.

        Returns:
            The record as stored

        Raises:
            AgentNotFoundError: If the agent does not exist
            filelock.Timeout: If another process holds the agent lock too long
        """
        self._require_agent(name, "record_run")

        with self._lock(name):
            run_files = self._store.list_run_files(name)
            state = self._load_state(name)

            if run_files and run_files[-1][0] > state.last_run_id:
                lagging = [
                    self._store.read_run(path)
                    for run_id, path in run_files
                    if run_id > state.last_run_id
                ]
                logger.warning(
                    "State of agent '%s' lags its history by %d run(s); replaying",
                    name,
                    len(lagging),
                )
                state = self._fold_runs(state, lagging, len(run_files) - len(lagging))

            next_run_id = (run_files[-1][0] if run_files else 0) + 1
            actions = [action.model_copy(update={"run": next_run_id}) for action in run_log.actions]
            stored = run_log.model_copy(
                update={"run_id": next_run_id, "agent_name": name, "actions": actions}
            )

            report = generate_run_report(stored) if self.write_reports else None
            self._store.write_run(name, stored, report)

            state = self._fold_runs(state, [stored], len(run_files))
            self._store.write_state(name, state)

        logger.info(
            "Recorded run #%d for agent '%s' (%d active issue(s))",
            stored.run_id,
            name,
            state.active_issue_count,
        )
        return stored

    # ─── State Update Logic ──────────────────────────────────────────────

    def _fold_runs(
        self, state: AgentState, runs: Iterable[AgentRunLog], prior_run_count: int
    ) -> AgentState:
        """Apply completed runs, oldest first, to a state record.

        Does NOT write to disk; the caller saves the result.
        """
        summary = state.summary
        active = set(state.active_issues)
        resolved = list(state.resolved_issues)
        recent = list(state.recent_runs)
        run_count = prior_run_count
        last_run = state.last_run
        last_run_id = state.last_run_id

        for run in runs:
            changes = run.state_changes
            reopened = set(changes.issues_created) | set(changes.issues_updated)
            resolved = [issue for issue in resolved if issue.id not in reopened]
            active.update(reopened)
            for issue_id in changes.issues_resolved:
                if issue_id in active:
                    active.discard(issue_id)
                    resolved.append(ResolvedIssue(id=issue_id, resolved_at=run.timestamp))

            if changes.summary_updated:
                summary = run.summary or run.findings

            recent.append(
                AgentRunSummary(
                    run_id=run.run_id,
                    timestamp=run.timestamp,
                    duration_ms=run.duration_ms,
                    tool_calls=[tc.tool for tc in run.tool_calls],
                    findings=run.findings,
                    actions=list(run.actions),
                )
            )
            run_count += 1
            last_run = run.timestamp
            last_run_id = run.run_id

        active_issues = sorted(active)
        return state.model_copy(
            update={
                "resolved_issues": self._prune_resolved(resolved),
                "summary": summary,
                "active_issues": active_issues,
                "active_issue_count": len(active_issues),
                "recent_runs": recent[-self.context_window_runs:],
                "run_count": run_count,
                "last_run": last_run,
                "last_run_id": last_run_id,
            }
        )

    def _prune_resolved(self, resolved: List[ResolvedIssue]) -> List[ResolvedIssue]:
        """Drop resolved issues older than the retention window."""
        cutoff = datetime.now(timezone.utc) - timedelta(days=self.resolved_issue_ttl_days)
        kept = []
        for issue in resolved:
            resolved_at = _parse_timestamp(issue.resolved_at)
            if resolved_at is not None and resolved_at > cutoff:
                kept.append(issue)
        if len(kept) < len(resolved):
            logger.debug("Pruned %d resolved issue(s)", len(resolved) - len(kept))
        return kept

    # ─── Private Helpers ─────────────────────────────────────────────────

    def _lock(self, name: str):
        return agent_lock(self.agents_dir, name, timeout=self.lock_timeout)

    def _require_agent(self, name: str, operation: str) -> None:
        if not is_valid_agent_name(name) or not self._store.exists(name):
            raise AgentNotFoundError(name, operation=operation)

    def _load_state(self, name: str) -> AgentState:
        """Load state.json, or a fresh initial state when it is missing."""
        state = self._store.read_state(name)
        if state is None:
            logger.warning("Agent '%s' has no state.json; using initial state", name)
            return AgentState(agent_name=name, created="")
        return state

    def _load_agent(self, name: str) -> Agent:
        state = self._load_state(name)
        return Agent.from_state(name, self._store.read_instruction(name), state)
