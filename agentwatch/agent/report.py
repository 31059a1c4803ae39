"""
Markdown report generator for agent run logs.

Converts an AgentRunLog into a human-readable document. The same text is
stored alongside the JSON record as ``runs/<timestamp>-run<NNNN>.md`` and
printed by ``agentwatch history`` / ``agentwatch report``.
"""

from datetime import datetime, timezone
from email.utils import format_datetime
from typing import List, Optional

from agentwatch.agent.models import ActionStatus, AgentAction, AgentRunLog

PRIOR_SUMMARY_MAX_LEN = 200
RESULT_SUMMARY_MAX_LEN = 120
ELLIPSIS = "…"


def generate_run_report(run_log: AgentRunLog, generated_at: Optional[datetime] = None) -> str:
    """Generate a Markdown string from a completed agent run log.

    Args:
        run_log: The run record to render
        generated_at: Time shown on the "Generated" line; defaults to now (UTC)

    Returns:
        Complete Markdown document, ending with a newline
    """
    lines: List[str] = []

    _append_header(lines, run_log, generated_at or datetime.now(timezone.utc))
    _append_summary_table(lines, run_log)
    _append_instruction(lines, run_log)
    _append_state_at_start(lines, run_log)
    _append_tool_calls(lines, run_log)
    _append_findings(lines, run_log)
    _append_assessment(lines, run_log)
    _append_actions(lines, run_log)
    _append_state_changes(lines, run_log)

    return "\n".join(lines) + "\n"


# ─── Formatting helpers ──────────────────────────────────────────────────────


def format_duration(duration_ms: int) -> str:
    """Render 1000 ms and above as seconds with one decimal, else as ms."""
    if duration_ms < 1000:
        return f"{duration_ms}ms"
    # Ties round up: 1250 ms is 1.3s
    tenths = (duration_ms + 50) // 100
    return f"{tenths // 10}.{tenths % 10}s"


def format_count(value: int) -> str:
    """Group thousands with commas: 10500 -> '10,500'."""
    return f"{value:,}"


def truncate(text: str, max_len: int) -> str:
    """Keep the first max_len characters, marking a cut with an ellipsis."""
    if len(text) <= max_len:
        return text
    return text[:max_len] + ELLIPSIS


def table_cell(text: str, max_len: int) -> str:
    """Make free text safe for a single Markdown table cell."""
    escaped = text.replace("|", "\\|").replace("\r\n", " ").replace("\n", " ").replace("\r", " ")
    return truncate(escaped, max_len)


# ─── Section builders ────────────────────────────────────────────────────────


def _append_header(lines: List[str], run_log: AgentRunLog, generated_at: datetime) -> None:
    if generated_at.tzinfo is None:
        generated_at = generated_at.replace(tzinfo=timezone.utc)
    generated = format_datetime(generated_at.astimezone(timezone.utc), usegmt=True)

    lines.append(f"# Agent Run Report: {run_log.agent_name} — Run #{run_log.run_id:04d}")
    lines.append("")
    lines.append(f"> Generated: {generated}")
    lines.append("")


def _append_summary_table(lines: List[str], run_log: AgentRunLog) -> None:
    llm = run_log.llm

    lines.append("## Summary")
    lines.append("")
    lines.append("| Field | Value |")
    lines.append("|---|---|")
    lines.append(f"| **Run ID** | {run_log.run_id} |")
    lines.append(f"| **Agent** | {run_log.agent_name} |")
    lines.append(f"| **Timestamp** | {run_log.timestamp} |")
    lines.append(f"| **Duration** | {format_duration(run_log.duration_ms)} |")
    lines.append(f"| **Model** | {llm.model} |")
    lines.append(
        f"| **Total Tokens** | {format_count(llm.total_tokens)} "
        f"(prompt: {format_count(llm.prompt_tokens)}, "
        f"completion: {format_count(llm.completion_tokens)}) |"
    )
    lines.append(f"| **Tool Calls** | {llm.tool_call_count} |")
    lines.append("")


def _append_instruction(lines: List[str], run_log: AgentRunLog) -> None:
    lines.append("## Instruction")
    lines.append("")
    lines.append("```")
    lines.append(run_log.instruction.strip())
    lines.append("```")
    lines.append("")


def _append_state_at_start(lines: List[str], run_log: AgentRunLog) -> None:
    snapshot = run_log.state_at_start
    prior = truncate(snapshot.summary, PRIOR_SUMMARY_MAX_LEN) if snapshot.summary else "_none_"

    lines.append("## State at Start")
    lines.append("")
    lines.append("| Field | Value |")
    lines.append("|---|---|")
    lines.append(f"| **Run Count** | {snapshot.run_count} |")
    lines.append(f"| **Active Issues** | {snapshot.active_issue_count} |")
    lines.append(f"| **Prior Summary** | {prior} |")
    lines.append("")


def _append_tool_calls(lines: List[str], run_log: AgentRunLog) -> None:
    lines.append("## Tool Calls")
    lines.append("")

    if not run_log.tool_calls:
        lines.append("_No tool calls made._")
        lines.append("")
        return

    lines.append("| # | Tool | Duration | Result |")
    lines.append("|---|---|---|---|")

    for tc in sorted(run_log.tool_calls, key=lambda entry: entry.sequence):
        result = table_cell(tc.result_summary, RESULT_SUMMARY_MAX_LEN)
        lines.append(f"| {tc.sequence} | `{tc.tool}` | {format_duration(tc.duration_ms)} | {result} |")

    lines.append("")


def _append_findings(lines: List[str], run_log: AgentRunLog) -> None:
    lines.append("## Findings")
    lines.append("")
    lines.append(run_log.findings or "_No findings recorded._")
    lines.append("")


def _append_assessment(lines: List[str], run_log: AgentRunLog) -> None:
    lines.append("## Assessment")
    lines.append("")
    lines.append(run_log.assessment or "_No assessment recorded._")
    lines.append("")


def _append_actions(lines: List[str], run_log: AgentRunLog) -> None:
    lines.append("## Actions Taken")
    lines.append("")

    if not run_log.actions:
        lines.append("_No actions taken._")
        lines.append("")
        return

    for action in run_log.actions:
        lines.append(f"- **{action.type}** ({_status_badge(action)}) — {_format_action_details(action)}")

    lines.append("")


def _append_state_changes(lines: List[str], run_log: AgentRunLog) -> None:
    changes = run_log.state_changes

    lines.append("## State Changes")
    lines.append("")

    if changes.is_empty:
        lines.append("_No state changes._")
        lines.append("")
        return

    if changes.summary_updated:
        lines.append("- Summary updated")
    for issue_id in changes.issues_created:
        lines.append(f"- Issue **created**: `{issue_id}`")
    for issue_id in changes.issues_updated:
        lines.append(f"- Issue **updated**: `{issue_id}`")
    for issue_id in changes.issues_resolved:
        lines.append(f"- Issue **resolved**: `{issue_id}`")

    lines.append("")


def _status_badge(action: AgentAction) -> str:
    if action.status == ActionStatus.SENT:
        return "✅ sent"
    return "❌ failed"


def _format_action_details(action: AgentAction) -> str:
    details = action.details
    parts = []
    if details.get("title"):
        parts.append(str(details["title"]))
    if details.get("channel"):
        parts.append(f"channel: {details['channel']}")
    if details.get("recipient"):
        parts.append(f"to: {details['recipient']}")
    return ", ".join(parts) if parts else action.type
