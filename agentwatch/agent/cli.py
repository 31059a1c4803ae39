#!/usr/bin/env python3
"""
agentwatch CLI
==============
Command-line interface for managing monitoring agents.

Commands:
- start <instruction> --name <name>   Create a new agent
- list                                List all agents
- history <name> [--limit N]          Show run history
- report <name> [--run N]             Print the report for one run
- pause <name>                        Pause an agent
- resume <name>                       Resume a paused agent
"""

import argparse
import logging
import sys
from typing import Callable, Dict, List, Optional

from rich.console import Console
from rich.markdown import Markdown
from rich.table import Table

from agentwatch.agent.context import AgentContextManager
from agentwatch.agent.models import AgentRunLog, AgentStatus
from agentwatch.agent.report import format_duration, generate_run_report
from agentwatch.core.errors import AgentWatchError
from agentwatch.core.logging_config import configure_logging
from agentwatch.core.settings import load_settings, resolve_workspace_path

logger = logging.getLogger(__name__)


def _say(console: Console, text: str) -> None:
    console.print(text, markup=False, highlight=False, soft_wrap=True)


def build_manager(args: argparse.Namespace) -> AgentContextManager:
    """Resolve settings and workspace, and bind a context manager to them."""
    settings = load_settings(args.config, workspace_path=args.workspace)
    if not (args.debug or args.verbose):
        configure_logging(settings.log_level)
    workspace = resolve_workspace_path(settings)
    logger.debug("Using workspace %s", workspace)
    return AgentContextManager(
        workspace,
        context_window_runs=settings.context_window_runs,
        write_reports=settings.write_reports,
        resolved_issue_ttl_days=settings.resolved_issue_ttl_days,
        lock_timeout=settings.lock_timeout,
    )


def _print_report(console: Console, run_log: AgentRunLog, raw: bool) -> None:
    report = generate_run_report(run_log)
    if raw:
        console.out(report, end="", highlight=False)
    else:
        console.print(Markdown(report))


# ─── Commands ────────────────────────────────────────────────────────────────


def cmd_start(args: argparse.Namespace, console: Console) -> int:
    manager = build_manager(args)
    agent = manager.create_agent(args.name, args.instruction)

    preview = agent.instruction[:80] + ("..." if len(agent.instruction) > 80 else "")
    _say(console, f"✓ Created agent: {agent.name}")
    _say(console, f"  Instruction: {preview}")
    _say(console, f"  Directory: agents/{agent.name}/")
    _say(console, "\nNext steps:")
    _say(console, f"  1. Review: agents/{agent.name}/instruction.md")
    _say(console, f"  2. Inspect: agentwatch history {agent.name}")
    return 0


def cmd_list(args: argparse.Namespace, console: Console) -> int:
    manager = build_manager(args)
    agents = manager.list_agents()

    if not agents:
        _say(console, 'No agents found. Create one with: agentwatch start "instruction" --name my-agent')
        return 0

    table = Table(title="Agents")
    table.add_column("", no_wrap=True)
    table.add_column("Name", no_wrap=True)
    table.add_column("Status", no_wrap=True)
    table.add_column("Runs", justify="right")
    table.add_column("Last run", no_wrap=True)
    table.add_column("Active issues", justify="right")

    for agent in agents:
        icon = "●" if agent.status == AgentStatus.ACTIVE else "○"
        last_run = agent.last_run[:19] + "Z" if agent.last_run else "never"
        table.add_row(
            icon,
            agent.name,
            agent.status.value,
            str(agent.run_count),
            last_run,
            str(agent.active_issue_count),
        )

    console.print(table)
    return 0


def cmd_history(args: argparse.Namespace, console: Console) -> int:
    manager = build_manager(args)
    runs = manager.get_history(args.name, args.limit)

    if not runs:
        _say(console, f"No run history for agent '{args.name}'.")
        return 0

    if len(runs) == 1:
        _print_report(console, runs[0], args.raw)
        return 0

    table = Table(title=f"Run History ({args.name})")
    table.add_column("Run", justify="right", no_wrap=True)
    table.add_column("Timestamp", no_wrap=True)
    table.add_column("Duration", justify="right", no_wrap=True)
    table.add_column("Tools", justify="right", no_wrap=True)
    table.add_column("Findings")

    for run in runs:
        findings = run.findings[:60] + ("..." if len(run.findings) > 60 else "")
        table.add_row(
            f"#{run.run_id}",
            run.timestamp[:19] + "Z",
            format_duration(run.duration_ms),
            str(run.llm.tool_call_count),
            findings,
        )

    console.print(table)
    return 0


def cmd_report(args: argparse.Namespace, console: Console) -> int:
    manager = build_manager(args)
    if args.run is not None:
        run_log = manager.get_run(args.name, args.run)
    else:
        runs = manager.get_history(args.name, 1)
        if not runs:
            _say(console, f"No run history for agent '{args.name}'.")
            return 0
        run_log = runs[0]

    _print_report(console, run_log, args.raw)
    return 0


def cmd_pause(args: argparse.Namespace, console: Console) -> int:
    manager = build_manager(args)
    manager.set_agent_status(args.name, AgentStatus.PAUSED)
    _say(console, f"✓ Agent '{args.name}' paused. Use 'agentwatch resume {args.name}' to reactivate.")
    return 0


def cmd_resume(args: argparse.Namespace, console: Console) -> int:
    manager = build_manager(args)
    manager.set_agent_status(args.name, AgentStatus.ACTIVE)
    _say(console, f"✓ Agent '{args.name}' resumed.")
    return 0


COMMANDS: Dict[str, Callable[[argparse.Namespace, Console], int]] = {
    "start": cmd_start,
    "list": cmd_list,
    "history": cmd_history,
    "report": cmd_report,
    "pause": cmd_pause,
    "resume": cmd_resume,
}

FAILURE_MESSAGES = {
    "start": "Failed to create agent",
    "list": "Failed to list agents",
    "history": "Failed to get history",
    "report": "Failed to render report",
    "pause": "Failed to pause agent",
    "resume": "Failed to resume agent",
}


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {value}")
    return number


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser."""
    parser = argparse.ArgumentParser(
        prog="agentwatch",
        description="Manage autonomous monitoring agents",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  agentwatch start "Alert when error rate exceeds 5%" --name error-monitor
  agentwatch list
  agentwatch history error-monitor --limit 10
  agentwatch report error-monitor --run 3
  agentwatch pause error-monitor
        """,
    )

    parser.add_argument("-c", "--config", type=str, help="Path to config file (JSON or YAML)")
    parser.add_argument("-w", "--workspace", type=str, help="Workspace directory holding agents/")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    start_parser = subparsers.add_parser("start", help="Create a new monitoring agent")
    start_parser.add_argument("instruction", help="Agent instruction (natural language)")
    start_parser.add_argument("-n", "--name", required=True, help="Agent name (used as directory name)")

    subparsers.add_parser("list", help="List all agents")

    history_parser = subparsers.add_parser("history", help="Show run history for an agent")
    history_parser.add_argument("name", help="Agent name")
    history_parser.add_argument("-l", "--limit", type=_positive_int, default=5, help="Number of runs to show")
    history_parser.add_argument("--raw", action="store_true", help="Print Markdown source instead of rendering it")

    report_parser = subparsers.add_parser("report", help="Print the report for one run")
    report_parser.add_argument("name", help="Agent name")
    report_parser.add_argument("-r", "--run", type=_positive_int, help="Run id (default: latest)")
    report_parser.add_argument("--raw", action="store_true", help="Print Markdown source instead of rendering it")

    pause_parser = subparsers.add_parser("pause", help="Pause an agent")
    pause_parser.add_argument("name", help="Agent name")

    resume_parser = subparsers.add_parser("resume", help="Resume a paused agent")
    resume_parser.add_argument("name", help="Agent name")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.debug:
        configure_logging("DEBUG")
    elif args.verbose:
        configure_logging("INFO")

    console = Console()
    err_console = Console(stderr=True)

    try:
        return COMMANDS[args.command](args, console)
    except (AgentWatchError, OSError, ValueError) as e:
        _say(err_console, f"✗ {FAILURE_MESSAGES[args.command]}: {e}")
        if args.debug:
            logger.exception("Command '%s' failed", args.command)
        return 1


if __name__ == "__main__":
    sys.exit(main())
