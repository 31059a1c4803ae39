"""
File-based agent store.

Each agent lives in its own directory under ``<workspace>/agents``::

    agents/<name>/instruction.md              instruction text, written once
    agents/<name>/state.json                  AgentState record
    agents/<name>/runs/<ts>-run<NNNN>.json    one AgentRunLog per run
    agents/<name>/runs/<ts>-run<NNNN>.md      rendered report (optional)

Every file is published with write-to-temp then os.replace, so a reader
sees either the previous content or the new one and never a partial file.
This module holds file-representation rules only; bookkeeping lives in
AgentContextManager.
"""

import logging
import os
import re
import shutil
import tempfile
import uuid
from pathlib import Path
from typing import List, Optional, Tuple

from pydantic import ValidationError

from agentwatch.agent.models import AgentRunLog, AgentState
from agentwatch.core.errors import InvalidStateError

logger = logging.getLogger(__name__)

AGENTS_DIR_NAME = "agents"
INSTRUCTION_FILE = "instruction.md"
STATE_FILE = "state.json"
RUNS_DIR_NAME = "runs"

_AGENT_NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]{0,127}$")
_RUN_FILE_RE = re.compile(r"-run(\d+)\.json$")
_FRACTION_RE = re.compile(r"\.\d+(?=Z$|[+-]\d{2}-?\d{2}$)")


def is_valid_agent_name(name: str) -> bool:
    """Check that a name is usable as a single directory name."""
    return bool(_AGENT_NAME_RE.match(name)) and name not in (".", "..")


def run_file_stem(run_log: AgentRunLog) -> str:
    """Build the sortable file stem for a run record.

    Format: ``YYYY-MM-DDTHH-MM-SSZ-runNNNN`` (colons replaced for
    filesystem compatibility, fractional seconds dropped).
    """
    timestamp = run_log.timestamp.replace(":", "-")
    timestamp = _FRACTION_RE.sub("", timestamp)
    timestamp = re.sub(r"[^0-9A-Za-z+-]", "-", timestamp)
    return f"{timestamp}-run{run_log.run_id:04d}"


def atomic_write_text(path: Path, content: str) -> None:
    """Write text so that readers never observe a partially written file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


class AgentStore:
    """Maps agent names to their on-disk artifacts."""

    def __init__(self, workspace_path: Path):
        self.workspace_path = Path(workspace_path)
        self.agents_dir = self.workspace_path / AGENTS_DIR_NAME

    # ─── Paths ───────────────────────────────────────────────────────────

    def agent_dir(self, name: str) -> Path:
        return self.agents_dir / name

    def instruction_path(self, name: str) -> Path:
        return self.agent_dir(name) / INSTRUCTION_FILE

    def state_path(self, name: str) -> Path:
        return self.agent_dir(name) / STATE_FILE

    def runs_dir(self, name: str) -> Path:
        return self.agent_dir(name) / RUNS_DIR_NAME

    # ─── Discovery ───────────────────────────────────────────────────────

    def workspace_exists(self) -> bool:
        return self.workspace_path.is_dir()

    def exists(self, name: str) -> bool:
        """An agent exists when its directory holds an instruction file."""
        if not is_valid_agent_name(name):
            return False
        return self.instruction_path(name).is_file()

    def directory_exists(self, name: str) -> bool:
        return self.agent_dir(name).exists()

    def agent_names(self) -> List[str]:
        """Names of all agents, sorted. Staging and hidden entries are skipped."""
        if not self.agents_dir.is_dir():
            return []

        names = []
        for entry in sorted(self.agents_dir.iterdir()):
            if not entry.is_dir() or entry.name.startswith("."):
                continue
            if not (entry / INSTRUCTION_FILE).is_file():
                logger.debug("Skipping directory without %s: %s", INSTRUCTION_FILE, entry.name)
                continue
            names.append(entry.name)
        return names

    # ─── Reads ───────────────────────────────────────────────────────────

    def read_instruction(self, name: str) -> str:
        with open(self.instruction_path(name), "r", encoding="utf-8", newline="") as f:
            return f.read()

    def read_state(self, name: str) -> Optional[AgentState]:
        """Load state.json, or None when the file is absent.

        Raises:
            InvalidStateError: If the file is not a valid state record
        """
        path = self.state_path(name)
        if not path.is_file():
            return None
        return self._read_model(path, AgentState, "read_state")

    def list_run_files(self, name: str) -> List[Tuple[int, Path]]:
        """Run record files as (run_id, path), oldest first.

        Ordering comes from the run id embedded in each file name.
        """
        runs_dir = self.runs_dir(name)
        if not runs_dir.is_dir():
            return []

        runs: List[Tuple[int, Path]] = []
        for entry in runs_dir.iterdir():
            if entry.name.startswith(".") or not entry.is_file():
                continue
            match = _RUN_FILE_RE.search(entry.name)
            if match is None:
                continue
            runs.append((int(match.group(1)), entry))
        runs.sort(key=lambda item: (item[0], item[1].name))
        return runs

    def read_run(self, path: Path) -> AgentRunLog:
        """Load one run record.

        Raises:
            InvalidStateError: If the file is not a valid run record
        """
        return self._read_model(path, AgentRunLog, "read_run")

    def _read_model(self, path: Path, model_cls, operation: str):
        try:
            with open(path, "r", encoding="utf-8") as f:
                content = f.read()
            return model_cls.model_validate_json(content)
        except (ValidationError, UnicodeDecodeError) as e:
            logger.error("Malformed record %s: %s", path, e)
            raise InvalidStateError(str(path), cause=e, operation=operation) from e

    # ─── Writes ──────────────────────────────────────────────────────────

    def write_state(self, name: str, state: AgentState) -> None:
        atomic_write_text(self.state_path(name), self._dump(state))
        logger.debug("State saved for agent '%s'", name)

    def write_run(self, name: str, run_log: AgentRunLog, report: Optional[str] = None) -> Path:
        """Publish a run record, plus its Markdown report when given.

        The JSON record is published first; the report is derived data.
        """
        stem = run_file_stem(run_log)
        runs_dir = self.runs_dir(name)
        json_path = runs_dir / f"{stem}.json"
        atomic_write_text(json_path, self._dump(run_log))
        if report is not None:
            atomic_write_text(runs_dir / f"{stem}.md", report)
        logger.debug("Run #%d saved to %s", run_log.run_id, json_path)
        return json_path

    def materialize(self, name: str, instruction: str, state: AgentState) -> None:
        """Create an agent directory.

        Files are written into a hidden staging directory first. The target
        directory is then claimed with ``os.mkdir``, which fails if anything
        already holds the name, and the files are renamed into it with
        instruction.md last. An agent only counts as existing once its
        instruction file is present, so readers never see it half-built.

        Raises:
            FileExistsError: If the agent directory appeared meanwhile
        """
        self.agents_dir.mkdir(parents=True, exist_ok=True)
        staging = self.agents_dir / f".staging-{name}-{uuid.uuid4().hex}"
        try:
            (staging / RUNS_DIR_NAME).mkdir(parents=True)
            with open(staging / INSTRUCTION_FILE, "w", encoding="utf-8", newline="") as f:
                f.write(instruction)
                f.flush()
                os.fsync(f.fileno())
            atomic_write_text(staging / STATE_FILE, self._dump(state))

            target = self.agent_dir(name)
            os.mkdir(target)
            for entry_name in (RUNS_DIR_NAME, STATE_FILE, INSTRUCTION_FILE):
                os.rename(staging / entry_name, target / entry_name)
        finally:
            if staging.exists():
                shutil.rmtree(staging, ignore_errors=True)

    @staticmethod
    def _dump(model) -> str:
        return model.model_dump_json(by_alias=True, indent=2) + "\n"
