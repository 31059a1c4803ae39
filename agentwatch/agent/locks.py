"""Per-agent locks for serializing mutations.

Agent state files are read-modify-written. Two writers for the same agent,
whether threads or separate processes, must not both compute the same next
run id or overwrite each other's state, so every mutating operation holds
the lock for its agent name.

The lock combines an in-process RLock with a FileLock under
``agents/.locks/<name>.lock``.

Usage:
    from agentwatch.agent.locks import agent_lock

    with agent_lock(agents_dir, "error-monitor"):
        ...  # read state, write run, write state
"""

from __future__ import annotations

import logging
import threading
import weakref
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from filelock import FileLock

logger = logging.getLogger(__name__)

LOCKS_DIR_NAME = ".locks"
DEFAULT_LOCK_TIMEOUT = 10.0


class _AgentLock:
    """Thread and file lock pair for one agent."""

    def __init__(self, lock_path: Path) -> None:
        self.lock_path = lock_path
        self.thread_lock = threading.RLock()
        self.file_lock = FileLock(str(lock_path))


# Guards the lock table itself; entries go away once no caller holds them
_registry_lock = threading.Lock()
_agent_locks: weakref.WeakValueDictionary[tuple[str, str], _AgentLock] = (
    weakref.WeakValueDictionary()
)


def lock_path(agents_dir: Path, agent_name: str) -> Path:
    return agents_dir / LOCKS_DIR_NAME / f"{agent_name}.lock"


def _get_lock(agents_dir: Path, agent_name: str) -> _AgentLock:
    key = (str(agents_dir), agent_name)
    with _registry_lock:
        lock = _agent_locks.get(key)
        if lock is None:
            lock = _AgentLock(lock_path(agents_dir, agent_name))
            _agent_locks[key] = lock
        return lock


@contextmanager
def agent_lock(agents_dir: Path, agent_name: str, timeout: float = DEFAULT_LOCK_TIMEOUT) -> Iterator[None]:
    """Hold the lock for one agent in one workspace.

    Raises:
        filelock.Timeout: If another process holds the lock past ``timeout`` seconds
    """
    lock = _get_lock(agents_dir, agent_name)
    with lock.thread_lock:
        lock.lock_path.parent.mkdir(parents=True, exist_ok=True)
        with lock.file_lock.acquire(timeout=timeout):
            logger.debug("Acquired lock %s", lock.lock_path)
            yield
