"""
Agentwatch error classes.

Every error raised by the agent store and context manager derives from
AgentWatchError. Callers branch on the taxonomy (NotFoundError,
AlreadyExistsError, InvalidStateError) and decide how to surface it; nothing
in the core terminates the process.
"""

from datetime import datetime
from typing import Any, Dict, Optional, Union


class ErrorContext:
    """Helper for creating error context dictionaries."""

    @staticmethod
    def create(**context: Union[str, int, bool, None]) -> Dict[str, Union[str, int, bool, None]]:
        """Create an error context dictionary, dropping unset values."""
        return {k: v for k, v in context.items() if v is not None}


class AgentWatchError(Exception):
    """Base error class for agentwatch errors."""

    def __init__(
        self,
        message: str,
        cause: Optional[Exception] = None,
        operation: str = "unknown",
        **context: Union[str, int, bool, None]
    ):
        """Initialize error.

        Args:
            message: Error message
            cause: Original exception that caused this error
            operation: Operation being performed
            **context: Additional context information (agent name, path, ...)
        """
        self.message = message
        self.cause = cause
        self.operation = operation
        self.context: Dict[str, Any] = ErrorContext.create(**context)
        self.timestamp = datetime.now()
        super().__init__(message)

    def __str__(self) -> str:
        if self.cause:
            return f"{self.message} (caused by: {self.cause})"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary.

        Returns:
            Dictionary representation of the error
        """
        result: Dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "operation": self.operation,
            "timestamp": self.timestamp.isoformat(),
            "context": self.context,
        }

        if self.cause:
            if hasattr(self.cause, "to_dict") and callable(self.cause.to_dict):
                result["cause"] = self.cause.to_dict()
            else:
                result["cause"] = {
                    "error_type": self.cause.__class__.__name__,
                    "message": str(self.cause),
                }

        return result


class NotFoundError(AgentWatchError):
    """A workspace, agent or run record does not exist."""


class WorkspaceNotFoundError(NotFoundError):
    """Raised when the workspace root directory is missing."""

    def __init__(self, workspace_path: str, operation: str = "unknown"):
        super().__init__(
            f"Workspace '{workspace_path}' does not exist",
            operation=operation,
            workspace_path=workspace_path,
        )


class AgentNotFoundError(NotFoundError):
    """Raised when a named agent is not present in the workspace."""

    def __init__(self, agent_name: str, operation: str = "unknown"):
        super().__init__(
            f"Agent '{agent_name}' not found",
            operation=operation,
            agent_name=agent_name,
        )
        self.agent_name = agent_name


class RunNotFoundError(NotFoundError):
    """Raised when an agent has no run record with the requested id."""

    def __init__(self, agent_name: str, run_id: int, operation: str = "get_run"):
        super().__init__(
            f"Agent '{agent_name}' has no run #{run_id}",
            operation=operation,
            agent_name=agent_name,
            run_id=run_id,
        )
        self.agent_name = agent_name
        self.run_id = run_id


class AlreadyExistsError(AgentWatchError):
    """Something with the same identity is already stored."""


class AgentAlreadyExistsError(AlreadyExistsError):
    """Raised when creating an agent whose name is taken."""

    def __init__(self, agent_name: str):
        super().__init__(
            f"Agent '{agent_name}' already exists",
            operation="create_agent",
            agent_name=agent_name,
        )
        self.agent_name = agent_name


class InvalidStateError(AgentWatchError):
    """Raised when a persisted state or run record cannot be parsed.

    This signals store corruption; callers must not substitute defaults.
    """

    def __init__(self, path: str, cause: Optional[Exception] = None, operation: str = "read"):
        super().__init__(
            f"Malformed agent record at '{path}'",
            cause=cause,
            operation=operation,
            path=path,
        )
        self.path = path


class InvalidAgentNameError(AgentWatchError, ValueError):
    """Raised when an agent name cannot be used as a directory name."""

    def __init__(self, agent_name: str):
        super().__init__(
            f"Invalid agent name '{agent_name}': use letters, digits, '.', '_' or '-' "
            "and start with a letter or digit",
            operation="create_agent",
            agent_name=agent_name,
        )
        self.agent_name = agent_name


__all__ = [
    "ErrorContext",
    "AgentWatchError",
    "NotFoundError",
    "WorkspaceNotFoundError",
    "AgentNotFoundError",
    "RunNotFoundError",
    "AlreadyExistsError",
    "AgentAlreadyExistsError",
    "InvalidStateError",
    "InvalidAgentNameError",
]
