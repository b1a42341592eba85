"""
    Command base class and result value.

    Design Pattern: Command
    ───────────────────────
    Each graph edit is an object bound to its graph at construction:
        • ``execute() → CommandResult``  : apply the edit (also used for redo)
        • ``undo() → CommandResult``     : reverse it exactly

    A command checks every precondition before touching the graph, so a
    failed ``execute`` or ``undo`` leaves the graph unchanged.  Whatever
    is needed to reverse the edit is captured during ``execute``.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from workflow_api.models.graph import Graph
from workflow_api.types import Status


# ── Result wrapper ───────────────────────────────────────────────

@dataclass
class CommandResult:
    """
    Value object returned by every command execution.

    Attributes:
        success:  Whether the command completed without error.
        message:  Human-readable output.
        status:   ``Status.OK`` or the reason for failure.
        data:     Optional structured data for programmatic consumers.
    """
    success: bool
    message: str
    status: Status = Status.OK
    data: Optional[Dict[str, Any]] = field(default_factory=dict)

    def __bool__(self) -> bool:
        return self.success


# ── Abstract base ────────────────────────────────────────────────

class Command(ABC):
    """
    Abstract base for all graph commands.

    Design Pattern: Command
    """

    def __init__(self, graph: Graph):
        self._graph = graph

    @property
    def graph(self) -> Graph:
        return self._graph

    @property
    def description(self) -> str:
        """Short label for history views and logs."""
        return type(self).__name__

    @abstractmethod
    def execute(self) -> CommandResult:
        """Apply the command to its graph."""
        ...

    @abstractmethod
    def undo(self) -> CommandResult:
        """Reverse the effect of the last ``execute``."""
        ...

    @staticmethod
    def _ok(message: str, **data) -> CommandResult:
        return CommandResult(True, message, Status.OK, data)

    @staticmethod
    def _fail(status: Status, message: str) -> CommandResult:
        return CommandResult(False, message, status)

    def __repr__(self) -> str:
        return f"<{self.description}>"
