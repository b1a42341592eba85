"""
    CommandManager: linear undo / redo history.

    Design Pattern: Command (invoker) + Observer
    ─────────────────────────────────────────────
    Executes commands and keeps two stacks:

        execute ──► undo stack ──undo()──► redo stack ──redo()──► undo stack

    A new successful command clears the redo stack.  Listeners are told
    ``HistoryState(can_undo, can_redo)`` after every successful
    transition; that is the only way views learn about history state.

    One manager belongs to one editor; nothing here is process-global.
"""
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from .command import Command, CommandResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HistoryState:
    can_undo: bool
    can_redo: bool


HistoryListener = Callable[[HistoryState], None]


class CommandManager:
    """
    Invoker for graph commands with bounded history.

    Args:
        max_history_depth: Undo entries kept; the oldest is dropped when
                           the limit is exceeded.  ``0`` means unbounded.
    """

    def __init__(self, max_history_depth: int = 100):
        self._undo_stack: List[Command] = []
        self._redo_stack: List[Command] = []
        self._max_history = max_history_depth
        self._listeners: List[HistoryListener] = []

    # ── History operations ───────────────────────────────────────

    def execute_command(self, command: Command) -> CommandResult:
        """
        Execute ``command`` and record it.

        On failure the command is discarded and both stacks are left
        untouched; the failed result is returned to the caller.
        """
        result = command.execute()
        if not result:
            logger.warning("Command failed: %s (%s)", command.description, result.message)
            return result

        self._push_undo(command)
        self._redo_stack.clear()
        logger.debug("Executed: %s", command.description)
        self._notify()
        return result

    def undo(self) -> Optional[CommandResult]:
        """
        Undo the most recent command.

        Returns:
            None when there is nothing to undo, otherwise the command's
            result.  A failed undo leaves the command on the undo stack.
        """
        if not self._undo_stack:
            return None

        command = self._undo_stack.pop()
        result = command.undo()
        if not result:
            self._undo_stack.append(command)
            logger.warning("Undo failed: %s (%s)", command.description, result.message)
            return result

        self._redo_stack.append(command)
        logger.debug("Undone: %s", command.description)
        self._notify()
        return result

    def redo(self) -> Optional[CommandResult]:
        """Mirror of ``undo``: re-executes the most recently undone command."""
        if not self._redo_stack:
            return None

        command = self._redo_stack.pop()
        result = command.execute()
        if not result:
            self._redo_stack.append(command)
            logger.warning("Redo failed: %s (%s)", command.description, result.message)
            return result

        self._push_undo(command)
        logger.debug("Redone: %s", command.description)
        self._notify()
        return result

    def clear(self) -> None:
        """Forget all history (e.g. after loading a different workflow)."""
        self._undo_stack.clear()
        self._redo_stack.clear()
        self._notify()

    def _push_undo(self, command: Command) -> None:
        self._undo_stack.append(command)
        if self._max_history and len(self._undo_stack) > self._max_history:
            self._undo_stack.pop(0)

    # ── State ────────────────────────────────────────────────────

    def can_undo(self) -> bool:
        return bool(self._undo_stack)

    def can_redo(self) -> bool:
        return bool(self._redo_stack)

    def get_undo_depth(self) -> int:
        return len(self._undo_stack)

    def get_redo_depth(self) -> int:
        return len(self._redo_stack)

    def get_state(self) -> HistoryState:
        return HistoryState(self.can_undo(), self.can_redo())

    def get_history(self) -> List[str]:
        """Descriptions of the undoable commands, oldest first."""
        return [command.description for command in self._undo_stack]

    # ── Listeners ────────────────────────────────────────────────

    def add_listener(self, listener: HistoryListener) -> Callable[[], None]:
        """
        Register a history listener.

        Returns:
            A callable that removes the listener again.
        """
        self._listeners.append(listener)
        return lambda: self.remove_listener(listener)

    def remove_listener(self, listener: HistoryListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self) -> None:
        state = self.get_state()
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception as exc:
                logger.error("History listener failed: %s", exc)

    def __repr__(self) -> str:
        return f"CommandManager(undo={len(self._undo_stack)}, redo={len(self._redo_stack)})"
