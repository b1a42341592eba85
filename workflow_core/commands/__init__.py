"""
Graph commands and the undo / redo manager.
"""
from .command import Command, CommandResult
from .command_manager import CommandManager, HistoryState
from .graph_commands import (
    AddNodeCommand,
    DeleteNodeCommand,
    MoveNodeCommand,
    UpdateNodeCommand,
    UpdateNodeHeightCommand,
    DuplicateNodeCommand,
    ConnectNodesCommand,
    DisconnectNodesCommand,
)

__all__ = [
    'Command',
    'CommandResult',
    'CommandManager',
    'HistoryState',
    'AddNodeCommand',
    'DeleteNodeCommand',
    'MoveNodeCommand',
    'UpdateNodeCommand',
    'UpdateNodeHeightCommand',
    'DuplicateNodeCommand',
    'ConnectNodesCommand',
    'DisconnectNodesCommand',
]
