"""
Built-in node types.

Each plugin is also published under the ``workflow_editor.node_type``
entry-point group in setup.py, so ``PluginRegistry.load_entry_points``
discovers them alongside third-party node types.
"""
from .trigger import TriggerNodePlugin
from .control import ControlNodePlugin
from .action import ActionNodePlugin
from .ifelse import IfElseNodePlugin
from .splitflow import SplitFlowNodePlugin

BUILTIN_PLUGINS = (
    TriggerNodePlugin,
    ControlNodePlugin,
    ActionNodePlugin,
    IfElseNodePlugin,
    SplitFlowNodePlugin,
)


def register_builtin_plugins(registry):
    """Register one instance of every built-in node type and return the registry."""
    registry.register_all(plugin_cls() for plugin_cls in BUILTIN_PLUGINS)
    return registry


__all__ = [
    'TriggerNodePlugin',
    'ControlNodePlugin',
    'ActionNodePlugin',
    'IfElseNodePlugin',
    'SplitFlowNodePlugin',
    'BUILTIN_PLUGINS',
    'register_builtin_plugins',
]
