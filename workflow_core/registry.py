"""
    PluginRegistry: lookup of node type plugins by ``node_type``.

    Design Pattern: Registry
    ────────────────────────
    The registry is the only place that maps a node's type to its
    behavior; branch computation, schemas and validation rules are all
    reached through it.  It is an ordinary object handed to whoever
    needs it, so separate editors can hold separate registries.
"""
import logging
from typing import Dict, Iterable, List, Optional

from workflow_api.models.node import Node
from workflow_api.plugins.base import Branch, NodeTypePlugin

from .plugin_loader import PluginLoader, create_node_type_loader
from .services.exceptions import PluginRegistrationError, UnknownNodeTypeError

logger = logging.getLogger(__name__)


class PluginRegistry:
    """Node type plugins keyed by ``node_type``."""

    def __init__(self, plugins: Optional[Iterable[NodeTypePlugin]] = None):
        self._plugins: Dict[str, NodeTypePlugin] = {}
        if plugins:
            self.register_all(plugins)

    # ── Registration ─────────────────────────────────────────────

    def register(self, plugin: NodeTypePlugin) -> 'PluginRegistry':
        """
        Register a plugin under its ``node_type``.

        Re-registering an existing type replaces the previous plugin.

        Raises:
            PluginRegistrationError: If the plugin declares no node type.
        """
        node_type = getattr(plugin, 'node_type', None)
        if not node_type:
            raise PluginRegistrationError(
                f"Plugin {type(plugin).__name__} does not declare a node_type"
            )
        if node_type in self._plugins:
            logger.warning("Node type '%s' is already registered. Overriding.", node_type)
        self._plugins[node_type] = plugin
        logger.debug("Registered node type '%s' (%s)", node_type, type(plugin).__name__)
        return self

    def register_all(self, plugins: Iterable[NodeTypePlugin]) -> 'PluginRegistry':
        for plugin in plugins:
            self.register(plugin)
        return self

    def unregister(self, node_type: str) -> bool:
        return self._plugins.pop(node_type, None) is not None

    def load_entry_points(self, loader: Optional[PluginLoader[NodeTypePlugin]] = None) -> int:
        """
        Register every node type published under the entry-point group.

        Returns:
            Number of plugins registered.
        """
        loader = loader or create_node_type_loader()
        plugins = loader.load_all()
        for plugin in plugins.values():
            self.register(plugin)
        logger.info("Registered %d node type(s) from entry points", len(plugins))
        return len(plugins)

    # ── Lookup ───────────────────────────────────────────────────

    def get(self, node_type: str) -> Optional[NodeTypePlugin]:
        return self._plugins.get(node_type)

    def require(self, node_type: str) -> NodeTypePlugin:
        """
        Like ``get`` but for callers that cannot continue without a plugin.

        Raises:
            UnknownNodeTypeError: If ``node_type`` is not registered.
        """
        plugin = self._plugins.get(node_type)
        if plugin is None:
            raise UnknownNodeTypeError(
                f"Node type '{node_type}' is not registered. "
                f"Available: {self.get_types()}"
            )
        return plugin

    def get_all(self) -> List[NodeTypePlugin]:
        return list(self._plugins.values())

    def get_types(self) -> List[str]:
        return sorted(self._plugins.keys())

    # ── Branch dispatch ──────────────────────────────────────────

    def get_branches(self, node: Node) -> List[Branch]:
        """Current branches of ``node``; unknown node types have none."""
        plugin = self._plugins.get(node.node_type)
        if plugin is None:
            return []
        return plugin.get_branches(node.properties)

    def get_branch_ids(self, node: Node) -> List[str]:
        return [branch.id for branch in self.get_branches(node)]

    def has_multiple_branches(self, node: Node) -> bool:
        return len(self.get_branches(node)) > 1

    def __contains__(self, node_type: str) -> bool:
        return node_type in self._plugins

    def __len__(self) -> int:
        return len(self._plugins)

    def __repr__(self) -> str:
        return f"PluginRegistry(types={self.get_types()})"
