"""
    Generic plugin discovery and loading via entry_points.

    Design Pattern: Service Locator / Registry
    ────────────────────────────────────────────
    Discovers installed node types at runtime by scanning Python
    package entry_points under the ``workflow_editor.node_type`` group.
    Third-party packages add node types by publishing a
    ``NodeTypePlugin`` subclass there; nothing in the core changes.

    PluginLoader[TPlugin] is generic over the plugin base class, so the
    same loader serves any future plugin family as well.
"""
import importlib.metadata
import logging
from typing import TypeVar, Generic, Type, Dict, List, Optional

from workflow_api.plugins.base import NodeTypePlugin

logger = logging.getLogger(__name__)

# Generic type variable bounded to plugin ABCs
TPlugin = TypeVar('TPlugin')

# Entry-point group name (must match setup.py)
NODE_TYPE_EP_GROUP = 'workflow_editor.node_type'


def _select_entry_points(group: str):
    entry_points = importlib.metadata.entry_points()

    # Python 3.10+ returns EntryPoints with select(); 3.8/3.9 return a dict
    if hasattr(entry_points, 'select'):
        return entry_points.select(group=group)
    if isinstance(entry_points, dict):
        return entry_points.get(group, [])
    return [ep for ep in entry_points if ep.group == group]


class PluginLoader(Generic[TPlugin]):
    """
    Generic loader that discovers all installed plugins of a given type
    from a specific entry-point group.

    Usage:
        loader = PluginLoader(NodeTypePlugin, 'workflow_editor.node_type')
        plugins = loader.load_all()          # Dict[str, NodeTypePlugin]
        ifelse = loader.get('ifelse')        # Optional[NodeTypePlugin]
    """

    def __init__(self, plugin_base_class: Type[TPlugin], group: str):
        """
        Args:
            plugin_base_class: The ABC that every discovered plugin must subclass.
            group:             The entry-point group to scan.
        """
        self._base_class = plugin_base_class
        self._group = group
        self._plugins: Dict[str, TPlugin] = {}
        self._loaded = False

    def load_all(self) -> Dict[str, TPlugin]:
        """
        Discover and instantiate every plugin registered under the group.

        A plugin that fails to import or instantiate is logged and
        skipped; the remaining plugins still load.

        Returns:
            Dict mapping entry-point name → plugin instance.
        """
        if self._loaded:
            return self._plugins

        try:
            eps = _select_entry_points(self._group)
        except Exception as exc:
            logger.error("Entry-point discovery failed for '%s': %s", self._group, exc)
            eps = []

        for ep in eps:
            try:
                plugin_cls = ep.load()
                if not isinstance(plugin_cls, type) or not issubclass(plugin_cls, self._base_class):
                    logger.warning(
                        "Plugin '%s' does not subclass %s, skipped.",
                        ep.name, self._base_class.__name__
                    )
                    continue
                instance = plugin_cls()
                self._plugins[ep.name] = instance
                logger.info("Loaded plugin: %s (%s)", ep.name, plugin_cls.__name__)
            except Exception as exc:
                logger.error("Failed to load plugin '%s': %s", ep.name, exc)

        self._loaded = True
        return self._plugins

    def get(self, name: str) -> Optional[TPlugin]:
        """
        Get a specific plugin by its entry-point name.

        Returns:
            Plugin instance, or None if not found.
        """
        if not self._loaded:
            self.load_all()
        return self._plugins.get(name)

    def get_names(self) -> List[str]:
        """Return sorted list of all discovered plugin names."""
        if not self._loaded:
            self.load_all()
        return sorted(self._plugins.keys())

    def reload(self) -> Dict[str, TPlugin]:
        """Force re-discovery of plugins (useful after hot-install)."""
        self._plugins.clear()
        self._loaded = False
        return self.load_all()

    def __len__(self) -> int:
        if not self._loaded:
            self.load_all()
        return len(self._plugins)

    def __contains__(self, name: str) -> bool:
        if not self._loaded:
            self.load_all()
        return name in self._plugins

    def __repr__(self) -> str:
        return (
            f"PluginLoader(base={self._base_class.__name__}, "
            f"group='{self._group}', loaded={len(self._plugins)})"
        )


def create_node_type_loader() -> PluginLoader[NodeTypePlugin]:
    """Create a loader for node type plugins."""
    return PluginLoader(NodeTypePlugin, NODE_TYPE_EP_GROUP)
