"""
    WorkflowEditor: the central orchestrator of one editing session.

    Design Patterns applied
    ───────────────────────
    • Facade             – single entry-point for the view layer; hides
                           command construction, history, validation,
                           serialization and timers.
    • Command            – every mutation goes through ``CommandManager``.
    • Strategy           – node type behavior comes from ``PluginRegistry``.
    • Observer (hooks)   – ``_listeners`` dict; views subscribe to graph,
                           history, selection, validation and flag events.

    Collaborators are constructed per editor (or injected), never shared
    through module globals, so two editors never share undo history.
"""
import logging
import uuid
from typing import Any, Callable, Dict, List, Optional

from workflow_api.models.graph import Graph
from workflow_api.plugins.base import Branch, PropertyDescriptor
from workflow_api.types import EdgeType, Status

from .config import EditorConfig
from .registry import PluginRegistry
from .scheduling import Debouncer, TransientFlags, TimerFactory
from .commands import (
    Command,
    CommandResult,
    CommandManager,
    HistoryState,
    AddNodeCommand,
    DeleteNodeCommand,
    MoveNodeCommand,
    UpdateNodeCommand,
    UpdateNodeHeightCommand,
    DuplicateNodeCommand,
    ConnectNodesCommand,
    DisconnectNodesCommand,
)
from .services.validation_service import ValidationEngine
from .services.serialization_service import GraphSerializer
from .services.rules import RuleRegistry

logger = logging.getLogger(__name__)


# ── Observer event types ─────────────────────────────────────────
EVENT_GRAPH_CHANGED = "graph_changed"
EVENT_HISTORY_CHANGED = "history_changed"
EVENT_NODE_SELECTED = "node_selected"
EVENT_VALIDATION_CHANGED = "validation_changed"
EVENT_NODE_FLAG_CHANGED = "node_flag_changed"
EVENT_GRAPH_LOADED = "graph_loaded"


class WorkflowEditor:
    """
    Facade over one workflow graph and its editing machinery.

    Manages:
        • Node / edge edits as undoable commands.
        • Undo / redo and history notifications.
        • Property validation and staged (Apply / Cancel) edits.
        • Loading and saving through ``GraphSerializer``.
        • "Just added" node flags.
    """

    def __init__(self,
                 config: Optional[EditorConfig] = None,
                 registry: Optional[PluginRegistry] = None,
                 graph: Optional[Graph] = None,
                 command_manager: Optional[CommandManager] = None,
                 rule_registry: Optional[RuleRegistry] = None,
                 timer_factory: Optional[TimerFactory] = None,
                 id_factory: Optional[Callable[[], str]] = None):
        """
        Args:
            config:          Editor configuration.
            registry:        Node type plugins; a fresh empty registry by default.
            graph:           Graph to edit; a new empty graph by default.
            command_manager: History owner; a fresh one sized from config by default.
            rule_registry:   Validation rules; the standard rules by default.
            timer_factory:   Timer constructor for debounce / flag timers,
                             called as ``factory(delay, callback)`` and
                             returning an object with ``start``/``cancel``.
                             The default fires on a daemon thread; hosts
                             with a UI loop must pass one that fires on
                             that loop, since validation and observers
                             run inside the callback.
            id_factory:      Generator for new node ids.
        """
        self._config: EditorConfig = config or EditorConfig()
        self._registry = registry if registry is not None else PluginRegistry()
        if self._config.load_entry_points:
            self._registry.load_entry_points()

        self._graph = graph if graph is not None else Graph()
        self._commands = command_manager or CommandManager(self._config.max_history_depth)
        self._validator = ValidationEngine(self._registry, rule_registry)
        self._serializer = GraphSerializer(self._config.serialization)
        self._timer_factory = timer_factory
        self._id_factory = id_factory or (lambda: uuid.uuid4().hex[:12])

        self._just_added = TransientFlags(
            self._graph,
            self._config.just_added_duration,
            on_change=lambda node_id, flagged: self._notify(
                EVENT_NODE_FLAG_CHANGED, node_id=node_id, flag='just_added', value=flagged),
            timer_factory=timer_factory,
        )
        self._selected_node_id: Optional[str] = None

        # Observer listeners: event_name → [callback, ...]
        self._listeners: Dict[str, List[Callable[..., Any]]] = {}
        self._commands.add_listener(self._on_history_changed)

        logger.info("WorkflowEditor initialized with node types %s", self._registry.get_types())

    # ── Accessors ────────────────────────────────────────────────

    @property
    def config(self) -> EditorConfig:
        return self._config

    @property
    def graph(self) -> Graph:
        return self._graph

    @property
    def registry(self) -> PluginRegistry:
        return self._registry

    @property
    def command_manager(self) -> CommandManager:
        return self._commands

    @property
    def validator(self) -> ValidationEngine:
        return self._validator

    @property
    def serializer(self) -> GraphSerializer:
        return self._serializer

    @property
    def selected_node_id(self) -> Optional[str]:
        return self._selected_node_id

    # ── Commands ─────────────────────────────────────────────────

    def execute(self, command: Command) -> CommandResult:
        """Run any command through the history."""
        result = self._commands.execute_command(command)
        if result:
            self._notify(EVENT_GRAPH_CHANGED, result=result)
        return result

    def add_node(self, node_type: str, position: Any = None,
                 source_id: Optional[str] = None,
                 edge_type: EdgeType = EdgeType.DEFAULT,
                 branch_id: Optional[str] = None,
                 node_id: Optional[str] = None,
                 properties: Optional[Dict[str, Any]] = None) -> CommandResult:
        """
        Create a node of ``node_type`` with the plugin's initial properties.

        Raises:
            UnknownNodeTypeError: If ``node_type`` is not registered.
        """
        plugin = self._registry.require(node_type)
        node = plugin.create_node(node_id or self._id_factory(), position, **(properties or {}))
        node.height = self._config.default_node_height

        command = AddNodeCommand(
            self._graph, node,
            source_id=source_id,
            edge_type=edge_type,
            branch_id=branch_id,
            registry=self._registry,
            insert_spacing=self._config.insert_spacing if source_id is not None else 0.0,
        )
        result = self.execute(command)
        if result:
            self._just_added.mark(node.node_id)
        return result

    def delete_node(self, node_id: str, bridge: bool = False) -> CommandResult:
        result = self.execute(DeleteNodeCommand(self._graph, node_id, bridge=bridge))
        if result and self._selected_node_id == node_id:
            self._selected_node_id = None
        return result

    def move_node(self, node_id: str, position: Any, old_position: Any = None) -> CommandResult:
        return self.execute(MoveNodeCommand(self._graph, node_id, position, old_position))

    def update_node(self, node_id: str, patch: Dict[str, Any]) -> CommandResult:
        return self.execute(UpdateNodeCommand(self._graph, node_id, patch, registry=self._registry))

    def update_node_height(self, node_id: str, height: float) -> CommandResult:
        return self.execute(UpdateNodeHeightCommand(self._graph, node_id, height))

    def duplicate_node(self, node_id: str, new_node_id: Optional[str] = None) -> CommandResult:
        command = DuplicateNodeCommand(
            self._graph, node_id,
            new_node_id=new_node_id,
            offset=(self._config.duplicate_offset_x, self._config.duplicate_offset_y),
            id_factory=self._id_factory,
        )
        result = self.execute(command)
        if result:
            self._just_added.mark(command.new_node_id)
        return result

    def connect(self, source_id: str, target_id: str,
                edge_type: EdgeType = EdgeType.DEFAULT,
                label: Optional[str] = None,
                replace: bool = False) -> CommandResult:
        return self.execute(ConnectNodesCommand(
            self._graph, source_id, target_id, edge_type, label,
            registry=self._registry, replace=replace,
        ))

    def disconnect(self, source_id: str, target_id: str,
                   edge_type: EdgeType = EdgeType.DEFAULT,
                   label: Optional[str] = None) -> CommandResult:
        return self.execute(DisconnectNodesCommand(self._graph, source_id, target_id, edge_type, label))

    # ── History ──────────────────────────────────────────────────

    def undo(self) -> Optional[CommandResult]:
        result = self._commands.undo()
        if result:
            self._notify(EVENT_GRAPH_CHANGED, result=result)
        return result

    def redo(self) -> Optional[CommandResult]:
        result = self._commands.redo()
        if result:
            self._notify(EVENT_GRAPH_CHANGED, result=result)
        return result

    def can_undo(self) -> bool:
        return self._commands.can_undo()

    def can_redo(self) -> bool:
        return self._commands.can_redo()

    def _on_history_changed(self, state: HistoryState) -> None:
        self._notify(EVENT_HISTORY_CHANGED, state=state)

    # ── Queries ──────────────────────────────────────────────────

    def get_branches(self, node_id: str) -> List[Branch]:
        node = self._graph.get_node(node_id)
        return self._registry.get_branches(node) if node is not None else []

    def is_just_added(self, node_id: str) -> bool:
        return self._just_added.is_flagged(node_id)

    def select_node(self, node_id: Optional[str]) -> None:
        """Signal that a node has been selected (``None`` clears the selection)."""
        if node_id is not None and not self._graph.has_node(node_id):
            return
        self._selected_node_id = node_id
        self._notify(EVENT_NODE_SELECTED, node_id=node_id)

    def snapshot(self) -> Graph:
        """Independent copy of the graph for an execution runtime."""
        return self._graph.snapshot()

    # ── Validation ───────────────────────────────────────────────

    def validate_node(self, node_id: str) -> Dict[str, str]:
        node = self._graph.get_node(node_id)
        if node is None:
            return {}
        return self._validator.validate_node_properties(node.node_type, node)

    def validate_all(self) -> Dict[str, Dict[str, str]]:
        """Errors for every node that has any, keyed by node id."""
        report = {}
        for node_id in list(self._graph.nodes):
            errors = self.validate_node(node_id)
            if errors:
                report[node_id] = errors
        return report

    def begin_edit(self, node_id: str) -> 'PropertyEditSession':
        """
        Start staging property edits for a node.

        Raises:
            KeyError: If the node does not exist.
        """
        if not self._graph.has_node(node_id):
            raise KeyError(f"Node '{node_id}' not found")
        return PropertyEditSession(self, node_id)

    # ── Persistence ──────────────────────────────────────────────

    def dump(self) -> Dict[str, Any]:
        return self._serializer.serialize(self._graph)

    def to_json(self) -> str:
        return self._serializer.to_json(self._graph)

    def load(self, data: Dict[str, Any]) -> None:
        """
        Replace the edited graph with a deserialized one and clear history.

        Raises:
            GraphLoadError: If the data is rejected; the current graph
                            is left untouched.
        """
        loaded = self._serializer.deserialize(data)
        self._replace_graph(loaded)

    def load_json(self, json_str: str) -> None:
        self._replace_graph(self._serializer.from_json(json_str))

    def load_workflow_steps(self, steps: List[Dict[str, Any]]) -> None:
        self._replace_graph(self._serializer.from_workflow_steps(steps))

    def _replace_graph(self, loaded: Graph) -> None:
        # Commands and flags hold a reference to the graph object, so
        # its contents are swapped in place.
        self._just_added.cancel_all()
        self._graph.clear()
        self._graph.graph_id = loaded.graph_id
        for node in loaded.nodes.values():
            self._graph.add_node(node)
        for edge in loaded.edges.values():
            self._graph.add_edge(edge)
        self._selected_node_id = None
        self._commands.clear()
        self._notify(EVENT_GRAPH_LOADED, graph=self._graph)

    def close(self) -> None:
        """Stop pending timers."""
        self._just_added.cancel_all()

    # ── Observer ─────────────────────────────────────────────────

    def subscribe(self, event: str, callback: Callable[..., Any]) -> None:
        """
        Register a callback for an editor event.

        Events:
            - graph_changed       (result)
            - history_changed     (state)
            - node_selected       (node_id)
            - validation_changed  (node_id, errors)
            - node_flag_changed   (node_id, flag, value)
            - graph_loaded        (graph)
        """
        self._listeners.setdefault(event, []).append(callback)

    def unsubscribe(self, event: str, callback: Callable[..., Any]) -> None:
        """Remove a previously registered callback."""
        listeners = self._listeners.get(event, [])
        if callback in listeners:
            listeners.remove(callback)

    def _notify(self, event: str, **kwargs: Any) -> None:
        """Fire all callbacks registered for the given event."""
        for cb in list(self._listeners.get(event, [])):
            try:
                cb(**kwargs)
            except Exception as exc:
                logger.error("Observer callback failed for '%s': %s", event, exc)

    def __repr__(self) -> str:
        return (f"WorkflowEditor(nodes={self._graph.get_number_of_nodes()}, "
                f"edges={self._graph.get_number_of_edges()}, {self._commands!r})")


class PropertyEditSession:
    """
    Staged property edits for one node (the properties form).

    Edits are kept locally and validated after a debounce.  ``apply``
    turns them into a single ``UpdateNodeCommand``; ``cancel`` throws
    them away without the graph or history ever seeing them.
    """

    def __init__(self, editor: WorkflowEditor, node_id: str):
        self._editor = editor
        self._node_id = node_id
        self._staged: Dict[str, Any] = {}
        self._errors: Dict[str, str] = {}
        self._debouncer = Debouncer(editor.config.validation_debounce, editor._timer_factory)

    @property
    def node_id(self) -> str:
        return self._node_id

    @property
    def staged(self) -> Dict[str, Any]:
        return dict(self._staged)

    @property
    def errors(self) -> Dict[str, str]:
        return dict(self._errors)

    @property
    def is_dirty(self) -> bool:
        return bool(self._staged)

    def properties(self) -> Dict[str, Any]:
        """Current node properties with the staged edits applied."""
        node = self._editor.graph.get_node(self._node_id)
        merged = dict(node.properties) if node is not None else {}
        merged.update(self._staged)
        return merged

    def visible_properties(self) -> List[PropertyDescriptor]:
        plugin = self._plugin()
        return plugin.get_visible_properties(self.properties()) if plugin else []

    def stage(self, property_id: str, value: Any) -> None:
        """Record an edit and (re)start the validation debounce."""
        self._staged[property_id] = value
        self._debouncer.call(self.validate_now)

    def validate_now(self) -> Dict[str, str]:
        """Validate the staged state immediately, dropping any pending run."""
        self._debouncer.cancel()
        node = self._editor.graph.get_node(self._node_id)
        if node is None:
            self._errors = {}
        else:
            self._errors = self._editor.validator.validate_properties(node.node_type, self.properties())
        self._editor._notify(EVENT_VALIDATION_CHANGED, node_id=self._node_id, errors=dict(self._errors))
        return dict(self._errors)

    def apply(self) -> CommandResult:
        """
        Commit the staged edits as one undoable update.

        Fails with ``VALIDATION_FAILED`` (committing nothing) while any
        staged state is invalid.
        """
        errors = self.validate_now()
        if errors:
            return CommandResult(False, "Fix validation errors before applying.",
                                 Status.VALIDATION_FAILED, {'errors': errors})

        node = self._editor.graph.get_node(self._node_id)
        if node is None:
            return CommandResult(False, f"Node '{self._node_id}' not found.", Status.NOT_FOUND)

        patch = {k: v for k, v in self._staged.items()
                 if k not in node.properties or node.properties[k] != v}
        if not patch:
            self._staged.clear()
            return CommandResult(True, "Nothing to apply.")

        result = self._editor.update_node(self._node_id, patch)
        if result:
            self._staged.clear()
        return result

    def cancel(self) -> None:
        """Discard staged edits and any pending validation."""
        self._debouncer.cancel()
        self._staged.clear()
        self._errors = {}

    def _plugin(self):
        node = self._editor.graph.get_node(self._node_id)
        return self._editor.registry.get(node.node_type) if node is not None else None
