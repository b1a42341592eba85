"""
    Graph Commands: concrete command implementations.

    Design Pattern: Command
    ───────────────────────
    Every user-visible edit of a workflow graph is one of these:

        AddNodeCommand           insert a node, optionally wired into a slot
        DeleteNodeCommand        remove a node and its edges (optionally bridging)
        MoveNodeCommand          change a node's position
        UpdateNodeCommand        merge a property patch
        UpdateNodeHeightCommand  record a newly measured height
        DuplicateNodeCommand     copy a node next to the original
        ConnectNodesCommand      add an edge
        DisconnectNodesCommand   remove an edge

    Node ids never change across execute / undo / redo; a restored node
    is the same node, not a re-keyed copy.
"""
import logging
import uuid
from copy import deepcopy
from typing import Any, Callable, Dict, List, Optional, Tuple

from workflow_api.models.edge import Edge
from workflow_api.models.graph import Graph
from workflow_api.models.node import Node
from workflow_api.types import EdgeType, Position, Status

from .command import Command, CommandResult

logger = logging.getLogger(__name__)

# Marks a patched key that did not exist before the patch
_MISSING = object()

COPY_SUFFIX = " (Copy)"


def _make_edge(source_id: str, target_id: str, edge_type: Any,
               label: Optional[str]) -> Optional[Edge]:
    try:
        return Edge(source_id, target_id, edge_type, label)
    except ValueError:
        return None


def _slot_free_or_held_by(graph: Graph, edge: Edge, allowed: List[Edge]) -> bool:
    occupant = graph.get_slot_edge(*edge.slot)
    return occupant is None or occupant in allowed


def _branch_allowed(registry, node: Node, label: str) -> bool:
    if registry is None:
        return True
    return label in registry.get_branch_ids(node)


# ═════════════════════════════════════════════════════════════════
#  NODE COMMANDS
# ═════════════════════════════════════════════════════════════════

class AddNodeCommand(Command):
    """
    Insert a node, optionally connected from ``source_id``.

    When the requested slot of the source is already occupied the new
    node is spliced in: ``source -> new -> previous target`` (the
    previous target becomes the new node's default successor).
    With ``insert_spacing`` the nodes of the same flow that sit at or
    below the new node are pushed down to make room.
    """

    def __init__(self, graph: Graph, node: Node,
                 source_id: Optional[str] = None,
                 edge_type: EdgeType = EdgeType.DEFAULT,
                 branch_id: Optional[str] = None,
                 registry=None,
                 insert_spacing: float = 0.0):
        super().__init__(graph)
        self._node = node.copy()
        self._source_id = source_id
        self._edge_type = EdgeType(edge_type)
        self._branch_id = branch_id
        self._registry = registry
        self._insert_spacing = insert_spacing

        self._created_edges: List[Edge] = []
        self._displaced_edge: Optional[Edge] = None
        self._moved: Dict[str, Tuple[Position, Position]] = {}  # id -> (old, new)

    @property
    def node_id(self) -> str:
        return self._node.node_id

    @property
    def description(self) -> str:
        return f"Add {self._node.node_type} node '{self._node.node_id}'"

    def execute(self) -> CommandResult:
        graph = self._graph
        node_id = self._node.node_id
        if graph.has_node(node_id):
            return self._fail(Status.DUPLICATE_ID, f"Node '{node_id}' already exists.")

        link: Optional[Edge] = None
        displaced: Optional[Edge] = None
        moved: Dict[str, Tuple[Position, Position]] = {}

        if self._source_id is not None:
            source = graph.get_node(self._source_id)
            if source is None:
                return self._fail(Status.NOT_FOUND, f"Source node '{self._source_id}' not found.")
            link = _make_edge(self._source_id, node_id, self._edge_type, self._branch_id)
            if link is None:
                return self._fail(Status.INVALID_EDGE,
                                  "Branch connections need a branch id; default connections take none.")
            if link.is_branch() and not _branch_allowed(self._registry, source, link.label):
                return self._fail(Status.INVALID_BRANCH,
                                  f"Node '{self._source_id}' has no branch '{link.label}'.")
            displaced = graph.get_slot_edge(*link.slot)

            if self._insert_spacing:
                new_y = self._node.position.y
                for other_id in graph.get_connected_node_ids(self._source_id):
                    if other_id == self._source_id:
                        continue
                    old = graph.get_node(other_id).position
                    if old.y >= new_y:
                        moved[other_id] = (old, old.offset(dy=self._insert_spacing))

        # ── commit ──
        created = []
        graph.add_node(self._node.copy())
        if link is not None:
            if displaced is not None:
                graph.remove_edge(displaced)
            graph.add_edge(link)
            created.append(link)
            if displaced is not None:
                tail = Edge(node_id, displaced.target_id, EdgeType.DEFAULT)
                graph.add_edge(tail)
                created.append(tail)
        for other_id, (_, new_position) in moved.items():
            graph.set_position(other_id, new_position)

        self._created_edges = created
        self._displaced_edge = displaced
        self._moved = moved
        logger.debug("Added node '%s' (%d edge(s), %d node(s) shifted)",
                     node_id, len(created), len(moved))
        return self._ok(
            f"Node '{node_id}' added.",
            node_id=node_id,
            edges=[e.edge_id for e in created],
        )

    def undo(self) -> CommandResult:
        graph = self._graph
        node_id = self._node.node_id
        if not graph.has_node(node_id):
            return self._fail(Status.NOT_FOUND, f"Node '{node_id}' not found for undo.")

        displaced = self._displaced_edge
        if displaced is not None:
            if not (graph.has_node(displaced.source_id) and graph.has_node(displaced.target_id)):
                return self._fail(Status.NOT_FOUND,
                                  f"Cannot restore connection {displaced.edge_id}: endpoint missing.")
            if not _slot_free_or_held_by(graph, displaced, self._created_edges):
                return self._fail(Status.SLOT_OCCUPIED,
                                  f"Cannot restore connection {displaced.edge_id}: slot occupied.")

        # ── commit ──
        graph.remove_node(node_id)
        if displaced is not None:
            graph.add_edge(displaced)
        for other_id, (old_position, _) in self._moved.items():
            if graph.has_node(other_id):
                graph.set_position(other_id, old_position)

        return self._ok(f"Node '{node_id}' removed.", node_id=node_id)


class DeleteNodeCommand(Command):
    """
    Remove a node and every edge touching it.

    With ``bridge=True`` each predecessor is reconnected, in the slot it
    used, to the deleted node's default successor so the flow stays
    connected.
    """

    def __init__(self, graph: Graph, node_id: str, bridge: bool = False):
        super().__init__(graph)
        self._node_id = str(node_id)
        self._bridge = bridge
        self._node: Optional[Node] = None
        self._edges: List[Edge] = []
        self._bridges: List[Edge] = []

    @property
    def description(self) -> str:
        return f"Delete node '{self._node_id}'"

    def execute(self) -> CommandResult:
        graph = self._graph
        node = graph.get_node(self._node_id)
        if node is None:
            return self._fail(Status.NOT_FOUND, f"Node '{self._node_id}' not found.")

        edges = graph.get_touching_edges(self._node_id)
        bridges = []
        if self._bridge:
            successor = graph.get_default_outgoing_edge(self._node_id)
            if successor is not None and successor.target_id != self._node_id:
                for incoming in graph.get_incoming_edges(self._node_id):
                    if incoming.source_id in (self._node_id, successor.target_id):
                        continue
                    bridges.append(Edge(incoming.source_id, successor.target_id,
                                        incoming.edge_type, incoming.label))

        # ── commit ──
        self._node = node.copy()
        self._edges = edges
        graph.remove_node(self._node_id)
        self._bridges = [edge for edge in bridges if graph.add_edge(edge)]

        logger.debug("Deleted node '%s' with %d edge(s)", self._node_id, len(edges))
        return self._ok(
            f"Node '{self._node_id}' deleted with {len(edges)} connection(s).",
            node_id=self._node_id,
            removed_edges=[e.edge_id for e in edges],
            bridges=[e.edge_id for e in self._bridges],
        )

    def undo(self) -> CommandResult:
        graph = self._graph
        if self._node is None:
            return self._fail(Status.COMMAND_FAILED, "Nothing to undo.")
        if graph.has_node(self._node_id):
            return self._fail(Status.DUPLICATE_ID, f"Node '{self._node_id}' already exists.")

        for edge in self._edges:
            for endpoint in (edge.source_id, edge.target_id):
                if endpoint != self._node_id and not graph.has_node(endpoint):
                    return self._fail(Status.NOT_FOUND,
                                      f"Cannot restore {edge.edge_id}: node '{endpoint}' missing.")
            if not _slot_free_or_held_by(graph, edge, self._bridges):
                return self._fail(Status.SLOT_OCCUPIED,
                                  f"Cannot restore {edge.edge_id}: slot occupied.")

        # ── commit ──
        for bridge in self._bridges:
            graph.remove_edge(bridge)
        graph.add_node(self._node.copy())
        for edge in self._edges:
            graph.add_edge(edge)

        return self._ok(f"Node '{self._node_id}' restored.", node_id=self._node_id)


class MoveNodeCommand(Command):
    """
    Set a node's position.

    ``old_position`` may be given when the view has already moved the
    node (drag); otherwise it is read from the graph on first execute.
    """

    def __init__(self, graph: Graph, node_id: str, new_position: Any,
                 old_position: Any = None):
        super().__init__(graph)
        self._node_id = str(node_id)
        self._new_position = Position.from_value(new_position)
        self._old_position = Position.from_value(old_position) if old_position is not None else None

    @property
    def description(self) -> str:
        return f"Move node '{self._node_id}'"

    def execute(self) -> CommandResult:
        node = self._graph.get_node(self._node_id)
        if node is None:
            return self._fail(Status.NOT_FOUND, f"Node '{self._node_id}' not found.")
        if self._old_position is None:
            self._old_position = node.position
        self._graph.set_position(self._node_id, self._new_position)
        return self._ok(f"Node '{self._node_id}' moved.", node_id=self._node_id)

    def undo(self) -> CommandResult:
        if not self._graph.has_node(self._node_id):
            return self._fail(Status.NOT_FOUND, f"Node '{self._node_id}' not found for undo.")
        self._graph.set_position(self._node_id, self._old_position)
        return self._ok(f"Node '{self._node_id}' moved back.", node_id=self._node_id)


class UpdateNodeCommand(Command):
    """
    Merge a property patch into a node.

    Undo restores exactly the patched keys: keys that existed get their
    previous value back, keys the patch introduced are removed again.

    When a registry is given and the patch changes the node's branch
    set (e.g. fewer split values), branch edges whose label is no
    longer offered are disconnected as part of this command and
    reconnected on undo.
    """

    def __init__(self, graph: Graph, node_id: str, patch: Dict[str, Any], registry=None):
        super().__init__(graph)
        self._node_id = str(node_id)
        self._patch = deepcopy(patch)
        self._registry = registry
        self._previous: Dict[str, Any] = {}
        self._orphaned: List[Edge] = []

    @property
    def description(self) -> str:
        return f"Update node '{self._node_id}' ({', '.join(self._patch)})"

    def execute(self) -> CommandResult:
        graph = self._graph
        node = graph.get_node(self._node_id)
        if node is None:
            return self._fail(Status.NOT_FOUND, f"Node '{self._node_id}' not found.")

        previous = {
            key: deepcopy(node.properties[key]) if key in node.properties else _MISSING
            for key in self._patch
        }

        orphaned = []
        if self._registry is not None and self._registry.get(node.node_type) is not None:
            merged = dict(node.properties, **self._patch)
            plugin = self._registry.get(node.node_type)
            valid = set(plugin.get_branch_ids(merged))
            orphaned = [e for e in graph.get_branch_outgoing_edges(self._node_id)
                        if e.label not in valid]

        # ── commit ──
        graph.update_node(self._node_id, deepcopy(self._patch))
        for edge in orphaned:
            graph.remove_edge(edge)
        if orphaned:
            logger.info("Disconnected %d orphaned branch edge(s) from '%s': %s",
                        len(orphaned), self._node_id, [e.label for e in orphaned])

        self._previous = previous
        self._orphaned = orphaned
        return self._ok(
            f"Node '{self._node_id}' updated ({len(self._patch)} propert(ies)).",
            node_id=self._node_id,
            disconnected=[e.edge_id for e in orphaned],
        )

    def undo(self) -> CommandResult:
        graph = self._graph
        if not graph.has_node(self._node_id):
            return self._fail(Status.NOT_FOUND, f"Node '{self._node_id}' not found for undo.")
        for edge in self._orphaned:
            if not graph.has_node(edge.target_id):
                return self._fail(Status.NOT_FOUND,
                                  f"Cannot restore {edge.edge_id}: node '{edge.target_id}' missing.")
            if graph.get_slot_edge(*edge.slot) is not None:
                return self._fail(Status.SLOT_OCCUPIED,
                                  f"Cannot restore {edge.edge_id}: slot occupied.")

        # ── commit ──
        restore = {k: deepcopy(v) for k, v in self._previous.items() if v is not _MISSING}
        introduced = [k for k, v in self._previous.items() if v is _MISSING]
        if restore:
            graph.update_node(self._node_id, restore)
        if introduced:
            graph.unset_properties(self._node_id, introduced)
        for edge in self._orphaned:
            graph.add_edge(edge)

        return self._ok(f"Node '{self._node_id}' properties restored.", node_id=self._node_id)


class UpdateNodeHeightCommand(Command):
    """Record a node's measured height."""

    def __init__(self, graph: Graph, node_id: str, new_height: float):
        super().__init__(graph)
        self._node_id = str(node_id)
        self._new_height = float(new_height)
        self._old_height: Optional[float] = None

    def execute(self) -> CommandResult:
        node = self._graph.get_node(self._node_id)
        if node is None:
            return self._fail(Status.NOT_FOUND, f"Node '{self._node_id}' not found.")
        self._old_height = node.height
        self._graph.set_height(self._node_id, self._new_height)
        return self._ok(f"Node '{self._node_id}' height set to {self._new_height}.")

    def undo(self) -> CommandResult:
        if not self._graph.has_node(self._node_id):
            return self._fail(Status.NOT_FOUND, f"Node '{self._node_id}' not found for undo.")
        self._graph.set_height(self._node_id, self._old_height)
        return self._ok(f"Node '{self._node_id}' height restored.")


class DuplicateNodeCommand(Command):
    """
    Copy a node (type, properties, height) next to the original.
    Connections are not copied.  The copy's id is fixed on first
    execute so redo recreates the same node.
    """

    def __init__(self, graph: Graph, node_id: str,
                 new_node_id: Optional[str] = None,
                 offset: Tuple[float, float] = (50.0, 50.0),
                 id_factory: Optional[Callable[[], str]] = None):
        super().__init__(graph)
        self._node_id = str(node_id)
        self._new_node_id = str(new_node_id) if new_node_id is not None else None
        self._offset = offset
        self._id_factory = id_factory or (lambda: uuid.uuid4().hex[:12])

    @property
    def new_node_id(self) -> Optional[str]:
        return self._new_node_id

    @property
    def description(self) -> str:
        return f"Duplicate node '{self._node_id}'"

    def execute(self) -> CommandResult:
        graph = self._graph
        original = graph.get_node(self._node_id)
        if original is None:
            return self._fail(Status.NOT_FOUND, f"Node '{self._node_id}' not found.")

        new_id = self._new_node_id or self._id_factory()
        if graph.has_node(new_id):
            return self._fail(Status.DUPLICATE_ID, f"Node '{new_id}' already exists.")

        properties = deepcopy(original.properties)
        if properties.get('title'):
            properties['title'] = f"{properties['title']}{COPY_SUFFIX}"
        dx, dy = self._offset
        duplicate = Node(new_id, original.node_type, original.position.offset(dx, dy),
                         properties, original.height)

        graph.add_node(duplicate)
        self._new_node_id = new_id
        return self._ok(f"Node '{self._node_id}' duplicated as '{new_id}'.", node_id=new_id)

    def undo(self) -> CommandResult:
        if self._new_node_id is None or not self._graph.has_node(self._new_node_id):
            return self._fail(Status.NOT_FOUND, "Duplicated node not found for undo.")
        self._graph.remove_node(self._new_node_id)
        return self._ok(f"Node '{self._new_node_id}' removed.", node_id=self._new_node_id)


# ═════════════════════════════════════════════════════════════════
#  EDGE COMMANDS
# ═════════════════════════════════════════════════════════════════

class ConnectNodesCommand(Command):
    """
    Connect two nodes.

    Self-loops and branch labels the source's plugin does not offer are
    rejected.  An occupied slot is rejected unless ``replace=True``, in
    which case the occupant is disconnected first and restored on undo.
    """

    def __init__(self, graph: Graph, source_id: str, target_id: str,
                 edge_type: EdgeType = EdgeType.DEFAULT,
                 label: Optional[str] = None,
                 registry=None,
                 replace: bool = False):
        super().__init__(graph)
        self._source_id = str(source_id)
        self._target_id = str(target_id)
        self._edge_type = edge_type
        self._label = label
        self._registry = registry
        self._replace = replace
        self._edge: Optional[Edge] = None
        self._replaced: Optional[Edge] = None

    @property
    def description(self) -> str:
        suffix = f" [{self._label}]" if self._label else ""
        return f"Connect '{self._source_id}' -> '{self._target_id}'{suffix}"

    def execute(self) -> CommandResult:
        graph = self._graph
        source = graph.get_node(self._source_id)
        if source is None or not graph.has_node(self._target_id):
            return self._fail(Status.NOT_FOUND, "Both nodes must exist to connect them.")
        if self._source_id == self._target_id:
            return self._fail(Status.INVALID_EDGE, "A node cannot connect to itself.")

        edge = _make_edge(self._source_id, self._target_id, self._edge_type, self._label)
        if edge is None:
            return self._fail(Status.INVALID_EDGE,
                              "Branch connections need a label; default connections take none.")
        if edge.is_branch() and not _branch_allowed(self._registry, source, edge.label):
            return self._fail(Status.INVALID_BRANCH,
                              f"Node '{self._source_id}' has no branch '{edge.label}'.")

        occupant = graph.get_slot_edge(*edge.slot)
        if occupant is not None and (occupant == edge or not self._replace):
            return self._fail(Status.SLOT_OCCUPIED,
                              f"Slot already connected to '{occupant.target_id}'.")

        # ── commit ──
        if occupant is not None:
            graph.remove_edge(occupant)
        graph.add_edge(edge)
        self._edge = edge
        self._replaced = occupant
        return self._ok(f"Connected {edge.edge_id}.", edge_id=edge.edge_id,
                        replaced=occupant.edge_id if occupant else None)

    def undo(self) -> CommandResult:
        graph = self._graph
        if self._edge is None or not graph.has_edge(self._edge):
            return self._fail(Status.NOT_FOUND, "Connection not found for undo.")
        replaced = self._replaced
        if replaced is not None and not graph.has_node(replaced.target_id):
            return self._fail(Status.NOT_FOUND,
                              f"Cannot restore {replaced.edge_id}: node '{replaced.target_id}' missing.")

        # ── commit ──
        graph.remove_edge(self._edge)
        if replaced is not None:
            graph.add_edge(replaced)
        return self._ok(f"Disconnected {self._edge.edge_id}.", edge_id=self._edge.edge_id)


class DisconnectNodesCommand(Command):
    """Remove one edge; fails (and records nothing) when the edge is absent."""

    def __init__(self, graph: Graph, source_id: str, target_id: str,
                 edge_type: EdgeType = EdgeType.DEFAULT,
                 label: Optional[str] = None):
        super().__init__(graph)
        self._edge = _make_edge(str(source_id), str(target_id), edge_type, label)

    @property
    def description(self) -> str:
        return f"Disconnect {self._edge.edge_id if self._edge else '<invalid>'}"

    def execute(self) -> CommandResult:
        if self._edge is None:
            return self._fail(Status.INVALID_EDGE, "Invalid connection description.")
        if not self._graph.has_edge(self._edge):
            return self._fail(Status.NOT_FOUND, f"Connection {self._edge.edge_id} not found.")
        self._graph.remove_edge(self._edge)
        return self._ok(f"Disconnected {self._edge.edge_id}.", edge_id=self._edge.edge_id)

    def undo(self) -> CommandResult:
        graph = self._graph
        edge = self._edge
        if edge is None:
            return self._fail(Status.INVALID_EDGE, "Invalid connection description.")
        if not (graph.has_node(edge.source_id) and graph.has_node(edge.target_id)):
            return self._fail(Status.NOT_FOUND, f"Cannot restore {edge.edge_id}: endpoint missing.")
        status = graph.add_edge(edge)
        if not status:
            return self._fail(status, f"Cannot restore {edge.edge_id}: {status.value}.")
        return self._ok(f"Reconnected {edge.edge_id}.", edge_id=edge.edge_id)
