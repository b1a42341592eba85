"""
    Graph model - the canonical workflow definition graph.

    Nodes are keyed by id; every node owns a set of outgoing slots
    (one ``default`` slot plus one slot per branch label) and each slot
    holds at most one edge.  All mutators work in place and return a
    ``Status`` instead of raising, so a rejected operation leaves the
    graph exactly as it was.
"""
from collections import deque
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from ..types import EdgeType, Position, Status
from .node import Node
from .edge import Edge, EdgeKey

Slot = Tuple[str, EdgeType, Optional[str]]


class Graph:
    """
        Directed graph of workflow nodes with default/branch edges.
        Cycles are allowed (loops back to earlier steps are legal workflows).
    """

    def __init__(self, graph_id: str = "workflow"):
        """
        Initialize a graph.
        Args:
            graph_id: Identifier of the graph
        """
        self.graph_id = graph_id
        self.nodes: Dict[str, Node] = {}  # node_id -> Node
        self.edges: Dict[EdgeKey, Edge] = {}  # (source, target, type, label) -> Edge
        self._adjacency_list: Dict[str, List[Edge]] = {}  # node_id -> [Edges]
        self._slots: Dict[Slot, Edge] = {}  # slot -> Edge

    # ── Nodes ────────────────────────────────────────────────────

    def add_node(self, node: Node) -> Status:
        """Add a node to the graph; DUPLICATE_ID if the id is taken"""
        if node.node_id in self.nodes:
            return Status.DUPLICATE_ID

        self.nodes[node.node_id] = node
        self._adjacency_list[node.node_id] = []
        return Status.OK

    def remove_node(self, node_id: str) -> Status:
        """Remove a node and every edge where it is source or target."""
        if node_id not in self.nodes:
            return Status.NOT_FOUND

        for edge in list(self._adjacency_list.get(node_id, [])):
            self._remove_edge(edge)

        del self.nodes[node_id]
        self._adjacency_list.pop(node_id, None)
        return Status.OK

    def update_node(self, node_id: str, patch: Dict[str, Any]) -> Status:
        """Shallow-merge ``patch`` into the node's properties"""
        node = self.nodes.get(node_id)
        if node is None:
            return Status.NOT_FOUND
        node.properties.update(patch)
        node.revision += 1
        return Status.OK

    def unset_properties(self, node_id: str, keys: Iterable[str]) -> Status:
        """Drop property keys from a node (missing keys are ignored)"""
        node = self.nodes.get(node_id)
        if node is None:
            return Status.NOT_FOUND
        for key in keys:
            node.properties.pop(key, None)
        node.revision += 1
        return Status.OK

    def set_position(self, node_id: str, position: Any) -> Status:
        node = self.nodes.get(node_id)
        if node is None:
            return Status.NOT_FOUND
        node.position = Position.from_value(position)
        node.revision += 1
        return Status.OK

    def set_height(self, node_id: str, height: float) -> Status:
        node = self.nodes.get(node_id)
        if node is None:
            return Status.NOT_FOUND
        node.height = float(height)
        node.revision += 1
        return Status.OK

    def get_node(self, node_id: str) -> Optional[Node]:
        """Live node for ``node_id``; mutate it only through the graph."""
        return self.nodes.get(node_id)

    def has_node(self, node_id: str) -> bool:
        return node_id in self.nodes

    def get_all_nodes(self) -> List[Node]:
        """Snapshot copies of all nodes, in insertion order."""
        return [node.copy() for node in self.nodes.values()]

    # ── Edges ────────────────────────────────────────────────────

    def connect(self, source_id: str, target_id: str,
                edge_type: EdgeType = EdgeType.DEFAULT,
                label: Optional[str] = None) -> Status:
        """
        Insert an edge into a free slot.

        Returns:
            NOT_FOUND if an endpoint is missing, INVALID_EDGE if the label
            does not fit the edge type, SLOT_OCCUPIED if the slot already
            holds an edge.  An occupied slot is never replaced implicitly.
        """
        if source_id not in self.nodes or target_id not in self.nodes:
            return Status.NOT_FOUND
        try:
            edge = Edge(source_id, target_id, edge_type, label)
        except ValueError:
            return Status.INVALID_EDGE

        if edge.slot in self._slots:
            return Status.SLOT_OCCUPIED

        self._insert_edge(edge)
        return Status.OK

    def add_edge(self, edge: Edge) -> Status:
        """Insert an existing Edge value (used when restoring edges)."""
        return self.connect(edge.source_id, edge.target_id, edge.edge_type, edge.label)

    def disconnect(self, source_id: str, target_id: str,
                   edge_type: EdgeType = EdgeType.DEFAULT,
                   label: Optional[str] = None) -> bool:
        """
        Remove one specific edge.

        Returns:
            True if an edge was removed; disconnecting an absent edge is a no-op.
        """
        try:
            wanted = Edge(source_id, target_id, edge_type, label)
        except ValueError:
            return False
        edge = self.edges.get(wanted.key)
        if edge is None:
            return False
        self._remove_edge(edge)
        return True

    def remove_edge(self, edge: Edge) -> bool:
        return self.disconnect(edge.source_id, edge.target_id, edge.edge_type, edge.label)

    def get_edge(self, edge_id: str) -> Optional[Edge]:
        """First edge whose display id is ``edge_id``; prefer ``get_slot_edge``."""
        return next((e for e in self.edges.values() if e.edge_id == edge_id), None)

    def has_edge(self, edge: Edge) -> bool:
        return edge.key in self.edges

    def get_all_edges(self) -> List[Edge]:
        return list(self.edges.values())

    def get_slot_edge(self, source_id: str, edge_type: EdgeType = EdgeType.DEFAULT,
                      label: Optional[str] = None) -> Optional[Edge]:
        """Edge currently occupying a slot of ``source_id``, if any"""
        return self._slots.get((source_id, EdgeType(edge_type), label or None))

    def get_outgoing_edges(self, node_id: str) -> List[Edge]:
        return [e for e in self._adjacency_list.get(node_id, []) if e.source_id == node_id]

    def get_incoming_edges(self, node_id: str) -> List[Edge]:
        return [e for e in self._adjacency_list.get(node_id, []) if e.target_id == node_id]

    def get_touching_edges(self, node_id: str) -> List[Edge]:
        """All edges where ``node_id`` is source or target."""
        return list(self._adjacency_list.get(node_id, []))

    def get_default_outgoing_edge(self, node_id: str) -> Optional[Edge]:
        return self.get_slot_edge(node_id, EdgeType.DEFAULT)

    def get_branch_outgoing_edges(self, node_id: str) -> List[Edge]:
        return [e for e in self.get_outgoing_edges(node_id) if e.is_branch()]

    def get_successor_ids(self, node_id: str) -> List[str]:
        return [e.target_id for e in self.get_outgoing_edges(node_id)]

    def _insert_edge(self, edge: Edge) -> None:
        self.edges[edge.key] = edge
        self._slots[edge.slot] = edge
        self._adjacency_list[edge.source_id].append(edge)
        if edge.source_id != edge.target_id:
            self._adjacency_list[edge.target_id].append(edge)

    def _remove_edge(self, edge: Edge) -> None:
        for node_id in (edge.source_id, edge.target_id):
            if node_id in self._adjacency_list:
                self._adjacency_list[node_id] = [
                    e for e in self._adjacency_list[node_id] if e != edge
                ]
        self._slots.pop(edge.slot, None)
        del self.edges[edge.key]

    # ── Structure queries ────────────────────────────────────────

    def get_connected_node_ids(self, node_id: str) -> Set[str]:
        """
        Ids of every node in the same weakly connected component as
        ``node_id`` (edges followed in both directions), itself included.
        """
        if node_id not in self.nodes:
            return set()
        seen = {node_id}
        queue = deque([node_id])
        while queue:
            current = queue.popleft()
            for edge in self._adjacency_list.get(current, []):
                other = edge.target_id if edge.source_id == current else edge.source_id
                if other not in seen:
                    seen.add(other)
                    queue.append(other)
        return seen

    def is_reachable(self, from_id: str, to_id: str) -> bool:
        """True if ``to_id`` can be reached from ``from_id`` along edge direction"""
        if from_id not in self.nodes or to_id not in self.nodes:
            return False
        seen = {from_id}
        stack = [from_id]
        while stack:
            current = stack.pop()
            if current == to_id:
                return True
            for target_id in self.get_successor_ids(current):
                if target_id not in seen:
                    seen.add(target_id)
                    stack.append(target_id)
        return False

    def would_create_cycle(self, source_id: str, target_id: str) -> bool:
        """Would an edge ``source -> target`` close a directed cycle?"""
        if source_id == target_id:
            return True
        return self.is_reachable(target_id, source_id)

    def has_cycle(self) -> bool:
        """Check if the graph contains a directed cycle."""
        visited = set()
        rec_stack = set()

        def dfs(node_id: str) -> bool:
            visited.add(node_id)
            rec_stack.add(node_id)
            for neighbor_id in self.get_successor_ids(node_id):
                if neighbor_id not in visited:
                    if dfs(neighbor_id):
                        return True
                elif neighbor_id in rec_stack:
                    return True
            rec_stack.remove(node_id)
            return False

        for node_id in self.nodes:
            if node_id not in visited:
                if dfs(node_id):
                    return True
        return False

    def verify_integrity(self) -> List[str]:
        """
        Check the structural invariants.

        Returns:
            Human readable violations; empty when the graph is sound.
        """
        problems = []
        seen_slots: Dict[Slot, str] = {}
        for edge in self.edges.values():
            edge_id = edge.edge_id
            if edge.source_id not in self.nodes:
                problems.append(f"Edge {edge_id} references missing source {edge.source_id}")
            if edge.target_id not in self.nodes:
                problems.append(f"Edge {edge_id} references missing target {edge.target_id}")
            if edge.slot in seen_slots:
                problems.append(
                    f"Slot {edge.slot[0]}:{edge.slot[1].value}:{edge.slot[2]} holds "
                    f"both {seen_slots[edge.slot]} and {edge_id}"
                )
            seen_slots[edge.slot] = edge_id
            if self._slots.get(edge.slot) != edge:
                problems.append(f"Edge {edge_id} is missing from the slot index")
        if len(self._slots) != len(self.edges):
            problems.append(
                f"Slot index holds {len(self._slots)} edges, graph holds {len(self.edges)}"
            )
        return problems

    # ── Whole-graph helpers ──────────────────────────────────────

    def snapshot(self) -> 'Graph':
        """Deep copy, e.g. for hand-off to an execution runtime."""
        clone = Graph(self.graph_id)
        for node in self.nodes.values():
            clone.add_node(node.copy())
        for edge in self.edges.values():
            clone._insert_edge(edge)
        return clone

    def clear(self) -> None:
        self.nodes.clear()
        self.edges.clear()
        self._adjacency_list.clear()
        self._slots.clear()

    def get_number_of_nodes(self) -> int:
        return len(self.nodes)

    def get_number_of_edges(self) -> int:
        return len(self.edges)

    def __eq__(self, other) -> bool:
        """Deep value equality: same nodes (by value) and same edge set."""
        if not isinstance(other, Graph):
            return NotImplemented
        return self.nodes == other.nodes and set(self.edges.values()) == set(other.edges.values())

    __hash__ = None

    def __repr__(self) -> str:
        return f"Graph({self.graph_id}, nodes={len(self.nodes)}, edges={len(self.edges)})"

    def to_dict(self) -> Dict:
        return {
            'id': self.graph_id,
            'nodes': [node.to_dict() for node in self.nodes.values()],
            'edges': [edge.to_dict() for edge in self.edges.values()]
        }
