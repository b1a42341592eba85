"""
    Node model - a typed step in the workflow graph
"""
from copy import deepcopy
from typing import Dict, Any, Optional

from ..types import Position


DEFAULT_NODE_HEIGHT = 90.0


class Node:
    """
    A workflow step.

    ``node_id`` is assigned once and never changes; ``node_type`` selects
    the plugin that owns the legal keys of ``properties``.
    ``revision`` is bumped by the graph on every in-place mutation so the
    rendering layer can detect changes without the node changing identity.
    It takes no part in equality or serialization.
    """

    def __init__(
            self,
            node_id: Any,
            node_type: str,
            position: Any = None,
            properties: Optional[Dict[str, Any]] = None,
            height: float = DEFAULT_NODE_HEIGHT,
    ):
        """
        Initialize a node.

        Args:
            node_id: Unique identifier of the node (will be converted to str)
            node_type: Registered node type, e.g. "action"
            position: Position, ``{x, y}`` mapping or ``(x, y)`` pair
            properties: Initial property mapping (copied)
            height: Last measured visual height
        """
        # Ensure ID is always a string for consistency in comparisons
        self._node_id = str(node_id)
        self.node_type = node_type
        self.position = Position.from_value(position)
        self.height = float(height)
        self.properties: Dict[str, Any] = deepcopy(properties) if properties else {}
        self.revision = 0

    @property
    def node_id(self) -> str:
        return self._node_id

    def get_property(self, key: str, default: Any = None) -> Any:
        return self.properties.get(key, default)

    @property
    def title(self) -> str:
        return self.properties.get('title', '')

    def copy(self) -> 'Node':
        """Independent deep copy (revision included)."""
        clone = Node(self._node_id, self.node_type, self.position,
                     self.properties, self.height)
        clone.revision = self.revision
        return clone

    def __repr__(self) -> str:
        return f"Node({self._node_id}, type={self.node_type}, pos=({self.position.x}, {self.position.y}))"

    def __eq__(self, other) -> bool:
        """Two nodes are equal when their ids and all data values match"""
        if not isinstance(other, Node):
            return NotImplemented
        return (
            self._node_id == other._node_id
            and self.node_type == other.node_type
            and self.position == other.position
            and self.height == other.height
            and self.properties == other.properties
        )

    __hash__ = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert node to dictionary for serialization."""
        return {
            'id': self._node_id,
            'type': self.node_type,
            'position': self.position.to_dict(),
            'height': self.height,
            'properties': deepcopy(self.properties),
        }
