"""
    Edge model - a directed connection between two workflow nodes.
"""
from typing import Dict, Any, Optional, Tuple

from ..types import EdgeType

EdgeKey = Tuple[str, str, EdgeType, Optional[str]]


def make_edge_id(source_id: str, target_id: str, edge_type: EdgeType,
                 label: Optional[str] = None) -> str:
    """Deterministic edge id: ``<source>_to_<target>_<type>[_<label>]``."""
    edge_id = f"{source_id}_to_{target_id}_{edge_type.value}"
    if label:
        edge_id += f"_{label}"
    return edge_id


class Edge:
    """
    Immutable directed link.

    A ``DEFAULT`` edge is the single unconditional next step of its source
    and carries no label. A ``BRANCH`` edge always carries the branch id
    it leaves from (e.g. "yes", "branch_1").
    """

    __slots__ = ('_source_id', '_target_id', '_edge_type', '_label')

    def __init__(
            self,
            source_id: Any,
            target_id: Any,
            edge_type: EdgeType = EdgeType.DEFAULT,
            label: Optional[str] = None,
    ):
        """
        Args:
            source_id: Id of the source node
            target_id: Id of the target node
            edge_type: DEFAULT or BRANCH (a plain string value is accepted)
            label: Branch id; required for BRANCH, forbidden for DEFAULT

        Raises:
            ValueError: If the label does not fit the edge type.
        """
        edge_type = EdgeType(edge_type)
        if edge_type == EdgeType.BRANCH and not label:
            raise ValueError("Branch edges require a label")
        if edge_type == EdgeType.DEFAULT and label:
            raise ValueError("Default edges cannot carry a label")

        self._source_id = str(source_id)
        self._target_id = str(target_id)
        self._edge_type = edge_type
        self._label = str(label) if label else None

    @property
    def source_id(self) -> str:
        return self._source_id

    @property
    def target_id(self) -> str:
        return self._target_id

    @property
    def edge_type(self) -> EdgeType:
        return self._edge_type

    @property
    def label(self) -> Optional[str]:
        return self._label

    @property
    def key(self) -> EdgeKey:
        """Structural identity; unlike ``edge_id`` it cannot collide."""
        return self._source_id, self._target_id, self._edge_type, self._label

    @property
    def edge_id(self) -> str:
        """Display id. Node ids containing ``_to_`` may make two ids equal."""
        return make_edge_id(self._source_id, self._target_id, self._edge_type, self._label)

    @property
    def slot(self) -> Tuple[str, EdgeType, Optional[str]]:
        """The outgoing slot this edge occupies on its source."""
        return self._source_id, self._edge_type, self._label

    def is_branch(self) -> bool:
        return self._edge_type == EdgeType.BRANCH

    def touches(self, node_id: str) -> bool:
        return node_id in (self._source_id, self._target_id)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Edge):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

    def __repr__(self) -> str:
        arrow = f"-[{self._label}]->" if self._label else "->"
        return f"Edge({self._source_id} {arrow} {self._target_id})"

    def to_dict(self) -> Dict[str, Any]:
        """Convert edge to dictionary for serialization"""
        return {
            'id': self.edge_id,
            'source': self._source_id,
            'target': self._target_id,
            'type': self._edge_type.value,
            'label': self._label,
        }
