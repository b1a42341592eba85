"""
    Serialization and deserialization service for workflow graphs.

    Supports configurable property inclusion / exclusion via
    ``SerializationConfig``.

    Design Pattern: Strategy (serialization strategy is configurable)
    ─────────────────────────────────────────────────────────────────
    The ``SerializationConfig`` decides which properties and layout
    fields are written and how strictly input is checked on load.

    Loading always rebuilds the graph through ``Graph.add_node`` and
    ``Graph.connect``, so a loaded graph satisfies the same invariants
    as one built by commands.  Malformed input raises ``GraphLoadError``
    (or, with ``strict_load=False``, the offending record is skipped).

    Also reads and writes the legacy "workflow steps" list, where each
    step carries its own outgoing connections.
"""
import json
import logging
from typing import Any, Dict, List, Optional

from workflow_api.models.graph import Graph
from workflow_api.models.node import Node, DEFAULT_NODE_HEIGHT
from workflow_api.types import EdgeType, Position

from ..config import SerializationConfig
from .exceptions import GraphLoadError

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1


class GraphSerializer:
    """
    Serialize / deserialize ``Graph`` instances with configurable field control.

    Usage:
        serializer = GraphSerializer(SerializationConfig(exclude_properties={'draft'}))
        data = serializer.serialize(graph)       # → dict
        json_str = serializer.to_json(graph)     # → str
        graph = serializer.deserialize(data)     # → Graph
        graph = serializer.from_json(json_str)   # → Graph
    """

    def __init__(self, config: Optional[SerializationConfig] = None):
        self._config = config or SerializationConfig()

    @property
    def config(self) -> SerializationConfig:
        return self._config

    @config.setter
    def config(self, value: SerializationConfig) -> None:
        self._config = value

    # ── Serialization ────────────────────────────────────────────

    def serialize(self, graph: Graph) -> Dict[str, Any]:
        """
        Convert a Graph to a plain dictionary respecting the
        current SerializationConfig.

        Returns:
            dict with keys 'version', 'id', 'nodes', 'edges'.
        """
        return {
            'version': FORMAT_VERSION,
            'id': graph.graph_id,
            'nodes': [self._serialize_node(n) for n in graph.get_all_nodes()],
            'edges': [
                {
                    'source': e.source_id,
                    'target': e.target_id,
                    'type': e.edge_type.value,
                    'label': e.label,
                }
                for e in graph.get_all_edges()
            ],
        }

    def to_json(self, graph: Graph, *, indent: Optional[int] = None) -> str:
        """Serialize a Graph directly to a JSON string."""
        if indent is None:
            indent = self._config.indent
        return json.dumps(self.serialize(graph), indent=indent, default=str)

    def _serialize_node(self, node: Node) -> Dict[str, Any]:
        keys = self._config.effective_properties(set(node.properties.keys()))
        result: Dict[str, Any] = {
            'id': node.node_id,
            'type': node.node_type,
            'properties': {k: v for k, v in node.properties.items() if k in keys},
        }
        if self._config.include_layout:
            result['position'] = node.position.to_dict()
            result['height'] = node.height
        return result

    # ── Deserialization ──────────────────────────────────────────

    def deserialize(self, data: Dict[str, Any]) -> Graph:
        """
        Reconstruct a Graph from a dictionary (inverse of ``serialize``).

        Raises:
            GraphLoadError: If the document or, in strict mode, any
                            node or edge record is invalid.
        """
        if not isinstance(data, dict):
            raise GraphLoadError(f"Expected a mapping, got {type(data).__name__}")

        graph = Graph(str(data.get('id', 'workflow')))

        for index, node_data in enumerate(data.get('nodes') or []):
            try:
                node = self._build_node(node_data)
            except (KeyError, TypeError, ValueError, AttributeError) as exc:
                self._reject(f"Node record #{index} is malformed: {exc}")
                continue
            status = graph.add_node(node)
            if not status:
                self._reject(f"Node '{node.node_id}' rejected: {status.value}")

        for index, edge_data in enumerate(data.get('edges') or []):
            try:
                source_id = str(edge_data['source'])
                target_id = str(edge_data['target'])
                edge_type = EdgeType(edge_data.get('type', EdgeType.DEFAULT.value))
                label = edge_data.get('label')
            except (KeyError, TypeError, ValueError, AttributeError) as exc:
                self._reject(f"Edge record #{index} is malformed: {exc}")
                continue
            self._connect(graph, source_id, target_id, edge_type, label)

        logger.info("Loaded workflow '%s': %d nodes, %d edges",
                    graph.graph_id, graph.get_number_of_nodes(), graph.get_number_of_edges())
        return graph

    def from_json(self, json_str: str) -> Graph:
        """Deserialize a Graph from a JSON string."""
        try:
            data = json.loads(json_str)
        except ValueError as exc:
            raise GraphLoadError(f"Invalid JSON: {exc}") from exc
        return self.deserialize(data)

    @staticmethod
    def _build_node(node_data: Dict[str, Any]) -> Node:
        properties = node_data.get('properties') or {}
        if not isinstance(properties, dict):
            raise TypeError("properties must be a mapping")
        height = node_data.get('height')
        return Node(
            node_data['id'],
            node_data['type'],
            Position.from_value(node_data.get('position')),
            properties,
            DEFAULT_NODE_HEIGHT if height is None else height,
        )

    def _connect(self, graph: Graph, source_id: str, target_id: str,
                 edge_type: EdgeType, label: Optional[str]) -> None:
        status = graph.connect(source_id, target_id, edge_type, label)
        if not status:
            self._reject(
                f"Edge {source_id} -> {target_id} ({edge_type.value}"
                f"{':' + label if label else ''}) rejected: {status.value}"
            )

    def _reject(self, message: str) -> None:
        if self._config.strict_load:
            raise GraphLoadError(message)
        logger.warning("%s; skipped.", message)

    # ── Legacy workflow steps ────────────────────────────────────

    def from_workflow_steps(self, steps: List[Dict[str, Any]], graph_id: str = 'workflow') -> Graph:
        """
        Build a Graph from the legacy step list.

        Each step looks like::

            {'id': ..., 'type': ..., 'title': ..., 'position': {...},
             'properties': {...},
             'outgoingConnections': {'default': {'targetNodeId': ...}},
             'branchConnections': {'yes': {'targetNodeId': ...}}}

        Top-level ``title`` / ``subtitle`` are folded into properties.
        Connections to unknown targets are ignored.
        """
        graph = Graph(graph_id)

        for index, step in enumerate(steps or []):
            try:
                properties = dict(step.get('properties') or {})
                for key in ('title', 'subtitle'):
                    if step.get(key) is not None:
                        properties.setdefault(key, step[key])
                node = self._build_node(dict(step, properties=properties))
            except (KeyError, TypeError, ValueError, AttributeError) as exc:
                self._reject(f"Workflow step #{index} is malformed: {exc}")
                continue
            status = graph.add_node(node)
            if not status:
                self._reject(f"Workflow step '{node.node_id}' rejected: {status.value}")

        for step in steps or []:
            if not isinstance(step, dict) or 'id' not in step:
                continue
            source_id = str(step['id'])
            default = (step.get('outgoingConnections') or {}).get('default') or {}
            target_id = default.get('targetNodeId')
            if target_id and graph.has_node(str(target_id)):
                self._connect(graph, source_id, str(target_id), EdgeType.DEFAULT, None)

            for branch_id, connection in (step.get('branchConnections') or {}).items():
                target_id = (connection or {}).get('targetNodeId')
                if target_id and graph.has_node(str(target_id)):
                    self._connect(graph, source_id, str(target_id), EdgeType.BRANCH, branch_id)

        return graph

    def to_workflow_steps(self, graph: Graph) -> List[Dict[str, Any]]:
        """Export to the legacy step list (inverse of ``from_workflow_steps``)."""
        steps = []
        for node in graph.get_all_nodes():
            step = self._serialize_node(node)
            default = graph.get_default_outgoing_edge(node.node_id)
            step['outgoingConnections'] = (
                {'default': {'targetNodeId': default.target_id}} if default else {}
            )
            step['branchConnections'] = {
                edge.label: {'targetNodeId': edge.target_id}
                for edge in graph.get_branch_outgoing_edges(node.node_id)
            }
            steps.append(step)
        return steps
