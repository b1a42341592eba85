# tests/core_test/test_serialization.py
"""
Tests for GraphSerializer (workflow_core/services/serialization_service.py).
"""
import json
import logging

import pytest

from workflow_api.types import EdgeType, Position
from workflow_core.config import SerializationConfig
from workflow_core.services import GraphLoadError, GraphSerializer


@pytest.fixture
def serializer():
    return GraphSerializer()


class TestSerialize:

    def test_document_shape(self, serializer, chain_graph):
        data = serializer.serialize(chain_graph)
        assert data["version"] == 1
        assert data["id"] == "chain"
        assert data["nodes"][0] == {
            "id": "A",
            "type": "action",
            "properties": {"title": "Step A"},
            "position": {"x": 0.0, "y": 0.0},
            "height": 90.0,
        }
        assert {"source": "A", "target": "B", "type": "default", "label": None} in data["edges"]

    def test_round_trip(self, serializer, workflow):
        assert serializer.deserialize(serializer.serialize(workflow)) == workflow

    def test_json_round_trip(self, serializer, workflow):
        restored = serializer.from_json(serializer.to_json(workflow))
        assert restored == workflow
        assert restored.graph_id == "stub_workflow"

    def test_include_exclude_properties(self, chain_graph):
        chain_graph.update_node("A", {"draft": True, "note": "n"})
        serializer = GraphSerializer(SerializationConfig(exclude_properties={"draft"}))
        node = serializer.serialize(chain_graph)["nodes"][0]
        assert node["properties"] == {"title": "Step A", "note": "n"}

        serializer.config = SerializationConfig(include_properties={"note", "draft"},
                                                exclude_properties={"draft"})
        node = serializer.serialize(chain_graph)["nodes"][0]
        assert node["properties"] == {"note": "n"}

    def test_layout_can_be_omitted(self, chain_graph):
        serializer = GraphSerializer(SerializationConfig(include_layout=False))
        node = serializer.serialize(chain_graph)["nodes"][0]
        assert "position" not in node and "height" not in node

    def test_indent(self, chain_graph):
        text = GraphSerializer(SerializationConfig(indent=None)).to_json(chain_graph)
        assert "\n" not in text
        assert json.loads(text)["id"] == "chain"


class TestDeserialize:

    def test_defaults_for_missing_layout(self, serializer):
        graph = serializer.deserialize({"nodes": [{"id": 1, "type": "action"}]})
        node = graph.get_node("1")
        assert node.position == Position(0, 0)
        assert node.height == 90.0
        assert graph.graph_id == "workflow"

    def test_zero_height_is_kept(self, serializer, chain_graph):
        chain_graph.set_height("A", 0)
        restored = serializer.deserialize(serializer.serialize(chain_graph))
        assert restored.get_node("A").height == 0.0
        assert restored == chain_graph

    def test_invalid_json(self, serializer):
        with pytest.raises(GraphLoadError):
            serializer.from_json("{nope")

    def test_not_a_mapping(self, serializer):
        with pytest.raises(GraphLoadError):
            serializer.deserialize([1, 2, 3])

    @pytest.mark.parametrize("data", [
        {"nodes": [{"type": "action"}]},
        {"nodes": [{"id": "a", "type": "action", "properties": "oops"}]},
        {"nodes": [{"id": "a", "type": "action"}, {"id": "a", "type": "action"}]},
        {"nodes": [{"id": "a", "type": "action"}], "edges": [{"source": "a", "target": "ghost"}]},
        {"nodes": [{"id": "a", "type": "action"}], "edges": [{"source": "a"}]},
        {"nodes": [{"id": "a", "type": "action"}], "edges": [{"source": "a", "target": "a", "type": "sideways"}]},
        {"nodes": [{"id": "a", "type": "ifelse"}, {"id": "b", "type": "action"}],
         "edges": [{"source": "a", "target": "b", "type": "branch"}]},
    ])
    def test_strict_load_rejects(self, serializer, data):
        with pytest.raises(GraphLoadError):
            serializer.deserialize(data)

    def test_strict_load_rejects_double_slot(self, serializer):
        data = {
            "nodes": [{"id": n, "type": "action"} for n in "abc"],
            "edges": [{"source": "a", "target": "b"}, {"source": "a", "target": "c"}],
        }
        with pytest.raises(GraphLoadError, match="slot_occupied"):
            serializer.deserialize(data)

    def test_lenient_load_skips_bad_records(self, caplog):
        serializer = GraphSerializer(SerializationConfig(strict_load=False))
        data = {
            "nodes": [{"id": "a", "type": "action"}, {"id": "b", "type": "action"}, {"type": "x"}],
            "edges": [
                {"source": "a", "target": "b"},
                {"source": "a", "target": "ghost"},
                {"source": "a", "target": "b", "type": "branch", "label": "yes"},
            ],
        }
        with caplog.at_level(logging.WARNING):
            graph = serializer.deserialize(data)
        assert sorted(graph.nodes) == ["a", "b"]
        assert graph.get_number_of_edges() == 2
        assert "skipped" in caplog.text
        assert graph.verify_integrity() == []


class TestWorkflowSteps:

    STEPS = [
        {
            "id": "trigger-1", "type": "trigger", "title": "Start", "subtitle": "Entry",
            "position": {"x": 0, "y": 0},
            "properties": {"triggerType": "segment"},
            "outgoingConnections": {"default": {"targetNodeId": "cond-1"}},
        },
        {
            "id": "cond-1", "type": "ifelse", "title": "Clicked?",
            "position": {"x": 0, "y": 150},
            "branchConnections": {
                "yes": {"targetNodeId": "act-1"},
                "no": {"targetNodeId": "missing-step"},
            },
        },
        {"id": "act-1", "type": "action", "title": "Thanks", "position": {"x": 0, "y": 300}},
    ]

    def test_import(self, serializer):
        graph = serializer.from_workflow_steps(self.STEPS)
        assert graph.get_number_of_nodes() == 3
        assert graph.get_node("trigger-1").properties == {
            "triggerType": "segment", "title": "Start", "subtitle": "Entry",
        }
        assert graph.get_default_outgoing_edge("trigger-1").target_id == "cond-1"
        assert graph.get_slot_edge("cond-1", EdgeType.BRANCH, "yes").target_id == "act-1"
        # dangling connection dropped
        assert graph.get_slot_edge("cond-1", EdgeType.BRANCH, "no") is None

    def test_export_import_round_trip(self, serializer, workflow):
        steps = serializer.to_workflow_steps(workflow)
        c1 = next(step for step in steps if step["id"] == "c1")
        assert c1["branchConnections"] == {"yes": {"targetNodeId": "a2"}, "no": {"targetNodeId": "s1"}}
        assert c1["outgoingConnections"] == {}

        restored = serializer.from_workflow_steps(steps, graph_id="stub_workflow")
        assert restored == workflow
