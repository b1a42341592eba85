# tests/core_test/test_editor.py
"""
Tests for WorkflowEditor and PropertyEditSession (workflow_core/core.py).
"""
import threading

import pytest

from workflow_api.types import EdgeType, Position, Status
from workflow_core.commands import CommandManager, HistoryState
from workflow_core.config import EditorConfig
from workflow_core.core import (
    EVENT_GRAPH_CHANGED,
    EVENT_GRAPH_LOADED,
    EVENT_HISTORY_CHANGED,
    EVENT_NODE_FLAG_CHANGED,
    EVENT_NODE_SELECTED,
    EVENT_VALIDATION_CHANGED,
    WorkflowEditor,
)
from workflow_core.registry import PluginRegistry
from workflow_core.services import GraphLoadError, UnknownNodeTypeError


class Recorder:
    """Collects observer callbacks."""

    def __init__(self):
        self.events = []

    def __call__(self, **kwargs):
        self.events.append(kwargs)


# ═════════════════════════════════════════════════════════════════
#  EDITING
# ═════════════════════════════════════════════════════════════════

class TestEditing:

    def test_add_node_uses_plugin_defaults(self, editor):
        result = editor.add_node("splitflow", (0, 0))
        assert result
        node = editor.graph.get_node("n1")
        assert node.properties["branchValues"] == "Fred"
        assert node.properties["title"] == "Split flow"
        assert [b.id for b in editor.get_branches("n1")] == ["branch_0", "other"]

    def test_add_node_overrides(self, editor):
        editor.add_node("action", properties={"title": "Custom"}, node_id="fixed")
        assert editor.graph.get_node("fixed").properties["title"] == "Custom"

    def test_add_unknown_type_raises(self, editor):
        with pytest.raises(UnknownNodeTypeError):
            editor.add_node("teleport")
        assert not editor.can_undo()

    def test_add_connected_node_is_spaced(self, workflow_editor):
        result = workflow_editor.add_node("action", (0, 150), source_id="t1")
        assert result
        graph = workflow_editor.graph
        assert graph.get_default_outgoing_edge("t1").target_id == "n1"
        assert graph.get_default_outgoing_edge("n1").target_id == "a1"
        assert graph.get_node("a1").position == Position(0, 300)
        assert graph.get_node("t1").position == Position(0, 0)

    def test_add_on_branch(self, workflow_editor):
        workflow_editor.update_node("s1", {"branchValues": "Fred,Jane"})
        result = workflow_editor.add_node("action", (0, 600), source_id="s1",
                                          edge_type=EdgeType.BRANCH, branch_id="branch_1")
        assert result
        assert workflow_editor.graph.get_slot_edge("s1", EdgeType.BRANCH, "branch_1").target_id == "n1"

    def test_splitflow_branch_count(self, editor):
        editor.add_node("splitflow")
        assert len(editor.get_branches("n1")) == 2
        editor.update_node("n1", {"branchValues": "Fred,Jane"})
        labels = [b.label for b in editor.get_branches("n1")]
        assert labels == ["Fred", "Jane", "All Others"]

    def test_every_edit_is_undoable(self, workflow_editor):
        before = workflow_editor.snapshot()
        workflow_editor.add_node("action", (0, 150), source_id="t1")
        workflow_editor.move_node("a2", (5, 5))
        workflow_editor.update_node("s1", {"branchValues": ""})
        workflow_editor.update_node_height("c1", 140)
        workflow_editor.duplicate_node("a3")
        workflow_editor.connect("a2", "a3")
        workflow_editor.disconnect("c1", "a2", EdgeType.BRANCH, "yes")
        workflow_editor.delete_node("a1", bridge=True)
        assert workflow_editor.command_manager.get_undo_depth() == 8

        while workflow_editor.can_undo():
            assert workflow_editor.undo()
        assert workflow_editor.graph == before

    def test_connect_validates_branch(self, workflow_editor):
        result = workflow_editor.connect("c1", "a3", EdgeType.BRANCH, "maybe")
        assert result.status is Status.INVALID_BRANCH
        result = workflow_editor.connect("c1", "a3", EdgeType.BRANCH, "yes")
        assert result.status is Status.SLOT_OCCUPIED
        assert workflow_editor.connect("c1", "a3", EdgeType.BRANCH, "yes", replace=True)

    def test_delete_clears_selection(self, workflow_editor):
        workflow_editor.select_node("a1")
        workflow_editor.delete_node("a1")
        assert workflow_editor.selected_node_id is None

    def test_editors_do_not_share_history(self, registry):
        first = WorkflowEditor(registry=registry)
        second = WorkflowEditor(registry=registry)
        first.add_node("action")
        assert first.can_undo()
        assert not second.can_undo()
        assert second.graph.get_number_of_nodes() == 0

    def test_injected_command_manager(self, registry):
        manager = CommandManager(max_history_depth=2)
        editor = WorkflowEditor(registry=registry, command_manager=manager)
        for _ in range(4):
            editor.add_node("action")
        assert manager.get_undo_depth() == 2


# ═════════════════════════════════════════════════════════════════
#  EVENTS
# ═════════════════════════════════════════════════════════════════

class TestEvents:

    def test_graph_and_history_events(self, editor):
        graph_events, history_events = Recorder(), Recorder()
        editor.subscribe(EVENT_GRAPH_CHANGED, graph_events)
        editor.subscribe(EVENT_HISTORY_CHANGED, history_events)

        editor.add_node("action")
        editor.undo()

        assert len(graph_events.events) == 2
        assert [e["state"] for e in history_events.events] == [
            HistoryState(True, False),
            HistoryState(False, True),
        ]

    def test_failed_edit_emits_nothing(self, editor):
        recorder = Recorder()
        editor.subscribe(EVENT_GRAPH_CHANGED, recorder)
        editor.delete_node("ghost")
        assert recorder.events == []

    def test_unsubscribe(self, editor):
        recorder = Recorder()
        editor.subscribe(EVENT_GRAPH_CHANGED, recorder)
        editor.unsubscribe(EVENT_GRAPH_CHANGED, recorder)
        editor.add_node("action")
        assert recorder.events == []

    def test_broken_observer_is_logged(self, editor, caplog):
        def broken(**kwargs):
            raise RuntimeError("boom")

        editor.subscribe(EVENT_GRAPH_CHANGED, broken)
        assert editor.add_node("action")
        assert "Observer callback failed for 'graph_changed'" in caplog.text

    def test_selection(self, workflow_editor):
        recorder = Recorder()
        workflow_editor.subscribe(EVENT_NODE_SELECTED, recorder)
        workflow_editor.select_node("a1")
        workflow_editor.select_node("ghost")
        workflow_editor.select_node(None)
        assert recorder.events == [{"node_id": "a1"}, {"node_id": None}]

    def test_just_added_flag(self, editor, timers):
        recorder = Recorder()
        editor.subscribe(EVENT_NODE_FLAG_CHANGED, recorder)
        editor.add_node("action")
        assert editor.is_just_added("n1")

        timers.fire_all()
        assert not editor.is_just_added("n1")
        assert [e["value"] for e in recorder.events] == [True, False]

    def test_just_added_expiry_after_undo(self, editor, timers):
        recorder = Recorder()
        editor.subscribe(EVENT_NODE_FLAG_CHANGED, recorder)
        editor.add_node("action")
        editor.undo()
        timers.fire_all()
        assert [e["value"] for e in recorder.events] == [True]


# ═════════════════════════════════════════════════════════════════
#  VALIDATION & PERSISTENCE
# ═════════════════════════════════════════════════════════════════

class TestValidationAndPersistence:

    def test_validate_all(self, workflow_editor):
        assert workflow_editor.validate_all() == {}
        workflow_editor.update_node("a2", {"emailSubject": ""})
        assert workflow_editor.validate_all() == {"a2": {"emailSubject": "This field is required"}}

    def test_dump_and_load(self, workflow_editor, registry):
        data = workflow_editor.dump()
        other = WorkflowEditor(registry=registry)
        other.add_node("action")
        loaded = Recorder()
        other.subscribe(EVENT_GRAPH_LOADED, loaded)

        other.load(data)
        assert other.graph == workflow_editor.graph
        assert not other.can_undo()
        assert len(loaded.events) == 1

    def test_load_json_and_keep_editing(self, workflow_editor, registry):
        other = WorkflowEditor(registry=registry)
        other.load_json(workflow_editor.to_json())
        assert other.delete_node("c1")
        assert other.undo()
        assert other.graph == workflow_editor.graph

    def test_rejected_load_keeps_graph(self, workflow_editor):
        before = workflow_editor.snapshot()
        with pytest.raises(GraphLoadError):
            workflow_editor.load({"nodes": [{"id": "x"}]})
        assert workflow_editor.graph == before
        assert workflow_editor.graph.get_number_of_nodes() == 7

    def test_load_workflow_steps(self, editor):
        editor.load_workflow_steps([
            {"id": "s", "type": "trigger", "title": "Start",
             "outgoingConnections": {"default": {"targetNodeId": "e"}}},
            {"id": "e", "type": "action", "title": "End"},
        ])
        assert editor.graph.get_default_outgoing_edge("s").target_id == "e"

    def test_snapshot_is_independent(self, workflow_editor):
        snap = workflow_editor.snapshot()
        workflow_editor.delete_node("a1")
        assert snap.has_node("a1")

    def test_entry_point_loading_is_opt_in(self, monkeypatch):
        calls = []
        monkeypatch.setattr(PluginRegistry, "load_entry_points",
                            lambda self, loader=None: calls.append(self) or 0)
        WorkflowEditor()
        assert calls == []
        WorkflowEditor(EditorConfig(load_entry_points=True))
        assert len(calls) == 1


# ═════════════════════════════════════════════════════════════════
#  PROPERTY EDIT SESSION
# ═════════════════════════════════════════════════════════════════

class TestPropertyEditSession:

    def test_staged_edits_do_not_touch_graph(self, workflow_editor):
        session = workflow_editor.begin_edit("a1")
        session.stage("message", "Changed")
        assert session.is_dirty
        assert session.properties()["message"] == "Changed"
        assert workflow_editor.graph.get_node("a1").properties["message"] == "Hi"
        assert not workflow_editor.can_undo()

    def test_validation_is_debounced(self, workflow_editor, timers):
        recorder = Recorder()
        workflow_editor.subscribe(EVENT_VALIDATION_CHANGED, recorder)
        session = workflow_editor.begin_edit("a1")
        session.stage("title", "x")
        session.stage("title", "xy")
        assert recorder.events == []

        timers.fire_all()
        assert recorder.events == [
            {"node_id": "a1", "errors": {"title": "Must be at least 3 characters"}},
        ]
        assert session.errors == {"title": "Must be at least 3 characters"}

    def test_debounced_validation_runs_on_the_firing_thread(self, workflow_editor, timers):
        threads = []
        workflow_editor.subscribe(
            EVENT_VALIDATION_CHANGED, lambda **_: threads.append(threading.get_ident()))
        workflow_editor.begin_edit("a1").stage("title", "x")
        timers.fire_all()
        assert threads == [threading.get_ident()]

    def test_apply_commits_one_command(self, workflow_editor):
        session = workflow_editor.begin_edit("a2")
        session.stage("emailSubject", "New subject")
        session.stage("emailBody", "New body")
        result = session.apply()
        assert result
        props = workflow_editor.graph.get_node("a2").properties
        assert props["emailSubject"] == "New subject"
        assert props["emailBody"] == "New body"
        assert workflow_editor.command_manager.get_undo_depth() == 1
        assert not session.is_dirty

        workflow_editor.undo()
        assert workflow_editor.graph.get_node("a2").properties["emailSubject"] == "Thanks"

    def test_apply_blocked_by_errors(self, workflow_editor):
        session = workflow_editor.begin_edit("a2")
        session.stage("emailSubject", "")
        result = session.apply()
        assert result.status is Status.VALIDATION_FAILED
        assert result.data["errors"] == {"emailSubject": "This field is required"}
        assert workflow_editor.graph.get_node("a2").properties["emailSubject"] == "Thanks"
        assert not workflow_editor.can_undo()

    def test_switching_action_type_changes_required_fields(self, workflow_editor):
        session = workflow_editor.begin_edit("a1")
        session.stage("actionType", "email")
        assert session.validate_now() == {
            "emailSubject": "This field is required",
            "emailBody": "This field is required",
        }
        visible = [p.id for p in session.visible_properties()]
        assert "emailSubject" in visible and "message" not in visible

    def test_apply_without_changes(self, workflow_editor):
        session = workflow_editor.begin_edit("a1")
        session.stage("message", "Hi")
        result = session.apply()
        assert result
        assert result.message == "Nothing to apply."
        assert not workflow_editor.can_undo()

    def test_cancel(self, workflow_editor, timers):
        session = workflow_editor.begin_edit("a1")
        session.stage("message", "Changed")
        session.cancel()
        assert not session.is_dirty
        assert timers.live == []
        assert workflow_editor.graph.get_node("a1").properties["message"] == "Hi"

    def test_apply_keeps_surviving_branch_edges(self, workflow_editor):
        session = workflow_editor.begin_edit("s1")
        session.stage("branchValues", "")
        # empty branch values fail validation, so nothing is applied
        assert session.apply().status is Status.VALIDATION_FAILED

        session.stage("branchValues", "Jane")
        assert session.apply()
        graph = workflow_editor.graph
        # branch_0 now means "Jane"; the slot and its edge survive
        assert graph.get_slot_edge("s1", EdgeType.BRANCH, "branch_0").target_id == "a3"

    def test_begin_edit_missing_node(self, workflow_editor):
        with pytest.raises(KeyError):
            workflow_editor.begin_edit("ghost")
