# tests/conftest.py
"""
Shared test fixtures.

Stub workflow (all built-in node types):

    t1 (trigger) ──► a1 (action) ──► c1 (ifelse) ─yes─► a2 (action)
                                                 └─no──► s1 (splitflow) ─branch_0─► a3 (action)
                                                                        └─other───► a4 (action)
"""
import itertools

import pytest

from workflow_api.models.graph import Graph
from workflow_api.models.node import Node
from workflow_api.types import EdgeType
from workflow_core.commands import CommandManager
from workflow_core.config import EditorConfig
from workflow_core.core import WorkflowEditor
from workflow_core.registry import PluginRegistry
from node_type_plugins import register_builtin_plugins


class FakeTimer:
    """Stand-in for threading.Timer that only fires when told to."""

    def __init__(self, delay, callback):
        self.delay = delay
        self.callback = callback
        self.started = False
        self.cancelled = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if not self.cancelled:
            self.callback()


class FakeTimerFactory:
    """Collects every timer it creates, newest last."""

    def __init__(self):
        self.timers = []

    def __call__(self, delay, callback):
        timer = FakeTimer(delay, callback)
        self.timers.append(timer)
        return timer

    @property
    def live(self):
        return [t for t in self.timers if t.started and not t.cancelled]

    def fire_all(self):
        for timer in list(self.live):
            timer.fire()


# ── Node definitions ─────────────────────────────────────────────
_NODES = [
    ("t1", "trigger",   (0, 0),     dict(title="Signup", triggerType="segment", segmentId="new_users")),
    ("a1", "action",    (0, 150),   dict(title="Welcome", actionType="notification", message="Hi")),
    ("c1", "ifelse",    (0, 300),   dict(title="Clicked?", conditionField="link_click",
                                         operator="equals", value="promo")),
    ("a2", "action",    (-200, 450), dict(title="Thank you", actionType="email",
                                          emailSubject="Thanks", emailBody="Body")),
    ("s1", "splitflow", (200, 450),  dict(title="By name", splitAttribute="first_name",
                                          branchValues="Fred")),
    ("a3", "action",    (100, 600),  dict(title="For Fred", actionType="notification", message="Yo")),
    ("a4", "action",    (300, 600),  dict(title="Everyone", actionType="webhook",
                                          webhookUrl="https://example.com/hook")),
]

_EDGES = [
    ("t1", "a1", EdgeType.DEFAULT, None),
    ("a1", "c1", EdgeType.DEFAULT, None),
    ("c1", "a2", EdgeType.BRANCH, "yes"),
    ("c1", "s1", EdgeType.BRANCH, "no"),
    ("s1", "a3", EdgeType.BRANCH, "branch_0"),
    ("s1", "a4", EdgeType.BRANCH, "other"),
]


def build_workflow(registry: PluginRegistry) -> Graph:
    g = Graph("stub_workflow")
    for node_id, node_type, position, overrides in _NODES:
        g.add_node(registry.require(node_type).create_node(node_id, position, **overrides))
    for source_id, target_id, edge_type, label in _EDGES:
        assert g.connect(source_id, target_id, edge_type, label)
    return g


# ── Pytest fixtures ──────────────────────────────────────────────

@pytest.fixture
def registry() -> PluginRegistry:
    """Fresh registry with every built-in node type."""
    return register_builtin_plugins(PluginRegistry())


@pytest.fixture
def empty_graph() -> Graph:
    return Graph("empty")


@pytest.fixture
def chain_graph() -> Graph:
    """A ─► B ─► C, all plain action nodes, default edges."""
    g = Graph("chain")
    for i, node_id in enumerate(["A", "B", "C"]):
        g.add_node(Node(node_id, "action", (0, i * 150), {"title": f"Step {node_id}"}))
    g.connect("A", "B")
    g.connect("B", "C")
    return g


@pytest.fixture
def workflow(registry) -> Graph:
    """The stub workflow above, freshly built for every test."""
    return build_workflow(registry)


@pytest.fixture
def manager() -> CommandManager:
    return CommandManager()


@pytest.fixture
def timers() -> FakeTimerFactory:
    return FakeTimerFactory()


@pytest.fixture
def editor(registry, timers) -> WorkflowEditor:
    """Editor on an empty graph with hand-driven timers and predictable ids."""
    counter = itertools.count(1)
    return WorkflowEditor(
        config=EditorConfig(),
        registry=registry,
        timer_factory=timers,
        id_factory=lambda: f"n{next(counter)}",
    )


@pytest.fixture
def workflow_editor(registry, workflow, timers) -> WorkflowEditor:
    """Editor on the stub workflow."""
    counter = itertools.count(1)
    return WorkflowEditor(
        registry=registry,
        graph=workflow,
        timer_factory=timers,
        id_factory=lambda: f"n{next(counter)}",
    )
