"""
Workflow API: models, shared value types and node type plugin contracts.
"""
from .types import Position, EdgeType, Status, Condition, ConditionEvaluator
from .models.node import Node
from .models.edge import Edge
from .models.graph import Graph
from .plugins.base import (
    NodeTypePlugin,
    PropertyDescriptor,
    PropertyGroup,
    PropertyKind,
    Branch,
    Dependency,
    Option,
)

__all__ = [
    'Position',
    'EdgeType',
    'Status',
    'Condition',
    'ConditionEvaluator',
    'Node',
    'Edge',
    'Graph',
    'NodeTypePlugin',
    'PropertyDescriptor',
    'PropertyGroup',
    'PropertyKind',
    'Branch',
    'Dependency',
    'Option',
]
