"""
    Abstract base class for node type plugins.
    Defines the "Contract" every node type must follow: property schema,
    property groups, validation rules, initial properties and branches.
"""
from abc import ABC, abstractmethod
from copy import deepcopy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from ..types import Condition, ConditionEvaluator
from ..models.node import Node


class PropertyKind(Enum):
    """Form control used to edit a property"""
    TEXT = "text"
    TEXTAREA = "textarea"
    NUMBER = "number"
    SELECT = "select"
    CHECKBOX = "checkbox"


@dataclass(frozen=True)
class Dependency:
    """
    ``source_id <condition> value`` over the node's other properties.
    Used for field visibility, enablement and group conditions.
    """
    source_id: str
    condition: Condition = Condition.EQUALS
    value: Any = None

    def is_satisfied(self, properties: Dict[str, Any]) -> bool:
        return ConditionEvaluator.evaluate(
            (properties or {}).get(self.source_id), self.condition, self.value
        )


def all_satisfied(dependencies, properties: Dict[str, Any]) -> bool:
    return all(dep.is_satisfied(properties) for dep in dependencies)


@dataclass(frozen=True)
class Option:
    value: Any
    label: str


@dataclass(frozen=True)
class PropertyDescriptor:
    """
    One field of a node type's property schema.

    Attributes:
        id:                   Property key inside ``node.properties``.
        kind:                 Control used to edit the value.
        label:                Field label.
        description:          Help text.
        default:              Value for newly created nodes.
        required:             Marks the field as mandatory in the form.
        group_id:             Owning ``PropertyGroup``.
        order:                Sort key inside the group.
        options:              Allowed choices for SELECT fields.
        dependencies:         Field is visible (and validated) only when all hold.
        enabled_when:         Field is editable only when all hold.
        visibility_condition: Optional predicate over all properties.
        control_props:        Free-form hints for the rendering layer.
    """
    id: str
    kind: PropertyKind = PropertyKind.TEXT
    label: str = ""
    description: str = ""
    default: Any = None
    required: bool = False
    group_id: str = "basic"
    order: int = 0
    options: tuple = ()
    dependencies: tuple = ()
    enabled_when: tuple = ()
    visibility_condition: Optional[Callable[[Dict[str, Any]], bool]] = None
    control_props: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    def option_values(self) -> List[Any]:
        return [option.value for option in self.options]

    def is_visible(self, properties: Dict[str, Any]) -> bool:
        if not all_satisfied(self.dependencies, properties):
            return False
        if self.visibility_condition is not None:
            return bool(self.visibility_condition(properties or {}))
        return True

    def is_enabled(self, properties: Dict[str, Any]) -> bool:
        return all_satisfied(self.enabled_when, properties)


@dataclass(frozen=True)
class PropertyGroup:
    """Collapsible section of the properties form."""
    id: str
    label: str
    description: str = ""
    collapsed: bool = False
    order: int = 0
    conditions: tuple = ()

    def is_visible(self, properties: Dict[str, Any]) -> bool:
        return all_satisfied(self.conditions, properties)


@dataclass(frozen=True)
class Branch:
    """Labelled outgoing path of a node (e.g. yes / no)."""
    id: str
    label: str
    description: str = ""


class NodeTypePlugin(ABC):
    """
        Abstract base class for node type plugins.
        Pattern: Strategy (per node type behavior).

        Concrete plugins describe themselves through class attributes;
        node types whose branch set depends on configuration override
        ``get_branches``.
    """

    node_type: str = ""
    name: str = ""
    description: str = ""
    icon: str = ""
    color: str = ""
    property_schema: List[PropertyDescriptor] = []
    property_groups: List[PropertyGroup] = []
    validation_rules: Dict[str, Dict[str, Any]] = {}
    initial_properties: Dict[str, Any] = {}
    branches: List[Branch] = []

    @abstractmethod
    def get_plugin_name(self) -> str:
        """
            Returns the display name of the node type.
            Example: "If / Else"
        """
        pass

    def get_property_schema(self) -> List[PropertyDescriptor]:
        """Ordered field descriptors (by group order, then field order)."""
        group_order = {group.id: group.order for group in self.property_groups}
        return sorted(
            self.property_schema,
            key=lambda prop: (group_order.get(prop.group_id, 0), prop.order),
        )

    def get_property_groups(self) -> List[PropertyGroup]:
        return sorted(self.property_groups, key=lambda group: group.order)

    def get_property(self, property_id: str) -> Optional[PropertyDescriptor]:
        for prop in self.property_schema:
            if prop.id == property_id:
                return prop
        return None

    def get_validation_rules(self) -> Dict[str, Dict[str, Any]]:
        return self.validation_rules

    def get_initial_properties(self) -> Dict[str, Any]:
        """
        Fresh default property mapping for a new node.

        Schema defaults are overlaid by ``initial_properties``; the
        result never shares mutable values with the plugin or with
        previous calls.
        """
        properties = {
            prop.id: prop.default
            for prop in self.property_schema
            if prop.default is not None
        }
        properties.update(self.initial_properties)
        return deepcopy(properties)

    def preprocess_properties(self, properties: Dict[str, Any]) -> Dict[str, Any]:
        """Hook to normalize properties before branches are derived."""
        return properties

    def get_branches(self, properties: Optional[Dict[str, Any]] = None) -> List[Branch]:
        """
        Current ordered branch list for a node with ``properties``.
        Static by default; must be a pure function of ``properties``.
        """
        return list(self.branches)

    def get_branch_ids(self, properties: Optional[Dict[str, Any]] = None) -> List[str]:
        return [branch.id for branch in self.get_branches(properties)]

    def has_multiple_branches(self, properties: Optional[Dict[str, Any]] = None) -> bool:
        return len(self.get_branches(properties)) > 1

    def get_visible_properties(self, properties: Dict[str, Any]) -> List[PropertyDescriptor]:
        """Schema entries the form should currently show."""
        visible_groups = {g.id for g in self.get_property_groups() if g.is_visible(properties)}
        return [
            prop for prop in self.get_property_schema()
            if prop.is_visible(properties)
            and (prop.group_id in visible_groups or not self._has_group(prop.group_id))
        ]

    def get_visible_groups(self, properties: Dict[str, Any]) -> List[PropertyGroup]:
        return [g for g in self.get_property_groups() if g.is_visible(properties)]

    def is_property_enabled(self, descriptor: PropertyDescriptor,
                            properties: Dict[str, Any]) -> bool:
        return descriptor.is_enabled(properties)

    def create_node(self, node_id: str, position: Any = None, **overrides) -> Node:
        """Build a node of this type with fresh initial properties."""
        properties = self.get_initial_properties()
        properties.update(deepcopy(overrides))
        return Node(node_id, self.node_type, position, properties)

    def _has_group(self, group_id: str) -> bool:
        return any(group.id == group_id for group in self.property_groups)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(node_type='{self.node_type}')"
