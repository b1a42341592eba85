"""
    Shared value types: positions, edge kinds, operation status codes,
    and the comparison conditions used by property dependencies.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any


@dataclass(frozen=True)
class Position:
    """2D canvas coordinate of a node."""
    x: float = 0.0
    y: float = 0.0

    def offset(self, dx: float = 0.0, dy: float = 0.0) -> 'Position':
        return Position(self.x + dx, self.y + dy)

    def to_dict(self):
        return {'x': self.x, 'y': self.y}

    @classmethod
    def from_value(cls, value: Any) -> 'Position':
        """Accept a Position, an ``{x, y}`` mapping or an ``(x, y)`` pair."""
        if isinstance(value, Position):
            return value
        if value is None:
            return cls()
        if isinstance(value, dict):
            return cls(float(value.get('x', 0)), float(value.get('y', 0)))
        x, y = value
        return cls(float(x), float(y))


class EdgeType(Enum):
    """Kind of outgoing connection"""
    DEFAULT = "default"
    BRANCH = "branch"


class Status(Enum):
    """
    Outcome of a graph mutation.

    Structural violations are reported as a status, never raised, so
    that callers (and the command layer) can leave state untouched.
    Only ``OK`` is truthy.
    """
    OK = "ok"
    NOT_FOUND = "not_found"
    DUPLICATE_ID = "duplicate_id"
    SLOT_OCCUPIED = "slot_occupied"
    INVALID_EDGE = "invalid_edge"
    INVALID_BRANCH = "invalid_branch"
    VALIDATION_FAILED = "validation_failed"
    COMMAND_FAILED = "command_failed"

    def __bool__(self) -> bool:
        return self is Status.OK


class Condition(Enum):
    """Comparison used by property dependencies and conditional rules."""
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    GREATER_THAN = "greater_than"
    GREATER_THAN_OR_EQUAL = "greater_than_or_equal"
    LESS_THAN = "less_than"
    LESS_THAN_OR_EQUAL = "less_than_or_equal"
    EMPTY = "empty"
    NOT_EMPTY = "not_empty"


def is_empty(value: Any) -> bool:
    """A value counts as empty when it is missing, None or ''."""
    return value is None or value == ''


def _contains(container: Any, item: Any) -> bool:
    if isinstance(container, (list, tuple, set, frozenset, str)):
        try:
            return item in container
        except TypeError:
            return False
    return False


class ConditionEvaluator:
    """Evaluation of a ``Condition`` against a source value"""

    _operators = {
        Condition.EQUALS: lambda a, b: a == b,
        Condition.NOT_EQUALS: lambda a, b: a != b,
        Condition.CONTAINS: lambda a, b: _contains(a, b),
        Condition.NOT_CONTAINS: lambda a, b: not _contains(a, b),
        Condition.GREATER_THAN: lambda a, b: a > b,
        Condition.GREATER_THAN_OR_EQUAL: lambda a, b: a >= b,
        Condition.LESS_THAN: lambda a, b: a < b,
        Condition.LESS_THAN_OR_EQUAL: lambda a, b: a <= b,
        Condition.EMPTY: lambda a, b: is_empty(a),
        Condition.NOT_EMPTY: lambda a, b: not is_empty(a),
    }

    @staticmethod
    def parse(condition: Any) -> Any:
        """
        Normalize a condition given as an enum member or its name.

        Returns the ``Condition`` member, or None for an unknown name.
        """
        if isinstance(condition, Condition):
            return condition
        try:
            return Condition(condition)
        except ValueError:
            return None

    @classmethod
    def evaluate(cls, source_value: Any, condition: Any, expected: Any = None) -> bool:
        """
        Evaluate ``source_value <condition> expected``.

        Unknown conditions evaluate to True so that a misconfigured
        dependency never hides a field. Ordering comparisons between
        incompatible types evaluate to False.
        """
        parsed = cls.parse(condition)
        if parsed is None:
            return True
        try:
            return bool(cls._operators[parsed](source_value, expected))
        except TypeError:
            return False
