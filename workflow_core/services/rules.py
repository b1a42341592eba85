"""
    Validation rules: the standard rule set, the rule registry and a
    fluent builder for rule maps.

    A rule map is what a plugin declares per property, e.g.::

        {'required': True, 'min_length': 3, 'max_length': 50}

    Each entry's parameters may be given in full (``{'length': 3,
    'message': '...'}``) or in shorthand (``3``); ``True`` enables a
    parameterless rule and ``False`` / ``None`` disables it.  A callable
    given to ``required`` is a predicate over the node's properties that
    decides whether the field is required right now.
"""
import logging
import re
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional

from workflow_api.types import Condition, is_empty

from .exceptions import UnknownRuleError

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')

# Keys of a rule map that are not rules themselves
DEPENDENCY_KEYS = ('dependency', 'dependencies', 'conditional_required')


class ValidationRule(ABC):
    """
    A single named check.

    ``primary_param`` names the parameter a shorthand value maps to,
    so ``{'min_length': 3}`` means ``{'min_length': {'length': 3}}``.
    """

    primary_param: Optional[str] = None

    def normalize(self, params: Any) -> Optional[Dict[str, Any]]:
        """Expand shorthand parameters; None means the rule is switched off."""
        if params is None or params is False:
            return None
        if params is True:
            return {}
        if isinstance(params, dict):
            return params
        if callable(params):
            return {'when': params}
        if self.primary_param is None:
            return {}
        return {self.primary_param: params}

    @abstractmethod
    def validate(self, value: Any, params: Dict[str, Any],
                 properties: Dict[str, Any]) -> Optional[str]:
        """Return an error message, or None when ``value`` passes."""
        ...


class FunctionRule(ValidationRule):
    """Adapts a plain ``fn(value, params, properties)`` callable."""

    def __init__(self, fn: Callable[[Any, Dict[str, Any], Dict[str, Any]], Optional[str]],
                 primary_param: Optional[str] = None):
        self._fn = fn
        self.primary_param = primary_param

    def validate(self, value, params, properties):
        return self._fn(value, params, properties)


# ═════════════════════════════════════════════════════════════════
#  STANDARD RULES
# ═════════════════════════════════════════════════════════════════

class RequiredRule(ValidationRule):

    def validate(self, value, params, properties):
        when = params.get('when')
        if when is not None and not when(properties):
            return None
        if is_empty(value):
            return params.get('message') or 'This field is required'
        return None


class MinLengthRule(ValidationRule):
    primary_param = 'length'

    def validate(self, value, params, properties):
        if value and hasattr(value, '__len__') and len(value) < params['length']:
            return params.get('message') or f"Must be at least {params['length']} characters"
        return None


class MaxLengthRule(ValidationRule):
    primary_param = 'length'

    def validate(self, value, params, properties):
        if value and hasattr(value, '__len__') and len(value) > params['length']:
            return params.get('message') or f"Must be no more than {params['length']} characters"
        return None


def _as_number(value: Any) -> Any:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class MinValueRule(ValidationRule):
    primary_param = 'min'

    def validate(self, value, params, properties):
        if is_empty(value):
            return None
        number = _as_number(value)
        if number is None:
            return params.get('message') or 'Must be a number'
        if number < params['min']:
            return params.get('message') or f"Must be at least {params['min']}"
        return None


class MaxValueRule(ValidationRule):
    primary_param = 'max'

    def validate(self, value, params, properties):
        if is_empty(value):
            return None
        number = _as_number(value)
        if number is None:
            return params.get('message') or 'Must be a number'
        if number > params['max']:
            return params.get('message') or f"Must be no more than {params['max']}"
        return None


class PatternRule(ValidationRule):
    primary_param = 'pattern'

    def validate(self, value, params, properties):
        if value and not re.search(params['pattern'], str(value)):
            return params.get('message') or 'Invalid format'
        return None


class EmailRule(ValidationRule):

    def validate(self, value, params, properties):
        if value and not EMAIL_PATTERN.match(str(value)):
            return params.get('message') or 'Invalid email format'
        return None


class OptionsRule(ValidationRule):
    primary_param = 'options'

    def validate(self, value, params, properties):
        options = params.get('options')
        if value and options and value not in options:
            return params.get('message') or 'Invalid option selected'
        return None


class BooleanRule(ValidationRule):
    primary_param = 'must_be_true'

    def normalize(self, params):
        if params is True:
            return {'must_be_true': True}
        return super().normalize(params)

    def validate(self, value, params, properties):
        if params.get('must_be_true') and value is not True:
            return params.get('message') or 'This must be checked'
        return None


# Structural rules always run in this order, before any custom rule
STANDARD_RULE_ORDER = (
    'required',
    'min_length',
    'max_length',
    'min',
    'max',
    'pattern',
    'email',
    'options',
    'boolean',
)


def standard_rules() -> Dict[str, ValidationRule]:
    return {
        'required': RequiredRule(),
        'min_length': MinLengthRule(),
        'max_length': MaxLengthRule(),
        'min': MinValueRule(),
        'max': MaxValueRule(),
        'pattern': PatternRule(),
        'email': EmailRule(),
        'options': OptionsRule(),
        'boolean': BooleanRule(),
    }


# ═════════════════════════════════════════════════════════════════
#  REGISTRY
# ═════════════════════════════════════════════════════════════════

class RuleRegistry:
    """Validators by rule name; pre-populated with the standard rules."""

    def __init__(self, include_standard: bool = True):
        self._rules: Dict[str, ValidationRule] = standard_rules() if include_standard else {}

    def register_rule(self, name: str, rule: Any) -> 'RuleRegistry':
        """
        Register a rule; a plain callable is wrapped in ``FunctionRule``.
        Re-registering a name replaces the previous rule.
        """
        if not isinstance(rule, ValidationRule):
            rule = FunctionRule(rule)
        if name in self._rules:
            logger.warning("Validation rule '%s' is already registered. Overriding.", name)
        self._rules[name] = rule
        return self

    def get_rule(self, name: str) -> Optional[ValidationRule]:
        return self._rules.get(name)

    def require(self, name: str) -> ValidationRule:
        rule = self._rules.get(name)
        if rule is None:
            raise UnknownRuleError(
                f"Unknown validation rule '{name}'. Registered: {self.get_all_rule_types()}"
            )
        return rule

    def has_rule(self, name: str) -> bool:
        return name in self._rules

    def get_all_rule_types(self) -> List[str]:
        return list(self._rules.keys())


# ═════════════════════════════════════════════════════════════════
#  BUILDER
# ═════════════════════════════════════════════════════════════════

class ValidationRuleBuilder:
    """
    Fluent construction of a rule map.

    Usage:
        rules().required().min_length(3).requires_if('actionType', 'email').build()
    """

    def __init__(self, initial_rules: Optional[Dict[str, Any]] = None):
        self._rules: Dict[str, Any] = dict(initial_rules or {})

    def required(self, message: str = 'This field is required',
                 when: Optional[Callable[[Dict[str, Any]], bool]] = None) -> 'ValidationRuleBuilder':
        params = {'message': message}
        if when is not None:
            params['when'] = when
        self._rules['required'] = params
        return self

    def min_length(self, length: int, message: Optional[str] = None) -> 'ValidationRuleBuilder':
        self._rules['min_length'] = {
            'length': length,
            'message': message or f"Must be at least {length} characters",
        }
        return self

    def max_length(self, length: int, message: Optional[str] = None) -> 'ValidationRuleBuilder':
        self._rules['max_length'] = {
            'length': length,
            'message': message or f"Must be no more than {length} characters",
        }
        return self

    def min(self, minimum: float, message: Optional[str] = None) -> 'ValidationRuleBuilder':
        self._rules['min'] = {'min': minimum, 'message': message or f"Must be at least {minimum}"}
        return self

    def max(self, maximum: float, message: Optional[str] = None) -> 'ValidationRuleBuilder':
        self._rules['max'] = {'max': maximum, 'message': message or f"Must be no more than {maximum}"}
        return self

    def pattern(self, pattern: Any, message: str = 'Invalid format') -> 'ValidationRuleBuilder':
        if isinstance(pattern, re.Pattern):
            pattern = pattern.pattern
        self._rules['pattern'] = {'pattern': pattern, 'message': message}
        return self

    def email(self, message: str = 'Invalid email format') -> 'ValidationRuleBuilder':
        self._rules['email'] = {'message': message}
        return self

    def options(self, options: List[Any], message: str = 'Invalid option selected') -> 'ValidationRuleBuilder':
        self._rules['options'] = {'options': list(options), 'message': message}
        return self

    def boolean(self, must_be_true: bool = True, message: str = 'This must be checked') -> 'ValidationRuleBuilder':
        self._rules['boolean'] = {'must_be_true': must_be_true, 'message': message}
        return self

    def custom(self, name: str, params: Any) -> 'ValidationRuleBuilder':
        self._rules[name] = params
        return self

    def depends_on(self, field_name: str, value: Any,
                   condition: Condition = Condition.EQUALS) -> 'ValidationRuleBuilder':
        """Validate only while ``field_name <condition> value`` holds."""
        self._rules['dependency'] = {'field': field_name, 'condition': condition, 'value': value}
        return self

    def requires_if(self, source_id: str, value: Any,
                    condition: Condition = Condition.EQUALS,
                    message: str = 'This field is required') -> 'ValidationRuleBuilder':
        """Required whenever ``source_id <condition> value`` holds."""
        self._rules.setdefault('conditional_required', []).append({
            'source_id': source_id,
            'condition': condition,
            'value': value,
            'message': message,
        })
        return self

    def build(self) -> Dict[str, Any]:
        built = dict(self._rules)
        if 'conditional_required' in built:
            built['conditional_required'] = list(built['conditional_required'])
        return built


def rules(initial_rules: Optional[Dict[str, Any]] = None) -> ValidationRuleBuilder:
    return ValidationRuleBuilder(initial_rules)
