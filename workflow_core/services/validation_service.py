"""
    ValidationEngine: checks node property values against the rules
    their plugin declares.

    Evaluation order for one property:
        1. skip entirely if its schema dependencies (or a rule-level
           ``dependency``) are not met; hidden fields never report errors
        2. structural rules, in ``STANDARD_RULE_ORDER``
        3. custom rules from the ``RuleRegistry``, in declaration order
        4. ``conditional_required`` entries
    Only the first failure is reported.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from workflow_api.models.node import Node
from workflow_api.plugins.base import Dependency, PropertyDescriptor
from workflow_api.types import Condition, ConditionEvaluator, is_empty

from .rules import DEPENDENCY_KEYS, STANDARD_RULE_ORDER, RuleRegistry

logger = logging.getLogger(__name__)


@dataclass
class ValidationResult:
    """Errors keyed by property id."""
    errors: Dict[str, str] = field(default_factory=dict)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def __bool__(self) -> bool:
        return self.is_valid


def _to_dependency(raw: Any) -> Dependency:
    """Accept a Dependency, ``{field, value}`` or ``{source_id, condition, value}``."""
    if isinstance(raw, Dependency):
        return raw
    source_id = raw.get('source_id', raw.get('field'))
    condition = raw.get('condition', Condition.EQUALS)
    return Dependency(source_id, ConditionEvaluator.parse(condition) or condition, raw.get('value'))


class ValidationEngine:
    """
    Validates property values.

    Args:
        registry:       PluginRegistry used to find a node type's schema and rules.
        rule_registry:  Validators by rule name (standard rules by default).
    """

    def __init__(self, registry=None, rule_registry: Optional[RuleRegistry] = None):
        self.registry = registry
        self.rule_registry = rule_registry or RuleRegistry()

    # ── Single property ──────────────────────────────────────────

    def validate_property(self, property_id: str, value: Any,
                          rules: Optional[Dict[str, Any]],
                          schema_entry: Optional[PropertyDescriptor] = None,
                          properties: Optional[Dict[str, Any]] = None) -> Optional[str]:
        """
        Validate one value against its rule map.

        Args:
            property_id:  Id of the property (for logging).
            value:        Current value.
            rules:        Rule map declared by the plugin.
            schema_entry: Schema descriptor; its dependencies gate validation.
            properties:   All current properties of the node, used by
                          dependencies, predicates and conditional rules.

        Returns:
            The first error message, or None if the value is valid.

        Raises:
            UnknownRuleError: If a rule name has no registered validator.
        """
        if not rules:
            return None
        properties = properties if properties is not None else {}

        if schema_entry is not None and not self.should_validate_property(schema_entry, properties):
            return None
        if not self._rule_dependencies_met(rules, properties):
            return None

        for name in self._ordered_rule_names(rules):
            rule = self.rule_registry.require(name)
            params = rule.normalize(rules[name])
            if params is None:
                continue
            error = rule.validate(value, params, properties)
            if error:
                logger.debug("Property '%s' failed rule '%s': %s", property_id, name, error)
                return error

        for entry in rules.get('conditional_required') or []:
            dependency = _to_dependency(entry)
            if dependency.is_satisfied(properties) and is_empty(value):
                message = entry.get('message') if isinstance(entry, dict) else None
                return message or 'This field is required'

        return None

    def should_validate_property(self, schema_entry: PropertyDescriptor,
                                 properties: Dict[str, Any]) -> bool:
        """A property is validated only while it is visible in the form."""
        return schema_entry.is_visible(properties)

    @staticmethod
    def _rule_dependencies_met(rules: Dict[str, Any], properties: Dict[str, Any]) -> bool:
        raw = []
        if rules.get('dependency'):
            raw.append(rules['dependency'])
        raw.extend(rules.get('dependencies') or [])
        return all(_to_dependency(dep).is_satisfied(properties) for dep in raw)

    @staticmethod
    def _ordered_rule_names(rules: Dict[str, Any]) -> List[str]:
        standard = [name for name in STANDARD_RULE_ORDER if name in rules]
        custom = [
            name for name in rules
            if name not in STANDARD_RULE_ORDER and name not in DEPENDENCY_KEYS
        ]
        return standard + custom

    # ── Node / form level ────────────────────────────────────────

    def validate_properties(self, node_type: str, properties: Dict[str, Any]) -> Dict[str, str]:
        """
        Validate a property mapping for a node type.

        Returns:
            ``{property_id: error}`` for every failing property; empty
            for unknown node types.
        """
        plugin = self.registry.get(node_type) if self.registry is not None else None
        if plugin is None:
            logger.debug("No plugin for node type '%s'; nothing to validate", node_type)
            return {}

        validation_rules = plugin.get_validation_rules()
        errors = {}
        for schema_entry in plugin.get_property_schema():
            rules = validation_rules.get(schema_entry.id)
            if not rules:
                continue
            error = self.validate_property(
                schema_entry.id,
                properties.get(schema_entry.id),
                rules,
                schema_entry,
                properties,
            )
            if error:
                errors[schema_entry.id] = error
        return errors

    def validate_node_properties(self, node_type: str, node: Node) -> Dict[str, str]:
        return self.validate_properties(node_type, node.properties)

    def validate_node(self, node: Node) -> ValidationResult:
        return ValidationResult(self.validate_properties(node.node_type, node.properties))

    def validate_form(self, schema: List[PropertyDescriptor], values: Dict[str, Any],
                      rules: Dict[str, Dict[str, Any]]) -> ValidationResult:
        """Validate free-standing form values against a schema and rule map."""
        errors = {}
        for schema_entry in schema:
            field_rules = rules.get(schema_entry.id)
            if not field_rules:
                continue
            error = self.validate_property(
                schema_entry.id, values.get(schema_entry.id), field_rules, schema_entry, values
            )
            if error:
                errors[schema_entry.id] = error
        return ValidationResult(errors)

    @classmethod
    def validate_value(cls, value: Any, rules: Dict[str, Any]) -> Optional[str]:
        """Validate a single value with the standard rules and no context."""
        return cls().validate_property('value', value, rules)
