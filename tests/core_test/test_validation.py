# tests/core_test/test_validation.py
"""
Tests for the validation engine and rule set
(workflow_core/services/validation_service.py, rules.py).
"""
import pytest

from workflow_api.plugins.base import Dependency, PropertyDescriptor
from workflow_api.types import Condition
from workflow_core.services import (
    RuleRegistry,
    UnknownRuleError,
    ValidationEngine,
    rules,
)


@pytest.fixture
def engine(registry):
    return ValidationEngine(registry)


# ═════════════════════════════════════════════════════════════════
#  STANDARD RULES
# ═════════════════════════════════════════════════════════════════

class TestStandardRules:

    @pytest.mark.parametrize("value", [None, ""])
    def test_required_rejects_empty(self, value):
        assert ValidationEngine.validate_value(value, {"required": True}) == "This field is required"

    @pytest.mark.parametrize("value", [0, False, "x", []])
    def test_required_accepts_falsy_non_empty(self, value):
        assert ValidationEngine.validate_value(value, {"required": True}) is None

    def test_length_shorthand_and_full_form(self):
        assert ValidationEngine.validate_value("ab", {"min_length": 3}) == "Must be at least 3 characters"
        assert ValidationEngine.validate_value("ab", {"min_length": {"length": 3, "message": "short"}}) == "short"
        assert ValidationEngine.validate_value("abcdef", {"max_length": 5}) == "Must be no more than 5 characters"

    def test_numbers(self):
        assert ValidationEngine.validate_value(11, {"max": 10}) == "Must be no more than 10"
        assert ValidationEngine.validate_value("-1", {"min": 0}) == "Must be at least 0"
        assert ValidationEngine.validate_value("abc", {"min": 0}) == "Must be a number"
        assert ValidationEngine.validate_value("", {"min": 0}) is None

    def test_pattern_email_options_boolean(self):
        assert ValidationEngine.validate_value("ftp://x", {"pattern": r"^https?://"}) == "Invalid format"
        assert ValidationEngine.validate_value("me@example", {"email": True}) == "Invalid email format"
        assert ValidationEngine.validate_value("me@example.com", {"email": True}) is None
        assert ValidationEngine.validate_value("c", {"options": ["a", "b"]}) == "Invalid option selected"
        assert ValidationEngine.validate_value(False, {"boolean": True}) == "This must be checked"

    def test_disabled_rule_is_skipped(self):
        assert ValidationEngine.validate_value("", {"required": False}) is None

    def test_first_failure_wins_in_fixed_order(self):
        # Declaration order does not matter: required runs before min_length
        rule_map = {"min_length": 3, "required": True}
        assert ValidationEngine.validate_value("", rule_map) == "This field is required"
        assert ValidationEngine.validate_value("ab", rule_map) == "Must be at least 3 characters"

    def test_unknown_rule_raises(self):
        with pytest.raises(UnknownRuleError):
            ValidationEngine.validate_value("x", {"no_such_rule": True})


# ═════════════════════════════════════════════════════════════════
#  DEPENDENCIES & CONDITIONAL RULES
# ═════════════════════════════════════════════════════════════════

class TestDependencies:

    def test_schema_dependency_gates_validation(self):
        engine = ValidationEngine()
        entry = PropertyDescriptor(
            id="emailSubject",
            dependencies=(Dependency("actionType", Condition.EQUALS, "email"),),
        )
        rule_map = {"required": True}
        assert engine.validate_property("emailSubject", "", rule_map, entry,
                                        {"actionType": "notification"}) is None
        assert engine.validate_property("emailSubject", "", rule_map, entry,
                                        {"actionType": "email"}) == "This field is required"

    def test_rule_level_dependency(self):
        engine = ValidationEngine()
        rule_map = {"required": True, "dependency": {"field": "mode", "value": "on"}}
        assert engine.validate_property("x", "", rule_map, properties={"mode": "off"}) is None
        assert engine.validate_property("x", "", rule_map, properties={"mode": "on"})

    def test_required_predicate(self):
        engine = ValidationEngine()
        rule_map = {"required": lambda props: props.get("operator") == "equals"}
        assert engine.validate_property("value", "", rule_map, properties={"operator": "exists"}) is None
        assert engine.validate_property("value", "", rule_map, properties={"operator": "equals"})

    def test_conditional_required_runs_last(self):
        engine = ValidationEngine()
        rule_map = rules().min_length(2).requires_if("kind", "webhook", message="URL needed").build()
        props = {"kind": "webhook"}
        assert engine.validate_property("url", "", rule_map, properties=props) == "URL needed"
        assert engine.validate_property("url", "x", rule_map, properties=props) == "Must be at least 2 characters"
        assert engine.validate_property("url", "", rule_map, properties={"kind": "email"}) is None

    def test_conditional_required_with_condition(self):
        engine = ValidationEngine()
        rule_map = rules().requires_if("count", 5, Condition.GREATER_THAN).build()
        assert engine.validate_property("x", None, rule_map, properties={"count": 6})
        assert engine.validate_property("x", None, rule_map, properties={"count": 2}) is None

    def test_conditional_required_accepts_dependency_objects(self):
        engine = ValidationEngine()
        rule_map = {"conditional_required": [Dependency("kind", Condition.EQUALS, "webhook")]}
        error = engine.validate_property("url", "", rule_map, properties={"kind": "webhook"})
        assert error == "This field is required"
        assert engine.validate_property("url", "", rule_map, properties={"kind": "email"}) is None


# ═════════════════════════════════════════════════════════════════
#  CUSTOM RULES & BUILDER
# ═════════════════════════════════════════════════════════════════

class TestCustomRules:

    def test_registered_callable_runs_after_standard_rules(self):
        registry = RuleRegistry()
        registry.register_rule(
            "no_spaces",
            lambda value, params, props: "No spaces allowed" if value and " " in value else None,
        )
        engine = ValidationEngine(rule_registry=registry)
        rule_map = {"no_spaces": True, "required": True}
        assert engine.validate_property("x", "", rule_map) == "This field is required"
        assert engine.validate_property("x", "a b", rule_map) == "No spaces allowed"
        assert engine.validate_property("x", "ab", rule_map) is None

    def test_custom_rule_sees_all_properties(self):
        registry = RuleRegistry()
        registry.register_rule(
            "matches",
            lambda value, params, props: None if value == props.get(params["other"]) else "Mismatch",
        )
        engine = ValidationEngine(rule_registry=registry)
        rule_map = {"matches": {"other": "password"}}
        assert engine.validate_property("confirm", "a", rule_map, properties={"password": "b"}) == "Mismatch"

    def test_registry_lists_standard_rules(self):
        names = RuleRegistry().get_all_rule_types()
        for name in ("required", "min_length", "max_length", "min", "max",
                     "pattern", "email", "options", "boolean"):
            assert name in names
        assert RuleRegistry(include_standard=False).get_all_rule_types() == []

    def test_builder_output(self):
        built = (rules()
                 .required("Title please")
                 .min_length(3)
                 .max_length(50)
                 .depends_on("mode", "advanced")
                 .build())
        assert built["required"] == {"message": "Title please"}
        assert built["min_length"]["length"] == 3
        assert built["max_length"]["length"] == 50
        assert built["dependency"]["field"] == "mode"

    def test_builder_is_reusable(self):
        builder = rules().requires_if("a", 1)
        first = builder.build()
        builder.requires_if("b", 2)
        assert len(first["conditional_required"]) == 1


# ═════════════════════════════════════════════════════════════════
#  NODE LEVEL
# ═════════════════════════════════════════════════════════════════

class TestNodeValidation:

    def test_stub_workflow_is_valid(self, engine, workflow):
        for node in workflow.get_all_nodes():
            result = engine.validate_node(node)
            assert result.is_valid, (node.node_id, result.errors)

    def test_action_fields_follow_action_type(self, engine):
        props = {"title": "Email step", "actionType": "email", "emailSubject": "", "emailBody": "B",
                 "message": ""}
        errors = engine.validate_properties("action", props)
        assert errors == {"emailSubject": "This field is required"}

        props["actionType"] = "notification"
        errors = engine.validate_properties("action", props)
        assert errors == {"message": "This field is required"}

    def test_webhook_url_format(self, engine):
        props = {"title": "Hook", "actionType": "webhook", "webhookUrl": "not a url"}
        assert engine.validate_properties("action", props) == {"webhookUrl": "Must be an http(s) URL"}

    def test_title_rules(self, engine):
        errors = engine.validate_properties("control", {"title": "ab", "conditionType": "and"})
        assert errors == {"title": "Must be at least 3 characters"}

    def test_ifelse_value_only_for_value_operators(self, engine):
        props = {"title": "Check", "conditionField": "event", "operator": "exists", "value": ""}
        assert engine.validate_properties("ifelse", props) == {}
        props["operator"] = "equals"
        assert engine.validate_properties("ifelse", props) == {"value": "This field is required"}

    def test_unknown_node_type_has_no_errors(self, engine):
        assert engine.validate_properties("mystery", {}) == {}

    def test_validate_form(self, engine):
        schema = [PropertyDescriptor(id="name"), PropertyDescriptor(id="age")]
        result = engine.validate_form(schema, {"name": "", "age": 5},
                                      {"name": {"required": True}, "age": {"min": 18}})
        assert not result
        assert result.errors == {"name": "This field is required", "age": "Must be at least 18"}
