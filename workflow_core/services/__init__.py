"""
Core services: validation, rules, serialization and exceptions.
"""
from .rules import RuleRegistry, ValidationRule, ValidationRuleBuilder, rules
from .validation_service import ValidationEngine, ValidationResult
from .serialization_service import GraphSerializer
from .exceptions import (
    UnknownNodeTypeError,
    PluginRegistrationError,
    UnknownRuleError,
    GraphLoadError,
)

__all__ = [
    'RuleRegistry',
    'ValidationRule',
    'ValidationRuleBuilder',
    'rules',
    'ValidationEngine',
    'ValidationResult',
    'GraphSerializer',
    'UnknownNodeTypeError',
    'PluginRegistrationError',
    'UnknownRuleError',
    'GraphLoadError',
]
