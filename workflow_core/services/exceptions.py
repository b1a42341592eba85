# workflow_core/services/exceptions.py

class UnknownNodeTypeError(Exception):
    """Raised when no plugin is registered for a node type."""
    pass

class PluginRegistrationError(Exception):
    """Raised when a plugin cannot be registered (e.g. it declares no node type)."""
    pass

class UnknownRuleError(Exception):
    """Raised when a validation rule name has no registered validator."""
    pass

class GraphLoadError(Exception):
    """Raised when persisted workflow data is malformed or breaks graph invariants."""
    pass
