"""
Workflow Editor: core package.

Public API:
    WorkflowEditor      – editing session facade
    PropertyEditSession – staged Apply / Cancel property edits
    PluginRegistry      – node type lookup
    PluginLoader        – generic entry-point plugin discovery
    EditorConfig        – top-level configuration
    SerializationConfig – serialization control
"""
from .core import WorkflowEditor, PropertyEditSession
from .registry import PluginRegistry
from .config import EditorConfig, SerializationConfig
from .plugin_loader import PluginLoader, create_node_type_loader

__all__ = [
    'WorkflowEditor',
    'PropertyEditSession',
    'PluginRegistry',
    'EditorConfig',
    'SerializationConfig',
    'PluginLoader',
    'create_node_type_loader',
]
