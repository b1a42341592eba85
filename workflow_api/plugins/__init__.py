"""
Plugin contract: abstract base class and descriptors for node types.
"""
from .base import (
    NodeTypePlugin,
    PropertyDescriptor,
    PropertyGroup,
    PropertyKind,
    Branch,
    Dependency,
    Option,
)

__all__ = [
    'NodeTypePlugin',
    'PropertyDescriptor',
    'PropertyGroup',
    'PropertyKind',
    'Branch',
    'Dependency',
    'Option',
]
