"""
    Property groups, property definitions and validation rules shared
    by the built-in node types.
"""
from dataclasses import replace
from typing import Any, Dict

from workflow_api.plugins.base import PropertyDescriptor, PropertyGroup, PropertyKind


BASIC_GROUP = PropertyGroup(
    id='basic',
    label='Basic Information',
    description='Configure the basic information',
    collapsed=False,
    order=0,
)

ADVANCED_GROUP = PropertyGroup(
    id='advanced',
    label='Advanced Settings',
    description='Configure advanced options',
    collapsed=True,
    order=10,
)

TITLE_PROPERTY = PropertyDescriptor(
    id='title',
    kind=PropertyKind.TEXT,
    label='Title',
    description='The name of this node',
    default='New Node',
    required=True,
    group_id='basic',
    order=0,
)

SUBTITLE_PROPERTY = PropertyDescriptor(
    id='subtitle',
    kind=PropertyKind.TEXT,
    label='Subtitle',
    description='A brief description',
    default='',
    required=False,
    group_id='basic',
    order=1,
)

TITLE_RULES = {'required': True, 'min_length': 3, 'max_length': 50}
SUBTITLE_RULES = {'max_length': 100}


def title_property(**overrides) -> PropertyDescriptor:
    """Shared title field with per-type overrides (e.g. a different default)."""
    return replace(TITLE_PROPERTY, **overrides)


def subtitle_property(**overrides) -> PropertyDescriptor:
    return replace(SUBTITLE_PROPERTY, **overrides)


def common_rules() -> Dict[str, Dict[str, Any]]:
    return {'title': dict(TITLE_RULES), 'subtitle': dict(SUBTITLE_RULES)}


def dependent_required_rule(field_name: str, field_value: Any) -> Dict[str, Any]:
    """Rule set: required, but only while ``field_name == field_value``."""
    return {
        'required': True,
        'dependency': {'field': field_name, 'value': field_value},
    }
