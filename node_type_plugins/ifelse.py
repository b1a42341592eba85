"""
    If / Else node type: a two-way conditional branch.
"""
from workflow_api.plugins.base import (
    NodeTypePlugin, PropertyDescriptor, PropertyGroup, PropertyKind, Branch, Option,
)

from .common import BASIC_GROUP, title_property, subtitle_property, common_rules

# Operators that compare against an explicit value
VALUE_OPERATORS = ('equals', 'not_equals', 'contains', 'not_contains')


def needs_value(properties) -> bool:
    return (properties or {}).get('operator') in VALUE_OPERATORS


class IfElseNodePlugin(NodeTypePlugin):
    """Creates a conditional branch in the flow with fixed yes/no paths."""

    node_type = 'ifelse'
    name = 'If/Else'
    description = 'Creates a conditional branch in the flow'
    icon = 'git-branch'
    color = 'indigo'

    property_groups = [
        BASIC_GROUP,
        PropertyGroup(
            id='conditionConfig',
            label='Condition Configuration',
            description='Configure the condition for this branch',
            order=1,
        ),
    ]

    property_schema = [
        title_property(description='The name of this condition node', default='If/else'),
        subtitle_property(description='A brief description of the condition',
                          default='Clicked link is not Something...'),
        PropertyDescriptor(
            id='conditionField',
            kind=PropertyKind.SELECT,
            label='Condition Field',
            description='Select field to evaluate',
            default='link_click',
            required=True,
            group_id='conditionConfig',
            order=0,
            options=(
                Option('link_click', 'Link Click'),
                Option('email_open', 'Email Open'),
                Option('user_attribute', 'User Attribute'),
                Option('event', 'Custom Event'),
            ),
        ),
        PropertyDescriptor(
            id='operator',
            kind=PropertyKind.SELECT,
            label='Operator',
            description='Comparison operator',
            default='equals',
            required=True,
            group_id='conditionConfig',
            order=1,
            options=(
                Option('equals', 'Equals'),
                Option('not_equals', 'Does not equal'),
                Option('contains', 'Contains'),
                Option('not_contains', 'Does not contain'),
                Option('exists', 'Exists'),
                Option('not_exists', 'Does not exist'),
            ),
        ),
        PropertyDescriptor(
            id='value',
            kind=PropertyKind.TEXT,
            label='Value',
            description='The value to compare against',
            default='',
            group_id='conditionConfig',
            order=2,
            visibility_condition=needs_value,
        ),
    ]

    branches = [
        Branch('yes', 'Yes', 'Path taken when condition is true'),
        Branch('no', 'No', 'Path taken when condition is false'),
    ]

    validation_rules = dict(
        common_rules(),
        conditionField={'required': True},
        operator={'required': True},
        value={'required': needs_value},
    )

    initial_properties = {
        'title': 'If/else',
        'subtitle': 'Clicked link is not Something...',
        'conditionField': 'link_click',
        'operator': 'equals',
        'value': '',
    }

    def get_plugin_name(self) -> str:
        return "If / Else"
