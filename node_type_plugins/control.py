"""
    Control node type: combines conditions with AND / OR.
"""
from workflow_api.plugins.base import (
    NodeTypePlugin, PropertyDescriptor, PropertyGroup, PropertyKind, Option,
)

from .common import BASIC_GROUP, title_property, subtitle_property, common_rules


class ControlNodePlugin(NodeTypePlugin):
    """Controls flow with conditions."""

    node_type = 'control'
    name = 'Control'
    description = 'Controls flow with conditions'
    icon = 'hexagon'
    color = 'purple'

    property_groups = [
        BASIC_GROUP,
        PropertyGroup(
            id='controlConfig',
            label='Control Configuration',
            description='Configure how this control works',
            order=1,
        ),
    ]

    property_schema = [
        title_property(description='The name of this control node', default='New Control'),
        subtitle_property(),
        PropertyDescriptor(
            id='conditionType',
            kind=PropertyKind.SELECT,
            label='Condition Type',
            description='How to evaluate conditions',
            default='and',
            required=True,
            group_id='controlConfig',
            order=0,
            options=(
                Option('and', 'All conditions must match (AND)'),
                Option('or', 'Any condition can match (OR)'),
            ),
        ),
    ]

    validation_rules = dict(
        common_rules(),
        conditionType={'required': True, 'options': ['and', 'or']},
    )

    initial_properties = {
        'conditionType': 'and',
        'title': 'New Control',
        'subtitle': '',
    }

    def get_plugin_name(self) -> str:
        return "Control"
