"""
    Trigger node type: the entry point of a workflow.
"""
from workflow_api.plugins.base import (
    NodeTypePlugin, PropertyDescriptor, PropertyGroup, PropertyKind, Dependency, Option,
)
from workflow_api.types import Condition

from .common import BASIC_GROUP, title_property, subtitle_property, dependent_required_rule, TITLE_RULES


class TriggerNodePlugin(NodeTypePlugin):
    """Starts the workflow. Has a single default successor and no branches."""

    node_type = 'trigger'
    name = 'Trigger'
    description = 'Starts the workflow'
    icon = 'zap'
    color = 'blue'

    property_groups = [
        BASIC_GROUP,
        PropertyGroup(
            id='triggerConfig',
            label='Trigger Configuration',
            description='Configure how this trigger works',
            order=1,
        ),
        PropertyGroup(
            id='advanced',
            label='Advanced Settings',
            description='Configure advanced trigger options',
            collapsed=True,
            order=2,
            conditions=(Dependency('triggerType', Condition.NOT_EQUALS, 'simple'),),
        ),
    ]

    property_schema = [
        title_property(description='The name of this trigger node', default='New Trigger'),
        subtitle_property(),
        PropertyDescriptor(
            id='triggerType',
            kind=PropertyKind.SELECT,
            label='Trigger Type',
            description='What type of trigger is this',
            default='segment',
            required=True,
            group_id='triggerConfig',
            order=0,
            options=(
                Option('segment', 'Segment Membership'),
                Option('event', 'Event Occurred'),
                Option('schedule', 'Time Schedule'),
                Option('api', 'API Call'),
                Option('simple', 'Simple Trigger'),
            ),
        ),
        PropertyDescriptor(
            id='segmentId',
            kind=PropertyKind.SELECT,
            label='Segment',
            description='Which user segment triggers this flow',
            default='',
            required=True,
            group_id='triggerConfig',
            order=1,
            options=(
                Option('new_users', 'New Users'),
                Option('power_users', 'Power Users'),
                Option('inactive', 'Inactive Users'),
            ),
            dependencies=(Dependency('triggerType', Condition.EQUALS, 'segment'),),
        ),
        PropertyDescriptor(
            id='eventName',
            kind=PropertyKind.TEXT,
            label='Event Name',
            description='Name of the event that triggers this flow',
            default='',
            required=True,
            group_id='triggerConfig',
            order=1,
            dependencies=(Dependency('triggerType', Condition.EQUALS, 'event'),),
        ),
        PropertyDescriptor(
            id='throttling',
            kind=PropertyKind.NUMBER,
            label='Throttle Rate (per minute)',
            description='Limit how many times this trigger can fire',
            default=0,
            group_id='advanced',
            order=0,
        ),
    ]

    validation_rules = {
        'title': dict(TITLE_RULES),
        'segmentId': dependent_required_rule('triggerType', 'segment'),
        'eventName': dependent_required_rule('triggerType', 'event'),
        'throttling': {'min': 0},
    }

    initial_properties = {
        'triggerType': 'segment',
        'title': 'New Trigger',
        'subtitle': '',
    }

    def get_plugin_name(self) -> str:
        return "Trigger"
