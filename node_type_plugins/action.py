"""
    Action node type: sends a notification, an email or calls a webhook.

    Fields specific to one action type declare a dependency on
    ``actionType`` so they are hidden, and skipped by validation, while
    another action type is selected.
"""
from workflow_api.plugins.base import (
    NodeTypePlugin, PropertyDescriptor, PropertyGroup, PropertyKind, Dependency, Option,
)
from workflow_api.types import Condition

from .common import (
    BASIC_GROUP, ADVANCED_GROUP, title_property, subtitle_property,
    common_rules, dependent_required_rule,
)

WEBHOOK_URL_PATTERN = r'^https?://\S+$'


def _when_action(action_type: str):
    return (Dependency('actionType', Condition.EQUALS, action_type),)


class ActionNodePlugin(NodeTypePlugin):
    """Performs an action."""

    node_type = 'action'
    name = 'Action'
    description = 'Performs an action'
    icon = 'send'
    color = 'red'

    property_groups = [
        BASIC_GROUP,
        PropertyGroup(
            id='actionConfig',
            label='Action Configuration',
            description='Configure how this action works',
            order=1,
        ),
        ADVANCED_GROUP,
    ]

    property_schema = [
        title_property(description='The name of this action node', default='New Action'),
        subtitle_property(),
        PropertyDescriptor(
            id='actionType',
            kind=PropertyKind.SELECT,
            label='Action Type',
            description='What type of action to perform',
            default='notification',
            required=True,
            group_id='actionConfig',
            order=0,
            options=(
                Option('notification', 'Send Notification'),
                Option('email', 'Send Email'),
                Option('webhook', 'Call Webhook'),
            ),
        ),
        PropertyDescriptor(
            id='message',
            kind=PropertyKind.TEXT,
            label='Message',
            description='The message to send',
            default='',
            required=True,
            group_id='actionConfig',
            order=1,
            dependencies=_when_action('notification'),
        ),
        PropertyDescriptor(
            id='emailSubject',
            kind=PropertyKind.TEXT,
            label='Email Subject',
            description='Subject of the email',
            default='',
            required=True,
            group_id='actionConfig',
            order=1,
            dependencies=_when_action('email'),
        ),
        PropertyDescriptor(
            id='emailBody',
            kind=PropertyKind.TEXTAREA,
            label='Email Body',
            description='Content of the email',
            default='',
            required=True,
            group_id='actionConfig',
            order=2,
            dependencies=_when_action('email'),
        ),
        PropertyDescriptor(
            id='webhookUrl',
            kind=PropertyKind.TEXT,
            label='Webhook URL',
            description='URL to call',
            default='',
            required=True,
            group_id='actionConfig',
            order=1,
            dependencies=_when_action('webhook'),
        ),
        PropertyDescriptor(
            id='retry',
            kind=PropertyKind.NUMBER,
            label='Retry Attempts',
            description='Number of retry attempts if the action fails',
            default=0,
            group_id='advanced',
            order=0,
            control_props={'id': 'retry-inputbox'},
        ),
        PropertyDescriptor(
            id='notifyOnCompletion',
            kind=PropertyKind.CHECKBOX,
            label='Notify on Completion',
            description='Send a notification when this action completes',
            default=False,
            group_id='advanced',
            order=1,
            control_props={'id': 'notify-completion-checkbox'},
        ),
    ]

    validation_rules = dict(
        common_rules(),
        actionType={'required': True, 'options': ['notification', 'email', 'webhook']},
        message=dependent_required_rule('actionType', 'notification'),
        emailSubject=dependent_required_rule('actionType', 'email'),
        emailBody=dependent_required_rule('actionType', 'email'),
        webhookUrl=dict(
            dependent_required_rule('actionType', 'webhook'),
            pattern={'pattern': WEBHOOK_URL_PATTERN, 'message': 'Must be an http(s) URL'},
        ),
        retry={'min': 0, 'max': 10},
    )

    initial_properties = {
        'actionType': 'notification',
        'title': 'New Action',
        'subtitle': '',
        'notifyOnCompletion': False,
    }

    def get_plugin_name(self) -> str:
        return "Action"
