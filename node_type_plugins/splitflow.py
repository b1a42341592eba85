"""
    Split flow node type: a multi-way split on a user attribute.

    The branch set is derived from the comma-separated ``branchValues``
    property: one ``branch_<i>`` per value, followed by the catch-all
    ``other`` branch.  An unconfigured node falls back to the
    ``default`` / ``other`` pair, so there is always at least one branch.
"""
from typing import Any, Dict, List, Optional

from workflow_api.plugins.base import (
    NodeTypePlugin, PropertyDescriptor, PropertyGroup, PropertyKind, Branch, Option,
)

from .common import BASIC_GROUP, title_property, subtitle_property, TITLE_RULES

OTHER_BRANCH_ID = 'other'

FALLBACK_BRANCHES = [
    Branch('default', 'Default Path', 'Default branch when no conditions matched'),
    Branch(OTHER_BRANCH_ID, 'All Others', 'All other values'),
]


def parse_branch_values(raw: Any) -> List[str]:
    """``"Fred, Jane,,Bob"`` -> ``["Fred", "Jane", "Bob"]``."""
    if isinstance(raw, (list, tuple)):
        values = [str(v).strip() for v in raw]
    elif isinstance(raw, str):
        values = [v.strip() for v in raw.split(',')]
    else:
        return []
    return [v for v in values if v]


def _uses_custom_attribute(properties) -> bool:
    return (properties or {}).get('splitAttribute') == 'custom_attribute'


class SplitFlowNodePlugin(NodeTypePlugin):
    """Split workflow into multiple paths based on user attributes."""

    node_type = 'splitflow'
    name = 'Split Flow'
    description = 'Split workflow into multiple paths based on user attributes'
    icon = 'git-merge'
    color = 'green'

    property_groups = [
        BASIC_GROUP,
        PropertyGroup(
            id='splitConfig',
            label='Split Configuration',
            description='Configure how this split works',
            order=1,
        ),
        PropertyGroup(
            id='branchConfig',
            label='Branch Configuration',
            description='Configure the branch values',
            order=2,
        ),
    ]

    property_schema = [
        title_property(description='The name of this split node', default='Split flow'),
        subtitle_property(description='A brief description of the split',
                          default='Split based on First name'),
        PropertyDescriptor(
            id='splitAttribute',
            kind=PropertyKind.SELECT,
            label='Split Attribute',
            description='User attribute to split on',
            default='first_name',
            required=True,
            group_id='splitConfig',
            order=0,
            options=(
                Option('first_name', 'First Name'),
                Option('last_name', 'Last Name'),
                Option('email', 'Email Address'),
                Option('country', 'Country'),
                Option('segment', 'Segment'),
                Option('custom_attribute', 'Custom Attribute'),
            ),
        ),
        PropertyDescriptor(
            id='customAttributeName',
            kind=PropertyKind.TEXT,
            label='Custom Attribute Name',
            description='Name of the custom attribute',
            default='',
            group_id='splitConfig',
            order=1,
            visibility_condition=_uses_custom_attribute,
        ),
        PropertyDescriptor(
            id='branchValues',
            kind=PropertyKind.TEXT,
            label='Branch Values',
            description='Comma-separated list of branch values (e.g., "Fred, Jane, Bob")',
            default='Fred',
            required=True,
            group_id='branchConfig',
            order=0,
        ),
    ]

    validation_rules = {
        'title': dict(TITLE_RULES),
        'splitAttribute': {'required': True},
        'customAttributeName': {'required': _uses_custom_attribute, 'min_length': 1},
        'branchValues': {'required': True, 'min_length': 1},
    }

    initial_properties = {
        'title': 'Split flow',
        'subtitle': 'Split based on First name',
        'splitAttribute': 'first_name',
        'customAttributeName': '',
        'branchValues': 'Fred',
    }

    def get_plugin_name(self) -> str:
        return "Split Flow"

    def preprocess_properties(self, properties: Dict[str, Any]) -> Dict[str, Any]:
        processed = dict(properties or {})
        processed['branchValuesList'] = parse_branch_values(processed.get('branchValues'))
        return processed

    def get_branches(self, properties: Optional[Dict[str, Any]] = None) -> List[Branch]:
        processed = self.preprocess_properties(properties)
        values = processed['branchValuesList']
        if not values:
            return list(FALLBACK_BRANCHES)

        attribute = processed.get('splitAttribute', '')
        if attribute == 'custom_attribute' and processed.get('customAttributeName'):
            attribute = processed['customAttributeName']

        branches = [
            Branch(f'branch_{index}', value, f'Path for {attribute} = {value}')
            for index, value in enumerate(values)
        ]
        branches.append(Branch(OTHER_BRANCH_ID, 'All Others', 'Path for all other values'))
        return branches
