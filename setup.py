from setuptools import setup, find_packages

setup(
    name='workflow-editor',
    version='1.0.0',
    description='Workflow definition graph, node type plugins and undoable editing commands',
    packages=find_packages(include=['workflow_api', 'workflow_api.*',
                                    'workflow_core', 'workflow_core.*',
                                    'node_type_plugins', 'node_type_plugins.*']),
    install_requires=[],
    extras_require={
        'test': ['pytest'],
    },
    entry_points={
        'workflow_editor.node_type': [
            'trigger = node_type_plugins.trigger:TriggerNodePlugin',
            'control = node_type_plugins.control:ControlNodePlugin',
            'action = node_type_plugins.action:ActionNodePlugin',
            'ifelse = node_type_plugins.ifelse:IfElseNodePlugin',
            'splitflow = node_type_plugins.splitflow:SplitFlowNodePlugin',
        ],
    },
    python_requires='>=3.8',
)
