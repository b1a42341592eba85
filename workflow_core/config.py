"""
    Editor configuration: history depth, layout constants, timers and
    serialization settings.

    Plain dataclasses; every editor instance gets its own copy so that
    independent editors (e.g. in tests) never share settings.
"""
from dataclasses import dataclass, field
from typing import Optional, Set


@dataclass
class SerializationConfig:
    """
    Controls how a workflow graph is written and read back.

    Attributes:
        include_properties:  If set, ONLY these property keys are serialized.
                             ``None`` means "include all".
        exclude_properties:  Property keys to skip.  Applied AFTER
                             ``include_properties``.
        include_layout:      Whether node ``position`` / ``height`` are written.
        strict_load:         Reject the whole document on the first bad
                             record; when False bad records are skipped
                             and logged.
        indent:              JSON indentation for ``to_json``.
    """
    include_properties: Optional[Set[str]] = None
    exclude_properties: Set[str] = field(default_factory=set)
    include_layout: bool = True
    strict_load: bool = True
    indent: Optional[int] = 2

    def effective_properties(self, available: Set[str]) -> Set[str]:
        """Compute the final set of property keys to serialize."""
        if self.include_properties is not None:
            result = available & self.include_properties
        else:
            result = set(available)
        return result - self.exclude_properties


@dataclass
class EditorConfig:
    """
    Top-level configuration for a workflow editor.

    Attributes:
        serialization:          Controls serialization / deserialization.
        max_history_depth:      Undo entries kept; oldest are dropped first.
                                ``0`` keeps everything.
        insert_spacing:         Vertical distance nodes below an insertion
                                point are pushed down by.
        duplicate_offset_x/y:   Offset of a duplicated node from its original.
        default_node_height:    Height of a node before it has been measured.
        validation_debounce:    Seconds to wait after the last edit before
                                validating a staged property change.
        just_added_duration:    Seconds a new node keeps its "just added" flag.
        load_entry_points:      Also discover node types from installed
                                ``workflow_editor.node_type`` entry points.
    """
    serialization: SerializationConfig = field(default_factory=SerializationConfig)
    max_history_depth: int = 100
    insert_spacing: float = 150.0
    duplicate_offset_x: float = 50.0
    duplicate_offset_y: float = 50.0
    default_node_height: float = 90.0
    validation_debounce: float = 0.3
    just_added_duration: float = 1.0
    load_entry_points: bool = False
