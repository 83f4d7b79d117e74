from .positions import PositionAttribute
from .geometry import FrameView, NativeBox
from .units import UnitConverter
from .handles import ElementCollections
from .config import (
    LayoutConfig,
    UnknownPropertyError,
    get_default_config,
    set_default_config,
    load_config,
)
from .anchors import (
    AnchorSpec,
    AnchorSpecError,
    Collection,
    Computed,
    Constant,
    Elements,
    LiteralValue,
    NamedProperty,
    make_anchor,
)
from .location import LocationCache, LocationEntry
from .scheduler import Schedule, ScheduleNode, build_dependency_matrix, schedule_anchors, topological_order
from .engine import ConstraintEngine, LayoutEngine, UpdateReport, build_engine
from .registry import FrameRegistry
from .backend import DrawingBackend, RenderingBackend, SceneBackend
from .builders import (
    DegenerateInputError,
    add_colored_labels,
    add_interval_x,
    add_label_x,
    add_labeled_span,
    add_marker_x,
    add_scale_bar,
    add_tick_bridge,
    add_tickless_labels,
    add_title,
    add_x_label,
    add_y_label,
    clear_axis,
    install_auto_axis,
    install_auto_scale_bar,
    remove_auto_axis,
    remove_auto_scale_bar,
    reset,
)

__all__ = [
    'PositionAttribute',
    'FrameView',
    'NativeBox',
    'UnitConverter',
    'ElementCollections',
    'LayoutConfig',
    'UnknownPropertyError',
    'get_default_config',
    'set_default_config',
    'load_config',
    'AnchorSpec',
    'AnchorSpecError',
    'Collection',
    'Computed',
    'Constant',
    'Elements',
    'LiteralValue',
    'NamedProperty',
    'make_anchor',
    'LocationCache',
    'LocationEntry',
    'Schedule',
    'ScheduleNode',
    'build_dependency_matrix',
    'schedule_anchors',
    'topological_order',
    'ConstraintEngine',
    'LayoutEngine',
    'UpdateReport',
    'build_engine',
    'FrameRegistry',
    'DrawingBackend',
    'RenderingBackend',
    'SceneBackend',
    'DegenerateInputError',
    'add_colored_labels',
    'add_interval_x',
    'add_label_x',
    'add_labeled_span',
    'add_marker_x',
    'add_scale_bar',
    'add_tick_bridge',
    'add_tickless_labels',
    'add_title',
    'add_x_label',
    'add_y_label',
    'clear_axis',
    'install_auto_axis',
    'install_auto_scale_bar',
    'remove_auto_axis',
    'remove_auto_scale_bar',
    'reset',
]
