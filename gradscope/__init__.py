from gradscope.core.graph import GraphId, DEFAULT_GRAPH_ID, ArrayNode
from gradscope.core.context import Context, get_default_context, set_default_context, context_scope
from gradscope.core.array import Array, get_default_dtype, set_default_dtype
from gradscope.core.backprop_mode import (
    BackpropMode, BackpropModeError, BackpropModeScope, Polarity,
    no_backprop_mode, force_backprop_mode,
    is_backprop_required, is_backprop_required_after_stop,
)

__all__ = [
    'GraphId', 'DEFAULT_GRAPH_ID', 'ArrayNode',
    'Context', 'get_default_context', 'set_default_context', 'context_scope',
    'Array', 'get_default_dtype', 'set_default_dtype',
    'BackpropMode', 'BackpropModeError', 'BackpropModeScope', 'Polarity',
    'no_backprop_mode', 'force_backprop_mode',
    'is_backprop_required', 'is_backprop_required_after_stop',
]
