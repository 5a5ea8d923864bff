import numpy as np

from gradscope.core.context import get_default_context
from gradscope.core.graph import ArrayNode, as_graph_id_list

_DEFAULT_DTYPE = np.float32


def get_default_dtype():
    return _DEFAULT_DTYPE


def set_default_dtype(dtype):
    global _DEFAULT_DTYPE
    _DEFAULT_DTYPE = np.dtype(dtype).type


class Array:
    """numpy-backed value that may take part in several computation graphs.

    Each graph the array participates in is recorded as an ``ArrayNode``.
    Whether operations on the array should record gradients is decided by
    the backprop mode stack of the array's context, not by the array itself.
    """

    def __init__(self, data, dtype=None, context=None, graph_ids=()):
        if isinstance(data, Array):
            data = data.data
        if dtype is None:
            dtype = data.dtype if hasattr(data, 'dtype') else get_default_dtype()
        self.data = np.array(data, dtype=dtype)
        self.context = context if context is not None else get_default_context()
        self._nodes = []
        for graph_id in as_graph_id_list(graph_ids):
            self.require_grad(graph_id)

    @property
    def nodes(self):
        return tuple(self._nodes)

    @property
    def graph_ids(self):
        return [node.graph_id for node in self._nodes]

    @property
    def shape(self):
        return self.data.shape

    @property
    def dtype(self):
        return self.data.dtype

    def require_grad(self, graph_id=None):
        if graph_id is None:
            graph_id = self.context.default_graph_id
        if self.is_grad_required(graph_id):
            raise RuntimeError(f"Array already requires gradient on graph '{graph_id}'")
        self._nodes.append(ArrayNode(graph_id))
        return self

    def is_grad_required(self, graph_id=None):
        if graph_id is None:
            graph_id = self.context.default_graph_id
        return any(node.graph_id == graph_id for node in self._nodes)

    def as_grad_stopped(self, graph_ids=None):
        """Return an array sharing this data, detached from the given graphs.

        With no graph ids the result is detached from every graph.
        """
        out = Array.__new__(Array)
        out.data = self.data
        out.context = self.context
        if graph_ids is None:
            out._nodes = []
        else:
            stop = set(as_graph_id_list(graph_ids))
            out._nodes = [node for node in self._nodes if node.graph_id not in stop]
        return out

    def is_backprop_required(self):
        from gradscope.core.backprop_mode import is_backprop_required
        return is_backprop_required(self)

    def __repr__(self):
        return f"Array({self.data}, graph_ids={self.graph_ids})"
