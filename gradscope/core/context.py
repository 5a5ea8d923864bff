import logging
import threading

from gradscope.core.graph import DEFAULT_GRAPH_ID

logger = logging.getLogger(__name__)


class Context:
    """Owner of one backprop mode stack and its default policy.

    Contexts are independent: scopes pushed on one never affect resolution on
    another. The stack itself is not locked; a context shared between threads
    must be serialized by the caller.
    """

    def __init__(self, name="native", default_graph_id=DEFAULT_GRAPH_ID, backprop_default=True):
        self.name = name
        self.default_graph_id = default_graph_id
        self.backprop_default = bool(backprop_default)
        self._backprop_mode_stack = []

    @property
    def backprop_mode_stack(self):
        return self._backprop_mode_stack

    def __repr__(self):
        return (f"Context(name={self.name!r}, default_graph_id={self.default_graph_id!r}, "
                f"depth={len(self._backprop_mode_stack)})")


_local = threading.local()


def get_default_context():
    context = getattr(_local, 'context', None)
    if context is None:
        context = Context()
        _local.context = context
        logger.debug("Created default context %r for thread %s", context, threading.current_thread().name)
    return context


def set_default_context(context):
    """Replace the calling thread's default context.

    Passing None drops it; the next lookup creates a fresh one.
    """
    if context is not None and not isinstance(context, Context):
        raise TypeError(f"Expected a Context or None, but got {type(context)}")
    _local.context = context
    logger.debug("Default context set to %r", context)


class _ContextScope:
    def __init__(self, context):
        if not isinstance(context, Context):
            raise TypeError(f"Expected a Context, but got {type(context)}")
        self.context = context
        self.prev = None

    def __enter__(self):
        self.prev = getattr(_local, 'context', None)
        set_default_context(self.context)
        return self.context

    def __exit__(self, exc_type, exc_val, exc_tb):
        set_default_context(self.prev)
        return False


def context_scope(context):
    """Context manager that makes `context` the default context inside its scope."""
    return _ContextScope(context)
