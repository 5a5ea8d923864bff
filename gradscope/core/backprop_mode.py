"""Scoped control over whether backprop is recorded, per computation graph.

Scopes push ``BackpropMode`` records onto the stack of a ``Context`` and pop
them on exit. Resolution walks that stack from the top: the most recent record
that covers a graph decides for it, and the context's default policy applies
when no record does.

Example:
    >>> with no_backprop_mode():
    ...     with force_backprop_mode(['main']):
    ...         is_backprop_required('main'), is_backprop_required('aux')
    (True, False)
"""

import enum
import functools
import logging

from gradscope.core.array import Array
from gradscope.core.context import get_default_context
from gradscope.core.graph import as_graph_id_list

logger = logging.getLogger(__name__)


class BackpropModeError(RuntimeError):
    """Raised when a backprop mode scope is exited out of nesting order."""


class Polarity(enum.Enum):
    DISABLE = False
    ENABLE = True


class BackpropMode:
    """One record on a context's backprop mode stack.

    A ``graph_id`` of None covers every graph of the context.
    """
    __slots__ = ('_context', '_graph_id', '_polarity')

    def __init__(self, context, graph_id, polarity):
        if graph_id is not None:
            hash(graph_id)
        self._context = context
        self._graph_id = graph_id
        self._polarity = Polarity(polarity)

    @property
    def context(self):
        return self._context

    @property
    def graph_id(self):
        return self._graph_id

    @property
    def polarity(self):
        return self._polarity

    @property
    def backprop(self):
        return self._polarity.value

    def applies_to(self, graph_id):
        return self._graph_id is None or self._graph_id == graph_id

    def __repr__(self):
        return f"BackpropMode(graph_id={self._graph_id!r}, polarity={self._polarity.name})"


class BackpropModeScope:
    """Context manager / decorator that sets the backprop mode inside its scope.

    Without graph ids a single record covering all graphs is pushed; otherwise
    one record per graph id, duplicates included. An empty list of graph ids
    pushes nothing. The scope pops exactly what it pushed when it exits,
    whether the body returns or raises.

    Scopes must exit in the reverse order they were entered. A scope cannot be
    copied or re-entered while active; create a new one instead.

    Args:
        polarity (Polarity or bool): ENABLE to force backprop, DISABLE to stop it.
        graph_ids (iterable, optional): graphs the mode applies to.
        context (Context, optional): context whose stack is used. Defaults to
            the current default context at the time the scope is entered.
    """

    def __init__(self, polarity, graph_ids=None, context=None):
        self.polarity = Polarity(polarity)
        self.graph_ids = None if graph_ids is None else as_graph_id_list(graph_ids)
        self.context = context
        self.is_outermost = False
        self._active_context = None
        self._start = 0
        self._records = None

    @property
    def active(self):
        return self._records is not None

    def __enter__(self):
        if self.active:
            raise RuntimeError("BackpropModeScope is already active; use a new scope for nested regions")
        context = self.context if self.context is not None else get_default_context()
        stack = context.backprop_mode_stack
        start = len(stack)
        targets = [None] if self.graph_ids is None else self.graph_ids
        try:
            for graph_id in targets:
                stack.append(BackpropMode(context, graph_id, self.polarity))
        except BaseException:
            logger.debug("Rolling back %d backprop mode(s) after failed push", len(stack) - start)
            del stack[start:]
            raise

        self._active_context = context
        self._start = start
        self._records = stack[start:]
        self.is_outermost = start == 0
        logger.debug("Pushed %d %s mode(s) for graphs %s on %r",
                     len(self._records), self.polarity.name, targets, context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if not self.active:
            raise BackpropModeError("BackpropModeScope exited without being entered")
        stack = self._active_context.backprop_mode_stack
        top = stack[self._start:]
        if len(top) != len(self._records) or any(a is not b for a, b in zip(top, self._records)):
            raise BackpropModeError(
                f"BackpropModeScope exited out of order: expected its {len(self._records)} mode(s) "
                f"at stack position {self._start}, found {len(top)} mode(s) there"
            )
        del stack[self._start:]
        logger.debug("Popped %d %s mode(s) from %r", len(self._records), self.polarity.name, self._active_context)
        self._records = None
        self._active_context = None
        return False

    def __call__(self, func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            with BackpropModeScope(self.polarity, self.graph_ids, self.context):
                return func(*args, **kwargs)
        return wrapper

    def __copy__(self):
        raise TypeError("BackpropModeScope cannot be copied")

    def __deepcopy__(self, memo):
        raise TypeError("BackpropModeScope cannot be copied")

    def __reduce_ex__(self, protocol):
        raise TypeError("BackpropModeScope cannot be pickled")


def no_backprop_mode(graph_ids=None, context=None):
    """Context manager that disables backprop for the given graphs (all graphs if omitted)."""
    return BackpropModeScope(Polarity.DISABLE, graph_ids, context)


def force_backprop_mode(graph_ids=None, context=None):
    """Context manager that forces backprop for the given graphs (all graphs if omitted)."""
    return BackpropModeScope(Polarity.ENABLE, graph_ids, context)


def is_backprop_required(graph_id=None, context=None):
    """Return whether backprop is currently required.

    Accepts either a graph id or an ``Array``. For a graph id, the most recent
    mode on the stack that covers it decides; with no such mode the context's
    ``backprop_default`` is returned. For an array, backprop is required if it
    is required for at least one of the array's graphs.

    Args:
        graph_id: graph id or Array. Defaults to the context's default graph.
        context (Context, optional): defaults to the current default context,
            or to the array's context for an Array.
    """
    if isinstance(graph_id, Array):
        array = graph_id
        context = context if context is not None else array.context
        return any(is_backprop_required(node.graph_id, context) for node in array.nodes)

    if context is None:
        context = get_default_context()
    if graph_id is None:
        graph_id = context.default_graph_id
    for mode in reversed(context.backprop_mode_stack):
        if mode.applies_to(graph_id):
            return mode.backprop
    return context.backprop_default


def is_backprop_required_after_stop(array, stop_graph_ids, context=None):
    """Return whether the array requires backprop on a graph outside ``stop_graph_ids``."""
    stop = set(as_graph_id_list(stop_graph_ids))
    context = context if context is not None else array.context
    return any(
        is_backprop_required(node.graph_id, context)
        for node in array.nodes
        if node.graph_id not in stop
    )
