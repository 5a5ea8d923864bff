"""
Test helpers for backprop mode tests, including PyTorch grad-mode references.
"""

import contextlib

import numpy as np
import torch

from gradscope.core.array import Array
from gradscope.core.backprop_mode import force_backprop_mode, no_backprop_mode
from gradscope.core.context import Context


def fresh_context(**kwargs):
    """Build an isolated context so tests never share a mode stack."""
    return Context(name="test", **kwargs)


def make_array(graph_ids, context, shape=(2,)):
    """Array of random data attached to the given graphs."""
    return Array(np.random.randn(*shape), context=context, graph_ids=graph_ids)


def stack_snapshot(context):
    """Copy of the stack as (graph_id, backprop) pairs, plus the records themselves."""
    stack = context.backprop_mode_stack
    return [(mode.graph_id, mode.backprop) for mode in stack], list(stack)


def assert_stack_unchanged(context, snapshot):
    described, records = stack_snapshot(context)
    expected_described, expected_records = snapshot
    assert described == expected_described
    assert len(records) == len(expected_records)
    assert all(a is b for a, b in zip(records, expected_records))


def enter_nested(modes, context):
    """Enter a sequence of all-graph scopes on `context` and the matching torch modes.

    `modes` is a list of booleans: True for force_backprop_mode / torch.enable_grad,
    False for no_backprop_mode / torch.no_grad. Returns an ExitStack holding both.
    """
    stack = contextlib.ExitStack()
    for enabled in modes:
        if enabled:
            stack.enter_context(force_backprop_mode(context=context))
            stack.enter_context(torch.enable_grad())
        else:
            stack.enter_context(no_backprop_mode(context=context))
            stack.enter_context(torch.no_grad())
    return stack
