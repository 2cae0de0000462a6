# -*- coding: utf-8 -*-
"""
Tests for uor.core.operators - Operator contract enforcement, retries,
and the base operator set.

Author
------
UOR Engine contributors

Created
-------
2026-10-16
"""

from unittest.mock import patch

import numpy as np
import pytest

from uor.core.contracts import PayloadType
from uor.core.errors import ComputeError, ShapeMismatch
from uor.core.operators import (
    Add,
    Const,
    FunctionOperator,
    Mean,
    Multiply,
    Operator,
    RetryPolicy,
    Scale,
    Stack,
)


class _Flaky(Operator):
    """Fails with ComputeError a fixed number of times, then succeeds."""

    name = "flaky"

    def __init__(self, failures):
        self.failures = failures
        self.calls = 0

    def apply(self, inputs):
        self.calls += 1
        if self.calls <= self.failures:
            raise ComputeError("transient")
        return self.calls


# ---------------------------------------------------------------------------
# Operator.invoke
# ---------------------------------------------------------------------------

class TestInvoke:
    def test_arity_checked_before_apply(self):
        op = Scale()
        with pytest.raises(ShapeMismatch, match="expected 1 input"):
            op.invoke((1, 2), {'factor': 2})

    def test_input_type_checked(self):
        with pytest.raises(ShapeMismatch, match="input 1 must be numeric"):
            Add().invoke((1, 'x'), {})

    def test_output_type_checked(self):
        op = FunctionOperator(lambda inputs: 'text', name='bad',
                              output_type=PayloadType.NUMBER)
        with pytest.raises(ShapeMismatch, match="output must be number"):
            op.invoke((), {})

    def test_foreign_exception_becomes_compute_error(self):
        def explode(inputs):
            raise ZeroDivisionError("division by zero")

        op = FunctionOperator(explode, name='explode')
        with pytest.raises(ComputeError, match="ZeroDivisionError") as e:
            op.invoke((), {})
        assert isinstance(e.value.__cause__, ZeroDivisionError)

    def test_operator_errors_pass_through(self):
        def mismatch(inputs):
            raise ShapeMismatch("wrong")

        with pytest.raises(ShapeMismatch, match="wrong"):
            FunctionOperator(mismatch, name='m').invoke((), {})


class TestRetryPolicy:
    def test_delays(self):
        policy = RetryPolicy(max_attempts=4, backoff=0.5, multiplier=2.0)
        assert policy.delays() == (0.5, 1.0, 2.0)

    def test_invalid_attempts(self):
        with pytest.raises(ValueError):
            RetryPolicy(max_attempts=0)

    def test_retry_until_success(self):
        op = _Flaky(failures=2)
        op.retry = RetryPolicy(max_attempts=3)
        with patch('uor.core.operators.time.sleep') as sleep:
            assert op.invoke((), {}) == 3
        assert sleep.call_count == 2

    def test_retry_exhausted(self):
        op = _Flaky(failures=5)
        op.retry = RetryPolicy(max_attempts=2)
        with patch('uor.core.operators.time.sleep'):
            with pytest.raises(ComputeError, match="transient"):
                op.invoke((), {})
        assert op.calls == 2

    def test_no_policy_means_single_attempt(self):
        op = _Flaky(failures=1)
        with pytest.raises(ComputeError):
            op.invoke((), {})
        assert op.calls == 1

    def test_shape_mismatch_not_retried(self):
        calls = []

        def mismatch(inputs):
            calls.append(1)
            raise ShapeMismatch("never transient")

        op = FunctionOperator(mismatch, name='m', retry=RetryPolicy(3))
        with pytest.raises(ShapeMismatch):
            op.invoke((), {})
        assert len(calls) == 1


# ---------------------------------------------------------------------------
# FunctionOperator
# ---------------------------------------------------------------------------

class TestFunctionOperator:
    def test_contract_attributes(self):
        def double(inputs):
            """Double the input."""
            return inputs[0] * 2

        op = FunctionOperator(double, arity=1, deterministic=False)
        assert op.name == 'double'
        assert op.contract.arity == 1
        assert op.deterministic is False
        assert op.__doc__ == "Double the input."
        assert op([4]) == 8

    def test_unknown_attribute_rejected(self):
        with pytest.raises(TypeError, match="colour"):
            FunctionOperator(lambda inputs: None, name='x', colour='red')

    def test_reserved_attribute_rejected(self):
        with pytest.raises(TypeError, match="apply"):
            FunctionOperator(lambda inputs: None, name='x', apply=None)


# ---------------------------------------------------------------------------
# Base operators
# ---------------------------------------------------------------------------

class TestBaseOperators:
    def test_const(self):
        assert Const().invoke((), {'value': 'anything'}) == 'anything'

    def test_add_numbers(self):
        assert Add().invoke((5, 7), {}) == 12

    def test_add_arrays(self):
        result = Add().invoke((np.ones(3), np.ones(3)), {})
        np.testing.assert_array_equal(result, np.full(3, 2.0))

    def test_add_incompatible_shapes(self):
        with pytest.raises(ShapeMismatch, match="incompatible"):
            Add().invoke((np.ones(3), np.ones(4)), {})

    def test_add_requires_input(self):
        with pytest.raises(ShapeMismatch):
            Add().invoke((), {})

    def test_multiply(self):
        assert Multiply().invoke((2, 3, 4), {}) == 24

    def test_scale(self):
        assert Scale().invoke((3,), {'factor': 2.5}) == 7.5

    def test_stack(self):
        result = Stack().invoke((np.zeros(2), np.ones(2)), {})
        assert result.shape == (2, 2)

    def test_stack_mismatched(self):
        with pytest.raises(ShapeMismatch):
            Stack().invoke((np.zeros(2), np.ones(3)), {})

    def test_mean_over_all_inputs(self):
        assert Mean().invoke((1, np.array([2.0, 3.0])), {}) == 2.0

    def test_mean_axis(self):
        result = Mean().invoke((np.array([[1.0, 3.0], [3.0, 5.0]]),),
                               {'axis': 0})
        np.testing.assert_array_equal(result, [2.0, 4.0])

    def test_mean_axis_needs_single_input(self):
        with pytest.raises(ShapeMismatch, match="exactly one"):
            Mean().invoke((1, 2), {'axis': 0})
