# -*- coding: utf-8 -*-
"""
Operators - Named transformations with declared input/output contracts.

An operator receives the payloads of a node's dependencies, in dependency
order, plus the node's parameters, and returns a single payload. Operators
are pure by default; those backed by external or learned state declare
``deterministic = False`` so their results are never cached or carried
over between stages.

Dependencies
------------
numpy

Author
------
UOR Engine contributors

License
-------
MIT License
Copyright (c) 2026 UOR Engine contributors
See LICENSE file for full text.

Created
-------
2026-10-16

Modified
--------
2026-10-16
"""

# Standard library
import functools
import logging
import operator as _op
import time
from typing import Any, Callable, Optional, Sequence, Tuple

# Third-party
import numpy as np

# UOR internal
from uor.core.contracts import OperatorContract, PayloadType
from uor.core.errors import ComputeError, OperatorError, ShapeMismatch

logger = logging.getLogger(__name__)


class RetryPolicy:
    """Bounded retry with exponential backoff for ComputeError failures.

    Parameters
    ----------
    max_attempts : int
        Total attempts including the first. Must be >= 1.
    backoff : float
        Delay in seconds before the second attempt.
    multiplier : float
        Factor applied to the delay after each failed attempt.
    """

    def __init__(
        self,
        max_attempts: int = 3,
        backoff: float = 0.0,
        multiplier: float = 2.0,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.backoff = backoff
        self.multiplier = multiplier

    def delays(self) -> Tuple[float, ...]:
        """Sleep durations between consecutive attempts."""
        return tuple(
            self.backoff * self.multiplier ** i
            for i in range(self.max_attempts - 1)
        )


class Operator:
    """Base class for operators.

    Subclasses set the class attributes describing their contract and
    implement :meth:`apply`.

    Attributes
    ----------
    name : str
        Registry name.
    category : Optional[str]
        Free-form grouping used by registry filtering.
    arity : Optional[int]
        Exact input count, None for variadic.
    input_types : Tuple[PayloadType, ...]
    output_type : PayloadType
    required_params : Tuple[str, ...]
    deterministic : bool
    terminal : bool
    timeout : Optional[float]
        Per-invocation limit in seconds, overriding the scheduler default.
    retry : Optional[RetryPolicy]
    """

    name: str = ""
    category: Optional[str] = None
    arity: Optional[int] = None
    input_types: Tuple[PayloadType, ...] = ()
    output_type: PayloadType = PayloadType.ANY
    required_params: Tuple[str, ...] = ()
    deterministic: bool = True
    terminal: bool = False
    timeout: Optional[float] = None
    retry: Optional[RetryPolicy] = None

    @property
    def contract(self) -> OperatorContract:
        """The declared contract of this operator."""
        return OperatorContract(
            arity=self.arity,
            input_types=self.input_types,
            output_type=self.output_type,
            required_params=self.required_params,
            deterministic=self.deterministic,
            terminal=self.terminal,
        )

    def cache_token(self) -> str:
        """Identity of this operator's instance state for result caching.

        Two operators with equal tokens must compute equal payloads for
        equal params and inputs. The default is the instance identity;
        subclasses whose state is fully described by their attributes
        may return a value-based token so results are shared across
        registries.
        """
        return f"{id(self):x}"

    def apply(self, inputs: Sequence[Any], **params: Any) -> Any:
        """Compute the node payload.

        Parameters
        ----------
        inputs : Sequence[Any]
            Dependency payloads in dependency order. Read-only.
        **params
            Node parameters.

        Returns
        -------
        Any

        Raises
        ------
        ShapeMismatch, ComputeError
        """
        raise NotImplementedError

    def invoke(self, inputs: Sequence[Any], params: dict) -> Any:
        """Check the contract, apply, and normalize failures.

        Applies the retry policy, if any. Exceptions other than
        OperatorError escaping :meth:`apply` become ComputeError.
        """
        inputs = tuple(inputs)
        contract = self.contract
        problem = contract.check_inputs(inputs)
        if problem:
            raise ShapeMismatch(f"{self.name}: {problem}")

        delays = self.retry.delays() if self.retry else ()
        attempt = 0
        while True:
            try:
                result = self._apply_once(inputs, params)
                break
            except ComputeError as e:
                if attempt >= len(delays):
                    raise
                logger.info(
                    "Retrying %s after failure (attempt %d): %s",
                    self.name, attempt + 1, e,
                )
                time.sleep(delays[attempt])
                attempt += 1

        problem = contract.check_output(result)
        if problem:
            raise ShapeMismatch(f"{self.name}: {problem}")
        return result

    def _apply_once(self, inputs: Tuple[Any, ...], params: dict) -> Any:
        try:
            return self.apply(inputs, **params)
        except OperatorError:
            raise
        except Exception as e:
            raise ComputeError(
                f"{self.name} failed: {type(e).__name__}: {e}"
            ) from e

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r}>"


class FunctionOperator(Operator):
    """Operator backed by a plain callable ``func(inputs, **params)``.

    Parameters
    ----------
    func : Callable
    name : str
    **contract
        Any of the Operator contract attributes.
    """

    def __init__(self, func: Callable, name: str = "", **contract: Any) -> None:
        self._func = func
        self.name = name or func.__name__
        for key, value in contract.items():
            if (not hasattr(Operator, key)
                    or key in ('apply', 'invoke', 'contract')):
                raise TypeError(f"Unknown operator attribute '{key}'")
            setattr(self, key, value)
        functools.update_wrapper(self, func, updated=())

    def apply(self, inputs: Sequence[Any], **params: Any) -> Any:
        return self._func(inputs, **params)

    def __call__(self, inputs: Sequence[Any], **params: Any) -> Any:
        return self._func(inputs, **params)


# ---------------------------------------------------------------------------
# Base operators
# ---------------------------------------------------------------------------

class Const(Operator):
    """Emit the ``value`` parameter."""

    name = "const"
    category = "source"
    arity = 0
    required_params = ('value',)

    def apply(self, inputs, value=None):
        return value


class Identity(Operator):
    """Pass a single input through unchanged."""

    name = "identity"
    category = "structural"
    arity = 1

    def apply(self, inputs):
        return inputs[0]


class Add(Operator):
    """Sum of one or more numeric inputs (numbers or arrays)."""

    name = "add"
    category = "arithmetic"
    input_types = (PayloadType.NUMERIC,)
    output_type = PayloadType.NUMERIC

    def apply(self, inputs):
        if not inputs:
            raise ShapeMismatch("add: needs at least one input")
        try:
            return functools.reduce(_op.add, inputs)
        except ValueError as e:
            raise ShapeMismatch(f"add: incompatible shapes: {e}") from e


class Multiply(Operator):
    """Product of one or more numeric inputs (numbers or arrays)."""

    name = "multiply"
    category = "arithmetic"
    input_types = (PayloadType.NUMERIC,)
    output_type = PayloadType.NUMERIC

    def apply(self, inputs):
        if not inputs:
            raise ShapeMismatch("multiply: needs at least one input")
        try:
            return functools.reduce(_op.mul, inputs)
        except ValueError as e:
            raise ShapeMismatch(f"multiply: incompatible shapes: {e}") from e


class Scale(Operator):
    """Multiply a single numeric input by the ``factor`` parameter."""

    name = "scale"
    category = "arithmetic"
    arity = 1
    input_types = (PayloadType.NUMERIC,)
    output_type = PayloadType.NUMERIC
    required_params = ('factor',)

    def apply(self, inputs, factor=1.0):
        return inputs[0] * factor


class Stack(Operator):
    """Stack equally-shaped numeric inputs along a new leading axis."""

    name = "stack"
    category = "structural"
    input_types = (PayloadType.NUMERIC,)
    output_type = PayloadType.ARRAY

    def apply(self, inputs, axis=0):
        if not inputs:
            raise ShapeMismatch("stack: needs at least one input")
        try:
            return np.stack([np.asarray(x) for x in inputs], axis=axis)
        except ValueError as e:
            raise ShapeMismatch(f"stack: {e}") from e


class Mean(Operator):
    """Mean over all elements of all inputs, or along ``axis`` of one."""

    name = "mean"
    category = "reduction"
    input_types = (PayloadType.NUMERIC,)
    output_type = PayloadType.NUMERIC

    def apply(self, inputs, axis=None):
        if not inputs:
            raise ShapeMismatch("mean: needs at least one input")
        if axis is not None:
            if len(inputs) != 1:
                raise ShapeMismatch("mean: 'axis' requires exactly one input")
            return np.mean(np.asarray(inputs[0]), axis=axis)
        flat = np.concatenate([np.ravel(np.asarray(x)) for x in inputs])
        return float(np.mean(flat))


BASE_OPERATORS: Tuple[type, ...] = (
    Const, Identity, Add, Multiply, Scale, Stack, Mean,
)
