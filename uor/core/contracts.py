# -*- coding: utf-8 -*-
"""
Operator Contracts - Payload types and declared operator signatures.

Defines the controlled vocabulary of payload types that operators declare
for their inputs and output, and the OperatorContract that bundles arity,
types, required parameters, and cacheability. The scheduler checks every
invocation against its operator's contract.

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
from collections.abc import Mapping, Sequence
from enum import Enum
from numbers import Integral, Number
from typing import Any, Optional, Tuple

# Third-party
import numpy as np


class PayloadType(Enum):
    """Payload types an operator may declare."""

    ANY = "any"
    NUMBER = "number"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    TEXT = "text"
    ARRAY = "array"
    SEQUENCE = "sequence"
    MAPPING = "mapping"
    NUMERIC = "numeric"

    def accepts(self, value: Any) -> bool:
        """Whether ``value`` satisfies this payload type.

        ``NUMERIC`` accepts numbers and numeric numpy arrays alike. Booleans
        are not numbers here.
        """
        if self is PayloadType.ANY:
            return True
        if self is PayloadType.BOOLEAN:
            return isinstance(value, (bool, np.bool_))
        if isinstance(value, (bool, np.bool_)):
            return False
        if self is PayloadType.NUMBER:
            return isinstance(value, Number)
        if self is PayloadType.INTEGER:
            return isinstance(value, Integral)
        if self is PayloadType.TEXT:
            return isinstance(value, str)
        if self is PayloadType.ARRAY:
            return isinstance(value, np.ndarray)
        if self is PayloadType.NUMERIC:
            if isinstance(value, np.ndarray):
                return np.issubdtype(value.dtype, np.number)
            return isinstance(value, Number)
        if self is PayloadType.SEQUENCE:
            return (isinstance(value, Sequence)
                    and not isinstance(value, (str, bytes)))
        if self is PayloadType.MAPPING:
            return isinstance(value, Mapping)
        return False


class OperatorContract:
    """Declared input/output signature of an operator.

    Parameters
    ----------
    arity : Optional[int]
        Exact number of inputs, or None for variadic operators.
    input_types : Tuple[PayloadType, ...]
        Per-position input types. A single entry applies to every input
        of a variadic operator. Empty means ANY.
    output_type : PayloadType
        Type of the success payload.
    required_params : Tuple[str, ...]
        Parameter names every chart node using this operator must set.
    deterministic : bool
        Whether results may be cached and replayed.
    terminal : bool
        Whether nodes using this operator must have no dependents.
    """

    def __init__(
        self,
        arity: Optional[int] = None,
        input_types: Tuple[PayloadType, ...] = (),
        output_type: PayloadType = PayloadType.ANY,
        required_params: Tuple[str, ...] = (),
        deterministic: bool = True,
        terminal: bool = False,
    ) -> None:
        self.arity = arity
        self.input_types = tuple(input_types)
        self.output_type = output_type
        self.required_params = tuple(required_params)
        self.deterministic = deterministic
        self.terminal = terminal

    def input_type(self, position: int) -> PayloadType:
        """Declared type of the input at ``position``."""
        if not self.input_types:
            return PayloadType.ANY
        if position < len(self.input_types):
            return self.input_types[position]
        return self.input_types[-1]

    def check_inputs(self, inputs: Tuple[Any, ...]) -> Optional[str]:
        """Return a description of the first violation, or None.

        Parameters
        ----------
        inputs : Tuple[Any, ...]

        Returns
        -------
        Optional[str]
        """
        if self.arity is not None and len(inputs) != self.arity:
            return f"expected {self.arity} input(s), got {len(inputs)}"
        for i, value in enumerate(inputs):
            expected = self.input_type(i)
            if not expected.accepts(value):
                return (
                    f"input {i} must be {expected.value}, "
                    f"got {type(value).__name__}"
                )
        return None

    def check_output(self, value: Any) -> Optional[str]:
        """Return a description of an output violation, or None."""
        if not self.output_type.accepts(value):
            return (
                f"output must be {self.output_type.value}, "
                f"got {type(value).__name__}"
            )
        return None

    def missing_params(self, params: Mapping) -> Tuple[str, ...]:
        """Required parameter names absent from ``params``."""
        return tuple(p for p in self.required_params if p not in params)

    def to_dict(self) -> dict:
        """Serialize to dictionary.

        Returns
        -------
        dict
            Dictionary representation with enum values as strings.
        """
        return {
            'arity': self.arity,
            'input_types': [t.value for t in self.input_types],
            'output_type': self.output_type.value,
            'required_params': list(self.required_params),
            'deterministic': self.deterministic,
            'terminal': self.terminal,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'OperatorContract':
        """Deserialize from dictionary.

        Parameters
        ----------
        data : dict

        Returns
        -------
        OperatorContract
        """
        return cls(
            arity=data.get('arity'),
            input_types=tuple(
                PayloadType(t) for t in data.get('input_types', [])
            ),
            output_type=PayloadType(data.get('output_type', 'any')),
            required_params=tuple(data.get('required_params', [])),
            deterministic=data.get('deterministic', True),
            terminal=data.get('terminal', False),
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, OperatorContract):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        return f"OperatorContract({self.to_dict()!r})"
