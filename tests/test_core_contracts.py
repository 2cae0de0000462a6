# -*- coding: utf-8 -*-
"""
Tests for uor.core.contracts - PayloadType and OperatorContract.

Author
------
UOR Engine contributors

Created
-------
2026-10-16
"""

import numpy as np
import pytest

from uor.core.contracts import OperatorContract, PayloadType


class TestPayloadType:
    @pytest.mark.parametrize('value,expected', [
        (3, True),
        (2.5, True),
        (np.float32(1.0), True),
        (np.array([1, 2]), True),
        (True, False),
        ('3', False),
        (np.array(['a']), False),
    ])
    def test_numeric(self, value, expected):
        assert PayloadType.NUMERIC.accepts(value) is expected

    def test_any_accepts_everything(self):
        assert PayloadType.ANY.accepts(object())
        assert PayloadType.ANY.accepts(None)

    def test_boolean_is_not_integer(self):
        assert PayloadType.BOOLEAN.accepts(False)
        assert not PayloadType.INTEGER.accepts(False)
        assert PayloadType.INTEGER.accepts(4)

    def test_sequence_excludes_text(self):
        assert PayloadType.SEQUENCE.accepts([1, 2])
        assert not PayloadType.SEQUENCE.accepts('ab')

    def test_mapping_and_text(self):
        assert PayloadType.MAPPING.accepts({'a': 1})
        assert PayloadType.TEXT.accepts('x')
        assert not PayloadType.ARRAY.accepts([1, 2])


class TestOperatorContract:
    def test_arity_violation(self):
        contract = OperatorContract(arity=1)
        assert contract.check_inputs((1, 2)) == "expected 1 input(s), got 2"
        assert contract.check_inputs((1,)) is None

    def test_last_input_type_repeats(self):
        contract = OperatorContract(
            input_types=(PayloadType.TEXT, PayloadType.NUMERIC),
        )
        assert contract.input_type(0) is PayloadType.TEXT
        assert contract.input_type(5) is PayloadType.NUMERIC
        assert contract.check_inputs(('x', 1, 2.0)) is None
        problem = contract.check_inputs(('x', 1, 'y'))
        assert problem.startswith("input 2 must be numeric")

    def test_no_input_types_means_any(self):
        assert OperatorContract().input_type(3) is PayloadType.ANY

    def test_check_output(self):
        contract = OperatorContract(output_type=PayloadType.ARRAY)
        assert contract.check_output(np.zeros(2)) is None
        assert "output must be array" in contract.check_output(1.0)

    def test_missing_params(self):
        contract = OperatorContract(required_params=('factor', 'axis'))
        assert contract.missing_params({'axis': 0}) == ('factor',)

    def test_dict_round_trip(self):
        contract = OperatorContract(
            arity=2,
            input_types=(PayloadType.NUMERIC,),
            output_type=PayloadType.NUMBER,
            required_params=('k',),
            deterministic=False,
            terminal=True,
        )
        data = contract.to_dict()
        assert data['input_types'] == ['numeric']
        assert OperatorContract.from_dict(data) == contract
