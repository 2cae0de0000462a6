# -*- coding: utf-8 -*-
"""
Tests for uor.core.stack - CognitiveStack composition over manifold
versions.

Author
------
UOR Engine contributors

Created
-------
2026-10-16
"""

import numpy as np
import pytest

from uor.core.config import EngineConfig
from uor.core.cortex import MemoryCortex, QuaternionEmbedding
from uor.core.errors import ExecutionError, StackError, UnknownOperatorError
from uor.core.kernel import LinearKernel
from uor.core.manifold import NodeStatus
from uor.core.operators import Add, FunctionOperator
from uor.core.registry import default_registry
from uor.core.stack import CognitiveStack, Stage


def _inc():
    return FunctionOperator(lambda inputs: inputs[0] + 1, name='inc')


def _two_stage(**kwargs):
    stack = CognitiveStack(default_registry(), **kwargs)
    stack.add_stage(Stage('seed', 'scale', inputs=['x'],
                          params={'factor': 2}))
    stack.add_stage(Stage('inc', _inc()))
    return stack


class TestStages:
    def test_run_two_stages(self):
        result = _two_stage().run(bindings={'x': 3})
        assert result.output == 7
        assert result.output_node == 'inc'
        assert [m.version for m in result.history] == [2, 3]
        assert result.manifold is result.history[-1]

    def test_each_version_keeps_prior_untouched(self):
        result = _two_stage().run(bindings={'x': 3})
        first, second = result.history
        assert 'inc' not in first
        assert first.payload('seed') == 6
        assert second.parent == first.version

    def test_deterministic_payloads_carried(self):
        stack = _two_stage()
        stack.run(bindings={'x': 3})
        assert stack.scheduler.last_report.dispatched == 1

    def test_nondeterministic_stage_recomputed(self):
        calls = []

        def sample(inputs):
            calls.append(1)
            return float(len(calls))

        stack = CognitiveStack(default_registry())
        stack.add_stage(Stage('sample', FunctionOperator(
            sample, name='sample', deterministic=False)))
        stack.add_stage(Stage('same', 'identity'))
        result = stack.run()
        assert len(calls) == 2
        assert result.output == 2.0

    def test_registry_not_modified(self):
        registry = default_registry()
        stack = CognitiveStack(registry)
        stack.add_stage(Stage('inc', _inc()))
        assert 'inc' not in registry

    def test_name_conflict_gets_stage_prefix(self):
        stack = CognitiveStack(default_registry())
        stack.add_stage(Stage('c', 'const', params={'value': 1}))
        stack.add_stage(Stage('plus', Add()))
        assert stack.stages[1].operator == 'plus:add'
        assert stack.run().output == 1

    def test_stage_object_not_modified(self):
        op = _inc()
        stage = Stage('inc', op)
        first = CognitiveStack(default_registry())
        first.add_stage(Stage('c', 'const', params={'value': 1}))
        first.add_stage(stage)
        assert stage.operator is op
        assert first.stages[1].operator == 'inc'

        second = CognitiveStack(default_registry())
        second.add_stage(Stage('c', 'const', params={'value': 4}))
        second.add_stage(stage)
        assert second.run().output == 5

    def test_unknown_operator_name(self):
        stack = CognitiveStack(default_registry())
        with pytest.raises(UnknownOperatorError):
            stack.add_stage(Stage('x', 'no_such_operator'))

    def test_bad_operator_type(self):
        stack = CognitiveStack(default_registry())
        with pytest.raises(StackError, match="name or an Operator"):
            stack.add_stage(Stage('x', 42))

    def test_stage_limit(self):
        stack = CognitiveStack(default_registry(),
                               config=EngineConfig(max_stages=2))
        stack.add_stage(Stage('a', 'const', params={'value': 1}))
        stack.add_stage(Stage('b', 'identity'))
        with pytest.raises(StackError, match="at most 2"):
            stack.add_stage(Stage('c', 'identity'))

    def test_default_limit_is_twelve(self):
        stack = CognitiveStack(default_registry())
        stack.add_stage(Stage('s0', 'const', params={'value': 0}))
        for i in range(1, 12):
            stack.add_stage(Stage(f's{i}', 'identity'))
        with pytest.raises(StackError):
            stack.add_stage(Stage('s12', 'identity'))
        stack.set_kernel(LinearKernel(1, seed=0))
        assert len(stack.stages) == 13

    def test_duplicate_node_id(self):
        stack = CognitiveStack(default_registry())
        stack.add_stage(Stage('a', 'const', params={'value': 1}))
        with pytest.raises(StackError, match="already used"):
            stack.add_stage(Stage('b', 'identity', node_id='a'))

    def test_empty_stack(self):
        with pytest.raises(StackError, match="no stages"):
            CognitiveStack(default_registry()).run()


class TestKernelSlot:
    def test_kernel_is_last(self):
        kernel = LinearKernel(1, seed=0)
        stack = _two_stage()
        stack.set_kernel(kernel)
        result = stack.run(bindings={'x': 3})
        assert result.output_node == 'kernel'
        np.testing.assert_allclose(result.output, kernel.forward((7,)))
        assert [s.name for s in stack.stages] == ['seed', 'inc', 'kernel']

    def test_kernel_rerun_each_turn(self):
        kernel = LinearKernel(1, seed=0)
        stack = _two_stage()
        stack.set_kernel(kernel)
        first = stack.run(bindings={'x': 1})
        kernel.update((3,), 0.0)
        second = stack.run(first.manifold)
        np.testing.assert_allclose(second.output, kernel.forward((3,)))
        assert not np.allclose(first.output, second.output)

    def test_replace_kernel(self):
        stack = _two_stage()
        stack.set_kernel(LinearKernel(1, seed=0))
        replacement = LinearKernel(1, seed=1)
        stack.set_kernel(replacement)
        assert len(stack.stages) == 3
        result = stack.run(bindings={'x': 0})
        np.testing.assert_allclose(result.output, replacement.forward((1,)))

    def test_kernel_inputs(self):
        kernel = LinearKernel(2, seed=0)
        stack = _two_stage()
        stack.set_kernel(kernel, inputs=['seed', 'inc'], node_id='head')
        result = stack.run(bindings={'x': 1})
        assert result.output_node == 'head'
        np.testing.assert_allclose(result.output, kernel.forward((2, 3)))


class TestFailures:
    def test_failing_stage_halts(self):
        def boom(inputs):
            raise RuntimeError("boom")

        stack = _two_stage()
        stack.add_stage(Stage('boom', FunctionOperator(boom, name='boom')))
        stack.add_stage(Stage('after', 'identity'))
        with pytest.raises(ExecutionError) as exc_info:
            stack.run(bindings={'x': 1})
        err = exc_info.value
        assert err.stage == 'boom'
        assert 'after' not in err.manifold
        assert err.manifold.status('boom') is NodeStatus.FAILED

    def test_rerun_with_array_params(self):
        stack = CognitiveStack(default_registry())
        stack.add_stage(Stage('src', 'const',
                              params={'value': np.arange(3.0)}))
        stack.add_stage(Stage('double', 'scale', params={'factor': 2.0}))
        first = stack.run()
        second = stack.run(first.manifold)
        np.testing.assert_array_equal(second.output, [0.0, 2.0, 4.0])
        assert stack.scheduler.last_report.dispatched == 0

    def test_rerun_with_changed_array_param(self):
        stack = CognitiveStack(default_registry())
        stack.add_stage(Stage('src', 'const',
                              params={'value': np.arange(3.0)}))
        first = stack.run()
        other = CognitiveStack(default_registry())
        other.add_stage(Stage('src', 'const',
                              params={'value': np.ones(3)}))
        with pytest.raises(StackError, match="different definition"):
            other.run(first.manifold)

    def test_rerun_with_changed_stage_definition(self):
        stack = _two_stage()
        result = stack.run(bindings={'x': 1})
        other = CognitiveStack(default_registry())
        other.add_stage(Stage('seed', 'scale', inputs=['x'],
                              params={'factor': 5}))
        with pytest.raises(StackError, match="different definition"):
            other.run(result.manifold)


class TestMemory:
    def test_embedding_creates_cortex(self):
        stack = _two_stage(embedding=QuaternionEmbedding())
        result = stack.run(bindings={'x': 1})
        assert isinstance(stack.cortex, MemoryCortex)
        assert result.embedding.shape == (1, 4)
        np.testing.assert_allclose(np.linalg.norm(result.embedding), 1.0)

    def test_cortex_only_links(self):
        cortex = MemoryCortex(size=4)
        stack = _two_stage(cortex=cortex)
        result = stack.run(bindings={'x': 1})
        assert result.embedding is None
        np.testing.assert_array_equal(cortex.values(), [1.0, 2.0, 3.0])

    def test_turns_accumulate_in_cortex(self):
        cortex = MemoryCortex(size=4)
        stack = _two_stage(cortex=cortex)
        first = stack.run(bindings={'x': 1})
        stack.run(first.manifold)
        np.testing.assert_array_equal(cortex.values(), [2.0, 4.0, 6.0])

    def test_complex_stage_output(self):
        stack = CognitiveStack(default_registry(),
                               embedding=QuaternionEmbedding())
        stack.add_stage(Stage('z', 'const', params={'value': 3 + 4j}))
        result = stack.run()
        assert result.output == 3 + 4j
        np.testing.assert_allclose(stack.cortex.values(), [5.0])
