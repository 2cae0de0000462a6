# -*- coding: utf-8 -*-
"""
Tests for uor.core.kernel - Kernels and the kernel operator.

Author
------
UOR Engine contributors

Created
-------
2026-10-16
"""

import numpy as np
import pytest

from uor.core.errors import BuildError, ShapeMismatch
from uor.core.kernel import (
    Kernel,
    KernelOperator,
    LinearKernel,
    MLPKernel,
    as_vector,
)
from uor.core.chart import NodeSpec
from uor.core.manifold import Manifold
from uor.core.registry import default_registry
from uor.core.scheduler import Scheduler


class TestAsVector:
    def test_flattens_and_concatenates(self):
        v = as_vector((1, np.array([[2, 3]]), True))
        np.testing.assert_array_equal(v, [1.0, 2.0, 3.0, 1.0])
        assert v.dtype == np.float64

    def test_empty(self):
        assert as_vector(()).size == 0

    def test_non_numeric(self):
        with pytest.raises(ShapeMismatch, match="input 1"):
            as_vector((1, 'two'))


class TestLinearKernel:
    def test_forward_shape(self):
        k = LinearKernel(in_features=3, out_features=2, seed=0)
        assert k.forward((np.ones(3),)).shape == (2,)

    def test_forward_wrong_size(self):
        k = LinearKernel(in_features=3, seed=0)
        with pytest.raises(ShapeMismatch, match="expects 3"):
            k.forward((1.0, 2.0))

    def test_seed_is_reproducible(self):
        a = LinearKernel(4, seed=7)
        b = LinearKernel(4, seed=7)
        np.testing.assert_array_equal(a.weight, b.weight)

    def test_update_reduces_loss(self):
        k = LinearKernel(in_features=2, learning_rate=0.1, seed=1)
        samples = [
            ((np.array([x, y]),), 2 * x - y)
            for x, y in [(0, 1), (1, 0), (1, 1), (2, 1), (0, 2)]
        ]
        first = k.fit(samples, epochs=1)
        last = k.fit(samples, epochs=200)
        assert last < first
        assert last < 1e-3
        assert k.version == 201 * len(samples)

    def test_update_returns_state(self):
        k = LinearKernel(in_features=1, seed=0)
        state = k.update((1.0,), 2.0)
        assert state['version'] == 1
        assert state['weight'].shape == (1, 1)
        assert k.last_loss is not None

    def test_state_round_trip(self):
        a = LinearKernel(in_features=2, seed=0)
        a.update((np.array([1.0, 2.0]),), 1.0)
        b = LinearKernel(in_features=2, seed=99)
        b.load_state_dict(a.state_dict())
        np.testing.assert_array_equal(a.forward((np.ones(2),)),
                                      b.forward((np.ones(2),)))
        assert b.version == 1

    def test_state_shape_mismatch(self):
        a = LinearKernel(in_features=2, seed=0)
        b = LinearKernel(in_features=3, seed=0)
        with pytest.raises(ShapeMismatch):
            b.load_state_dict(a.state_dict())

    def test_fit_requires_samples(self):
        with pytest.raises(ValueError):
            LinearKernel(1).fit([])


class TestMLPKernel:
    def test_learns_nonlinear_target(self):
        k = MLPKernel(in_features=1, hidden_features=8, learning_rate=0.05,
                      seed=3)
        samples = [((np.array([x]),), x * x) for x in np.linspace(-1, 1, 9)]
        first = k.fit(samples, epochs=1)
        last = k.fit(samples, epochs=300)
        assert last < first

    def test_state_round_trip(self):
        a = MLPKernel(in_features=2, hidden_features=4, seed=0)
        b = MLPKernel(in_features=2, hidden_features=4, seed=5)
        b.load_state_dict(a.state_dict())
        x = (np.array([0.3, -0.2]),)
        np.testing.assert_allclose(a.forward(x), b.forward(x))


class TestKernelBase:
    def test_not_trainable(self):
        class Fixed(Kernel):
            def forward(self, inputs):
                return 0.0

        k = Fixed()
        assert not k.trainable
        with pytest.raises(NotImplementedError):
            k.update((), 0.0)

    def test_linear_is_trainable(self):
        assert LinearKernel(1).trainable


class TestKernelOperator:
    def test_contract(self):
        op = KernelOperator(LinearKernel(2, seed=0), name='k')
        assert op.terminal
        assert not op.deterministic
        assert op.category == 'kernel'

    def test_runs_as_terminal_node(self):
        kernel = LinearKernel(2, seed=0)
        registry = default_registry()
        registry.register(KernelOperator(kernel, name='lin'))
        m = Manifold(name='k')
        m.bind('x', np.array([1.0, 2.0]))
        m.extend([NodeSpec(id='y', type='lin', depends_on=('x',))],
                 registry=registry)
        Scheduler(registry).run(m)
        np.testing.assert_allclose(
            m.payload('y'), kernel.forward((np.array([1.0, 2.0]),)),
        )
        assert kernel.version == 0

    def test_kernel_node_with_dependents_rejected(self):
        registry = default_registry()
        registry.register(KernelOperator(LinearKernel(1, seed=0),
                                         name='lin'))
        m = Manifold(name='k')
        m.bind('x', 1.0)
        with pytest.raises(BuildError, match="terminal"):
            m.extend([
                NodeSpec(id='y', type='lin', depends_on=('x',)),
                NodeSpec(id='z', type='identity', depends_on=('y',)),
            ], registry=registry)
