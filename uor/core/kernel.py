# -*- coding: utf-8 -*-
"""
Kernels - Parametric terminal components and their operator adapter.

A kernel maps the payloads of its inputs to an output with
``forward`` and may optionally learn with ``update``. Kernel state
persists across manifold runs and changes only through an explicit
``update`` (or ``load_state_dict``), never through scheduling.
KernelOperator exposes a kernel to the scheduler as a terminal,
non-deterministic operator.

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
import logging
import threading
from typing import Any, Dict, Iterable, Optional, Sequence, Tuple

# Third-party
import numpy as np

# UOR internal
from uor.core.contracts import PayloadType
from uor.core.errors import ShapeMismatch
from uor.core.operators import Operator

logger = logging.getLogger(__name__)


def as_vector(values: Sequence[Any]) -> np.ndarray:
    """Flatten and concatenate numeric payloads into a float64 vector.

    Raises
    ------
    ShapeMismatch
        If a payload is not numeric.
    """
    parts = []
    for i, value in enumerate(values):
        arr = np.asarray(value)
        if arr.dtype == object or not (
            np.issubdtype(arr.dtype, np.number)
            or np.issubdtype(arr.dtype, np.bool_)
        ):
            raise ShapeMismatch(
                f"kernel input {i} is not numeric ({type(value).__name__})"
            )
        parts.append(arr.astype(np.float64).ravel())
    if not parts:
        return np.zeros(0, dtype=np.float64)
    return np.concatenate(parts)


class Kernel:
    """Base class for kernels.

    Subclasses implement :meth:`forward` and, when trainable,
    :meth:`update`, :meth:`state_dict` and :meth:`load_state_dict`.
    """

    name: str = "kernel"

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._version = 0
        self.last_loss: Optional[float] = None

    @property
    def version(self) -> int:
        """Number of training updates applied."""
        return self._version

    @property
    def trainable(self) -> bool:
        return type(self).update is not Kernel.update

    def forward(self, inputs: Sequence[Any]) -> Any:
        """Compute the output for a read-only view of input payloads."""
        raise NotImplementedError

    def update(self, inputs: Sequence[Any], target: Any) -> Dict[str, Any]:
        """Apply one training step and return the new state.

        Raises
        ------
        NotImplementedError
            If the kernel is not trainable.
        """
        raise NotImplementedError(f"{type(self).__name__} is not trainable")

    def fit(
        self,
        samples: Iterable[Tuple[Sequence[Any], Any]],
        epochs: int = 1,
    ) -> float:
        """Run :meth:`update` over ``(inputs, target)`` samples.

        Returns
        -------
        float
            Mean loss of the final epoch.
        """
        samples = list(samples)
        if not samples:
            raise ValueError("fit() needs at least one sample")
        mean_loss = 0.0
        for epoch in range(epochs):
            losses = []
            for inputs, target in samples:
                self.update(inputs, target)
                losses.append(self.last_loss or 0.0)
            mean_loss = float(np.mean(losses))
            logger.debug(
                "%s epoch %d/%d: loss %.6f",
                type(self).__name__, epoch + 1, epochs, mean_loss,
            )
        return mean_loss

    def state_dict(self) -> Dict[str, Any]:
        return {'version': self._version}

    def load_state_dict(self, state: Dict[str, Any]) -> None:
        self._version = int(state.get('version', 0))


class LinearKernel(Kernel):
    """Affine map ``y = W x + b`` trained by gradient descent on MSE.

    Parameters
    ----------
    in_features : int
        Total number of scalar input elements across all inputs.
    out_features : int
    learning_rate : float
    seed : Optional[int]
        Seed for weight initialization.
    """

    name = "linear"

    def __init__(
        self,
        in_features: int,
        out_features: int = 1,
        learning_rate: float = 0.01,
        seed: Optional[int] = None,
    ) -> None:
        super().__init__()
        rng = np.random.default_rng(seed)
        self.in_features = in_features
        self.out_features = out_features
        self.learning_rate = learning_rate
        self.weight = rng.normal(
            0.0, 1.0 / np.sqrt(max(in_features, 1)),
            size=(out_features, in_features),
        )
        self.bias = np.zeros(out_features)

    def _vector(self, inputs: Sequence[Any]) -> np.ndarray:
        x = as_vector(inputs)
        if x.size != self.in_features:
            raise ShapeMismatch(
                f"{type(self).__name__} expects {self.in_features} input "
                f"element(s), got {x.size}"
            )
        return x

    def forward(self, inputs: Sequence[Any]) -> np.ndarray:
        x = self._vector(inputs)
        with self._lock:
            return self.weight @ x + self.bias

    def update(self, inputs: Sequence[Any], target: Any) -> Dict[str, Any]:
        x = self._vector(inputs)
        t = np.asarray(target, dtype=np.float64).ravel()
        with self._lock:
            err = self.weight @ x + self.bias - t
            grad = 2.0 * err / self.out_features
            self.weight = self.weight - self.learning_rate * np.outer(grad, x)
            self.bias = self.bias - self.learning_rate * grad
            self.last_loss = float(np.mean(err ** 2))
            self._version += 1
            return self.state_dict()

    def state_dict(self) -> Dict[str, Any]:
        with self._lock:
            return {
                'version': self._version,
                'weight': self.weight.copy(),
                'bias': self.bias.copy(),
            }

    def load_state_dict(self, state: Dict[str, Any]) -> None:
        weight = np.asarray(state['weight'], dtype=np.float64)
        bias = np.asarray(state['bias'], dtype=np.float64)
        if weight.shape != self.weight.shape or bias.shape != self.bias.shape:
            raise ShapeMismatch(
                f"state shapes {weight.shape}/{bias.shape} do not match "
                f"{self.weight.shape}/{self.bias.shape}"
            )
        with self._lock:
            self.weight = weight.copy()
            self.bias = bias.copy()
            self._version = int(state.get('version', 0))


class MLPKernel(LinearKernel):
    """One tanh hidden layer: ``y = W2 tanh(W1 x + b1) + b2``.

    Parameters
    ----------
    in_features : int
    hidden_features : int
    out_features : int
    learning_rate : float
    seed : Optional[int]
    """

    name = "mlp"

    def __init__(
        self,
        in_features: int,
        hidden_features: int = 16,
        out_features: int = 1,
        learning_rate: float = 0.01,
        seed: Optional[int] = None,
    ) -> None:
        super().__init__(in_features, out_features, learning_rate, seed)
        rng = np.random.default_rng(None if seed is None else seed + 1)
        self.hidden_features = hidden_features
        self.hidden_weight = rng.normal(
            0.0, 1.0 / np.sqrt(max(in_features, 1)),
            size=(hidden_features, in_features),
        )
        self.hidden_bias = np.zeros(hidden_features)
        self.weight = rng.normal(
            0.0, 1.0 / np.sqrt(hidden_features),
            size=(out_features, hidden_features),
        )

    def forward(self, inputs: Sequence[Any]) -> np.ndarray:
        x = self._vector(inputs)
        with self._lock:
            h = np.tanh(self.hidden_weight @ x + self.hidden_bias)
            return self.weight @ h + self.bias

    def update(self, inputs: Sequence[Any], target: Any) -> Dict[str, Any]:
        x = self._vector(inputs)
        t = np.asarray(target, dtype=np.float64).ravel()
        with self._lock:
            h = np.tanh(self.hidden_weight @ x + self.hidden_bias)
            err = self.weight @ h + self.bias - t
            grad_out = 2.0 * err / self.out_features
            grad_h = (self.weight.T @ grad_out) * (1.0 - h ** 2)
            lr = self.learning_rate
            self.weight = self.weight - lr * np.outer(grad_out, h)
            self.bias = self.bias - lr * grad_out
            self.hidden_weight = self.hidden_weight - lr * np.outer(grad_h, x)
            self.hidden_bias = self.hidden_bias - lr * grad_h
            self.last_loss = float(np.mean(err ** 2))
            self._version += 1
            return self.state_dict()

    def state_dict(self) -> Dict[str, Any]:
        with self._lock:
            state = super().state_dict()
            state['hidden_weight'] = self.hidden_weight.copy()
            state['hidden_bias'] = self.hidden_bias.copy()
            return state

    def load_state_dict(self, state: Dict[str, Any]) -> None:
        hidden_weight = np.asarray(state['hidden_weight'], dtype=np.float64)
        hidden_bias = np.asarray(state['hidden_bias'], dtype=np.float64)
        if (hidden_weight.shape != self.hidden_weight.shape
                or hidden_bias.shape != self.hidden_bias.shape):
            raise ShapeMismatch("hidden layer state shapes do not match")
        with self._lock:
            super().load_state_dict(state)
            self.hidden_weight = hidden_weight.copy()
            self.hidden_bias = hidden_bias.copy()


class KernelOperator(Operator):
    """Expose a kernel as a terminal, non-cacheable operator.

    Only :meth:`Kernel.forward` is called; running a manifold never
    trains the kernel.

    Parameters
    ----------
    kernel : Kernel
    name : Optional[str]
        Registry name. Defaults to ``kernel.name``.
    """

    category = "kernel"
    input_types = (PayloadType.NUMERIC,)
    deterministic = False
    terminal = True

    def __init__(self, kernel: Kernel, name: Optional[str] = None) -> None:
        self.kernel = kernel
        self.name = name or kernel.name

    def apply(self, inputs: Sequence[Any], **params: Any) -> Any:
        return self.kernel.forward(tuple(inputs))
