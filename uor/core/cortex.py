# -*- coding: utf-8 -*-
"""
Memory Cortex - Prime reference points and quaternion embeddings.

The cortex holds 144 reference points indexed by the first 144 primes.
Numeric payloads of a computed manifold are folded into the points in
topological order, and the populated points can be read back as a set
of unit quaternions.

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
from numbers import Complex, Number, Real
from typing import Any, List, Optional

# Third-party
import numpy as np

# UOR internal
from uor.core.manifold import Manifold, NodeStatus

logger = logging.getLogger(__name__)

REFERENCE_POINTS = 144


def first_primes(count: int) -> List[int]:
    """The first ``count`` prime numbers.

    Parameters
    ----------
    count : int

    Returns
    -------
    List[int]
    """
    if count <= 0:
        return []
    # The n-th prime is below n (ln n + ln ln n) for n >= 6.
    limit = 15
    if count >= 6:
        n = float(count)
        limit = int(n * (np.log(n) + np.log(np.log(n)))) + 1
    sieve = np.ones(limit + 1, dtype=bool)
    sieve[:2] = False
    for p in range(2, int(limit ** 0.5) + 1):
        if sieve[p]:
            sieve[p * p::p] = False
    return [int(p) for p in np.flatnonzero(sieve)[:count]]


def _scalar(payload: Any) -> Optional[float]:
    """Numeric summary of a payload, or None if it has none.

    Complex values are folded by magnitude; complex arrays by the mean
    magnitude of their elements.
    """
    if isinstance(payload, (bool, np.bool_, Real)):
        return float(payload)
    if isinstance(payload, Complex):
        return float(abs(payload))
    if isinstance(payload, Number):
        # Decimal and other non-Real numbers convertible to float.
        try:
            return float(payload)
        except (TypeError, ValueError):
            return None
    if isinstance(payload, np.ndarray) and payload.size and (
        np.issubdtype(payload.dtype, np.number)
    ):
        if np.iscomplexobj(payload):
            return float(np.mean(np.abs(payload)))
        return float(np.mean(payload))
    return None


class PrimeReference:
    """A single cortex reference point.

    Parameters
    ----------
    index : int
    prime : int
    data : Optional[float]
    """

    def __init__(self, index: int, prime: int,
                 data: Optional[float] = None) -> None:
        self.index = index
        self.prime = prime
        self.data = data

    def __repr__(self) -> str:
        return f"PrimeReference({self.index}, {self.prime}, {self.data!r})"


class MemoryCortex:
    """Reference-point memory for manifold payloads.

    Parameters
    ----------
    size : int
        Number of reference points. Default 144.
    """

    def __init__(self, size: int = REFERENCE_POINTS) -> None:
        self.references = [
            PrimeReference(i, p) for i, p in enumerate(first_primes(size))
        ]

    def __len__(self) -> int:
        return len(self.references)

    def clear(self) -> None:
        for ref in self.references:
            ref.data = None

    def link_manifold(self, manifold: Manifold) -> int:
        """Fold numeric payloads of computed nodes into reference points.

        The i-th linked payload in topological order accumulates into
        point ``i % size``.

        Returns
        -------
        int
            Number of payloads linked.
        """
        linked = 0
        for nid in manifold.topological_order():
            node = manifold.node(nid)
            if node.status is not NodeStatus.COMPUTED:
                continue
            value = _scalar(node.payload)
            if value is None:
                continue
            ref = self.references[linked % len(self.references)]
            ref.data = value if ref.data is None else ref.data + value
            linked += 1
        logger.debug(
            "Linked %d payload(s) of '%s' v%d into cortex",
            linked, manifold.name, manifold.version,
        )
        return linked

    def values(self) -> np.ndarray:
        """Data of populated reference points, in index order."""
        return np.array(
            [r.data for r in self.references if r.data is not None],
            dtype=np.float64,
        )


class QuaternionEmbedding:
    """Embed cortex contents as unit quaternions ``(w, x, y, z)``."""

    def embed_manifold(
        self,
        manifold: Manifold,
        cortex: MemoryCortex,
    ) -> np.ndarray:
        """Link ``manifold`` into ``cortex`` and return its quaternions.

        Consecutive groups of four populated values form one quaternion
        (the last group is zero-padded) which is then normalized. Groups
        with zero norm, and an empty cortex, yield the identity.

        Returns
        -------
        np.ndarray
            Shape ``(k, 4)``.
        """
        cortex.link_manifold(manifold)
        values = cortex.values()
        if values.size == 0:
            return np.array([[1.0, 0.0, 0.0, 0.0]])
        pad = (-values.size) % 4
        quats = np.concatenate([values, np.zeros(pad)]).reshape(-1, 4)
        norms = np.linalg.norm(quats, axis=1)
        identity = np.array([1.0, 0.0, 0.0, 0.0])
        out = np.empty_like(quats)
        for i, (q, n) in enumerate(zip(quats, norms)):
            out[i] = q / n if n > 0 else identity
        return out
