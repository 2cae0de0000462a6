# -*- coding: utf-8 -*-
"""
Result Cache - Memoized payloads of deterministic operator invocations.

Keys combine the operator namespace (name, class and instance token),
the node parameters and the input payloads. Values that cannot be
pickled are not cached. The operator that produced an entry is kept
alive with it so identity-based tokens are never reused.

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
import hashlib
import logging
import pickle
import threading
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)


class ResultCache:
    """Thread-safe in-memory payload cache.

    Parameters
    ----------
    max_entries : Optional[int]
        Oldest entries are evicted beyond this size. None is unbounded.
    """

    def __init__(self, max_entries: Optional[int] = 1024) -> None:
        self._entries: Dict[str, Any] = {}
        self._owners: Dict[str, Any] = {}
        self._lock = threading.Lock()
        self._max_entries = max_entries
        self.hits = 0
        self.misses = 0

    @staticmethod
    def key(
        operator_name: str,
        params: Mapping[str, Any],
        inputs: Sequence[Any],
    ) -> Optional[str]:
        """Stable digest for an invocation, or None if not hashable."""
        try:
            blob = pickle.dumps(
                (operator_name, sorted(params.items()), tuple(inputs)),
                protocol=4,
            )
        except (pickle.PicklingError, TypeError, AttributeError) as e:
            logger.debug("Not caching %s: %s", operator_name, e)
            return None
        return hashlib.sha256(blob).hexdigest()

    def lookup(self, key: Optional[str]) -> Tuple[bool, Any]:
        """Return ``(found, payload)``."""
        if key is None:
            return False, None
        with self._lock:
            if key in self._entries:
                self.hits += 1
                return True, self._entries[key]
            self.misses += 1
            return False, None

    def store(
        self,
        key: Optional[str],
        payload: Any,
        owner: Any = None,
    ) -> None:
        """Store a payload, keeping its producing operator alive."""
        if key is None:
            return
        with self._lock:
            self._entries[key] = payload
            if owner is not None:
                self._owners[key] = owner
            if (self._max_entries is not None
                    and len(self._entries) > self._max_entries):
                oldest = next(iter(self._entries))
                del self._entries[oldest]
                self._owners.pop(oldest, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._owners.clear()
            self.hits = 0
            self.misses = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
