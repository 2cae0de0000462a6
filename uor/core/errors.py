# -*- coding: utf-8 -*-
"""
Engine Errors - Exception taxonomy for chart, build, and run failures.

Chart and build errors abort before any scheduling. Operator errors are
recorded on the failing node and aggregated into a single ExecutionError
at the end of a run. InvariantViolation signals a broken engine
invariant and is never retried.

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
from typing import Any, Dict, Iterable, Optional, Tuple


class UorError(Exception):
    """Base class for all engine errors."""


# ---------------------------------------------------------------------------
# Chart / build
# ---------------------------------------------------------------------------

class SchemaError(UorError):
    """Malformed or incomplete chart description.

    Parameters
    ----------
    message : str
    missing : Iterable[str]
        Node ids referenced but never declared, if any.
    """

    def __init__(self, message: str, missing: Iterable[str] = ()) -> None:
        super().__init__(message)
        self.missing: Tuple[str, ...] = tuple(missing)


class BuildError(UorError):
    """The graph would be invalid (unresolvable reference, bad operator).

    Parameters
    ----------
    message : str
    missing : Iterable[str]
        Unresolved node ids, if any.
    """

    def __init__(self, message: str, missing: Iterable[str] = ()) -> None:
        super().__init__(message)
        self.missing: Tuple[str, ...] = tuple(missing)


class CycleError(BuildError):
    """The graph contains a dependency cycle.

    Parameters
    ----------
    cycle : Iterable[str]
        Node ids on the detected cycle, in edge order.
    """

    def __init__(self, cycle: Iterable[str]) -> None:
        self.cycle: Tuple[str, ...] = tuple(cycle)
        super().__init__(
            "Dependency cycle detected: " + " -> ".join(
                self.cycle + self.cycle[:1]
            )
        )


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

class RegistryError(UorError):
    """Operator registry misuse."""


class RegistryConflictError(RegistryError):
    """An operator is already registered under the requested name."""


class UnknownOperatorError(RegistryError, KeyError):
    """No operator is registered under the requested name."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ''


# ---------------------------------------------------------------------------
# Operator failures (recorded per node)
# ---------------------------------------------------------------------------

class OperatorError(UorError):
    """Failure of a single operator invocation."""


class ShapeMismatch(OperatorError):
    """Inputs or output violate the operator's declared contract."""


class ComputeError(OperatorError):
    """The operator raised while computing its result."""


class OperatorTimeout(OperatorError):
    """The invocation exceeded its per-invocation time limit."""


# ---------------------------------------------------------------------------
# Run level
# ---------------------------------------------------------------------------

class ExecutionError(UorError):
    """Aggregate failure of a scheduler run.

    Parameters
    ----------
    manifold : Manifold
        The manifold as it stood when the run ended. Computed nodes
        remain valid.
    failures : Dict[str, OperatorError]
        One cause per failed node id.
    message : Optional[str]
        Override for the default summary message.
    """

    def __init__(
        self,
        manifold: Any,
        failures: Dict[str, OperatorError],
        message: Optional[str] = None,
    ) -> None:
        self.manifold = manifold
        self.failures = dict(failures)
        self.stage: Optional[str] = None
        if message is None:
            parts = [
                f"{node_id}: {type(err).__name__}: {err}"
                for node_id, err in sorted(self.failures.items())
            ]
            message = (
                f"{len(self.failures)} node(s) failed"
                + (" (" + "; ".join(parts) + ")" if parts else "")
            )
        super().__init__(message)


class CancellationError(ExecutionError):
    """The run was cancelled before every node was resolved."""


class InvariantViolation(UorError):
    """An engine invariant was broken at run time. Fatal, not retriable."""


class PayloadUnavailable(UorError):
    """A payload was read from a node that has not been computed."""


class StackError(UorError):
    """Invalid cognitive stack configuration."""
