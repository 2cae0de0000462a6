# -*- coding: utf-8 -*-
"""
Manifold - Executable dependency graph instantiated from a chart.

Each manifold node carries a payload slot, a status, its ordered
dependency ids, and, once resolved, its failure cause and timing. The
scheduler is the only writer of status and payload during a run; callers
read results afterwards. Manifolds grow through ``extend`` (checked and
atomic) and evolve through ``derive``, which returns a new version and
leaves the prior one untouched.

Dependencies
------------
networkx

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
from collections.abc import Mapping
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, List, Optional, Set, Tuple

# Third-party
import networkx as nx

# UOR internal
from uor.core import graph as _graph
from uor.core.chart import INPUT_TYPE, Chart, NodeSpec, node_spec
from uor.core.errors import (
    BuildError,
    CycleError,
    InvariantViolation,
    OperatorError,
    PayloadUnavailable,
    UnknownOperatorError,
)

logger = logging.getLogger(__name__)


class NodeStatus(Enum):
    """Lifecycle of a manifold node within a run."""

    PENDING = "pending"
    READY = "ready"
    COMPUTED = "computed"
    SKIPPED = "skipped"
    FAILED = "failed"


RESOLVED = frozenset({NodeStatus.COMPUTED, NodeStatus.SKIPPED,
                      NodeStatus.FAILED})


class ManifoldNode:
    """A node of a manifold.

    Parameters
    ----------
    spec : NodeSpec
        The chart declaration this node instantiates.
    """

    def __init__(self, spec: NodeSpec) -> None:
        self.spec = spec
        self.reset()

    def reset(self) -> None:
        """Clear status, payload, failure, and timing."""
        self.status = NodeStatus.PENDING
        self.payload: Any = None
        self.error: Optional[OperatorError] = None
        self.skipped_because: Optional[str] = None
        self.replayable = False
        self.started_at: Optional[float] = None
        self.finished_at: Optional[float] = None
        self.dispatch_seq: Optional[int] = None
        self.complete_seq: Optional[int] = None

    @property
    def id(self) -> str:
        return self.spec.id

    @property
    def type(self) -> str:
        return self.spec.type

    @property
    def params(self) -> Mapping:
        return self.spec.params

    @property
    def dependencies(self) -> Tuple[str, ...]:
        return self.spec.depends_on

    @property
    def is_input(self) -> bool:
        """Whether this node holds an externally bound payload."""
        return self.spec.type == INPUT_TYPE

    # -- state transitions (scheduler only) --------------------------------

    def mark_ready(self) -> None:
        if self.status is not NodeStatus.PENDING:
            raise InvariantViolation(
                f"Node '{self.id}' cannot become ready from "
                f"{self.status.value}"
            )
        self.status = NodeStatus.READY

    def mark_computed(self, payload: Any, replayable: bool) -> None:
        if self.status is NodeStatus.COMPUTED:
            raise InvariantViolation(f"Node '{self.id}' computed twice")
        self.status = NodeStatus.COMPUTED
        self.payload = payload
        self.replayable = replayable
        self.error = None

    def mark_failed(self, error: OperatorError) -> None:
        self.status = NodeStatus.FAILED
        self.payload = None
        self.error = error

    def mark_skipped(self, cause: str) -> None:
        self.status = NodeStatus.SKIPPED
        self.payload = None
        self.skipped_because = cause

    def to_dict(self) -> dict:
        """Serialize status information (payload excluded).

        Returns
        -------
        dict
        """
        d: dict = {
            'id': self.id,
            'type': self.type,
            'status': self.status.value,
        }
        if self.dependencies:
            d['depends_on'] = list(self.dependencies)
        if self.error is not None:
            d['error'] = f"{type(self.error).__name__}: {self.error}"
        if self.skipped_because is not None:
            d['skipped_because'] = self.skipped_because
        return d

    def __repr__(self) -> str:
        return f"<ManifoldNode {self.id!r} {self.type} {self.status.value}>"


class Manifold:
    """A directed acyclic graph of manifold nodes.

    Build from a chart with :func:`chart_to_manifold`.

    Parameters
    ----------
    name : str
        Name of the originating chart.
    chart_version : str
        Version of the originating chart.
    version : int
        Manifold version, incremented by :meth:`derive`.
    parent : Optional[int]
        Version this manifold was derived from.
    """

    def __init__(
        self,
        name: str = "",
        chart_version: str = "",
        version: int = 1,
        parent: Optional[int] = None,
    ) -> None:
        self.name = name
        self.chart_version = chart_version
        self.version = version
        self.parent = parent
        self._nodes: Dict[str, ManifoldNode] = {}
        self._graph = nx.DiGraph()
        self._run_lock = threading.Lock()

    # -- structure ---------------------------------------------------------

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[ManifoldNode]:
        return iter(list(self._nodes.values()))

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    @property
    def node_ids(self) -> Tuple[str, ...]:
        return tuple(self._nodes)

    @property
    def specs(self) -> Tuple[NodeSpec, ...]:
        return tuple(n.spec for n in self._nodes.values())

    @property
    def running(self) -> bool:
        """Whether a scheduler run currently owns this manifold."""
        return self._run_lock.locked()

    def node(self, node_id: str) -> ManifoldNode:
        """Look up a node.

        Raises
        ------
        KeyError
        """
        try:
            return self._nodes[node_id]
        except KeyError:
            raise KeyError(f"No node '{node_id}' in manifold") from None

    def dependencies(self, node_id: str) -> Tuple[str, ...]:
        return self.node(node_id).dependencies

    def dependents(self, node_id: str) -> Tuple[str, ...]:
        """Nodes that list ``node_id`` as a dependency."""
        self.node(node_id)
        return tuple(self._graph.successors(node_id))

    def descendants(self, node_id: str) -> Set[str]:
        """Every node transitively depending on ``node_id``."""
        self.node(node_id)
        return _graph.descendants(self._graph, node_id)

    def is_acyclic(self) -> bool:
        return _graph.find_cycle(self._graph) is None

    def topological_order(self) -> List[str]:
        """Node ids with every node after its dependencies.

        Raises
        ------
        CycleError
        """
        cycle = _graph.find_cycle(self._graph)
        if cycle:
            raise CycleError(cycle)
        return _graph.topological_order(self._graph)

    # -- results -----------------------------------------------------------

    def status(self, node_id: str) -> NodeStatus:
        return self.node(node_id).status

    def statuses(self) -> Dict[str, NodeStatus]:
        return {nid: n.status for nid, n in self._nodes.items()}

    def failures(self) -> Dict[str, OperatorError]:
        """Failure cause per failed node."""
        return {
            nid: n.error for nid, n in self._nodes.items()
            if n.status is NodeStatus.FAILED and n.error is not None
        }

    def payload(self, node_id: str) -> Any:
        """Payload of a computed node.

        Raises
        ------
        KeyError
            If the node does not exist.
        PayloadUnavailable
            If the node is not computed.
        """
        n = self.node(node_id)
        if n.status is not NodeStatus.COMPUTED:
            raise PayloadUnavailable(
                f"Node '{node_id}' has no payload (status: {n.status.value})"
            )
        return n.payload

    def payloads(self) -> Dict[str, Any]:
        """Payloads of all computed nodes."""
        return {
            nid: n.payload for nid, n in self._nodes.items()
            if n.status is NodeStatus.COMPUTED
        }

    @property
    def is_complete(self) -> bool:
        """Every node computed."""
        return all(n.status is NodeStatus.COMPUTED for n in self._nodes.values())

    @property
    def is_resolved(self) -> bool:
        """Every node computed, failed, or skipped."""
        return all(n.status in RESOLVED for n in self._nodes.values())

    # -- growth ------------------------------------------------------------

    def extend(
        self,
        nodes: Iterable[Any] = (),
        edges: Iterable[Tuple[str, str]] = (),
        registry: Optional[Any] = None,
    ) -> None:
        """Append nodes and dependency edges.

        The merged graph is checked before anything changes; on rejection
        the manifold is left exactly as it was.

        Parameters
        ----------
        nodes : Iterable[NodeSpec or Mapping]
            New nodes. Their dependencies may name existing or new nodes.
        edges : Iterable[Tuple[str, str]]
            Extra ``(dependency, dependent)`` pairs. The dependent must
            be new or still pending.
        registry : Optional[OperatorRegistry]
            Enables operator checks on the new nodes.

        Raises
        ------
        BuildError, CycleError
        """
        self._ensure_idle("extend")
        new_specs = [
            n if isinstance(n, NodeSpec) else node_spec(n, i)
            for i, n in enumerate(nodes)
        ]

        specs: Dict[str, NodeSpec] = {
            nid: n.spec for nid, n in self._nodes.items()
        }
        duplicates = {s.id for s in new_specs if s.id in specs}
        seen: Set[str] = set()
        for s in new_specs:
            if s.id in seen:
                duplicates.add(s.id)
            seen.add(s.id)
        if duplicates:
            raise BuildError(
                f"Node id(s) already present: {', '.join(sorted(duplicates))}"
            )
        for s in new_specs:
            specs[s.id] = s

        for dep, target in edges:
            if target not in specs:
                raise BuildError(
                    f"Edge target '{target}' is not a node", missing=[target]
                )
            existing = self._nodes.get(target)
            if existing is not None and existing.status is not NodeStatus.PENDING:
                raise BuildError(
                    f"Cannot add a dependency to resolved node '{target}'"
                )
            current = specs[target]
            if dep in current.depends_on:
                continue
            specs[target] = NodeSpec(
                id=current.id, type=current.type, params=current.params,
                depends_on=current.depends_on + (dep,),
            )

        changed = [s for nid, s in specs.items()
                   if nid not in self._nodes or self._nodes[nid].spec is not s]
        _check_specs(specs, changed, registry)

        for s in changed:
            if s.id in self._nodes:
                self._nodes[s.id].spec = s
            else:
                self._nodes[s.id] = ManifoldNode(s)
        self._graph = _graph.dependency_graph(
            {nid: n.dependencies for nid, n in self._nodes.items()}
        )
        logger.debug(
            "Extended manifold '%s' v%d with %d node(s)",
            self.name, self.version, len(changed),
        )

    def bind(self, node_id: str, payload: Any) -> None:
        """Bind an external payload to a node as already computed.

        Creates an input node when ``node_id`` is new. Binding an existing
        node resets its descendants to pending.

        Raises
        ------
        BuildError
            If the node exists and has dependencies.
        """
        self._ensure_idle("bind")
        if node_id not in self._nodes:
            self.extend([NodeSpec(id=node_id, type=INPUT_TYPE)])
        n = self._nodes[node_id]
        if n.dependencies:
            raise BuildError(
                f"Cannot bind node '{node_id}': it has dependencies"
            )
        for desc in _graph.descendants(self._graph, node_id):
            self._nodes[desc].reset()
        n.reset()
        n.mark_computed(payload, replayable=True)

    # -- versions ----------------------------------------------------------

    def _clone(self, version: int, parent: Optional[int]) -> 'Manifold':
        clone = Manifold(
            name=self.name, chart_version=self.chart_version,
            version=version, parent=parent,
        )
        for nid, n in self._nodes.items():
            clone._nodes[nid] = ManifoldNode(n.spec)
        clone._graph = self._graph.copy()
        return clone

    def fresh(self) -> 'Manifold':
        """Same graph and version with every computed result cleared.

        Bound input payloads are kept.
        """
        clone = self._clone(self.version, self.parent)
        for nid, n in self._nodes.items():
            if n.is_input and n.status is NodeStatus.COMPUTED:
                clone._nodes[nid].mark_computed(n.payload, replayable=True)
        return clone

    def derive(self, bindings: Optional[Mapping] = None) -> 'Manifold':
        """Return the next manifold version; this one is not modified.

        Computed payloads of replayable nodes whose dependencies were all
        carried over are kept. Everything else is reset to pending, so
        non-deterministic operators run again.

        Parameters
        ----------
        bindings : Optional[Mapping[str, Any]]
            Payloads to bind on the new version (see :meth:`bind`).

        Returns
        -------
        Manifold
        """
        clone = self._clone(self.version + 1, self.version)
        carried: Set[str] = set()
        for nid in _graph.topological_order(self._graph):
            n = self._nodes[nid]
            if (n.status is NodeStatus.COMPUTED and n.replayable
                    and all(d in carried for d in n.dependencies)):
                clone._nodes[nid].mark_computed(n.payload, replayable=True)
                carried.add(nid)
        for node_id, payload in (bindings or {}).items():
            clone.bind(node_id, payload)
        return clone

    # -- run ownership (scheduler) -----------------------------------------

    def _ensure_idle(self, action: str) -> None:
        if self._run_lock.locked():
            raise RuntimeError(
                f"Cannot {action} manifold '{self.name}' during a run"
            )

    def to_dict(self) -> dict:
        """Serialize structure and status (payloads excluded).

        Returns
        -------
        dict
        """
        return {
            'name': self.name,
            'chart_version': self.chart_version,
            'version': self.version,
            'parent': self.parent,
            'nodes': [n.to_dict() for n in self._nodes.values()],
        }

    def __repr__(self) -> str:
        counts: Dict[str, int] = {}
        for n in self._nodes.values():
            counts[n.status.value] = counts.get(n.status.value, 0) + 1
        return f"<Manifold {self.name!r} v{self.version} {counts}>"


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------

def _check_specs(
    specs: Dict[str, NodeSpec],
    changed: Iterable[NodeSpec],
    registry: Optional[Any],
) -> None:
    """Validate a complete spec mapping; operator checks on ``changed``."""
    deps = {nid: s.depends_on for nid, s in specs.items()}
    missing = _graph.undeclared(deps)
    if missing:
        raise BuildError(
            f"Unresolvable dependency id(s): {', '.join(missing)}",
            missing=missing,
        )
    dep_graph = _graph.dependency_graph(deps)
    cycle = _graph.find_cycle(dep_graph)
    if cycle:
        raise CycleError(cycle)

    if registry is None:
        return
    changed_ids = {s.id for s in changed}
    for s in changed:
        if s.type == INPUT_TYPE:
            continue
        try:
            contract = registry.get(s.type).contract
        except UnknownOperatorError as e:
            raise BuildError(
                f"Node '{s.id}' uses unknown operator type '{s.type}'"
            ) from e
        absent = contract.missing_params(s.params)
        if absent:
            raise BuildError(
                f"Node '{s.id}' ({s.type}) is missing required "
                f"parameter(s): {', '.join(absent)}"
            )
    for nid, s in specs.items():
        if s.type == INPUT_TYPE or s.type not in registry:
            continue
        if not registry.get(s.type).terminal:
            continue
        dependents = list(dep_graph.successors(nid))
        if dependents and (nid in changed_ids
                           or changed_ids.intersection(dependents)):
            raise BuildError(
                f"Node '{nid}' uses terminal operator '{s.type}' but has "
                f"dependents: {', '.join(dependents)}"
            )


def chart_to_manifold(chart: Chart, registry: Optional[Any] = None) -> Manifold:
    """Instantiate a manifold from a chart.

    Parameters
    ----------
    chart : Chart
    registry : Optional[OperatorRegistry]
        Enables operator checks (known types, required parameters,
        terminal operators without dependents).

    Returns
    -------
    Manifold
        All nodes pending; node-id set equal to the chart's.

    Raises
    ------
    BuildError, CycleError
    """
    specs: Dict[str, NodeSpec] = {}
    for s in chart.nodes:
        if s.id in specs:
            raise BuildError(f"Duplicate node id '{s.id}'")
        specs[s.id] = s
    _check_specs(specs, specs.values(), registry)

    manifold = Manifold(name=chart.name, chart_version=chart.version)
    for nid, s in specs.items():
        manifold._nodes[nid] = ManifoldNode(s)
    manifold._graph = _graph.dependency_graph(
        {nid: s.depends_on for nid, s in specs.items()}
    )
    logger.debug(
        "Built manifold '%s' with %d node(s)", chart.name, len(manifold),
    )
    return manifold
