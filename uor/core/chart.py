# -*- coding: utf-8 -*-
"""
Chart Models - Validated, immutable descriptions of computation graphs.

A chart lists nodes, each with an identifier, an operator type tag, a
parameter bag, and an ordered list of dependency identifiers. Edges are
derived from the dependency lists. Charts are produced by ``parse`` and
shared read-only afterwards.

Dependencies
------------
numpy
packaging

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
import copy
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Optional, Tuple

# Third-party
import numpy as np
from packaging.version import InvalidVersion, Version

# UOR internal
from uor.core.errors import SchemaError, UnknownOperatorError
from uor.core.graph import dependency_graph, find_cycle, undeclared

DEFAULT_CHART_VERSION = "0.1.0"

# Node type of externally bound payloads. Never dispatched to an operator.
INPUT_TYPE = "input"

_NODE_KEYS = frozenset({'id', 'type', 'params', 'depends_on'})
_CHART_KEYS = frozenset({'name', 'version', 'description', 'nodes'})


def _values_equal(a: Any, b: Any) -> bool:
    """Structural equality that treats arrays by value."""
    if isinstance(a, np.ndarray) or isinstance(b, np.ndarray):
        return (isinstance(a, np.ndarray) and isinstance(b, np.ndarray)
                and a.dtype == b.dtype and np.array_equal(a, b))
    if isinstance(a, Mapping) and isinstance(b, Mapping):
        return (a.keys() == b.keys()
                and all(_values_equal(a[k], b[k]) for k in a))
    if isinstance(a, (list, tuple)) and isinstance(b, (list, tuple)):
        return (type(a) is type(b) and len(a) == len(b)
                and all(_values_equal(x, y) for x, y in zip(a, b)))
    return bool(a == b)


@dataclass(frozen=True, eq=False)
class NodeSpec:
    """Declaration of a single chart node.

    Parameters
    ----------
    id : str
        Unique node identifier.
    type : str
        Name of the operator that computes this node.
    params : Mapping[str, Any]
        Operator parameters. Stored as a read-only copy.
    depends_on : Tuple[str, ...]
        Ordered dependency ids. Their payloads are the operator inputs,
        in this order.
    """

    id: str
    type: str
    params: Mapping = field(default_factory=dict)
    depends_on: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(
            self, 'params', MappingProxyType(copy.deepcopy(dict(self.params)))
        )
        object.__setattr__(self, 'depends_on', tuple(self.depends_on))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, NodeSpec):
            return NotImplemented
        return (self.id == other.id and self.type == other.type
                and self.depends_on == other.depends_on
                and _values_equal(self.params, other.params))

    __hash__ = None  # type: ignore[assignment]

    def to_dict(self) -> dict:
        """Serialize to dictionary.

        Returns
        -------
        dict
        """
        d: dict = {'id': self.id, 'type': self.type}
        if self.params:
            d['params'] = dict(self.params)
        if self.depends_on:
            d['depends_on'] = list(self.depends_on)
        return d


@dataclass(frozen=True)
class Chart:
    """A validated chart.

    Construct through :func:`parse` (or :meth:`from_dict`) so that the
    invariants hold: unique ids, resolvable dependencies, no cycles.

    Parameters
    ----------
    name : str
    nodes : Tuple[NodeSpec, ...]
    version : str
    description : str
    """

    name: str
    nodes: Tuple[NodeSpec, ...] = ()
    version: str = DEFAULT_CHART_VERSION
    description: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, 'nodes', tuple(self.nodes))

    def __len__(self) -> int:
        return len(self.nodes)

    def __iter__(self) -> Iterator[NodeSpec]:
        return iter(self.nodes)

    def __contains__(self, node_id: object) -> bool:
        return any(n.id == node_id for n in self.nodes)

    @property
    def node_ids(self) -> Tuple[str, ...]:
        """Declared node ids in declaration order."""
        return tuple(n.id for n in self.nodes)

    @property
    def edges(self) -> Tuple[Tuple[str, str], ...]:
        """``(dependency, dependent)`` pairs derived from the nodes."""
        return tuple(
            (dep, n.id) for n in self.nodes for dep in n.depends_on
        )

    def node(self, node_id: str) -> NodeSpec:
        """Look up a node spec by id.

        Raises
        ------
        KeyError
            If no node has this id.
        """
        for n in self.nodes:
            if n.id == node_id:
                return n
        raise KeyError(node_id)

    def to_dict(self) -> dict:
        """Serialize to dictionary for YAML/JSON storage.

        Returns
        -------
        dict
        """
        d: dict = {'name': self.name, 'version': self.version}
        if self.description:
            d['description'] = self.description
        d['nodes'] = [n.to_dict() for n in self.nodes]
        return d

    @classmethod
    def from_dict(cls, data: Mapping, registry: Any = None) -> 'Chart':
        """Validate and deserialize. Alias of :func:`parse`."""
        return parse(data, registry=registry)


# ---------------------------------------------------------------------------
# Parsing and validation
# ---------------------------------------------------------------------------

def _node_entries(raw_nodes: Any) -> List[Mapping]:
    """Normalize list or mapping node collections to a list of mappings."""
    if isinstance(raw_nodes, Mapping):
        entries = []
        for node_id, body in raw_nodes.items():
            body = {} if body is None else body
            if not isinstance(body, Mapping):
                raise SchemaError(f"Node '{node_id}' must be a mapping")
            if 'id' in body and body['id'] != node_id:
                raise SchemaError(
                    f"Node key '{node_id}' disagrees with its id "
                    f"'{body['id']}'"
                )
            entries.append({**body, 'id': node_id})
        return entries
    if isinstance(raw_nodes, (list, tuple)):
        for i, body in enumerate(raw_nodes):
            if not isinstance(body, Mapping):
                raise SchemaError(f"Node #{i} must be a mapping")
        return list(raw_nodes)
    raise SchemaError("'nodes' must be a list or a mapping")


def node_spec(entry: Mapping, position: int = 0) -> NodeSpec:
    """Validate one raw node mapping and build its NodeSpec.

    Raises
    ------
    SchemaError
    """
    unknown = sorted(set(entry) - _NODE_KEYS)
    node_id = entry.get('id')
    label = f"'{node_id}'" if isinstance(node_id, str) else f"#{position}"
    if unknown:
        raise SchemaError(f"Node {label} has unknown key(s): {unknown}")
    if not isinstance(node_id, str) or not node_id:
        raise SchemaError(f"Node {label} needs a non-empty string 'id'")
    node_type = entry.get('type')
    if not isinstance(node_type, str) or not node_type:
        raise SchemaError(f"Node {label} needs a non-empty string 'type'")

    params = entry.get('params')
    if params is None:
        params = {}
    if not isinstance(params, Mapping):
        raise SchemaError(f"Node {label} 'params' must be a mapping")
    if not all(isinstance(k, str) for k in params):
        raise SchemaError(f"Node {label} parameter names must be strings")

    depends_on = entry.get('depends_on')
    if depends_on is None:
        depends_on = []
    if isinstance(depends_on, str):
        depends_on = [depends_on]
    if (not isinstance(depends_on, (list, tuple))
            or not all(isinstance(d, str) and d for d in depends_on)):
        raise SchemaError(
            f"Node {label} 'depends_on' must be a list of node ids"
        )
    if len(set(depends_on)) != len(depends_on):
        raise SchemaError(f"Node {label} lists a dependency more than once")

    return NodeSpec(
        id=node_id, type=node_type, params=params, depends_on=depends_on,
    )


def validate_nodes(nodes: Tuple[NodeSpec, ...], registry: Any = None) -> None:
    """Check chart-level invariants over a node collection.

    Parameters
    ----------
    nodes : Tuple[NodeSpec, ...]
    registry : Optional[OperatorRegistry]
        When given, node types must be registered and their required
        parameters present.

    Raises
    ------
    SchemaError
    """
    seen: Dict[str, None] = {}
    duplicates: Dict[str, None] = {}
    for n in nodes:
        if n.id in seen:
            duplicates[n.id] = None
        seen[n.id] = None
    if duplicates:
        raise SchemaError(f"Duplicate node id(s): {', '.join(duplicates)}")

    deps = {n.id: n.depends_on for n in nodes}
    missing = undeclared(deps)
    if missing:
        raise SchemaError(
            f"Undeclared dependency id(s): {', '.join(missing)}",
            missing=missing,
        )

    cycle = find_cycle(dependency_graph(deps))
    if cycle:
        raise SchemaError(
            "Dependency cycle: " + " -> ".join(cycle + cycle[:1])
        )

    if registry is None:
        return
    for n in nodes:
        if n.type == INPUT_TYPE:
            continue
        try:
            contract = registry.get(n.type).contract
        except UnknownOperatorError as e:
            raise SchemaError(
                f"Node '{n.id}' uses unknown operator type '{n.type}'"
            ) from e
        absent = contract.missing_params(n.params)
        if absent:
            raise SchemaError(
                f"Node '{n.id}' ({n.type}) is missing required "
                f"parameter(s): {', '.join(absent)}"
            )


def parse(raw: Any, registry: Optional[Any] = None) -> Chart:
    """Validate a raw chart description and build an immutable Chart.

    Pure: identical input yields an identical chart or an identical
    error, and nothing is constructed on failure.

    Parameters
    ----------
    raw : Mapping
        Chart description with ``name``, ``version``, ``description`` and
        ``nodes`` (a list of node mappings or an ``{id: node}`` mapping).
    registry : Optional[OperatorRegistry]
        Enables per-type parameter checks.

    Returns
    -------
    Chart

    Raises
    ------
    SchemaError
    """
    if not isinstance(raw, Mapping):
        raise SchemaError(
            f"Chart must be a mapping, got {type(raw).__name__}"
        )
    unknown = sorted(str(k) for k in set(raw) - _CHART_KEYS)
    if unknown:
        raise SchemaError(f"Chart has unknown key(s): {unknown}")
    if 'nodes' not in raw:
        raise SchemaError("Chart is missing 'nodes'")

    name = raw.get('name', '')
    description = raw.get('description', '') or ''
    if not isinstance(name, str) or not isinstance(description, str):
        raise SchemaError("Chart 'name' and 'description' must be strings")

    version = str(raw.get('version', DEFAULT_CHART_VERSION))
    try:
        Version(version)
    except InvalidVersion as e:
        raise SchemaError(f"Invalid chart version '{version}'") from e

    entries = _node_entries(raw['nodes'] if raw['nodes'] is not None else [])
    nodes = tuple(node_spec(e, i) for i, e in enumerate(entries))
    validate_nodes(nodes, registry=registry)

    return Chart(
        name=name, nodes=nodes, version=version, description=description,
    )
