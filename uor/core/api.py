# -*- coding: utf-8 -*-
"""
Engine API - The operations consumed by CLI and agent layers.

``load_chart``, ``build_manifold``, ``run`` and ``read_payload`` are the
whole public surface over charts and manifolds; scheduler internals stay
behind it. Multi-stage composition goes through
:class:`uor.core.stack.CognitiveStack`.

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
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Callable, Optional

# UOR internal
from uor.core.cache import ResultCache
from uor.core.chart import Chart
from uor.core.config import EngineConfig
from uor.core.dsl import ChartCompiler
from uor.core.errors import SchemaError
from uor.core.manifold import Manifold, chart_to_manifold
from uor.core.scheduler import Scheduler


def load_chart(source: Any, registry: Optional[Any] = None) -> Chart:
    """Load and validate a chart.

    Parameters
    ----------
    source : Mapping, str, bytes, Path, or Chart
        A decoded chart mapping, YAML/JSON text, or a path to a YAML/JSON
        file. Charts are returned unchanged.
    registry : Optional[OperatorRegistry]
        Enables per-type parameter checks.

    Returns
    -------
    Chart

    Raises
    ------
    SchemaError
    """
    if isinstance(source, Chart):
        return source
    compiler = ChartCompiler(registry=registry)
    if isinstance(source, Path):
        try:
            return compiler.compile_yaml(source)
        except OSError as e:
            raise SchemaError(f"Cannot read chart file {source}: {e}") from e
    if isinstance(source, bytes):
        try:
            source = source.decode('utf-8')
        except UnicodeDecodeError as e:
            raise SchemaError("Chart source is not UTF-8 text") from e
    if isinstance(source, str):
        return compiler.compile_yaml_string(source)
    if isinstance(source, Mapping):
        return compiler.compile_dict(source)
    raise SchemaError(
        f"Cannot load a chart from {type(source).__name__}"
    )


def build_manifold(chart: Chart, registry: Optional[Any] = None) -> Manifold:
    """Instantiate a manifold from a chart.

    See :func:`uor.core.manifold.chart_to_manifold`.
    """
    return chart_to_manifold(chart, registry=registry)


def run(
    manifold: Manifold,
    registry: Any,
    max_workers: Optional[int] = None,
    timeout: Optional[float] = None,
    config: Optional[EngineConfig] = None,
    cache: Optional[ResultCache] = None,
    cancel: Optional[Any] = None,
    progress_callback: Optional[Callable[[float], None]] = None,
) -> Manifold:
    """Run a manifold with a one-off scheduler.

    See :meth:`uor.core.scheduler.Scheduler.run` for semantics and
    raised errors.
    """
    scheduler = Scheduler(
        registry,
        max_workers=max_workers,
        timeout=timeout,
        config=config,
        cache=cache,
    )
    return scheduler.run(
        manifold, cancel=cancel, progress_callback=progress_callback,
    )


def read_payload(manifold: Manifold, node_id: str) -> Any:
    """Payload of a computed node.

    Raises
    ------
    KeyError
        Unknown node id.
    PayloadUnavailable
        The node is not computed.
    """
    return manifold.payload(node_id)
