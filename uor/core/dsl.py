# -*- coding: utf-8 -*-
"""
Chart Compiler - Conversion between Python DSL, YAML/JSON, and Chart objects.

Provides the ChartCompiler for converting between:
- Python DSL (@chart decorator + node() calls)
- YAML or JSON chart descriptions
- Validated Chart runtime objects

Also provides the @chart and node() functions for the Python DSL.

Dependencies
------------
pyyaml

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
import json
import textwrap
from pathlib import Path
from typing import Any, Callable, List, Optional

# Third-party
import yaml

# UOR internal
from uor.core.chart import DEFAULT_CHART_VERSION, Chart, parse
from uor.core.errors import SchemaError


# ---------------------------------------------------------------------------
# Python DSL decorators and functions
# ---------------------------------------------------------------------------

# Module-level accumulator for nodes during DSL function execution
_current_nodes: List[dict] = []


def node(node_id: str, node_type: str, *depends_on: str, **params: Any) -> str:
    """Declare a chart node in a Python DSL chart function.

    Must be called inside a function decorated with @chart.

    Parameters
    ----------
    node_id : str
        Node identifier.
    node_type : str
        Operator name.
    *depends_on : str
        Dependency node ids, in input order.
    **params
        Operator parameters.

    Returns
    -------
    str
        ``node_id``, so declarations can be chained by variable.
    """
    entry: dict = {'id': node_id, 'type': node_type}
    if params:
        entry['params'] = params
    if depends_on:
        entry['depends_on'] = list(depends_on)
    _current_nodes.append(entry)
    return node_id


def chart(
    name: str,
    version: str = DEFAULT_CHART_VERSION,
    description: str = "",
    registry: Optional[Any] = None,
) -> Callable:
    """Decorator for Python DSL chart definitions.

    Decorates a function that calls node() to declare nodes. The function
    is executed at decoration time and the resulting chart is validated.

    Parameters
    ----------
    name : str
    version : str
    description : str
    registry : Optional[OperatorRegistry]
        Enables per-type parameter checks.

    Returns
    -------
    Callable
        Decorator that attaches the Chart as ``func._chart``.
    """

    def decorator(func: Callable) -> Callable:
        global _current_nodes
        _current_nodes = []
        try:
            func()
            captured = list(_current_nodes)
        finally:
            _current_nodes = []

        func._chart = parse(
            {
                'name': name,
                'version': version,
                'description': description,
                'nodes': captured,
            },
            registry=registry,
        )
        return func

    return decorator


# ---------------------------------------------------------------------------
# ChartCompiler
# ---------------------------------------------------------------------------

class ChartCompiler:
    """Bidirectional conversion between text, Python DSL, and charts.

    Parameters
    ----------
    registry : Optional[OperatorRegistry]
        Passed to :func:`uor.core.chart.parse` for per-type checks.
    """

    def __init__(self, registry: Optional[Any] = None) -> None:
        self._registry = registry

    def compile_dict(self, data: Any) -> Chart:
        """Validate an already-decoded chart description."""
        return parse(data, registry=self._registry)

    def compile_yaml(self, yaml_path: Path) -> Chart:
        """Compile a YAML (or JSON) chart file.

        Parameters
        ----------
        yaml_path : Path

        Returns
        -------
        Chart
        """
        with open(yaml_path, 'r', encoding='utf-8') as f:
            text = f.read()
        return self.compile_yaml_string(text)

    def compile_yaml_string(self, yaml_string: str) -> Chart:
        """Compile a chart from YAML text. JSON text is valid YAML.

        Raises
        ------
        SchemaError
            If the text is empty or not valid YAML.
        """
        if not yaml_string or not yaml_string.strip():
            raise SchemaError("Chart source is empty")
        try:
            data = yaml.safe_load(yaml_string)
        except yaml.YAMLError as e:
            raise SchemaError(f"Chart source is not valid YAML: {e}") from e
        return self.compile_dict(data)

    def compile_json_string(self, json_string: str) -> Chart:
        """Compile a chart from strict JSON text."""
        if not json_string or not json_string.strip():
            raise SchemaError("Chart source is empty")
        try:
            data = json.loads(json_string)
        except json.JSONDecodeError as e:
            raise SchemaError(f"Chart source is not valid JSON: {e}") from e
        return self.compile_dict(data)

    def to_yaml(self, chart_def: Chart) -> str:
        """Generate YAML from a Chart.

        Returns
        -------
        str
        """
        return yaml.safe_dump(
            chart_def.to_dict(),
            default_flow_style=False,
            sort_keys=False,
        )

    def to_python(self, chart_def: Chart) -> str:
        """Generate Python DSL source from a Chart.

        Parameters
        ----------
        chart_def : Chart

        Returns
        -------
        str
            Python source code.
        """
        lines = [
            'from uor.core.dsl import chart, node',
            '',
            '',
        ]

        decorator_args = [
            f'name={chart_def.name!r}',
            f'version={chart_def.version!r}',
        ]
        if chart_def.description:
            decorator_args.append(f'description={chart_def.description!r}')
        decorator = '@chart(\n' + textwrap.indent(
            ',\n'.join(decorator_args), '    '
        ) + ',\n)'
        lines.append(decorator)

        func_name = ''.join(
            c if c.isalnum() else '_' for c in chart_def.name.lower()
        ).strip('_') or 'unnamed'
        if func_name[0].isdigit():
            func_name = f'chart_{func_name}'
        lines.append(f'def {func_name}():')

        if not chart_def.nodes:
            lines.append('    pass')
        else:
            for n in chart_def.nodes:
                args = [repr(n.id), repr(n.type)]
                args.extend(repr(d) for d in n.depends_on)
                for k, v in n.params.items():
                    args.append(f'{k}={v!r}')
                lines.append(f'    node({", ".join(args)})')

        lines.append('')
        return '\n'.join(lines)
