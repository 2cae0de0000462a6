# -*- coding: utf-8 -*-
"""
UOR CLI - Headless chart execution.

Usage::

    python -m uor chart.yaml
    python -m uor chart.yaml --workers 8 --timeout 30 --output result.json

Exit status is 0 when every node computed, 1 for unusable input (missing
file, invalid chart, unbuildable manifold), and 2 when the run finished
with failed, skipped, or cancelled nodes.

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

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, List, Optional

import numpy as np


def _jsonable(value: Any) -> Any:
    """Convert payloads to JSON-compatible values."""
    if isinstance(value, np.ndarray):
        return value.tolist()
    if isinstance(value, np.generic):
        return value.item()
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    return repr(value)


def _summary(manifold: Any) -> dict:
    nodes = {}
    for n in manifold:
        entry = n.to_dict()
        if n.status.value == 'computed':
            entry['payload'] = _jsonable(n.payload)
        nodes[n.id] = entry
    return {
        'chart': manifold.name,
        'chart_version': manifold.chart_version,
        'nodes': nodes,
    }


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="uor",
        description="UOR - Build and run a chart headlessly.",
    )
    parser.add_argument(
        "chart",
        type=Path,
        help="Path to a YAML or JSON chart definition file.",
    )
    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=None,
        help="Maximum concurrent operator invocations.",
    )
    parser.add_argument(
        "--timeout", "-t",
        type=float,
        default=None,
        help="Per-invocation time limit in seconds.",
    )
    parser.add_argument(
        "--config", "-c",
        type=Path,
        default=None,
        dest="config_path",
        help="Path to an engine config JSON file.",
    )
    parser.add_argument(
        "--output", "-o",
        type=Path,
        default=None,
        dest="output_path",
        help="Write the JSON result here instead of stdout.",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Log run progress at INFO level.",
    )

    args = parser.parse_args(argv)

    from uor.core.config import load_config
    config = load_config(args.config_path)
    logging.basicConfig(
        level=logging.INFO if args.verbose else config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.workers is not None and args.workers < 1:
        print("Error: --workers must be at least 1", file=sys.stderr)
        return 1
    if not args.chart.exists():
        print(f"Error: chart file not found: {args.chart}", file=sys.stderr)
        return 1

    from uor.core.api import build_manifold, load_chart, run
    from uor.core.errors import BuildError, ExecutionError, SchemaError
    from uor.core.registry import default_registry

    registry = default_registry()
    try:
        chart_def = load_chart(args.chart, registry=registry)
        manifold = build_manifold(chart_def, registry=registry)
    except (SchemaError, BuildError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    status = 0
    try:
        run(
            manifold, registry,
            max_workers=args.workers,
            timeout=args.timeout,
            config=config,
        )
    except BuildError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except ExecutionError as e:
        print(f"Run failed: {e}", file=sys.stderr)
        status = 2

    text = json.dumps(_summary(manifold), indent=2)
    if args.output_path is not None:
        args.output_path.parent.mkdir(parents=True, exist_ok=True)
        args.output_path.write_text(text + "\n", encoding='utf-8')
        print(f"Result written to: {args.output_path}")
    else:
        print(text)
    return status


if __name__ == "__main__":
    sys.exit(main())
