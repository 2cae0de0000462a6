# -*- coding: utf-8 -*-
"""
UOR Engine - Chart-driven concurrent computation engine.

Turns declarative charts into dependency graphs (manifolds), runs
operators across them with bounded parallelism, and composes results
through kernels and multi-stage cognitive stacks.

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

__version__ = "0.1.0"

from uor.core.api import build_manifold, load_chart, read_payload, run
from uor.core.registry import OperatorRegistry, default_registry
from uor.core.stack import CognitiveStack, Stage

__all__: list = [
    "load_chart",
    "build_manifold",
    "run",
    "read_payload",
    "OperatorRegistry",
    "default_registry",
    "CognitiveStack",
    "Stage",
]
