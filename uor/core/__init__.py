# -*- coding: utf-8 -*-
"""
Core Module - Chart, manifold, scheduling, and composition logic.

Contains chart validation and DSL compilation, manifold construction,
the operator registry, the concurrent scheduler, kernels, the memory
cortex, cognitive stacks, and configuration.

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
