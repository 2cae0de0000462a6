# -*- coding: utf-8 -*-
"""
Operator Registry - Named lookup of operator capabilities.

A registry is an explicit object constructed once at process start and
passed to the chart parser, manifold builder, and scheduler. Tests build
isolated registries. Operators can be registered one at a time, through
the ``operator`` decorator, or by scanning a module for Operator classes.

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
import importlib
import inspect
import logging
import threading
from types import ModuleType
from typing import Any, Callable, Dict, Iterator, List, Optional, Union

# UOR internal
from uor.core.contracts import OperatorContract
from uor.core.errors import (
    RegistryConflictError,
    RegistryError,
    UnknownOperatorError,
)
from uor.core.operators import BASE_OPERATORS, FunctionOperator, Operator

logger = logging.getLogger(__name__)


class OperatorRegistry:
    """Mapping of operator name to Operator instance.

    Parameters
    ----------
    operators : Optional[List[Operator]]
        Operators to register immediately.
    """

    def __init__(self, operators: Optional[List[Operator]] = None) -> None:
        self._operators: Dict[str, Operator] = {}
        self._lock = threading.Lock()
        for op in operators or []:
            self.register(op)

    def register(
        self,
        op: Union[Operator, type],
        name: Optional[str] = None,
    ) -> Operator:
        """Register an operator instance (or an Operator subclass).

        Parameters
        ----------
        op : Operator or Operator subclass
            Classes are instantiated with no arguments.
        name : Optional[str]
            Registry name. Defaults to ``op.name``.

        Returns
        -------
        Operator
            The registered instance.

        Raises
        ------
        RegistryConflictError
            If the name is already taken.
        RegistryError
            If no name can be determined or ``op`` is not an operator.
        """
        if inspect.isclass(op):
            if not issubclass(op, Operator):
                raise RegistryError(f"{op.__name__} is not an Operator")
            op = op()
        if not isinstance(op, Operator):
            raise RegistryError(
                f"Cannot register {type(op).__name__}: not an Operator"
            )
        key = name or op.name
        if not key:
            raise RegistryError(
                f"{type(op).__name__} has no name; pass name= explicitly"
            )
        with self._lock:
            if key in self._operators:
                raise RegistryConflictError(
                    f"Operator '{key}' is already registered"
                )
            self._operators[key] = op
        logger.debug("Registered operator '%s' (%s)", key, type(op).__name__)
        return op

    def unregister(self, name: str) -> Operator:
        """Remove and return the operator registered under ``name``.

        Raises
        ------
        UnknownOperatorError
        """
        with self._lock:
            if name not in self._operators:
                raise UnknownOperatorError(
                    f"No operator registered under '{name}'"
                )
            return self._operators.pop(name)

    def operator(self, name: Optional[str] = None, **contract: Any) -> Callable:
        """Decorator registering a function ``f(inputs, **params)``.

        Parameters
        ----------
        name : Optional[str]
            Registry name. Defaults to the function name.
        **contract
            Operator contract attributes (arity, deterministic, ...).

        Returns
        -------
        Callable
            Decorator returning the FunctionOperator.
        """

        def decorator(func: Callable) -> FunctionOperator:
            op = FunctionOperator(func, name=name or func.__name__, **contract)
            self.register(op)
            return op

        return decorator

    def get(self, name: str) -> Operator:
        """Look up an operator by name.

        Raises
        ------
        UnknownOperatorError
        """
        try:
            return self._operators[name]
        except KeyError:
            raise UnknownOperatorError(
                f"No operator registered under '{name}'"
            ) from None

    def resolve(self, name: str) -> Operator:
        """Look up by registry name, or import a fully-qualified class.

        Supports both registered names (e.g., ``"add"``) and
        fully-qualified names (e.g., ``"mypkg.ops.Normalize"``). Imported
        classes are instantiated and registered under ``name``.

        Raises
        ------
        UnknownOperatorError
            If the operator cannot be found or imported.
        """
        if name in self._operators:
            return self._operators[name]
        if '.' not in name:
            raise UnknownOperatorError(
                f"Cannot resolve operator '{name}'. Register it or use a "
                f"fully-qualified class name (e.g., 'mypkg.ops.Normalize')."
            )
        module_path, class_name = name.rsplit('.', 1)
        try:
            module = importlib.import_module(module_path)
            cls = getattr(module, class_name)
        except (ImportError, AttributeError) as e:
            raise UnknownOperatorError(
                f"Cannot import operator '{name}': {e}"
            ) from e
        if not (inspect.isclass(cls) and issubclass(cls, Operator)):
            raise UnknownOperatorError(f"'{name}' is not an Operator class")
        try:
            return self.register(cls(), name=name)
        except RegistryConflictError:
            return self._operators[name]

    def discover(self, module: Union[ModuleType, str]) -> List[str]:
        """Register every concrete, named Operator subclass in a module.

        Classes already registered under their name are skipped.

        Parameters
        ----------
        module : ModuleType or str

        Returns
        -------
        List[str]
            Names registered by this call.
        """
        if isinstance(module, str):
            module = importlib.import_module(module)
        added: List[str] = []
        for _, obj in inspect.getmembers(module, inspect.isclass):
            if (not issubclass(obj, Operator) or obj is Operator
                    or inspect.isabstract(obj) or not obj.name):
                continue
            if obj.name in self._operators:
                continue
            self.register(obj)
            added.append(obj.name)
        return added

    def filter(
        self,
        category: Optional[str] = None,
        deterministic: Optional[bool] = None,
    ) -> Dict[str, Operator]:
        """Return operators matching the given category and/or purity.

        Parameters
        ----------
        category : Optional[str]
        deterministic : Optional[bool]

        Returns
        -------
        Dict[str, Operator]
        """
        result: Dict[str, Operator] = {}
        for name, op in self._operators.items():
            if category and op.category != category:
                continue
            if deterministic is not None and op.deterministic != deterministic:
                continue
            result[name] = op
        return result

    def contracts(self) -> Dict[str, OperatorContract]:
        """Declared contract of every registered operator."""
        return {name: op.contract for name, op in self._operators.items()}

    def copy(self) -> 'OperatorRegistry':
        """Independent registry with the same entries."""
        clone = OperatorRegistry()
        clone._operators = dict(self._operators)
        return clone

    def names(self) -> List[str]:
        """Registered names in registration order."""
        return list(self._operators)

    def __contains__(self, name: object) -> bool:
        return name in self._operators

    def __len__(self) -> int:
        return len(self._operators)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._operators))


def default_registry() -> OperatorRegistry:
    """Fresh registry holding the base operators.

    Returns
    -------
    OperatorRegistry
    """
    return OperatorRegistry([cls() for cls in BASE_OPERATORS])
