# -*- coding: utf-8 -*-
"""
Cognitive Stack - Ordered operator/kernel stages over an evolving manifold.

Each stage adds one node to a new version of the manifold, bound to the
payloads of earlier nodes, and runs the scheduler over that version.
Payloads of deterministic nodes carry over between versions; nodes
backed by learned or external state are computed again. The first stage
failure stops the stack and re-raises the underlying ExecutionError.

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
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

# Third-party
import numpy as np

# UOR internal
from uor.core.cache import ResultCache
from uor.core.chart import NodeSpec
from uor.core.config import EngineConfig
from uor.core.cortex import MemoryCortex, QuaternionEmbedding
from uor.core.errors import ExecutionError, StackError
from uor.core.kernel import Kernel, KernelOperator
from uor.core.manifold import Manifold
from uor.core.operators import Operator
from uor.core.scheduler import Scheduler

logger = logging.getLogger(__name__)


class Stage:
    """One step of a cognitive stack.

    Parameters
    ----------
    name : str
        Stage name, also the default node id.
    operator : str or Operator
        Registry name or operator instance computing the stage node.
    inputs : Optional[Sequence[str]]
        Node ids whose payloads feed this stage, in order. None means
        the previous stage's node (no inputs for the first stage).
    params : Optional[Dict[str, Any]]
        Operator parameters.
    node_id : Optional[str]
        Id of the node the stage adds. Defaults to ``name``.
    """

    def __init__(
        self,
        name: str,
        operator: Union[str, Operator],
        inputs: Optional[Sequence[str]] = None,
        params: Optional[Dict[str, Any]] = None,
        node_id: Optional[str] = None,
    ) -> None:
        self.name = name
        self.operator = operator
        self.inputs = tuple(inputs) if inputs is not None else None
        self.params = params or {}
        self.node_id = node_id or name

    def __repr__(self) -> str:
        return f"Stage({self.name!r}, node={self.node_id!r})"


class StackResult:
    """Outcome of a cognitive stack run.

    Parameters
    ----------
    manifold : Manifold
        Final manifold version.
    history : List[Manifold]
        Manifold version produced by each stage, in order.
    output_node : Optional[str]
        Node id of the last stage.
    embedding : Optional[np.ndarray]
        Quaternion embedding of the final manifold, when configured.
    """

    def __init__(
        self,
        manifold: Manifold,
        history: List[Manifold],
        output_node: Optional[str],
        embedding: Optional[np.ndarray] = None,
    ) -> None:
        self.manifold = manifold
        self.history = history
        self.output_node = output_node
        self.embedding = embedding

    @property
    def output(self) -> Any:
        """Payload of the last stage's node."""
        if self.output_node is None:
            return None
        return self.manifold.payload(self.output_node)


class CognitiveStack:
    """Up to ``config.max_stages`` model stages plus one kernel slot.

    Parameters
    ----------
    registry : OperatorRegistry
        Resolves stage operators given by name. Not modified; the stack
        works on its own copy.
    config : Optional[EngineConfig]
    max_workers : Optional[int]
    timeout : Optional[float]
    cache : Optional[ResultCache]
    cortex : Optional[MemoryCortex]
        When given, the final manifold is linked into it.
    embedding : Optional[QuaternionEmbedding]
        When given with a cortex, the final manifold is embedded.
    """

    def __init__(
        self,
        registry: Any,
        config: Optional[EngineConfig] = None,
        max_workers: Optional[int] = None,
        timeout: Optional[float] = None,
        cache: Optional[ResultCache] = None,
        cortex: Optional[MemoryCortex] = None,
        embedding: Optional[QuaternionEmbedding] = None,
    ) -> None:
        self._config = config or EngineConfig()
        self._registry = registry.copy()
        self._scheduler = Scheduler(
            self._registry,
            max_workers=max_workers,
            timeout=timeout,
            config=self._config,
            cache=cache,
        )
        self._stages: List[Stage] = []
        self._kernel_stage: Optional[Stage] = None
        self.cortex = cortex
        self.embedding = embedding
        if self.embedding is not None and self.cortex is None:
            self.cortex = MemoryCortex()

    @property
    def stages(self) -> tuple:
        """Model stages followed by the kernel stage, if set."""
        if self._kernel_stage is None:
            return tuple(self._stages)
        return tuple(self._stages) + (self._kernel_stage,)

    @property
    def scheduler(self) -> Scheduler:
        return self._scheduler

    def _operator_name(self, stage: Stage) -> str:
        op = stage.operator
        if isinstance(op, str):
            if op not in self._registry:
                self._registry.resolve(op)
            return op
        if not isinstance(op, Operator):
            raise StackError(
                f"Stage '{stage.name}' operator must be a name or an "
                f"Operator, got {type(op).__name__}"
            )
        name = op.name or stage.name
        if name in self._registry and self._registry.get(name) is not op:
            name = f"{stage.name}:{name}"
        if name not in self._registry:
            self._registry.register(op, name=name)
        elif self._registry.get(name) is not op:
            raise StackError(
                f"Stage '{stage.name}' operator name '{name}' is taken"
            )
        return name

    def _resolved(self, stage: Stage) -> Stage:
        """Copy of ``stage`` naming its operator by registry name."""
        return Stage(
            stage.name,
            self._operator_name(stage),
            inputs=stage.inputs,
            params=dict(stage.params),
            node_id=stage.node_id,
        )

    def _check_node_id(self, node_id: str) -> None:
        if any(s.node_id == node_id for s in self.stages):
            raise StackError(f"Stage node id '{node_id}' is already used")

    def add_stage(self, stage: Stage) -> None:
        """Append a model stage.

        Raises
        ------
        StackError
            If the stack is full or the node id is taken.
        """
        if len(self._stages) >= self._config.max_stages:
            raise StackError(
                f"A cognitive stack holds at most "
                f"{self._config.max_stages} model stages"
            )
        self._check_node_id(stage.node_id)
        self._stages.append(self._resolved(stage))

    def set_kernel(
        self,
        kernel: Kernel,
        inputs: Optional[Sequence[str]] = None,
        node_id: str = "kernel",
    ) -> None:
        """Place a kernel in the terminal slot, replacing any previous one.

        Parameters
        ----------
        kernel : Kernel
        inputs : Optional[Sequence[str]]
            Defaults to the last model stage's node.
        node_id : str
        """
        if self._kernel_stage is not None:
            self._registry.unregister(self._kernel_stage.operator)
            self._kernel_stage = None
        self._check_node_id(node_id)
        op = KernelOperator(kernel, name=f"kernel:{node_id}")
        stage = Stage(node_id, op, inputs=inputs, node_id=node_id)
        self._kernel_stage = self._resolved(stage)

    def run(
        self,
        manifold: Optional[Manifold] = None,
        bindings: Optional[Mapping[str, Any]] = None,
        cancel: Optional[Any] = None,
    ) -> StackResult:
        """Run every stage in order.

        Parameters
        ----------
        manifold : Optional[Manifold]
            Starting manifold. It is never modified; stage one works on
            a derived version. An empty manifold is used when omitted.
        bindings : Optional[Mapping[str, Any]]
            Input payloads bound on the first version.
        cancel : Optional[threading.Event]

        Returns
        -------
        StackResult

        Raises
        ------
        ExecutionError
            From the first failing stage, with ``stage`` set.
        StackError
            If the stack has no stages.
        """
        stages = self.stages
        if not stages:
            raise StackError("Cognitive stack has no stages")
        current = manifold if manifold is not None else Manifold(name="stack")

        history: List[Manifold] = []
        previous: Optional[str] = None
        for i, stage in enumerate(stages):
            version = current.derive(bindings if i == 0 else None)
            inputs = stage.inputs
            if inputs is None:
                inputs = (previous,) if previous is not None else ()
            spec = NodeSpec(
                id=stage.node_id, type=stage.operator,
                params=stage.params, depends_on=inputs,
            )
            if stage.node_id in version:
                # Re-running over an earlier turn's manifold.
                if version.node(stage.node_id).spec != spec:
                    raise StackError(
                        f"Stage '{stage.name}' node '{stage.node_id}' "
                        f"already exists with a different definition"
                    )
            else:
                version.extend([spec], registry=self._registry)
            logger.info(
                "Stage %d/%d '%s' on manifold v%d",
                i + 1, len(stages), stage.name, version.version,
            )
            try:
                self._scheduler.run(version, cancel=cancel)
            except ExecutionError as e:
                e.stage = stage.name
                logger.error("Stage '%s' failed; halting stack", stage.name)
                raise
            history.append(version)
            current = version
            previous = stage.node_id

        embedding = None
        if self.cortex is not None:
            if self.embedding is not None:
                embedding = self.embedding.embed_manifold(current, self.cortex)
            else:
                self.cortex.link_manifold(current)
        return StackResult(current, history, previous, embedding)
