"""Graph bridge: build pass orchestration and the artifacts it produces.

A build runs discovery, validates members in parallel, then merges the
accepted descriptors into the descriptor set, category index and adapter
cache in a single writer step. Artifacts are rebuilt whenever the registry
version moves on; they are never mutated while a build is in progress.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping, TypeVar

from .adapters import Adapter, AdapterEmitter, GenericAdapter
from .category_index import CategoryIndex
from .config import BridgeConfig, DiscoveryConfig
from .discovery import DiscoveryScanner
from .exceptions import BuildError, GraphBridgeError, ValidationError, ValidationRule
from .nodes.registry import MemberRegistry, get_registry
from .nodes.schema import NodeDescriptor
from .runtime import FlowDispatchRuntime, InvocationResult
from .schema_builder import SchemaBuilder
from .value_types import ValueTypeUniverse, default_universe

logger = logging.getLogger(__name__)

BUILTIN_NODES_MODULE = "graphbridge.nodes"

T = TypeVar("T")
U = TypeVar("U")


@dataclass
class BuildReport:
    """Aggregated result of one build pass."""

    descriptors: list[NodeDescriptor] = field(default_factory=list)
    errors: list[BuildError] = field(default_factory=list)
    discovered: int = 0
    registry_version: int = 0

    @property
    def ok(self) -> bool:
        return not self.errors

    def errors_for(self, member_id: str) -> list[BuildError]:
        return [e for e in self.errors if e.member_id == member_id]

    def rules(self) -> set[str]:
        """Names of every rule that rejected something."""
        return {e.rule.value for e in self.errors}


class GraphBridge:
    """Owns the descriptor set, category index and adapter cache."""

    def __init__(
        self,
        registry: MemberRegistry | None = None,
        universe: ValueTypeUniverse | None = None,
        config: BridgeConfig | None = None,
    ):
        self.registry = registry or get_registry()
        self.universe = universe or default_universe()
        self.config = config or BridgeConfig()
        self.emitter = AdapterEmitter(self.universe)
        self.runtime = FlowDispatchRuntime(self.config.runtime)

        self._lock = threading.RLock()
        self._built_version: int | None = None
        self._report = BuildReport()
        self._by_path: dict[str, NodeDescriptor] = {}
        self._by_key: dict[str, NodeDescriptor] = {}
        self._index = CategoryIndex(self.config.index)
        self._adapters: dict[str, Adapter | GenericAdapter] = {}

    # ------------------------------------------------------------------
    # Build
    # ------------------------------------------------------------------

    def _discovery_config(self) -> DiscoveryConfig:
        config = self.config.discovery
        if config.include_builtin_nodes:
            return config
        prefixes = [*config.skip_module_prefixes, BUILTIN_NODES_MODULE]
        return config.model_copy(update={"skip_module_prefixes": prefixes})

    def _map(self, fn: Callable[[T], U], items: Iterable[T]) -> list[U]:
        items = list(items)
        workers = self.config.build.max_workers
        if workers == 1 or len(items) < 2:
            return [fn(item) for item in items]
        with ThreadPoolExecutor(max_workers=workers) as executor:
            return list(executor.map(fn, items))

    def build(self) -> BuildReport:
        """Run a full build pass and replace every artifact.

        Returns:
            BuildReport listing accepted descriptors and aggregated errors
        """
        with self._lock:
            version = self.registry.version
            discovered = DiscoveryScanner(self.registry, self._discovery_config()).scan()
            builder = SchemaBuilder(self.universe, self.config.index)

            # members arrive ordered by identity; map() keeps that order
            outcomes = self._map(builder.build, discovered.members)

            errors: list[BuildError] = list(discovered.errors)
            by_path: dict[str, NodeDescriptor] = {}
            for outcome in outcomes:
                errors.extend(outcome.errors)
                for descriptor in outcome.descriptors:
                    existing = by_path.get(descriptor.menu_path)
                    if existing is not None:
                        errors.append(
                            ValidationError(
                                outcome.member_id,
                                ValidationRule.DUPLICATE_MENU_PATH,
                                f"menu path {descriptor.menu_path!r} is already used by {existing.key}",
                            )
                        )
                        continue
                    by_path[descriptor.menu_path] = descriptor

            self._by_path = by_path
            self._by_key = {d.key: d for d in by_path.values()}
            self._index = CategoryIndex.build(
                by_path.values(), discovered.categories, self.config.index
            )
            self._adapters = {}
            if self.config.build.eager_adapters:
                descriptors = list(by_path.values())
                emitted = self._map(self.emitter.emit, descriptors)
                self._adapters = {d.key: a for d, a in zip(descriptors, emitted)}

            self._built_version = version
            self._report = BuildReport(
                descriptors=self._index.descriptors(),
                errors=errors,
                discovered=len(discovered.members),
                registry_version=version,
            )

        logger.info(
            "Built %d nodes from %d members (%d errors)",
            len(self._report.descriptors),
            self._report.discovered,
            len(errors),
        )
        for error in errors:
            logger.warning("%s", error)
        return self._report

    def ensure_built(self) -> None:
        """Rebuild if the registry changed since the last build."""
        with self._lock:
            if self._built_version != self.registry.version:
                self.build()

    def invalidate(self) -> None:
        """Drop all artifacts; the next access rebuilds."""
        with self._lock:
            self._built_version = None

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def report(self) -> BuildReport:
        self.ensure_built()
        return self._report

    @property
    def index(self) -> CategoryIndex:
        self.ensure_built()
        return self._index

    @property
    def descriptors(self) -> list[NodeDescriptor]:
        """Accepted descriptors in menu order."""
        return list(self.report.descriptors)

    def get(self, menu_path: str) -> NodeDescriptor | None:
        self.ensure_built()
        return self._by_path.get(menu_path)

    def get_by_key(self, key: str) -> NodeDescriptor | None:
        self.ensure_built()
        return self._by_key.get(key)

    def search(self, query: str) -> list[NodeDescriptor]:
        return self.index.search(query)

    def _require(self, menu_path: str) -> NodeDescriptor:
        descriptor = self.get(menu_path)
        if descriptor is None:
            raise GraphBridgeError(f"No node at menu path {menu_path!r}")
        return descriptor

    def adapter_for(self, node: str | NodeDescriptor) -> Adapter | GenericAdapter:
        """Cached adapter for a descriptor or menu path.

        Raises:
            GraphBridgeError: If no node has the given menu path
        """
        descriptor = self._require(node) if isinstance(node, str) else node
        with self._lock:
            adapter = self._adapters.get(descriptor.key)
            if adapter is None:
                adapter = self._adapters[descriptor.key] = self.emitter.emit(descriptor)
            return adapter

    def invoke(self, menu_path: str, bindings: Mapping[str, Any] | None = None) -> InvocationResult:
        """Activate the node at ``menu_path`` once through the runtime."""
        return self.runtime.execute(self.adapter_for(menu_path), bindings)


_bridge: GraphBridge | None = None
_bridge_lock = threading.Lock()


def get_bridge() -> GraphBridge:
    """Get the process-wide bridge over the default registry."""
    global _bridge
    with _bridge_lock:
        if _bridge is None:
            _bridge = GraphBridge()
        return _bridge


def reset_bridge() -> None:
    """Forget the process-wide bridge."""
    global _bridge
    with _bridge_lock:
        _bridge = None
