"""Discovery of registered graph members.

The scanner walks the registration table, resolves each member's owner and
binding style, and pairs it with its member markers and the markers found in
its parameters' ``Annotated`` metadata. Problems are reported per member;
one bad declaration never stops the scan.
"""

from __future__ import annotations

import inspect
import logging
import sys
import typing
from dataclasses import dataclass, field
from typing import Annotated, Any, Callable, get_args, get_origin

from .config import DiscoveryConfig
from .exceptions import DiscoveryError, DiscoveryRule
from .markers import (
    MISSING,
    GraphCategory,
    GraphEvent,
    GraphFlowOutput,
    GraphInput,
    GraphNode,
    GraphOutput,
    GraphProperty,
    GraphTypeConstraint,
    Out,
)
from .nodes.registry import MemberRecord, MemberRegistry, get_registry
from .nodes.schema import Binding, MemberKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ParameterInfo:
    """One parameter of a discovered callable with its port markers."""

    name: str
    annotation: Any  # Annotated metadata stripped, MISSING when unannotated
    kind: inspect._ParameterKind = inspect.Parameter.POSITIONAL_OR_KEYWORD
    default: Any = MISSING
    input_marker: GraphInput | None = None
    output_marker: GraphOutput | None = None
    constraint: GraphTypeConstraint | None = None

    @property
    def is_out(self) -> bool:
        return self.annotation is Out or get_origin(self.annotation) is Out

    @property
    def value_type(self) -> Any:
        """Carried type; the element type for ``Out[T]`` parameters."""
        if self.is_out:
            args = get_args(self.annotation)
            return args[0] if args else MISSING
        return self.annotation

    @property
    def is_variadic(self) -> bool:
        return self.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)


@dataclass(frozen=True)
class DiscoveredMember:
    """A registered member paired with every marker that applies to it."""

    member_id: str
    name: str
    kind: MemberKind
    marker: GraphNode | GraphProperty | GraphEvent
    binding: Binding = Binding.FREE
    owner: type | None = None
    target: Callable[..., Any] | None = None
    parameters: tuple[ParameterInfo, ...] = ()
    return_annotation: Any = None  # None means void
    flow_outputs: tuple[GraphFlowOutput, ...] = ()
    category: GraphCategory | None = None
    # property members only
    getter: Callable[..., Any] | None = None
    setter: Callable[..., Any] | None = None
    value_annotation: Any = MISSING


@dataclass
class DiscoveryResult:
    """Members and categories accepted by discovery, plus the errors."""

    members: list[DiscoveredMember] = field(default_factory=list)
    errors: list[DiscoveryError] = field(default_factory=list)
    categories: list[GraphCategory] = field(default_factory=list)


def split_annotated(annotation: Any) -> tuple[Any, tuple[Any, ...]]:
    """Split ``Annotated[T, *meta]`` into ``(T, meta)``."""
    if get_origin(annotation) is Annotated:
        base, *metadata = get_args(annotation)
        return base, tuple(metadata)
    return annotation, ()


def valid_path(path: str | None) -> bool:
    """Whether every ``/``-separated segment of ``path`` is non-empty."""
    if not path:
        return False
    return all(segment.strip() for segment in path.split("/"))


class DiscoveryScanner:
    """Enumerates registered members carrying a node, property or event marker."""

    def __init__(
        self,
        registry: MemberRegistry | None = None,
        config: DiscoveryConfig | None = None,
    ):
        self.registry = registry or get_registry()
        self.config = config or DiscoveryConfig()

    def scan(self) -> DiscoveryResult:
        """Discover all registered members.

        Returns:
            DiscoveryResult with members ordered by member identity
        """
        result = DiscoveryResult()
        for record in self.registry.records():
            if self._skipped(record.module):
                logger.debug("Skipping %s (module filtered)", record.member_id)
                continue
            try:
                result.members.append(self._discover(record))
            except DiscoveryError as e:
                logger.debug("Discovery rejected %s", e)
                result.errors.append(e)
        self._scan_categories(result)

        logger.debug(
            "Discovered %d members (%d rejected)", len(result.members), len(result.errors)
        )
        return result

    def _scan_categories(self, result: DiscoveryResult) -> None:
        for category in self.registry.standalone_categories():
            if valid_path(category.path):
                result.categories.append(category)
                continue
            error = DiscoveryError(
                f"category:{category.path}",
                DiscoveryRule.INVALID_CATEGORY,
                f"category path {category.path!r} has empty segments",
            )
            logger.debug("Discovery rejected %s", error)
            result.errors.append(error)
        # invalid class categories are reported against each member that uses them
        result.categories.extend(
            c for c in self.registry.type_categories() if valid_path(c.path)
        )

    def _skipped(self, module: str) -> bool:
        return any(module.startswith(prefix) for prefix in self.config.skip_module_prefixes)

    def _error(self, record: MemberRecord, rule: DiscoveryRule, message: str) -> DiscoveryError:
        return DiscoveryError(record.member_id, rule, message)

    def _discover(self, record: MemberRecord) -> DiscoveredMember:
        nodes = [m for m in record.markers if isinstance(m, GraphNode)]
        properties = [m for m in record.markers if isinstance(m, GraphProperty)]
        events = [m for m in record.markers if isinstance(m, GraphEvent)]

        declared = [group for group in (nodes, properties, events) if group]
        if not declared:
            raise self._error(
                record,
                DiscoveryRule.ORPHAN_FLOW_OUTPUT,
                "flow outputs declared without a graph_node marker",
            )
        if len(declared) > 1 or len(declared[0]) > 1:
            names = ", ".join(type(m).__name__ for m in record.markers)
            raise self._error(
                record,
                DiscoveryRule.CONFLICTING_MARKERS,
                f"member carries conflicting markers: {names}",
            )
        if record.flow_outputs and not nodes:
            raise self._error(
                record,
                DiscoveryRule.ORPHAN_FLOW_OUTPUT,
                "flow outputs are only valid on graph_node members",
            )

        owner = self._resolve_owner(record)
        category = self._owner_category(record, owner)

        if properties:
            return self._discover_property(record, properties[0], owner, category)
        marker = nodes[0] if nodes else events[0]
        return self._discover_callable(record, marker, owner, category)

    def _resolve_owner(self, record: MemberRecord) -> type | None:
        owner_qualname = record.owner_qualname
        if owner_qualname is None:
            if isinstance(record.target, property):
                raise self._error(
                    record,
                    DiscoveryRule.UNRESOLVABLE_OWNER,
                    "property is not defined inside a class",
                )
            return None

        type_record = self.registry.get_type(record.module, owner_qualname)
        if type_record is not None:
            return type_record.cls

        owner: Any = sys.modules.get(record.module)
        for part in owner_qualname.split("."):
            if owner is None or part == "<locals>":
                owner = None
                break
            owner = getattr(owner, part, None)

        if not isinstance(owner, type):
            raise self._error(
                record,
                DiscoveryRule.UNRESOLVABLE_OWNER,
                f"cannot locate owning class {owner_qualname!r}; register it with graph_type",
            )
        return owner

    def _owner_category(self, record: MemberRecord, owner: type | None) -> GraphCategory | None:
        if owner is None:
            return None
        type_record = self.registry.get_type(owner.__module__, owner.__qualname__)
        category = type_record.category if type_record else None
        if category is not None and not valid_path(category.path):
            raise self._error(
                record,
                DiscoveryRule.INVALID_CATEGORY,
                f"category path {category.path!r} has empty segments",
            )
        return category

    def _discover_callable(
        self,
        record: MemberRecord,
        marker: GraphNode | GraphEvent,
        owner: type | None,
        category: GraphCategory | None,
    ) -> DiscoveredMember:
        raw = owner.__dict__.get(record.name, record.target) if owner else record.target

        if isinstance(raw, staticmethod):
            binding, function = Binding.STATIC, raw.__func__
        elif isinstance(raw, classmethod):
            binding, function = Binding.CLASS, raw.__func__
        else:
            binding = Binding.INSTANCE if owner is not None else Binding.FREE
            function = raw

        if isinstance(function, (type, property)) or not callable(function):
            raise self._error(
                record,
                DiscoveryRule.NOT_INVOCABLE,
                f"{type(marker).__name__} requires a function, got {type(function).__name__}",
            )

        skip_first = binding in (Binding.CLASS, Binding.INSTANCE)
        parameters, return_annotation = self._signature(record, function, skip_first)

        kind = MemberKind.METHOD
        if isinstance(marker, GraphEvent):
            kind = MemberKind.EVENT
            for param in parameters:
                if param.input_marker is not None or param.is_out:
                    raise self._error(
                        record,
                        DiscoveryRule.CONFLICTING_MARKERS,
                        f"event payload parameter {param.name!r} cannot be an input or Out cell",
                    )

        return DiscoveredMember(
            member_id=record.member_id,
            name=record.name,
            kind=kind,
            marker=marker,
            binding=binding,
            owner=owner,
            target=function,
            parameters=parameters,
            return_annotation=return_annotation,
            flow_outputs=tuple(record.flow_outputs),
            category=category,
        )

    def _discover_property(
        self,
        record: MemberRecord,
        marker: GraphProperty,
        owner: type | None,
        category: GraphCategory | None,
    ) -> DiscoveredMember:
        # Resolve through the owner so setters added after decoration are seen
        raw = owner.__dict__.get(record.name, record.target) if owner else record.target
        if not isinstance(raw, property):
            raise self._error(
                record,
                DiscoveryRule.NOT_INVOCABLE,
                f"graph_property requires a property, got {type(raw).__name__}",
            )
        if raw.fget is None and raw.fset is None:
            raise self._error(record, DiscoveryRule.EMPTY_PROPERTY, "property has no accessors")
        if marker.read_only and raw.fget is None:
            raise self._error(
                record,
                DiscoveryRule.CONFLICTING_MARKERS,
                "read_only is set on a write-only property",
            )

        if raw.fget is not None:
            _, value_annotation = self._signature(record, raw.fget, skip_first=True)
        else:
            params, _ = self._signature(record, raw.fset, skip_first=True)
            value_annotation = params[0].annotation if params else MISSING

        return DiscoveredMember(
            member_id=record.member_id,
            name=record.name,
            kind=MemberKind.PROPERTY,
            marker=marker,
            binding=Binding.INSTANCE,
            owner=owner,
            category=category,
            getter=raw.fget,
            setter=raw.fset,
            value_annotation=MISSING if value_annotation is None else value_annotation,
        )

    def _signature(
        self,
        record: MemberRecord,
        function: Callable[..., Any],
        skip_first: bool,
    ) -> tuple[tuple[ParameterInfo, ...], Any]:
        try:
            hints = typing.get_type_hints(function, include_extras=True)
        except Exception as e:
            raise self._error(
                record,
                DiscoveryRule.UNRESOLVABLE_ANNOTATIONS,
                f"cannot evaluate annotations: {e}",
            ) from e

        signature = inspect.signature(function)
        params = list(signature.parameters.values())
        if skip_first:
            params = params[1:]

        infos = []
        for param in params:
            annotation, metadata = split_annotated(hints.get(param.name, MISSING))
            inputs = [m for m in metadata if isinstance(m, GraphInput)]
            outputs = [m for m in metadata if isinstance(m, GraphOutput)]
            constraints = [m for m in metadata if isinstance(m, GraphTypeConstraint)]

            if len(inputs) > 1 or len(outputs) > 1 or len(constraints) > 1 or (inputs and outputs):
                raise self._error(
                    record,
                    DiscoveryRule.CONFLICTING_MARKERS,
                    f"parameter {param.name!r} carries conflicting port markers",
                )

            info = ParameterInfo(
                name=param.name,
                annotation=annotation,
                kind=param.kind,
                default=MISSING if param.default is inspect.Parameter.empty else param.default,
                input_marker=inputs[0] if inputs else None,
                output_marker=outputs[0] if outputs else None,
                constraint=constraints[0] if constraints else None,
            )
            if info.output_marker is not None and not info.is_out:
                raise self._error(
                    record,
                    DiscoveryRule.CONFLICTING_MARKERS,
                    f"GraphOutput on {param.name!r} requires an Out[T] parameter",
                )
            if info.input_marker is not None and info.is_out:
                raise self._error(
                    record,
                    DiscoveryRule.CONFLICTING_MARKERS,
                    f"GraphInput on out-parameter {param.name!r}",
                )
            infos.append(info)

        return_annotation = hints.get("return", MISSING)
        if return_annotation in (MISSING, None, type(None)):
            return_annotation = None
        else:
            return_annotation, _ = split_annotated(return_annotation)
        return tuple(infos), return_annotation
