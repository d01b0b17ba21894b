"""Schema definitions describing a graph node to editors and adapters."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, TypeVar

from ..markers import DEFAULT_CATEGORY_PRIORITY, MISSING

IMPLICIT_FLOW_OUTPUT = "next"


class MemberKind(str, Enum):
    """Kind of source member a node was derived from."""

    METHOD = "method"
    PROPERTY = "property"
    EVENT = "event"


class Binding(str, Enum):
    """How the underlying callable receives its owner."""

    FREE = "free"  # module-level or nested function
    STATIC = "static"
    CLASS = "class"
    INSTANCE = "instance"


class PortRole(str, Enum):
    INPUT = "input"
    OUTPUT = "output"
    INSTANCE = "instance"  # bound receiver of an instance member
    PAYLOAD = "payload"  # event data, bound by the host when the event fires


@dataclass(frozen=True)
class PortDescriptor:
    """Describes a single input or output port."""

    name: str  # source parameter or property name
    value_type: Any
    role: PortRole = PortRole.INPUT
    display_name: str | None = None
    default_value: Any = MISSING
    hidden: bool = False
    tooltip: str | None = None
    range: tuple[float | None, float | None] | None = None  # presentation only
    type_constraint: tuple[type, ...] | None = None

    @property
    def label(self) -> str:
        """Display name, derived from the source name when not given."""
        return self.display_name or self.name

    @property
    def has_default(self) -> bool:
        return self.default_value is not MISSING


@dataclass(frozen=True)
class FlowPortDescriptor:
    """An execution output. Its position in ``flow_outputs`` is its dispatch index."""

    name: str
    tooltip: str | None = None


@dataclass(frozen=True)
class NodeMetadata:
    """Editor-facing presentation data."""

    icon: str | None = None
    color: str | None = None
    tooltip: str | None = None
    category: str | None = None
    searchable: bool = True
    search_keywords: tuple[str, ...] = ()
    priority: int = DEFAULT_CATEGORY_PRIORITY
    networked: bool = False


@dataclass(frozen=True)
class TypeParameter:
    """A generic type variable and the concrete types it may bind to."""

    variable: TypeVar
    allowed: tuple[type, ...]

    @property
    def name(self) -> str:
        return self.variable.__name__


@dataclass(frozen=True)
class ParameterSlot:
    """Maps one parameter of the underlying callable to its source of value.

    ``port`` indexes ``inputs`` for input/instance slots and ``outputs`` for
    output and payload slots.
    """

    parameter: str
    role: PortRole
    port: int
    keyword: bool = False


@dataclass(frozen=True)
class CallPlan:
    """Everything an adapter needs to call the underlying member."""

    target: Callable[..., Any]
    binding: Binding
    slots: tuple[ParameterSlot, ...] = ()
    returns_value: bool = False


@dataclass(frozen=True, eq=False)
class NodeDescriptor:
    """Normalized, validated schema for one exposed node.

    Descriptors compare by identity; ``key`` identifies the source member.
    """

    key: str
    menu_path: str
    kind: MemberKind
    call: CallPlan
    is_flow_node: bool = True
    inputs: tuple[PortDescriptor, ...] = ()
    outputs: tuple[PortDescriptor, ...] = ()
    flow_outputs: tuple[FlowPortDescriptor, ...] = ()
    metadata: NodeMetadata = field(default_factory=NodeMetadata)
    type_parameters: tuple[TypeParameter, ...] = ()
    branch_on_return: bool = False
    owner: type | None = None

    @property
    def label(self) -> str:
        """Last menu-path segment, shown as the node title."""
        return self.menu_path.rsplit("/", 1)[-1]

    @property
    def category_path(self) -> str:
        """Menu path without the node's own segment ('' for root nodes)."""
        return self.menu_path.rsplit("/", 1)[0] if "/" in self.menu_path else ""

    @property
    def is_generic(self) -> bool:
        return bool(self.type_parameters)

    @property
    def successors(self) -> tuple[FlowPortDescriptor, ...]:
        """Flow outputs, or the single implicit ``next`` successor."""
        if not self.is_flow_node:
            return ()
        return self.flow_outputs or (FlowPortDescriptor(IMPLICIT_FLOW_OUTPUT),)

    def input(self, label: str) -> PortDescriptor | None:
        return next((p for p in self.inputs if p.label == label), None)

    def output(self, label: str) -> PortDescriptor | None:
        return next((p for p in self.outputs if p.label == label), None)

    def __repr__(self) -> str:
        return f"NodeDescriptor({self.menu_path!r}, key={self.key!r})"
