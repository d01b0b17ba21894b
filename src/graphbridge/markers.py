"""Declarative markers attached to graph-exposed members and parameters.

Markers are pure data. Member markers are recorded by the decorators in
``graphbridge.nodes.registry``; parameter markers travel inside
``typing.Annotated`` metadata:

    @graph_node("Math/Clamp Float")
    def clamp(
        value: Annotated[float, GraphInput("Value")],
        low: Annotated[float, GraphInput("Min", default=0.0)],
        high: Annotated[float, GraphInput("Max", default=1.0)],
    ) -> float:
        ...
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class _Missing:
    """Sentinel type for 'no default value'."""

    _instance: "_Missing | None" = None

    def __new__(cls) -> "_Missing":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()

DEFAULT_CATEGORY_PRIORITY = 100


def split_keywords(keywords: str | tuple[str, ...] | list[str] | None) -> tuple[str, ...]:
    """Normalize search keywords given as a sequence or comma-separated string."""
    if not keywords:
        return ()
    if isinstance(keywords, str):
        keywords = keywords.split(",")
    return tuple(k.strip() for k in keywords if k and k.strip())


@dataclass(frozen=True)
class GraphNode:
    """Marks a callable as a graph node.

    ``menu_path`` uses ``/`` to nest the node inside categories.
    """

    menu_path: str
    icon: str | None = None
    is_flow_node: bool = True
    color: str | None = None
    tooltip: str | None = None
    category: str | None = None
    searchable: bool = True
    search_keywords: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "search_keywords", split_keywords(self.search_keywords))


@dataclass(frozen=True)
class GraphInput:
    """Customizes the input port created for a parameter."""

    display_name: str | None = None
    default: Any = MISSING
    hidden: bool = False
    tooltip: str | None = None
    min: float | None = None  # presentation only
    max: float | None = None


@dataclass(frozen=True)
class GraphOutput:
    """Customizes the output port created for an ``Out[T]`` parameter."""

    display_name: str | None = None
    tooltip: str | None = None


@dataclass(frozen=True)
class GraphFlowOutput:
    """One execution output of a flow node. Declaration order is dispatch order."""

    name: str
    tooltip: str | None = None


@dataclass(frozen=True, init=False)
class GraphTypeConstraint:
    """Allowed concrete types for a generic parameter."""

    allowed_types: tuple[type, ...] = field(default=())

    def __init__(self, *allowed_types: type):
        object.__setattr__(self, "allowed_types", tuple(allowed_types))


@dataclass(frozen=True)
class GraphProperty:
    """Marks a property to be exposed as Get (and, unless read-only, Set) nodes."""

    menu_path: str | None = None
    read_only: bool = False
    icon: str | None = None
    tooltip: str | None = None


@dataclass(frozen=True)
class GraphEvent:
    """Marks a method as an event entry point. Parameters become event data outputs."""

    menu_path: str
    icon: str | None = None
    tooltip: str | None = None
    networked: bool = False  # passed through, never interpreted


@dataclass(frozen=True)
class GraphCategory:
    """Icon and sort priority for a menu category. Lower priority sorts first."""

    path: str
    icon: str | None = None
    priority: int = DEFAULT_CATEGORY_PRIORITY


MEMBER_MARKERS = (GraphNode, GraphProperty, GraphEvent)
PARAMETER_MARKERS = (GraphInput, GraphOutput, GraphTypeConstraint)


class Out(Generic[T]):
    """Cell for an out-parameter. The callee assigns ``value``.

    Annotate the parameter as ``Out[float]``; the adapter supplies a fresh
    cell for every invocation.
    """

    __slots__ = ("_value",)

    def __init__(self) -> None:
        self._value: Any = MISSING

    @property
    def value(self) -> Any:
        return self._value

    @value.setter
    def value(self, value: Any) -> None:
        self._value = value

    @property
    def assigned(self) -> bool:
        return self._value is not MISSING

    def __repr__(self) -> str:
        return f"Out({self._value!r})"
