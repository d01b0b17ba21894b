"""Registration table of graph-exposed members.

Members are never found by walking loaded modules. The decorators below
record markers into a ``MemberRegistry`` keyed by member identity, and the
discovery scanner reads that table.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any, Callable, TypeVar

from ..markers import (
    DEFAULT_CATEGORY_PRIORITY,
    GraphCategory,
    GraphEvent,
    GraphFlowOutput,
    GraphNode,
    GraphProperty,
)

F = TypeVar("F")


@dataclass
class MemberRecord:
    """A registered member and every member-level marker attached to it."""

    member_id: str
    module: str
    qualname: str
    target: Any
    markers: list[Any] = field(default_factory=list)
    flow_outputs: list[GraphFlowOutput] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.qualname.rsplit(".", 1)[-1]

    @property
    def owner_qualname(self) -> str | None:
        """Qualified name of the enclosing class, if the member sits in one."""
        if "." not in self.qualname:
            return None
        owner = self.qualname.rsplit(".", 1)[0]
        if owner.endswith("<locals>"):
            return None
        return owner


@dataclass
class TypeRecord:
    """A registered owning class, optionally carrying a category marker."""

    cls: type
    category: GraphCategory | None = None


def _unwrap(target: Any) -> Any:
    if isinstance(target, (staticmethod, classmethod)):
        return target.__func__
    if isinstance(target, property):
        return target.fget or target.fset
    return target


class MemberRegistry:
    """Thread-safe table mapping member identity to declared markers.

    ``version`` increases on every change so that build caches can tell
    when the marker set moved on.
    """

    def __init__(self) -> None:
        self._records: dict[str, MemberRecord] = {}
        self._types: dict[str, TypeRecord] = {}
        self._categories: list[GraphCategory] = []
        self._lock = threading.RLock()
        self._version = 0

    @property
    def version(self) -> int:
        return self._version

    def attach(self, target: Any, marker: Any, name: str | None = None) -> MemberRecord:
        """Record ``marker`` against ``target``.

        Flow outputs are prepended: decorators apply bottom-up, so
        prepending keeps source declaration order.

        Args:
            target: The function, staticmethod, classmethod or property
            marker: A member-level marker
            name: Explicit identity for targets without ``__qualname__``

        Returns:
            The updated record

        Raises:
            TypeError: If the member cannot be identified
        """
        inner = _unwrap(target)
        module = getattr(inner, "__module__", None)
        qualname = getattr(inner, "__qualname__", None)
        if name is not None:
            # "module:qualname", or a bare qualname inside the target's module
            prefix, sep, qualname = name.rpartition(":")
            if sep:
                module = prefix
        if not module or not qualname:
            raise TypeError(
                f"Cannot identify {target!r}; pass an explicit name to register it"
            )
        member_id = f"{module}.{qualname}"

        with self._lock:
            record = self._records.get(member_id)
            if record is None:
                record = MemberRecord(member_id, module, qualname, target)
                self._records[member_id] = record
            else:
                if _unwrap(record.target) is not inner:
                    # re-registration, e.g. after a module reload
                    record.markers.clear()
                    record.flow_outputs.clear()
                record.target = target
            if isinstance(marker, GraphFlowOutput):
                record.flow_outputs.insert(0, marker)
            else:
                record.markers.append(marker)
            self._version += 1
        return record

    def register(self, target: Any, *markers: Any, name: str | None = None) -> Any:
        """Explicitly register a member with one or more markers.

        Returns:
            The target unchanged
        """
        # reversed so flow outputs keep the order they were passed in
        for marker in reversed(markers):
            self.attach(target, marker, name=name)
        return target

    def register_type(self, cls: type, category: GraphCategory | None = None) -> type:
        """Register an owning class so its members can be bound to it."""
        key = f"{cls.__module__}.{cls.__qualname__}"
        with self._lock:
            self._types[key] = TypeRecord(cls, category)
            self._version += 1
        return cls

    def register_category(
        self,
        path: str,
        icon: str | None = None,
        priority: int = DEFAULT_CATEGORY_PRIORITY,
    ) -> GraphCategory:
        """Register a category marker that is not tied to a class."""
        category = GraphCategory(path, icon=icon, priority=priority)
        with self._lock:
            self._categories.append(category)
            self._version += 1
        return category

    def get(self, member_id: str) -> MemberRecord | None:
        return self._records.get(member_id)

    def records(self) -> list[MemberRecord]:
        """All records, ordered by member identity."""
        with self._lock:
            return sorted(self._records.values(), key=lambda r: r.member_id)

    def get_type(self, module: str, qualname: str) -> TypeRecord | None:
        return self._types.get(f"{module}.{qualname}")

    def categories(self) -> list[GraphCategory]:
        """Standalone category markers followed by class category markers."""
        return self.standalone_categories() + self.type_categories()

    def standalone_categories(self) -> list[GraphCategory]:
        """Category markers registered with ``register_category``."""
        with self._lock:
            return list(self._categories)

    def type_categories(self) -> list[GraphCategory]:
        """Category markers attached to registered classes."""
        with self._lock:
            return [t.category for t in self._types.values() if t.category]

    def clear(self) -> None:
        with self._lock:
            self._records.clear()
            self._types.clear()
            self._categories.clear()
            self._version += 1

    def __len__(self) -> int:
        return len(self._records)


# Global registry used by the decorators unless one is passed explicitly
_default_registry = MemberRegistry()


def get_registry() -> MemberRegistry:
    """Get the process-wide member registry."""
    return _default_registry


def _member_decorator(marker: Any, registry: MemberRegistry | None) -> Callable[[F], F]:
    def decorator(target: F) -> F:
        (registry or _default_registry).attach(target, marker)
        return target

    return decorator


def graph_node(
    menu_path: str,
    *,
    icon: str | None = None,
    is_flow_node: bool = True,
    color: str | None = None,
    tooltip: str | None = None,
    category: str | None = None,
    searchable: bool = True,
    search_keywords: str | tuple[str, ...] | list[str] = (),
    registry: MemberRegistry | None = None,
) -> Callable[[F], F]:
    """Expose a function or method as a graph node.

    Parameters become input ports, the return value the first output port
    and ``Out[T]`` parameters further outputs.
    """
    marker = GraphNode(
        menu_path,
        icon=icon,
        is_flow_node=is_flow_node,
        color=color,
        tooltip=tooltip,
        category=category,
        searchable=searchable,
        search_keywords=search_keywords,
    )
    return _member_decorator(marker, registry)


def graph_flow_output(
    name: str,
    tooltip: str | None = None,
    *,
    registry: MemberRegistry | None = None,
) -> Callable[[F], F]:
    """Declare one execution output of a flow node. Repeatable."""
    return _member_decorator(GraphFlowOutput(name, tooltip), registry)


def graph_property(
    menu_path: str | None = None,
    *,
    read_only: bool = False,
    icon: str | None = None,
    tooltip: str | None = None,
    registry: MemberRegistry | None = None,
) -> Callable[[F], F]:
    """Expose a property as Get/Set nodes. Apply on top of ``@property``."""
    marker = GraphProperty(menu_path, read_only=read_only, icon=icon, tooltip=tooltip)
    return _member_decorator(marker, registry)


def graph_event(
    menu_path: str,
    *,
    icon: str | None = None,
    tooltip: str | None = None,
    networked: bool = False,
    registry: MemberRegistry | None = None,
) -> Callable[[F], F]:
    """Expose a method as an event entry point."""
    marker = GraphEvent(menu_path, icon=icon, tooltip=tooltip, networked=networked)
    return _member_decorator(marker, registry)


def graph_category(
    path: str,
    *,
    icon: str | None = None,
    priority: int = DEFAULT_CATEGORY_PRIORITY,
    registry: MemberRegistry | None = None,
) -> Callable[[type], type]:
    """Group the graph members of a class under a menu category."""
    category = GraphCategory(path, icon=icon, priority=priority)

    def decorator(cls: type) -> type:
        return (registry or _default_registry).register_type(cls, category)

    return decorator


def graph_type(cls: type | None = None, *, registry: MemberRegistry | None = None) -> Any:
    """Register an owning class without a category.

    Needed only for classes the scanner cannot reach by module and
    qualified name, such as classes defined inside functions.
    """

    def decorator(inner: type) -> type:
        return (registry or _default_registry).register_type(inner)

    return decorator(cls) if cls is not None else decorator
