"""Value types understood by the target execution environment.

The universe maps Python types onto target-VM type names and answers the
two questions the bridge asks about them: may a port carry this type, and
does this runtime value fit it.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterator, Mapping, TypeVar, get_args, get_origin


@dataclass(frozen=True)
class Vector3:
    """Three-component vector, a built-in struct of the target VM."""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    def lerp(self, other: "Vector3", t: float) -> "Vector3":
        t = min(max(t, 0.0), 1.0)
        return Vector3(
            self.x + (other.x - self.x) * t,
            self.y + (other.y - self.y) * t,
            self.z + (other.z - self.z) * t,
        )

    @property
    def magnitude(self) -> float:
        return math.sqrt(self.x * self.x + self.y * self.y + self.z * self.z)


@dataclass(frozen=True)
class Color:
    """RGBA color with float channels in [0, 1]."""

    r: float = 0.0
    g: float = 0.0
    b: float = 0.0
    a: float = 1.0

    @classmethod
    def from_hex(cls, text: str) -> "Color":
        """Parse ``#RRGGBB`` or ``#RRGGBBAA``.

        Raises:
            ValueError: If the string is not a hex color
        """
        digits = text.strip().lstrip("#")
        if len(digits) not in (6, 8):
            raise ValueError(f"Not a hex color: {text!r}")
        channels = [int(digits[i:i + 2], 16) / 255.0 for i in range(0, len(digits), 2)]
        return cls(*channels)

    def to_hex(self) -> str:
        parts = [self.r, self.g, self.b] + ([self.a] if self.a < 1.0 else [])
        return "#" + "".join(f"{round(c * 255):02X}" for c in parts)


DEFAULT_TYPE_NAMES: dict[type, str] = {
    int: "Int32",
    float: "Single",
    bool: "Boolean",
    str: "String",
    bytes: "ByteArray",
    object: "Object",
    Vector3: "Vector3",
    Color: "Color",
}

# Types that can never hold None
DEFAULT_VALUE_TYPES: frozenset[type] = frozenset({int, float, bool, Vector3, Color})

ARRAY_SUFFIX = "Array"


def _is_class(tp: Any) -> bool:
    # parametrized generics such as dict[str, int] are not plain classes
    return isinstance(tp, type) and get_origin(tp) is None


class ValueTypeUniverse:
    """The set of types a port may carry, with their VM names."""

    def __init__(
        self,
        names: Mapping[type, str] | None = None,
        value_types: frozenset[type] | set[type] | None = None,
    ):
        self._names: dict[type, str] = dict(DEFAULT_TYPE_NAMES if names is None else names)
        self._value_types: set[type] = set(
            DEFAULT_VALUE_TYPES if value_types is None else value_types
        )

    def register(self, py_type: type, vm_name: str, value_type: bool = False) -> None:
        """Add a type to the universe.

        Args:
            py_type: The Python class
            vm_name: Name of the type in the target VM
            value_type: Whether the type is a struct that never holds None
        """
        self._names[py_type] = vm_name
        if value_type:
            self._value_types.add(py_type)

    def is_supported(self, tp: Any) -> bool:
        """Whether a fully concrete type may be carried by a port."""
        if get_origin(tp) is list:
            args = get_args(tp)
            return len(args) == 1 and self.is_supported(args[0])
        if not _is_class(tp):
            return False
        return tp in self._names or issubclass(tp, Enum)

    def is_value_type(self, tp: Any) -> bool:
        if not _is_class(tp):
            return False
        return tp in self._value_types or issubclass(tp, Enum)

    def vm_type_name(self, tp: Any) -> str:
        """Name of a type in the target VM. Unknown types fall back to Object."""
        if isinstance(tp, TypeVar):
            return tp.__name__
        if get_origin(tp) is list:
            (element,) = get_args(tp) or (object,)
            return self.vm_type_name(element) + ARRAY_SUFFIX
        if _is_class(tp):
            if tp in self._names:
                return self._names[tp]
            if issubclass(tp, Enum):
                # enums travel as their ordinal
                return self._names.get(int, "Int32")
        return self._names.get(object, "Object")

    def type_from_vm_name(self, vm_name: str) -> Any:
        """Reverse lookup of ``vm_type_name``. Unknown names map to ``object``."""
        for py_type, name in self._names.items():
            if name == vm_name:
                return py_type
        if vm_name.endswith(ARRAY_SUFFIX) and len(vm_name) > len(ARRAY_SUFFIX):
            element = self.type_from_vm_name(vm_name[: -len(ARRAY_SUFFIX)])
            return list[element]
        return object

    def accepts(self, value: Any, tp: Any) -> bool:
        """Strict check that ``value`` fits ``tp``. Only int widens to float."""
        if isinstance(tp, TypeVar) or tp is object:
            return True
        if value is None:
            return not self.is_value_type(tp)
        if get_origin(tp) is list:
            (element,) = get_args(tp) or (object,)
            return isinstance(value, list) and all(self.accepts(item, element) for item in value)
        if tp is bool:
            return isinstance(value, bool)
        if tp is int:
            return isinstance(value, int) and not isinstance(value, bool)
        if tp is float:
            return isinstance(value, (int, float)) and not isinstance(value, bool)
        if _is_class(tp):
            return isinstance(value, tp)
        return False


def default_universe() -> ValueTypeUniverse:
    """Return a universe holding the built-in VM types."""
    return ValueTypeUniverse()


def _walk(tp: Any) -> Iterator[Any]:
    yield tp
    for arg in get_args(tp):
        yield from _walk(arg)


def type_variables(tp: Any) -> tuple[TypeVar, ...]:
    """Type variables appearing in ``tp``, in first-seen order."""
    found: list[TypeVar] = []
    for part in _walk(tp):
        if isinstance(part, TypeVar) and part not in found:
            found.append(part)
    return tuple(found)


def substitute(tp: Any, bindings: Mapping[TypeVar, type]) -> Any:
    """Replace type variables in ``tp`` with their bound concrete types."""
    if isinstance(tp, TypeVar):
        return bindings.get(tp, tp)
    if get_origin(tp) is list:
        (element,) = get_args(tp)
        return list[substitute(element, bindings)]
    return tp


def is_numeric(tp: Any) -> bool:
    return tp in (int, float)


def is_integral(tp: Any) -> bool:
    """Whether a return type can act as a branch selector (never bool)."""
    if tp is bool or not _is_class(tp):
        return False
    return tp is int or issubclass(tp, Enum)


def ordinal(value: Any) -> int | None:
    """Ordinal of a selector value, or None if the value is not integral."""
    if isinstance(value, bool):
        return None
    if isinstance(value, Enum):
        if isinstance(value.value, int) and not isinstance(value.value, bool):
            return value.value
        return list(type(value)).index(value)
    if isinstance(value, int):
        return value
    return None
