"""Unit tests for the value-type universe."""

from enum import Enum
from typing import TypeVar

import pytest

from graphbridge.value_types import (
    Color,
    ValueTypeUniverse,
    Vector3,
    is_integral,
    ordinal,
    substitute,
    type_variables,
)

T = TypeVar("T")
U = TypeVar("U")


class Mode(Enum):
    OFF = "off"
    ON = "on"


class Level(Enum):
    LOW = 3
    HIGH = 7


class Opaque:
    pass


@pytest.fixture
def universe():
    return ValueTypeUniverse()


class TestVmTypeNames:
    """Tests for mapping Python types to VM type names."""

    @pytest.mark.parametrize(
        "tp,name",
        [
            (int, "Int32"),
            (float, "Single"),
            (bool, "Boolean"),
            (str, "String"),
            (bytes, "ByteArray"),
            (Vector3, "Vector3"),
            (list[float], "SingleArray"),
            (list[list[int]], "Int32ArrayArray"),
            (Mode, "Int32"),
            (Opaque, "Object"),
            (T, "T"),
        ],
    )
    def test_vm_type_name(self, universe, tp, name):
        assert universe.vm_type_name(tp) == name

    def test_reverse_lookup(self, universe):
        assert universe.type_from_vm_name("Single") is float
        assert universe.type_from_vm_name("Vector3Array") == list[Vector3]
        assert universe.type_from_vm_name("Nope") is object

    def test_registered_type(self, universe):
        universe.register(Opaque, "Opaque", value_type=True)
        assert universe.vm_type_name(Opaque) == "Opaque"
        assert universe.is_supported(Opaque)
        assert not universe.accepts(None, Opaque)


class TestSupport:
    """Tests for which types a port may carry."""

    def test_supported(self, universe):
        assert universe.is_supported(float)
        assert universe.is_supported(list[str])
        assert universe.is_supported(Mode)

    def test_unsupported(self, universe):
        assert not universe.is_supported(Opaque)
        assert not universe.is_supported(list[Opaque])
        assert not universe.is_supported(dict[str, int])


class TestAccepts:
    """Tests for the strict runtime value check."""

    def test_int_widens_to_float(self, universe):
        assert universe.accepts(3, float)
        assert not universe.accepts(3.0, int)

    def test_bool_is_not_a_number(self, universe):
        assert not universe.accepts(True, int)
        assert not universe.accepts(True, float)
        assert universe.accepts(True, bool)
        assert not universe.accepts(1, bool)

    def test_none_only_for_reference_types(self, universe):
        assert universe.accepts(None, str)
        assert not universe.accepts(None, float)
        assert not universe.accepts(None, Vector3)

    def test_lists(self, universe):
        assert universe.accepts([1, 2], list[int])
        assert not universe.accepts([1, "2"], list[int])
        assert not universe.accepts((1, 2), list[int])


class TestTypeVariables:
    """Tests for generic type helpers."""

    def test_type_variables_in_order(self):
        assert type_variables(list[T]) == (T,)
        assert type_variables(int) == ()

    def test_substitute(self):
        assert substitute(list[T], {T: int}) == list[int]
        assert substitute(U, {T: int}) is U


class TestSelectors:
    """Tests for branch selector helpers."""

    def test_is_integral(self):
        assert is_integral(int)
        assert is_integral(Level)
        assert not is_integral(bool)
        assert not is_integral(float)

    def test_ordinal(self):
        assert ordinal(2) == 2
        assert ordinal(Level.HIGH) == 7
        assert ordinal(Mode.ON) == 1
        assert ordinal(True) is None
        assert ordinal("1") is None


class TestStructs:
    """Tests for the VM struct types."""

    def test_lerp_clamps_t(self):
        a, b = Vector3(0, 0, 0), Vector3(10, 0, 0)
        assert a.lerp(b, 0.5) == Vector3(5, 0, 0)
        assert a.lerp(b, 2.0) == b

    def test_color_hex(self):
        assert Color.from_hex("#FF0000") == Color(1.0, 0.0, 0.0, 1.0)
        assert Color(1.0, 0.0, 0.0).to_hex() == "#FF0000"

    def test_bad_hex(self):
        with pytest.raises(ValueError):
            Color.from_hex("red")
