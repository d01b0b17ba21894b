"""Array nodes, generic over the element type."""

from typing import Annotated, TypeVar

from ..markers import GraphTypeConstraint
from .registry import graph_category, graph_node

T = TypeVar("T")

Elements = Annotated[list[T], GraphTypeConstraint(int, float, str)]


@graph_category("Array", icon="d_PreMatCube", priority=20)
class ArrayNodes:

    @staticmethod
    @graph_node("Get Element", is_flow_node=False, search_keywords="array, index, get, element")
    def get_element(array: Elements, index: int) -> T:
        return array[index]

    @staticmethod
    @graph_node("Length", is_flow_node=False, search_keywords="array, length, count, size")
    def length(array: Elements) -> int:
        return len(array)

    @staticmethod
    @graph_node("Contains", is_flow_node=False, search_keywords="array, contains, find")
    def contains(array: Elements, value: T) -> bool:
        return value in array
