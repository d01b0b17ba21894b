"""String nodes."""

from typing import Annotated

from ..markers import GraphInput
from .registry import graph_category, graph_node


@graph_category("String", icon="d_Font Icon", priority=30)
class StringNodes:

    @staticmethod
    @graph_node("Concat", is_flow_node=False, search_keywords="concat, join, append, text")
    def concat(a: str, b: str) -> str:
        return a + b

    @staticmethod
    @graph_node("Format Number", is_flow_node=False, search_keywords="format, number, text")
    def format_number(
        value: float,
        decimals: Annotated[int, GraphInput("Decimals", min=0, max=10)] = 2,
    ) -> str:
        return f"{value:.{decimals}f}"

    @staticmethod
    @graph_node("Trim", is_flow_node=False, search_keywords="trim, strip, whitespace")
    def trim(
        text: str,
        characters: Annotated[str, GraphInput(hidden=True)] = " \t\r\n",
    ) -> str:
        return text.strip(characters)

    @staticmethod
    @graph_node("Contains", is_flow_node=False, search_keywords="contains, substring, find")
    def contains(text: str, part: str) -> bool:
        return part in text
