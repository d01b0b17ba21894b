"""Flow control nodes."""

import logging
from enum import IntEnum

from .registry import graph_category, graph_flow_output, graph_node

logger = logging.getLogger(__name__)


class Ordering(IntEnum):
    LESS = 0
    EQUAL = 1
    GREATER = 2


@graph_category("Flow", icon="d_Animation Icon", priority=10)
class FlowNodes:
    """Nodes whose return value picks the next flow output."""

    @staticmethod
    @graph_node(
        "Branch On Value",
        tooltip="Continues on OnZero, OnPositive or OnNegative by the sign of the value",
        search_keywords="branch, sign, switch, if",
    )
    @graph_flow_output("OnZero")
    @graph_flow_output("OnPositive")
    @graph_flow_output("OnNegative")
    def branch_on_value(value: int) -> int:
        if value == 0:
            return 0
        return 1 if value > 0 else 2

    @staticmethod
    @graph_node("Compare", search_keywords="compare, less, greater, equal")
    @graph_flow_output("Less")
    @graph_flow_output("Equal")
    @graph_flow_output("Greater")
    def compare(a: float, b: float) -> Ordering:
        if a < b:
            return Ordering.LESS
        return Ordering.EQUAL if a == b else Ordering.GREATER

    @staticmethod
    @graph_node("Log", tooltip="Writes a message to the graphbridge log", search_keywords="log, print, debug")
    def log_message(message: str) -> None:
        logger.info("%s", message)
