"""Math nodes."""

import math
from typing import Annotated

from ..markers import GraphInput, GraphOutput, Out
from ..value_types import Vector3
from .registry import graph_category, graph_node


@graph_category("Math", icon="d_Profiler.CPU", priority=5)
class MathNodes:
    """Pure arithmetic helpers. None of these drive execution flow."""

    @staticmethod
    @graph_node(
        "Lerp Vector3",
        is_flow_node=False,
        tooltip="Linearly interpolates between two vectors",
        search_keywords="lerp, interpolate, blend, vector",
    )
    def lerp_vector3(
        a: Vector3,
        b: Vector3,
        t: Annotated[float, GraphInput(min=0.0, max=1.0, tooltip="Clamped to [0, 1]")],
    ) -> Vector3:
        return a.lerp(b, t)

    @staticmethod
    @graph_node("Clamp Float", is_flow_node=False, search_keywords="clamp, limit, range")
    def clamp_float(
        value: float,
        low: Annotated[float, GraphInput("Min")] = 0.0,
        high: Annotated[float, GraphInput("Max")] = 1.0,
    ) -> float:
        return min(max(value, low), high)

    @staticmethod
    @graph_node(
        "SinCos",
        is_flow_node=False,
        tooltip="Sine and cosine of an angle in radians",
        search_keywords="sin, cos, trigonometry, angle",
    )
    def sin_cos(
        angle: float,
        sin: Annotated[Out[float], GraphOutput("Sin")],
        cos: Annotated[Out[float], GraphOutput("Cos")],
    ) -> None:
        sin.value = math.sin(angle)
        cos.value = math.cos(angle)

    @staticmethod
    @graph_node("Remap", is_flow_node=False, search_keywords="remap, map, range, scale")
    def remap(
        value: float,
        from_min: float,
        from_max: float,
        to_min: float = 0.0,
        to_max: float = 1.0,
    ) -> float:
        """Map ``value`` from one range onto another. Faults on an empty source range."""
        t = (value - from_min) / (from_max - from_min)
        return to_min + (to_max - to_min) * t
