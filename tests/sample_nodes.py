"""Members exposed to the graph by the test-suite, in their own registry."""

from typing import Annotated, TypeVar

from graphbridge import (
    GraphInput,
    GraphOutput,
    GraphTypeConstraint,
    MemberRegistry,
    Out,
    graph_category,
    graph_event,
    graph_flow_output,
    graph_node,
    graph_property,
)

registry = MemberRegistry()
registry.register_category("Math", icon="math-icon", priority=5)

T = TypeVar("T")


@graph_node("Math/Add", is_flow_node=False, search_keywords="add, sum, plus", registry=registry)
def add(a: float, b: float = 1.0) -> float:
    return a + b


@graph_node("Math/Divide", is_flow_node=False, searchable=False, registry=registry)
def divide(
    a: float,
    b: float,
    remainder: Annotated[Out[float], GraphOutput("Remainder")],
) -> float:
    remainder.value = a % b
    return a // b


@graph_node("Math/Scale", is_flow_node=False, registry=registry)
def scale(
    value: float,
    factor: Annotated[float, GraphInput(hidden=True, default=2.0)],
) -> float:
    return value * factor


@graph_node("Flow/Sign Branch", search_keywords="branch, sign", registry=registry)
@graph_flow_output("OnZero", registry=registry)
@graph_flow_output("OnPositive", registry=registry)
@graph_flow_output("OnNegative", registry=registry)
def sign_branch(value: int) -> int:
    if value == 0:
        return 0
    return 1 if value > 0 else 2


@graph_node("Flow/Pick", registry=registry)
@graph_flow_output("A", registry=registry)
@graph_flow_output("B", registry=registry)
@graph_flow_output("C", registry=registry)
def pick(index: int) -> int:
    return index


@graph_node("Flow/Say", registry=registry)
def say(text: str) -> str:
    return f"said {text}"


@graph_node("Flow/Forget", registry=registry)
def forget(result: Out[int]) -> None:
    pass


@graph_node("Generic/Identity", is_flow_node=False, registry=registry)
def identity(value: Annotated[T, GraphTypeConstraint(int, float, str)]) -> T:
    return value


@graph_category("Physics", icon="physics-icon", registry=registry)
class Body:
    def __init__(self, mass: float = 1.0):
        self._mass = mass
        self.pushed = 0.0
        self.collisions: list[tuple[float, str]] = []

    @graph_node("Push", registry=registry)
    def push(self, force: float) -> None:
        self.pushed += force

    @graph_property("Mass", registry=registry)
    @property
    def mass(self) -> float:
        return self._mass

    @mass.setter
    def mass(self, value: float) -> None:
        self._mass = value

    @graph_property("Speed", read_only=True, registry=registry)
    @property
    def speed(self) -> float:
        return 0.0

    @staticmethod
    @graph_node("Gravity", is_flow_node=False, registry=registry)
    def gravity() -> float:
        return 9.81

    @classmethod
    @graph_node("Describe", is_flow_node=False, registry=registry)
    def describe(cls) -> str:
        return cls.__name__

    @graph_event("On Collision", networked=True, registry=registry)
    def on_collision(self, impulse: float, other: str) -> None:
        self.collisions.append((impulse, other))
