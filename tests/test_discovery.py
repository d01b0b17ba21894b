"""Unit tests for the discovery scanner."""

from typing import Annotated

import sample_nodes
from graphbridge.config import DiscoveryConfig
from graphbridge.discovery import DiscoveryScanner, valid_path
from graphbridge.exceptions import DiscoveryRule
from graphbridge.markers import GraphInput, GraphNode, GraphOutput, GraphProperty, Out
from graphbridge.nodes.registry import graph_category, graph_event, graph_flow_output, graph_node, graph_type
from graphbridge.nodes.schema import Binding, MemberKind


def _by_name(result):
    return {m.name: m for m in result.members}


class TestSampleDiscovery:
    """Tests against the sample member module."""

    def test_every_sample_member_is_discovered(self):
        result = DiscoveryScanner(sample_nodes.registry).scan()
        assert result.errors == []
        assert set(_by_name(result)) == {
            "add",
            "divide",
            "scale",
            "sign_branch",
            "pick",
            "say",
            "forget",
            "identity",
            "push",
            "mass",
            "speed",
            "gravity",
            "describe",
            "on_collision",
        }

    def test_members_ordered_by_identity(self):
        result = DiscoveryScanner(sample_nodes.registry).scan()
        ids = [m.member_id for m in result.members]
        assert ids == sorted(ids)

    def test_bindings(self):
        members = _by_name(DiscoveryScanner(sample_nodes.registry).scan())
        assert members["add"].binding == Binding.FREE
        assert members["push"].binding == Binding.INSTANCE
        assert members["gravity"].binding == Binding.STATIC
        assert members["describe"].binding == Binding.CLASS
        assert members["push"].owner is sample_nodes.Body

    def test_class_category_attached(self):
        members = _by_name(DiscoveryScanner(sample_nodes.registry).scan())
        assert members["push"].category.path == "Physics"
        assert members["add"].category is None

    def test_categories_collected(self):
        result = DiscoveryScanner(sample_nodes.registry).scan()
        assert [c.path for c in result.categories] == ["Math", "Physics"]

    def test_property_sees_setter_defined_after_marker(self):
        members = _by_name(DiscoveryScanner(sample_nodes.registry).scan())
        mass = members["mass"]
        assert mass.kind == MemberKind.PROPERTY
        assert mass.getter is not None
        assert mass.setter is not None
        assert mass.value_annotation is float

    def test_event_kind(self):
        members = _by_name(DiscoveryScanner(sample_nodes.registry).scan())
        event = members["on_collision"]
        assert event.kind == MemberKind.EVENT
        assert [p.name for p in event.parameters] == ["impulse", "other"]

    def test_out_parameters(self):
        members = _by_name(DiscoveryScanner(sample_nodes.registry).scan())
        remainder = members["divide"].parameters[2]
        assert remainder.is_out
        assert remainder.value_type is float
        assert remainder.output_marker.display_name == "Remainder"

    def test_skip_module_prefix(self):
        config = DiscoveryConfig(skip_module_prefixes=["sample_"])
        result = DiscoveryScanner(sample_nodes.registry, config).scan()
        assert result.members == []


class TestDiscoveryErrors:
    """Each bad declaration is reported and the scan continues."""

    def test_orphan_flow_output(self, registry):
        @graph_flow_output("Done", registry=registry)
        def lonely() -> None:
            pass

        @graph_node("Misc/Fine", registry=registry)
        def fine() -> None:
            pass

        result = DiscoveryScanner(registry).scan()
        assert [m.name for m in result.members] == ["fine"]
        assert result.errors[0].rule == DiscoveryRule.ORPHAN_FLOW_OUTPUT

    def test_conflicting_member_markers(self, registry):
        def both() -> None:
            pass

        registry.register(both, GraphNode("Misc/A"), GraphNode("Misc/B"))
        (error,) = DiscoveryScanner(registry).scan().errors
        assert error.rule == DiscoveryRule.CONFLICTING_MARKERS

    def test_node_marker_on_property(self, registry):
        @graph_type(registry=registry)
        class Thing:
            @property
            def size(self) -> int:
                return 1

        registry.attach(Thing.__dict__["size"], GraphNode("Misc/Size"))
        (error,) = DiscoveryScanner(registry).scan().errors
        assert error.rule == DiscoveryRule.NOT_INVOCABLE

    def test_property_marker_on_function(self, registry):
        registry.attach(valid_path, GraphProperty("Misc/Path"), name="misc:valid")
        (error,) = DiscoveryScanner(registry).scan().errors
        assert error.rule == DiscoveryRule.NOT_INVOCABLE

    def test_unresolvable_owner(self, registry):
        class Hidden:
            @graph_node("Misc/Hidden", registry=registry)
            def run(self) -> None:
                pass

        (record,) = registry.records()
        assert record.owner_qualname.endswith("<locals>.Hidden")
        (error,) = DiscoveryScanner(registry).scan().errors
        assert error.rule == DiscoveryRule.UNRESOLVABLE_OWNER

    def test_unresolvable_annotations(self, registry):
        @graph_node("Misc/Broken", registry=registry)
        def broken(value: "NoSuchType") -> None:  # noqa: F821
            pass

        (error,) = DiscoveryScanner(registry).scan().errors
        assert error.rule == DiscoveryRule.UNRESOLVABLE_ANNOTATIONS

    def test_output_marker_on_plain_parameter(self, registry):
        @graph_node("Misc/Bad", registry=registry)
        def bad(value: Annotated[int, GraphOutput("V")]) -> None:
            pass

        (error,) = DiscoveryScanner(registry).scan().errors
        assert error.rule == DiscoveryRule.CONFLICTING_MARKERS

    def test_input_marker_on_out_parameter(self, registry):
        @graph_node("Misc/Bad", registry=registry)
        def bad(value: Annotated[Out[int], GraphInput("V")]) -> None:
            pass

        (error,) = DiscoveryScanner(registry).scan().errors
        assert error.rule == DiscoveryRule.CONFLICTING_MARKERS

    def test_event_with_out_payload(self, registry):
        @graph_event("Misc/On Thing", registry=registry)
        def on_thing(value: Out[int]) -> None:
            pass

        (error,) = DiscoveryScanner(registry).scan().errors
        assert error.rule == DiscoveryRule.CONFLICTING_MARKERS

    def test_invalid_category(self, registry):
        @graph_category("Physics//Bodies", registry=registry)
        class Body:
            @graph_node("Push", registry=registry)
            def push(self) -> None:
                pass

        result = DiscoveryScanner(registry).scan()
        (error,) = result.errors
        assert error.rule == DiscoveryRule.INVALID_CATEGORY
        assert result.categories == []

    def test_invalid_standalone_category(self, registry):
        registry.register_category("Math/", priority=1)
        registry.register_category("Math/Trig")

        result = DiscoveryScanner(registry).scan()
        (error,) = result.errors
        assert error.rule == DiscoveryRule.INVALID_CATEGORY
        assert error.member_id == "category:Math/"
        assert [c.path for c in result.categories] == ["Math/Trig"]


class TestLocalClasses:
    """Classes defined in functions are bound through graph_type."""

    def test_registered_local_class(self, registry):
        @graph_type(registry=registry)
        class Local:
            @graph_node("Misc/Run", registry=registry)
            def run(self, value: int) -> int:
                return value

        (member,) = DiscoveryScanner(registry).scan().members
        assert member.binding == Binding.INSTANCE
        assert member.owner is Local
        assert [p.name for p in member.parameters] == ["value"]

    def test_nested_function_is_free(self, registry):
        @graph_node("Misc/Nested", registry=registry)
        def nested(value: int) -> int:
            return value

        (member,) = DiscoveryScanner(registry).scan().members
        assert member.binding == Binding.FREE
        assert member.owner is None


def test_valid_path():
    assert valid_path("Math/Add")
    assert not valid_path("")
    assert not valid_path("/Math")
    assert not valid_path("Math//Add")
    assert not valid_path("Math/ ")
