"""Unit tests for AdapterNode and pocketflow integration."""

from pocketflow import Flow

from graphbridge.exceptions import FaultReason
from graphbridge.flow import DEFAULT_ACTION, FAULT_ACTION, FAULTS_KEY, OUTPUTS_KEY, AdapterNode


class TestAdapterNodeSteps:
    """Tests for prep, exec and post run by hand."""

    def test_branch_returns_flow_name(self, sample_bridge):
        """The selected flow output becomes the pocketflow action."""
        node = AdapterNode.from_bridge(
            "Flow/Sign Branch", sample_bridge, inputs={"value": "number"}
        )
        shared = {"number": 7}

        prep_res = node.prep(shared)
        exec_res = node.exec(prep_res)
        action = node.post(shared, prep_res, exec_res)

        assert prep_res == {"value": 7}
        assert action == "OnPositive"
        assert shared[OUTPUTS_KEY]["Flow/Sign Branch"] == {"Result": 1}

    def test_non_flow_node_returns_default(self, sample_bridge):
        node = AdapterNode.from_bridge(
            "Math/Add", sample_bridge, constants={"a": 1.0}, outputs={"Result": "sum"}
        )
        shared = {}

        prep_res = node.prep(shared)
        action = node.post(shared, prep_res, node.exec(prep_res))

        assert action == DEFAULT_ACTION
        assert shared["sum"] == 2.0
        assert shared[OUTPUTS_KEY]["Math/Add"] == {}

    def test_implicit_next_returns_default(self, sample_bridge):
        node = AdapterNode.from_bridge("Flow/Say", sample_bridge, constants={"text": "hi"})
        shared = {}

        prep_res = node.prep(shared)
        assert node.post(shared, prep_res, node.exec(prep_res)) == DEFAULT_ACTION

    def test_shared_value_overrides_constant(self, sample_bridge):
        node = AdapterNode.from_bridge(
            "Flow/Say", sample_bridge, inputs={"text": "text"}, constants={"text": "fallback"}
        )
        assert node.prep({"text": "shared"}) == {"text": "shared"}
        assert node.prep({}) == {"text": "fallback"}

    def test_fault_action(self, sample_bridge):
        node = AdapterNode.from_bridge("Flow/Pick", sample_bridge, constants={"index": 5})
        shared = {}

        prep_res = node.prep(shared)
        action = node.post(shared, prep_res, node.exec(prep_res))

        assert action == FAULT_ACTION
        (fault,) = shared[FAULTS_KEY]
        assert fault.reason == FaultReason.SELECTOR_OUT_OF_RANGE
        assert OUTPUTS_KEY not in shared

    def test_menu_path(self, sample_bridge):
        assert AdapterNode.from_bridge("Math/Add", sample_bridge).menu_path == "Math/Add"


class TestFlowIntegration:
    """Tests for bridged nodes wired into a pocketflow Flow."""

    def _branch_flow(self, sample_bridge):
        branch = AdapterNode.from_bridge(
            "Flow/Sign Branch", sample_bridge, inputs={"value": "number"}
        )
        for flow_name, text in [("OnZero", "zero"), ("OnPositive", "positive"), ("OnNegative", "negative")]:
            say = AdapterNode.from_bridge(
                "Flow/Say", sample_bridge, constants={"text": text}, outputs={"Result": "message"}
            )
            branch - flow_name >> say
        return Flow(start=branch)

    def test_each_flow_output_reaches_its_successor(self, sample_bridge):
        flow = self._branch_flow(sample_bridge)
        for number, message in [(0, "said zero"), (7, "said positive"), (-2, "said negative")]:
            shared = {"number": number}
            flow.run(shared)
            assert shared["message"] == message

    def test_default_transition(self, sample_bridge):
        add = AdapterNode.from_bridge(
            "Math/Add", sample_bridge, constants={"a": 2.0, "b": 3.0}, outputs={"Result": "sum"}
        )
        say = AdapterNode.from_bridge(
            "Flow/Say", sample_bridge, constants={"text": "done"}, outputs={"Result": "message"}
        )
        add >> say

        shared = {}
        Flow(start=add).run(shared)

        assert shared["sum"] == 5.0
        assert shared["message"] == "said done"

    def test_fault_stops_unhandled_flow(self, sample_bridge):
        flow = self._branch_flow(sample_bridge)
        shared = {}
        flow.run(shared)

        assert "message" not in shared
        assert shared[FAULTS_KEY][0].reason == FaultReason.MISSING_INPUT

    def test_fault_transition(self, sample_bridge):
        pick = AdapterNode.from_bridge("Flow/Pick", sample_bridge, inputs={"index": "index"})
        recover = AdapterNode.from_bridge(
            "Flow/Say", sample_bridge, constants={"text": "recovered"}, outputs={"Result": "message"}
        )
        pick - FAULT_ACTION >> recover

        shared = {"index": 9}
        Flow(start=pick).run(shared)

        assert shared["message"] == "said recovered"
        assert len(shared[FAULTS_KEY]) == 1
