"""Unit tests for the flow dispatch runtime."""

import logging

import pytest

from graphbridge.config import RuntimeConfig
from graphbridge.exceptions import FaultReason
from graphbridge.runtime import FlowDispatchRuntime, InvocationState

IDLE, INVOKING, COMPLETED, FAULTED = (
    InvocationState.IDLE,
    InvocationState.INVOKING,
    InvocationState.COMPLETED,
    InvocationState.FAULTED,
)


@pytest.fixture
def runtime():
    return FlowDispatchRuntime(RuntimeConfig(strict_type_check=True))


class TestCompletion:
    """Tests for successful activations."""

    def test_branch_end_to_end(self, runtime, sample_bridge):
        """A three-output branch driven by 0, 7 and -2 dispatches 0, 1 and 2."""
        adapter = sample_bridge.adapter_for("Flow/Sign Branch")
        results = [runtime.execute(adapter, {"value": v}) for v in (0, 7, -2)]
        assert [r.selected_index for r in results] == [0, 1, 2]
        assert [r.selected_flow for r in results] == ["OnZero", "OnPositive", "OnNegative"]
        assert all(r.history == [IDLE, INVOKING, COMPLETED] for r in results)

    def test_implicit_next(self, runtime, sample_bridge):
        result = runtime.execute(sample_bridge.adapter_for("Flow/Say"), {"text": "hi"})
        assert result.ok
        assert result.selected_index == 0
        assert result.selected_flow == "next"
        assert result.outputs == {"Result": "said hi"}

    def test_non_flow_node(self, runtime, sample_bridge):
        result = runtime.execute(sample_bridge.adapter_for("Math/Add"), {"a": 1.0})
        assert result.selected_index is None
        assert result.selected_flow is None
        assert result.faulted_from is None

    def test_generic_adapter_is_specialized(self, runtime, sample_bridge):
        result = runtime.execute(sample_bridge.adapter_for("Generic/Identity"), {"value": 2.5})
        assert result.outputs == {"Result": 2.5}


class TestFaults:
    """Faults are returned, never raised, and never retried."""

    def test_missing_input_faults_from_idle(self, runtime, sample_bridge):
        result = runtime.execute(sample_bridge.adapter_for("Math/Add"), {})
        assert result.state == FAULTED
        assert result.fault.reason == FaultReason.MISSING_INPUT
        assert result.history == [IDLE, FAULTED]
        assert result.faulted_from == IDLE
        assert result.outputs == {}

    def test_unknown_input_faults_from_idle(self, runtime, sample_bridge):
        result = runtime.execute(sample_bridge.adapter_for("Math/Add"), {"a": 1.0, "zz": 1})
        assert result.fault.reason == FaultReason.UNKNOWN_INPUT
        assert result.faulted_from == IDLE

    def test_binding_failure_faults_from_idle(self, runtime, sample_bridge):
        result = runtime.execute(sample_bridge.adapter_for("Generic/Identity"), {"value": True})
        assert result.fault.reason == FaultReason.BINDING_FAILED
        assert result.faulted_from == IDLE

    def test_selector_out_of_range_faults_from_invoking(self, runtime, sample_bridge):
        result = runtime.execute(sample_bridge.adapter_for("Flow/Pick"), {"index": 5})
        assert result.fault.reason == FaultReason.SELECTOR_OUT_OF_RANGE
        assert result.history == [IDLE, INVOKING, FAULTED]
        assert result.selected_index is None

    def test_exception_faults_from_invoking(self, runtime, sample_bridge):
        result = runtime.execute(sample_bridge.adapter_for("Math/Divide"), {"a": 1.0, "b": 0.0})
        assert result.fault.reason == FaultReason.INVOCATION_FAILED
        assert result.faulted_from == INVOKING

    def test_type_check_faults_from_invoking(self, runtime, sample_bridge):
        result = runtime.execute(sample_bridge.adapter_for("Math/Add"), {"a": "x"})
        assert result.fault.reason == FaultReason.TYPE_CHECK_FAILED
        assert result.faulted_from == INVOKING

    def test_lenient_runtime_skips_type_check(self, sample_bridge):
        runtime = FlowDispatchRuntime(RuntimeConfig(strict_type_check=False))
        result = runtime.execute(sample_bridge.adapter_for("Flow/Say"), {"text": 1})
        assert result.ok

    def test_never_retries(self, runtime, registry, descriptor_for):
        from graphbridge.adapters import AdapterEmitter
        from graphbridge.nodes.registry import graph_node

        calls = []

        @graph_node("Misc/Flaky", registry=registry)
        def flaky() -> None:
            calls.append(1)
            raise RuntimeError("boom")

        adapter = AdapterEmitter().emit(descriptor_for(registry))
        result = runtime.execute(adapter)
        assert result.state == FAULTED
        assert "boom" in result.fault.message
        assert calls == [1]

    def test_fault_logged_at_warning(self, runtime, sample_bridge, caplog, monkeypatch):
        monkeypatch.setattr(logging.getLogger("graphbridge"), "propagate", True)
        caplog.set_level(logging.WARNING, logger="graphbridge")
        runtime.execute(sample_bridge.adapter_for("Flow/Pick"), {"index": 9})
        assert any("selector_out_of_range" in r.getMessage() for r in caplog.records)
