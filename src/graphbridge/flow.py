"""pocketflow binding: run bridged nodes as steps of a ``Flow``."""

from __future__ import annotations

from typing import Any

from pocketflow import Node

from .adapters import Adapter, GenericAdapter
from .bridge import GraphBridge, get_bridge
from .nodes.schema import IMPLICIT_FLOW_OUTPUT
from .runtime import FlowDispatchRuntime, InvocationResult

FAULT_ACTION = "fault"
DEFAULT_ACTION = "default"
OUTPUTS_KEY = "node_outputs"
FAULTS_KEY = "faults"


class AdapterNode(Node):
    """
    Runs one bridged node as a pocketflow step.

    Shared Store:
        Reads: shared[key] for every port mapped in ``inputs``
        Writes: shared[key] for every port mapped in ``outputs``;
                unmapped outputs go to shared["node_outputs"][menu_path][port];
                shared["faults"] gets the DispatchFault of a faulted run

    Actions:
        The selected flow output name, "default" for the implicit next
        output and for non-flow nodes, "fault" when the invocation faults
    """

    def __init__(
        self,
        adapter: Adapter | GenericAdapter,
        inputs: dict[str, str] | None = None,
        constants: dict[str, Any] | None = None,
        outputs: dict[str, str] | None = None,
        runtime: FlowDispatchRuntime | None = None,
    ):
        """
        Args:
            adapter: Adapter of the node to run
            inputs: Port label -> shared store key to read the binding from
            constants: Port label -> fixed binding
            outputs: Port label -> shared store key to write the value to
            runtime: Runtime executing the adapter
        """
        # the runtime never raises, so pocketflow retries never kick in
        super().__init__(max_retries=1)
        self.adapter = adapter
        self.inputs = dict(inputs or {})
        self.constants = dict(constants or {})
        self.outputs = dict(outputs or {})
        self.runtime = runtime or FlowDispatchRuntime()

    @classmethod
    def from_bridge(
        cls,
        menu_path: str,
        bridge: GraphBridge | None = None,
        **kwargs: Any,
    ) -> "AdapterNode":
        """Build a step for the node at ``menu_path``."""
        bridge = bridge or get_bridge()
        return cls(bridge.adapter_for(menu_path), runtime=bridge.runtime, **kwargs)

    @property
    def menu_path(self) -> str:
        return self.adapter.descriptor.menu_path

    def prep(self, shared: dict) -> dict:
        """Collect bindings from constants and the shared store."""
        bindings = dict(self.constants)
        for port, key in self.inputs.items():
            if key in shared:
                bindings[port] = shared[key]
        return bindings

    def exec(self, prep_res: dict) -> InvocationResult:
        """Activate the node once."""
        return self.runtime.execute(self.adapter, prep_res)

    def post(self, shared: dict, prep_res: dict, exec_res: InvocationResult) -> str:
        """Publish outputs and return the selected flow output as action."""
        if not exec_res.ok:
            shared.setdefault(FAULTS_KEY, []).append(exec_res.fault)
            return FAULT_ACTION

        unmapped = shared.setdefault(OUTPUTS_KEY, {}).setdefault(self.menu_path, {})
        for port, value in exec_res.outputs.items():
            if port in self.outputs:
                shared[self.outputs[port]] = value
            else:
                unmapped[port] = value

        if exec_res.selected_flow in (None, IMPLICIT_FLOW_OUTPUT):
            return DEFAULT_ACTION
        return exec_res.selected_flow
