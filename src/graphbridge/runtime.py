"""Flow dispatch runtime: one node activation as a small state machine.

    IDLE -> INVOKING -> COMPLETED
      |         |
      +---------+----> FAULTED

Precondition failures (unknown or missing bindings, unbindable generic
types) fault straight from IDLE; everything that goes wrong while the member
runs faults from INVOKING. The runtime never retries and never raises to the
host; the host decides whether to activate the node again.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

from .adapters import Adapter, GenericAdapter
from .config import RuntimeConfig
from .exceptions import BindingError, DispatchFault, FaultReason

logger = logging.getLogger(__name__)


class InvocationState(str, Enum):
    IDLE = "idle"
    INVOKING = "invoking"
    COMPLETED = "completed"
    FAULTED = "faulted"


@dataclass
class InvocationResult:
    """Terminal outcome of one activation."""

    state: InvocationState
    outputs: dict[str, Any] = field(default_factory=dict)
    selected_index: int | None = None
    selected_flow: str | None = None
    fault: DispatchFault | None = None
    history: list[InvocationState] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.state == InvocationState.COMPLETED

    @property
    def faulted_from(self) -> InvocationState | None:
        """State the fault happened in, or None if the activation completed."""
        if self.state != InvocationState.FAULTED:
            return None
        return self.history[-2]


class FlowDispatchRuntime:
    """Executes adapters on behalf of the host graph."""

    def __init__(self, config: RuntimeConfig | None = None):
        self.config = config or RuntimeConfig()

    def execute(
        self,
        adapter: Adapter | GenericAdapter,
        bindings: Mapping[str, Any] | None = None,
    ) -> InvocationResult:
        """Run one activation of a node.

        Args:
            adapter: The node's adapter; generic adapters are specialized
                from the bound values
            bindings: Input values keyed by port label

        Returns:
            InvocationResult in state COMPLETED or FAULTED
        """
        bindings = dict(bindings or {})
        history = [InvocationState.IDLE]

        try:
            if isinstance(adapter, GenericAdapter):
                adapter = adapter.select(bindings)
            adapter.check_bindings(bindings)
        except BindingError as e:
            fault = DispatchFault(adapter.key, FaultReason.BINDING_FAILED, e.message)
            return self._fault(fault, history)
        except DispatchFault as fault:
            return self._fault(fault, history)

        history.append(InvocationState.INVOKING)
        try:
            result = adapter.invoke(bindings, type_check=self.config.strict_type_check)
        except DispatchFault as fault:
            return self._fault(fault, history)

        history.append(InvocationState.COMPLETED)
        descriptor = adapter.descriptor
        selected_flow = None
        if result.selected_index is not None:
            selected_flow = descriptor.successors[result.selected_index].name
        logger.debug("%s completed -> %s", descriptor.menu_path, selected_flow)
        return InvocationResult(
            state=InvocationState.COMPLETED,
            outputs=dict(result.outputs),
            selected_index=result.selected_index,
            selected_flow=selected_flow,
            history=history,
        )

    def _fault(self, fault: DispatchFault, history: list[InvocationState]) -> InvocationResult:
        logger.warning("Node faulted: %s", fault)
        history.append(InvocationState.FAULTED)
        return InvocationResult(state=InvocationState.FAULTED, fault=fault, history=history)
