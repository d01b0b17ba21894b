"""
Graph Bridge - expose Python members as visual-graph nodes.

Usage:
    from typing import Annotated
    from graphbridge import GraphInput, graph_node, graph_flow_output, get_bridge

    @graph_node("Math/Clamp")
    def clamp(value: float, low: Annotated[float, GraphInput("Min")] = 0.0) -> float:
        return max(value, low)

    bridge = get_bridge()
    report = bridge.build()
    result = bridge.invoke("Math/Clamp", {"value": -1.0})

    # Or use CLI:
    #   graphbridge scan --module mypackage.nodes
    #   graphbridge invoke "Math/Clamp" -i value=-1.0
"""

from typing import Any, Mapping

from .adapters import Adapter, AdapterEmitter, AdapterResult, GenericAdapter
from .bridge import BuildReport, GraphBridge, get_bridge, reset_bridge
from .category_index import CategoryEntry, CategoryIndex, node_color, node_icon
from .config import BridgeConfig, get_config
from .discovery import DiscoveredMember, DiscoveryResult, DiscoveryScanner
from .exceptions import (
    BindingError,
    BuildError,
    DiscoveryError,
    DiscoveryRule,
    DispatchFault,
    FaultReason,
    GraphBridgeError,
    ValidationError,
    ValidationRule,
)
from .markers import (
    MISSING,
    GraphCategory,
    GraphEvent,
    GraphFlowOutput,
    GraphInput,
    GraphNode,
    GraphOutput,
    GraphProperty,
    GraphTypeConstraint,
    Out,
)
from .nodes import (
    MemberRegistry,
    NodeDescriptor,
    get_registry,
    graph_category,
    graph_event,
    graph_flow_output,
    graph_node,
    graph_property,
    graph_type,
)
from .runtime import FlowDispatchRuntime, InvocationResult, InvocationState
from .schema_builder import BuildOutcome, SchemaBuilder
from .value_types import Color, ValueTypeUniverse, Vector3, default_universe

__all__ = [
    "invoke",
    "Adapter",
    "AdapterEmitter",
    "AdapterResult",
    "GenericAdapter",
    "BuildReport",
    "GraphBridge",
    "get_bridge",
    "reset_bridge",
    "CategoryEntry",
    "CategoryIndex",
    "node_color",
    "node_icon",
    "BridgeConfig",
    "get_config",
    "DiscoveredMember",
    "DiscoveryResult",
    "DiscoveryScanner",
    "BindingError",
    "BuildError",
    "DiscoveryError",
    "DiscoveryRule",
    "DispatchFault",
    "FaultReason",
    "GraphBridgeError",
    "ValidationError",
    "ValidationRule",
    "MISSING",
    "GraphCategory",
    "GraphEvent",
    "GraphFlowOutput",
    "GraphInput",
    "GraphNode",
    "GraphOutput",
    "GraphProperty",
    "GraphTypeConstraint",
    "Out",
    "MemberRegistry",
    "NodeDescriptor",
    "get_registry",
    "graph_category",
    "graph_event",
    "graph_flow_output",
    "graph_node",
    "graph_property",
    "graph_type",
    "FlowDispatchRuntime",
    "InvocationResult",
    "InvocationState",
    "BuildOutcome",
    "SchemaBuilder",
    "Color",
    "ValueTypeUniverse",
    "Vector3",
    "default_universe",
]


def invoke(menu_path: str, bindings: Mapping[str, Any] | None = None) -> InvocationResult:
    """
    Invoke a node through the process-wide bridge.

    The bridge is (re)built first if the registry changed.

    Args:
        menu_path: Menu path of the node
        bindings: Input values keyed by port label

    Returns:
        InvocationResult in state COMPLETED or FAULTED

    Example:
        >>> result = invoke("Flow/Branch On Value", {"value": -2})
        >>> result.selected_flow
        'OnNegative'
    """
    return get_bridge().invoke(menu_path, bindings)
