"""Member registration, node schema types and the bundled node library.

Importing this package registers the bundled nodes into the default registry.
"""

from .registry import (
    MemberRecord,
    MemberRegistry,
    TypeRecord,
    get_registry,
    graph_category,
    graph_event,
    graph_flow_output,
    graph_node,
    graph_property,
    graph_type,
)
from .schema import (
    IMPLICIT_FLOW_OUTPUT,
    Binding,
    CallPlan,
    FlowPortDescriptor,
    MemberKind,
    NodeDescriptor,
    NodeMetadata,
    ParameterSlot,
    PortDescriptor,
    PortRole,
    TypeParameter,
)

# Bundled nodes register themselves on import
from . import array_nodes, flow_nodes, math_nodes, string_nodes  # noqa: E402,F401

__all__ = [
    "MemberRecord",
    "MemberRegistry",
    "TypeRecord",
    "get_registry",
    "graph_category",
    "graph_event",
    "graph_flow_output",
    "graph_node",
    "graph_property",
    "graph_type",
    "IMPLICIT_FLOW_OUTPUT",
    "Binding",
    "CallPlan",
    "FlowPortDescriptor",
    "MemberKind",
    "NodeDescriptor",
    "NodeMetadata",
    "ParameterSlot",
    "PortDescriptor",
    "PortRole",
    "TypeParameter",
]
