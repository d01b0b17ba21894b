"""Error taxonomy for the graph bridge."""

from __future__ import annotations

from enum import Enum


class GraphBridgeError(Exception):
    """Base class for all graph bridge errors."""


class DiscoveryRule(str, Enum):
    """Reasons a member is excluded during discovery."""

    NOT_INVOCABLE = "not_invocable"
    CONFLICTING_MARKERS = "conflicting_markers"
    ORPHAN_FLOW_OUTPUT = "orphan_flow_output"
    UNRESOLVABLE_OWNER = "unresolvable_owner"
    UNRESOLVABLE_ANNOTATIONS = "unresolvable_annotations"
    EMPTY_PROPERTY = "empty_property"
    INVALID_CATEGORY = "invalid_category"


class ValidationRule(str, Enum):
    """Schema rules checked when building a node descriptor."""

    NOT_ACCESSIBLE = "not_accessible"
    UNSUPPORTED_TYPE = "unsupported_type"
    HIDDEN_WITHOUT_DEFAULT = "hidden_without_default"
    DEFAULT_TYPE_MISMATCH = "default_type_mismatch"
    EMPTY_TYPE_CONSTRAINT = "empty_type_constraint"
    UNSUPPORTED_CONSTRAINT_TYPE = "unsupported_constraint_type"
    CONSTRAINT_ON_CONCRETE_PORT = "constraint_on_concrete_port"
    UNCONSTRAINED_GENERIC = "unconstrained_generic"
    CONFLICTING_TYPE_CONSTRAINT = "conflicting_type_constraint"
    FLOW_OUTPUT_ON_NON_FLOW_NODE = "flow_output_on_non_flow_node"
    DUPLICATE_FLOW_OUTPUT = "duplicate_flow_output"
    DUPLICATE_PORT_NAME = "duplicate_port_name"
    INVALID_RANGE = "invalid_range"
    INVALID_MENU_PATH = "invalid_menu_path"
    EVENT_RETURNS_VALUE = "event_returns_value"
    DUPLICATE_MENU_PATH = "duplicate_menu_path"


class BuildError(GraphBridgeError):
    """A build-time problem scoped to one member.

    Build errors are collected rather than raised so that one bad
    declaration never blocks unrelated nodes.
    """

    def __init__(self, member_id: str, rule: Enum, message: str):
        super().__init__(f"{member_id}: [{rule.value}] {message}")
        self.member_id = member_id
        self.rule = rule
        self.message = message


class DiscoveryError(BuildError):
    """Conflicting or invalid marker combination on a member."""


class ValidationError(BuildError):
    """Schema rule violation; the descriptor is rejected."""


class BindingError(GraphBridgeError):
    """A generic port was bound to a type outside its allowed set."""

    def __init__(self, key: str, message: str):
        super().__init__(f"{key}: {message}")
        self.key = key
        self.message = message


class FaultReason(str, Enum):
    """Why a node invocation faulted."""

    MISSING_INPUT = "missing_input"
    UNKNOWN_INPUT = "unknown_input"
    INVOCATION_FAILED = "invocation_failed"
    SELECTOR_OUT_OF_RANGE = "selector_out_of_range"
    OUT_VALUE_UNASSIGNED = "out_value_unassigned"
    TYPE_CHECK_FAILED = "type_check_failed"
    BINDING_FAILED = "binding_failed"


class DispatchFault(GraphBridgeError):
    """A node invocation failed at execution time."""

    def __init__(self, key: str, reason: FaultReason, message: str):
        super().__init__(f"{key}: [{reason.value}] {message}")
        self.key = key
        self.reason = reason
        self.message = message
