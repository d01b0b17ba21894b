"""Schema builder: discovered members to validated node descriptors.

Every rule violation is recorded as a member-scoped ``ValidationError``;
the builder keeps checking after the first failure so a member's problems
are reported together, and a member with any error yields no descriptor.
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, field
from typing import TypeVar

from .config import IndexConfig
from .discovery import DiscoveredMember, ParameterInfo, valid_path
from .exceptions import ValidationError, ValidationRule
from .markers import MISSING, GraphCategory, GraphEvent, GraphInput
from .nodes.schema import (
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
from .value_types import (
    ValueTypeUniverse,
    default_universe,
    is_integral,
    is_numeric,
    substitute,
    type_variables,
)

logger = logging.getLogger(__name__)

RESULT_PORT = "Result"
INSTANCE_PORT = "Instance"


@dataclass
class BuildOutcome:
    """Descriptors built from one member, or the errors that rejected it."""

    member_id: str
    descriptors: list[NodeDescriptor] = field(default_factory=list)
    errors: list[ValidationError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def apply_category(path: str, category: GraphCategory | None) -> str:
    """Prefix ``path`` with the category path unless it already starts with it."""
    if category is None:
        return path
    prefix = category.path.split("/")
    if path.split("/")[: len(prefix)] == prefix:
        return path
    return f"{category.path}/{path}"


class _Checks:
    """Accumulates validation errors for one member."""

    def __init__(self, member_id: str):
        self.member_id = member_id
        self.errors: list[ValidationError] = []

    def fail(self, rule: ValidationRule, message: str) -> None:
        self.errors.append(ValidationError(self.member_id, rule, message))


class SchemaBuilder:
    """Converts discovered members into immutable node descriptors."""

    def __init__(
        self,
        universe: ValueTypeUniverse | None = None,
        config: IndexConfig | None = None,
    ):
        self.universe = universe or default_universe()
        self.config = config or IndexConfig()

    def build(self, member: DiscoveredMember) -> BuildOutcome:
        """Build the descriptor(s) for one member.

        Methods and events yield one descriptor; properties yield a Get
        descriptor and, unless read-only, a Set descriptor.

        Args:
            member: A member accepted by discovery

        Returns:
            BuildOutcome holding descriptors or validation errors
        """
        checks = _Checks(member.member_id)
        self._check_accessible(member, checks)

        if member.kind == MemberKind.PROPERTY:
            descriptors = self._build_property(member, checks)
        else:
            descriptors = [self._build_callable(member, checks)]

        if checks.errors:
            for error in checks.errors:
                logger.debug("Validation failed: %s", error)
            return BuildOutcome(member.member_id, errors=checks.errors)
        return BuildOutcome(member.member_id, descriptors=descriptors)

    # ------------------------------------------------------------------
    # Shared rules
    # ------------------------------------------------------------------

    def _check_accessible(self, member: DiscoveredMember, checks: _Checks) -> None:
        names = [member.name]
        if member.owner is not None:
            names += [n for n in member.owner.__qualname__.split(".") if n != "<locals>"]
        private = [n for n in names if n.startswith("_")]
        if private:
            checks.fail(
                ValidationRule.NOT_ACCESSIBLE,
                f"{'.'.join(private)} is private and cannot be invoked from a graph",
            )

    def _menu_path(self, path: str | None, member: DiscoveredMember, checks: _Checks) -> str:
        full_path = apply_category(path or "", member.category)
        if not valid_path(full_path):
            checks.fail(
                ValidationRule.INVALID_MENU_PATH,
                f"menu path {full_path!r} is empty or has an empty segment",
            )
        return full_path

    def _check_supported(self, port: PortDescriptor, checks: _Checks) -> None:
        tp = port.value_type
        if tp is MISSING:
            checks.fail(ValidationRule.UNSUPPORTED_TYPE, f"port {port.name!r} has no type annotation")
            return
        variables = type_variables(tp)
        # judge generic shapes with a representative binding
        concrete = substitute(tp, {v: int for v in variables}) if variables else tp
        if not self.universe.is_supported(concrete):
            checks.fail(
                ValidationRule.UNSUPPORTED_TYPE,
                f"port {port.name!r} has type {getattr(tp, '__name__', tp)!r} "
                "which the target VM does not support",
            )

    def _check_ports_unique(self, ports: list[PortDescriptor], side: str, checks: _Checks) -> None:
        seen: set[str] = set()
        for port in ports:
            if port.label in seen:
                checks.fail(
                    ValidationRule.DUPLICATE_PORT_NAME,
                    f"{side} port name {port.label!r} is used more than once",
                )
            seen.add(port.label)

    # ------------------------------------------------------------------
    # Methods and events
    # ------------------------------------------------------------------

    def _build_callable(self, member: DiscoveredMember, checks: _Checks) -> NodeDescriptor:
        marker = member.marker
        is_event = member.kind == MemberKind.EVENT
        is_flow_node = True if is_event else marker.is_flow_node

        inputs: list[PortDescriptor] = []
        outputs: list[PortDescriptor] = []
        slots: list[ParameterSlot] = []

        if member.binding == Binding.INSTANCE:
            inputs.append(
                PortDescriptor("self", member.owner, PortRole.INSTANCE, display_name=INSTANCE_PORT)
            )
            slots.append(ParameterSlot("self", PortRole.INSTANCE, 0))

        returns = member.return_annotation
        if returns is not None:
            if is_event:
                checks.fail(ValidationRule.EVENT_RETURNS_VALUE, "event handlers must return None")
            outputs.append(PortDescriptor(RESULT_PORT, returns, PortRole.OUTPUT))

        constraints: dict[TypeVar, tuple[type, ...]] = {}
        for param in member.parameters:
            if param.is_variadic:
                checks.fail(
                    ValidationRule.UNSUPPORTED_TYPE,
                    f"variadic parameter {param.name!r} cannot become a port",
                )
                continue
            keyword = param.kind == inspect.Parameter.KEYWORD_ONLY
            if is_event or param.is_out:
                role = PortRole.PAYLOAD if is_event else PortRole.OUTPUT
                out_marker = param.output_marker
                outputs.append(
                    PortDescriptor(
                        param.name,
                        param.value_type,
                        role,
                        display_name=out_marker.display_name if out_marker else None,
                        tooltip=out_marker.tooltip if out_marker else None,
                    )
                )
                slots.append(ParameterSlot(param.name, role, len(outputs) - 1, keyword))
            else:
                port = self._input_port(param, checks)
                inputs.append(port)
                slots.append(ParameterSlot(param.name, PortRole.INPUT, len(inputs) - 1, keyword))
                self._collect_constraint(param, port, constraints, checks)

        for port in inputs + outputs:
            if port.role != PortRole.INSTANCE:
                self._check_supported(port, checks)

        type_parameters = self._type_parameters(inputs + outputs, constraints, checks)
        for port in inputs:
            self._check_default(port, type_parameters, checks)
        self._check_ports_unique(inputs, "input", checks)
        self._check_ports_unique(outputs, "output", checks)

        flow_outputs = self._flow_outputs(member, is_flow_node, checks)
        menu_path = self._menu_path(marker.menu_path, member, checks)

        return NodeDescriptor(
            key=member.member_id,
            menu_path=menu_path,
            kind=member.kind,
            call=CallPlan(member.target, member.binding, tuple(slots), returns is not None),
            is_flow_node=is_flow_node,
            inputs=tuple(inputs),
            outputs=tuple(outputs),
            flow_outputs=flow_outputs,
            metadata=self._metadata(member),
            type_parameters=type_parameters,
            branch_on_return=(
                is_flow_node
                and len(flow_outputs) >= 2
                and returns is not None
                and is_integral(returns)
            ),
            owner=member.owner,
        )

    def _input_port(self, param: ParameterInfo, checks: _Checks) -> PortDescriptor:
        marker = param.input_marker or GraphInput()
        default = marker.default if marker.default is not MISSING else param.default

        value_range = None
        if marker.min is not None or marker.max is not None:
            value_range = (marker.min, marker.max)
            if marker.min is not None and marker.max is not None and marker.min > marker.max:
                checks.fail(
                    ValidationRule.INVALID_RANGE,
                    f"port {param.name!r} has min {marker.min} greater than max {marker.max}",
                )
            elif not is_numeric(param.value_type):
                logger.debug("Range on non-numeric port %r is presentation-only", param.name)

        if marker.hidden and default is MISSING:
            checks.fail(
                ValidationRule.HIDDEN_WITHOUT_DEFAULT,
                f"hidden port {param.name!r} needs a default value",
            )

        return PortDescriptor(
            param.name,
            param.value_type,
            PortRole.INPUT,
            display_name=marker.display_name,
            default_value=default,
            hidden=marker.hidden,
            tooltip=marker.tooltip,
            range=value_range,
            type_constraint=param.constraint.allowed_types if param.constraint else None,
        )

    def _collect_constraint(
        self,
        param: ParameterInfo,
        port: PortDescriptor,
        constraints: dict[TypeVar, tuple[type, ...]],
        checks: _Checks,
    ) -> None:
        if param.constraint is None:
            return
        allowed = param.constraint.allowed_types
        if not allowed:
            checks.fail(
                ValidationRule.EMPTY_TYPE_CONSTRAINT,
                f"type constraint on {param.name!r} must name at least one type",
            )
            return
        unsupported = [t for t in allowed if not self.universe.is_supported(t)]
        if unsupported:
            names = ", ".join(getattr(t, "__name__", str(t)) for t in unsupported)
            checks.fail(
                ValidationRule.UNSUPPORTED_CONSTRAINT_TYPE,
                f"type constraint on {param.name!r} names unsupported types: {names}",
            )
        variables = type_variables(port.value_type)
        if not variables:
            checks.fail(
                ValidationRule.CONSTRAINT_ON_CONCRETE_PORT,
                f"type constraint on {param.name!r} but its type is not generic",
            )
        for variable in variables:
            existing = constraints.get(variable)
            if existing is not None and set(existing) != set(allowed):
                checks.fail(
                    ValidationRule.CONFLICTING_TYPE_CONSTRAINT,
                    f"type variable {variable.__name__} is constrained differently on {param.name!r}",
                )
            else:
                constraints[variable] = allowed

    def _type_parameters(
        self,
        ports: list[PortDescriptor],
        constraints: dict[TypeVar, tuple[type, ...]],
        checks: _Checks,
    ) -> tuple[TypeParameter, ...]:
        variables: list[TypeVar] = []
        for port in ports:
            for variable in type_variables(port.value_type):
                if variable not in variables:
                    variables.append(variable)

        parameters = []
        for variable in variables:
            allowed = constraints.get(variable) or tuple(variable.__constraints__)
            if not allowed:
                checks.fail(
                    ValidationRule.UNCONSTRAINED_GENERIC,
                    f"type variable {variable.__name__} has no GraphTypeConstraint",
                )
                continue
            if variable not in constraints:
                unsupported = [t for t in allowed if not self.universe.is_supported(t)]
                if unsupported:
                    checks.fail(
                        ValidationRule.UNSUPPORTED_CONSTRAINT_TYPE,
                        f"type variable {variable.__name__} allows unsupported types",
                    )
            parameters.append(TypeParameter(variable, tuple(allowed)))
        return tuple(parameters)

    def _check_default(
        self,
        port: PortDescriptor,
        type_parameters: tuple[TypeParameter, ...],
        checks: _Checks,
    ) -> None:
        if not port.has_default or port.value_type is MISSING:
            return
        variables = type_variables(port.value_type)
        if variables:
            allowed = {tp.variable: tp.allowed for tp in type_parameters}
            options = dict.fromkeys(t for v in variables for t in allowed.get(v, ()))
            candidates = [
                substitute(port.value_type, {v: t for v in variables}) for t in options
            ]
        else:
            candidates = [port.value_type]
        if not any(self.universe.accepts(port.default_value, c) for c in candidates):
            checks.fail(
                ValidationRule.DEFAULT_TYPE_MISMATCH,
                f"default {port.default_value!r} of port {port.name!r} does not fit its type",
            )

    def _flow_outputs(
        self, member: DiscoveredMember, is_flow_node: bool, checks: _Checks
    ) -> tuple[FlowPortDescriptor, ...]:
        if member.flow_outputs and not is_flow_node:
            checks.fail(
                ValidationRule.FLOW_OUTPUT_ON_NON_FLOW_NODE,
                "flow outputs declared on a node with is_flow_node=False",
            )
            return ()
        names = [f.name for f in member.flow_outputs]
        for name in sorted({n for n in names if names.count(n) > 1}):
            checks.fail(ValidationRule.DUPLICATE_FLOW_OUTPUT, f"flow output {name!r} is declared twice")
        return tuple(FlowPortDescriptor(f.name, f.tooltip) for f in member.flow_outputs)

    def _metadata(self, member: DiscoveredMember) -> NodeMetadata:
        marker = member.marker
        category = member.category
        priority = category.priority if category else self.config.default_priority
        if isinstance(marker, GraphEvent):
            return NodeMetadata(
                icon=marker.icon,
                tooltip=marker.tooltip or member.name,
                category=category.path if category else None,
                priority=priority,
                networked=marker.networked,
            )
        return NodeMetadata(
            icon=marker.icon,
            color=marker.color,
            tooltip=marker.tooltip or member.name,
            category=marker.category or (category.path if category else None),
            searchable=marker.searchable,
            search_keywords=marker.search_keywords,
            priority=priority,
        )

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    def _build_property(self, member: DiscoveredMember, checks: _Checks) -> list[NodeDescriptor]:
        marker = member.marker
        base_path = self._menu_path(marker.menu_path or member.name, member, checks)
        value_type = member.value_annotation

        instance = PortDescriptor("self", member.owner, PortRole.INSTANCE, display_name=INSTANCE_PORT)
        instance_slot = ParameterSlot("self", PortRole.INSTANCE, 0)
        value_port = PortDescriptor(member.name, value_type, PortRole.OUTPUT)
        self._check_supported(value_port, checks)
        if type_variables(value_type):
            checks.fail(ValidationRule.UNCONSTRAINED_GENERIC, "properties cannot be generic")

        category = member.category
        priority = category.priority if category else self.config.default_priority

        def metadata(verb: str) -> NodeMetadata:
            return NodeMetadata(
                icon=marker.icon,
                tooltip=marker.tooltip or f"{verb} {member.name}",
                category=category.path if category else None,
                priority=priority,
            )

        descriptors = []
        if member.getter is not None:
            descriptors.append(
                NodeDescriptor(
                    key=f"{member.member_id}:get",
                    menu_path=f"{base_path}/Get",
                    kind=MemberKind.PROPERTY,
                    call=CallPlan(member.getter, Binding.INSTANCE, (instance_slot,), True),
                    is_flow_node=False,
                    inputs=(instance,),
                    outputs=(value_port,),
                    metadata=metadata("Gets"),
                    owner=member.owner,
                )
            )
        if member.setter is not None and not marker.read_only:
            set_port = PortDescriptor(member.name, value_type, PortRole.INPUT)
            descriptors.append(
                NodeDescriptor(
                    key=f"{member.member_id}:set",
                    menu_path=f"{base_path}/Set",
                    kind=MemberKind.PROPERTY,
                    call=CallPlan(
                        member.setter,
                        Binding.INSTANCE,
                        (instance_slot, ParameterSlot(member.name, PortRole.INPUT, 1)),
                        False,
                    ),
                    is_flow_node=True,
                    inputs=(instance, set_port),
                    metadata=metadata("Sets"),
                    owner=member.owner,
                )
            )
        return descriptors
