"""Adapter emitter: executable bindings from descriptor ports to members.

An ``Adapter`` is immutable once built and safe to invoke from several
host-graph node instances at once. Generic descriptors are specialized at
generation time into one adapter per combination of allowed types; a
``GenericAdapter`` picks one by exact type (``bind``) or by the first
specialization whose types accept the bound values (``select``).
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, TypeVar

from .exceptions import BindingError, DispatchFault, FaultReason
from .markers import Out
from .nodes.schema import Binding, NodeDescriptor, PortDescriptor, PortRole
from .value_types import ValueTypeUniverse, default_universe, ordinal, substitute, type_variables

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AdapterResult:
    """Output values keyed by port label, and the selected flow output.

    ``selected_index`` is None for non-flow nodes.
    """

    outputs: Mapping[str, Any] = field(default_factory=dict)
    selected_index: int | None = None


def _type_name(tp: Any) -> str:
    return getattr(tp, "__name__", str(tp))


def _bindable(descriptor: NodeDescriptor) -> dict[str, tuple[str, int]]:
    """Binding names accepted by a descriptor: port labels, then source names."""
    ports: list[tuple[str, int, PortDescriptor]] = [
        ("input", i, p) for i, p in enumerate(descriptor.inputs) if not p.hidden
    ] + [
        ("payload", i, p) for i, p in enumerate(descriptor.outputs) if p.role == PortRole.PAYLOAD
    ]
    lookup: dict[str, tuple[str, int]] = {}
    for side, index, port in ports:
        lookup.setdefault(port.label, (side, index))
    for side, index, port in ports:
        lookup.setdefault(port.name, (side, index))
    return lookup


def required_inputs(descriptor: NodeDescriptor) -> tuple[str, ...]:
    """Labels that must be bound: visible inputs without a default, and event payloads."""
    inputs = [p.label for p in descriptor.inputs if not p.hidden and not p.has_default]
    payloads = [p.label for p in descriptor.outputs if p.role == PortRole.PAYLOAD]
    return tuple(inputs + payloads)


class Adapter:
    """Invokes the member behind one (possibly specialized) descriptor."""

    def __init__(
        self,
        descriptor: NodeDescriptor,
        universe: ValueTypeUniverse | None = None,
        type_bindings: Mapping[TypeVar, type] | None = None,
    ):
        self._descriptor = descriptor
        self._universe = universe or default_universe()
        self._type_bindings = MappingProxyType(dict(type_bindings or {}))
        self._input_types = tuple(
            substitute(p.value_type, self._type_bindings) for p in descriptor.inputs
        )
        self._output_types = tuple(
            substitute(p.value_type, self._type_bindings) for p in descriptor.outputs
        )
        self._lookup = MappingProxyType(_bindable(descriptor))
        self._required = required_inputs(descriptor)

    @property
    def key(self) -> str:
        return self._descriptor.key

    @property
    def descriptor(self) -> NodeDescriptor:
        return self._descriptor

    @property
    def type_bindings(self) -> Mapping[TypeVar, type]:
        return self._type_bindings

    @property
    def input_types(self) -> tuple[Any, ...]:
        """Concrete input port types after specialization."""
        return self._input_types

    @property
    def output_types(self) -> tuple[Any, ...]:
        return self._output_types

    @property
    def required_inputs(self) -> tuple[str, ...]:
        return self._required

    def unknown_inputs(self, bindings: Mapping[str, Any]) -> list[str]:
        """Binding names that match no bindable port.

        Bindings for hidden ports are not unknown; they are ignored.
        """
        hidden = {n for p in self._descriptor.inputs if p.hidden for n in (p.label, p.name)}
        return [name for name in bindings if name not in self._lookup and name not in hidden]

    def accepts(self, port: tuple[str, int], value: Any) -> bool:
        """Whether ``value`` fits the specialized type of a bindable port."""
        side, index = port
        types = self._input_types if side == "input" else self._output_types
        return self._universe.accepts(value, types[index])

    def missing_inputs(self, bindings: Mapping[str, Any]) -> list[str]:
        bound = {self._lookup[name] for name in bindings if name in self._lookup}
        return [label for label in self._required if self._lookup[label] not in bound]

    def check_bindings(self, bindings: Mapping[str, Any]) -> None:
        """Precondition check run before anything is invoked.

        Raises:
            DispatchFault: On unknown binding names, a port bound twice (by
                label and by source name) or missing required inputs
        """
        unknown = self.unknown_inputs(bindings)
        if unknown:
            raise DispatchFault(
                self.key, FaultReason.UNKNOWN_INPUT, f"no input port named {', '.join(unknown)}"
            )
        seen: dict[tuple[str, int], str] = {}
        for name in bindings:
            port = self._lookup.get(name)
            if port is None:
                continue
            if port in seen:
                raise DispatchFault(
                    self.key,
                    FaultReason.UNKNOWN_INPUT,
                    f"{seen[port]!r} and {name!r} bind the same port",
                )
            seen[port] = name
        missing = self.missing_inputs(bindings)
        if missing:
            raise DispatchFault(
                self.key, FaultReason.MISSING_INPUT, f"required inputs not bound: {', '.join(missing)}"
            )

    def invoke(self, bindings: Mapping[str, Any], type_check: bool = True) -> AdapterResult:
        """Invoke the underlying member.

        Args:
            bindings: Values keyed by port label (or source parameter name)
            type_check: Check bound values against their port types first

        Returns:
            AdapterResult with outputs in declared order

        Raises:
            DispatchFault: If the invocation faults for any reason
        """
        self.check_bindings(bindings)
        descriptor = self._descriptor

        inputs = [p.default_value for p in descriptor.inputs]
        payloads: dict[int, Any] = {}
        bound: list[int] = []
        for name, value in bindings.items():
            if name not in self._lookup:
                logger.debug("Ignoring binding for hidden port %r on %s", name, self.key)
                continue
            side, index = self._lookup[name]
            if side == "input":
                inputs[index] = value
                bound.append(index)
            else:
                payloads[index] = value

        if type_check:
            self._type_check(inputs, bound, payloads)

        call = descriptor.call
        args: list[Any] = [descriptor.owner] if call.binding == Binding.CLASS else []
        kwargs: dict[str, Any] = {}
        cells: dict[int, Out] = {}
        for slot in call.slots:
            if slot.role in (PortRole.INPUT, PortRole.INSTANCE):
                value = inputs[slot.port]
            elif slot.role == PortRole.OUTPUT:
                value = cells[slot.port] = Out()
            else:
                value = payloads[slot.port]
            if slot.keyword:
                kwargs[slot.parameter] = value
            else:
                args.append(value)

        try:
            result = call.target(*args, **kwargs)
        except Exception as e:
            raise DispatchFault(
                self.key, FaultReason.INVOCATION_FAILED, f"{type(e).__name__}: {e}"
            ) from e

        outputs: dict[str, Any] = {}
        for index, port in enumerate(descriptor.outputs):
            if index == 0 and call.returns_value:
                outputs[port.label] = result
            elif index in cells:
                if not cells[index].assigned:
                    raise DispatchFault(
                        self.key,
                        FaultReason.OUT_VALUE_UNASSIGNED,
                        f"out-parameter {port.name!r} was not assigned",
                    )
                outputs[port.label] = cells[index].value
            else:
                outputs[port.label] = payloads[index]

        return AdapterResult(outputs, self._select(result))

    def _type_check(self, inputs: list[Any], bound: list[int], payloads: dict[int, Any]) -> None:
        descriptor = self._descriptor
        for index in bound:
            port, value = descriptor.inputs[index], inputs[index]
            if port.role == PortRole.INSTANCE:
                ok = isinstance(value, descriptor.owner)
                expected = _type_name(descriptor.owner)
            else:
                ok = self._universe.accepts(value, self._input_types[index])
                expected = self._universe.vm_type_name(self._input_types[index])
            if not ok:
                raise DispatchFault(
                    self.key,
                    FaultReason.TYPE_CHECK_FAILED,
                    f"{port.label!r} expects {expected}, got {type(value).__name__}",
                )
        for index, value in payloads.items():
            if not self._universe.accepts(value, self._output_types[index]):
                raise DispatchFault(
                    self.key,
                    FaultReason.TYPE_CHECK_FAILED,
                    f"payload {descriptor.outputs[index].label!r} expects "
                    f"{self._universe.vm_type_name(self._output_types[index])}, got {type(value).__name__}",
                )

    def _select(self, result: Any) -> int | None:
        descriptor = self._descriptor
        if not descriptor.is_flow_node:
            return None
        if not descriptor.branch_on_return:
            return 0
        count = len(descriptor.flow_outputs)
        selector = ordinal(result)
        if selector is None or not 0 <= selector < count:
            raise DispatchFault(
                self.key,
                FaultReason.SELECTOR_OUT_OF_RANGE,
                f"selector {result!r} is outside [0, {count})",
            )
        return selector

    def __call__(self, inputs: Mapping[str, Any] | None = None, **kwargs: Any) -> AdapterResult:
        return self.invoke({**(inputs or {}), **kwargs})

    def __repr__(self) -> str:
        if self._type_bindings:
            bound = ", ".join(f"{v.__name__}={_type_name(t)}" for v, t in self._type_bindings.items())
            return f"Adapter({self._descriptor.menu_path!r}, {bound})"
        return f"Adapter({self._descriptor.menu_path!r})"


class GenericAdapter:
    """Set of adapters specialized for each allowed type combination."""

    def __init__(self, descriptor: NodeDescriptor, specializations: Mapping[tuple[type, ...], Adapter]):
        self._descriptor = descriptor
        self._specializations = MappingProxyType(dict(specializations))

    @property
    def key(self) -> str:
        return self._descriptor.key

    @property
    def descriptor(self) -> NodeDescriptor:
        return self._descriptor

    @property
    def specializations(self) -> Mapping[tuple[type, ...], Adapter]:
        return self._specializations

    @property
    def required_inputs(self) -> tuple[str, ...]:
        return required_inputs(self._descriptor)

    def bind(self, *types: Any) -> Adapter:
        """Select the specialization for concrete types.

        Accepts either one type per type parameter, in declaration order, or a
        single mapping keyed by type variable or its name.

        Raises:
            BindingError: If a type is outside its parameter's allowed set
        """
        parameters = self._descriptor.type_parameters
        if len(types) == 1 and isinstance(types[0], Mapping):
            mapping = types[0]
            chosen = []
            for tp in parameters:
                if tp.variable in mapping:
                    chosen.append(mapping[tp.variable])
                elif tp.name in mapping:
                    chosen.append(mapping[tp.name])
                else:
                    raise BindingError(self.key, f"no type bound for {tp.name}")
        else:
            chosen = list(types)
        if len(chosen) != len(parameters):
            raise BindingError(
                self.key, f"expected {len(parameters)} type(s), got {len(chosen)}"
            )

        for tp, concrete in zip(parameters, chosen):
            # exact identity: bool must not pass for int
            if not any(concrete is allowed for allowed in tp.allowed):
                names = ", ".join(_type_name(t) for t in tp.allowed)
                raise BindingError(
                    self.key, f"{_type_name(concrete)} is not allowed for {tp.name} (allowed: {names})"
                )
        return self._specializations[tuple(chosen)]

    def select(self, bindings: Mapping[str, Any]) -> Adapter:
        """Pick the specialization that fits the bound values.

        Specializations are tried in allowed-type order and the first whose
        types accept every bound generic value (defaults included) wins, so
        an empty list takes the first allowed type and ``[1, 2.5]`` widens
        to float.

        Raises:
            BindingError: If no allowed type combination fits the values
        """
        values = self._generic_values(bindings)
        for adapter in self._specializations.values():
            if all(adapter.accepts(port, value) for _, port, value in values):
                return adapter
        described = ", ".join(f"{label!r}: {type(value).__name__}" for label, _, value in values)
        raise BindingError(self.key, f"no allowed type fits {described}")

    def _generic_values(self, bindings: Mapping[str, Any]) -> list[tuple[str, tuple[str, int], Any]]:
        """(label, port, value) for every generic port that has a value."""
        descriptor = self._descriptor
        lookup = _bindable(descriptor)
        values = []
        ports = [("input", i, p) for i, p in enumerate(descriptor.inputs)] + [
            ("payload", i, p) for i, p in enumerate(descriptor.outputs) if p.role == PortRole.PAYLOAD
        ]
        for side, index, port in ports:
            if not type_variables(port.value_type):
                continue
            name = next((n for n in bindings if lookup.get(n) == (side, index)), None)
            if name is not None:
                values.append((port.label, (side, index), bindings[name]))
            elif port.has_default:
                values.append((port.label, (side, index), port.default_value))
        return values

    def invoke(self, bindings: Mapping[str, Any], type_check: bool = True) -> AdapterResult:
        return self.select(bindings).invoke(bindings, type_check=type_check)

    def __call__(self, inputs: Mapping[str, Any] | None = None, **kwargs: Any) -> AdapterResult:
        return self.invoke({**(inputs or {}), **kwargs})

    def __repr__(self) -> str:
        return f"GenericAdapter({self._descriptor.menu_path!r}, {len(self._specializations)} specializations)"


class AdapterEmitter:
    """Generates adapters for node descriptors."""

    def __init__(self, universe: ValueTypeUniverse | None = None):
        self.universe = universe or default_universe()

    def emit(self, descriptor: NodeDescriptor) -> Adapter | GenericAdapter:
        """Generate the adapter for one descriptor.

        Generic descriptors get one specialization per combination of
        allowed types.
        """
        if not descriptor.is_generic:
            return Adapter(descriptor, self.universe)

        variables = [tp.variable for tp in descriptor.type_parameters]
        specializations = {
            combo: Adapter(descriptor, self.universe, dict(zip(variables, combo)))
            for combo in itertools.product(*(tp.allowed for tp in descriptor.type_parameters))
        }
        logger.debug("Specialized %s into %d adapters", descriptor.key, len(specializations))
        return GenericAdapter(descriptor, specializations)
