"""Ordinal assignment for interface class members.

Replica and Source code are generated independently, often by separate runs
of the compiler, and must agree on the number used to address each member on
the wire. Everything here is a pure function of the class: no external state
and no hash-ordered iteration.

Every table is count-prefixed: position 0 holds the number of members and the
member with ordinal ``i`` lives at position ``i + 1``.
"""

from dataclasses import dataclass

from .types import AstClass, AstFunction, AstParam, AstProperty, MemberKind, change_signal_name


@dataclass(frozen=True)
class PropertyOrdinal:
    ordinal: int
    property: AstProperty

    @property
    def name(self) -> str:
        return self.property.name


@dataclass(frozen=True)
class SignalOrdinal:
    """A signal, explicit or synthesized from a property.

    `property_ordinal` is set only for change signals and names the property
    whose cached value a change invalidates.
    """

    ordinal: int
    name: str
    params: tuple[AstParam, ...]
    property_ordinal: int | None = None

    @property
    def is_change_signal(self) -> bool:
        return self.property_ordinal is not None

    @property
    def parameter_count(self) -> int:
        return len(self.params)

    @property
    def parameter_types(self) -> tuple[str, ...]:
        return tuple(p.type for p in self.params)

    @property
    def signature(self) -> str:
        return f"{self.name}({','.join(self.parameter_types)})"


@dataclass(frozen=True)
class MethodOrdinal:
    ordinal: int
    slot: AstFunction

    @property
    def name(self) -> str:
        return self.slot.name

    @property
    def parameter_count(self) -> int:
        return len(self.slot.params)

    @property
    def parameter_types(self) -> tuple[str, ...]:
        return tuple(p.type for p in self.slot.params)

    @property
    def signature(self) -> str:
        return self.slot.signature

    @property
    def return_type(self) -> str:
        return self.slot.return_type


@dataclass(frozen=True)
class OrdinalTables:
    """Ordinals of one class in its three namespaces."""

    properties: tuple[PropertyOrdinal, ...]
    signals: tuple[SignalOrdinal, ...]
    methods: tuple[MethodOrdinal, ...]

    @property
    def change_signals(self) -> tuple[SignalOrdinal, ...]:
        return tuple(s for s in self.signals if s.is_change_signal)

    @property
    def explicit_signals(self) -> tuple[SignalOrdinal, ...]:
        return tuple(s for s in self.signals if not s.is_change_signal)

    def members(self, kind: MemberKind) -> tuple[PropertyOrdinal | SignalOrdinal | MethodOrdinal, ...]:
        if kind == MemberKind.PROPERTY:
            return self.properties
        if kind == MemberKind.SIGNAL:
            return self.signals
        return self.methods

    def table(self, kind: MemberKind) -> tuple[int, ...]:
        """The count-prefixed table for `kind`."""
        count = len(self.members(kind))
        return (count, *range(1, count + 1))

    @property
    def property_table(self) -> tuple[int, ...]:
        return self.table(MemberKind.PROPERTY)

    @property
    def signal_table(self) -> tuple[int, ...]:
        return self.table(MemberKind.SIGNAL)

    @property
    def method_table(self) -> tuple[int, ...]:
        return self.table(MemberKind.METHOD)

    def property_for_signal(self, signal_ordinal: int) -> int:
        """Property ordinal invalidated by a signal, or -1."""
        if signal_ordinal < 0 or signal_ordinal >= len(self.signals):
            return -1
        prop = self.signals[signal_ordinal].property_ordinal
        return -1 if prop is None else prop

    def ordinal_of(self, kind: MemberKind, name: str) -> int:
        """Ordinal of the member called `name`, or -1."""
        for member in self.members(kind):
            if member.name == name:
                return member.ordinal
        return -1


def derive_change_signals(cls: AstClass) -> list[tuple[int, AstProperty]]:
    """The (property ordinal, property) pairs that own a change signal, in property order."""
    return [(i, prop) for i, prop in enumerate(cls.properties) if prop.notifies]


def assign_ordinals(cls: AstClass) -> OrdinalTables:
    """Assign property, signal and method ordinals for a class."""
    properties = tuple(PropertyOrdinal(i, prop) for i, prop in enumerate(cls.properties))

    signals: list[SignalOrdinal] = []
    for prop_ordinal, prop in derive_change_signals(cls):
        signals.append(
            SignalOrdinal(len(signals), change_signal_name(prop), (), property_ordinal=prop_ordinal)
        )
    for signal in cls.signals:
        signals.append(SignalOrdinal(len(signals), signal.name, tuple(signal.params)))

    methods = tuple(MethodOrdinal(i, slot) for i, slot in enumerate(cls.slots))

    return OrdinalTables(properties=properties, signals=tuple(signals), methods=methods)
