"""Reflection descriptors binding concrete Source types to ordinal tables.

A generated `<Name>SourceAPI` is constructed with the concrete type that
implements the `<Name>` contract. It resolves every ordinal to the runtime
identity of the matching member of that type (its index in the type's
`MetaObject`) once, and answers the lookups a generic dispatcher needs.

Lookups are driven by remote input, so every accessor is bounds-checked and
answers NOT_FOUND (-1) or an empty string for indices out of range.
"""

from collections.abc import Sequence

from . import registry
from .meta import MetaObject, meta_object
from .types import NOT_FOUND, MemberKind, MethodType


class SourceApiMap:
    """Base class for generated descriptors.

    Tables `_properties`, `_signals` and `_methods` are count-prefixed: slot 0
    holds the number of members and ordinal ``i`` is stored at ``i + 1``.
    """

    def __init__(self, object_type: type, name: str, type_name: str | None = None) -> None:
        self._object_type = object_type
        self._meta: MetaObject = meta_object(object_type)
        self._name = name
        self._type_name = type_name or name

        self._properties: list[int] = [0]
        self._signals: list[int] = [0]
        self._methods: list[int] = [0]
        self._signal_arg_types: list[tuple[int, ...]] = []
        self._method_arg_types: list[tuple[int, ...]] = []
        self._signal_signatures: list[str] = []
        self._method_signatures: list[str] = []
        self._method_return_types: list[str] = []
        # Raw positions in _properties of the property owning each change signal
        self._property_change_index: list[int] = []

    # Resolution helpers used by generated constructors

    def _property_index(self, name: str) -> int:
        index = self._meta.index_of_property(name)
        if index == NOT_FOUND:
            raise TypeError(f"{self._object_type.__name__} does not declare the property {name} of {self._name}")
        return index

    def _signal_index(self, name: str) -> int:
        index = self._meta.index_of_signal(name)
        if index == NOT_FOUND:
            raise TypeError(f"{self._object_type.__name__} does not declare the signal {name} of {self._name}")
        return index

    def _method_index(self, name: str) -> int:
        index = self._meta.index_of_method(name)
        if index == NOT_FOUND:
            raise TypeError(f"{self._object_type.__name__} does not implement the slot {name} of {self._name}")
        return index

    def _require_method(self, name: str) -> None:
        """Check that the concrete type has a callable `name` (a property setter)."""
        if not callable(getattr(self._object_type, name, None)):
            raise TypeError(f"{self._object_type.__name__} does not implement {name} required by {self._name}")

    @staticmethod
    def _type_ids(*type_names: str) -> tuple[int, ...]:
        return tuple(registry.type_id(t) for t in type_names)

    # Descriptor interface

    @property
    def object_type(self) -> type:
        return self._object_type

    def name(self) -> str:
        return self._name

    def type_name(self) -> str:
        return self._type_name

    def property_count(self) -> int:
        return self._properties[0]

    def signal_count(self) -> int:
        return self._signals[0]

    def method_count(self) -> int:
        return self._methods[0]

    @staticmethod
    def _lookup(table: Sequence[int], index: int) -> int:
        if index < 0 or index >= table[0]:
            return NOT_FOUND
        return table[index + 1]

    def source_property_index(self, index: int) -> int:
        return self._lookup(self._properties, index)

    def source_signal_index(self, index: int) -> int:
        return self._lookup(self._signals, index)

    def source_method_index(self, index: int) -> int:
        return self._lookup(self._methods, index)

    def signal_parameter_count(self, index: int) -> int:
        if index < 0 or index >= self._signals[0]:
            return NOT_FOUND
        return len(self._signal_arg_types[index])

    def signal_parameter_type(self, sig_index: int, param_index: int) -> int:
        if sig_index < 0 or sig_index >= self._signals[0]:
            return NOT_FOUND
        types = self._signal_arg_types[sig_index]
        if param_index < 0 or param_index >= len(types):
            return NOT_FOUND
        return types[param_index]

    def method_parameter_count(self, index: int) -> int:
        if index < 0 or index >= self._methods[0]:
            return NOT_FOUND
        return len(self._method_arg_types[index])

    def method_parameter_type(self, method_index: int, param_index: int) -> int:
        if method_index < 0 or method_index >= self._methods[0]:
            return NOT_FOUND
        types = self._method_arg_types[method_index]
        if param_index < 0 or param_index >= len(types):
            return NOT_FOUND
        return types[param_index]

    def property_index_from_signal(self, index: int) -> int:
        """Runtime identity of the property a change signal belongs to."""
        if index < 0 or index >= len(self._property_change_index):
            return NOT_FOUND
        return self._properties[self._property_change_index[index]]

    def property_raw_index_from_signal(self, index: int) -> int:
        """Position in the property table of the property a change signal belongs to."""
        if index < 0 or index >= len(self._property_change_index):
            return NOT_FOUND
        return self._property_change_index[index]

    def signal_signature(self, index: int) -> str:
        if index < 0 or index >= len(self._signal_signatures):
            return ""
        return self._signal_signatures[index]

    def method_signature(self, index: int) -> str:
        if index < 0 or index >= len(self._method_signatures):
            return ""
        return self._method_signatures[index]

    def method_type(self, index: int) -> int:
        if index < 0 or index >= self._methods[0]:
            return NOT_FOUND
        return MethodType.SLOT

    def method_return_type(self, index: int) -> str:
        if index < 0 or index >= len(self._method_return_types):
            return ""
        return self._method_return_types[index]

    # Kind-generic access, for dispatchers that handle all members alike

    def count(self, kind: MemberKind) -> int:
        return self._table(kind)[0]

    def source_index(self, kind: MemberKind, index: int) -> int:
        return self._lookup(self._table(kind), index)

    def parameter_count(self, kind: MemberKind, index: int) -> int:
        if kind == MemberKind.SIGNAL:
            return self.signal_parameter_count(index)
        if kind == MemberKind.METHOD:
            return self.method_parameter_count(index)
        return NOT_FOUND

    def parameter_type(self, kind: MemberKind, index: int, param_index: int) -> int:
        if kind == MemberKind.SIGNAL:
            return self.signal_parameter_type(index, param_index)
        if kind == MemberKind.METHOD:
            return self.method_parameter_type(index, param_index)
        return NOT_FOUND

    def signature(self, kind: MemberKind, index: int) -> str:
        if kind == MemberKind.SIGNAL:
            return self.signal_signature(index)
        if kind == MemberKind.METHOD:
            return self.method_signature(index)
        return ""

    def _table(self, kind: MemberKind) -> list[int]:
        if kind == MemberKind.PROPERTY:
            return self._properties
        if kind == MemberKind.SIGNAL:
            return self._signals
        return self._methods
