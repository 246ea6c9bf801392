"""Member introspection for concrete Source types.

A descriptor resolves each ordinal to an index into the member lists of the
concrete type it is bound to. Lists are built base class first, in
definition order, so the indices are stable for a given class hierarchy.
"""

import inspect
from dataclasses import dataclass
from functools import cache

from .runtime import Signal
from .types import NOT_FOUND


@dataclass(frozen=True)
class MetaObject:
    """The remotely addressable members of a type."""

    type_name: str
    properties: tuple[str, ...]
    signals: tuple[str, ...]
    methods: tuple[str, ...]

    def index_of_property(self, name: str) -> int:
        return self.properties.index(name) if name in self.properties else NOT_FOUND

    def index_of_signal(self, name: str) -> int:
        return self.signals.index(name) if name in self.signals else NOT_FOUND

    def index_of_method(self, name: str) -> int:
        return self.methods.index(name) if name in self.methods else NOT_FOUND


@cache
def meta_object(object_type: type) -> MetaObject:
    """Build the MetaObject of `object_type`.

    Properties are the names listed in `_remote_properties_` anywhere in the
    hierarchy, signals are `Signal` class attributes and methods are public
    plain functions.
    """
    properties: dict[str, None] = {}
    signals: dict[str, None] = {}
    methods: dict[str, None] = {}

    for klass in reversed(object_type.__mro__):
        for name in vars(klass).get("_remote_properties_", ()):
            properties[name] = None
        for name, value in vars(klass).items():
            if isinstance(value, Signal):
                signals[name] = None
            elif inspect.isfunction(value) and not name.startswith("_"):
                methods[name] = None

    return MetaObject(
        type_name=getattr(object_type, "_remote_type_", "") or object_type.__name__,
        properties=tuple(properties),
        signals=tuple(signals),
        methods=tuple(methods),
    )
