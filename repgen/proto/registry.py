"""Registry of user types that travel over the wire.

Generated code registers every record and enum it references, so a receiver
can decode an argument list from its type names alone.
"""

import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from .types import BUILTIN_TYPES, UNKNOWN_TYPE, USER_TYPE

Packer = Callable[[Any], bytes]
Unpacker = Callable[[bytes | memoryview, int], tuple[Any, int]]


@dataclass(frozen=True)
class TypeCodec:
    """A registered user type with its wire codec."""

    name: str
    type: type
    type_id: int
    pack: Packer
    unpack: Unpacker


_lock = threading.Lock()
_codecs: dict[str, TypeCodec] = {}
_builtin_ids = {name: i for i, name in enumerate(BUILTIN_TYPES)}


def register_type(
    name: str,
    type_: type,
    pack: Packer | None = None,
    unpack: Unpacker | None = None,
) -> int:
    """Register a user type under `name` and return its type id.

    Registration is idempotent: registering the same type again returns the
    id it already has. A different type under a known name (a reloaded
    module) replaces the codec but keeps the id. Without explicit codecs the
    type's own `pack()` / `unpack()` pair is used.
    """
    if name in _builtin_ids:
        return _builtin_ids[name]

    with _lock:
        existing = _codecs.get(name)
        if existing is not None and existing.type is type_:
            return existing.type_id

        codec = TypeCodec(
            name=name,
            type=type_,
            type_id=existing.type_id if existing is not None else USER_TYPE + len(_codecs),
            pack=pack if pack is not None else lambda value: value.pack(),
            unpack=unpack if unpack is not None else type_.unpack,
        )
        _codecs[name] = codec
        return codec.type_id


def lookup(name: str) -> TypeCodec | None:
    """Return the codec registered under `name`, if any."""
    with _lock:
        return _codecs.get(name)


def type_id(name: str) -> int:
    """Return the id of a builtin or registered type, or UNKNOWN_TYPE."""
    if name in _builtin_ids:
        return _builtin_ids[name]
    codec = lookup(name)
    return codec.type_id if codec is not None else UNKNOWN_TYPE


def type_name(type_id_: int) -> str:
    """Return the name for a type id, or an empty string."""
    if 0 <= type_id_ < len(BUILTIN_TYPES):
        return BUILTIN_TYPES[type_id_]
    with _lock:
        for codec in _codecs.values():
            if codec.type_id == type_id_:
                return codec.name
    return ""


def is_builtin(name: str) -> bool:
    return name in _builtin_ids


def registered_types() -> list[str]:
    """Names of all registered user types, in registration order."""
    with _lock:
        return list(_codecs)
