"""Serialization and deserialization for remote object types.

Values are written in QDataStream order: big-endian, no padding and no tags.
Records and argument lists are flat positional encodings.
"""

import logging
import struct
from collections.abc import Sequence
from enum import IntEnum
from typing import Any, Self

from . import registry
from .types import STRING_TYPES, WIRE_FORMATS

logger = logging.getLogger(__name__)

_NULL_LENGTH = 0xFFFFFFFF


class SerializationError(RuntimeError):
    """Raised when serialization or deserialization fails."""


class Record:
    """Base class for generated plain value records.

    Subclasses are @dataclass decorated; field order is wire order.

    Example:
        @dataclass
        class Point(Record):
            x: int = 0
            y: int = 0
    """

    def pack(self) -> bytes:
        """Pack this record to bytes. Generated code overrides this."""
        raise NotImplementedError("pack() must be implemented by generated code")

    @classmethod
    def unpack(cls, data: bytes | memoryview, offset: int = 0) -> tuple[Self, int]:
        """Unpack a record from bytes.

        Args:
            data: The bytes to unpack from.
            offset: Starting offset in data.

        Returns:
            Tuple of (instance, bytes_consumed).
        """
        raise NotImplementedError("unpack() must be implemented by generated code")


class RemoteEnum(IntEnum):
    """Base class for generated enums.

    The first declared enumerator is the fallback for values that match no
    enumerator.

    Example:
        class Status(RemoteEnum):
            Ok = 0
            Error = 1
    """

    @classmethod
    def convert(cls, raw: int) -> tuple[Self, bool]:
        """Checked conversion from a raw integer.

        Returns the matching enumerator and True, or the first declared
        enumerator and False.
        """
        member = cls._value2member_map_.get(raw)
        if member is not None:
            return member, True  # type: ignore[return-value]
        return next(iter(cls)), False

    @classmethod
    def from_wire(cls, raw: int) -> Self:
        """Convert a decoded value, warning about values that match nothing."""
        member, ok = cls.convert(raw)
        if not ok:
            logger.warning("Received an invalid enum value for type %s, value = %s", cls.__name__, raw)
        return member

    def pack(self) -> bytes:
        """Pack enum value. Generated code overrides this."""
        raise NotImplementedError("pack() must be implemented by generated code")

    @classmethod
    def unpack(cls, data: bytes | memoryview, offset: int = 0) -> tuple[Self, int]:
        """Unpack enum from bytes.

        Returns:
            Tuple of (enum member, bytes_consumed).
        """
        raise NotImplementedError("unpack() must be implemented by generated code")


def _pack_length(length: int | None) -> bytes:
    return struct.pack(">I", _NULL_LENGTH if length is None else length)


def pack_string(value: str | None) -> bytes:
    """Pack a QString: quint32 byte length followed by UTF-16BE."""
    if value is None:
        return _pack_length(None)
    encoded = value.encode("utf-16-be")
    return _pack_length(len(encoded)) + encoded


def pack_bytes(value: bytes | None) -> bytes:
    """Pack a QByteArray: quint32 length followed by the raw bytes."""
    if value is None:
        return _pack_length(None)
    return _pack_length(len(value)) + bytes(value)


def _unpack_length(data: bytes | memoryview, offset: int) -> int | None:
    try:
        (length,) = struct.unpack_from(">I", data, offset)
    except struct.error as e:
        raise SerializationError(f"truncated length prefix at offset {offset}") from e
    return None if length == _NULL_LENGTH else length


def _take(data: bytes | memoryview, offset: int, length: int) -> bytes:
    if offset + length > len(data):
        raise SerializationError(f"need {length} bytes at offset {offset}, have {len(data) - offset}")
    return bytes(data[offset : offset + length])


def unpack_string(data: bytes | memoryview, offset: int = 0) -> tuple[str, int]:
    length = _unpack_length(data, offset)
    if length is None:
        return "", 4
    try:
        return _take(data, offset + 4, length).decode("utf-16-be"), 4 + length
    except UnicodeDecodeError as e:
        raise SerializationError(f"invalid UTF-16 string at offset {offset}: {e}") from e


def unpack_bytes(data: bytes | memoryview, offset: int = 0) -> tuple[bytes, int]:
    length = _unpack_length(data, offset)
    if length is None:
        return b"", 4
    return _take(data, offset + 4, length), 4 + length


def pack_value(type_name: str, value: Any) -> bytes:
    """Pack a value of a builtin or registered type."""
    fmt = WIRE_FORMATS.get(type_name)
    if fmt is not None:
        if type_name == "QChar" and isinstance(value, str):
            value = ord(value)
        try:
            return struct.pack(fmt, value)
        except struct.error as e:
            raise SerializationError(f"cannot pack {value!r} as {type_name}: {e}") from e

    if type_name in STRING_TYPES:
        if type_name == "QString":
            return pack_string(value)
        if type_name == "QByteArray":
            return pack_bytes(value)
        items = list(value)
        return _pack_length(len(items)) + b"".join(pack_string(item) for item in items)

    codec = registry.lookup(type_name)
    if codec is None:
        raise SerializationError(f"no codec for type {type_name}")
    return codec.pack(value)


def unpack_value(type_name: str, data: bytes | memoryview, offset: int = 0) -> tuple[Any, int]:
    """Unpack a value of a builtin or registered type.

    Returns:
        Tuple of (value, bytes_consumed).
    """
    fmt = WIRE_FORMATS.get(type_name)
    if fmt is not None:
        try:
            (value,) = struct.unpack_from(fmt, data, offset)
        except struct.error as e:
            raise SerializationError(f"truncated {type_name} at offset {offset}") from e
        if type_name == "QChar":
            value = chr(value)
        return value, struct.calcsize(fmt)

    if type_name == "QString":
        return unpack_string(data, offset)
    if type_name == "QByteArray":
        return unpack_bytes(data, offset)
    if type_name == "QStringList":
        count = _unpack_length(data, offset) or 0
        consumed = 4
        items: list[str] = []
        for _ in range(count):
            item, n = unpack_string(data, offset + consumed)
            items.append(item)
            consumed += n
        return items, consumed

    codec = registry.lookup(type_name)
    if codec is None:
        raise SerializationError(f"no codec for type {type_name}")
    try:
        return codec.unpack(data, offset)
    except struct.error as e:
        raise SerializationError(f"truncated {type_name} at offset {offset}") from e


def pack_arguments(type_names: Sequence[str], values: Sequence[Any]) -> bytes:
    """Pack an argument list positionally."""
    if len(type_names) != len(values):
        raise SerializationError(f"expected {len(type_names)} arguments, got {len(values)}")
    return b"".join(pack_value(t, v) for t, v in zip(type_names, values))


def unpack_arguments(
    type_names: Sequence[str], data: bytes | memoryview, offset: int = 0
) -> tuple[list[Any], int]:
    """Unpack an argument list encoded by pack_arguments().

    Returns:
        Tuple of (values, bytes_consumed).
    """
    values: list[Any] = []
    consumed = 0
    for type_name in type_names:
        value, n = unpack_value(type_name, data, offset + consumed)
        values.append(value)
        consumed += n
    return values, consumed
