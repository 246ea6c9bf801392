"""Wire width selection and conversion planning for enums."""

from dataclasses import dataclass
from enum import StrEnum

from .types import AstEnum


class WireType(StrEnum):
    """Integral types an enum may travel as."""

    INT8 = "qint8"
    INT16 = "qint16"
    INT32 = "qint32"
    UINT8 = "quint8"
    UINT16 = "quint16"
    UINT32 = "quint32"

    @property
    def bits(self) -> int:
        return _BITS[self]

    @property
    def size(self) -> int:
        return self.bits // 8

    @property
    def signed(self) -> bool:
        return self in (WireType.INT8, WireType.INT16, WireType.INT32)

    @property
    def struct_format(self) -> str:
        """Big-endian `struct` format, matching QDataStream byte order."""
        return ">" + _FORMAT_CHARS[self]


_BITS = {
    WireType.INT8: 8,
    WireType.UINT8: 8,
    WireType.INT16: 16,
    WireType.UINT16: 16,
    WireType.INT32: 32,
    WireType.UINT32: 32,
}

_FORMAT_CHARS = {
    WireType.INT8: "b",
    WireType.UINT8: "B",
    WireType.INT16: "h",
    WireType.UINT16: "H",
    WireType.INT32: "i",
    WireType.UINT32: "I",
}

# Enums referenced but defined elsewhere always travel as qint32
USED_ENUM_WIRE_TYPE = WireType.INT32


@dataclass(frozen=True)
class EnumPlan:
    """Everything the emitters need to serialize one enum."""

    name: str
    is_signed: bool
    max: int
    wire_type: WireType
    values: tuple[tuple[str, int], ...]

    @property
    def fallback(self) -> str:
        """The enumerator substituted for invalid wire data."""
        return self.values[0][0]

    def convert(self, raw: int) -> tuple[str, bool]:
        """Map a raw wire value to an enumerator name.

        Returns the fallback enumerator and False if nothing matches.
        """
        for name, value in self.values:
            if value == raw:
                return name, True
        return self.fallback, False


def declared_signedness(en: AstEnum) -> bool:
    if en.is_signed is not None:
        return en.is_signed
    return any(p.value < 0 for p in en.params)


def declared_max(en: AstEnum) -> int:
    if en.max is not None:
        return en.max
    return max(abs(p.value) for p in en.params)


def wire_type(is_signed: bool, max_value: int) -> WireType:
    """Pick the narrowest integral type for an enum's declared maximum."""
    if is_signed:
        if max_value < 0x7F:
            return WireType.INT8
        if max_value < 0x7FFF:
            return WireType.INT16
        return WireType.INT32
    if max_value < 0xFF:
        return WireType.UINT8
    if max_value < 0xFFFF:
        return WireType.UINT16
    return WireType.UINT32


def plan_enum(en: AstEnum) -> EnumPlan:
    """Plan the wire representation of an enum."""
    assert en.params, f"enum {en.name} has no enumerators"
    is_signed = declared_signedness(en)
    max_value = declared_max(en)
    return EnumPlan(
        name=en.name,
        is_signed=is_signed,
        max=max_value,
        wire_type=wire_type(is_signed, max_value),
        values=tuple((p.name, p.value) for p in en.params),
    )
