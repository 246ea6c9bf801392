"""Tests for enum wire planning"""

# pylint: disable=redefined-outer-name,unused-variable,expression-not-assigned,singleton-comparison

from repgen.generator import WireType, plan_enum
from repgen.generator.enums import declared_max, declared_signedness, wire_type
from repgen.generator.types import AstEnum, AstEnumParam


def make_enum(*values, is_signed=None, maximum=None):
    return AstEnum(
        name="E",
        params=[AstEnumParam(name=f"V{i}", value=v) for i, v in enumerate(values)],
        is_signed=is_signed,
        max=maximum,
    )


def describe_wire_type():
    def test_unsigned_widths(expect):
        expect(wire_type(False, 200)) == WireType.UINT8
        expect(wire_type(False, 1000)) == WireType.UINT16
        expect(wire_type(False, 70000)) == WireType.UINT32

    def test_signed_widths(expect):
        expect(wire_type(True, 100)) == WireType.INT8
        expect(wire_type(True, 1000)) == WireType.INT16
        expect(wire_type(True, 40000)) == WireType.INT32

    def test_thresholds_are_strict(expect):
        expect(wire_type(False, 0xFE)) == WireType.UINT8
        expect(wire_type(False, 0xFF)) == WireType.UINT16
        expect(wire_type(False, 0xFFFF)) == WireType.UINT32
        expect(wire_type(True, 0x7E)) == WireType.INT8
        expect(wire_type(True, 0x7F)) == WireType.INT16
        expect(wire_type(True, 0x7FFF)) == WireType.INT32

    def test_wire_type_properties(expect):
        expect(WireType.UINT16.size) == 2
        expect(WireType.INT8.signed) == True
        expect(WireType.UINT32.signed) == False
        expect(WireType.INT32.struct_format) == ">i"


def describe_plan_enum():
    def test_derives_signedness_and_max(expect):
        en = make_enum(0, -3, 5)

        expect(declared_signedness(en)) == True
        expect(declared_max(en)) == 5
        expect(plan_enum(en).wire_type) == WireType.INT8

    def test_declared_values_win(expect):
        en = make_enum(0, 1, is_signed=False, maximum=1000)

        expect(plan_enum(en).wire_type) == WireType.UINT16

    def test_convert_matches_enumerator(expect):
        plan = plan_enum(make_enum(3, 7))

        expect(plan.convert(7)) == ("V1", True)

    def test_convert_falls_back_to_first(expect):
        plan = plan_enum(make_enum(3, 7))

        expect(plan.fallback) == "V0"
        expect(plan.convert(9)) == ("V0", False)
