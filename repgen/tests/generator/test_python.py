"""Tests for the Python backend"""

# pylint: disable=redefined-outer-name,unused-variable,expression-not-assigned,singleton-comparison

import logging
import runpy
import sys
from concurrent.futures import Future

import pytest

from repgen.generator import load
from repgen.generator.python import render, runtime
from repgen.generator.types import (
    Ast,
    AstClass,
    AstEnum,
    AstEnumParam,
    AstFunction,
    AstProperty,
    Mode,
    Pod,
    PodAttribute,
)
from repgen.proto import Invocation, InvocationKind, PendingReply, ReplicaError, deliver_reply


class RecordingChannel:
    def __init__(self):
        self.sent = []
        self.replies = []

    def send(self, invocation):
        self.sent.append(invocation)

    def send_with_reply(self, invocation):
        self.sent.append(invocation)
        future = Future()
        self.replies.append(future)
        return future


def run(ast):
    gbl = globals().copy()
    exec(render(ast, runtime_import="repgen.proto"), gbl)
    return gbl


def describe_render():
    def test_generated_notice(expect, fixture_text):
        code = render(load(fixture_text("counter.json")), runtime_import="repgen.proto")

        expect(code.startswith('"""Generated remote object interfaces. Do not edit."""')) == True
        expect("from repgen.proto.runtime import" in code) == True
        expect("sys.path" in code) == False

    def test_relative_runtime_import(expect, fixture_text):
        code = render(load(fixture_text("counter.json")))

        expect("from repgen_runtime.runtime import" in code) == True
        expect("sys.path.insert(0, _runtime_path)" in code) == True

    def test_preprocessor_directives_are_kept(expect, fixture_text):
        code = render(load(fixture_text("thermostat.json")), runtime_import="repgen.proto")

        expect("#include <QtCore/qnamespace.h>" in code) == True

    def test_replica_mode(expect, fixture_text):
        code = render(load(fixture_text("counter.json")), mode=Mode.REPLICA, runtime_import="repgen.proto")

        expect("class CounterReplica(ReplicaBase)" in code) == True
        expect("class CounterSource(" in code) == False
        expect("class CounterSourceAPI(" in code) == False

    def test_source_mode(expect, fixture_text):
        code = render(load(fixture_text("counter.json")), mode=Mode.SOURCE, runtime_import="repgen.proto")

        expect("class CounterReplica(" in code) == False
        expect("class CounterSource(SourceBase)" in code) == True
        expect("class CounterSimpleSource(CounterSource)" in code) == True
        expect("class CounterSourceAPI(SourceApiMap)" in code) == True

    def test_keyword_names_are_mangled(expect):
        ast = Ast(classes=[AstClass(name="K", properties=[AstProperty("int", "lambda")])])
        code = render(ast, runtime_import="repgen.proto")

        expect("def lambda_(self) -> int:" in code) == True

    def test_generated_code_runs(expect, gen_code):
        gen = gen_code("thermostat.json")

        for name in ["ThermostatReplica", "ThermostatSource", "ThermostatSimpleSource", "ThermostatSourceAPI"]:
            expect(name in gen) == True


def describe_runtime():
    def test_runtime_files(expect):
        files = runtime()

        expect(sorted(files)) == sorted(
            ["__init__.py", "types.py", "registry.py", "serialization.py", "runtime.py", "meta.py", "descriptor.py"]
        )
        expect("class SourceApiMap" in files["descriptor.py"]) == True

    def test_generated_code_runs_beside_runtime(expect, tmp_path, fixture_text):
        runtime_dir = tmp_path / "repgen_runtime"
        runtime_dir.mkdir()
        for filename, content in runtime().items():
            (runtime_dir / filename).write_text(content)
        module = tmp_path / "counter.py"
        module.write_text(render(load(fixture_text("counter.json"))))

        gen = runpy.run_path(str(module))

        expect(gen["CounterReplica"]._method_table_) == (1, 1)
        expect(str(tmp_path) in sys.path) == False


def describe_enums():
    def test_members_and_width(expect, gen_code):
        gen = gen_code("thermostat.json")
        Status = gen["Status"]

        expect([m.name for m in Status]) == ["Ok", "Warning", "Failed"]
        expect(Status.Failed.pack()) == b"\x02"
        for enum in [Status, gen["Thermostat_Mode"]]:
            for member in enum:
                expect(enum.unpack(member.pack())) == (member, 1)

    def test_class_enum_is_qualified(expect, gen_code):
        gen = gen_code("thermostat.json")
        Mode = gen["Thermostat_Mode"]

        expect(gen["ThermostatReplica"].Mode) == Mode
        expect(gen["ThermostatSource"].Mode) == Mode
        expect(Mode.Cool.pack()) == b"\x02"

    def test_invalid_value_falls_back(expect, gen_code, caplog):
        Status = gen_code("thermostat.json")["Status"]

        with caplog.at_level(logging.WARNING):
            value, consumed = Status.unpack(b"\x09")

        expect(value) == Status.Ok
        expect(consumed) == 1
        expect(caplog.text).includes("Received an invalid enum value for type Status, value = 9")

    def test_checked_conversion(expect, gen_code):
        Status = gen_code("thermostat.json")["Status"]

        expect(Status.convert(2)) == (Status.Failed, True)
        expect(Status.convert(-1)) == (Status.Ok, False)


def describe_pods():
    def test_simple_pod(expect, gen_code):
        Point = gen_code("thermostat.json")["Point"]

        point = Point(x=1, y=-2)
        packed = point.pack()
        expect(packed) == bytes.fromhex("00000001fffffffe")

        recovered, consumed = Point.unpack(packed)
        expect(recovered) == point
        expect(consumed) == 8

    def test_defaults(expect, gen_code):
        gen = gen_code("thermostat.json")
        reading = gen["Reading"]()

        expect(reading.label) == ""
        expect(reading.position) == gen["Point"](0, 0)
        expect(reading.status) == gen["Status"].Ok
        expect(reading.celsius) == 0.0
        expect(reading.stale) == False

    def test_nested_pod(expect, gen_code):
        gen = gen_code("thermostat.json")
        Reading, Point, Status = gen["Reading"], gen["Point"], gen["Status"]

        reading = Reading(label="a", position=Point(1, 2), status=Status.Failed, celsius=1.5, stale=True)
        packed = reading.pack()
        expect(packed) == bytes.fromhex("00000002" "0061" "0000000100000002" "02" "3ff8000000000000" "01")

        recovered, consumed = Reading.unpack(b"\xaa" + packed, 1)
        expect(recovered) == reading
        expect(consumed) == len(packed)

    def test_used_enum_and_string_list(expect, gen_code):
        Panel = gen_code("thermostat.json")["Panel"]

        panel = Panel(orientation=2, labels=["x", "yz"])
        packed = panel.pack()
        expect(packed) == bytes.fromhex("00000002" "00000002" "000000020078" "000000040079007a")

        recovered, _ = Panel.unpack(packed)
        expect(recovered) == panel

    def test_default_lists_are_not_shared(expect, gen_code):
        Panel = gen_code("thermostat.json")["Panel"]

        first, second = Panel(), Panel()
        first.labels.append("x")
        expect(second.labels) == []

    def test_class_enum_attribute(expect):
        mode = AstEnum("Mode", [AstEnumParam("Off", 0), AstEnumParam("On", 1)])
        gen = run(
            Ast(
                classes=[AstClass("Lamp", enums=[mode])],
                pods=[Pod("Setting", [PodAttribute("Lamp::Mode", "mode"), PodAttribute("int", "level")])],
            )
        )
        Setting, Mode = gen["Setting"], gen["Lamp_Mode"]

        expect(Setting().mode) == Mode.Off
        setting = Setting(mode=Mode.On, level=3)
        packed = setting.pack()
        expect(packed) == bytes.fromhex("01" "00000003")
        expect(Setting.unpack(packed)) == (setting, 5)


def describe_default_values():
    def test_numeric_suffixes_are_dropped(expect):
        gen = run(
            Ast(
                classes=[
                    AstClass(
                        "Limits",
                        properties=[
                            AstProperty("uint", "low", default_value="5u"),
                            AstProperty("qint64", "high", default_value="10UL"),
                            AstProperty("int", "mask", default_value="0x1Fll"),
                            AstProperty("double", "ratio", default_value="1.5f"),
                        ],
                    )
                ]
            )
        )
        limits = gen["LimitsReplica"]()

        expect(limits.low()) == 5
        expect(limits.high()) == 10
        expect(limits.mask()) == 31
        expect(limits.ratio()) == 1.5

    def test_constructor_forms(expect):
        gen = run(
            Ast(
                classes=[
                    AstClass(
                        "Label",
                        properties=[
                            AstProperty("QString", "text", default_value='QString("x")'),
                            AstProperty("QString", "blank", default_value="QString()"),
                            AstProperty("QByteArray", "raw", default_value='QByteArray("ab")'),
                            AstProperty("int", "size", default_value="int(7)"),
                            AstProperty("Point", "origin", default_value="Point(1, 2)"),
                        ],
                    )
                ],
                pods=[Pod("Point", [PodAttribute("int", "x"), PodAttribute("int", "y")])],
            )
        )
        label = gen["LabelReplica"]()

        expect(label.text()) == "x"
        expect(label.blank()) == ""
        expect(label.raw()) == b"ab"
        expect(label.size()) == 7
        expect(label.origin()) == gen["Point"](1, 2)

    def test_untranslatable_default_falls_back(expect, caplog):
        ast = Ast(
            classes=[
                AstClass(
                    "Gauge",
                    properties=[
                        AstProperty("int", "width", default_value="qMax(1, 2)"),
                        AstProperty("QString", "unit", default_value="tr(\"cm\")"),
                    ],
                )
            ]
        )

        with caplog.at_level(logging.WARNING):
            gauge = run(ast)["GaugeReplica"]()

        expect(gauge.width()) == 0
        expect(gauge.unit()) == ""
        expect(caplog.text).includes("Cannot translate default qMax(1, 2) of int, using 0")


def describe_replica():
    def test_tables(expect, gen_code):
        Replica = gen_code("thermostat.json")["ThermostatReplica"]

        expect(Replica._property_table_) == (4, 1, 2, 3, 4)
        expect(Replica._signal_table_) == (4, 1, 2, 3, 4)
        expect(Replica._method_table_) == (3, 1, 2, 3)

    def test_defaults(expect, gen_code):
        gen = gen_code("thermostat.json")
        replica = gen["ThermostatReplica"]()

        expect(replica.serial()) == "T-1"
        expect(replica.target()) == 20.5
        expect(replica.mode()) == gen["Thermostat_Mode"].Heat
        expect(replica.current()) == gen["Reading"]()

    def test_read_only_properties_have_no_setter(expect, gen_code):
        Replica = gen_code("thermostat.json")["ThermostatReplica"]

        expect(hasattr(Replica, "setTarget")) == True
        expect(hasattr(Replica, "setCurrent")) == False
        expect(hasattr(Replica, "setSerial")) == False

    def test_property_write_is_sent(expect, gen_code):
        channel = RecordingChannel()
        replica = gen_code("thermostat.json")["ThermostatReplica"](channel)

        replica.setTarget(22.0)

        expect(channel.sent) == [Invocation(InvocationKind.WRITE_PROPERTY, 1, (22.0,), 0)]
        # The cache only changes when the source reports back
        expect(replica.target()) == 20.5

    def test_slot_calls_are_sent_in_order(expect, gen_code):
        gen = gen_code("thermostat.json")
        channel = RecordingChannel()
        replica = gen["ThermostatReplica"](channel, "living-room")

        replica.reset()
        replica.switchTo(gen["Thermostat_Mode"].Cool)

        expect([(i.kind, i.index, i.args) for i in channel.sent]) == [
            (InvocationKind.INVOKE_METHOD, 0, ()),
            (InvocationKind.INVOKE_METHOD, 2, (gen["Thermostat_Mode"].Cool,)),
        ]
        expect([i.sequence for i in channel.sent]) == [0, 1]

    def test_slot_with_result(expect, gen_code):
        channel = RecordingChannel()
        replica = gen_code("thermostat.json")["ThermostatReplica"](channel)

        reply = replica.calibrate(0.5)

        expect(isinstance(reply, PendingReply)) == True
        expect(reply.return_type) == "bool"
        expect(reply.done()) == False
        expect(channel.sent[0].index) == 1
        expect(channel.sent[0].args) == (0.5,)

        deliver_reply(channel.replies[0], True)
        expect(reply.result(timeout=1)) == True

    def test_members_do_not_shadow_helpers(expect):
        ast = Ast(
            classes=[
                AstClass(
                    "Valve",
                    properties=[AstProperty("int", "value")],
                    slots=[AstFunction("send"), AstFunction("initialize")],
                )
            ]
        )
        channel = RecordingChannel()
        valve = run(ast)["ValveReplica"](channel)

        valve.setValue(3)
        valve.send()
        valve.initialize()

        expect(channel.sent) == [
            Invocation(InvocationKind.WRITE_PROPERTY, 0, (3,), 0),
            Invocation(InvocationKind.INVOKE_METHOD, 0, (), 1),
            Invocation(InvocationKind.INVOKE_METHOD, 1, (), 2),
        ]

    def test_update_from_source(expect, gen_code):
        replica = gen_code("thermostat.json")["ThermostatReplica"]()

        expect(replica.set_property(1, 19)) == True
        expect(replica.target()) == 19.0
        expect(isinstance(replica.target(), float)) == True

    def test_type_mismatch_warns(expect, gen_code, caplog):
        replica = gen_code("thermostat.json")["ThermostatReplica"]()
        replica.set_property(2, 7)

        with caplog.at_level(logging.WARNING):
            value = replica.mode()

        expect(value) == 7
        expect(caplog.text).includes("cannot convert the property mode")

    def test_without_node(expect, gen_code):
        replica = gen_code("counter.json")["CounterReplica"]()

        with pytest.raises(ReplicaError):
            replica.increment()

    def test_empty_class(expect, gen_code):
        replica = gen_code("empty.json")["EmptyReplica"]()

        expect(replica._property_table_) == (0,)
        expect(replica._signal_table_) == (0,)
        expect(replica._method_table_) == (0,)
        expect(replica.set_property(0, 1)) == False


def describe_source():
    def test_source_is_abstract(expect, gen_code):
        Source = gen_code("counter.json")["CounterSource"]

        with pytest.raises(TypeError):
            Source()
        expect(sorted(Source.__abstractmethods__)) == ["increment", "setValue", "value"]

    def test_simple_source_leaves_slots_abstract(expect, gen_code):
        SimpleSource = gen_code("counter.json")["CounterSimpleSource"]

        expect(sorted(SimpleSource.__abstractmethods__)) == ["increment"]

    def test_simple_source_emits_on_change(expect, gen_code):
        SimpleSource = gen_code("counter.json")["CounterSimpleSource"]

        class Counter(SimpleSource):
            def increment(self):
                self.setValue(self.value() + 1)

        counter = Counter()
        changes = []
        counter.valueChanged.connect(changes.append)

        expect(counter.value()) == 0
        counter.setValue(0)
        expect(changes) == []
        counter.setValue(5)
        counter.increment()
        expect(changes) == [5, 6]
        expect(counter.value()) == 6

    def test_signals_are_per_instance(expect, gen_code):
        SimpleSource = gen_code("counter.json")["CounterSimpleSource"]

        class Counter(SimpleSource):
            def increment(self):
                pass

        first, second = Counter(), Counter()
        changes = []
        first.valueChanged.connect(changes.append)
        second.setValue(3)

        expect(changes) == []

    def test_simple_source_defaults(expect, gen_code):
        gen = gen_code("thermostat.json")

        class Thermostat(gen["ThermostatSimpleSource"]):
            def reset(self):
                pass

            def calibrate(self, offset):
                return True

            def switchTo(self, mode):
                self.setMode(mode)

        thermostat = Thermostat()
        expect(thermostat.serial()) == "T-1"
        expect(thermostat.mode()) == gen["Thermostat_Mode"].Heat
        expect(thermostat.current()) == gen["Reading"]()

        changes = []
        thermostat.modeChanged.connect(changes.append)
        thermostat.switchTo(gen["Thermostat_Mode"].Off)
        expect(changes) == [gen["Thermostat_Mode"].Off]
