"""Qt C++ header generator for remote object interfaces."""

import logging
import os
import re

from jinja2 import Environment, PackageLoader

from .classify import collect_metatypes
from .enums import USED_ENUM_WIRE_TYPE, EnumPlan, plan_enum
from .ordinals import OrdinalTables, assign_ordinals
from .types import Ast, AstClass, AstFunction, Mode, Pod, cap, change_signal_name, setter_name

logger = logging.getLogger(__name__)

env = Environment(
    loader=PackageLoader("repgen.generator", "templates"),
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=True,
    line_comment_prefix="%%",
    line_statement_prefix="%",
)

template = env.get_template("cppqt.h.j2")

MODE_INCLUDES = {
    Mode.REPLICA: ["qremoteobjectpendingcall.h", "qremoteobjectreplica.h"],
    Mode.SOURCE: ["qremoteobjectsource.h"],
    Mode.MERGED: ["qremoteobjectpendingcall.h", "qremoteobjectreplica.h", "qremoteobjectsource.h"],
}


def guard_name(file_name: str) -> str:
    """Inclusion guard macro for an output file: `counter.rep.h` -> `COUNTER_REP_H`."""
    base = os.path.basename(file_name).upper().replace(".", "_")
    return re.sub(r"[^A-Z0-9_]", "_", base)


def _qualified(cls: AstClass, class_name: str, type_name: str) -> str:
    """Prefix class-scoped enums with the class they are declared in."""
    if cls.has_enum(type_name):
        return f"{class_name}::{type_name}"
    return type_name


def _registration_lines(ast: Ast) -> list[str]:
    lines: list[str] = []
    for name in collect_metatypes(ast):
        lines.append(f"qRegisterMetaType<{name}>();")
        lines.append(f"qRegisterMetaTypeStreamOperators<{name}>();")
    for name in ast.enum_uses:
        lines.append(f'qRegisterMetaTypeStreamOperators<{name}>("{name}");')
    return lines


def _enum_line(plan: EnumPlan) -> str:
    values = "".join(f"{name} = {value}," for name, value in plan.values)
    return f"enum {plan.name}{{{values}}};"


def _pod_arguments(pod: Pod) -> str:
    return ", ".join(f"{a.type} {a.name}" for a in pod.attributes)


def _pod_initializers(pod: Pod) -> str:
    return ", ".join(f"_{a.name}({a.name})" for a in pod.attributes)


def _pod_default_initializers(pod: Pod) -> str:
    return ", ".join(f"_{a.name}()" for a in pod.attributes)


def _pod_equality(pod: Pod) -> str:
    if not pod.attributes:
        return "true"
    return " && ".join(f"left.{a.name}() == right.{a.name}()" for a in pod.attributes)


def _args(function: AstFunction) -> str:
    return function.params_as_string()


def _normalized(function: AstFunction) -> str:
    return function.params_as_string(normalized=True)


def render(ast: Ast, mode: Mode = Mode.MERGED, file_name: str | None = None) -> str:
    """Render an interface definition to a Qt C++ header.

    With a `file_name` the header is wrapped in an inclusion guard derived from
    it, otherwise it starts with `#pragma once`.
    """
    logger.debug("Rendering %d classes as a Qt header (%s)", len(ast.classes), mode)

    tables = {cls.name: assign_ordinals(cls) for cls in ast.classes}
    plans = {en.name: plan_enum(en) for en in ast.enums}
    for cls in ast.classes:
        for en in cls.enums:
            plans[f"{cls.name}::{en.name}"] = plan_enum(en)

    def class_plans(cls: AstClass) -> list[EnumPlan]:
        return [plans[f"{cls.name}::{en.name}"] for en in cls.enums]

    def ordinals(cls: AstClass) -> OrdinalTables:
        return tables[cls.name]

    return template.render(
        ast=ast,
        mode=mode,
        Mode=Mode,
        guard=guard_name(file_name) if file_name else None,
        includes=MODE_INCLUDES[mode],
        global_plans=[plans[en.name] for en in ast.enums],
        class_plans=class_plans,
        ordinals=ordinals,
        registrations=_registration_lines(ast),
        used_enum_type=USED_ENUM_WIRE_TYPE.value,
        qualified=_qualified,
        enum_line=_enum_line,
        pod_arguments=_pod_arguments,
        pod_initializers=_pod_initializers,
        pod_default_initializers=_pod_default_initializers,
        pod_equality=_pod_equality,
        args=_args,
        normalized=_normalized,
        cap=cap,
        setter_name=setter_name,
        change_signal_name=change_signal_name,
    )
