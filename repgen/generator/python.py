"""Python code generator for remote object interfaces."""

import ast as pyast
import keyword
import logging
import re
from collections.abc import Sequence
from importlib import resources

from jinja2 import Environment, PackageLoader

from .classify import collect_metatypes, is_builtin
from .enums import USED_ENUM_WIRE_TYPE, EnumPlan, plan_enum
from .ordinals import OrdinalTables, assign_ordinals
from .types import (
    Ast,
    AstClass,
    AstFunction,
    AstProperty,
    Mode,
    Pod,
    PodAttribute,
    change_signal_name,
    setter_name,
)

logger = logging.getLogger(__name__)

RUNTIME_IMPORTS = [
    ("descriptor", "SourceApiMap"),
    ("registry", "register_type"),
    ("runtime", "Channel, PendingReply, ReplicaBase, Signal, SourceBase"),
    ("serialization", "Record, RemoteEnum, pack_value, unpack_value"),
    ("types", "InvocationKind"),
]

RUNTIME_FILES = [
    "__init__.py",
    "types.py",
    "registry.py",
    "serialization.py",
    "runtime.py",
    "meta.py",
    "descriptor.py",
]

env = Environment(
    loader=PackageLoader("repgen.generator", "templates"),
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=True,
    line_comment_prefix="%%",
    line_statement_prefix="%",
)

template = env.get_template("python.py.j2")

# Map builtin types to Python type annotations; other builtins become Any
PRIMITIVE_TYPE_MAP = {
    "bool": "bool",
    "char": "int",
    "uchar": "int",
    "short": "int",
    "ushort": "int",
    "int": "int",
    "uint": "int",
    "long": "int",
    "ulong": "int",
    "qint8": "int",
    "quint8": "int",
    "qint16": "int",
    "quint16": "int",
    "qint32": "int",
    "quint32": "int",
    "qint64": "int",
    "quint64": "int",
    "qlonglong": "int",
    "qulonglong": "int",
    "float": "float",
    "double": "float",
    "qreal": "float",
    "QChar": "str",
    "QString": "str",
    "QByteArray": "bytes",
    "QStringList": "list[str]",
}

# Map builtin types to struct format characters (big-endian, like QDataStream)
FORMAT_CHARS = {
    "bool": "?",
    "char": "b",
    "uchar": "B",
    "qint8": "b",
    "quint8": "B",
    "short": "h",
    "ushort": "H",
    "qint16": "h",
    "quint16": "H",
    "int": "i",
    "uint": "I",
    "qint32": "i",
    "quint32": "I",
    "long": "i",
    "ulong": "I",
    "qint64": "q",
    "quint64": "Q",
    "qlonglong": "q",
    "qulonglong": "Q",
    "float": "f",
    "double": "d",
    "qreal": "d",
}

# Size in bytes for each format character
TYPE_SIZES = {"?": 1, "b": 1, "B": 1, "h": 2, "H": 2, "i": 4, "I": 4, "q": 8, "Q": 8, "f": 4, "d": 8}

# Default literals for annotations, used when the IDL gives no default
DEFAULT_LITERALS = {
    "bool": "False",
    "int": "0",
    "float": "0.0",
    "str": '""',
    "bytes": 'b""',
    "list[str]": "[]",
    "Any": "None",
}

# Runtime types checked by Replica getters
CHECK_TYPES = {
    "bool": "bool",
    "int": "int",
    "float": "float",
    "str": "str",
    "bytes": "bytes",
    "list[str]": "list",
}

_LITERALS = {"true": "True", "false": "False", "nullptr": "None", "NULL": "None"}

_SYMBOL_RE = re.compile(r"[A-Za-z_]\w*(\.[A-Za-z_]\w*)*")

# C++ numeric literals with their suffixes, and `Type(args)` constructor calls
_INT_RE = re.compile(r"([-+]?(?:0[xX][0-9a-fA-F]+|\d+))(?:[uU](?:ll|LL|[lL])?|(?:ll|LL|[lL])[uU]?)?")
_OCTAL_RE = re.compile(r"[-+]?0\d+")
_FLOAT_RE = re.compile(r"([-+]?(?:\d+\.\d*|\.\d+)(?:[eE][-+]?\d+)?|[-+]?\d+[eE][-+]?\d+)[fF]?")
_CALL_RE = re.compile(r"([A-Za-z_][\w:]*)\((.*)\)", re.S)


def py_name(name: str) -> str:
    """Make an IDL identifier usable as a Python name."""
    return f"{name}_" if keyword.iskeyword(name) else name


def _symbol(type_name: str) -> str:
    return type_name.replace("::", ".")


def _is_symbol(type_name: str) -> bool:
    return _SYMBOL_RE.fullmatch(_symbol(type_name)) is not None


def _ident(type_name: str) -> str:
    return re.sub(r"\W", "_", type_name)


def _quoted(values: list[str] | tuple[str, ...]) -> str:
    return ", ".join(f'"{v}"' for v in values)


class _Unit:
    """Type resolution for one generation unit."""

    def __init__(self, ast: Ast) -> None:
        self.ast = ast
        self.global_enums = {en.name: plan_enum(en) for en in ast.enums}
        self.class_enums = {
            (cls.name, en.name): plan_enum(en) for cls in ast.classes for en in cls.enums
        }
        self.pod_defs = {pod.name: pod for pod in ast.pods}
        self.pods = set(self.pod_defs)
        self.used_enums = set(ast.enum_uses)
        self.tables = {cls.name: assign_ordinals(cls) for cls in ast.classes}

    def qualify(self, cls: AstClass | None, type_name: str) -> str:
        """Python name of a type as seen from inside `cls`."""
        scope, _, name = type_name.rpartition("::")
        if (scope, name) in self.class_enums:
            return f"{scope}_{name}"
        if cls is not None and cls.has_enum(type_name):
            return f"{cls.name}_{type_name}"
        return type_name

    def enum_plan(self, type_name: str, cls: AstClass | None = None) -> EnumPlan | None:
        scope, _, name = type_name.rpartition("::")
        if (scope, name) in self.class_enums:
            return self.class_enums[(scope, name)]
        if cls is not None and (cls.name, type_name) in self.class_enums:
            return self.class_enums[(cls.name, type_name)]
        return self.global_enums.get(type_name)

    def annotation(self, type_name: str, cls: AstClass | None = None) -> str:
        if is_builtin(type_name):
            return PRIMITIVE_TYPE_MAP.get(type_name, "Any")
        if type_name in self.used_enums:
            # Enums defined elsewhere travel as plain integers
            return "int"
        if not _is_symbol(type_name):
            return "Any"
        return _symbol(self.qualify(cls, type_name))

    def check_type(self, type_name: str, cls: AstClass | None = None) -> str:
        """Expression naming the type a Replica getter converts its cached value to."""
        annotation = self.annotation(type_name, cls)
        if is_builtin(type_name) or annotation == "Any":
            return CHECK_TYPES.get(annotation, "None")
        return annotation

    def default(self, type_name: str, expr: str, cls: AstClass | None = None) -> str:
        """Translate an IDL default-value expression to Python.

        Expressions that have no Python form fall back to the type's default
        with a warning.
        """
        expr = expr.strip()
        annotation = self.annotation(type_name, cls)

        plan = self.enum_plan(type_name, cls)
        if plan is not None:
            enumerator = expr.rsplit("::", 1)[-1]
            if not expr:
                return f"{annotation}.{py_name(plan.fallback)}"
            if any(name == enumerator for name, _ in plan.values):
                return f"{annotation}.{py_name(enumerator)}"
            value = self._literal("int", expr)
            if value is not None:
                return f"{annotation}({value})"
            fallback = f"{annotation}.{py_name(plan.fallback)}"
        elif type_name in self.used_enums:
            if not expr:
                return "0"
            value = self._literal("int", expr)
            if value is not None:
                return value
            fallback = "0"
        else:
            if not expr:
                return self._empty(annotation)
            value = self._literal(type_name, expr, cls)
            if value is not None:
                return value
            fallback = self._empty(annotation)

        logger.warning("Cannot translate default %s of %s, using %s", expr, type_name, fallback)
        return fallback

    @staticmethod
    def _empty(annotation: str) -> str:
        return DEFAULT_LITERALS.get(annotation, f"{annotation}()")

    def _literal(self, type_name: str, expr: str, cls: AstClass | None = None) -> str | None:
        """Python literal for a C++ default expression, or None if there is none."""
        expr = expr.strip()
        annotation = self.annotation(type_name, cls)
        if expr in _LITERALS:
            return _LITERALS[expr]

        numeric = annotation in ("int", "float", "bool", "Any")
        match = _INT_RE.fullmatch(expr)
        if match and numeric:
            digits = match.group(1)
            if _OCTAL_RE.fullmatch(digits):
                try:
                    return str(int(digits, 8))
                except ValueError:
                    return None
            return digits
        match = _FLOAT_RE.fullmatch(expr)
        if match and annotation in ("float", "Any"):
            return match.group(1)

        if len(expr) >= 2 and expr[0] == expr[-1] == '"':
            text = "b" + expr if annotation == "bytes" else expr
            try:
                pyast.literal_eval(text)
            except (ValueError, SyntaxError):
                return None
            return text

        match = _CALL_RE.fullmatch(expr)
        if match is None or match.group(1) != type_name.rsplit("::", 1)[-1]:
            return None
        inner = match.group(2).strip()
        if not inner:
            return self._empty(annotation)
        if is_builtin(type_name):
            return self._literal(type_name, inner)
        pod = self.pod_defs.get(type_name)
        if pod is None:
            return None
        args = [a for a in (s.strip() for s in inner.split(",")) if a]
        if len(args) > len(pod.attributes):
            return None
        values = []
        for attr, arg in zip(pod.attributes, args):
            value = self._literal(attr.type, arg)
            if value is None:
                return None
            values.append(value)
        return f"{annotation}({', '.join(values)})"

    def field_default(self, attr: PodAttribute) -> str:
        """Dataclass default for a record attribute."""
        annotation = self.annotation(attr.type)
        if self.enum_plan(attr.type) is not None or annotation in DEFAULT_LITERALS:
            value = self.default(attr.type, "")
            if value == "[]":
                return " = field(default_factory=list)"
            return f" = {value}"
        # Records may reference records declared further down
        return f" = field(default_factory=lambda: {self.default(attr.type, '')})"

    def registrations(self) -> list[tuple[str, str, str | None, str | None]]:
        """(name, symbol, packer, unpacker) for every type to register, once each."""
        regs: dict[str, tuple[str, str, str | None, str | None]] = {}
        for name in self.global_enums:
            regs[name] = (name, name, None, None)
        for cls in self.ast.classes:
            for en in cls.enums:
                qualified = self.qualify(cls, en.name)
                regs[qualified] = (qualified, qualified, None, None)
        for name in collect_metatypes(self.ast, self.qualify):
            if name in regs:
                continue
            if not _is_symbol(name):
                logger.debug("Not registering %s, it has no Python name", name)
                continue
            regs[name] = (name, _symbol(name), None, None)
        for name in self.ast.enum_uses:
            ident = _ident(name)
            regs[name] = (name, "int", f"_pack_{ident}", f"_unpack_{ident}")
        return list(regs.values())

    # Record serialization

    def _is_numeric(self, attr: PodAttribute) -> bool:
        return attr.type in FORMAT_CHARS

    def _pack_single(self, attr: PodAttribute) -> str:
        name = py_name(attr.name)
        if self.enum_plan(attr.type) is not None or attr.type in self.pods:
            return f"_buf.extend(self.{name}.pack())"
        if attr.type in self.used_enums:
            return f"_buf.extend(_pack_{_ident(attr.type)}(self.{name}))"
        return f'_buf.extend(pack_value("{attr.type}", self.{name}))'

    def _unpack_single(self, attr: PodAttribute) -> str:
        local = f"v_{attr.name}"
        if self.enum_plan(attr.type) is not None or attr.type in self.pods:
            return f"{local}, _n = {self.annotation(attr.type)}.unpack(_data, _o)\n_o += _n"
        if attr.type in self.used_enums:
            return f"{local}, _n = _unpack_{_ident(attr.type)}(_data, _o)\n_o += _n"
        return f'{local}, _n = unpack_value("{attr.type}", _data, _o)\n_o += _n'

    def _batch_attributes(self, attrs: list[PodAttribute]) -> list[tuple[str, list[PodAttribute]]]:
        """Group attributes into batches for pack/unpack optimization.

        Returns list of (batch_type, attributes) where batch_type is "primitive" or "single".
        """
        batches: list[tuple[str, list[PodAttribute]]] = []
        current: list[PodAttribute] = []

        for attr in attrs:
            if self._is_numeric(attr):
                current.append(attr)
            else:
                if current:
                    batches.append(("primitive", current))
                    current = []
                batches.append(("single", [attr]))

        if current:
            batches.append(("primitive", current))

        return batches

    def pack_body(self, pod: Pod) -> str:
        if not pod.attributes:
            return 'return b""'
        lines = ["_buf = bytearray()"]
        for kind, attrs in self._batch_attributes(pod.attributes):
            if kind == "primitive":
                fmt = ">" + "".join(FORMAT_CHARS[a.type] for a in attrs)
                args = ", ".join(f"self.{py_name(a.name)}" for a in attrs)
                lines.append(f'_buf.extend(_struct.pack("{fmt}", {args}))')
            else:
                lines.append(self._pack_single(attrs[0]))
        lines.append("return bytes(_buf)")
        return "\n".join(lines)

    def unpack_body(self, pod: Pod) -> str:
        if not pod.attributes:
            return "return cls(), 0"
        lines = ["_o = offset"]
        for kind, attrs in self._batch_attributes(pod.attributes):
            if kind == "primitive":
                fmt = "".join(FORMAT_CHARS[a.type] for a in attrs)
                size = sum(TYPE_SIZES[c] for c in fmt)
                names = ", ".join(f"v_{a.name}" for a in attrs)
                # Trailing comma for single values so tuple unpacking works: val, = (1,)
                if len(attrs) == 1:
                    names += ","
                lines.append(f'{names} = _struct.unpack_from(">{fmt}", _data, _o)')
                lines.append(f"_o += {size}")
            else:
                lines.append(self._unpack_single(attrs[0]))
        args = ", ".join(f"v_{a.name}" for a in pod.attributes)
        lines.append(f"return cls({args}), _o - offset")
        return "\n".join(lines)

    # Class members

    def params_decl(self, function: AstFunction, cls: AstClass) -> str:
        return "".join(
            f", {py_name(p.name)}: {self.annotation(p.type, cls)}" for p in function.params
        )

    def signal_types(self, type_names: list[str], cls: AstClass) -> str:
        return _quoted([self.qualify(cls, t) for t in type_names])

    def type_ids(self, type_names: tuple[str, ...], cls: AstClass) -> str:
        return _quoted([self.qualify(cls, t) for t in type_names])

    def signal_decls(self, cls: AstClass) -> list[tuple[str, str]]:
        """(name, argument types) of every signal, change signals first."""
        decls = []
        for signal in self.tables[cls.name].signals:
            if signal.is_change_signal:
                # Locally the change signal carries the new value
                prop = cls.properties[signal.property_ordinal]  # type: ignore[index]
                decls.append((signal.name, self.signal_types([prop.type], cls)))
            else:
                decls.append((signal.name, self.signal_types(list(signal.parameter_types), cls)))
        return decls


def _args_tuple(function: AstFunction) -> str:
    names = [py_name(p.name) for p in function.params]
    if not names:
        return "()"
    if len(names) == 1:
        return f"({names[0]},)"
    return f"({', '.join(names)})"


def _tuple(values: Sequence[object]) -> str:
    return repr(tuple(values))


def render(
    ast: Ast,
    mode: Mode = Mode.MERGED,
    runtime_import: str = "repgen_runtime",
) -> str:
    """Render an interface definition to Python source code."""
    unit = _Unit(ast)
    logger.debug(
        "Rendering %d classes, %d PODs and %d enums as Python (%s)",
        len(ast.classes),
        len(ast.pods),
        len(ast.enums),
        mode,
    )

    class_enums = [
        (unit.qualify(cls, en.name), unit.class_enums[(cls.name, en.name)])
        for cls in ast.classes
        for en in cls.enums
    ]
    global_enums = [(en.name, unit.global_enums[en.name]) for en in ast.enums]
    used_enums = [(name, _ident(name)) for name in ast.enum_uses]

    def tables(cls: AstClass) -> OrdinalTables:
        return unit.tables[cls.name]

    def change_indexes(cls: AstClass) -> str:
        return ", ".join(str(s.property_ordinal + 1) for s in tables(cls).change_signals)  # type: ignore[operator]

    return template.render(
        ast=ast,
        mode=mode,
        Mode=Mode,
        enums=global_enums + class_enums,
        used_enums=used_enums,
        used_enum_format=USED_ENUM_WIRE_TYPE.struct_format,
        used_enum_size=USED_ENUM_WIRE_TYPE.size,
        registrations=unit.registrations(),
        tables=tables,
        change_indexes=change_indexes,
        qualify=unit.qualify,
        annotation=unit.annotation,
        check_type=unit.check_type,
        default=unit.default,
        field_default=unit.field_default,
        pack_body=unit.pack_body,
        unpack_body=unit.unpack_body,
        params_decl=unit.params_decl,
        signal_types=unit.signal_types,
        signal_decls=unit.signal_decls,
        type_ids=unit.type_ids,
        args_tuple=_args_tuple,
        py_name=py_name,
        setter_name=setter_name,
        change_signal_name=change_signal_name,
        quoted=_quoted,
        as_tuple=_tuple,
        runtime_import=runtime_import,
        runtime_imports=RUNTIME_IMPORTS,
        relative_runtime="." not in runtime_import,
    )


def runtime() -> dict[str, str]:
    """Return the Python runtime files as a dict of filename -> content."""
    result: dict[str, str] = {}
    for filename in RUNTIME_FILES:
        content = resources.files("repgen.proto").joinpath(filename).read_text()
        result[filename] = content
    return result
