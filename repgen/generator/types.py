"""AST definitions for remote object interfaces and code generation."""

from dataclasses import dataclass, field
from enum import StrEnum

from dataclasses_json import DataClassJsonMixin


class PropertyMode(StrEnum):
    """How a property may be accessed remotely."""

    CONSTANT = "constant"
    READ_ONLY = "readonly"
    READ_WRITE = "readwrite"


class Mode(StrEnum):
    """Which role variants a generation run emits."""

    REPLICA = "replica"
    SOURCE = "source"
    MERGED = "merged"


class MemberKind(StrEnum):
    """The three ordinal namespaces of an interface class."""

    PROPERTY = "property"
    SIGNAL = "signal"
    METHOD = "method"


@dataclass(frozen=True)
class AstParam(DataClassJsonMixin):
    """A single parameter of a signal or slot."""

    type: str
    name: str


@dataclass(frozen=True)
class AstFunction(DataClassJsonMixin):
    """A signal or slot declaration.

    Signals are always void; slots may declare a return type.
    """

    name: str
    params: list[AstParam] = field(default_factory=list)
    return_type: str = "void"

    def params_as_string(self, normalized: bool = False) -> str:
        """Render the parameter list, either declared (`int a, int b`) or normalized (`int,int`)."""
        if normalized:
            return ",".join(p.type for p in self.params)
        return ", ".join(f"{p.type} {p.name}" for p in self.params)

    def param_names(self) -> list[str]:
        return [p.name for p in self.params]

    @property
    def signature(self) -> str:
        return f"{self.name}({self.params_as_string(normalized=True)})"

    @property
    def is_void(self) -> bool:
        return self.return_type == "void"


@dataclass(frozen=True)
class AstProperty(DataClassJsonMixin):
    """A property of an interface class."""

    type: str
    name: str
    mode: PropertyMode = PropertyMode.READ_WRITE
    default_value: str = ""

    @property
    def notifies(self) -> bool:
        """Whether the property owns a synthesized change signal."""
        return self.mode != PropertyMode.CONSTANT

    @property
    def writable(self) -> bool:
        return self.mode == PropertyMode.READ_WRITE


@dataclass(frozen=True)
class AstEnumParam(DataClassJsonMixin):
    """A single enumerator."""

    name: str
    value: int


@dataclass(frozen=True)
class AstEnum(DataClassJsonMixin):
    """An enum definition.

    `is_signed` and `max` are normally filled in by the IDL parser. When they
    are omitted the enum planner derives them from the enumerators.
    """

    name: str
    params: list[AstEnumParam]
    is_signed: bool | None = None
    max: int | None = None


@dataclass(frozen=True)
class AstClass(DataClassJsonMixin):
    """An interface class: the unit the three role variants are generated for."""

    name: str
    properties: list[AstProperty] = field(default_factory=list)
    signals: list[AstFunction] = field(default_factory=list)
    slots: list[AstFunction] = field(default_factory=list)
    enums: list[AstEnum] = field(default_factory=list)

    def has_enum(self, type_name: str) -> bool:
        """Check if `type_name` names an enum declared inside this class."""
        return any(e.name == type_name for e in self.enums)


@dataclass(frozen=True)
class PodAttribute(DataClassJsonMixin):
    """A field of a plain data record."""

    type: str
    name: str


@dataclass(frozen=True)
class Pod(DataClassJsonMixin):
    """A plain value record."""

    name: str
    attributes: list[PodAttribute] = field(default_factory=list)


@dataclass(frozen=True)
class Ast(DataClassJsonMixin):
    """A complete interface definition unit."""

    classes: list[AstClass] = field(default_factory=list)
    pods: list[Pod] = field(default_factory=list)
    enums: list[AstEnum] = field(default_factory=list)
    enum_uses: list[str] = field(default_factory=list)
    preprocessor_directives: list[str] = field(default_factory=list)


def cap(name: str) -> str:
    """Upper-case the first character of `name`."""
    return name[:1].upper() + name[1:]


def setter_name(prop: AstProperty) -> str:
    return f"set{cap(prop.name)}"


def change_signal_name(prop: AstProperty) -> str:
    return f"{prop.name}Changed"
