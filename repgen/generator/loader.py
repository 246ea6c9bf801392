"""Interface AST loading and validation.

The IDL parser lives outside this package; it hands over the AST as JSON
following the schema of :class:`repgen.generator.types.Ast`.
"""

from collections import Counter
from collections.abc import Iterable
from pathlib import Path

from .types import Ast, AstClass, AstEnum, change_signal_name

# Public members of the Replica base every generated Replica inherits
RESERVED_MEMBER_NAMES = frozenset(["node", "set_property"])


class ValidationError(RuntimeError):
    """Raised when an interface definition violates a structural invariant."""


def _duplicates(names: Iterable[str]) -> list[str]:
    return [name for name, count in Counter(names).items() if count > 1]


def _validate_enum(en: AstEnum, scope: str) -> None:
    if not en.params:
        raise ValidationError(f"Enum {scope}{en.name} declares no enumerators")
    dupes = _duplicates(p.name for p in en.params)
    if dupes:
        raise ValidationError(f"Enum {scope}{en.name} repeats enumerator {dupes[0]}")


def _validate_class(cls: AstClass) -> None:
    for kind, names in (
        ("property", [p.name for p in cls.properties]),
        ("signal", [s.name for s in cls.signals]),
        ("slot", [s.name for s in cls.slots]),
        ("enum", [e.name for e in cls.enums]),
    ):
        dupes = _duplicates(names)
        if dupes:
            raise ValidationError(f"Class {cls.name} declares {kind} {dupes[0]} more than once")

    # Change signals are synthesized, the author must not declare them
    explicit = {s.name for s in cls.signals}
    for prop in cls.properties:
        if prop.notifies and change_signal_name(prop) in explicit:
            raise ValidationError(
                f"Class {cls.name} declares signal {change_signal_name(prop)}, "
                f"which is generated for property {prop.name}"
            )

    # Properties, signals and slots share the member namespace of every role
    members = [p.name for p in cls.properties] + [s.name for s in cls.signals] + [s.name for s in cls.slots]
    dupes = _duplicates(members)
    if dupes:
        raise ValidationError(f"Class {cls.name} uses the name {dupes[0]} for more than one member")

    for name in members:
        if name in RESERVED_MEMBER_NAMES or name.startswith("_"):
            raise ValidationError(f"Class {cls.name} cannot use the reserved member name {name}")

    for slot in cls.slots:
        dupes = _duplicates(slot.param_names())
        if dupes:
            raise ValidationError(f"Slot {cls.name}.{slot.name} repeats parameter {dupes[0]}")
    for signal in cls.signals:
        dupes = _duplicates(signal.param_names())
        if dupes:
            raise ValidationError(f"Signal {cls.name}.{signal.name} repeats parameter {dupes[0]}")
        if not signal.is_void:
            raise ValidationError(f"Signal {cls.name}.{signal.name} cannot return a value")

    for en in cls.enums:
        _validate_enum(en, f"{cls.name}::")


def validate(ast: Ast) -> None:
    """Validate a loaded interface definition."""
    dupes = _duplicates(
        [c.name for c in ast.classes] + [p.name for p in ast.pods] + [e.name for e in ast.enums]
    )
    if dupes:
        raise ValidationError(f"{dupes[0]} is declared more than once")

    for en in ast.enums:
        _validate_enum(en, "")

    for pod in ast.pods:
        attr_dupes = _duplicates(a.name for a in pod.attributes)
        if attr_dupes:
            raise ValidationError(f"POD {pod.name} declares {attr_dupes[0]} more than once")

    for cls in ast.classes:
        _validate_class(cls)


def load(text: str) -> Ast:
    """Load an interface definition from its JSON form."""
    try:
        ast = Ast.from_json(text)
    except (ValueError, KeyError, TypeError) as e:
        raise ValidationError(f"Malformed interface definition: {e}") from e
    validate(ast)
    return ast


def load_file(path: str | Path) -> Ast:
    """Load an interface definition from a JSON file."""
    with open(path, encoding="utf-8") as f:
        return load(f.read())
