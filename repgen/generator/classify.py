"""Type classification and metatype registration planning."""

from collections.abc import Callable

from .types import Ast, AstClass

# Types the runtime knows without registration
BUILTIN_TYPES = frozenset(
    [
        "void",
        "bool",
        "char",
        "uchar",
        "short",
        "ushort",
        "int",
        "uint",
        "long",
        "ulong",
        "qint8",
        "quint8",
        "qint16",
        "quint16",
        "qint32",
        "quint32",
        "qint64",
        "quint64",
        "qlonglong",
        "qulonglong",
        "float",
        "double",
        "qreal",
        "QChar",
        "QString",
        "QByteArray",
        "QStringList",
        "QVariant",
        "QVariantList",
        "QVariantMap",
        "QDate",
        "QTime",
        "QDateTime",
        "QUrl",
        "QUuid",
        "QPoint",
        "QPointF",
        "QSize",
        "QSizeF",
        "QRect",
        "QRectF",
    ]
)


def builtin_types() -> list[str]:
    """Return a list of builtin type names."""
    return sorted(BUILTIN_TYPES)


def is_builtin(type_name: str) -> bool:
    """Check if a type needs no registration."""
    return type_name in BUILTIN_TYPES


def _identity(_cls: AstClass, type_name: str) -> str:
    return type_name


def collect_metatypes(
    ast: Ast, qualify: Callable[[AstClass, str], str] = _identity
) -> list[str]:
    """Collect every non-builtin type the unit references, once each.

    Order is first reference: POD names, then for each class its property
    types followed by the return and parameter types of its signals and slots.
    `qualify` maps a type name seen inside a class to the name the backend
    registers it under (class-scoped enums need a prefix).
    """
    names: dict[str, None] = {}

    for pod in ast.pods:
        names[pod.name] = None

    for cls in ast.classes:
        referenced = [p.type for p in cls.properties]
        for function in cls.signals + cls.slots:
            referenced.append(function.return_type)
            referenced.extend(p.type for p in function.params)
        for type_name in referenced:
            if not is_builtin(type_name):
                names[qualify(cls, type_name)] = None

    return list(names)
