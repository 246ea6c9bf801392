"""Runtime type tables shared by the codecs, the registry and descriptors.

Kept free of generator imports so this package can be copied next to
generated code on its own.
"""

from enum import IntEnum, StrEnum

# Numeric builtins and their big-endian struct formats (QDataStream byte order)
WIRE_FORMATS: dict[str, str] = {
    "bool": ">?",
    "char": ">b",
    "uchar": ">B",
    "qint8": ">b",
    "quint8": ">B",
    "short": ">h",
    "ushort": ">H",
    "qint16": ">h",
    "quint16": ">H",
    "QChar": ">H",
    "int": ">i",
    "uint": ">I",
    "qint32": ">i",
    "quint32": ">I",
    "long": ">i",
    "ulong": ">I",
    "qint64": ">q",
    "quint64": ">Q",
    "qlonglong": ">q",
    "qulonglong": ">Q",
    "float": ">f",
    "double": ">d",
    "qreal": ">d",
}

# Length-prefixed builtins
STRING_TYPES = frozenset(["QString", "QByteArray", "QStringList"])

# Builtins that need no registration, in type id order. Append only: the
# position of a name is its type id.
BUILTIN_TYPES: tuple[str, ...] = (
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
)

UNKNOWN_TYPE = -1
USER_TYPE = 1024

NOT_FOUND = -1


class MemberKind(StrEnum):
    """Ordinal namespaces of a remote object."""

    PROPERTY = "property"
    SIGNAL = "signal"
    METHOD = "method"


class InvocationKind(IntEnum):
    """What a Replica asks its Source to do."""

    WRITE_PROPERTY = 1
    INVOKE_METHOD = 2


class MethodType(IntEnum):
    """Kind of a remotely callable method. Remote methods are always slots."""

    SIGNAL = 1
    SLOT = 2
