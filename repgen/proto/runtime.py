"""Runtime support for generated Source and Replica classes.

The transport is not part of this package. A Replica hands its outbound
requests to a `Channel` supplied by the transport, and the transport feeds
incoming property values back through `ReplicaBase.set_property()`.

Replica calls never block: a property write returns immediately and a slot
with a return value yields a `PendingReply`. Requests from one Replica carry
increasing sequence numbers so a channel can deliver them in issue order.
Nothing orders requests across Replicas.
"""

import asyncio
import itertools
import logging
from abc import ABC
from collections.abc import Callable, Generator, Sequence
from concurrent.futures import CancelledError, Future, InvalidStateError
from dataclasses import dataclass
from typing import Any, ClassVar, Generic, Protocol, TypeVar

from .types import InvocationKind

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ReplicaError(RuntimeError):
    """Raised when a Replica cannot forward a request."""


class BoundSignal:
    """A signal of one object instance."""

    def __init__(self, name: str, types: tuple[str, ...]) -> None:
        self.name = name
        self.types = types
        self._receivers: list[Callable[..., Any]] = []

    def connect(self, receiver: Callable[..., Any]) -> None:
        self._receivers.append(receiver)

    def disconnect(self, receiver: Callable[..., Any]) -> None:
        self._receivers.remove(receiver)

    def emit(self, *args: Any) -> None:
        """Call every connected receiver with `args`, in connection order."""
        for receiver in list(self._receivers):
            receiver(*args)

    @property
    def receivers(self) -> int:
        return len(self._receivers)


class Signal:
    """Class-level signal declaration.

    Example:
        class Counter(SourceBase):
            valueChanged = Signal("int")

        counter.valueChanged.connect(print)
        counter.valueChanged.emit(3)
    """

    def __init__(self, *types: str) -> None:
        self.types = types
        self.name = ""

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name

    def __get__(self, instance: Any, owner: type | None = None) -> Any:
        if instance is None:
            return self
        bound = BoundSignal(self.name, self.types)
        # Cache on the instance; the instance attribute shadows this descriptor
        instance.__dict__[self.name] = bound
        return bound


@dataclass(frozen=True)
class Invocation:
    """An outbound request from a Replica.

    `index` is the member ordinal: the property ordinal for WRITE_PROPERTY and
    the method ordinal for INVOKE_METHOD.
    """

    kind: InvocationKind
    index: int
    args: tuple[Any, ...]
    sequence: int


class Channel(Protocol):
    """What a transport provides to a Replica."""

    def send(self, invocation: Invocation) -> None: ...

    def send_with_reply(self, invocation: Invocation) -> "Future[Any]": ...


class PendingReply(Generic[T]):
    """The future result of a remote slot call.

    The holder may wait, poll, await from asyncio, or cancel. Cancelling only
    abandons the result; the remote side still runs the call.
    """

    def __init__(self, future: "Future[T]", return_type: str = "") -> None:
        self._future = future
        self.return_type = return_type

    def result(self, timeout: float | None = None) -> T:
        return self._future.result(timeout)

    def done(self) -> bool:
        return self._future.done()

    def cancel(self) -> bool:
        return self._future.cancel()

    def cancelled(self) -> bool:
        return self._future.cancelled()

    def add_done_callback(self, callback: Callable[["PendingReply[T]"], Any]) -> None:
        self._future.add_done_callback(lambda _f: callback(self))

    @property
    def future(self) -> "Future[T]":
        return self._future

    def __await__(self) -> Generator[Any, None, T]:
        return asyncio.wrap_future(self._future).__await__()


def deliver_reply(future: "Future[Any]", value: Any) -> bool:
    """Complete a reply future on behalf of the remote side.

    Late or cancelled results are dropped. Returns True if the value was
    delivered.
    """
    if future.done():
        return False
    try:
        future.set_result(value)
    except (InvalidStateError, CancelledError):
        return False
    return True


class SourceBase(ABC):
    """Base class for generated Source contracts.

    Subclasses list their property names in `_remote_properties_`; any other
    class that does the same can be bound to a descriptor too.
    """

    _remote_type_: ClassVar[str] = ""
    _remote_properties_: ClassVar[tuple[str, ...]] = ()


class ReplicaBase:
    """Base class for generated Replicas.

    Property values are cached in a list indexed by property ordinal.
    Generated members share this namespace, so apart from `node` and
    `set_property` every helper is private.
    """

    _remote_type_: ClassVar[str] = ""
    _property_table_: ClassVar[tuple[int, ...]] = (0,)
    _signal_table_: ClassVar[tuple[int, ...]] = (0,)
    _method_table_: ClassVar[tuple[int, ...]] = (0,)

    def __init__(self, node: Channel | None = None, name: str = "") -> None:
        self._node = node
        self._name = name or self._remote_type_
        self._properties: list[Any] = []
        self._sequence = itertools.count()

    @property
    def node(self) -> Channel | None:
        return self._node

    @node.setter
    def node(self, node: Channel | None) -> None:
        self._node = node

    def _set_properties(self, values: Sequence[Any]) -> None:
        self._properties = list(values)

    def set_property(self, index: int, value: Any) -> bool:
        """Overwrite the cached value of the property with ordinal `index`.

        This is the hook the transport uses for incoming changes. Out of range
        ordinals are ignored with a warning. Returns True if the cache changed.
        """
        if index < 0 or index >= len(self._properties):
            logger.warning("%s ignored an update for unknown property %d", self._name, index)
            return False
        self._properties[index] = value
        return True

    def _property_value(self, index: int) -> Any:
        return self._properties[index]

    def _property_as(self, index: int, expected: Any, name: str) -> Any:
        """Read a cached property, converting it to `expected` when needed.

        A value that cannot be converted is returned unchanged after a
        warning. `expected` of None skips the check.
        """
        value = self._properties[index]
        if expected is None or isinstance(value, expected):
            return value
        try:
            return expected(value)
        except (TypeError, ValueError):
            logger.warning(
                "%s cannot convert the property %s to type %s",
                self._name,
                name,
                getattr(expected, "__name__", expected),
            )
            return value

    def _invocation(self, kind: InvocationKind, index: int, args: Sequence[Any]) -> Invocation:
        if self._node is None:
            raise ReplicaError(f"{self._name} is not attached to a node")
        return Invocation(kind=kind, index=index, args=tuple(args), sequence=next(self._sequence))

    def _send(self, kind: InvocationKind, index: int, args: Sequence[Any]) -> None:
        """Forward a request that expects no result."""
        invocation = self._invocation(kind, index, args)
        logger.debug("%s sending %s", self._name, invocation)
        self._node.send(invocation)  # type: ignore[union-attr]

    def _send_with_reply(
        self, kind: InvocationKind, index: int, args: Sequence[Any], return_type: str = ""
    ) -> PendingReply[Any]:
        """Forward a request whose result arrives later."""
        invocation = self._invocation(kind, index, args)
        logger.debug("%s sending %s with reply", self._name, invocation)
        future = self._node.send_with_reply(invocation)  # type: ignore[union-attr]
        return PendingReply(future, return_type)
