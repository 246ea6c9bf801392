"""Runtime support for code generated by repgen."""

from .descriptor import SourceApiMap as SourceApiMap
from .registry import register_type as register_type
from .runtime import Channel as Channel
from .runtime import Invocation as Invocation
from .runtime import PendingReply as PendingReply
from .runtime import ReplicaBase as ReplicaBase
from .runtime import ReplicaError as ReplicaError
from .runtime import Signal as Signal
from .runtime import SourceBase as SourceBase
from .runtime import deliver_reply as deliver_reply
from .serialization import Record as Record
from .serialization import RemoteEnum as RemoteEnum
from .serialization import SerializationError as SerializationError
from .types import InvocationKind as InvocationKind
from .types import MemberKind as MemberKind
