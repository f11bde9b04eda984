from .errors import DecodeError, FetchCancelledError, InvalidArgument, NameMCError, TransportError
from .records import ProfileRecord, Record, ServerRecord
from .executor import AsyncioTaskPool, TaskExecutor
from .cache import ExpiringFetchCache

__all__ = [
    "ExpiringFetchCache",
    "Record",
    "ProfileRecord",
    "ServerRecord",
    "AsyncioTaskPool",
    "TaskExecutor",
    "NameMCError",
    "InvalidArgument",
    "TransportError",
    "DecodeError",
    "FetchCancelledError",
]
