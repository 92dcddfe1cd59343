"""Abstract interfaces for infrastructure abstraction."""

from todotoday.interfaces.auth_provider import IAuthProvider
from todotoday.interfaces.key_value_store import IKeyValueStore
from todotoday.interfaces.remote_store import IRemoteStore

__all__ = [
    "IAuthProvider",
    "IKeyValueStore",
    "IRemoteStore",
]
