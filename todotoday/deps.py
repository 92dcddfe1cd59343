"""
Application wiring.

Builds the single LocalStore / SyncService pair for a process and hands the
same instances to every consumer, instead of module-level singletons.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from todotoday.core.config import Settings, get_settings
from todotoday.core.logger import setup_logger
from todotoday.infrastructure.auth.local_auth import LocalAuthProvider
from todotoday.infrastructure.local.database import get_engine, get_session_factory, init_db
from todotoday.infrastructure.local.key_value_store import SqliteKeyValueStore
from todotoday.infrastructure.local.remote_store import InMemoryRemoteStore
from todotoday.interfaces.auth_provider import IAuthProvider
from todotoday.interfaces.key_value_store import IKeyValueStore
from todotoday.interfaces.remote_store import IRemoteStore
from todotoday.services.local_store import LocalStore
from todotoday.services.sync_service import SyncService

logger = setup_logger(__name__)


@dataclass
class AppContainer:
    """Everything a session needs, constructed once."""

    settings: Settings
    kv_store: IKeyValueStore
    store: LocalStore
    remote_store: IRemoteStore
    auth: IAuthProvider
    sync: SyncService


def get_key_value_store(settings: Settings) -> IKeyValueStore:
    """Get the durable key-value layer for the configured database."""
    engine = get_engine(settings.DATABASE_URL)
    init_db(engine)
    return SqliteKeyValueStore(session_factory=get_session_factory(engine))


def build_container(
    settings: Optional[Settings] = None,
    kv_store: Optional[IKeyValueStore] = None,
    remote_store: Optional[IRemoteStore] = None,
    auth: Optional[IAuthProvider] = None,
) -> AppContainer:
    """
    Construct and load the local store and its sync service.

    Collaborators not supplied fall back to the local implementations
    (SQLite key-value layer, in-process remote store, local auth).
    Call `container.sync.bind_auth(container.auth)` from the running event
    loop to start synchronizing on sign-in.
    """
    settings = settings or get_settings()
    kv_store = kv_store or get_key_value_store(settings)
    remote_store = remote_store or InMemoryRemoteStore()
    auth = auth or LocalAuthProvider()

    store = LocalStore(kv_store, key_prefix=settings.STORAGE_KEY_PREFIX)
    store.load()
    sync = SyncService(store, remote_store, enabled=settings.SYNC_ENABLED)
    logger.debug("Container built (environment=%s)", settings.ENVIRONMENT)
    return AppContainer(
        settings=settings,
        kv_store=kv_store,
        store=store,
        remote_store=remote_store,
        auth=auth,
        sync=sync,
    )
