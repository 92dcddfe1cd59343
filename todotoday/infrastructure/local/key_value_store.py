"""
SQLite implementation of the local key-value layer.
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from todotoday.core.exceptions import InfrastructureError
from todotoday.infrastructure.local.database import KeyValueORM, get_session_factory
from todotoday.interfaces.key_value_store import IKeyValueStore


class SqliteKeyValueStore(IKeyValueStore):
    """SQLite implementation of the key-value layer."""

    def __init__(self, session_factory=None):
        self._session_factory = session_factory or get_session_factory()

    def get(self, key: str) -> Optional[str]:
        """Return the stored blob, or None when the key is absent."""
        try:
            with self._session_factory() as session:
                result = session.execute(
                    select(KeyValueORM.value).where(KeyValueORM.key == key)
                )
                return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise InfrastructureError(f"Failed to read key {key}: {e}") from e

    def set(self, key: str, value: str) -> None:
        """Insert or overwrite a blob and commit immediately."""
        try:
            with self._session_factory() as session:
                orm = session.get(KeyValueORM, key)
                if orm is None:
                    session.add(KeyValueORM(key=key, value=value))
                else:
                    orm.value = value
                session.commit()
        except SQLAlchemyError as e:
            raise InfrastructureError(f"Failed to write key {key}: {e}") from e
