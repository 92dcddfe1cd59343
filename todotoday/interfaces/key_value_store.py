"""
Local durable key-value layer interface.

Holds the serialized collections under fixed keys.
"""

from abc import ABC, abstractmethod
from typing import Optional


class IKeyValueStore(ABC):
    """Abstract interface for the process-local persistent key-value layer."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the stored blob, or None when the key is absent."""
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """
        Store a blob synchronously.

        Raises:
            InfrastructureError: If the write fails (never retried)
        """
        pass
