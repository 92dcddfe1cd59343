"""
Authentication provider interface.

The sign-in flow itself lives outside the core; all the core needs is a
stable user id while a session is active.
"""

from abc import ABC, abstractmethod
from typing import Callable, Optional

AuthListener = Callable[[Optional[str]], None]


class IAuthProvider(ABC):
    """Abstract interface for the authentication collaborator."""

    @abstractmethod
    def get_user_id(self) -> Optional[str]:
        """Current user id, or None when signed out."""
        pass

    @abstractmethod
    def add_listener(self, listener: AuthListener) -> None:
        """Register a callback invoked with the new user id on every sign-in/sign-out."""
        pass
