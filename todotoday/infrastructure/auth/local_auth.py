"""
Local authentication provider.

Holds the signed-in user id for the running process and notifies listeners
on sign-in/sign-out. Real identity providers plug in behind the same interface.
"""

from __future__ import annotations

from typing import Optional

from todotoday.interfaces.auth_provider import AuthListener, IAuthProvider


class LocalAuthProvider(IAuthProvider):
    """Process-local auth provider."""

    def __init__(self, user_id: Optional[str] = None):
        self._user_id = user_id
        self._listeners: list[AuthListener] = []

    def get_user_id(self) -> Optional[str]:
        return self._user_id

    def add_listener(self, listener: AuthListener) -> None:
        self._listeners.append(listener)

    def sign_in(self, user_id: str) -> None:
        if not user_id:
            raise ValueError("user_id must be a non-empty string")
        self._set(user_id)

    def sign_out(self) -> None:
        self._set(None)

    def _set(self, user_id: Optional[str]) -> None:
        if user_id == self._user_id:
            return
        self._user_id = user_id
        for listener in list(self._listeners):
            listener(user_id)
