# hamkae/tools/auth.py
from typing import Optional

from hamkae.store.local_storage import LocalStorage
from hamkae.tools.logger import get_logger, mask_token

TOKEN_KEY = "token"
USERNAME_KEY = "username"

log = get_logger("auth")


class LoginRequired(Exception):
    """Raised when a page needs a logged-in user and no token is cached."""
    pass


class AuthSession:
    """
    Token/username pair mirrored into persistent storage.

    Passed explicitly to the API client and to every view. Each change is
    written through to storage immediately; clearing a value removes its key.
    """

    def __init__(self, storage: LocalStorage):
        self.storage = storage
        self.token: Optional[str] = storage.get_item(TOKEN_KEY) or None
        self.username: Optional[str] = storage.get_item(USERNAME_KEY) or None
        self.loading = False

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    def _set_token(self, token: Optional[str]) -> None:
        self.token = token or None
        if self.token:
            self.storage.set_item(TOKEN_KEY, self.token)
            log.debug(f"Token stored: {mask_token(self.token)}")
        else:
            self.storage.remove_item(TOKEN_KEY)
            log.debug("Token removed")

    def _set_username(self, username: Optional[str]) -> None:
        self.username = username or None
        if self.username:
            self.storage.set_item(USERNAME_KEY, self.username)
            log.debug(f"Username stored: {self.username}")
        else:
            self.storage.remove_item(USERNAME_KEY)
            log.debug("Username removed")

    def login(self, token: str, username: Optional[str]) -> None:
        log.info(f"Login: token={'present' if token else 'missing'} username={username}")
        self._set_token(token)
        self._set_username(username)

    def logout(self) -> None:
        log.info("Logout")
        self._set_token(None)
        self._set_username(None)

    def update_token(self, token: Optional[str]) -> None:
        log.info("Token refreshed")
        self._set_token(token)

    def update_username(self, username: Optional[str]) -> None:
        log.info(f"Username updated: {username}")
        self._set_username(username)

    def clear_token(self) -> None:
        """Drop the token only (server answered 401). The username stays cached."""
        self._set_token(None)

    def require(self) -> str:
        if not self.token:
            raise LoginRequired("Login required")
        return self.token


def auth_from_config(cfg: dict) -> AuthSession:
    return AuthSession(LocalStorage(cfg["auth"]["storage_path"]))
