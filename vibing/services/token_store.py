"""
Credential Storage.

Local-storage equivalent for the session: the bearer token under
"auth-token", the serialized user under "auth-user", and the refresh token.

SECURITY: tokens are written with 0600 permissions and never logged in full.
"""

import json
import os
from datetime import UTC, datetime
from pathlib import Path
from typing import Protocol

import jwt
from structlog import get_logger

from vibing.models.api import User

logger = get_logger(__name__)

TOKEN_KEY = "auth-token"
USER_KEY = "auth-user"
REFRESH_KEY = "auth-refresh-token"


class TokenStore(Protocol):
    """Storage protocol; FileTokenStore and MemoryTokenStore implement it."""

    def get_token(self) -> str | None: ...

    def get_user(self) -> User | None: ...

    def get_refresh_token(self) -> str | None: ...

    def save(self, token: str, user: User, refresh_token: str | None = None) -> None: ...

    def clear(self) -> None: ...


class MemoryTokenStore:
    """In-process storage, for tests and short-lived scripts."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get_token(self) -> str | None:
        return self._data.get(TOKEN_KEY)

    def get_user(self) -> User | None:
        raw = self._data.get(USER_KEY)
        return _parse_user(raw)

    def get_refresh_token(self) -> str | None:
        return self._data.get(REFRESH_KEY)

    def save(self, token: str, user: User, refresh_token: str | None = None) -> None:
        self._data[TOKEN_KEY] = token
        self._data[USER_KEY] = user.model_dump_json(by_alias=True)
        if refresh_token:
            self._data[REFRESH_KEY] = refresh_token

    def clear(self) -> None:
        self._data.clear()


class FileTokenStore:
    """
    JSON file storage, one document per profile.

    A corrupt file is treated as an empty session rather than an error, the
    same way a browser treats unreadable local storage.
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    def _read(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("token_store_unreadable", path=str(self.path), error=str(exc))
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(".tmp")
        fd = os.open(tmp, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(data, fh)
        os.replace(tmp, self.path)

    def get_token(self) -> str | None:
        return self._read().get(TOKEN_KEY)

    def get_user(self) -> User | None:
        return _parse_user(self._read().get(USER_KEY))

    def get_refresh_token(self) -> str | None:
        return self._read().get(REFRESH_KEY)

    def save(self, token: str, user: User, refresh_token: str | None = None) -> None:
        data = {
            TOKEN_KEY: token,
            USER_KEY: user.model_dump_json(by_alias=True),
        }
        if refresh_token:
            data[REFRESH_KEY] = refresh_token
        self._write(data)

    def clear(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass


def _parse_user(raw: str | None) -> User | None:
    if not raw:
        return None
    try:
        return User.model_validate_json(raw)
    except ValueError:
        logger.warning("stored_user_invalid")
        return None


def token_expiry(token: str) -> datetime | None:
    """
    Read the exp claim of a JWT without verifying it.

    The client cannot verify the server's signature; the claim only lets a
    restored session skip a round trip when it is already expired. Opaque
    (non-JWT) tokens and tokens without exp return None.
    """
    try:
        payload = jwt.decode(token, options={"verify_signature": False})
    except jwt.exceptions.DecodeError:
        return None
    exp = payload.get("exp")
    if not isinstance(exp, int | float):
        return None
    return datetime.fromtimestamp(exp, UTC)


def is_token_expired(token: str, now: datetime | None = None) -> bool:
    expires_at = token_expiry(token)
    if expires_at is None:
        return False
    return expires_at <= (now or datetime.now(UTC))


def token_preview(token: str | None) -> str | None:
    """First characters of a token, safe for logs."""
    if not token:
        return None
    return token[:12] + "..."
