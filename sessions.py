"""
Client-side session persistence.

API consumers keep the {token, user} pair returned by signUp/signIn between
runs and drop it on logout. The storage is passed in explicitly instead of
reaching for some ambient global.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClientSession:
    token: str
    user: dict

    @classmethod
    def from_auth_response(cls, data: dict) -> "ClientSession":
        return cls(token=data["token"], user=data["user"])

    def to_dict(self) -> dict:
        return {"token": self.token, "user": self.user}


class SessionStore(Protocol):
    def get(self) -> Optional[ClientSession]: ...
    def set(self, session: ClientSession) -> None: ...
    def clear(self) -> None: ...


class MemorySessionStore:
    def __init__(self, session: Optional[ClientSession] = None):
        self._session = session

    def get(self):
        return self._session

    def set(self, session):
        self._session = session

    def clear(self):
        self._session = None


class FileSessionStore:
    """
    Keeps the session in a JSON file.

    Unreadable or partial data counts as "logged out": the file is removed
    and get() returns None.
    """

    def __init__(self, path):
        self.path = Path(path)

    def get(self):
        if not self.path.exists():
            return None

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            token = data["token"]
            user = data["user"]
        except (ValueError, KeyError, TypeError):
            logger.warning("Discarding unreadable session file %s", self.path)
            self.clear()
            return None

        if not isinstance(token, str) or not isinstance(user, dict):
            logger.warning("Discarding malformed session file %s", self.path)
            self.clear()
            return None

        return ClientSession(token=token, user=user)

    def set(self, session):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(session.to_dict()), encoding="utf-8")

    def clear(self):
        self.path.unlink(missing_ok=True)
