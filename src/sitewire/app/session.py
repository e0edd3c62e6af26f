"""Cookie-bound sessions kept in process memory."""

from __future__ import annotations

from copy import deepcopy
from typing import Any
import secrets
import threading
import time


SESSION_COOKIE = "session_id"
FLASH_KEY = "_flash"


def _new_id(nbytes: int = 24) -> str:
    return secrets.token_urlsafe(nbytes)


class FlashMessage:
    """
    A message shown once, on the next page the visitor sees.

    Stored in the session as [message, type, timestamp] records.
    """

    SUCCESS = 1
    INFO = 2
    WARNING = 3
    WARN = 3
    ERROR = 4

    TYPE_NAMES = {
        ERROR: "ERROR",
        WARNING: "WARNING",
        INFO: "INFO",
        SUCCESS: "SUCCESS",
    }

    def __init__(self, message: str, kind: int = INFO, timestamp: float | None = None) -> None:
        self.message: str = message
        self.kind: int = kind
        self.timestamp: float = time.time() if timestamp is None else timestamp

    @property
    def type_name(self) -> str:
        return self.TYPE_NAMES[self.kind]

    def to_record(self) -> list[Any]:
        return [self.message, self.kind, self.timestamp]

    @classmethod
    def from_record(cls, record: list[Any]) -> "FlashMessage":
        message, kind, timestamp = record
        return cls(message, kind, timestamp)

    def __repr__(self) -> str:
        return f"<FlashMessage {self.type_name}: {self.message}>"


class Session(dict[str, Any]):
    """
    Key-value data of one visitor.

    A session read from a cookie that the store does not know starts out
    empty; it gets an id when it is first stored.
    """

    def __init__(self, session_id: str | None = None, data: dict[str, Any] | None = None) -> None:
        super().__init__(data or {})
        self.id: str | None = session_id
        self.new: bool = session_id is None

    def has(self, key: str, kind: type | None = None) -> bool:
        """True when key is set, and of the given type if one is given."""
        if key not in self:
            return False
        return kind is None or isinstance(self[key], kind)

    # -------------------------
    # flash messages
    # -------------------------

    def _flash_records(self) -> list[list[Any]]:
        if not self.has(FLASH_KEY, list):
            self[FLASH_KEY] = []
        return self[FLASH_KEY]

    def flash(self, message: str, kind: int = FlashMessage.INFO) -> FlashMessage:
        msg = FlashMessage(message, kind)
        self._flash_records().append(msg.to_record())
        return msg

    def next_flash(self) -> FlashMessage | None:
        """Take the oldest flash message, or None when there is none."""
        records = self.get(FLASH_KEY)
        if not records:
            return None
        msg = FlashMessage.from_record(records.pop(0))
        if not records:
            del self[FLASH_KEY]
        return msg

    def flash_count(self) -> int:
        return len(self.get(FLASH_KEY) or ())


class SessionStore:
    """
    Process-wide session storage.

    Sessions expire after lifetime seconds without being saved. Expired
    entries are swept every sweep_interval saves.
    """

    def __init__(self, lifetime: int = 3600, sweep_interval: int = 100) -> None:
        self.lifetime: int = lifetime
        self.sweep_interval: int = sweep_interval
        self._data: dict[str, tuple[float, dict[str, Any]]] = {}
        self._lock = threading.Lock()
        self._saves = 0

    def load(self, session_id: str | None) -> Session:
        if not session_id:
            return Session()
        with self._lock:
            entry = self._data.get(session_id)
            if entry is None or entry[0] < time.time():
                self._data.pop(session_id, None)
                return Session()
            return Session(session_id, deepcopy(entry[1]))

    def save(self, session: Session) -> None:
        if session.id is None:
            session.id = _new_id()
        with self._lock:
            self._data[session.id] = (time.time() + self.lifetime, deepcopy(dict(session)))
            self._saves += 1
            if self._saves % self.sweep_interval == 0:
                self._sweep()

    def _sweep(self) -> None:
        now = time.time()
        for session_id in [k for k, (expires, _) in self._data.items() if expires < now]:
            del self._data[session_id]

    def sweep(self) -> None:
        """Drop every expired session."""
        with self._lock:
            self._sweep()

    def delete(self, session_id: str) -> None:
        with self._lock:
            self._data.pop(session_id, None)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._data

    def __len__(self) -> int:
        return len(self._data)


default_store = SessionStore()
