"""
Durability layer for tickets and auth state.

Stores hold no logic: they load and save whole collections and tell
subscribers when a key ("tickets" or "auth") changes underneath them.
"""

import json
import logging
import os
import tempfile
from typing import Any, Callable, Dict, List, Optional, Tuple

from models import AuthState, Ticket

logger = logging.getLogger(__name__)

TICKETS_KEY = "tickets"
AUTH_KEY = "auth"

ChangeCallback = Callable[[str], None]


def _dump_tickets(tickets: List[Ticket]) -> List[Dict[str, Any]]:
    return [ticket.model_dump(mode="json", by_alias=True) for ticket in tickets]


def _load_tickets(raw: Optional[List[Dict[str, Any]]]) -> List[Ticket]:
    return [Ticket.model_validate(item) for item in raw or []]


def _load_auth(raw: Optional[Dict[str, Any]]) -> AuthState:
    return AuthState.model_validate(raw) if raw else AuthState()


class TicketStore:
    """Base store: subscription handling shared by the concrete stores."""

    def __init__(self):
        self._subscribers: List[ChangeCallback] = []

    def subscribe(self, callback: ChangeCallback) -> Callable[[], None]:
        """Register for change notifications; returns an unsubscribe function."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _notify(self, key: str) -> None:
        for callback in list(self._subscribers):
            callback(key)

    def load_tickets(self) -> List[Ticket]:
        raise NotImplementedError

    def save_tickets(self, tickets: List[Ticket]) -> None:
        raise NotImplementedError

    def load_auth(self) -> AuthState:
        raise NotImplementedError

    def save_auth(self, state: AuthState) -> None:
        raise NotImplementedError


class InMemoryStore(TicketStore):
    """Process-local store. Every save notifies all subscribers, like a shared tab."""

    def __init__(self):
        super().__init__()
        self._data: Dict[str, Any] = {TICKETS_KEY: [], AUTH_KEY: None}

    def load_tickets(self) -> List[Ticket]:
        return _load_tickets(self._data[TICKETS_KEY])

    def save_tickets(self, tickets: List[Ticket]) -> None:
        self._data[TICKETS_KEY] = _dump_tickets(tickets)
        self._notify(TICKETS_KEY)

    def load_auth(self) -> AuthState:
        return _load_auth(self._data[AUTH_KEY])

    def save_auth(self, state: AuthState) -> None:
        self._data[AUTH_KEY] = state.model_dump(mode="json", by_alias=True)
        self._notify(AUTH_KEY)


class JsonFileStore(TicketStore):
    """
    Single JSON file shared between processes.

    Writes are atomic (temp file + replace). Changes made by other
    processes are picked up by ``poll()``, which notifies subscribers of
    each key whose content differs from what this process last saw.
    """

    def __init__(self, path: str):
        super().__init__()
        self.path = path
        self._snapshot: Dict[str, Any] = self._read()
        self._signature = self._file_signature()

    def _file_signature(self) -> Optional[Tuple[int, int]]:
        try:
            stat = os.stat(self.path)
        except FileNotFoundError:
            return None
        return stat.st_mtime_ns, stat.st_size

    def _read(self) -> Dict[str, Any]:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {TICKETS_KEY: [], AUTH_KEY: None}
        except json.JSONDecodeError:
            logger.warning("Store file %s is not valid JSON; treating it as empty", self.path, exc_info=True)
            return {TICKETS_KEY: [], AUTH_KEY: None}
        if not isinstance(data, dict):
            logger.warning("Store file %s does not hold an object; treating it as empty", self.path)
            return {TICKETS_KEY: [], AUTH_KEY: None}
        return {TICKETS_KEY: data.get(TICKETS_KEY, []), AUTH_KEY: data.get(AUTH_KEY)}

    def _write(self, key: str, value: Any) -> None:
        data = self._read()
        data[key] = value
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=directory, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
        self._snapshot = data
        self._signature = self._file_signature()

    def load_tickets(self) -> List[Ticket]:
        return _load_tickets(self._read()[TICKETS_KEY])

    def save_tickets(self, tickets: List[Ticket]) -> None:
        self._write(TICKETS_KEY, _dump_tickets(tickets))

    def load_auth(self) -> AuthState:
        return _load_auth(self._read()[AUTH_KEY])

    def save_auth(self, state: AuthState) -> None:
        self._write(AUTH_KEY, state.model_dump(mode="json", by_alias=True))

    def poll(self) -> List[str]:
        """Check for writes by other processes and notify subscribers. Returns the changed keys."""
        signature = self._file_signature()
        if signature == self._signature:
            return []
        data = self._read()
        changed = [key for key in (TICKETS_KEY, AUTH_KEY) if data.get(key) != self._snapshot.get(key)]
        self._snapshot = data
        self._signature = signature
        for key in changed:
            logger.info("Store key %r changed on disk", key)
            self._notify(key)
        return changed
