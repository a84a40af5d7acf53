"""Event log collaborator used to rebuild ledger replicas."""

import threading
from typing import Dict, List, Protocol, Union

from pydantic import BaseModel

from zkmixer.models.schemas import EventKind


class EventLog(Protocol):
    """Append-only, ordered record of mixer events."""

    def emit(self, kind: EventKind, payload: BaseModel) -> None:
        ...

    def fetch_events(self, kind: Union[EventKind, str]) -> List[BaseModel]:
        ...


class InMemoryEventLog:
    """Event log kept in process memory."""

    def __init__(self):
        self._events: Dict[EventKind, List[BaseModel]] = {kind: [] for kind in EventKind}
        self._lock = threading.Lock()

    def emit(self, kind: EventKind, payload: BaseModel) -> None:
        kind = EventKind(kind)
        with self._lock:
            self._events[kind].append(payload)

    def fetch_events(self, kind: Union[EventKind, str]) -> List[BaseModel]:
        with self._lock:
            return list(self._events[EventKind(kind)])

    def __len__(self) -> int:
        return sum(len(events) for events in self._events.values())
