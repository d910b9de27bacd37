"""Append-only sinks for relay request events.

The relay records one event per handled request (dialect, method, target,
outcome). Sinks only ever append; nothing is updated or deleted.
"""

import json
import logging
import threading
import uuid
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from dispatch_relay.config import RelaySettings

logger = logging.getLogger(__name__)


@dataclass
class DispatchLogEvent:
    """One handled relay request."""

    dialect: str
    method: str
    outcome: str
    request_id: str | None = None
    owner: str | None = None
    repo: str | None = None
    event_type: str | None = None
    status: int | None = None
    error: str | None = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: str = field(default_factory=lambda: datetime.now(UTC).isoformat())

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class DispatchLogSink(ABC):
    """Abstract append-only event sink."""

    @abstractmethod
    def append(self, event: DispatchLogEvent) -> None:
        """Record an event."""
        pass

    @abstractmethod
    def recent(self, limit: int = 50) -> list[dict[str, Any]]:
        """Return up to ``limit`` most recent events, oldest first."""
        pass


class MemoryLogSink(DispatchLogSink):
    """Bounded in-process ring of recent events."""

    def __init__(self, max_entries: int = 200):
        self._events: deque[dict[str, Any]] = deque(maxlen=max_entries)
        self._lock = threading.Lock()

    def append(self, event: DispatchLogEvent) -> None:
        with self._lock:
            self._events.append(event.to_dict())

    def recent(self, limit: int = 50) -> list[dict[str, Any]]:
        with self._lock:
            events = list(self._events)
        return events[-limit:] if limit > 0 else []


class JsonlFileLogSink(DispatchLogSink):
    """Events appended to a JSON-lines file.

    Only the last ``limit`` lines are decoded by ``recent``; lines among them
    that fail to decode are skipped.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._lock = threading.Lock()
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def append(self, event: DispatchLogEvent) -> None:
        line = json.dumps(event.to_dict(), default=str)
        with self._lock:
            with self.path.open("a", encoding="utf-8") as handle:
                handle.write(line + "\n")

    def recent(self, limit: int = 50) -> list[dict[str, Any]]:
        if limit <= 0 or not self.path.exists():
            return []

        with self._lock, self.path.open(encoding="utf-8") as handle:
            tail = deque((line for line in handle if line.strip()), maxlen=limit)

        events: list[dict[str, Any]] = []
        for line in tail:
            try:
                events.append(json.loads(line))
            except json.JSONDecodeError:
                logger.warning("Skipping corrupt dispatch log line in %s", self.path)
        return events


def get_log_sink(settings: RelaySettings) -> DispatchLogSink:
    """Build the sink selected by settings.

    Returns:
        JsonlFileLogSink when DISPATCH_LOG_PATH is set, else MemoryLogSink.
    """
    if settings.log_path:
        logger.info("Recording dispatch events to %s", settings.log_path)
        return JsonlFileLogSink(settings.log_path)
    return MemoryLogSink(max_entries=settings.log_max_entries)
