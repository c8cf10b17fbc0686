"""
Event channel of a build session.

A session emits zero or more ``message`` events carrying build output and
status text, followed by exactly one ``finished`` event. Sinks decide where
the events go: a socket-style callback, the console, a JSON lines stream or
an in-memory list.
"""

import json
import sys
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, TextIO


class SessionState(Enum):
    """Build session state enumeration."""

    IDLE = "idle"
    PREPARING = "preparing"
    PREPARE_FAILED = "prepare_failed"
    LAUNCHING = "launching"
    LAUNCH_FAILED = "launch_failed"
    RUNNING = "running"
    EXITED = "exited"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionState.PREPARE_FAILED, SessionState.LAUNCH_FAILED, SessionState.EXITED)


@dataclass
class FinishedEvent:
    """Session -> listener: terminal event.

    Attributes:
        ok: Whether the build succeeded; the only success signal
        status: Failure code when the build could not be launched
        message: Failure text when the build could not be launched
        timestamp: Unix timestamp when the event was created
    """

    ok: bool
    status: Optional[int] = None
    message: Optional[str] = None
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the payload sent to listeners."""
        if self.status is None:
            return {"ok": self.ok}
        return {"ok": self.ok, "status": self.status, "message": self.message}


class EventSink(ABC):
    """Receives the events of one build session."""

    @abstractmethod
    def message(self, text: str) -> None:
        """Deliver a chunk of build output or a status line."""

    @abstractmethod
    def finished(self, event: FinishedEvent) -> None:
        """Deliver the terminal event."""


class CallbackEventSink(EventSink):
    """Forwards events to an ``emit(name, payload)`` callable.

    Matches the emit signature of socket-style connections, e.g.
    ``CallbackEventSink(socket.emit)``.
    """

    def __init__(self, emit: Callable[[str, Any], Any]):
        self.emit = emit

    def message(self, text: str) -> None:
        self.emit("message", text)

    def finished(self, event: FinishedEvent) -> None:
        self.emit("finished", event.to_dict())


@dataclass
class RecordingEventSink(EventSink):
    """Keeps every event in memory, in order."""

    messages: List[str] = field(default_factory=list)
    events: List[FinishedEvent] = field(default_factory=list)
    order: List[str] = field(default_factory=list)

    def message(self, text: str) -> None:
        self.messages.append(text)
        self.order.append("message")

    def finished(self, event: FinishedEvent) -> None:
        self.events.append(event)
        self.order.append("finished")

    @property
    def output(self) -> str:
        return "".join(self.messages)


class ConsoleEventSink(EventSink):
    """Prints build output as it arrives."""

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream

    def message(self, text: str) -> None:
        stream = self.stream or sys.stdout
        stream.write(text)
        stream.flush()

    def finished(self, event: FinishedEvent) -> None:
        # The CLI reports the outcome itself
        pass


class JsonLinesEventSink(EventSink):
    """Writes one JSON object per event, for consumption by another process."""

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream

    def _write(self, payload: Dict[str, Any]) -> None:
        stream = self.stream or sys.stdout
        stream.write(json.dumps(payload) + "\n")
        stream.flush()

    def message(self, text: str) -> None:
        self._write({"event": "message", "data": text})

    def finished(self, event: FinishedEvent) -> None:
        self._write({"event": "finished", "data": event.to_dict()})


__all__ = [
    "SessionState",
    "FinishedEvent",
    "EventSink",
    "CallbackEventSink",
    "RecordingEventSink",
    "ConsoleEventSink",
    "JsonLinesEventSink",
]
