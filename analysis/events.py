"""
Event Model for the Resource-Allocation Graph Deadlock Engine.

Defines event types for tracking engine actions.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class EventType(Enum):
    """Types of events recorded by the engine."""
    PROCESS_ADDED = "process_added"
    RESOURCE_ADDED = "resource_added"
    REQUEST = "request"
    ALLOCATION = "allocation"
    RELEASE = "release"
    PROCESS_REMOVED = "process_removed"
    RESOURCE_REMOVED = "resource_removed"
    DEADLOCK = "deadlock"
    RECOVERY = "recovery"


@dataclass
class EngineEvent:
    """
    Represents a single engine event.

    Attributes:
        seq: Sequence number of the event (1-based)
        event_type: Type of event
        process_id: PID involved in event (if applicable)
        resource_id: RID involved in event (if applicable)
        message: Human-readable description
    """
    seq: int
    event_type: EventType
    process_id: Optional[int] = None
    resource_id: Optional[int] = None
    message: str = ""

    def __str__(self) -> str:
        """Format event for logging."""
        base = f"#{self.seq}:"
        p = f"P{self.process_id}"
        r = f"R{self.resource_id}"

        if self.event_type == EventType.PROCESS_ADDED:
            return f"{base} {p} added ({self.message})"
        elif self.event_type == EventType.RESOURCE_ADDED:
            return f"{base} {r} added"
        elif self.event_type == EventType.REQUEST:
            return f"{base} {p} requests {r}"
        elif self.event_type == EventType.ALLOCATION:
            return f"{base} {r} assigned to {p}"
        elif self.event_type == EventType.RELEASE:
            return f"{base} {r} released by {p}"
        elif self.event_type == EventType.PROCESS_REMOVED:
            return f"{base} {p} removed ({self.message})"
        elif self.event_type == EventType.RESOURCE_REMOVED:
            return f"{base} {r} removed"
        elif self.event_type == EventType.DEADLOCK:
            return f"{base} DEADLOCK DETECTED ({self.message})"
        elif self.event_type == EventType.RECOVERY:
            return f"{base} RECOVERY ({self.message})"
        else:
            return f"{base} {self.event_type.value}: {self.message}"


@dataclass
class EventLog:
    """Collection of engine events."""
    events: list = None

    def __post_init__(self):
        if self.events is None:
            self.events = []

    def record(self, event_type: EventType, **kwargs) -> EngineEvent:
        """Create the next event in sequence and add it."""
        event = EngineEvent(seq=len(self.events) + 1, event_type=event_type, **kwargs)
        self.add(event)
        return event

    def add(self, event: EngineEvent) -> None:
        """Add an event to the log."""
        self.events.append(event)

    def get_events_by_type(self, event_type: EventType) -> list:
        """Get all events of a specific type."""
        return [e for e in self.events if e.event_type == event_type]

    def get_events_for_process(self, pid: int) -> list:
        """Get all events involving a process."""
        return [e for e in self.events if e.process_id == pid]

    def display(self) -> str:
        """Format all events for display."""
        return "\n".join(str(event) for event in self.events)
