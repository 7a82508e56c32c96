"""
Process model for the Resource-Allocation Graph Deadlock Engine.

Represents a process node in the allocation graph.
"""

from dataclasses import dataclass
from enum import Enum


class Personality(Enum):
    """Process personalities. Only used to weight victim selection."""
    COOPERATIVE = "COOPERATIVE"
    AGGRESSIVE = "AGGRESSIVE"
    GREEDY = "GREEDY"
    PATIENT = "PATIENT"

    @classmethod
    def parse(cls, value) -> "Personality":
        """
        Accept a Personality or its case-insensitive name.

        Raises:
            ValueError: If the name is not a known personality
        """
        if isinstance(value, cls):
            return value
        try:
            return cls[str(value).strip().upper()]
        except KeyError:
            names = ", ".join(p.value.lower() for p in cls)
            raise ValueError(f"Unknown personality '{value}' (expected one of: {names})")


@dataclass
class Process:
    """
    Represents a process in the resource-allocation graph.

    Attributes:
        pid: Process identifier (unique, never reused)
        personality: Personality class used by victim selection
        arrival: Creation sequence number (higher = younger)
        in_deadlock: Set by detection when the process lies on a wait-for cycle
    """
    pid: int
    personality: Personality = Personality.COOPERATIVE
    arrival: int = 0
    in_deadlock: bool = False

    @property
    def label(self) -> str:
        return f"P{self.pid}"

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"Process(pid={self.pid}, personality={self.personality.value}, "
            f"arrival={self.arrival}, in_deadlock={self.in_deadlock})"
        )
