"""
Resource model for the Resource-Allocation Graph Deadlock Engine.

Represents a single-instance resource node in the allocation graph.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class Resource:
    """
    Represents a single-instance resource.

    Attributes:
        rid: Resource identifier (unique, never reused)
        holder: PID of the process holding the resource, None when free

    Invariant:
        At most one holder at a time (mutual exclusion)
    """
    rid: int
    holder: Optional[int] = None

    @property
    def label(self) -> str:
        return f"R{self.rid}"

    def is_free(self) -> bool:
        return self.holder is None

    def assign(self, pid: int) -> bool:
        """
        Assign the resource to a process if it is free.

        Returns:
            True if assignment succeeded, False if held by another process
        """
        if self.holder is not None and self.holder != pid:
            return False
        self.holder = pid
        return True

    def free(self) -> Optional[int]:
        """
        Clear the holder.

        Returns:
            PID of the previous holder, or None if already free
        """
        previous = self.holder
        self.holder = None
        return previous
