"""
Error types for the Resource-Allocation Graph Deadlock Engine.

Every engine operation either applies fully or raises one of these,
leaving the graph in its last valid state.
"""


class EngineError(Exception):
    """Base class for all engine errors."""
    pass


class UnknownEntity(EngineError):
    """Raised when an operation references a process or resource that does not exist."""

    def __init__(self, kind: str, entity_id):
        self.kind = kind
        self.entity_id = entity_id
        prefix = "P" if kind == "process" else "R"
        super().__init__(f"Unknown {kind} {prefix}{entity_id}")


class InvalidRequest(EngineError):
    """Raised for malformed requests, e.g. a process waiting on a resource it holds."""
    pass


class ResourceBusy(EngineError):
    """Raised when allocating a resource already assigned to another process."""

    def __init__(self, rid: int, holder: int):
        self.rid = rid
        self.holder = holder
        super().__init__(f"R{rid} is already assigned to P{holder}")


class NotAssigned(EngineError):
    """Raised when releasing a resource that is free."""

    def __init__(self, rid: int):
        self.rid = rid
        super().__init__(f"R{rid} is not assigned to any process")


class NoDeadlock(EngineError):
    """Raised when resolution is attempted without an active deadlock."""
    pass
