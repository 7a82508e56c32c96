"""
Resource-Allocation Graph Deadlock Engine.

Owns the allocation graph, detects deadlock exactly and resolves it by
terminating a victim chosen by a pluggable policy. Every call is synchronous
and atomic: it either applies fully or raises with the graph unchanged.
"""

import threading
from contextlib import contextmanager
from enum import Enum
from typing import Dict, List, Optional

from models.allocation_graph import AllocationGraph, Edge
from models.errors import (
    InvalidRequest,
    NoDeadlock,
    NotAssigned,
    ResourceBusy,
    UnknownEntity,
)
from models.process import Process, Personality
from models.resource import Resource
from algorithms.detection import DeadlockReport, detect_deadlock
from algorithms.recovery import (
    PersonalityPolicy,
    PolicyLike,
    VictimPolicy,
    select_victim,
    terminate_process,
)
from algorithms.risk import RiskLevel, risk_level, risk_score
from analysis.events import EventLog, EventType


class EngineState(Enum):
    """Deadlock state of the graph."""
    STABLE = "STABLE"
    DEADLOCKED = "DEADLOCKED"


class AllocationGraphEngine:
    """
    Deadlock detection engine over a single-instance resource-allocation graph.

    State machine:
        STABLE -> DEADLOCKED   detect_deadlock() finds at least one cycle
        DEADLOCKED -> STABLE   a release, removal or resolution leaves no cycle

    Not thread-safe; wrap with SynchronizedEngine for concurrent hosts.
    """

    def __init__(self, policy: Optional[PolicyLike] = None, event_log: Optional[EventLog] = None):
        """
        Initialize engine.

        Args:
            policy: Default victim policy (PersonalityPolicy if omitted)
            event_log: Event log to append to (a new one if omitted)
        """
        self.graph = AllocationGraph()
        self.policy = policy if policy is not None else PersonalityPolicy()
        self.events = event_log if event_log is not None else EventLog()
        self.last_scores: Dict[int, float] = {}

        self._next_pid = 1
        self._next_rid = 1
        self._state = EngineState.STABLE
        self._last_report: Optional[DeadlockReport] = None

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def last_report(self) -> Optional[DeadlockReport]:
        """Most recent detection result (kept current while deadlocked)."""
        return self._last_report

    # --- graph construction ---

    def add_process(self, personality=Personality.COOPERATIVE) -> int:
        """
        Create a process with no edges.

        Args:
            personality: Personality or its name

        Returns:
            New PID

        Raises:
            InvalidRequest: If the personality name is unknown
        """
        try:
            personality = Personality.parse(personality)
        except ValueError as e:
            raise InvalidRequest(str(e)) from e

        pid = self._next_pid
        self._next_pid += 1
        self.graph.add_process(Process(pid=pid, personality=personality, arrival=pid))
        self.events.record(
            EventType.PROCESS_ADDED, process_id=pid, message=personality.value.lower()
        )
        return pid

    def add_resource(self) -> int:
        """Create a free resource and return its RID."""
        rid = self._next_rid
        self._next_rid += 1
        self.graph.add_resource(Resource(rid=rid))
        self.events.record(EventType.RESOURCE_ADDED, resource_id=rid)
        return rid

    def request_resource(self, pid: int, rid: int) -> None:
        """
        Add a request edge P -> R.

        Repeating an existing request is a no-op.

        Raises:
            UnknownEntity: If the process or resource does not exist
            InvalidRequest: If the process already holds the resource
        """
        self._require_process(pid)
        resource = self._require_resource(rid)

        if resource.holder == pid:
            raise InvalidRequest(f"P{pid} already holds R{rid} and cannot wait for it")
        if (pid, rid) in self.graph.requests:
            return

        self.graph.add_request(pid, rid)
        self.events.record(EventType.REQUEST, process_id=pid, resource_id=rid)

    def allocate_resource(self, rid: int, pid: int) -> None:
        """
        Assign a free resource to a process.

        A matching request edge is converted into the assignment.
        Allocating to the current holder is a no-op.

        Raises:
            UnknownEntity: If the process or resource does not exist
            ResourceBusy: If the resource is held by another process
        """
        resource = self._require_resource(rid)
        self._require_process(pid)

        if resource.holder == pid:
            return
        if resource.holder is not None:
            raise ResourceBusy(rid, resource.holder)

        self.graph.assign(rid, pid)
        self.events.record(EventType.ALLOCATION, process_id=pid, resource_id=rid)

    def release_resource(self, rid: int) -> None:
        """
        Remove the assignment edge of a resource.

        Raises:
            UnknownEntity: If the resource does not exist
            NotAssigned: If the resource is free
        """
        resource = self._require_resource(rid)
        if resource.holder is None:
            raise NotAssigned(rid)

        with self._atomic():
            holder = self.graph.unassign(rid)
            self.events.record(EventType.RELEASE, process_id=holder, resource_id=rid)
            self._reevaluate()

    def remove_process(self, pid: int) -> List[int]:
        """
        Remove a process with all incident edges.

        Returns:
            RIDs released by the removal

        Raises:
            UnknownEntity: If the process does not exist
        """
        self._require_process(pid)

        with self._atomic():
            _, released = terminate_process(pid, self.graph)
            self.events.record(
                EventType.PROCESS_REMOVED, process_id=pid,
                message=self._released_str(released)
            )
            self._reevaluate()
        return released

    def remove_resource(self, rid: int) -> None:
        """
        Remove a resource with all incident edges.

        Raises:
            UnknownEntity: If the resource does not exist
        """
        self._require_resource(rid)

        with self._atomic():
            self.graph.remove_resource(rid)
            self.events.record(EventType.RESOURCE_REMOVED, resource_id=rid)
            self._reevaluate()

    # --- detection and resolution ---

    def detect_deadlock(self) -> DeadlockReport:
        """
        Run exact cycle detection over the wait-for graph.

        Marks every process on a cycle with in_deadlock and clears the flag on
        all others. Calling twice without mutation yields equal reports.
        """
        report = detect_deadlock(self.graph)
        self._apply_report(report)

        if report.deadlock_exists:
            self.events.record(EventType.DEADLOCK, message=str(report))

        return report

    def resolve_deadlock(self, policy: Optional[PolicyLike] = None) -> int:
        """
        Terminate the highest-scoring deadlocked process.

        Args:
            policy: Victim policy for this call (engine default if omitted)

        Returns:
            PID of the removed victim

        Raises:
            NoDeadlock: If no deadlock has been detected
        """
        if self._state != EngineState.DEADLOCKED or not self._last_report:
            raise NoDeadlock("No deadlock present")

        policy = policy if policy is not None else self.policy

        with self._atomic():
            victim_pid, scores = select_victim(
                self._last_report.deadlocked_pids, self.graph, policy
            )
            victim, released = terminate_process(victim_pid, self.graph)
            self.last_scores = scores
            self.events.record(
                EventType.RECOVERY, process_id=victim_pid,
                message=(
                    f"Terminated P{victim_pid} ({victim.personality.value.lower()}, "
                    f"score={scores[victim_pid]:g}, holding {self._released_str(released)})"
                )
            )
            self._reevaluate()

        if isinstance(policy, VictimPolicy):
            policy.record_victim(victim)

        return victim_pid

    def resolve_all(self, policy: Optional[PolicyLike] = None, max_rounds: Optional[int] = None) -> List[int]:
        """
        Detect and resolve until no cycle remains.

        Args:
            policy: Victim policy (engine default if omitted)
            max_rounds: Optional cap on the number of victims

        Returns:
            Victim PIDs in termination order
        """
        victims = []
        self.detect_deadlock()
        while self._state == EngineState.DEADLOCKED:
            if max_rounds is not None and len(victims) >= max_rounds:
                break
            victims.append(self.resolve_deadlock(policy))
        return victims

    def risk_score(self) -> int:
        """Advisory risk in [0, 100]; exactly 100 while deadlocked."""
        return risk_score(self.graph, self._state == EngineState.DEADLOCKED)

    def risk_level(self) -> RiskLevel:
        return risk_level(self.risk_score())

    # --- queries ---

    def get_process(self, pid: int) -> Process:
        return self._require_process(pid)

    def get_resource(self, rid: int) -> Resource:
        return self._require_resource(rid)

    def processes(self) -> List[Process]:
        return [self.graph.processes[pid] for pid in self.graph.process_ids()]

    def resources(self) -> List[Resource]:
        return [self.graph.resources[rid] for rid in self.graph.resource_ids()]

    def edges(self) -> List[Edge]:
        return self.graph.edges()

    def snapshot(self) -> Dict:
        """Serializable view of the engine for presentation layers."""
        view = self.graph.to_dict()
        view['state'] = self._state.value
        view['risk'] = self.risk_score()
        return view

    # --- internals ---

    def _require_process(self, pid: int) -> Process:
        process = self.graph.processes.get(pid)
        if process is None:
            raise UnknownEntity("process", pid)
        return process

    def _require_resource(self, rid: int) -> Resource:
        resource = self.graph.resources.get(rid)
        if resource is None:
            raise UnknownEntity("resource", rid)
        return resource

    def _apply_report(self, report: DeadlockReport) -> None:
        self._last_report = report
        self._state = EngineState.DEADLOCKED if report.deadlock_exists else EngineState.STABLE

    def _reevaluate(self) -> None:
        """Refresh deadlock state after a mutation that can break a cycle."""
        if self._state == EngineState.DEADLOCKED:
            self._apply_report(detect_deadlock(self.graph))

    @contextmanager
    def _atomic(self):
        """Roll the graph and engine state back if the block raises."""
        snapshot = self.graph.snapshot()
        state, report, num_events = self._state, self._last_report, len(self.events.events)
        try:
            yield
        except Exception:
            self.graph.restore(snapshot)
            self._state, self._last_report = state, report
            del self.events.events[num_events:]
            raise

    @staticmethod
    def _released_str(released: List[int]) -> str:
        return ", ".join(f"R{rid}" for rid in released) if released else "none"


class SynchronizedEngine:
    """
    Thread-safe wrapper: every engine call runs under one lock guarding the graph.

    No engine operation blocks, so the lock is only held for the duration of
    a single in-memory call.
    """

    def __init__(self, engine: Optional[AllocationGraphEngine] = None):
        self._engine = engine if engine is not None else AllocationGraphEngine()
        self._lock = threading.RLock()

    @property
    def lock(self) -> threading.RLock:
        """The guarding lock, for callers that need several calls to appear atomic."""
        return self._lock

    def __getattr__(self, name):
        with self._lock:
            attr = getattr(self._engine, name)
        if not callable(attr):
            return attr

        def locked(*args, **kwargs):
            with self._lock:
                return attr(*args, **kwargs)

        locked.__name__ = name
        locked.__doc__ = attr.__doc__
        return locked
