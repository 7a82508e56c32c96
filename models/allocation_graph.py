"""
Allocation Graph model for the Resource-Allocation Graph Deadlock Engine.

Holds every live process, resource and edge, and derives the matrices
used by wait-for graph construction and risk scoring.
"""

import copy
import numpy as np
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Set, Tuple

from models.process import Process
from models.resource import Resource


class EdgeKind(Enum):
    """Edge types in the resource-allocation graph."""
    ASSIGNMENT = "ASSIGNMENT"  # resource -> process (held by)
    REQUEST = "REQUEST"        # process -> resource (waiting for)


@dataclass(frozen=True)
class Edge:
    """A directed, typed edge between a process and a resource."""
    kind: EdgeKind
    pid: int
    rid: int

    def __str__(self) -> str:
        if self.kind == EdgeKind.ASSIGNMENT:
            return f"R{self.rid} -> P{self.pid}"
        return f"P{self.pid} -> R{self.rid}"


@dataclass
class AllocationGraph:
    """
    Resource-allocation graph.

    Assignments are stored on the resources themselves (Resource.holder), so a
    resource can never carry more than one. Requests are (pid, rid) pairs.

    Attributes:
        processes: Live processes keyed by PID (creation order)
        resources: Live resources keyed by RID (creation order)
        requests: Set of (pid, rid) request edges
        allocation_matrix: [P][R] 1 where process holds resource
        request_matrix: [P][R] 1 where process waits for resource
        wait_for_matrix: [P][P] non-zero where process waits on another's resource
    """
    processes: Dict[int, Process] = field(default_factory=dict)
    resources: Dict[int, Resource] = field(default_factory=dict)
    requests: Set[Tuple[int, int]] = field(default_factory=set)

    # Matrices (initialized as None, computed on first access)
    _allocation_matrix: Optional[np.ndarray] = field(default=None, compare=False, repr=False)
    _request_matrix: Optional[np.ndarray] = field(default=None, compare=False, repr=False)
    _wait_for_matrix: Optional[np.ndarray] = field(default=None, compare=False, repr=False)

    @property
    def num_processes(self) -> int:
        """Number of live processes."""
        return len(self.processes)

    @property
    def num_resources(self) -> int:
        """Number of live resources."""
        return len(self.resources)

    def process_ids(self) -> List[int]:
        return sorted(self.processes)

    def resource_ids(self) -> List[int]:
        return sorted(self.resources)

    @property
    def allocation_matrix(self) -> np.ndarray:
        """Get allocation matrix [P][R]."""
        if self._allocation_matrix is None:
            self._build_allocation_matrix()
        return self._allocation_matrix

    @property
    def request_matrix(self) -> np.ndarray:
        """Get request matrix [P][R]."""
        if self._request_matrix is None:
            self._build_request_matrix()
        return self._request_matrix

    @property
    def wait_for_matrix(self) -> np.ndarray:
        """
        Get wait-for matrix [P][P].
        Computed as: WaitFor = Request x Allocation^T
        Entry [i][j] counts the resources process i waits for that process j holds.
        """
        if self._wait_for_matrix is None:
            self._wait_for_matrix = self.request_matrix @ self.allocation_matrix.T
        return self._wait_for_matrix

    def _build_allocation_matrix(self) -> None:
        """Build allocation matrix from resource holders."""
        pids = self.process_ids()
        rids = self.resource_ids()
        p_index = {pid: i for i, pid in enumerate(pids)}
        self._allocation_matrix = np.zeros((len(pids), len(rids)), dtype=int)
        for j, rid in enumerate(rids):
            holder = self.resources[rid].holder
            if holder is not None:
                self._allocation_matrix[p_index[holder]][j] = 1

    def _build_request_matrix(self) -> None:
        """Build request matrix from request edges."""
        p_index = {pid: i for i, pid in enumerate(self.process_ids())}
        r_index = {rid: j for j, rid in enumerate(self.resource_ids())}
        self._request_matrix = np.zeros((len(p_index), len(r_index)), dtype=int)
        for pid, rid in self.requests:
            self._request_matrix[p_index[pid]][r_index[rid]] = 1

    def refresh_matrices(self) -> None:
        """Invalidate derived matrices after a mutation."""
        self._allocation_matrix = None
        self._request_matrix = None
        self._wait_for_matrix = None

    def wait_for_graph(self) -> Dict[int, List[int]]:
        """
        Build the wait-for graph as an adjacency list.

        Returns:
            Dictionary mapping PID -> sorted PIDs it is waiting on.
            Only processes with at least one outgoing edge appear.
        """
        pids = self.process_ids()
        graph = {}
        for i, j in zip(*np.nonzero(self.wait_for_matrix)):
            graph.setdefault(pids[i], []).append(pids[j])
        return {pid: sorted(targets) for pid, targets in sorted(graph.items())}

    # --- primitive mutations (validation is the engine's job) ---

    def add_process(self, process: Process) -> None:
        self.processes[process.pid] = process
        self.refresh_matrices()

    def add_resource(self, resource: Resource) -> None:
        self.resources[resource.rid] = resource
        self.refresh_matrices()

    def add_request(self, pid: int, rid: int) -> None:
        self.requests.add((pid, rid))
        self.refresh_matrices()

    def assign(self, rid: int, pid: int) -> None:
        """Turn any pending request into an assignment."""
        self.requests.discard((pid, rid))
        self.resources[rid].assign(pid)
        self.refresh_matrices()

    def unassign(self, rid: int) -> Optional[int]:
        previous = self.resources[rid].free()
        self.refresh_matrices()
        return previous

    def remove_process(self, pid: int) -> List[int]:
        """
        Remove a process with all incident edges.

        Returns:
            RIDs of the resources it held (now free)
        """
        released = self.held_by(pid)
        for rid in released:
            self.resources[rid].free()
        self.requests = {(p, r) for p, r in self.requests if p != pid}
        del self.processes[pid]
        self.refresh_matrices()
        return released

    def remove_resource(self, rid: int) -> None:
        self.requests = {(p, r) for p, r in self.requests if r != rid}
        del self.resources[rid]
        self.refresh_matrices()

    # --- queries ---

    def held_by(self, pid: int) -> List[int]:
        """RIDs currently assigned to a process."""
        return [rid for rid in self.resource_ids() if self.resources[rid].holder == pid]

    def requested_by(self, pid: int) -> List[int]:
        """RIDs a process is waiting for."""
        return sorted(r for p, r in self.requests if p == pid)

    def edges(self) -> List[Edge]:
        """All edges, assignments first, each group ordered by (pid, rid)."""
        assignments = [
            Edge(EdgeKind.ASSIGNMENT, r.holder, r.rid)
            for r in self.resources.values() if r.holder is not None
        ]
        requests = [Edge(EdgeKind.REQUEST, pid, rid) for pid, rid in self.requests]
        key = lambda e: (e.pid, e.rid)
        return sorted(assignments, key=key) + sorted(requests, key=key)

    def snapshot(self) -> Dict:
        """
        Create snapshot of the current graph for rollback.

        Returns:
            Dictionary holding independent copies of all nodes and edges
        """
        return {
            'processes': copy.deepcopy(self.processes),
            'resources': copy.deepcopy(self.resources),
            'requests': set(self.requests),
        }

    def restore(self, snapshot: Dict) -> None:
        """
        Restore graph from snapshot.

        Args:
            snapshot: State dictionary from previous snapshot()
        """
        self.processes = copy.deepcopy(snapshot['processes'])
        self.resources = copy.deepcopy(snapshot['resources'])
        self.requests = set(snapshot['requests'])
        self.refresh_matrices()

    def to_dict(self) -> Dict:
        """Serializable view of the graph for presentation layers."""
        return {
            'processes': [
                {
                    'pid': p.pid,
                    'personality': p.personality.value,
                    'in_deadlock': p.in_deadlock,
                    'holds': self.held_by(p.pid),
                    'waits_for': self.requested_by(p.pid),
                }
                for p in (self.processes[pid] for pid in self.process_ids())
            ],
            'resources': [
                {'rid': r.rid, 'holder': r.holder}
                for r in (self.resources[rid] for rid in self.resource_ids())
            ],
            'edges': [
                {'kind': e.kind.value, 'pid': e.pid, 'rid': e.rid} for e in self.edges()
            ],
        }

    def display(self) -> str:
        """
        Generate readable string representation of the graph.

        Returns:
            Formatted string showing nodes, edges and the wait-for graph
        """
        output = []
        output.append("\n" + "="*60)
        output.append("ALLOCATION GRAPH")
        output.append("="*60)

        output.append("\nProcesses:")
        for pid in self.process_ids():
            p = self.processes[pid]
            flag = " [DEADLOCKED]" if p.in_deadlock else ""
            output.append(f"  P{pid}: {p.personality.value:12}{flag}")

        output.append("\nResources:")
        for rid in self.resource_ids():
            holder = self.resources[rid].holder
            output.append(f"  R{rid}: " + (f"held by P{holder}" if holder is not None else "free"))

        output.append("\nEdges:")
        for edge in self.edges():
            output.append(f"  {edge}  ({edge.kind.value.lower()})")

        output.append("\nWait-For Graph:")
        for pid, targets in self.wait_for_graph().items():
            output.append(f"  P{pid} -> " + ", ".join(f"P{t}" for t in targets))

        output.append("\n" + "="*60)
        return "\n".join(output)

    def assert_consistency(self, context=""):
        """Verify graph invariants.

        Args:
            context: Description of when this check is being run (for error messages)

        Raises:
            AssertionError: If an invariant is violated
        """
        for rid, resource in self.resources.items():
            assert resource.holder is None or resource.holder in self.processes, (
                f"R{rid} held by unknown process P{resource.holder} {context}"
            )

        for pid, rid in self.requests:
            assert pid in self.processes and rid in self.resources, (
                f"Dangling request P{pid} -> R{rid} {context}"
            )
            assert self.resources[rid].holder != pid, (
                f"P{pid} both holds and requests R{rid} {context}"
            )
