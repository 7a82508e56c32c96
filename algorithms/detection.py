"""
Deadlock Detection Algorithm for the Resource-Allocation Graph Deadlock Engine.

Implements exact wait-for graph cycle detection for single-instance resources.
"""

from dataclasses import dataclass, field
from itertools import islice
from typing import Dict, List, Set

import networkx as nx

from models.allocation_graph import AllocationGraph


# Upper bound on elementary cycles listed in a report. Membership is always exact.
MAX_REPORTED_CYCLES = 100


@dataclass
class DeadlockReport:
    """
    Result of one detection pass.

    Attributes:
        deadlocked_pids: Every process lying on at least one wait-for cycle (sorted)
        cycles: Distinct elementary cycles, each rotated to start at its lowest PID
        resources: RIDs held and requested inside the deadlocked set (sorted)
        wait_for: Wait-for graph the report was computed from
    """
    deadlocked_pids: List[int] = field(default_factory=list)
    cycles: List[List[int]] = field(default_factory=list)
    resources: List[int] = field(default_factory=list)
    wait_for: Dict[int, List[int]] = field(default_factory=dict)

    @property
    def deadlock_exists(self) -> bool:
        return len(self.deadlocked_pids) > 0

    def __str__(self) -> str:
        if not self.deadlock_exists:
            return "No deadlock"
        cycles_str = "; ".join(
            " -> ".join(f"P{pid}" for pid in cycle + cycle[:1]) for cycle in self.cycles
        )
        return f"Deadlock among {[f'P{pid}' for pid in self.deadlocked_pids]} (cycles: {cycles_str})"


def _to_digraph(wait_for: Dict[int, List[int]]) -> nx.DiGraph:
    """Build a networkx digraph from a wait-for adjacency list."""
    graph = nx.DiGraph()
    graph.add_nodes_from(wait_for)
    for pid, targets in wait_for.items():
        graph.add_edges_from((pid, target) for target in targets)
    return graph


def _rotate_to_lowest(cycle: List[int]) -> List[int]:
    start = cycle.index(min(cycle))
    return cycle[start:] + cycle[:start]


def find_cyclic_components(wait_for: Dict[int, List[int]]) -> List[List[int]]:
    """
    Find strongly connected components that contain a cycle.

    A process lies on a wait-for cycle exactly when its component has more than
    one member, or it waits on itself.

    Args:
        wait_for: Wait-for adjacency list

    Returns:
        Sorted list of sorted components
    """
    graph = _to_digraph(wait_for)

    components = []
    for component in nx.strongly_connected_components(graph):
        node = next(iter(component))
        if len(component) > 1 or graph.has_edge(node, node):
            components.append(sorted(component))

    return sorted(components)


def find_cycles(
    wait_for: Dict[int, List[int]],
    components: List[List[int]],
    limit: int = MAX_REPORTED_CYCLES
) -> List[List[int]]:
    """
    Enumerate distinct elementary cycles (Johnson's algorithm).

    The search stops as soon as `limit` cycles are found, so its cost grows
    with the number of cycles reported, not with the number of cycles present.

    Args:
        wait_for: Wait-for adjacency list
        components: Cyclic components from find_cyclic_components()
        limit: Maximum number of cycles to return

    Returns:
        Cycles rotated to start at their lowest PID, sorted within each
        component, components in the given order
    """
    graph = _to_digraph(wait_for)
    cycles = []

    for component in components:
        if len(cycles) >= limit:
            break
        found = islice(nx.simple_cycles(graph.subgraph(component)), limit - len(cycles))
        cycles.extend(sorted(_rotate_to_lowest(list(cycle)) for cycle in found))

    return cycles


def detect_deadlock(graph: AllocationGraph) -> DeadlockReport:
    """
    Detect deadlock by searching the wait-for graph for cycles.

    Algorithm (Single-Instance Resources):
    1. For every request P -> R where R is held by Q, add wait-for edge P -> Q
    2. Find the cyclic strongly connected components; their members are deadlocked
    3. Enumerate the elementary cycles inside those components
    4. Set in_deadlock on members, clear it on everyone else

    Time Complexity: O(P + E) for membership; cycle listing costs
    O(P + E) per reported cycle, at most MAX_REPORTED_CYCLES of them.

    Args:
        graph: Current allocation graph

    Returns:
        DeadlockReport (empty when no cycle exists)

    References:
        Silberschatz, A., Galvin, P. B., & Gagne, G. (2018).
        Operating System Concepts (10th ed.). Chapter 7.6.1: Single Instance
        of Each Resource Type.
    """
    wait_for = graph.wait_for_graph()
    components = find_cyclic_components(wait_for)

    deadlocked: Set[int] = set()
    for component in components:
        deadlocked.update(component)

    for pid, process in graph.processes.items():
        process.in_deadlock = pid in deadlocked

    if not deadlocked:
        return DeadlockReport(wait_for=wait_for)

    involved_resources = sorted(
        rid for pid, rid in graph.requests
        if pid in deadlocked and graph.resources[rid].holder in deadlocked
    )

    return DeadlockReport(
        deadlocked_pids=sorted(deadlocked),
        cycles=find_cycles(wait_for, components),
        resources=involved_resources,
        wait_for=wait_for
    )
