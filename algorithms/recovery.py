"""
Deadlock Recovery for the Resource-Allocation Graph Deadlock Engine.

Implements victim-selection policies and process termination.
"""

import random
from typing import Callable, Dict, List, Optional, Tuple, Union

from models.allocation_graph import AllocationGraph
from models.process import Process, Personality


# Default victim weights: higher score = more likely to be terminated
DEFAULT_PERSONALITY_WEIGHTS: Dict[Personality, float] = {
    Personality.GREEDY: 4.0,
    Personality.AGGRESSIVE: 3.0,
    Personality.PATIENT: 2.0,
    Personality.COOPERATIVE: 1.0,
}

DEFAULT_FAILURE_BIAS = 0.5


class VictimPolicy:
    """
    Base class for victim-selection strategies.

    Subclasses implement score(); the highest-scoring deadlocked process is
    terminated. record_victim() is called after every termination so stateful
    policies can learn from earlier resolutions.
    """

    name = "base"

    def score(self, process: Process, graph: AllocationGraph) -> float:
        raise NotImplementedError

    def record_victim(self, process: Process) -> None:
        pass


class PersonalityPolicy(VictimPolicy):
    """
    Weight victims by personality class, biased by earlier failures.

    score = weight[personality] + failure_bias * failures[personality]

    where failures counts how many earlier victims had that personality.
    """

    name = "personality"

    def __init__(
        self,
        weights: Optional[Dict[Personality, float]] = None,
        failure_bias: float = DEFAULT_FAILURE_BIAS
    ):
        self.weights = dict(DEFAULT_PERSONALITY_WEIGHTS)
        if weights:
            for personality, weight in weights.items():
                self.weights[Personality.parse(personality)] = float(weight)
        self.failure_bias = failure_bias
        self.failures: Dict[Personality, int] = {p: 0 for p in Personality}

    def score(self, process: Process, graph: AllocationGraph) -> float:
        return (
            self.weights.get(process.personality, 0.0)
            + self.failure_bias * self.failures[process.personality]
        )

    def record_victim(self, process: Process) -> None:
        self.failures[process.personality] += 1


class YoungestPolicy(VictimPolicy):
    """Terminate the most recently created process."""

    name = "youngest"

    def score(self, process: Process, graph: AllocationGraph) -> float:
        return process.arrival


class FewestResourcesPolicy(VictimPolicy):
    """Minimum-cost victim: terminate the process holding the fewest resources."""

    name = "fewest_resources"

    def score(self, process: Process, graph: AllocationGraph) -> float:
        return -len(graph.held_by(process.pid))


class RandomPolicy(VictimPolicy):
    """Uniformly random victim, reproducible through a seed."""

    name = "random"

    def __init__(self, seed: Optional[int] = None):
        self.rng = random.Random(seed)

    def score(self, process: Process, graph: AllocationGraph) -> float:
        return self.rng.random()


PolicyLike = Union[VictimPolicy, Callable[[Process], float]]

POLICIES = {
    PersonalityPolicy.name: PersonalityPolicy,
    YoungestPolicy.name: YoungestPolicy,
    FewestResourcesPolicy.name: FewestResourcesPolicy,
    RandomPolicy.name: RandomPolicy,
}


def get_policy(name: str, **kwargs) -> VictimPolicy:
    """
    Build a policy by name.

    Args:
        name: One of POLICIES
        **kwargs: Constructor arguments for the policy

    Raises:
        ValueError: If the name is unknown
    """
    if name not in POLICIES:
        raise ValueError(f"Unknown victim policy '{name}' (expected one of: {', '.join(POLICIES)})")
    return POLICIES[name](**kwargs)


def score_processes(
    deadlocked_pids: List[int],
    graph: AllocationGraph,
    policy: PolicyLike
) -> Dict[int, float]:
    """
    Score every deadlocked process with a policy.

    A policy is either a VictimPolicy or a plain callable Process -> number.
    """
    scores = {}
    for pid in deadlocked_pids:
        process = graph.processes[pid]
        if isinstance(policy, VictimPolicy):
            scores[pid] = float(policy.score(process, graph))
        else:
            scores[pid] = float(policy(process))
    return scores


def select_victim(
    deadlocked_pids: List[int],
    graph: AllocationGraph,
    policy: PolicyLike
) -> Tuple[int, Dict[int, float]]:
    """
    Select victim process for termination.

    The highest score wins; ties go to the lowest PID (oldest process).

    Args:
        deadlocked_pids: List of PIDs in deadlock (non-empty)
        graph: Current allocation graph
        policy: Scoring policy

    Returns:
        Tuple of (victim PID, scores by PID)
    """
    scores = score_processes(deadlocked_pids, graph, policy)
    victim_pid = max(sorted(deadlocked_pids), key=lambda pid: (scores[pid], -pid))
    return victim_pid, scores


def terminate_process(pid: int, graph: AllocationGraph) -> Tuple[Process, List[int]]:
    """
    Terminate a process and release all its resources.

    Process termination:
    - Remove every request edge of the process
    - Free every resource it held (available for later allocation)
    - Remove the process node

    Args:
        pid: Process ID to terminate (must exist)
        graph: Current allocation graph

    Returns:
        Tuple of (removed process, RIDs it released)
    """
    process = graph.processes[pid]
    released = graph.remove_process(pid)
    process.in_deadlock = False

    graph.assert_consistency(f"after terminating P{pid}")

    return process, released
