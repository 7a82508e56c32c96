"""
Deadlock Risk Heuristic for the Resource-Allocation Graph Deadlock Engine.

Advisory only: the score has no correctness contract.
"""

from enum import Enum

from models.allocation_graph import AllocationGraph


PROCESS_WEIGHT = 15
RESOURCE_WEIGHT = 10
SCARCITY_PENALTY = 20

# Ceiling while no deadlock is active, so 100 always means "deadlocked"
STABLE_CEILING = 99
DEADLOCK_SCORE = 100

MEDIUM_RISK_THRESHOLD = 40
HIGH_RISK_THRESHOLD = 70


class RiskLevel(Enum):
    """Risk bands shown to the operator."""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


def risk_score(graph: AllocationGraph, deadlocked: bool) -> int:
    """
    Compute the deadlock risk score.

    Formula:
        risk = 15 x processes + 10 x resources
        risk += 20 if processes > resources (scarcity)
        risk = min(risk, 99)            while stable
        risk = 100                      while deadlocked

    Non-decreasing in process count when everything else is fixed.

    Args:
        graph: Current allocation graph
        deadlocked: Whether the engine is in the deadlocked state

    Returns:
        Integer in [0, 100]
    """
    if deadlocked:
        return DEADLOCK_SCORE

    risk = PROCESS_WEIGHT * graph.num_processes + RESOURCE_WEIGHT * graph.num_resources
    if graph.num_processes > graph.num_resources:
        risk += SCARCITY_PENALTY

    return min(risk, STABLE_CEILING)


def risk_level(score: int) -> RiskLevel:
    """Map a risk score to its band."""
    if score >= HIGH_RISK_THRESHOLD:
        return RiskLevel.HIGH
    if score >= MEDIUM_RISK_THRESHOLD:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW
