"""
Metrics Tracking for the Resource-Allocation Graph Deadlock Engine.

Tracks detection and resolution metrics across a scenario run.
"""

from dataclasses import dataclass, field
from typing import Dict, List
import statistics


@dataclass
class EngineMetrics:
    """
    Accumulated metrics for a single scenario run.

    Tracks four key metrics:
    1. Deadlock Count: Detection passes that found at least one cycle
    2. Victims: Processes terminated by resolution, by personality
    3. Cycle Size: Average number of processes per reported cycle
    4. Risk: Average advisory risk score sampled after each event
    """
    deadlock_count: int = 0
    detection_runs: int = 0
    total_processes: int = 0
    total_resources: int = 0

    victims: List[int] = field(default_factory=list)
    victims_by_personality: Dict[str, int] = field(default_factory=dict)
    cycle_sizes: List[int] = field(default_factory=list)
    risk_samples: List[int] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    def record_detection(self, deadlocked: bool, cycles: List[List[int]]) -> None:
        """
        Record one detection pass.

        Args:
            deadlocked: Whether a deadlock was found
            cycles: Cycles in the report
        """
        self.detection_runs += 1
        if deadlocked:
            self.deadlock_count += 1
            self.cycle_sizes.extend(len(cycle) for cycle in cycles)

    def record_victim(self, pid: int, personality: str) -> None:
        """Record a process terminated by resolution."""
        self.victims.append(pid)
        self.victims_by_personality[personality] = self.victims_by_personality.get(personality, 0) + 1

    def record_risk(self, score: int) -> None:
        self.risk_samples.append(score)

    def record_error(self, message: str) -> None:
        self.errors.append(message)

    def get_avg_cycle_size(self) -> float:
        if not self.cycle_sizes:
            return 0.0
        return statistics.mean(self.cycle_sizes)

    def get_avg_risk(self) -> float:
        if not self.risk_samples:
            return 0.0
        return statistics.mean(self.risk_samples)

    def get_peak_risk(self) -> int:
        return max(self.risk_samples, default=0)


def format_metrics_report(
    metrics: EngineMetrics,
    verbose: bool = False,
    policy: str = None,
    scenario: str = None,
    final_state: str = None
) -> str:
    """
    Format metrics for display at end of a run.

    Args:
        metrics: EngineMetrics instance with collected data
        verbose: If True, include metric formulas
        policy: Victim policy used
        scenario: Scenario file path
        final_state: Engine state at the end of the run

    Returns:
        Formatted metrics report string
    """
    lines = []
    lines.append("\n" + "="*60)
    lines.append("ENGINE METRICS")
    lines.append("="*60)

    if policy:
        lines.append(f"Victim Policy: {policy.upper()}")
    if scenario:
        lines.append(f"Scenario: {scenario}")
    if final_state:
        lines.append(f"Final State: {final_state}")
    if policy or scenario or final_state:
        lines.append("")

    lines.append(f"Processes Created: {metrics.total_processes}")
    lines.append(f"Resources Created: {metrics.total_resources}")
    lines.append("")

    lines.append("KEY METRICS:")
    lines.append("-" * 60)
    lines.append(f"1. Deadlocks Detected: {metrics.deadlock_count}/{metrics.detection_runs} detection runs")
    victims_str = ", ".join(f"P{pid}" for pid in metrics.victims) if metrics.victims else "none"
    lines.append(f"2. Victims: {len(metrics.victims)} ({victims_str})")
    lines.append(f"3. Average Cycle Size: {metrics.get_avg_cycle_size():.2f} processes")
    lines.append(f"4. Risk: average {metrics.get_avg_risk():.1f}, peak {metrics.get_peak_risk()}")

    if metrics.victims_by_personality:
        lines.append("")
        lines.append("VICTIMS BY PERSONALITY:")
        lines.append("-" * 60)
        for personality in sorted(metrics.victims_by_personality):
            lines.append(f"  {personality:12} {metrics.victims_by_personality[personality]}")

    if metrics.errors:
        lines.append("")
        lines.append("REJECTED OPERATIONS:")
        lines.append("-" * 60)
        for error in metrics.errors:
            lines.append(f"  {error}")

    if verbose:
        lines.append("")
        lines.append("METRIC FORMULAS:")
        lines.append("-" * 60)
        lines.append("1. Deadlocks Detected: detection passes reporting at least one cycle")
        lines.append("2. Victims: processes removed by resolution, in order")
        lines.append("3. Cycle Size: mean length of reported elementary cycles")
        lines.append("4. Risk: 15 x P + 10 x R (+20 if P > R), capped at 99; 100 while deadlocked")

    lines.append("="*60)
    return "\n".join(lines)
