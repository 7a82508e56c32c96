"""
Policy Analysis Library for the Resource-Allocation Graph Deadlock Engine.

Called by simulator.py --compare-policies to run one scenario under every
victim policy and compare who gets terminated.
This is a library module, not a standalone CLI tool.
"""

from typing import Callable, Dict, List, Optional
from dataclasses import dataclass, field


@dataclass
class PolicyComparisonResult:
    """Outcome of one scenario run under one victim policy."""
    policy_name: str
    victims: List[int] = field(default_factory=list)
    victims_by_personality: Dict[str, int] = field(default_factory=dict)
    deadlock_count: int = 0
    surviving_processes: int = 0
    final_state: str = ""
    peak_risk: int = 0

    @property
    def resolutions(self) -> int:
        return len(self.victims)

    def display(self) -> str:
        """Format results for display."""
        victims_str = ", ".join(f"P{pid}" for pid in self.victims) if self.victims else "none"
        result = f"\nPolicy: {self.policy_name.upper()}\n"
        result += f"  Deadlocks detected: {self.deadlock_count}\n"
        result += f"  Victims ({self.resolutions}): {victims_str}\n"
        if self.victims_by_personality:
            breakdown = ", ".join(
                f"{name.lower()}={count}" for name, count in sorted(self.victims_by_personality.items())
            )
            result += f"  By personality: {breakdown}\n"
        result += f"  Surviving processes: {self.surviving_processes}\n"
        result += f"  Final state: {self.final_state} (peak risk {self.peak_risk}%)"
        return result


def compare_policies(
    scenario_path: str,
    policy_names: List[str],
    run_scenario_func: Optional[Callable] = None,
    seed: Optional[int] = None
) -> List[PolicyComparisonResult]:
    """
    Run a scenario once per victim policy.

    Args:
        scenario_path: Path to scenario JSON file
        policy_names: Policies to compare
        run_scenario_func: Function running one scenario (injected from simulator.py);
            must return (engine, metrics)
        seed: Seed for the random policy

    Returns:
        One result per policy, in the given order
    """
    if run_scenario_func is None:
        raise ValueError("run_scenario_func must be provided")

    results = []
    for name in policy_names:
        engine, metrics = run_scenario_func(
            scenario_path=scenario_path,
            policy_name=name,
            seed=seed,
            quiet=True
        )
        results.append(PolicyComparisonResult(
            policy_name=name,
            victims=list(metrics.victims),
            victims_by_personality=dict(metrics.victims_by_personality),
            deadlock_count=metrics.deadlock_count,
            surviving_processes=len(engine.processes()),
            final_state=engine.state.value,
            peak_risk=metrics.get_peak_risk()
        ))

    return results


def format_comparison(results: List[PolicyComparisonResult], scenario: str = None) -> str:
    """Format a policy comparison as a report."""
    lines = ["\n" + "="*60, "VICTIM POLICY COMPARISON", "="*60]
    if scenario:
        lines.append(f"Scenario: {scenario}")
    for result in results:
        lines.append(result.display())

    agreeing = {tuple(r.victims) for r in results}
    lines.append("")
    if len(agreeing) == 1:
        lines.append("All policies chose the same victims.")
    else:
        lines.append(f"Policies disagree: {len(agreeing)} distinct victim sequences.")
    lines.append("="*60)
    return "\n".join(lines)
