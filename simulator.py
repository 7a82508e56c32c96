#!/usr/bin/env python3
"""
Resource-Allocation Graph Deadlock Engine
Command-line scenario runner.

Replays a JSON scenario against the engine, logging each operation, every
detection pass and every victim, then resolves any remaining deadlock.
"""

import argparse
import sys
from typing import Any, Dict, Optional, Tuple

from engine import AllocationGraphEngine, EngineState
from models.errors import EngineError
from algorithms.recovery import POLICIES, VictimPolicy, get_policy
from algorithms.risk import RiskLevel
from analysis.metrics import EngineMetrics, format_metrics_report
from analysis.analyzer import compare_policies, format_comparison
from utils.logger import SimulatorLogger
from utils.scenario_loader import Scenario, ScenarioLoadError, load_scenario


DEFAULT_POLICY = "personality"
DEFAULT_MAX_ROUNDS = 100


def run_scenario(
    scenario_path: str,
    policy_name: Optional[str] = None,
    seed: Optional[int] = None,
    failure_bias: Optional[float] = None,
    max_rounds: int = DEFAULT_MAX_ROUNDS,
    detect_only: bool = False,
    verbose: bool = False,
    log_file: Optional[str] = None,
    quiet: bool = False
) -> Tuple[AllocationGraphEngine, EngineMetrics]:
    """
    Run a scenario against a fresh engine.

    Order of work:
    1. Create the initial processes and resources
    2. Apply every scenario operation in order (rejections are logged, not fatal)
    3. Unless detect_only, detect and resolve until no deadlock remains

    Args:
        scenario_path: Path to scenario JSON file
        policy_name: Victim policy (overrides the scenario's; default personality)
        seed: Seed for the random policy
        failure_bias: Learned-failure bias for the personality policy
        max_rounds: Cap on victims in the final resolution loop
        detect_only: Report the final deadlock without resolving it
        verbose: Enable debug logging
        log_file: Optional file to copy the log to
        quiet: Suppress console output

    Returns:
        Tuple of (engine after the run, collected metrics)

    Raises:
        ScenarioLoadError: If the scenario cannot be loaded
    """
    logger = SimulatorLogger(verbose=verbose, log_file=log_file, echo=not quiet)
    metrics = EngineMetrics()

    try:
        scenario = load_scenario(scenario_path)
        policy = _build_policy(scenario, policy_name, seed, failure_bias)
    except ScenarioLoadError as e:
        logger.log(f"Failed to load scenario: {e}", "error")
        logger.close()
        raise

    engine = AllocationGraphEngine(policy=policy)

    logger.log(f"\n{'='*60}")
    logger.log(f"SCENARIO START: victim policy {_policy_label(policy).upper()}")
    logger.log(f"Scenario: {scenario_path}")
    if scenario.description:
        logger.log(scenario.description)
    logger.log(f"{'='*60}\n")

    for personality in scenario.personalities:
        engine.add_process(personality)
    for _ in range(scenario.resource_count):
        engine.add_resource()
    metrics.total_processes = len(scenario.personalities)
    metrics.total_resources = scenario.resource_count

    logger.log(f"Initial graph: {len(engine.processes())} processes, {len(engine.resources())} resources")
    risk = _track_risk(engine, metrics, logger, None)

    for index, op in enumerate(scenario.operations, start=1):
        _apply_operation(index, op, engine, metrics, logger)
        risk = _track_risk(engine, metrics, logger, risk)

    logger.log(f"\n{'-'*60}")
    logger.log("FINAL DEADLOCK CHECK")
    logger.log(f"{'-'*60}")

    _detect(engine, metrics, logger)
    if detect_only:
        if engine.state == EngineState.DEADLOCKED:
            logger.log("Detect-only mode - leaving deadlock unresolved")
    else:
        rounds = 0
        while engine.state == EngineState.DEADLOCKED and rounds < max_rounds:
            _resolve(engine, metrics, logger)
            rounds += 1
            if engine.state == EngineState.DEADLOCKED:
                logger.log("Deadlock persists - selecting another victim")
                _detect(engine, metrics, logger)
        if engine.state == EngineState.DEADLOCKED:
            logger.log(f"Deadlock still present after {max_rounds} rounds", "warning")
    _track_risk(engine, metrics, logger, risk)

    logger.log_graph(engine.graph.display())
    logger.log(f"\n{'='*60}")
    logger.log("SCENARIO COMPLETE")
    logger.log(f"{'='*60}")
    logger.log(format_metrics_report(
        metrics,
        verbose=verbose,
        policy=_policy_label(policy),
        scenario=scenario_path,
        final_state=engine.state.value
    ))

    logger.close()
    return engine, metrics


def _build_policy(
    scenario: Scenario,
    policy_name: Optional[str],
    seed: Optional[int],
    failure_bias: Optional[float]
) -> VictimPolicy:
    """
    Build the victim policy from CLI arguments and the scenario's configuration.

    CLI arguments win over scenario values. Scenario options that belong to a
    different policy are ignored.
    """
    config: Dict[str, Any] = dict(scenario.victim_policy)
    name = policy_name or config.pop('name', DEFAULT_POLICY)
    config.pop('name', None)

    kwargs: Dict[str, Any] = {}
    if name == "personality":
        if 'weights' in config:
            kwargs['weights'] = config['weights']
        if failure_bias is not None:
            kwargs['failure_bias'] = failure_bias
        elif 'failure_bias' in config:
            kwargs['failure_bias'] = config['failure_bias']
    elif name == "random":
        kwargs['seed'] = seed if seed is not None else config.get('seed')

    try:
        return get_policy(name, **kwargs)
    except ValueError as e:
        raise ScenarioLoadError(str(e))


def _policy_label(policy) -> str:
    return getattr(policy, 'name', 'custom')


def _describe(op: Dict[str, Any]) -> str:
    """Human-readable form of a scenario operation."""
    op_type = op['type']
    p = f"P{op.get('process')}"
    r = f"R{op.get('resource')}"
    if op_type == 'request':
        return f"{p} requests {r}"
    elif op_type == 'allocate':
        return f"{r} assigned to {p}"
    elif op_type == 'release':
        return f"{r} released"
    elif op_type == 'remove_process':
        return f"{p} removed"
    elif op_type == 'remove_resource':
        return f"{r} removed"
    elif op_type == 'add_process':
        return f"new {op.get('personality', 'cooperative')} process"
    elif op_type == 'add_resource':
        return "new resource"
    else:
        return op_type


def _apply_operation(
    index: int,
    op: Dict[str, Any],
    engine: AllocationGraphEngine,
    metrics: EngineMetrics,
    logger: SimulatorLogger
) -> None:
    """
    Apply one scenario operation.

    Engine errors are logged as rejections and recorded in the metrics; the
    graph is unchanged by a rejected operation.
    """
    op_type = op['type']

    if op_type == 'detect':
        _detect(engine, metrics, logger)
        return
    if op_type == 'resolve':
        try:
            _resolve(engine, metrics, logger)
        except EngineError as e:
            logger.log_operation(index, "resolve deadlock", False, str(e))
            metrics.record_error(f"#{index} resolve: {e}")
        return

    description = _describe(op)
    try:
        if op_type == 'request':
            engine.request_resource(op['process'], op['resource'])
        elif op_type == 'allocate':
            engine.allocate_resource(op['resource'], op['process'])
        elif op_type == 'release':
            engine.release_resource(op['resource'])
        elif op_type == 'remove_process':
            engine.remove_process(op['process'])
        elif op_type == 'remove_resource':
            engine.remove_resource(op['resource'])
        elif op_type == 'add_process':
            pid = engine.add_process(op.get('personality', 'cooperative'))
            description += f" P{pid}"
            metrics.total_processes += 1
        elif op_type == 'add_resource':
            rid = engine.add_resource()
            description += f" R{rid}"
            metrics.total_resources += 1
    except EngineError as e:
        logger.log_operation(index, description, False, str(e))
        metrics.record_error(f"#{index} {description}: {e}")
        return

    logger.log_operation(index, description, True)


def _detect(engine: AllocationGraphEngine, metrics: EngineMetrics, logger: SimulatorLogger) -> None:
    report = engine.detect_deadlock()
    metrics.record_detection(report.deadlock_exists, report.cycles)

    if report.deadlock_exists:
        logger.log(f"\n{'!'*60}")
        logger.log_deadlock(report.deadlocked_pids, report.cycles)
        logger.log(f"{'!'*60}\n")
    else:
        logger.log("Deadlock check: no deadlock detected")


def _resolve(engine: AllocationGraphEngine, metrics: EngineMetrics, logger: SimulatorLogger) -> None:
    holdings = {p.pid: (p.personality.value, engine.graph.held_by(p.pid)) for p in engine.processes()}

    victim = engine.resolve_deadlock()

    personality, released = holdings[victim]
    metrics.record_victim(victim, personality)
    released_str = ", ".join(f"R{rid}" for rid in released) if released else "nothing"
    logger.log_recovery(victim, personality.lower(), engine.last_scores, released_str)

    if engine.state == EngineState.STABLE:
        logger.log("Deadlock resolved - no cycle remains")


def _track_risk(
    engine: AllocationGraphEngine,
    metrics: EngineMetrics,
    logger: SimulatorLogger,
    previous: Optional[RiskLevel]
) -> RiskLevel:
    """Sample the risk score; log it whenever its band changes."""
    score = engine.risk_score()
    level = engine.risk_level()
    metrics.record_risk(score)
    if level != previous:
        logger.log_risk(score, level.value)
    return level


def main():
    """Main entry point for the scenario runner."""
    parser = argparse.ArgumentParser(
        description='Resource-Allocation Graph Deadlock Engine'
    )
    parser.add_argument(
        '--scenario',
        type=str,
        required=True,
        help='Path to scenario JSON file'
    )
    parser.add_argument(
        '--victim-policy',
        choices=sorted(POLICIES),
        default=None,
        help='Victim selection policy (default: scenario setting, else personality)'
    )
    parser.add_argument(
        '--seed',
        type=int,
        default=None,
        help='Seed for the random victim policy'
    )
    parser.add_argument(
        '--failure-bias',
        type=float,
        default=None,
        help='Score added per earlier victim of the same personality (personality policy)'
    )
    parser.add_argument(
        '--max-rounds',
        type=int,
        default=DEFAULT_MAX_ROUNDS,
        help=f'Maximum victims in the final resolution loop (default: {DEFAULT_MAX_ROUNDS})'
    )
    parser.add_argument(
        '--detect-only',
        action='store_true',
        help='Report the final deadlock without resolving it'
    )
    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Enable verbose logging'
    )
    parser.add_argument(
        '--log-file',
        type=str,
        default=None,
        help='Also write the log to this file'
    )
    parser.add_argument(
        '--compare-policies',
        action='store_true',
        help='Run the scenario under every victim policy and compare'
    )

    args = parser.parse_args()

    if args.max_rounds < 1:
        parser.error('--max-rounds must be at least 1')

    try:
        if args.compare_policies:
            results = compare_policies(
                args.scenario,
                sorted(POLICIES),
                run_scenario_func=run_scenario,
                seed=args.seed
            )
            print(format_comparison(results, scenario=args.scenario))
        else:
            run_scenario(
                args.scenario,
                policy_name=args.victim_policy,
                seed=args.seed,
                failure_bias=args.failure_bias,
                max_rounds=args.max_rounds,
                detect_only=args.detect_only,
                verbose=args.verbose,
                log_file=args.log_file
            )
    except ScenarioLoadError as e:
        if args.compare_policies:
            print(f"[ERROR] Failed to load scenario: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
