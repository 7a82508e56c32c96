"""
Scenario Runner Tests

Loads the bundled scenarios, replays them through the simulator and compares
victim policies on the same input.
"""

import os
import sys
import tempfile
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import simulator
from simulator import run_scenario
from engine import EngineState
from models.process import Personality
from algorithms.recovery import POLICIES
from analysis.analyzer import compare_policies, format_comparison
from utils.logger import SimulatorLogger
from utils.scenario_loader import ScenarioLoadError, load_scenario, parse_scenario


SCENARIOS_DIR = project_root / "scenarios"


def _scenario(name: str) -> str:
    return str(SCENARIOS_DIR / name)


def _expect_load_error(data, fragment: str):
    try:
        parse_scenario(data)
    except ScenarioLoadError as e:
        assert fragment in str(e), f"Unexpected message: {e}"
        print(f"  ✓ Rejected: {e}")
        return
    raise AssertionError(f"Scenario should have been rejected ({fragment})")


def test_loader_accepts_bundled_scenarios():
    print("\n" + "="*60)
    print("TEST 1: Scenario Loading")
    print("="*60)

    for name in ["two_cycle.json", "three_cycle.json", "disjoint_cycles.json", "no_deadlock.json"]:
        scenario = load_scenario(_scenario(name))
        print(f"  ✓ {name}: {len(scenario.personalities)} processes, "
              f"{scenario.resource_count} resources, {len(scenario.operations)} events")
        assert scenario.description

    three = load_scenario(_scenario("three_cycle.json"))
    assert three.personalities == [Personality.COOPERATIVE, Personality.AGGRESSIVE, Personality.PATIENT]
    assert three.resource_count == 3
    assert three.victim_policy == {'name': 'personality', 'failure_bias': 0.5}

    print("\n✅ Loading Tests PASSED")


def test_loader_rejects_invalid_scenarios():
    print("\n" + "="*60)
    print("TEST 2: Scenario Validation")
    print("="*60)

    _expect_load_error([], "JSON object")
    _expect_load_error({'processes': ["lazy"]}, "Process 1")
    _expect_load_error({'resources': -1}, "'resources'")
    _expect_load_error({'events': [{'process': 1}]}, "missing 'type'")
    _expect_load_error({'events': [{'type': 'teleport'}]}, "unknown event type")
    _expect_load_error(
        {'processes': ["greedy"], 'resources': 1, 'events': [{'type': 'request', 'process': 1}]},
        "missing 'resource'"
    )
    _expect_load_error(
        {'processes': ["greedy"], 'resources': 1,
         'events': [{'type': 'request', 'process': 2, 'resource': 1}]},
        "invalid process reference"
    )
    _expect_load_error({'events': [{'type': 'add_process', 'personality': 'lazy'}]}, "Event 1")
    _expect_load_error({'victim_policy': 3}, "'victim_policy'")

    # Processes added by an earlier event can be referenced afterwards
    scenario = parse_scenario({
        'resources': 1,
        'events': [
            {'type': 'add_process', 'personality': 'patient'},
            {'type': 'request', 'process': 1, 'resource': 1},
        ],
        'victim_policy': 'youngest',
    })
    assert len(scenario.operations) == 2
    assert scenario.victim_policy == {'name': 'youngest'}

    print("\n✅ Validation Tests PASSED")


def test_load_errors_from_files():
    try:
        load_scenario(str(SCENARIOS_DIR / "missing.json"))
        assert False, "Missing file should be rejected"
    except ScenarioLoadError as e:
        assert "not found" in str(e)

    with tempfile.NamedTemporaryFile('w', suffix='.json', delete=False) as f:
        f.write("{not json")
        path = f.name
    try:
        load_scenario(path)
        assert False, "Malformed JSON should be rejected"
    except ScenarioLoadError as e:
        assert "Invalid JSON" in str(e)
    finally:
        os.unlink(path)


def test_run_two_cycle():
    """The greedy process is terminated; the patient one survives."""
    print("\n" + "="*60)
    print("TEST 3: Two-Process Deadlock Scenario")
    print("="*60)

    engine, metrics = run_scenario(_scenario("two_cycle.json"), quiet=True)

    print(f"  Victims: {metrics.victims}")
    assert metrics.victims == [1]
    assert metrics.victims_by_personality == {"GREEDY": 1}
    assert metrics.deadlock_count >= 1
    assert metrics.get_avg_cycle_size() == 2
    assert metrics.get_peak_risk() == 100
    assert engine.state == EngineState.STABLE
    assert [p.pid for p in engine.processes()] == [2]

    print("\n✅ Two-Cycle Scenario PASSED")


def test_run_three_cycle():
    engine, metrics = run_scenario(_scenario("three_cycle.json"), quiet=True)

    assert metrics.victims == [2], "Aggressive outranks patient and cooperative"
    assert metrics.cycle_sizes[0] == 3
    assert engine.state == EngineState.STABLE
    assert metrics.errors == []


def test_run_disjoint_cycles():
    """Each independent cycle costs one victim."""
    engine, metrics = run_scenario(_scenario("disjoint_cycles.json"), quiet=True)
    assert metrics.victims == [1, 3]
    assert engine.state == EngineState.STABLE

    engine, metrics = run_scenario(_scenario("disjoint_cycles.json"), max_rounds=1, quiet=True)
    assert metrics.victims == [1]
    assert engine.state == EngineState.DEADLOCKED


def test_run_without_deadlock():
    """Rejected operations are logged and counted, never fatal."""
    engine, metrics = run_scenario(_scenario("no_deadlock.json"), quiet=True)

    for error in metrics.errors:
        print(f"  ✓ {error}")
    assert len(metrics.errors) == 4
    assert metrics.victims == []
    assert metrics.deadlock_count == 0
    assert metrics.total_processes == 4
    assert metrics.total_resources == 3
    assert engine.state == EngineState.STABLE
    assert engine.get_resource(1).holder == 2


def test_run_options():
    print("\n" + "="*60)
    print("TEST 4: Runner Options")
    print("="*60)

    engine, metrics = run_scenario(_scenario("two_cycle.json"), detect_only=True, quiet=True)
    assert metrics.victims == []
    assert engine.state == EngineState.DEADLOCKED
    assert engine.risk_score() == 100

    _, metrics = run_scenario(_scenario("two_cycle.json"), policy_name="youngest", quiet=True)
    assert metrics.victims == [2]

    with tempfile.TemporaryDirectory() as tmp:
        log_path = os.path.join(tmp, "run.log")
        run_scenario(_scenario("two_cycle.json"), log_file=log_path, verbose=True, quiet=True)
        with open(log_path, encoding='utf-8') as f:
            content = f.read()
    assert "DEADLOCK DETECTED" in content
    assert "RECOVERY - Terminated P1" in content
    assert "[DEBUG]   scores: P1=4, P2=2" in content

    try:
        run_scenario(_scenario("two_cycle.json"), policy_name="oldest", quiet=True)
        assert False, "Unknown policy should be rejected"
    except ScenarioLoadError as e:
        print(f"  ✓ Rejected: {e}")

    print("\n✅ Runner Option Tests PASSED")


def test_logger_levels_and_file():
    """Debug lines need verbose; every level is copied to the log file."""
    with tempfile.TemporaryDirectory() as tmp:
        log_path = os.path.join(tmp, "levels.log")
        logger = SimulatorLogger(verbose=False, log_file=log_path, echo=False)
        logger.log("hidden", "debug")
        logger.log_operation(1, "P1 requests R1", True)
        logger.log_operation(2, "R1 released", False, "R1 is not assigned")
        logger.log_risk(99, "HIGH")
        logger.close()
        logger.close()

        with open(log_path, encoding='utf-8') as f:
            content = f.read()

    assert "hidden" not in content
    assert "[#1] P1 requests R1 - OK" in content
    assert "[WARNING] [#2] R1 released - REJECTED (R1 is not assigned)" in content
    assert "[WARNING] Risk 99%" in content
    assert not hasattr(logger, 'lines'), "Output goes to console and file only"


def test_policy_comparison():
    """Different policies can pick different victims for the same deadlock."""
    print("\n" + "="*60)
    print("TEST 5: Policy Comparison")
    print("="*60)

    results = compare_policies(
        _scenario("two_cycle.json"),
        sorted(POLICIES),
        run_scenario_func=run_scenario,
        seed=3
    )
    by_name = {r.policy_name: r for r in results}

    assert [r.policy_name for r in results] == sorted(POLICIES)
    assert by_name["personality"].victims == [1]
    assert by_name["youngest"].victims == [2]
    assert by_name["fewest_resources"].victims == [1], "Equal holdings: lowest PID"
    assert all(r.resolutions == 1 for r in results)
    assert all(r.final_state == "STABLE" and r.surviving_processes == 1 for r in results)

    report = format_comparison(results, scenario="two_cycle.json")
    print(report)
    assert "Policies disagree" in report
    assert "Policy: YOUNGEST" in report

    try:
        compare_policies(_scenario("two_cycle.json"), ["personality"])
        assert False, "A runner function is required"
    except ValueError:
        pass

    print("\n✅ Policy Comparison Tests PASSED")


def test_command_line():
    saved_argv = sys.argv
    try:
        sys.argv = ["simulator.py", "--scenario", _scenario("three_cycle.json"), "--victim-policy", "youngest"]
        assert simulator.main() == 0

        sys.argv = ["simulator.py", "--scenario", _scenario("two_cycle.json"), "--compare-policies", "--seed", "1"]
        assert simulator.main() == 0

        sys.argv = ["simulator.py", "--scenario", str(SCENARIOS_DIR / "missing.json")]
        assert simulator.main() == 1
    finally:
        sys.argv = saved_argv


def main():
    """Run all scenario tests."""
    print("\n" + "="*70)
    print(" "*20 + "SCENARIO RUNNER TESTS")
    print("="*70)

    try:
        test_loader_accepts_bundled_scenarios()
        test_loader_rejects_invalid_scenarios()
        test_load_errors_from_files()
        test_run_two_cycle()
        test_run_three_cycle()
        test_run_disjoint_cycles()
        test_run_without_deadlock()
        test_run_options()
        test_logger_levels_and_file()
        test_policy_comparison()
        test_command_line()

        print("\n🎉 ALL SCENARIO TESTS PASSED")
        return 0

    except AssertionError as e:
        print(f"\n❌ TEST FAILED: {e}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
