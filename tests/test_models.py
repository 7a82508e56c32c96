"""
Core Data Model Tests

Tests Process, Resource and AllocationGraph functionality.
"""

import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from models.process import Process, Personality
from models.resource import Resource
from models.allocation_graph import AllocationGraph, Edge, EdgeKind


def _graph(num_processes: int, num_resources: int) -> AllocationGraph:
    graph = AllocationGraph()
    for pid in range(1, num_processes + 1):
        graph.add_process(Process(pid=pid, arrival=pid))
    for rid in range(1, num_resources + 1):
        graph.add_resource(Resource(rid=rid))
    return graph


def test_personality_parsing():
    """Personality accepts enum members and case-insensitive names."""
    print("\n" + "="*60)
    print("TEST 1: Personality Parsing")
    print("="*60)

    assert Personality.parse("greedy") == Personality.GREEDY
    assert Personality.parse(" Patient ") == Personality.PATIENT
    assert Personality.parse(Personality.AGGRESSIVE) == Personality.AGGRESSIVE

    try:
        Personality.parse("lazy")
        assert False, "Unknown personality should be rejected"
    except ValueError as e:
        print(f"  ✓ Correctly rejected: {e}")

    print("\n✅ Personality Parsing Tests PASSED")


def test_process_model():
    """Process defaults and representation."""
    process = Process(pid=3)
    print(f"\nCreated: {process}")

    assert process.personality == Personality.COOPERATIVE
    assert not process.in_deadlock
    assert process.label == "P3"
    assert "COOPERATIVE" in repr(process)

    print("\n✅ Process Model Tests PASSED")


def test_resource_model():
    """Single-instance resources hold at most one process."""
    print("\n" + "="*60)
    print("TEST 2: Resource Model")
    print("="*60)

    resource = Resource(rid=1)
    assert resource.is_free()

    assert resource.assign(1), "Free resource should be assignable"
    assert resource.holder == 1
    print(f"  ✓ {resource.label} held by P{resource.holder}")

    assert resource.assign(1), "Re-assigning to the holder is harmless"
    assert not resource.assign(2), "Mutual exclusion: second holder must be refused"
    assert resource.holder == 1

    assert resource.free() == 1
    assert resource.is_free()
    assert resource.free() is None

    print("\n✅ Resource Model Tests PASSED")


def test_graph_matrices():
    """Allocation, request and wait-for matrices reflect the edges."""
    print("\n" + "="*60)
    print("TEST 3: Allocation Graph Matrices")
    print("="*60)

    graph = _graph(3, 2)
    graph.assign(1, 2)          # R1 held by P2
    graph.add_request(1, 1)     # P1 waits for R1
    graph.add_request(3, 2)     # P3 waits for free R2

    alloc = graph.allocation_matrix
    req = graph.request_matrix
    print(f"  Allocation Matrix:\n{alloc}")
    print(f"  Request Matrix:\n{req}")

    assert alloc.shape == (3, 2)
    assert alloc[1][0] == 1 and alloc.sum() == 1
    assert req[0][0] == 1 and req[2][1] == 1 and req.sum() == 2

    wait_for = graph.wait_for_matrix
    print(f"  Wait-For Matrix:\n{wait_for}")
    assert wait_for.shape == (3, 3)
    assert wait_for[0][1] == 1, "P1 waits on P2"
    assert wait_for.sum() == 1, "Requests for free resources add no wait-for edge"

    assert graph.wait_for_graph() == {1: [2]}

    print("\n✅ Graph Matrix Tests PASSED")


def test_empty_graph():
    """An empty graph has empty matrices and no wait-for edges."""
    graph = AllocationGraph()
    assert graph.wait_for_matrix.shape == (0, 0)
    assert graph.wait_for_graph() == {}
    assert graph.edges() == []


def test_assign_converts_request():
    """Assigning a requested resource removes the request edge."""
    graph = _graph(1, 1)
    graph.add_request(1, 1)
    assert graph.edges() == [Edge(EdgeKind.REQUEST, 1, 1)]

    graph.assign(1, 1)
    assert graph.edges() == [Edge(EdgeKind.ASSIGNMENT, 1, 1)]
    assert graph.held_by(1) == [1]
    assert graph.requested_by(1) == []
    print(f"  ✓ Edge after assignment: {graph.edges()[0]}")


def test_remove_process_frees_resources():
    """Removing a process drops its edges and frees what it held."""
    graph = _graph(2, 3)
    graph.assign(1, 1)
    graph.assign(2, 1)
    graph.add_request(1, 3)
    graph.add_request(2, 1)

    released = graph.remove_process(1)

    assert released == [1, 2]
    assert 1 not in graph.processes
    assert graph.resources[1].is_free() and graph.resources[2].is_free()
    assert all(edge.pid != 1 for edge in graph.edges())
    assert graph.requests == {(2, 1)}
    graph.assert_consistency("after removal")

    print("\n✅ Process Removal Tests PASSED")


def test_remove_resource_drops_requests():
    graph = _graph(2, 2)
    graph.assign(2, 1)
    graph.add_request(2, 2)
    graph.add_request(1, 1)

    graph.remove_resource(2)

    assert 2 not in graph.resources
    assert graph.requests == {(1, 1)}
    assert graph.held_by(1) == []


def test_snapshot_restore():
    """Snapshots are independent copies that restore the whole graph."""
    print("\n" + "="*60)
    print("TEST 4: Snapshot / Restore")
    print("="*60)

    graph = _graph(2, 2)
    graph.assign(1, 1)
    graph.add_request(2, 1)
    snapshot = graph.snapshot()

    graph.remove_process(1)
    graph.processes[2].in_deadlock = True
    assert graph.num_processes == 1

    graph.restore(snapshot)
    assert graph.num_processes == 2
    assert graph.resources[1].holder == 1
    assert graph.requests == {(2, 1)}
    assert not graph.processes[2].in_deadlock
    assert graph.wait_for_graph() == {2: [1]}

    print("  ✓ Graph restored from snapshot")
    print("\n✅ Snapshot Tests PASSED")


def test_consistency_check():
    """assert_consistency catches a process both holding and requesting a resource."""
    graph = _graph(1, 1)
    graph.assign(1, 1)
    graph.requests.add((1, 1))

    detected = False
    try:
        graph.assert_consistency("corrupted graph")
    except AssertionError as e:
        detected = True
        print(f"  ✓ Violation detected: {e}")
    assert detected, "Should have detected hold-and-request on the same resource"


def test_display_and_to_dict():
    graph = _graph(2, 1)
    graph.assign(1, 1)
    graph.add_request(2, 1)

    output = graph.display()
    print(output)
    assert "R1: held by P1" in output
    assert "P2 -> P1" in output

    view = graph.to_dict()
    assert view['processes'][1] == {
        'pid': 2, 'personality': 'COOPERATIVE', 'in_deadlock': False,
        'holds': [], 'waits_for': [1],
    }
    assert view['resources'] == [{'rid': 1, 'holder': 1}]
    assert {'kind': 'REQUEST', 'pid': 2, 'rid': 1} in view['edges']


def test_graph_equality_ignores_matrix_cache():
    """Graphs compare by nodes and edges, whether or not matrices were built."""
    first = _graph(2, 2)
    second = _graph(2, 2)
    for graph in (first, second):
        graph.assign(1, 1)
        graph.add_request(2, 1)

    assert first.wait_for_matrix.sum() == 1  # build the cache on one side only
    assert first == second

    second.add_request(1, 2)
    assert second.wait_for_matrix.shape == (2, 2)
    assert first != second
    assert "array" not in repr(first)


def main():
    """Run all model tests."""
    print("\n" + "="*70)
    print(" "*20 + "CORE MODEL TESTS")
    print("="*70)

    try:
        test_personality_parsing()
        test_process_model()
        test_resource_model()
        test_graph_matrices()
        test_empty_graph()
        test_assign_converts_request()
        test_remove_process_frees_resources()
        test_remove_resource_drops_requests()
        test_snapshot_restore()
        test_consistency_check()
        test_display_and_to_dict()
        test_graph_equality_ignores_matrix_cache()

        print("\n🎉 ALL MODEL TESTS PASSED")
        return 0

    except AssertionError as e:
        print(f"\n❌ TEST FAILED: {e}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
