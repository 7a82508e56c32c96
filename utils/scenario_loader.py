"""
Scenario Loader for the Resource-Allocation Graph Deadlock Engine.

Loads and validates JSON scenario files: initial processes and resources,
then an ordered list of operations to apply to the engine.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

from models.process import Personality


OPERATION_FIELDS = {
    'add_process': [],
    'add_resource': [],
    'request': ['process', 'resource'],
    'allocate': ['process', 'resource'],
    'release': ['resource'],
    'remove_process': ['process'],
    'remove_resource': ['resource'],
    'detect': [],
    'resolve': [],
}


class ScenarioLoadError(Exception):
    """Exception raised when scenario file cannot be loaded or is invalid."""
    pass


@dataclass
class Scenario:
    """
    A parsed scenario.

    Attributes:
        personalities: Personality of each initial process (PIDs 1..n)
        resource_count: Number of initial resources (RIDs 1..m)
        operations: Ordered operations, each a dict with a 'type' key
        victim_policy: Optional policy configuration ('name' plus constructor args)
        description: Free text
    """
    personalities: List[Personality] = field(default_factory=list)
    resource_count: int = 0
    operations: List[Dict[str, Any]] = field(default_factory=list)
    victim_policy: Dict[str, Any] = field(default_factory=dict)
    description: str = ""


def load_scenario(file_path: str) -> Scenario:
    """
    Load scenario from JSON file.

    Args:
        file_path: Path to scenario JSON file

    Returns:
        Validated Scenario

    Raises:
        ScenarioLoadError: If file cannot be loaded or is invalid
    """
    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except FileNotFoundError:
        raise ScenarioLoadError(f"Scenario file not found: {file_path}")
    except json.JSONDecodeError as e:
        raise ScenarioLoadError(f"Invalid JSON in scenario file: {e}")

    return parse_scenario(data)


def parse_scenario(data: Dict[str, Any]) -> Scenario:
    """
    Validate scenario data already decoded from JSON.

    Raises:
        ScenarioLoadError: If the data is invalid
    """
    if not isinstance(data, dict):
        raise ScenarioLoadError("Scenario must be a JSON object")

    personalities = _load_processes(data.get('processes', []))
    resource_count = _load_resources(data.get('resources', 0))
    operations = _load_operations(data.get('events', []), len(personalities), resource_count)

    victim_policy = data.get('victim_policy', {})
    if isinstance(victim_policy, str):
        victim_policy = {'name': victim_policy}
    if not isinstance(victim_policy, dict):
        raise ScenarioLoadError("'victim_policy' must be a name or an object")

    return Scenario(
        personalities=personalities,
        resource_count=resource_count,
        operations=operations,
        victim_policy=victim_policy,
        description=data.get('description', '')
    )


def _load_processes(process_data: List[Any]) -> List[Personality]:
    """
    Load initial process personalities.

    Each entry is a personality name or an object with a 'personality' field.
    """
    if not isinstance(process_data, list):
        raise ScenarioLoadError("'processes' must be a list")

    personalities = []
    for i, proc in enumerate(process_data, start=1):
        if isinstance(proc, dict):
            proc = proc.get('personality', Personality.COOPERATIVE.value)
        try:
            personalities.append(Personality.parse(proc))
        except ValueError as e:
            raise ScenarioLoadError(f"Process {i}: {e}")

    return personalities


def _load_resources(resource_data: Any) -> int:
    """Load the initial resource count (an integer or a list of objects)."""
    if isinstance(resource_data, list):
        return len(resource_data)
    if isinstance(resource_data, int) and not isinstance(resource_data, bool) and resource_data >= 0:
        return resource_data
    raise ScenarioLoadError("'resources' must be a non-negative integer or a list")


def _load_operations(event_data: List[Dict], num_processes: int, num_resources: int) -> List[Dict]:
    """
    Load and validate scenario operations.

    References must name a process or resource created earlier in the
    scenario; whether it is still alive is left to the engine.

    Args:
        event_data: List of operation dictionaries
        num_processes: Processes created before the first operation
        num_resources: Resources created before the first operation

    Returns:
        List of operation dictionaries
    """
    if not isinstance(event_data, list):
        raise ScenarioLoadError("'events' must be a list")

    operations = []
    for i, event in enumerate(event_data, start=1):
        op, (num_processes, num_resources) = _validate_operation(i, event, num_processes, num_resources)
        operations.append(op)

    return operations


def _validate_operation(
    index: int,
    event: Dict,
    num_processes: int,
    num_resources: int
) -> Tuple[Dict, Tuple[int, int]]:
    """
    Validate one operation.

    Returns:
        Tuple of (operation, (process count, resource count) after it)

    Raises:
        ScenarioLoadError: If operation is invalid
    """
    if not isinstance(event, dict) or 'type' not in event:
        raise ScenarioLoadError(f"Event {index}: missing 'type' field")

    op_type = event['type']
    if op_type not in OPERATION_FIELDS:
        raise ScenarioLoadError(f"Event {index}: unknown event type '{op_type}'")

    for name in OPERATION_FIELDS[op_type]:
        if name not in event:
            raise ScenarioLoadError(f"Event {index}: {op_type} event missing '{name}'")
        value = event[name]
        limit = num_processes if name == 'process' else num_resources
        if not isinstance(value, int) or isinstance(value, bool) or not 1 <= value <= limit:
            raise ScenarioLoadError(
                f"Event {index}: invalid {name} reference {value!r} (created so far: {limit})"
            )

    if op_type == 'add_process':
        try:
            Personality.parse(event.get('personality', Personality.COOPERATIVE.value))
        except ValueError as e:
            raise ScenarioLoadError(f"Event {index}: {e}")
        num_processes += 1
    elif op_type == 'add_resource':
        num_resources += 1

    return dict(event), (num_processes, num_resources)
