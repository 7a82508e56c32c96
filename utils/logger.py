"""
Logger utility for the Resource-Allocation Graph Deadlock Engine.

Provides operation-by-operation logging with verbosity levels.
"""

from typing import Dict, Optional
from datetime import datetime


class SimulatorLogger:
    """
    Logger for scenario runs.

    Format: "[#N] P1 requests R2 - OK" / "[#N] P1 requests R2 - REJECTED (reason)"
    """

    def __init__(self, verbose: bool = False, log_file: Optional[str] = None, echo: bool = True):
        """
        Initialize logger.

        Args:
            verbose: Enable debug output
            log_file: Optional file path for logging
            echo: Print to the console
        """
        self.verbose = verbose
        self.echo = echo
        self.log_file = log_file
        self.file_handle = None

        if self.log_file:
            self.file_handle = open(self.log_file, 'w', encoding='utf-8')
            self._write_header()

    def _write_header(self) -> None:
        """Write log file header."""
        if self.file_handle:
            timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
            self.file_handle.write(f"Deadlock Engine Log - {timestamp}\n")
            self.file_handle.write("="*60 + "\n\n")

    def log(self, message: str, level: str = "info") -> None:
        """
        Log a message.

        Args:
            message: Message to log
            level: Log level (info, debug, warning, error)
        """
        if level == "debug" and not self.verbose:
            return

        formatted = self._format_message(message, level)

        if self.echo:
            print(formatted)

        if self.file_handle:
            self.file_handle.write(formatted + "\n")
            self.file_handle.flush()

    def _format_message(self, message: str, level: str) -> str:
        """Format message with level prefix."""
        if level == "error":
            return f"[ERROR] {message}"
        elif level == "warning":
            return f"[WARNING] {message}"
        elif level == "debug":
            return f"[DEBUG] {message}"
        else:
            return message

    def log_operation(self, index: int, description: str, ok: bool, reason: str = "") -> None:
        """
        Log one scenario operation and its outcome.

        Args:
            index: 1-based position of the operation in the scenario
            description: What was attempted, e.g. "P1 requests R2"
            ok: Whether the engine accepted it
            reason: Error text when rejected
        """
        if ok:
            self.log(f"[#{index}] {description} - OK")
        else:
            self.log(f"[#{index}] {description} - REJECTED ({reason})", "warning")

    def log_deadlock(self, deadlocked_pids: list, cycles: list) -> None:
        """
        Log deadlock detection.

        Args:
            deadlocked_pids: List of PIDs in deadlock
            cycles: Cycles from the report
        """
        pids_str = ", ".join(f"P{pid}" for pid in deadlocked_pids)
        self.log(f"DEADLOCK DETECTED - Processes in deadlock: [{pids_str}]")
        for cycle in cycles:
            self.log("  cycle: " + " -> ".join(f"P{pid}" for pid in cycle + cycle[:1]))

    def log_recovery(
        self,
        victim_pid: int,
        personality: str,
        scores: Dict[int, float],
        released: str
    ) -> None:
        """
        Log recovery action.

        Args:
            victim_pid: PID of terminated process
            personality: Personality of victim
            scores: Victim scores of every candidate
            released: String describing released resources
        """
        scores_str = ", ".join(f"P{pid}={score:g}" for pid, score in sorted(scores.items()))
        self.log(f"  scores: {scores_str}", "debug")
        self.log(
            f"RECOVERY - Terminated P{victim_pid} "
            f"(personality={personality}, released {released})"
        )

    def log_risk(self, score: int, level: str) -> None:
        """Log the advisory risk, warning when it is high."""
        if level == "HIGH":
            self.log(f"Risk {score}% - high risk of deadlock, action recommended", "warning")
        else:
            self.log(f"Risk {score}% ({level})", "debug")

    def log_graph(self, graph_str: str) -> None:
        """
        Log graph snapshot.

        Args:
            graph_str: Formatted allocation graph
        """
        if self.verbose:
            self.log(f"Allocation Graph:\n{graph_str}")

    def close(self) -> None:
        """Close log file if open."""
        if self.file_handle:
            self.file_handle.close()
            self.file_handle = None

    def __del__(self):
        """Cleanup on destruction."""
        self.close()
