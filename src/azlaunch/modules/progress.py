"""
Progress Display Module

Numbered stage lines for the fixed provisioning sequence. The pipeline blocks on
long-running Azure operations, so each stage reports when it starts, the steps it
is waiting on, and how long it took:

    [1/4] > Generating SSH keypair
    [1/4] OK Generating SSH keypair (0.8s)
    [3/4] > Provisioning network resources
          - Creating public IP azlaunch-ip
    [3/4] FAIL Provisioning network resources (12.4s)

Security Requirements:
- No credential exposure in output
"""

import sys
import time
from dataclasses import dataclass
from typing import TextIO


@dataclass(frozen=True)
class StageTiming:
    """A finished stage and how long it ran."""

    number: int
    name: str
    seconds: float
    succeeded: bool


def format_duration(seconds: float) -> str:
    """Format a duration, e.g. "4.2s", "2m 30s", "1h 5m"."""
    if seconds < 60:
        return f"{seconds:.1f}s"
    if seconds < 3600:
        return f"{int(seconds // 60)}m {int(seconds % 60)}s"
    return f"{int(seconds // 3600)}h {int((seconds % 3600) // 60)}m"


class ProgressDisplay:
    """Report a known number of stages, one at a time, in order."""

    UNICODE_MARKS = {"start": "►", "step": "·", "ok": "✓", "fail": "✗"}
    ASCII_MARKS = {"start": ">", "step": "-", "ok": "OK", "fail": "FAIL"}

    def __init__(
        self, total_stages: int, use_unicode: bool = True, output_file: TextIO | None = None
    ):
        if total_stages < 1:
            raise ValueError("total_stages must be at least 1")
        self.total_stages = total_stages
        self.marks = self.UNICODE_MARKS if use_unicode else self.ASCII_MARKS
        self.output_file = output_file or sys.stdout
        self.timings: list[StageTiming] = []
        self._current: str | None = None
        self._started_at = 0.0

    @property
    def stage_number(self) -> int:
        """Number of the running stage, or of the next one to start."""
        return len(self.timings) + 1

    @property
    def total_seconds(self) -> float:
        return sum(t.seconds for t in self.timings)

    def _prefix(self) -> str:
        return f"[{self.stage_number}/{self.total_stages}]"

    def begin_stage(self, name: str) -> None:
        """
        Start the next stage.

        Raises:
            RuntimeError: If a stage is still running or every stage already ran
        """
        if self._current is not None:
            raise RuntimeError(f"Stage still running: {self._current}")
        if self.stage_number > self.total_stages:
            raise RuntimeError(f"All {self.total_stages} stages already ran")

        self._current = name
        self._started_at = time.monotonic()
        self._print(f"{self._prefix()} {self.marks['start']} {name}")

    def step(self, message: str) -> None:
        """Show a sub-step of the running stage, indented under it."""
        indent = " " * len(self._prefix())
        self._print(f"{indent} {self.marks['step']} {message}")

    def end_stage(self, success: bool = True) -> StageTiming:
        """
        Finish the running stage and print its elapsed time.

        Raises:
            RuntimeError: If no stage is running
        """
        if self._current is None:
            raise RuntimeError("No stage is running")

        elapsed = time.monotonic() - self._started_at
        timing = StageTiming(
            number=self.stage_number, name=self._current, seconds=elapsed, succeeded=success
        )
        mark = self.marks["ok"] if success else self.marks["fail"]
        self._print(f"{self._prefix()} {mark} {self._current} ({format_duration(elapsed)})")

        self.timings.append(timing)
        self._current = None
        return timing

    def _print(self, message: str) -> None:
        print(message, file=self.output_file, flush=True)


__all__ = ["ProgressDisplay", "StageTiming", "format_duration"]
