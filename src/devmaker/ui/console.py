"""Console output formatting utilities for devmaker."""

from __future__ import annotations

import sys
from typing import Mapping, Optional, Sequence


MASK = "********"


class Console:
    """Centralized console output formatting."""

    def __init__(self, debug: bool = False):
        """
        Initialize console formatter.

        Args:
            debug: If True, show debug lines and full stack traces
        """
        self.debug = debug

    def print_header(self, title: str) -> None:
        """Print a section header."""
        print(f"\n{title}")
        print("-" * len(title))

    def print_run_started(self, root: str, job_count: int, variable_count: int) -> None:
        """Print run start information."""
        print("\nRUN STARTED")
        print(f"Root: {root}")
        print(f"Jobs: {job_count}")
        print(f"Variables: {variable_count}")
        print()

    def print_job_start(self, name: str) -> None:
        """Print job start message."""
        print(f"\nJOB STARTED: {name}")

    def print_step(self, name: str) -> None:
        """Print step start message."""
        print(f"STEP: {name}")

    def print_success(self, name: str) -> None:
        """Print job success message."""
        print(f"STATUS: success ({name})")

    def print_failure(
        self,
        name: str,
        step: str,
        exit_code: Optional[int] = None,
        reason: Optional[str] = None,
    ) -> None:
        """
        Print a failed job.

        Args:
            name: Job name
            step: Which step failed ("pre-step" or "runner")
            exit_code: Process exit code, if the process ran
            reason: Optional error text (e.g. the OS error when spawning failed)
        """
        print(f"JOB FAILED: {name}")
        print(f"Step: {step}")
        if exit_code is not None:
            print(f"Exit code: {exit_code}")
        if reason:
            print(f"Error: {reason}")

    def print_plan_job(
        self,
        position: int,
        name: str,
        depends: Sequence[str],
        has_pre_step: bool,
        env: Mapping[str, str],
        secure: Sequence[str] = (),
    ) -> None:
        """Print one entry of a dry-run plan. Values of secure variables are masked."""
        print(f"Would run job {position:03}: {name}")
        for dep in depends:
            print(f"  Depends on: {dep}")
        if has_pre_step:
            print("  Pre-step: yes")
        for key, value in env.items():
            shown = MASK if key in secure else value
            print(f"  Env: {key} -> {shown}")

    def print_results(self, results: Mapping[str, str]) -> None:
        """Print final results summary."""
        print("\n" + "=" * 40)
        print("RESULTS")
        print("=" * 40)
        for job, status in results.items():
            print(f"  {job}: {status.upper()}")

    def print_error(
        self,
        title: str,
        message: str,
        details: Optional[list[str]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        """
        Print structured error message.

        Args:
            title: Error title
            message: Main error message
            details: Optional list of detail lines
            suggestion: Optional suggestion for user
        """
        print(f"\nERROR: {title}", file=sys.stderr)
        print(f"{message}", file=sys.stderr)
        if details:
            for detail in details:
                print(f"  {detail}", file=sys.stderr)
        if suggestion:
            print(f"\n{suggestion}", file=sys.stderr)

    def print_exception(self, exc: Exception) -> None:
        """Print exception, with full traceback only in debug mode."""
        if self.debug:
            import traceback
            traceback.print_exc()
        else:
            print(f"Error: {exc}", file=sys.stderr)

    def print_info(self, message: str) -> None:
        """Print informational message."""
        print(message)

    def print_debug(self, message: str) -> None:
        """Print debug message (only if debug mode enabled)."""
        if self.debug:
            print(f"[DEBUG] {message}", file=sys.stderr)


# Global console instance (will be initialized by CLI)
_console: Optional[Console] = None


def get_console() -> Console:
    """Get the global console instance."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def set_console(console: Console) -> None:
    """Set the global console instance."""
    global _console
    _console = console
