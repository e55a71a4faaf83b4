# errors.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List


class DevmakerError(Exception):
    """Base class for every error devmaker reports to the user."""


@dataclass
class ConfigError(DevmakerError):
    """
    A problem with the job tree or the run configuration.

    Always detected before any job starts, never retried.
      kind:    short machine-friendly tag (e.g. "dependency-cycle")
      message: one line for humans
      details: extra key/value context (job, path, dependency, ...)
    """
    kind: str
    message: str
    details: Dict[str, str] = field(default_factory=dict)

    def __str__(self) -> str:
        lines = [f"{self.kind}: {self.message}"]
        for k, v in self.details.items():
            lines.append(f"{k}={v}")
        return "\n".join(lines)


@dataclass
class ResolutionError(DevmakerError):
    """Required variables that no enabled source could provide."""
    names: List[str]

    def __str__(self) -> str:
        return f"Could not resolve variable(s): {', '.join(self.names)}"


@dataclass
class StepFailure(DevmakerError):
    job: str
    step: str  # "pre-step" | "runner"
    path: str
    exit_code: int
    message: str | None = None

    def __str__(self) -> str:
        text = f"[{self.job}] {self.step} failed (exit={self.exit_code}): {self.path}"
        if self.message:
            text += f"\n{self.message}"
        return text
