# model.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

SECURE_SUFFIX = "_SECURE"
RUNNER_STEM = "run"
PRE_STEP_SCRIPT = "deps.sh"
INFO_FILE = "info.json"


def split_secure_name(raw: str) -> Tuple[str, bool]:
    """Strip a trailing `_SECURE` and report whether it was there."""
    if raw.endswith(SECURE_SUFFIX) and len(raw) > len(SECURE_SUFFIX):
        return raw[: -len(SECURE_SUFFIX)], True
    return raw, False


def encode_env_key(key: str) -> str:
    """Normalise a provided-env key into something a shell can export."""
    return key.upper().replace("-", "_").replace(" ", "_")


# ----------------------------------------------------------------------
# Job metadata (info.json)
# ----------------------------------------------------------------------

class JobInfo(BaseModel):
    """Schema of a job's optional info.json. Every key may be omitted."""
    model_config = ConfigDict(extra="ignore", frozen=True)

    depends: List[str] = Field(default_factory=list)
    ask: List[str] = Field(default_factory=list)
    env: Dict[str, str] = Field(default_factory=dict)

    @field_validator("depends", "ask", "env", mode="before")
    @classmethod
    def _null_is_absent(cls, value, info):
        # "depends": null means the same as leaving the key out
        if value is None:
            return {} if info.field_name == "env" else []
        return value


@dataclass(frozen=True)
class JobDescriptor:
    """
    One discovered job: a directory holding exactly one run.<ext> file.

    Canonical dependency field: `info.depends`
    """
    name: str
    directory: Path
    runner: Path
    pre_step: Optional[Path] = None
    info: JobInfo = field(default_factory=JobInfo)

    @property
    def depends(self) -> List[str]:
        return list(self.info.depends)

    @property
    def ask(self) -> List[str]:
        return list(self.info.ask)

    @property
    def provided_env(self) -> Dict[str, str]:
        return {encode_env_key(k): v for k, v in self.info.env.items()}


# ----------------------------------------------------------------------
# Variables
# ----------------------------------------------------------------------

@dataclass(frozen=True)
class VariableSpec:
    name: str
    secure: bool = False
    declared_by: Tuple[str, ...] = ()


class VariableCatalog(Mapping[str, VariableSpec]):
    """Read-only, insertion-ordered set of askable variables keyed by canonical name."""

    def __init__(self, specs: Mapping[str, VariableSpec] | None = None):
        self._specs: Dict[str, VariableSpec] = dict(specs or {})

    def __getitem__(self, name: str) -> VariableSpec:
        return self._specs[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._specs)

    def __len__(self) -> int:
        return len(self._specs)

    def __repr__(self) -> str:
        return f"VariableCatalog({list(self._specs.values())!r})"

    @property
    def secure_names(self) -> List[str]:
        return [s.name for s in self._specs.values() if s.secure]


class ResolvedVariables(Mapping[str, str]):
    """
    Final name -> value mapping handed to the executor.

    A name listed in `unresolved` has no value: no enabled source produced one.
    """

    def __init__(self, values: Mapping[str, str] | None = None, unresolved: Iterable[str] = ()):
        # copy + proxy: callers may hold on to the dict they passed in
        self._values = MappingProxyType(dict(values or {}))
        self.unresolved: Tuple[str, ...] = tuple(unresolved)

    def __getitem__(self, name: str) -> str:
        return self._values[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"ResolvedVariables({dict(self._values)!r}, unresolved={self.unresolved!r})"

    @property
    def is_complete(self) -> bool:
        return not self.unresolved

    def unresolved_required(self) -> List[str]:
        return list(self.unresolved)


# ----------------------------------------------------------------------
# Execution state
# ----------------------------------------------------------------------

class JobState(str, Enum):
    PENDING = "pending"
    RUNNING_PRE_STEP = "running-pre-step"
    RUNNING_RUNNER = "running-runner"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class RunState(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    ABORTED = "aborted"


@dataclass
class JobRun:
    """State of one job while it executes. Never shared across jobs."""
    job: str
    env: Dict[str, str]
    state: JobState = JobState.PENDING
    failed_step: Optional[str] = None
    exit_code: Optional[int] = None
