# loader.py
from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from .errors import ConfigError
from .model import INFO_FILE, PRE_STEP_SCRIPT, RUNNER_STEM, JobDescriptor, JobInfo
from .ui.console import get_console


def _runner_candidates(directory: Path) -> List[Path]:
    # run.sh / run.py, but not `run` or `run.tar.gz`
    return sorted(
        p for p in directory.iterdir()
        if p.is_file() and p.stem == RUNNER_STEM and p.suffix
    )


def parse_info_file(path: Path) -> JobInfo:
    """Parse info.json; any read, JSON or schema problem is fatal and names the file."""
    try:
        return JobInfo.model_validate_json(path.read_text(encoding="utf-8"))
    except (ValidationError, UnicodeDecodeError, OSError) as e:
        raise ConfigError(
            kind="malformed-metadata",
            message=f"Could not parse job metadata: {path}",
            details={"path": str(path), "error": str(e).splitlines()[0]},
        ) from e


def load_job(directory: str | Path) -> Optional[JobDescriptor]:
    """
    Load one job directory.

    Returns None when the directory has no runner (it is not a job).
    Raises ConfigError when it has several runners or broken metadata.
    """
    directory = Path(directory)
    runners = _runner_candidates(directory)
    if not runners:
        return None
    if len(runners) > 1:
        raise ConfigError(
            kind="ambiguous-runner",
            message=f"Job '{directory.name}' has more than one runner file",
            details={
                "job": directory.name,
                "candidates": ", ".join(p.name for p in runners),
            },
        )

    pre_step = directory / PRE_STEP_SCRIPT
    info_path = directory / INFO_FILE
    info = parse_info_file(info_path) if info_path.exists() else JobInfo()

    return JobDescriptor(
        name=directory.name,
        directory=directory,
        runner=runners[0],
        pre_step=pre_step if pre_step.is_file() else None,
        info=info,
    )


def discover_jobs(root: str | Path) -> List[JobDescriptor]:
    """
    Find every job under `root`: one per immediate subdirectory holding a run.<ext>.

    Returns:
      List[JobDescriptor] sorted by job name
    """
    console = get_console()
    root_p = Path(root).expanduser().resolve()
    if not root_p.is_dir():
        raise ConfigError(
            kind="missing-root",
            message=f"Job root is not a directory: {root_p}",
            details={"path": str(root_p)},
        )

    jobs: List[JobDescriptor] = []
    for entry in sorted(root_p.iterdir()):
        if not entry.is_dir() or entry.name.startswith("."):
            continue
        job = load_job(entry)
        if job is None:
            console.print_debug(f"Skipping {entry.name}: no runner file")
            continue
        console.print_debug(f"Discovered job: {job.name} (runner={job.runner.name})")
        jobs.append(job)

    return jobs
