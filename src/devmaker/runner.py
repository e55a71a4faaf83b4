# runner.py
from __future__ import annotations

import getpass
import os
import random
import stat
import subprocess
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from .catalog import build_catalog
from .config import RunConfig
from .dag import execution_order
from .errors import ConfigError, StepFailure
from .loader import discover_jobs
from .model import JobDescriptor, JobRun, JobState, ResolvedVariables, RunState, split_secure_name
from .resolver import Prompt, resolve_variables
from .ui.console import Console, get_console

PRE_STEP = "pre-step"
RUNNER = "runner"


@dataclass
class RunResult:
    """Outcome of a whole run. Jobs that never started stay `pending`."""
    state: RunState
    jobs: Dict[str, JobState] = field(default_factory=dict)
    failure: Optional[StepFailure] = None

    @property
    def ok(self) -> bool:
        return self.state == RunState.COMPLETED

    def summary(self) -> Dict[str, str]:
        return {name: state.value for name, state in self.jobs.items()}


# ----------------------------------------------------------------------
# Environment
# ----------------------------------------------------------------------

def build_job_env(
    job: JobDescriptor,
    variables: Mapping[str, str],
    environ: Mapping[str, str] | None = None,
) -> Dict[str, str]:
    """
    Ambient environment, then the job's provided env, then every resolved
    variable (resolved values win), then SCRIPT_DIR. HOME, USER and
    USERNAME are always exported, filled in when the ambient env lacks them.
    """
    env = dict(os.environ if environ is None else environ)
    env.setdefault("HOME", str(Path.home()))
    if "USER" not in env or "USERNAME" not in env:
        user = env.get("USER") or env.get("USERNAME") or getpass.getuser()
        env.setdefault("USER", user)
        env.setdefault("USERNAME", user)
    env.update(job.provided_env)
    env.update(variables)
    env["SCRIPT_DIR"] = str(job.directory)
    return env


# ----------------------------------------------------------------------
# Execution primitives
# ----------------------------------------------------------------------

def _ensure_executable(path: Path) -> None:
    if os.access(path, os.X_OK):
        return
    mode = path.stat().st_mode
    path.chmod(mode | stat.S_IXUSR)


def _run_process(job: JobDescriptor, step: str, path: Path, env: Mapping[str, str]) -> None:
    """Run one file to completion with a private temp dir. Raises StepFailure."""
    try:
        _ensure_executable(path)
        with tempfile.TemporaryDirectory(prefix=f"devmaker-{job.name}-") as tmp:
            proc_env = dict(env)
            proc_env["TMP_DIR"] = tmp
            proc_env["TEMP_DIR"] = tmp
            proc = subprocess.run([str(path)], env=proc_env)
    except OSError as e:
        raise StepFailure(job=job.name, step=step, path=str(path), exit_code=-1, message=str(e)) from e

    if proc.returncode != 0:
        raise StepFailure(job=job.name, step=step, path=str(path), exit_code=proc.returncode)


def run_job(
    job: JobDescriptor,
    variables: Mapping[str, str],
    *,
    environ: Mapping[str, str] | None = None,
    console: Console | None = None,
) -> Tuple[JobRun, Optional[StepFailure]]:
    """
    pending -> running-pre-step (optional) -> running-runner -> succeeded,
    or -> failed from either running state. Returns the run and its failure.
    """
    console = console or get_console()
    run = JobRun(job=job.name, env=build_job_env(job, variables, environ))
    console.print_job_start(job.name)

    steps: List[Tuple[str, JobState, Path]] = []
    if job.pre_step is not None:
        steps.append((PRE_STEP, JobState.RUNNING_PRE_STEP, job.pre_step))
    steps.append((RUNNER, JobState.RUNNING_RUNNER, job.runner))

    for step, state, path in steps:
        run.state = state
        console.print_step(f"{step} ({path.name})")
        try:
            _run_process(job, step, path, run.env)
        except StepFailure as failure:
            run.state = JobState.FAILED
            run.failed_step = step
            run.exit_code = failure.exit_code
            console.print_failure(job.name, step, exit_code=failure.exit_code, reason=failure.message)
            return run, failure

    run.state = JobState.SUCCEEDED
    run.exit_code = 0
    console.print_success(job.name)
    return run, None


def run_jobs(
    order: Sequence[str],
    jobs: Sequence[JobDescriptor],
    variables: ResolvedVariables,
    *,
    environ: Mapping[str, str] | None = None,
    console: Console | None = None,
) -> RunResult:
    """
    Run jobs one at a time in `order`. The first failing step aborts the run:
    nothing after it starts, and finished jobs are left as they are.
    """
    by_name = {j.name: j for j in jobs}
    result = RunResult(state=RunState.RUNNING, jobs={name: JobState.PENDING for name in order})

    for name in order:
        run, failure = run_job(by_name[name], variables, environ=environ, console=console)
        result.jobs[name] = run.state
        if failure is not None:
            result.state = RunState.ABORTED
            result.failure = failure
            return result

    result.state = RunState.COMPLETED
    return result


def run_single(
    name: str,
    jobs: Sequence[JobDescriptor],
    variables: ResolvedVariables,
    *,
    environ: Mapping[str, str] | None = None,
    console: Console | None = None,
) -> RunResult:
    """Run one job by name, ignoring its dependencies."""
    _require_job(name, jobs)
    return run_jobs([name], jobs, variables, environ=environ, console=console)


def _require_job(name: str, jobs: Sequence[JobDescriptor]) -> None:
    if name not in {j.name for j in jobs}:
        raise ConfigError(
            kind="unknown-job",
            message=f"Cannot locate job: {name}",
            details={"job": name, "known": ", ".join(sorted(j.name for j in jobs))},
        )


# ----------------------------------------------------------------------
# Dry run
# ----------------------------------------------------------------------

def describe_plan(
    order: Sequence[str],
    jobs: Sequence[JobDescriptor],
    variables: ResolvedVariables,
    *,
    secure: Sequence[str] = (),
    console: Console | None = None,
) -> None:
    console = console or get_console()
    console.print_header("DRY RUN")
    by_name = {j.name: j for j in jobs}
    for position, name in enumerate(order):
        job = by_name[name]
        env: Dict[str, str] = dict(job.provided_env)
        # same layering as build_job_env: resolved values win
        for raw in job.ask:
            var, _secure = split_secure_name(raw)
            if var in variables:
                env[var] = variables[var]
        console.print_plan_job(
            position,
            name,
            depends=job.depends,
            has_pre_step=job.pre_step is not None,
            env=env,
            secure=secure,
        )


# ----------------------------------------------------------------------
# Public API
# ----------------------------------------------------------------------

def run_all(
    config: RunConfig,
    *,
    environ: Mapping[str, str] | None = None,
    prompt: Prompt | None = None,
    console: Console | None = None,
    rng: random.Random | None = None,
) -> Optional[RunResult]:
    """
    Discover, catalog, order, resolve, then execute.

    Every configuration and resolution error is raised before the first job
    starts. Returns None for a dry run.
    """
    console = console or get_console()

    console.print_debug(f"Retrieving jobs from root: {config.root_dir}")
    jobs = discover_jobs(config.root_dir)

    console.print_debug("Building variable catalog")
    catalog = build_catalog(jobs)

    console.print_debug("Scheduling jobs")
    order = execution_order(jobs, rng=rng)
    if config.single_job is not None:
        _require_job(config.single_job, jobs)
        order = [config.single_job]

    # eager: every variable is resolved once, before any job runs
    console.print_debug(f"Resolving {len(catalog)} variable(s)")
    variables = resolve_variables(catalog, config, environ=environ, prompt=prompt)

    if config.dry_run:
        describe_plan(order, jobs, variables, secure=catalog.secure_names, console=console)
        return None

    console.print_run_started(str(config.root_dir), job_count=len(order), variable_count=len(variables))
    if config.single_job is not None:
        return run_single(config.single_job, jobs, variables, environ=environ, console=console)
    return run_jobs(order, jobs, variables, environ=environ, console=console)
