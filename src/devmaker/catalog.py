# catalog.py
from __future__ import annotations

from typing import Dict, Iterable

from .errors import ConfigError
from .model import SECURE_SUFFIX, JobDescriptor, VariableCatalog, VariableSpec, split_secure_name


def _spelling(name: str, secure: bool) -> str:
    return name + SECURE_SUFFIX if secure else name


def build_catalog(jobs: Iterable[JobDescriptor]) -> VariableCatalog:
    """
    Merge every job's askable variables into one catalog keyed by canonical name.

    The first declaration of a name fixes whether it is secure; a later job
    declaring the same canonical name with the other flavour is rejected,
    e.g. HOST in one job and HOST_SECURE in another.
    """
    specs: Dict[str, VariableSpec] = {}

    for job in jobs:
        for raw in job.ask:
            name, secure = split_secure_name(raw)
            existing = specs.get(name)

            if existing is None:
                specs[name] = VariableSpec(name=name, secure=secure, declared_by=(job.name,))
                continue

            if existing.secure != secure:
                first = existing.declared_by[0]
                raise ConfigError(
                    kind="secure-mismatch",
                    message=(
                        f"Variable '{name}' is declared as "
                        f"'{_spelling(name, existing.secure)}' by job '{first}' "
                        f"but as '{raw}' by job '{job.name}'"
                    ),
                    details={"variable": name, "jobs": f"{first}, {job.name}"},
                )

            if job.name not in existing.declared_by:
                specs[name] = VariableSpec(
                    name=name,
                    secure=secure,
                    declared_by=existing.declared_by + (job.name,),
                )

    return VariableCatalog(specs)
