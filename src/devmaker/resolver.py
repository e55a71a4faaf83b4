# resolver.py
from __future__ import annotations

import os
from typing import Callable, Dict, List, Mapping, Optional, Tuple

import click

from .config import RunConfig
from .errors import ResolutionError
from .model import ResolvedVariables, VariableCatalog, VariableSpec
from .ui.console import get_console

Source = Callable[[VariableSpec], Optional[str]]
Prompt = Callable[[VariableSpec], str]

PROMPT_MESSAGE = "Please enter the value for the variable"


def click_prompt(spec: VariableSpec) -> str:
    """Ask on the terminal; secure variables are read without echo."""
    if spec.secure:
        text = f"<Secure> {PROMPT_MESSAGE} [{spec.name}]"
    else:
        text = f"{PROMPT_MESSAGE} [{spec.name}]"
    return click.prompt(text, default="", show_default=False, hide_input=spec.secure)


class Resolver:
    """
    Resolves every catalog variable through a fixed, ordered list of sources.

    Order (first non-None wins):
      1. force-empty       (config.force_empty_vars)
      2. --with-vars       (config.cmd_vars)
      3. environment       (unless config.allow_env is False)
      4. askfile           (only when one was given)
      5. interactive       (config.interactive)
    """

    def __init__(
        self,
        config: RunConfig,
        environ: Mapping[str, str] | None = None,
        prompt: Prompt | None = None,
    ):
        self.config = config
        self.environ: Mapping[str, str] = dict(os.environ if environ is None else environ)
        self.prompt: Prompt = prompt or click_prompt

    # ---- sources ----

    def _from_empty(self, spec: VariableSpec) -> Optional[str]:
        return ""

    def _from_cmd(self, spec: VariableSpec) -> Optional[str]:
        return self.config.cmd_vars.get(spec.name)

    def _from_env(self, spec: VariableSpec) -> Optional[str]:
        return self.environ.get(spec.name)

    def _from_askfile(self, spec: VariableSpec) -> Optional[str]:
        return (self.config.file_vars or {}).get(spec.name)

    def _from_prompt(self, spec: VariableSpec) -> Optional[str]:
        return self.prompt(spec)

    def sources(self) -> List[Tuple[str, Source]]:
        """The enabled sources, highest priority first."""
        gated: List[Tuple[str, bool, Source]] = [
            ("force-empty", self.config.force_empty_vars, self._from_empty),
            ("with-vars", True, self._from_cmd),
            ("environment", self.config.allow_env, self._from_env),
            ("askfile", self.config.file_vars is not None, self._from_askfile),
            ("interactive", self.config.interactive, self._from_prompt),
        ]
        return [(name, fn) for name, enabled, fn in gated if enabled]

    # ---- resolution ----

    def resolve_one(self, spec: VariableSpec) -> Optional[str]:
        console = get_console()
        for source_name, source in self.sources():
            value = source(spec)
            if value is not None:
                console.print_debug(f"Resolved {spec.name} from {source_name}")
                return value
        console.print_debug(f"No source produced a value for {spec.name}")
        return None

    def resolve(self, catalog: VariableCatalog) -> ResolvedVariables:
        values: Dict[str, str] = {}
        unresolved: List[str] = []
        for name, spec in catalog.items():
            value = self.resolve_one(spec)
            if value is None:
                unresolved.append(name)
            else:
                values[name] = value
        return ResolvedVariables(values, unresolved)


def ensure_complete(resolved: ResolvedVariables, config: RunConfig) -> None:
    """Raise if any variable is unresolved, unless the run tolerates it."""
    missing = resolved.unresolved_required()
    if missing and not config.allow_unresolved:
        raise ResolutionError(names=missing)


def resolve_variables(
    catalog: VariableCatalog,
    config: RunConfig,
    *,
    environ: Mapping[str, str] | None = None,
    prompt: Prompt | None = None,
) -> ResolvedVariables:
    resolved = Resolver(config, environ=environ, prompt=prompt).resolve(catalog)
    ensure_complete(resolved, config)
    return resolved
