# config.py
from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, Optional, Tuple

from .errors import ConfigError
from .model import split_secure_name

# NAME=value, surrounding whitespace ignored, value may be empty
VAR_LINE = re.compile(r"^\s*([A-Z\d][A-Z\d_]*)\s*=\s*(.*?)\s*$")


@dataclass(frozen=True)
class RunConfig:
    """
    Everything the core needs from the command line, already parsed.

    cmd_vars:  --with-vars pairs
    file_vars: askfile contents (None when no askfile was given)
    """
    root_dir: Path
    cmd_vars: Dict[str, str] = field(default_factory=dict)
    file_vars: Optional[Dict[str, str]] = None

    force_empty_vars: bool = False
    allow_env: bool = True
    interactive: bool = False
    allow_unresolved: bool = False

    dry_run: bool = False
    single_job: Optional[str] = None

    @classmethod
    def from_options(
        cls,
        root_dir: str | Path,
        *,
        with_vars: Iterable[str] = (),
        ask_file: str | Path | None = None,
        force_empty_vars: bool = False,
        no_allow_env: bool = False,
        interactive: bool = False,
        allow_unresolved: bool = False,
        dry_run: bool = False,
        single_job: Optional[str] = None,
    ) -> RunConfig:
        file_vars = parse_askfile(ask_file) if ask_file is not None else None
        return cls(
            root_dir=Path(root_dir),
            cmd_vars=parse_var_strings(with_vars, source="--with-vars"),
            file_vars=file_vars,
            force_empty_vars=force_empty_vars,
            allow_env=not no_allow_env,
            interactive=interactive,
            allow_unresolved=allow_unresolved,
            dry_run=dry_run,
            single_job=single_job,
        )


def parse_var_string(line: str, source: str) -> Tuple[str, str]:
    match = VAR_LINE.match(line)
    if match is None:
        raise ConfigError(
            kind="bad-var-line",
            message=f"Unparseable line found in {source}: {line!r}",
            details={"source": source},
        )
    name, _secure = split_secure_name(match.group(1))
    return name, match.group(2)


def parse_var_strings(lines: Iterable[str], source: str) -> Dict[str, str]:
    values: Dict[str, str] = {}
    for line in lines:
        name, value = parse_var_string(line, source)
        # later lines override earlier ones
        values[name] = value
    return values


def parse_askfile(path: str | Path) -> Dict[str, str]:
    """Read a NAME=value file. Blank lines and `#` comments are skipped."""
    p = Path(path).expanduser()
    if not p.is_file():
        raise ConfigError(
            kind="missing-askfile",
            message=f"Askfile not found: {p}",
            details={"path": str(p)},
        )
    lines = [
        line for line in p.read_text(encoding="utf-8").splitlines()
        if line.strip() and not line.lstrip().startswith("#")
    ]
    return parse_var_strings(lines, source=str(p))
