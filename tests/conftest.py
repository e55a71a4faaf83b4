from __future__ import annotations

import json
import os
import textwrap
from pathlib import Path
from typing import Any, Mapping

import pytest


class JobTreeBuilder:
    """Writes throwaway job directories (run.<ext>, deps.sh, info.json) under a root."""

    def __init__(self, tmp_path: Path) -> None:
        self.root = tmp_path / "jobs"
        self.root.mkdir()
        self.log = tmp_path / "order.log"

    def script(self, body: str = "exit 0") -> str:
        return "#!/bin/sh\n" + textwrap.dedent(body).lstrip("\n")

    def logging_script(self, tag: str, exit_code: int = 0) -> str:
        """A script that appends `tag` to the shared order log, then exits."""
        return self.script(f'echo "{tag}" >> "$ORDER_LOG"\nexit {exit_code}\n')

    def job(
        self,
        name: str,
        *,
        runner: str = "run.sh",
        run: str | None = None,
        pre_step: str | None = None,
        info: Mapping[str, Any] | None = None,
        raw_info: str | None = None,
        executable: bool = True,
    ) -> Path:
        directory = self.root / name
        directory.mkdir()
        self._write(directory / runner, run if run is not None else self.logging_script(name), executable)
        if pre_step is not None:
            self._write(directory / "deps.sh", pre_step, executable)
        if info is not None:
            (directory / "info.json").write_text(json.dumps(info), encoding="utf-8")
        if raw_info is not None:
            (directory / "info.json").write_text(raw_info, encoding="utf-8")
        return directory

    def environ(self, **extra: str) -> dict[str, str]:
        env = {"PATH": os.environ.get("PATH", "/usr/bin:/bin"), "ORDER_LOG": str(self.log)}
        env.update(extra)
        return env

    def order(self) -> list[str]:
        if not self.log.exists():
            return []
        return self.log.read_text(encoding="utf-8").split()

    @staticmethod
    def _write(path: Path, content: str, executable: bool) -> None:
        path.write_text(content, encoding="utf-8")
        path.chmod(0o755 if executable else 0o644)


@pytest.fixture
def tree(tmp_path: Path) -> JobTreeBuilder:
    """Provide a job tree rooted at the pytest tmp_path."""
    return JobTreeBuilder(tmp_path)
