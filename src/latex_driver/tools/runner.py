"""Run one external TeX tool inside the job workspace.

Every invocation gets the workspace as its working directory, the job's
search path exported through the requested ``*INPUTS`` variables, and all
three standard streams bound to the null device.  Only the exit code comes
back; rerun decisions are made by the driver from the files the tool leaves
behind.
"""

from __future__ import annotations

import logging
import os
import subprocess
from collections.abc import Sequence
from pathlib import Path

from ..errors import ConfigurationError, ProcessingError
from ..models import ToolName, ToolPaths

logger = logging.getLogger(__name__)

# Environment variables each tool reads its search path from.
TOOL_ENV_VARS: dict[ToolName, tuple[str, ...]] = {
    ToolName.LATEX: ("TEXINPUTS",),
    ToolName.PDFLATEX: ("TEXINPUTS",),
    ToolName.BIBTEX: ("BIBINPUTS", "BSTINPUTS"),
    ToolName.MAKEINDEX: ("TEXINPUTS", "INDEXSTYLE"),
    ToolName.DVIPS: ("TEXINPUTS",),
    ToolName.PS2PDF: ("TEXINPUTS",),
    ToolName.DVIPDFM: ("TEXINPUTS",),
}


def join_search_path(search_path: Sequence[str]) -> str:
    """Join search-path entries with the platform separator (``:`` on POSIX)."""
    return os.pathsep.join(search_path)


class CommandRunner:
    """Execute configured tools in a fixed working directory."""

    def __init__(
        self,
        tools: ToolPaths,
        workdir: str | Path,
        search_path: Sequence[str] = ("",),
        *,
        timeout: int | None = None,
    ) -> None:
        self.tools = tools
        self.workdir = Path(workdir)
        self.search_path = list(search_path)
        self.timeout = timeout

    def program(self, tool: ToolName) -> str:
        """Return the configured executable for *tool* or fail fast."""
        program = self.tools.get(tool)
        if not program:
            raise ConfigurationError(f"{tool.value} cannot be found, please specify its location")
        return program

    def environment(self, env_vars: Sequence[str]) -> dict[str, str]:
        env = dict(os.environ)
        value = join_search_path(self.search_path)
        for name in env_vars:
            env[name] = value
        return env

    def run(
        self,
        tool: ToolName,
        args: Sequence[str] = (),
        env_vars: Sequence[str] | None = None,
    ) -> int:
        """Run *tool* with *args* and return its exit code."""
        program = self.program(tool)
        if env_vars is None:
            env_vars = TOOL_ENV_VARS.get(tool, ("TEXINPUTS",))
        cmd = [program, *args]

        logger.debug("Running: %s (in %s)", " ".join(cmd), self.workdir)
        try:
            proc = subprocess.run(
                cmd,
                cwd=str(self.workdir),
                env=self.environment(env_vars),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                timeout=self.timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as exc:
            raise ProcessingError(f"{tool.value} timed out after {self.timeout}s") from exc
        except OSError as exc:
            raise ConfigurationError(
                f"{tool.value} cannot be run from {program!r}, please specify its location: {exc}"
            ) from exc

        logger.debug("%s exited with %d", tool.value, proc.returncode)
        return proc.returncode
