"""Shared test fixtures."""

from __future__ import annotations

import subprocess
from collections import Counter
from collections.abc import Callable
from pathlib import Path
from unittest.mock import patch

import pytest

from latex_driver.models import DriverConfig

FIXTURES_DIR = Path(__file__).parent / "fixtures"
SAMPLE_LOGS = FIXTURES_DIR / "sample_logs"
SAMPLE_CONFIG = FIXTURES_DIR / "sample_config.yaml"

BASENAME = "latexdrv"

CLEAN_LOG = (
    "This is pdfTeX, Version 3.141592653-2.6-1.40.25\n"
    "(./latexdrv.tex (./latexdrv.aux) [1] (./latexdrv.aux) )\n"
    "Output written on latexdrv.pdf (1 page, 12345 bytes).\n"
)

# ToolHandler(workdir, args, call_number) -> exit code
ToolHandler = Callable[[Path, list[str], int], int]


class FakeToolchain:
    """Stand-in for the TeX programs, dispatched on the executable's file name.

    Each tool has a handler that writes whatever files the real program would
    leave in the workspace and returns an exit code.  By default every
    formatter run is clean and writes a one-line ``.aux``.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, list[str]]] = []
        self.envs: list[dict[str, str]] = []
        self.counts: Counter[str] = Counter()
        self.workdirs: list[Path] = []
        self.handlers: dict[str, ToolHandler] = {
            "latex": self._formatter("dvi"),
            "pdflatex": self._formatter("pdf"),
            "bibtex": self._writes("bbl", b"\\begin{thebibliography}{1}\n\\end{thebibliography}\n"),
            "makeindex": self._writes("ind", b"\\begin{theindex}\n\\end{theindex}\n"),
            "dvips": self._writes("ps", b"%!PS-Adobe-2.0\n"),
            "ps2pdf": self._writes("pdf", b"%PDF-1.4 from ps\n"),
            "dvipdfm": self._writes("pdf", b"%PDF-1.4 from dvi\n"),
        }

    # -- handler builders ---------------------------------------------------

    @staticmethod
    def write_formatter_output(
        workdir: Path,
        ext: str,
        *,
        log: str = CLEAN_LOG,
        aux: str = "\\relax\n",
        idx: str | None = None,
    ) -> None:
        (workdir / f"{BASENAME}.log").write_text(log)
        (workdir / f"{BASENAME}.aux").write_text(aux)
        if idx is not None:
            (workdir / f"{BASENAME}.idx").write_text(idx)
        (workdir / f"{BASENAME}.{ext}").write_bytes(f"{ext.upper()} output\n".encode())

    def _formatter(self, ext: str) -> ToolHandler:
        def handler(workdir: Path, args: list[str], n: int) -> int:
            self.write_formatter_output(workdir, ext)
            return 0
        return handler

    @staticmethod
    def _writes(ext: str, data: bytes) -> ToolHandler:
        def handler(workdir: Path, args: list[str], n: int) -> int:
            (workdir / f"{BASENAME}.{ext}").write_bytes(data)
            return 0
        return handler

    def on(self, tool: str, handler: ToolHandler) -> None:
        self.handlers[tool] = handler

    # -- subprocess.run replacement -----------------------------------------

    def __call__(self, cmd: list[str], **kwargs) -> subprocess.CompletedProcess:
        tool = Path(cmd[0]).name
        workdir = Path(kwargs["cwd"])
        self.calls.append((tool, list(cmd[1:])))
        self.envs.append(dict(kwargs.get("env") or {}))
        self.workdirs.append(workdir)
        self.counts[tool] += 1
        returncode = self.handlers[tool](workdir, list(cmd[1:]), self.counts[tool])
        return subprocess.CompletedProcess(cmd, returncode)

    @property
    def tools_run(self) -> list[str]:
        return [tool for tool, _ in self.calls]


@pytest.fixture
def toolchain():
    fake = FakeToolchain()
    with patch("latex_driver.tools.runner.subprocess.run", side_effect=fake):
        yield fake


@pytest.fixture
def driver_config(tmp_path: Path) -> DriverConfig:
    out = tmp_path / "output"
    out.mkdir()
    return DriverConfig(output_path=str(out))


@pytest.fixture
def fixtures_dir() -> Path:
    return FIXTURES_DIR


@pytest.fixture
def sample_config_path() -> Path:
    return SAMPLE_CONFIG


@pytest.fixture
def success_log_path() -> Path:
    return SAMPLE_LOGS / "success.log"


@pytest.fixture
def error_log_path() -> Path:
    return SAMPLE_LOGS / "error.log"


@pytest.fixture
def citations_log_path() -> Path:
    return SAMPLE_LOGS / "citations.log"


@pytest.fixture
def references_log_path() -> Path:
    return SAMPLE_LOGS / "references.log"


@pytest.fixture
def sample_latex() -> str:
    """A minimal valid LaTeX document for testing."""
    return r"""\documentclass{article}
\begin{document}
Hello, world.
\end{document}
"""
