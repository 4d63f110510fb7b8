"""Hydra structured config dataclasses.

These mirror the Pydantic ``DriverConfig`` and ``Job`` for Hydra schema
validation.  At runtime the Hydra DictConfig is split into a ``DriverConfig``
via ``cli._to_driver_config()`` and a ``Job`` via ``cli._to_job()``.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from hydra.core.config_store import ConfigStore


@dataclass
class ToolsConf:
    latex: str = "${oc.env:LATEX_DRIVER_LATEX,'/usr/bin/latex'}"
    pdflatex: str = "${oc.env:LATEX_DRIVER_PDFLATEX,'/usr/bin/pdflatex'}"
    bibtex: str = "${oc.env:LATEX_DRIVER_BIBTEX,'/usr/bin/bibtex'}"
    makeindex: str = "${oc.env:LATEX_DRIVER_MAKEINDEX,'/usr/bin/makeindex'}"
    dvips: str = "${oc.env:LATEX_DRIVER_DVIPS,'/usr/bin/dvips'}"
    ps2pdf: str = "${oc.env:LATEX_DRIVER_PS2PDF,'/usr/bin/ps2pdf'}"
    dvipdfm: str = "${oc.env:LATEX_DRIVER_DVIPDFM,'/usr/bin/dvipdfm'}"


@dataclass
class DriverConf:
    # --- Dispatch + CLI-only fields ---
    mode: str = "run"
    verbose: bool = False
    quiet: bool = False
    log: str | None = None

    # --- Job fields ---
    source: str | None = None
    format: str | None = None
    output: str | None = None
    max_runs: int = 10
    extra_runs: int = 0
    index_style: str | None = None
    index_options: str | None = None
    tmpdir: str | None = None
    include_path: list[str] = field(default_factory=list)

    # --- DriverConfig fields (1:1 mapping) ---
    tools: ToolsConf = field(default_factory=ToolsConf)
    output_path: str | None = None
    timeout: int | None = None
    basename: str = "latexdrv"


# Keys present in DriverConf that are NOT part of DriverConfig.
CLI_ONLY_KEYS = frozenset({"mode", "verbose", "quiet", "log"})

JOB_KEYS = frozenset({
    "source", "format", "output", "max_runs", "extra_runs",
    "index_style", "index_options", "tmpdir", "include_path",
})


def register_configs() -> None:
    """Register the structured config schema with Hydra's ConfigStore."""
    cs = ConfigStore.instance()
    cs.store(name="driver_schema", node=DriverConf)
