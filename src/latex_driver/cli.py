"""CLI entry point using Hydra.

Usage examples:
  latex-driver source=report.tex output=report.pdf output_path=build/
  latex-driver source=report.tex format='pdf(ps)' output=/tmp/report.pdf max_runs=5
  latex-driver source=book.tex output=book.pdf index_style=book.ist include_path=[styles,figures]
  latex-driver mode=resolve output=report.ps
  latex-driver mode=scan log=build/report.log
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

import hydra
from omegaconf import DictConfig, OmegaConf

from ._hydra_conf import CLI_ONLY_KEYS, JOB_KEYS, register_configs
from .config import apply_tool_fallbacks
from .logging_config import RichCallbacks, console, setup_logging
from .models import ConvergenceState, DriverConfig, Job

register_configs()

# ---------------------------------------------------------------------------
# Hydra DictConfig → Pydantic bridge
# ---------------------------------------------------------------------------


def _to_driver_config(cfg: DictConfig) -> DriverConfig:
    """Convert a Hydra *DictConfig* to a Pydantic ``DriverConfig``.

    CLI-only and job keys are stripped before validation.  Empty tool paths
    fall back to ``LATEX_DRIVER_*`` environment variables afterwards.
    """
    container: dict[str, Any] = OmegaConf.to_container(cfg, resolve=True)  # type: ignore[assignment]
    for key in CLI_ONLY_KEYS | JOB_KEYS:
        container.pop(key, None)
    config = DriverConfig.model_validate(container)
    return apply_tool_fallbacks(config)


def _to_job(cfg: DictConfig) -> Job:
    """Build a ``Job`` from the job keys of a Hydra *DictConfig*.

    ``source`` names a file; the include path is expanded with the source
    file's directory first, so ``\\input`` siblings are found.
    """
    from .paths import build_search_path

    source = cfg.get("source")
    if not source:
        raise ValueError("source is required for run mode")

    source_path = Path(source)
    include = [str(source_path.resolve().parent), *(cfg.get("include_path") or [])]
    return Job(
        source_file=str(source_path),
        format=cfg.get("format"),
        output=cfg.get("output"),
        max_runs=cfg.get("max_runs", 10),
        extra_runs=cfg.get("extra_runs", 0),
        index_style=cfg.get("index_style"),
        index_options=cfg.get("index_options"),
        tmpdir=cfg.get("tmpdir"),
        search_paths=build_search_path(include, source_path.name),
    )


# ---------------------------------------------------------------------------
# Mode handlers
# ---------------------------------------------------------------------------


def _run_mode(cfg: DictConfig) -> None:
    from .driver import run_job

    config = _to_driver_config(cfg)
    try:
        job = _to_job(cfg)
    except ValueError as exc:
        console.print(f"[red]{exc}[/]")
        sys.exit(1)

    result = run_job(job, config, callbacks=RichCallbacks())

    if not result.success:
        assert result.failure is not None
        console.print(f"\n[bold red]Formatting failed ({result.failure.kind.value}).[/]")
        console.print(f"  [red]{result.failure.message}[/]")
        if result.failure.log_excerpt and result.failure.log_excerpt not in result.failure.message:
            console.print(result.failure.log_excerpt)
        sys.exit(1)

    runs = f"{result.formatter_runs} formatter, {result.bibtex_runs} bibtex, {result.makeindex_runs} makeindex"
    if result.output_path:
        console.print(f"[bold green]Written:[/] {result.output_path} ({runs})")
    else:
        assert result.data is not None
        sys.stdout.buffer.write(result.data)
        sys.stdout.buffer.flush()
    for warning in result.warnings:
        console.print(f"[yellow]WARNING:[/] {warning}")


def _resolve_mode(cfg: DictConfig) -> None:
    from .errors import DriverError
    from .formats import resolve_format, supported_formats

    config = _to_driver_config(cfg)
    try:
        plan = resolve_format(cfg.get("format"), cfg.get("output"), config.tools)
    except DriverError as exc:
        console.print(f"[red]{exc.message}[/]")
        console.print(f"  Supported formats: {', '.join(supported_formats())}", markup=False)
        sys.exit(1)

    console.print(f"  Format: {plan.format.value}")
    console.print(f"  Formatter: {plan.formatter.value} ({config.tools.get(plan.formatter)})")
    for tool in plan.postprocessors:
        console.print(f"  Postprocess: {tool.value} ({config.tools.get(tool)})")
    console.print(f"  Output: {plan.output or '<bytes>'} (.{plan.extension})")


def _scan_mode(cfg: DictConfig) -> None:
    from .errors import DriverError
    from .tools.log_scanner import read_log, scan_log

    log = cfg.get("log")
    if not log:
        console.print("[red]log is required for scan mode[/]")
        sys.exit(1)

    state = ConvergenceState()
    try:
        scan = scan_log(read_log(log), Path(log).stem, state)
    except DriverError as exc:
        console.print(f"[red]{exc.message}[/]")
        sys.exit(1)

    console.print(f"  Undefined citations: {state.undefined_citations}")
    console.print(f"  Undefined references: {state.undefined_references}")
    console.print(f"  Labels changed: {state.labels_changed}")
    console.print(f"  Status: {int(state.status)}")
    if scan.has_errors:
        console.print("[bold red]Errors:[/]")
        console.print(scan.error_text, markup=False)
        sys.exit(1)


_MODE_DISPATCH: dict[str, Any] = {
    "run": _run_mode,
    "resolve": _resolve_mode,
    "scan": _scan_mode,
}


# ---------------------------------------------------------------------------
# Hydra entry point
# ---------------------------------------------------------------------------


@hydra.main(config_path="conf", config_name="config", version_base=None)
def hydra_entry(cfg: DictConfig) -> None:
    """Hydra-managed CLI entry point."""
    setup_logging(verbose=cfg.get("verbose", False), quiet=cfg.get("quiet", False))

    mode = cfg.get("mode", "run")
    handler = _MODE_DISPATCH.get(mode)
    if handler is None:
        console.print(f"[red]Unknown mode: {mode!r}. Choose from: {', '.join(_MODE_DISPATCH)}[/]")
        sys.exit(1)

    handler(cfg)


def main() -> None:
    """Package entry point (``[project.scripts]`` target)."""
    hydra_entry()  # pylint: disable=no-value-for-parameter
