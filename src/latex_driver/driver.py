"""Driver — run the LaTeX toolchain until the document stops changing.

Each iteration picks one action from the workspace state:

NEEDS_FORMAT        — run latex/pdflatex and scan its log (costs one run)
NEEDS_BIBLIOGRAPHY  — run bibtex, back up the citation lines
NEEDS_INDEX         — run makeindex, back up the raw index
STABLE              — leave the loop

Only formatter runs count against ``max_runs``.  After the loop the
formatter runs ``extra_runs`` more times, then the postprocessing chain
(dvips, ps2pdf, dvipdfm) runs in order and the final artifact is delivered.
"""

from __future__ import annotations

import logging
import shlex
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from .convergence import (
    next_state,
    record_bibtex_run,
    record_makeindex_run,
    reset_for_formatter_run,
)
from .errors import ConfigurationError, DriverError, ProcessingError, WorkspaceError
from .formats import resolve_format
from .logging_config import DriverCallbacks
from .models import (
    ConvergenceState,
    DriverConfig,
    DriverState,
    FormatPlan,
    Job,
    PipelineResult,
    ToolName,
)
from .tools.log_scanner import log_excerpt, read_log, scan_log
from .tools.runner import CommandRunner
from .workspace import Workspace, check_platform, resolve_destination

logger = logging.getLogger(__name__)


def _failure_result(
    exc: DriverError,
    callbacks: DriverCallbacks | None = None,
    **counters: Any,
) -> PipelineResult:
    logger.error("%s", exc.message)
    if callbacks:
        callbacks.on_error(exc.message)
    return PipelineResult(
        success=False,
        failure=exc.to_failure(),
        final_state=DriverState.FAILED,
        converged=False,
        **counters,
    )


def _job_search_path(job: Job) -> list[str]:
    """Job search path with the system-default (empty) entry guaranteed."""
    search_path = list(job.search_paths)
    if "" not in search_path:
        search_path.append("")
    return search_path


class _DriverRun:
    """Mutable state of one job; created and discarded by :func:`run_job`."""

    def __init__(
        self,
        job: Job,
        config: DriverConfig,
        callbacks: DriverCallbacks | None = None,
    ) -> None:
        self.job = job
        self.config = config
        self.callbacks = callbacks
        # The first pass always formats, even over artifacts left in a reused tmpdir.
        self.state = ConvergenceState(rerun_forced=True)
        self.current = DriverState.NEEDS_FORMAT
        self.formatter_runs = 0
        self.bibtex_runs = 0
        self.makeindex_runs = 0
        self.warnings: list[str] = []
        self.plan: FormatPlan | None = None
        self.workspace: Workspace | None = None
        self.runner: CommandRunner | None = None

    # -- entry points -------------------------------------------------------

    def execute(self) -> PipelineResult:
        check_platform()
        self.plan = resolve_format(self.job.format, self.job.output, self.config.tools)
        dest = resolve_destination(self.plan.output, self.config.output_path)
        source = self._load_source()

        logger.info(
            "Formatting %s with %s%s",
            self.plan.format.value,
            self.plan.formatter.value,
            "".join(f" -> {t.value}" for t in self.plan.postprocessors),
        )

        with Workspace(self.job.tmpdir, self.config.basename) as workspace:
            self.workspace = workspace
            self.runner = CommandRunner(
                self.config.tools,
                workspace.dir,
                _job_search_path(self.job),
                timeout=self.config.timeout,
            )
            workspace.write_source(source)

            converged = self._converge()
            for extra in range(1, self.job.extra_runs + 1):
                logger.info("Extra formatter run %d/%d", extra, self.job.extra_runs)
                self._run_formatter()
            for tool in self.plan.postprocessors:
                self._run_postprocessor(tool)

            data = workspace.deliver(self.plan.extension, dest)

        return PipelineResult(
            success=True,
            data=data,
            output_path=str(dest) if dest is not None else None,
            final_state=self.current,
            converged=converged,
            formatter_runs=self.formatter_runs,
            bibtex_runs=self.bibtex_runs,
            makeindex_runs=self.makeindex_runs,
            warnings=self.warnings,
        )

    def failed(self, exc: DriverError) -> PipelineResult:
        self.current = DriverState.FAILED
        return _failure_result(
            exc,
            self.callbacks,
            formatter_runs=self.formatter_runs,
            bibtex_runs=self.bibtex_runs,
            makeindex_runs=self.makeindex_runs,
            warnings=self.warnings,
        )

    # -- main loop ----------------------------------------------------------

    def _converge(self) -> bool:
        """Run the formatter and auxiliary tools until stable or out of budget.

        Returns True when the document stabilized.
        """
        assert self.workspace is not None
        max_runs = self.job.max_runs

        while self.formatter_runs < max_runs:
            self._set_state(next_state(self.state, self.workspace))
            if self.current is DriverState.STABLE:
                return True
            if self.current is DriverState.NEEDS_FORMAT:
                if self.callbacks:
                    self.callbacks.on_run_start(self.formatter_runs + 1, max_runs)
                self._run_formatter()
            elif self.current is DriverState.NEEDS_BIBLIOGRAPHY:
                self._run_bibtex()
            else:
                self._run_makeindex()

        self._set_state(next_state(self.state, self.workspace))
        if self.current is DriverState.STABLE:
            return True

        message = f"document did not stabilize after {max_runs} formatter runs ({self.current.value})"
        logger.warning(message)
        self.warnings.append(message)
        if self.callbacks:
            self.callbacks.on_warning(message)
        return False

    def _set_state(self, state: DriverState) -> None:
        if state is self.current:
            return
        logger.debug("state %s -> %s", self.current.value, state.value)
        self.current = state
        if self.callbacks:
            self.callbacks.on_state(state.value)

    # -- tools --------------------------------------------------------------

    def _invoke(self, tool: ToolName, args: list[str]) -> int:
        assert self.runner is not None
        if self.callbacks:
            self.callbacks.on_tool_start(tool.value)
        exit_code = self.runner.run(tool, args)
        if self.callbacks:
            self.callbacks.on_tool_end(tool.value, exit_code)
        return exit_code

    def _run_formatter(self) -> None:
        assert self.plan is not None and self.workspace is not None
        formatter = self.plan.formatter
        basename = self.workspace.basename

        reset_for_formatter_run(self.state)
        self.formatter_runs += 1
        exit_code = self._invoke(formatter, [f"\\nonstopmode\\input{{{basename}}}"])

        scan = scan_log(read_log(self.workspace.path("log")), basename, self.state)
        for line in scan.warnings:
            logger.debug("%s: %s", formatter.value, line)

        if exit_code or scan.has_errors:
            raise ProcessingError(
                f"{formatter.value} exited with errors:\n{scan.error_text}",
                log_excerpt=scan.error_text,
            )

    def _run_bibtex(self) -> None:
        assert self.workspace is not None
        basename = self.workspace.basename

        self.bibtex_runs += 1
        exit_code = self._invoke(ToolName.BIBTEX, [basename])
        if exit_code:
            raise ProcessingError(
                f"bibtex {basename} failed ({exit_code})",
                log_excerpt=log_excerpt(self.workspace.path("blg")),
            )
        record_bibtex_run(self.state, self.workspace)

    def _run_makeindex(self) -> None:
        assert self.workspace is not None
        basename = self.workspace.basename

        args: list[str] = []
        if self.job.index_style:
            args += ["-s", self.job.index_style]
        if self.job.index_options:
            args += shlex.split(self.job.index_options)
        args.append(basename)

        self.makeindex_runs += 1
        exit_code = self._invoke(ToolName.MAKEINDEX, args)
        if exit_code:
            raise ProcessingError(
                f"makeindex {basename} failed ({exit_code})",
                log_excerpt=log_excerpt(self.workspace.path("ilg")),
            )
        record_makeindex_run(self.state, self.workspace)

    def _run_postprocessor(self, tool: ToolName) -> None:
        assert self.workspace is not None
        basename = self.workspace.basename
        args = {
            ToolName.DVIPS: [basename, "-o"],
            ToolName.PS2PDF: [f"{basename}.ps", f"{basename}.pdf"],
            ToolName.DVIPDFM: [basename],
        }[tool]

        exit_code = self._invoke(tool, args)
        if exit_code:
            raise ProcessingError(f"{tool.value} {basename} failed ({exit_code})")

    # -- helpers ------------------------------------------------------------

    def _load_source(self) -> str:
        if self.job.source is not None:
            return self.job.source
        assert self.job.source_file is not None
        try:
            return Path(self.job.source_file).read_text(encoding="utf-8")
        except OSError as exc:
            raise WorkspaceError(f"failed to open {self.job.source_file} for input: {exc}") from exc


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def run_job_or_raise(
    job: Job,
    config: DriverConfig | None = None,
    *,
    callbacks: DriverCallbacks | None = None,
) -> PipelineResult:
    """Run *job*; raise a :class:`DriverError` subclass on failure."""
    return _DriverRun(job, config or DriverConfig(), callbacks).execute()


def run_job(
    job: Job,
    config: DriverConfig | None = None,
    *,
    callbacks: DriverCallbacks | None = None,
) -> PipelineResult:
    """Run *job* and return its outcome; failures come back as a result."""
    driver = _DriverRun(job, config or DriverConfig(), callbacks)
    try:
        return driver.execute()
    except DriverError as exc:
        return driver.failed(exc)
    except OSError as exc:
        return driver.failed(WorkspaceError(f"I/O error: {exc}"))


def run(
    source: str,
    format: str | None = None,
    output: str | None = None,
    *,
    config: DriverConfig | None = None,
    callbacks: DriverCallbacks | None = None,
    **options: Any,
) -> PipelineResult:
    """Format LaTeX *source* and return the document bytes or the written path.

    *options* are :class:`~latex_driver.models.Job` fields: ``max_runs``,
    ``extra_runs``, ``index_style``, ``index_options``, ``tmpdir`` and
    ``search_paths``.  Unknown or out-of-range options give a
    configuration failure.
    """
    try:
        job = Job(source=source, format=format, output=output, **options)
    except ValidationError as exc:
        return _failure_result(ConfigurationError(f"invalid job options: {exc}"), callbacks)
    return run_job(job, config, callbacks=callbacks)
