"""Pydantic models for the LaTeX driver."""

from __future__ import annotations

from enum import Enum, IntFlag

from pydantic import BaseModel, ConfigDict, Field, model_validator


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class OutputFormat(str, Enum):
    DVI = "dvi"
    PS = "ps"
    PDF = "pdf"
    PDF_VIA_PS = "pdf(ps)"
    PDF_VIA_DVI = "pdf(dvi)"


class ToolName(str, Enum):
    LATEX = "latex"
    PDFLATEX = "pdflatex"
    BIBTEX = "bibtex"
    MAKEINDEX = "makeindex"
    DVIPS = "dvips"
    PS2PDF = "ps2pdf"
    DVIPDFM = "dvipdfm"


class StatusFlag(IntFlag):
    """Historical LaTeX status bits.

    Only UNDEF_REFS and LABELS_CHANGED are ever derived from a run.  The
    remaining bits are kept for compatibility and never drive a transition.
    """
    NONE = 0
    UNDEF_REFS = 1
    LABELS_CHANGED = 2
    NEW_TOC = 4
    NEW_CITATIONS = 8
    NEW_INDEX = 16


class DriverState(str, Enum):
    NEEDS_FORMAT = "needs_format"
    NEEDS_BIBLIOGRAPHY = "needs_bibliography"
    NEEDS_INDEX = "needs_index"
    STABLE = "stable"
    FAILED = "failed"


class FailureKind(str, Enum):
    CONFIGURATION = "configuration"
    FORMAT = "format"
    PROCESSING = "processing"
    IO = "io"


# ---------------------------------------------------------------------------
# Convergence state
# ---------------------------------------------------------------------------

class ConvergenceState(BaseModel):
    """Per-job rerun flags, reset before each formatter log is scanned."""
    undefined_citations: bool = Field(default=False, description="A citation was reported undefined")
    undefined_references: bool = Field(default=False, description="References (or toc/lof/lot) need another pass")
    labels_changed: bool = Field(default=False, description="LaTeX reported that labels may have changed")
    rerun_forced: bool = Field(default=False, description="An auxiliary tool ran and the formatter must follow")

    @property
    def status(self) -> StatusFlag:
        flags = StatusFlag.NONE
        if self.undefined_references:
            flags |= StatusFlag.UNDEF_REFS
        if self.labels_changed:
            flags |= StatusFlag.LABELS_CHANGED
        return flags


class LogScanResult(BaseModel):
    """Output of scanning one formatter log."""
    error_text: str = Field(default="", description="Fatal error lines joined with newlines")
    warnings: list[str] = Field(default_factory=list, description="Rerun-relevant warning lines, in log order")

    @property
    def has_errors(self) -> bool:
        return bool(self.error_text)


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

class ToolPaths(BaseModel):
    """Executable path per external tool.  An empty string means unconfigured."""
    latex: str = Field(default="/usr/bin/latex")
    pdflatex: str = Field(default="/usr/bin/pdflatex")
    bibtex: str = Field(default="/usr/bin/bibtex")
    makeindex: str = Field(default="/usr/bin/makeindex")
    dvips: str = Field(default="/usr/bin/dvips")
    ps2pdf: str = Field(default="/usr/bin/ps2pdf")
    dvipdfm: str = Field(default="/usr/bin/dvipdfm")

    def get(self, tool: ToolName) -> str:
        return getattr(self, tool.value)


class DriverConfig(BaseModel):
    """Driver-wide settings, passed explicitly into every job."""
    tools: ToolPaths = Field(default_factory=ToolPaths)
    output_path: str | None = Field(default=None, description="Directory that relative output names are placed in")
    timeout: int | None = Field(default=None, description="Per-invocation timeout in seconds (None = wait forever)")
    basename: str = Field(default="latexdrv", description="Basename of every generated artifact")


# ---------------------------------------------------------------------------
# Job
# ---------------------------------------------------------------------------

class Job(BaseModel):
    """One formatting request."""
    model_config = ConfigDict(extra="forbid")

    source: str | None = Field(default=None, description="LaTeX source text")
    source_file: str | None = Field(default=None, description="Path to a LaTeX source file")
    format: str | None = Field(default=None, description="dvi, ps, pdf, pdf(ps) or pdf(dvi)")
    output: str | None = Field(default=None, description="Output file name or bare format name")
    max_runs: int = Field(default=10, ge=1, description="Max formatter runs before giving up")
    extra_runs: int = Field(default=0, ge=0, description="Formatter runs after the document stabilizes")
    index_style: str | None = Field(default=None, description="makeindex -s style file")
    index_options: str | None = Field(default=None, description="Extra makeindex options")
    tmpdir: str | None = Field(default=None, description="Persistent workspace directory")
    search_paths: list[str] = Field(default_factory=list, description="Ordered TEXINPUTS/BIBINPUTS entries")

    @model_validator(mode="after")
    def _one_source(self) -> "Job":
        if (self.source is None) == (self.source_file is None):
            raise ValueError("exactly one of 'source' or 'source_file' is required")
        return self


class FormatPlan(BaseModel):
    """Resolved formatter and postprocessing chain for a job."""
    format: OutputFormat
    formatter: ToolName
    postprocessors: list[ToolName] = Field(default_factory=list)
    extension: str = Field(..., description="Extension of the final artifact")
    output: str | None = Field(default=None, description="Output file name, None when returning bytes")


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------

class Failure(BaseModel):
    kind: FailureKind
    message: str
    log_excerpt: str = Field(default="", description="Diagnostic text from the failing tool")


class PipelineResult(BaseModel):
    """Terminal outcome of a job."""
    success: bool = Field(...)
    data: bytes | None = Field(default=None, description="Document bytes when no destination was given")
    output_path: str | None = Field(default=None, description="Destination the document was written to")
    failure: Failure | None = Field(default=None)
    final_state: DriverState = Field(default=DriverState.STABLE)
    converged: bool = Field(default=True, description="False when the run budget ran out first")
    formatter_runs: int = Field(default=0)
    bibtex_runs: int = Field(default=0)
    makeindex_runs: int = Field(default=0)
    warnings: list[str] = Field(default_factory=list)

    @property
    def written(self) -> bool:
        return self.success and self.output_path is not None
