"""Run LaTeX, bibtex and makeindex until a document stabilizes."""

from .driver import run, run_job, run_job_or_raise
from .errors import ConfigurationError, DriverError, FormatError, ProcessingError, WorkspaceError
from .models import DriverConfig, Job, PipelineResult, ToolPaths

__all__ = [
    "ConfigurationError",
    "DriverConfig",
    "DriverError",
    "FormatError",
    "Job",
    "PipelineResult",
    "ProcessingError",
    "ToolPaths",
    "WorkspaceError",
    "run",
    "run_job",
    "run_job_or_raise",
]
