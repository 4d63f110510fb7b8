"""Exception hierarchy for the LaTeX driver."""

from __future__ import annotations

from .models import Failure, FailureKind


class DriverError(RuntimeError):
    """Base exception for a failed formatting job."""

    kind = FailureKind.PROCESSING

    def __init__(self, message: str, *, log_excerpt: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.log_excerpt = log_excerpt

    def to_failure(self) -> Failure:
        return Failure(kind=self.kind, message=self.message, log_excerpt=self.log_excerpt)


class ConfigurationError(DriverError):
    """Raised when a tool path, output directory or platform is unusable."""

    kind = FailureKind.CONFIGURATION


class FormatError(DriverError):
    """Raised when the output format is unknown or cannot be inferred."""

    kind = FailureKind.FORMAT


class ProcessingError(DriverError):
    """Raised when an external tool exits non-zero or the formatter log has errors."""

    kind = FailureKind.PROCESSING


class WorkspaceError(DriverError):
    """Raised when a workspace file cannot be read or written."""

    kind = FailureKind.IO
