"""Formatter log scanning.

Reads a ``.log`` written by ``latex``/``pdflatex`` and extracts two things:

* the fatal-error block: every ``! ...`` line plus the first ``l.NNN`` line
  designator that follows it;
* the warnings that mean another pass is needed (undefined citations,
  undefined references, missing ``.toc``/``.lof``/``.lot``, changed labels),
  recorded on the job's :class:`~latex_driver.models.ConvergenceState`.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from ..errors import ProcessingError
from ..models import ConvergenceState, LogScanResult

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------

_ERROR_RE = re.compile(r"^!")
_LINE_DESIGNATOR_RE = re.compile(r"^l\.\d")
_UNDEF_CITATION_RE = re.compile(r"^LaTeX Warning: Citation .* on page \d+ undefined")
_UNDEF_REFERENCES_RE = re.compile(r"LaTeX Warning: There were undefined references\.")
_LABELS_CHANGED_RE = re.compile(r"^LaTeX Warning: Label\(s\) may have changed\.")


def _missing_aux_list_re(basename: str) -> re.Pattern[str]:
    return re.compile(rf"No file {re.escape(basename)}\.(toc|lof|lot)")


# ---------------------------------------------------------------------------
# Scanning
# ---------------------------------------------------------------------------


def scan_log(text: str, basename: str, state: ConvergenceState) -> LogScanResult:
    """Scan formatter log *text*, updating *state* in place.

    Returns the extracted error block (lines joined by ``\\n``) and the
    warning lines that touched *state*.
    """
    missing_list_re = _missing_aux_list_re(basename)
    errors: list[str] = []
    warnings: list[str] = []
    in_error = False

    for raw in text.splitlines():
        line = raw.rstrip("\r")
        if _ERROR_RE.match(line):
            errors.append(line)
            in_error = True
        elif in_error and _LINE_DESIGNATOR_RE.match(line):
            errors.append(line)
            in_error = False
        elif _UNDEF_CITATION_RE.match(line):
            logger.debug("undefined citations detected")
            state.undefined_citations = True
            warnings.append(line)
        elif _UNDEF_REFERENCES_RE.search(line):
            # Reference warnings caused only by missing citations are left to bibtex.
            if not state.undefined_citations:
                logger.debug("undefined references detected")
                state.undefined_references = True
            warnings.append(line)
        elif missing_list_re.search(line):
            logger.debug("missing toc/lof/lot file")
            state.undefined_references = True
            warnings.append(line)
        elif _LABELS_CHANGED_RE.match(line):
            logger.debug("labels have changed")
            state.labels_changed = True
            warnings.append(line)

    return LogScanResult(error_text="\n".join(errors), warnings=warnings)


def read_log(log_path: str | Path) -> str:
    """Read a formatter log, tolerating the 8-bit bytes TeX writes."""
    try:
        return Path(log_path).read_bytes().decode("utf-8", errors="replace")
    except OSError as exc:
        raise ProcessingError("failed to open log for input") from exc


def log_excerpt(path: str | Path, max_lines: int = 20) -> str:
    """Return the tail of a ``.blg``/``.ilg`` transcript, or ``""`` if absent or unreadable."""
    p = Path(path)
    if not p.exists():
        return ""
    try:
        lines = p.read_text(encoding="utf-8", errors="replace").splitlines()
    except OSError:
        logger.debug("cannot read %s", p)
        return ""
    return "\n".join(lines[-max_lines:])
