"""Rerun decisions for the formatter, bibtex and makeindex.

LaTeX reports ``Citation ... undefined`` whenever it sees a ``\\cite`` before
it has read the matching ``\\bibcite`` from the ``.aux`` file, which is the
usual case on the pass right after bibtex.  So an undefined-citation warning
alone does not mean bibtex has to run again: the ``\\citation`` lines of the
current ``.aux`` are compared with the copy saved after the last bibtex run
(``.cit`` against ``.cbk``).  The raw index gets the same treatment
(``.idx`` against ``.ibk``).
"""

from __future__ import annotations

import logging

from .models import ConvergenceState, DriverState
from .workspace import Workspace

logger = logging.getLogger(__name__)

_CITATION_PREFIX = b"\\citation"


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


def filter_citation_lines(aux: bytes) -> bytes:
    """Keep only the ``\\citation`` lines of an ``.aux`` file."""
    return b"".join(line for line in aux.splitlines(keepends=True) if line.startswith(_CITATION_PREFIX))


def artifact_changed(current: bytes, backup: bytes | None) -> bool:
    """True unless *backup* exists and is byte-for-byte equal to *current*."""
    return backup is None or current != backup


def reset_for_formatter_run(state: ConvergenceState) -> None:
    state.undefined_citations = False
    state.undefined_references = False
    state.labels_changed = False
    state.rerun_forced = False


def formatter_required(state: ConvergenceState, aux_exists: bool) -> bool:
    return (
        state.undefined_references
        or state.labels_changed
        or state.rerun_forced
        or not aux_exists
    )


# ---------------------------------------------------------------------------
# Workspace-backed predicates
# ---------------------------------------------------------------------------


def bibtex_required(state: ConvergenceState, workspace: Workspace) -> bool:
    """Check whether the citation set changed since bibtex last ran.

    Rewrites ``<basename>.cit`` from the current ``.aux`` as a side effect.
    """
    if not state.undefined_citations:
        return False
    aux = workspace.read_bytes("aux")
    if aux is None:
        return False
    citations = filter_citation_lines(aux)
    workspace.write_bytes("cit", citations)
    if not artifact_changed(citations, workspace.read_bytes("cbk")):
        logger.debug("citations unchanged since the last bibtex run")
        return False
    return True


def makeindex_required(workspace: Workspace) -> bool:
    raw_index = workspace.read_bytes("idx")
    if raw_index is None:
        return False
    return artifact_changed(raw_index, workspace.read_bytes("ibk"))


def record_bibtex_run(state: ConvergenceState, workspace: Workspace) -> None:
    """Back up the citation lines bibtex just processed and force a rerun."""
    workspace.copy("cit", "cbk")
    state.undefined_citations = False
    state.rerun_forced = True


def record_makeindex_run(state: ConvergenceState, workspace: Workspace) -> None:
    """Back up the raw index makeindex just processed and force a rerun."""
    workspace.copy("idx", "ibk")
    state.rerun_forced = True


def next_state(state: ConvergenceState, workspace: Workspace) -> DriverState:
    """Decide the driver's next action from the flags and the workspace files."""
    if formatter_required(state, workspace.exists("aux")):
        return DriverState.NEEDS_FORMAT
    if bibtex_required(state, workspace):
        return DriverState.NEEDS_BIBLIOGRAPHY
    if makeindex_required(workspace):
        return DriverState.NEEDS_INDEX
    return DriverState.STABLE
