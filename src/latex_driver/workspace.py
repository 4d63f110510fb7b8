"""Job workspace: temporary directory, source file, output delivery, cleanup."""

from __future__ import annotations

import logging
import os
import shutil
import sys
import tempfile
from pathlib import Path
from types import TracebackType

from .errors import ConfigurationError, WorkspaceError

logger = logging.getLogger(__name__)

DEFAULT_BASENAME = "latexdrv"
_TMP_PREFIX = "latexdrv"


def check_platform() -> None:
    """Fail fast on platforms the driver cannot run external tools on."""
    if os.name not in ("posix", "nt"):
        raise ConfigurationError(f"not available on {sys.platform}")


def resolve_destination(output: str | None, output_path: str | None) -> Path | None:
    """Return the absolute destination for *output*, or None when returning bytes.

    Relative names are placed in *output_path*; an absolute name is used as is.
    """
    if not output:
        return None
    dest = Path(output)
    if dest.is_absolute():
        return dest
    if not output_path:
        raise ConfigurationError("OUTPUT_PATH is not set")
    return Path(output_path) / dest


class Workspace:
    """A job-owned directory holding ``<basename>.*`` artifacts.

    A caller-supplied *tmpdir* is created if needed and preserved afterwards;
    otherwise a fresh mkdtemp directory is created and removed on exit.
    """

    def __init__(self, tmpdir: str | Path | None = None, basename: str = DEFAULT_BASENAME) -> None:
        self.basename = basename
        self.persistent = tmpdir is not None
        try:
            if tmpdir is None:
                self.dir = Path(tempfile.mkdtemp(prefix=_TMP_PREFIX))
            else:
                d = Path(tmpdir)
                if not d.is_absolute():
                    d = Path(tempfile.gettempdir()) / d
                d.mkdir(mode=0o700, parents=True, exist_ok=True)
                self.dir = d
        except OSError as exc:
            raise WorkspaceError(f"failed to create temporary directory: {exc}") from exc
        logger.debug("Workspace %s (persistent=%s)", self.dir, self.persistent)

    def __enter__(self) -> "Workspace":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.cleanup()

    # -- artifact paths -----------------------------------------------------

    def path(self, ext: str) -> Path:
        return self.dir / f"{self.basename}.{ext}"

    def exists(self, ext: str) -> bool:
        return self.path(ext).is_file()

    def read_bytes(self, ext: str) -> bytes | None:
        """Return the artifact's bytes, or None when it does not exist."""
        p = self.path(ext)
        if not p.exists():
            return None
        try:
            return p.read_bytes()
        except OSError as exc:
            raise WorkspaceError(f"failed to open {p} for input: {exc}") from exc

    def write_bytes(self, ext: str, data: bytes) -> Path:
        p = self.path(ext)
        try:
            p.write_bytes(data)
        except OSError as exc:
            raise WorkspaceError(f"failed to open {p} for output: {exc}") from exc
        return p

    def copy(self, src_ext: str, dst_ext: str) -> None:
        try:
            shutil.copyfile(self.path(src_ext), self.path(dst_ext))
        except OSError as exc:
            raise WorkspaceError(f"failed to copy {self.basename}.{src_ext}: {exc}") from exc

    # -- source and output --------------------------------------------------

    def write_source(self, text: str) -> Path:
        """Write the LaTeX source to ``<basename>.tex``."""
        return self.write_bytes("tex", text.encode("utf-8"))

    def deliver(self, ext: str, dest: Path | None) -> bytes | None:
        """Move the final artifact to *dest*, or return its bytes when *dest* is None.

        Renaming is tried first; when that fails (e.g. /tmp on another
        filesystem) the artifact is read into memory and written out.
        """
        artifact = self.path(ext)
        if dest is not None:
            try:
                os.replace(artifact, dest)
                logger.debug("renamed %s to %s", artifact, dest)
                return None
            except OSError:
                logger.debug("rename to %s failed, copying instead", dest)

        try:
            data = artifact.read_bytes()
        except OSError as exc:
            raise WorkspaceError(f"failed to open {artifact} for input") from exc

        if dest is None:
            logger.debug("returning %d bytes of document data", len(data))
            return data

        try:
            dest.write_bytes(data)
        except OSError as exc:
            raise WorkspaceError(f"failed to write output to {dest}: {exc}") from exc
        logger.debug("wrote output to %s", dest)
        return None

    def cleanup(self) -> None:
        """Remove the directory unless it was supplied by the caller."""
        if self.persistent:
            return
        if self.dir.is_dir():
            shutil.rmtree(self.dir, ignore_errors=True)
