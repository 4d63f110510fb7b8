"""Search-path composition for ``TEXINPUTS`` and friends."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path


def build_search_path(include_paths: Iterable[str | Path], template_name: str | None = None) -> list[str]:
    """Return the ordered search path for a job.

    The list starts with an empty entry, which kpathsea expands to the
    system default path.  When *template_name* is found inside an include
    directory, the directory holding it is moved to the front so files next
    to the template win.
    """
    search_path: list[str] = [""]
    for include in include_paths:
        path = str(include)
        if template_name:
            template_path = Path(path) / template_name
            if template_path.is_file():
                template_dir = str(template_path.parent)
                search_path.insert(0, template_dir)
                if template_dir == str(Path(path)):
                    continue
        search_path.append(path)
    return search_path
