"""Output format resolution.

Maps a requested format (or an output filename) to the primary formatter
and the ordered postprocessing chain that produces the final artifact.
"""

from __future__ import annotations

import re

from .errors import ConfigurationError, FormatError
from .models import FormatPlan, OutputFormat, ToolName, ToolPaths

# format name -> (format, formatter, postprocessors, final extension)
_FORMATS: dict[str, tuple[OutputFormat, ToolName, tuple[ToolName, ...], str]] = {
    "dvi": (OutputFormat.DVI, ToolName.LATEX, (), "dvi"),
    "ps": (OutputFormat.PS, ToolName.LATEX, (ToolName.DVIPS,), "ps"),
    "pdf": (OutputFormat.PDF, ToolName.PDFLATEX, (), "pdf"),
    "pdf(ps)": (OutputFormat.PDF_VIA_PS, ToolName.LATEX, (ToolName.DVIPS, ToolName.PS2PDF), "pdf"),
    "ps2pdf": (OutputFormat.PDF_VIA_PS, ToolName.LATEX, (ToolName.DVIPS, ToolName.PS2PDF), "pdf"),
    "pdf(dvi)": (OutputFormat.PDF_VIA_DVI, ToolName.LATEX, (ToolName.DVIPDFM,), "pdf"),
}

_EXTENSION_RE = re.compile(r"\.(\w+)$")


def supported_formats() -> list[str]:
    return list(_FORMATS)


def _lookup(name: str) -> tuple[OutputFormat, ToolName, tuple[ToolName, ...], str] | None:
    return _FORMATS.get(name.strip().lower())


def resolve_format(
    format: str | None,
    output: str | None,
    tools: ToolPaths | None = None,
) -> FormatPlan:
    """Resolve the formatter and postprocessing chain for a job.

    Order of precedence: the explicit *format*, then the extension of
    *output*, then *output* itself as a bare format name (in which case the
    plan carries no output file).  When *tools* is given, every tool the plan
    needs must have a configured path.
    """
    if format:
        entry = _lookup(format)
        if entry is None:
            raise FormatError(f"invalid output format: {format}")
    elif output is None or output == "":
        raise FormatError("output format not specified")
    else:
        m = _EXTENSION_RE.search(output)
        if m:
            entry = _lookup(m.group(1))
            if entry is None:
                raise FormatError(f"invalid output format: {m.group(1)}")
        else:
            entry = _lookup(output)
            if entry is None:
                raise FormatError(f"cannot determine output format from file name: {output}")
            output = None

    fmt, formatter, postprocessors, extension = entry
    chain = list(postprocessors)

    # PostScript requested but written to a .pdf file: finish with ps2pdf.
    if fmt is OutputFormat.PS and output is not None and output.lower().endswith(".pdf"):
        chain.append(ToolName.PS2PDF)
        extension = "pdf"

    plan = FormatPlan(
        format=fmt,
        formatter=formatter,
        postprocessors=chain,
        extension=extension,
        output=output,
    )
    if tools is not None:
        check_tools(plan, tools)
    return plan


def check_tools(plan: FormatPlan, tools: ToolPaths) -> None:
    """Fail fast when a tool the plan needs has no configured path."""
    for tool in (plan.formatter, *plan.postprocessors):
        if not tools.get(tool):
            raise ConfigurationError(f"{tool.value} cannot be found, please specify its location")
