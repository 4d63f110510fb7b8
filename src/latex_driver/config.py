"""Configuration loader.

Reads driver settings from a YAML config file with ``${ENV_VAR}``
interpolation.  Tool paths left empty fall back to ``LATEX_DRIVER_<TOOL>``
environment variables, e.g. ``LATEX_DRIVER_PDFLATEX``.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from .models import DriverConfig, ToolName

load_dotenv()

ENV_PREFIX = "LATEX_DRIVER_"

# ---------------------------------------------------------------------------
# YAML loading with ${ENV_VAR} interpolation
# ---------------------------------------------------------------------------

_ENV_RE = re.compile(r"\$\{([^}]+)\}")


def _resolve_env_vars(value: Any) -> Any:
    """Recursively resolve ``${ENV_VAR}`` references in strings."""
    if isinstance(value, str):
        def _replace(m: re.Match) -> str:
            return os.environ.get(m.group(1), "")
        return _ENV_RE.sub(_replace, value)
    if isinstance(value, dict):
        return {k: _resolve_env_vars(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_resolve_env_vars(v) for v in value]
    return value


def apply_tool_fallbacks(config: DriverConfig) -> DriverConfig:
    """Fill empty tool paths from ``LATEX_DRIVER_<TOOL>`` environment variables."""
    for tool in ToolName:
        if not getattr(config.tools, tool.value):
            setattr(config.tools, tool.value, os.getenv(f"{ENV_PREFIX}{tool.value.upper()}", ""))
    if not config.output_path:
        config.output_path = os.getenv(f"{ENV_PREFIX}OUTPUT_PATH") or None
    return config


def load_config(config_path: str | Path) -> DriverConfig:
    """Load a ``DriverConfig`` from a YAML file.

    Environment variables referenced as ``${VAR_NAME}`` are resolved, then
    empty tool paths fall back to ``LATEX_DRIVER_*`` variables.
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path) as f:
        raw = yaml.safe_load(f) or {}

    resolved = _resolve_env_vars(raw)
    config = DriverConfig.model_validate(resolved)
    return apply_tool_fallbacks(config)
