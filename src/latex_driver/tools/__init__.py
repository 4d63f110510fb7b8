"""External tool execution and log scanning."""

from .log_scanner import log_excerpt, read_log, scan_log
from .runner import CommandRunner, join_search_path

__all__ = [
    "CommandRunner",
    "join_search_path",
    "log_excerpt",
    "read_log",
    "scan_log",
]
