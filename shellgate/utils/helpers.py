"""Helper utility functions for shellgate."""

import datetime
import os
import re
import shutil
from pathlib import Path
from typing import Dict, List

from ..utils.logging import logger

# CSI sequences (colors, cursor movement), OSC sequences (titles, links) and
# the remaining two-character escapes.
_ANSI_ESCAPE_RE = re.compile(
    r"\x1b\[[0-?]*[ -/]*[@-~]"
    r"|\x1b\][^\x07\x1b]*(?:\x07|\x1b\\)"
    r"|\x1b[@-Z\\-_]"
)


def get_current_timestamp() -> str:
    """Returns the current timestamp in YYYY-MM-DD HH:MM:SS format."""
    return datetime.datetime.now().strftime('%Y-%m-%d %H:%M:%S')


def check_dependencies(posix: bool = True) -> List[str]:
    """Check for the external tools the executor shells out to.

    Args:
        posix: Whether the POSIX process control is in use

    Returns:
        Names of the tools that could not be found on PATH
    """
    required_cli_tools = ["bash", "pgrep"] if posix else ["cmd.exe", "taskkill"]

    missing_deps = [name for name in required_cli_tools if shutil.which(name) is None]
    if missing_deps:
        logger.warning(
            f"Missing CLI tool(s): {', '.join(missing_deps)}. "
            "Commands may fail to start or background processes may go unreported."
        )
    else:
        logger.debug(f"Dependency check passed: {', '.join(required_cli_tools)}")
    return missing_deps


def get_current_context() -> Dict[str, str]:
    """Get current system context (time, directory)."""
    return {
        'current_time': get_current_timestamp(),
        'current_directory': os.getcwd(),
    }


def format_template_string(template: str, **kwargs) -> str:
    """Safely format a template string with context variables."""
    try:
        return template.format(**kwargs)
    except KeyError as e:
        logger.error(f"Missing template variable: {e}")
        return template


def strip_ansi(text: str) -> str:
    """Remove terminal control and color sequences from text."""
    return _ANSI_ESCAPE_RE.sub("", text)


def format_memory_usage(num_bytes: int) -> str:
    """Render a byte count as KB, MB or GB."""
    if num_bytes < 1024 * 1024:
        return f"{num_bytes / 1024:.1f} KB"
    if num_bytes < 1024 * 1024 * 1024:
        return f"{num_bytes / (1024 * 1024):.1f} MB"
    return f"{num_bytes / (1024 * 1024 * 1024):.2f} GB"


def remove_file(file_path: Path) -> None:
    """Delete a file if it exists, logging failures instead of raising."""
    try:
        file_path.unlink(missing_ok=True)
    except OSError as e:
        logger.error(f"Failed to remove {file_path}: {e}")


def safe_file_write(file_path: Path, content: str, description: str = None) -> bool:
    """Safely write content to a file with error handling."""
    desc = description or f"file {file_path}"
    try:
        file_path.write_text(content)
        logger.system(f"Generated {desc}")
        return True
    except OSError as e:
        logger.error(f"Failed to write {desc}: {e}")
        return False
