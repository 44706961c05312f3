"""
shellgate - policy-gated, human-confirmed shell command execution.

This package provides the shell tool of an agent framework: commands proposed
by an assistant are checked against an allow/deny policy, confirmed by a human
(with optional sudo password caching), run as their own process group with
streamed, throttled output, and reported back as a structured result.
"""

__version__ = "1.0.0"
__author__ = "shellgate Team"

# Main API imports
from .core.application import ShellGate, create_application
from .core.session import Session, create_session
from .core.shell_tool import ShellTool, create_shell_tool
from .config.manager import ConfigManager, create_config_manager

__all__ = [
    "ShellGate",
    "create_application",
    "Session",
    "create_session",
    "ShellTool",
    "create_shell_tool",
    "ConfigManager",
    "create_config_manager",
    "__version__",
]
