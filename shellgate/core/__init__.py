"""Core application logic for shellgate."""

from .application import ShellGate, create_application
from .formatting import ToolResult, format_display, format_history, format_llm_content
from .session import Session, create_session
from .shell_tool import InvocationOutcome, ShellTool, classify, create_shell_tool

__all__ = [
    "ShellGate",
    "create_application",
    "ToolResult",
    "format_display",
    "format_history",
    "format_llm_content",
    "Session",
    "create_session",
    "InvocationOutcome",
    "ShellTool",
    "classify",
    "create_shell_tool",
]
