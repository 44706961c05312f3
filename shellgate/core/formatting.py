"""Renderings of an ExecutionResult for the agent, the operator and history."""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..commands.executor import ExecutionResult
from ..constants import MAX_HISTORY_OUTPUT_LENGTH

BINARY_OUTPUT_PLACEHOLDER = "[Command produced binary output, which is not shown.]"


@dataclass(frozen=True)
class ToolResult:
    """What the tool hands back: agent transcript and human display."""
    llm_content: str
    return_display: str


def format_llm_content(result: ExecutionResult) -> str:
    """Verbose, machine-readable transcript of a run."""
    if result.aborted:
        content = "Command was cancelled by user before it could complete."
        if result.output.strip():
            return f"{content} Below is the output (on stdout and stderr) before it was cancelled:\n{result.output}"
        return f"{content} There was no output before it was cancelled."

    background = ", ".join(str(pid) for pid in result.background_pids)
    return "\n".join([
        f"Command: {result.command_text}",
        f"Directory: {result.directory_label}",
        f"Stdout: {result.stdout or '(empty)'}",
        f"Stderr: {result.stderr or '(empty)'}",
        f"Error: {result.error or '(none)'}",
        f"Exit Code: {_or_none(result.exit_code)}",
        f"Signal: {result.signal or '(none)'}",
        f"Background PIDs: {background or '(none)'}",
        f"Process Group PGID: {_or_none(result.process_group_id)}",
    ])


def format_display(result: ExecutionResult, debug_mode: bool = False) -> str:
    """Terse, human-facing summary of a run."""
    if debug_mode:
        return format_llm_content(result)
    if result.output.strip():
        return BINARY_OUTPUT_PLACEHOLDER if result.binary else result.output
    if result.aborted:
        return "Command cancelled by user."
    if result.signal:
        return f"Command terminated by signal: {result.signal}"
    if result.error:
        return f"Command failed: {result.error}"
    if result.exit_code is not None and result.exit_code != 0:
        return f"Command exited with code: {result.exit_code}"
    return ""


def format_history(result: ExecutionResult, target_dir: Optional[Path] = None) -> str:
    """Text handed to the conversation-history collaborator.

    Output is truncated to MAX_HISTORY_OUTPUT_LENGTH characters.
    """
    if result.binary:
        main_content = BINARY_OUTPUT_PLACEHOLDER
    else:
        main_content = result.output.strip() or "(Command produced no output)"

    if result.error:
        final_output = f"{result.error}\n{main_content}"
    elif result.aborted:
        final_output = f"Command was cancelled.\n{main_content}"
    elif result.signal:
        final_output = f"Command terminated by signal: {result.signal}.\n{main_content}"
    elif result.exit_code not in (0, None):
        final_output = f"Command exited with code {result.exit_code}.\n{main_content}"
    else:
        final_output = main_content

    if target_dir is not None and result.final_pwd and Path(result.final_pwd).resolve() != Path(target_dir).resolve():
        warning = (f"WARNING: shell mode is stateless; the directory change to "
                   f"'{result.final_pwd}' will not persist.")
        final_output = f"{warning}\n\n{final_output}"

    if len(final_output) > MAX_HISTORY_OUTPUT_LENGTH:
        final_output = final_output[:MAX_HISTORY_OUTPUT_LENGTH] + "\n... (truncated)"

    return (
        "I ran the following shell command:\n"
        f"```sh\n{result.command_text}\n```\n\n"
        "This produced the following result:\n"
        f"```\n{final_output}\n```"
    )


def _or_none(value) -> str:
    return "(none)" if value is None else str(value)
