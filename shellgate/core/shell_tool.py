"""The run_shell_command tool: gate, authorize, execute, render."""

from dataclasses import dataclass
from typing import Callable, Optional

from ..commands.cancellation import CancellationToken
from ..commands.confirmation import ConfirmationHandler, ConfirmationRequest, ConfirmationState
from ..commands.errors import (
    AuthorizationDenied, Cancelled, ElevationUnavailable, PolicyViolation,
    RuntimeFailure, ShellGateError, SpawnFailure
)
from ..commands.executor import ExecutionResult
from ..commands.gate import CommandRequest, get_command_root, is_elevation_request
from ..constants import ROOT_DIRECTORY_LABEL, SHELL_TOOL_NAME
from ..utils.logging import logger
from .formatting import ToolResult, format_display, format_history, format_llm_content
from .session import Session

TOOL_DESCRIPTION = """\
This tool executes a given shell command as `bash -c <command>`. Command can start background processes using `&`. \
Command is executed as a subprocess that leads its own process group. Command process group can be terminated as \
`kill -- -PGID` or signaled as `kill -s SIGNAL -- -PGID`.

The following information is returned:

Command: Executed command.
Directory: Directory (relative to project root) where command was executed, or `(root)`.
Stdout: Output on stdout stream. Can be `(empty)` or partial on error and for any unwaited background processes.
Stderr: Output on stderr stream. Can be `(empty)` or partial on error and for any unwaited background processes.
Error: Error or `(none)` if no error was reported for the subprocess.
Exit Code: Exit code or `(none)` if terminated by signal.
Signal: Signal number or `(none)` if no signal was received.
Background PIDs: List of background processes started or `(none)`.
Process Group PGID: Process group started or `(none)`"""


@dataclass(frozen=True)
class InvocationOutcome:
    """Result of one full pipeline round-trip."""
    tool_result: ToolResult
    execution: Optional[ExecutionResult] = None
    error: Optional[ShellGateError] = None
    history: Optional[str] = None


def classify(result: ExecutionResult) -> Optional[ShellGateError]:
    """Map an execution result onto the error taxonomy, None on success."""
    if result.aborted:
        return Cancelled("Command cancelled by user.", result.command_text)
    if result.process_group_id is None and result.error:
        if result.exit_code is not None:
            return ElevationUnavailable(result.error, result.command_text)
        return SpawnFailure(result.error, result.command_text)
    if result.signal:
        return RuntimeFailure(f"Command terminated by signal: {result.signal}",
                              result.command_text, signal=result.signal)
    if result.exit_code not in (0, None):
        return RuntimeFailure(f"Command exited with code {result.exit_code}",
                              result.command_text, exit_code=result.exit_code)
    return None


class ShellTool:
    """Agent-facing shell tool bound to one session."""

    name = SHELL_TOOL_NAME
    display_name = "Shell"
    description = TOOL_DESCRIPTION

    def __init__(self, session: Session):
        self.session = session

    def get_description(self, params: CommandRequest) -> str:
        """One-line description shown while confirming or running."""
        description = params.command
        if params.directory:
            description += f" [in {params.directory}]"
        if params.description:
            description += f" ({params.description.replace(chr(10), ' ')})"
        return description

    def get_command_root(self, command: str) -> Optional[str]:
        return get_command_root(command)

    def validate_tool_params(self, params: CommandRequest) -> Optional[str]:
        return self.session.gate.validate(params)

    async def should_confirm_execute(self, params: CommandRequest,
                                     cancel_token: CancellationToken) -> Optional[ConfirmationRequest]:
        """Confirmation needed before execute(), or None to proceed."""
        if cancel_token.cancelled:
            return None
        return self.session.coordinator.should_confirm(params)

    async def run(self, params: CommandRequest, cancel_token: CancellationToken,
                  update_output: Optional[Callable[[str], None]] = None) -> ExecutionResult:
        """Validate and run a command.

        Raises:
            PolicyViolation: The gate rejected the command
            Cancelled: The token fired before the process could start
            ElevationUnavailable: sudo was requested without a valid secret
        """
        self.session.gate.check(params)
        if cancel_token.cancelled:
            raise Cancelled("Command was cancelled by user before it could start.", params.command)

        secret = None
        if self.session.process_control.supports_elevation and is_elevation_request(params.command):
            secret = self.session.credential_cache.get()
            if not secret:
                raise ElevationUnavailable(
                    "Sudo command rejected: password has not been provided or has expired.",
                    params.command)

        return await self.session.executor.run(
            params.command,
            self.session.gate.resolve_directory(params.directory),
            cancel_token,
            on_output=update_output,
            secret=secret,
            directory_label=params.directory or ROOT_DIRECTORY_LABEL,
        )

    async def execute(self, params: CommandRequest, cancel_token: CancellationToken,
                      update_output: Optional[Callable[[str], None]] = None) -> ToolResult:
        """Run a command and render the outcome for the agent and the operator."""
        try:
            result = await self.run(params, cancel_token, update_output)
        except ShellGateError as e:
            return self._rejection(params, e)
        return self.render(result)

    @staticmethod
    def _rejection(params: CommandRequest, error: ShellGateError) -> ToolResult:
        if isinstance(error, PolicyViolation):
            return ToolResult(
                llm_content=f"Command rejected: {params.command}\nReason: {error.message}",
                return_display=f"Error: {error.message}",
            )
        if isinstance(error, ElevationUnavailable):
            return ToolResult(llm_content=error.message, return_display="Error: Sudo password required.")
        return ToolResult(llm_content=error.message, return_display="Command cancelled by user.")

    def render(self, result: ExecutionResult) -> ToolResult:
        return ToolResult(
            llm_content=format_llm_content(result),
            return_display=format_display(result, self.session.debug_mode),
        )

    async def invoke(self, params: CommandRequest, cancel_token: CancellationToken,
                     handler: ConfirmationHandler,
                     update_output: Optional[Callable[[str], None]] = None) -> InvocationOutcome:
        """Full pipeline: gate, confirm through handler, execute, render.

        Args:
            params: The proposed command
            cancel_token: Cancels a pending confirmation or a running process
            handler: UI collaborator that resolves confirmation requests
            update_output: Throttled live-output callback

        Returns:
            InvocationOutcome with the rendered result and its classification
        """
        validation_error = self.validate_tool_params(params)
        if validation_error:
            logger.policy(f"Command rejected: {validation_error}")
            violation = PolicyViolation(validation_error, params.command)
            return InvocationOutcome(
                tool_result=self._rejection(params, violation),
                error=violation,
            )

        state = await self.session.coordinator.authorize(params, cancel_token, handler)
        if state == ConfirmationState.CANCELLED:
            return InvocationOutcome(
                tool_result=ToolResult(
                    llm_content="Command was cancelled by user before it could start.",
                    return_display="Command cancelled by user.",
                ),
                error=Cancelled("Command was cancelled by user before it could start.", params.command),
            )
        if state == ConfirmationState.DENIED:
            return InvocationOutcome(
                tool_result=ToolResult(
                    llm_content=f"Command was not approved by the user: {params.command}",
                    return_display="Command denied by user.",
                ),
                error=AuthorizationDenied("Command denied by user.", params.command),
            )

        try:
            result = await self.run(params, cancel_token, update_output)
        except ShellGateError as e:
            return InvocationOutcome(tool_result=self._rejection(params, e), error=e)

        cwd = self.session.gate.resolve_directory(params.directory)
        return InvocationOutcome(
            tool_result=self.render(result),
            execution=result,
            error=classify(result),
            history=format_history(result, cwd),
        )


def create_shell_tool(session: Session) -> ShellTool:
    """Create a shell tool bound to a session."""
    return ShellTool(session)
