"""Command execution utilities for shellgate."""

import asyncio
import os
import signal as signal_module
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Set, Tuple

from ..constants import (
    ELEVATION_KEYWORD, PIPE_DRAIN_TIMEOUT_SECONDS, ROOT_DIRECTORY_LABEL
)
from ..utils.helpers import remove_file
from ..utils.logging import logger
from .cancellation import CancellationToken
from .credentials import FAILURE_PHRASE_OVERLAP, CredentialCache
from .gate import is_elevation_request
from .output import REDACTED, STDERR, STDOUT, OutputAggregator, is_binary
from .process_control import ProcessControl, ScratchFiles, create_process_control

ELEVATION_MISSING_MESSAGE = (
    "Sudo password required, but not provided or has expired. "
    "Run a sudo command through the assistant first to cache the password."
)


@dataclass(frozen=True)
class ExecutionResult:
    """Everything observed about one shell invocation."""
    command_text: str
    directory_label: str = ROOT_DIRECTORY_LABEL
    stdout: str = ""
    stderr: str = ""
    raw_bytes: bytes = b""
    error: Optional[str] = None
    exit_code: Optional[int] = None
    signal: Optional[str] = None
    background_pids: Tuple[int, ...] = ()
    process_group_id: Optional[int] = None
    aborted: bool = False
    binary: bool = False
    final_pwd: Optional[str] = None

    @property
    def output(self) -> str:
        """Combined stdout and stderr output."""
        return self.stdout + (f"\n{self.stderr}" if self.stderr else "")

    @property
    def success(self) -> bool:
        """Whether the command ran to completion with exit code 0."""
        return self.exit_code == 0 and not self.error and not self.aborted

    def __str__(self) -> str:
        return f"Exit Code: {self.exit_code}. Output:\n{self.output if self.output.strip() else '(no output)'}"


def to_stdin_elevation(command: str) -> str:
    """Rewrite a leading ``sudo`` so it reads the secret from stdin."""
    rest = command.strip()[len(ELEVATION_KEYWORD):]
    return f"{ELEVATION_KEYWORD} -S{rest}"


def scrub(text: str, wrapped_command: str, command: str, secret: Optional[str]) -> str:
    """Hide the wrapper and the secret from text shown to users."""
    text = text.replace(wrapped_command, command)
    if secret:
        text = text.replace(secret, REDACTED)
    return text


def open_secret_pipe(secret: str) -> int:
    """Return the read end of a pipe already holding the secret and a newline."""
    read_fd, write_fd = os.pipe()
    try:
        os.write(write_fd, f"{secret}\n".encode())
    finally:
        os.close(write_fd)
    return read_fd


def signal_name(returncode: Optional[int]) -> Optional[str]:
    """Name of the signal behind a negative return code, if any."""
    if returncode is None or returncode >= 0:
        return None
    try:
        return signal_module.Signals(-returncode).name
    except ValueError:
        return str(-returncode)


class _ShellProtocol(asyncio.SubprocessProtocol):
    """Routes pipe events into the aggregator and tracks process exit."""

    def __init__(self, aggregator: OutputAggregator,
                 watch_text: Callable[[str], object]):
        loop = asyncio.get_running_loop()
        self.aggregator = aggregator
        self.watch_text = watch_text
        self.exited = loop.create_future()
        self.pipes_closed = loop.create_future()
        self._open_fds: Set[int] = {1, 2}

    def pipe_data_received(self, fd: int, data: bytes) -> None:
        if self.aggregator.closed:
            return
        stream = STDOUT if fd == 1 else STDERR
        text = self.aggregator.append(stream, data)
        if text:
            # Phrases split across reads still match
            self.watch_text(self.aggregator.tail(stream, len(text) + FAILURE_PHRASE_OVERLAP))

    def pipe_connection_lost(self, fd: int, exc: Optional[Exception]) -> None:
        self._open_fds.discard(fd)
        if not self._open_fds and not self.pipes_closed.done():
            self.pipes_closed.set_result(None)

    def process_exited(self) -> None:
        if not self.exited.done():
            self.exited.set_result(None)


class CommandExecutor:
    """Spawns shell commands as their own process group and observes them."""

    def __init__(self, credential_cache: CredentialCache,
                 process_control: Optional[ProcessControl] = None,
                 drain_timeout: float = PIPE_DRAIN_TIMEOUT_SECONDS):
        """Initialize command executor.

        Args:
            credential_cache: Session cache cleared when elevation fails
            process_control: Platform implementation; detected when omitted
            drain_timeout: Seconds to wait for pipes to close after exit
        """
        self.credential_cache = credential_cache
        self.process_control = process_control or create_process_control()
        self.drain_timeout = drain_timeout

    async def run(self, command: str, cwd: Path, cancel_token: CancellationToken,
                  on_output: Optional[Callable[[str], None]] = None,
                  secret: Optional[str] = None,
                  directory_label: str = ROOT_DIRECTORY_LABEL) -> ExecutionResult:
        """Run a command and wait for it to exit or be terminated.

        Args:
            command: The user's command line
            cwd: Working directory
            cancel_token: Fired to terminate the process group
            on_output: Throttled live-output callback
            secret: Elevation secret for sudo commands
            directory_label: Directory as shown in results

        Returns:
            ExecutionResult; expected failures are reported, never raised
        """
        if cancel_token.cancelled:
            logger.process("Command cancelled before it could start")
            return ExecutionResult(command_text=command, directory_label=directory_label, aborted=True)

        elevation = self.process_control.supports_elevation and is_elevation_request(command)
        if elevation and not secret:
            logger.warning("Elevation requested without a valid secret; not spawning.")
            return ExecutionResult(
                command_text=command,
                directory_label=directory_label,
                error=ELEVATION_MISSING_MESSAGE,
                exit_code=1,
            )

        command_to_execute = to_stdin_elevation(command) if elevation else command
        secret = secret if elevation else None
        # The secret travels on its own descriptor, never on the shell's stdin
        secret_fd = open_secret_pipe(secret) if secret else None
        scratch = self.process_control.create_scratch_files()
        wrapped = self.process_control.wrap_command(command_to_execute, scratch, secret_fd)

        try:
            return await self._spawn_and_wait(
                command, wrapped, cwd, cancel_token, on_output,
                secret, secret_fd, directory_label, scratch)
        finally:
            if secret_fd is not None:
                os.close(secret_fd)
            if scratch is not None:
                for path in scratch.paths:
                    remove_file(path)

    async def _spawn_and_wait(self, command: str, wrapped: str, cwd: Path,
                              cancel_token: CancellationToken,
                              on_output: Optional[Callable[[str], None]],
                              secret: Optional[str], secret_fd: Optional[int],
                              directory_label: str,
                              scratch: Optional[ScratchFiles]) -> ExecutionResult:
        loop = asyncio.get_running_loop()
        aggregator = OutputAggregator(on_output, redact=secret)

        argv = self.process_control.shell_argv(wrapped)
        logger.debug(f"Executing in {cwd}: {wrapped}")
        logger.command(f"Executing command: {command}")

        try:
            transport, protocol = await loop.subprocess_exec(
                lambda: _ShellProtocol(aggregator, self.credential_cache.invalidate_on_failure),
                *argv,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                cwd=str(cwd),
                pass_fds=(secret_fd,) if secret_fd is not None else (),
                **self.process_control.spawn_options(),
            )
        except OSError as e:
            error = scrub(str(e), wrapped, command, secret)
            logger.error(f"Failed to start command: {error}")
            return ExecutionResult(command_text=command, directory_label=directory_label, error=error)

        pid = transport.get_pid()
        logger.process(f"Started process group {pid}")

        terminations: List[asyncio.Task] = []

        def is_running() -> bool:
            return not protocol.exited.done()

        def abort_handler() -> None:
            logger.process(f"Aborting shell command (PID: {pid})")
            terminations.append(loop.create_task(self.process_control.terminate(pid, is_running)))

        cancel_token.add_listener(abort_handler)
        try:
            await protocol.exited
            try:
                await asyncio.wait_for(asyncio.shield(protocol.pipes_closed), self.drain_timeout)
            except asyncio.TimeoutError:
                logger.debug("Output pipes still open after exit (background processes?)")
            if terminations:
                await asyncio.gather(*terminations)
        finally:
            cancel_token.remove_listener(abort_handler)
            aggregator.finish()
            transport.close()

        returncode = transport.get_returncode()
        aborted = cancel_token.cancelled
        logger.process(f"Process group {pid} exited with return code {returncode}")

        background_pids = self._read_background_pids(scratch, pid, aborted)
        final_pwd = self._read_final_pwd(scratch)

        raw = bytes(aggregator.raw)
        if secret:
            raw = raw.replace(secret.encode(), REDACTED.encode())
        return ExecutionResult(
            command_text=command,
            directory_label=directory_label,
            stdout=aggregator.stdout,
            stderr=aggregator.stderr,
            raw_bytes=raw,
            exit_code=None if aborted or returncode is None or returncode < 0 else returncode,
            signal=signal_name(returncode),
            background_pids=tuple(background_pids),
            process_group_id=pid,
            aborted=aborted,
            binary=aggregator.binary or is_binary(raw),
            final_pwd=final_pwd,
        )

    def _read_background_pids(self, scratch: Optional[ScratchFiles], pid: int,
                              aborted: bool) -> List[int]:
        if scratch is None:
            return []
        if not scratch.pgrep_file.exists():
            if not aborted:
                logger.debug("Missing pgrep output; background processes not reported")
            return []

        background_pids = []
        for line in scratch.pgrep_file.read_text(errors="replace").splitlines():
            line = line.strip()
            if not line:
                continue
            if not line.isdigit():
                logger.debug(f"pgrep: {line}")
                continue
            if int(line) != pid:
                background_pids.append(int(line))
        return background_pids

    @staticmethod
    def _read_final_pwd(scratch: Optional[ScratchFiles]) -> Optional[str]:
        if scratch is None or not scratch.pwd_file.exists():
            return None
        return scratch.pwd_file.read_text(errors="replace").strip() or None


def create_command_executor(credential_cache: CredentialCache,
                            process_control: Optional[ProcessControl] = None) -> CommandExecutor:
    """Create a command executor for the current platform."""
    return CommandExecutor(credential_cache, process_control)
