"""Platform-specific process control for shellgate.

Two implementations sit behind one interface and are picked once at startup:

- PosixProcessControl: runs ``bash -c`` in a new session so the child leads
  its own process group, appends a trailer that records the group's
  surviving PIDs and the final working directory, and cancels by signalling
  the whole group (SIGTERM, then SIGKILL after a grace window).
- WindowsProcessControl: runs ``cmd.exe /c``, tracks only the direct child and
  cancels with ``taskkill /f /t``.
"""

import asyncio
import os
import secrets
import shlex
import signal
import sys
import tempfile
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from ..constants import (
    POSIX_SHELL, WINDOWS_SHELL, TERMINATION_GRACE_SECONDS,
    SCRATCH_FILE_PREFIX, PWD_FILE_PREFIX, SECRET_FD
)
from ..utils.logging import logger


class ScratchFiles:
    """Uniquely named temp files the POSIX trailer writes into."""

    def __init__(self, directory: Optional[Path] = None):
        base = Path(directory or tempfile.gettempdir())
        token = secrets.token_hex(6)
        self.pgrep_file = base / f"{SCRATCH_FILE_PREFIX}{token}.tmp"
        self.pwd_file = base / f"{PWD_FILE_PREFIX}{token}.tmp"

    @property
    def paths(self) -> List[Path]:
        return [self.pgrep_file, self.pwd_file]


class ProcessControl:
    """Interface for spawning and terminating shell processes."""

    name = "base"
    supports_process_groups = False
    supports_elevation = False

    def shell_argv(self, command: str) -> List[str]:
        raise NotImplementedError

    def spawn_options(self) -> Dict[str, Any]:
        return {}

    def create_scratch_files(self) -> Optional[ScratchFiles]:
        return None

    def wrap_command(self, command: str, scratch: Optional[ScratchFiles],
                     secret_fd: Optional[int] = None) -> str:
        return command

    async def terminate(self, pid: int, is_running: Callable[[], bool]) -> None:
        raise NotImplementedError


def elevation_prelude(secret_fd: int) -> str:
    """Shell text that feeds the secret on secret_fd to the first sudo only.

    The descriptor is moved to fd 3 and a one-shot ``sudo`` function
    redirects it into sudo's stdin, then closes it in the shell once sudo
    returns. The shell's own stdin stays on the null device.
    """
    fd = SECRET_FD
    move = "" if secret_fd == fd else f"exec {fd}<&{secret_fd} {secret_fd}<&-; "
    return (
        f"{move}"
        f"sudo() {{ unset -f sudo; command sudo \"$@\" <&{fd} {fd}<&-; "
        f"local __rc=$?; exec {fd}<&-; return $__rc; }}; "
    )


class PosixProcessControl(ProcessControl):
    """Process-group based control for Linux and macOS."""

    name = "posix"
    supports_process_groups = True
    supports_elevation = True

    def __init__(self, shell: str = POSIX_SHELL,
                 grace_period: float = TERMINATION_GRACE_SECONDS,
                 scratch_dir: Optional[Path] = None):
        self.shell = shell
        self.grace_period = grace_period
        self.scratch_dir = scratch_dir

    def shell_argv(self, command: str) -> List[str]:
        return [self.shell, "-c", command]

    def spawn_options(self) -> Dict[str, Any]:
        # New session: the child becomes leader of its own process group
        return {"start_new_session": True}

    def create_scratch_files(self) -> Optional[ScratchFiles]:
        return ScratchFiles(self.scratch_dir)

    def wrap_command(self, command: str, scratch: Optional[ScratchFiles],
                     secret_fd: Optional[int] = None) -> str:
        """Wrap a command with the background-PID and final-directory trailer.

        The trailer runs after the user's command, lists the PIDs still in the
        process group, records the working directory and re-raises the
        original exit status. With secret_fd, a prelude routes that descriptor
        to the first sudo invocation only.
        """
        prelude = elevation_prelude(secret_fd) if secret_fd is not None else ""
        if scratch is None:
            return prelude + command
        cmd = command
        if not cmd.strip().endswith("&"):
            cmd += ";"
        return (
            f"{prelude}"
            f"{{ {cmd} }}; __code=$?; "
            f"pgrep -g 0 >{shlex.quote(str(scratch.pgrep_file))} 2>&1; "
            f"pwd >{shlex.quote(str(scratch.pwd_file))}; "
            f"exit $__code;"
        )

    async def terminate(self, pid: int, is_running: Callable[[], bool]) -> None:
        """Terminate the process group led by pid, escalating to SIGKILL."""
        try:
            logger.process(f"Sending SIGTERM to process group {pid}")
            os.killpg(pid, signal.SIGTERM)
            await asyncio.sleep(self.grace_period)
            if self._group_exists(pid):
                logger.process(f"Process group {pid} survived SIGTERM; sending SIGKILL")
                os.killpg(pid, signal.SIGKILL)
        except ProcessLookupError:
            logger.debug(f"Process group {pid} already gone")
        except OSError as e:
            logger.warning(f"Failed to signal process group {pid}: {e}")
            if is_running():
                try:
                    os.kill(pid, signal.SIGKILL)
                except OSError as kill_error:
                    logger.error(f"Failed to kill shell process {pid}: {kill_error}")

    @staticmethod
    def _group_exists(pgid: int) -> bool:
        try:
            os.killpg(pgid, 0)
        except ProcessLookupError:
            return False
        except PermissionError:
            return True
        return True


class WindowsProcessControl(ProcessControl):
    """Direct-child control for Windows, using taskkill for the tree."""

    name = "windows"

    def __init__(self, shell: str = WINDOWS_SHELL):
        self.shell = shell

    def shell_argv(self, command: str) -> List[str]:
        return [self.shell, "/c", command]

    async def terminate(self, pid: int, is_running: Callable[[], bool]) -> None:
        if not is_running():
            return
        logger.process(f"Killing process tree {pid} with taskkill")
        try:
            killer = await asyncio.create_subprocess_exec(
                "taskkill", "/pid", str(pid), "/f", "/t",
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
            await killer.wait()
        except OSError as e:
            logger.error(f"Failed to kill process tree {pid}: {e}")


def create_process_control(platform: Optional[str] = None) -> ProcessControl:
    """Select the process control implementation for a platform.

    Args:
        platform: sys.platform style name; defaults to the running platform
    """
    platform = platform or sys.platform
    if platform == "win32":
        return WindowsProcessControl()
    return PosixProcessControl()
