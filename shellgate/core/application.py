"""Main application class for shellgate."""

import asyncio
import signal
import sys
from typing import List, Optional
from pathlib import Path

from ..commands.cancellation import CancellationToken
from ..commands.gate import CommandRequest
from ..config.manager import create_config_manager
from ..core.console import console_confirmation_handler
from ..core.session import create_session
from ..core.shell_tool import InvocationOutcome, create_shell_tool
from ..utils.logging import logger
from ..utils.helpers import check_dependencies
from ..constants import CLR_BOLD_RED, CLR_RESET


class LiveOutput:
    """Prints only the part of each live update not shown yet."""

    def __init__(self, stream=None):
        self.stream = stream or sys.stdout
        self.shown = ""

    def __call__(self, text: str) -> None:
        if text.startswith(self.shown):
            new_text = text[len(self.shown):]
        else:
            new_text = f"{text}\n"
        self.shown = text
        if new_text:
            self.stream.write(new_text)
            self.stream.flush()


class ShellGate:
    """Main application class for shellgate."""

    def __init__(self, config_dir: Optional[str] = None, debug: bool = False,
                 directory: Optional[str] = None, timeout: Optional[float] = None):
        """Initialize the shellgate application.

        Args:
            config_dir: Custom configuration directory path
            debug: Enable debug logging
            directory: Project root, overriding target_dir from the config
            timeout: Seconds after which a running command is cancelled
        """
        # Set up logging first
        logger.set_debug(debug)

        config_path = Path(config_dir) if config_dir else None
        self.config_manager = create_config_manager(config_path)
        self.config = self.config_manager.config

        if not debug and self.config.get("enable_debug", False):
            logger.set_debug(True)

        self.session = create_session(
            policy=self.config_manager.policy,
            target_dir=Path(directory).resolve() if directory else self.config_manager.target_dir,
            debug_mode=self.config_manager.debug_mode,
        )
        self.tool = create_shell_tool(self.session)
        self.timeout = timeout
        self.history: List[str] = []

        check_dependencies(posix=self.session.process_control.supports_process_groups)

        self._setup_signal_handlers()

        logger.debug("Application initialization complete")

    async def run_command(self, command: str) -> InvocationOutcome:
        """Run one command through gate, confirmation and execution.

        Ctrl+C cancels the pending prompt or the running process group.
        """
        loop = asyncio.get_running_loop()
        token = CancellationToken()

        try:
            loop.add_signal_handler(signal.SIGINT, token.cancel)
            interrupt_installed = True
        except (NotImplementedError, RuntimeError):
            interrupt_installed = False

        live = LiveOutput()
        timer = loop.call_later(self.timeout, self._on_timeout, token) if self.timeout else None
        try:
            outcome = await self.tool.invoke(
                CommandRequest(command=command),
                token,
                console_confirmation_handler,
                update_output=live,
            )
        finally:
            if timer is not None:
                timer.cancel()
            if interrupt_installed:
                loop.remove_signal_handler(signal.SIGINT)

        self._report(outcome, live)
        return outcome

    @staticmethod
    def _on_timeout(token: CancellationToken) -> None:
        logger.warning("Command timed out; cancelling.")
        token.cancel()

    def _report(self, outcome: InvocationOutcome, live: LiveOutput) -> None:
        display = outcome.tool_result.return_display
        if live.shown and display.startswith(live.shown):
            # Only the tail that arrived after the last live update
            display = display[len(live.shown):]
        if display:
            print(display, end="" if display.endswith("\n") else "\n")

        if outcome.history is not None:
            self.history.append(outcome.history)

        error = outcome.error
        if error is None:
            return
        if error.fatal:
            logger.error(error.message)
        elif outcome.execution is None:
            logger.policy(error.message)
        else:
            logger.warning(error.message)

    def run_single_command(self, command: str) -> bool:
        """Run a single command and exit.

        Returns:
            True if the command was authorized and succeeded, False otherwise
        """
        try:
            outcome = asyncio.run(self.run_command(command))
        except KeyboardInterrupt:
            logger.system("Command interrupted by user")
            return False
        return outcome.error is None

    def run_interactive_mode(self) -> None:
        """Read commands from the terminal until exit."""
        logger.system("Starting interactive mode. Type 'exit', 'quit', or use Ctrl+D to stop.")
        logger.system("Type 'history' to show the commands run in this session.")

        while True:
            try:
                user_input = input(f"\n{CLR_BOLD_RED}shellgate>{CLR_RESET} ").strip()
            except KeyboardInterrupt:
                logger.system("\nUse 'exit' or 'quit' to stop gracefully")
                continue
            except EOFError:
                logger.system("\nGoodbye!")
                break

            if user_input.lower() in ['exit', 'quit', 'q']:
                logger.system("Goodbye!")
                break
            if not user_input:
                continue
            if user_input.lower() == 'history':
                self.print_history()
                continue

            if not self.run_single_command(user_input):
                logger.debug("Command did not complete successfully")

    def print_history(self) -> None:
        if not self.history:
            logger.system("No commands run in this session.")
            return
        for entry in self.history:
            print(entry)
            print()

    def _setup_signal_handlers(self) -> None:
        """Set up signal handlers for graceful shutdown."""
        def signal_handler(sig, frame):
            logger.system(f"Received signal {sig}, shutting down gracefully...")
            sys.exit(0)

        signal.signal(signal.SIGTERM, signal_handler)

        if hasattr(signal, 'SIGHUP'):
            signal.signal(signal.SIGHUP, signal_handler)

    def get_config_summary(self) -> dict:
        """Get a summary of the current configuration.

        Returns:
            Dictionary with configuration summary
        """
        policy = self.session.policy
        return {
            "config_file": str(self.config_manager.config_file),
            "target_dir": str(self.session.target_dir),
            "platform": self.session.process_control.name,
            "core_tools": list(policy.core_tools) or "(all commands allowed)",
            "exclude_tools": list(policy.exclude_tools) or "(none)",
            "enable_debug": self.config.get("enable_debug", False),
            "debug_mode": self.session.debug_mode,
            "timeout": self.timeout or "(none)",
        }

    def print_config_summary(self) -> None:
        """Print a summary of the current configuration."""
        summary = self.get_config_summary()

        logger.system("Configuration Summary:")
        for key, value in summary.items():
            logger.system(f"  {key}: {value}")


def create_application(config_dir: Optional[str] = None, debug: bool = False,
                       directory: Optional[str] = None,
                       timeout: Optional[float] = None) -> ShellGate:
    """Create and initialize a ShellGate application instance.

    Args:
        config_dir: Custom configuration directory path
        debug: Enable debug logging
        directory: Project root override
        timeout: Per-command timeout in seconds

    Returns:
        Initialized ShellGate instance
    """
    return ShellGate(config_dir, debug, directory, timeout)
