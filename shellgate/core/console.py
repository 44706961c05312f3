"""Terminal prompts that resolve confirmation requests."""

import getpass
from typing import Awaitable, Callable, Optional

from prompt_toolkit import PromptSession
from prompt_toolkit.formatted_text import ANSI

from ..commands.confirmation import (
    ConfirmationOutcome, ConfirmationRequest, ExecConfirmation, PasswordConfirmation
)
from ..constants import CLR_BOLD_YELLOW, CLR_RED, CLR_RESET, CLR_YELLOW
from ..utils.logging import logger

DECISIONS = {
    "y": ConfirmationOutcome.PROCEED_ONCE,
    "a": ConfirmationOutcome.PROCEED_ALWAYS,
    "n": ConfirmationOutcome.CANCEL,
}

LineReader = Callable[[str], Awaitable[str]]


async def read_console_line(message: str, is_password: bool = False) -> str:
    """Read one line from the terminal.

    The read runs on the event loop, so cancelling the awaiting task stops it
    and restores the terminal; nothing is left waiting on stdin.
    """
    session = PromptSession()
    return await session.prompt_async(ANSI(message), is_password=is_password)


async def read_console_secret(message: str) -> str:
    return await read_console_line(message, is_password=True)


async def prompt_for_decision(details: ExecConfirmation,
                              read_line: Optional[LineReader] = None) -> ConfirmationOutcome:
    """Ask the operator whether a command may run.

    Args:
        details: The pending exec confirmation
        read_line: Async line reader, the terminal by default

    Returns:
        The chosen ConfirmationOutcome
    """
    read_line = read_line or read_console_line
    print(f"{CLR_YELLOW}The assistant wants to run '{CLR_BOLD_YELLOW}{details.command}{CLR_YELLOW}' "
          f"(root command '{details.root_command}').{CLR_RESET}")

    while True:
        choice = (await read_line(
            f"{CLR_YELLOW}Allow execution? (y)es, allow once/(a)lways allow/(n)o: {CLR_RESET}"
        )).strip().lower()
        if choice in DECISIONS:
            return DECISIONS[choice]
        print(f"{CLR_RED}Invalid choice. Enter y, a, or n.{CLR_RESET}")


async def prompt_for_secret(details: PasswordConfirmation,
                            read_secret: Optional[LineReader] = None) -> str:
    """Ask the operator for the elevation secret without echoing it."""
    read_secret = read_secret or read_console_secret
    return await read_secret(f"[sudo] password for {getpass.getuser()}: ")


async def console_confirmation_handler(details: ConfirmationRequest,
                                       read_line: Optional[LineReader] = None,
                                       read_secret: Optional[LineReader] = None) -> None:
    """Confirmation handler that prompts on the terminal.

    Ctrl+C at a prompt abandons the request, which cancels the invocation.
    Ctrl+D declines it.
    """
    try:
        if isinstance(details, PasswordConfirmation):
            details.confirm(await prompt_for_secret(details, read_secret))
        elif isinstance(details, ExecConfirmation):
            details.confirm(await prompt_for_decision(details, read_line))
        else:
            logger.warning(f"No console prompt for '{details.type}' confirmations; declining.")
            details.decline()
    except KeyboardInterrupt:
        print()
        details.abandon()
    except EOFError:
        print()
        details.decline()
