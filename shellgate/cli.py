"""Command-line interface for shellgate."""

import argparse
import sys
from typing import List, Optional

from colorama import init as colorama_init

from .core.application import create_application
from .utils.logging import logger
from . import __version__


def create_parser() -> argparse.ArgumentParser:
    """Create the command-line argument parser."""
    parser = argparse.ArgumentParser(
        description="shellgate: policy-gated, human-confirmed shell command execution.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  shellgate ls -la                      # Run one command (asks for confirmation)
  shellgate -C ~/project git status     # Run inside another project root
  shellgate --timeout 30 make test      # Cancel the command after 30 seconds
  shellgate "sudo apt update"           # Prompts for the sudo password once
  shellgate                             # Interactive mode

Confirmation choices:
  y - allow this command once
  a - always allow this root command for the session
  n - deny

Policy is read from core_tools / exclude_tools in the config file.
Ctrl+C cancels a pending prompt or the running process group.
        """
    )

    parser.add_argument(
        'command',
        nargs=argparse.REMAINDER,
        help="Command to run. If empty, enters interactive mode."
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'shellgate {__version__}'
    )

    parser.add_argument(
        '--debug',
        action='store_true',
        help="Enable debug logging output"
    )

    parser.add_argument(
        '--config-dir',
        type=str,
        help="Custom configuration directory path"
    )

    parser.add_argument(
        '-C', '--directory',
        type=str,
        help="Project root to run commands in (overrides target_dir)"
    )

    parser.add_argument(
        '--timeout',
        type=float,
        metavar='SECONDS',
        help="Cancel a running command after this many seconds"
    )

    parser.add_argument(
        '--config-summary',
        action='store_true',
        help="Show configuration summary and exit"
    )

    return parser


def main(args: Optional[List[str]] = None) -> None:
    """Main entry point for the CLI."""
    # Initialize colorama for cross-platform colored output
    colorama_init(autoreset=True)

    parser = create_parser()
    parsed_args = parser.parse_args(args)

    if parsed_args.timeout is not None and parsed_args.timeout <= 0:
        parser.error("--timeout must be a positive number of seconds")

    try:
        app = create_application(
            config_dir=parsed_args.config_dir,
            debug=parsed_args.debug,
            directory=parsed_args.directory,
            timeout=parsed_args.timeout,
        )
    except OSError as e:
        logger.error(f"Failed to initialize shellgate: {e}")
        sys.exit(1)

    if parsed_args.config_summary:
        app.print_config_summary()
        return

    if parsed_args.command:
        success = app.run_single_command(" ".join(parsed_args.command))
        sys.exit(0 if success else 1)
    else:
        app.run_interactive_mode()

    logger.system("shellgate session ended.")


if __name__ == "__main__":
    main()
