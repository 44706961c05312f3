"""Constants used throughout the shellgate package."""

from pathlib import Path
from colorama import Fore, Style

# Package information
PACKAGE_NAME = "shellgate"

# Configuration paths
CONFIG_DIR = Path.home() / ".config" / "shellgate"
CONFIG_FILE = CONFIG_DIR / "config.yaml"

# ANSI Color Codes (using colorama)
CLR_RESET = Style.RESET_ALL
CLR_RED = Fore.RED
CLR_BOLD_RED = Style.BRIGHT + Fore.RED
CLR_GREEN = Fore.GREEN
CLR_BOLD_GREEN = Style.BRIGHT + Fore.GREEN
CLR_YELLOW = Fore.YELLOW
CLR_BOLD_YELLOW = Style.BRIGHT + Fore.YELLOW
CLR_BLUE = Fore.BLUE
CLR_BOLD_BLUE = Style.BRIGHT + Fore.BLUE
CLR_MAGENTA = Fore.MAGENTA
CLR_BOLD_MAGENTA = Style.BRIGHT + Fore.MAGENTA
CLR_CYAN = Fore.CYAN
CLR_BOLD_CYAN = Style.BRIGHT + Fore.CYAN
CLR_WHITE = Fore.WHITE
CLR_BOLD_WHITE = Style.BRIGHT + Fore.WHITE

# Names under which the shell tool may appear in core_tools / exclude_tools
SHELL_TOOL_NAME = "run_shell_command"
SHELL_TOOL_CLASS_NAME = "ShellTool"
SHELL_TOOL_NAMES = [SHELL_TOOL_CLASS_NAME, SHELL_TOOL_NAME]

# Privilege elevation
ELEVATION_KEYWORD = "sudo"
ELEVATION_FAILURE_PHRASES = [
    "sudo: a password is required",
    "sudo: sorry, try again",
    "incorrect password attempt",
]
CREDENTIAL_TTL_SECONDS = 15 * 60

# Process execution
POSIX_SHELL = "bash"
WINDOWS_SHELL = "cmd.exe"
OUTPUT_UPDATE_INTERVAL_SECONDS = 1.0
MAX_SNIFF_SIZE = 4096
TERMINATION_GRACE_SECONDS = 0.2
PIPE_DRAIN_TIMEOUT_SECONDS = 0.25
SCRATCH_FILE_PREFIX = "shell_pgrep_"
PWD_FILE_PREFIX = "shell_pwd_"
SECRET_FD = 3

# Result rendering
ROOT_DIRECTORY_LABEL = "(root)"
MAX_HISTORY_OUTPUT_LENGTH = 10000

# Default configuration values
DEFAULT_ENABLE_DEBUG = False
DEFAULT_DEBUG_MODE = False
