"""Configuration templates for shellgate."""

CONFIG_TEMPLATE = """\
# shellgate configuration
# Generated on {current_time} in {current_directory}

# Allow-list of tools. Empty means every command is allowed.
# Entries of the form "run_shell_command(<prefix>)" allow only commands that
# start with <prefix> (on a word boundary). A bare "run_shell_command" or
# "ShellTool" entry allows every command.
core_tools: []
#  - run_shell_command(git)
#  - run_shell_command(ls -l)

# Deny-list of tools. Takes precedence over core_tools.
# A bare "run_shell_command" entry disables the shell tool entirely.
exclude_tools: []
#  - run_shell_command(rm)

# Project root. Commands run here unless a relative directory is given.
# Defaults to the directory shellgate is started from.
target_dir: null

# Show debug log lines.
enable_debug: false

# Show the full command transcript instead of the terse display.
debug_mode: false
"""
