"""Tests for rendering execution results."""
from shellgate.commands.executor import ExecutionResult
from shellgate.constants import MAX_HISTORY_OUTPUT_LENGTH
from shellgate.core.formatting import (
    BINARY_OUTPUT_PLACEHOLDER,
    format_display,
    format_history,
    format_llm_content,
)


def make_result(**kwargs):
    defaults = dict(command_text="ls", exit_code=0, process_group_id=4242)
    defaults.update(kwargs)
    return ExecutionResult(**defaults)


class TestLlmContent:
    def test_full_transcript(self):
        result = make_result(stdout="a\n", background_pids=(11, 12), directory_label="src")
        assert format_llm_content(result) == "\n".join([
            "Command: ls",
            "Directory: src",
            "Stdout: a\n",
            "Stderr: (empty)",
            "Error: (none)",
            "Exit Code: 0",
            "Signal: (none)",
            "Background PIDs: 11, 12",
            "Process Group PGID: 4242",
        ])

    def test_placeholders(self):
        content = format_llm_content(make_result(exit_code=None, process_group_id=None, signal="SIGKILL"))
        assert "Stdout: (empty)" in content
        assert "Exit Code: (none)" in content
        assert "Signal: SIGKILL" in content
        assert "Background PIDs: (none)" in content
        assert "Process Group PGID: (none)" in content

    def test_aborted_with_output(self):
        content = format_llm_content(make_result(aborted=True, exit_code=None, stdout="partial"))
        assert content == (
            "Command was cancelled by user before it could complete. "
            "Below is the output (on stdout and stderr) before it was cancelled:\npartial"
        )

    def test_aborted_without_output(self):
        content = format_llm_content(make_result(aborted=True, exit_code=None))
        assert content == (
            "Command was cancelled by user before it could complete. "
            "There was no output before it was cancelled."
        )


class TestDisplay:
    def test_output_shown(self):
        assert format_display(make_result(stdout="hello\n")) == "hello\n"

    def test_binary_output_hidden(self):
        assert format_display(make_result(stdout="\x00", binary=True)) == BINARY_OUTPUT_PLACEHOLDER

    def test_empty_output_statuses(self):
        assert format_display(make_result(aborted=True, exit_code=None)) == "Command cancelled by user."
        assert format_display(make_result(signal="SIGTERM", exit_code=None)) == (
            "Command terminated by signal: SIGTERM"
        )
        assert format_display(make_result(error="boom", exit_code=None)) == "Command failed: boom"
        assert format_display(make_result(exit_code=2)) == "Command exited with code: 2"
        assert format_display(make_result()) == ""

    def test_debug_mode_shows_transcript(self):
        result = make_result(stdout="hello")
        assert format_display(result, debug_mode=True) == format_llm_content(result)


class TestHistory:
    def test_success(self):
        text = format_history(make_result(stdout="hello\n"))
        assert text == (
            "I ran the following shell command:\n"
            "```sh\nls\n```\n\n"
            "This produced the following result:\n"
            "```\nhello\n```"
        )

    def test_status_prefixes(self):
        assert "Command exited with code 2.\n(Command produced no output)" in format_history(make_result(exit_code=2))
        assert "Command was cancelled.\n" in format_history(make_result(aborted=True, exit_code=None))
        assert "Command terminated by signal: SIGKILL.\n" in format_history(
            make_result(signal="SIGKILL", exit_code=None))
        assert "spawn failed\n" in format_history(make_result(error="spawn failed", exit_code=None))

    def test_binary_placeholder(self):
        assert BINARY_OUTPUT_PLACEHOLDER in format_history(make_result(stdout="\x00", binary=True))

    def test_directory_change_warning(self, tmp_path):
        (tmp_path / "sub").mkdir()
        text = format_history(make_result(final_pwd=str(tmp_path / "sub")), tmp_path)
        assert "WARNING: shell mode is stateless" in text

        same = format_history(make_result(final_pwd=str(tmp_path)), tmp_path)
        assert "WARNING" not in same

    def test_long_output_truncated(self):
        text = format_history(make_result(stdout="x" * (MAX_HISTORY_OUTPUT_LENGTH + 500)))
        assert "\n... (truncated)" in text
        assert "x" * (MAX_HISTORY_OUTPUT_LENGTH + 1) not in text
