"""Tests for output aggregation, throttling and binary sniffing."""
from shellgate.commands.output import (
    BINARY_DETECTED_NOTICE,
    STDERR,
    STDOUT,
    OutputAggregator,
    binary_progress_notice,
    is_binary,
)


def make_aggregator(clock, **kwargs):
    updates = []
    aggregator = OutputAggregator(updates.append, clock=clock, **kwargs)
    return aggregator, updates


class TestIsBinary:
    def test_nul_byte_means_binary(self):
        assert is_binary(b"ELF\x00\x01")
        assert not is_binary(b"plain text\n")

    def test_only_sample_is_inspected(self):
        assert not is_binary(b"a" * 10 + b"\x00", sample_size=10)


class TestOutputAggregator:
    def test_streams_kept_separately(self, clock):
        aggregator, _ = make_aggregator(clock)
        aggregator.append(STDOUT, b"out\n")
        aggregator.append(STDERR, b"err\n")
        aggregator.finish()
        assert aggregator.stdout == "out\n"
        assert aggregator.stderr == "err\n"
        assert aggregator.combined == "out\n\nerr\n"
        assert bytes(aggregator.raw) == b"out\nerr\n"

    def test_split_code_point_decodes_across_chunks(self, clock):
        aggregator, _ = make_aggregator(clock)
        encoded = "héllo".encode()
        aggregator.append(STDOUT, encoded[:2])
        aggregator.append(STDOUT, encoded[2:])
        aggregator.finish()
        assert aggregator.stdout == "héllo"

    def test_incomplete_sequence_replaced_on_finish(self, clock):
        aggregator, _ = make_aggregator(clock)
        aggregator.append(STDOUT, "é".encode()[:1])
        aggregator.finish()
        assert aggregator.stdout == "�"

    def test_ansi_sequences_stripped(self, clock):
        aggregator, _ = make_aggregator(clock)
        text = aggregator.append(STDOUT, b"\x1b[31mred\x1b[0m\n")
        assert text == "red\n"
        assert aggregator.stdout == "red\n"

    def test_first_update_immediate_then_throttled(self, clock):
        aggregator, updates = make_aggregator(clock)
        aggregator.append(STDOUT, b"a")
        clock.advance(0.5)
        aggregator.append(STDOUT, b"b")
        assert updates == ["a"]

        clock.advance(0.5)
        aggregator.append(STDOUT, b"c")
        assert updates == ["a", "abc"]

    def test_binary_detection_is_one_way(self, clock):
        aggregator, updates = make_aggregator(clock)
        aggregator.append(STDOUT, b"\x00\x01\x02")
        assert aggregator.binary
        assert updates[0] == BINARY_DETECTED_NOTICE
        assert updates[1] == binary_progress_notice(3)

        clock.advance(1)
        aggregator.append(STDOUT, b"now text")
        assert aggregator.binary
        assert updates[-1] == binary_progress_notice(11)

    def test_nul_after_sniff_window_is_not_binary(self, clock):
        aggregator, _ = make_aggregator(clock, sniff_size=8)
        aggregator.append(STDOUT, b"12345678")
        aggregator.append(STDOUT, b"\x00")
        assert not aggregator.binary

    def test_no_updates_after_finish(self, clock):
        aggregator, updates = make_aggregator(clock)
        aggregator.finish()
        clock.advance(5)
        aggregator.append(STDOUT, b"late")
        assert updates == []

    def test_progress_notice_units(self):
        assert binary_progress_notice(2048) == "[Receiving binary output... 2.0 KB received]"
        assert binary_progress_notice(3 * 1024 * 1024) == "[Receiving binary output... 3.0 MB received]"

    def test_secret_redacted_from_every_view(self, clock):
        aggregator, updates = make_aggregator(clock, redact="hunter2")
        aggregator.append(STDOUT, b"pw is hun")
        clock.advance(5)
        aggregator.append(STDOUT, b"ter2\n")
        aggregator.append(STDERR, b"hunter2\n")
        aggregator.finish()
        assert aggregator.stdout == "pw is ***\n"
        assert aggregator.stderr == "***\n"
        assert all("hunter2" not in update for update in updates)

    def test_tail_spans_earlier_chunks(self, clock):
        aggregator, _ = make_aggregator(clock)
        aggregator.append(STDERR, b"sudo: a pass")
        aggregator.append(STDERR, b"word is required\n")
        assert aggregator.tail(STDERR, 40) == "sudo: a password is required\n"
        assert aggregator.tail(STDERR, 5) == "ired\n"
        assert aggregator.tail(STDOUT, 5) == ""
        assert aggregator.tail(STDERR, 0) == ""
