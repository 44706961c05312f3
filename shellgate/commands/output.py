"""Output buffering, throttling and binary sniffing for shell runs."""

import codecs
import time
from typing import Callable, Dict, Optional

from ..constants import MAX_SNIFF_SIZE, OUTPUT_UPDATE_INTERVAL_SECONDS
from ..utils.helpers import format_memory_usage, strip_ansi

BINARY_DETECTED_NOTICE = "[Binary output detected. Halting stream...]"
REDACTED = "***"

STDOUT = "stdout"
STDERR = "stderr"


def is_binary(data: bytes, sample_size: int = MAX_SNIFF_SIZE) -> bool:
    """Classify a byte sample as binary if it contains a NUL byte."""
    return b"\x00" in data[:sample_size]


def binary_progress_notice(total_bytes: int) -> str:
    return f"[Receiving binary output... {format_memory_usage(total_bytes)} received]"


class OutputAggregator:
    """Folds raw stdout/stderr chunks into the views a run needs.

    Keeps a live combined view for throttled streaming, separate final
    stdout/stderr strings, and every raw byte. Each stream has its own
    incremental UTF-8 decoder, so a code point split across chunks decodes
    correctly. Once the sniffed prefix looks binary the run stays binary.
    """

    def __init__(self, on_output: Optional[Callable[[str], None]] = None,
                 redact: Optional[str] = None,
                 interval: float = OUTPUT_UPDATE_INTERVAL_SECONDS,
                 sniff_size: int = MAX_SNIFF_SIZE,
                 clock: Callable[[], float] = time.monotonic):
        self.on_output = on_output
        self.redact = redact
        self.interval = interval
        self.sniff_size = sniff_size
        self._clock = clock
        self._last_update: Optional[float] = None
        self._decoders: Dict[str, codecs.IncrementalDecoder] = {
            STDOUT: codecs.getincrementaldecoder("utf-8")(errors="replace"),
            STDERR: codecs.getincrementaldecoder("utf-8")(errors="replace"),
        }
        self._text: Dict[str, str] = {STDOUT: "", STDERR: ""}
        self.raw = bytearray()
        self.binary = False
        self._sniffing = True
        self.closed = False

    @property
    def stdout(self) -> str:
        return self._redacted(self._text[STDOUT])

    @property
    def stderr(self) -> str:
        return self._redacted(self._text[STDERR])

    @property
    def combined(self) -> str:
        """stdout, then stderr on a new line when there is any."""
        return self.stdout + (f"\n{self.stderr}" if self.stderr else "")

    def tail(self, stream: str, length: int) -> str:
        """The last length characters decoded so far on a stream."""
        return self._text[stream][-length:] if length > 0 else ""

    def append(self, stream: str, data: bytes) -> str:
        """Fold one chunk from a stream.

        Args:
            stream: STDOUT or STDERR
            data: Raw bytes as received

        Returns:
            The newly decoded, ANSI-stripped text
        """
        self.raw.extend(data)
        self._sniff()

        text = strip_ansi(self._decoders[stream].decode(data))
        self._text[stream] += text

        if self.binary:
            self._emit(binary_progress_notice(len(self.raw)))
        else:
            self._emit(self.combined)
        return text

    def finish(self) -> None:
        """Flush the decoders and stop live updates."""
        for stream, decoder in self._decoders.items():
            self._text[stream] += strip_ansi(decoder.decode(b"", final=True))
        self.closed = True

    def _redacted(self, text: str) -> str:
        if self.redact:
            return text.replace(self.redact, REDACTED)
        return text

    def _sniff(self) -> None:
        if not self._sniffing:
            return
        if is_binary(bytes(self.raw[:self.sniff_size]), self.sniff_size):
            self.binary = True
            self._sniffing = False
            # Sent unthrottled
            self._send(BINARY_DETECTED_NOTICE)
        elif len(self.raw) >= self.sniff_size:
            self._sniffing = False

    def _emit(self, message: str) -> None:
        now = self._clock()
        if self._last_update is not None and now - self._last_update < self.interval:
            return
        self._last_update = now
        self._send(message)

    def _send(self, message: str) -> None:
        if self.on_output is not None and not self.closed:
            self.on_output(message)
