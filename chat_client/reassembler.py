"""Reassembly of ``data: {json}`` frames from a chunked byte stream.

The transport hands over bytes in whatever boundaries the network
produced: a chunk may end in the middle of a line, in the middle of a JSON
object or even in the middle of a UTF-8 sequence, and a single chunk may
carry several lines.  :class:`FrameReassembler` only ever parses whole
lines; whatever follows the last line terminator of a chunk is carried over
to the next one.
"""

import codecs
import json
import re
from typing import Any, AsyncIterable, AsyncIterator, Dict, Iterator, List, Optional

from .errors import InvalidResponseError, ServerSignaledError

FRAME_PATTERN = re.compile(r"data: (\{.*\})")


def decode_frame(line: str) -> Optional[Dict[str, Any]]:
    """Decode and validate one complete line.

    Returns ``None`` for lines that are not frames (blank keep-alives,
    comments, ``data: [DONE]``).  Raises when the frame is undecodable,
    reports an error or lacks a ``choices`` list.
    """
    match = FRAME_PATTERN.fullmatch(line.rstrip("\r"))
    if match is None:
        return None
    event = json.loads(match.group(1))
    error = event.get("error")
    if isinstance(error, dict) and error.get("message"):
        raise ServerSignaledError(error["message"])
    if not isinstance(event.get("choices"), list):
        raise InvalidResponseError("Invalid response")
    return event


class FrameReassembler:
    """Turn arbitrarily chunked bytes into ordered stream events.

    One instance serves one transport connection; it is not restartable.
    """

    def __init__(self, encoding: str = "utf-8") -> None:
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._unfinished_line = ""

    @property
    def pending(self) -> str:
        """Text received after the last line terminator, not yet parsed."""
        return self._unfinished_line

    def feed(self, chunk: bytes) -> Iterator[Dict[str, Any]]:
        """Consume one chunk and return the events completed by it, in order.

        The buffer is updated immediately; the complete lines are decoded
        lazily, one per event taken from the returned iterator, so a fatal
        frame only raises once every event before it has been handed out.
        """
        window = self._unfinished_line + self._decoder.decode(chunk)
        cut = window.rfind("\n") + 1
        self._unfinished_line = window[cut:]
        return self._decode_lines(window[:cut].split("\n"))

    def flush(self) -> Iterator[Dict[str, Any]]:
        """Signal end-of-stream and parse whatever is still buffered.

        A final frame the service sent without a trailing newline is
        returned here instead of being lost.
        """
        residual = self._unfinished_line + self._decoder.decode(b"", final=True)
        self._unfinished_line = ""
        return self._decode_lines(residual.split("\n"))

    def _decode_lines(self, lines: List[str]) -> Iterator[Dict[str, Any]]:
        for line in lines:
            if not line:
                continue
            event = decode_frame(line)
            if event is not None:
                yield event


async def iter_events(chunks: AsyncIterable[bytes]) -> AsyncIterator[Dict[str, Any]]:
    """Yield the events carried by an async byte stream as they complete."""
    reassembler = FrameReassembler()
    async for chunk in chunks:
        for event in reassembler.feed(chunk):
            yield event
    for event in reassembler.flush():
        yield event
