"""Decoder for the provider's streamed completion format.

The gateway relays the upstream body untouched, so what arrives here is the
provider's event stream: `data: <json>` lines closed by `data: [DONE]`.
Chunk boundaries are arbitrary; a chunk may end mid-line or even in the
middle of a multi-byte UTF-8 sequence.
"""

import codecs
import json
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Literal

import structlog

logger = structlog.get_logger(__name__)

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"


@dataclass(frozen=True)
class StreamEvent:
    """One decoded protocol line.

    Attributes:
        kind: "delta" for a text fragment, "done" for the terminator sentinel.
        text: The incremental text (empty for "done").
    """
    kind: Literal["delta", "done"]
    text: str = ""


def extract_delta(payload) -> str:
    """Pull choices[0].delta.content out of a parsed payload.

    Anything missing or of the wrong shape counts as "no new text".
    """
    if not isinstance(payload, dict):
        return ""
    choices = payload.get("choices")
    if not isinstance(choices, list) or not choices:
        return ""
    first = choices[0]
    delta = first.get("delta") if isinstance(first, dict) else None
    content = delta.get("content") if isinstance(delta, dict) else None
    return content if isinstance(content, str) else ""


def parse_line(line: str) -> StreamEvent | None:
    """Turn one protocol line into an event, or None if it carries nothing.

    Non-data lines (blank keep-alives, `: comment` lines) and malformed JSON
    payloads are skipped rather than treated as errors.
    """
    line = line.rstrip("\r")
    if not line.startswith(DATA_PREFIX):
        return None

    data = line[len(DATA_PREFIX):]
    if data.strip() == DONE_SENTINEL:
        return StreamEvent(kind="done")

    try:
        payload = json.loads(data)
    except json.JSONDecodeError:
        logger.debug("stream.parse_skip", line=data[:200])
        return None

    text = extract_delta(payload)
    if not text:
        return None
    return StreamEvent(kind="delta", text=text)


class StreamDecoder:
    """Incremental bytes -> events decoder.

    Holds back both an incomplete UTF-8 sequence and an incomplete line until
    the next chunk completes them, so the events produced do not depend on
    how the byte stream was split.
    """

    def __init__(self):
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""

    def feed(self, chunk: bytes) -> list[StreamEvent]:
        """Consume one chunk and return the events completed by it."""
        self._buffer += self._decoder.decode(chunk)
        *lines, self._buffer = self._buffer.split("\n")
        return self._parse(lines)

    def flush(self) -> list[StreamEvent]:
        """Drain whatever is left once the stream has ended."""
        self._buffer += self._decoder.decode(b"", final=True)
        tail, self._buffer = self._buffer, ""
        return self._parse([tail]) if tail else []

    @staticmethod
    def _parse(lines: list[str]) -> list[StreamEvent]:
        events = []
        for line in lines:
            event = parse_line(line)
            if event is not None:
                events.append(event)
        return events


def iter_stream_events(chunks: Iterable[bytes]) -> Iterator[StreamEvent]:
    """Producer side of the transcript pipeline: raw chunks in, events out."""
    decoder = StreamDecoder()
    for chunk in chunks:
        if not chunk:
            continue
        yield from decoder.feed(chunk)
    yield from decoder.flush()
