"""
Server-sent events: incremental decoding of upstream streams and encoding of
the gateway's own records.
"""

import codecs
import json
from typing import List, Optional, Union

DATA_PREFIX = "data: "
END_MARKER = "[DONE]"


class SSELineDecoder:
    """
    Incremental line splitter for an SSE byte stream.

    Chunks may end anywhere, including inside a line or inside a multi-byte
    UTF-8 sequence. Complete lines are returned from ``feed``; the trailing
    partial line stays buffered until more data arrives.
    """

    def __init__(self, encoding: str = "utf-8"):
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._buffer = ""

    @property
    def remainder(self) -> str:
        """Unterminated tail of the stream, discarded at end of stream."""
        return self._buffer

    def feed(self, chunk: Union[bytes, str]) -> List[str]:
        if isinstance(chunk, bytes):
            chunk = self._decoder.decode(chunk)
        self._buffer += chunk
        lines = self._buffer.split("\n")
        self._buffer = lines.pop()
        return [line.rstrip("\r") for line in lines]


def parse_data_line(line: str) -> Optional[str]:
    """
    Extract the text delta from one OpenAI-style stream line.

    Returns None for anything that carries no text: non-data lines, the end
    marker, malformed JSON, or a payload without ``choices[0].delta.content``.
    """
    if not line.startswith(DATA_PREFIX):
        return None
    payload = line[len(DATA_PREFIX):].strip()
    if payload == END_MARKER:
        return None
    try:
        parsed = json.loads(payload)
        content = parsed["choices"][0]["delta"].get("content")
    except (ValueError, KeyError, IndexError, TypeError, AttributeError):
        return None
    if not isinstance(content, str) or not content:
        return None
    return content


def format_event(text: str) -> str:
    return f"{DATA_PREFIX}{json.dumps({'text': text}, ensure_ascii=False)}\n\n"


def format_done() -> str:
    return f"{DATA_PREFIX}{END_MARKER}\n\n"


def parse_event(line: str) -> Optional[Union[str, bool]]:
    """
    Decode one record of the gateway's own protocol.

    Returns the text of a text record, True for the terminal record, None
    for anything else.
    """
    if not line.startswith(DATA_PREFIX):
        return None
    payload = line[len(DATA_PREFIX):].strip()
    if payload == END_MARKER:
        return True
    try:
        return json.loads(payload).get("text")
    except (ValueError, AttributeError):
        return None
