"""
Streams sent to the client.

Both engines end up as the same outbound protocol: one
``data: {"text": ...}`` record per piece of text, then exactly one
``data: [DONE]`` record.
"""

import time
from typing import Callable, Iterable, Iterator, List, Optional, Union

from vidtutor.config import config
from vidtutor.core.sse import SSELineDecoder, parse_data_line, format_event, format_done
from vidtutor.core.think_filter import ThinkBlockFilter
from vidtutor.utils.error_handling import StreamReadFailure
from vidtutor.utils.logger import logging


def read_upstream(chunks: Iterable[Union[bytes, str]]) -> Iterator[Union[bytes, str]]:
    """
    Iterate raw upstream chunks.

    Raises:
        StreamReadFailure: When reading the established stream fails
    """
    try:
        for chunk in chunks:
            yield chunk
    except Exception as e:
        raise StreamReadFailure(f"{type(e).__name__}: {str(e)}") from e


def translate_stream(
    chunks: Iterable[Union[bytes, str]],
    on_close: Optional[Callable[[], None]] = None,
) -> Iterator[str]:
    """
    Re-emit an OpenAI-style chat-completion stream in the gateway protocol.

    Args:
        chunks: Raw chunks read from the upstream response
        on_close: Called once when the stream is finished or abandoned,
            used to release the upstream connection

    Yields:
        Encoded SSE records, the last one always being the DONE record
    """
    decoder = SSELineDecoder()
    think_filter = ThinkBlockFilter()
    fragments = 0

    try:
        try:
            for chunk in read_upstream(chunks):
                for line in decoder.feed(chunk):
                    delta = parse_data_line(line)
                    if not delta:
                        continue
                    fragments += 1
                    text = think_filter.feed(delta)
                    if text:
                        yield format_event(text)
        except StreamReadFailure as e:
            # Headers are already sent, so the stream just ends here
            logging.warning(f"Upstream stream read failed after {fragments} fragments: {str(e)}")

        if decoder.remainder:
            logging.debug(f"Discarding unterminated upstream line ({len(decoder.remainder)} chars)")

        tail = think_filter.flush()
        if tail:
            yield format_event(tail)
        yield format_done()
        logging.info(f"Relayed {fragments} upstream fragments")
    finally:
        if on_close is not None:
            on_close()


def chunk_text(text: str, size: int = config.CHUNK_SIZE) -> List[str]:
    """Split text into fixed-size character chunks."""
    return [text[i:i + size] for i in range(0, len(text), size)]


def artificial_stream(
    text: str,
    chunk_size: int = config.CHUNK_SIZE,
    delay: float = config.CHUNK_DELAY,
    sleep: Callable[[float], None] = time.sleep,
) -> Iterator[str]:
    """
    Present a complete result as a stream so it types out like Engine B's.

    Args:
        text: Complete result text
        chunk_size: Characters per record
        delay: Seconds to wait after each record
        sleep: Sleep function, replaceable in tests

    Yields:
        Encoded SSE records followed by the DONE record
    """
    for chunk in chunk_text(text, chunk_size):
        yield format_event(chunk)
        sleep(delay)
    yield format_done()
