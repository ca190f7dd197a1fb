"""
Removal of ``<think>...</think>`` reasoning spans from model output.

Reasoning models emit their chain of thought inside think tags. The spans
must never reach the user, whether the text arrives in one piece or as a
token stream where a tag may be split across fragments.
"""

import re
from typing import Tuple

from vidtutor.models.schemas import ThinkFilterState

OPEN_TAG = "<think>"
CLOSE_TAG = "</think>"

_THINK_BLOCK_RE = re.compile(r"<think>[\s\S]*?</think>")


def strip_think_blocks(text: str) -> str:
    """Remove every think span from a complete string."""
    return _THINK_BLOCK_RE.sub("", text).strip()


def _partial_tag_suffix(text: str, tag: str) -> str:
    """Return the longest tail of ``text`` that is a proper prefix of ``tag``."""
    for size in range(min(len(tag) - 1, len(text)), 0, -1):
        if text.endswith(tag[:size]):
            return text[-size:]
    return ""


def filter_fragment(fragment: str, state: ThinkFilterState) -> Tuple[str, ThinkFilterState]:
    """
    Filter one streamed fragment.

    Args:
        fragment: Incremental text delta from the model
        state: Filter state left by the previous fragment of the same stream

    Returns:
        Tuple of (visible text, new state)
    """
    text = state.pending + fragment
    inside = state.inside_think_block
    visible = []

    while text:
        if inside:
            end = text.find(CLOSE_TAG)
            if end == -1:
                # Drop the fragment, keep a possibly split close tag
                return "".join(visible), ThinkFilterState(True, _partial_tag_suffix(text, CLOSE_TAG))
            text = text[end + len(CLOSE_TAG):]
            inside = False
            continue

        start = text.find(OPEN_TAG)
        if start == -1:
            held = _partial_tag_suffix(text, OPEN_TAG)
            visible.append(text[:len(text) - len(held)])
            return "".join(visible), ThinkFilterState(False, held)

        visible.append(text[:start])
        text = text[start + len(OPEN_TAG):]
        inside = True

    return "".join(visible), ThinkFilterState(inside, "")


def finish(state: ThinkFilterState) -> str:
    """Text still held back when the stream ends."""
    if state.inside_think_block:
        return ""
    return state.pending


class ThinkBlockFilter:
    """Stateful wrapper owning the filter state of a single stream."""

    def __init__(self):
        self.state = ThinkFilterState()

    @property
    def inside_think_block(self) -> bool:
        return self.state.inside_think_block

    def feed(self, fragment: str) -> str:
        text, self.state = filter_fragment(fragment, self.state)
        return text

    def flush(self) -> str:
        text = finish(self.state)
        self.state = ThinkFilterState(self.state.inside_think_block, "")
        return text
