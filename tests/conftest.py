"""
Configuration for pytest tests.
"""

import json
import os
import pytest
from unittest.mock import MagicMock


@pytest.fixture(scope="session", autouse=True)
def setup_test_environment():
    """Setup test environment variables."""
    os.environ["ENVIRONMENT"] = "development"
    yield


def sse_line(content=None, raw=None):
    """One upstream chat-completion record, terminated by a newline."""
    if raw is not None:
        return f"data: {raw}\n"
    payload = {"choices": [{"delta": {"content": content}}]}
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n"


def mock_response(status_code=200, json_data=None, chunks=None, text=""):
    """Build a requests.Response stand-in."""
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 400
    response.text = text
    response.json.return_value = json_data
    if chunks is not None:
        response.iter_content.return_value = iter(chunks)
    return response


@pytest.fixture
def upstream_chunks():
    """A think-prefixed upstream stream split at awkward byte boundaries."""
    body = (
        sse_line("<think>plan the") +
        sse_line(" tutorial</think>") +
        sse_line("# 标题\n") +
        ": keep-alive comment\n" +
        sse_line("Hello") +
        sse_line(raw="{not json") +
        sse_line(" world") +
        sse_line(raw="[DONE]")
    ).encode("utf-8")
    return [body[:17], body[17:60], body[60:61], body[61:150], body[150:]]


@pytest.fixture
def subtitle_document():
    """Subtitle JSON in Bilibili's format."""
    return {
        "font_size": 0.4,
        "body": [
            {"from": 0.0, "to": 2.1, "content": "大家好"},
            {"from": 2.1, "to": 4.5, "content": "今天讲 Python"},
        ],
    }


@pytest.fixture
def make_response():
    return mock_response


@pytest.fixture
def make_sse_line():
    return sse_line
