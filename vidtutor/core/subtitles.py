"""
Module for fetching subtitle documents and flattening them into text.
"""

from typing import Optional

import requests

from vidtutor.config import config
from vidtutor.models.schemas import TutorialRequest
from vidtutor.utils.error_handling import TransientFetchFailure
from vidtutor.utils.logger import logging


def normalize_subtitle_url(url: str) -> str:
    """Bilibili hands out protocol-relative subtitle URLs."""
    if url.startswith("//"):
        return "https:" + url
    return url


class SubtitleFetcher:
    """Downloads a caption JSON document and joins its lines."""

    def __init__(self, session: Optional[requests.Session] = None, timeout: float = config.REQUEST_TIMEOUT):
        self.session = session or requests.Session()
        self.timeout = timeout

    def fetch_document(self, url: str) -> dict:
        """
        Fetch the raw caption document.

        Raises:
            TransientFetchFailure: On any network or decode error
        """
        try:
            response = self.session.get(normalize_subtitle_url(url), timeout=self.timeout)
            return response.json()
        except (requests.RequestException, ValueError) as e:
            raise TransientFetchFailure(f"Subtitle fetch failed: {str(e)}") from e

    def fetch_text(self, url: str) -> str:
        """
        Fetch captions and join the ``content`` of each entry with newlines.

        Returns:
            Subtitle text, or an empty string when nothing usable was found
        """
        try:
            data = self.fetch_document(url)
        except TransientFetchFailure as e:
            logging.warning(str(e))
            return ""

        body = data.get("body") if isinstance(data, dict) else None
        if not isinstance(body, list):
            logging.warning("Subtitle document has no body list")
            return ""

        lines = [
            item["content"] for item in body
            if isinstance(item, dict) and isinstance(item.get("content"), str)
        ]
        if len(lines) < len(body):
            logging.warning(f"Skipped {len(body) - len(lines)} malformed caption entries")
        text = "\n".join(lines)
        logging.info(f"Fetched {len(body)} caption lines ({len(text)} chars)")
        return text

    def resolve(self, request: TutorialRequest) -> str:
        """Subtitle text for a request: captions first, then the description."""
        text = ""
        if request.subtitle_url:
            text = self.fetch_text(request.subtitle_url)
        if not text and request.description:
            logging.info("No captions, using the video description")
            text = request.description
        return text
