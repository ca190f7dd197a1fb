"""
API client for communicating with the video tutor gateway.
"""

import re
from typing import Any, Dict, Iterator, Optional
from urllib.parse import quote, urljoin

import requests

from vidtutor.config import config
from vidtutor.core.sse import parse_event


class ApiError(Exception):
    """Error body returned by the gateway."""

    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code


class ApiClient:
    """Client for interacting with the video tutor gateway."""

    def __init__(self, base_url: str = config.PUBLIC_URL):
        """
        Initialize the API client.

        Args:
            base_url: Base URL of the API
        """
        self.base_url = base_url
        self.api_base = urljoin(base_url, "/api/")

    def _url(self, endpoint: str) -> str:
        """Get the full URL for an endpoint."""
        return urljoin(self.api_base, endpoint)

    @staticmethod
    def _raise_for_error(response: requests.Response):
        if response.ok:
            return
        try:
            message = response.json().get("error") or response.reason
        except ValueError:
            message = response.reason
        raise ApiError(message, response.status_code)

    def video_info(self, url: str) -> Dict[str, Any]:
        """
        Look up metadata for a video link.

        Args:
            url: Bilibili or YouTube URL

        Returns:
            Dictionary with platform, title, uploader, thumbnail and ids
        """
        response = requests.post(self._url("video-info"), json={"url": url})
        self._raise_for_error(response)
        return response.json()

    def stream_tutorial(
        self,
        subtitle_url: Optional[str] = None,
        title: Optional[str] = None,
        description: Optional[str] = None,
        video_url: Optional[str] = None,
    ) -> Iterator[str]:
        """
        Request a tutorial and yield its text as it streams in.

        Raises:
            ApiError: When the gateway rejects the request before streaming
        """
        payload = {
            "subtitleUrl": subtitle_url,
            "title": title,
            "description": description,
            "videoUrl": video_url,
        }
        payload = {k: v for k, v in payload.items() if v}

        with requests.post(self._url("tutorial"), json=payload, stream=True) as response:
            self._raise_for_error(response)
            for line in response.iter_lines():
                if not line:
                    continue
                line = line.decode("utf-8")
                event = parse_event(line)
                if event is True:
                    return
                if event:
                    yield event

    def download(self, bvid: str, cid: int) -> requests.Response:
        """
        Request a video download.

        Returns:
            The response; JSON with a yt-dlp command when the video is large,
            otherwise a streamed mp4 body
        """
        response = requests.post(self._url("download"), json={"bvid": bvid, "cid": cid}, stream=True)
        self._raise_for_error(response)
        return response

    def image_proxy_url(self, url: str) -> str:
        return f"{self._url('image-proxy')}?url={quote(url, safe='')}"

    @staticmethod
    def detect_platform(url: str) -> Optional[str]:
        """
        Tell which supported platform a link belongs to.

        Args:
            url: Video link

        Returns:
            "bilibili", "youtube" or None
        """
        if re.search(r"bilibili\.com|b23\.tv", url):
            return "bilibili"
        if re.search(r"youtube\.com|youtu\.be", url):
            return "youtube"
        return None
