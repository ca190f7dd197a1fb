"""
Passthrough fetches for video downloads and thumbnails.

Bilibili's CDN refuses requests without a Bilibili referer, so the browser
goes through these instead of hitting the CDN directly.
"""

from typing import Optional, Tuple, Union

import requests

from vidtutor.config import config
from vidtutor.core.video_info import bilibili_headers
from vidtutor.models.schemas import DownloadFallback
from vidtutor.utils.error_handling import GatewayError
from vidtutor.utils.logger import logging


def yt_dlp_command(bvid: str) -> str:
    return f'yt-dlp -f "bestvideo+bestaudio" --merge-output-format mp4 "https://www.bilibili.com/video/{bvid}"'


class VideoDownload:
    """An open upstream video stream ready to be proxied."""

    def __init__(self, bvid: str, size: int, response: requests.Response):
        self.bvid = bvid
        self.size = size
        self.response = response

    @property
    def filename(self) -> str:
        return f"{self.bvid}.mp4"

    def iter_bytes(self, chunk_size: int = 64 * 1024):
        try:
            yield from self.response.iter_content(chunk_size=chunk_size)
        finally:
            self.response.close()


class MediaProxy:
    """Fetches Bilibili video streams and images on behalf of the browser."""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: float = config.REQUEST_TIMEOUT,
        max_download_bytes: int = config.MAX_DOWNLOAD_BYTES,
    ):
        self.session = session or requests.Session()
        self.timeout = timeout
        self.max_download_bytes = max_download_bytes

    def play_url(self, bvid: str, cid: int) -> Tuple[str, int]:
        """
        Look up the direct stream URL and size for a video.

        Raises:
            GatewayError: 400 when Bilibili gives no stream, usually a login wall
        """
        response = self.session.get(
            "https://api.bilibili.com/x/player/playurl",
            params={"bvid": bvid, "cid": cid, "qn": 80, "fnval": 1},
            headers=bilibili_headers(),
            timeout=self.timeout,
        )
        data = response.json()
        durl = (data.get("data") or {}).get("durl") or []
        if data.get("code") != 0 or not durl or not durl[0].get("url"):
            raise GatewayError("获取视频流地址失败，可能需要登录", 400)
        return durl[0]["url"], durl[0].get("size") or 0

    def download(self, bvid: str, cid: int) -> Union[VideoDownload, DownloadFallback]:
        """
        Open the video stream, or return a yt-dlp command for large videos.

        Raises:
            GatewayError: 400 on missing ids or no stream, 502 when the CDN fails
        """
        if not bvid or not cid:
            raise GatewayError("缺少 bvid 或 cid", 400)

        stream_url, size = self.play_url(bvid, cid)

        if size > self.max_download_bytes:
            logging.info(f"Video {bvid} is {size} bytes, returning yt-dlp command")
            return DownloadFallback(
                message="视频较大，请使用以下命令下载",
                command=yt_dlp_command(bvid),
                size=size,
            )

        headers = bilibili_headers()
        headers["Range"] = "bytes=0-"
        response = self.session.get(stream_url, headers=headers, stream=True, timeout=self.timeout)
        if not response.ok:
            response.close()
            raise GatewayError("视频流获取失败", 502)

        logging.info(f"Proxying video {bvid} ({size} bytes)")
        return VideoDownload(bvid, size, response)

    def fetch_image(self, url: str) -> Tuple[bytes, str]:
        """
        Fetch an image with the Bilibili referer.

        Returns:
            Tuple of (image bytes, content type)

        Raises:
            GatewayError: 400 without url, 502 on upstream error status,
                500 when the fetch itself fails
        """
        if not url:
            raise GatewayError("Missing url parameter", 400)

        try:
            response = self.session.get(url, headers=bilibili_headers(), timeout=self.timeout)
        except requests.RequestException as e:
            logging.warning(f"Image proxy fetch failed: {str(e)}")
            raise GatewayError("Proxy error", 500) from e

        if not response.ok:
            raise GatewayError("Failed to fetch image", 502)

        return response.content, response.headers.get("content-type") or "image/jpeg"
