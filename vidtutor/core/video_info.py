"""
Video metadata lookup for Bilibili and YouTube links.
"""

import re
from typing import Optional
from urllib.parse import quote

import requests

from vidtutor.config import config
from vidtutor.core.subtitles import normalize_subtitle_url
from vidtutor.models.schemas import VideoInfo
from vidtutor.utils.error_handling import GatewayError
from vidtutor.utils.logger import logging

BVID_PATTERN = re.compile(r"BV[a-zA-Z0-9]+")


def bilibili_headers() -> dict:
    return {"User-Agent": config.BROWSER_USER_AGENT, "Referer": config.BILIBILI_REFERER}


def is_bilibili_url(url: str) -> bool:
    return "bilibili.com" in url or "b23.tv" in url


def is_youtube_url(url: str) -> bool:
    return "youtube.com" in url or "youtu.be" in url


def extract_bvid(url: str) -> Optional[str]:
    """Extract the BV id from a Bilibili URL."""
    match = BVID_PATTERN.search(url)
    if match:
        return match.group(0)
    return None


class VideoInfoService:
    """Looks up metadata for a pasted video link."""

    def __init__(self, session: Optional[requests.Session] = None, timeout: float = config.REQUEST_TIMEOUT):
        self.session = session or requests.Session()
        self.timeout = timeout

    def resolve_short_link(self, url: str) -> Optional[str]:
        """Follow a b23.tv short link and read the BV id from where it lands."""
        response = self.session.get(
            url,
            allow_redirects=True,
            headers={"User-Agent": "Mozilla/5.0"},
            timeout=self.timeout,
        )
        return extract_bvid(response.url)

    def bilibili(self, url: str) -> VideoInfo:
        bvid = extract_bvid(url) if "BV" in url else None
        if not bvid and "b23.tv" in url:
            bvid = self.resolve_short_link(url)
        if not bvid:
            raise GatewayError("无法解析 BV 号", 400)

        response = self.session.get(
            "https://api.bilibili.com/x/web-interface/view",
            params={"bvid": bvid},
            headers=bilibili_headers(),
            timeout=self.timeout,
        )
        data = response.json()
        if data.get("code") != 0:
            raise GatewayError(data.get("message") or "B站 API 调用失败", 400)

        v = data["data"]
        owner = v.get("owner") or {}
        stat = v.get("stat") or {}
        subtitles = (v.get("subtitle") or {}).get("list") or []
        subtitle_url = None
        if subtitles and subtitles[0].get("subtitle_url"):
            subtitle_url = normalize_subtitle_url(subtitles[0]["subtitle_url"])

        logging.info(f"Bilibili video {bvid}: {v.get('title')}")
        return VideoInfo(
            platform="bilibili",
            title=v.get("title", ""),
            uploader=owner.get("name"),
            avatar=owner.get("face"),
            duration=v.get("duration"),
            views=stat.get("view"),
            likes=stat.get("like"),
            description=v.get("desc"),
            thumbnail=v.get("pic"),
            bvid=bvid,
            cid=v.get("cid"),
            subtitle_url=subtitle_url,
            url=f"https://www.bilibili.com/video/{bvid}",
        )

    def youtube(self, url: str) -> VideoInfo:
        response = self.session.get(
            f"https://noembed.com/embed?url={quote(url, safe='')}",
            timeout=self.timeout,
        )
        data = response.json()
        if data.get("error"):
            raise GatewayError("YouTube 链接无效", 400)

        return VideoInfo(
            platform="youtube",
            title=data.get("title", ""),
            uploader=data.get("author_name"),
            thumbnail=data.get("thumbnail_url"),
            url=url,
        )

    def lookup(self, url: str) -> VideoInfo:
        """
        Get metadata for a video link.

        Raises:
            GatewayError: 400 for unsupported or unknown links
        """
        if is_bilibili_url(url):
            return self.bilibili(url)
        if is_youtube_url(url):
            return self.youtube(url)
        raise GatewayError("不支持的链接格式", 400)
