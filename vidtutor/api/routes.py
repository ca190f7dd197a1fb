"""
API routes for the video tutor gateway.
"""

import traceback
from typing import Optional

import requests
from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response, StreamingResponse

from vidtutor.core.dispatcher import TutorialDispatcher, build_default_dispatcher
from vidtutor.core.media_proxy import MediaProxy
from vidtutor.core.video_info import VideoInfoService
from vidtutor.models.schemas import (
    DownloadFallback,
    DownloadRequest,
    TutorialRequest,
    VideoInfo,
    VideoInfoRequest,
)
from vidtutor.utils.error_handling import GatewayError
from vidtutor.utils.logger import logging

router = APIRouter(prefix="/api", tags=["tutor"])

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


def get_dispatcher() -> TutorialDispatcher:
    """Engines are built per request so credentials are read at call time."""
    return build_default_dispatcher()


def get_video_info_service() -> VideoInfoService:
    return VideoInfoService()


def get_media_proxy() -> MediaProxy:
    return MediaProxy()


@router.post("/tutorial")
def generate_tutorial(
    request: TutorialRequest,
    dispatcher: TutorialDispatcher = Depends(get_dispatcher),
):
    """
    Stream a beginner tutorial for a video.

    - BibiGPT answers first when a video URL is given and a token is set
    - Otherwise subtitles (or the description) go to the streaming engine
    - Errors before the stream starts come back as ``{"error": ...}``
    """
    try:
        events = dispatcher.dispatch(request)
    except GatewayError:
        raise
    except Exception as e:
        logging.error(f"Error generating tutorial: {str(e)}")
        logging.error(traceback.format_exc())
        raise GatewayError(f"教程生成失败: {str(e)}", 500)

    return StreamingResponse(events, media_type="text/event-stream", headers=SSE_HEADERS)


@router.post("/video-info", response_model=VideoInfo, response_model_by_alias=True)
def video_info(
    request: VideoInfoRequest,
    service: VideoInfoService = Depends(get_video_info_service),
):
    """Look up title, uploader and thumbnail for a Bilibili or YouTube link."""
    try:
        return service.lookup(request.url)
    except GatewayError:
        raise
    except (requests.RequestException, ValueError, KeyError) as e:
        logging.error(f"Video info lookup failed for {request.url}: {str(e)}")
        raise GatewayError("服务器错误", 500)


@router.post("/download")
def download_video(
    request: DownloadRequest,
    proxy: MediaProxy = Depends(get_media_proxy),
):
    """Proxy a Bilibili video, or hand back a yt-dlp command if it is large."""
    try:
        result = proxy.download(request.bvid, request.cid)
    except GatewayError:
        raise
    except (requests.RequestException, ValueError) as e:
        logging.error(f"Download failed for {request.bvid}: {str(e)}")
        raise GatewayError(f"下载失败: {str(e)}", 500)

    if isinstance(result, DownloadFallback):
        return result

    headers = {"Content-Disposition": f'attachment; filename="{result.filename}"'}
    if result.size:
        headers["Content-Length"] = str(result.size)
    return StreamingResponse(result.iter_bytes(), media_type="video/mp4", headers=headers)


@router.get("/image-proxy")
def image_proxy(
    url: Optional[str] = Query(None, description="Image URL to fetch"),
    proxy: MediaProxy = Depends(get_media_proxy),
):
    """Fetch a thumbnail or avatar with the referer Bilibili expects."""
    content, content_type = proxy.fetch_image(url)
    return Response(
        content=content,
        media_type=content_type,
        headers={"Cache-Control": "public, max-age=86400, immutable"},
    )
