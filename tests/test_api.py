"""
Tests for the HTTP surface of the gateway.
"""

import os
from unittest.mock import MagicMock, patch

import pytest
import requests
from fastapi.testclient import TestClient

from vidtutor.api.app import app
from vidtutor.api.routes import get_dispatcher, get_media_proxy, get_video_info_service
from vidtutor.core.dispatcher import TutorialDispatcher
from vidtutor.core.engines import BibiGPTSummarizer, ChatCompletionSummarizer
from vidtutor.core.media_proxy import MediaProxy
from vidtutor.core.subtitles import SubtitleFetcher
from vidtutor.core.video_info import VideoInfoService


@pytest.fixture
def client():
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def sessions():
    """Separate mocked HTTP sessions for each upstream."""
    return {"bibigpt": MagicMock(), "siliconflow": MagicMock(), "subtitles": MagicMock()}


@pytest.fixture
def use_engines(sessions):
    """Install a dispatcher whose engines talk to the mocked sessions."""
    def install(bibigpt_token="token", siliconflow_key="key"):
        dispatcher = TutorialDispatcher(
            [
                BibiGPTSummarizer(api_key=bibigpt_token, session=sessions["bibigpt"]),
                ChatCompletionSummarizer(api_key=siliconflow_key, session=sessions["siliconflow"]),
            ],
            SubtitleFetcher(session=sessions["subtitles"]),
            chunk_delay=0,
        )
        app.dependency_overrides[get_dispatcher] = lambda: dispatcher
        return dispatcher
    return install


def sse_records(body):
    return [record for record in body.split("\n\n") if record]


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["name"] == "Video Tutor Gateway"
    assert "X-Process-Time" in response.headers


def test_tutorial_streams_from_subtitles(client, use_engines, sessions, make_response, make_sse_line, subtitle_document):
    use_engines(bibigpt_token="")
    sessions["subtitles"].get.return_value = make_response(json_data=subtitle_document)
    upstream = make_response(chunks=[
        (make_sse_line("<think>") + make_sse_line("plan</think># 教程") + make_sse_line("\n内容")).encode("utf-8"),
        make_sse_line(raw="[DONE]").encode("utf-8"),
    ])
    sessions["siliconflow"].post.return_value = upstream

    response = client.post("/api/tutorial", json={
        "subtitleUrl": "https://example.com/sub.json",
        "title": "Python 入门",
    })

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    assert response.headers["cache-control"] == "no-cache"
    assert sse_records(response.text) == [
        'data: {"text": "# 教程"}',
        'data: {"text": "\\n内容"}',
        "data: [DONE]",
    ]
    prompt = sessions["siliconflow"].post.call_args[1]["json"]["messages"][1]["content"]
    assert "大家好\n今天讲 Python" in prompt
    assert "Python 入门" in prompt
    upstream.close.assert_called_once()


def test_tutorial_from_bibigpt_is_chunked(client, use_engines, sessions, make_response):
    use_engines()
    sessions["bibigpt"].post.return_value = make_response(json_data={"success": True, "summary": "y" * 47})

    response = client.post("/api/tutorial", json={"videoUrl": "https://youtu.be/abc"})

    records = sse_records(response.text)
    assert response.status_code == 200
    assert records[-1] == "data: [DONE]"
    assert records.count("data: [DONE]") == 1
    assert records[:-1] == [
        'data: {"text": "%s"}' % ("y" * 20),
        'data: {"text": "%s"}' % ("y" * 20),
        'data: {"text": "%s"}' % ("y" * 7),
    ]
    sessions["siliconflow"].post.assert_not_called()
    sessions["subtitles"].get.assert_not_called()


def test_tutorial_bad_bibigpt_summary_falls_back(client, use_engines, sessions, make_response, make_sse_line):
    use_engines()
    sessions["bibigpt"].post.return_value = make_response(json_data={"success": True, "summary": {"text": "x"}})
    sessions["siliconflow"].post.return_value = make_response(chunks=[make_sse_line("从描述生成").encode("utf-8")])

    response = client.post("/api/tutorial", json={"videoUrl": "https://youtu.be/abc", "description": "d"})

    assert response.status_code == 200
    assert sse_records(response.text) == ['data: {"text": "从描述生成"}', "data: [DONE]"]
    sessions["siliconflow"].post.assert_called_once()


def test_tutorial_bad_caption_entries_are_skipped(client, use_engines, sessions, make_response, make_sse_line):
    use_engines(bibigpt_token="")
    sessions["subtitles"].get.return_value = make_response(json_data={"body": [{"content": "第一句"}, {"content": 5}]})
    sessions["siliconflow"].post.return_value = make_response(chunks=[make_sse_line("ok").encode("utf-8")])

    response = client.post("/api/tutorial", json={"subtitleUrl": "https://example.com/sub.json", "description": "d"})

    assert response.status_code == 200
    assert sse_records(response.text) == ['data: {"text": "ok"}', "data: [DONE]"]
    prompt = sessions["siliconflow"].post.call_args[1]["json"]["messages"][1]["content"]
    assert "第一句" in prompt


def test_tutorial_without_captions_is_400(client, use_engines, sessions):
    use_engines()

    response = client.post("/api/tutorial", json={"title": "Nothing"})

    assert response.status_code == 400
    assert response.json() == {"error": "该视频没有字幕，无法生成教程。请选择有字幕的视频。"}
    sessions["bibigpt"].post.assert_not_called()
    sessions["siliconflow"].post.assert_not_called()


def test_tutorial_without_stream_key_is_500(client, use_engines):
    use_engines(siliconflow_key="")

    response = client.post("/api/tutorial", json={"description": "some description"})

    assert response.status_code == 500
    assert response.json() == {"error": "AI 服务未配置。"}


def test_tutorial_upstream_rejection_is_502(client, use_engines, sessions, make_response):
    use_engines(bibigpt_token="")
    sessions["siliconflow"].post.return_value = make_response(status_code=401, text='{"message": "bad key"}')

    response = client.post("/api/tutorial", json={"description": "desc"})

    assert response.status_code == 502
    assert response.json()["error"].startswith("SiliconFlow API 调用失败")


def test_tutorial_unexpected_error_is_500(client):
    dispatcher = MagicMock()
    dispatcher.dispatch.side_effect = RuntimeError("kaboom")
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher

    response = client.post("/api/tutorial", json={"description": "desc"})

    assert response.status_code == 500
    assert response.json() == {"error": "教程生成失败: kaboom"}


def test_tutorial_invalid_body_is_400(client, use_engines):
    use_engines()
    response = client.post("/api/tutorial", content=b"not json", headers={"Content-Type": "application/json"})
    assert response.status_code == 400
    assert "error" in response.json()


@patch.dict(os.environ, {"BIBIGPT_API_TOKEN": "", "SILICONFLOW_API_KEY": ""})
def test_tutorial_default_engines_read_environment(client):
    response = client.post("/api/tutorial", json={"description": "desc"})
    assert response.status_code == 500
    assert response.json() == {"error": "AI 服务未配置。"}


@pytest.fixture
def info_session(client):
    session = MagicMock()
    app.dependency_overrides[get_video_info_service] = lambda: VideoInfoService(session=session)
    return session


def test_video_info_bilibili(client, info_session, make_response):
    info_session.get.return_value = make_response(json_data={
        "code": 0,
        "data": {
            "title": "Python 教程",
            "owner": {"name": "UP主", "face": "https://i0.hdslb.com/face.jpg"},
            "duration": 600,
            "stat": {"view": 1000, "like": 50},
            "desc": "简介",
            "pic": "https://i0.hdslb.com/pic.jpg",
            "cid": 123456,
            "subtitle": {"list": [{"subtitle_url": "//i0.hdslb.com/bfs/subtitle/1.json"}]},
        },
    })

    response = client.post("/api/video-info", json={"url": "https://www.bilibili.com/video/BV1xx411c7mD?p=1"})

    assert response.status_code == 200
    data = response.json()
    assert data["platform"] == "bilibili"
    assert data["bvid"] == "BV1xx411c7mD"
    assert data["cid"] == 123456
    assert data["uploader"] == "UP主"
    assert data["views"] == 1000
    assert data["subtitleUrl"] == "https://i0.hdslb.com/bfs/subtitle/1.json"
    assert data["url"] == "https://www.bilibili.com/video/BV1xx411c7mD"
    assert info_session.get.call_args[1]["params"] == {"bvid": "BV1xx411c7mD"}


def test_video_info_bilibili_short_link(client, info_session, make_response):
    redirect = make_response()
    redirect.url = "https://www.bilibili.com/video/BV1ab411c7XY?share_source=copy"
    view = make_response(json_data={"code": 0, "data": {"title": "t", "owner": {}, "stat": {}}})
    info_session.get.side_effect = [redirect, view]

    response = client.post("/api/video-info", json={"url": "https://b23.tv/abcd"})

    assert response.status_code == 200
    assert response.json()["bvid"] == "BV1ab411c7XY"


def test_video_info_bilibili_api_error(client, info_session, make_response):
    info_session.get.return_value = make_response(json_data={"code": -404, "message": "啥都木有"})
    response = client.post("/api/video-info", json={"url": "https://www.bilibili.com/video/BV1xx411c7mD"})
    assert response.status_code == 400
    assert response.json() == {"error": "啥都木有"}


def test_video_info_bilibili_without_bvid(client, info_session):
    response = client.post("/api/video-info", json={"url": "https://www.bilibili.com/"})
    assert response.status_code == 400
    assert response.json() == {"error": "无法解析 BV 号"}


def test_video_info_youtube(client, info_session, make_response):
    info_session.get.return_value = make_response(json_data={
        "title": "Learn Git",
        "author_name": "Channel",
        "thumbnail_url": "https://i.ytimg.com/vi/abc/hqdefault.jpg",
    })

    response = client.post("/api/video-info", json={"url": "https://youtu.be/abc"})

    assert response.status_code == 200
    data = response.json()
    assert data["platform"] == "youtube"
    assert data["title"] == "Learn Git"
    assert data["uploader"] == "Channel"
    assert data["url"] == "https://youtu.be/abc"
    assert info_session.get.call_args[0][0] == "https://noembed.com/embed?url=https%3A%2F%2Fyoutu.be%2Fabc"


def test_video_info_youtube_invalid(client, info_session, make_response):
    info_session.get.return_value = make_response(json_data={"error": "no such video"})
    response = client.post("/api/video-info", json={"url": "https://youtube.com/watch?v=zzz"})
    assert response.status_code == 400
    assert response.json() == {"error": "YouTube 链接无效"}


def test_video_info_unsupported(client, info_session):
    response = client.post("/api/video-info", json={"url": "https://vimeo.com/1"})
    assert response.status_code == 400
    assert response.json() == {"error": "不支持的链接格式"}


def test_video_info_network_error(client, info_session):
    info_session.get.side_effect = requests.ConnectionError("offline")
    response = client.post("/api/video-info", json={"url": "https://youtu.be/abc"})
    assert response.status_code == 500
    assert response.json() == {"error": "服务器错误"}


@pytest.fixture
def proxy_session(client):
    session = MagicMock()
    app.dependency_overrides[get_media_proxy] = lambda: MediaProxy(session=session)
    return session


def play_url_response(make_response, size):
    return make_response(json_data={
        "code": 0,
        "data": {"durl": [{"url": "https://upos.bilivideo.com/v.mp4", "size": size}]},
    })


def test_download_requires_ids(client, proxy_session):
    response = client.post("/api/download", json={"bvid": "BV1xx411c7mD"})
    assert response.status_code == 400
    assert response.json() == {"error": "缺少 bvid 或 cid"}
    proxy_session.get.assert_not_called()


def test_download_proxies_small_video(client, proxy_session, make_response):
    stream = make_response(chunks=[b"\x00\x01", b"\x02"])
    proxy_session.get.side_effect = [play_url_response(make_response, 3), stream]

    response = client.post("/api/download", json={"bvid": "BV1xx411c7mD", "cid": 42})

    assert response.status_code == 200
    assert response.content == b"\x00\x01\x02"
    assert response.headers["content-type"] == "video/mp4"
    assert response.headers["content-disposition"] == 'attachment; filename="BV1xx411c7mD.mp4"'
    assert proxy_session.get.call_args_list[1][1]["headers"]["Range"] == "bytes=0-"
    stream.close.assert_called_once()


def test_download_large_video_returns_command(client, proxy_session, make_response):
    proxy_session.get.return_value = play_url_response(make_response, 60 * 1024 * 1024)

    response = client.post("/api/download", json={"bvid": "BV1xx411c7mD", "cid": 42})

    assert response.status_code == 200
    data = response.json()
    assert data["mode"] == "fallback"
    assert data["size"] == 60 * 1024 * 1024
    assert data["command"] == (
        'yt-dlp -f "bestvideo+bestaudio" --merge-output-format mp4 '
        '"https://www.bilibili.com/video/BV1xx411c7mD"'
    )
    assert proxy_session.get.call_count == 1


def test_download_without_stream_url(client, proxy_session, make_response):
    proxy_session.get.return_value = make_response(json_data={"code": -101, "data": None})
    response = client.post("/api/download", json={"bvid": "BV1xx411c7mD", "cid": 42})
    assert response.status_code == 400
    assert response.json() == {"error": "获取视频流地址失败，可能需要登录"}


def test_download_cdn_failure(client, proxy_session, make_response):
    proxy_session.get.side_effect = [play_url_response(make_response, 3), make_response(status_code=403)]
    response = client.post("/api/download", json={"bvid": "BV1xx411c7mD", "cid": 42})
    assert response.status_code == 502
    assert response.json() == {"error": "视频流获取失败"}


def test_image_proxy(client, proxy_session, make_response):
    image = make_response()
    image.content = b"\x89PNG"
    image.headers = {"content-type": "image/png"}
    proxy_session.get.return_value = image

    response = client.get("/api/image-proxy", params={"url": "https://i0.hdslb.com/pic.png"})

    assert response.status_code == 200
    assert response.content == b"\x89PNG"
    assert response.headers["content-type"] == "image/png"
    assert response.headers["cache-control"] == "public, max-age=86400, immutable"
    assert proxy_session.get.call_args[1]["headers"]["Referer"] == "https://www.bilibili.com"


def test_image_proxy_default_content_type(client, proxy_session, make_response):
    image = make_response()
    image.content = b"jpeg"
    image.headers = {}
    proxy_session.get.return_value = image
    response = client.get("/api/image-proxy", params={"url": "https://i0.hdslb.com/pic"})
    assert response.headers["content-type"] == "image/jpeg"


def test_image_proxy_errors(client, proxy_session, make_response):
    assert client.get("/api/image-proxy").status_code == 400

    proxy_session.get.return_value = make_response(status_code=404)
    assert client.get("/api/image-proxy", params={"url": "https://x/y"}).status_code == 502

    proxy_session.get.side_effect = requests.ConnectionError("down")
    response = client.get("/api/image-proxy", params={"url": "https://x/y"})
    assert response.status_code == 500
    assert response.json() == {"error": "Proxy error"}
