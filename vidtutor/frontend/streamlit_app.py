"""
Main Streamlit application for the video tutor gateway.
"""

import streamlit as st
from dotenv import load_dotenv

from vidtutor.frontend.api_client import ApiClient, ApiError
from vidtutor.frontend.components import (
    header, sidebar, video_input, video_card,
    download_fallback, tutorial_placeholder, display_error,
)


load_dotenv()


def init_session_state(api_url: str):
    """Initialize session state variables."""
    if "api_client" not in st.session_state or st.session_state.api_client.base_url != api_url:
        st.session_state.api_client = ApiClient(api_url)

    if "current_video" not in st.session_state:
        st.session_state.current_video = None

    if "tutorial" not in st.session_state:
        st.session_state.tutorial = ""


def lookup_video(url: str):
    """Fetch metadata for a link and make it the current video."""
    client = st.session_state.api_client

    if not client.detect_platform(url):
        display_error("不支持的链接格式")
        return

    try:
        with st.spinner("Looking up video..."):
            st.session_state.current_video = client.video_info(url)
        st.session_state.tutorial = ""
    except ApiError as e:
        display_error(str(e))
    except Exception as e:
        display_error(f"Error looking up video: {str(e)}")


def download_section(video: dict):
    """Offer the proxied download for Bilibili videos."""
    if video.get("platform") != "bilibili" or not video.get("cid"):
        return

    client = st.session_state.api_client
    if st.button("⬇️ Prepare download"):
        try:
            with st.spinner("Fetching video stream..."):
                response = client.download(video["bvid"], video["cid"])
                if response.headers.get("content-type", "").startswith("application/json"):
                    data = response.json()
                    download_fallback(data["command"], data["size"])
                    return
                content = response.content
            st.download_button(
                "Save video",
                data=content,
                file_name=f"{video['bvid']}.mp4",
                mime="video/mp4",
            )
        except ApiError as e:
            display_error(str(e))


def tutorial_section(video: dict):
    """Stream the tutorial for the current video."""
    client = st.session_state.api_client
    placeholder = tutorial_placeholder()

    if st.button("✨ Generate tutorial"):
        text = ""
        try:
            for fragment in client.stream_tutorial(
                subtitle_url=video.get("subtitleUrl"),
                title=video.get("title"),
                description=video.get("description"),
                video_url=video.get("url"),
            ):
                text += fragment
                placeholder.markdown(text + "▌")
        except ApiError as e:
            display_error(str(e))
        st.session_state.tutorial = text

    if st.session_state.tutorial:
        placeholder.markdown(st.session_state.tutorial)


def main():
    """Main application entry point."""
    header()
    api_url = sidebar()
    init_session_state(api_url)

    url = video_input()
    if url:
        lookup_video(url)

    video = st.session_state.current_video
    if not video:
        return

    thumbnail = video.get("thumbnail")
    thumbnail_url = st.session_state.api_client.image_proxy_url(thumbnail) if thumbnail else None
    video_card(video, thumbnail_url)
    download_section(video)
    tutorial_section(video)


if __name__ == "__main__":
    main()
