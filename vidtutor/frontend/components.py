"""
Reusable UI components for the Streamlit app.
"""

import os
import streamlit as st
from typing import Dict, Any, Optional


def header():
    """Display the application header."""
    st.set_page_config(
        page_title="Video Tutor",
        page_icon="🎓",
        layout="centered",
    )

    st.title("🎓 Video Tutor")
    st.markdown("""
    Paste a Bilibili or YouTube link to see the video, download it, and get a beginner tutorial.
    """)
    st.divider()


def sidebar():
    """Display the sidebar with the API settings."""
    with st.sidebar:
        st.markdown("## Settings")
        api_url = st.text_input("API URL", value=os.getenv("API_URL", "http://localhost:8000"), key="api_url")
        st.divider()
        st.info("""
        Tutorials come from BibiGPT when a token is configured,
        otherwise they are written from the video's subtitles.
        """)
    return api_url


def video_input() -> Optional[str]:
    """
    Display the video link form.

    Returns:
        The entered URL or None
    """
    with st.form(key="video_form"):
        url = st.text_input(
            "Video link",
            placeholder="https://www.bilibili.com/video/BV... or https://youtu.be/...",
        )
        submit = st.form_submit_button("Look up")

    if submit and url:
        return url
    return None


def video_card(info: Dict[str, Any], thumbnail_url: Optional[str] = None):
    """
    Display the video metadata.

    Args:
        info: Video info returned by the API
        thumbnail_url: Proxied thumbnail URL
    """
    if thumbnail_url:
        st.image(thumbnail_url, use_container_width=True)
    st.markdown(f"## {info['title']}")
    if info.get("uploader"):
        st.markdown(f"**UP:** {info['uploader']}")

    stats = []
    if info.get("duration"):
        minutes, seconds = divmod(info["duration"], 60)
        stats.append(f"⏱ {minutes}:{seconds:02d}")
    if info.get("views") is not None:
        stats.append(f"👁 {info['views']}")
    if info.get("likes") is not None:
        stats.append(f"👍 {info['likes']}")
    if stats:
        st.caption("  ·  ".join(stats))


def download_fallback(command: str, size: int):
    """Show the yt-dlp command for videos too large to proxy."""
    st.warning(f"视频较大（{size / 1024 / 1024:.1f} MB），请使用以下命令下载")
    st.code(command, language="bash")


def tutorial_placeholder():
    st.markdown("### 📘 Tutorial")
    return st.empty()


def display_error(message: str):
    """
    Display an error message.

    Args:
        message: Error message to display
    """
    st.error(message)
