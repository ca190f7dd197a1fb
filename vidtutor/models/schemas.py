"""
Data models for the video tutor gateway.

Everything here is request scoped, nothing is persisted.
"""
from dataclasses import dataclass
from typing import Optional, Dict, Any
from pydantic import BaseModel, ConfigDict, Field

from vidtutor.config import config


class TutorialRequest(BaseModel):
    """What the client knows about the video it wants a tutorial for."""
    model_config = ConfigDict(populate_by_name=True)

    subtitle_url: Optional[str] = Field(default=None, alias="subtitleUrl")
    title: Optional[str] = None
    description: Optional[str] = None
    video_url: Optional[str] = Field(default=None, alias="videoUrl")


class VideoInfoRequest(BaseModel):
    """Model for metadata lookups."""
    url: str


class VideoInfo(BaseModel):
    """Metadata returned for a Bilibili or YouTube link."""
    model_config = ConfigDict(populate_by_name=True)

    platform: str
    title: str
    uploader: Optional[str] = None
    avatar: Optional[str] = None
    duration: Optional[int] = None
    views: Optional[int] = None
    likes: Optional[int] = None
    description: Optional[str] = None
    thumbnail: Optional[str] = None
    bvid: Optional[str] = None
    cid: Optional[int] = None
    subtitle_url: Optional[str] = Field(default=None, alias="subtitleUrl")
    url: str


class DownloadRequest(BaseModel):
    """Model for Bilibili download requests."""
    bvid: Optional[str] = None
    cid: Optional[int] = None


class DownloadFallback(BaseModel):
    """Returned instead of a stream when the video is too large to proxy."""
    mode: str = "fallback"
    message: str
    command: str
    size: int


class BibiGPTConfig(BaseModel):
    """Configuration for the one-shot BibiGPT summarizer."""
    base_url: str = config.BIBIGPT_BASE
    include_detail: bool = True
    show_emoji: bool = True
    detail_level: int = 800
    output_language: str = "zh-CN"
    custom_prompt: Optional[str] = None
    timeout: float = config.REQUEST_TIMEOUT

    def prompt_config(self) -> Dict[str, Any]:
        prompt = {
            "showEmoji": self.show_emoji,
            "detailLevel": self.detail_level,
            "outputLanguage": self.output_language,
        }
        if self.custom_prompt:
            prompt["customPrompt"] = self.custom_prompt
        return prompt


class ChatCompletionConfig(BaseModel):
    """Configuration for the streaming chat-completion engine."""
    base_url: str = config.SILICONFLOW_BASE
    model: str = config.SILICONFLOW_MODEL
    temperature: float = 0.7
    max_tokens: int = 4096
    timeout: float = config.REQUEST_TIMEOUT


@dataclass(frozen=True)
class ThinkFilterState:
    """
    Per-stream state of the think-block filter.

    ``pending`` holds the tail of the last fragment when it could be the
    start of a tag split across fragments.
    """
    inside_think_block: bool = False
    pending: str = ""


class EngineResult:
    """Output of a summarizer attempt."""


class CompleteText(EngineResult):
    """A finished result that still has to be chunked for the client."""

    def __init__(self, text: str):
        self.text = text

    def __repr__(self):
        return f"CompleteText({len(self.text)} chars)"


class TokenStream(EngineResult):
    """A live upstream SSE response, read incrementally."""

    def __init__(self, response):
        self.response = response

    def iter_chunks(self):
        return self.response.iter_content(chunk_size=None)

    def close(self):
        self.response.close()
