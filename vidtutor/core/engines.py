"""
Summarizer engines for tutorial generation.

Each engine exposes the same ``attempt(request)`` call. ``BibiGPTSummarizer``
turns a video URL into a finished summary in one call;
``ChatCompletionSummarizer`` streams a tutorial written from subtitle text by
an OpenAI-compatible chat model.
"""

import os
from typing import Optional
from urllib.parse import quote

import requests

from vidtutor.core.prompts import build_chat_messages
from vidtutor.core.think_filter import strip_think_blocks
from vidtutor.models.schemas import (
    BibiGPTConfig,
    ChatCompletionConfig,
    CompleteText,
    EngineResult,
    TokenStream,
    TutorialRequest,
)
from vidtutor.utils.error_handling import EngineFailure, UpstreamRejected, truncate_upstream_error
from vidtutor.utils.logger import logging


class Summarizer:
    """Base class for tutorial engines."""

    name = "summarizer"
    # Engines that write from subtitle text instead of the video URL
    needs_subtitles = False

    def __init__(self, api_key: Optional[str] = None, session: Optional[requests.Session] = None):
        self.api_key = api_key or ""
        self.session = session or requests.Session()

    def is_configured(self) -> bool:
        return bool(self.api_key)

    def accepts(self, request: TutorialRequest) -> bool:
        """Whether the request carries what this engine needs."""
        return True

    def attempt(self, request: TutorialRequest, **kwargs) -> EngineResult:
        raise NotImplementedError


class BibiGPTSummarizer(Summarizer):
    """One-shot summarizer that works straight from a video URL."""

    name = "bibigpt"

    def __init__(
        self,
        api_key: Optional[str] = None,
        config: Optional[BibiGPTConfig] = None,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the engine.

        Args:
            api_key: BibiGPT token (if None, will try to get from environment)
            config: Request settings
            session: HTTP session to use
        """
        super().__init__(api_key if api_key is not None else os.getenv("BIBIGPT_API_TOKEN", ""), session)
        self.config = config or BibiGPTConfig()

    def accepts(self, request: TutorialRequest) -> bool:
        return bool(request.video_url)

    def _summary_from(self, response: requests.Response) -> Optional[str]:
        data = response.json()
        if isinstance(data, dict) and data.get("success") and isinstance(data.get("summary"), str):
            return strip_think_blocks(data["summary"])
        return None

    def _open_url(self, video_url: str) -> str:
        # The open endpoint takes the token in the path, that is the provider's contract
        return f"{self.config.base_url}/api/open/{self.api_key}?url={quote(video_url, safe='')}"

    def attempt(self, request: TutorialRequest, **kwargs) -> EngineResult:
        """
        Summarize the video behind ``request.video_url``.

        Tries the config endpoint first and the open endpoint when that
        answers with an error status.

        Raises:
            EngineFailure: When no usable summary came back
        """
        if not self.is_configured():
            raise EngineFailure("BibiGPT token not configured")

        video_url = request.video_url
        body = {
            "url": video_url,
            "includeDetail": self.config.include_detail,
            "promptConfig": self.config.prompt_config(),
        }

        try:
            response = self.session.post(
                f"{self.config.base_url}/api/v1/summarizeWithConfig",
                json=body,
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=self.config.timeout,
            )

            if not response.ok:
                logging.warning(
                    f"BibiGPT summarizeWithConfig returned {response.status_code}, "
                    f"trying {self.config.base_url}/api/open/***"
                )
                response = self.session.get(
                    self._open_url(video_url),
                    allow_redirects=True,
                    timeout=self.config.timeout,
                )
                if not response.ok:
                    raise EngineFailure(f"BibiGPT open endpoint returned {response.status_code}")

            summary = self._summary_from(response)
        except (requests.RequestException, ValueError, TypeError) as e:
            raise EngineFailure(f"BibiGPT request failed: {type(e).__name__}") from e

        if not summary:
            raise EngineFailure("BibiGPT returned no summary")

        logging.info(f"BibiGPT summary received ({len(summary)} chars)")
        return CompleteText(summary)


class ChatCompletionSummarizer(Summarizer):
    """Streaming tutorial writer on an OpenAI-compatible endpoint."""

    name = "siliconflow"
    needs_subtitles = True

    def __init__(
        self,
        api_key: Optional[str] = None,
        config: Optional[ChatCompletionConfig] = None,
        session: Optional[requests.Session] = None,
    ):
        super().__init__(api_key if api_key is not None else os.getenv("SILICONFLOW_API_KEY", ""), session)
        self.config = config or ChatCompletionConfig()

    def attempt(self, request: TutorialRequest, subtitle_text: str = "", **kwargs) -> EngineResult:
        """
        Open a streaming chat completion for the tutorial prompt.

        Args:
            request: The tutorial request, used for the title
            subtitle_text: Resolved subtitle or description text

        Returns:
            TokenStream over the live upstream response

        Raises:
            EngineFailure: When there is nothing to summarize
            UpstreamRejected: When the endpoint refuses the request
        """
        if not self.is_configured() or not subtitle_text:
            raise EngineFailure("Chat completion engine has nothing to work with")

        payload = {
            "model": self.config.model,
            "messages": build_chat_messages(subtitle_text, request.title or ""),
            "stream": True,
            "temperature": self.config.temperature,
            "max_tokens": self.config.max_tokens,
        }

        try:
            response = self.session.post(
                f"{self.config.base_url}/chat/completions",
                json=payload,
                headers={"Authorization": f"Bearer {self.api_key}"},
                stream=True,
                timeout=self.config.timeout,
            )
        except requests.RequestException as e:
            logging.error(f"Chat completion request failed: {str(e)}")
            raise UpstreamRejected("SiliconFlow API 调用失败") from e

        if not response.ok:
            detail = truncate_upstream_error(response.text)
            response.close()
            logging.error(f"Chat completion rejected with {response.status_code}: {detail}")
            message = "SiliconFlow API 调用失败"
            if detail:
                message = f"{message}: {detail}"
            raise UpstreamRejected(message)

        logging.info(f"Streaming tutorial from {self.config.model}")
        return TokenStream(response)
