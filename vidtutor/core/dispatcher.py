"""
Engine dispatch for tutorial generation.

Engines are tried in order and the first one that produces a result answers
the request. URL-based engines go first; subtitle text is only resolved once
an engine that needs it is reached. Every error raised here happens before a
single byte of the response is produced.
"""

from typing import Iterator, List, Optional

from vidtutor.config import config
from vidtutor.core.engines import Summarizer, BibiGPTSummarizer, ChatCompletionSummarizer
from vidtutor.core.streaming import artificial_stream, translate_stream
from vidtutor.core.subtitles import SubtitleFetcher
from vidtutor.models.schemas import CompleteText, EngineResult, TokenStream, TutorialRequest
from vidtutor.utils.error_handling import EngineFailure, EngineUnconfiguredError, NoCaptionsError
from vidtutor.utils.logger import logging


class TutorialDispatcher:
    """Picks the engine that answers a tutorial request."""

    def __init__(
        self,
        engines: List[Summarizer],
        subtitle_fetcher: Optional[SubtitleFetcher] = None,
        chunk_size: int = config.CHUNK_SIZE,
        chunk_delay: float = config.CHUNK_DELAY,
    ):
        self.engines = engines
        self.subtitle_fetcher = subtitle_fetcher or SubtitleFetcher()
        self.chunk_size = chunk_size
        self.chunk_delay = chunk_delay

    def select(self, request: TutorialRequest) -> EngineResult:
        """
        Run the engines in order until one returns a result.

        Raises:
            NoCaptionsError: No subtitle text or description to write from
            EngineUnconfiguredError: No engine able to write from text is configured
            UpstreamRejected: The streaming engine refused the request
        """
        subtitle_text = None

        for engine in self.engines:
            if engine.needs_subtitles:
                if subtitle_text is None:
                    subtitle_text = self.subtitle_fetcher.resolve(request)
                    if not subtitle_text:
                        raise NoCaptionsError()
            elif not engine.accepts(request):
                continue

            if not engine.is_configured():
                logging.info(f"Engine {engine.name} not configured, skipping")
                continue

            try:
                result = engine.attempt(request, subtitle_text=subtitle_text or "")
            except EngineFailure as e:
                logging.warning(f"Engine {engine.name} gave no result: {str(e)}")
                continue

            logging.info(f"Tutorial answered by {engine.name}")
            return result

        if subtitle_text is None:
            # Only URL engines ran; the text path still has to be validated
            if not self.subtitle_fetcher.resolve(request):
                raise NoCaptionsError()
        raise EngineUnconfiguredError()

    def stream(self, result: EngineResult) -> Iterator[str]:
        """Encode an engine result as the outbound event stream."""
        if isinstance(result, CompleteText):
            return artificial_stream(result.text, chunk_size=self.chunk_size, delay=self.chunk_delay)
        if isinstance(result, TokenStream):
            return translate_stream(result.iter_chunks(), on_close=result.close)
        raise TypeError(f"Unsupported engine result: {result!r}")

    def dispatch(self, request: TutorialRequest) -> Iterator[str]:
        return self.stream(self.select(request))


def build_default_dispatcher() -> TutorialDispatcher:
    """BibiGPT first, SiliconFlow as the streaming fallback."""
    return TutorialDispatcher([BibiGPTSummarizer(), ChatCompletionSummarizer()])
