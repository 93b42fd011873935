"""
Lazily constructed external collaborators.

Clients are built on first use, not at import or startup. A missing
credential surfaces as ConfigurationError on the first action that needs it.
"""

from typing import Callable, Optional

import structlog

from matchmaker.core.config import MatchmakerConfig, matchmaker_config, settings
from matchmaker.llm.client import LLMClient, get_llm_client
from matchmaker.services.embedding_service import EmbeddingClient, get_embedding_client
from matchmaker.services.matching_service import MatchingService
from matchmaker.services.search_service import SimilaritySearchClient, get_search_client
from matchmaker.services.transcription_service import (
    TranscriptionClient,
    get_transcription_client,
)
from matchmaker.services.turn_pipeline import TurnPipeline

log = structlog.get_logger(__name__)


class MatchmakerServices:
    """Holds (or builds on demand) every client the state machine talks to.

    Pass instances to bypass the factories, e.g. fakes in tests.
    """

    def __init__(
        self,
        llm: Optional[LLMClient] = None,
        embedder: Optional[EmbeddingClient] = None,
        search: Optional[SimilaritySearchClient] = None,
        transcriber: Optional[TranscriptionClient] = None,
        config: Optional[MatchmakerConfig] = None,
        llm_factory: Callable[[], LLMClient] = get_llm_client,
        embedding_factory: Callable[[], EmbeddingClient] = get_embedding_client,
        search_factory: Callable[[], SimilaritySearchClient] = get_search_client,
        transcription_factory: Callable[[], TranscriptionClient] = get_transcription_client,
    ):
        self.config = config or matchmaker_config
        self._llm = llm
        self._embedder = embedder
        self._search = search
        self._transcriber = transcriber
        self._llm_factory = llm_factory
        self._embedding_factory = embedding_factory
        self._search_factory = search_factory
        self._transcription_factory = transcription_factory
        self._pipeline: Optional[TurnPipeline] = None
        self._matching: Optional[MatchingService] = None

    @property
    def llm(self) -> LLMClient:
        if self._llm is None:
            self._llm = self._llm_factory()
            log.info("client_ready", client="llm")
        return self._llm

    @property
    def embedder(self) -> EmbeddingClient:
        if self._embedder is None:
            self._embedder = self._embedding_factory()
            log.info("client_ready", client="embedding")
        return self._embedder

    @property
    def search(self) -> SimilaritySearchClient:
        if self._search is None:
            self._search = self._search_factory()
            log.info("client_ready", client="search")
        return self._search

    @property
    def transcriber(self) -> TranscriptionClient:
        if self._transcriber is None:
            self._transcriber = self._transcription_factory()
            log.info("client_ready", client="transcription")
        return self._transcriber

    @property
    def pipeline(self) -> TurnPipeline:
        if self._pipeline is None:
            self._pipeline = TurnPipeline(self.llm, stage_timeout=settings.stage_timeout_seconds)
        return self._pipeline

    @property
    def matching(self) -> MatchingService:
        if self._matching is None:
            self._matching = MatchingService(
                embedder=self.embedder,
                search=self.search,
                pipeline=self.pipeline,
                top_k=self.config.matching.top_k,
                feedback_hint_limit=self.config.session.feedback_hint_limit,
            )
        return self._matching
