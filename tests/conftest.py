"""
Shared test fixtures.

In-memory fakes stand in for every external client so the state machine,
matching step and HTTP boundary can be exercised without network access.
"""

import json
from typing import Any, Dict, List, Optional, Union

import pytest

from matchmaker.core.config import MatchmakerConfig
from matchmaker.domain.models.session import Session
from matchmaker.llm.client import LLMClient, LLMResponse
from matchmaker.services.embedding_service import EmbeddingClient
from matchmaker.services.registry import MatchmakerServices
from matchmaker.services.search_service import Candidate, SimilaritySearchClient
from matchmaker.services.session_machine import SessionStateMachine
from matchmaker.services.session_store import SessionStore
from matchmaker.services.transcription_service import TranscriptionClient

Reply = Union[str, Dict[str, Any], Exception]


class ScriptedLLMClient(LLMClient):
    """Returns queued replies in order; dicts are sent as JSON."""

    provider_name = "fake"

    def __init__(self, *replies: Reply):
        super().__init__(model="fake-model", temperature=0.0, max_tokens=512, timeout=5.0)
        self.replies: List[Reply] = list(replies)
        self.calls: List[Dict[str, Any]] = []

    def queue(self, *replies: Reply) -> None:
        self.replies.extend(replies)

    async def complete(
        self,
        prompt: str,
        system: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> LLMResponse:
        self.calls.append({"prompt": prompt, "system": system})
        if not self.replies:
            raise AssertionError("Unexpected LLM call")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        content = reply if isinstance(reply, str) else json.dumps(reply)
        return LLMResponse(
            content=content,
            model=self.model,
            usage={"input_tokens": 12, "output_tokens": 7},
            latency_ms=1.5,
        )


class FakeEmbeddingClient(EmbeddingClient):
    def __init__(self, vector: Optional[List[float]] = None):
        self.vector = [0.1, 0.2, 0.3] if vector is None else vector
        self.texts: List[str] = []

    async def embed(self, text: str) -> List[float]:
        self.texts.append(text)
        return list(self.vector)


class FakeSearchClient(SimilaritySearchClient):
    """Returns queued candidates in order, then None."""

    def __init__(self, *candidates: Optional[Candidate]):
        self.candidates = list(candidates)
        self.queries: List[Dict[str, Any]] = []

    async def query(self, vector, filters, top_k=1):
        self.queries.append({"vector": vector, "filters": filters, "top_k": top_k})
        if not self.candidates:
            return None
        return self.candidates.pop(0)


class FakeTranscriptionClient(TranscriptionClient):
    def __init__(self, text: str = "I love long walks by the river"):
        self.text = text
        self.clips: List[bytes] = []

    async def transcribe(self, audio, filename="audio.webm", content_type=None):
        self.clips.append(audio)
        return self.text


# =============================================================================
# Canned stage replies
# =============================================================================


def interview_reply(reply: str = "Tell me more about that?", ready: bool = False) -> Dict:
    return {"reply": reply, "readyForSummary": ready, "coachingNote": None}


def summary_reply(**overrides) -> Dict:
    data = {
        "headline": "Adventurous and kind",
        "synopsis": "Looking for a curious partner who loves the outdoors.",
        "traits": ["curious", "kind", "outdoorsy"],
        "dealbreakers": ["smoking", "dishonesty"],
        "searchVectorPrompt": "curious kind outdoorsy partner in Berlin",
        "metadata": {"location": "Hamburg", "hobby": "hiking", "age": 34},
    }
    data.update(overrides)
    return data


def match_reply(**overrides) -> Dict:
    data = {
        "title": "Meet Alex",
        "blurb": "Alex spends weekends on trails and weekdays building furniture.",
        "compatibilityReasons": ["Shared love of hiking", "Both value honesty"],
        "tone": "warm",
        "callToAction": "Want to hear more about Alex?",
    }
    data.update(overrides)
    return data


def feedback_reply() -> Dict:
    return {
        "acknowledgement": "Thanks, that helps.",
        "followUpQuestion": "Is distance a big factor for you?",
        "internalNote": "prefers nearby matches",
    }


def profile_reply() -> Dict:
    return {
        "profileSummary": "You lead with warmth and curiosity.",
        "strengths": ["empathy", "openness", "humour"],
        "growthAreas": ["patience", "saying no"],
        "suggestedExperiment": "Plan a low-key outdoor date this month.",
    }


def candidate(id: Optional[str] = "cand-1", score: float = 0.87) -> Candidate:
    return Candidate(id=id, score=score, metadata={"name": "Alex", "location": "Berlin"})


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def config() -> MatchmakerConfig:
    return MatchmakerConfig()


@pytest.fixture
def llm() -> ScriptedLLMClient:
    return ScriptedLLMClient()


@pytest.fixture
def embedder() -> FakeEmbeddingClient:
    return FakeEmbeddingClient()


@pytest.fixture
def search() -> FakeSearchClient:
    return FakeSearchClient()


@pytest.fixture
def transcriber() -> FakeTranscriptionClient:
    return FakeTranscriptionClient()


@pytest.fixture
def services(llm, embedder, search, transcriber, config) -> MatchmakerServices:
    return MatchmakerServices(
        llm=llm,
        embedder=embedder,
        search=search,
        transcriber=transcriber,
        config=config,
    )


@pytest.fixture
def machine(services, config) -> SessionStateMachine:
    session = Session(id="test-session", filters=dict(config.default_filters))
    return SessionStateMachine(session, services, config)


@pytest.fixture
def store(services, config) -> SessionStore:
    return SessionStore(services, config)
