"""Tests for the matching step (embed, search, narrate)."""

import pytest

from conftest import (
    FakeEmbeddingClient,
    FakeSearchClient,
    ScriptedLLMClient,
    candidate,
    match_reply,
    summary_reply,
)
from matchmaker.core.exceptions import StageError
from matchmaker.domain.models.stage_contracts import SummaryOutput
from matchmaker.services.matching_service import (
    NO_CANDIDATE_REPLY,
    MatchingService,
    build_search_filters,
)
from matchmaker.services.turn_pipeline import TurnPipeline


@pytest.fixture
def summary():
    return SummaryOutput.model_validate(summary_reply()).to_preference_summary()


def _service(llm, embedder=None, search=None):
    return MatchingService(
        embedder=embedder or FakeEmbeddingClient(),
        search=search or FakeSearchClient(),
        pipeline=TurnPipeline(llm),
    )


class TestBuildSearchFilters:
    def test_session_filters_win(self):
        merged = build_search_filters(
            {"location": "Hamburg", "hobby": "hiking"}, {"location": "Berlin"}
        )
        assert merged == {"location": "Berlin", "hobby": "hiking"}

    def test_non_string_and_empty_values_dropped(self):
        merged = build_search_filters({"age": 34, "tags": ["a"], "note": ""}, {"x": None})
        assert merged == {}


class TestFindMatch:
    @pytest.mark.asyncio
    async def test_found_candidate_is_narrated(self, summary):
        llm = ScriptedLLMClient(match_reply())
        embedder = FakeEmbeddingClient([0.4, 0.6])
        search = FakeSearchClient(candidate())
        service = _service(llm, embedder, search)

        outcome = await service.find_match(
            summary, {"location": "Berlin"}, feedback_notes=[], iteration=1
        )

        assert outcome.found
        assert outcome.match.id == "cand-1"
        assert outcome.match.vector_score == 0.87
        assert outcome.match.narrative.title == "Meet Alex"
        assert outcome.reply.startswith("Meet Alex")
        assert "• Shared love of hiking" in outcome.reply
        assert outcome.metadata.stage == "match"

        assert embedder.texts == ["curious kind outdoorsy partner in Berlin"]
        assert search.queries[0]["vector"] == [0.4, 0.6]
        assert search.queries[0]["filters"] == {"location": "Berlin", "hobby": "hiking"}

    @pytest.mark.asyncio
    async def test_no_candidate_is_a_value(self, summary):
        llm = ScriptedLLMClient()
        service = _service(llm)

        outcome = await service.find_match(summary, {}, feedback_notes=[], iteration=1)

        assert not outcome.found
        assert outcome.reply == NO_CANDIDATE_REPLY
        assert llm.calls == []

    @pytest.mark.asyncio
    async def test_missing_candidate_id_falls_back_to_iteration(self, summary):
        service = _service(
            ScriptedLLMClient(match_reply()), search=FakeSearchClient(candidate(id=None))
        )

        outcome = await service.find_match(summary, {}, feedback_notes=[], iteration=3)

        assert outcome.match.id == "match-3"

    @pytest.mark.asyncio
    async def test_empty_vector_raises(self, summary):
        service = _service(ScriptedLLMClient(), embedder=FakeEmbeddingClient([]))

        with pytest.raises(StageError) as exc_info:
            await service.find_match(summary, {}, feedback_notes=[], iteration=1)

        assert exc_info.value.stage == "embedding"
        assert "search vector" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_only_recent_feedback_is_hinted(self, summary):
        llm = ScriptedLLMClient(match_reply())
        service = _service(llm, search=FakeSearchClient(candidate()))

        await service.find_match(
            summary, {}, feedback_notes=["one", "two", "three", "four"], iteration=1
        )

        prompt = llm.calls[0]["prompt"]
        assert '"four"' in prompt
        assert '"two"' in prompt
        assert '"one"' not in prompt
