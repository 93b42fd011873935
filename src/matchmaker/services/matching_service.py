"""
Matching step: summary -> vector -> top candidate -> narrated match.

The service never mutates the session. It returns a MatchOutcome that the
state machine commits once every external call has succeeded.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import structlog

from matchmaker.core.exceptions import StageError
from matchmaker.domain.models.session import (
    PreferenceSummary,
    PresentedMatch,
    StageMetadata,
)
from matchmaker.llm.prompts.match import format_match_for_chat
from matchmaker.services.embedding_service import EMBEDDING_STAGE, EmbeddingClient
from matchmaker.services.search_service import SimilaritySearchClient
from matchmaker.services.turn_pipeline import TurnPipeline
from matchmaker.services.turn_pipeline.stages import NarrateMatchInput

log = structlog.get_logger(__name__)

NO_CANDIDATE_REPLY = (
    "I could not find a confident match with the current filters. "
    "Try adjusting the filters or ask me to collect more info."
)


@dataclass
class MatchOutcome:
    """Result of one matching step.

    ``match`` is None for the no-candidate outcome, which is a value and
    not an error.
    """

    reply: str
    match: Optional[PresentedMatch] = None
    metadata: Optional[StageMetadata] = None

    @property
    def found(self) -> bool:
        return self.match is not None


def build_search_filters(
    summary_metadata: Dict[str, Any], session_filters: Dict[str, Any]
) -> Dict[str, str]:
    """
    Merge summary metadata with session filters into equality terms.

    Session filters win on conflicting keys. Only non-empty string values
    survive; everything else is dropped.
    """
    merged = {**summary_metadata, **session_filters}
    return {k: v for k, v in merged.items() if isinstance(v, str) and v}


class MatchingService:
    """Runs the matching step against the embedding and search clients."""

    def __init__(
        self,
        embedder: EmbeddingClient,
        search: SimilaritySearchClient,
        pipeline: TurnPipeline,
        top_k: int = 1,
        feedback_hint_limit: int = 3,
    ):
        self.embedder = embedder
        self.search = search
        self.pipeline = pipeline
        self.top_k = top_k
        self.feedback_hint_limit = feedback_hint_limit

    async def find_match(
        self,
        summary: PreferenceSummary,
        filters: Dict[str, Any],
        feedback_notes: List[str],
        iteration: int,
    ) -> MatchOutcome:
        """
        Search for and narrate the single best candidate.

        Args:
            summary: Current preference summary
            filters: Session filter map
            feedback_notes: All feedback so far; the last few become hints
            iteration: Ordinal of the match being produced, used for the
                fallback id when the index returns none

        Raises:
            StageError: Embedding, search or narration failed
        """
        vector = await self.embedder.embed(summary.search_payload.search_vector_prompt)
        if not vector:
            raise StageError(
                EMBEDDING_STAGE, "Failed to build a search vector from the summary."
            )

        search_filters = build_search_filters(summary.search_payload.metadata, filters)
        candidate = await self.search.query(vector, search_filters, top_k=self.top_k)

        if candidate is None:
            log.info("match_not_found", filters=search_filters)
            return MatchOutcome(reply=NO_CANDIDATE_REPLY)

        hints = feedback_notes[-self.feedback_hint_limit :] if self.feedback_hint_limit else []
        result = await self.pipeline.run(
            self.pipeline.narrate_match,
            NarrateMatchInput(
                summary=summary,
                candidate_id=candidate.id,
                vector_score=candidate.score,
                metadata=candidate.metadata,
                feedback_hints=hints,
            ),
        )

        narrative = result.output.to_narrative()
        match = PresentedMatch(
            id=candidate.id or f"match-{iteration}",
            narrative=narrative,
            vector_score=candidate.score,
            metadata=candidate.metadata,
        )
        log.info("match_found", match_id=match.id, score=match.vector_score)
        return MatchOutcome(
            reply=format_match_for_chat(narrative),
            match=match,
            metadata=result.metadata,
        )
