"""
Similarity search over the partner index.

The orchestrator asks one question of the index: given a query vector and
an equality filter, what is the single best candidate? MilvusSearchClient
answers it with pymilvus.MilvusClient; the blocking call runs in a worker
thread so other sessions keep moving.
"""

import asyncio
import re
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import structlog
from pydantic import BaseModel, Field
from pymilvus.exceptions import MilvusException

from matchmaker.core.config import matchmaker_config, settings
from matchmaker.core.exceptions import ConfigurationError, StageError

logger = structlog.get_logger(__name__)

SEARCH_STAGE = "search"

_FIELD_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class Candidate(BaseModel):
    """Top hit returned by the index, vectors excluded."""

    id: Optional[str] = None
    score: Optional[float] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class SimilaritySearchClient(ABC):
    """Abstract similarity-search provider."""

    @abstractmethod
    async def query(
        self, vector: List[float], filters: Dict[str, str], top_k: int = 1
    ) -> Optional[Candidate]:
        """
        Return the best candidate or None when nothing passes the filter
        and the configured search radius.

        Raises:
            StageError: The index failed or timed out
        """
        pass


def build_filter_expression(filters: Dict[str, str]) -> str:
    """
    Render equality terms as a Milvus boolean expression.

    Keys that are not valid field names are skipped; values are quoted
    with embedded quotes escaped.

    Example:
        >>> build_filter_expression({"location": "Berlin", "ageBracket": "30s"})
        'location == "Berlin" and ageBracket == "30s"'
    """
    terms = []
    for key, value in filters.items():
        if not _FIELD_NAME.match(key):
            logger.warning("filter_key_skipped", key=key)
            continue
        escaped = value.replace("\\", "\\\\").replace('"', '\\"')
        terms.append(f'{key} == "{escaped}"')
    return " and ".join(terms)


class MilvusSearchClient(SimilaritySearchClient):
    """Milvus-backed search via MilvusClient.search()."""

    def __init__(
        self,
        client: Any,
        collection: str,
        partition: Optional[str] = None,
        vector_field: str = "embedding",
        metric_type: str = "COSINE",
        radius: Optional[float] = None,
        output_fields: Optional[List[str]] = None,
        timeout: float = 10.0,
    ):
        """
        Args:
            client: pymilvus.MilvusClient (or compatible) instance
            collection: Collection holding partner profiles
            partition: Namespace searched; whole collection when None
            vector_field: Vector field name, stripped from returned metadata
            metric_type: Milvus metric (COSINE, IP, L2)
            radius: Milvus range-search bound. For COSINE and IP it is the
                lowest similarity accepted; for L2 it is the largest
                distance accepted
            output_fields: Fields returned with each hit
            timeout: Seconds before the search is abandoned
        """
        self.client = client
        self.collection = collection
        self.partition = partition
        self.vector_field = vector_field
        self.metric_type = metric_type
        self.radius = radius
        self.output_fields = output_fields or ["*"]
        self.timeout = timeout

    def _search_params(self) -> Dict[str, Any]:
        params: Dict[str, Any] = {"metric_type": self.metric_type, "params": {}}
        if self.radius is not None:
            params["params"]["radius"] = self.radius
        return params

    def _search(self, vector: List[float], expr: str, top_k: int) -> List[List[Dict[str, Any]]]:
        kwargs: Dict[str, Any] = dict(
            collection_name=self.collection,
            data=[vector],
            anns_field=self.vector_field,
            limit=top_k,
            output_fields=self.output_fields,
            search_params=self._search_params(),
            timeout=self.timeout,
        )
        if expr:
            kwargs["filter"] = expr
        if self.partition:
            kwargs["partition_names"] = [self.partition]
        return self.client.search(**kwargs)

    async def query(
        self, vector: List[float], filters: Dict[str, str], top_k: int = 1
    ) -> Optional[Candidate]:
        expr = build_filter_expression(filters)
        logger.debug(
            "search_started",
            collection=self.collection,
            partition=self.partition,
            filter=expr,
            top_k=top_k,
        )

        try:
            results = await asyncio.wait_for(
                asyncio.to_thread(self._search, vector, expr, top_k),
                timeout=self.timeout + 1,
            )
        except asyncio.TimeoutError as e:
            logger.warning("search_timeout", timeout_seconds=self.timeout)
            raise StageError(
                SEARCH_STAGE,
                f"The partner index did not answer within {self.timeout:g} seconds.",
                timed_out=True,
            ) from e
        except MilvusException as e:
            logger.error("search_failed", error=str(e))
            raise StageError(SEARCH_STAGE, "The partner index search failed.") from e
        except Exception as e:
            logger.error("search_transport_error", error_type=type(e).__name__, error=str(e))
            raise StageError(SEARCH_STAGE, "The partner index could not be reached.") from e

        hits = results[0] if results else []
        if not hits:
            logger.info("search_no_candidate", filter=expr)
            return None

        hit = hits[0]
        entity = dict(hit.get("entity") or {})
        entity.pop(self.vector_field, None)
        hit_id = hit.get("id", entity.get("id"))

        candidate = Candidate(
            id=str(hit_id) if hit_id not in (None, "") else None,
            score=hit.get("distance"),
            metadata=entity,
        )
        logger.info("search_completed", candidate_id=candidate.id, score=candidate.score)
        return candidate


def get_search_client() -> SimilaritySearchClient:
    """
    Factory for the Milvus search client.

    Raises:
        ConfigurationError: If MILVUS_URI or MILVUS_COLLECTION is missing
    """
    if not settings.milvus_uri:
        raise ConfigurationError("MILVUS_URI is required to search for matches.")
    if not settings.milvus_collection:
        raise ConfigurationError("MILVUS_COLLECTION is required to search for matches.")

    from pymilvus import MilvusClient

    kwargs: Dict[str, Any] = {"uri": settings.milvus_uri}
    if settings.milvus_token:
        kwargs["token"] = settings.milvus_token
    logger.info("milvus_connecting", uri=settings.milvus_uri)
    client = MilvusClient(**kwargs)

    return MilvusSearchClient(
        client=client,
        collection=settings.milvus_collection,
        partition=settings.milvus_partition,
        vector_field=settings.milvus_vector_field,
        metric_type=settings.milvus_metric_type,
        radius=matchmaker_config.matching.radius,
        output_fields=matchmaker_config.matching.output_fields,
        timeout=settings.search_timeout_seconds,
    )
