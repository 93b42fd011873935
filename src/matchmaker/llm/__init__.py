"""Text-generation clients and stage prompts."""

from .client import LLMClient, LLMResponse, get_llm_client

__all__ = ["LLMClient", "LLMResponse", "get_llm_client"]
