"""
Application settings management.

Settings are loaded from environment variables with .env file support.
Conversation tuning (soft cap, history window, default filters, matching
parameters) lives in config/matchmaker_config.yaml.
All configuration is validated using Pydantic.
"""

from pathlib import Path
from typing import Dict, List, Literal, Optional

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment.

    Environment variables take precedence over .env file values.
    """

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # ==========================================================================
    # Paths
    # ==========================================================================

    config_dir: Path = Field(
        default=Path("config"),
        description="Directory containing YAML configuration files",
    )
    log_dir: Optional[Path] = Field(
        default=None, description="Directory for log files (console only when unset)"
    )

    # ==========================================================================
    # Text generation
    # ==========================================================================
    #
    # Defaults are defined in src/matchmaker/llm/client.py. Set the variables
    # below only to override them (e.g., LLM_PROVIDER=anthropic)

    llm_provider: Optional[str] = Field(
        default=None, description="Override generation provider (default: openai)"
    )
    llm_model: Optional[str] = Field(
        default=None, description="Override generation model"
    )
    llm_timeout_seconds: float = Field(
        default=30.0, gt=0, description="Per-request timeout for generation calls"
    )
    llm_max_retries: int = Field(
        default=0,
        ge=0,
        le=5,
        description="Retries on timeout/rate limit, applied inside the client",
    )
    stage_timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        description="Upper bound for one pipeline stage call, retries included",
    )

    # API Keys (required for providers you use)
    openai_api_key: Optional[str] = Field(default=None, description="OpenAI API key")
    anthropic_api_key: Optional[str] = Field(
        default=None, description="Anthropic API key"
    )

    # ==========================================================================
    # Embeddings, search and transcription
    # ==========================================================================

    embedding_backend: Literal["openai", "sentence_transformers"] = Field(
        default="openai", description="Embedding implementation"
    )
    embedding_model: str = Field(
        default="text-embedding-3-large", description="Embedding model name"
    )
    embedding_timeout_seconds: float = Field(default=20.0, gt=0)

    transcription_model: str = Field(
        default="gpt-4o-mini-transcribe", description="Audio transcription model"
    )
    transcription_timeout_seconds: float = Field(default=60.0, gt=0)

    milvus_uri: Optional[str] = Field(default=None, description="Milvus server URI")
    milvus_token: Optional[str] = Field(default=None, description="Milvus token")
    milvus_collection: Optional[str] = Field(
        default=None, description="Collection holding partner profiles"
    )
    milvus_partition: Optional[str] = Field(
        default=None, description="Partition used as the search namespace"
    )
    milvus_vector_field: str = Field(default="embedding")
    milvus_metric_type: str = Field(default="COSINE")
    search_timeout_seconds: float = Field(default=10.0, gt=0)

    # ==========================================================================
    # Server Configuration
    # ==========================================================================

    host: str = Field(default="127.0.0.1", description="Server host address")
    port: int = Field(default=8000, ge=1, le=65535, description="Server port")
    debug: bool = Field(default=False, description="Enable debug mode")


# ============================================================================
# Matchmaker Configuration (from YAML)
# ============================================================================


class SessionConfig(BaseModel):
    """Conversation limits for one session."""

    soft_cap_turns: int = Field(
        default=20, ge=1, le=200, description="Turns before the UI is nudged to wrap up"
    )
    history_window: int = Field(
        default=20, ge=1, le=200, description="Turns rendered into stage prompts"
    )
    feedback_hint_limit: int = Field(
        default=3, ge=0, le=20, description="Recent feedback notes given to Narrate-Match"
    )


class MatchingConfig(BaseModel):
    """Similarity search parameters."""

    top_k: int = Field(default=1, ge=1, le=1, description="Candidates requested")
    radius: Optional[float] = Field(
        default=None,
        description=(
            "Milvus range-search radius: minimum similarity for COSINE/IP, "
            "maximum distance for L2"
        ),
    )
    output_fields: List[str] = Field(
        default_factory=lambda: ["*"],
        description="Metadata fields returned with each hit",
    )


class MatchmakerConfig(BaseModel):
    """
    Complete matchmaker configuration loaded from matchmaker_config.yaml.
    """

    session: SessionConfig = Field(default_factory=SessionConfig)
    matching: MatchingConfig = Field(default_factory=MatchingConfig)
    default_filters: Dict[str, str] = Field(
        default_factory=lambda: {
            "ageBracket": "30s",
            "location": "Berlin",
            "wantsKids": "Undecided",
        }
    )


def load_matchmaker_config(config_path: Optional[Path] = None) -> MatchmakerConfig:
    """
    Load matchmaker configuration from YAML file.

    Args:
        config_path: Path to matchmaker_config.yaml. If None, looks in the
            project config/ directory, then the working directory.

    Returns:
        MatchmakerConfig with validated settings (defaults when no file exists)

    Raises:
        pydantic.ValidationError: If the file contents fail validation
    """
    if config_path is None:
        project_root = Path(__file__).resolve().parents[3]
        candidates = [
            Path(settings.config_dir) / "matchmaker_config.yaml",
            project_root / "config" / "matchmaker_config.yaml",
            Path.cwd() / "config" / "matchmaker_config.yaml",
        ]
        config_path = next((p for p in candidates if p.exists()), None)
        if config_path is None:
            return MatchmakerConfig()

    config_path = Path(config_path).resolve()

    if not config_path.exists():
        return MatchmakerConfig()

    with open(str(config_path)) as f:
        config_data = yaml.safe_load(f)

    if not config_data:
        return MatchmakerConfig()

    return MatchmakerConfig(**config_data)


# Global settings instance
settings = Settings()

# Global matchmaker config instance
matchmaker_config = load_matchmaker_config()
