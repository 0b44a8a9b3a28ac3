from __future__ import annotations

import logging
import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

from csv_rag.errors import ConfigurationError

load_dotenv()

# Hugging Face sentence-similarity pipeline (all-MiniLM-L6-v2). Returns one score per sentence.
DEFAULT_SIMILARITY_URL = (
    "https://router.huggingface.co/hf-inference/models/"
    "sentence-transformers/all-MiniLM-L6-v2/pipeline/sentence-similarity"
)

# Default Groq model (Llama 3.1 8B Instant).
DEFAULT_COMPLETION_MODEL = "llama-3.1-8b-instant"

# Fixed size of every embedding vector produced by the pipeline.
EMBEDDING_DIM = 384

LOG_FORMAT = "[%(levelname)s] %(name)s: %(message)s"


def first_env(*names: str) -> str | None:
    """Return the first non-empty environment variable among ``names``."""
    for name in names:
        value = (os.getenv(name) or "").strip()
        if value:
            return value
    return None


class RagSettings(BaseModel):
    """Runtime settings for the CSV RAG pipeline."""

    hf_api_key: str | None = Field(default=None, description="HF_API_KEY or HF_TOKEN.")
    groq_api_key: str | None = Field(default=None, description="GROQ_API_KEY.")
    similarity_url: str = DEFAULT_SIMILARITY_URL
    completion_model: str = DEFAULT_COMPLETION_MODEL
    chunk_max_length: int = Field(default=1000, ge=10)
    batch_size: int = Field(default=10, ge=1)
    batch_delay: float = Field(default=0.2, ge=0.0, description="Pause after each embedding batch, in seconds.")
    top_k: int = Field(default=5, ge=1, le=50)
    embedding_dim: int = Field(default=EMBEDDING_DIM, ge=EMBEDDING_DIM, le=EMBEDDING_DIM)
    embedding_seed: int | None = Field(default=0, description="Seed for vector jitter; None for unseeded.")
    remote_timeout: float = Field(default=30.0, gt=0.0)
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, **overrides) -> "RagSettings":
        """
        Build settings from the environment (.env is loaded at import time).

        Keyword overrides win over environment values. Invalid values raise
        ConfigurationError instead of pydantic's ValidationError.
        """
        values: dict = {
            "hf_api_key": first_env("HF_API_KEY", "HF_TOKEN"),
            "groq_api_key": first_env("GROQ_API_KEY"),
        }
        env_map = {
            "similarity_url": "HF_SIMILARITY_URL",
            "completion_model": "GROQ_MODEL",
            "chunk_max_length": "CHUNK_MAX_LENGTH",
            "batch_size": "EMBEDDING_BATCH_SIZE",
            "batch_delay": "EMBEDDING_BATCH_DELAY",
            "top_k": "RAG_TOP_K",
            "embedding_seed": "EMBEDDING_SEED",
            "remote_timeout": "REMOTE_TIMEOUT_SECONDS",
            "log_level": "LOG_LEVEL",
        }
        for field_name, env_name in env_map.items():
            raw = first_env(env_name)
            if raw is not None:
                values[field_name] = raw
        if (os.getenv("EMBEDDING_SEED") or "").strip().lower() == "none":
            values["embedding_seed"] = None
        values.update(overrides)
        try:
            return cls.model_validate(values)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid RAG settings: {exc}") from exc


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
