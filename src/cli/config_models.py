"""Pydantic configuration models for Wing."""

import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from journal.models import TitleStyle, WritingStyle
from shared_types import AIProvider, JournalLanguage

VALID_LLM_PROVIDERS = {p.value for p in AIProvider}

PROVIDER_ENV_KEYS = {
    AIProvider.GEMINI: "GOOGLE_API_KEY",
    AIProvider.OPENAI: "OPENAI_API_KEY",
    AIProvider.DEEPSEEK: "DEEPSEEK_API_KEY",
}


def _expand_env(value: Optional[str]) -> Optional[str]:
    if value and value.startswith("${") and value.endswith("}"):
        return os.getenv(value[2:-1], "")
    return value


class LLMConfig(BaseModel):
    """LLM provider configuration."""

    provider: str = "gemini"
    model: Optional[str] = None  # None = use provider default
    api_key: Optional[str] = None
    base_url: Optional[str] = None  # required for "custom"
    max_tokens: int = 4096
    probe_timeout: float = 15.0

    @field_validator("provider")
    @classmethod
    def validate_provider(cls, v: str) -> str:
        v = v.lower()
        if v not in VALID_LLM_PROVIDERS:
            raise ValueError(f"Invalid LLM provider: {v}. Must be one of {VALID_LLM_PROVIDERS}")
        return v

    @model_validator(mode="after")
    def resolve_api_key(self):
        """Expand ${VAR} keys; fall back to the provider's env var."""
        self.api_key = _expand_env(self.api_key)
        if not self.api_key:
            env_var = PROVIDER_ENV_KEYS.get(AIProvider(self.provider))
            if env_var:
                self.api_key = os.getenv(env_var) or None
        return self


class JournalConfig(BaseModel):
    """Journal writing preferences."""

    language: JournalLanguage = JournalLanguage.AUTO
    writing_style: WritingStyle = WritingStyle.PROSE
    writing_style_prompt: Optional[str] = None
    title_style: TitleStyle = TitleStyle.ABSTRACT
    title_style_prompt: Optional[str] = None
    insight_prompt: Optional[str] = None


class MemoryConfig(BaseModel):
    """Long-term memory configuration."""

    enabled: bool = True
    retrieval_enabled: bool = True
    max_context_memories: int = 25
    high_confidence_threshold: float = 0.9
    episodic_cluster_threshold: float = 0.45
    procedural_cluster_threshold: float = 0.55

    @field_validator(
        "high_confidence_threshold", "episodic_cluster_threshold", "procedural_cluster_threshold"
    )
    @classmethod
    def validate_threshold(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"threshold must be 0-1, got {v}")
        return v


class PathsConfig(BaseModel):
    """File paths configuration."""

    memory_db: Path = Path("~/wing/memory.db")
    log_file: Path = Path("~/wing/wing.log")

    @model_validator(mode="after")
    def expand_paths(self):
        """Expand ~ in all paths."""
        self.memory_db = self.memory_db.expanduser()
        self.log_file = self.log_file.expanduser()
        return self


class RetryConfig(BaseModel):
    """Retry/backoff configuration."""

    max_attempts: int = 3
    min_wait: float = 2.0
    llm_max_wait: float = 30.0


VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "WARNING"
    file_level: str = "DEBUG"
    json_format: bool = False

    @field_validator("level", "file_level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        v_upper = v.upper()
        if v_upper not in VALID_LOG_LEVELS:
            raise ValueError(f"Invalid log level: {v}. Must be one of {VALID_LOG_LEVELS}")
        return v_upper


class WingConfig(BaseModel):
    """Main configuration model."""

    llm: LLMConfig = Field(default_factory=LLMConfig)
    journal: JournalConfig = Field(default_factory=JournalConfig)
    memory: MemoryConfig = Field(default_factory=MemoryConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, data: dict) -> "WingConfig":
        """Create config from a parsed YAML mapping."""
        if "paths" in data:
            for key in ["memory_db", "log_file"]:
                if key in data["paths"] and isinstance(data["paths"][key], str):
                    data["paths"][key] = Path(data["paths"][key])
        return cls.model_validate(data)

    def to_dict(self) -> dict:
        return self.model_dump(mode="python")
