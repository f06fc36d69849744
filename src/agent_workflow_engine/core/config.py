"""Configuration for the workflow engine.

Settings are loaded from environment variables and a local `.env` file.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from agent_workflow_engine.logging import configure_logging


class LLMConfig(BaseSettings):
    """Configuration for the LLM backing workflow agents."""

    provider: Literal["openai", "llama"] = Field(
        default="openai",
        description="LLM provider to use",
    )

    # OpenAI settings
    openai_api_key: str | None = Field(
        default=None,
        description="OpenAI API key",
    )
    openai_base_url: str | None = Field(
        default=None,
        description="Override for OpenAI-compatible endpoints",
    )
    openai_model: str = Field(
        default="gpt-4o-mini",
        description="OpenAI model to use",
    )
    openai_temperature: float = Field(
        default=0.2,
        ge=0.0,
        le=2.0,
        description="Temperature for OpenAI model",
    )

    # LLaMA settings
    llama_model_path: Path | None = Field(
        default=None,
        description="Path to LLaMA model file",
    )
    llama_n_ctx: int = Field(
        default=4096,
        gt=0,
        description="Context window size for LLaMA",
    )
    llama_n_threads: int | None = Field(
        default=None,
        description="Number of threads for LLaMA (None = auto)",
    )

    model_config = SettingsConfigDict(
        env_prefix="WORKFLOW_LLM_",
        env_file=".env",
        extra="ignore",
    )


class StoreConfig(BaseSettings):
    """Configuration for workflow persistence."""

    storage_path: Path = Field(
        default=Path(".workflows"),
        description="Directory holding workflow and workflow-agent records",
    )

    model_config = SettingsConfigDict(
        env_prefix="WORKFLOW_STORE_",
        env_file=".env",
        extra="ignore",
    )

    @property
    def workflows_file(self) -> Path:
        return self.storage_path / "workflows.json"

    @property
    def workflow_agents_file(self) -> Path:
        return self.storage_path / "workflow_agents.json"


class EngineConfig(BaseSettings):
    """Main configuration for the workflow engine."""

    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug logging for the engine",
    )

    execution_timeout_seconds: float = Field(
        default=0.0,
        ge=0.0,
        description="Deadline for a single workflow run (0 means no timeout)",
    )
    max_steps: int = Field(
        default=0,
        ge=0,
        description="Maximum handler invocations per run (0 means unlimited)",
    )
    max_tool_iterations: int = Field(
        default=8,
        gt=0,
        description="Maximum tool-call rounds an agent may take for one run() call",
    )

    llm: LLMConfig = Field(
        default_factory=LLMConfig,
        description="LLM configuration",
    )
    store: StoreConfig = Field(
        default_factory=StoreConfig,
        description="Store configuration",
    )

    model_config = SettingsConfigDict(
        env_prefix="WORKFLOW_",
        env_file=".env",
        extra="ignore",
    )

    def setup_logging(self) -> None:
        """Configure logging based on settings."""
        configure_logging(self.log_level, debug=self.debug)
