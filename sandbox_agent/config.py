"""Application settings using pydantic-settings."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from sandbox_agent.agent.prompts import SYSTEM_PROMPT


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # ==========================================================================
    # Application
    # ==========================================================================
    app_name: str = "Sandbox Agent"
    app_version: str = "0.1.0"
    debug: bool = False
    environment: Literal["development", "staging", "production"] = "development"

    # ==========================================================================
    # AI Gateway (OpenAI-compatible)
    # ==========================================================================
    ai_gateway_api_key: str = Field(default="")
    ai_gateway_base_url: str = "https://ai-gateway.vercel.sh/v1"
    llm_max_tokens: int = 4096
    llm_timeout_seconds: float = 120.0

    # ==========================================================================
    # Agent
    # ==========================================================================
    agent_model: str = "anthropic/claude-opus-4.6"
    agent_fallback_model: str = Field(default="", description="Tried once if the primary model fails")
    agent_instructions: str = SYSTEM_PROMPT
    agent_max_steps: int = Field(default=20, ge=1)

    # ==========================================================================
    # Sandbox
    # ==========================================================================
    e2b_api_key: str = Field(default="")
    sandbox_template: str | None = None
    sandbox_timeout_seconds: int = 300
    sandbox_command_timeout_seconds: int = 60
    sandbox_workdir: str = "/home/user/workspace"
    files_dir: str = "files"

    # ==========================================================================
    # API
    # ==========================================================================
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    cors_origins: list[str] = Field(default=["http://localhost:3000"])


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
