"""Application configuration."""

from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-driven settings validated at startup.

    Provider credentials default to empty so the process can start with a
    partial set; each mode checks its own tools' credentials per request.
    """

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore", populate_by_name=True
    )

    openrouter_api_key: str = Field(default="", alias="OPENROUTER_API_KEY")
    openrouter_model: str = Field(default="google/gemini-2.0-flash-001", alias="OPENROUTER_MODEL")
    openrouter_base_url: str = Field(
        default="https://openrouter.ai/api/v1",
        alias="OPENROUTER_BASE_URL",
    )

    tavily_api_key: str = Field(default="", alias="TAVILY_API_KEY")
    exa_api_key: str = Field(default="", alias="EXA_API_KEY")
    tmdb_api_key: str = Field(default="", alias="TMDB_API_KEY")
    yt_endpoint: str = Field(default="", alias="YT_ENDPOINT")
    firecrawl_api_key: str = Field(default="", alias="FIRECRAWL_API_KEY")
    openweather_api_key: str = Field(default="", alias="OPENWEATHER_API_KEY")
    google_maps_api_key: str = Field(default="", alias="GOOGLE_MAPS_API_KEY")
    mapbox_access_token: str = Field(default="", alias="MAPBOX_ACCESS_TOKEN")
    tripadvisor_api_key: str = Field(default="", alias="TRIPADVISOR_API_KEY")
    aviation_stack_api_key: str = Field(default="", alias="AVIATION_STACK_API_KEY")
    # "duckduckgo" needs no key and skips image results.
    search_backend: Literal["tavily", "duckduckgo"] = Field(default="tavily", alias="SEARCH_BACKEND")

    max_steps: int = Field(default=8, ge=1, alias="MAX_STEPS")
    turn_timeout_seconds: float = Field(default=120.0, gt=0, alias="TURN_TIMEOUT_SECONDS")
    request_timeout_seconds: float = Field(default=30.0, gt=0, alias="REQUEST_TIMEOUT_SECONDS")
    image_probe_timeout_seconds: float = Field(default=5.0, gt=0, alias="IMAGE_PROBE_TIMEOUT_SECONDS")
    fanout_max_concurrency: int = Field(default=16, ge=1, alias="FANOUT_MAX_CONCURRENCY")
    sandbox_timeout_seconds: float = Field(default=30.0, gt=0, alias="SANDBOX_TIMEOUT_SECONDS")
    sandbox_memory_mb: int = Field(default=512, ge=64, alias="SANDBOX_MEMORY_MB")
    # Interpreter for sandboxed code; defaults to the running one.
    sandbox_python: str = Field(default="", alias="SANDBOX_PYTHON")

    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8000, alias="PORT")


def load_settings() -> Settings:
    """Load and validate settings."""

    return Settings()
