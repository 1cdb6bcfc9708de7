from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings
from typing import Optional


class BackendConfig(BaseModel):
    """Hosted backend (REST tables, RPC and edge functions) configuration."""
    url: str = Field(description="Project base URL, e.g. https://<ref>.supabase.co")
    api_key: str = Field(description="Anon or service key sent as apikey and bearer token")
    timeout: float = Field(
        default=60.0,
        gt=0,
        description="Per-request HTTP timeout in seconds"
    )


class ControllerConfig(BaseModel):
    """Journey controller pacing and limits."""
    auto_advance_delay: float = Field(
        default=1.5,
        ge=0.0,
        description="Pause before a no-choice stage runs on its own"
    )
    reload_delay: float = Field(
        default=0.5,
        ge=0.0,
        description="Pause between a stage completing and the state reload"
    )
    stage_timeout: float = Field(
        default=180.0,
        gt=0,
        description="Upper bound on a single remote stage execution, in seconds"
    )


class AppConfig(BaseSettings):
    """Root application configuration.

    Loads from environment variables with the JOURNEY_ prefix.
    Example: JOURNEY_BACKEND__URL for backend.url
    """
    backend: BackendConfig
    controller: ControllerConfig = Field(default_factory=ControllerConfig)

    career_goal: Optional[str] = Field(
        default=None,
        description="Target role used for skill validation when no match is picked"
    )
    debug: bool = Field(
        default=False,
        description="Enable verbose logging"
    )

    class Config:
        env_prefix = "JOURNEY_"
        env_nested_delimiter = "__"
