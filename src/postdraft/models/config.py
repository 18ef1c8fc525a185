"""Configuration models for Postdraft."""

from pydantic import BaseModel, Field, HttpUrl
from typing import Optional


DEFAULT_RATE_LIMIT_MESSAGE = "You have reached your request limit for the day."


class GenerationConfig(BaseModel):
    """Configuration for the text generation endpoint."""

    endpoint: HttpUrl = Field(
        ...,
        description="Generation endpoint URL (POST {prompt}, streamed text response)"
    )

    api_key: Optional[str] = Field(
        default=None,
        description="Bearer token sent with generation requests"
    )

    rate_limit_message: str = Field(
        default=DEFAULT_RATE_LIMIT_MESSAGE,
        description="Error message the server uses to signal rate limiting"
    )

    max_retries: int = Field(
        default=1,
        ge=0,
        le=5,
        description="Retries on connection failures before the first chunk arrives"
    )

    model_config = {"frozen": True}


class PersistenceConfig(BaseModel):
    """Configuration for the post persistence backend."""

    endpoint: HttpUrl = Field(
        ...,
        description="Base URL of the posts API"
    )

    api_key: Optional[str] = Field(
        default=None,
        description="Bearer token sent with persistence requests"
    )

    debounce_seconds: float = Field(
        default=1.0,
        gt=0.0,
        le=60.0,
        description="Quiet period after the last edit before autosaving"
    )

    model_config = {"frozen": True}


class EditorConfig(BaseModel):
    """Editor behaviour settings."""

    trigger: str = Field(
        default="++",
        min_length=1,
        description="Character sequence that starts an AI completion"
    )

    description_length: int = Field(
        default=170,
        ge=0,
        description="Length of the auto-filled SEO description"
    )

    root_domain: Optional[str] = Field(
        default=None,
        description="Public root domain used to build post URLs (localhost:3000 if unset)"
    )

    model_config = {"frozen": True}


class Config(BaseModel):
    """Root configuration for Postdraft application."""

    generation: GenerationConfig = Field(..., description="Generation endpoint settings")
    persistence: PersistenceConfig = Field(..., description="Persistence backend settings")
    editor: EditorConfig = Field(default_factory=EditorConfig, description="Editor settings")

    model_config = {"frozen": True}
