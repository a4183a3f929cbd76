"""LLM model descriptors used to validate completion settings."""

from typing import Optional

from pydantic import BaseModel, Field


class ModelInfo(BaseModel):
    """What the gold search needs to know about a completion model.

    ``max_tokens`` caps the requested completion budget, and
    ``supports_json_mode`` decides whether the JSON response-format hint is
    sent. ``supports_vision`` marks models that accept a photo of the site.
    """

    name: str = Field(..., description="Model identifier, e.g. gpt-4.1")
    max_tokens: int = Field(..., ge=1, description="Largest completion the model can return")
    description: Optional[str] = Field(None, description="Short note shown to operators")
    supports_vision: bool = Field(False, description="Accepts image_url content parts")
    supports_json_mode: bool = Field(True, description="Honours response_format=json_object")
