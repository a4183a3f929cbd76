from os import getenv
from typing import Optional

from langchain_openai import ChatOpenAI

from core.config import OPENAI_MODEL
from models.model_info import ModelInfo

# Placeholder key used when none is configured, so the app still starts
UNSET_API_KEY = "sk-test-key-not-set"

# Models offered for the site search. Output limits are the provider's.
OPENAI_MODELS = (
    ModelInfo(
        name="gpt-4.1",
        max_tokens=32768,
        description="Default: best recall of French river and mining history",
        supports_vision=True,
    ),
    ModelInfo(
        name="gpt-4.1-mini",
        max_tokens=32768,
        description="Cheaper GPT-4.1 variant for suggestion-heavy sessions",
        supports_vision=True,
    ),
    ModelInfo(
        name="gpt-4o",
        max_tokens=16384,
        description="Multimodal, accepts a photo of the riverbed",
        supports_vision=True,
    ),
    ModelInfo(
        name="gpt-4o-mini",
        max_tokens=16384,
        description="Low-cost multimodal model",
        supports_vision=True,
    ),
    ModelInfo(
        name="gpt-4",
        max_tokens=8192,
        description="Legacy model; no JSON response format",
        supports_json_mode=False,
    ),
)


def is_available() -> bool:
    return getenv("OPENAI_API_KEY", "") not in ("", UNSET_API_KEY)


def default_model_name() -> str:
    return OPENAI_MODEL


def get_available_models() -> list[ModelInfo]:
    return list(OPENAI_MODELS)


def get_llm(
    max_tokens: int = 4096,
    model_name: Optional[str] = None,
    temperature: float = 0.2,
    json_mode: bool = True,
):
    """ChatOpenAI for the site search.

    Args:
        max_tokens: completion budget, already validated by llm_config
        model_name: overrides OPENAI_MODEL
        temperature: low values keep answers close to known facts
        json_mode: send ``response_format={"type": "json_object"}``
    """
    return ChatOpenAI(
        model=model_name or OPENAI_MODEL,
        temperature=temperature,
        max_tokens=max_tokens,
        timeout=None,
        max_retries=0,  # the pipeline never retries on its own
        api_key=getenv("OPENAI_API_KEY") or UNSET_API_KEY,
        model_kwargs={"response_format": {"type": "json_object"}} if json_mode else {},
    )
