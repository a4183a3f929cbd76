from types import ModuleType
from typing import Optional

from core.config import LLM_PROVIDER
from models.model_info import ModelInfo

SUPPORTED_PROVIDERS = ("openai", "azure")


def _provider_module(provider_name: str) -> ModuleType:
    """Return the provider implementation module.

    Raises:
        ValueError: If provider_name is not recognized
    """
    provider_name = provider_name.lower()
    if provider_name == "openai":
        from . import openai as provider
    elif provider_name == "azure":
        from . import azureai as provider
    else:
        raise ValueError(
            f"Unsupported LLM provider: {provider_name}. "
            f"Supported providers: {', '.join(SUPPORTED_PROVIDERS)}"
        )
    return provider


def get_model_info(
    provider_name: str = LLM_PROVIDER, model_name: Optional[str] = None
) -> Optional[ModelInfo]:
    """Catalogue entry for ``model_name`` (or the provider's default model).

    Returns None for models the catalogue does not describe.
    """
    provider = _provider_module(provider_name)
    target = model_name or provider.default_model_name()
    return next((m for m in provider.get_available_models() if m.name == target), None)


def get_llm_for_provider(
    provider_name: str = LLM_PROVIDER,
    max_tokens: int = 4096,
    model_name: Optional[str] = None,
    temperature: float = 0.2,
    json_mode: bool = True,
):
    """Get LLM instance for a specific provider with validated max_tokens.

    Args:
        provider_name: Provider identifier (openai, azure)
        max_tokens: Maximum tokens to generate (will be validated against model's limit)
        model_name: Specific model to use (optional, provider-specific default if not provided)
        temperature: Sampling temperature
        json_mode: Request a JSON object response when the model supports it

    Returns:
        LLM instance for the specified provider

    Raises:
        ValueError: If provider_name is not recognized or has no credentials configured
    """
    provider = _provider_module(provider_name)
    if not provider.is_available():
        raise ValueError(f"LLM provider '{provider_name.lower()}' is not configured")

    target_model = get_model_info(provider_name, model_name) if model_name else None
    if target_model:
        max_tokens = _validate_max_tokens(max_tokens, target_model.max_tokens)
        json_mode = json_mode and target_model.supports_json_mode

    return provider.get_llm(
        max_tokens=max_tokens,
        model_name=model_name,
        temperature=temperature,
        json_mode=json_mode,
    )


def _validate_max_tokens(max_tokens: int, model_limit: int) -> int:
    """Clamp an invalid or oversized max_tokens to the model's limit."""
    if max_tokens <= 0 or max_tokens > model_limit:
        return model_limit
    return max_tokens
