# Azure OpenAI deployments for the gold search
import json
import logging
from os import getenv
from typing import Dict, Optional, Tuple

from langchain_openai import AzureChatOpenAI

from models.model_info import ModelInfo

logger = logging.getLogger(__name__)

DEFAULT_API_VERSION = "2024-02-01"
DEFAULT_DEPLOYMENT_MAX_TOKENS = 4096


def is_available() -> bool:
    """Azure needs an endpoint, a key and at least one deployment."""
    if not (getenv("AZURE_OPENAI_ENDPOINT") and getenv("AZURE_OPENAI_API_KEY")):
        return False
    return bool(getenv("AZURE_OPENAI_DEPLOYMENT") or getenv("AZURE_MODELS_CONFIG"))


def _configured_deployments() -> Dict[str, Tuple[str, ModelInfo]]:
    """Map model name -> (deployment, ModelInfo) from AZURE_MODELS_CONFIG.

    AZURE_MODELS_CONFIG is a JSON array such as::

        [{"deployment": "gold-4o", "model_name": "gpt-4o", "max_tokens": 8000}]

    Entries may also carry ``description``, ``supports_json_mode`` and
    ``supports_vision``. Invalid JSON or invalid entries are logged and skipped.
    """
    raw = getenv("AZURE_MODELS_CONFIG", "")
    if not raw:
        return {}
    try:
        entries = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning(f"Ignoring AZURE_MODELS_CONFIG, not valid JSON: {e}")
        return {}
    if not isinstance(entries, list):
        logger.warning("Ignoring AZURE_MODELS_CONFIG, expected a JSON array")
        return {}

    deployments: Dict[str, Tuple[str, ModelInfo]] = {}
    for entry in entries:
        if not isinstance(entry, dict) or not entry.get("deployment"):
            logger.warning(f"Skipping Azure model entry without deployment: {entry}")
            continue
        deployment = entry["deployment"]
        name = entry.get("model_name", deployment)
        try:
            info = ModelInfo(
                name=name,
                max_tokens=entry.get("max_tokens", DEFAULT_DEPLOYMENT_MAX_TOKENS),
                description=entry.get("description", f"Azure deployment {deployment}"),
                supports_vision=entry.get("supports_vision", False),
                supports_json_mode=entry.get("supports_json_mode", True),
            )
        except ValueError as e:
            logger.warning(f"Skipping Azure model entry {name}: {e}")
            continue
        deployments[name] = (deployment, info)
    return deployments


def get_available_models() -> list[ModelInfo]:
    deployments = _configured_deployments()
    if deployments:
        return [info for _, info in deployments.values()]

    deployment = getenv("AZURE_OPENAI_DEPLOYMENT")
    if not deployment:
        return []
    return [
        ModelInfo(
            name=deployment,
            max_tokens=DEFAULT_DEPLOYMENT_MAX_TOKENS,
            description=f"Azure deployment {deployment}",
        )
    ]


def default_model_name() -> Optional[str]:
    """Model served by AZURE_OPENAI_DEPLOYMENT, or the first configured one."""
    deployments = _configured_deployments()
    default_deployment = getenv("AZURE_OPENAI_DEPLOYMENT")
    for name, (deployment, _) in deployments.items():
        if deployment == default_deployment:
            return name
    return next(iter(deployments), default_deployment)


def get_llm(
    max_tokens: int = DEFAULT_DEPLOYMENT_MAX_TOKENS,
    model_name: Optional[str] = None,
    temperature: float = 0.2,
    json_mode: bool = True,
):
    """AzureChatOpenAI bound to the deployment serving ``model_name``.

    Unknown or missing model names fall back to AZURE_OPENAI_DEPLOYMENT.
    """
    default_deployment = getenv("AZURE_OPENAI_DEPLOYMENT")
    deployment, _ = _configured_deployments().get(model_name or "", (None, None))
    if deployment is None:
        if model_name:
            logger.warning(
                f"No Azure deployment configured for '{model_name}', "
                f"using {default_deployment}"
            )
        deployment = default_deployment

    return AzureChatOpenAI(
        azure_deployment=deployment,
        api_version=getenv("AZURE_OPENAI_API_VERSION", DEFAULT_API_VERSION),
        temperature=temperature,
        max_tokens=max_tokens,
        timeout=None,
        max_retries=0,
        model_kwargs={"response_format": {"type": "json_object"}} if json_mode else {},
    )
