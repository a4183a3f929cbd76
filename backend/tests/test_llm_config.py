"""Tests for LLM provider dispatch and max_tokens validation."""

import json
import os
from unittest.mock import patch

import pytest

from services.ai import azureai, openai
from services.ai.llm_config import _validate_max_tokens, get_llm_for_provider, get_model_info

CONFIGURED_ENV = {
    "OPENAI_API_KEY": "sk-test",
    "AZURE_OPENAI_ENDPOINT": "https://example.openai.azure.com",
    "AZURE_OPENAI_API_KEY": "key",
    "AZURE_OPENAI_DEPLOYMENT": "gold-4o",
    "AZURE_MODELS_CONFIG": "",
}


class TestMaxTokensValidation:
    """Test max_tokens validation logic."""

    def test_within_limit(self):
        assert _validate_max_tokens(5000, 32768) == 5000

    def test_exceeds_limit(self):
        """Test clamping when max_tokens exceeds model's limit"""
        assert _validate_max_tokens(200000, 16384) == 16384

    def test_zero_or_negative_uses_model_limit(self):
        assert _validate_max_tokens(0, 8192) == 8192
        assert _validate_max_tokens(-100, 8192) == 8192


@patch.dict(os.environ, CONFIGURED_ENV)
class TestGetLLMForProvider:
    """Test that get_llm_for_provider applies validation."""

    @patch("services.ai.openai.get_llm")
    def test_openai_clamps_max_tokens(self, mock_get_llm):
        get_llm_for_provider("openai", max_tokens=999999, model_name="gpt-4o")
        assert mock_get_llm.call_args.kwargs["max_tokens"] == 16384

    def test_json_mode_and_temperature(self):
        llm = get_llm_for_provider("openai", model_name="gpt-4.1", temperature=0.3)
        assert llm.temperature == 0.3
        assert llm.max_retries == 0
        assert llm.model_kwargs == {"response_format": {"type": "json_object"}}

    @patch("services.ai.openai.get_llm")
    def test_json_mode_disabled_for_legacy_model(self, mock_get_llm):
        get_llm_for_provider("openai", model_name="gpt-4")
        assert mock_get_llm.call_args.kwargs["json_mode"] is False

    @patch("services.ai.openai.get_llm")
    def test_unknown_model_passes_through(self, mock_get_llm):
        get_llm_for_provider("openai", max_tokens=1234, model_name="gpt-custom")
        assert mock_get_llm.call_args.kwargs["max_tokens"] == 1234
        assert mock_get_llm.call_args.kwargs["json_mode"] is True

    @patch("services.ai.azureai.get_llm")
    def test_azure_dispatch(self, mock_get_llm):
        get_llm_for_provider("AZURE", max_tokens=2048)
        mock_get_llm.assert_called_once()

    def test_unsupported_provider(self):
        with pytest.raises(ValueError, match="Unsupported LLM provider"):
            get_llm_for_provider("mistral")

    @patch("services.ai.openai.get_llm")
    def test_unconfigured_provider_is_refused(self, mock_get_llm):
        with patch.dict(os.environ, {"OPENAI_API_KEY": ""}):
            with pytest.raises(ValueError, match="not configured"):
                get_llm_for_provider("openai")
        mock_get_llm.assert_not_called()


class TestModelInfo:
    """Catalogue lookups used to gate image input."""

    def test_named_openai_model(self):
        info = get_model_info("openai", "gpt-4")
        assert info.max_tokens == 8192
        assert info.supports_vision is False

    @patch("services.ai.openai.OPENAI_MODEL", "gpt-4o")
    def test_default_openai_model(self):
        assert get_model_info("openai").name == "gpt-4o"

    def test_unknown_model(self):
        assert get_model_info("openai", "gpt-custom") is None

    @patch.dict(
        os.environ,
        {
            "AZURE_OPENAI_DEPLOYMENT": "gold-mini",
            "AZURE_MODELS_CONFIG": json.dumps(
                [
                    {"deployment": "gold-4o", "model_name": "gpt-4o", "supports_vision": True},
                    {"deployment": "gold-mini", "model_name": "gpt-4o-mini"},
                ]
            ),
        },
    )
    def test_azure_default_follows_deployment(self):
        info = get_model_info("azure")
        assert info.name == "gpt-4o-mini"
        assert info.supports_vision is False


class TestProviderAvailability:
    @patch.dict(os.environ, {"OPENAI_API_KEY": ""})
    def test_openai_unavailable_without_key(self):
        assert openai.is_available() is False

    @patch.dict(os.environ, {"OPENAI_API_KEY": "sk-real"})
    def test_openai_available(self):
        assert openai.is_available() is True

    @patch.dict(
        os.environ,
        {
            "AZURE_OPENAI_ENDPOINT": "https://example.openai.azure.com",
            "AZURE_OPENAI_API_KEY": "key",
            "AZURE_OPENAI_DEPLOYMENT": "",
            "AZURE_MODELS_CONFIG": json.dumps(
                [{"deployment": "gold-4o", "model_name": "gpt-4o", "max_tokens": 8000}]
            ),
        },
    )
    def test_azure_models_config(self):
        assert azureai.is_available() is True
        models = azureai.get_available_models()
        assert [m.name for m in models] == ["gpt-4o"]
        assert models[0].max_tokens == 8000

    @patch.dict(os.environ, {"AZURE_MODELS_CONFIG": "not json", "AZURE_OPENAI_DEPLOYMENT": ""})
    def test_azure_invalid_config(self):
        assert azureai.get_available_models() == []
