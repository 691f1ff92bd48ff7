"""Per-model polling configuration, resolved through a provider registry."""

import logging
from typing import Callable, Dict, Optional

from imagegen.core.models import ModelConfig, ModelType, Provider

logger = logging.getLogger(__name__)

DEFAULT_RETRY_COUNT = 10
DEFAULT_REQUEST_TIMEOUT = 60.0

# wanx models render slower and need a longer polling budget
WANX_RETRY_COUNT = 15
WANX_REQUEST_TIMEOUT = 300.0

ModelConfigResolver = Callable[[str], ModelConfig]


def aliyun_model_config(
    model_id: str,
    retry_count: int = DEFAULT_RETRY_COUNT,
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
) -> ModelConfig:
    """Resolve the configuration of an Aliyun (DashScope) model.

    Args:
        model_id: Model identifier, matched case-insensitively by prefix
        retry_count: Configured poll budget for fast/default models
        request_timeout: Configured poll timeout in seconds

    Returns:
        The model's polling configuration
    """
    model_id_lower = (model_id or "").lower()

    if model_id_lower.startswith("wanx"):
        return ModelConfig(
            max_retries=WANX_RETRY_COUNT,
            request_timeout=WANX_REQUEST_TIMEOUT,
            type=ModelType.HIGH_QUALITY,
            provider=Provider.ALIYUN,
        )

    model_type = ModelType.FAST if model_id_lower.startswith("flux") else ModelType.DEFAULT
    return ModelConfig(
        max_retries=retry_count,
        request_timeout=request_timeout,
        type=model_type,
        provider=Provider.ALIYUN,
    )


class ModelConfigRegistry:
    """Maps providers to functions resolving a model's configuration.

    The mapping is handed in at construction and never mutated afterwards,
    so a registry can be shared freely between concurrent requests.

    Example:
        registry = ModelConfigRegistry({Provider.ALIYUN: aliyun_model_config})
        config = registry.get("wanx2.1-t2i-turbo", Provider.ALIYUN)
    """

    def __init__(
        self,
        resolvers: Optional[Dict[Provider, ModelConfigResolver]] = None,
        default_config: Optional[ModelConfig] = None
    ):
        self._resolvers = dict(resolvers or {})
        self._default_config = default_config or ModelConfig(
            max_retries=DEFAULT_RETRY_COUNT,
            request_timeout=DEFAULT_REQUEST_TIMEOUT,
        )

    @classmethod
    def for_aliyun(
        cls,
        retry_count: int = DEFAULT_RETRY_COUNT,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    ) -> "ModelConfigRegistry":
        """Build a registry with the Aliyun resolver bound to the given settings."""
        return cls({
            Provider.ALIYUN: lambda model_id: aliyun_model_config(
                model_id, retry_count, request_timeout
            )
        })

    def get(self, model_id: str, provider: Provider = Provider.DEFAULT) -> ModelConfig:
        """Get the configuration of a model.

        Falls back to the default configuration (tagged with the provider) when
        no resolver is registered for the provider.
        """
        resolver = self._resolvers.get(provider)
        if resolver is not None:
            return resolver(model_id)

        logger.debug(f"No config resolver for provider {provider.value}, using defaults")
        return self._default_config.model_copy(update={"provider": provider})


def detect_provider(model_id: Optional[str]) -> Provider:
    """Detect a model's provider from known naming patterns."""
    if not model_id:
        return Provider.DEFAULT

    model_id_lower = model_id.lower()

    if model_id_lower.startswith("wanx") or model_id_lower.startswith("flux"):
        return Provider.ALIYUN

    if (
        model_id_lower.startswith("gpt-")
        or "dall-e" in model_id_lower
        or "whisper" in model_id_lower
    ):
        return Provider.OPENAI

    if "claude" in model_id_lower:
        return Provider.ANTHROPIC

    if (
        "gemini" in model_id_lower
        or "palm" in model_id_lower
        or model_id_lower.startswith("text-bison")
    ):
        return Provider.GOOGLE

    return Provider.DEFAULT


_PROVIDER_NAMES = {
    Provider.ALIYUN: "Aliyun Bailian",
    Provider.OPENAI: "OpenAI",
    Provider.OPENROUTER: "OpenRouter",
    Provider.ANTHROPIC: "Anthropic",
    Provider.GOOGLE: "Google AI",
}


def format_provider_name(provider: Provider) -> str:
    """Human-readable provider name."""
    return _PROVIDER_NAMES.get(provider, "Default Provider")
