"""Factory for creating backend instances by provider."""

import logging
from typing import Optional, Type, Union

from imagegen.backends.dashscope import DashScopeBackend
from imagegen.core.base_backend import BaseBackend
from imagegen.core.models import Provider

logger = logging.getLogger(__name__)


class BackendFactory:
    """Factory class for creating backend instances.

    Maps provider tags to backend classes. Only providers with a hosted
    image-synthesis API have a backend.
    """

    _backends: dict[Provider, Type[BaseBackend]] = {
        Provider.ALIYUN: DashScopeBackend,
    }

    @classmethod
    def create_backend(
        cls,
        provider: Union[Provider, str],
        api_key: Optional[str] = None,
        **kwargs
    ) -> BaseBackend:
        """Create a backend instance.

        Args:
            provider: Provider tag (e.g. ``Provider.ALIYUN`` or ``"aliyun"``)
            api_key: API key for the provider
            **kwargs: Backend-specific options (base_url, config_registry, ...)

        Returns:
            An instance of the provider's backend

        Raises:
            ValueError: If the provider has no backend
        """
        name = provider.value if isinstance(provider, Provider) else str(provider).lower()
        if not cls.is_supported(name):
            supported = ", ".join(cls.get_supported_backends())
            raise ValueError(
                f"Unsupported backend provider: '{name}'. "
                f"Supported providers: {supported}"
            )

        backend_class = cls._backends[Provider(name)]
        logger.info(f"Creating {name} backend")
        return backend_class(api_key=api_key, **kwargs)

    @classmethod
    def get_supported_backends(cls) -> list[str]:
        """Get list of supported provider names."""
        return [p.value for p in cls._backends]

    @classmethod
    def is_supported(cls, provider: str) -> bool:
        """Check if a provider has a backend."""
        return provider.lower() in cls.get_supported_backends()
