"""Abstract base class for image generation backends."""

from abc import ABC, abstractmethod
from typing import Optional
from .models import GenerationRequest, GenerationResult


class BaseBackend(ABC):
    """Abstract interface that all image generation backends must implement.

    A backend runs one Submit -> Poll -> Materialize attempt against a hosted
    provider. Remote failures are returned as failed results, never raised,
    so the orchestrator can always fall back to another model.

    Attributes:
        api_key: API key for the hosted provider
    """

    def __init__(self, api_key: Optional[str] = None):
        """Initialize the backend.

        Args:
            api_key: Optional API key for authentication with the provider
        """
        self.api_key = api_key

    @abstractmethod
    def generate_image(self, request: GenerationRequest, model: str) -> GenerationResult:
        """Generate an image from a text prompt with one model.

        Args:
            request: The generation request containing prompt and parameters
            model: The model to run; overrides ``request.model``

        Returns:
            GenerationResult, successful or carrying a structured error
        """
        pass

    @abstractmethod
    def health_check(self) -> bool:
        """Check if the backend is available and working.

        Returns:
            True if the backend is healthy and can generate images, False otherwise
        """
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """Get the human-readable name of this backend."""
        pass

    @property
    @abstractmethod
    def supported_models(self) -> list[str]:
        """Get a list of models supported by this backend."""
        pass

    def __repr__(self) -> str:
        """String representation of the backend."""
        return f"{self.__class__.__name__}(name='{self.name}')"
