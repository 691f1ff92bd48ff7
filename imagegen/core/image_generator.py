"""Image generation orchestrator with multi-model fallback."""

import logging
from typing import Optional, List
from tenacity import Retrying, RetryCallState, retry_if_result, stop_after_attempt

from imagegen.core import errors
from imagegen.core.base_backend import BaseBackend
from imagegen.core.model_config import detect_provider
from imagegen.core.models import (
    ErrorInfo,
    GenerationRequest,
    GenerationResult,
    ModelError,
    ModelInfo,
    format_allowed_sizes,
    random_seed,
)
from imagegen.utils.image_utils import placeholder_data_url

logger = logging.getLogger(__name__)

MAX_TRANSIENT_RETRIES = 3

# Model name users (and the chat model) use for "the first wanx model"
WANX_ALIAS = "Wanx"


def _is_retryable_result(result: GenerationResult) -> bool:
    return not result.success and result.retryable


def _last_result(retry_state: RetryCallState) -> GenerationResult:
    return retry_state.outcome.result()


class ImageGenerator:
    """Orchestrator for image generation with model fallback.

    Tries each candidate model in order until one succeeds. A model that
    fails with the transient device fault is retried with a fresh seed
    before moving on to the next candidate.

    Attributes:
        backend: The backend running single-model attempts
        default_model: Model tried first when the request names none
        alternate_models: Models tried after the default, in order
        max_transient_retries: Extra attempts per model for the transient fault
    """

    def __init__(
        self,
        backend: BaseBackend,
        default_model: str,
        alternate_models: Optional[List[str]] = None,
        max_transient_retries: int = MAX_TRANSIENT_RETRIES
    ):
        """Initialize the image generator.

        Args:
            backend: The backend to generate with
            default_model: The preferred model
            alternate_models: Fallback models, in priority order
            max_transient_retries: Resubmissions allowed per model for the
                transient device fault
        """
        self.backend = backend
        self.default_model = default_model
        self.alternate_models = [m for m in (alternate_models or []) if m]
        self.max_transient_retries = max_transient_retries

        logger.info(
            f"Initialized ImageGenerator with backend: {backend.name}, "
            f"default model: {default_model}, alternates: {self.alternate_models}"
        )

    def candidate_models(self, model: Optional[str] = None) -> List[str]:
        """Ordered list of models to try for a request.

        Args:
            model: Model explicitly selected by the user, if any

        Returns:
            The selected model alone, or the default followed by the alternates
        """
        if model:
            if model == WANX_ALIAS and self.alternate_models:
                logger.info(f"Resolved model alias '{model}' to '{self.alternate_models[0]}'")
                return [self.alternate_models[0]]
            return [model]

        candidates: List[str] = []
        for candidate in [self.default_model, *self.alternate_models]:
            if candidate and candidate not in candidates:
                candidates.append(candidate)
        return candidates

    def _generate_with_retry(self, model: str, request: GenerationRequest) -> GenerationResult:
        """Generate with one model, resubmitting while attempts are retryable.

        The first attempt keeps the request's seed; every resubmission uses a
        new random seed different from the one the previous attempt sent.

        Args:
            model: The model to use
            request: The generation request

        Returns:
            The last attempt's result
        """
        current = request

        def attempt() -> GenerationResult:
            return self.backend.generate_image(current, model)

        def reseed(retry_state: RetryCallState) -> None:
            nonlocal current
            previous = retry_state.outcome.result()
            used_seed = previous.seed if previous.seed is not None else current.seed
            current = request.model_copy(update={"seed": random_seed(exclude=used_seed)})
            logger.warning(
                f"Transient device fault on {model}, retry #{retry_state.attempt_number} "
                f"with seed {current.seed} (was {used_seed})"
            )

        retryer = Retrying(
            stop=stop_after_attempt(self.max_transient_retries + 1),
            retry=retry_if_result(_is_retryable_result),
            before_sleep=reseed,
            retry_error_callback=_last_result,
        )
        return retryer(attempt)

    def generate_image(self, request: GenerationRequest) -> GenerationResult:
        """Generate an image, falling back across candidate models.

        Never raises for generation failures: every outcome is a result.

        Args:
            request: The generation request

        Returns:
            The first successful result, an INVALID_SIZE rejection, or a
            composite failure listing one error per attempted model
        """
        if not request.has_allowed_size():
            size = f"{request.width}x{request.height}"
            logger.error(f"Invalid size: {size}")
            return GenerationResult(
                image_data=None,
                success=False,
                message=(
                    f"Invalid image size: {size}. "
                    f"Please use one of the following sizes: {format_allowed_sizes()}"
                ),
                model=request.model,
                error_info=ErrorInfo(code=errors.INVALID_SIZE, message=f"Invalid image size: {size}"),
            )

        candidates = self.candidate_models(request.model)
        logger.info(f"Models to try in order: {candidates}")

        all_errors: List[ModelError] = []
        for i, model in enumerate(candidates, 1):
            logger.info(f"Attempting generation {i}/{len(candidates)} with model: {model}")

            try:
                result = self._generate_with_retry(model, request)
            except Exception as e:
                logger.exception(f"Critical error with model {model}")
                all_errors.append(ModelError(
                    model=model,
                    error=ErrorInfo(code=type(e).__name__, message=str(e) or "Unknown error"),
                ))
                continue

            if result.success:
                logger.info(f"Successfully generated image with model: {model}")
                return result

            error = result.error_info or ErrorInfo(code=errors.UNKNOWN_ERROR)
            logger.warning(f"Model {model} failed: {error.code} - {error.message}")
            all_errors.append(ModelError(model=model, error=error))

        return self._composite_failure(all_errors, candidates)

    def _composite_failure(
        self,
        all_errors: List[ModelError],
        candidates: List[str]
    ) -> GenerationResult:
        logger.error(f"All models failed to generate image: {[e.model for e in all_errors]}")

        if any(errors.is_transient_error(e.error) for e in all_errors):
            code = errors.SERVER_MODEL_ERROR
            message = errors.SERVER_MODEL_ERROR_MESSAGE
        else:
            code = errors.ALL_MODELS_FAILED
            message = errors.ALL_MODELS_FAILED_MESSAGE
            if any(e.error.code == errors.STILL_PROCESSING for e in all_errors):
                message += " Some models were still processing; retrying later may succeed."

        return GenerationResult(
            image_data=placeholder_data_url(),
            success=False,
            message=message,
            model=candidates[-1] if candidates else None,
            error_info=ErrorInfo(code=code, message=message, all_errors=all_errors),
            is_placeholder=True,
        )

    def list_models(self) -> List[ModelInfo]:
        """Models offered to the user, default first."""
        models = []
        for model_id in self.candidate_models():
            model_id_lower = model_id.lower()
            if model_id_lower.startswith("flux"):
                name, model_type = f"{model_id} (Fast)", "flux"
            elif model_id_lower.startswith("wanx"):
                name, model_type = f"{model_id} (Higher Quality)", "wanx"
            else:
                name, model_type = model_id, "default"
            models.append(ModelInfo(
                id=model_id,
                name=name,
                type=model_type,
                provider=detect_provider(model_id),
            ))
        return models

    def health_check_all(self) -> dict[str, bool]:
        """Check health of the configured backend.

        Returns:
            Dictionary mapping backend names to health status
        """
        results = {self.backend.name: self.backend.health_check()}
        logger.info(f"Health check results: {results}")
        return results
