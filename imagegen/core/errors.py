"""Error codes and user-facing messages for image generation results."""

from typing import Optional

from imagegen.core.models import ErrorInfo

INVALID_SIZE = "INVALID_SIZE"
NO_API_KEY = "NO_API_KEY"
NO_TASK_ID = "NO_TASK_ID"
STILL_PROCESSING = "STILL_PROCESSING"
IMAGE_DOWNLOAD_ERROR = "IMAGE_DOWNLOAD_ERROR"
NO_IMAGE_URL = "NO_IMAGE_URL"
PROCESSING_ERROR = "PROCESSING_ERROR"
TIMEOUT_ERROR = "TIMEOUT_ERROR"
UNKNOWN_ERROR = "UNKNOWN_ERROR"
API_REQUEST_ERROR = "API_REQUEST_ERROR"
WANX_MODEL_ERROR = "WANX_MODEL_ERROR"
ALL_MODELS_FAILED = "ALL_MODELS_FAILED"
SERVER_MODEL_ERROR = "SERVER_MODEL_ERROR"

# Upstream fault caused by a compute-device mismatch on the provider side.
# It goes away when the job is resubmitted with another seed.
TRANSIENT_FAULT_CODE = "InternalError.Algo"
TRANSIENT_FAULT_MESSAGE = "Expected all tensors to be on the same device"

SERVER_MODEL_ERROR_MESSAGE = (
    "The image generation service is currently experiencing technical issues "
    "with its AI models. This is a server-side problem, not an issue with your "
    "prompt. Please try again later or try a different prompt."
)
ALL_MODELS_FAILED_MESSAGE = "Failed to generate image with all available models."


def http_error_code(status_code: int) -> str:
    """Error code for a non-2xx response to a submission."""
    return f"HTTP_ERROR_{status_code}"


def is_transient_device_fault(code: Optional[str], message: Optional[str]) -> bool:
    """Check whether an error matches the retryable device-mismatch fault."""
    return code == TRANSIENT_FAULT_CODE and TRANSIENT_FAULT_MESSAGE in (message or "")


def is_transient_error(error: Optional[ErrorInfo]) -> bool:
    return error is not None and is_transient_device_fault(error.code, error.message)


def still_processing_message(model: str) -> str:
    return (
        f"The model {model} is still processing the image. "
        "This may take longer than expected. Try again later."
    )


def user_message(error: ErrorInfo, model: Optional[str] = None) -> str:
    """Build the message shown to the user for a failed attempt.

    Args:
        error: The structured error of the attempt
        model: The model that was used

    Returns:
        A message that tells the user whether retrying may help
    """
    if is_transient_device_fault(error.code, error.message):
        return (
            "The image generation service encountered an internal server error. "
            "This is not an issue with your API key or settings. "
            "Using placeholder image."
        )
    if error.code == STILL_PROCESSING:
        return error.message or still_processing_message(model or "selected")
    return f"API error ({error.code}): {error.message}. Using placeholder image."
