"""Core data models for asynchronous text-to-image generation."""

import random
from dataclasses import dataclass
from enum import Enum
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, ConfigDict, Field


class Provider(str, Enum):
    """Hosted AI providers a model can belong to."""
    ALIYUN = "aliyun"
    OPENAI = "openai"
    OPENROUTER = "openrouter"
    ANTHROPIC = "anthropic"
    GOOGLE = "google"
    DEFAULT = "default"


class ModelType(str, Enum):
    """Qualitative model class, used to pick polling policy."""
    DEFAULT = "default"
    FAST = "fast"
    HIGH_QUALITY = "high_quality"
    BALANCED = "balanced"


class TaskStatus(str, Enum):
    """Status of a remote synthesis job, owned by the remote service."""
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, value: Optional[str]) -> "TaskStatus":
        """Map a raw ``task_status`` string to a status.

        Missing values are treated as FAILED, unrecognised ones as UNKNOWN.
        """
        if not value:
            return cls.FAILED
        try:
            return cls(value.upper())
        except ValueError:
            return cls.UNKNOWN

    @property
    def is_active(self) -> bool:
        return self in (TaskStatus.PENDING, TaskStatus.RUNNING)


class AttemptState(str, Enum):
    """Lifecycle of a single Submit -> Poll -> Materialize attempt."""
    SUBMITTING = "SUBMITTING"
    POLLING = "POLLING"
    DOWNLOADING = "DOWNLOADING"
    DONE_SUCCESS = "DONE_SUCCESS"
    DONE_FAILURE = "DONE_FAILURE"
    DONE_TIMEOUT = "DONE_TIMEOUT"

    @property
    def is_terminal(self) -> bool:
        return self in (
            AttemptState.DONE_SUCCESS,
            AttemptState.DONE_FAILURE,
            AttemptState.DONE_TIMEOUT,
        )


DEFAULT_WIDTH = 1024
DEFAULT_HEIGHT = 1024

# (width, height) pairs accepted by the synthesis endpoint
ALLOWED_SIZES = (
    (1024, 1024),
    (768, 1024),
    (1024, 768),
    (768, 512),
    (512, 768),
    (1024, 576),
    (576, 1024),
    (1280, 720),
    (720, 1280),
    (960, 960),
    (1088, 832),
    (832, 1088),
)


def is_allowed_size(width: int, height: int) -> bool:
    """Check whether a (width, height) pair is in the allow-list."""
    return (width, height) in ALLOWED_SIZES


def format_allowed_sizes() -> str:
    """Render the allow-list as ``"1024x1024, 768x1024, ..."``."""
    return ", ".join(f"{w}x{h}" for w, h in ALLOWED_SIZES)


# Seeds are drawn from [0, MAX_SEED)
MAX_SEED = 10000


def random_seed(exclude: Optional[int] = None) -> int:
    """Draw a random seed, never equal to ``exclude``."""
    seed = random.randrange(MAX_SEED)
    while seed == exclude:
        seed = random.randrange(MAX_SEED)
    return seed


class GenerationRequest(BaseModel):
    """Request model for image generation.

    The size allow-list is deliberately not enforced here: an invalid size is
    reported back to the caller as an ``INVALID_SIZE`` result, not a
    validation exception.

    Attributes:
        prompt: The text prompt describing the desired image
        negative_prompt: Optional text describing what to avoid in the image
        width: Output image width in pixels
        height: Output image height in pixels
        model: Optional model identifier; None means "use the fallback list"
        seed: Random seed (None = randomized at submission)
        steps: Number of denoising steps
    """

    model_config = ConfigDict(
        protected_namespaces=(),
        json_schema_extra={
            "example": {
                "prompt": "a cat sitting on a windowsill",
                "negative_prompt": "blurry, low quality",
                "width": 1024,
                "height": 1024,
                "model": "flux-schnell",
                "seed": 42,
                "steps": 20,
            }
        },
    )

    prompt: str = Field(
        ...,
        min_length=1,
        max_length=2000,
        description="Text prompt describing the desired image"
    )
    negative_prompt: Optional[str] = Field(
        default=None,
        max_length=2000,
        description="Text describing what to avoid in the image"
    )
    width: int = Field(
        default=DEFAULT_WIDTH,
        description="Output image width in pixels"
    )
    height: int = Field(
        default=DEFAULT_HEIGHT,
        description="Output image height in pixels"
    )
    model: Optional[str] = Field(
        default=None,
        description="Model identifier (e.g. flux-schnell or wanx2.1-t2i-turbo)"
    )
    seed: Optional[int] = Field(
        default=None,
        ge=0,
        le=2**31 - 1,
        description="Random seed for reproducibility"
    )
    steps: int = Field(
        default=20,
        ge=1,
        le=100,
        description="Number of denoising steps"
    )

    def size_string(self) -> str:
        """Size in the ``"W*H"`` format the synthesis API expects."""
        return f"{self.width}*{self.height}"

    def has_allowed_size(self) -> bool:
        return is_allowed_size(self.width, self.height)


class ModelError(BaseModel):
    """Error recorded for one model during fallback."""

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    model: str
    error: "ErrorInfo"

    def to_dict(self) -> Dict[str, Any]:
        return {"model": self.model, "error": self.error.to_dict()}


class ErrorInfo(BaseModel):
    """Structured error carried by a failed result.

    Attributes:
        code: Machine-readable error code (e.g. ``NO_TASK_ID``)
        message: Human-readable description
        all_errors: Per-model errors, only set for composite failures
    """

    model_config = ConfigDict(frozen=True)

    code: str
    message: str = "Unknown error"
    all_errors: Optional[List[ModelError]] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.all_errors is not None:
            data["allErrors"] = [e.to_dict() for e in self.all_errors]
        return data


ModelError.model_rebuild()


class GenerationResult(BaseModel):
    """Outcome of a generation, created once and never mutated.

    Attributes:
        image_data: Image as a base64 data URL (placeholder on most failures)
        success: Whether a real image was produced
        message: Human-readable status message
        model: The model actually used (or last tried)
        error_info: Structured error for failed results
        is_placeholder: Whether image_data is the fallback placeholder
        retryable: The attempt hit the transient device fault with poll
            budget left; resubmitting with a new seed may succeed
        seed: The seed sent with the attempt, if one was submitted
    """

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    image_data: Optional[str] = None
    success: bool = False
    message: str = ""
    model: Optional[str] = None
    error_info: Optional[ErrorInfo] = None
    is_placeholder: bool = False
    retryable: bool = False
    seed: Optional[int] = None

    @property
    def error_code(self) -> Optional[str]:
        return self.error_info.code if self.error_info else None

    def to_response(self) -> Dict[str, Any]:
        """Render the JSON body returned by the hosting application."""
        response: Dict[str, Any] = {
            "imageData": self.image_data,
            "success": self.success,
            "message": self.message,
            "model": self.model,
            "isPlaceholder": self.is_placeholder,
        }
        if self.error_info is not None:
            response["errorInfo"] = self.error_info.to_dict()
        return response


class ModelConfig(BaseModel):
    """Per-model polling policy. Read-only, resolved at request time.

    Attributes:
        max_retries: Maximum number of status polls
        request_timeout: Timeout of each status poll, in seconds
        type: Qualitative model class
        provider: Provider the model belongs to
    """

    model_config = ConfigDict(frozen=True)

    max_retries: int = Field(default=10, ge=1)
    request_timeout: float = Field(default=60.0, gt=0)
    type: ModelType = ModelType.DEFAULT
    provider: Provider = Provider.DEFAULT


class ModelInfo(BaseModel):
    """A model offered to the user for image generation."""

    id: str
    name: str
    type: str
    provider: Provider = Provider.ALIYUN


@dataclass
class Job:
    """One remote synthesis task, mutated only by poll responses."""
    task_id: str
    model: str
    status: TaskStatus = TaskStatus.PENDING
    retries: int = 0
    error_code: str = ""
    error_message: str = ""
    state: AttemptState = AttemptState.POLLING
    last_response: Optional[Dict[str, Any]] = None
