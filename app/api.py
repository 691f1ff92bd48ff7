"""HTTP API exposing image generation to the chat frontend."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from imagegen.core.image_generator import ImageGenerator
from imagegen.core.models import DEFAULT_HEIGHT, DEFAULT_WIDTH, GenerationRequest

logger = logging.getLogger(__name__)

router = APIRouter()


class ImageGenerationPayload(BaseModel):
    """Body of an image generation request from the frontend."""

    model_config = ConfigDict(protected_namespaces=(), str_strip_whitespace=True)

    prompt: str = Field(..., min_length=1, max_length=2000)
    negative_prompt: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("negative_prompt", "negativePrompt"),
    )
    width: Optional[int] = None
    height: Optional[int] = None
    model: Optional[str] = None

    def to_request(self) -> GenerationRequest:
        return GenerationRequest(
            prompt=self.prompt,
            negative_prompt=self.negative_prompt or None,
            width=self.width or DEFAULT_WIDTH,
            height=self.height or DEFAULT_HEIGHT,
            model=self.model or None,
        )


def get_generator(request: Request) -> ImageGenerator:
    generator = getattr(request.app.state, "generator", None)
    if generator is None:
        raise HTTPException(status_code=503, detail="Image generator is not initialized")
    return generator


@router.post("/api/image-generation")
def generate_image(
    payload: ImageGenerationPayload,
    generator: ImageGenerator = Depends(get_generator),
):
    """Generate an image; failures come back as data with a placeholder image."""
    logger.info(
        f"Image generation request received. Model: {payload.model or 'default'}, "
        f"Prompt: {payload.prompt[:30]}..."
    )
    try:
        result = generator.generate_image(payload.to_request())
    except Exception:
        logger.exception("Image generation failed")
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "error": "Failed to generate image",
                "message": "The image generation service encountered an error. "
                           "Check server logs for details.",
            },
        )

    if not result.success:
        logger.warning(f"Image generation failed: {result.error_code} - {result.message}")
    return result.to_response()


@router.get("/api/models/image-generation")
def list_models(generator: ImageGenerator = Depends(get_generator)):
    """Models offered for image generation, default first."""
    return [m.model_dump(mode="json") for m in generator.list_models()]


@router.get("/health")
def health(generator: ImageGenerator = Depends(get_generator)):
    backends = generator.health_check_all()
    status = "ok" if all(backends.values()) else "degraded"
    return {"status": status, "backends": backends}


def create_app(generator: Optional[ImageGenerator] = None, title: str = "Chat Image Generation") -> FastAPI:
    """Create the FastAPI application.

    Args:
        generator: Orchestrator serving the requests
        title: Application title

    Returns:
        FastAPI app with the image generation routes
    """
    app = FastAPI(title=title)
    app.state.generator = generator
    app.include_router(router)
    return app
