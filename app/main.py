"""Application entry point: FastAPI service with a Gradio image generation UI."""

import logging
from typing import Optional, Tuple
from PIL import Image
import gradio as gr
from fastapi import FastAPI

from app.api import create_app
from app.config import Settings, settings
from imagegen.core.backend_factory import BackendFactory
from imagegen.core.image_generator import ImageGenerator
from imagegen.core.model_config import ModelConfigRegistry
from imagegen.core.models import (
    ALLOWED_SIZES,
    DEFAULT_HEIGHT,
    DEFAULT_WIDTH,
    GenerationRequest,
    Provider,
)
from imagegen.utils.image_utils import decode_data_url

# Configure logging
logging.basicConfig(
    level=settings.log_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

SIZE_CHOICES = [f"{w}x{h}" for w, h in ALLOWED_SIZES]


def create_generator(config: Settings = settings) -> ImageGenerator:
    """Create the image generator from settings.

    A missing API key is logged but not fatal: requests then fail with a
    ``NO_API_KEY`` result and a placeholder image.

    Args:
        config: Application settings

    Returns:
        Initialized ImageGenerator instance
    """
    try:
        config.validate_required_keys()
    except ValueError as e:
        logger.warning(f"Configuration error: {e}")

    registry = ModelConfigRegistry.for_aliyun(
        retry_count=config.retry_count,
        request_timeout=config.request_timeout,
    )
    backend = BackendFactory.create_backend(
        Provider.ALIYUN,
        config.aliyun_api_key,
        base_url=config.aliyun_api_base_url,
        config_registry=registry,
        submit_timeout=config.request_timeout,
        model=config.aliyun_flux_model,
    )
    return ImageGenerator(
        backend,
        default_model=config.aliyun_flux_model,
        alternate_models=config.wanx_model_list(),
    )


def parse_size(size: str) -> Tuple[int, int]:
    """Parse a ``"WxH"`` choice; falls back to the default size."""
    try:
        width, height = size.lower().split("x")
        return int(width), int(height)
    except (AttributeError, ValueError):
        return DEFAULT_WIDTH, DEFAULT_HEIGHT


def generate_for_ui(
    generator: ImageGenerator,
    prompt: str,
    negative_prompt: str = "",
    size: str = SIZE_CHOICES[0],
    model: str = "auto"
) -> Tuple[Optional[Image.Image], str]:
    """Generate an image for the UI.

    Args:
        generator: The orchestrator to use
        prompt: Text description of the desired image
        negative_prompt: What to avoid in the image
        size: ``"WxH"`` size choice
        model: Model choice; ``"auto"`` uses the fallback list

    Returns:
        Tuple of (PIL Image or None, status message)
    """
    if not prompt or prompt.strip() == "":
        return None, "Error: Please enter a prompt"

    width, height = parse_size(size)
    request = GenerationRequest(
        prompt=prompt.strip(),
        negative_prompt=negative_prompt.strip() if negative_prompt else None,
        width=width,
        height=height,
        model=None if model in (None, "", "auto") else model,
    )
    result = generator.generate_image(request)

    image = None
    if result.image_data:
        try:
            image = decode_data_url(result.image_data)
        except ValueError as e:
            logger.error(f"Could not decode generated image: {e}")

    icon = "✅" if result.success else "⚠️"
    info = f"{icon} {result.message}"
    if result.model:
        info += f"\nModel: {result.model}"
    if result.error_info:
        info += f"\nError code: {result.error_info.code}"
    return image, info


def create_ui(generator: ImageGenerator):
    """Create the Gradio interface.

    Returns:
        Gradio Blocks interface
    """
    model_choices = ["auto", *[m.id for m in generator.list_models()]]

    with gr.Blocks(title="Image Generator") as demo:
        gr.Markdown(
            """
            # 🎨 Image Generator

            Generate images from text descriptions. "auto" tries the fast model
            first and falls back to the higher quality models.
            """
        )

        with gr.Row():
            with gr.Column(scale=1):
                prompt_input = gr.Textbox(
                    label="Prompt",
                    placeholder="Describe the image you want to generate...",
                    lines=3
                )
                negative_prompt_input = gr.Textbox(
                    label="Negative Prompt (optional)",
                    placeholder="What to avoid in the image...",
                    lines=2
                )
                with gr.Row():
                    size_selector = gr.Dropdown(
                        choices=SIZE_CHOICES,
                        value=SIZE_CHOICES[0],
                        label="Size"
                    )
                    model_selector = gr.Dropdown(
                        choices=model_choices,
                        value="auto",
                        label="Model"
                    )
                generate_btn = gr.Button("🎨 Generate Image", variant="primary")

            with gr.Column(scale=1):
                output_image = gr.Image(label="Generated Image", type="pil")
                output_info = gr.Textbox(label="Status", lines=4, interactive=False)

        generate_btn.click(
            fn=lambda *args: generate_for_ui(generator, *args),
            inputs=[prompt_input, negative_prompt_input, size_selector, model_selector],
            outputs=[output_image, output_info]
        )

    return demo


def build_app(config: Settings = settings) -> FastAPI:
    """Build the service: JSON API plus, when enabled, the UI."""
    generator = create_generator(config)
    app = create_app(generator)
    if config.enable_ui:
        app = gr.mount_gradio_app(app, create_ui(generator), path=config.ui_path)
        logger.info(f"Mounted Gradio UI at {config.ui_path}")
    return app


def main() -> None:
    import uvicorn

    logger.info("Launching image generation service...")
    uvicorn.run(build_app(), host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
