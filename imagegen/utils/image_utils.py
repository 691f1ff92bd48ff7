"""Image utility functions: data URLs, downloads and the placeholder image."""

import base64
import binascii
import io
import logging
import re
from functools import lru_cache
from typing import Optional

import requests
from PIL import Image

from imagegen.core.errors import user_message
from imagegen.core.models import ErrorInfo, GenerationResult

logger = logging.getLogger(__name__)

DOWNLOAD_TIMEOUT = 30

_DATA_URL_PREFIX = re.compile(r"^data:image/[\w.+-]+;base64,")

PLACEHOLDER_SIZE = (64, 64)
PLACEHOLDER_COLOR = (220, 38, 38)


class ImageFormat:
    """Supported image formats."""
    PNG = "PNG"
    JPEG = "JPEG"
    WEBP = "WEBP"


_MIME_TYPES = {
    ImageFormat.PNG: "image/png",
    ImageFormat.JPEG: "image/jpeg",
    ImageFormat.WEBP: "image/webp",
}


def detect_mime_type(image_bytes: bytes, fallback: str = "image/png") -> str:
    """Detect the MIME type of image bytes from their magic number.

    Args:
        image_bytes: Raw image bytes
        fallback: MIME type used when the format is not recognised

    Returns:
        MIME type string such as ``image/png``
    """
    if image_bytes.startswith(b"\x89PNG"):
        return _MIME_TYPES[ImageFormat.PNG]
    if image_bytes.startswith(b"\xff\xd8"):
        return _MIME_TYPES[ImageFormat.JPEG]
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return _MIME_TYPES[ImageFormat.WEBP]
    return fallback


def to_data_url(image_bytes: bytes, mime_type: Optional[str] = None) -> str:
    """Encode image bytes as a base64 data URL."""
    mime_type = mime_type or detect_mime_type(image_bytes)
    encoded = base64.b64encode(image_bytes).decode("utf-8")
    return f"data:{mime_type};base64,{encoded}"


def strip_data_url_prefix(image_data: str) -> str:
    """Remove a leading ``data:image/...;base64,`` prefix if present."""
    return _DATA_URL_PREFIX.sub("", image_data, count=1)


def decode_data_url(image_data: str) -> Image.Image:
    """Decode a data URL (or bare base64 string) into a PIL Image.

    Raises:
        ValueError: If the payload is not valid base64 image data
    """
    try:
        raw = base64.b64decode(strip_data_url_prefix(image_data), validate=True)
        image = Image.open(io.BytesIO(raw))
        image.load()
        return image
    except (binascii.Error, OSError) as e:
        raise ValueError(f"Invalid image data: {e}") from e


@lru_cache(maxsize=1)
def placeholder_png() -> bytes:
    """Small solid red PNG shown in place of an image that failed to generate."""
    image = Image.new("RGB", PLACEHOLDER_SIZE, color=PLACEHOLDER_COLOR)
    output = io.BytesIO()
    image.save(output, format=ImageFormat.PNG)
    return output.getvalue()


def placeholder_data_url() -> str:
    return to_data_url(placeholder_png(), _MIME_TYPES[ImageFormat.PNG])


def placeholder_result(
    code: str,
    message: Optional[str] = None,
    model: Optional[str] = None,
    retryable: bool = False
) -> GenerationResult:
    """Failed result carrying the placeholder image and error metadata.

    Args:
        code: Error code
        message: Error message
        model: Model the failure belongs to
        retryable: Whether resubmitting with a new seed may succeed

    Returns:
        A GenerationResult with success=False
    """
    error = ErrorInfo(code=code, message=message or "Unknown error")
    return GenerationResult(
        image_data=placeholder_data_url(),
        success=False,
        message=user_message(error, model),
        model=model,
        error_info=error,
        is_placeholder=True,
        retryable=retryable,
    )


def download_image(
    url: str,
    timeout: float = DOWNLOAD_TIMEOUT,
    session: Optional[requests.Session] = None
) -> str:
    """Download an image and re-encode it as a data URL.

    Args:
        url: URL of the generated image
        timeout: Request timeout in seconds
        session: Optional requests session to reuse

    Returns:
        The image as a base64 data URL

    Raises:
        requests.RequestException: If the download fails
    """
    http = session or requests
    response = http.get(url, timeout=timeout)
    response.raise_for_status()
    image_bytes = response.content

    header_type = response.headers.get("content-type", "").split(";")[0].strip()
    fallback = header_type if header_type.startswith("image/") else "image/png"
    mime_type = detect_mime_type(image_bytes, fallback=fallback)

    logger.info(
        f"Downloaded image from {url} ({len(image_bytes)} bytes, {mime_type})"
    )
    return to_data_url(image_bytes, mime_type)
