"""Shared test fixtures and configuration."""

import io
import os

import pytest
from PIL import Image

from imagegen.core.models import GenerationRequest, GenerationResult, ErrorInfo
from tests.helpers import FakeDashScope


@pytest.fixture
def sample_prompt():
    """Return a sample prompt for testing."""
    return "A beautiful sunset over mountains"


@pytest.fixture
def sample_generation_request(sample_prompt):
    """Return a sample GenerationRequest for testing."""
    return GenerationRequest(
        prompt=sample_prompt,
        negative_prompt="blurry, low quality",
        width=1024,
        height=1024,
        seed=42
    )


@pytest.fixture
def sample_image_bytes():
    """Return a small PNG image as bytes."""
    img_byte_arr = io.BytesIO()
    Image.new('RGB', (32, 32), color='blue').save(img_byte_arr, format='PNG')
    return img_byte_arr.getvalue()


@pytest.fixture
def fake_dashscope(sample_image_bytes):
    """Return a FakeDashScope whose session can be handed to a backend."""
    return FakeDashScope(sample_image_bytes)


@pytest.fixture
def no_sleep():
    """Sleep replacement recording the requested delays."""
    delays = []
    return delays.append, delays


@pytest.fixture
def success_result():
    return GenerationResult(
        image_data="data:image/png;base64,iVBORw0KGgo=",
        success=True,
        message="Image generated successfully using model: flux-schnell",
        model="flux-schnell"
    )


@pytest.fixture
def failed_result_factory():
    """Return a function building failed results for a model."""
    def _build(code, message="error", model="flux-schnell", retryable=False, seed=None):
        return GenerationResult(
            image_data="data:image/png;base64,iVBORw0KGgo=",
            success=False,
            message=message,
            model=model,
            error_info=ErrorInfo(code=code, message=message),
            is_placeholder=True,
            retryable=retryable,
            seed=seed
        )
    return _build


@pytest.fixture
def test_api_key():
    """Return a test API key."""
    return "sk-test-key-12345"


# Skip integration tests unless explicitly requested
def pytest_collection_modifyitems(config, items):
    """Automatically skip integration tests unless RUN_INTEGRATION_TESTS is set."""
    skip_integration = pytest.mark.skip(reason="Integration tests disabled (set RUN_INTEGRATION_TESTS=true to enable)")

    for item in items:
        if "integration" in item.keywords:
            if not os.getenv("RUN_INTEGRATION_TESTS", "").lower() == "true":
                item.add_marker(skip_integration)
