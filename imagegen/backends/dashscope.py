"""Aliyun DashScope (Bailian) asynchronous text-to-image backend."""

import logging
import time
from typing import Any, Callable, Dict, Optional, Union

import requests

from imagegen.core import errors
from imagegen.core.base_backend import BaseBackend
from imagegen.core.model_config import ModelConfigRegistry, detect_provider
from imagegen.core.models import (
    AttemptState,
    GenerationRequest,
    GenerationResult,
    Job,
    ModelConfig,
    random_seed,
)
from imagegen.core.poller import JobPoller, PollOutcome, extract_result_url
from imagegen.utils.image_utils import download_image, placeholder_result, DOWNLOAD_TIMEOUT

logger = logging.getLogger(__name__)


class DashScopeBackend(BaseBackend):
    """Backend for the DashScope image-synthesis API (Flux and Wanx models).

    Generation is asynchronous on the provider side: a job is submitted,
    its status is polled with exponential backoff, and the finished image is
    downloaded and re-encoded as a data URL.

    Attributes:
        api_key: DashScope API key
        base_url: API base URL, without trailing slash
        config_registry: Resolves per-model polling policy
        session: requests session used for every outbound call
        poller: Status poller for submitted jobs
    """

    DEFAULT_BASE_URL = "https://dashscope.aliyuncs.com/api/v1"
    DEFAULT_MODEL = "flux-schnell"
    DEFAULT_STEPS = 20
    SYNTHESIS_PATH = "/services/aigc/text2image/image-synthesis"
    TASK_PATH = "/tasks/{task_id}"

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        config_registry: Optional[ModelConfigRegistry] = None,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
        submit_timeout: float = 60.0,
        download_timeout: float = DOWNLOAD_TIMEOUT,
        model: Optional[str] = None,
    ):
        """Initialize the DashScope backend.

        A missing API key is not an error here; generation then fails with a
        ``NO_API_KEY`` result before any network call.

        Args:
            api_key: DashScope API key
            base_url: API base URL (defaults to the public endpoint)
            config_registry: Model config registry (defaults to Aliyun rules)
            session: Optional requests session
            sleep: Callable used to wait between polls, in seconds
            submit_timeout: Timeout of the submission request, in seconds
            download_timeout: Timeout of the image download, in seconds
            model: Default model when none is given
        """
        super().__init__(api_key)

        self.base_url = (base_url or self.DEFAULT_BASE_URL).rstrip("/")
        self.config_registry = config_registry or ModelConfigRegistry.for_aliyun()
        self.session = session or requests.Session()
        self.submit_timeout = submit_timeout
        self.download_timeout = download_timeout
        self.model = model or self.DEFAULT_MODEL
        self.poller = JobPoller(self.fetch_status, sleep=sleep)
        logger.info(f"Initialized DashScope backend at {self.base_url} with model: {self.model}")

    def _auth_headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}"}

    def _masked_key(self) -> str:
        return f"****{(self.api_key or '')[-4:]}"

    def build_request_body(
        self,
        request: GenerationRequest,
        model: str,
        seed: int
    ) -> Dict[str, Any]:
        """Build the synthesis request body for one model.

        Args:
            request: The generation request
            model: Model to run
            seed: Seed to send

        Returns:
            JSON-serializable request body
        """
        return {
            "model": model,
            "input": {
                "prompt": request.prompt,
                "negative_prompt": request.negative_prompt or "",
            },
            "parameters": {
                "size": request.size_string(),
                "seed": seed,
                "steps": request.steps or self.DEFAULT_STEPS,
            },
        }

    def submit_job(
        self,
        request: GenerationRequest,
        model: str,
        seed: int
    ) -> Union[Job, GenerationResult]:
        """Submit a synthesis job.

        Args:
            request: The generation request
            model: Model to run
            seed: Seed to send

        Returns:
            The created Job, or a failed GenerationResult if the provider
            rejected the submission
        """
        url = f"{self.base_url}{self.SYNTHESIS_PATH}"
        body = self.build_request_body(request, model, seed)
        headers = {
            **self._auth_headers(),
            "Content-Type": "application/json",
            "X-DashScope-Async": "enable",
        }

        logger.info(f"Submitting image generation job with model: {model}")
        logger.debug(f"POST {url} (auth {self._masked_key()}) body: {body}")

        try:
            response = self.session.post(
                url, json=body, headers=headers, timeout=self.submit_timeout
            )
        except requests.RequestException as e:
            logger.error(f"Error submitting job with model {model}: {e}")
            return placeholder_result(errors.API_REQUEST_ERROR, str(e) or "Request failed", model)

        try:
            data = response.json()
        except ValueError:
            data = {}
        malformed = not isinstance(data, dict)
        if malformed:
            data = {}

        if response.status_code >= 400:
            logger.error(f"HTTP error {response.status_code} for model {model}: {data}")
            if response.status_code == 400 and model.lower().startswith("wanx"):
                return placeholder_result(
                    errors.WANX_MODEL_ERROR,
                    "This Wanx model is temporarily unavailable. The server returned a 400 error.",
                    model,
                )
            return placeholder_result(
                errors.http_error_code(response.status_code),
                f"Server returned HTTP {response.status_code}: "
                f"{data.get('message') or 'Unknown error'}",
                model,
            )

        if malformed:
            logger.error(f"Malformed submission response for model {model}")
            return placeholder_result(
                errors.PROCESSING_ERROR, "Malformed response from image synthesis API", model
            )

        if data.get("code"):
            logger.error(f"DashScope API error: {data['code']} - {data.get('message')}")
            return placeholder_result(str(data["code"]), data.get("message"), model)

        output = data.get("output")
        task_id = output.get("task_id") if isinstance(output, dict) else None
        if not task_id:
            logger.error("No task ID returned from DashScope API")
            return placeholder_result(errors.NO_TASK_ID, "No task ID returned from API", model)

        logger.info(f"Submitted task {task_id} for model {model}")
        return Job(task_id=task_id, model=model)

    def fetch_status(self, task_id: str, timeout: float) -> Dict[str, Any]:
        """Query the status of a job.

        Raises:
            requests.RequestException: On transport or HTTP errors
            ValueError: If the response is not JSON
        """
        response = self.session.get(
            f"{self.base_url}{self.TASK_PATH.format(task_id=task_id)}",
            headers=self._auth_headers(),
            timeout=timeout,
        )
        response.raise_for_status()
        return response.json()

    def materialize(self, outcome: PollOutcome) -> GenerationResult:
        """Download the image of a SUCCEEDED job.

        Falls back to the last raw status payload when the poll outcome
        carries no URL.
        """
        job = outcome.job
        job.state = AttemptState.DOWNLOADING

        try:
            url = outcome.result_url or extract_result_url(job.last_response)
        except (AttributeError, TypeError, KeyError) as e:
            logger.error(f"Error processing successful response of task {job.task_id}: {e}")
            job.state = AttemptState.DONE_FAILURE
            return placeholder_result(
                errors.PROCESSING_ERROR, "Error processing successful response", job.model
            )

        if not url:
            logger.error(f"Task {job.task_id} succeeded but no image URL found in response")
            job.state = AttemptState.DONE_FAILURE
            return placeholder_result(
                errors.NO_IMAGE_URL, "No image URL found in successful response", job.model
            )

        try:
            image_data = download_image(url, timeout=self.download_timeout, session=self.session)
        except requests.RequestException as e:
            logger.error(f"Error downloading image of task {job.task_id}: {e}")
            job.state = AttemptState.DONE_FAILURE
            return placeholder_result(
                errors.IMAGE_DOWNLOAD_ERROR, "Failed to download image", job.model
            )

        job.state = AttemptState.DONE_SUCCESS
        return GenerationResult(
            image_data=image_data,
            success=True,
            message=f"Image generated successfully using model: {job.model}",
            model=job.model,
        )

    def _finish(self, outcome: PollOutcome, config: ModelConfig) -> GenerationResult:
        job = outcome.job

        if outcome.succeeded:
            return self.materialize(outcome)

        if outcome.timed_out:
            logger.warning(
                f"Model {job.model} ({config.type.value}) is still processing "
                f"({job.status.value}) after {job.retries} attempts"
            )
            job.state = AttemptState.DONE_TIMEOUT
            return placeholder_result(
                errors.STILL_PROCESSING, errors.still_processing_message(job.model), job.model
            )

        logger.error(f"Task {job.task_id} ended with status {job.status.value}: {job.error_code}")
        job.state = AttemptState.DONE_FAILURE
        return placeholder_result(
            job.error_code or errors.TIMEOUT_ERROR,
            job.error_message or "Task did not complete within time limit",
            job.model,
            retryable=outcome.retry_with_new_seed,
        )

    def generate_image(self, request: GenerationRequest, model: Optional[str] = None) -> GenerationResult:
        """Run one Submit -> Poll -> Materialize attempt.

        Args:
            request: The generation request; its seed is used when set,
                otherwise a random seed is drawn
            model: Model to run (defaults to request.model, then self.model)

        Returns:
            GenerationResult; failures are returned, not raised
        """
        model = model or request.model or self.model

        if not self.api_key:
            logger.error("DashScope API key is not configured")
            return placeholder_result(errors.NO_API_KEY, "DashScope API key is not configured", model)

        seed = request.seed if request.seed is not None else random_seed()
        logger.info(f"Generating image with {model} (seed {seed}), prompt: {request.prompt[:50]}...")

        submitted = self.submit_job(request, model, seed)
        if isinstance(submitted, GenerationResult):
            return submitted.model_copy(update={"seed": seed})

        config = self.config_registry.get(model, detect_provider(model))
        outcome = self.poller.poll(submitted, config)
        return self._finish(outcome, config).model_copy(update={"seed": seed})

    def health_check(self) -> bool:
        """Check that an API key is configured and the API host answers.

        Returns:
            True if the backend is healthy, False otherwise
        """
        if not self.api_key:
            logger.warning("Health check failed: no API key configured")
            return False
        try:
            logger.debug("Performing health check...")
            response = self.session.get(self.base_url, headers=self._auth_headers(), timeout=5)
            healthy = response.status_code < 500
            logger.debug(f"Health check status: {response.status_code}")
            return healthy
        except requests.RequestException as e:
            logger.warning(f"Health check failed: {e}")
            return False

    @property
    def name(self) -> str:
        return "DashScope"

    @property
    def supported_models(self) -> list[str]:
        """Commonly used DashScope text-to-image models."""
        return [
            "flux-schnell",
            "flux-dev",
            "wanx2.1-t2i-turbo",
            "wanx2.1-t2i-plus",
        ]
