"""Status polling for remote synthesis jobs with exponential backoff."""

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import requests

from imagegen.core.errors import is_transient_device_fault, UNKNOWN_ERROR
from imagegen.core.models import Job, ModelConfig, TaskStatus, AttemptState

logger = logging.getLogger(__name__)

POLL_BASE_DELAY_MS = 1000
POLL_BACKOFF_FACTOR = 1.5

StatusFetcher = Callable[[str, float], Dict[str, Any]]


def backoff_delay_ms(attempt: int) -> float:
    """Delay before poll ``attempt`` (0-indexed), in milliseconds."""
    return POLL_BASE_DELAY_MS * POLL_BACKOFF_FACTOR ** attempt


def extract_result_url(payload: Optional[Dict[str, Any]]) -> Optional[str]:
    """Get ``output.results[0].url`` from a status payload, if present."""
    if not isinstance(payload, dict):
        return None
    output = payload.get("output")
    results = output.get("results") if isinstance(output, dict) else None
    if not isinstance(results, list) or not results or not isinstance(results[0], dict):
        return None
    return results[0].get("url") or None


@dataclass
class PollOutcome:
    """Where polling left a job.

    Attributes:
        job: The job, with its final status, retries and last error
        result_url: Image URL when the job SUCCEEDED and reported one
        retry_with_new_seed: The job failed with the transient device fault
            while poll budget remained; resubmitting with a new seed may work
    """
    job: Job
    result_url: Optional[str] = None
    retry_with_new_seed: bool = False

    @property
    def succeeded(self) -> bool:
        return self.job.status == TaskStatus.SUCCEEDED

    @property
    def timed_out(self) -> bool:
        return self.job.status.is_active


class JobPoller:
    """Polls a job until it leaves PENDING/RUNNING or the budget runs out.

    Attributes:
        fetch_status: Callable ``(task_id, timeout) -> payload`` querying the job
        sleep: Callable taking seconds; suspends between polls
    """

    def __init__(
        self,
        fetch_status: StatusFetcher,
        sleep: Callable[[float], None] = time.sleep
    ):
        self.fetch_status = fetch_status
        self.sleep = sleep

    def poll(self, job: Job, config: ModelConfig) -> PollOutcome:
        """Poll a job with exponential backoff.

        Transport errors and malformed bodies on a single check consume one
        retry; they never end polling on their own.

        Args:
            job: The submitted job; mutated in place with each response
            config: Poll budget and per-poll timeout for the job's model

        Returns:
            PollOutcome describing the terminal (or abandoned) job
        """
        job.state = AttemptState.POLLING
        max_retries = config.max_retries

        while job.retries < max_retries and job.status.is_active:
            self.sleep(backoff_delay_ms(job.retries) / 1000)

            try:
                payload = self.fetch_status(job.task_id, config.request_timeout)
            except (requests.RequestException, ValueError) as e:
                logger.warning(
                    f"Error checking status of task {job.task_id} "
                    f"(attempt {job.retries + 1}): {e}"
                )
                job.retries += 1
                continue

            output = payload.get("output") if isinstance(payload, dict) else None
            if not isinstance(output, dict):
                logger.warning(
                    f"Malformed status response for task {job.task_id} "
                    f"(attempt {job.retries + 1}): {payload!r:.200}"
                )
                job.retries += 1
                continue

            job.last_response = payload
            job.status = TaskStatus.parse(output.get("task_status"))
            logger.debug(f"Task {job.task_id} status (attempt {job.retries + 1}): {job.status.value}")

            if job.status == TaskStatus.SUCCEEDED:
                return PollOutcome(job=job, result_url=extract_result_url(payload))

            if job.status in (TaskStatus.FAILED, TaskStatus.UNKNOWN):
                job.error_code = output.get("code") or UNKNOWN_ERROR
                job.error_message = output.get("message") or "Unknown error"

                if (
                    is_transient_device_fault(job.error_code, job.error_message)
                    and job.retries < max_retries - 1
                ):
                    logger.info(
                        f"Task {job.task_id} hit a device mismatch fault, "
                        "a resubmission with a different seed is warranted"
                    )
                    return PollOutcome(job=job, retry_with_new_seed=True)

            job.retries += 1

        if job.status.is_active:
            logger.warning(
                f"Task {job.task_id} still {job.status.value} after {job.retries} polls "
                f"(limit {max_retries})"
            )
        return PollOutcome(job=job)
