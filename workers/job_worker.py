"""
Image job poller.

- generate()   submits a Replicate prediction and polls it every 3 s until it
               succeeds, fails, or 9 minutes have passed since submission.

Failures raise a GenerationError subclass:
    SubmissionFailed   create call returned no prediction id
    JobFailed          prediction reported failed / canceled
    JobTimedOut        deadline passed before a terminal status
    EmptyResult        succeeded without an output URL

Transport errors and non-2xx answers while polling (httpx.RequestError,
httpx.HTTPStatusError) are not retried: they propagate to the caller as-is.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Protocol

from models.job import (
    EmptyResult,
    GenerationJob,
    JobFailed,
    JobTimedOut,
    Prediction,
    SubmissionFailed,
)

logger = logging.getLogger(__name__)

POLL_INTERVAL = 3.0          # seconds between status checks
MAX_WAIT = 540.0             # 9 minutes

_FAILED_STATES = frozenset({"failed", "canceled"})


class PredictionAPI(Protocol):
    async def create_prediction(self, prompt: str) -> Prediction: ...

    async def get_prediction(self, prediction_id: str) -> Prediction: ...


class ImageJobPoller:
    def __init__(
        self,
        api: PredictionAPI,
        poll_interval: float = POLL_INTERVAL,
        max_wait: float = MAX_WAIT,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._api = api
        self.poll_interval = poll_interval
        self.max_wait = max_wait
        self._clock = clock
        self._sleep = sleep

    async def submit(self, prompt: str) -> GenerationJob:
        prediction = await self._api.create_prediction(prompt)
        if not prediction.id:
            raise SubmissionFailed("Failed to start image generation.")

        job = GenerationJob(job_id=prediction.id, prompt=prompt, submitted_at=self._clock())
        logger.info("Prediction created", extra={"job_id": job.job_id})
        return job

    async def wait(self, job: GenerationJob) -> str:
        """Poll `job` until a terminal status; returns the first output URL."""
        while True:
            elapsed = self._clock() - job.submitted_at
            if elapsed > self.max_wait:
                job.status = "timed_out"
                job.error = f"timed out after {self.max_wait:.0f}s"
                logger.warning(
                    "Prediction timed out",
                    extra={"job_id": job.job_id, "elapsed": round(elapsed, 1)},
                )
                raise JobTimedOut(
                    f"Image generation timed out after {self.max_wait / 60:g} minutes."
                )

            prediction = await self._api.get_prediction(job.job_id)
            status = prediction.status

            if status == "succeeded":
                url = prediction.first_output
                if not url:
                    job.status = "failed"
                    job.error = "no output"
                    raise EmptyResult("No image returned.")
                job.status = "succeeded"
                job.image_url = url
                logger.info(
                    "Prediction succeeded",
                    extra={"job_id": job.job_id, "elapsed": round(elapsed, 1)},
                )
                return url

            if status in _FAILED_STATES:
                job.status = "failed"
                job.error = str(prediction.error) if prediction.error else status
                logger.warning(
                    "Prediction failed",
                    extra={"job_id": job.job_id, "status": status, "error": job.error},
                )
                raise JobFailed("Image generation failed.")

            logger.debug("Prediction pending", extra={"job_id": job.job_id, "status": status})
            await self._sleep(self.poll_interval)

    async def generate(self, prompt: str) -> str:
        job = await self.submit(prompt)
        return await self.wait(job)
