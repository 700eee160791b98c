from dataclasses import dataclass
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict


class Prediction(BaseModel):
    """Subset of a Replicate prediction payload the poller reads."""

    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    status: Optional[str] = None
    output: Optional[Any] = None
    error: Optional[Any] = None

    @property
    def first_output(self) -> Optional[str]:
        if isinstance(self.output, list):
            return self.output[0] if self.output else None
        return None


@dataclass
class GenerationJob:
    job_id: str
    prompt: str
    submitted_at: float     # monotonic seconds
    status: str = "pending"  # pending | succeeded | failed | timed_out
    image_url: Optional[str] = None
    error: Optional[str] = None


class GenerationError(Exception):
    """Base class for image-generation failures."""


class SubmissionFailed(GenerationError):
    pass


class JobFailed(GenerationError):
    pass


class JobTimedOut(GenerationError):
    pass


class EmptyResult(GenerationError):
    pass
