"""
Error hierarchy.

Exceptions shared by all pipeline modules and mapped to HTTP responses by the API gateway.
"""

from typing import Optional, Union
from uuid import UUID


class PipelineError(Exception):
    """Base class for all pipeline errors."""

    code = "PIPELINE_ERROR"

    def __init__(
        self,
        message: str,
        job_id: Optional[Union[str, UUID]] = None,
        code: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.job_id = str(job_id) if job_id else None
        if code:
            self.code = code


class ConfigError(PipelineError):
    """Invalid or missing configuration."""

    code = "CONFIG_ERROR"


class ValidationError(PipelineError):
    """Invalid input supplied by the caller."""

    code = "VALIDATION_ERROR"


class JobNotFoundError(PipelineError):
    """Job does not exist or is not owned by the caller."""

    code = "JOB_NOT_FOUND"


class JobStateError(PipelineError):
    """Requested transition is not legal from the job's current status."""

    code = "INVALID_JOB_STATE"


class RetryableError(PipelineError):
    """Transient failure that may succeed on retry."""

    code = "RETRYABLE_ERROR"


class GenerationError(PipelineError):
    """Permanent generation failure."""

    code = "GENERATION_FAILED"


class CompositionError(PipelineError):
    """Video assembly failure."""

    code = "COMPOSITION_FAILED"


class JobCancelledError(PipelineError):
    """Cancellation was requested for a running job."""

    code = "JOB_CANCELLED"
