"""
Provider adapter contracts.

Every generative-media adapter returns a ProviderResult instead of raising, so
callers can tell success, failure, and missing configuration apart.
"""

from enum import Enum
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field


class ProviderOutcome(str, Enum):
    """Outcome of a provider operation."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    UNAVAILABLE = "unavailable"


class ProviderResult(BaseModel):
    """Normalized provider result."""

    provider: str
    outcome: ProviderOutcome
    media_url: Optional[str] = None
    content: Optional[str] = Field(default=None, description="Raw text output (LLM providers)")
    reason: Optional[str] = Field(default=None, description="Human-readable failure or unavailability reason")
    retryable: bool = False

    @classmethod
    def success(cls, provider: str, media_url: Optional[str] = None, content: Optional[str] = None) -> "ProviderResult":
        return cls(provider=provider, outcome=ProviderOutcome.SUCCEEDED, media_url=media_url, content=content)

    @classmethod
    def failure(cls, provider: str, reason: str, retryable: bool = False) -> "ProviderResult":
        return cls(provider=provider, outcome=ProviderOutcome.FAILED, reason=reason, retryable=retryable)

    @classmethod
    def unavailable(cls, provider: str, reason: str) -> "ProviderResult":
        return cls(provider=provider, outcome=ProviderOutcome.UNAVAILABLE, reason=reason)

    @property
    def ok(self) -> bool:
        return self.outcome == ProviderOutcome.SUCCEEDED

    @property
    def is_unavailable(self) -> bool:
        return self.outcome == ProviderOutcome.UNAVAILABLE


class OperationHandle(BaseModel):
    """
    Handle returned by submit().

    Immediate providers carry their result directly; polling providers carry the
    operation identifier to poll.
    """

    provider: str
    operation_id: Optional[str] = None
    result: Optional[ProviderResult] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @property
    def is_resolved(self) -> bool:
        return self.result is not None
