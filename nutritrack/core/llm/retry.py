"""
Bounded retry at the language model client boundary.

Only `TransientNetworkError` is retried. Service errors and empty responses
surface immediately so the insight and chat layers can degrade on the first
failure.
"""
import logging
from dataclasses import dataclass

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from nutritrack.core.llm.base import LanguageModelClient
from nutritrack.utils import get_logger, TransientNetworkError

logger = get_logger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt budget and exponential backoff for transient failures."""
    max_attempts: int = 3
    backoff_seconds: float = 1.0
    max_backoff_seconds: float = 10.0

    @classmethod
    def disabled(cls) -> "RetryPolicy":
        return cls(max_attempts=1, backoff_seconds=0.0)


class RetryingLanguageModelClient:
    """Wraps any `LanguageModelClient` with a `RetryPolicy`."""

    def __init__(self, client: LanguageModelClient, policy: RetryPolicy = RetryPolicy()):
        self._client = client
        self.policy = policy

    @property
    def inner(self) -> LanguageModelClient:
        return self._client

    async def generate(self, prompt: str) -> str:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(max(1, self.policy.max_attempts)),
            wait=wait_exponential(
                multiplier=self.policy.backoff_seconds,
                max=self.policy.max_backoff_seconds,
            ),
            retry=retry_if_exception_type(TransientNetworkError),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await self._client.generate(prompt)
