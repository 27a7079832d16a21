"""
Language model client contract.

Anything that can turn a prompt into text can back the insight orchestrator,
the chat session and the translation cache.
"""
from typing import Protocol, runtime_checkable


@runtime_checkable
class LanguageModelClient(Protocol):
    """
    Single-call text generation.

    Implementations raise a `LanguageModelError` subclass on failure:
    `TransientNetworkError` for connectivity problems, `ServiceError` for
    provider errors and `EmptyResponseError` when no text came back.
    """

    async def generate(self, prompt: str) -> str:
        ...
