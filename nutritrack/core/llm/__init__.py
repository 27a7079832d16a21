"""
Language Model Module

Gemini access for insight generation, chat answers and translation.
Callers depend on the `LanguageModelClient` protocol; the concrete client is
wrapped in `RetryingLanguageModelClient` by the service container.
"""
from .base import LanguageModelClient
from .gemini_client import GeminiClient, GeminiConfig, GeminiModel
from .retry import RetryPolicy, RetryingLanguageModelClient

__all__ = [
    "LanguageModelClient",
    "GeminiClient",
    "GeminiConfig",
    "GeminiModel",
    "RetryPolicy",
    "RetryingLanguageModelClient",
]
