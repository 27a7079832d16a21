"""
Utilities Package - Logging and Exception Handling
"""
from .logging import bind_logger, get_logger, setup_logging
from .exceptions import (
    NutriTrackError,
    PreconditionError,
    LanguageModelError,
    TransientNetworkError,
    ServiceError,
    EmptyResponseError,
    MalformedResponseError,
    EmptyResultError,
    TranslationError,
    ChatSessionBusyError,
    FruitLookupError,
    FruitNotFoundError,
)

__all__ = [
    "bind_logger",
    "get_logger",
    "setup_logging",
    "NutriTrackError",
    "PreconditionError",
    "LanguageModelError",
    "TransientNetworkError",
    "ServiceError",
    "EmptyResponseError",
    "MalformedResponseError",
    "EmptyResultError",
    "TranslationError",
    "ChatSessionBusyError",
    "FruitLookupError",
    "FruitNotFoundError",
]
