"""
Custom Exception Hierarchy

Every error carries a machine-readable code and a details mapping so the
API layer can serialize it without knowing the concrete type.
"""
from typing import Optional, Dict, Any


class NutriTrackError(Exception):
    """Base exception for all NutriTrack errors."""

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details
        }


class PreconditionError(NutriTrackError):
    """Raised when an operation is attempted before its inputs are ready."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="NOT_READY", details=details)


class LanguageModelError(NutriTrackError):
    """Base for failures reported by a language model client."""

    def __init__(
        self,
        message: str,
        code: str = "LLM_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message=message, code=code, details=details)


class TransientNetworkError(LanguageModelError):
    """Connectivity loss, timeouts and rate limiting. Safe to retry."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="NETWORK_ERROR", details=details)


class ServiceError(LanguageModelError):
    """Non-transient provider failure, including a missing API key."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="SERVICE_ERROR", details=details)


class EmptyResponseError(LanguageModelError):
    """The model answered with no usable text."""

    def __init__(self, message: str = "Language model returned an empty response",
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="EMPTY_RESPONSE", details=details)


class MalformedResponseError(NutriTrackError):
    """Model output did not follow the requested wire format."""

    def __init__(
        self,
        message: str,
        category: str = "unknown",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            code="MALFORMED_RESPONSE",
            details={"category": category, **(details or {})}
        )
        self.category = category


class EmptyResultError(NutriTrackError):
    """Every task of a fan-out failed."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="EMPTY_RESULT", details=details)


class TranslationError(NutriTrackError):
    """A translation cache miss could not be resolved."""

    def __init__(
        self,
        message: str,
        target_lang: str = "unknown",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            code="TRANSLATION_ERROR",
            details={"target_lang": target_lang, **(details or {})}
        )
        self.target_lang = target_lang


class ChatSessionBusyError(NutriTrackError):
    """A chat turn was submitted while another one is still generating."""

    def __init__(self, session_id: str):
        super().__init__(
            message="A response is still being generated for this session",
            code="CHAT_BUSY",
            details={"session_id": session_id}
        )
        self.session_id = session_id


class FruitLookupError(NutriTrackError):
    """The fruit nutrition API could not be reached or answered badly."""

    def __init__(
        self,
        message: str,
        code: str = "LOOKUP_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message=message, code=code, details=details)


class FruitNotFoundError(FruitLookupError):
    """The fruit nutrition API has no entry for the requested name."""

    def __init__(self, name: str):
        super().__init__(
            message=f"No nutrition data found for '{name}'",
            code="FRUIT_NOT_FOUND",
            details={"name": name}
        )
        self.name = name
