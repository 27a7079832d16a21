"""
Gemini API Client

Async wrapper around LangChain's ChatGoogleGenerativeAI. Provider errors are
mapped onto the NutriTrack exception hierarchy so callers never see raw
google/langchain exceptions.
"""
from dataclasses import dataclass, field
from typing import Dict, Any, Optional
from enum import Enum
from datetime import datetime
import asyncio
import os

import httpx
from langchain_google_genai import ChatGoogleGenerativeAI

from nutritrack.utils import (
    get_logger,
    ServiceError,
    TransientNetworkError,
    EmptyResponseError,
)

logger = get_logger(__name__)

# Provider exception class names that indicate a retryable condition
_TRANSIENT_ERROR_NAMES = {
    "ServiceUnavailable",
    "DeadlineExceeded",
    "ResourceExhausted",
    "TooManyRequests",
    "InternalServerError",
    "GatewayTimeout",
    "RetryError",
}

_TRANSIENT_STATUS_CODES = {408, 429, 500, 502, 503, 504}


class GeminiModel(str, Enum):
    """Gemini models the service has been run against."""
    FLASH_2_5 = "gemini-2.5-flash"
    FLASH_2_5_LITE = "gemini-2.5-flash-lite"
    FLASH_2_0 = "gemini-2.0-flash"
    PRO_2_5 = "gemini-2.5-pro"


@dataclass
class GeminiConfig:
    """Configuration for Gemini client."""
    api_key: Optional[str] = field(default_factory=lambda: os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY"))
    model: GeminiModel | str = GeminiModel.FLASH_2_0
    temperature: float = 0.5

    max_output_tokens: int = 2048
    top_p: float = 0.8
    top_k: int = 40

    request_timeout_seconds: float = 30.0

    def __post_init__(self):
        if self.api_key is None:
            self.api_key = os.environ.get("GEMINI_API_KEY") or os.environ.get("GOOGLE_API_KEY")


def _status_code(exc: BaseException) -> Optional[int]:
    for attr in ("code", "status_code"):
        value = getattr(exc, attr, None)
        if isinstance(value, int):
            return value
    return None


def classify_error(exc: BaseException) -> ServiceError | TransientNetworkError:
    """Map a provider/transport exception onto the client error taxonomy."""
    details = {"exception": type(exc).__name__}
    if isinstance(exc, (asyncio.TimeoutError, ConnectionError, httpx.TransportError)):
        return TransientNetworkError(f"Network failure: {exc}", details=details)

    names = {cls.__name__ for cls in type(exc).__mro__}
    if names & _TRANSIENT_ERROR_NAMES or _status_code(exc) in _TRANSIENT_STATUS_CODES:
        return TransientNetworkError(f"Transient provider failure: {exc}", details=details)

    if isinstance(exc, OSError):
        return TransientNetworkError(f"Network failure: {exc}", details=details)

    return ServiceError(f"Gemini request failed: {exc}", details=details)


def extract_text(content: Any) -> str:
    """Flatten LangChain message content (str or list of parts) into text."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, dict) and part.get("type", "text") == "text":
                parts.append(str(part.get("text", "")))
        return "".join(parts)
    return str(content) if content is not None else ""


class GeminiClient:
    """
    Client for Google Gemini via LangChain.

    Performs exactly one provider call per `generate`; retries are the
    responsibility of `RetryingLanguageModelClient`.
    """

    def __init__(self, config: Optional[GeminiConfig] = None):
        """
        Initialize Gemini client.

        Args:
            config: Optional configuration, uses defaults if not provided
        """
        self.config = config or GeminiConfig()
        self._llm = None
        self._request_count = 0
        self._failure_count = 0
        self._last_request_time: Optional[datetime] = None
        self._initialized = False

        self._initialize()

    def _initialize(self):
        """Build the LangChain chat model."""
        if not self.config.api_key:
            logger.warning("No Gemini API key provided - language model features disabled")
            return

        try:
            self._llm = ChatGoogleGenerativeAI(
                model=self._model_name,
                temperature=self.config.temperature,
                max_output_tokens=self.config.max_output_tokens,
                top_p=self.config.top_p,
                top_k=self.config.top_k,
                timeout=self.config.request_timeout_seconds,
                max_retries=0,
                google_api_key=self.config.api_key,
            )
            self._initialized = True
            logger.info(f"LangChain Gemini client initialized with model: {self._model_name}")
        except Exception as e:
            logger.error(f"Failed to initialize LangChain Gemini: {e}")
            self._initialized = False

    @property
    def is_available(self) -> bool:
        """Check if Gemini is available for use."""
        return self._initialized

    @property
    def _model_name(self) -> str:
        m = self.config.model
        return m.value if hasattr(m, "value") else str(m)

    async def generate(self, prompt: str) -> str:
        """
        Send a single prompt and return the model's text.

        Raises:
            ServiceError: client not configured or provider rejected the call
            TransientNetworkError: connectivity failure or timeout
            EmptyResponseError: the model returned blank text
        """
        if not self.is_available:
            raise ServiceError(
                "Gemini client is not configured",
                details={"model": self._model_name},
            )

        start_time = datetime.now()
        try:
            response = await asyncio.wait_for(
                self._llm.ainvoke(prompt),
                timeout=self.config.request_timeout_seconds,
            )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._failure_count += 1
            error = classify_error(e)
            logger.error(f"Gemini generation failed ({error.code}): {e}")
            raise error from e
        finally:
            self._request_count += 1
            self._last_request_time = datetime.now()

        latency = (datetime.now() - start_time).total_seconds() * 1000
        content = response.content if hasattr(response, "content") else response
        text = extract_text(content).strip()
        if not text:
            self._failure_count += 1
            raise EmptyResponseError(details={"model": self._model_name})

        logger.debug(f"Gemini responded in {latency:.0f} ms ({len(text)} chars)")
        return text

    def get_stats(self) -> Dict[str, Any]:
        """Get client statistics."""
        return {
            "is_available": self.is_available,
            "model": self._model_name,
            "request_count": self._request_count,
            "failure_count": self._failure_count,
            "last_request": self._last_request_time.isoformat() if self._last_request_time else None
        }
