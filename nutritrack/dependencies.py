"""
Service container shared by the API endpoints.

Everything with state (insight collection, chat sessions, translation cache)
is owned by one `ServiceContainer` instance; nothing is a module singleton.
"""
from dataclasses import dataclass, field
from typing import Dict, Optional

import httpx

from nutritrack.config import Settings
from nutritrack.core.chat.session import ChatSession
from nutritrack.core.insights.orchestrator import InsightOrchestrator
from nutritrack.core.llm.base import LanguageModelClient
from nutritrack.core.llm.gemini_client import GeminiClient, GeminiConfig
from nutritrack.core.llm.retry import RetryPolicy, RetryingLanguageModelClient
from nutritrack.core.stats.aggregator import PopulationStatsAggregator
from nutritrack.core.stats.patient_store import InMemoryPatientStore, PatientStore
from nutritrack.services.fruit_lookup import FruitLookupClient, LocalizedFruitLookup
from nutritrack.services.translation import TranslationCache
from nutritrack.utils import get_logger, ChatSessionBusyError

logger = get_logger(__name__)


def build_language_model(settings: Settings) -> RetryingLanguageModelClient:
    gemini = GeminiClient(GeminiConfig(
        api_key=settings.gemini_api_key,
        model=settings.gemini_model,
        temperature=settings.temperature,
        request_timeout_seconds=settings.request_timeout_seconds,
    ))
    policy = RetryPolicy(
        max_attempts=settings.max_attempts,
        backoff_seconds=settings.retry_backoff_seconds,
    )
    return RetryingLanguageModelClient(gemini, policy)


@dataclass
class ServiceContainer:
    settings: Settings
    client: LanguageModelClient
    store: PatientStore
    aggregator: PopulationStatsAggregator
    orchestrator: InsightOrchestrator
    translations: TranslationCache
    fruits: LocalizedFruitLookup
    sessions: Dict[str, ChatSession] = field(default_factory=dict)

    @classmethod
    def create(
        cls,
        settings: Settings,
        client: Optional[LanguageModelClient] = None,
        store: Optional[PatientStore] = None,
        fruit_transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "ServiceContainer":
        client = client or build_language_model(settings)
        store = store or InMemoryPatientStore()
        translations = TranslationCache(client, directory=settings.translation_cache_dir)
        fruits = LocalizedFruitLookup(
            FruitLookupClient(settings.fruit_api_url, transport=fruit_transport),
            translations,
        )
        logger.info("Service container initialized")
        return cls(
            settings=settings,
            client=client,
            store=store,
            aggregator=PopulationStatsAggregator(store),
            # Per-category budget covers every retry attempt plus its backoff
            orchestrator=InsightOrchestrator(
                client,
                call_timeout_seconds=settings.max_attempts
                * (settings.request_timeout_seconds + settings.retry_backoff_seconds),
            ),
            translations=translations,
            fruits=fruits,
        )

    def open_session(self, language: Optional[str] = None) -> ChatSession:
        session = ChatSession(
            self.client,
            language=language or self.settings.default_language,
            translations=self.translations,
        )
        self.sessions[session.session_id] = session
        return session

    def close_session(self, session_id: str) -> bool:
        """
        Drop a chat session. Returns False when the id is unknown.

        Raises:
            ChatSessionBusyError: the session is generating a reply
        """
        session = self.sessions.get(session_id)
        if session is None:
            return False
        if session.is_generating:
            raise ChatSessionBusyError(session_id)
        del self.sessions[session_id]
        logger.info(f"Chat session {session_id} closed, {len(self.sessions)} open")
        return True

    def llm_stats(self) -> dict:
        inner = getattr(self.client, "inner", self.client)
        get_stats = getattr(inner, "get_stats", None)
        return get_stats() if callable(get_stats) else {"is_available": True}

    def close(self) -> None:
        self.translations.close()
