"""
Pytest Configuration and Fixtures

Shared fixtures for the NutriTrack insight, chat and translation tests.
"""
import asyncio
from pathlib import Path
import sys
from typing import Callable, List, Optional, Union

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from nutritrack.core.stats.patient_store import InMemoryPatientStore, PatientRecord, Sex
from nutritrack.services.translation import TranslationCache

Reply = Union[str, BaseException, Callable[[str], str]]


class FakeLanguageModelClient:
    """
    Scripted stand-in for GeminiClient.

    `responder` decides the reply for each prompt; when it returns an
    exception instance that exception is raised. Every prompt is recorded.
    """

    def __init__(
        self,
        responder: Optional[Callable[[str], Reply]] = None,
        replies: Optional[List[Reply]] = None,
        delay: float = 0.0,
    ):
        self.responder = responder
        self.replies = list(replies or [])
        self.delay = delay
        self.prompts: List[str] = []

    @property
    def call_count(self) -> int:
        return len(self.prompts)

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.delay:
            await asyncio.sleep(self.delay)

        if self.responder is not None:
            reply = self.responder(prompt)
        elif self.replies:
            reply = self.replies.pop(0)
        else:
            reply = ""

        if isinstance(reply, BaseException):
            raise reply
        return reply


@pytest.fixture
def fake_client_factory():
    """Build FakeLanguageModelClient instances inside a test."""
    return FakeLanguageModelClient


@pytest.fixture
def translation_cache(tmp_path):
    """TranslationCache factory writing to a per-test directory."""
    caches = []

    def _make(client) -> TranslationCache:
        cache = TranslationCache(client, directory=str(tmp_path / f"cache{len(caches)}"))
        caches.append(cache)
        return cache

    yield _make
    for cache in caches:
        cache.close()


@pytest.fixture
def sample_patients() -> List[PatientRecord]:
    """Two male and two female patients with mixed data coverage."""
    return [
        PatientRecord(
            user_id="1", sex=Sex.MALE, total_score=52.0,
            vegetables_score=3.0, fruits_score=2.0, protein_score=4.0,
            water_score=5.0, discretionary_score=6.0,
            vegetable_serves=2.0, fruit_serves=1.0, protein_serves=2.5, water_ml=1500.0,
        ),
        PatientRecord(
            user_id="2", sex=Sex.MALE, total_score=48.0,
            vegetables_score=3.4, fruits_score=4.0, protein_score=5.0,
            water_score=3.0,
            vegetable_serves=3.0, fruit_serves=2.0, water_ml=1700.0,
        ),
        PatientRecord(
            user_id="3", sex=Sex.FEMALE, total_score=61.0,
            vegetables_score=4.1, fruits_score=5.0, protein_score=3.0,
            water_score=4.0, discretionary_score=8.0,
            vegetable_serves=4.0, fruit_serves=2.0, protein_serves=2.0, water_ml=2000.0,
        ),
        PatientRecord(user_id="4", sex=Sex.FEMALE),
    ]


@pytest.fixture
def patient_store(sample_patients) -> InMemoryPatientStore:
    return InMemoryPatientStore(sample_patients)
