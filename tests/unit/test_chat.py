"""
Unit Tests for the NutriAssist Chat Session
"""
import asyncio

import pytest

from nutritrack.core.chat import (
    ChatSession,
    extract_categories,
    parse_numbered_questions,
    strip_category_tags,
)
from nutritrack.core.chat.session import (
    APOLOGY_MESSAGE,
    DEFAULT_SUGGESTIONS,
    FALLBACK_QUESTIONS,
)
from nutritrack.utils import ChatSessionBusyError, ServiceError, TransientNetworkError

ANSWER = "Fiber supports gut health. #fiber #HEIFA"
FOLLOW_UPS = "1. How does fiber affect HEIFA scores?\n2. Which foods are high in fiber?\n3. What fiber intake is recommended?"


class TestTextHelpers:

    def test_hash_tags_are_lowercased(self):
        assert extract_categories(ANSWER) == ["fiber", "heifa"]

    def test_keyword_fallback(self):
        answer = "Female patients eat more Vegetables and drink more water."
        assert extract_categories(answer) == ["vegetable", "water", "male", "female"]

    def test_no_tags_and_no_keywords(self):
        assert extract_categories("Please consult a dietitian.") == []

    def test_strip_tags(self):
        assert strip_category_tags(ANSWER) == "Fiber supports gut health."

    def test_parse_numbered_questions_caps_at_three(self):
        text = "Here you go:\n1. One?\n2.Two?\n3. Three?\n4. Four?"
        assert parse_numbered_questions(text) == ["One?", "Two?", "Three?"]

    def test_parse_without_numbering(self):
        assert parse_numbered_questions("- a\n- b") == []

    def test_parse_numbered_items_on_one_line(self):
        text = "1. What is A? 2. What is B? 3. What is C?"
        assert parse_numbered_questions(text) == ["What is A?", "What is B?", "What is C?"]

    def test_decimal_in_prose_is_not_a_question(self):
        assert parse_numbered_questions("Aim for 3.5 serves of fruit each day.") == []


class TestChatSession:

    def test_initial_state(self, fake_client_factory):
        session = ChatSession(fake_client_factory(), language="en")
        [welcome] = session.messages
        assert welcome.content.startswith("Hello, I'm NutriAssist.")
        assert welcome.categories == ("welcome",)
        assert not welcome.is_from_user
        assert session.suggested_questions == list(DEFAULT_SUGGESTIONS)
        assert not session.is_generating

    @pytest.mark.parametrize("language,fragment", [
        ("ja", "こんにちは"),
        ("fr", "Bonjour"),
        ("de", "Hello"),
    ])
    def test_welcome_is_localized(self, fake_client_factory, language, fragment):
        session = ChatSession(fake_client_factory(), language=language)
        assert fragment in session.messages[0].content

    async def test_blank_message_is_noop(self, fake_client_factory):
        client = fake_client_factory()
        session = ChatSession(client)

        assert await session.send_message("   ") is None
        assert len(session.messages) == 1
        assert client.call_count == 0

    async def test_successful_turn(self, fake_client_factory):
        client = fake_client_factory(replies=[ANSWER, FOLLOW_UPS])
        session = ChatSession(client, language="en")

        reply = await session.send_message("Tell me about fiber")

        assert reply.content == "Fiber supports gut health."
        assert list(reply.categories) == ["fiber", "heifa"]
        assert [m.is_from_user for m in session.messages] == [False, True, False]
        assert session.messages[1].content == "Tell me about fiber"
        assert session.suggested_questions == [
            "How does fiber affect HEIFA scores?",
            "Which foods are high in fiber?",
            "What fiber intake is recommended?",
        ]
        assert client.call_count == 2
        assert "USER QUESTION: Tell me about fiber" in client.prompts[0]
        assert "Focus on fiber, heifa" in client.prompts[1]
        assert not session.is_generating

    async def test_unparseable_follow_ups_use_fallback(self, fake_client_factory):
        client = fake_client_factory(replies=[ANSWER, "No list here, sorry."])
        session = ChatSession(client)

        await session.send_message("Tell me about fiber")

        assert session.suggested_questions == list(FALLBACK_QUESTIONS)

    async def test_failed_follow_up_call_uses_fallback(self, fake_client_factory):
        client = fake_client_factory(replies=[ANSWER, TransientNetworkError("offline")])
        session = ChatSession(client)

        reply = await session.send_message("Tell me about fiber")

        assert reply.content == "Fiber supports gut health."
        assert session.suggested_questions == list(FALLBACK_QUESTIONS)

    async def test_failed_answer_appends_apology(self, fake_client_factory):
        client = fake_client_factory(replies=[ServiceError("quota")])
        session = ChatSession(client)

        reply = await session.send_message("Tell me about fiber")

        assert reply.content == APOLOGY_MESSAGE
        assert len(session.messages) == 3
        assert session.suggested_questions == list(DEFAULT_SUGGESTIONS)
        assert client.call_count == 1
        assert not session.is_generating

    async def test_concurrent_turn_is_rejected(self, fake_client_factory):
        client = fake_client_factory(responder=lambda p: ANSWER, delay=0.1)
        session = ChatSession(client)

        first = asyncio.create_task(session.send_message("first"))
        await asyncio.sleep(0.01)
        assert session.is_generating

        with pytest.raises(ChatSessionBusyError):
            await session.send_message("second")

        await first
        user_messages = [m.content for m in session.messages if m.is_from_user]
        assert user_messages == ["first"]

    async def test_reset(self, fake_client_factory):
        client = fake_client_factory(replies=[ANSWER, FOLLOW_UPS])
        session = ChatSession(client)
        await session.send_message("Tell me about fiber")

        session.reset()

        assert len(session.messages) == 1
        assert session.suggested_questions == list(DEFAULT_SUGGESTIONS)

    async def test_localize_suggestions(self, fake_client_factory, translation_cache):
        client = fake_client_factory(replies=["Question A\nQuestion B\nQuestion C"])
        session = ChatSession(client, language="fr", translations=translation_cache(client))

        assert await session.localize_suggestions() == ["Question A", "Question B", "Question C"]

    async def test_localize_suggestions_keeps_english_on_failure(
        self, fake_client_factory, translation_cache
    ):
        client = fake_client_factory(replies=[ServiceError("down")])
        session = ChatSession(client, language="ja", translations=translation_cache(client))

        assert await session.localize_suggestions() == list(DEFAULT_SUGGESTIONS)
