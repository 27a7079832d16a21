"""
NutriAssist chat session.

Each turn makes two dependent language model calls: the answer, then three
follow-up questions derived from it. Turns run one at a time per session;
a message sent while a turn is generating is rejected.
"""
import asyncio
import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from nutritrack.core.llm.base import LanguageModelClient
from nutritrack.core.llm.prompts import build_chat_prompt, build_follow_up_prompt
from nutritrack.services.translation import TranslationCache
from nutritrack.utils import bind_logger, ChatSessionBusyError

WELCOME_MESSAGES = {
    "en": "Hello, I'm NutriAssist. How can I help with your HEIFA score analysis today?",
    "ja": "こんにちは、NutriAssistです。HEIFAスコア分析のお手伝いをどのようにすればよいですか？",
    "zh": "你好，我是NutriAssist。我能如何帮助您进行HEIFA评分分析？",
    "ms": "Halo, saya NutriAssist. Bagaimana saya boleh membantu dengan analisis skor HEIFA anda hari ini?",
    "fr": "Bonjour, je suis NutriAssist. Comment puis-je vous aider avec votre analyse de score HEIFA aujourd'hui ?",
}

DEFAULT_SUGGESTIONS = (
    "What differences exist between male and female vegetable scores?",
    "Which HEIFA components show the most significant gender differences?",
    "What common nutritional deficiencies appear in the patient population?",
)

FALLBACK_QUESTIONS = (
    "How do these nutritional aspects impact patient outcomes?",
    "What are the recommended daily values for this category?",
    "How do these metrics compare across patient demographics?",
)

APOLOGY_MESSAGE = "I'm sorry, I couldn't generate a response. Please try again later."

CATEGORY_KEYWORDS = (
    "vegetable", "fruit", "grain", "protein", "dairy", "water",
    "sodium", "fat", "alcohol", "sugar", "male", "female", "gender",
)

MAX_SUGGESTIONS = 3

_TAG_PATTERN = re.compile(r"#([a-zA-Z_]+)")
# "N." at a line start or after whitespace, not a decimal; items may share a line
_QUESTION_PATTERN = re.compile(
    r"(?:^|\s)\d+\.(?!\d)[ \t]*(.+?)(?=\s+\d+\.(?!\d)|$)", re.MULTILINE
)


def extract_categories(answer: str) -> List[str]:
    """`#word` tags in order, else any keyword mentioned in the answer."""
    tags = [m.group(1).lower() for m in _TAG_PATTERN.finditer(answer)]
    if tags:
        return tags
    lowered = answer.lower()
    return [keyword for keyword in CATEGORY_KEYWORDS if keyword in lowered]


def strip_category_tags(answer: str) -> str:
    return _TAG_PATTERN.sub("", answer).strip()


def parse_numbered_questions(text: str, limit: int = MAX_SUGGESTIONS) -> List[str]:
    questions = [m.group(1).strip() for m in _QUESTION_PATTERN.finditer(text)]
    return [q for q in questions if q][:limit]


@dataclass(frozen=True)
class ChatMessage:
    content: str
    is_from_user: bool
    categories: tuple = ()
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "content": self.content,
            "is_from_user": self.is_from_user,
            "categories": list(self.categories),
            "timestamp": self.timestamp.isoformat(),
        }


class ChatSession:
    """One clinician conversation with NutriAssist."""

    def __init__(
        self,
        client: LanguageModelClient,
        language: str = "en",
        translations: Optional[TranslationCache] = None,
        session_id: Optional[str] = None,
    ):
        self.client = client
        self.language = language
        self.translations = translations
        self.session_id = session_id or str(uuid.uuid4())
        self.logger = bind_logger(__name__, session=self.session_id, language=language)
        self._lock = asyncio.Lock()
        self._messages: List[ChatMessage] = []
        self._suggestions: List[str] = []
        self.reset()

    @property
    def messages(self) -> List[ChatMessage]:
        return list(self._messages)

    @property
    def suggested_questions(self) -> List[str]:
        return list(self._suggestions)

    @property
    def is_generating(self) -> bool:
        return self._lock.locked()

    def welcome_message(self) -> ChatMessage:
        content = WELCOME_MESSAGES.get(self.language, WELCOME_MESSAGES["en"])
        return ChatMessage(content=content, is_from_user=False, categories=("welcome",))

    def reset(self) -> None:
        """Start over with only the welcome message and the default suggestions."""
        if self.is_generating:
            raise ChatSessionBusyError(self.session_id)
        self._messages = [self.welcome_message()]
        self._suggestions = list(DEFAULT_SUGGESTIONS)

    def _append(self, message: ChatMessage) -> None:
        self._messages = self._messages + [message]

    async def localize_suggestions(self) -> List[str]:
        """Translate the default suggestions into the session language."""
        if self.language == "en" or self.translations is None:
            return self.suggested_questions
        localized = await self.translations.batch_translate(
            list(DEFAULT_SUGGESTIONS), self.language, source_lang="en"
        )
        if self._suggestions == list(DEFAULT_SUGGESTIONS):
            self._suggestions = localized
        return self.suggested_questions

    async def send_message(self, text: str) -> Optional[ChatMessage]:
        """
        Run one chat turn and return the assistant's reply.

        Blank input is ignored and returns None.

        Raises:
            ChatSessionBusyError: a previous turn is still generating
        """
        if not text or not text.strip():
            return None
        if self._lock.locked():
            raise ChatSessionBusyError(self.session_id)

        async with self._lock:
            self._append(ChatMessage(content=text, is_from_user=True))

            try:
                raw_answer = await self.client.generate(build_chat_prompt(text, self.language))
            except Exception as e:
                self.logger.error(f"Answer generation failed: {e}")
                reply = ChatMessage(content=APOLOGY_MESSAGE, is_from_user=False)
                self._append(reply)
                return reply

            categories = extract_categories(raw_answer)
            reply = ChatMessage(
                content=strip_category_tags(raw_answer),
                is_from_user=False,
                categories=tuple(categories),
            )
            self._append(reply)

            self._suggestions = await self._follow_up_questions(text, reply.content, categories)
            self.logger.info(
                "Turn complete", extra={"context": {"tags": categories, "messages": len(self._messages)}}
            )
            return reply

    async def _follow_up_questions(
        self, question: str, answer: str, categories: List[str]
    ) -> List[str]:
        prompt = build_follow_up_prompt(question, answer, categories, self.language)
        try:
            questions = parse_numbered_questions(await self.client.generate(prompt))
        except Exception as e:
            self.logger.warning(f"Follow-up generation failed: {e}")
            return list(FALLBACK_QUESTIONS)
        if not questions:
            self.logger.warning("Follow-up reply had no numbered list")
            return list(FALLBACK_QUESTIONS)
        return questions

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "language": self.language,
            "is_generating": self.is_generating,
            "messages": [m.to_dict() for m in self._messages],
            "suggested_questions": self.suggested_questions,
        }
