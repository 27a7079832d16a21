"""
Chat Assistant Module
"""
from .session import (
    ChatMessage,
    ChatSession,
    extract_categories,
    parse_numbered_questions,
    strip_category_tags,
)

__all__ = [
    "ChatMessage",
    "ChatSession",
    "extract_categories",
    "parse_numbered_questions",
    "strip_category_tags",
]
