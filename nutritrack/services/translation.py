import hashlib
import re
import shutil
import tempfile
from typing import List, Optional, Sequence, Tuple

from diskcache import Cache

from nutritrack.core.llm.base import LanguageModelClient
from nutritrack.core.llm.prompts import build_batch_translation_prompt, build_translation_prompt
from nutritrack.utils import get_logger, TranslationError

logger = get_logger(__name__)

_LABEL_PATTERN = re.compile(r"^(?:translated\s+text|translation)\s*:\s*", re.IGNORECASE)
_QUOTE_PAIRS = (('"', '"'), ("'", "'"), ("“", "”"), ("「", "」"))


def clean_translation(raw: str) -> str:
    """Trim a leading `Translation:` label and one pair of wrapping quotes."""
    text = _LABEL_PATTERN.sub("", raw.strip()).strip()
    for opening, closing in _QUOTE_PAIRS:
        if len(text) >= 2 and text.startswith(opening) and text.endswith(closing):
            text = text[1:-1].strip()
            break
    return text


def cache_key(text: str, target_lang: str) -> str:
    text_hash = hashlib.md5(text.encode()).hexdigest()
    return f"trans_{target_lang}_{text_hash}"


class TranslationCache:
    """
    Memoizing translator backed by a diskcache `Cache`.

    Entries are keyed by (text, target language) and written only after a
    successful translation. The first value written for a key wins; later
    writes for the same key are discarded. With no directory the cache lives
    in a private temporary directory that `close` removes.
    """

    def __init__(self, client: LanguageModelClient, directory: Optional[str] = None):
        self.client = client
        self._owns_directory = directory is None
        self.directory = directory or tempfile.mkdtemp(prefix="nutritrack-translations-")
        self._cache = Cache(self.directory)
        self._hits = 0
        self._misses = 0

    def __len__(self) -> int:
        return len(self._cache)

    def contains(self, text: str, target_lang: str) -> bool:
        return cache_key(text, target_lang) in self._cache

    def get_cached(self, text: str, target_lang: str) -> Optional[str]:
        return self._cache.get(cache_key(text, target_lang))

    def _store(self, key: str, translated: str) -> str:
        """Write `translated` unless the key already has a value; return the stored value."""
        if not self._cache.add(key, translated):
            logger.debug(f"Translation {key} already cached, keeping first value")
        stored = self._cache.get(key)
        return translated if stored is None else stored

    async def translate(self, text: str, source_lang: str, target_lang: str) -> str:
        """
        Translate `text`, consulting the cache first.

        Raises:
            TranslationError: the model call failed or returned nothing usable
        """
        if not text.strip() or source_lang == target_lang:
            return text

        key = cache_key(text, target_lang)
        cached = self._cache.get(key)
        if cached is not None:
            self._hits += 1
            logger.debug(f"Translation CACHE HIT: {source_lang} -> {target_lang}")
            return cached

        self._misses += 1
        prompt = build_translation_prompt(text, source_lang, target_lang)
        try:
            raw = await self.client.generate(prompt)
        except Exception as e:
            logger.error(f"Translation {source_lang} -> {target_lang} failed: {e}")
            raise TranslationError(
                "Translation failed. Please try again later.", target_lang=target_lang
            ) from e

        translated = clean_translation(raw)
        if not translated:
            logger.warning(f"Empty translation for {source_lang} -> {target_lang}, not caching")
            raise TranslationError("Translation returned no text", target_lang=target_lang)

        translated = self._store(key, translated)
        logger.info(f"Translated {len(text)} -> {len(translated)} chars ({source_lang} -> {target_lang})")
        return translated

    async def localize(self, text: str, target_lang: str, source_lang: str = "en") -> str:
        """Like `translate`, but falls back to the original text on failure."""
        try:
            return await self.translate(text, source_lang, target_lang)
        except TranslationError as e:
            logger.warning(f"Keeping untranslated text: {e.message}")
            return text

    async def batch_translate(
        self,
        texts: Sequence[str],
        target_lang: str,
        source_lang: str = "en",
    ) -> List[str]:
        """
        Translate many strings with at most one model call.

        Returned list is aligned with `texts`. Items the model did not return
        a line for keep their original text and are not cached.
        """
        results = list(texts)
        if source_lang == target_lang or not results:
            return results

        pending: List[Tuple[int, str]] = []
        for index, text in enumerate(results):
            if not text.strip():
                continue
            cached = self._cache.get(cache_key(text, target_lang))
            if cached is not None:
                self._hits += 1
                results[index] = cached
            else:
                pending.append((index, text))

        if not pending:
            return results

        self._misses += len(pending)
        prompt = build_batch_translation_prompt([t for _, t in pending], target_lang, source_lang)
        try:
            raw = await self.client.generate(prompt)
        except Exception as e:
            logger.error(f"Batch translation to {target_lang} failed: {e}")
            return results

        lines = [clean_translation(line) for line in raw.splitlines() if line.strip()]
        for position, (index, text) in enumerate(pending):
            if position < len(lines) and lines[position]:
                results[index] = self._store(cache_key(text, target_lang), lines[position])
            else:
                logger.warning(f"No translation line for item {index}, keeping original")

        return results

    def clear(self) -> None:
        self._cache.clear()
        logger.info("Translation cache cleared")

    def close(self) -> None:
        self._cache.close()
        if self._owns_directory:
            shutil.rmtree(self.directory, ignore_errors=True)

    def get_stats(self) -> dict:
        return {
            "entries": len(self._cache),
            "hits": self._hits,
            "misses": self._misses,
            "directory": self.directory,
        }
