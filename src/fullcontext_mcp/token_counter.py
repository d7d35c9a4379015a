"""
Token estimates for read payloads.

Read responses report roughly how many tokens they will cost the agent. The
tiktoken encoder is loaded lazily and off the event loop because the first
load can be slow.
"""

import asyncio
import hashlib
import logging
from collections import OrderedDict

import tiktoken

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4"


class TokenCounter:
    """Counts tokens with tiktoken, memoizing recent payloads."""

    def __init__(self, model: str = DEFAULT_MODEL, max_cached: int = 256):
        self.model = model
        self._encoder: tiktoken.Encoding | None = None
        self._cache: OrderedDict[str, int] = OrderedDict()
        self._max_cached = max_cached

    @property
    def encoder(self) -> tiktoken.Encoding:
        """Lazy-load tiktoken encoder."""
        if self._encoder is None:
            self._encoder = tiktoken.encoding_for_model(self.model)
        return self._encoder

    async def get_encoder_async(self) -> tiktoken.Encoding:
        if self._encoder is None:
            self._encoder = await asyncio.to_thread(tiktoken.encoding_for_model, self.model)
        return self._encoder

    @staticmethod
    def _key(text: str) -> str:
        return hashlib.sha256(text.encode("utf-8", errors="replace")).hexdigest()[:32]

    def _remember(self, key: str, count: int) -> int:
        self._cache[key] = count
        while len(self._cache) > self._max_cached:
            self._cache.popitem(last=False)
        return count

    def count(self, text: str) -> int:
        if not text:
            return 0
        key = self._key(text)
        if key in self._cache:
            return self._cache[key]
        return self._remember(key, len(self.encoder.encode(text, disallowed_special=())))

    async def count_async(self, text: str) -> int:
        """Count tokens without blocking event loop."""
        if not text:
            return 0
        key = self._key(text)
        if key in self._cache:
            return self._cache[key]
        encoder = await self.get_encoder_async()
        count = await asyncio.to_thread(lambda: len(encoder.encode(text, disallowed_special=())))
        return self._remember(key, count)
