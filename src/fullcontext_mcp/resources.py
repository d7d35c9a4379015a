"""
Shared resources handed to every tool operation.

The rate gate, content cache and backup store are process-wide state. They are
built once and passed to the reader, the mutation pipeline and the handlers,
so tests can construct isolated instances with fake clocks and temp dirs.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable

from .backup_store import BackupStore, utc_now
from .config import EngineConfig
from .content_cache import ContentCache
from .rate_gate import RateGate
from .structural_validator import StructuralValidator
from .token_counter import TokenCounter

logger = logging.getLogger(__name__)


@dataclass
class SharedResources:
    config: EngineConfig
    rate_gate: RateGate
    cache: ContentCache
    backups: BackupStore
    validator: StructuralValidator
    token_counter: TokenCounter | None = None

    @classmethod
    def create(
        cls,
        config: EngineConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        wall_clock: Callable[[], datetime] = utc_now,
        token_counter: TokenCounter | None = None,
    ) -> "SharedResources":
        """
        Build the standard resource bundle from configuration.

        Args:
            config: Engine configuration (environment-driven defaults if omitted)
            clock: Monotonic clock for the cache TTL and rate window
            sleep: Coroutine the rate gate waits with
            wall_clock: UTC clock for backup timestamps
            token_counter: Overrides the tiktoken counter built from config
        """
        config = config or EngineConfig()

        errors = config.validate()
        if errors:
            raise ValueError(f"Invalid configuration: {'; '.join(errors)}")

        if token_counter is None and config.count_tokens:
            token_counter = TokenCounter()

        logger.debug("Backups go to %s", config.backup_dir)
        return cls(
            config=config,
            rate_gate=RateGate(config, clock=clock, sleep=sleep),
            cache=ContentCache(
                max_entries=config.cache_max_entries,
                ttl_seconds=config.cache_ttl_seconds,
                clock=clock,
            ),
            backups=BackupStore(
                config.backup_dir,
                register_gitignore=config.register_gitignore,
                clock=wall_clock,
            ),
            validator=StructuralValidator(config.delimiter_extensions),
            token_counter=token_counter,
        )
