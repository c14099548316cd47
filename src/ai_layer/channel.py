"""
Advisory channel: request/response exchange between the tick loop and the advisory service.

- request() hands a call to a small thread pool and returns a token (epoch, seq)
- at most one outstanding request per purpose; a new one supersedes the old
- collect() is called at the start of a tick and returns finished results,
  plus failures for requests older than the timeout
- reset() bumps the epoch; anything issued before is never delivered
"""

import logging
import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from src.simulation_layer.exceptions import AdvisoryUnavailable

logger = logging.getLogger(__name__)


class Purpose(str, Enum):
    GOAL = "goal"
    EVENT = "event"
    ACTION = "action"


@dataclass(frozen=True)
class Token:
    epoch: int
    seq: int
    purpose: Purpose


@dataclass(frozen=True)
class AdvisoryResult:
    token: Token
    value: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def purpose(self) -> Purpose:
        return self.token.purpose


@dataclass
class _Outstanding:
    token: Token
    future: Future
    issued_day: int


class AdvisoryChannel:
    """Never blocks the caller except in wait_idle(), which exists for tests and shutdown."""

    def __init__(
        self,
        max_workers: int = 2,
        timeout_ticks: int = 10,
        executor: Optional[Executor] = None,
    ):
        self._executor = executor or ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="advisory"
        )
        self.timeout_ticks = timeout_ticks
        self._lock = threading.Lock()
        self._epoch = 0
        self._seq = 0
        self._outstanding: Dict[Purpose, _Outstanding] = {}

    @property
    def epoch(self) -> int:
        return self._epoch

    def request(self, purpose: Purpose, fn: Callable[..., Any], *args: Any, day: int = 0) -> Token:
        with self._lock:
            self._seq += 1
            token = Token(self._epoch, self._seq, purpose)
            previous = self._outstanding.pop(purpose, None)
            if previous is not None:
                previous.future.cancel()
                logger.debug("Advisory %s request %d superseded by %d", purpose.value, previous.token.seq, token.seq)
            future = self._executor.submit(fn, *args)
            self._outstanding[purpose] = _Outstanding(token, future, day)
        logger.debug("Advisory %s request %d issued on day %d", purpose.value, token.seq, day)
        return token

    def pending(self, purpose: Purpose) -> bool:
        with self._lock:
            return purpose in self._outstanding

    def outstanding_token(self, purpose: Purpose) -> Optional[Token]:
        with self._lock:
            entry = self._outstanding.get(purpose)
            return entry.token if entry else None

    def collect(self, day: int) -> List[AdvisoryResult]:
        """Drain finished or expired requests of the current epoch, in issue order."""
        results: List[AdvisoryResult] = []
        with self._lock:
            for purpose, entry in sorted(self._outstanding.items(), key=lambda kv: kv[1].token.seq):
                if entry.token.epoch != self._epoch:
                    del self._outstanding[purpose]
                    continue
                if entry.future.done():
                    del self._outstanding[purpose]
                    if entry.future.cancelled():
                        continue
                    results.append(self._to_result(entry))
                elif day - entry.issued_day >= self.timeout_ticks:
                    del self._outstanding[purpose]
                    entry.future.cancel()
                    logger.warning("Advisory %s request %d timed out", purpose.value, entry.token.seq)
                    results.append(AdvisoryResult(entry.token, error="timed out"))
        return results

    def _to_result(self, entry: _Outstanding) -> AdvisoryResult:
        error = entry.future.exception()
        if error is None:
            return AdvisoryResult(entry.token, value=entry.future.result())
        if isinstance(error, AdvisoryUnavailable):
            logger.warning("Advisory %s unavailable: %s", entry.token.purpose.value, error)
        else:
            logger.error(
                "Advisory %s failed unexpectedly: %r", entry.token.purpose.value, error, exc_info=error
            )
        return AdvisoryResult(entry.token, error=str(error) or type(error).__name__)

    def reset(self) -> None:
        """Invalidate everything in flight."""
        with self._lock:
            self._epoch += 1
            for entry in self._outstanding.values():
                entry.future.cancel()
            dropped = len(self._outstanding)
            self._outstanding.clear()
        logger.info("Advisory channel reset to epoch %d (%d requests dropped)", self._epoch, dropped)

    def wait_idle(self, timeout: Optional[float] = 5.0) -> None:
        with self._lock:
            futures = [e.future for e in self._outstanding.values()]
        if futures:
            wait(futures, timeout=timeout)

    def shutdown(self, wait_for_workers: bool = False) -> None:
        self.reset()
        self._executor.shutdown(wait=wait_for_workers, cancel_futures=True)
