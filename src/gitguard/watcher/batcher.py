"""
Debounced batching of risky file-creation events

Events are collected into a pending map keyed by path. Every qualifying
event re-arms a single timer; when the timer fires without being re-armed
the whole map is flushed as one batch. The clock is injected so tests can
drive the batcher without sleeping.
"""

import asyncio
from enum import Enum
from typing import Callable, Dict, List, Optional, Protocol, Sequence, Set

from gitguard.models import PendingEvent, Rule
from gitguard.pattern_matcher import normalize_path
from gitguard.rules.engine import RuleEngine
from gitguard.utils import get_logger

logger = get_logger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 0.5


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Anything that can run a callback once after a delay"""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class LoopScheduler:
    """Scheduler backed by the running asyncio event loop"""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(delay, callback)


class WatchState(str, Enum):
    STOPPED = "stopped"
    WATCHING = "watching"
    FLUSHING = "flushing"


class EventBatcher:
    """
    Collects risky file creations and flushes them after a quiet period

    Args:
        rule_engine: Engine used to match paths against the active rules
        on_flush: Called with the batch of pending events when the timer fires
        is_ignored: Returns True when the ignore file already covers a path
        suppressed_patterns: Patterns from configuration that never warn
        debounce_seconds: Quiet period before a flush
        scheduler: Timer source, defaults to the running event loop
    """

    def __init__(self,
                 rule_engine: RuleEngine,
                 on_flush: Callable[[List[PendingEvent]], None],
                 is_ignored: Optional[Callable[[str], bool]] = None,
                 suppressed_patterns: Optional[Sequence[str]] = None,
                 debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
                 scheduler: Optional[Scheduler] = None):
        self.rule_engine = rule_engine
        self.on_flush = on_flush
        self.is_ignored = is_ignored
        self.suppressed_patterns: Set[str] = set(suppressed_patterns or ())
        self.debounce_seconds = debounce_seconds
        self.scheduler: Scheduler = scheduler or LoopScheduler()

        self.rules: List[Rule] = []
        self.state = WatchState.STOPPED
        self._pending: Dict[str, PendingEvent] = {}
        self._dismissed: Set[str] = set()
        self._timer: Optional[TimerHandle] = None

    @property
    def pending(self) -> List[PendingEvent]:
        return list(self._pending.values())

    @property
    def dismissed_patterns(self) -> Set[str]:
        return set(self._dismissed)

    def set_rules(self, rules: Sequence[Rule]):
        self.rules = list(rules)
        logger.debug(f"Batcher watching {len(self.rules)} rules")

    def start(self):
        if self.state is WatchState.STOPPED:
            self.state = WatchState.WATCHING
            logger.debug("Event batcher started")

    def stop(self):
        """Cancel the armed timer and drop pending events without flushing"""
        self._cancel_timer()
        dropped = len(self._pending)
        self._pending.clear()
        self.state = WatchState.STOPPED
        if dropped:
            logger.debug(f"Event batcher stopped, discarded {dropped} pending events")

    def dismiss_pattern(self, pattern: str):
        """Never queue this pattern again for the rest of the session"""
        self._dismissed.add(pattern)
        # Already-queued events for the pattern are dropped too
        for path in [p for p, event in self._pending.items() if event.matched_pattern == pattern]:
            del self._pending[path]

    def suppress_pattern(self, pattern: str):
        self.suppressed_patterns.add(pattern)

    def qualify(self, relative_path: str) -> Optional[PendingEvent]:
        """
        Build a pending event for a path, or None when it should not warn

        A path qualifies when the ignore file does not cover it, it matches an
        active rule, and that rule's pattern is neither dismissed for the
        session nor suppressed in settings.
        """
        path = normalize_path(relative_path)
        if self.is_ignored is not None and self.is_ignored(path):
            logger.trace(f"Already ignored: {path}")
            return None

        rule = self.rule_engine.match_first(path, self.rules)
        if rule is None:
            return None

        if rule.pattern in self._dismissed or rule.pattern in self.suppressed_patterns:
            logger.trace(f"Pattern {rule.pattern} is dismissed, skipping {path}")
            return None

        return PendingEvent(path=path, matched_pattern=rule.pattern, rule=rule)

    def submit(self, relative_path: str) -> bool:
        """
        Offer a newly created file to the batcher

        Returns:
            True when the event was queued
        """
        if self.state is WatchState.STOPPED:
            return False

        event = self.qualify(relative_path)
        if event is None:
            return False

        # Repeated creation of the same path replaces the earlier entry
        self._pending[event.path] = event
        self._arm_timer()
        logger.debug(f"Queued {event.path} ({event.matched_pattern}), {len(self._pending)} pending")
        return True

    def _arm_timer(self):
        self._cancel_timer()
        self._timer = self.scheduler.call_later(self.debounce_seconds, self._flush)

    def _cancel_timer(self):
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _flush(self):
        self._timer = None
        if self.state is not WatchState.WATCHING or not self._pending:
            return

        self.state = WatchState.FLUSHING
        batch = list(self._pending.values())
        self._pending.clear()
        logger.info(f"Flushing {len(batch)} risky file events")
        try:
            self.on_flush(batch)
        except Exception as e:
            logger.error(f"Error handling flushed events: {e}", exc_info=True)
        finally:
            if self.state is WatchState.FLUSHING:
                self.state = WatchState.WATCHING
