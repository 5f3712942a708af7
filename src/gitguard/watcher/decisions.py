"""
Turns a flushed batch of risky files into a user decision and applies it
"""

from pathlib import Path
from typing import Optional, Sequence, Union

from gitguard.gitignore import GitignoreFile
from gitguard.models import BatchDecision, ModificationResult, PendingEvent, UserDecision
from gitguard.notifications import Notifier, format_event_details, group_by_pattern
from gitguard.settings import SettingsStore
from gitguard.utils import get_logger
from gitguard.watcher.batcher import EventBatcher

logger = get_logger(__name__)


class DecisionHandler:
    """
    Presents flushed events and carries out the answer

    Args:
        root: Project root whose ignore file is updated
        notifier: Prompt implementation
        gitignore: Ignore-file model
        batcher: Batcher to record session dismissals on
        settings_store: Persists "don't warn again" choices when given
    """

    def __init__(self, root: Union[str, Path], notifier: Notifier, gitignore: GitignoreFile,
                 batcher: Optional[EventBatcher] = None,
                 settings_store: Optional[SettingsStore] = None):
        self.root = Path(root)
        self.notifier = notifier
        self.gitignore = gitignore
        self.batcher = batcher
        self.settings_store = settings_store

    async def handle(self, events: Sequence[PendingEvent]) -> Optional[ModificationResult]:
        """Prompt once for the whole flush"""
        if not events:
            return None
        if len(events) == 1:
            return await self.handle_single(events[0])
        return await self.handle_batch(events)

    async def handle_single(self, event: PendingEvent) -> Optional[ModificationResult]:
        decision = await self.notifier.risky_file(event)
        logger.debug(f"Decision for {event.path}: {decision.value}")

        if decision is UserDecision.ADD_TO_GITIGNORE:
            result = self.gitignore.add_pattern(self.root, event.matched_pattern, event.rule.reason)
            self.notifier.patterns_added(result)
            return result

        if decision is UserDecision.DISABLE_WARNINGS:
            self.dismiss(event.matched_pattern)
        return None

    async def handle_batch(self, events: Sequence[PendingEvent]) -> Optional[ModificationResult]:
        decision = await self.notifier.risky_batch(events)
        logger.debug(f"Decision for {len(events)} files: {decision.value}")

        if decision is BatchDecision.ADD_ALL:
            # One rule per distinct pattern, in first-seen order
            rules = [grouped[0].rule for grouped in group_by_pattern(events).values()]
            result = self.gitignore.append_rules(self.root, rules)
            self.notifier.patterns_added(result)
            return result

        if decision is BatchDecision.VIEW_DETAILS:
            self.notifier.show_details(format_event_details(events))
        return None

    def dismiss(self, pattern: str):
        """Stop warning about a pattern for this session and in saved settings"""
        if self.batcher is not None:
            self.batcher.dismiss_pattern(pattern)
        if self.settings_store is not None:
            self.settings_store.add_suppressed_warning(pattern)
        logger.info(f"Warnings disabled for pattern: {pattern}")
