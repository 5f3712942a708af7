"""
Live monitoring of file creation in a project root

Wires a watchdog observer to the event batcher and the decision handler.
"""

import asyncio
from pathlib import Path
from typing import Optional, Sequence, Set, Union

from watchdog.observers import Observer

from gitguard.gitignore import GitignoreFile
from gitguard.models import PendingEvent, Rule
from gitguard.notifications import Notifier
from gitguard.rules.engine import RuleEngine
from gitguard.settings import GitGuardSettings, SettingsStore
from gitguard.utils import get_logger
from gitguard.watcher.batcher import EventBatcher, Scheduler
from gitguard.watcher.decisions import DecisionHandler
from gitguard.watcher.file_handler import CreatedFileHandler

logger = get_logger(__name__)


class FileCreationMonitor:
    """
    Watches a project root and prompts about risky new files

    Must be started from inside a running event loop.
    """

    def __init__(self, root: Union[str, Path], rules: Sequence[Rule], notifier: Notifier,
                 settings: Optional[GitGuardSettings] = None,
                 settings_store: Optional[SettingsStore] = None,
                 gitignore: Optional[GitignoreFile] = None,
                 rule_engine: Optional[RuleEngine] = None,
                 scheduler: Optional[Scheduler] = None):
        """
        Initialize the monitor

        Args:
            root: Project root to watch recursively
            rules: Active rules
            notifier: Prompt implementation
            settings: Debounce delay and suppressed warnings, defaults to the store's
            settings_store: Receives "don't warn again" choices
            gitignore: Ignore-file model for coverage checks and writes
            rule_engine: Engine used for matching
            scheduler: Timer source for the batcher
        """
        self.root = Path(root).resolve()
        if settings is None:
            settings = settings_store.settings if settings_store else GitGuardSettings()
        self.settings = settings
        self.gitignore = gitignore or GitignoreFile()

        self.batcher = EventBatcher(
            rule_engine or RuleEngine(),
            on_flush=self._on_flush,
            is_ignored=lambda path: self.gitignore.is_ignored(self.root, path),
            suppressed_patterns=settings.suppressed_warnings,
            debounce_seconds=settings.debounce_seconds,
            scheduler=scheduler,
        )
        self.batcher.set_rules(rules)
        self.decisions = DecisionHandler(
            self.root, notifier, self.gitignore,
            batcher=self.batcher, settings_store=settings_store,
        )

        self._observer: Optional[Observer] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._tasks: Set[asyncio.Task] = set()

    def update_rules(self, rules: Sequence[Rule]):
        """Swap the active rules, e.g. after frameworks are re-detected"""
        self.batcher.set_rules(rules)

    def is_running(self) -> bool:
        return self._observer is not None and self._observer.is_alive()

    def start(self):
        if self._observer is not None:
            logger.warning("Monitor already running")
            return

        self._loop = asyncio.get_running_loop()
        handler = CreatedFileHandler(self.root, self.batcher.submit, loop=self._loop)
        self.batcher.start()

        self._observer = Observer()
        self._observer.schedule(handler, str(self.root), recursive=True)
        self._observer.start()
        logger.info(f"Watching {self.root} for risky files")

    def stop(self):
        if self._observer is None:
            logger.warning("Monitor not running")
            return

        self.batcher.stop()
        self._observer.stop()
        self._observer.join()
        self._observer = None

        for task in list(self._tasks):
            task.cancel()
        logger.info("File creation monitor stopped")

    def _on_flush(self, events: Sequence[PendingEvent]):
        loop = self._loop or asyncio.get_running_loop()
        task = loop.create_task(self.decisions.handle(list(events)))
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task):
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Error handling risky files: {task.exception()}", exc_info=task.exception())

    async def drain(self):
        """Wait for prompts that are still in progress"""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    def __enter__(self):
        """Context manager support"""
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager cleanup"""
        self.stop()
