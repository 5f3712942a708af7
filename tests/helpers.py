"""Test doubles and builders shared by the gitguard test suite"""

import json
import threading
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

from gitguard.models import (
    BatchDecision,
    Ecosystem,
    FrameworkDetection,
    PendingEvent,
    PreCommitDecision,
    Rule,
    Severity,
    StagedFileWarning,
    UserDecision,
)
from gitguard.notifications import Notifier


class FakeTimer:
    def __init__(self, when: float, callback):
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeScheduler:
    """Logical clock: timers only fire when the test advances time"""

    def __init__(self):
        self.now = 0.0
        self.timers: List[FakeTimer] = []

    def call_later(self, delay, callback):
        timer = FakeTimer(self.now + delay, callback)
        self.timers.append(timer)
        return timer

    @property
    def armed(self) -> List[FakeTimer]:
        return [t for t in self.timers if not t.cancelled]

    def advance(self, seconds: float):
        self.now += seconds
        due = sorted(
            (t for t in self.timers if not t.cancelled and t.when <= self.now + 1e-9),
            key=lambda t: t.when,
        )
        for timer in due:
            self.timers.remove(timer)
            if not timer.cancelled:
                timer.callback()


class RecordingNotifier(Notifier):
    """Notifier with canned answers that records every call"""

    def __init__(self, single=UserDecision.IGNORE_ONCE, batch=BatchDecision.IGNORE,
                 pre_commit=PreCommitDecision.CANCEL, frameworks="dismiss",
                 selected: Optional[Sequence[Rule]] = None):
        self.single = single
        self.batch = batch
        self.pre_commit = pre_commit
        self.frameworks = frameworks
        self.selected = selected
        self.calls: List[tuple] = []
        self.messages: List[str] = []
        self.errors: List[str] = []
        self.details: List[str] = []

    async def frameworks_detected(self, frameworks, missing_rules):
        self.calls.append(("frameworks", list(frameworks), list(missing_rules)))
        return self.frameworks

    async def select_rules(self, rules):
        self.calls.append(("select", list(rules)))
        return list(rules) if self.selected is None else list(self.selected)

    async def risky_file(self, event: PendingEvent):
        self.calls.append(("single", event))
        return self.single

    async def risky_batch(self, events: Sequence[PendingEvent]):
        self.calls.append(("batch", list(events)))
        return self.batch

    async def pre_commit_warning(self, warnings: Sequence[StagedFileWarning]):
        self.calls.append(("pre_commit", list(warnings)))
        return self.pre_commit

    def show_details(self, text: str):
        self.details.append(text)

    def info(self, message: str):
        self.messages.append(message)

    def error(self, message: str, exc=None):
        self.errors.append(message)


class HeldInput:
    """Input stream whose readline blocks until released"""

    def __init__(self, line: str):
        self.line = line
        self.reads = 0
        self.reading = threading.Event()
        self.release = threading.Event()

    def readline(self) -> str:
        self.reads += 1
        self.reading.set()
        self.release.wait(5)
        return self.line


def rule(pattern: str, severity: Severity = Severity.RECOMMENDED, reason: str = "test reason") -> Rule:
    return Rule(pattern=pattern, severity=severity, reason=reason)


def detection(framework_id: str, confidence: float = 0.9, path: str = "package.json",
              ecosystem=None, name: Optional[str] = None) -> FrameworkDetection:
    return FrameworkDetection(
        id=framework_id,
        display_name=name or framework_id,
        detected_at_path=path,
        confidence=confidence,
        ecosystem=ecosystem or Ecosystem.NODE,
    )


def write_tree(root: Path, files: Dict[str, Union[str, dict]]) -> Path:
    """Create files under root; dict values are written as JSON"""
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, dict):
            content = json.dumps(content)
        path.write_text(content, encoding="utf-8")
    return root


