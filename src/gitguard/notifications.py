"""
User-facing prompts

``Notifier`` is the interface the watcher, scanner and CLI talk to. The
console implementation prints to a stream and reads one-letter answers from
stdin. When stdin is not a terminal it never blocks and answers every prompt
with a fixed, non-destructive default.
"""

import asyncio
import sys
import threading
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence, TextIO, Tuple

from gitguard.models import (
    BatchDecision,
    FrameworkDetection,
    ModificationResult,
    PendingEvent,
    PreCommitDecision,
    Rule,
    Severity,
    StagedFileWarning,
    UserDecision,
)
from gitguard.utils import get_logger

logger = get_logger(__name__)

RULER = "═" * 59

SEVERITY_HEADINGS = {
    Severity.CRITICAL: "🚨 CRITICAL - Security Risk:",
    Severity.RECOMMENDED: "⚠️ RECOMMENDED - Best Practice:",
    Severity.OPTIONAL: "ℹ️ OPTIONAL - Consider Ignoring:",
}

# Shown per group before "... and N more"
PREVIEW_LIMIT = 3


def group_by_pattern(events: Sequence[PendingEvent]) -> Dict[str, List[PendingEvent]]:
    """Group pending events by matched pattern, in first-seen order"""
    groups: Dict[str, List[PendingEvent]] = {}
    for event in events:
        groups.setdefault(event.matched_pattern, []).append(event)
    return groups


def format_event_details(events: Sequence[PendingEvent]) -> str:
    """Severity-grouped report of risky file events"""
    lines = [RULER, "  GitGuard - Risky Files Detected", RULER, ""]
    for severity in Severity:
        matching = [e for e in events if e.rule.severity is severity]
        if not matching:
            continue
        lines.append(SEVERITY_HEADINGS[severity])
        for event in matching:
            lines.append(f"  File: {event.path}")
            lines.append(f"  Pattern: {event.matched_pattern}")
            lines.append(f"  Reason: {event.rule.reason}")
            lines.append("")
    return "\n".join(lines)


def format_batch_summary(events: Sequence[PendingEvent]) -> str:
    lines = [f"⚠️ GitGuard: {len(events)} files should be in .gitignore"]
    for pattern, grouped in group_by_pattern(events).items():
        icon = grouped[0].rule.severity.icon
        lines.append(f"  {icon} {pattern} ({len(grouped)} files)")
        for event in grouped[:PREVIEW_LIMIT]:
            lines.append(f"      {event.path}")
        if len(grouped) > PREVIEW_LIMIT:
            lines.append(f"      ... and {len(grouped) - PREVIEW_LIMIT} more")
    return "\n".join(lines)


class Notifier(ABC):
    """Prompts the user and reports outcomes"""

    @abstractmethod
    async def frameworks_detected(self, frameworks: Sequence[FrameworkDetection],
                                  missing_rules: Sequence[Rule]) -> str:
        """Return 'suggest', 'ignore' or 'dismiss'"""

    @abstractmethod
    async def select_rules(self, rules: Sequence[Rule]) -> List[Rule]:
        """Let the user pick which rules to add"""

    @abstractmethod
    async def risky_file(self, event: PendingEvent) -> UserDecision:
        """Ask about a single risky file"""

    @abstractmethod
    async def risky_batch(self, events: Sequence[PendingEvent]) -> BatchDecision:
        """Ask about several risky files at once"""

    @abstractmethod
    async def pre_commit_warning(self, warnings: Sequence[StagedFileWarning]) -> PreCommitDecision:
        """Ask what to do about risky staged files"""

    @abstractmethod
    def show_details(self, text: str):
        """Display a multi-line report"""

    @abstractmethod
    def info(self, message: str):
        pass

    @abstractmethod
    def error(self, message: str, exc: Optional[BaseException] = None):
        pass

    def patterns_added(self, result: ModificationResult):
        if not result.success:
            self.error(f"Failed to update .gitignore: {result.error}")
        elif not result.added_patterns and result.existing_patterns:
            self.info(f"All {len(result.existing_patterns)} pattern(s) already in .gitignore")
        else:
            self.info(f"Added {len(result.added_patterns)} pattern(s) to .gitignore")


Choice = Tuple[str, str, object]


def _deliver(read: asyncio.Future, line: str, error: Optional[BaseException]):
    if read.done():
        return
    if error is not None:
        read.set_exception(error)
    else:
        read.set_result(line)


class ConsoleNotifier(Notifier):
    """
    Notifier for terminals

    Args:
        output: Stream prompts and reports are written to
        input_stream: Stream answers are read from
        interactive: Force prompting on or off, defaults to ``input_stream.isatty()``
    """

    def __init__(self, output: Optional[TextIO] = None, input_stream: Optional[TextIO] = None,
                 interactive: Optional[bool] = None):
        self.output = output or sys.stdout
        self.input_stream = input_stream or sys.stdin
        if interactive is None:
            isatty = getattr(self.input_stream, "isatty", None)
            interactive = bool(isatty and isatty())
        self.interactive = interactive
        self._prompt_lock: Optional[asyncio.Lock] = None
        self._pending_read: Optional[asyncio.Future] = None

    def _print(self, text: str = ""):
        print(text, file=self.output, flush=True)

    def _lock(self) -> asyncio.Lock:
        # Created on first use so it belongs to the running loop
        if self._prompt_lock is None:
            self._prompt_lock = asyncio.Lock()
        return self._prompt_lock

    async def _readline(self) -> str:
        """
        Read one answer line on a daemon thread

        A read still pending from a cancelled prompt is handed to the next
        prompt instead of starting a second reader.
        """
        loop = asyncio.get_running_loop()
        read = self._pending_read
        if read is None or read.done() or read.get_loop() is not loop:
            read = loop.create_future()
            self._pending_read = read
            thread = threading.Thread(target=self._read_into, args=(loop, read),
                                      name="gitguard-input", daemon=True)
            thread.start()
        return await asyncio.shield(read)

    def _read_into(self, loop: asyncio.AbstractEventLoop, read: asyncio.Future):
        line, error = "", None
        try:
            line = self.input_stream.readline()
        except (OSError, ValueError) as e:
            error = e
        try:
            loop.call_soon_threadsafe(_deliver, read, line, error)
        except RuntimeError:
            logger.debug("Event loop closed before the answer arrived")

    async def _ask(self, question: str, choices: Sequence[Choice], default: object) -> object:
        """
        Print a question with lettered choices and wait for an answer

        Args:
            question: Text shown above the choices
            choices: (key, label, value) triples
            default: Value returned on EOF, an empty answer or in batch mode
        """
        async with self._lock():
            return await self._ask_unlocked(question, choices, default)

    async def _ask_unlocked(self, question: str, choices: Sequence[Choice], default: object) -> object:
        self._print(question)
        for key, label, _ in choices:
            self._print(f"  [{key}] {label}")

        if not self.interactive:
            logger.debug(f"Non-interactive prompt, using default: {default}")
            return default

        while True:
            self.output.write("> ")
            self.output.flush()
            answer = await self._readline()
            if not answer:
                return default
            answer = answer.strip().lower()
            if not answer:
                return default
            for key, _, value in choices:
                if answer == key.lower():
                    return value
            self._print(f"Please answer one of: {', '.join(key for key, _, _ in choices)}")

    async def frameworks_detected(self, frameworks: Sequence[FrameworkDetection],
                                  missing_rules: Sequence[Rule]) -> str:
        names = ", ".join(f.display_name for f in frameworks)
        message = f"GitGuard detected: {names}"
        critical_count = sum(1 for rule in missing_rules if rule.severity is Severity.CRITICAL)
        if critical_count:
            message += f"\n⚠️ {critical_count} critical pattern(s) missing from .gitignore"
        elif missing_rules:
            message += f"\n{len(missing_rules)} recommended pattern(s) can be added to .gitignore"
        return await self._ask(
            message,
            [("s", "Suggest Rules", "suggest"), ("i", "Ignore", "ignore"), ("d", "Dismiss", "dismiss")],
            default="dismiss",
        )

    async def select_rules(self, rules: Sequence[Rule]) -> List[Rule]:
        """Critical and recommended rules are preselected"""
        async with self._lock():
            return await self._select_rules_unlocked(rules)

    async def _select_rules_unlocked(self, rules: Sequence[Rule]) -> List[Rule]:
        preselected = [rule for rule in rules if rule.severity is not Severity.OPTIONAL]
        self._print("Select patterns to add to .gitignore:")
        for index, rule in enumerate(rules, 1):
            mark = "x" if rule in preselected else " "
            self._print(f"  {index:>2}. [{mark}] {rule.severity.icon} {rule.pattern} - {rule.reason}")

        if not self.interactive:
            return preselected

        self.output.write("Numbers to add (comma separated, empty for preselected, 'n' for none): ")
        self.output.flush()
        answer = (await self._readline()).strip().lower()
        if not answer:
            return preselected
        if answer == "n":
            return []

        selected: List[Rule] = []
        for token in answer.replace(" ", "").split(","):
            if token.isdigit() and 1 <= int(token) <= len(rules):
                rule = rules[int(token) - 1]
                if rule not in selected:
                    selected.append(rule)
        return selected

    async def risky_file(self, event: PendingEvent) -> UserDecision:
        question = (
            f"{event.rule.severity.icon} GitGuard: \"{event.path}\" should be in .gitignore\n"
            f"{event.rule.reason}"
        )
        return await self._ask(
            question,
            [
                ("a", "Add to .gitignore", UserDecision.ADD_TO_GITIGNORE),
                ("o", "Ignore Once", UserDecision.IGNORE_ONCE),
                ("n", "Don't Warn Again", UserDecision.DISABLE_WARNINGS),
            ],
            default=UserDecision.IGNORE_ONCE,
        )

    async def risky_batch(self, events: Sequence[PendingEvent]) -> BatchDecision:
        return await self._ask(
            format_batch_summary(events),
            [
                ("a", "Add All to .gitignore", BatchDecision.ADD_ALL),
                ("v", "View Details", BatchDecision.VIEW_DETAILS),
                ("i", "Ignore", BatchDecision.IGNORE),
            ],
            default=BatchDecision.IGNORE,
        )

    async def pre_commit_warning(self, warnings: Sequence[StagedFileWarning]) -> PreCommitDecision:
        critical = [w for w in warnings if w.severity is Severity.CRITICAL]
        recommended = [w for w in warnings if w.severity is Severity.RECOMMENDED]

        if critical:
            lines = [f"🚨 SECURITY RISK: {len(critical)} sensitive file(s) staged for commit!",
                     "Critical files:"]
            lines.extend(f"  • {w.file_path}: {w.reason}" for w in critical[:PREVIEW_LIMIT])
            if len(critical) > PREVIEW_LIMIT:
                lines.append(f"  ... and {len(critical) - PREVIEW_LIMIT} more")
            choices = [
                ("f", "Fix & Add to .gitignore", PreCommitDecision.FIX),
                ("p", "Proceed Anyway", PreCommitDecision.PROCEED),
                ("c", "Cancel", PreCommitDecision.CANCEL),
            ]
            default = PreCommitDecision.BLOCK
        else:
            lines = [f"⚠️ {len(recommended)} file(s) are typically excluded from version control",
                     "Files to review:"]
            lines.extend(f"  • {w.file_path}" for w in recommended[:PREVIEW_LIMIT])
            if len(recommended) > PREVIEW_LIMIT:
                lines.append(f"  ... and {len(recommended) - PREVIEW_LIMIT} more")
            choices = [
                ("f", "Add to .gitignore", PreCommitDecision.FIX),
                ("p", "Proceed", PreCommitDecision.PROCEED),
                ("c", "Cancel", PreCommitDecision.CANCEL),
            ]
            default = PreCommitDecision.PROCEED

        return await self._ask("\n".join(lines), choices, default=default)

    def show_details(self, text: str):
        self._print(text)

    def info(self, message: str):
        self._print(f"GitGuard: {message}")

    def error(self, message: str, exc: Optional[BaseException] = None):
        full_message = f"GitGuard: {message} - {exc}" if exc else f"GitGuard: {message}"
        print(f"❌ {full_message}", file=sys.stderr, flush=True)
        logger.error(full_message)
