"""
Append-only management of a project's .gitignore

Existing content is never rewritten, reordered or deleted: every write
either creates a new file or appends to the end of the current one. Patterns
are compared after stripping trailing slashes, so ``node_modules`` and
``node_modules/`` are the same entry.

The read-then-append sequence is not isolated from other processes editing
the file at the same moment. A concurrent external write between the read
and the append can lead to a duplicated pattern; no locking is attempted.
"""

import posixpath
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Sequence, Set, Union

from gitguard.models import FrameworkDetection, ModificationResult, Rule, Severity
from gitguard.pattern_matcher import (
    DEFAULT_MATCHER,
    MatcherConfig,
    matches,
    normalize_path,
    normalize_pattern,
)
from gitguard.utils import get_logger

logger = get_logger(__name__)

GITIGNORE_FILENAME = ".gitignore"
HEADER_PREFIX = "# Added by GitGuard"

SECTION_TITLES = (
    (Severity.CRITICAL, "# === Critical (Security) ==="),
    (Severity.RECOMMENDED, "# === Recommended ==="),
    (Severity.OPTIONAL, "# === Optional ==="),
)


def parse_patterns(content: str) -> List[str]:
    """Normalized patterns in file order, without blanks and comments"""
    patterns = []
    for line in content.split("\n"):
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        patterns.append(normalize_pattern(stripped))
    return patterns


class GitignoreFile:
    """
    Reads and appends to ``<root>/.gitignore``

    Args:
        filename: Ignore file name relative to each root
        matcher: Matcher options used by ``is_ignored``
    """

    def __init__(self, filename: str = GITIGNORE_FILENAME,
                 matcher: MatcherConfig = DEFAULT_MATCHER):
        self.filename = filename
        self.matcher = matcher

    def path_for(self, root: Union[str, Path]) -> Path:
        return Path(root) / self.filename

    def exists(self, root: Union[str, Path]) -> bool:
        return self.path_for(root).is_file()

    def _read_raw(self, path: Path) -> str:
        # newline='' keeps the bytes exactly as on disk
        with open(path, "r", encoding="utf-8", newline="") as f:
            return f.read()

    def read(self, root: Union[str, Path]) -> Optional[str]:
        """Current content, or None when the file is absent or unreadable"""
        path = self.path_for(root)
        try:
            return self._read_raw(path)
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Cannot read {path}: {e}")
            return None

    def existing_patterns(self, root: Union[str, Path]) -> Set[str]:
        content = self.read(root)
        if not content:
            return set()
        return set(parse_patterns(content))

    def missing_rules(self, root: Union[str, Path], rules: Sequence[Rule]) -> List[Rule]:
        """Rules whose normalized pattern is not in the ignore file yet"""
        existing = self.existing_patterns(root)
        return [rule for rule in rules if normalize_pattern(rule.pattern) not in existing]

    def is_ignored(self, root: Union[str, Path], relative_path: str) -> bool:
        """True when any pattern already in the ignore file matches the path"""
        content = self.read(root)
        if not content:
            return False
        path = normalize_path(relative_path)
        base_name = posixpath.basename(path)
        return any(
            matches(path, base_name, pattern, self.matcher)
            for pattern in parse_patterns(content)
        )

    def append_rules(self, root: Union[str, Path], rules: Sequence[Rule],
                     label: Optional[str] = None) -> ModificationResult:
        """
        Append rules that are not present yet

        Args:
            root: Project root holding the ignore file
            rules: Candidate rules in the order they should appear
            label: Optional name shown in the header comment, e.g. a framework

        Returns:
            ModificationResult listing added and already-present patterns.
            Write failures are reported with ``success=False``.
        """
        path = self.path_for(root)
        already_present: List[str] = []
        to_add: List[Rule] = []

        try:
            content = self._read_raw(path) if path.is_file() else ""
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Failed to read {path}: {e}")
            return ModificationResult(success=False, file_path=str(path), error=str(e))

        known = set(parse_patterns(content))
        for rule in rules:
            normalized = normalize_pattern(rule.pattern)
            if normalized in known:
                already_present.append(rule.pattern)
                continue
            known.add(normalized)
            to_add.append(rule)

        if not to_add:
            logger.debug(f"{path}: all {len(already_present)} patterns already present")
            return ModificationResult(success=True, file_path=str(path),
                                      existing_patterns=already_present)

        prefix = ""
        if content and not content.endswith("\n"):
            prefix = "\n"

        lines: List[str] = []
        if content.strip():
            lines.append("")
        lines.append(f"{HEADER_PREFIX} ({label})" if label else HEADER_PREFIX)
        for rule in to_add:
            if rule.severity is Severity.CRITICAL:
                lines.append(f"# {rule.reason}")
            lines.append(rule.pattern)

        try:
            with open(path, "a", encoding="utf-8", newline="") as f:
                f.write(prefix + "\n".join(lines) + "\n")
        except OSError as e:
            logger.error(f"Failed to update {path}: {e}")
            return ModificationResult(success=False, file_path=str(path),
                                      existing_patterns=already_present, error=str(e))

        added = [rule.pattern for rule in to_add]
        logger.info(f"Added {len(added)} patterns to {path}")
        return ModificationResult(success=True, file_path=str(path),
                                  added_patterns=added, existing_patterns=already_present)

    def add_pattern(self, root: Union[str, Path], pattern: str,
                    reason: Optional[str] = None) -> ModificationResult:
        rule = Rule(pattern=pattern, severity=Severity.RECOMMENDED, reason=reason or "Added by user")
        return self.append_rules(root, [rule])

    def create_with_rules(self, root: Union[str, Path], rules: Sequence[Rule],
                          detections: Sequence[FrameworkDetection]) -> ModificationResult:
        """
        Create a fresh ignore file grouped by severity

        Falls back to ``append_rules`` when the file already exists, including
        when another process creates it first.
        """
        path = self.path_for(root)
        framework_names = ", ".join(d.display_name for d in detections)

        unique: List[Rule] = []
        seen: Set[str] = set()
        for rule in rules:
            normalized = normalize_pattern(rule.pattern)
            if normalized not in seen:
                seen.add(normalized)
                unique.append(rule)

        content = self._render_new_file(unique, framework_names)

        try:
            with open(path, "x", encoding="utf-8", newline="") as f:
                f.write(content)
        except FileExistsError:
            logger.info(f"{path} already exists, appending instead")
            return self.append_rules(root, rules, framework_names or None)
        except OSError as e:
            logger.error(f"Failed to create {path}: {e}")
            return ModificationResult(success=False, file_path=str(path), error=str(e))

        logger.info(f"Created {path} with {len(unique)} patterns")
        return ModificationResult(success=True, file_path=str(path),
                                  added_patterns=[rule.pattern for rule in unique])

    def _render_new_file(self, rules: Sequence[Rule], framework_names: str) -> str:
        generated = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
        lines = [
            "# GitGuard - Auto-generated .gitignore",
            f"# Detected frameworks: {framework_names or 'none'}",
            f"# Generated on: {generated}",
            "",
        ]

        for severity, title in SECTION_TITLES:
            section = [rule for rule in rules if rule.severity is severity]
            if not section:
                continue
            lines.append(title)
            for rule in section:
                if severity is Severity.CRITICAL:
                    lines.append(f"# {rule.reason}")
                lines.append(rule.pattern)
            lines.append("")

        return "\n".join(lines)
