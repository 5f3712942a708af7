"""
Scanning of files staged for commit

The staged file list comes from a ``StagedFileSource``. The git-backed source
shells out to ``git diff --cached``; tests use an in-memory list.
"""

import logging
import subprocess
from pathlib import Path
from typing import List, Optional, Protocol, Sequence, Union

from gitguard.exceptions import StagedFilesUnavailable
from gitguard.gitignore import GitignoreFile
from gitguard.models import ModificationResult, PreCommitDecision, Rule, Severity, StagedFileWarning
from gitguard.notifications import Notifier
from gitguard.pattern_matcher import STAGED_SCAN_MATCHER
from gitguard.rules.engine import RuleEngine
from gitguard.utils import get_logger, log_with_context

logger = get_logger(__name__)

WARNING_HEADINGS = {
    Severity.CRITICAL: "🚨 CRITICAL (Security Risk):",
    Severity.RECOMMENDED: "⚠️ Recommended to ignore:",
    Severity.OPTIONAL: "ℹ️ Optional:",
}


class StagedFileSource(Protocol):
    """Provides root-relative paths of staged files"""

    root: Path

    def staged_paths(self) -> List[str]: ...


class GitStagedFileSource:
    """Staged files of the git repository at ``root``"""

    def __init__(self, root: Union[str, Path], git: str = "git", timeout: float = 30.0):
        self.root = Path(root)
        self.git = git
        self.timeout = timeout

    def staged_paths(self) -> List[str]:
        """
        List staged paths that will exist after the commit

        Raises:
            StagedFilesUnavailable: git is missing or ``root`` is not a repository
        """
        cmd = [self.git, "-C", str(self.root), "diff", "--cached", "--name-only",
               "-z", "--diff-filter=ACMR"]
        logger.debug(f"Running: {' '.join(cmd)}")
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, timeout=self.timeout)
        except (OSError, subprocess.TimeoutExpired) as e:
            raise StagedFilesUnavailable(f"Cannot run git: {e}") from e

        if result.returncode != 0:
            raise StagedFilesUnavailable(result.stderr.strip() or f"git exited with {result.returncode}")

        return [path for path in result.stdout.split("\0") if path]


class StaticStagedFileSource:
    """Fixed list of staged paths"""

    def __init__(self, root: Union[str, Path], paths: Sequence[str]):
        self.root = Path(root)
        self._paths = list(paths)

    def staged_paths(self) -> List[str]:
        return list(self._paths)


def scan_staged_files(source: StagedFileSource, rules: Sequence[Rule],
                      rule_engine: Optional[RuleEngine] = None) -> List[StagedFileWarning]:
    """
    Match every staged path against the rules

    Args:
        source: Staged file provider
        rules: Active rules in priority order
        rule_engine: Engine to match with, defaults to one where ``?`` is a wildcard

    Returns:
        One warning per staged path that matches a rule
    """
    engine = rule_engine or RuleEngine(matcher=STAGED_SCAN_MATCHER)
    warnings = []
    for path in source.staged_paths():
        rule = engine.match_first(path, rules)
        if rule is None:
            continue
        warnings.append(StagedFileWarning(
            file_path=path.replace("\\", "/"),
            matched_pattern=rule.pattern,
            severity=rule.severity,
            reason=rule.reason,
        ))
    logger.debug(f"{len(warnings)} risky staged files in {source.root}")
    return warnings


def critical_warnings(warnings: Sequence[StagedFileWarning]) -> List[StagedFileWarning]:
    return [w for w in warnings if w.severity is Severity.CRITICAL]


def format_warnings(warnings: Sequence[StagedFileWarning]) -> str:
    """Plain-text report grouped Critical, Recommended, Optional"""
    if not warnings:
        return ""

    blocks = []
    for severity in Severity:
        matching = [w for w in warnings if w.severity is severity]
        if not matching:
            continue
        lines = [WARNING_HEADINGS[severity]]
        for w in matching:
            lines.append(f"  • {w.file_path}")
            if severity is Severity.CRITICAL:
                lines.append(f"    Reason: {w.reason}")
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)


def rules_for_warnings(warnings: Sequence[StagedFileWarning]) -> List[Rule]:
    """One rule per distinct matched pattern, in first-seen order"""
    rules: List[Rule] = []
    seen = set()
    for w in warnings:
        if w.matched_pattern not in seen:
            seen.add(w.matched_pattern)
            rules.append(Rule(pattern=w.matched_pattern, severity=w.severity, reason=w.reason))
    return rules


def fix_warnings(root: Union[str, Path], warnings: Sequence[StagedFileWarning],
                 gitignore: Optional[GitignoreFile] = None) -> ModificationResult:
    """Append the matched patterns to the ignore file"""
    gitignore = gitignore or GitignoreFile()
    return gitignore.append_rules(root, rules_for_warnings(warnings), "pre-commit check")


async def pre_commit_check(source: StagedFileSource, rules: Sequence[Rule], notifier: Notifier,
                           gitignore: Optional[GitignoreFile] = None,
                           rule_engine: Optional[RuleEngine] = None) -> bool:
    """
    Warn about risky staged files before a commit

    Returns:
        True when the commit may go ahead
    """
    warnings = scan_staged_files(source, rules, rule_engine)
    if not warnings:
        return True

    decision = await notifier.pre_commit_warning(warnings)
    log_with_context(logger, logging.INFO, f"Pre-commit decision for {len(warnings)} risky files: {decision.value}",
                     decision=decision.value, risky_files=len(warnings),
                     critical_files=len(critical_warnings(warnings)))

    if decision is PreCommitDecision.PROCEED:
        return True

    if decision is PreCommitDecision.FIX:
        result = fix_warnings(source.root, warnings, gitignore)
        notifier.patterns_added(result)
        if result.success:
            notifier.info("Unstage the files (git rm --cached <file>) before committing")

    return False
