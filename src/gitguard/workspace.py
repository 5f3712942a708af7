"""
Whole-project scan: detect frameworks, resolve rules and find risky files
"""

import os
import posixpath
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Union

from gitguard.detector.coordinator import DetectionCoordinator
from gitguard.gitignore import GitignoreFile
from gitguard.models import FrameworkDetection, ModificationResult, Rule, Severity, WorkspaceScanResult
from gitguard.notifications import Notifier
from gitguard.pattern_matcher import matches
from gitguard.rules.engine import RuleEngine
from gitguard.settings import GitGuardSettings
from gitguard.utils import get_logger

logger = get_logger(__name__)

SKIPPED_DIRS = {".git"}


def active_rules(detections: Sequence[FrameworkDetection],
                 settings: Optional[GitGuardSettings] = None,
                 rule_engine: Optional[RuleEngine] = None) -> List[Rule]:
    """Catalog rules for detections, minus ignored patterns and below-threshold severities"""
    engine = rule_engine or RuleEngine()
    settings = settings or GitGuardSettings()
    rules = engine.rules_for_detections(detections)
    rules = engine.without_patterns(rules, settings.ignored_patterns)
    return engine.filter_by_severity(rules, settings.minimum_severity)


def _covered(path: str, patterns: Iterable[str]) -> bool:
    base_name = posixpath.basename(path)
    return any(matches(path, base_name, pattern) for pattern in patterns)


def find_risky_files(root: Union[str, Path], rules: Sequence[Rule],
                     ignore_patterns: Iterable[str] = (),
                     rule_engine: Optional[RuleEngine] = None) -> List[str]:
    """
    Walk the tree and list paths that match a rule but are not ignored

    A directory that matches a rule (e.g. ``node_modules``) is reported once
    with a trailing slash and not descended into. Ignored directories are
    skipped entirely.
    """
    root = Path(root)
    engine = rule_engine or RuleEngine()
    ignore_patterns = list(ignore_patterns)
    risky: List[str] = []

    for dirpath, dirnames, filenames in os.walk(root):
        rel_dir = Path(dirpath).relative_to(root).as_posix()
        rel_dir = "" if rel_dir == "." else rel_dir + "/"

        kept = []
        for name in sorted(dirnames):
            if name in SKIPPED_DIRS:
                continue
            rel = rel_dir + name
            if _covered(rel, ignore_patterns):
                continue
            if engine.match_first(rel, rules) is not None:
                risky.append(rel + "/")
                continue
            kept.append(name)
        dirnames[:] = kept

        for name in sorted(filenames):
            rel = rel_dir + name
            if _covered(rel, ignore_patterns):
                continue
            if engine.match_first(rel, rules) is not None:
                risky.append(rel)

    return risky


async def scan_workspace(root: Union[str, Path],
                         coordinator: Optional[DetectionCoordinator] = None,
                         settings: Optional[GitGuardSettings] = None,
                         gitignore: Optional[GitignoreFile] = None,
                         rule_engine: Optional[RuleEngine] = None,
                         force_refresh: bool = True) -> WorkspaceScanResult:
    """
    Scan one project root

    Args:
        root: Project root
        coordinator: Detection coordinator, a fresh one for ``root`` by default
        settings: Ignored patterns and minimum severity
        gitignore: Ignore-file model
        rule_engine: Rule engine
        force_refresh: Bypass the coordinator's cache

    Returns:
        WorkspaceScanResult for the root
    """
    root = Path(root)
    coordinator = coordinator or DetectionCoordinator([root])
    gitignore = gitignore or GitignoreFile()
    engine = rule_engine or RuleEngine()

    if force_refresh:
        frameworks = await coordinator.detect_in_root(root)
    else:
        cached = coordinator.cached(root)
        frameworks = cached if cached is not None else await coordinator.detect_in_root(root)

    rules = active_rules(frameworks, settings, engine)
    suggested = gitignore.missing_rules(root, rules)
    risky = find_risky_files(root, rules, gitignore.existing_patterns(root), engine)

    result = WorkspaceScanResult(
        frameworks=frameworks,
        suggested_rules=suggested,
        risky_files=risky,
        has_gitignore=gitignore.exists(root),
        missing_critical_patterns=[rule.pattern for rule in engine.critical_rules(suggested)],
    )
    logger.info(
        f"Scanned {root}: {len(frameworks)} frameworks, {len(suggested)} suggested rules, "
        f"{len(risky)} risky files"
    )
    return result


async def suggest_missing_rules(root: Union[str, Path],
                                detections: Sequence[FrameworkDetection],
                                rules: Sequence[Rule],
                                notifier: Notifier,
                                settings: Optional[GitGuardSettings] = None,
                                gitignore: Optional[GitignoreFile] = None,
                                force_prompt: bool = False) -> Optional[ModificationResult]:
    """
    Offer the rules missing from the ignore file

    Without ``force_prompt`` the user is only asked when a critical pattern is
    missing. With ``modify_gitignore_automatically`` every missing rule is
    appended without a selection step.

    Returns:
        The write result, or None when nothing was written
    """
    settings = settings or GitGuardSettings()
    gitignore = gitignore or GitignoreFile()

    missing = gitignore.missing_rules(root, rules)
    if not missing:
        logger.debug(f"No missing rules for {root}")
        return None

    has_critical = any(rule.severity is Severity.CRITICAL for rule in missing)
    if not has_critical and not force_prompt:
        logger.debug(f"{len(missing)} non-critical rules missing in {root}, not prompting")
        return None

    answer = await notifier.frameworks_detected(detections, missing)
    if answer != "suggest":
        return None

    if settings.modify_gitignore_automatically:
        selected = list(missing)
    else:
        selected = await notifier.select_rules(missing)
        if not selected:
            return None

    label = ", ".join(d.display_name for d in detections) or None
    result = gitignore.append_rules(root, selected, label)
    notifier.patterns_added(result)
    return result
