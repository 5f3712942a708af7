"""
Rule engine for resolving catalog rules against framework detections
"""

import posixpath
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from gitguard.models import Ecosystem, FrameworkDetection, Rule, Severity
from gitguard.pattern_matcher import (
    DEFAULT_MATCHER,
    MatcherConfig,
    matches,
    normalize_path,
    normalize_pattern,
)
from gitguard.rules.catalog import RULE_SETS, RuleSet
from gitguard.utils import get_logger

logger = get_logger(__name__)


class RuleEngine:
    """
    Merges base and framework-specific rules for a set of detections

    The catalog is injected (defaults to the built-in ``RULE_SETS``) and is
    never mutated after construction.
    """

    def __init__(self, rule_sets: Optional[Mapping[Ecosystem, RuleSet]] = None,
                 matcher: MatcherConfig = DEFAULT_MATCHER):
        self._rule_sets: Mapping[Ecosystem, RuleSet] = rule_sets if rule_sets is not None else RULE_SETS
        self.matcher = matcher

    def rules_for_ecosystem(self, ecosystem: Ecosystem) -> List[Rule]:
        """Base rules for an ecosystem, in catalog order"""
        rule_set = self._rule_sets.get(ecosystem)
        return list(rule_set.base_rules) if rule_set else []

    def framework_rules(self, ecosystem: Ecosystem, framework_id: str) -> List[Rule]:
        """Framework-specific rules, empty when the catalog has none"""
        rule_set = self._rule_sets.get(ecosystem)
        if not rule_set:
            return []
        return list(rule_set.framework_rules.get(framework_id, ()))

    def rules_for_detections(self, detections: Sequence[FrameworkDetection]) -> List[Rule]:
        """
        Resolve the ordered, de-duplicated rule list for detections

        Ecosystems are visited in order of first appearance. For each one the
        base rules come first, then each detected framework's rules in
        detection order. The first rule seen for a pattern wins.

        Args:
            detections: Detections from one or more detectors

        Returns:
            List of rules with unique patterns
        """
        by_ecosystem: Dict[Ecosystem, List[FrameworkDetection]] = {}
        for detection in detections:
            by_ecosystem.setdefault(detection.ecosystem, []).append(detection)

        merged: List[Rule] = []
        seen_patterns = set()

        def add(rules: Iterable[Rule]):
            for rule in rules:
                if rule.pattern not in seen_patterns:
                    seen_patterns.add(rule.pattern)
                    merged.append(rule)

        for ecosystem, ecosystem_detections in by_ecosystem.items():
            add(self.rules_for_ecosystem(ecosystem))
            for detection in ecosystem_detections:
                add(self.framework_rules(ecosystem, detection.id))

        logger.debug(f"Resolved {len(merged)} rules for {len(detections)} detections")
        return merged

    @staticmethod
    def filter_by_severity(rules: Iterable[Rule], min_severity: Severity) -> List[Rule]:
        """Keep rules at or above ``min_severity`` (critical is highest)"""
        return [rule for rule in rules if rule.severity.at_least(min_severity)]

    @staticmethod
    def critical_rules(rules: Iterable[Rule]) -> List[Rule]:
        return [rule for rule in rules if rule.severity is Severity.CRITICAL]

    @staticmethod
    def without_patterns(rules: Iterable[Rule], patterns: Iterable[str]) -> List[Rule]:
        """Drop rules whose pattern the user asked never to be suggested"""
        excluded = {normalize_pattern(p) for p in patterns}
        return [rule for rule in rules if normalize_pattern(rule.pattern) not in excluded]

    def match_first(self, path: str, rules: Iterable[Rule]) -> Optional[Rule]:
        """
        Return the first rule whose pattern matches a relative path

        Args:
            path: Path relative to the project root (either separator)
            rules: Rules in priority order

        Returns:
            Matching rule or None
        """
        normalized = normalize_path(path)
        base_name = posixpath.basename(normalized)
        for rule in rules:
            if matches(normalized, base_name, rule.pattern, self.matcher):
                return rule
        return None

    def ecosystems(self) -> List[Ecosystem]:
        return list(self._rule_sets.keys())

    def rule_set_info(self, ecosystem: Ecosystem) -> Optional[Dict[str, object]]:
        """Display metadata for a rule set, or None for an unknown ecosystem"""
        rule_set = self._rule_sets.get(ecosystem)
        if not rule_set:
            return None
        return {
            "name": rule_set.name,
            "description": rule_set.description,
            "rule_count": rule_set.rule_count,
        }
