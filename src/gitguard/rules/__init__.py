"""
Rule catalog and resolution

Provides the built-in per-ecosystem rule sets and the engine that merges
them for a set of framework detections.
"""

from .catalog import RULE_SETS, RuleSet
from .engine import RuleEngine

__all__ = [
    'RULE_SETS',
    'RuleSet',
    'RuleEngine',
]
