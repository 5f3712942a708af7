"""
Core data types shared across detection, rule resolution and ignore-file handling
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional


class Severity(str, Enum):
    """Urgency tier of a rule. Lower rank means more urgent."""
    CRITICAL = "critical"
    RECOMMENDED = "recommended"
    OPTIONAL = "optional"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    def at_least(self, minimum: "Severity") -> bool:
        """True if this severity is as urgent as ``minimum`` or more"""
        return self.rank <= minimum.rank

    @property
    def icon(self) -> str:
        return _SEVERITY_ICON[self]


_SEVERITY_RANK = {
    Severity.CRITICAL: 0,
    Severity.RECOMMENDED: 1,
    Severity.OPTIONAL: 2,
}

_SEVERITY_ICON = {
    Severity.CRITICAL: "🚨",
    Severity.RECOMMENDED: "⚠️",
    Severity.OPTIONAL: "ℹ️",
}


class Ecosystem(str, Enum):
    """Language/platform grouping that shares one base rule set"""
    NODE = "node"
    PYTHON = "python"
    JAVA = "java"


@dataclass(frozen=True)
class Rule:
    """A single ignore-list rule with metadata"""
    pattern: str
    severity: Severity
    reason: str


@dataclass(frozen=True)
class FrameworkDetection:
    """One framework identification produced by a detector"""
    id: str
    display_name: str
    detected_at_path: str
    confidence: float
    ecosystem: Ecosystem

    @property
    def depth(self) -> int:
        """Number of path segments in the detection source"""
        return len([part for part in self.detected_at_path.replace("\\", "/").split("/") if part])

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "displayName": self.display_name,
            "detectedAtPath": self.detected_at_path,
            "confidence": self.confidence,
            "ecosystem": self.ecosystem.value,
        }


@dataclass(frozen=True)
class PendingEvent:
    """A risky file creation waiting for the next batch flush"""
    path: str
    matched_pattern: str
    rule: Rule


@dataclass
class ModificationResult:
    """Outcome of an ignore-file write"""
    success: bool
    file_path: str
    added_patterns: List[str] = field(default_factory=list)
    existing_patterns: List[str] = field(default_factory=list)
    error: Optional[str] = None


@dataclass(frozen=True)
class StagedFileWarning:
    """A staged file that matches a risky pattern"""
    file_path: str
    matched_pattern: str
    severity: Severity
    reason: str


@dataclass
class WorkspaceScanResult:
    """Summary of a full workspace scan"""
    frameworks: List[FrameworkDetection]
    suggested_rules: List[Rule]
    risky_files: List[str]
    has_gitignore: bool
    missing_critical_patterns: List[str]


class UserDecision(str, Enum):
    """Answer to a single risky-file prompt"""
    ADD_TO_GITIGNORE = "add-to-gitignore"
    IGNORE_ONCE = "ignore-once"
    DISABLE_WARNINGS = "disable-warnings"
    CANCEL = "cancel"


class BatchDecision(str, Enum):
    """Answer to a batched risky-files prompt"""
    ADD_ALL = "add-all"
    VIEW_DETAILS = "view-details"
    IGNORE = "ignore"


class PreCommitDecision(str, Enum):
    """Answer to a pre-commit warning"""
    FIX = "fix"
    PROCEED = "proceed"
    BLOCK = "block"
    CANCEL = "cancel"
