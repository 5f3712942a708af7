"""
GitGuard settings

Settings come from an optional ``.gitguard.json`` at the project root, then
environment variables override individual values. Keys in the JSON file may
be camelCase (``watchFileCreation``) or snake_case (``watch_file_creation``).
"""

import json
import os
import re
from dataclasses import dataclass, field, fields, asdict
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from gitguard.exceptions import SettingsError
from gitguard.models import Severity
from gitguard.utils import get_logger

logger = get_logger(__name__)

SETTINGS_FILENAME = ".gitguard.json"
ENV_PREFIX = "GITGUARD_"

_TRUE_VALUES = {"true", "1", "yes", "on"}
_FALSE_VALUES = {"false", "0", "no", "off"}

_FLAG_FIELDS = (
    "enabled",
    "auto_suggest",
    "pre_commit_check",
    "modify_gitignore_automatically",
    "watch_file_creation",
)


@dataclass
class GitGuardSettings:
    """User-facing configuration surface"""
    enabled: bool = True
    auto_suggest: bool = True
    pre_commit_check: bool = True
    modify_gitignore_automatically: bool = False
    watch_file_creation: bool = True
    ignored_patterns: List[str] = field(default_factory=list)
    suppressed_warnings: List[str] = field(default_factory=list)
    debounce_seconds: float = 0.5
    min_severity: str = Severity.OPTIONAL.value

    def __post_init__(self):
        """Validate settings"""
        for name in _FLAG_FIELDS:
            value = getattr(self, name)
            if not isinstance(value, bool):
                raise SettingsError(f"{name} must be true or false, got {value!r}")
        if isinstance(self.debounce_seconds, bool) or not isinstance(self.debounce_seconds, (int, float)):
            raise SettingsError(f"debounce_seconds must be a number, got {self.debounce_seconds!r}")
        if self.debounce_seconds < 0:
            raise SettingsError(f"debounce_seconds must be non-negative, got {self.debounce_seconds}")
        valid = [s.value for s in Severity]
        if self.min_severity not in valid:
            raise SettingsError(f"min_severity must be one of {valid}, got {self.min_severity!r}")
        for name in ("ignored_patterns", "suppressed_warnings"):
            value = getattr(self, name)
            if not isinstance(value, list) or not all(isinstance(p, str) for p in value):
                raise SettingsError(f"{name} must be a list of strings")

    @property
    def minimum_severity(self) -> Severity:
        return Severity(self.min_severity)

    def to_json_dict(self) -> Dict[str, Any]:
        """camelCase mapping as written to the settings file"""
        return {_camel(key): value for key, value in asdict(self).items()}


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def _snake(name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


def parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise SettingsError(f"Invalid boolean value: {value!r}")


def _coerce_env(name: str, raw: str, default: Any) -> Any:
    if isinstance(default, bool):
        return parse_bool(raw)
    if isinstance(default, float):
        try:
            return float(raw)
        except ValueError as e:
            raise SettingsError(f"{ENV_PREFIX}{name.upper()} must be a number, got {raw!r}") from e
    if isinstance(default, list):
        return [item.strip() for item in raw.split(",") if item.strip()]
    return raw.strip()


def _from_mapping(data: Dict[str, Any]) -> Dict[str, Any]:
    known = {f.name for f in fields(GitGuardSettings)}
    values = {}
    for key, value in data.items():
        name = _snake(key)
        if name not in known:
            logger.warning(f"Ignoring unknown setting: {key}")
            continue
        values[name] = value
    return values


def load_settings(root: Optional[Union[str, Path]] = None,
                  environ: Optional[Dict[str, str]] = None) -> GitGuardSettings:
    """
    Load settings for a project root

    Args:
        root: Project root containing ``.gitguard.json``, or None for defaults
        environ: Environment mapping, defaults to ``os.environ``

    Returns:
        Validated settings

    Raises:
        SettingsError: The settings file is malformed or a value is invalid
    """
    environ = os.environ if environ is None else environ
    values: Dict[str, Any] = {}

    if root is not None:
        path = Path(root) / SETTINGS_FILENAME
        if path.is_file():
            try:
                data = json.loads(path.read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError) as e:
                raise SettingsError(f"Cannot load {path}: {e}") from e
            if not isinstance(data, dict):
                raise SettingsError(f"{path} must contain a JSON object")
            values.update(_from_mapping(data))
            logger.debug(f"Loaded settings from {path}")

    defaults = GitGuardSettings()
    for f in fields(GitGuardSettings):
        raw = environ.get(f"{ENV_PREFIX}{f.name.upper()}")
        if raw is not None:
            values[f.name] = _coerce_env(f.name, raw, getattr(defaults, f.name))

    return GitGuardSettings(**values)


class SettingsStore:
    """Owns the settings file for one project root"""

    def __init__(self, root: Union[str, Path], environ: Optional[Dict[str, str]] = None):
        self.root = Path(root)
        self.path = self.root / SETTINGS_FILENAME
        self._environ = environ
        self.settings = load_settings(self.root, environ)

    def load(self) -> GitGuardSettings:
        self.settings = load_settings(self.root, self._environ)
        return self.settings

    def add_suppressed_warning(self, pattern: str) -> bool:
        """
        Record a pattern the user never wants to be warned about again

        Returns:
            True when the pattern was added, False when already suppressed
        """
        if pattern in self.settings.suppressed_warnings:
            return False
        self.settings.suppressed_warnings.append(pattern)
        self._write_suppressed(pattern)
        logger.info(f"Suppressed warnings for pattern: {pattern}")
        return True

    def _write_suppressed(self, pattern: str):
        # Keep any keys already in the file untouched
        data: Dict[str, Any] = {}
        if self.path.is_file():
            try:
                loaded = json.loads(self.path.read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError) as e:
                raise SettingsError(f"Cannot update {self.path}: {e}") from e
            if isinstance(loaded, dict):
                data = loaded

        key = "suppressed_warnings" if "suppressed_warnings" in data else "suppressedWarnings"
        current = data.get(key) or []
        if pattern not in current:
            current.append(pattern)
        data[key] = current

        self.path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
