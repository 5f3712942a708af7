"""
Gitignore-style pattern matching for risky file detection

Supports a small subset of gitignore semantics:
- exact file name matches
- the ``.env`` family (``.env``, ``.env.local``, ``.env.production``, ...)
- directory containment (``node_modules/`` matches anything below it)
- ``*`` (one path segment) and ``**`` (any depth) globs

Character classes, escapes and ``!`` negation are not supported, so a pattern
can only ever add risk. Matching is case-sensitive.
"""

import posixpath
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Pattern


@dataclass(frozen=True)
class MatcherConfig:
    """
    Options shared by every call site that matches paths

    Attributes:
        single_char_wildcard: Translate ``?`` to "any one character except /"
            inside glob patterns. When False, ``?`` is matched literally.
    """
    single_char_wildcard: bool = False


DEFAULT_MATCHER = MatcherConfig()

# Staged-file scanning treats ``?`` as a wildcard
STAGED_SCAN_MATCHER = MatcherConfig(single_char_wildcard=True)

ENV_PATTERN = ".env"


def normalize_pattern(pattern: str) -> str:
    """Strip surrounding whitespace and trailing slashes"""
    return re.sub(r"/+$", "", pattern.strip())


def normalize_path(path: str) -> str:
    """Convert a relative path to forward-slash form without a leading ./"""
    normalized = path.replace("\\", "/")
    while normalized.startswith("./"):
        normalized = normalized[2:]
    return normalized


@lru_cache(maxsize=1024)
def glob_to_regex(pattern: str, single_char_wildcard: bool = False) -> Pattern:
    """
    Compile a glob pattern into an anchored regular expression

    Args:
        pattern: Normalized glob pattern (no trailing slash)
        single_char_wildcard: Map ``?`` to a single non-separator character

    Returns:
        Compiled regex to be used with ``fullmatch``
    """
    parts = []
    i = 0
    while i < len(pattern):
        char = pattern[i]
        if char == "*":
            if pattern.startswith("**", i):
                parts.append(".*")
                i += 2
                continue
            parts.append("[^/]*")
        elif char == "?" and single_char_wildcard:
            parts.append("[^/]")
        else:
            parts.append(re.escape(char))
        i += 1
    return re.compile("".join(parts))


def matches(full_relative_path: str, base_name: str, pattern: str,
            config: MatcherConfig = DEFAULT_MATCHER) -> bool:
    """
    Check whether a path matches a single rule pattern

    Args:
        full_relative_path: Path relative to the project root, forward slashes
        base_name: Final component of the path
        pattern: Rule pattern as written in the catalog or ignore file
        config: Matcher options

    Returns:
        True on the first successful check, in order: exact name, ``.env``
        family, directory containment, glob
    """
    normalized = normalize_pattern(pattern)
    if not normalized:
        return False

    if base_name == normalized:
        return True

    if normalized == ENV_PATTERN and (base_name == ENV_PATTERN or base_name.startswith(ENV_PATTERN + ".")):
        return True

    if f"/{normalized}/" in full_relative_path or full_relative_path.startswith(normalized + "/"):
        return True

    if "*" in normalized:
        regex = glob_to_regex(normalized, config.single_char_wildcard)
        return bool(regex.fullmatch(base_name) or regex.fullmatch(full_relative_path))

    return False


def matches_path(relative_path: str, pattern: str,
                 config: MatcherConfig = DEFAULT_MATCHER) -> bool:
    """Convenience wrapper that derives the base name from the path"""
    normalized = normalize_path(relative_path)
    return matches(normalized, posixpath.basename(normalized), pattern, config)
