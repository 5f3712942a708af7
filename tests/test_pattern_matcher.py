#!/usr/bin/env python3
"""
Test gitignore-style pattern matching used for risky file detection
"""

import pytest

from gitguard.pattern_matcher import (
    DEFAULT_MATCHER,
    STAGED_SCAN_MATCHER,
    glob_to_regex,
    matches,
    matches_path,
    normalize_path,
    normalize_pattern,
)


def test_exact_base_name_match():
    assert matches_path(".npmrc", ".npmrc")
    assert matches_path("config/deep/.npmrc", ".npmrc")
    assert not matches_path("config/npmrc", ".npmrc")


def test_env_family():
    """Any .env.<suffix> file is covered by the .env pattern"""
    assert matches_path(".env", ".env")
    assert matches_path(".env.local", ".env")
    assert matches_path(".env.production", ".env")
    assert matches_path("services/api/.env.staging", ".env")

    # No dot after .env
    assert not matches_path(".environment", ".env")
    assert not matches_path("env", ".env")


def test_env_family_only_for_env_pattern():
    assert not matches_path(".npmrc.backup", ".npmrc")


def test_directory_containment():
    assert matches_path("node_modules/react/index.js", "node_modules/")
    assert matches_path("node_modules/react/index.js", "node_modules")
    assert matches_path("packages/web/node_modules/left-pad/index.js", "node_modules/")

    # Substring of a directory name is not containment
    assert not matches_path("my_node_modules/index.js", "node_modules/")
    assert not matches_path("src/node_modules_backup.js", "node_modules/")


def test_single_star_stays_in_one_segment():
    assert matches_path("build/app.js", "build/*.js")
    # build/ containment does not apply because the pattern is build/*.js
    assert not matches_path("build/sub/app.js", "build/*.js")


def test_double_star_crosses_segments():
    assert matches_path("a/b/c/server.log", "**/*.log")
    assert matches_path("logs/2024/01/app.log", "logs/**")


def test_glob_against_base_name_or_full_path():
    assert matches_path("certs/server.pem", "*.pem")
    assert matches_path("server.pem", "*.pem")
    assert matches_path("npm-debug.log.1234", "npm-debug.log*")


def test_literal_dots_are_escaped():
    assert not matches_path("serverXpem", "*.pem")
    assert not matches_path("server.pem.txt", "*.pem")


def test_matching_is_case_sensitive():
    assert not matches_path(".ENV", ".env")
    assert not matches_path("SERVER.PEM", "*.pem")
    assert not matches_path("Node_Modules/x.js", "node_modules/")


@pytest.mark.parametrize("path,pattern,expected", [
    ("dist/bundle.js", "dist", True),
    ("src/dist/bundle.js", "dist", True),
    ("dist", "dist", True),
    ("distribution/bundle.js", "dist", False),
    ("src/main.py", "main.py", True),
    ("src/main.py", "src", True),
    ("src/main.py", "src/main.py", False),
    ("db.sqlite3", "db.sqlite3", True),
    ("data/db.sqlite3.bak", "db.sqlite3", False),
])
def test_patterns_without_star(path, pattern, expected):
    """Without '*' only base name equality and directory containment apply"""
    assert matches_path(path, pattern) is expected


def test_question_mark_is_literal_by_default():
    assert not matches_path("key.pem", "*.p?m")
    assert matches_path("key.p?m", "*.p?m")


def test_question_mark_wildcard_for_staged_scan():
    assert matches_path("key.pem", "*.p?m", STAGED_SCAN_MATCHER)
    assert matches_path("certs/key.pim", "*.p?m", STAGED_SCAN_MATCHER)
    # ? never matches a separator
    assert not matches_path("key.p/m", "*.p?m", STAGED_SCAN_MATCHER)


def test_question_mark_without_star_is_not_a_glob():
    assert not matches_path("file1.txt", "file?.txt", STAGED_SCAN_MATCHER)


def test_empty_pattern_never_matches():
    assert not matches("a/b.txt", "b.txt", "")
    assert not matches("a/b.txt", "b.txt", "   /")


def test_matches_takes_precomputed_base_name():
    assert matches("config/.env.local", ".env.local", ".env", DEFAULT_MATCHER)


def test_normalize_pattern():
    assert normalize_pattern("node_modules/") == "node_modules"
    assert normalize_pattern("  build//  ") == "build"
    assert normalize_pattern("*.log") == "*.log"


def test_normalize_path():
    assert normalize_path("src\\app\\.env") == "src/app/.env"
    assert normalize_path("./src/app.py") == "src/app.py"
    assert normalize_path(".env") == ".env"


def test_glob_to_regex():
    assert glob_to_regex("*.log").fullmatch("app.log")
    assert not glob_to_regex("*.log").fullmatch("logs/app.log")
    assert glob_to_regex("**/*.log").fullmatch("logs/app.log")
    assert glob_to_regex("a?b", True).fullmatch("axb")
    assert not glob_to_regex("a?b", False).fullmatch("axb")
