#!/usr/bin/env python3
"""
Test whole-project scans
"""

import pytest

from gitguard.detector import DetectionCoordinator
from gitguard.models import Severity
from gitguard.settings import GitGuardSettings
from gitguard.workspace import active_rules, find_risky_files, scan_workspace, suggest_missing_rules

from helpers import RecordingNotifier, detection, rule


def test_active_rules_respects_settings():
    detections = [detection("node", 0.8)]
    all_rules = active_rules(detections)
    patterns = [r.pattern for r in all_rules]
    assert ".env" in patterns
    assert "node_modules/" in patterns

    settings = GitGuardSettings(ignored_patterns=["node_modules/"], min_severity="critical")
    trimmed = active_rules(detections, settings)
    assert "node_modules/" not in [r.pattern for r in trimmed]
    assert all(r.severity is Severity.CRITICAL for r in trimmed)
    assert ".env" in [r.pattern for r in trimmed]


def test_find_risky_files(make_tree):
    root = make_tree({
        ".env": "TOKEN=1",
        "src/app.js": "",
        "certs/server.pem": "",
        "node_modules/react/index.js": "",
        ".git/config": "",
        "logs/debug.log": "",
    })
    rules = [rule(".env"), rule("*.pem"), rule("node_modules/"), rule("*.log")]

    # Directories of one level are checked before its files
    assert find_risky_files(root, rules) == [
        "node_modules/",
        ".env",
        "certs/server.pem",
        "logs/debug.log",
    ]


def test_find_risky_files_skips_ignored(make_tree):
    root = make_tree({
        ".env": "",
        "logs/debug.log": "",
        "build/out.log": "",
    })
    rules = [rule(".env"), rule("*.log")]
    assert find_risky_files(root, rules, ignore_patterns=["build", "*.log"]) == [".env"]


@pytest.mark.asyncio
async def test_scan_workspace(make_tree):
    root = make_tree({
        "package.json": {"dependencies": {"next": "14.0.0"}},
        ".gitignore": "node_modules/\n",
        ".env.local": "SECRET=1",
        "node_modules/next/index.js": "",
    })
    result = await scan_workspace(root)

    assert [f.id for f in result.frameworks] == ["node", "nextjs"]
    assert result.has_gitignore
    suggested = [r.pattern for r in result.suggested_rules]
    assert ".next/" in suggested
    assert "node_modules/" not in suggested
    assert ".env" in result.missing_critical_patterns
    assert result.risky_files == [".env.local"]


@pytest.mark.asyncio
async def test_scan_without_frameworks(tmp_path):
    result = await scan_workspace(tmp_path)
    assert result.frameworks == []
    assert result.suggested_rules == []
    assert result.risky_files == []
    assert not result.has_gitignore


@pytest.mark.asyncio
async def test_scan_can_reuse_cached_detections(tmp_path):
    coordinator = DetectionCoordinator([tmp_path])
    await coordinator.detect_all()
    (tmp_path / "requirements.txt").write_text("django\n")

    cached = await scan_workspace(tmp_path, coordinator, force_refresh=False)
    refreshed = await scan_workspace(tmp_path, coordinator)

    assert cached.frameworks == []
    assert "django" in [f.id for f in refreshed.frameworks]


SUGGESTED = [
    rule(".env", Severity.CRITICAL, "Environment secrets"),
    rule("node_modules/"),
    rule(".DS_Store", Severity.OPTIONAL),
]
NODE = [detection("node", 0.8, name="Node.js")]


@pytest.mark.asyncio
async def test_suggest_prompts_for_critical_and_appends_selection(tmp_path):
    notifier = RecordingNotifier(frameworks="suggest", selected=[SUGGESTED[0]])
    result = await suggest_missing_rules(tmp_path, NODE, SUGGESTED, notifier)

    assert result.added_patterns == [".env"]
    assert [call[0] for call in notifier.calls] == ["frameworks", "select"]
    assert (tmp_path / ".gitignore").read_text().startswith("# Added by GitGuard (Node.js)\n")


@pytest.mark.asyncio
async def test_suggest_skips_prompt_without_critical_rules(tmp_path):
    (tmp_path / ".gitignore").write_text(".env\n")
    notifier = RecordingNotifier(frameworks="suggest")

    assert await suggest_missing_rules(tmp_path, NODE, SUGGESTED, notifier) is None
    assert notifier.calls == []

    result = await suggest_missing_rules(tmp_path, NODE, SUGGESTED, notifier, force_prompt=True)
    assert result.added_patterns == ["node_modules/", ".DS_Store"]


@pytest.mark.asyncio
async def test_suggest_dismissed(tmp_path, notifier):
    assert await suggest_missing_rules(tmp_path, NODE, SUGGESTED, notifier) is None
    assert not (tmp_path / ".gitignore").exists()


@pytest.mark.asyncio
async def test_suggest_automatic_mode_skips_selection(tmp_path):
    notifier = RecordingNotifier(frameworks="suggest", selected=[])
    settings = GitGuardSettings(modify_gitignore_automatically=True)
    result = await suggest_missing_rules(tmp_path, NODE, SUGGESTED, notifier, settings)

    assert result.added_patterns == [".env", "node_modules/", ".DS_Store"]
    assert [call[0] for call in notifier.calls] == ["frameworks"]


@pytest.mark.asyncio
async def test_suggest_empty_selection_writes_nothing(tmp_path):
    notifier = RecordingNotifier(frameworks="suggest", selected=[])
    assert await suggest_missing_rules(tmp_path, NODE, SUGGESTED, notifier) is None
    assert not (tmp_path / ".gitignore").exists()
