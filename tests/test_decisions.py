#!/usr/bin/env python3
"""
Test how flushed batches are turned into prompts and ignore-file writes
"""

import json

import pytest

from gitguard.gitignore import GitignoreFile
from gitguard.models import BatchDecision, PendingEvent, Severity, UserDecision
from gitguard.rules import RuleEngine
from gitguard.settings import SettingsStore
from gitguard.watcher.batcher import EventBatcher
from gitguard.watcher.decisions import DecisionHandler

from helpers import RecordingNotifier, rule


ENV_RULE = rule(".env", Severity.CRITICAL, "Environment secrets")
PEM_RULE = rule("*.pem", Severity.CRITICAL, "Private keys")


def event(path, matched_rule):
    return PendingEvent(path=path, matched_pattern=matched_rule.pattern, rule=matched_rule)


def handler_for(root, notifier, **kwargs):
    return DecisionHandler(root, notifier, GitignoreFile(), **kwargs)


@pytest.mark.asyncio
async def test_empty_flush_prompts_nothing(tmp_path, notifier):
    assert await handler_for(tmp_path, notifier).handle([]) is None
    assert notifier.calls == []


@pytest.mark.asyncio
async def test_single_event_uses_single_prompt(tmp_path, notifier):
    await handler_for(tmp_path, notifier).handle([event(".env", ENV_RULE)])
    assert [call[0] for call in notifier.calls] == ["single"]


@pytest.mark.asyncio
async def test_single_add_writes_pattern(tmp_path):
    notifier = RecordingNotifier(single=UserDecision.ADD_TO_GITIGNORE)
    result = await handler_for(tmp_path, notifier).handle([event("config/.env.local", ENV_RULE)])

    assert result.added_patterns == [".env"]
    assert ".env" in (tmp_path / ".gitignore").read_text().splitlines()
    assert notifier.messages == ["Added 1 pattern(s) to .gitignore"]


@pytest.mark.asyncio
async def test_ignore_once_changes_nothing(tmp_path, notifier):
    result = await handler_for(tmp_path, notifier).handle([event(".env", ENV_RULE)])
    assert result is None
    assert not (tmp_path / ".gitignore").exists()


@pytest.mark.asyncio
async def test_disable_warnings_dismisses_and_persists(tmp_path, scheduler):
    notifier = RecordingNotifier(single=UserDecision.DISABLE_WARNINGS)
    batcher = EventBatcher(RuleEngine(), lambda batch: None, scheduler=scheduler)
    store = SettingsStore(tmp_path, environ={})

    await handler_for(tmp_path, notifier, batcher=batcher, settings_store=store).handle(
        [event("key.pem", PEM_RULE)]
    )

    assert batcher.dismissed_patterns == {"*.pem"}
    saved = json.loads((tmp_path / ".gitguard.json").read_text())
    assert saved == {"suppressedWarnings": ["*.pem"]}
    assert not (tmp_path / ".gitignore").exists()


@pytest.mark.asyncio
async def test_batch_add_all_appends_each_pattern_once(tmp_path):
    notifier = RecordingNotifier(batch=BatchDecision.ADD_ALL)
    events = [
        event("a.pem", PEM_RULE),
        event(".env", ENV_RULE),
        event("certs/b.pem", PEM_RULE),
    ]
    result = await handler_for(tmp_path, notifier).handle(events)

    assert notifier.calls[0] == ("batch", events)
    assert result.added_patterns == ["*.pem", ".env"]
    content = (tmp_path / ".gitignore").read_text()
    assert content.count("*.pem") == 1
    assert "# Private keys" in content


@pytest.mark.asyncio
async def test_batch_view_details(tmp_path):
    notifier = RecordingNotifier(batch=BatchDecision.VIEW_DETAILS)
    await handler_for(tmp_path, notifier).handle([event(".env", ENV_RULE), event("a.pem", PEM_RULE)])

    assert len(notifier.details) == 1
    assert "File: a.pem" in notifier.details[0]
    assert not (tmp_path / ".gitignore").exists()


@pytest.mark.asyncio
async def test_batch_ignore(tmp_path, notifier):
    result = await handler_for(tmp_path, notifier).handle([event(".env", ENV_RULE), event("a.pem", PEM_RULE)])
    assert result is None
    assert notifier.details == []


@pytest.mark.asyncio
async def test_failed_write_is_reported(tmp_path):
    notifier = RecordingNotifier(single=UserDecision.ADD_TO_GITIGNORE)
    result = await handler_for(tmp_path / "gone", notifier).handle([event(".env", ENV_RULE)])

    assert not result.success
    assert notifier.errors and notifier.errors[0].startswith("Failed to update .gitignore")
