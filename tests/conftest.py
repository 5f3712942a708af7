"""Shared fixtures for gitguard tests"""

import pytest

from helpers import FakeScheduler, RecordingNotifier, write_tree


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def make_tree(tmp_path):
    def _make(files):
        return write_tree(tmp_path, files)
    return _make
