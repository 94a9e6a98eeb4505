from __future__ import annotations

import copy

import pytest

from warden.moderation.config_schema import ConfigProvider, default_config
from warden.moderation.dispatcher import PunishmentDispatcher
from warden.moderation.models import Subject
from warden.moderation.pipeline import ModerationPipeline
from warden.moderation.registry import RuleRegistry
from warden.moderation.rules import Rule
from warden.moderation.tracker import ViolationTracker

from .fakes import RecordingExecutor, RecordingSink


@pytest.fixture
def doc() -> dict:
    d = copy.deepcopy(default_config())
    d["address"]["allowed_domains"] = ["example.com"]
    d["address"]["allowed_addresses"] = ["192.168.1.5"]
    return d


@pytest.fixture
def config(doc) -> ConfigProvider:
    return ConfigProvider(doc)


@pytest.fixture
def alice() -> Subject:
    return Subject(id=42, name="alice", guild_id=1)


@pytest.fixture
def executor() -> RecordingExecutor:
    return RecordingExecutor()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def make_pipeline(executor, sink):
    def _make(*rules: Rule, stop_on_first: bool = False) -> ModerationPipeline:
        registry = RuleRegistry(listeners=[])
        for rule in rules:
            assert registry.register(rule)
        return ModerationPipeline(
            registry=registry,
            tracker=ViolationTracker(),
            dispatcher=PunishmentDispatcher(executor=executor, warnings=sink),
            stop_on_first=stop_on_first,
        )

    return _make
