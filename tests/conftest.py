"""Shared fixtures for roundclient tests."""

from __future__ import annotations

import os

import pytest

from roundclient.core.config import Settings
from roundclient.rounds.dispatcher import RoundEventDispatcher
from roundclient.rounds.projection import RoundStateProjection
from tests.channel_testkit import FakeNetwork
from tests.channel_testkit import make_settings


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep developer ROUNDCLIENT_* variables out of the tests."""
    for name in list(os.environ):
        if name.upper().startswith("ROUNDCLIENT_"):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def network() -> FakeNetwork:
    return FakeNetwork()


@pytest.fixture
def dispatcher() -> RoundEventDispatcher:
    return RoundEventDispatcher()


@pytest.fixture
def projection(dispatcher: RoundEventDispatcher) -> RoundStateProjection:
    """Projection already wired to the ``dispatcher`` fixture."""
    projection = RoundStateProjection()
    projection.attach(dispatcher)
    return projection
