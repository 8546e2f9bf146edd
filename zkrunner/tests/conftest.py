"""Shared fixtures for zkrunner tests.

Settings are built per test under ``tmp_path`` so nothing leaks into the
working tree, and the cached ``get_settings()`` is reset around every test
that touches the environment.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator, Tuple

import pytest
import structlog

from zkrunner.config import Settings, get_settings
from zkrunner.orchestrator import ComputationOrchestrator
from zkrunner.tests import FakeCairoBridge, FakeNoirBridge, make_orchestrator, make_settings


@pytest.fixture(autouse=True)
def _fresh_settings(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Iterator[None]:
    # a stray .env in the invoking directory must not change defaults
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return make_settings(tmp_path)


@pytest.fixture
def orch_env(tmp_path: Path) -> Tuple[ComputationOrchestrator, FakeCairoBridge, FakeNoirBridge]:
    return make_orchestrator(tmp_path)


@pytest.fixture
def orch(orch_env) -> ComputationOrchestrator:
    return orch_env[0]


@pytest.fixture
def restore_logging() -> Iterator[None]:
    root = logging.getLogger()
    level = root.level
    yield
    # pytest re-installs its own capture handlers per phase; drop only ours
    for h in list(root.handlers):
        if isinstance(h.formatter, structlog.stdlib.ProcessorFormatter):
            root.removeHandler(h)
    root.setLevel(level)
    structlog.reset_defaults()
