"""Shared fixtures for cronkeep tests."""

import asyncio
from pathlib import Path
from typing import Iterator

import pytest

from cronkeep.config import CronkeepConfig, clear_config_cache, set_config
from cronkeep.database.connection import dispose_engine
from cronkeep.store import SQLRunRecordStore


@pytest.fixture
def config(tmp_path: Path) -> Iterator[CronkeepConfig]:
    """Configuration pointing at a fresh SQLite database."""
    dispose_engine()
    cfg = CronkeepConfig(config_dir=tmp_path / "config", data_dir=tmp_path / "data")
    set_config(cfg)
    yield cfg
    dispose_engine()
    clear_config_cache()


@pytest.fixture
def store(config: CronkeepConfig) -> SQLRunRecordStore:
    """Record store with the schema created."""
    s = SQLRunRecordStore(config)
    s.create_schema()
    return s


@pytest.fixture
def stop_event() -> asyncio.Event:
    return asyncio.Event()
