import logging
from unittest.mock import AsyncMock

import pytest

from factories import BASE_RATE_SIGNATURE, TROVE_MANAGER
from trovind.core.config import ScaleConfig
from trovind.core.constants import TROVE_UPDATED_SIGNATURE
from trovind.core.use_cases.fold_positions import PositionFolder
from trovind.core.use_cases.ingest import IngestService
from trovind.decoding.registry import DecodingTableProvider, make_table
from trovind.decoding.registry_builder import make_registry
from trovind.storage.memory import InMemoryPositionStore


@pytest.fixture
def mock_rpc():
    rpc = AsyncMock()
    rpc.get_logs = AsyncMock(return_value=[])
    rpc.latest_block = AsyncMock(return_value=100)
    rpc.aclose = AsyncMock()
    return rpc


@pytest.fixture
def table():
    return make_table({TROVE_MANAGER: make_registry([TROVE_UPDATED_SIGNATURE, BASE_RATE_SIGNATURE])})


@pytest.fixture
def store() -> InMemoryPositionStore:
    return InMemoryPositionStore()


@pytest.fixture
def folder(store: InMemoryPositionStore) -> PositionFolder:
    return PositionFolder(store, ScaleConfig())


@pytest.fixture
def ingest(table, store: InMemoryPositionStore, folder: PositionFolder) -> IngestService:
    return IngestService(DecodingTableProvider(table), store, folder)


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)
