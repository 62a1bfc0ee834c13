from pathlib import Path

import pytest

from factories import E18, TROVE_MANAGER, trove_log
from trovind.core.config import ContractSource, IndexerConfig
from trovind.core.constants import TROVE_UPDATED_SIGNATURE
from trovind.orchestration.orchestrator import build_indexer, open_store
from trovind.storage.duckdb_store import DuckDBPositionStore
from trovind.storage.memory import InMemoryPositionStore


def _config(tmp_path: Path, **changes) -> IndexerConfig:
    params = dict(
        contracts=(ContractSource(address=TROVE_MANAGER, signatures=(TROVE_UPDATED_SIGNATURE,)),),
        start_block=10,
        batch_size=100,
        store="memory",
        db_path=tmp_path / "positions.duckdb",
        manifest_path=tmp_path / "manifests" / "cursor.jsonl",
    )
    params.update(changes)
    return IndexerConfig(**params)


def test_open_store_selects_backend(tmp_path: Path) -> None:
    assert isinstance(open_store(_config(tmp_path)), InMemoryPositionStore)

    store = open_store(_config(tmp_path, store="duckdb"))
    assert isinstance(store, DuckDBPositionStore)
    store.close()


@pytest.mark.asyncio
async def test_build_indexer_wires_components(tmp_path: Path, mock_rpc) -> None:
    mock_rpc.latest_block.return_value = 50
    mock_rpc.get_logs.return_value = [trove_log(debt=E18, coll=2 * E18, operation=0, block=20)]

    indexer = build_indexer(_config(tmp_path), rpc=mock_rpc)
    try:
        assert indexer.scheduler.cursor == 10
        stats = await indexer.scheduler.run(max_iterations=1)
    finally:
        await indexer.aclose()

    assert stats.folded == 1
    assert indexer.store.get(1).block_number == 20
    mock_rpc.get_logs.assert_awaited_once_with(addresses=[TROVE_MANAGER], from_block=10, to_block=50)
    mock_rpc.aclose.assert_awaited_once()
    assert indexer.manifest.resume_from(10) == 51


@pytest.mark.asyncio
async def test_build_indexer_resumes_from_previous_run(tmp_path: Path, mock_rpc) -> None:
    config = _config(tmp_path, store="duckdb")
    first = build_indexer(config, rpc=mock_rpc)
    try:
        await first.scheduler.run(max_iterations=1)
    finally:
        await first.aclose()

    second = build_indexer(config, rpc=mock_rpc)
    try:
        assert second.scheduler.cursor == 101
    finally:
        await second.aclose()
