import dataclasses
import json
from pathlib import Path

import pytest

from trovind.core.config import IndexerConfig, OracleConfig, ScaleConfig, load_config
from trovind.core.constants import DEFAULT_START_BLOCK, TROVE_MANAGER
from trovind.core.errors import ConfigError


def _write(tmp_path: Path, data) -> Path:
    path = tmp_path / "config.json"
    path.write_text(json.dumps(data) if not isinstance(data, str) else data)
    return path


def test_defaults() -> None:
    config = load_config(None)

    assert config == IndexerConfig()
    assert config.start_block == DEFAULT_START_BLOCK
    assert TROVE_MANAGER in config.addresses
    assert config.scales.collateral_for("0x" + "1" * 40) == 18
    assert config.oracle.price_decimals == 8


def test_load_file_resolves_relative_abi_paths(tmp_path: Path) -> None:
    path = _write(
        tmp_path,
        {
            "rpc_url": "http://localhost:8545",
            "contracts": [{"address": "0x" + "AB" * 20, "abi": "abi/TroveManager.json"}],
            "start_block": 5,
            "batch_size": 10,
            "store": "memory",
            "scales": {"collateral_decimals": {"0x" + "CD" * 20: 8}},
        },
    )

    config = load_config(path)

    assert config.rpc_url == "http://localhost:8545"
    (source,) = config.contracts
    assert source.address == "0x" + "ab" * 20
    assert source.abi == tmp_path / "abi" / "TroveManager.json"
    assert config.start_block == 5
    assert config.batch_size == 10
    assert config.store == "memory"
    assert config.scales.collateral_for("0x" + "cd" * 20) == 8


@pytest.mark.parametrize(
    "data",
    [
        "{not json",
        {"rpc_url": "ws://node"},
        {"batch_size": "many"},
        {"store": "mongo"},
    ],
)
def test_invalid_file_raises_config_error(tmp_path: Path, data) -> None:
    with pytest.raises(ConfigError):
        load_config(_write(tmp_path, data))


def test_missing_file_raises_config_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        load_config(tmp_path / "absent.json")


@pytest.mark.parametrize(
    "changes",
    [
        {"batch_size": 0},
        {"start_block": -1},
        {"poll_interval_s": 0},
        {"retry_interval_s": -1.0},
        {"contracts": ()},
    ],
)
def test_indexer_config_validation(changes) -> None:
    with pytest.raises(ConfigError):
        dataclasses.replace(IndexerConfig(), **changes)


def test_decimals_must_be_in_range() -> None:
    with pytest.raises(ConfigError):
        ScaleConfig(default_decimals=78)
    with pytest.raises(ConfigError):
        OracleConfig(price_decimals=-1)
    with pytest.raises(ConfigError):
        ScaleConfig(collateral_decimals={"not-an-address": 8})


def test_config_error_is_a_value_error() -> None:
    with pytest.raises(ValueError):
        ScaleConfig(debt_decimals=100)
