"""Indexer configuration.

In-process configuration is a set of frozen dataclasses. A JSON config file
is validated with pydantic (`ConfigFile`) and converted by `load_config`;
CLI options are applied on top with `dataclasses.replace`.
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, ValidationError, field_validator

from trovind.core.constants import (
    BORROWER_OPERATIONS,
    DEFAULT_ASSET,
    DEFAULT_RPC_URL,
    DEFAULT_START_BLOCK,
    FEED_FROZEN_ERROR_SIGNATURE,
    PRICE_DECIMALS,
    PRICE_FEED,
    TROVE_MANAGER,
    TROVE_UPDATED_SIGNATURE,
    WAD_DECIMALS,
)
from trovind.core.errors import ConfigError

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")
MAX_DECIMALS = 77  # 10**77 is the largest power of ten below 2**256

StoreKind = Literal["duckdb", "memory"]


def _check_decimals(name: str, value: int) -> None:
    if not 0 <= value <= MAX_DECIMALS:
        raise ConfigError(f"{name} must be within [0, {MAX_DECIMALS}], got {value}")


def _check_address(name: str, value: str) -> str:
    if not _ADDRESS_RE.match(value):
        raise ConfigError(f"{name} is not a 0x-prefixed 20-byte address: {value!r}")
    return value.lower()


@dataclass(frozen=True)
class ScaleConfig:
    """Fixed-point scales for collateral (per asset) and debt amounts."""

    default_decimals: int = WAD_DECIMALS
    collateral_decimals: Mapping[str, int] = field(default_factory=dict)
    debt_decimals: int = WAD_DECIMALS

    def __post_init__(self) -> None:
        _check_decimals("default_decimals", self.default_decimals)
        _check_decimals("debt_decimals", self.debt_decimals)
        normalized: dict[str, int] = {}
        for asset, decimals in self.collateral_decimals.items():
            _check_decimals(f"collateral_decimals[{asset}]", decimals)
            normalized[_check_address("collateral_decimals key", asset)] = decimals
        object.__setattr__(self, "collateral_decimals", normalized)

    def collateral_for(self, asset: str) -> int:
        return self.collateral_decimals.get(asset.lower(), self.default_decimals)


@dataclass(frozen=True)
class OracleConfig:
    """Price feed reader settings."""

    price_feed: str = PRICE_FEED
    asset: str = DEFAULT_ASSET
    price_decimals: int = PRICE_DECIMALS
    frozen_error_signature: str = FEED_FROZEN_ERROR_SIGNATURE

    def __post_init__(self) -> None:
        _check_decimals("price_decimals", self.price_decimals)
        object.__setattr__(self, "price_feed", _check_address("price_feed", self.price_feed))
        object.__setattr__(self, "asset", _check_address("asset", self.asset))


@dataclass(frozen=True)
class ContractSource:
    """One watched contract and the schema its events decode with.

    `abi` points at an ABI JSON file; `signatures` are Solidity event
    signatures. Both may be given; ABI entries win on topic0 collisions.
    """

    address: str
    abi: Path | None = None
    signatures: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "address", _check_address("contract address", self.address))


def default_contracts() -> tuple[ContractSource, ...]:
    return (
        ContractSource(address=TROVE_MANAGER, signatures=(TROVE_UPDATED_SIGNATURE,)),
        ContractSource(address=BORROWER_OPERATIONS),
    )


@dataclass(frozen=True)
class IndexerConfig:
    """Configuration for the tailing indexer."""

    rpc_url: str = DEFAULT_RPC_URL
    contracts: tuple[ContractSource, ...] = field(default_factory=default_contracts)
    start_block: int = DEFAULT_START_BLOCK
    batch_size: int = 500
    poll_interval_s: float = 10.0
    retry_interval_s: float = 5.0
    timeout_s: int = 20
    store: StoreKind = "duckdb"
    db_path: Path = Path("./data/trovind.duckdb")
    manifest_path: Path = Path("./data/manifests/cursor.jsonl")
    allow_terminal_updates: bool = False
    scales: ScaleConfig = field(default_factory=ScaleConfig)
    oracle: OracleConfig = field(default_factory=OracleConfig)

    def __post_init__(self) -> None:
        if self.start_block < 0:
            raise ConfigError("start_block must be >= 0")
        if self.batch_size < 1:
            raise ConfigError("batch_size must be >= 1")
        if self.poll_interval_s <= 0 or self.retry_interval_s <= 0:
            raise ConfigError("poll_interval_s and retry_interval_s must be > 0")
        if not self.contracts:
            raise ConfigError("at least one watched contract is required")

    @property
    def addresses(self) -> list[str]:
        return [c.address for c in self.contracts]


# ---------------------------------------------------------------------------
# Config file schema
# ---------------------------------------------------------------------------


class ContractModel(BaseModel):
    address: str
    abi: Path | None = None
    signatures: list[str] = Field(default_factory=list)


class ScalesModel(BaseModel):
    default_decimals: int = WAD_DECIMALS
    collateral_decimals: dict[str, int] = Field(default_factory=dict)
    debt_decimals: int = WAD_DECIMALS


class OracleModel(BaseModel):
    price_feed: str = PRICE_FEED
    asset: str = DEFAULT_ASSET
    price_decimals: int = PRICE_DECIMALS
    frozen_error_signature: str = FEED_FROZEN_ERROR_SIGNATURE


class ConfigFile(BaseModel):
    rpc_url: str = DEFAULT_RPC_URL
    contracts: list[ContractModel] | None = None
    start_block: int = DEFAULT_START_BLOCK
    batch_size: int = 500
    poll_interval_s: float = 10.0
    retry_interval_s: float = 5.0
    timeout_s: int = 20
    store: StoreKind = "duckdb"
    db_path: Path = Path("./data/trovind.duckdb")
    manifest_path: Path = Path("./data/manifests/cursor.jsonl")
    allow_terminal_updates: bool = False
    scales: ScalesModel = Field(default_factory=ScalesModel)
    oracle: OracleModel = Field(default_factory=OracleModel)

    @field_validator("rpc_url")
    @classmethod
    def validate_rpc_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("rpc_url must be an HTTP(S) endpoint")
        return v

    def to_config(self, base_dir: Path | None = None) -> IndexerConfig:
        """Convert to `IndexerConfig`; relative ABI paths resolve against `base_dir`."""

        def _resolve(p: Path | None) -> Path | None:
            if p is None or base_dir is None or p.is_absolute():
                return p
            return base_dir / p

        contracts = (
            tuple(
                ContractSource(address=c.address, abi=_resolve(c.abi), signatures=tuple(c.signatures))
                for c in self.contracts
            )
            if self.contracts is not None
            else default_contracts()
        )
        return IndexerConfig(
            rpc_url=self.rpc_url,
            contracts=contracts,
            start_block=self.start_block,
            batch_size=self.batch_size,
            poll_interval_s=self.poll_interval_s,
            retry_interval_s=self.retry_interval_s,
            timeout_s=self.timeout_s,
            store=self.store,
            db_path=self.db_path,
            manifest_path=self.manifest_path,
            allow_terminal_updates=self.allow_terminal_updates,
            scales=ScaleConfig(**self.scales.model_dump()),
            oracle=OracleConfig(**self.oracle.model_dump()),
        )


def load_config(path: Path | None) -> IndexerConfig:
    """Load and validate a JSON config file; `None` yields the defaults."""
    if path is None:
        return IndexerConfig()
    try:
        raw = json.loads(path.read_text())
        return ConfigFile.model_validate(raw).to_config(base_dir=path.parent)
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        raise ConfigError(f"invalid config file {path}: {e}") from e
