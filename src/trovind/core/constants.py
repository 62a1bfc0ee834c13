from __future__ import annotations

# Deployment defaults (Botanix testnet)
DEFAULT_RPC_URL = "https://rpc.ankr.com/botanix_testnet"
TROVE_MANAGER = "0xe5d2644be06c5b5d48b42aa7f9eaf27f0bc84265"
BORROWER_OPERATIONS = "0x165fb19121ab4f74dc66c520866b9ef4eb86aff8"
PRICE_FEED = "0x1f9866230b44d610d4fc66fdd742312d59c81355"
DEFAULT_ASSET = "0x92a68f6de3ba732a13a0ddee7d5ee77b2b3bb63f"
DEFAULT_START_BLOCK = 3_772_000

# Lifecycle event signature (borrower and collateral asset indexed)
TROVE_UPDATED_SIGNATURE = (
    "TroveUpdated(address indexed _borrower, address indexed _collateral, "
    "uint256 _debt, uint256 _coll, uint256 _stake, uint8 _operation)"
)
TROVE_UPDATED = "TroveUpdated"

# Price feed surface
FETCH_PRICE_SIGNATURE = "fetchPrice(address)"
PRICE_RECORDS_SIGNATURE = "priceRecords(address)"
ORACLE_RECORDS_SIGNATURE = "oracleRecords(address)"
FEED_FROZEN_ERROR_SIGNATURE = "PriceFeed__FeedFrozenError(address)"

WAD_DECIMALS = 18
PRICE_DECIMALS = 8
