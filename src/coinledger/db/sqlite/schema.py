"""SQLite database schema definitions."""

SCHEMA_VERSION = 1

# Schema SQL for creating all tables
# This schema is idempotent - can be run multiple times safely
# Monetary and quantity columns are TEXT so Decimal values round-trip exactly.
SCHEMA_SQL = """
-- wallets: One row per user wallet
CREATE TABLE IF NOT EXISTS wallets (
    id TEXT PRIMARY KEY,
    owner TEXT NOT NULL UNIQUE,
    fiat_currency TEXT NOT NULL DEFAULT 'USD',
    version INTEGER NOT NULL DEFAULT 0,    -- bumped on every ledger save
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

-- positions: Stored inputs only; value and P&L are derived on read
CREATE TABLE IF NOT EXISTS positions (
    wallet_id TEXT NOT NULL,
    symbol TEXT NOT NULL,
    name TEXT NOT NULL DEFAULT '',
    amount TEXT NOT NULL,
    average_cost TEXT NOT NULL,
    current_price TEXT NOT NULL,
    seq INTEGER NOT NULL,                  -- display order
    PRIMARY KEY (wallet_id, symbol),
    FOREIGN KEY (wallet_id) REFERENCES wallets(id)
);

-- portfolio_snapshots: Valuation history for charting
CREATE TABLE IF NOT EXISTS portfolio_snapshots (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    wallet_id TEXT NOT NULL,
    timestamp TEXT NOT NULL,               -- ISO timestamp
    total_value TEXT NOT NULL,
    positions_json TEXT NOT NULL,          -- [{symbol, amount, price, value}]
    FOREIGN KEY (wallet_id) REFERENCES wallets(id)
);

CREATE INDEX IF NOT EXISTS idx_snapshots_wallet_time ON portfolio_snapshots(wallet_id, timestamp);

-- transactions: Buy/sell records with fees
CREATE TABLE IF NOT EXISTS transactions (
    id TEXT PRIMARY KEY,
    wallet_id TEXT NOT NULL,
    type TEXT NOT NULL,
    symbol TEXT NOT NULL,
    name TEXT NOT NULL DEFAULT '',
    amount TEXT NOT NULL,
    price TEXT NOT NULL,
    fiat_currency TEXT NOT NULL,
    fiat_amount TEXT NOT NULL,
    fee_amount TEXT NOT NULL,
    status TEXT NOT NULL,
    transaction_hash TEXT UNIQUE,
    notes TEXT,
    created_at TEXT NOT NULL,
    FOREIGN KEY (wallet_id) REFERENCES wallets(id)
);

CREATE INDEX IF NOT EXISTS idx_transactions_wallet_time ON transactions(wallet_id, created_at);
CREATE INDEX IF NOT EXISTS idx_transactions_symbol ON transactions(symbol);
CREATE INDEX IF NOT EXISTS idx_transactions_status ON transactions(status);
"""
