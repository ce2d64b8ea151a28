"""
Main entrypoint for poolvault.

What it does:
- Loads runtime settings from `config/config.yaml` (override with
  `POOLVAULT_CONFIG`) and the operator identity from the environment
  (e.g. `USDC_MAIN_OPERATOR`).
- Starts the Prometheus metrics server (port from settings or `PROMETHEUS_PORT`).
- Builds a pool over an in-memory asset book and replays a short demo:
  deposits, an external investment, a partial redeem, a profitable redeem and
  a withdrawal. Logs each snapshot and writes `journal.parquet`.

Key related modules:
- `poolvault.config.loader.Settings` and `load_settings`
- `poolvault.ledger.PoolLedger`
- `poolvault.tracker.ExternalInvestmentTracker`
"""
import logging
import os
from typing import Optional

from poolvault.assets.book import AssetBook
from poolvault.assets.model import AssetLedger
from poolvault.auth import OperatorGate
from poolvault.config.loader import Settings, load_settings
from poolvault.ledger import PoolLedger
from poolvault.metrics.core import start_server_safe
from poolvault.tracker import ReceiptToken


def build_pool(settings: Settings, assets: Optional[AssetLedger] = None) -> PoolLedger:
    """Wire a PoolLedger from settings; defaults to a fresh in-memory asset book."""
    cfg = settings.pool
    if assets is None:
        assets = AssetBook(symbol=cfg.asset_symbol, decimals=cfg.decimals)
    receipt = None
    if cfg.receipt_token:
        receipt = ReceiptToken(cfg.account, symbol=cfg.receipt_symbol, width_bits=cfg.width_bits)
    return PoolLedger(
        assets,
        cfg.account,
        OperatorGate(settings.operator),
        pool_id=cfg.id,
        receipt=receipt,
        width_bits=cfg.width_bits,
        audit_log_path=settings.audit.path,
    )


def run_demo(pool: PoolLedger, book: AssetBook, operator: str) -> None:
    unit = 10 ** book.decimals()
    venue = "venue:external"
    for holder, amount in (("alice", 1_000 * unit), ("bob", 500 * unit)):
        book.mint(holder, amount)
        book.approve(holder, pool.account, amount)
        shares = pool.deposit(holder, amount)
        logging.info(f"{holder} deposited {pool.to_display(amount)} {book.symbol} for {shares} shares")

    # Operator moves custodied assets out; pool approves itself as spender.
    book.approve(pool.account, pool.account, 600 * unit)
    pool.invest(operator, pool.account, venue, 600 * unit)
    logging.info(f"after invest: {pool.snapshot()}")

    book.approve(venue, pool.account, 10_000 * unit)
    pool.redeem(operator, pool.account, venue, 200 * unit)
    logging.info(f"after partial redeem: {pool.snapshot()}")

    book.mint(venue, 50 * unit)  # venue earned a return
    profit = pool.redeem(operator, pool.account, venue, 450 * unit)
    logging.info(f"after closing redeem (profit {pool.to_display(profit)}): {pool.snapshot()}")

    paid = pool.withdraw("bob", pool.balance_of("bob"))
    logging.info(f"bob withdrew {pool.to_display(paid)} {book.symbol}; share price {pool.share_price():.6f}")


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    settings = load_settings(os.getenv("POOLVAULT_CONFIG", "config/config.yaml"))
    logging.info(f"Pool: {settings.pool.id} ({settings.pool.asset_symbol}), account {settings.pool.account}")

    prom_port = int(os.getenv("PROMETHEUS_PORT", str(settings.metrics.port)))
    start_server_safe(prom_port)

    book = AssetBook(symbol=settings.pool.asset_symbol, decimals=settings.pool.decimals)
    pool = build_pool(settings, book)
    run_demo(pool, book, settings.operator)
    path = pool.write_parquet(settings.journal_dir)
    logging.info(f"Journal written to {path} ({len(pool.rows)} rows)")


if __name__ == "__main__":
    main()
