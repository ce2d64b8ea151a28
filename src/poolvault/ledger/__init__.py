"""Ledger package.

Public API:
- PoolLedger: share issuance over custodied plus externally deployed assets, journal, parquet output.
"""

from .pool import PoolLedger  # re-export
