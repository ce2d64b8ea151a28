"""External-investment tracking.

Public API:
- ExternalInvestmentTracker: pool-wide deployed-amount counter with invest/redeem/override.
- ReceiptToken: optional receipt supply mirroring the deployed amount.
"""

from .receipt import ReceiptIssuer, ReceiptToken
from .tracker import ExternalInvestmentTracker

__all__ = ["ExternalInvestmentTracker", "ReceiptIssuer", "ReceiptToken"]
