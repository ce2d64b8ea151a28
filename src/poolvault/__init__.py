"""Share-based custodial pool with operator-managed external investment tracking."""

__version__ = "0.1.0"
