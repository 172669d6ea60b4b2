"""
Pocket Ledger

A small consumer-banking ledger: account registration, authentication,
deposits, withdrawals and atomic two-sided transfers against a persisted
account table, with an append-only transaction history per account.
"""

__version__ = "1.0.0"
