"""
Transaction History Views

Read-side helpers over the transaction list of an account: free-text
search, type filter, ordering and net totals. Pure functions; the ledger is never
touched.
"""

from decimal import Decimal
from typing import Iterable, List, Optional, Union

from .accounts import Transaction, TransactionType
from .money import ZERO


NEWEST = "newest"
OLDEST = "oldest"
ALL_TYPES = "all"


def filter_transactions(
    transactions: Iterable[Transaction],
    search: Optional[str] = None,
    transaction_type: Optional[Union[TransactionType, str]] = None,
    order: str = NEWEST
) -> List[Transaction]:
    """
    Filter and sort a transaction history

    Args:
        transactions: Entries to view, in any order
        search: Case-insensitive text matched against description or counterparty
        transaction_type: Type to keep; None or "all" keeps every type
        order: "newest" (descending timestamp) or "oldest" (ascending)

    Returns:
        A new list; the input is not modified

    Raises:
        ValueError: If order or transaction_type is not recognised
    """
    if order not in (NEWEST, OLDEST):
        raise ValueError(f"Unknown order {order!r}, expected '{NEWEST}' or '{OLDEST}'")

    if isinstance(transaction_type, str):
        transaction_type = None if transaction_type == ALL_TYPES else TransactionType(transaction_type)

    result = list(transactions)

    if search:
        needle = search.lower()
        result = [
            t for t in result
            if needle in t.description.lower()
            or (t.counterparty is not None and needle in t.counterparty.lower())
        ]

    if transaction_type is not None:
        result = [t for t in result if t.transaction_type == transaction_type]

    # sorted() is stable, so entries sharing a timestamp keep log order
    return sorted(result, key=lambda t: t.timestamp, reverse=(order == NEWEST))


def net_amount(transactions: Iterable[Transaction]) -> Decimal:
    """Signed sum of the entries: credits count up, debits count down"""
    return sum((t.signed_amount for t in transactions), ZERO)
