"""
Test suite for transaction history views

Tests search, type filtering and ordering over a mixed transaction log.
"""

import pytest
from decimal import Decimal
from datetime import datetime, timedelta, timezone

from pocket_ledger.accounts import Transaction, TransactionType
from pocket_ledger.history import filter_transactions, net_amount, NEWEST, OLDEST


BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


def entry(minutes, transaction_type, amount, description, counterparty=None):
    return Transaction(
        id=f"txn-{minutes}",
        transaction_type=transaction_type,
        amount=Decimal(amount),
        timestamp=BASE_TIME + timedelta(minutes=minutes),
        description=description,
        counterparty=counterparty
    )


class TestFilterTransactions:
    """Test read-side filtering and sorting"""
    
    def setup_method(self):
        """Mixed log, deliberately not in timestamp order"""
        self.log = [
            entry(30, TransactionType.TRANSFER_SENT, '2500', "Transfer to bob", "bob"),
            entry(0, TransactionType.DEPOSIT, '10000', "Initial deposit - Welcome bonus"),
            entry(45, TransactionType.WITHDRAW, '500', "Withdrawal of ₹500"),
            entry(10, TransactionType.DEPOSIT, '1500', "Deposit of ₹1,500"),
            entry(60, TransactionType.TRANSFER_RECEIVED, '100', "Transfer from Carol", "Carol"),
        ]
    
    def test_filter_by_type(self):
        """Test that type=deposit keeps only deposits"""
        result = filter_transactions(self.log, transaction_type=TransactionType.DEPOSIT)
        
        assert len(result) == 2
        assert all(t.transaction_type == TransactionType.DEPOSIT for t in result)
    
    def test_filter_by_type_string(self):
        result = filter_transactions(self.log, transaction_type="transfer-sent")
        assert [t.id for t in result] == ["txn-30"]
    
    def test_all_types(self):
        assert len(filter_transactions(self.log, transaction_type="all")) == 5
    
    def test_oldest_first(self):
        """Test that oldest sorts by strictly ascending timestamp"""
        result = filter_transactions(self.log, order=OLDEST)
        
        timestamps = [t.timestamp for t in result]
        assert timestamps == sorted(timestamps)
        assert [t.id for t in result] == ["txn-0", "txn-10", "txn-30", "txn-45", "txn-60"]
    
    def test_newest_first_is_default(self):
        result = filter_transactions(self.log)
        assert [t.id for t in result] == ["txn-60", "txn-45", "txn-30", "txn-10", "txn-0"]
    
    def test_search_description_case_insensitive(self):
        result = filter_transactions(self.log, search="DEPOSIT")
        assert {t.id for t in result} == {"txn-0", "txn-10"}
    
    def test_search_counterparty(self):
        result = filter_transactions(self.log, search="carol")
        assert [t.id for t in result] == ["txn-60"]
    
    def test_search_and_type_combined(self):
        result = filter_transactions(self.log, search="transfer", transaction_type="transfer-received")
        assert [t.id for t in result] == ["txn-60"]
    
    def test_input_not_mutated(self):
        original = list(self.log)
        filter_transactions(self.log, search="x", order=OLDEST)
        assert self.log == original
    
    def test_equal_timestamps_keep_log_order(self):
        first = entry(5, TransactionType.DEPOSIT, '1', "first")
        second = Transaction(
            id="txn-5b", transaction_type=TransactionType.DEPOSIT, amount=Decimal('2'),
            timestamp=first.timestamp, description="second"
        )
        same = [first, second]
        
        assert [t.description for t in filter_transactions(same, order=OLDEST)] == ["first", "second"]
        assert [t.description for t in filter_transactions(same, order=NEWEST)] == ["first", "second"]
    
    def test_unknown_order(self):
        with pytest.raises(ValueError, match="Unknown order"):
            filter_transactions(self.log, order="random")
    
    def test_unknown_type(self):
        with pytest.raises(ValueError):
            filter_transactions(self.log, transaction_type="refund")
    
    def test_net_amount(self):
        """Test that credits add and debits subtract"""
        assert net_amount(self.log) == Decimal('8600.00')
        assert net_amount(filter_transactions(self.log, transaction_type="transfer-sent")) == Decimal('-2500')
        assert net_amount([]) == Decimal('0')
