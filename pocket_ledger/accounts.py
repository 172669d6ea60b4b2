"""
Account Records Module

Defines the account and transaction records held in the ledger table,
credential hashing, and conversion to and from the persisted JSON layout.
Accounts own an append-only transaction log; the balance is always the
signed sum of that log and is never negative.
"""

from decimal import Decimal
from datetime import datetime, timezone
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from enum import Enum
import hashlib
import hmac
import secrets
import string

from .money import ZERO, format_amount, is_positive, to_amount


class TransactionType(Enum):
    """Kinds of ledger transaction"""
    DEPOSIT = "deposit"
    WITHDRAW = "withdraw"
    TRANSFER_SENT = "transfer-sent"
    TRANSFER_RECEIVED = "transfer-received"

    @property
    def sign(self) -> int:
        """+1 for credits to the account, -1 for debits"""
        if self in (TransactionType.DEPOSIT, TransactionType.TRANSFER_RECEIVED):
            return 1
        return -1

    @property
    def is_transfer(self) -> bool:
        return self in (TransactionType.TRANSFER_SENT, TransactionType.TRANSFER_RECEIVED)


OPENING_DESCRIPTION = "Initial deposit - Welcome bonus"

_ID_ALPHABET = string.digits + string.ascii_lowercase


def generate_transaction_id() -> str:
    """Millisecond timestamp followed by a random base36 suffix"""
    millis = int(datetime.now(timezone.utc).timestamp() * 1000)
    suffix = ''.join(secrets.choice(_ID_ALPHABET) for _ in range(5))
    return f"{millis}{suffix}"


def describe(transaction_type: TransactionType, amount: Decimal,
             counterparty: Optional[str] = None, symbol: str = "₹") -> str:
    """Human-readable description derived from type and amount"""
    if transaction_type == TransactionType.DEPOSIT:
        return f"Deposit of {format_amount(amount, symbol)}"
    if transaction_type == TransactionType.WITHDRAW:
        return f"Withdrawal of {format_amount(amount, symbol)}"
    if transaction_type == TransactionType.TRANSFER_SENT:
        return f"Transfer to {counterparty}"
    return f"Transfer from {counterparty}"


@dataclass(frozen=True)
class Transaction:
    """
    Immutable ledger entry. Created once per successful money movement
    and never altered or removed afterwards.
    """
    id: str
    transaction_type: TransactionType
    amount: Decimal
    timestamp: datetime
    description: str
    counterparty: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.amount, Decimal):
            object.__setattr__(self, 'amount', to_amount(self.amount))

        if not is_positive(self.amount):
            raise ValueError("Transaction amount must be positive")

        if self.transaction_type.is_transfer and not self.counterparty:
            raise ValueError("Transfer transactions must name a counterparty")

        if not self.transaction_type.is_transfer and self.counterparty:
            raise ValueError("Only transfer transactions carry a counterparty")

    @classmethod
    def create(
        cls,
        transaction_type: TransactionType,
        amount: Decimal,
        counterparty: Optional[str] = None,
        description: Optional[str] = None,
        symbol: str = "₹"
    ) -> 'Transaction':
        """Create a new transaction stamped with the current time"""
        return cls(
            id=generate_transaction_id(),
            transaction_type=transaction_type,
            amount=amount,
            timestamp=datetime.now(timezone.utc),
            description=description or describe(transaction_type, amount, counterparty, symbol),
            counterparty=counterparty
        )

    @property
    def signed_amount(self) -> Decimal:
        return self.amount * self.transaction_type.sign

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for storage"""
        result = {
            'id': self.id,
            'type': self.transaction_type.value,
            'amount': str(self.amount),
            'timestamp': self.timestamp.isoformat(),
            'description': self.description,
        }
        if self.counterparty:
            result['counterparty'] = self.counterparty
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Transaction':
        """Create instance from dictionary"""
        return cls(
            id=data['id'],
            transaction_type=TransactionType(data['type']),
            amount=Decimal(data['amount']),
            timestamp=datetime.fromisoformat(data['timestamp']),
            description=data['description'],
            counterparty=data.get('counterparty')
        )


def generate_salt() -> str:
    """Generate random salt for password hashing"""
    return secrets.token_hex(16)


def hash_password(password: str, salt: str) -> str:
    """Hash password with salt using scrypt"""
    return hashlib.scrypt(
        password.encode(),
        salt=salt.encode(),
        n=16384, r=8, p=1
    ).hex()


@dataclass
class Account:
    """
    Customer account: credentials, balance and its transaction history
    """
    username: str
    password_hash: str
    password_salt: str
    balance: Decimal = ZERO
    transactions: List[Transaction] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self):
        if not self.username:
            raise ValueError("Account username must not be empty")

        if self.balance < ZERO:
            raise ValueError("Account balance cannot be negative")

    @classmethod
    def register(cls, username: str, password: str) -> 'Account':
        """New empty account with a freshly salted credential"""
        salt = generate_salt()
        return cls(
            username=username,
            password_hash=hash_password(password, salt),
            password_salt=salt
        )

    def check_password(self, password: str) -> bool:
        """Verify password against stored hash"""
        candidate = hash_password(password, self.password_salt)
        return hmac.compare_digest(candidate, self.password_hash)

    def can_debit(self, amount: Decimal) -> bool:
        """Check if amount can be taken without overdrawing"""
        return self.balance >= amount

    def apply(self, transaction: Transaction) -> None:
        """
        Append a transaction and move the balance by its signed amount.

        Raises:
            ValueError: If the transaction would overdraw the account
        """
        new_balance = self.balance + transaction.signed_amount
        if new_balance < ZERO:
            raise ValueError(
                f"Insufficient balance: {self.balance} available, {transaction.amount} requested"
            )
        self.balance = new_balance
        self.transactions.append(transaction)

    def derived_balance(self) -> Decimal:
        """Balance recomputed from the transaction log"""
        return sum((t.signed_amount for t in self.transactions), ZERO)

    def is_consistent(self) -> bool:
        """Check the stored balance against the transaction log"""
        return self.balance == self.derived_balance() and self.balance >= ZERO

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for storage"""
        return {
            'username': self.username,
            'password_hash': self.password_hash,
            'password_salt': self.password_salt,
            'balance': str(self.balance),
            'created_at': self.created_at.isoformat(),
            'transactions': [t.to_dict() for t in self.transactions],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Account':
        """Create instance from dictionary"""
        return cls(
            username=data['username'],
            password_hash=data['password_hash'],
            password_salt=data['password_salt'],
            balance=Decimal(data['balance']),
            transactions=[Transaction.from_dict(t) for t in data.get('transactions', [])],
            created_at=datetime.fromisoformat(data['created_at'])
        )
