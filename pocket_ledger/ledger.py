"""
Ledger Service Module

Business-logic layer over the ledger store: account registration,
authentication, deposits, withdrawals and transfers. Every operation runs
one load-mutate-save cycle under the service lock, so each call moves the
table from one consistent state to another or leaves it untouched.
"""

from decimal import Decimal
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple
from enum import Enum
import threading

from .accounts import Account, Transaction, TransactionType, OPENING_DESCRIPTION
from .config import LedgerConfig, get_config
from .logging_config import get_logger, log_action
from .money import AmountLike, ZERO, has_sub_cent_digits, is_positive, to_amount, to_decimal
from .storage import LedgerStore, LedgerStoreError


class ResultStatus(Enum):
    """Outcome of a ledger operation"""
    OK = "ok"
    ACCOUNT_NOT_FOUND = "account_not_found"
    ACCOUNT_ALREADY_EXISTS = "account_already_exists"
    INVALID_AMOUNT = "invalid_amount"
    INSUFFICIENT_BALANCE = "insufficient_balance"
    STORE_UNAVAILABLE = "store_unavailable"
    SELF_TRANSFER = "self_transfer"
    INVALID_USERNAME = "invalid_username"


@dataclass
class OperationResult:
    """
    Result of a mutating ledger operation.

    Truthy only on success, so callers may treat it as a plain boolean.
    ``account`` is a detached snapshot of the acting account after the
    operation; ``transactions`` holds the entries it appended.
    """
    status: ResultStatus
    account: Optional[Account] = None
    transactions: List[Transaction] = field(default_factory=list)

    def __bool__(self) -> bool:
        return self.status == ResultStatus.OK

    @property
    def ok(self) -> bool:
        return self.status == ResultStatus.OK


# Demo accounts of the legacy console client: (username, password, balance)
DEMO_ACCOUNTS: Tuple[Tuple[str, str, str], ...] = (
    ("sohan", "pass123", "24000.00"),
    ("sharvari", "abc123", "14000.00"),
    ("basanth", "password1", "21000.00"),
    ("darshan", "neha@123", "8000.00"),
    ("prahllad", "java456", "10000.00"),
)

SEED_DESCRIPTION = "Opening balance"


class LedgerService:
    """
    Sole entry point for reading and mutating account state.

    The table is persisted as a single blob, so operations on different
    accounts still contend on the same save; one lock serialises every
    cycle. Use one service per store.
    """

    def __init__(self, store: LedgerStore, config: Optional[LedgerConfig] = None):
        self.store = store
        self.config = config or get_config()
        self.welcome_bonus = to_amount(self.config.welcome_bonus)
        self.max_amount = to_amount(self.config.max_amount)
        self.currency_symbol = self.config.currency_symbol
        self.logger = get_logger("pocket_ledger.ledger")
        self._lock = threading.RLock()

    # Mutating operations

    def create_account(self, username: str, password: str) -> OperationResult:
        """
        Register a new account credited with the welcome bonus

        Returns:
            OK with the new account, INVALID_USERNAME, ACCOUNT_ALREADY_EXISTS
            or STORE_UNAVAILABLE
        """
        if not username or not username.strip():
            return self._reject("create_account", ResultStatus.INVALID_USERNAME, username)

        try:
            with self._lock:
                table = self.store.load()
                if username in table:
                    return self._reject("create_account", ResultStatus.ACCOUNT_ALREADY_EXISTS, username)

                account = Account.register(username, password)
                opening = []
                if is_positive(self.welcome_bonus):
                    opening.append(Transaction.create(
                        TransactionType.DEPOSIT, self.welcome_bonus,
                        description=OPENING_DESCRIPTION
                    ))
                    account.apply(opening[0])

                table[username] = account
                self.store.save(table)
        except LedgerStoreError as e:
            return self._store_failure("create_account", username, e)

        log_action(
            self.logger, "info", "Account created",
            user_id=username, action="create_account", resource=f"account:{username}",
            extra={"opening_balance": str(account.balance)}
        )
        return OperationResult(ResultStatus.OK, account=account, transactions=opening)

    def deposit(self, username: str, amount: AmountLike) -> OperationResult:
        """Credit an account"""
        value = self._parse_amount(amount)
        if value is None:
            return self._reject("deposit", ResultStatus.INVALID_AMOUNT, username, amount=amount)

        try:
            with self._lock:
                table = self.store.load()
                account = table.get(username)
                if account is None:
                    return self._reject("deposit", ResultStatus.ACCOUNT_NOT_FOUND, username, amount=value)

                transaction = Transaction.create(
                    TransactionType.DEPOSIT, value, symbol=self.currency_symbol
                )
                account.apply(transaction)
                self.store.save(table)
        except LedgerStoreError as e:
            return self._store_failure("deposit", username, e)

        self._log_success("deposit", account, transaction)
        return OperationResult(ResultStatus.OK, account=account, transactions=[transaction])

    def withdraw(self, username: str, amount: AmountLike) -> OperationResult:
        """Debit an account; overdrafts are refused"""
        value = self._parse_amount(amount)
        if value is None:
            return self._reject("withdraw", ResultStatus.INVALID_AMOUNT, username, amount=amount)

        try:
            with self._lock:
                table = self.store.load()
                account = table.get(username)
                if account is None:
                    return self._reject("withdraw", ResultStatus.ACCOUNT_NOT_FOUND, username, amount=value)

                if not account.can_debit(value):
                    return self._reject("withdraw", ResultStatus.INSUFFICIENT_BALANCE, username, amount=value)

                transaction = Transaction.create(
                    TransactionType.WITHDRAW, value, symbol=self.currency_symbol
                )
                account.apply(transaction)
                self.store.save(table)
        except LedgerStoreError as e:
            return self._store_failure("withdraw", username, e)

        self._log_success("withdraw", account, transaction)
        return OperationResult(ResultStatus.OK, account=account, transactions=[transaction])

    def transfer(self, from_username: str, to_username: str, amount: AmountLike) -> OperationResult:
        """
        Move funds between two distinct accounts.

        Both debit and credit, with their ``transfer-sent`` and
        ``transfer-received`` entries, are written by a single save: either
        both sides are applied or neither is.

        Returns:
            OK with the sender's account and both entries (sent, received),
            or INVALID_AMOUNT, SELF_TRANSFER, ACCOUNT_NOT_FOUND,
            INSUFFICIENT_BALANCE, STORE_UNAVAILABLE
        """
        value = self._parse_amount(amount)
        if value is None:
            return self._reject("transfer", ResultStatus.INVALID_AMOUNT, from_username,
                                amount=amount, counterparty=to_username)

        if from_username == to_username:
            return self._reject("transfer", ResultStatus.SELF_TRANSFER, from_username,
                                amount=value, counterparty=to_username)

        try:
            with self._lock:
                table = self.store.load()
                sender = table.get(from_username)
                recipient = table.get(to_username)
                if sender is None or recipient is None:
                    return self._reject("transfer", ResultStatus.ACCOUNT_NOT_FOUND, from_username,
                                        amount=value, counterparty=to_username)

                if not sender.can_debit(value):
                    return self._reject("transfer", ResultStatus.INSUFFICIENT_BALANCE, from_username,
                                        amount=value, counterparty=to_username)

                sent = Transaction.create(TransactionType.TRANSFER_SENT, value, counterparty=to_username)
                received = Transaction.create(TransactionType.TRANSFER_RECEIVED, value, counterparty=from_username)
                sender.apply(sent)
                recipient.apply(received)
                self.store.save(table)
        except LedgerStoreError as e:
            return self._store_failure("transfer", from_username, e)

        log_action(
            self.logger, "info", "Transfer completed",
            user_id=from_username, action="transfer", resource=f"account:{from_username}",
            extra={
                "to_account": to_username,
                "amount": str(value),
                "sent_transaction_id": sent.id,
                "received_transaction_id": received.id,
            }
        )
        return OperationResult(ResultStatus.OK, account=sender, transactions=[sent, received])

    def seed_accounts(self, seeds: Iterable[Tuple[str, str, AmountLike]]) -> List[str]:
        """
        Register a batch of accounts with explicit opening balances in one
        cycle. Existing usernames are skipped. Store failures propagate.

        Returns:
            Usernames that were created
        """
        created = []
        with self._lock:
            table = self.store.load()
            for username, password, balance in seeds:
                if not username or username in table:
                    continue

                opening_balance = to_amount(balance)
                if opening_balance < ZERO:
                    raise ValueError(f"Opening balance for {username} cannot be negative")

                account = Account.register(username, password)
                if is_positive(opening_balance):
                    account.apply(Transaction.create(
                        TransactionType.DEPOSIT, opening_balance, description=SEED_DESCRIPTION
                    ))
                table[username] = account
                created.append(username)

            if created:
                self.store.save(table)

        if created:
            log_action(
                self.logger, "info", f"Seeded {len(created)} accounts",
                action="seed_accounts", extra={"usernames": created}
            )
        return created

    # Read-only operations

    def authenticate(self, username: str, password: str) -> Optional[Account]:
        """Return the account if the credentials match, otherwise None"""
        with self._lock:
            account = self.store.load().get(username)

        if account is not None and account.check_password(password):
            log_action(self.logger, "info", "Login succeeded",
                       user_id=username, action="authenticate", resource=f"account:{username}")
            return account

        log_action(self.logger, "warning", "Login failed",
                   user_id=username, action="authenticate", resource=f"account:{username}")
        return None

    def get_account(self, username: str) -> Optional[Account]:
        """Get account by username"""
        with self._lock:
            return self.store.load().get(username)

    def account_exists(self, username: str) -> bool:
        """Check if an account exists"""
        with self._lock:
            return username in self.store.load()

    def total_balance(self) -> Decimal:
        """Sum of all account balances"""
        with self._lock:
            table = self.store.load()
        return sum((account.balance for account in table.values()), ZERO)

    def verify_integrity(self) -> Dict[str, bool]:
        """
        Recompute every balance from its transaction log

        Returns:
            Mapping of username to whether the stored balance matches
        """
        with self._lock:
            table = self.store.load()

        results = {username: account.is_consistent() for username, account in table.items()}
        broken = [username for username, ok in results.items() if not ok]
        if broken:
            log_action(self.logger, "error", "Balance does not match transaction log",
                       action="verify_integrity", extra={"accounts": broken})
        return results

    # Helpers

    def _parse_amount(self, amount: AmountLike) -> Optional[Decimal]:
        """
        Positive whole-cent amount no larger than ``max_amount``, or None.
        Sub-cent input is refused rather than rounded into a different amount.
        """
        try:
            value = to_decimal(amount)
        except ValueError:
            return None

        if not is_positive(value) or value > self.max_amount or has_sub_cent_digits(value):
            return None
        return to_amount(value)

    def _reject(self, action: str, status: ResultStatus, username: str, **details) -> OperationResult:
        log_action(
            self.logger, "info", f"{action} rejected: {status.value}",
            user_id=username, action=action, resource=f"account:{username}",
            extra={k: str(v) for k, v in details.items()}
        )
        return OperationResult(status)

    def _store_failure(self, action: str, username: str, error: LedgerStoreError) -> OperationResult:
        # The mutated copy of the table is dropped here; the next load re-reads the store
        log_action(
            self.logger, "error", f"{action} failed: {error}",
            user_id=username, action=action, resource=f"account:{username}",
            extra={"error_type": type(error).__name__}
        )
        return OperationResult(ResultStatus.STORE_UNAVAILABLE)

    def _log_success(self, action: str, account: Account, transaction: Transaction) -> None:
        log_action(
            self.logger, "info", f"{action} completed",
            user_id=account.username, action=action, resource=f"account:{account.username}",
            extra={
                "transaction_id": transaction.id,
                "amount": str(transaction.amount),
                "balance": str(account.balance),
            }
        )
