"""
Storage Backend Module

Provides the ledger store interface and implementations for in-memory
(testing), JSON file and SQLite persistence. The whole account table is
read and written as one versioned JSON blob; monetary values are stored as
Decimal strings.
"""

from abc import ABC, abstractmethod
from typing import Dict, Optional, Union
from decimal import InvalidOperation
from datetime import datetime, timezone
from pathlib import Path
import json
import os
import sqlite3
import tempfile
import threading

from .accounts import Account
from .config import LedgerConfig
from .logging_config import get_logger, log_action
from .migrations import CURRENT_SCHEMA_VERSION, upgrade_blob


LedgerTable = Dict[str, Account]

logger = get_logger("pocket_ledger.storage")


class LedgerStoreError(Exception):
    """Base class for ledger store failures"""


class StoreUnavailableError(LedgerStoreError):
    """The store could not be read or written"""


class StoreCorruptedError(LedgerStoreError):
    """The store was read but its content is not a valid ledger"""


def table_to_blob(table: LedgerTable) -> Dict:
    """Convert an account table to its versioned persisted form"""
    return {
        'version': CURRENT_SCHEMA_VERSION,
        'accounts': {username: account.to_dict() for username, account in table.items()},
    }


def table_from_blob(blob: Dict) -> LedgerTable:
    """Convert a current-version blob back to an account table"""
    table = {}
    for username, data in blob['accounts'].items():
        account = Account.from_dict(data)
        if account.username != username:
            raise ValueError(f"Account keyed as {username!r} is named {account.username!r}")
        table[username] = account
    return table


class LedgerStore(ABC):
    """
    Abstract all-or-nothing store for the account table.

    Subclasses only move raw text; decoding, schema upgrades and the
    corruption policy live here.
    """

    def __init__(self, recover_corrupt: bool = False):
        self.recover_corrupt = recover_corrupt

    @abstractmethod
    def _read(self) -> Optional[str]:
        """Return the stored blob text, or None if nothing is stored yet"""
        pass

    @abstractmethod
    def _write(self, data: str) -> None:
        """Replace the stored blob text in one step"""
        pass

    def close(self) -> None:
        """Close storage connection"""
        pass

    def load(self) -> LedgerTable:
        """
        Load the whole account table

        Raises:
            StoreUnavailableError: If the backend cannot be read
            StoreCorruptedError: If the content is unreadable and recovery is off
        """
        raw = self._read()
        if raw is None:
            return {}

        try:
            blob = upgrade_blob(json.loads(raw))
            return table_from_blob(blob)
        except (ValueError, KeyError, TypeError, AttributeError, InvalidOperation) as e:
            if self.recover_corrupt:
                log_action(
                    logger, "warning", "Unreadable ledger store treated as empty",
                    action="load", resource=type(self).__name__,
                    extra={"error": str(e)}
                )
                return {}
            raise StoreCorruptedError(f"Stored ledger is unreadable: {e}") from e

    def save(self, table: LedgerTable) -> None:
        """
        Persist the whole account table, replacing any prior version

        Raises:
            StoreUnavailableError: If the backend cannot be written
        """
        self._write(json.dumps(table_to_blob(table)))


class InMemoryLedgerStore(LedgerStore):
    """In-memory store for testing"""

    def __init__(self, initial: Optional[str] = None, recover_corrupt: bool = False):
        super().__init__(recover_corrupt)
        self._data = initial
        self._lock = threading.RLock()

    def _read(self) -> Optional[str]:
        with self._lock:
            return self._data

    def _write(self, data: str) -> None:
        with self._lock:
            self._data = data

    def get_raw(self) -> Optional[str]:
        """Get the stored blob text for debugging/inspection"""
        with self._lock:
            return self._data


class JSONFileLedgerStore(LedgerStore):
    """Single JSON document on disk, replaced atomically on every save"""

    def __init__(self, path: Union[str, Path], recover_corrupt: bool = False):
        super().__init__(recover_corrupt)
        self.path = Path(path)
        self._lock = threading.RLock()

    def _read(self) -> Optional[str]:
        with self._lock:
            try:
                return self.path.read_text(encoding="utf-8")
            except FileNotFoundError:
                return None
            except (OSError, UnicodeDecodeError) as e:
                raise StoreUnavailableError(f"Cannot read {self.path}: {e}") from e

    def _write(self, data: str) -> None:
        with self._lock:
            directory = self.path.parent
            try:
                directory.mkdir(parents=True, exist_ok=True)
                fd, temp_path = tempfile.mkstemp(dir=directory, prefix=f".{self.path.name}.", suffix=".tmp")
                try:
                    with os.fdopen(fd, "w", encoding="utf-8") as handle:
                        handle.write(data)
                        handle.flush()
                        os.fsync(handle.fileno())
                    os.replace(temp_path, self.path)
                except BaseException:
                    # Readers only ever see the old or the new document
                    if os.path.exists(temp_path):
                        os.unlink(temp_path)
                    raise
            except OSError as e:
                raise StoreUnavailableError(f"Cannot write {self.path}: {e}") from e


class SQLiteLedgerStore(LedgerStore):
    """SQLite key/value store holding the table under one storage key"""

    def __init__(
        self,
        db_path: Union[str, Path] = ":memory:",
        storage_key: str = "banking_accounts",
        timeout: float = 5.0,
        recover_corrupt: bool = False
    ):
        super().__init__(recover_corrupt)
        self.db_path = str(db_path)
        self.storage_key = storage_key
        self._lock = threading.RLock()

        try:
            self._connection = sqlite3.connect(self.db_path, timeout=timeout, check_same_thread=False)

            # Enable WAL mode for better concurrent access
            if self.db_path != ":memory:":
                self._connection.execute("PRAGMA journal_mode = WAL")
                self._connection.execute("PRAGMA synchronous = NORMAL")

            with self._connection:
                self._connection.execute("""
                    CREATE TABLE IF NOT EXISTS ledger_blobs (
                        key TEXT PRIMARY KEY,
                        data TEXT NOT NULL,
                        updated_at TEXT NOT NULL
                    )
                """)
        except sqlite3.Error as e:
            raise StoreUnavailableError(f"Cannot open {self.db_path}: {e}") from e

    def _read(self) -> Optional[str]:
        with self._lock:
            if self._connection is None:
                raise StoreUnavailableError("Store is closed")
            try:
                cursor = self._connection.execute(
                    "SELECT data FROM ledger_blobs WHERE key = ?", (self.storage_key,)
                )
                row = cursor.fetchone()
            except sqlite3.Error as e:
                raise StoreUnavailableError(f"Cannot read {self.db_path}: {e}") from e
            return row[0] if row else None

    def _write(self, data: str) -> None:
        with self._lock:
            if self._connection is None:
                raise StoreUnavailableError("Store is closed")
            now = datetime.now(timezone.utc).isoformat()
            try:
                # Connection context manager commits or rolls back as one transaction
                with self._connection:
                    self._connection.execute("""
                        INSERT OR REPLACE INTO ledger_blobs (key, data, updated_at)
                        VALUES (?, ?, ?)
                    """, (self.storage_key, data, now))
            except sqlite3.Error as e:
                raise StoreUnavailableError(f"Cannot write {self.db_path}: {e}") from e

    def close(self) -> None:
        """Close SQLite connection"""
        with self._lock:
            if self._connection:
                self._connection.close()
                self._connection = None


def create_store(config: LedgerConfig) -> LedgerStore:
    """Build the store selected by configuration"""
    backend = config.storage_backend.lower()
    recover = config.recover_corrupt_store

    if backend == "memory":
        return InMemoryLedgerStore(recover_corrupt=recover)
    if backend == "json":
        return JSONFileLedgerStore(config.storage_path, recover_corrupt=recover)
    if backend == "sqlite":
        return SQLiteLedgerStore(
            config.storage_path,
            storage_key=config.storage_key,
            timeout=config.sqlite_timeout,
            recover_corrupt=recover
        )

    raise ValueError(f"Unknown storage backend: {config.storage_backend}")
