"""
Tests for ledger store backends
"""

import json
import os
import pytest
import tempfile
from decimal import Decimal
from pathlib import Path

from pocket_ledger.accounts import Account, Transaction, TransactionType
from pocket_ledger.config import LedgerConfig
from pocket_ledger.migrations import CURRENT_SCHEMA_VERSION
from pocket_ledger.storage import (
    InMemoryLedgerStore, JSONFileLedgerStore, SQLiteLedgerStore,
    StoreCorruptedError, StoreUnavailableError, create_store
)


def sample_table():
    account = Account.register("alice", "pw")
    account.apply(Transaction.create(TransactionType.DEPOSIT, Decimal('10000.00')))
    return {"alice": account}


class TestInMemoryStore:
    """Test the in-memory store"""
    
    def test_empty_store_loads_empty_table(self):
        assert InMemoryLedgerStore().load() == {}
    
    def test_save_and_load(self):
        """Test that a saved table comes back equal"""
        store = InMemoryLedgerStore()
        table = sample_table()
        
        store.save(table)
        
        assert store.load() == table
    
    def test_loads_are_detached(self):
        """Test that mutating a loaded table does not touch the store"""
        store = InMemoryLedgerStore()
        store.save(sample_table())
        
        loaded = store.load()
        loaded["alice"].balance = Decimal('1')
        loaded["bob"] = Account.register("bob", "pw")
        
        reloaded = store.load()
        assert reloaded["alice"].balance == Decimal('10000.00')
        assert "bob" not in reloaded
    
    def test_blob_carries_version_tag(self):
        store = InMemoryLedgerStore()
        store.save(sample_table())
        
        blob = json.loads(store.get_raw())
        assert blob["version"] == CURRENT_SCHEMA_VERSION
        assert list(blob["accounts"]) == ["alice"]
    
    def test_corrupt_store_raises(self):
        """Test that unreadable content is not mistaken for an empty ledger"""
        store = InMemoryLedgerStore(initial="{not json")
        with pytest.raises(StoreCorruptedError):
            store.load()
    
    def test_structurally_invalid_store_raises(self):
        store = InMemoryLedgerStore(initial=json.dumps({"version": 1, "accounts": {"a": {"username": "a"}}}))
        with pytest.raises(StoreCorruptedError):
            store.load()
    
    def test_mismatched_key_raises(self):
        account = Account.register("alice", "pw")
        blob = {"version": 1, "accounts": {"mallory": account.to_dict()}}
        with pytest.raises(StoreCorruptedError):
            InMemoryLedgerStore(initial=json.dumps(blob)).load()
    
    def test_corrupt_store_recovery_opt_in(self):
        """Test that recovery treats unreadable content as empty when enabled"""
        store = InMemoryLedgerStore(initial="garbage", recover_corrupt=True)
        assert store.load() == {}


class TestJSONFileStore:
    """Test the JSON file store"""
    
    def test_missing_file_is_empty(self, tmp_path):
        store = JSONFileLedgerStore(tmp_path / "ledger.json")
        assert store.load() == {}
    
    def test_save_and_load(self, tmp_path):
        path = tmp_path / "nested" / "ledger.json"
        store = JSONFileLedgerStore(path)
        table = sample_table()
        
        store.save(table)
        
        assert path.exists()
        assert JSONFileLedgerStore(path).load() == table
    
    def test_no_temp_files_left_behind(self, tmp_path):
        store = JSONFileLedgerStore(tmp_path / "ledger.json")
        store.save(sample_table())
        store.save(sample_table())
        
        assert os.listdir(tmp_path) == ["ledger.json"]
    
    def test_corrupt_file_raises(self, tmp_path):
        path = tmp_path / "ledger.json"
        path.write_text("[[[", encoding="utf-8")
        
        with pytest.raises(StoreCorruptedError):
            JSONFileLedgerStore(path).load()
    
    def test_unwritable_location(self, tmp_path):
        """Test that write failures surface as StoreUnavailableError"""
        blocker = tmp_path / "blocker"
        blocker.write_text("a file, not a directory", encoding="utf-8")
        store = JSONFileLedgerStore(blocker / "ledger.json")
        
        with pytest.raises(StoreUnavailableError):
            store.save(sample_table())


class TestSQLiteStore:
    """Test the SQLite store"""
    
    def test_memory_database(self):
        store = SQLiteLedgerStore()
        assert store.load() == {}
        
        table = sample_table()
        store.save(table)
        
        assert store.load() == table
        store.close()
    
    def test_persists_across_connections(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            db_path = Path(temp_dir) / "ledger.db"
            store = SQLiteLedgerStore(db_path)
            store.save(sample_table())
            store.close()
            
            reopened = SQLiteLedgerStore(db_path)
            assert reopened.load()["alice"].balance == Decimal('10000.00')
            reopened.close()
    
    def test_storage_key_isolates_tables(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            db_path = Path(temp_dir) / "ledger.db"
            first = SQLiteLedgerStore(db_path, storage_key="first")
            second = SQLiteLedgerStore(db_path, storage_key="second")
            
            first.save(sample_table())
            
            assert "alice" in first.load()
            assert second.load() == {}
            first.close()
            second.close()
    
    def test_closed_store_is_unavailable(self):
        store = SQLiteLedgerStore()
        store.close()
        
        with pytest.raises(StoreUnavailableError):
            store.load()
        with pytest.raises(StoreUnavailableError):
            store.save({})


class TestCreateStore:
    """Test backend selection from configuration"""
    
    def test_memory(self):
        assert isinstance(create_store(LedgerConfig(storage_backend="memory")), InMemoryLedgerStore)
    
    def test_json(self, tmp_path):
        store = create_store(LedgerConfig(storage_backend="json", storage_path=str(tmp_path / "l.json")))
        assert isinstance(store, JSONFileLedgerStore)
    
    def test_sqlite(self, tmp_path):
        store = create_store(LedgerConfig(storage_backend="sqlite", storage_path=str(tmp_path / "l.db")))
        assert isinstance(store, SQLiteLedgerStore)
        store.close()
    
    def test_recovery_flag_is_passed(self):
        store = create_store(LedgerConfig(storage_backend="memory", recover_corrupt_store=True))
        assert store.recover_corrupt
    
    def test_unknown_backend(self):
        with pytest.raises(ValueError, match="Unknown storage backend"):
            create_store(LedgerConfig(storage_backend="redis"))
