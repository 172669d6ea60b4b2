"""
Persisted Layout Migration System

Upgrades stored account-table blobs to the current schema version. Blobs
carry a ``version`` tag; a blob without one is the legacy browser layout
(plaintext passwords, float amounts, ``date`` and ``recipientOrSender``
keys) and is treated as version 0.
"""

from decimal import Decimal
from typing import Any, Callable, Dict, List, Tuple
import logging

from .accounts import generate_salt, hash_password
from .money import to_amount


logger = logging.getLogger(__name__)

CURRENT_SCHEMA_VERSION = 1


class Migration:
    """Represents a single layout migration"""

    def __init__(self, version: int, name: str, upgrade: Callable[[Dict[str, Any]], Dict[str, Any]]):
        self.version = version
        self.name = name
        self.upgrade = upgrade

    def __str__(self) -> str:
        return f"Migration v{self.version:03d}: {self.name}"

    def __repr__(self) -> str:
        return f"Migration(version={self.version}, name='{self.name}')"


def _parse_legacy_timestamp(value: str) -> str:
    # JavaScript Date JSON uses a trailing Z
    if value.endswith('Z'):
        value = value[:-1] + '+00:00'
    return value


def _upgrade_legacy_transaction(data: Dict[str, Any]) -> Dict[str, Any]:
    result = {
        'id': str(data['id']),
        'type': data['type'],
        'amount': str(to_amount(data['amount'])),
        'timestamp': _parse_legacy_timestamp(data['date']),
        'description': data['description'],
    }
    if data.get('recipientOrSender'):
        result['counterparty'] = data['recipientOrSender']
    return result


def _upgrade_v0_to_v1(blob: Dict[str, Any]) -> Dict[str, Any]:
    """Hash plaintext credentials and move amounts to decimal strings"""
    accounts = {}
    for username, data in blob.items():
        transactions = [_upgrade_legacy_transaction(t) for t in data.get('transactions', [])]
        salt = generate_salt()
        accounts[username] = {
            'username': data.get('username', username),
            'password_hash': hash_password(data['password'], salt),
            'password_salt': salt,
            'balance': str(to_amount(data['balance'])),
            # Legacy records have no creation time; the oldest entry stands in
            'created_at': transactions[0]['timestamp'] if transactions else '1970-01-01T00:00:00+00:00',
            'transactions': transactions,
        }
    return {'version': 1, 'accounts': accounts}


MIGRATIONS: List[Migration] = [
    Migration(1, "Hash legacy credentials and use decimal amounts", _upgrade_v0_to_v1),
]


def blob_version(blob: Dict[str, Any]) -> int:
    """Schema version of a raw blob; unversioned blobs are version 0"""
    version = blob.get('version', 0)
    if not isinstance(version, int):
        raise ValueError(f"Invalid schema version tag: {version!r}")
    return version


def upgrade_blob(blob: Dict[str, Any]) -> Dict[str, Any]:
    """
    Apply every pending migration to a raw blob

    Raises:
        ValueError: If the blob is not a mapping or comes from a newer schema
    """
    if not isinstance(blob, dict):
        raise ValueError("Stored ledger must be a JSON object")

    version = blob_version(blob)
    if version > CURRENT_SCHEMA_VERSION:
        raise ValueError(
            f"Stored ledger has schema version {version}, "
            f"newer than supported version {CURRENT_SCHEMA_VERSION}"
        )

    for migration in MIGRATIONS:
        if migration.version > version:
            logger.info(f"Applying {migration}")
            blob = migration.upgrade(blob)
            version = migration.version

    return blob


def parse_legacy_accounts_file(text: str) -> List[Tuple[str, str, Decimal]]:
    """
    Parse the console program's ``username,password,balance`` account file
    into seed tuples for ``LedgerService.seed_accounts``.

    Raises:
        ValueError: If a non-blank line is malformed
    """
    seeds = []
    for line_number, line in enumerate(text.splitlines(), start=1):
        line = line.strip()
        if not line:
            continue

        parts = line.split(',')
        if len(parts) != 3:
            raise ValueError(f"Line {line_number}: expected username,password,balance")

        username, password, balance = parts
        seeds.append((username, password, to_amount(balance)))

    return seeds
