"""
Shared fixtures for the secure ledger test suite
"""

import base64
from datetime import datetime
from decimal import Decimal

import pytest

from secure_ledger.config import SecureLedgerConfig
from secure_ledger.encryption import AsymmetricCipher, SymmetricCipher
from secure_ledger.gateway import EncryptionGateway
from secure_ledger.keys import KeyMaterial, KeySource, export_private_key, export_public_key
from secure_ledger.ledger import LedgerWriter, TransferInstruction
from secure_ledger.storage import InMemoryLedgerStore
from secure_ledger.transfers import TransferProcessor


@pytest.fixture(scope="session")
def rsa_key_pair():
    """One 2048-bit pair for the whole run; generation is slow"""
    return AsymmetricCipher.generate_key_pair()


@pytest.fixture(scope="session")
def other_rsa_key_pair():
    return AsymmetricCipher.generate_key_pair()


@pytest.fixture
def aes_key():
    return SymmetricCipher.generate_key()


@pytest.fixture
def key_material(aes_key, rsa_key_pair):
    public_key, private_key = rsa_key_pair
    return KeyMaterial(aes_key, public_key, private_key, KeySource.CONFIGURED)


@pytest.fixture
def config(aes_key, rsa_key_pair):
    public_key, private_key = rsa_key_pair
    return SecureLedgerConfig(
        environment="test",
        database_url="memory://",
        aes_key=base64.b64encode(aes_key).decode("ascii"),
        rsa_public_key=export_public_key(public_key),
        rsa_private_key=export_private_key(private_key),
    )


@pytest.fixture
def gateway(key_material):
    return EncryptionGateway(key_material)


@pytest.fixture
def store():
    return InMemoryLedgerStore()


@pytest.fixture
def writer(store, gateway):
    return LedgerWriter(store, gateway)


@pytest.fixture
def processor(gateway, writer):
    return TransferProcessor(gateway, writer)


@pytest.fixture
def instruction():
    return TransferInstruction(
        transaction_id="TXN1",
        from_account="1234567890",
        to_account="9876543210",
        amount=Decimal("1000000.00"),
        occurred_at=datetime(2024, 1, 15, 10, 30, 0),
    )


@pytest.fixture
def plain_fields():
    return {
        "transactionId": "TXN1",
        "fromAccount": "1234567890",
        "toAccount": "9876543210",
        "amount": "1000000.00",
        "time": "2024-01-15T10:30:00",
    }
