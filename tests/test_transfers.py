"""
Tests for envelope decryption and end-to-end transfer processing
"""

from datetime import datetime
from decimal import Decimal

import pytest

from secure_ledger.errors import CryptoError, CryptoErrorKind, LedgerError, LedgerErrorKind
from secure_ledger.ledger import TransferContext, TransferState
from secure_ledger.transfers import WIRE_FIELDS, encrypt_envelope, parse_amount, parse_time


class TestParsing:
    """Test decrypted field parsing"""

    @pytest.mark.parametrize("text,expected", [
        ("1000000.00", Decimal("1000000.00")),
        (" 12.5 ", Decimal("12.5")),
        ("1E+2", Decimal("100")),
    ])
    def test_parse_amount(self, text, expected):
        assert parse_amount(text) == expected

    @pytest.mark.parametrize("text", ["abc", "12,50", "Infinity", "NaN", ""])
    def test_parse_amount_rejects_non_decimal(self, text):
        with pytest.raises(LedgerError) as exc_info:
            parse_amount(text)

        assert exc_info.value.kind == LedgerErrorKind.INVALID_AMOUNT
        assert exc_info.value.field_name == "amount"

    @pytest.mark.parametrize("text,expected", [
        ("2024-01-15T10:30:00", datetime(2024, 1, 15, 10, 30, 0)),
        ("2024-01-15T10:30", datetime(2024, 1, 15, 10, 30, 0)),
        ("2024-01-15T10:30:00.5", datetime(2024, 1, 15, 10, 30, 0, 500000)),
        ("2024-01-15T10:30:00.123456789", datetime(2024, 1, 15, 10, 30, 0, 123456)),
    ])
    def test_parse_time(self, text, expected):
        assert parse_time(text) == expected

    @pytest.mark.parametrize("text", [
        "2024-01-15",
        "2024-01-15 10:30:00",
        "15/01/2024T10:30:00",
        "2024-01-15T10:30:00+01:00",
        "2024-01-15T10:30:00Z",
        "20240115T103000",
        "2024-01-15T10",
        "2024-W03-1T10:30:00",
        "2024-01-15T10:30:00.1234567891",
        "2024-13-01T10:30:00",
        "2024-01-15T25:00:00",
        "yesterday",
    ])
    def test_parse_time_rejects_other_formats(self, text):
        with pytest.raises(LedgerError) as exc_info:
            parse_time(text)

        assert exc_info.value.kind == LedgerErrorKind.INVALID_TIME
        assert exc_info.value.field_name == "time"


class TestEncryptEnvelope:
    """Test the client-side envelope builder"""

    def test_encrypts_every_field(self, gateway, plain_fields):
        envelope = encrypt_envelope(gateway, plain_fields)

        assert set(envelope) == set(WIRE_FIELDS)
        for name in WIRE_FIELDS:
            assert envelope[name] != plain_fields[name]
            assert gateway.wire_decrypt(envelope[name], name) == plain_fields[name]


class TestTransferProcessor:
    """Test wire envelope to ledger write"""

    def test_process_commits_transfer(self, processor, gateway, store, plain_fields):
        result = processor.process(encrypt_envelope(gateway, plain_fields))

        assert result.state == TransferState.COMMITTED
        assert result.transaction_id == "TXN1"
        assert store.count() == 2
        assert result.debit_entry.debit == Decimal("1000000.00")
        assert gateway.storage_decrypt(result.credit_entry.account) == "9876543210"

    def test_process_duplicate_rejected(self, processor, gateway, store, plain_fields):
        envelope = encrypt_envelope(gateway, plain_fields)
        processor.process(envelope)

        with pytest.raises(LedgerError) as exc_info:
            processor.process(encrypt_envelope(gateway, plain_fields))

        assert exc_info.value.kind == LedgerErrorKind.DUPLICATE_TRANSACTION
        assert store.count() == 2

    def test_decrypt_instruction(self, processor, gateway, plain_fields):
        context = TransferContext()
        instruction = processor.decrypt_instruction(encrypt_envelope(gateway, plain_fields), context)

        assert instruction.transaction_id == "TXN1"
        assert instruction.from_account == "1234567890"
        assert instruction.amount == Decimal("1000000.00")
        assert instruction.occurred_at == datetime(2024, 1, 15, 10, 30)
        assert context.state == TransferState.DECRYPTED
        assert context.transaction_id == "TXN1"

    @pytest.mark.parametrize("missing", ["transactionId", "toAccount", "time"])
    def test_missing_wire_field(self, processor, gateway, store, plain_fields, missing):
        envelope = encrypt_envelope(gateway, plain_fields)
        envelope[missing] = None
        context = TransferContext()

        with pytest.raises(LedgerError) as exc_info:
            processor.decrypt_instruction(envelope, context)

        assert exc_info.value.kind == LedgerErrorKind.MISSING_FIELD
        assert exc_info.value.field_name == missing
        assert context.state == TransferState.REJECTED
        assert store.count() == 0

    def test_absent_wire_field(self, processor, gateway, plain_fields):
        envelope = encrypt_envelope(gateway, plain_fields)
        del envelope["amount"]

        with pytest.raises(LedgerError) as exc_info:
            processor.process(envelope)
        assert exc_info.value.field_name == "amount"

    def test_undecryptable_field_names_the_field(self, processor, gateway, store, plain_fields):
        envelope = encrypt_envelope(gateway, plain_fields)
        envelope["fromAccount"] = "bm90IGFuIFJTQSBibG9jaw=="
        context = TransferContext()

        with pytest.raises(CryptoError) as exc_info:
            processor.decrypt_instruction(envelope, context)

        assert exc_info.value.kind == CryptoErrorKind.DECRYPTION_FAILED
        assert exc_info.value.field_name == "fromAccount"
        assert context.state == TransferState.REJECTED
        assert store.count() == 0

    def test_bad_amount_rejected_without_rows(self, processor, gateway, store, plain_fields):
        plain_fields["amount"] = "one million"

        with pytest.raises(LedgerError) as exc_info:
            processor.process(encrypt_envelope(gateway, plain_fields))

        assert exc_info.value.kind == LedgerErrorKind.INVALID_AMOUNT
        assert store.count() == 0

    def test_zero_amount_rejected_without_rows(self, processor, gateway, store, plain_fields):
        plain_fields["amount"] = "0"

        with pytest.raises(LedgerError) as exc_info:
            processor.process(encrypt_envelope(gateway, plain_fields))

        assert exc_info.value.kind == LedgerErrorKind.INVALID_AMOUNT
        assert store.count() == 0

    def test_bad_time_rejected_without_rows(self, processor, gateway, store, plain_fields):
        plain_fields["time"] = "2024-01-15 10:30:00"

        with pytest.raises(LedgerError) as exc_info:
            processor.process(encrypt_envelope(gateway, plain_fields))

        assert exc_info.value.kind == LedgerErrorKind.INVALID_TIME
        assert store.count() == 0

    def test_same_account_rejected(self, processor, gateway, store, plain_fields):
        plain_fields["toAccount"] = plain_fields["fromAccount"]

        with pytest.raises(LedgerError) as exc_info:
            processor.process(encrypt_envelope(gateway, plain_fields))

        assert exc_info.value.kind == LedgerErrorKind.SAME_ACCOUNT
        assert store.count() == 0
