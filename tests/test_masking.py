"""
Tests for sensitive data masking
"""

from datetime import datetime
from decimal import Decimal

from secure_ledger.masking import (
    MASK_CHAR, mask_value, mask_transaction_id, mask_account,
    mask_amount, mask_time, mask_sensitive_data, mask_fields
)


class TestLabeledMasking:
    """Test single-value masking helpers"""

    def test_mask_transaction_id_keeps_length(self):
        masked = mask_transaction_id("TXN20240115001")
        assert len(masked) == 14
        assert set(masked) == {MASK_CHAR}

    def test_mask_none_returns_single_mask(self):
        assert mask_value(None) == "?"
        assert mask_account(None) == "?"

    def test_mask_empty_returns_single_mask(self):
        assert mask_transaction_id("") == "?"
        assert mask_time("") == "?"

    def test_mask_account(self):
        assert mask_account("1234567890") == "??????????"

    def test_mask_decimal_amount(self):
        assert mask_amount(Decimal("1000000.50")) == "?" * len("1000000.50")

    def test_mask_datetime(self):
        value = datetime(2024, 1, 15, 10, 30)
        assert mask_time(value) == "?" * len(str(value))


class TestFreeTextMasking:
    """Test masking of label=value patterns inside messages"""

    def test_masks_equals_and_colon_forms(self):
        message = "transfer transactionId=TXN1, account:1234567890 amount=10.00"
        masked = mask_sensitive_data(message)

        assert "TXN1" not in masked
        assert "1234567890" not in masked
        assert "10.00" not in masked
        assert "transactionId=?" in masked
        assert "account=?" in masked
        assert "amount=?" in masked

    def test_case_insensitive(self):
        masked = mask_sensitive_data("TRANSACTIONID=abc TIME=2024-01-15T10:30:00")
        assert "abc" not in masked
        assert "2024" not in masked

    def test_value_stops_at_brace_comma_and_space(self):
        masked = mask_sensitive_data("{account=123}, rest")
        assert masked == "{account=?}, rest"

    def test_space_after_separator(self):
        assert mask_sensitive_data("time: 2024-01-15T10:30:00") == "time=?"

    def test_unlabeled_text_untouched(self):
        message = "Transfer committed successfully"
        assert mask_sensitive_data(message) == message

    def test_none_and_empty_pass_through(self):
        assert mask_sensitive_data(None) is None
        assert mask_sensitive_data("") == ""

    def test_ledger_columns_masked(self):
        masked = mask_sensitive_data("debit=500.00 credit=0")
        assert masked == "debit=? credit=?"


class TestStructuredMasking:
    """Test masking of structured log data"""

    def test_labeled_keys_are_masked(self):
        data = {"transactionId": "TXN1", "Account": "1234567890", "amount": Decimal("5.00"), "field": "time"}

        assert mask_fields(data) == {"transactionId": "?", "Account": "?", "amount": "?", "field": "time"}

    def test_nested_values_and_free_text(self):
        data = {"request": {"debit": "100.00"}, "notes": ["moved amount=500.00", 3], "missing": None}

        assert mask_fields(data) == {
            "request": {"debit": "?"},
            "notes": ["moved amount=?", 3],
            "missing": None,
        }

    def test_none_passes_through(self):
        assert mask_fields(None) is None
