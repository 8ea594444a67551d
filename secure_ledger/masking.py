"""
Sensitive Data Masking Module

Pure helpers that hide transaction identifiers, account numbers, amounts and
timestamps before they reach a log sink or an error message. Masking never
happens before a value is used cryptographically or compared.
"""

import re
from typing import Any, Optional


MASK_CHAR = "?"
DEFAULT_MASK_VALUE = MASK_CHAR

# Labels recognised in free text, e.g. "transactionId=TXN1" or "account: 123"
MASKED_LABELS = ("transactionId", "account", "amount", "time", "debit", "credit")
_MASKED_LABELS_LOWER = {label.lower() for label in MASKED_LABELS}

_LABELED_VALUE_PATTERN = re.compile(
    r"(" + "|".join(MASKED_LABELS) + r")[=:]\s*([^,\s}]+)",
    re.IGNORECASE,
)


def mask_value(value: Optional[Any]) -> str:
    """Replace every character of value with the mask character"""
    if value is None:
        return DEFAULT_MASK_VALUE
    text = value if isinstance(value, str) else str(value)
    if not text:
        return DEFAULT_MASK_VALUE
    return MASK_CHAR * len(text)


def mask_transaction_id(transaction_id: Optional[Any]) -> str:
    """Mask a transaction ID, e.g. "TXN123456789" -> "????????????" """
    return mask_value(transaction_id)


def mask_account(account: Optional[Any]) -> str:
    """Mask a plaintext account number"""
    return mask_value(account)


def mask_amount(amount: Optional[Any]) -> str:
    """Mask an amount (string or Decimal)"""
    return mask_value(amount)


def mask_time(time: Optional[Any]) -> str:
    """Mask a timestamp (string or datetime)"""
    return mask_value(time)


def mask_sensitive_data(message: Optional[str]) -> Optional[str]:
    """
    Mask labeled values inside a free-text message.

    Matches ``label=value`` or ``label:value`` case-insensitively, where the
    value runs until a comma, whitespace or closing brace, and rewrites the
    match as ``label=?``.

    Args:
        message: Text that may contain sensitive labeled values

    Returns:
        The masked text (None and empty strings are returned unchanged)
    """
    if not message:
        return message
    return _LABELED_VALUE_PATTERN.sub(
        lambda match: f"{match.group(1)}={MASK_CHAR}", message
    )


def mask_fields(data: Any) -> Any:
    """
    Mask structured log data.

    Values stored under a masked label become the mask character;
    other strings go through mask_sensitive_data. Dicts, lists and tuples
    are walked recursively.
    """
    if isinstance(data, dict):
        return {
            key: MASK_CHAR if value is not None and _is_masked_label(key) else mask_fields(value)
            for key, value in data.items()
        }
    if isinstance(data, (list, tuple)):
        return [mask_fields(item) for item in data]
    if isinstance(data, str):
        return mask_sensitive_data(data)
    return data


def _is_masked_label(key: Any) -> bool:
    return isinstance(key, str) and key.lower() in _MASKED_LABELS_LOWER
