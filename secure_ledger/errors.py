"""
Error Taxonomy Module

Closed error-kind enumerations for the crypto layer and the ledger layer.
Every failure surfaced by this package carries a ``kind`` that callers
switch on explicitly; exception subclasses only separate the two layers.
Messages never contain field values.
"""

from enum import Enum
from typing import Optional, Union


class CryptoErrorKind(Enum):
    """Failure kinds raised by the cipher layer"""
    MALFORMED_CIPHERTEXT = "MALFORMED_CIPHERTEXT"    # Bad base64 or too short
    AUTHENTICATION_FAILED = "AUTHENTICATION_FAILED"  # AES-GCM tag mismatch
    DECRYPTION_FAILED = "DECRYPTION_FAILED"          # RSA decryption, any cause
    PLAINTEXT_TOO_LARGE = "PLAINTEXT_TOO_LARGE"      # Above the RSA ceiling
    CIPHER_UNAVAILABLE = "CIPHER_UNAVAILABLE"        # Backend lacks the algorithm
    INVALID_KEY = "INVALID_KEY"                      # Unusable key material


class LedgerErrorKind(Enum):
    """Failure kinds surfaced by the ledger writer"""
    DUPLICATE_TRANSACTION = "DUPLICATE_TRANSACTION"
    SAME_ACCOUNT = "SAME_ACCOUNT"
    INVALID_AMOUNT = "INVALID_AMOUNT"
    INVALID_TIME = "INVALID_TIME"
    MISSING_FIELD = "MISSING_FIELD"
    ENCRYPTION_FAILURE = "ENCRYPTION_FAILURE"
    STORAGE_FAILURE = "STORAGE_FAILURE"


ErrorKind = Union[CryptoErrorKind, LedgerErrorKind]


class SecureLedgerError(Exception):
    """Base class for all errors raised by this package"""

    def __init__(self, kind: ErrorKind, message: str, field_name: Optional[str] = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.field_name = field_name

    @property
    def code(self) -> str:
        """Stable string code for the error kind"""
        return self.kind.value

    def to_dict(self) -> dict:
        """Serializable view used by error responses and structured logs"""
        result = {"error_code": self.code, "message": self.message}
        if self.field_name:
            result["field"] = self.field_name
        return result

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind.value}, field={self.field_name!r})"


class CryptoError(SecureLedgerError):
    """Encryption, decryption or key material failure"""

    def __init__(self, kind: CryptoErrorKind, message: str, field_name: Optional[str] = None):
        super().__init__(kind, message, field_name)

    def with_field(self, field_name: str) -> "CryptoError":
        """Copy of this error tagged with the wire field it came from"""
        return CryptoError(self.kind, f"{self.message} (field: {field_name})", field_name)


class LedgerError(SecureLedgerError):
    """Transfer rejected or faulted by the ledger writer"""

    def __init__(self, kind: LedgerErrorKind, message: str, field_name: Optional[str] = None):
        super().__init__(kind, message, field_name)

    @property
    def is_rejection(self) -> bool:
        """True for business rejections, False for faults"""
        return self.kind not in (LedgerErrorKind.ENCRYPTION_FAILURE, LedgerErrorKind.STORAGE_FAILURE)
