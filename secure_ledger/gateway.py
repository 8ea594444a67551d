"""
Encryption Gateway Module

Single entry point for the two encryption intents used by the service:

* wire    - RSA, for the five transfer fields exchanged with callers
* storage - AES-256-GCM, for the account column written to the ledger
"""

import logging
from typing import Optional

from .encryption import AsymmetricCipher, SymmetricCipher, PADDING_PKCS1V15
from .errors import CryptoError, LedgerError, LedgerErrorKind
from .keys import KeyMaterial, export_public_key
from .masking import mask_account


logger = logging.getLogger(__name__)


class EncryptionGateway:
    """Composes the symmetric and asymmetric ciphers around one KeyMaterial"""

    def __init__(self, key_material: KeyMaterial, rsa_padding: str = PADDING_PKCS1V15):
        self.key_material = key_material
        self.symmetric = SymmetricCipher()
        self.asymmetric = AsymmetricCipher(rsa_padding)
        logger.info(
            f"EncryptionGateway initialized (rsa_padding={self.asymmetric.padding_scheme}, "
            f"keys={key_material.source.value})"
        )

    # Wire intent (RSA)

    def wire_decrypt(self, field: Optional[str], field_name: str) -> str:
        """
        Decrypt one RSA-encrypted wire field.

        Raises:
            LedgerError(MISSING_FIELD): field is None or blank
            CryptoError: decryption failed; tagged with field_name
        """
        if field is None or not field.strip():
            raise LedgerError(
                LedgerErrorKind.MISSING_FIELD, f"Missing required field: {field_name}", field_name
            )
        try:
            return self.asymmetric.decrypt(field, self.key_material.private_key)
        except CryptoError as e:
            logger.warning(f"Wire decryption failed for field {field_name} ({e.code})")
            raise e.with_field(field_name) from e

    def wire_encrypt(self, value: str) -> str:
        """RSA-encrypt a value with the process public key"""
        return self.asymmetric.encrypt(value, self.key_material.public_key)

    def public_key_export(self) -> str:
        """Current RSA public key as base64 DER, for callers building envelopes"""
        return export_public_key(self.key_material.public_key)

    # Storage intent (AES)

    def storage_encrypt(self, account: Optional[str]) -> Optional[str]:
        """Encrypt an account for the ledger; None/empty passes through as None"""
        if not account:
            return None
        logger.debug(f"Encrypting account for database storage (account={mask_account(account)})")
        return self.symmetric.encrypt(account, self.key_material.symmetric_key)

    def storage_decrypt(self, envelope: Optional[str]) -> Optional[str]:
        """Decrypt an account read back from the ledger; None/empty passes through"""
        if not envelope:
            return None
        return self.symmetric.decrypt(envelope, self.key_material.symmetric_key)
