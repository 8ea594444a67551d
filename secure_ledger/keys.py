"""
Key Material Module

Loads the process-wide AES key and RSA key pair once at startup and hands
them around as an immutable value. When no RSA pair is configured an
ephemeral one is generated (development only) and logged loudly.

Run ``python -m secure_ledger.keys`` to print a fresh set of keys as
environment variable lines.
"""

import base64
import binascii
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from .config import SecureLedgerConfig
from .encryption import AES_KEY_SIZE, RSA_KEY_SIZE, AsymmetricCipher, SymmetricCipher
from .errors import CryptoError, CryptoErrorKind


logger = logging.getLogger(__name__)


class KeySource(Enum):
    """Where the RSA key pair came from"""
    CONFIGURED = "configured"
    GENERATED = "generated"


@dataclass(frozen=True)
class KeyMaterial:
    """Immutable key material shared read-only by every component"""
    symmetric_key: bytes = field(repr=False)
    public_key: rsa.RSAPublicKey = field(repr=False)
    private_key: rsa.RSAPrivateKey = field(repr=False)
    source: KeySource = KeySource.CONFIGURED

    @property
    def is_ephemeral(self) -> bool:
        return self.source == KeySource.GENERATED


def load_symmetric_key(encoded: str) -> bytes:
    """Decode a base64 AES-256 key from configuration"""
    if not encoded:
        raise CryptoError(CryptoErrorKind.INVALID_KEY, "AES key is not configured")
    try:
        key = base64.b64decode(encoded.encode("ascii"), validate=True)
    except (binascii.Error, ValueError) as e:
        raise CryptoError(CryptoErrorKind.INVALID_KEY, "Invalid AES key format in config") from e
    if len(key) != AES_KEY_SIZE:
        raise CryptoError(CryptoErrorKind.INVALID_KEY, "AES key must decode to 32 bytes (AES-256)")
    return key


def load_public_key(encoded: str) -> rsa.RSAPublicKey:
    """Parse a base64 DER SubjectPublicKeyInfo RSA public key"""
    try:
        der = base64.b64decode(encoded.encode("ascii"), validate=True)
    except (binascii.Error, ValueError) as e:
        raise CryptoError(CryptoErrorKind.INVALID_KEY, "Invalid Base64 format for RSA public key") from e
    try:
        public_key = serialization.load_der_public_key(der)
    except ValueError as e:
        raise CryptoError(CryptoErrorKind.INVALID_KEY, "Invalid RSA public key specification") from e
    if not isinstance(public_key, rsa.RSAPublicKey):
        raise CryptoError(CryptoErrorKind.INVALID_KEY, "Configured public key is not an RSA key")
    return public_key


def load_private_key(encoded: str) -> rsa.RSAPrivateKey:
    """Parse a base64 DER PKCS#8 RSA private key"""
    try:
        der = base64.b64decode(encoded.encode("ascii"), validate=True)
    except (binascii.Error, ValueError) as e:
        raise CryptoError(CryptoErrorKind.INVALID_KEY, "Invalid Base64 format for RSA private key") from e
    try:
        private_key = serialization.load_der_private_key(der, password=None)
    except (ValueError, TypeError) as e:
        raise CryptoError(CryptoErrorKind.INVALID_KEY, "Invalid RSA private key specification") from e
    if not isinstance(private_key, rsa.RSAPrivateKey):
        raise CryptoError(CryptoErrorKind.INVALID_KEY, "Configured private key is not an RSA key")
    return private_key


def export_public_key(public_key: rsa.RSAPublicKey) -> str:
    """Encode a public key as base64 DER SubjectPublicKeyInfo"""
    der = public_key.public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    return base64.b64encode(der).decode("ascii")


def export_private_key(private_key: rsa.RSAPrivateKey) -> str:
    """Encode a private key as base64 DER PKCS#8 (unencrypted)"""
    der = private_key.private_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    return base64.b64encode(der).decode("ascii")


def _check_key_pair(public_key: rsa.RSAPublicKey, private_key: rsa.RSAPrivateKey) -> None:
    if public_key.key_size < RSA_KEY_SIZE:
        raise CryptoError(
            CryptoErrorKind.INVALID_KEY, f"RSA key size must be at least {RSA_KEY_SIZE} bits"
        )
    if public_key.public_numbers() != private_key.public_key().public_numbers():
        raise CryptoError(CryptoErrorKind.INVALID_KEY, "RSA public and private keys do not form a pair")


def load_key_material(config: SecureLedgerConfig) -> KeyMaterial:
    """
    Resolve key material from configuration.

    Produces either a configured key pair or a generated one; the two
    outcomes are logged distinctly. Generation is refused in production.

    Raises:
        CryptoError(INVALID_KEY): missing/invalid AES key, half-configured or
            invalid RSA pair, or missing RSA pair in production
    """
    symmetric_key = load_symmetric_key(config.aes_key)
    logger.info("AES key loaded successfully from config")

    has_public = bool(config.rsa_public_key)
    has_private = bool(config.rsa_private_key)

    if has_public and has_private:
        public_key = load_public_key(config.rsa_public_key)
        private_key = load_private_key(config.rsa_private_key)
        _check_key_pair(public_key, private_key)
        logger.info(f"RSA keys loaded successfully from config ({public_key.key_size}-bit)")
        return KeyMaterial(symmetric_key, public_key, private_key, KeySource.CONFIGURED)

    if has_public or has_private:
        raise CryptoError(
            CryptoErrorKind.INVALID_KEY,
            "Incomplete RSA key pair in config: both public and private key are required",
        )

    if config.is_production:
        raise CryptoError(
            CryptoErrorKind.INVALID_KEY,
            "RSA keys not found in config; ephemeral keys are not allowed in production",
        )

    logger.warning(
        "RSA keys not found in config, generating temporary keys. "
        "Wire envelopes will not survive a restart; run `python -m secure_ledger.keys` "
        "to generate real keys for production!"
    )
    public_key, private_key = AsymmetricCipher.generate_key_pair()
    logger.warning(f"Temporary RSA key pair generated ({public_key.key_size}-bit)")
    return KeyMaterial(symmetric_key, public_key, private_key, KeySource.GENERATED)


def generate_key_settings() -> Dict[str, str]:
    """Generate a fresh AES key and RSA pair as SECURE_LEDGER_* settings"""
    public_key, private_key = AsymmetricCipher.generate_key_pair()
    return {
        "SECURE_LEDGER_AES_KEY": base64.b64encode(SymmetricCipher.generate_key()).decode("ascii"),
        "SECURE_LEDGER_RSA_PUBLIC_KEY": export_public_key(public_key),
        "SECURE_LEDGER_RSA_PRIVATE_KEY": export_private_key(private_key),
    }


def main():
    """Print a new key set in .env format"""
    print("# Generated by secure_ledger.keys - keep these values out of version control")
    for name, value in generate_key_settings().items():
        print(f"{name}={value}")


if __name__ == "__main__":
    main()
