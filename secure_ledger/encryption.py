"""
Cipher Module

Low-level envelopes used by the rest of the system:

* SymmetricCipher - AES-256-GCM for values at rest (account column).
  Envelope: base64(nonce[12] || ciphertext || tag[16]).
* AsymmetricCipher - RSA for small wire fields (identifiers, amounts and
  timestamps as strings). Envelope: base64(RSA_Encrypt(plaintext)).

Both use the cryptography library. Failures are raised as CryptoError with
a CryptoErrorKind; no plaintext or ciphertext is ever included in messages.
"""

import os
import base64
import binascii
import logging
from typing import Optional, Tuple

from cryptography.exceptions import InvalidTag, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .errors import CryptoError, CryptoErrorKind


logger = logging.getLogger(__name__)


# AES-256/GCM parameters
AES_KEY_SIZE = 32        # bytes (256-bit)
GCM_NONCE_LENGTH = 12    # bytes (96-bit)
GCM_TAG_LENGTH = 16      # bytes (128-bit)
MIN_ENVELOPE_LENGTH = GCM_NONCE_LENGTH + 1

# RSA parameters
RSA_KEY_SIZE = 2048
RSA_PUBLIC_EXPONENT = 65537
PKCS1V15_OVERHEAD = 11
OAEP_HASH_LENGTH = 32    # SHA-256

PADDING_PKCS1V15 = "pkcs1v15"
PADDING_OAEP = "oaep"
SUPPORTED_PADDINGS = (PADDING_PKCS1V15, PADDING_OAEP)

RSA_DECRYPTION_FAILED_MESSAGE = "RSA decryption failed"


def _b64encode(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def _b64decode(envelope: str) -> bytes:
    """Strict standard-alphabet base64 decode"""
    if not isinstance(envelope, str):
        raise binascii.Error("envelope must be a string")
    return base64.b64decode(envelope.encode("ascii"), validate=True)


class SymmetricCipher:
    """AES-256-GCM authenticated encryption with a fresh nonce per call"""

    @staticmethod
    def generate_key() -> bytes:
        """Generate a random 256-bit AES key"""
        return AESGCM.generate_key(bit_length=AES_KEY_SIZE * 8)

    def encrypt(self, plaintext: str, key: bytes) -> str:
        """Encrypt plaintext and return base64(nonce || ciphertext || tag)"""
        aesgcm = self._aesgcm(key)

        # Generate random 12-byte nonce for GCM
        nonce = os.urandom(GCM_NONCE_LENGTH)

        encrypted_bytes = aesgcm.encrypt(nonce, plaintext.encode("utf-8"), None)
        return _b64encode(nonce + encrypted_bytes)

    def decrypt(self, envelope: str, key: bytes) -> str:
        """
        Decrypt an envelope produced by encrypt.

        Raises:
            CryptoError(MALFORMED_CIPHERTEXT): bad base64 or envelope too short
            CryptoError(AUTHENTICATION_FAILED): tampered data or wrong key
        """
        aesgcm = self._aesgcm(key)

        try:
            combined = _b64decode(envelope)
        except (binascii.Error, ValueError) as e:
            raise CryptoError(
                CryptoErrorKind.MALFORMED_CIPHERTEXT, "Invalid Base64 ciphertext format"
            ) from e

        if len(combined) < MIN_ENVELOPE_LENGTH:
            raise CryptoError(
                CryptoErrorKind.MALFORMED_CIPHERTEXT, "Ciphertext too short (invalid format)"
            )

        # Extract nonce (first 12 bytes) and ciphertext+tag
        nonce = combined[:GCM_NONCE_LENGTH]
        encrypted_bytes = combined[GCM_NONCE_LENGTH:]

        try:
            decrypted_bytes = aesgcm.decrypt(nonce, encrypted_bytes, None)
        except InvalidTag as e:
            raise CryptoError(
                CryptoErrorKind.AUTHENTICATION_FAILED,
                "Invalid AES key or tampered ciphertext (authentication failed)",
            ) from e

        try:
            return decrypted_bytes.decode("utf-8")
        except UnicodeDecodeError as e:
            raise CryptoError(
                CryptoErrorKind.MALFORMED_CIPHERTEXT, "Decrypted payload is not valid UTF-8"
            ) from e

    @staticmethod
    def _aesgcm(key: bytes) -> AESGCM:
        if not isinstance(key, (bytes, bytearray)) or len(key) != AES_KEY_SIZE:
            raise CryptoError(CryptoErrorKind.INVALID_KEY, "AES key must be 32 bytes (AES-256)")
        try:
            return AESGCM(bytes(key))
        except UnsupportedAlgorithm as e:
            raise CryptoError(
                CryptoErrorKind.CIPHER_UNAVAILABLE, "AES/GCM algorithm not supported by backend"
            ) from e


class AsymmetricCipher:
    """RSA envelope for small, fixed-size wire fields"""

    def __init__(self, padding_scheme: str = PADDING_PKCS1V15):
        padding_scheme = padding_scheme.lower()
        if padding_scheme not in SUPPORTED_PADDINGS:
            raise CryptoError(
                CryptoErrorKind.CIPHER_UNAVAILABLE,
                f"Unsupported RSA padding '{padding_scheme}'",
            )
        self.padding_scheme = padding_scheme

    def _padding(self) -> padding.AsymmetricPadding:
        if self.padding_scheme == PADDING_OAEP:
            return padding.OAEP(
                mgf=padding.MGF1(algorithm=hashes.SHA256()),
                algorithm=hashes.SHA256(),
                label=None,
            )
        return padding.PKCS1v15()

    def max_plaintext_size(self, public_key: rsa.RSAPublicKey) -> int:
        """Largest plaintext (in bytes) the key and padding can carry"""
        modulus_bytes = (public_key.key_size + 7) // 8
        if self.padding_scheme == PADDING_OAEP:
            return modulus_bytes - 2 * OAEP_HASH_LENGTH - 2
        return modulus_bytes - PKCS1V15_OVERHEAD

    def encrypt(self, plaintext: str, public_key: rsa.RSAPublicKey) -> str:
        """
        Encrypt a small plaintext with the public key.

        Raises:
            CryptoError(PLAINTEXT_TOO_LARGE): plaintext above the padding ceiling
        """
        data = plaintext.encode("utf-8")
        ceiling = self.max_plaintext_size(public_key)
        if len(data) > ceiling:
            raise CryptoError(
                CryptoErrorKind.PLAINTEXT_TOO_LARGE,
                f"Data too large for RSA encryption (max {ceiling} bytes for RSA-{public_key.key_size})",
            )

        try:
            encrypted_bytes = public_key.encrypt(data, self._padding())
        except UnsupportedAlgorithm as e:
            raise CryptoError(
                CryptoErrorKind.CIPHER_UNAVAILABLE, "RSA algorithm not supported by backend"
            ) from e
        return _b64encode(encrypted_bytes)

    def decrypt(self, envelope: str, private_key: rsa.RSAPrivateKey) -> str:
        """
        Decrypt an envelope with the private key.

        Malformed base64, wrong length, padding errors, key mismatch and
        undecodable output all raise the same CryptoError(DECRYPTION_FAILED)
        so a caller cannot tell them apart.

        Wire values are non-empty single-line text. PKCS#1 v1.5 decryption
        with a mismatched key may yield a synthetic plaintext instead of an
        error (implicit rejection); empty or non-printable output is treated
        as that case. OAEP reports a mismatch directly.
        """
        modulus_bytes = (private_key.key_size + 7) // 8
        failure: Optional[Exception] = None

        try:
            encrypted_bytes = _b64decode(envelope)
        except (binascii.Error, ValueError) as e:
            # Keep the private-key operation on this path too
            encrypted_bytes = b"\x00" * modulus_bytes
            failure = e

        try:
            decrypted_bytes = private_key.decrypt(encrypted_bytes, self._padding())
            plaintext = decrypted_bytes.decode("utf-8")
            if not plaintext or not plaintext.isprintable():
                raise ValueError("decrypted value is not wire text")
        except (ValueError, UnicodeDecodeError) as e:
            failure = failure or e
            plaintext = None

        if failure is not None:
            raise CryptoError(CryptoErrorKind.DECRYPTION_FAILED, RSA_DECRYPTION_FAILED_MESSAGE) from failure
        return plaintext

    @staticmethod
    def generate_key_pair(key_size: int = RSA_KEY_SIZE) -> Tuple[rsa.RSAPublicKey, rsa.RSAPrivateKey]:
        """Generate an RSA key pair (2048-bit minimum)"""
        if key_size < RSA_KEY_SIZE:
            raise CryptoError(
                CryptoErrorKind.INVALID_KEY, f"RSA key size must be at least {RSA_KEY_SIZE} bits"
            )
        try:
            private_key = rsa.generate_private_key(public_exponent=RSA_PUBLIC_EXPONENT, key_size=key_size)
        except UnsupportedAlgorithm as e:
            raise CryptoError(
                CryptoErrorKind.CIPHER_UNAVAILABLE, "Generate RSA key pair failed: RSA not supported"
            ) from e
        return private_key.public_key(), private_key
