"""
Tests for the AES-GCM and RSA envelopes
"""

import base64
from unittest.mock import MagicMock

import pytest

from secure_ledger.encryption import (
    SymmetricCipher, AsymmetricCipher, GCM_NONCE_LENGTH, GCM_TAG_LENGTH,
    PADDING_OAEP, RSA_DECRYPTION_FAILED_MESSAGE
)
from secure_ledger.errors import CryptoError, CryptoErrorKind


class TestSymmetricCipher:
    """Test AES-256-GCM envelope"""

    def test_generate_key_is_256_bit(self):
        assert len(SymmetricCipher.generate_key()) == 32

    def test_encrypt_decrypt_roundtrip(self, aes_key):
        cipher = SymmetricCipher()
        original = "1234567890 with unicode: éñá"

        encrypted = cipher.encrypt(original, aes_key)

        assert encrypted != original
        assert cipher.decrypt(encrypted, aes_key) == original

    def test_envelope_layout(self, aes_key):
        cipher = SymmetricCipher()
        plaintext = "1234567890"

        raw = base64.b64decode(cipher.encrypt(plaintext, aes_key))

        assert len(raw) == GCM_NONCE_LENGTH + len(plaintext) + GCM_TAG_LENGTH

    def test_encrypt_produces_different_results_each_time(self, aes_key):
        cipher = SymmetricCipher()

        encrypted1 = cipher.encrypt("same_data", aes_key)
        encrypted2 = cipher.encrypt("same_data", aes_key)

        # Should be different due to random nonce
        assert encrypted1 != encrypted2
        assert base64.b64decode(encrypted1)[:12] != base64.b64decode(encrypted2)[:12]

    def test_every_flipped_byte_fails_authentication(self, aes_key):
        cipher = SymmetricCipher()
        raw = base64.b64decode(cipher.encrypt("9876543210", aes_key))

        for index in range(len(raw)):
            tampered = bytearray(raw)
            tampered[index] ^= 0x01
            envelope = base64.b64encode(bytes(tampered)).decode("ascii")

            with pytest.raises(CryptoError) as exc_info:
                cipher.decrypt(envelope, aes_key)
            assert exc_info.value.kind == CryptoErrorKind.AUTHENTICATION_FAILED

    def test_wrong_key_fails_authentication(self, aes_key):
        cipher = SymmetricCipher()
        encrypted = cipher.encrypt("secret_data", aes_key)

        with pytest.raises(CryptoError) as exc_info:
            cipher.decrypt(encrypted, SymmetricCipher.generate_key())
        assert exc_info.value.kind == CryptoErrorKind.AUTHENTICATION_FAILED

    def test_invalid_base64_is_malformed(self, aes_key):
        with pytest.raises(CryptoError) as exc_info:
            SymmetricCipher().decrypt("not base64 !!", aes_key)
        assert exc_info.value.kind == CryptoErrorKind.MALFORMED_CIPHERTEXT

    def test_short_envelope_is_malformed(self, aes_key):
        envelope = base64.b64encode(b"\x00" * 12).decode("ascii")

        with pytest.raises(CryptoError) as exc_info:
            SymmetricCipher().decrypt(envelope, aes_key)
        assert exc_info.value.kind == CryptoErrorKind.MALFORMED_CIPHERTEXT

    def test_thirteen_bytes_reaches_authentication(self, aes_key):
        envelope = base64.b64encode(b"\x00" * 13).decode("ascii")

        with pytest.raises(CryptoError) as exc_info:
            SymmetricCipher().decrypt(envelope, aes_key)
        assert exc_info.value.kind == CryptoErrorKind.AUTHENTICATION_FAILED

    def test_wrong_key_length_rejected(self):
        with pytest.raises(CryptoError) as exc_info:
            SymmetricCipher().encrypt("data", b"short")
        assert exc_info.value.kind == CryptoErrorKind.INVALID_KEY

    def test_error_message_does_not_leak_plaintext(self, aes_key):
        cipher = SymmetricCipher()
        encrypted = cipher.encrypt("1234567890", aes_key)

        with pytest.raises(CryptoError) as exc_info:
            cipher.decrypt(encrypted, SymmetricCipher.generate_key())
        assert "1234567890" not in str(exc_info.value)


class TestAsymmetricCipher:
    """Test RSA envelope"""

    def test_encrypt_decrypt_roundtrip(self, rsa_key_pair):
        public_key, private_key = rsa_key_pair
        cipher = AsymmetricCipher()

        encrypted = cipher.encrypt("TXN20240115001", public_key)

        assert cipher.decrypt(encrypted, private_key) == "TXN20240115001"

    def test_ceiling_for_2048_bit_pkcs1(self, rsa_key_pair):
        public_key, private_key = rsa_key_pair
        cipher = AsymmetricCipher()

        assert cipher.max_plaintext_size(public_key) == 245

        accepted = "a" * 245
        assert cipher.decrypt(cipher.encrypt(accepted, public_key), private_key) == accepted

        with pytest.raises(CryptoError) as exc_info:
            cipher.encrypt("a" * 246, public_key)
        assert exc_info.value.kind == CryptoErrorKind.PLAINTEXT_TOO_LARGE

    def test_ceiling_counts_utf8_bytes(self, rsa_key_pair):
        public_key, _ = rsa_key_pair

        # 123 two-byte characters = 246 bytes
        with pytest.raises(CryptoError) as exc_info:
            AsymmetricCipher().encrypt("é" * 123, public_key)
        assert exc_info.value.kind == CryptoErrorKind.PLAINTEXT_TOO_LARGE

    def test_oaep_roundtrip_and_ceiling(self, rsa_key_pair):
        public_key, private_key = rsa_key_pair
        cipher = AsymmetricCipher(PADDING_OAEP)

        assert cipher.max_plaintext_size(public_key) == 190
        assert cipher.decrypt(cipher.encrypt("1000000.00", public_key), private_key) == "1000000.00"

        with pytest.raises(CryptoError) as exc_info:
            cipher.encrypt("a" * 191, public_key)
        assert exc_info.value.kind == CryptoErrorKind.PLAINTEXT_TOO_LARGE

    def test_oaep_wrong_key_fails(self, rsa_key_pair, other_rsa_key_pair):
        public_key, _ = rsa_key_pair
        _, other_private_key = other_rsa_key_pair
        cipher = AsymmetricCipher(PADDING_OAEP)

        encrypted = cipher.encrypt("TXN1", public_key)

        with pytest.raises(CryptoError) as exc_info:
            cipher.decrypt(encrypted, other_private_key)
        assert exc_info.value.kind == CryptoErrorKind.DECRYPTION_FAILED

    def test_bad_base64_and_bad_padding_are_indistinguishable(self, rsa_key_pair):
        _, private_key = rsa_key_pair
        cipher = AsymmetricCipher(PADDING_OAEP)

        with pytest.raises(CryptoError) as bad_base64:
            cipher.decrypt("%%% not base64 %%%", private_key)

        garbage = base64.b64encode(b"\x01" * 256).decode("ascii")
        with pytest.raises(CryptoError) as bad_padding:
            cipher.decrypt(garbage, private_key)

        assert bad_base64.value.kind == bad_padding.value.kind == CryptoErrorKind.DECRYPTION_FAILED
        assert str(bad_base64.value) == str(bad_padding.value) == RSA_DECRYPTION_FAILED_MESSAGE

    def test_wrong_length_ciphertext_fails(self, rsa_key_pair):
        _, private_key = rsa_key_pair
        short = base64.b64encode(b"\x01" * 16).decode("ascii")

        with pytest.raises(CryptoError) as exc_info:
            AsymmetricCipher().decrypt(short, private_key)
        assert exc_info.value.kind == CryptoErrorKind.DECRYPTION_FAILED

    def test_pkcs1v15_wrong_key_never_returns_empty_value(self, rsa_key_pair, other_rsa_key_pair):
        """Implicit rejection must not hand back an empty or unprintable field"""
        public_key, _ = rsa_key_pair
        _, other_private_key = other_rsa_key_pair
        cipher = AsymmetricCipher()

        failures = 0
        for i in range(200):
            plaintext = f"TXN{i}"
            try:
                decrypted = cipher.decrypt(cipher.encrypt(plaintext, public_key), other_private_key)
            except CryptoError as e:
                assert e.kind == CryptoErrorKind.DECRYPTION_FAILED
                failures += 1
                continue
            assert decrypted
            assert decrypted.isprintable()
            assert decrypted != plaintext

        assert failures >= 180

    @pytest.mark.parametrize("output", [b"", b"\x00\x01", b"TXN1\n"])
    def test_empty_or_unprintable_output_is_decryption_failure(self, output):
        private_key = MagicMock(key_size=2048)
        private_key.decrypt.return_value = output
        envelope = base64.b64encode(b"\x01" * 256).decode("ascii")

        with pytest.raises(CryptoError) as exc_info:
            AsymmetricCipher().decrypt(envelope, private_key)

        assert exc_info.value.kind == CryptoErrorKind.DECRYPTION_FAILED
        assert str(exc_info.value) == RSA_DECRYPTION_FAILED_MESSAGE

    def test_generate_key_pair_minimum_size(self):
        with pytest.raises(CryptoError) as exc_info:
            AsymmetricCipher.generate_key_pair(1024)
        assert exc_info.value.kind == CryptoErrorKind.INVALID_KEY

    def test_generated_pair_is_2048_bit(self, rsa_key_pair):
        public_key, private_key = rsa_key_pair
        assert public_key.key_size == 2048
        assert private_key.key_size == 2048

    def test_unknown_padding_rejected(self):
        with pytest.raises(CryptoError) as exc_info:
            AsymmetricCipher("none")
        assert exc_info.value.kind == CryptoErrorKind.CIPHER_UNAVAILABLE
