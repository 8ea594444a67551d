"""
Encryption helper endpoints (development and testing only)

Mounted only when enable_encryption_endpoints is set; they let developers
build wire envelopes and inspect stored account values by hand.
"""

import logging

from fastapi import APIRouter, Depends

from ..errors import SecureLedgerError
from .errors import error_response
from .schemas import ApiResponse, DecryptRequest, DecryptResponse, EncryptRequest, EncryptResponse
from .service import LedgerService, get_ledger_service


logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/rsa/encrypt")
def encrypt_rsa(request: EncryptRequest, service: LedgerService = Depends(get_ledger_service)):
    """Encrypt a small value with the RSA public key"""
    try:
        encrypted = service.gateway.wire_encrypt(request.plain_text)
    except SecureLedgerError as e:
        return error_response(e)
    logger.info(f"RSA encryption successful (data length: {len(request.plain_text)})")
    return ApiResponse(success=True, message="RSA encryption successful",
                       data=EncryptResponse(encrypted_data=encrypted))


@router.post("/rsa/decrypt")
def decrypt_rsa(request: DecryptRequest, service: LedgerService = Depends(get_ledger_service)):
    """Decrypt a value with the RSA private key"""
    try:
        decrypted = service.gateway.wire_decrypt(request.cipher_text, "cipher_text")
    except SecureLedgerError as e:
        return error_response(e)
    return ApiResponse(success=True, message="RSA decryption successful",
                       data=DecryptResponse(decrypted_data=decrypted))


@router.post("/aes/encrypt-account")
def encrypt_account(request: EncryptRequest, service: LedgerService = Depends(get_ledger_service)):
    """Encrypt an account number the way it is stored in the ledger"""
    try:
        encrypted = service.gateway.storage_encrypt(request.plain_text)
    except SecureLedgerError as e:
        return error_response(e)
    return ApiResponse(success=True, message="AES encryption successful",
                       data=EncryptResponse(encrypted_data=encrypted))


@router.post("/aes/decrypt-account")
def decrypt_account(request: DecryptRequest, service: LedgerService = Depends(get_ledger_service)):
    """Decrypt an account value read from the ledger"""
    try:
        decrypted = service.gateway.storage_decrypt(request.cipher_text)
    except SecureLedgerError as e:
        return error_response(e)
    return ApiResponse(success=True, message="AES decryption successful",
                       data=DecryptResponse(decrypted_data=decrypted))
