"""
Error kind to HTTP response mapping
"""

import logging

from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from ..errors import CryptoErrorKind, LedgerErrorKind, SecureLedgerError
from ..masking import mask_sensitive_data
from .schemas import ErrorResponse


logger = logging.getLogger(__name__)


STATUS_BY_KIND = {
    CryptoErrorKind.MALFORMED_CIPHERTEXT: status.HTTP_400_BAD_REQUEST,
    CryptoErrorKind.AUTHENTICATION_FAILED: status.HTTP_400_BAD_REQUEST,
    CryptoErrorKind.DECRYPTION_FAILED: status.HTTP_400_BAD_REQUEST,
    CryptoErrorKind.PLAINTEXT_TOO_LARGE: status.HTTP_400_BAD_REQUEST,
    CryptoErrorKind.CIPHER_UNAVAILABLE: status.HTTP_500_INTERNAL_SERVER_ERROR,
    CryptoErrorKind.INVALID_KEY: status.HTTP_500_INTERNAL_SERVER_ERROR,
    LedgerErrorKind.DUPLICATE_TRANSACTION: status.HTTP_409_CONFLICT,
    LedgerErrorKind.SAME_ACCOUNT: status.HTTP_400_BAD_REQUEST,
    LedgerErrorKind.INVALID_AMOUNT: status.HTTP_400_BAD_REQUEST,
    LedgerErrorKind.INVALID_TIME: status.HTTP_400_BAD_REQUEST,
    LedgerErrorKind.MISSING_FIELD: status.HTTP_400_BAD_REQUEST,
    LedgerErrorKind.ENCRYPTION_FAILURE: status.HTTP_500_INTERNAL_SERVER_ERROR,
    LedgerErrorKind.STORAGE_FAILURE: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def error_response(error: SecureLedgerError) -> JSONResponse:
    """Build the JSON error response for an error kind"""
    status_code = STATUS_BY_KIND.get(error.kind, status.HTTP_500_INTERNAL_SERVER_ERROR)
    body = ErrorResponse(
        error_code=error.code,
        message=mask_sensitive_data(error.message),
        field=error.field_name,
    )
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


async def secure_ledger_error_handler(request, exc: SecureLedgerError) -> JSONResponse:
    """Exception handler for errors escaping a route"""
    logger.error(f"{request.method} {request.url.path} failed ({exc.code})")
    return error_response(exc)
