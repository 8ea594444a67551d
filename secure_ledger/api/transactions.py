"""
Transaction endpoints
"""

import logging

from fastapi import APIRouter, Depends

from ..errors import SecureLedgerError
from ..logging_config import log_action
from ..masking import mask_transaction_id
from .errors import error_response
from .schemas import ApiResponse, PublicKeyResponse, TransferRequest, TransferResponse
from .service import LedgerService, get_ledger_service


logger = logging.getLogger(__name__)

router = APIRouter()

STATUS_SUCCESS = "SUCCESS"
MSG_TRANSFER_SUCCESS = "Transfer processed successfully"


@router.post("/transfer")
def transfer(
    request: TransferRequest,
    service: LedgerService = Depends(get_ledger_service)
):
    """Process a transfer whose five fields are RSA-encrypted with the server public key"""
    try:
        result = service.processor.process(request.model_dump())
    except SecureLedgerError as e:
        log_action(logger, "warning", "Transfer request failed", action="transfer",
                   error_code=e.code, extra={"field": e.field_name})
        return error_response(e)

    logger.info(f"Transfer completed successfully - transactionId: {mask_transaction_id(result.transaction_id)}")
    return ApiResponse(
        success=True,
        message=MSG_TRANSFER_SUCCESS,
        data=TransferResponse(
            transaction_id=result.transaction_id,
            status=STATUS_SUCCESS,
            message=MSG_TRANSFER_SUCCESS
        )
    )


@router.get("/public-key")
def get_public_key(service: LedgerService = Depends(get_ledger_service)):
    """Get the RSA public key callers use to encrypt wire fields"""
    public_key = service.key_material.public_key
    return ApiResponse(
        success=True,
        message="Public key retrieved successfully",
        data=PublicKeyResponse(
            public_key=service.gateway.public_key_export(),
            key_size=public_key.key_size,
            padding=service.gateway.asymmetric.padding_scheme
        )
    )
