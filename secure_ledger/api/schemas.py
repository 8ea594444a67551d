"""
Pydantic schemas for API requests and responses
"""

from datetime import datetime
from typing import Any, Optional
from pydantic import BaseModel, Field


class TransferRequest(BaseModel):
    """Five RSA-encrypted, base64-encoded wire fields"""
    transactionId: Optional[str] = Field(None, description="RSA-encrypted transaction ID")
    fromAccount: Optional[str] = Field(None, description="RSA-encrypted source account")
    toAccount: Optional[str] = Field(None, description="RSA-encrypted destination account")
    amount: Optional[str] = Field(None, description="RSA-encrypted decimal amount")
    time: Optional[str] = Field(None, description="RSA-encrypted ISO-8601 local date-time")


class TransferResponse(BaseModel):
    transaction_id: str
    status: str
    message: str


class PublicKeyResponse(BaseModel):
    public_key: str
    algorithm: str = "RSA"
    key_size: int
    padding: str
    format: str = "X.509 SubjectPublicKeyInfo (DER, base64)"


class EncryptRequest(BaseModel):
    plain_text: str = Field(..., min_length=1)


class DecryptRequest(BaseModel):
    cipher_text: str = Field(..., min_length=1)


class EncryptResponse(BaseModel):
    encrypted_data: str


class DecryptResponse(BaseModel):
    decrypted_data: str


class ApiResponse(BaseModel):
    success: bool
    message: str
    data: Optional[Any] = None
    timestamp: datetime = Field(default_factory=datetime.now)


class ErrorResponse(BaseModel):
    success: bool = False
    error_code: str
    message: str
    field: Optional[str] = None
    timestamp: datetime = Field(default_factory=datetime.now)
