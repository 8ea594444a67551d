"""
Transfer Processing Module

Turns an encrypted wire envelope into a ledger write:

1. RSA-decrypt the five wire fields through the EncryptionGateway
2. Parse amount (decimal literal) and time (ISO-8601 local date-time)
3. Hand the TransferInstruction to the LedgerWriter

Also provides the client-side helper that builds such an envelope.
"""

import logging
import re
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Dict, Mapping, Optional

from .errors import CryptoError, LedgerError, LedgerErrorKind
from .gateway import EncryptionGateway
from .ledger import LedgerWriter, TransferContext, TransferInstruction, TransferResult, TransferState
from .masking import mask_sensitive_data


logger = logging.getLogger(__name__)


FIELD_TRANSACTION_ID = "transactionId"
FIELD_FROM_ACCOUNT = "fromAccount"
FIELD_TO_ACCOUNT = "toAccount"
FIELD_AMOUNT = "amount"
FIELD_TIME = "time"

WIRE_FIELDS = (FIELD_TRANSACTION_ID, FIELD_FROM_ACCOUNT, FIELD_TO_ACCOUNT, FIELD_AMOUNT, FIELD_TIME)

TIME_FORMAT_EXAMPLE = "2024-01-15T10:30:00"

# yyyy-MM-ddTHH:mm[:ss[.fraction]], fraction up to nanoseconds
_LOCAL_DATE_TIME_PATTERN = re.compile(
    r"(\d{4})-(\d{2})-(\d{2})T(\d{2}):(\d{2})(?::(\d{2})(?:\.(\d{1,9}))?)?",
    re.ASCII,
)


def parse_amount(value: str) -> Decimal:
    """Parse a decrypted decimal-literal amount"""
    try:
        amount = Decimal(value.strip())
    except (InvalidOperation, ValueError) as e:
        raise LedgerError(
            LedgerErrorKind.INVALID_AMOUNT, "Invalid amount format", FIELD_AMOUNT
        ) from e
    if not amount.is_finite():
        raise LedgerError(LedgerErrorKind.INVALID_AMOUNT, "Invalid amount format", FIELD_AMOUNT)
    return amount


def parse_time(value: str) -> datetime:
    """
    Parse a decrypted ISO-8601 local date-time, yyyy-MM-ddTHH:mm[:ss[.fraction]].
    Fractions beyond microseconds are truncated; offsets are rejected.
    """
    match = _LOCAL_DATE_TIME_PATTERN.fullmatch(value.strip())
    try:
        if match is None:
            raise ValueError("not an ISO-8601 local date-time")
        year, month, day, hour, minute, second, fraction = match.groups()
        occurred_at = datetime(
            int(year), int(month), int(day), int(hour), int(minute), int(second or 0),
            int((fraction or "0")[:6].ljust(6, "0")),
        )
    except ValueError as e:
        raise LedgerError(
            LedgerErrorKind.INVALID_TIME,
            f"Invalid time format, expected ISO-8601 local date-time like {TIME_FORMAT_EXAMPLE}",
            FIELD_TIME,
        ) from e
    return occurred_at


def encrypt_envelope(gateway: EncryptionGateway, fields: Mapping[str, str]) -> Dict[str, str]:
    """
    Build a wire envelope by RSA-encrypting each of the five fields.

    Args:
        gateway: Gateway holding the public key to encrypt with
        fields: Plaintext values keyed by wire field name

    Returns:
        Envelope keyed by wire field name
    """
    return {name: gateway.wire_encrypt(str(fields[name])) for name in WIRE_FIELDS}


class TransferProcessor:
    """Decrypts wire envelopes and records them through the ledger writer"""

    def __init__(self, gateway: EncryptionGateway, writer: LedgerWriter):
        self.gateway = gateway
        self.writer = writer

    def decrypt_instruction(
        self,
        envelope: Mapping[str, Optional[str]],
        context: Optional[TransferContext] = None
    ) -> TransferInstruction:
        """
        Wire-decrypt and parse the five fields of an envelope.

        Raises:
            LedgerError: MISSING_FIELD, INVALID_AMOUNT or INVALID_TIME
            CryptoError: a field failed to decrypt (field_name is set)
        """
        context = context or TransferContext()
        try:
            plain = {name: self.gateway.wire_decrypt(envelope.get(name), name) for name in WIRE_FIELDS}
            instruction = TransferInstruction(
                transaction_id=plain[FIELD_TRANSACTION_ID],
                from_account=plain[FIELD_FROM_ACCOUNT],
                to_account=plain[FIELD_TO_ACCOUNT],
                amount=parse_amount(plain[FIELD_AMOUNT]),
                occurred_at=parse_time(plain[FIELD_TIME]),
            )
        except LedgerError as e:
            context.fail(e)
            logger.warning(f"Transfer rejected before decryption completed ({e.code}, field={e.field_name})")
            raise
        except CryptoError as e:
            context.advance(TransferState.REJECTED)
            logger.warning(f"Transfer rejected: {mask_sensitive_data(e.message)} ({e.code})")
            raise

        context.transaction_id = instruction.transaction_id
        context.advance(TransferState.DECRYPTED)
        return instruction

    def process(self, envelope: Mapping[str, Optional[str]]) -> TransferResult:
        """Decrypt an envelope and write the transfer to the ledger"""
        logger.info("Received transfer request")
        context = TransferContext()
        instruction = self.decrypt_instruction(envelope, context)
        return self.writer.record_transfer(instruction, context)
