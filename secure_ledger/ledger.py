"""
Double-Entry Ledger Writer

Records each transfer exactly once as a balanced pair of ledger entries:
a debit row for the source account and a credit row for the destination
account. The idempotency check and both inserts run inside one atomic
unit of the ledger store, so a duplicate submission is rejected and a
failure part-way leaves no rows behind. Account numbers are encrypted
through the EncryptionGateway before a row reaches the store.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from datetime import datetime
from dataclasses import dataclass, field
from typing import Dict, List, Optional
from enum import Enum
import logging

from .errors import CryptoError, LedgerError, LedgerErrorKind
from .gateway import EncryptionGateway
from .masking import mask_account, mask_amount, mask_time, mask_transaction_id
from .storage import DuplicateKeyError, LedgerStore


logger = logging.getLogger(__name__)


AMOUNT_QUANTUM = Decimal("0.01")       # NUMERIC(19, 2)
MAX_AMOUNT = Decimal("1e17")           # 17 integer digits
ZERO = Decimal("0.00")


class EntrySide(Enum):
    """Which leg of the transfer a ledger row records"""
    DEBIT = "DEBIT"
    CREDIT = "CREDIT"


class TransferState(Enum):
    """Lifecycle of a single transfer"""
    RECEIVED = "received"
    DECRYPTED = "decrypted"
    VALIDATED = "validated"
    WRITING = "writing"          # Pair being written, not yet committed
    COMMITTED = "committed"
    REJECTED = "rejected"        # Business rule refused the transfer
    FAULTED = "faulted"          # Encryption or storage failure


_TERMINAL_STATES = {TransferState.COMMITTED, TransferState.REJECTED, TransferState.FAULTED}

_ALLOWED_TRANSITIONS = {
    TransferState.RECEIVED: {TransferState.DECRYPTED, TransferState.REJECTED, TransferState.FAULTED},
    TransferState.DECRYPTED: {TransferState.VALIDATED, TransferState.REJECTED, TransferState.FAULTED},
    TransferState.VALIDATED: {TransferState.WRITING, TransferState.REJECTED, TransferState.FAULTED},
    TransferState.WRITING: {TransferState.COMMITTED, TransferState.REJECTED, TransferState.FAULTED},
}


@dataclass(frozen=True)
class TransferInstruction:
    """Decrypted transfer request; lives only for the duration of one write"""
    transaction_id: str
    from_account: str = field(repr=False)
    to_account: str = field(repr=False)
    amount: Decimal = field(repr=False)
    occurred_at: datetime = field(repr=False)


@dataclass
class LedgerEntry:
    """
    One leg of a transfer as persisted.
    The account holds the AES envelope, never the plaintext account number.
    """
    transaction_id: str
    side: EntrySide
    account: str
    debit: Decimal
    credit: Decimal
    occurred_at: datetime
    id: Optional[int] = None

    def __post_init__(self):
        """Validate that exactly one of debit or credit is non-zero"""
        if self.debit < 0 or self.credit < 0:
            raise ValueError("Ledger entry amounts cannot be negative")

        debit_zero = self.debit == 0
        credit_zero = self.credit == 0

        if debit_zero == credit_zero:
            raise ValueError("Ledger entry must have exactly one of debit or credit amount")

        if self.side == EntrySide.DEBIT and debit_zero:
            raise ValueError("Debit entry must carry a debit amount")
        if self.side == EntrySide.CREDIT and credit_zero:
            raise ValueError("Credit entry must carry a credit amount")

    @property
    def amount(self) -> Decimal:
        """Get the non-zero amount (debit or credit)"""
        return self.debit if self.side == EntrySide.DEBIT else self.credit

    def to_row(self) -> Dict[str, str]:
        """Convert to a storage row"""
        return {
            "transaction_id": self.transaction_id,
            "side": self.side.value,
            "account": self.account,
            "debit": str(self.debit),
            "credit": str(self.credit),
            "occurred_at": self.occurred_at.isoformat(),
        }

    @classmethod
    def from_row(cls, row: Dict) -> "LedgerEntry":
        """Create instance from a storage row"""
        return cls(
            id=row.get("id"),
            transaction_id=row["transaction_id"],
            side=EntrySide(row["side"]),
            account=row["account"],
            debit=Decimal(str(row["debit"])),
            credit=Decimal(str(row["credit"])),
            occurred_at=datetime.fromisoformat(str(row["occurred_at"])),
        )


@dataclass
class TransferContext:
    """Tracks one transfer through its states"""
    transaction_id: Optional[str] = None
    state: TransferState = TransferState.RECEIVED
    history: List[TransferState] = field(default_factory=lambda: [TransferState.RECEIVED])

    @property
    def is_terminal(self) -> bool:
        return self.state in _TERMINAL_STATES

    def advance(self, new_state: TransferState) -> None:
        if new_state not in _ALLOWED_TRANSITIONS.get(self.state, set()):
            raise ValueError(f"Illegal transfer state transition {self.state.value} -> {new_state.value}")
        self.state = new_state
        self.history.append(new_state)

    def fail(self, error: LedgerError) -> None:
        """Move to REJECTED or FAULTED according to the error kind"""
        if self.is_terminal:
            return
        self.advance(TransferState.REJECTED if error.is_rejection else TransferState.FAULTED)


@dataclass
class TransferResult:
    """Outcome of a committed transfer"""
    transaction_id: str
    state: TransferState
    entries: List[LedgerEntry]

    @property
    def debit_entry(self) -> LedgerEntry:
        return next(e for e in self.entries if e.side == EntrySide.DEBIT)

    @property
    def credit_entry(self) -> LedgerEntry:
        return next(e for e in self.entries if e.side == EntrySide.CREDIT)


def verify_balance(entries: List[LedgerEntry]) -> bool:
    """
    Check the double-entry invariant for one transaction: exactly two rows,
    one debit and one credit of the same amount, and total debits equal
    total credits.
    """
    if len(entries) != 2:
        return False
    if {entry.side for entry in entries} != {EntrySide.DEBIT, EntrySide.CREDIT}:
        return False
    if len({entry.transaction_id for entry in entries}) != 1:
        return False
    total_debit = sum((entry.debit for entry in entries), ZERO)
    total_credit = sum((entry.credit for entry in entries), ZERO)
    return total_debit == total_credit and entries[0].amount == entries[1].amount


class LedgerWriter:
    """
    Writes transfers to the ledger store as balanced debit/credit pairs.
    Safe to share between threads; all shared state lives in the store.
    """

    def __init__(self, store: LedgerStore, gateway: EncryptionGateway):
        self.store = store
        self.gateway = gateway

    def record_transfer(
        self,
        instruction: TransferInstruction,
        context: Optional[TransferContext] = None
    ) -> TransferResult:
        """
        Validate a decrypted transfer and write its two ledger rows atomically.

        Args:
            instruction: Decrypted transfer values
            context: State tracker; a fresh one in DECRYPTED state is used when omitted

        Returns:
            TransferResult in COMMITTED state with both stored entries

        Raises:
            LedgerError: DUPLICATE_TRANSACTION, SAME_ACCOUNT, INVALID_AMOUNT,
                MISSING_FIELD, ENCRYPTION_FAILURE or STORAGE_FAILURE
        """
        if context is None:
            context = TransferContext(transaction_id=instruction.transaction_id)
            context.advance(TransferState.DECRYPTED)
        context.transaction_id = instruction.transaction_id

        masked_id = mask_transaction_id(instruction.transaction_id)
        logger.info(
            f"Processing transfer - transactionId: {masked_id}, "
            f"fromAccount: {mask_account(instruction.from_account)}, "
            f"toAccount: {mask_account(instruction.to_account)}, "
            f"amount: {mask_amount(instruction.amount)}, time: {mask_time(instruction.occurred_at)}"
        )

        try:
            amount = self._validate(instruction)
            context.advance(TransferState.VALIDATED)
            entries = self._write_pair(instruction, amount, context)
        except LedgerError as e:
            context.fail(e)
            self._log_failure(masked_id, e)
            raise

        context.advance(TransferState.COMMITTED)
        logger.info(f"Transfer committed successfully - transactionId: {masked_id}")
        return TransferResult(
            transaction_id=instruction.transaction_id,
            state=context.state,
            entries=entries
        )

    def get_entries(self, transaction_id: str) -> List[LedgerEntry]:
        """Load the stored entries for a transaction (accounts stay encrypted)"""
        try:
            rows = self.store.find_by_transaction_id(transaction_id)
        except Exception as e:
            raise LedgerError(LedgerErrorKind.STORAGE_FAILURE, "Failed to load ledger entries") from e
        return [LedgerEntry.from_row(row) for row in rows]

    def _validate(self, instruction: TransferInstruction) -> Decimal:
        """Check required fields, distinct accounts and a positive amount"""
        for field_name, value in (
            ("transactionId", instruction.transaction_id),
            ("fromAccount", instruction.from_account),
            ("toAccount", instruction.to_account),
            ("amount", instruction.amount),
            ("time", instruction.occurred_at),
        ):
            if value is None or (isinstance(value, str) and not value.strip()):
                raise LedgerError(
                    LedgerErrorKind.MISSING_FIELD, f"Missing required field: {field_name}", field_name
                )

        if instruction.from_account == instruction.to_account:
            raise LedgerError(
                LedgerErrorKind.SAME_ACCOUNT, "Source and destination accounts must differ"
            )

        return self._normalize_amount(instruction.amount)

    @staticmethod
    def _normalize_amount(raw_amount) -> Decimal:
        try:
            amount = raw_amount if isinstance(raw_amount, Decimal) else Decimal(str(raw_amount))
        except (InvalidOperation, ValueError) as e:
            raise LedgerError(LedgerErrorKind.INVALID_AMOUNT, "Amount is not a decimal number", "amount") from e

        if not amount.is_finite():
            raise LedgerError(LedgerErrorKind.INVALID_AMOUNT, "Amount must be a finite number", "amount")

        amount = amount.quantize(AMOUNT_QUANTUM, rounding=ROUND_HALF_UP)
        if amount <= 0:
            raise LedgerError(LedgerErrorKind.INVALID_AMOUNT, "Amount must be greater than zero", "amount")
        if amount >= MAX_AMOUNT:
            raise LedgerError(LedgerErrorKind.INVALID_AMOUNT, "Amount exceeds ledger precision", "amount")
        return amount

    def _write_pair(
        self,
        instruction: TransferInstruction,
        amount: Decimal,
        context: TransferContext
    ) -> List[LedgerEntry]:
        """Idempotency check plus both inserts as one all-or-nothing unit"""
        masked_id = mask_transaction_id(instruction.transaction_id)
        try:
            with self.store.atomic():
                if self.store.exists_by_transaction_id(instruction.transaction_id):
                    raise LedgerError(
                        LedgerErrorKind.DUPLICATE_TRANSACTION, "Transaction ID already exists"
                    )

                context.advance(TransferState.WRITING)

                debit_entry = self._build_entry(
                    instruction, EntrySide.DEBIT, instruction.from_account, debit=amount, credit=ZERO
                )
                credit_entry = self._build_entry(
                    instruction, EntrySide.CREDIT, instruction.to_account, debit=ZERO, credit=amount
                )
                entries = [debit_entry, credit_entry]

                ids = self.store.save_all([entry.to_row() for entry in entries])
                for entry, entry_id in zip(entries, ids):
                    entry.id = entry_id
                logger.debug(f"Debit and credit records staged - transactionId: {masked_id}")
            return entries

        except LedgerError:
            raise
        except CryptoError as e:
            raise LedgerError(
                LedgerErrorKind.ENCRYPTION_FAILURE, f"Failed to encrypt account ({e.code})"
            ) from e
        except DuplicateKeyError as e:
            raise LedgerError(
                LedgerErrorKind.DUPLICATE_TRANSACTION, "Transaction ID already exists"
            ) from e
        except Exception as e:
            logger.error(
                f"Unexpected storage error - transactionId: {masked_id} ({type(e).__name__})"
            )
            raise LedgerError(
                LedgerErrorKind.STORAGE_FAILURE, "Unexpected error while writing ledger entries"
            ) from e

    def _build_entry(
        self,
        instruction: TransferInstruction,
        side: EntrySide,
        account: str,
        debit: Decimal,
        credit: Decimal
    ) -> LedgerEntry:
        encrypted_account = self.gateway.storage_encrypt(account)
        if not encrypted_account:
            raise LedgerError(LedgerErrorKind.ENCRYPTION_FAILURE, "Account encryption produced no value")
        return LedgerEntry(
            transaction_id=instruction.transaction_id,
            side=side,
            account=encrypted_account,
            debit=debit,
            credit=credit,
            occurred_at=instruction.occurred_at
        )

    @staticmethod
    def _log_failure(masked_id: str, error: LedgerError) -> None:
        if error.kind == LedgerErrorKind.DUPLICATE_TRANSACTION:
            logger.warning(f"Duplicate transactionId detected: {masked_id}")
        elif error.is_rejection:
            logger.warning(f"Transfer rejected - transactionId: {masked_id} ({error.code})")
        else:
            logger.error(f"Transfer faulted - transactionId: {masked_id} ({error.code})")
