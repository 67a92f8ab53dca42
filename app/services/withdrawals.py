"""Withdrawal requests: pending -> approved -> completed, or pending -> rejected.

Requesting moves no funds. Approval re-checks the balance under the wallet lock
and appends the debit in the same transaction that completes the request.
"""

from datetime import datetime, timezone
import logging
from typing import Optional

from sqlalchemy.orm import Session

from app.core.errors import BelowMinimum, ConflictError, InsufficientBalance, InvalidTransition, NotFound, ValidationError, WalletLocked
from app.models import LedgerKind, WITHDRAWAL_TRANSITIONS, WithdrawalRequest, WithdrawalStatus
from app.services import site_settings
from app.services.ledger import atomic, lock_wallet
from app.services.wallet import debit_wallet, would_cover_debit

logger = logging.getLogger(__name__)

WITHDRAWAL_METHODS = {"bank_transfer", "upi"}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def debit_reference(withdrawal_id: int) -> str:
    return f"withdrawal:{withdrawal_id}:debit"


def _transition(withdrawal: WithdrawalRequest, target: WithdrawalStatus) -> None:
    if target not in WITHDRAWAL_TRANSITIONS[withdrawal.status]:
        raise InvalidTransition(f"Cannot move withdrawal from {withdrawal.status.value} to {target.value}")
    withdrawal.status = target


def _existing(db: Session, user_id: int, reference_id: Optional[str]) -> Optional[WithdrawalRequest]:
    if not reference_id:
        return None
    withdrawal = db.query(WithdrawalRequest).filter(WithdrawalRequest.reference_id == reference_id).first()
    if withdrawal and withdrawal.user_id != user_id:
        raise ConflictError("Reference already used", code="DUPLICATE_REFERENCE")
    return withdrawal


def request_withdrawal(
    db: Session,
    user_id: int,
    amount: int,
    bank_details: Optional[dict] = None,
    *,
    method: str = "bank_transfer",
    reference_id: Optional[str] = None,
) -> WithdrawalRequest:
    # A retry of a recorded request returns it even if settings changed since.
    existing = _existing(db, user_id, reference_id)
    if existing:
        return existing

    site_settings.ensure_enabled(db, "enable_withdrawals", "Withdrawals")
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise ValidationError("Amount must be a positive whole amount in paise", code="INVALID_AMOUNT")
    if method not in WITHDRAWAL_METHODS:
        raise ValidationError(f"Unsupported withdrawal method: {method}", code="INVALID_METHOD")
    minimum = int(site_settings.get_value(db, "min_withdrawal_amount"))
    if amount < minimum:
        raise BelowMinimum(f"Minimum withdrawal is {minimum}")

    try:
        with atomic(db):
            wallet = lock_wallet(db, user_id)
            existing = _existing(db, user_id, reference_id)
            if existing:
                return existing
            if wallet.is_locked:
                raise WalletLocked()
            if not would_cover_debit(db, user_id, amount):
                raise InsufficientBalance()
            withdrawal = WithdrawalRequest(
                user_id=user_id,
                amount=amount,
                method=method,
                bank_details=bank_details or {},
                status=WithdrawalStatus.PENDING,
                reference_id=reference_id,
                requested_at=_utcnow(),
            )
            db.add(withdrawal)
    except ConflictError:
        existing = _existing(db, user_id, reference_id)
        if existing:
            return existing
        raise

    db.refresh(withdrawal)
    logger.info("Withdrawal requested id=%s user_id=%s amount=%s", withdrawal.id, user_id, amount)
    return withdrawal


def _get(db: Session, withdrawal_id: int) -> WithdrawalRequest:
    withdrawal = db.query(WithdrawalRequest).filter(WithdrawalRequest.id == withdrawal_id).first()
    if not withdrawal:
        raise NotFound("Withdrawal request not found", code="WITHDRAWAL_NOT_FOUND")
    return withdrawal


def _lock(db: Session, withdrawal_id: int) -> WithdrawalRequest:
    return (
        db.query(WithdrawalRequest)
        .filter(WithdrawalRequest.id == withdrawal_id)
        .with_for_update()
        .populate_existing()
        .one()
    )


def approve_withdrawal(db: Session, withdrawal_id: int, admin_notes: Optional[str] = None) -> WithdrawalRequest:
    """Debit the wallet and complete the request in one transaction.

    Fails with ``InsufficientBalance`` when the balance no longer covers the
    amount and with ``WalletLocked`` while the user's wallet is locked; in both
    cases the request stays pending.
    """
    user_id = _get(db, withdrawal_id).user_id
    with atomic(db):
        wallet = lock_wallet(db, user_id)
        withdrawal = _lock(db, withdrawal_id)
        _transition(withdrawal, WithdrawalStatus.APPROVED)
        # Raises InsufficientBalance when the balance moved since the request; the
        # rollback leaves the request pending.
        debit_wallet(
            db,
            wallet,
            int(withdrawal.amount),
            kind=LedgerKind.WITHDRAWAL_RELEASE,
            reference_id=debit_reference(withdrawal.id),
            description=f"Withdrawal #{withdrawal.id} via {withdrawal.method}",
            related_withdrawal_id=withdrawal.id,
        )
        _transition(withdrawal, WithdrawalStatus.COMPLETED)
        withdrawal.processed_at = _utcnow()
        if admin_notes is not None:
            withdrawal.admin_notes = admin_notes

    db.refresh(withdrawal)
    logger.info("Withdrawal approved id=%s user_id=%s amount=%s", withdrawal.id, user_id, withdrawal.amount)
    return withdrawal


def reject_withdrawal(db: Session, withdrawal_id: int, admin_notes: Optional[str] = None) -> WithdrawalRequest:
    _get(db, withdrawal_id)
    with atomic(db):
        withdrawal = _lock(db, withdrawal_id)
        _transition(withdrawal, WithdrawalStatus.REJECTED)
        withdrawal.processed_at = _utcnow()
        if admin_notes is not None:
            withdrawal.admin_notes = admin_notes

    db.refresh(withdrawal)
    logger.info("Withdrawal rejected id=%s user_id=%s", withdrawal.id, withdrawal.user_id)
    return withdrawal
