"""Deposits: we only ever credit a wallet from a signed gateway callback."""

from datetime import datetime, timezone
import logging
import secrets
from typing import Optional

from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.errors import BelowMinimum, ConflictError, InvalidTransition, NotFound, PreconditionFailed, ValidationError
from app.models import Deposit, DepositStatus, LedgerKind, PaymentGateway
from app.services import site_settings
from app.services.gateway import build_redirect_url
from app.services.ledger import atomic, lock_wallet
from app.services.wallet import credit_wallet

settings = get_settings()
logger = logging.getLogger(__name__)

SUCCESS_STATUSES = {"success", "completed", "paid"}
FAILED_STATUSES = {"failed", "cancelled"}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def deposit_reference(reference: str) -> str:
    return f"deposit:{reference}"


def start_deposit(
    db: Session,
    user_id: int,
    gateway_id: int,
    amount: int,
    redirect_url: Optional[str] = None,
) -> tuple[Deposit, str]:
    site_settings.ensure_enabled(db, "enable_deposits", "Deposits")
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise ValidationError("Amount must be a positive whole amount in paise", code="INVALID_AMOUNT")
    minimum = int(site_settings.get_value(db, "min_deposit_amount"))
    if amount < minimum:
        raise BelowMinimum(f"Minimum deposit is {minimum}")

    gateway = db.query(PaymentGateway).filter(PaymentGateway.id == gateway_id).first()
    if not gateway or not gateway.is_active:
        raise NotFound("Payment gateway not available", code="GATEWAY_NOT_FOUND")
    if not (gateway.config or {}).get("checkout_url"):
        raise PreconditionFailed("Payment gateway is not configured", code="GATEWAY_MISCONFIGURED")

    deposit = Deposit(
        user_id=user_id,
        gateway_id=gateway.id,
        amount=amount,
        status=DepositStatus.PENDING,
        reference=f"DEP_{secrets.token_hex(8)}",
    )
    db.add(deposit)
    db.commit()
    db.refresh(deposit)

    url = build_redirect_url(
        gateway,
        amount=amount,
        transaction_id=deposit.reference,
        user_id=user_id,
        redirect_url=redirect_url or f"{settings.frontend_base_url.rstrip('/')}/wallet",
    )
    logger.info("Deposit started id=%s user_id=%s amount=%s gateway=%s", deposit.id, user_id, amount, gateway.type)
    return deposit, url


def _lock_deposit(db: Session, reference: str) -> Deposit:
    return (
        db.query(Deposit)
        .filter(Deposit.reference == reference)
        .with_for_update()
        .populate_existing()
        .one()
    )


def apply_callback(
    db: Session,
    gateway: PaymentGateway,
    *,
    transaction_id: str,
    status: str,
    amount: Optional[int] = None,
    external_reference: Optional[str] = None,
) -> Deposit:
    """Apply a verified gateway callback. Replays of the same callback are no-ops."""
    deposit = db.query(Deposit).filter(Deposit.reference == transaction_id).first()
    if not deposit or deposit.gateway_id != gateway.id:
        raise NotFound("Deposit not found", code="DEPOSIT_NOT_FOUND")

    normalized = (status or "").strip().lower()
    if normalized in SUCCESS_STATUSES:
        if amount is not None and int(amount) != int(deposit.amount):
            logger.warning(
                "Deposit callback amount mismatch reference=%s expected=%s got=%s",
                transaction_id,
                deposit.amount,
                amount,
            )
            raise ValidationError("Callback amount does not match the deposit", code="INVALID_AMOUNT")
        return _complete(db, deposit.user_id, transaction_id, external_reference)
    if normalized in FAILED_STATUSES:
        return _fail(db, transaction_id, normalized, external_reference)
    raise ValidationError(f"Unknown callback status: {status}", code="INVALID_STATUS")


def _complete(db: Session, user_id: int, reference: str, external_reference: Optional[str]) -> Deposit:
    try:
        with atomic(db):
            wallet = lock_wallet(db, user_id)
            deposit = _lock_deposit(db, reference)
            if deposit.status == DepositStatus.COMPLETED:
                return deposit
            if deposit.status == DepositStatus.FAILED:
                raise InvalidTransition("Deposit already marked failed")
            credit_wallet(
                db,
                wallet,
                int(deposit.amount),
                kind=LedgerKind.DEPOSIT,
                reference_id=deposit_reference(deposit.reference),
                description=f"Deposit {deposit.reference}",
                related_deposit_id=deposit.id,
            )
            deposit.status = DepositStatus.COMPLETED
            deposit.processed_at = _utcnow()
            if external_reference:
                deposit.external_reference = external_reference
    except ConflictError:
        # A concurrent replay won the race; the credit exists exactly once.
        deposit = db.query(Deposit).filter(Deposit.reference == reference).populate_existing().one()
        if deposit.status == DepositStatus.COMPLETED:
            return deposit
        raise

    db.refresh(deposit)
    logger.info("Deposit credited id=%s user_id=%s amount=%s reference=%s", deposit.id, user_id, deposit.amount, reference)
    return deposit


def _fail(db: Session, reference: str, reason: str, external_reference: Optional[str]) -> Deposit:
    with atomic(db):
        deposit = _lock_deposit(db, reference)
        if deposit.status == DepositStatus.FAILED:
            return deposit
        if deposit.status == DepositStatus.COMPLETED:
            raise InvalidTransition("Deposit already completed")
        deposit.status = DepositStatus.FAILED
        deposit.failure_reason = reason
        deposit.processed_at = _utcnow()
        if external_reference:
            deposit.external_reference = external_reference

    db.refresh(deposit)
    logger.info("Deposit failed id=%s reference=%s reason=%s", deposit.id, reference, reason)
    return deposit
