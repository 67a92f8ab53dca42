"""Append-only ledger of balance events and the transaction envelope around it.

Every balance mutation follows the same shape::

    with atomic(db):
        wallet = lock_wallet(db, user_id)
        ...checks against current_balance()...
        append(db, ...)
        sync_projection(db, wallet)

``atomic`` commits once at the end or rolls back everything, so an operation
never leaves a ledger row without its companion Bet/WithdrawalRequest row or
the other way round.
"""

from contextlib import contextmanager
import logging
from typing import Iterator, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Query, Session

from app.core.errors import ConflictError, DependencyUnavailable, DuplicateReference, ServiceError
from app.models import LedgerEntry, LedgerKind, Wallet

logger = logging.getLogger(__name__)

# serialization_failure, deadlock_detected
_RETRYABLE_PGCODES = {"40001", "40P01"}


def _map_store_error(exc: Exception) -> ServiceError:
    if isinstance(exc, IntegrityError):
        return ConflictError("The record was changed by another request", code="CONCURRENT_UPDATE")
    pgcode = getattr(getattr(exc, "orig", None), "pgcode", None)
    if pgcode in _RETRYABLE_PGCODES:
        return ConflictError(
            "The operation conflicted with a concurrent update",
            code="CONCURRENT_UPDATE",
            hint="Retry with the same reference_id",
        )
    return DependencyUnavailable("The database is unavailable", code="STORE_UNAVAILABLE")


@contextmanager
def atomic(db: Session) -> Iterator[Session]:
    """Run the block as one transaction: commit on success, roll back on any error."""
    try:
        yield db
        db.commit()
    except ServiceError:
        db.rollback()
        raise
    except (IntegrityError, OperationalError) as exc:
        db.rollback()
        logger.warning("Ledger transaction rolled back: %s", exc.__class__.__name__)
        raise _map_store_error(exc) from exc
    except Exception:
        db.rollback()
        raise


def wallet_for_update(db: Session, user_id: int) -> Query:
    # populate_existing: never trust a wallet snapshot loaded before the lock.
    return db.query(Wallet).filter(Wallet.user_id == user_id).with_for_update().populate_existing()


def _select_wallet_for_update(db: Session, user_id: int) -> Optional[Wallet]:
    return wallet_for_update(db, user_id).first()


def lock_wallet(db: Session, user_id: int) -> Wallet:
    """Lock the user's wallet row for the rest of the transaction, creating it if missing."""
    wallet = _select_wallet_for_update(db, user_id)
    if wallet is not None:
        return wallet

    db.add(Wallet(user_id=user_id, balance=0))
    try:
        db.flush()
    except IntegrityError as exc:
        # Another request created the wallet between our select and insert.
        raise ConflictError("Wallet is being created by another request", code="CONCURRENT_UPDATE") from exc
    return _select_wallet_for_update(db, user_id)


def find_by_reference(db: Session, reference_id: str) -> Optional[LedgerEntry]:
    return db.query(LedgerEntry).filter(LedgerEntry.reference_id == reference_id).first()


def append(
    db: Session,
    *,
    user_id: int,
    kind: LedgerKind,
    amount: int,
    reference_id: str,
    description: str = "",
    related_bet_id: Optional[int] = None,
    related_withdrawal_id: Optional[int] = None,
    related_deposit_id: Optional[int] = None,
) -> LedgerEntry:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount == 0:
        raise ValueError("Ledger amount must be a non-zero integer in minor units")
    if find_by_reference(db, reference_id) is not None:
        raise DuplicateReference(reference_id)

    entry = LedgerEntry(
        user_id=user_id,
        kind=kind,
        amount=amount,
        reference_id=reference_id,
        description=description,
        related_bet_id=related_bet_id,
        related_withdrawal_id=related_withdrawal_id,
        related_deposit_id=related_deposit_id,
    )
    db.add(entry)
    try:
        db.flush()
    except IntegrityError as exc:
        raise DuplicateReference(reference_id) from exc

    logger.info(
        "Ledger append user_id=%s kind=%s amount=%s reference=%s",
        user_id,
        kind.value,
        amount,
        reference_id,
    )
    return entry


def entries_for(
    db: Session,
    user_id: int,
    *,
    after_id: Optional[int] = None,
    limit: Optional[int] = None,
) -> list[LedgerEntry]:
    """Entries oldest first. Pass the last seen id as ``after_id`` to resume."""
    query = db.query(LedgerEntry).filter(LedgerEntry.user_id == user_id)
    if after_id is not None:
        query = query.filter(LedgerEntry.id > after_id)
    query = query.order_by(LedgerEntry.id.asc())
    if limit is not None:
        query = query.limit(limit)
    return query.all()


def sum_for(db: Session, user_id: int) -> tuple[int, Optional[int]]:
    total, last_id = (
        db.query(func.coalesce(func.sum(LedgerEntry.amount), 0), func.max(LedgerEntry.id))
        .filter(LedgerEntry.user_id == user_id)
        .one()
    )
    return int(total or 0), last_id


def sum_after(db: Session, user_id: int, after_id: Optional[int]) -> int:
    query = db.query(func.coalesce(func.sum(LedgerEntry.amount), 0)).filter(LedgerEntry.user_id == user_id)
    if after_id is not None:
        query = query.filter(LedgerEntry.id > after_id)
    return int(query.scalar() or 0)


def sum_by_kind(db: Session, kind: LedgerKind) -> int:
    total = db.query(func.coalesce(func.sum(LedgerEntry.amount), 0)).filter(LedgerEntry.kind == kind).scalar()
    return int(total or 0)
