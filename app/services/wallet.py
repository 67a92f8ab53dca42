import logging
from typing import Optional

from sqlalchemy.orm import Session

from app.core.errors import InsufficientBalance, WalletLocked
from app.models import LedgerEntry, LedgerKind, Wallet
from app.services import ledger

logger = logging.getLogger(__name__)


def get_or_create_wallet(db: Session, user_id: int) -> Wallet:
    wallet = db.query(Wallet).filter(Wallet.user_id == user_id).first()
    if not wallet:
        wallet = Wallet(user_id=user_id, balance=0)
        db.add(wallet)
        db.commit()
        db.refresh(wallet)
    return wallet


def current_balance(db: Session, user_id: int) -> int:
    total, _ = ledger.sum_for(db, user_id)
    return total


def would_cover_debit(db: Session, user_id: int, amount: int) -> bool:
    return current_balance(db, user_id) >= amount


def sync_projection(db: Session, wallet: Wallet) -> int:
    """Rewrite the cached balance from the ledger. Call with the wallet row locked."""
    total, last_id = ledger.sum_for(db, wallet.user_id)
    # Entries newer than last_entry_id are the ones not yet folded into the cache.
    expected = int(wallet.balance or 0) + ledger.sum_after(db, wallet.user_id, wallet.last_entry_id)
    if expected != total:
        logger.warning(
            "Wallet projection drift user_id=%s cached=%s ledger=%s; overwriting cache",
            wallet.user_id,
            expected,
            total,
        )
    wallet.balance = total
    wallet.last_entry_id = last_id
    return total


def credit_wallet(
    db: Session,
    wallet: Wallet,
    amount: int,
    *,
    kind: LedgerKind,
    reference_id: str,
    description: str,
    related_bet_id: Optional[int] = None,
    related_deposit_id: Optional[int] = None,
) -> LedgerEntry:
    entry = ledger.append(
        db,
        user_id=wallet.user_id,
        kind=kind,
        amount=amount,
        reference_id=reference_id,
        description=description,
        related_bet_id=related_bet_id,
        related_deposit_id=related_deposit_id,
    )
    sync_projection(db, wallet)
    return entry


def debit_wallet(
    db: Session,
    wallet: Wallet,
    amount: int,
    *,
    kind: LedgerKind,
    reference_id: str,
    description: str,
    related_bet_id: Optional[int] = None,
    related_withdrawal_id: Optional[int] = None,
) -> LedgerEntry:
    if wallet.is_locked:
        raise WalletLocked()
    if not would_cover_debit(db, wallet.user_id, amount):
        raise InsufficientBalance()
    entry = ledger.append(
        db,
        user_id=wallet.user_id,
        kind=kind,
        amount=-amount,
        reference_id=reference_id,
        description=description,
        related_bet_id=related_bet_id,
        related_withdrawal_id=related_withdrawal_id,
    )
    sync_projection(db, wallet)
    return entry
