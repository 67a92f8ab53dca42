"""Bet placement and settlement.

Placement and every settlement run inside ``ledger.atomic`` with the bettor's
wallet row locked, so the balance check and the stake/payout entry can never
interleave with another debit for the same user.
"""

from datetime import datetime, timezone
from decimal import ROUND_DOWN, Decimal
import logging
from typing import Optional
import uuid

from sqlalchemy.orm import Query, Session

from app.core.errors import AlreadySettled, ConflictError, InvalidStake, NotFound, ValidationError
from app.models import TERMINAL_BET_STATUSES, Bet, BetStatus, BetType, LedgerKind, Match, MatchStatus, Wallet
from app.services import catalog, site_settings
from app.services.ledger import atomic, lock_wallet
from app.services.wallet import credit_wallet, debit_wallet, sync_projection

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def potential_payout(stake: int, odds: Decimal) -> int:
    # Paise are indivisible; the house keeps the fraction.
    return int((Decimal(stake) * Decimal(odds)).to_integral_value(rounding=ROUND_DOWN))


def payout_reference(bet_id: int) -> str:
    return f"bet:{bet_id}:payout"


def refund_reference(bet_id: int) -> str:
    return f"bet:{bet_id}:refund"


def stake_reference(bet_id: int) -> str:
    return f"bet:{bet_id}:stake"


def match_for_update(db: Session, match_id: int, *, shared: bool = False) -> Query:
    return db.query(Match).filter(Match.id == match_id).with_for_update(read=shared).populate_existing()


def _validate_stake(db: Session, stake) -> int:
    if isinstance(stake, bool) or not isinstance(stake, int) or stake <= 0:
        raise InvalidStake("Stake must be a positive whole amount in paise")
    min_bet, max_bet = site_settings.bet_limits(db)
    if stake < min_bet:
        raise InvalidStake(f"Minimum stake is {min_bet}")
    if stake > max_bet:
        raise InvalidStake(f"Maximum stake is {max_bet}")
    return stake


def _existing_bet(db: Session, user_id: int, reference_id: str) -> Optional[Bet]:
    bet = db.query(Bet).filter(Bet.reference_id == reference_id).first()
    if bet and bet.user_id != user_id:
        raise ConflictError("Reference already used", code="DUPLICATE_REFERENCE")
    return bet


def place_bet(
    db: Session,
    user_id: int,
    match_id: int,
    bet_type: BetType,
    stake: int,
    reference_id: Optional[str] = None,
) -> Bet:
    # A retry of a committed bet returns it even if limits changed since.
    if reference_id:
        existing = _existing_bet(db, user_id, reference_id)
        if existing:
            return existing

    bet_type = BetType(bet_type)
    stake = _validate_stake(db, stake)
    reference_id = reference_id or f"bet-{uuid.uuid4().hex}"

    try:
        with atomic(db):
            # Lock order everywhere: match, then wallets, then bets.
            # The shared match lock keeps settlement from closing the match under us.
            match = match_for_update(db, match_id, shared=True).first()
            if not match:
                raise NotFound("Match not found", code="MATCH_NOT_FOUND")
            odds = catalog.odds_for(match, bet_type)

            wallet = lock_wallet(db, user_id)
            # A retry may have committed while we waited for the lock.
            existing = _existing_bet(db, user_id, reference_id)
            if existing:
                return existing

            bet = Bet(
                user_id=user_id,
                match_id=match.id,
                bet_type=bet_type,
                stake=stake,
                odds=odds,
                potential_payout=potential_payout(stake, odds),
                status=BetStatus.PENDING,
                reference_id=reference_id,
                placed_at=_utcnow(),
            )
            db.add(bet)
            db.flush()
            debit_wallet(
                db,
                wallet,
                stake,
                kind=LedgerKind.BET_STAKE,
                reference_id=stake_reference(bet.id),
                description=f"Bet on {match.home_team} vs {match.away_team} ({bet_type.value})",
                related_bet_id=bet.id,
            )
    except ConflictError:
        existing = _existing_bet(db, user_id, reference_id)
        if existing:
            return existing
        raise

    db.refresh(bet)
    logger.info(
        "Bet placed id=%s user_id=%s match_id=%s type=%s stake=%s odds=%s reference=%s",
        bet.id,
        user_id,
        match_id,
        bet_type.value,
        stake,
        odds,
        reference_id,
    )
    return bet


def _settle_locked(db: Session, wallet: Wallet, bet: Bet, outcome: BetStatus) -> None:
    if bet.status != BetStatus.PENDING:
        raise AlreadySettled(f"Bet {bet.id} is already {bet.status.value}")

    bet.status = outcome
    bet.settled_at = _utcnow()
    if outcome == BetStatus.WON:
        credit_wallet(
            db,
            wallet,
            int(bet.potential_payout),
            kind=LedgerKind.BET_PAYOUT,
            reference_id=payout_reference(bet.id),
            description=f"Winnings for bet #{bet.id}",
            related_bet_id=bet.id,
        )
    elif outcome == BetStatus.CANCELLED:
        credit_wallet(
            db,
            wallet,
            int(bet.stake),
            kind=LedgerKind.BET_REFUND,
            reference_id=refund_reference(bet.id),
            description=f"Refund for cancelled bet #{bet.id}",
            related_bet_id=bet.id,
        )
    else:
        sync_projection(db, wallet)


def _outcome(value) -> BetStatus:
    try:
        outcome = BetStatus(value)
    except ValueError:
        raise ValidationError(f"Unknown outcome: {value}", code="INVALID_OUTCOME")
    if outcome not in TERMINAL_BET_STATUSES:
        raise ValidationError("Outcome must be won, lost or cancelled", code="INVALID_OUTCOME")
    return outcome


def settle_bet(db: Session, bet_id: int, outcome: BetStatus) -> Bet:
    outcome = _outcome(outcome)
    bet = db.query(Bet).filter(Bet.id == bet_id).first()
    if not bet:
        raise NotFound("Bet not found", code="BET_NOT_FOUND")

    user_id = bet.user_id
    with atomic(db):
        wallet = lock_wallet(db, user_id)
        bet = db.query(Bet).filter(Bet.id == bet_id).with_for_update().populate_existing().one()
        _settle_locked(db, wallet, bet, outcome)

    db.refresh(bet)
    logger.info("Bet settled id=%s user_id=%s outcome=%s", bet.id, user_id, outcome.value)
    return bet


def _settle_all_pending(db: Session, match: Match, decide) -> dict:
    # The match row is locked, so no new bet can join while we settle.
    user_ids = [
        row.user_id
        for row in db.query(Bet.user_id)
        .filter(Bet.match_id == match.id, Bet.status == BetStatus.PENDING)
        .distinct()
        .all()
    ]
    # Wallets in user_id order so two settlements cannot deadlock.
    wallets = {}
    for user_id in sorted(user_ids):
        wallets[user_id] = lock_wallet(db, user_id)

    pending = (
        db.query(Bet)
        .filter(Bet.match_id == match.id, Bet.status == BetStatus.PENDING)
        .order_by(Bet.user_id.asc(), Bet.id.asc())
        .with_for_update()
        .populate_existing()
        .all()
    )

    summary = {"match_id": match.id, "settled": 0, "won": 0, "lost": 0, "cancelled": 0, "total_paid": 0}
    for bet in pending:
        outcome = decide(bet)
        _settle_locked(db, wallets[bet.user_id], bet, outcome)
        summary["settled"] += 1
        summary[outcome.value] += 1
        if outcome == BetStatus.WON:
            summary["total_paid"] += int(bet.potential_payout)
        elif outcome == BetStatus.CANCELLED:
            summary["total_paid"] += int(bet.stake)
    return summary


def _lock_open_match(db: Session, match_id: int) -> Match:
    match = match_for_update(db, match_id).first()
    if not match:
        raise NotFound("Match not found", code="MATCH_NOT_FOUND")
    if match.status in (MatchStatus.COMPLETED, MatchStatus.CANCELLED):
        raise AlreadySettled(f"Match is already {match.status.value}")
    return match


def settle_match(db: Session, match_id: int, result: BetType) -> dict:
    try:
        result = BetType(result)
    except ValueError:
        raise ValidationError(f"Unknown result: {result}", code="INVALID_OUTCOME")

    with atomic(db):
        match = _lock_open_match(db, match_id)
        summary = _settle_all_pending(
            db,
            match,
            lambda bet: BetStatus.WON if bet.bet_type == result else BetStatus.LOST,
        )
        match.result = result.value
        match.status = MatchStatus.COMPLETED

    logger.info("Match settled id=%s result=%s summary=%s", match_id, result.value, summary)
    return {**summary, "result": result.value}


def cancel_match(db: Session, match_id: int) -> dict:
    with atomic(db):
        match = _lock_open_match(db, match_id)
        summary = _settle_all_pending(db, match, lambda bet: BetStatus.CANCELLED)
        match.status = MatchStatus.CANCELLED

    logger.info("Match cancelled id=%s summary=%s", match_id, summary)
    return summary
