from decimal import Decimal

import pytest
from sqlalchemy.dialects import postgresql

from app.core.database import SessionLocal
from app.core.errors import AlreadySettled, InsufficientBalance, InvalidStake, MatchNotBettable, WalletLocked
from app.models import Bet, BetStatus, BetType, LedgerEntry, LedgerKind, MatchStatus, Wallet
from app.services import bets, ledger, site_settings
from app.services.wallet import current_balance


def _cache(db, user):
    db.expire_all()
    return db.query(Wallet.balance).filter(Wallet.user_id == user.id).scalar()


def test_potential_payout_rounds_down():
    assert bets.potential_payout(1_000, Decimal("2.50")) == 2_500
    assert bets.potential_payout(333, Decimal("1.50")) == 499
    assert bets.potential_payout(1_001, Decimal("1.01")) == 1_011


def test_place_bet_debits_stake_and_locks_odds(db, make_user, make_match, fund):
    user = make_user()
    match = make_match(home_odds=Decimal("2.50"))
    fund(user, 10_000)

    bet = bets.place_bet(db, user.id, match.id, BetType.HOME, 4_000)

    assert bet.status == BetStatus.PENDING
    assert bet.odds == Decimal("2.50")
    assert bet.potential_payout == 10_000
    assert current_balance(db, user.id) == 6_000
    assert _cache(db, user) == 6_000
    stake_entry = db.query(LedgerEntry).filter(LedgerEntry.reference_id == f"bet:{bet.id}:stake").one()
    assert stake_entry.kind == LedgerKind.BET_STAKE
    assert stake_entry.amount == -4_000
    assert stake_entry.related_bet_id == bet.id


def test_place_bet_insufficient_balance_never_debits(db, make_user, make_match, fund):
    user = make_user()
    match = make_match()
    fund(user, 3_000)

    with pytest.raises(InsufficientBalance) as exc:
        bets.place_bet(db, user.id, match.id, BetType.AWAY, 3_001)

    assert exc.value.status_code == 409
    assert current_balance(db, user.id) == 3_000
    assert db.query(Bet).count() == 0


@pytest.mark.parametrize("stake", [0, -5, 999, 5_000_001])
def test_place_bet_rejects_stake_outside_limits(db, make_user, make_match, fund, stake):
    user = make_user()
    match = make_match()
    fund(user, 10_000_000)

    with pytest.raises(InvalidStake) as exc:
        bets.place_bet(db, user.id, match.id, BetType.HOME, stake)
    assert exc.value.status_code == 400
    assert exc.value.detail["code"] == "INVALID_STAKE"


@pytest.mark.parametrize("status", list(MatchStatus))
def test_hidden_match_is_never_bettable(db, make_user, make_match, fund, status):
    user = make_user()
    match = make_match(show_on_frontend=False, status=status)
    fund(user, 10_000)

    with pytest.raises(MatchNotBettable):
        bets.place_bet(db, user.id, match.id, BetType.HOME, 1_000)
    assert current_balance(db, user.id) == 10_000


@pytest.mark.parametrize("status", [MatchStatus.COMPLETED, MatchStatus.CANCELLED])
def test_closed_match_is_not_bettable(db, make_user, make_match, fund, status):
    user = make_user()
    match = make_match(status=status)
    fund(user, 10_000)

    with pytest.raises(MatchNotBettable):
        bets.place_bet(db, user.id, match.id, BetType.HOME, 1_000)


def test_missing_odds_side_is_not_bettable(db, make_user, make_match, fund):
    user = make_user()
    match = make_match(draw_odds=None)
    fund(user, 10_000)

    with pytest.raises(MatchNotBettable):
        bets.place_bet(db, user.id, match.id, BetType.DRAW, 1_000)


def test_locked_wallet_cannot_bet(db, make_user, make_match, fund):
    user = make_user()
    match = make_match()
    fund(user, 10_000)
    db.query(Wallet).filter(Wallet.user_id == user.id).update({Wallet.is_locked: True})
    db.commit()

    with pytest.raises(WalletLocked) as exc:
        bets.place_bet(db, user.id, match.id, BetType.HOME, 1_000)
    assert exc.value.status_code == 423


def test_place_bet_with_same_reference_is_idempotent(db, make_user, make_match, fund):
    user = make_user()
    match = make_match()
    fund(user, 10_000)

    first = bets.place_bet(db, user.id, match.id, BetType.HOME, 2_000, reference_id="client-1")
    second = bets.place_bet(db, user.id, match.id, BetType.HOME, 2_000, reference_id="client-1")

    assert first.id == second.id
    assert db.query(Bet).count() == 1
    assert current_balance(db, user.id) == 8_000


def test_second_session_rechecks_balance_after_committed_bet(db, make_user, make_match, fund):
    user = make_user()
    match = make_match()
    fund(user, 5_000)

    other = SessionLocal()
    try:
        # The cached wallet this session holds is out of date once the first bet commits.
        stale = other.query(Wallet).filter(Wallet.user_id == user.id).one()
        assert stale.balance == 5_000

        bets.place_bet(db, user.id, match.id, BetType.HOME, 5_000)

        with pytest.raises(InsufficientBalance):
            bets.place_bet(other, user.id, match.id, BetType.AWAY, 5_000)
    finally:
        other.close()

    assert db.query(Bet).count() == 1
    assert current_balance(db, user.id) == 0


def _postgres_sql(query) -> str:
    return str(query.statement.compile(dialect=postgresql.dialect()))


def test_balance_checks_run_under_row_locks(db):
    # SQLite drops FOR UPDATE, so check the statements Postgres would receive.
    assert _postgres_sql(ledger.wallet_for_update(db, 1)).rstrip().endswith("FOR UPDATE")
    assert _postgres_sql(bets.match_for_update(db, 1, shared=True)).rstrip().endswith("FOR SHARE")
    assert _postgres_sql(bets.match_for_update(db, 1)).rstrip().endswith("FOR UPDATE")


def test_retry_returns_committed_bet_after_limits_change(db, make_user, make_match, fund):
    user = make_user()
    match = make_match()
    fund(user, 50_000)
    first = bets.place_bet(db, user.id, match.id, BetType.HOME, 20_000, reference_id="client-r1")

    site_settings.update_settings(db, {"max_bet_amount": 10_000})
    retry = bets.place_bet(db, user.id, match.id, BetType.HOME, 20_000, reference_id="client-r1")

    assert retry.id == first.id
    assert db.query(Bet).count() == 1
    assert current_balance(db, user.id) == 30_000
    with pytest.raises(InvalidStake):
        bets.place_bet(db, user.id, match.id, BetType.HOME, 20_000, reference_id="client-r2")


def test_settle_won_pays_potential_payout(db, make_user, make_match, fund):
    user = make_user()
    match = make_match(home_odds=Decimal("2.50"))
    fund(user, 10_000)
    bet = bets.place_bet(db, user.id, match.id, BetType.HOME, 4_000)

    settled = bets.settle_bet(db, bet.id, BetStatus.WON)

    assert settled.status == BetStatus.WON
    assert settled.settled_at is not None
    assert current_balance(db, user.id) == 10_000 - 4_000 + 10_000
    assert _cache(db, user) == 16_000
    payout = db.query(LedgerEntry).filter(LedgerEntry.reference_id == f"bet:{bet.id}:payout").one()
    assert payout.amount == 10_000


def test_settle_cancelled_is_full_reversal(db, make_user, make_match, fund):
    user = make_user()
    match = make_match()
    fund(user, 10_000)
    bet = bets.place_bet(db, user.id, match.id, BetType.AWAY, 4_000)

    bets.settle_bet(db, bet.id, BetStatus.CANCELLED)

    assert current_balance(db, user.id) == 10_000
    refund = db.query(LedgerEntry).filter(LedgerEntry.reference_id == f"bet:{bet.id}:refund").one()
    assert refund.kind == LedgerKind.BET_REFUND
    assert refund.amount == 4_000


def test_settle_lost_appends_nothing(db, make_user, make_match, fund):
    user = make_user()
    match = make_match()
    fund(user, 10_000)
    bet = bets.place_bet(db, user.id, match.id, BetType.AWAY, 4_000)
    entries_before = db.query(LedgerEntry).count()

    bets.settle_bet(db, bet.id, BetStatus.LOST)

    assert db.query(LedgerEntry).count() == entries_before
    assert current_balance(db, user.id) == 6_000


def test_settling_twice_fails_and_pays_once(db, make_user, make_match, fund):
    user = make_user()
    match = make_match(home_odds=Decimal("2.00"))
    fund(user, 10_000)
    bet = bets.place_bet(db, user.id, match.id, BetType.HOME, 1_000)
    bets.settle_bet(db, bet.id, BetStatus.WON)

    with pytest.raises(AlreadySettled) as exc:
        bets.settle_bet(db, bet.id, BetStatus.WON)
    with pytest.raises(AlreadySettled):
        bets.settle_bet(db, bet.id, BetStatus.CANCELLED)

    assert exc.value.status_code == 409
    assert current_balance(db, user.id) == 11_000
    assert db.query(LedgerEntry).filter(LedgerEntry.kind == LedgerKind.BET_PAYOUT).count() == 1


def test_odds_change_after_placement_does_not_touch_bet(db, make_user, make_match, fund):
    user = make_user()
    match = make_match(home_odds=Decimal("2.00"))
    fund(user, 10_000)
    bet = bets.place_bet(db, user.id, match.id, BetType.HOME, 1_000)

    match.home_odds = Decimal("9.00")
    match.show_on_frontend = False
    db.commit()
    bets.settle_bet(db, bet.id, BetStatus.WON)

    db.refresh(bet)
    assert bet.odds == Decimal("2.00")
    assert bet.potential_payout == 2_000
    assert current_balance(db, user.id) == 11_000


def test_settle_match_resolves_every_pending_bet(db, make_user, make_match, fund):
    alice = make_user()
    bob = make_user()
    match = make_match(home_odds=Decimal("2.00"), away_odds=Decimal("3.00"))
    fund(alice, 10_000)
    fund(bob, 10_000)
    home_bet = bets.place_bet(db, alice.id, match.id, BetType.HOME, 2_000)
    away_bet = bets.place_bet(db, bob.id, match.id, BetType.AWAY, 1_000)

    summary = bets.settle_match(db, match.id, BetType.HOME)

    assert summary["settled"] == 2
    assert summary["won"] == 1
    assert summary["lost"] == 1
    assert summary["total_paid"] == 4_000
    db.expire_all()
    assert db.get(Bet, home_bet.id).status == BetStatus.WON
    assert db.get(Bet, away_bet.id).status == BetStatus.LOST
    db.refresh(match)
    assert match.status == MatchStatus.COMPLETED
    assert match.result == "home"
    assert current_balance(db, alice.id) == 12_000
    assert current_balance(db, bob.id) == 9_000

    with pytest.raises(AlreadySettled):
        bets.settle_match(db, match.id, BetType.AWAY)


def test_cancel_match_refunds_pending_bets_only(db, make_user, make_match, fund):
    user = make_user()
    match = make_match()
    fund(user, 10_000)
    settled = bets.place_bet(db, user.id, match.id, BetType.HOME, 1_000)
    bets.settle_bet(db, settled.id, BetStatus.LOST)
    bets.place_bet(db, user.id, match.id, BetType.AWAY, 2_000)

    summary = bets.cancel_match(db, match.id)

    assert summary["cancelled"] == 1
    assert current_balance(db, user.id) == 9_000
    db.refresh(match)
    assert match.status == MatchStatus.CANCELLED


def test_place_bet_endpoint(client, db, make_user, make_match, fund, headers_for):
    user = make_user()
    match = make_match()
    fund(user, 10_000)

    res = client.post(
        "/api/v1/bets",
        json={"match_id": match.id, "bet_type": "draw", "stake": 1_000},
        headers=headers_for(user),
    )
    assert res.status_code == 200
    body = res.json()
    assert body["status"] == "pending"
    assert body["potential_payout"] == 3_200

    res = client.get("/api/v1/bets", headers=headers_for(user))
    assert res.status_code == 200
    assert res.json()[0]["home_team"] == "Arsenal"


def test_place_bet_endpoint_reports_typed_error(client, db, make_user, make_match, headers_for):
    user = make_user()
    match = make_match()

    res = client.post(
        "/api/v1/bets",
        json={"match_id": match.id, "bet_type": "home", "stake": 1_000},
        headers=headers_for(user),
    )
    assert res.status_code == 409
    assert res.json()["detail"]["code"] == "INSUFFICIENT_BALANCE"
