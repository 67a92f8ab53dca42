from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from app.core.errors import InvalidTransition, MatchNotBettable, PreconditionFailed, ValidationError
from app.models import BetType, MatchStatus
from app.services import bets, catalog


def test_normalize_odds():
    assert catalog.normalize_odds("2.5") == Decimal("2.50")
    assert catalog.normalize_odds(1) == Decimal("1.00")
    assert catalog.normalize_odds(None) is None
    assert catalog.normalize_odds("") is None
    with pytest.raises(ValidationError):
        catalog.normalize_odds("0.99")
    with pytest.raises(ValidationError):
        catalog.normalize_odds("evens")


def test_odds_for_requires_visible_open_match(make_match):
    match = make_match()
    assert catalog.odds_for(match, BetType.AWAY) == Decimal("2.80")

    match.show_on_frontend = False
    with pytest.raises(MatchNotBettable):
        catalog.odds_for(match, BetType.AWAY)


def test_parse_commence_time():
    parsed = catalog.parse_commence_time("2026-03-01T15:00:00Z")
    assert parsed == datetime(2026, 3, 1, 15, 0, tzinfo=timezone.utc)
    assert catalog.parse_commence_time("2026-03-01T15:00:00").tzinfo is not None
    assert catalog.parse_commence_time("tomorrow") is None
    assert catalog.parse_commence_time(None) is None


def test_public_listing_filters_tabs_and_hidden(db, make_match):
    now = datetime.now(timezone.utc)
    make_match(home_team="Late", match_date=now + timedelta(days=3))
    make_match(home_team="Early", match_date=now + timedelta(days=1))
    make_match(home_team="Hidden", show_on_frontend=False)
    make_match(home_team="Live", status=MatchStatus.LIVE)
    make_match(home_team="Old", status=MatchStatus.COMPLETED, match_date=now - timedelta(days=5))
    make_match(home_team="Recent", status=MatchStatus.COMPLETED, match_date=now - timedelta(days=1))

    upcoming = catalog.list_public_matches(db, tab="upcoming")
    assert [m.home_team for m in upcoming] == ["Early", "Late"]
    assert [m.home_team for m in catalog.list_public_matches(db, tab="live")] == ["Live"]
    assert [m.home_team for m in catalog.list_public_matches(db, tab="results")] == ["Recent", "Old"]
    assert "Hidden" not in [m.home_team for m in catalog.list_public_matches(db)]

    with pytest.raises(ValidationError):
        catalog.list_public_matches(db, tab="archive")


def test_public_listing_filters_category(db, make_match):
    make_match(home_team="Mumbai", sport="cricket", category_key="cricket_ipl")
    make_match(home_team="Arsenal")

    assert [m.home_team for m in catalog.list_public_matches(db, category="CRICKET")] == ["Mumbai"]
    assert [m.home_team for m in catalog.list_public_matches(db, category="soccer_epl")] == ["Arsenal"]


def test_create_match_rejects_closed_status(db):
    data = {
        "home_team": " India ",
        "away_team": "Australia",
        "sport": "Cricket",
        "match_date": datetime.now(timezone.utc) + timedelta(days=2),
        "home_odds": "1.855",
    }
    match = catalog.create_match(db, data)
    assert match.home_team == "India"
    assert match.sport == "cricket"
    assert match.home_odds == Decimal("1.86")
    assert match.show_on_frontend is False

    with pytest.raises(ValidationError):
        catalog.create_match(db, {**data, "status": MatchStatus.COMPLETED})


def test_update_status_only_between_open_states(db, make_match):
    match = make_match()
    catalog.update_status(db, match, MatchStatus.LIVE)
    assert match.status == MatchStatus.LIVE

    with pytest.raises(InvalidTransition):
        catalog.update_status(db, match, MatchStatus.COMPLETED)

    closed = make_match(status=MatchStatus.CANCELLED)
    with pytest.raises(InvalidTransition):
        catalog.update_status(db, closed, MatchStatus.UPCOMING)


def test_delete_match_with_bets_is_refused(db, make_user, make_match, fund):
    user = make_user()
    fund(user, 10_000)
    match = make_match()
    bets.place_bet(db, user.id, match.id, BetType.HOME, 1_000)

    with pytest.raises(PreconditionFailed):
        catalog.delete_match(db, match)

    empty = make_match()
    catalog.delete_match(db, empty)


def test_public_match_endpoints(client, make_match):
    visible = make_match()
    hidden = make_match(show_on_frontend=False)

    res = client.get("/api/v1/matches", params={"tab": "upcoming"})
    assert res.status_code == 200
    assert [m["id"] for m in res.json()] == [visible.id]
    assert "show_on_frontend" not in res.json()[0]

    assert client.get(f"/api/v1/matches/{visible.id}").status_code == 200
    assert client.get(f"/api/v1/matches/{hidden.id}").status_code == 404
    assert client.get("/api/v1/matches", params={"tab": "bogus"}).status_code == 400
