from datetime import datetime, timezone
from decimal import Decimal

import pytest

from app.core.errors import DependencyUnavailable, PreconditionFailed
from app.models import ApiLog, GameApi, Match, MatchStatus, SportCategory, UserRole
from app.services import game_sources
from app.services.odds_provider import OddsProviderError


class FakeOddsClient:
    sports = []
    events = {}
    fail_with = None

    def __init__(self, api_url, api_key):
        self.api_url = api_url
        self.api_key = api_key
        self.last_status_code = None
        self.last_duration_ms = None

    def _respond(self):
        if self.fail_with is not None:
            self.last_status_code = self.fail_with.status_code or 0
            self.last_duration_ms = 12.5
            raise self.fail_with
        self.last_status_code = 200
        self.last_duration_ms = 12.5

    def ping(self):
        self._respond()
        return []

    def fetch_sports(self):
        self._respond()
        return list(self.sports)

    def fetch_events(self, sport_key, *, sport=None):
        self._respond()
        return list(self.events.get(sport_key, []))


@pytest.fixture
def fake_client(monkeypatch):
    monkeypatch.setattr(FakeOddsClient, "sports", [])
    monkeypatch.setattr(FakeOddsClient, "events", {})
    monkeypatch.setattr(FakeOddsClient, "fail_with", None)
    return FakeOddsClient


@pytest.fixture
def source(db):
    source = GameApi(name="The Odds API", api_url="https://odds.example.com/v4/sports", api_key="key-1234")
    db.add(source)
    db.commit()
    db.refresh(source)
    return source


def _event(external_id, home="Arsenal", away="Chelsea", home_odds="2.10", commence="2026-11-02T15:00:00Z"):
    return {
        "external_id": external_id,
        "home_team": home,
        "away_team": away,
        "sport": "soccer",
        "category_key": "soccer_epl",
        "commence_time": commence,
        "home_odds": Decimal(home_odds),
        "draw_odds": Decimal("3.30"),
        "away_odds": Decimal("3.60"),
    }


def test_test_source_reports_status_and_logs(db, source, fake_client):
    result = game_sources.test_source(db, source, client_factory=fake_client)
    assert result["ok"] is True
    assert result["status_code"] == 200

    fake_client.fail_with = OddsProviderError("Invalid API key", status_code=401)
    result = game_sources.test_source(db, source, client_factory=fake_client)
    assert result == {"ok": False, "status_code": 401, "duration_ms": 12.5, "message": "Invalid API key"}

    logs = db.query(ApiLog).order_by(ApiLog.id.asc()).all()
    assert [log.success for log in logs] == [1, 0]


def test_sync_categories_creates_inactive_and_renames(db, source, fake_client):
    fake_client.sports = [
        {"category_key": "soccer_epl", "category_name": "EPL", "group": "Soccer"},
        {"category_key": "cricket_ipl", "category_name": "IPL", "group": "Cricket"},
    ]
    assert game_sources.sync_categories(db, source, client_factory=fake_client) == {"fetched": 2, "created": 2, "updated": 0}
    assert db.query(SportCategory).filter(SportCategory.is_active.is_(True)).count() == 0

    fake_client.sports = [{"category_key": "soccer_epl", "category_name": "Premier League", "group": "Soccer"}]
    assert game_sources.sync_categories(db, source, client_factory=fake_client) == {"fetched": 1, "created": 0, "updated": 1}
    assert db.query(SportCategory).count() == 2
    db.refresh(source)
    assert source.last_sync is not None


def test_provider_failure_is_logged_and_raised(db, source, fake_client):
    fake_client.fail_with = OddsProviderError("Unable to reach game data provider.")

    with pytest.raises(DependencyUnavailable) as exc:
        game_sources.sync_categories(db, source, client_factory=fake_client)

    assert exc.value.status_code == 503
    assert db.query(ApiLog).filter(ApiLog.success == 0).count() == 1


def test_import_requires_active_category(db, source, fake_client):
    with pytest.raises(PreconditionFailed):
        game_sources.import_matches(db, source, client_factory=fake_client)


def test_import_creates_hidden_matches_and_updates_prices(db, source, fake_client):
    category = SportCategory(api_source_id=source.id, category_key="soccer_epl", category_name="EPL", is_active=True)
    db.add(category)
    db.commit()
    fake_client.events = {"soccer_epl": [_event("evt-1"), _event("evt-2", home="Spurs", away="Everton"), _event("evt-3", commence=None)]}

    assert game_sources.import_matches(db, source, client_factory=fake_client) == {"created": 2, "updated": 0, "skipped": 1}
    match = db.query(Match).filter(Match.external_id == "evt-1").one()
    assert match.show_on_frontend is False
    assert match.status == MatchStatus.UPCOMING
    assert match.match_date.replace(tzinfo=timezone.utc) == datetime(2026, 11, 2, 15, 0, tzinfo=timezone.utc)

    started = db.query(Match).filter(Match.external_id == "evt-2").one()
    started.status = MatchStatus.LIVE
    db.commit()

    fake_client.events = {"soccer_epl": [_event("evt-1", home_odds="1.95"), _event("evt-2", home="Spurs", away="Everton", home_odds="9.00")]}
    assert game_sources.import_matches(db, source, client_factory=fake_client) == {"created": 0, "updated": 1, "skipped": 1}

    db.expire_all()
    assert db.query(Match).filter(Match.external_id == "evt-1").one().home_odds == Decimal("1.95")
    assert db.query(Match).filter(Match.external_id == "evt-2").one().home_odds == Decimal("2.10")
    assert db.query(Match).count() == 2


def test_delete_source_keeps_matches(db, source, fake_client):
    db.add(SportCategory(api_source_id=source.id, category_key="soccer_epl", category_name="EPL", is_active=True))
    db.commit()
    fake_client.events = {"soccer_epl": [_event("evt-1")]}
    game_sources.import_matches(db, source, client_factory=fake_client)

    game_sources.delete_source(db, source)

    match = db.query(Match).one()
    assert match.api_source_id is None
    assert db.query(GameApi).count() == 0
    assert db.query(SportCategory).count() == 0


def test_game_api_admin_endpoints(client, db, make_user, headers_for):
    admin = make_user(role=UserRole.ADMIN)

    res = client.post(
        "/api/v1/admin/game-apis",
        json={"name": "The Odds API", "api_url": "https://odds.example.com/v4/sports", "api_key": "secret-9876"},
        headers=headers_for(admin),
    )
    assert res.status_code == 200
    source_id = res.json()["id"]
    assert res.json()["api_key"] == "****9876"

    res = client.post(f"/api/v1/admin/game-apis/{source_id}/import-matches", headers=headers_for(admin))
    assert res.status_code == 409
    assert res.json()["detail"]["code"] == "NO_ACTIVE_CATEGORIES"

    assert client.get(f"/api/v1/admin/game-apis/{source_id}/categories", headers=headers_for(admin)).json() == []
