import pytest

from app.core.errors import ValidationError
from app.models import BetType, SystemSetting, UserRole
from app.services import bets, site_settings


def test_defaults_come_from_config(db):
    values = site_settings.get_all(db)
    assert values["site_name"] == "IBEFXWIN Test"
    assert values["maintenance_mode"] is False
    assert values["min_bet_amount"] == 1_000
    assert values["min_withdrawal_amount"] == 50_000


def test_update_settings_persists_and_validates(db):
    site_settings.update_settings(db, {"min_bet_amount": 5_000, "site_name": "  IBX  "})

    assert site_settings.bet_limits(db) == (5_000, 5_000_000)
    assert site_settings.get_value(db, "site_name") == "IBX"
    assert db.query(SystemSetting).count() == 2

    with pytest.raises(ValidationError) as exc:
        site_settings.update_settings(db, {"min_bet_amount": 10_000_000})
    assert exc.value.detail["code"] == "INVALID_AMOUNT"

    with pytest.raises(ValidationError) as exc:
        site_settings.update_settings(db, {"house_edge": 5})
    assert exc.value.detail["code"] == "UNKNOWN_SETTING"

    with pytest.raises(ValidationError):
        site_settings.update_settings(db, {"maintenance_mode": "yes"})
    with pytest.raises(ValidationError):
        site_settings.update_settings(db, {"max_bet_amount": True})


def test_stake_limits_follow_settings(db, make_user, make_match, fund):
    user = make_user()
    fund(user, 100_000)
    match = make_match()
    site_settings.update_settings(db, {"max_bet_amount": 2_000})

    with pytest.raises(ValidationError):
        bets.place_bet(db, user.id, match.id, BetType.HOME, 2_001)
    assert bets.place_bet(db, user.id, match.id, BetType.HOME, 2_000).stake == 2_000


def test_public_settings_endpoint_is_cached_and_invalidated(client, db, make_user, headers_for):
    admin = make_user(role=UserRole.ADMIN)

    res = client.get("/api/v1/content/settings")
    assert res.status_code == 200
    assert res.json()["enable_deposits"] is True

    res = client.put(
        "/api/v1/admin/settings",
        json={"values": {"enable_deposits": False}},
        headers=headers_for(admin),
    )
    assert res.status_code == 200
    assert res.json()["values"]["enable_deposits"] is False

    assert client.get("/api/v1/content/settings").json()["enable_deposits"] is False


def test_maintenance_mode_blocks_user_writes(client, db, make_user, make_match, fund, headers_for):
    user = make_user()
    fund(user, 10_000)
    match = make_match()
    site_settings.update_settings(db, {"maintenance_mode": True})

    res = client.post(
        "/api/v1/bets",
        json={"match_id": match.id, "bet_type": "home", "stake": 1_000},
        headers=headers_for(user),
    )
    assert res.status_code == 503
    assert res.json()["detail"]["code"] == "MAINTENANCE"

    # Reads stay available.
    assert client.get("/api/v1/wallet/me", headers=headers_for(user)).status_code == 200
