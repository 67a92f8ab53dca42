import os
import uuid


def _set_test_env() -> None:
    defaults = {
        "APP_NAME": "IBEFXWIN Test",
        "ENVIRONMENT": "test",
        "SECRET_KEY": "test-secret",
        "ACCESS_TOKEN_EXPIRE_MINUTES": "30",
        "REFRESH_TOKEN_EXPIRE_DAYS": "7",
        "PASSWORD_BCRYPT_ROUNDS": "4",
        "AUTO_CREATE_TABLES": "false",
        "DATABASE_URL": "sqlite://",
        "REDIS_URL": "",
        "RATE_LIMIT_ENABLED": "false",
        "LOG_LEVEL": "WARNING",
        "ODDS_PROVIDER_TIMEOUT_SECONDS": "5",
        "ODDS_PROVIDER_RETRY_COUNT": "2",
        "CORS_ORIGINS": "http://localhost:5173,http://localhost:3000",
    }
    for key, value in defaults.items():
        os.environ.setdefault(key, value)


_set_test_env()

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from app.core.database import Base, SessionLocal, engine
from app.core.security import create_access_token, hash_password
from app.main import app
from app.models import LedgerKind, Match, MatchStatus, User, UserRole
from app.services.ledger import atomic, lock_wallet
from app.services.wallet import credit_wallet
from app.utils.cache import invalidate


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    invalidate()
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        invalidate()


@pytest.fixture
def client(db):
    app.dependency_overrides.clear()
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    def _make(email=None, role=UserRole.USER, password="password123", **kwargs):
        user = User(
            email=email or f"user-{uuid.uuid4().hex[:8]}@example.com",
            full_name=kwargs.pop("full_name", "Test User"),
            hashed_password=hash_password(password),
            role=role,
            **kwargs,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def fund(db):
    def _fund(user, amount):
        with atomic(db):
            wallet = lock_wallet(db, user.id)
            credit_wallet(
                db,
                wallet,
                amount,
                kind=LedgerKind.DEPOSIT,
                reference_id=f"deposit:seed-{uuid.uuid4().hex}",
                description="Test funding",
            )

    return _fund


@pytest.fixture
def make_match(db):
    def _make(**kwargs):
        values = {
            "home_team": "Arsenal",
            "away_team": "Chelsea",
            "sport": "football",
            "category_key": "soccer_epl",
            "match_date": datetime.now(timezone.utc) + timedelta(days=1),
            "status": MatchStatus.UPCOMING,
            "home_odds": Decimal("2.50"),
            "draw_odds": Decimal("3.20"),
            "away_odds": Decimal("2.80"),
            "show_on_frontend": True,
        }
        values.update(kwargs)
        match = Match(**values)
        db.add(match)
        db.commit()
        db.refresh(match)
        return match

    return _make


def auth_headers(user):
    token = create_access_token(str(user.id), user.role.value)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers_for():
    return auth_headers
