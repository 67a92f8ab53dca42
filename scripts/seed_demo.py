"""Seed a local database with default settings, a demo gateway and a few matches."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from app.core.database import SessionLocal
from app.models import HeroBanner, Match, MatchStatus, PaymentGateway
from app.services import site_settings


SAMPLE_MATCHES = [
    {
        "home_team": "Mumbai Indians",
        "away_team": "Chennai Super Kings",
        "sport": "cricket",
        "category_key": "cricket_ipl",
        "home_odds": Decimal("1.85"),
        "away_odds": Decimal("1.95"),
        "draw_odds": None,
    },
    {
        "home_team": "Arsenal",
        "away_team": "Chelsea",
        "sport": "football",
        "category_key": "soccer_epl",
        "home_odds": Decimal("2.10"),
        "away_odds": Decimal("3.40"),
        "draw_odds": Decimal("3.25"),
    },
]


def main():
    db = SessionLocal()
    try:
        site_settings.update_settings(db, {"site_name": "IBEFXWIN"})

        if not db.query(PaymentGateway).filter(PaymentGateway.type == "demo").first():
            db.add(
                PaymentGateway(
                    name="Demo Checkout",
                    type="demo",
                    secret_key="demo-secret",
                    is_active=True,
                    is_test_mode=True,
                    config={"checkout_url": "http://localhost:5173/demo-checkout"},
                )
            )

        if not db.query(HeroBanner).first():
            db.add(HeroBanner(title="Welcome to IBEFXWIN", subtitle="Bet on cricket and football", button_text="Bet now", is_active=True))

        start = datetime.now(timezone.utc) + timedelta(days=1)
        for offset, item in enumerate(SAMPLE_MATCHES):
            existing = (
                db.query(Match)
                .filter(Match.home_team == item["home_team"], Match.away_team == item["away_team"])
                .first()
            )
            if not existing:
                db.add(
                    Match(
                        **item,
                        match_date=start + timedelta(hours=3 * offset),
                        status=MatchStatus.UPCOMING,
                        show_on_frontend=True,
                    )
                )
        db.commit()
    finally:
        db.close()


if __name__ == "__main__":
    main()
