"""Matches, odds and visibility as seen by the bet engine and the public site."""

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
import logging
from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from app.core.errors import InvalidTransition, MatchNotBettable, NotFound, PreconditionFailed, ValidationError
from app.models import BETTABLE_STATUSES, Bet, BetType, Match, MatchStatus

logger = logging.getLogger(__name__)

MIN_ODDS = Decimal("1.00")
ODDS_FIELDS = {
    BetType.HOME: "home_odds",
    BetType.DRAW: "draw_odds",
    BetType.AWAY: "away_odds",
}
PUBLIC_TABS = {
    "live": [MatchStatus.LIVE],
    "upcoming": [MatchStatus.UPCOMING],
    "results": [MatchStatus.COMPLETED],
}


def is_bettable(match: Match) -> bool:
    return bool(match.show_on_frontend) and match.status in BETTABLE_STATUSES


def odds_for(match: Match, bet_type: BetType) -> Decimal:
    if not is_bettable(match):
        raise MatchNotBettable("This match is not open for betting")
    value = getattr(match, ODDS_FIELDS[BetType(bet_type)])
    if value is None:
        raise MatchNotBettable(f"No odds available for {BetType(bet_type).value}")
    return Decimal(value)


def normalize_odds(value) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    try:
        odds = Decimal(str(value)).quantize(Decimal("0.01"))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"Invalid odds value: {value}", code="INVALID_ODDS")
    if odds < MIN_ODDS:
        raise ValidationError("Odds must be at least 1.00", code="INVALID_ODDS")
    return odds


def get_match(db: Session, match_id: int) -> Match:
    match = db.query(Match).filter(Match.id == match_id).first()
    if not match:
        raise NotFound("Match not found", code="MATCH_NOT_FOUND")
    return match


def list_public_matches(db: Session, *, tab: Optional[str] = None, category: Optional[str] = None, limit: int = 100) -> list[Match]:
    query = db.query(Match).filter(Match.show_on_frontend.is_(True))
    if tab:
        statuses = PUBLIC_TABS.get(tab.lower())
        if statuses is None:
            raise ValidationError(f"Unknown tab: {tab}", code="INVALID_FILTER")
        query = query.filter(Match.status.in_(statuses))
    if category:
        needle = category.strip().lower()
        query = query.filter(or_(func.lower(Match.category_key) == needle, func.lower(Match.sport) == needle))
    if tab and tab.lower() == "results":
        query = query.order_by(Match.match_date.desc())
    else:
        query = query.order_by(Match.match_date.asc())
    return query.limit(limit).all()


def create_match(db: Session, data: dict) -> Match:
    match = Match(
        home_team=data["home_team"].strip(),
        away_team=data["away_team"].strip(),
        sport=(data.get("sport") or "football").strip().lower(),
        category_key=data.get("category_key"),
        match_date=data["match_date"],
        status=MatchStatus(data.get("status") or MatchStatus.UPCOMING),
        home_odds=normalize_odds(data.get("home_odds")),
        draw_odds=normalize_odds(data.get("draw_odds")),
        away_odds=normalize_odds(data.get("away_odds")),
        show_on_frontend=bool(data.get("show_on_frontend", False)),
    )
    if match.status not in BETTABLE_STATUSES:
        raise ValidationError("New matches must be upcoming or live", code="INVALID_STATUS")
    db.add(match)
    db.commit()
    db.refresh(match)
    logger.info("Match created id=%s %s vs %s", match.id, match.home_team, match.away_team)
    return match


def update_match(db: Session, match: Match, data: dict) -> Match:
    for field in ("home_team", "away_team", "sport", "category_key", "match_date"):
        if field in data and data[field] is not None:
            setattr(match, field, data[field])
    for field in ("home_odds", "draw_odds", "away_odds"):
        if field in data:
            setattr(match, field, normalize_odds(data[field]))
    if data.get("show_on_frontend") is not None:
        match.show_on_frontend = bool(data["show_on_frontend"])
    db.commit()
    db.refresh(match)
    return match


def set_visibility(db: Session, match: Match, visible: bool) -> Match:
    match.show_on_frontend = bool(visible)
    db.commit()
    db.refresh(match)
    logger.info("Match visibility id=%s show_on_frontend=%s", match.id, match.show_on_frontend)
    return match


def update_odds(db: Session, match: Match, *, home=None, draw=None, away=None) -> Match:
    # Placed bets keep the odds they were struck at.
    match.home_odds = normalize_odds(home)
    match.draw_odds = normalize_odds(draw)
    match.away_odds = normalize_odds(away)
    db.commit()
    db.refresh(match)
    logger.info("Match odds id=%s home=%s draw=%s away=%s", match.id, match.home_odds, match.draw_odds, match.away_odds)
    return match


def update_status(db: Session, match: Match, status: MatchStatus) -> Match:
    status = MatchStatus(status)
    if match.status not in BETTABLE_STATUSES:
        raise InvalidTransition(f"Match is already {match.status.value}")
    if status not in BETTABLE_STATUSES:
        raise InvalidTransition(
            f"Use the settle or cancel action to move a match to {status.value}",
            hint="POST /admin/matches/{id}/settle or /admin/matches/{id}/cancel",
        )
    match.status = status
    db.commit()
    db.refresh(match)
    return match


def delete_match(db: Session, match: Match) -> None:
    has_bets = db.query(Bet.id).filter(Bet.match_id == match.id).first()
    if has_bets:
        raise PreconditionFailed("Match has bets and cannot be deleted", code="MATCH_HAS_BETS", hint="Hide it instead")
    db.delete(match)
    db.commit()


def parse_commence_time(value) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
