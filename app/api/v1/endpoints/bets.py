from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session
from app.core.database import get_db
from app.dependencies import get_current_user, require_site_open
from app.middlewares.rate_limit import limiter
from app.models import Bet, BetStatus, Match, User
from app.schemas.bet import BetOut, BetWithMatchOut, PlaceBetRequest
from app.services.bets import place_bet

router = APIRouter()


@router.post("", response_model=BetOut, dependencies=[Depends(require_site_open)])
@limiter.limit("20/minute")
def create_bet(request: Request, payload: PlaceBetRequest, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return place_bet(
        db,
        user.id,
        payload.match_id,
        payload.bet_type,
        payload.stake,
        reference_id=payload.reference_id,
    )


@router.get("", response_model=list[BetWithMatchOut])
def list_my_bets(
    status: BetStatus | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    query = (
        db.query(Bet, Match.home_team, Match.away_team, Match.match_date)
        .join(Match, Match.id == Bet.match_id)
        .filter(Bet.user_id == user.id)
    )
    if status:
        query = query.filter(Bet.status == status)
    rows = query.order_by(Bet.id.desc()).limit(limit).all()
    items = []
    for bet, home_team, away_team, match_date in rows:
        out = BetOut.model_validate(bet).model_dump()
        out.update(home_team=home_team, away_team=away_team, match_date=match_date)
        items.append(out)
    return items
