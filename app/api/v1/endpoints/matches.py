from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from app.core.database import get_db
from app.models import Match, SportCategory
from app.schemas.match import CategoryOut, MatchOut
from app.services.catalog import list_public_matches

router = APIRouter()


@router.get("", response_model=list[MatchOut])
def list_matches(
    tab: str | None = Query(default=None, description="live, upcoming or results"),
    category: str | None = Query(default=None, description="Category key or sport name"),
    limit: int = Query(default=100, ge=1, le=200),
    db: Session = Depends(get_db),
):
    return list_public_matches(db, tab=tab, category=category, limit=limit)


@router.get("/categories", response_model=list[CategoryOut])
def list_categories(db: Session = Depends(get_db)):
    return (
        db.query(SportCategory)
        .filter(SportCategory.is_active.is_(True))
        .order_by(SportCategory.category_name.asc())
        .all()
    )


@router.get("/{match_id}", response_model=MatchOut)
def get_match(match_id: int, db: Session = Depends(get_db)):
    match = db.query(Match).filter(Match.id == match_id, Match.show_on_frontend.is_(True)).first()
    if not match:
        raise HTTPException(status_code=404, detail="Match not found")
    return match
