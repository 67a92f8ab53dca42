from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict

from app.models.match import BetType, MatchStatus


class MatchOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    home_team: str
    away_team: str
    sport: str
    category_key: Optional[str] = None
    match_date: datetime
    status: MatchStatus
    home_odds: Optional[Decimal] = None
    draw_odds: Optional[Decimal] = None
    away_odds: Optional[Decimal] = None
    result: Optional[str] = None


class AdminMatchOut(MatchOut):
    show_on_frontend: bool
    api_source_id: Optional[int] = None
    external_id: Optional[str] = None


class MatchCreate(BaseModel):
    home_team: str
    away_team: str
    sport: str = "football"
    category_key: Optional[str] = None
    match_date: datetime
    status: MatchStatus = MatchStatus.UPCOMING
    home_odds: Optional[Decimal] = None
    draw_odds: Optional[Decimal] = None
    away_odds: Optional[Decimal] = None
    show_on_frontend: bool = False


class MatchUpdate(BaseModel):
    home_team: Optional[str] = None
    away_team: Optional[str] = None
    sport: Optional[str] = None
    category_key: Optional[str] = None
    match_date: Optional[datetime] = None
    show_on_frontend: Optional[bool] = None


class VisibilityUpdate(BaseModel):
    show_on_frontend: bool


class OddsUpdate(BaseModel):
    home_odds: Optional[Decimal] = None
    draw_odds: Optional[Decimal] = None
    away_odds: Optional[Decimal] = None


class StatusUpdate(BaseModel):
    status: MatchStatus


class SettleMatchRequest(BaseModel):
    result: BetType


class MatchSettlementOut(BaseModel):
    match_id: int
    settled: int
    won: int
    lost: int
    cancelled: int
    total_paid: int
    result: Optional[str] = None


class CategoryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    api_source_id: int
    category_key: str
    category_name: str
    is_active: bool
