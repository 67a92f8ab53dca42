from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.models.bet import BetStatus
from app.models.match import BetType


class PlaceBetRequest(BaseModel):
    match_id: int
    bet_type: BetType
    stake: int
    reference_id: Optional[str] = Field(default=None, max_length=128)


class BetOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    match_id: int
    bet_type: BetType
    stake: int
    odds: Decimal
    potential_payout: int
    status: BetStatus
    reference_id: str
    placed_at: datetime
    settled_at: Optional[datetime] = None


class BetWithMatchOut(BetOut):
    home_team: Optional[str] = None
    away_team: Optional[str] = None
    match_date: Optional[datetime] = None


class SettleBetRequest(BaseModel):
    outcome: BetStatus
