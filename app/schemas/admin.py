from pydantic import BaseModel, ConfigDict
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from app.models.bet import BetStatus
from app.models.deposit import DepositStatus
from app.models.match import BetType
from app.models.user import UserRole
from app.models.withdrawal import WithdrawalStatus
from app.schemas.match import AdminMatchOut


class DashboardOut(BaseModel):
    total_users: int
    active_users: int
    bets_by_status: dict[str, int]
    total_staked: int
    total_paid_out: int
    total_refunded: int
    gross_gaming_revenue: int
    total_deposits: int
    total_withdrawals: int
    pending_withdrawals: int
    liabilities: int


class AdminUserOut(BaseModel):
    id: int
    created_at: datetime
    email: str
    full_name: str
    phone: Optional[str] = None
    role: UserRole
    is_active: bool
    balance: int
    wallet_locked: bool


class AdminUsersResponse(BaseModel):
    items: list[AdminUserOut]
    total: int
    page: int
    page_size: int


class UserStatusUpdate(BaseModel):
    is_active: bool


class WalletLockUpdate(BaseModel):
    is_locked: bool


class AdminBetOut(BaseModel):
    id: int
    user_id: int
    user_email: str
    match_id: int
    match_label: str
    bet_type: BetType
    stake: int
    odds: Decimal
    potential_payout: int
    status: BetStatus
    placed_at: datetime
    settled_at: Optional[datetime] = None


class AdminBetsResponse(BaseModel):
    items: list[AdminBetOut]
    total: int
    page: int
    page_size: int


class AdminWithdrawalOut(BaseModel):
    id: int
    user_id: int
    user_email: str
    amount: int
    method: str
    bank_details: Optional[dict] = None
    status: WithdrawalStatus
    requested_at: datetime
    processed_at: Optional[datetime] = None
    admin_notes: Optional[str] = None


class AdminWithdrawalsResponse(BaseModel):
    items: list[AdminWithdrawalOut]
    total: int
    page: int
    page_size: int


class WithdrawalActionRequest(BaseModel):
    admin_notes: Optional[str] = None


class AdminDepositOut(BaseModel):
    id: int
    user_id: int
    user_email: str
    gateway_id: int
    amount: int
    status: DepositStatus
    reference: str
    external_reference: Optional[str] = None
    created_at: datetime
    processed_at: Optional[datetime] = None


class AdminDepositsResponse(BaseModel):
    items: list[AdminDepositOut]
    total: int
    page: int
    page_size: int


class AdminMatchesResponse(BaseModel):
    items: list[AdminMatchOut]
    total: int
    page: int
    page_size: int


class SettingsOut(BaseModel):
    values: dict[str, Any]


class SettingsUpdate(BaseModel):
    values: dict[str, Any]


class ApiLogOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    created_at: datetime
    service: str
    endpoint: str
    status_code: int
    duration_ms: Decimal
    success: int
