from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.models.deposit import DepositStatus
from app.models.ledger import LedgerKind
from app.models.withdrawal import WithdrawalStatus


class WalletOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    balance: int
    is_locked: bool


class LedgerOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    kind: LedgerKind
    amount: int
    reference_id: str
    description: str
    related_bet_id: Optional[int] = None
    related_withdrawal_id: Optional[int] = None
    related_deposit_id: Optional[int] = None
    created_at: Optional[datetime] = None


class LedgerPage(BaseModel):
    items: list[LedgerOut]
    next_after_id: Optional[int] = None


class DepositRequest(BaseModel):
    gateway_id: int
    amount: int = Field(gt=0)
    redirect_url: Optional[str] = None


class DepositOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    gateway_id: int
    amount: int
    status: DepositStatus
    reference: str
    external_reference: Optional[str] = None
    failure_reason: Optional[str] = None
    created_at: Optional[datetime] = None
    processed_at: Optional[datetime] = None


class DepositStartResponse(BaseModel):
    deposit: DepositOut
    redirect_url: str


class DepositCallback(BaseModel):
    transaction_id: str
    status: str
    amount: Optional[int] = None
    external_reference: Optional[str] = None


class BankDetails(BaseModel):
    account_holder: Optional[str] = None
    account_number: Optional[str] = None
    ifsc_code: Optional[str] = None
    bank_name: Optional[str] = None
    upi_id: Optional[str] = None


class WithdrawalRequestIn(BaseModel):
    amount: int = Field(gt=0)
    method: str = "bank_transfer"
    bank_details: BankDetails = Field(default_factory=BankDetails)
    reference_id: Optional[str] = Field(default=None, max_length=128)


class WithdrawalOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    amount: int
    method: str
    bank_details: Optional[dict] = None
    status: WithdrawalStatus
    reference_id: Optional[str] = None
    requested_at: datetime
    processed_at: Optional[datetime] = None
    admin_notes: Optional[str] = None
