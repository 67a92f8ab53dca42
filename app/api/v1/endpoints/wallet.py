import json
import logging
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import ValidationError as PayloadValidationError
from sqlalchemy.orm import Session
from app.core.database import get_db
from app.dependencies import get_current_user, require_site_open
from app.middlewares.rate_limit import limiter
from app.models import Deposit, PaymentGateway, User, WithdrawalRequest
from app.schemas.wallet import (
    DepositCallback,
    DepositOut,
    DepositRequest,
    DepositStartResponse,
    LedgerPage,
    WalletOut,
    WithdrawalOut,
    WithdrawalRequestIn,
)
from app.services import deposits, ledger, withdrawals
from app.services.gateway import verify_callback_signature
from app.services.wallet import current_balance, get_or_create_wallet

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/me", response_model=WalletOut)
def get_wallet(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    wallet = get_or_create_wallet(db, user.id)
    return {"balance": current_balance(db, user.id), "is_locked": wallet.is_locked}


@router.get("/ledger", response_model=LedgerPage)
def get_ledger(
    after_id: int | None = Query(default=None, ge=0),
    limit: int = Query(default=50, ge=1, le=200),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    entries = ledger.entries_for(db, user.id, after_id=after_id, limit=limit)
    next_after_id = entries[-1].id if len(entries) == limit else None
    return {"items": entries, "next_after_id": next_after_id}


@router.get("/deposits", response_model=list[DepositOut])
def list_my_deposits(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return (
        db.query(Deposit)
        .filter(Deposit.user_id == user.id)
        .order_by(Deposit.id.desc())
        .limit(50)
        .all()
    )


@router.post("/deposits", response_model=DepositStartResponse, dependencies=[Depends(require_site_open)])
@limiter.limit("5/minute")
def start_deposit(request: Request, payload: DepositRequest, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    redirect_url = payload.redirect_url or request.headers.get("origin")
    deposit, url = deposits.start_deposit(db, user.id, payload.gateway_id, payload.amount, redirect_url=redirect_url)
    return {"deposit": deposit, "redirect_url": url}


@router.post("/deposits/callback/{gateway_id}", response_model=DepositOut)
async def deposit_callback(gateway_id: int, request: Request, db: Session = Depends(get_db)):
    gateway = db.query(PaymentGateway).filter(PaymentGateway.id == gateway_id).first()
    if not gateway:
        raise HTTPException(status_code=404, detail="Unknown gateway")

    signature = request.headers.get("x-signature")
    if not signature:
        raise HTTPException(status_code=401, detail="Missing signature")

    body = await request.body()
    if not verify_callback_signature(gateway, body, signature):
        logger.warning("Deposit callback rejected: bad signature gateway_id=%s", gateway_id)
        raise HTTPException(status_code=401, detail="Invalid signature")

    try:
        payload = DepositCallback.model_validate(json.loads(body or b"{}"))
    except (ValueError, PayloadValidationError):
        raise HTTPException(status_code=400, detail="Invalid callback payload")

    return deposits.apply_callback(
        db,
        gateway,
        transaction_id=payload.transaction_id,
        status=payload.status,
        amount=payload.amount,
        external_reference=payload.external_reference,
    )


@router.get("/withdrawals", response_model=list[WithdrawalOut])
def list_my_withdrawals(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return (
        db.query(WithdrawalRequest)
        .filter(WithdrawalRequest.user_id == user.id)
        .order_by(WithdrawalRequest.id.desc())
        .limit(50)
        .all()
    )


@router.post("/withdrawals", response_model=WithdrawalOut, dependencies=[Depends(require_site_open)])
@limiter.limit("5/minute")
def request_withdrawal(request: Request, payload: WithdrawalRequestIn, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return withdrawals.request_withdrawal(
        db,
        user.id,
        payload.amount,
        payload.bank_details.model_dump(exclude_none=True),
        method=payload.method,
        reference_id=payload.reference_id,
    )
