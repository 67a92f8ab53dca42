from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from sqlalchemy import func, or_, update
from app.core.database import get_db
from app.core.errors import ConflictError, NotFound, ValidationError
from app.dependencies import require_admin
from app.models import (
    ApiLog,
    Bet,
    BetStatus,
    Deposit,
    DepositStatus,
    GameApi,
    HeroBanner,
    LedgerEntry,
    LedgerKind,
    Match,
    MatchStatus,
    PaymentGateway,
    SportCategory,
    User,
    Wallet,
    WithdrawalRequest,
    WithdrawalStatus,
)
from app.schemas.admin import (
    AdminBetsResponse,
    AdminDepositsResponse,
    AdminMatchesResponse,
    AdminUsersResponse,
    AdminWithdrawalsResponse,
    ApiLogOut,
    DashboardOut,
    SettingsOut,
    SettingsUpdate,
    UserStatusUpdate,
    WalletLockUpdate,
    WithdrawalActionRequest,
)
from app.schemas.bet import BetOut, SettleBetRequest
from app.schemas.content import BannerCreate, BannerOut, BannerUpdate
from app.schemas.game_api import (
    CategorySyncOut,
    CategoryToggle,
    GameApiCreate,
    GameApiOut,
    GameApiTestOut,
    GameApiUpdate,
    MatchImportOut,
)
from app.schemas.gateway import GatewayCreate, GatewayOut, GatewayUpdate
from app.schemas.match import (
    AdminMatchOut,
    CategoryOut,
    MatchCreate,
    MatchSettlementOut,
    MatchUpdate,
    OddsUpdate,
    SettleMatchRequest,
    StatusUpdate,
    VisibilityUpdate,
)
from app.schemas.wallet import LedgerPage, WalletOut, WithdrawalOut
from app.services import bets, catalog, game_sources, ledger, site_settings, withdrawals
from app.services.gateway import mask_secret
from app.services.ledger import atomic, lock_wallet
from app.services.wallet import current_balance

router = APIRouter()


def _check_page(page: int, page_size: int) -> None:
    if page < 1:
        raise ValidationError("page must be >= 1", code="INVALID_FILTER")
    if page_size < 1 or page_size > 200:
        raise ValidationError("page_size must be between 1 and 200", code="INVALID_FILTER")


def _coerce(enum_cls, value: Optional[str], label: str):
    if value is None or not value.strip():
        return None
    raw = value.strip()
    for member in enum_cls:
        if raw.lower() == member.value or raw.upper() == member.name:
            return member
    raise ValidationError(f"Invalid {label}: {raw}", code="INVALID_FILTER")


def _get_user(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFound("User not found", code="USER_NOT_FOUND")
    return user


# Dashboard


@router.get("/dashboard", response_model=DashboardOut)
def dashboard(admin=Depends(require_admin), db: Session = Depends(get_db)):
    total_users = db.query(func.count(User.id)).scalar() or 0
    active_users = db.query(func.count(User.id)).filter(User.is_active.is_(True)).scalar() or 0
    bets_by_status = {status.value: 0 for status in BetStatus}
    for status, count in db.query(Bet.status, func.count(Bet.id)).group_by(Bet.status).all():
        bets_by_status[status.value] = int(count)

    # Money figures come from the ledger, never from cached balances.
    total_staked = -ledger.sum_by_kind(db, LedgerKind.BET_STAKE)
    total_paid_out = ledger.sum_by_kind(db, LedgerKind.BET_PAYOUT)
    total_refunded = ledger.sum_by_kind(db, LedgerKind.BET_REFUND)
    total_deposits = ledger.sum_by_kind(db, LedgerKind.DEPOSIT)
    total_withdrawals = -ledger.sum_by_kind(db, LedgerKind.WITHDRAWAL_RELEASE)
    liabilities = db.query(func.coalesce(func.sum(LedgerEntry.amount), 0)).scalar() or 0
    pending_withdrawals = (
        db.query(func.count(WithdrawalRequest.id))
        .filter(WithdrawalRequest.status == WithdrawalStatus.PENDING)
        .scalar()
        or 0
    )
    return {
        "total_users": total_users,
        "active_users": active_users,
        "bets_by_status": bets_by_status,
        "total_staked": total_staked,
        "total_paid_out": total_paid_out,
        "total_refunded": total_refunded,
        "gross_gaming_revenue": total_staked - total_paid_out - total_refunded,
        "total_deposits": total_deposits,
        "total_withdrawals": total_withdrawals,
        "pending_withdrawals": pending_withdrawals,
        "liabilities": int(liabilities),
    }


# Users and wallets


@router.get("/users", response_model=AdminUsersResponse)
def list_users(
    admin=Depends(require_admin),
    db: Session = Depends(get_db),
    q: Optional[str] = None,
    page: int = 1,
    page_size: int = 50,
):
    _check_page(page, page_size)

    query = db.query(User, Wallet.balance, Wallet.is_locked).outerjoin(Wallet, Wallet.user_id == User.id)
    if q:
        needle = f"%{q.strip()}%"
        query = query.filter(or_(User.email.ilike(needle), User.full_name.ilike(needle), User.phone.ilike(needle)))

    total = query.count()
    rows = (
        query.order_by(User.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )

    items = []
    for u, balance, is_locked in rows:
        items.append(
            {
                "id": u.id,
                "created_at": u.created_at,
                "email": u.email,
                "full_name": u.full_name,
                "phone": u.phone,
                "role": u.role,
                "is_active": u.is_active,
                "balance": int(balance or 0),
                "wallet_locked": bool(is_locked),
            }
        )

    return {"items": items, "total": total, "page": page, "page_size": page_size}


@router.post("/users/{user_id}/status")
def set_user_status(user_id: int, payload: UserStatusUpdate, admin=Depends(require_admin), db: Session = Depends(get_db)):
    user = _get_user(db, user_id)
    if user.id == admin.id and not payload.is_active:
        raise ValidationError("You cannot suspend your own account", code="SELF_SUSPEND")
    user.is_active = payload.is_active
    db.commit()
    return {"status": "active" if user.is_active else "suspended"}


@router.post("/users/{user_id}/wallet-lock", response_model=WalletOut)
def set_wallet_lock(user_id: int, payload: WalletLockUpdate, admin=Depends(require_admin), db: Session = Depends(get_db)):
    _get_user(db, user_id)
    with atomic(db):
        wallet = lock_wallet(db, user_id)
        wallet.is_locked = payload.is_locked
    return {"balance": current_balance(db, user_id), "is_locked": payload.is_locked}


@router.get("/users/{user_id}/ledger", response_model=LedgerPage)
def user_ledger(
    user_id: int,
    after_id: Optional[int] = Query(default=None, ge=0),
    limit: int = Query(default=100, ge=1, le=500),
    admin=Depends(require_admin),
    db: Session = Depends(get_db),
):
    _get_user(db, user_id)
    entries = ledger.entries_for(db, user_id, after_id=after_id, limit=limit)
    next_after_id = entries[-1].id if len(entries) == limit else None
    return {"items": entries, "next_after_id": next_after_id}


# Bets


@router.get("/bets", response_model=AdminBetsResponse)
def list_bets(
    admin=Depends(require_admin),
    db: Session = Depends(get_db),
    q: Optional[str] = None,
    status: Optional[str] = None,
    match_id: Optional[int] = None,
    page: int = 1,
    page_size: int = 50,
):
    _check_page(page, page_size)
    status_enum = _coerce(BetStatus, status, "status")

    query = (
        db.query(Bet, User.email, Match.home_team, Match.away_team)
        .join(User, Bet.user_id == User.id)
        .join(Match, Bet.match_id == Match.id)
    )
    if q:
        needle = f"%{q.strip()}%"
        query = query.filter(
            or_(
                User.email.ilike(needle),
                Match.home_team.ilike(needle),
                Match.away_team.ilike(needle),
                Bet.reference_id.ilike(needle),
            )
        )
    if status_enum is not None:
        query = query.filter(Bet.status == status_enum)
    if match_id is not None:
        query = query.filter(Bet.match_id == match_id)

    total = query.count()
    rows = query.order_by(Bet.id.desc()).offset((page - 1) * page_size).limit(page_size).all()
    items = [
        {
            "id": bet.id,
            "user_id": bet.user_id,
            "user_email": email,
            "match_id": bet.match_id,
            "match_label": f"{home} vs {away}",
            "bet_type": bet.bet_type,
            "stake": bet.stake,
            "odds": bet.odds,
            "potential_payout": bet.potential_payout,
            "status": bet.status,
            "placed_at": bet.placed_at,
            "settled_at": bet.settled_at,
        }
        for bet, email, home, away in rows
    ]
    return {"items": items, "total": total, "page": page, "page_size": page_size}


@router.post("/bets/{bet_id}/settle", response_model=BetOut)
def settle_bet(bet_id: int, payload: SettleBetRequest, admin=Depends(require_admin), db: Session = Depends(get_db)):
    return bets.settle_bet(db, bet_id, payload.outcome)


# Withdrawals and deposits


@router.get("/withdrawals", response_model=AdminWithdrawalsResponse)
def list_withdrawals(
    admin=Depends(require_admin),
    db: Session = Depends(get_db),
    status: Optional[str] = None,
    page: int = 1,
    page_size: int = 50,
):
    _check_page(page, page_size)
    status_enum = _coerce(WithdrawalStatus, status, "status")

    query = db.query(WithdrawalRequest, User.email).join(User, WithdrawalRequest.user_id == User.id)
    if status_enum is not None:
        query = query.filter(WithdrawalRequest.status == status_enum)

    total = query.count()
    rows = query.order_by(WithdrawalRequest.id.desc()).offset((page - 1) * page_size).limit(page_size).all()
    items = []
    for w, email in rows:
        items.append(
            {
                "id": w.id,
                "user_id": w.user_id,
                "user_email": email,
                "amount": w.amount,
                "method": w.method,
                "bank_details": w.bank_details,
                "status": w.status,
                "requested_at": w.requested_at,
                "processed_at": w.processed_at,
                "admin_notes": w.admin_notes,
            }
        )
    return {"items": items, "total": total, "page": page, "page_size": page_size}


@router.post("/withdrawals/{withdrawal_id}/approve", response_model=WithdrawalOut)
def approve_withdrawal(
    withdrawal_id: int,
    payload: WithdrawalActionRequest | None = None,
    admin=Depends(require_admin),
    db: Session = Depends(get_db),
):
    return withdrawals.approve_withdrawal(db, withdrawal_id, payload.admin_notes if payload else None)


@router.post("/withdrawals/{withdrawal_id}/reject", response_model=WithdrawalOut)
def reject_withdrawal(
    withdrawal_id: int,
    payload: WithdrawalActionRequest | None = None,
    admin=Depends(require_admin),
    db: Session = Depends(get_db),
):
    return withdrawals.reject_withdrawal(db, withdrawal_id, payload.admin_notes if payload else None)


@router.get("/deposits", response_model=AdminDepositsResponse)
def list_deposits(
    admin=Depends(require_admin),
    db: Session = Depends(get_db),
    q: Optional[str] = None,
    status: Optional[str] = None,
    page: int = 1,
    page_size: int = 50,
):
    _check_page(page, page_size)
    status_enum = _coerce(DepositStatus, status, "status")

    query = db.query(Deposit, User.email).join(User, Deposit.user_id == User.id)
    if q:
        needle = f"%{q.strip()}%"
        query = query.filter(
            or_(User.email.ilike(needle), Deposit.reference.ilike(needle), Deposit.external_reference.ilike(needle))
        )
    if status_enum is not None:
        query = query.filter(Deposit.status == status_enum)

    total = query.count()
    rows = query.order_by(Deposit.id.desc()).offset((page - 1) * page_size).limit(page_size).all()
    items = [
        {
            "id": d.id,
            "user_id": d.user_id,
            "user_email": email,
            "gateway_id": d.gateway_id,
            "amount": d.amount,
            "status": d.status,
            "reference": d.reference,
            "external_reference": d.external_reference,
            "created_at": d.created_at,
            "processed_at": d.processed_at,
        }
        for d, email in rows
    ]
    return {"items": items, "total": total, "page": page, "page_size": page_size}


# Matches


@router.get("/matches", response_model=AdminMatchesResponse)
def list_matches(
    admin=Depends(require_admin),
    db: Session = Depends(get_db),
    q: Optional[str] = None,
    status: Optional[str] = None,
    visible: Optional[bool] = None,
    page: int = 1,
    page_size: int = 50,
):
    _check_page(page, page_size)
    status_enum = _coerce(MatchStatus, status, "status")

    query = db.query(Match)
    if q:
        needle = f"%{q.strip()}%"
        query = query.filter(or_(Match.home_team.ilike(needle), Match.away_team.ilike(needle), Match.sport.ilike(needle)))
    if status_enum is not None:
        query = query.filter(Match.status == status_enum)
    if visible is not None:
        query = query.filter(Match.show_on_frontend.is_(visible))

    total = query.count()
    matches = query.order_by(Match.match_date.desc()).offset((page - 1) * page_size).limit(page_size).all()
    return {"items": matches, "total": total, "page": page, "page_size": page_size}


@router.post("/matches", response_model=AdminMatchOut)
def create_match(payload: MatchCreate, admin=Depends(require_admin), db: Session = Depends(get_db)):
    return catalog.create_match(db, payload.model_dump())


@router.patch("/matches/{match_id}", response_model=AdminMatchOut)
def update_match(match_id: int, payload: MatchUpdate, admin=Depends(require_admin), db: Session = Depends(get_db)):
    match = catalog.get_match(db, match_id)
    return catalog.update_match(db, match, payload.model_dump(exclude_unset=True))


@router.delete("/matches/{match_id}")
def delete_match(match_id: int, admin=Depends(require_admin), db: Session = Depends(get_db)):
    catalog.delete_match(db, catalog.get_match(db, match_id))
    return {"status": "deleted"}


@router.post("/matches/{match_id}/visibility", response_model=AdminMatchOut)
def set_match_visibility(match_id: int, payload: VisibilityUpdate, admin=Depends(require_admin), db: Session = Depends(get_db)):
    return catalog.set_visibility(db, catalog.get_match(db, match_id), payload.show_on_frontend)


@router.put("/matches/{match_id}/odds", response_model=AdminMatchOut)
def update_match_odds(match_id: int, payload: OddsUpdate, admin=Depends(require_admin), db: Session = Depends(get_db)):
    match = catalog.get_match(db, match_id)
    return catalog.update_odds(db, match, home=payload.home_odds, draw=payload.draw_odds, away=payload.away_odds)


@router.post("/matches/{match_id}/status", response_model=AdminMatchOut)
def update_match_status(match_id: int, payload: StatusUpdate, admin=Depends(require_admin), db: Session = Depends(get_db)):
    return catalog.update_status(db, catalog.get_match(db, match_id), payload.status)


@router.post("/matches/{match_id}/settle", response_model=MatchSettlementOut)
def settle_match(match_id: int, payload: SettleMatchRequest, admin=Depends(require_admin), db: Session = Depends(get_db)):
    return bets.settle_match(db, match_id, payload.result)


@router.post("/matches/{match_id}/cancel", response_model=MatchSettlementOut)
def cancel_match(match_id: int, admin=Depends(require_admin), db: Session = Depends(get_db)):
    return bets.cancel_match(db, match_id)


# Payment gateways


def _gateway_out(gateway: PaymentGateway) -> dict:
    return {
        "id": gateway.id,
        "name": gateway.name,
        "type": gateway.type,
        "api_key": mask_secret(gateway.api_key),
        "secret_key": mask_secret(gateway.secret_key),
        "webhook_url": gateway.webhook_url,
        "is_active": gateway.is_active,
        "is_test_mode": gateway.is_test_mode,
        "config": gateway.config,
    }


def _get_gateway(db: Session, gateway_id: int) -> PaymentGateway:
    gateway = db.query(PaymentGateway).filter(PaymentGateway.id == gateway_id).first()
    if not gateway:
        raise NotFound("Payment gateway not found", code="GATEWAY_NOT_FOUND")
    return gateway


@router.get("/gateways", response_model=list[GatewayOut])
def list_gateways(admin=Depends(require_admin), db: Session = Depends(get_db)):
    return [_gateway_out(g) for g in db.query(PaymentGateway).order_by(PaymentGateway.id.asc()).all()]


@router.post("/gateways", response_model=GatewayOut)
def create_gateway(payload: GatewayCreate, admin=Depends(require_admin), db: Session = Depends(get_db)):
    gateway = PaymentGateway(**payload.model_dump())
    gateway.type = gateway.type.strip().lower()
    db.add(gateway)
    db.commit()
    db.refresh(gateway)
    return _gateway_out(gateway)


@router.patch("/gateways/{gateway_id}", response_model=GatewayOut)
def update_gateway(gateway_id: int, payload: GatewayUpdate, admin=Depends(require_admin), db: Session = Depends(get_db)):
    gateway = _get_gateway(db, gateway_id)
    for field, value in payload.model_dump(exclude_unset=True).items():
        # Masked values echoed back by the console mean "unchanged".
        if field in ("api_key", "secret_key") and isinstance(value, str) and value.startswith("****"):
            continue
        setattr(gateway, field, value)
    db.commit()
    db.refresh(gateway)
    return _gateway_out(gateway)


@router.post("/gateways/{gateway_id}/toggle", response_model=GatewayOut)
def toggle_gateway(gateway_id: int, admin=Depends(require_admin), db: Session = Depends(get_db)):
    gateway = _get_gateway(db, gateway_id)
    gateway.is_active = not gateway.is_active
    db.commit()
    db.refresh(gateway)
    return _gateway_out(gateway)


@router.delete("/gateways/{gateway_id}")
def delete_gateway(gateway_id: int, admin=Depends(require_admin), db: Session = Depends(get_db)):
    gateway = _get_gateway(db, gateway_id)
    if db.query(Deposit.id).filter(Deposit.gateway_id == gateway.id).first():
        raise ConflictError("Gateway has deposits; deactivate it instead", code="GATEWAY_IN_USE")
    db.delete(gateway)
    db.commit()
    return {"status": "deleted"}


# Game data sources


def _game_api_out(source: GameApi) -> dict:
    return {
        "id": source.id,
        "name": source.name,
        "api_url": source.api_url,
        "api_key": mask_secret(source.api_key),
        "description": source.description,
        "is_active": source.is_active,
        "last_sync": source.last_sync,
        "config": source.config,
    }


@router.get("/game-apis", response_model=list[GameApiOut])
def list_game_apis(admin=Depends(require_admin), db: Session = Depends(get_db)):
    return [_game_api_out(s) for s in db.query(GameApi).order_by(GameApi.id.asc()).all()]


@router.post("/game-apis", response_model=GameApiOut)
def create_game_api(payload: GameApiCreate, admin=Depends(require_admin), db: Session = Depends(get_db)):
    source = GameApi(**payload.model_dump())
    db.add(source)
    db.commit()
    db.refresh(source)
    return _game_api_out(source)


@router.patch("/game-apis/{source_id}", response_model=GameApiOut)
def update_game_api(source_id: int, payload: GameApiUpdate, admin=Depends(require_admin), db: Session = Depends(get_db)):
    source = game_sources.get_source(db, source_id)
    for field, value in payload.model_dump(exclude_unset=True).items():
        if field == "api_key" and isinstance(value, str) and value.startswith("****"):
            continue
        setattr(source, field, value)
    db.commit()
    db.refresh(source)
    return _game_api_out(source)


@router.delete("/game-apis/{source_id}")
def delete_game_api(source_id: int, admin=Depends(require_admin), db: Session = Depends(get_db)):
    game_sources.delete_source(db, game_sources.get_source(db, source_id))
    return {"status": "deleted"}


@router.post("/game-apis/{source_id}/test", response_model=GameApiTestOut)
def test_game_api(source_id: int, admin=Depends(require_admin), db: Session = Depends(get_db)):
    return game_sources.test_source(db, game_sources.get_source(db, source_id))


@router.post("/game-apis/{source_id}/sync-categories", response_model=CategorySyncOut)
def sync_game_api_categories(source_id: int, admin=Depends(require_admin), db: Session = Depends(get_db)):
    return game_sources.sync_categories(db, game_sources.get_source(db, source_id))


@router.get("/game-apis/{source_id}/categories", response_model=list[CategoryOut])
def list_game_api_categories(source_id: int, admin=Depends(require_admin), db: Session = Depends(get_db)):
    game_sources.get_source(db, source_id)
    return (
        db.query(SportCategory)
        .filter(SportCategory.api_source_id == source_id)
        .order_by(SportCategory.category_name.asc())
        .all()
    )


@router.post("/categories/{category_id}/active", response_model=CategoryOut)
def toggle_category(category_id: int, payload: CategoryToggle, admin=Depends(require_admin), db: Session = Depends(get_db)):
    return game_sources.set_category_active(db, category_id, payload.is_active)


@router.post("/game-apis/{source_id}/import-matches", response_model=MatchImportOut)
def import_game_api_matches(source_id: int, admin=Depends(require_admin), db: Session = Depends(get_db)):
    return game_sources.import_matches(db, game_sources.get_source(db, source_id))


@router.get("/game-apis/{source_id}/matches", response_model=list[AdminMatchOut])
def list_game_api_matches(source_id: int, admin=Depends(require_admin), db: Session = Depends(get_db)):
    game_sources.get_source(db, source_id)
    return db.query(Match).filter(Match.api_source_id == source_id).order_by(Match.match_date.asc()).all()


@router.get("/api-logs", response_model=list[ApiLogOut])
def list_api_logs(
    admin=Depends(require_admin),
    db: Session = Depends(get_db),
    source_id: Optional[int] = None,
    limit: int = Query(default=100, ge=1, le=500),
):
    query = db.query(ApiLog)
    if source_id is not None:
        query = query.filter(ApiLog.api_source_id == source_id)
    return query.order_by(ApiLog.id.desc()).limit(limit).all()


# Hero banners


def _activate_only(db: Session, banner: HeroBanner) -> None:
    db.execute(update(HeroBanner).where(HeroBanner.id != banner.id).values(is_active=False))
    banner.is_active = True


@router.get("/banners", response_model=list[BannerOut])
def list_banners(admin=Depends(require_admin), db: Session = Depends(get_db)):
    return db.query(HeroBanner).order_by(HeroBanner.id.desc()).all()


@router.post("/banners", response_model=BannerOut)
def create_banner(payload: BannerCreate, admin=Depends(require_admin), db: Session = Depends(get_db)):
    data = payload.model_dump()
    activate = data.pop("is_active")
    banner = HeroBanner(**data, is_active=False)
    db.add(banner)
    db.flush()
    if activate:
        _activate_only(db, banner)
    db.commit()
    db.refresh(banner)
    return banner


@router.patch("/banners/{banner_id}", response_model=BannerOut)
def update_banner(banner_id: int, payload: BannerUpdate, admin=Depends(require_admin), db: Session = Depends(get_db)):
    banner = db.query(HeroBanner).filter(HeroBanner.id == banner_id).first()
    if not banner:
        raise NotFound("Banner not found", code="BANNER_NOT_FOUND")
    data = payload.model_dump(exclude_unset=True)
    activate = data.pop("is_active", None)
    for field, value in data.items():
        if value is not None:
            setattr(banner, field, value)
    if activate is True:
        _activate_only(db, banner)
    elif activate is False:
        banner.is_active = False
    db.commit()
    db.refresh(banner)
    return banner


@router.delete("/banners/{banner_id}")
def delete_banner(banner_id: int, admin=Depends(require_admin), db: Session = Depends(get_db)):
    banner = db.query(HeroBanner).filter(HeroBanner.id == banner_id).first()
    if not banner:
        raise NotFound("Banner not found", code="BANNER_NOT_FOUND")
    db.delete(banner)
    db.commit()
    return {"status": "deleted"}


# Site settings


@router.get("/settings", response_model=SettingsOut)
def get_settings_values(admin=Depends(require_admin), db: Session = Depends(get_db)):
    return {"values": site_settings.get_all(db)}


@router.put("/settings", response_model=SettingsOut)
def update_settings_values(payload: SettingsUpdate, admin=Depends(require_admin), db: Session = Depends(get_db)):
    return {"values": site_settings.update_settings(db, payload.values)}
