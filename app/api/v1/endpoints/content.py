from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from app.core.database import get_db
from app.models import HeroBanner, PaymentGateway
from app.schemas.content import BannerOut, PublicGatewayOut
from app.services import site_settings

router = APIRouter()


@router.get("/banner", response_model=BannerOut | None)
def active_banner(db: Session = Depends(get_db)):
    return db.query(HeroBanner).filter(HeroBanner.is_active.is_(True)).order_by(HeroBanner.id.desc()).first()


@router.get("/settings")
def public_settings(db: Session = Depends(get_db)):
    return site_settings.public_settings(db)


@router.get("/gateways", response_model=list[PublicGatewayOut])
def active_gateways(db: Session = Depends(get_db)):
    return (
        db.query(PaymentGateway)
        .filter(PaymentGateway.is_active.is_(True))
        .order_by(PaymentGateway.name.asc())
        .all()
    )
