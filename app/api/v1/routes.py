from fastapi import APIRouter
from app.api.v1.endpoints import auth, wallet, bets, matches, content, admin

router = APIRouter()

router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(wallet.router, prefix="/wallet", tags=["wallet"])
router.include_router(bets.router, prefix="/bets", tags=["bets"])
router.include_router(matches.router, prefix="/matches", tags=["matches"])
router.include_router(content.router, prefix="/content", tags=["content"])
router.include_router(admin.router, prefix="/admin", tags=["admin"])
