from app.models.user import User, UserRole
from app.models.wallet import Wallet
from app.models.ledger import LedgerEntry, LedgerKind
from app.models.match import Match, MatchStatus, BetType, BETTABLE_STATUSES
from app.models.bet import Bet, BetStatus, TERMINAL_BET_STATUSES
from app.models.withdrawal import WithdrawalRequest, WithdrawalStatus, WITHDRAWAL_TRANSITIONS
from app.models.deposit import Deposit, DepositStatus
from app.models.payment_gateway import PaymentGateway
from app.models.game_api import GameApi
from app.models.sport_category import SportCategory
from app.models.hero_banner import HeroBanner
from app.models.system_setting import SystemSetting
from app.models.api_log import ApiLog

__all__ = [
    "User",
    "UserRole",
    "Wallet",
    "LedgerEntry",
    "LedgerKind",
    "Match",
    "MatchStatus",
    "BetType",
    "BETTABLE_STATUSES",
    "Bet",
    "BetStatus",
    "TERMINAL_BET_STATUSES",
    "WithdrawalRequest",
    "WithdrawalStatus",
    "WITHDRAWAL_TRANSITIONS",
    "Deposit",
    "DepositStatus",
    "PaymentGateway",
    "GameApi",
    "SportCategory",
    "HeroBanner",
    "SystemSetting",
    "ApiLog",
]
