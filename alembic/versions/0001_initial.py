"""initial

Revision ID: 0001_initial
Revises: 
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("full_name", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(32), nullable=True),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("role", sa.Enum("user", "admin", name="userrole"), nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.text("true")),
        *_timestamps(),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_role_active", "users", ["role", "is_active"], unique=False)

    op.create_table(
        "game_apis",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("api_url", sa.String(512), nullable=False),
        sa.Column("api_key", sa.String(255), nullable=True),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.text("true")),
        sa.Column("last_sync", sa.DateTime(timezone=True), nullable=True),
        sa.Column("config", sa.JSON, nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "payment_gateways",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("type", sa.String(32), nullable=False),
        sa.Column("api_key", sa.String(255), nullable=True),
        sa.Column("secret_key", sa.String(255), nullable=True),
        sa.Column("webhook_url", sa.String(512), nullable=True),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("is_test_mode", sa.Boolean, nullable=False, server_default=sa.text("true")),
        sa.Column("config", sa.JSON, nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "wallets",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("user_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("balance", sa.BigInteger, nullable=False, server_default="0"),
        sa.Column("last_entry_id", sa.Integer, nullable=True),
        sa.Column("is_locked", sa.Boolean, nullable=False, server_default=sa.text("false")),
        *_timestamps(),
    )
    op.create_index("ix_wallets_user_id", "wallets", ["user_id"], unique=True)

    op.create_table(
        "matches",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("home_team", sa.String(120), nullable=False),
        sa.Column("away_team", sa.String(120), nullable=False),
        sa.Column("sport", sa.String(64), nullable=False),
        sa.Column("category_key", sa.String(128), nullable=True),
        sa.Column("match_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.Enum("upcoming", "live", "completed", "cancelled", name="matchstatus"), nullable=False),
        sa.Column("home_odds", sa.Numeric(8, 2), nullable=True),
        sa.Column("away_odds", sa.Numeric(8, 2), nullable=True),
        sa.Column("draw_odds", sa.Numeric(8, 2), nullable=True),
        sa.Column("result", sa.String(8), nullable=True),
        sa.Column("show_on_frontend", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("api_source_id", sa.Integer, sa.ForeignKey("game_apis.id"), nullable=True),
        sa.Column("external_id", sa.String(128), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_matches_category_key", "matches", ["category_key"], unique=False)
    op.create_index("ix_matches_frontend_date", "matches", ["show_on_frontend", "match_date"], unique=False)
    op.create_index("ix_matches_source_external", "matches", ["api_source_id", "external_id"], unique=True)

    op.create_table(
        "bets",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("user_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("match_id", sa.Integer, sa.ForeignKey("matches.id"), nullable=False),
        sa.Column("bet_type", sa.Enum("home", "draw", "away", name="bettype"), nullable=False),
        sa.Column("stake", sa.BigInteger, nullable=False),
        sa.Column("odds", sa.Numeric(8, 2), nullable=False),
        sa.Column("potential_payout", sa.BigInteger, nullable=False),
        sa.Column("status", sa.Enum("pending", "won", "lost", "cancelled", name="betstatus"), nullable=False),
        sa.Column("reference_id", sa.String(128), nullable=False),
        sa.Column("placed_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("settled_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("stake > 0", name="ck_bets_stake_positive"),
        sa.CheckConstraint("odds >= 1.00", name="ck_bets_odds_min"),
        *_timestamps(),
    )
    op.create_index("ix_bets_reference_id", "bets", ["reference_id"], unique=True)
    op.create_index("ix_bets_user_status", "bets", ["user_id", "status"], unique=False)
    op.create_index("ix_bets_match_status", "bets", ["match_id", "status"], unique=False)

    op.create_table(
        "withdrawal_requests",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("user_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("amount", sa.BigInteger, nullable=False),
        sa.Column("method", sa.String(32), nullable=False),
        sa.Column("bank_details", sa.JSON, nullable=True),
        sa.Column(
            "status",
            sa.Enum("pending", "approved", "rejected", "completed", name="withdrawalstatus"),
            nullable=False,
        ),
        sa.Column("reference_id", sa.String(128), nullable=True, unique=True),
        sa.Column("requested_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("admin_notes", sa.Text, nullable=True),
        sa.CheckConstraint("amount > 0", name="ck_withdrawal_requests_amount_positive"),
        *_timestamps(),
    )
    op.create_index(
        "ix_withdrawal_requests_status_requested",
        "withdrawal_requests",
        ["status", "requested_at"],
        unique=False,
    )
    op.create_index("ix_withdrawal_requests_user", "withdrawal_requests", ["user_id"], unique=False)

    op.create_table(
        "deposits",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("user_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("gateway_id", sa.Integer, sa.ForeignKey("payment_gateways.id"), nullable=False),
        sa.Column("amount", sa.BigInteger, nullable=False),
        sa.Column("status", sa.Enum("pending", "completed", "failed", name="depositstatus"), nullable=False),
        sa.Column("reference", sa.String(64), nullable=False),
        sa.Column("external_reference", sa.String(128), nullable=True),
        sa.Column("failure_reason", sa.String(255), nullable=True),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_deposits_reference", "deposits", ["reference"], unique=True)
    op.create_index("ix_deposits_user_status", "deposits", ["user_id", "status"], unique=False)

    op.create_table(
        "ledger_entries",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("user_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column(
            "kind",
            sa.Enum(
                "deposit",
                "withdrawal_hold",
                "withdrawal_release",
                "bet_stake",
                "bet_payout",
                "bet_refund",
                name="ledgerkind",
            ),
            nullable=False,
        ),
        sa.Column("amount", sa.BigInteger, nullable=False),
        sa.Column("reference_id", sa.String(128), nullable=False),
        sa.Column("description", sa.String(255), nullable=False),
        sa.Column("related_bet_id", sa.Integer, sa.ForeignKey("bets.id"), nullable=True),
        sa.Column("related_withdrawal_id", sa.Integer, sa.ForeignKey("withdrawal_requests.id"), nullable=True),
        sa.Column("related_deposit_id", sa.Integer, sa.ForeignKey("deposits.id"), nullable=True),
        sa.CheckConstraint("amount <> 0", name="ck_ledger_entries_amount_nonzero"),
        *_timestamps(),
    )
    op.create_index("ix_ledger_entries_reference_id", "ledger_entries", ["reference_id"], unique=True)
    op.create_index("ix_ledger_entries_user_id_id", "ledger_entries", ["user_id", "id"], unique=False)
    op.create_index("ix_ledger_entries_kind", "ledger_entries", ["kind"], unique=False)

    op.create_table(
        "sport_categories",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("api_source_id", sa.Integer, sa.ForeignKey("game_apis.id"), nullable=False),
        sa.Column("category_key", sa.String(128), nullable=False),
        sa.Column("category_name", sa.String(255), nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.text("false")),
        *_timestamps(),
    )
    op.create_index(
        "ix_sport_categories_source_key",
        "sport_categories",
        ["api_source_id", "category_key"],
        unique=True,
    )

    op.create_table(
        "hero_banners",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("title", sa.String(160), nullable=False),
        sa.Column("subtitle", sa.String(255), nullable=False, server_default=""),
        sa.Column("button_text", sa.String(64), nullable=False, server_default=""),
        sa.Column("background_color", sa.String(16), nullable=False, server_default="#f97316"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.text("false")),
        *_timestamps(),
    )

    op.create_table(
        "system_settings",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("key", sa.String(64), nullable=False),
        sa.Column("value", sa.JSON, nullable=True),
        sa.Column("description", sa.String(255), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_system_settings_key", "system_settings", ["key"], unique=True)

    op.create_table(
        "api_logs",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("api_source_id", sa.Integer, sa.ForeignKey("game_apis.id", ondelete="SET NULL"), nullable=True),
        sa.Column("service", sa.String(64), nullable=False),
        sa.Column("endpoint", sa.String(255), nullable=False),
        sa.Column("status_code", sa.Integer, nullable=False),
        sa.Column("duration_ms", sa.Numeric(10, 2), nullable=False),
        sa.Column("reference", sa.String(64), nullable=True),
        sa.Column("success", sa.Integer, nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_api_logs_service_status", "api_logs", ["service", "status_code"], unique=False)


def downgrade():
    op.drop_table("api_logs")
    op.drop_table("system_settings")
    op.drop_table("hero_banners")
    op.drop_table("sport_categories")
    op.drop_table("ledger_entries")
    op.drop_table("deposits")
    op.drop_table("withdrawal_requests")
    op.drop_table("bets")
    op.drop_table("matches")
    op.drop_table("wallets")
    op.drop_table("payment_gateways")
    op.drop_table("game_apis")
    op.drop_table("users")
    for name in ("ledgerkind", "depositstatus", "withdrawalstatus", "betstatus", "bettype", "matchstatus", "userrole"):
        sa.Enum(name=name).drop(op.get_bind(), checkfirst=True)
