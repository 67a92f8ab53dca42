"""Game data sources: connectivity test, category sync and match import."""

from datetime import datetime, timezone
import logging

from sqlalchemy.orm import Session

from app.core.errors import DependencyUnavailable, NotFound, PreconditionFailed
from app.models import ApiLog, GameApi, Match, MatchStatus, SportCategory
from app.services.catalog import parse_commence_time
from app.services.odds_provider import OddsProviderClient, OddsProviderError

logger = logging.getLogger(__name__)

SERVICE_NAME = "odds_provider"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def get_source(db: Session, source_id: int) -> GameApi:
    source = db.query(GameApi).filter(GameApi.id == source_id).first()
    if not source:
        raise NotFound("Game API not found", code="GAME_API_NOT_FOUND")
    return source


def _log_call(db: Session, source: GameApi, client: OddsProviderClient, endpoint: str, success: bool) -> None:
    db.add(
        ApiLog(
            api_source_id=source.id,
            service=SERVICE_NAME,
            endpoint=endpoint[:255],
            status_code=client.last_status_code or 0,
            duration_ms=client.last_duration_ms or 0,
            reference=str(source.id),
            success=1 if success else 0,
        )
    )


def _call(db: Session, source: GameApi, client: OddsProviderClient, endpoint: str, fn):
    try:
        result = fn()
    except OddsProviderError as exc:
        _log_call(db, source, client, endpoint, False)
        db.commit()
        logger.warning("Game API %s call %s failed: %s", source.id, endpoint, exc.message)
        raise DependencyUnavailable(
            f"{source.name} is unavailable: {exc.message}",
            code="PROVIDER_UNAVAILABLE",
        ) from exc
    _log_call(db, source, client, endpoint, True)
    return result


def test_source(db: Session, source: GameApi, client_factory=OddsProviderClient) -> dict:
    client = client_factory(source.api_url, source.api_key)
    try:
        client.ping()
        ok, message = True, f"Connection to {source.name} is working"
    except OddsProviderError as exc:
        ok, message = False, exc.message
    _log_call(db, source, client, source.api_url, ok)
    db.commit()
    return {
        "ok": ok,
        "status_code": client.last_status_code,
        "duration_ms": client.last_duration_ms,
        "message": message,
    }


def sync_categories(db: Session, source: GameApi, client_factory=OddsProviderClient) -> dict:
    client = client_factory(source.api_url, source.api_key)
    sports = _call(db, source, client, source.api_url, client.fetch_sports)

    existing = {
        row.category_key: row
        for row in db.query(SportCategory).filter(SportCategory.api_source_id == source.id).all()
    }
    created = updated = 0
    for item in sports:
        row = existing.get(item["category_key"])
        if row is None:
            # New categories stay hidden until an admin enables them.
            row = SportCategory(
                api_source_id=source.id,
                category_key=item["category_key"],
                category_name=item["category_name"],
                is_active=False,
            )
            db.add(row)
            existing[row.category_key] = row
            created += 1
        elif row.category_name != item["category_name"]:
            row.category_name = item["category_name"]
            updated += 1
    source.last_sync = _utcnow()
    db.commit()
    logger.info("Game API %s categories synced fetched=%s created=%s updated=%s", source.id, len(sports), created, updated)
    return {"fetched": len(sports), "created": created, "updated": updated}


def set_category_active(db: Session, category_id: int, is_active: bool) -> SportCategory:
    category = db.query(SportCategory).filter(SportCategory.id == category_id).first()
    if not category:
        raise NotFound("Category not found", code="CATEGORY_NOT_FOUND")
    category.is_active = bool(is_active)
    db.commit()
    db.refresh(category)
    return category


def _apply_event(match: Match, event: dict) -> bool:
    """Refresh a previously imported match. Only prices of unstarted matches move."""
    if match.status != MatchStatus.UPCOMING:
        return False
    changed = False
    for field in ("home_odds", "draw_odds", "away_odds"):
        value = event.get(field)
        if value is not None and getattr(match, field) != value:
            setattr(match, field, value)
            changed = True
    commence = parse_commence_time(event.get("commence_time"))
    if commence and (match.match_date is None or _as_utc(match.match_date) != commence):
        match.match_date = commence
        changed = True
    return changed


def import_matches(db: Session, source: GameApi, client_factory=OddsProviderClient) -> dict:
    categories = (
        db.query(SportCategory)
        .filter(SportCategory.api_source_id == source.id, SportCategory.is_active.is_(True))
        .order_by(SportCategory.category_key.asc())
        .all()
    )
    if not categories:
        raise PreconditionFailed(
            "No active categories for this source",
            code="NO_ACTIVE_CATEGORIES",
            hint="Sync categories and enable at least one",
        )

    client = client_factory(source.api_url, source.api_key)
    created = updated = skipped = 0
    for category in categories:
        endpoint = f"/{category.category_key}/odds"
        events = _call(db, source, client, endpoint, lambda: client.fetch_events(category.category_key))
        for event in events:
            match = (
                db.query(Match)
                .filter(Match.api_source_id == source.id, Match.external_id == event["external_id"])
                .first()
            )
            if match is not None:
                if _apply_event(match, event):
                    updated += 1
                else:
                    skipped += 1
                continue
            commence = parse_commence_time(event.get("commence_time"))
            if commence is None:
                skipped += 1
                continue
            db.add(
                Match(
                    home_team=event["home_team"],
                    away_team=event["away_team"],
                    sport=event["sport"],
                    category_key=category.category_key,
                    match_date=commence,
                    status=MatchStatus.UPCOMING,
                    home_odds=event.get("home_odds"),
                    draw_odds=event.get("draw_odds"),
                    away_odds=event.get("away_odds"),
                    show_on_frontend=False,
                    api_source_id=source.id,
                    external_id=event["external_id"],
                )
            )
            db.flush()
            created += 1

    source.last_sync = _utcnow()
    db.commit()
    logger.info("Game API %s import created=%s updated=%s skipped=%s", source.id, created, updated, skipped)
    return {"created": created, "updated": updated, "skipped": skipped}


def delete_source(db: Session, source: GameApi) -> None:
    # Matches outlive their source; bets may reference them.
    db.query(Match).filter(Match.api_source_id == source.id).update(
        {Match.api_source_id: None}, synchronize_session=False
    )
    db.query(ApiLog).filter(ApiLog.api_source_id == source.id).update(
        {ApiLog.api_source_id: None}, synchronize_session=False
    )
    db.delete(source)
    db.commit()
    logger.info("Game API deleted id=%s", source.id)
