import time
import logging
from decimal import Decimal, InvalidOperation
import httpx
from app.core.config import get_settings


settings = get_settings()
logger = logging.getLogger(__name__)


def parse_sports(payload) -> list[dict]:
    if not isinstance(payload, list):
        return []
    items = []
    for row in payload:
        if not isinstance(row, dict):
            continue
        key = str(row.get("key") or row.get("sport_key") or row.get("id") or "").strip()
        if not key:
            continue
        name = str(row.get("title") or row.get("name") or key).strip()
        items.append({"category_key": key, "category_name": name, "group": row.get("group")})
    return items


def _decimal_price(value) -> Decimal | None:
    try:
        price = Decimal(str(value)).quantize(Decimal("0.01"))
    except (InvalidOperation, TypeError, ValueError):
        return None
    return price if price >= Decimal("1.00") else None


def parse_h2h_odds(event: dict) -> dict:
    """Prices from the first bookmaker's h2h market, keyed home/draw/away."""
    home = event.get("home_team")
    away = event.get("away_team")
    odds = {"home_odds": None, "draw_odds": None, "away_odds": None}
    bookmakers = event.get("bookmakers") or []
    if not bookmakers or not isinstance(bookmakers[0], dict):
        return odds
    for market in bookmakers[0].get("markets") or []:
        if not isinstance(market, dict) or market.get("key") != "h2h":
            continue
        for outcome in market.get("outcomes") or []:
            name = outcome.get("name")
            price = _decimal_price(outcome.get("price"))
            if name == home:
                odds["home_odds"] = price
            elif name == away:
                odds["away_odds"] = price
            elif str(name or "").lower() == "draw":
                odds["draw_odds"] = price
        break
    return odds


def parse_events(payload, *, sport: str) -> list[dict]:
    if not isinstance(payload, list):
        return []
    items = []
    for event in payload:
        if not isinstance(event, dict):
            continue
        external_id = str(event.get("id") or "").strip()
        home = str(event.get("home_team") or "").strip()
        away = str(event.get("away_team") or "").strip()
        if not external_id or not home or not away:
            continue
        items.append(
            {
                "external_id": external_id,
                "home_team": home,
                "away_team": away,
                "sport": sport,
                "category_key": event.get("sport_key"),
                "commence_time": event.get("commence_time"),
                **parse_h2h_odds(event),
            }
        )
    return items


class OddsProviderError(Exception):
    def __init__(self, message: str, *, status_code: int | None = None, raw: str | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.raw = raw


class OddsProviderClient:
    def __init__(self, api_url: str, api_key: str | None):
        self.base_url = str(api_url or "").strip().rstrip("/")
        self.api_key = api_key or ""
        self.timeout = settings.odds_provider_timeout_seconds
        self.retry_count = settings.odds_provider_retry_count
        self.last_status_code: int | None = None
        self.last_duration_ms: float | None = None

    def _extract_error_message(self, response: httpx.Response) -> str:
        try:
            data = response.json()
        except ValueError:
            data = {}
        if isinstance(data, dict):
            for key in ("message", "detail", "error"):
                value = data.get(key)
                if isinstance(value, str) and value.strip():
                    return value.strip()
        text = (response.text or "").strip()
        return text[:300] if text else f"HTTP {response.status_code}"

    def _request(self, path: str, params: dict | None = None):
        url = f"{self.base_url}{path}"
        query = {"apiKey": self.api_key, **(params or {})}
        last_exc = None
        for attempt in range(self.retry_count + 1):
            start = time.time()
            try:
                with httpx.Client(timeout=self.timeout) as client:
                    response = client.get(url, params=query)
                duration_ms = round((time.time() - start) * 1000, 2)
                self.last_status_code = response.status_code
                self.last_duration_ms = duration_ms
                logger.info("Odds provider GET %s status=%s duration=%sms", path or "/", response.status_code, duration_ms)
                if response.status_code >= 500 and attempt < self.retry_count:
                    time.sleep(0.5 * (attempt + 1))
                    continue
                if response.status_code >= 400:
                    raise OddsProviderError(
                        self._extract_error_message(response),
                        status_code=response.status_code,
                        raw=response.text,
                    )
                try:
                    return response.json()
                except ValueError as exc:
                    raise OddsProviderError("Provider returned invalid JSON response.", status_code=response.status_code, raw=response.text) from exc
            except OddsProviderError as exc:
                last_exc = exc
                if exc.status_code is not None and exc.status_code < 500 and exc.status_code != 429:
                    raise last_exc
                if attempt < self.retry_count:
                    time.sleep(0.5 * (attempt + 1))
                    continue
                raise last_exc
            except (httpx.TimeoutException, httpx.NetworkError, httpx.RemoteProtocolError) as exc:
                self.last_status_code = 0
                self.last_duration_ms = round((time.time() - start) * 1000, 2)
                last_exc = OddsProviderError("Unable to reach game data provider.", raw=str(exc))
                if attempt < self.retry_count:
                    time.sleep(0.5 * (attempt + 1))
                    continue
                raise last_exc

    def ping(self):
        return self._request("")

    def fetch_sports(self) -> list[dict]:
        return parse_sports(self._request(""))

    def fetch_events(self, sport_key: str, *, sport: str | None = None) -> list[dict]:
        payload = self._request(
            f"/{sport_key}/odds",
            {"regions": settings.odds_provider_regions, "markets": "h2h", "oddsFormat": "decimal"},
        )
        return parse_events(payload, sport=sport or sport_key.split("_", 1)[0])
