import hashlib
import hmac
from urllib.parse import urlencode, urlparse, urlunparse, parse_qsl

from app.models import PaymentGateway


def build_redirect_url(
    gateway: PaymentGateway,
    *,
    amount: int,
    transaction_id: str,
    user_id: int,
    redirect_url: str,
) -> str:
    checkout_url = str((gateway.config or {}).get("checkout_url") or "").strip()
    if not checkout_url:
        raise ValueError(f"Gateway {gateway.id} has no checkout_url configured")

    parsed = urlparse(checkout_url)
    query = dict(parse_qsl(parsed.query))
    query.update(
        {
            "amount": str(amount),
            "transaction_id": transaction_id,
            "user_id": str(user_id),
            "gateway": gateway.type,
            "redirect_url": redirect_url,
        }
    )
    return urlunparse(parsed._replace(query=urlencode(query)))


def sign_callback(secret: str, body: bytes) -> str:
    return hmac.new(secret.encode(), body, hashlib.sha512).hexdigest()


def verify_callback_signature(gateway: PaymentGateway, body: bytes, signature: str | None) -> bool:
    if not gateway.secret_key or not signature:
        return False
    computed = sign_callback(gateway.secret_key, body)
    return hmac.compare_digest(computed, signature.strip().lower())


def mask_secret(value: str | None) -> str | None:
    if not value:
        return None
    if len(value) <= 4:
        return "****"
    return f"****{value[-4:]}"
