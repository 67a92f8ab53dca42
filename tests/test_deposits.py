import json
from urllib.parse import parse_qs, urlparse

import pytest

from app.core.errors import InvalidTransition, NotFound, ValidationError
from app.models import Deposit, DepositStatus, LedgerEntry, LedgerKind, PaymentGateway
from app.services import deposits
from app.services.gateway import mask_secret, sign_callback, verify_callback_signature
from app.services.wallet import current_balance


@pytest.fixture
def gateway(db):
    gateway = PaymentGateway(
        name="Test Pay",
        type="testpay",
        api_key="pk_test_1234",
        secret_key="sk_test_secret",
        is_active=True,
        is_test_mode=True,
        config={"checkout_url": "https://pay.example.com/checkout?merchant=ibx"},
    )
    db.add(gateway)
    db.commit()
    db.refresh(gateway)
    return gateway


def _callback(client, gateway, payload, secret=None):
    body = json.dumps(payload).encode()
    signature = sign_callback(secret or gateway.secret_key, body)
    return client.post(
        f"/api/v1/wallet/deposits/callback/{gateway.id}",
        content=body,
        headers={"x-signature": signature, "content-type": "application/json"},
    )


def test_mask_secret():
    assert mask_secret(None) is None
    assert mask_secret("abc") == "****"
    assert mask_secret("sk_live_98765") == "****8765"


def test_verify_callback_signature(gateway):
    body = b'{"transaction_id":"DEP_1","status":"success"}'
    assert verify_callback_signature(gateway, body, sign_callback("sk_test_secret", body))
    assert not verify_callback_signature(gateway, body, sign_callback("other", body))
    assert not verify_callback_signature(gateway, body, None)


def test_start_deposit_builds_redirect(client, db, make_user, gateway, headers_for):
    user = make_user()

    res = client.post(
        "/api/v1/wallet/deposits",
        json={"gateway_id": gateway.id, "amount": 25_000},
        headers=headers_for(user),
    )

    assert res.status_code == 200
    body = res.json()
    assert body["deposit"]["status"] == "pending"
    reference = body["deposit"]["reference"]
    assert reference.startswith("DEP_")

    url = urlparse(body["redirect_url"])
    assert url.netloc == "pay.example.com"
    params = {key: values[0] for key, values in parse_qs(url.query).items()}
    assert params["merchant"] == "ibx"
    assert params["amount"] == "25000"
    assert params["transaction_id"] == reference
    assert params["user_id"] == str(user.id)
    assert params["gateway"] == "testpay"
    assert params["redirect_url"] == "http://localhost:5173/wallet"
    assert current_balance(db, user.id) == 0


def test_start_deposit_rejects_small_amount_and_inactive_gateway(db, make_user, gateway):
    user = make_user()

    with pytest.raises(ValidationError) as exc:
        deposits.start_deposit(db, user.id, gateway.id, 9_999)
    assert exc.value.detail["code"] == "BELOW_MINIMUM"

    gateway.is_active = False
    db.commit()
    with pytest.raises(NotFound):
        deposits.start_deposit(db, user.id, gateway.id, 20_000)


def test_callback_credits_once(client, db, make_user, gateway):
    user = make_user()
    deposit, _ = deposits.start_deposit(db, user.id, gateway.id, 20_000)
    payload = {"transaction_id": deposit.reference, "status": "success", "amount": 20_000, "external_reference": "PAY-9"}

    first = _callback(client, gateway, payload)
    replay = _callback(client, gateway, payload)

    assert first.status_code == 200
    assert first.json()["status"] == "completed"
    assert replay.status_code == 200
    assert current_balance(db, user.id) == 20_000
    entries = db.query(LedgerEntry).filter(LedgerEntry.kind == LedgerKind.DEPOSIT).all()
    assert len(entries) == 1
    assert entries[0].reference_id == f"deposit:{deposit.reference}"
    assert entries[0].related_deposit_id == deposit.id


def test_callback_with_bad_signature_is_ignored(client, db, make_user, gateway):
    user = make_user()
    deposit, _ = deposits.start_deposit(db, user.id, gateway.id, 20_000)

    res = _callback(client, gateway, {"transaction_id": deposit.reference, "status": "success"}, secret="forged")
    assert res.status_code == 401

    res = client.post(
        f"/api/v1/wallet/deposits/callback/{gateway.id}",
        json={"transaction_id": deposit.reference, "status": "success"},
    )
    assert res.status_code == 401
    assert current_balance(db, user.id) == 0


def test_callback_amount_mismatch_is_rejected(client, db, make_user, gateway):
    user = make_user()
    deposit, _ = deposits.start_deposit(db, user.id, gateway.id, 20_000)

    res = _callback(client, gateway, {"transaction_id": deposit.reference, "status": "success", "amount": 2_000_000})

    assert res.status_code == 400
    assert res.json()["detail"]["code"] == "INVALID_AMOUNT"
    assert current_balance(db, user.id) == 0


def test_failed_callback_marks_deposit_failed(client, db, make_user, gateway):
    user = make_user()
    deposit, _ = deposits.start_deposit(db, user.id, gateway.id, 20_000)

    res = _callback(client, gateway, {"transaction_id": deposit.reference, "status": "failed"})

    assert res.status_code == 200
    assert res.json()["status"] == "failed"
    db.expire_all()
    assert db.get(Deposit, deposit.id).failure_reason == "failed"

    with pytest.raises(InvalidTransition):
        deposits.apply_callback(db, gateway, transaction_id=deposit.reference, status="success")
    assert current_balance(db, user.id) == 0


def test_callback_for_unknown_reference(db, gateway):
    with pytest.raises(NotFound):
        deposits.apply_callback(db, gateway, transaction_id="DEP_missing", status="success")


def test_completed_deposit_cannot_fail(db, make_user, gateway):
    user = make_user()
    deposit, _ = deposits.start_deposit(db, user.id, gateway.id, 20_000)
    deposits.apply_callback(db, gateway, transaction_id=deposit.reference, status="paid")

    with pytest.raises(InvalidTransition):
        deposits.apply_callback(db, gateway, transaction_id=deposit.reference, status="cancelled")

    db.refresh(deposit)
    assert deposit.status == DepositStatus.COMPLETED
