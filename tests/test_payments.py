"""Payment verification and provider order tests"""

import json

import httpx
import pytest
from sqlalchemy import select

from labflow.errors import (
    InvalidTransition,
    PaymentGatewayError,
    PaymentGatewayUnavailable,
    SignatureInvalid,
)
from labflow.models.audit import AuditLog
from labflow.models.order import OrderStatus, PaymentMethod
from labflow.services.payments import (
    PaymentGateway,
    PaymentVerifier,
    sign_payment,
    signature_matches,
)

SECRET = "test_key_secret"


def test_signature_is_hmac_of_order_and_payment_ids():
    # echo -n "order_123|pay_456" | openssl dgst -sha256 -hmac test_key_secret
    signature = sign_payment("order_123", "pay_456", SECRET)

    assert len(signature) == 64
    assert signature == signature.lower()
    assert signature_matches("order_123", "pay_456", signature, SECRET)
    assert not signature_matches("order_123", "pay_457", signature, SECRET)
    assert not signature_matches("order_123", "pay_456", signature, "other_secret")


@pytest.mark.asyncio
async def test_confirm_moves_pending_to_confirmed(test_db, ledger, notifier, place_order, test_customer):
    order = await place_order()
    signature = sign_payment("order_abc", "pay_1", SECRET)

    confirmed = await PaymentVerifier(ledger, secret=SECRET).confirm(
        order.id, "pay_1", "order_abc", signature, actor_id=test_customer.id
    )

    assert confirmed.status == OrderStatus.CONFIRMED
    assert confirmed.payment_id == "pay_1"
    assert confirmed.payment_method == PaymentMethod.RAZORPAY
    assert notifier.events() == ["ORDER_CONFIRMED"]

    history = await ledger.history(order.id)
    assert [row.status for row in history] == [OrderStatus.PENDING, OrderStatus.CONFIRMED]
    assert history[-1].notes == "Payment verified successfully"

    result = await test_db.execute(select(AuditLog).where(AuditLog.action == "payment_confirmed"))
    assert len(result.scalars().all()) == 1


@pytest.mark.asyncio
async def test_confirm_twice_is_a_noop(ledger, notifier, place_order):
    order = await place_order()
    verifier = PaymentVerifier(ledger, secret=SECRET)
    signature = sign_payment("order_abc", "pay_1", SECRET)

    first = await verifier.confirm(order.id, "pay_1", "order_abc", signature)
    second = await verifier.confirm(order.id, "pay_1", "order_abc", signature)

    assert first.status == second.status == OrderStatus.CONFIRMED
    assert second.version == first.version
    assert len(await ledger.history(order.id)) == 2
    assert notifier.events() == ["ORDER_CONFIRMED"]


@pytest.mark.asyncio
async def test_confirm_on_cancelled_order_does_not_revive_it(ledger, place_order, test_admin):
    order = await place_order()
    await ledger.transition(order.id, OrderStatus.CANCELLED, test_admin.id)
    signature = sign_payment("order_abc", "pay_1", SECRET)

    result = await PaymentVerifier(ledger, secret=SECRET).confirm(order.id, "pay_1", "order_abc", signature)

    assert result.status == OrderStatus.CANCELLED
    assert result.payment_id is None


@pytest.mark.asyncio
async def test_bad_signature_is_rejected_and_audited(test_db, ledger, notifier, place_order):
    order_id = (await place_order()).id
    good = sign_payment("order_abc", "pay_1", SECRET)

    with pytest.raises(SignatureInvalid):
        await PaymentVerifier(ledger, secret=SECRET).confirm(
            order_id, "pay_1", "order_abc", "0" * 64, ip_address="10.0.0.1"
        )

    order = await ledger.get_order(order_id)
    assert order.status == OrderStatus.PENDING
    assert order.payment_id is None
    assert notifier.sent == []

    result = await test_db.execute(
        select(AuditLog).where(AuditLog.action == "payment_signature_invalid")
    )
    entries = result.scalars().all()
    assert len(entries) == 1
    assert entries[0].resource_id == order_id
    assert entries[0].ip_address == "10.0.0.1"
    assert good not in json.dumps(entries[0].data_json)


@pytest.mark.asyncio
async def test_unconfigured_secret_rejects_everything(ledger, place_order):
    order_id = (await place_order()).id

    with pytest.raises(SignatureInvalid):
        await PaymentVerifier(ledger, secret="").confirm(
            order_id, "pay_1", "order_abc", sign_payment("order_abc", "pay_1", "")
        )


@pytest.mark.asyncio
async def test_provider_order_id_must_match_stored_one(test_db, ledger, place_order):
    order_id = (await place_order()).id
    transport = httpx.MockTransport(
        lambda request: httpx.Response(200, json={"id": "order_real", "amount": 80000, "currency": "INR"})
    )
    gateway = PaymentGateway(test_db, key_id="key", key_secret=SECRET, transport=transport)
    await gateway.create_provider_order(await ledger.get_order(order_id))

    forged = sign_payment("order_other", "pay_1", SECRET)
    with pytest.raises(SignatureInvalid):
        await PaymentVerifier(ledger, secret=SECRET).confirm(order_id, "pay_1", "order_other", forged)

    genuine = sign_payment("order_real", "pay_1", SECRET)
    order = await PaymentVerifier(ledger, secret=SECRET).confirm(order_id, "pay_1", "order_real", genuine)
    assert order.status == OrderStatus.CONFIRMED


@pytest.mark.asyncio
async def test_create_provider_order(ledger_db, ledger, place_order):
    order = await place_order()
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = str(request.url)
        captured["auth"] = request.headers["authorization"]
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json={"id": "order_xyz", "amount": 80000, "currency": "INR"})

    gateway = PaymentGateway(
        ledger_db,
        key_id="rzp_test_key",
        key_secret=SECRET,
        base_url="https://payments.example/v1",
        transport=httpx.MockTransport(handler),
    )
    data = await gateway.create_provider_order(order)

    assert data["id"] == "order_xyz"
    assert captured["url"] == "https://payments.example/v1/orders"
    assert captured["auth"].startswith("Basic ")
    assert captured["body"]["amount"] == order.final_paise
    assert captured["body"]["currency"] == "INR"
    assert captured["body"]["receipt"] == order.order_number

    order = await ledger.get_order(order.id)
    assert order.provider_order_id == "order_xyz"


@pytest.mark.asyncio
async def test_gateway_not_configured(ledger_db, place_order):
    order = await place_order()

    with pytest.raises(PaymentGatewayUnavailable):
        await PaymentGateway(ledger_db, key_id="", key_secret="").create_provider_order(order)


@pytest.mark.asyncio
async def test_gateway_requires_pending_order(ledger_db, ledger, place_order, test_admin):
    order = await place_order()
    order = await ledger.transition(order.id, OrderStatus.CONFIRMED, test_admin.id)
    gateway = PaymentGateway(
        ledger_db,
        key_id="key",
        key_secret=SECRET,
        transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"id": "x"})),
    )

    with pytest.raises(InvalidTransition):
        await gateway.create_provider_order(order)


@pytest.mark.asyncio
async def test_gateway_provider_failure(ledger_db, place_order):
    order = await place_order()
    gateway = PaymentGateway(
        ledger_db,
        key_id="key",
        key_secret=SECRET,
        transport=httpx.MockTransport(lambda request: httpx.Response(500, json={"error": "down"})),
    )

    with pytest.raises(PaymentGatewayError):
        await gateway.create_provider_order(order)
