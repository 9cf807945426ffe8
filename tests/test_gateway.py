"""Midtrans client against a mocked HTTP transport."""

import base64
import hashlib
import json

import httpx
import pytest

from paybridge.common.errors import UpstreamGatewayError
from paybridge.common.gateway import MidtransGateway, notification_signature

SERVER_KEY = "SB-Mid-server-unit"
ORDER_ID = "ORDER-1700000000000-abc123def456"


def signed_notification(**overrides) -> dict:
    payload = {
        "order_id": ORDER_ID,
        "status_code": "200",
        "gross_amount": "150000.00",
        "transaction_status": "settlement",
        "transaction_id": "9aed5972-5b6a-401e-894b-a32c91ed1a3a",
    }
    payload.update(overrides)
    payload.setdefault(
        "signature_key",
        notification_signature(payload["order_id"], payload["status_code"], payload["gross_amount"], SERVER_KEY),
    )
    return payload


class Recorder:
    """MockTransport handler returning canned responses in order."""

    def __init__(self, *responses: httpx.Response) -> None:
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responses.pop(0)


def make_gateway(recorder: Recorder, is_production: bool = False) -> MidtransGateway:
    return MidtransGateway(SERVER_KEY, is_production=is_production, transport=httpx.MockTransport(recorder))


def test_signature_matches_sha512_of_signed_fields():
    expected = hashlib.sha512(f"{ORDER_ID}200150000.00{SERVER_KEY}".encode()).hexdigest()
    assert notification_signature(ORDER_ID, "200", "150000.00", SERVER_KEY) == expected


@pytest.mark.asyncio
async def test_create_session_posts_to_snap_with_server_key():
    recorder = Recorder(httpx.Response(201, json={"token": "tok-1", "redirect_url": "https://x/tok-1"}))
    gateway = make_gateway(recorder)

    result = await gateway.create_session({"transaction_details": {"order_id": ORDER_ID, "gross_amount": 1}})
    await gateway.close()

    assert result["token"] == "tok-1"
    request = recorder.requests[0]
    assert request.method == "POST"
    assert str(request.url) == "https://app.sandbox.midtrans.com/snap/v1/transactions"
    assert request.headers["authorization"] == "Basic " + base64.b64encode(f"{SERVER_KEY}:".encode()).decode()
    assert json.loads(request.content)["transaction_details"]["order_id"] == ORDER_ID


@pytest.mark.asyncio
async def test_production_flag_selects_production_hosts():
    recorder = Recorder(httpx.Response(201, json={"token": "tok-1"}))
    gateway = make_gateway(recorder, is_production=True)

    await gateway.create_session({})

    assert recorder.requests[0].url.host == "app.midtrans.com"
    assert gateway.core_url == "https://api.midtrans.com"


@pytest.mark.asyncio
async def test_create_session_rejection_raises_upstream_error():
    recorder = Recorder(httpx.Response(401, json={"error_messages": ["Access denied due to unauthorized transaction"]}))
    gateway = make_gateway(recorder)

    with pytest.raises(UpstreamGatewayError) as excinfo:
        await gateway.create_session({})
    assert excinfo.value.details == ["Access denied due to unauthorized transaction"]


@pytest.mark.asyncio
async def test_create_session_transport_error_raises_upstream_error():
    def boom(request):
        raise httpx.ConnectError("connection refused", request=request)

    gateway = MidtransGateway(SERVER_KEY, transport=httpx.MockTransport(boom))
    with pytest.raises(UpstreamGatewayError):
        await gateway.create_session({})


@pytest.mark.asyncio
async def test_verify_notification_refetches_status():
    status_body = {
        "status_code": "200",
        "order_id": ORDER_ID,
        "transaction_status": "capture",
        "fraud_status": "accept",
        "gross_amount": "150000.00",
        "payment_type": "credit_card",
    }
    recorder = Recorder(httpx.Response(200, json=status_body))
    gateway = make_gateway(recorder)

    status = await gateway.verify_notification(json.dumps(signed_notification()).encode())

    assert status.order_id == ORDER_ID
    assert status.transaction_status == "capture"
    assert status.fraud_status == "accept"
    assert status.model_dump()["payment_type"] == "credit_card"
    assert str(recorder.requests[0].url) == (
        "https://api.sandbox.midtrans.com/v2/9aed5972-5b6a-401e-894b-a32c91ed1a3a/status"
    )


@pytest.mark.asyncio
async def test_verify_notification_accepts_expired_status_code():
    recorder = Recorder(
        httpx.Response(200, json={"status_code": "407", "order_id": ORDER_ID, "transaction_status": "expire"})
    )
    gateway = make_gateway(recorder)

    status = await gateway.verify_notification(json.dumps(signed_notification()).encode())
    assert status.transaction_status == "expire"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [
        b"not json",
        b"[1, 2]",
        json.dumps(signed_notification(signature_key="0" * 128)).encode(),
        json.dumps({"order_id": ORDER_ID, "transaction_status": "settlement"}).encode(),
    ],
)
async def test_verify_notification_rejects_before_calling_gateway(body):
    recorder = Recorder()
    gateway = make_gateway(recorder)

    with pytest.raises(UpstreamGatewayError):
        await gateway.verify_notification(body)
    assert recorder.requests == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, json={"status_code": "404", "status_message": "Transaction doesn't exist."}),
        httpx.Response(500, json={"status_message": "Internal server error"}),
        httpx.Response(200, text="<html>"),
        httpx.Response(200, json={"status_code": "200", "order_id": "ORDER-other", "transaction_status": "settlement"}),
        httpx.Response(200, json={"status_code": "200", "order_id": ORDER_ID}),
    ],
)
async def test_verify_notification_rejects_bad_status_lookup(response):
    gateway = make_gateway(Recorder(response))

    with pytest.raises(UpstreamGatewayError):
        await gateway.verify_notification(json.dumps(signed_notification()).encode())
