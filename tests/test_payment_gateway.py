"""Gateway REST client — auth, retries, error mapping, signatures."""

import hashlib
import hmac
from unittest.mock import MagicMock

import pytest
import requests

from backend.errors import GatewayError, GatewayUnavailable
from backend.services.payment_gateway import RazorpayClient


def _resp(status, body=None, text=None):
    resp = MagicMock(spec=requests.Response)
    resp.status_code = status
    if body is None:
        resp.json.side_effect = ValueError(text or "not json")
    else:
        resp.json.return_value = body
    return resp


def _client(*responses, **kwargs):
    session = MagicMock(spec=requests.Session)
    session.request.side_effect = list(responses)
    params = dict(timeout=3, max_retries=3, backoff=0)
    params.update(kwargs)
    return RazorpayClient("https://api.example.test/v1/", "key_id", "key_secret", session=session, **params), session


def test_create_order_posts_with_basic_auth_and_timeout():
    client, session = _client(_resp(200, {"id": "order_1", "amount": 1500}))

    order = client.create_order(1500, "INR", "deal_abc", {"dealId": "abc"})

    assert order["id"] == "order_1"
    args, kwargs = session.request.call_args
    assert args == ("POST", "https://api.example.test/v1/orders")
    assert kwargs["auth"] == ("key_id", "key_secret")
    assert kwargs["timeout"] == 3
    assert kwargs["json"] == {"amount": 1500, "currency": "INR", "receipt": "deal_abc", "notes": {"dealId": "abc"}}


def test_retries_transient_statuses_then_succeeds():
    client, session = _client(_resp(503, {}), _resp(502, {}), _resp(200, {"id": "pay_1"}))

    assert client.fetch_payment("pay_1")["id"] == "pay_1"
    assert session.request.call_count == 3


def test_retries_network_errors_then_gives_up():
    client, session = _client(
        requests.ConnectionError("refused"),
        requests.Timeout("slow"),
        requests.ConnectionError("refused"),
    )

    with pytest.raises(GatewayUnavailable):
        client.fetch_payment("pay_1")
    assert session.request.call_count == 3


def test_client_errors_are_not_retried():
    body = {"error": {"code": "BAD_REQUEST_ERROR", "description": "The id provided does not exist"}}
    client, session = _client(_resp(400, body))

    with pytest.raises(GatewayError) as exc:
        client.fetch_payment("pay_missing")
    assert "does not exist" in exc.value.message
    assert session.request.call_count == 1


def test_non_json_response_is_gateway_error():
    client, _ = _client(_resp(200, text="<html>proxy</html>"))
    with pytest.raises(GatewayError):
        client.create_order(100, "INR", "r", {})


def test_unconfigured_client_never_calls_out():
    session = MagicMock(spec=requests.Session)
    client = RazorpayClient("https://api.example.test/v1", "", "", session=session)

    with pytest.raises(GatewayError):
        client.create_order(100, "INR", "r", {})
    session.request.assert_not_called()


def test_signature_is_hmac_sha256_of_order_and_payment():
    client, _ = _client()
    expected = hmac.new(b"key_secret", b"order_1|pay_1", hashlib.sha256).hexdigest()

    assert client.signature_for("order_1", "pay_1") == expected
    assert client.verify_signature("order_1", "pay_1", expected)
    assert not client.verify_signature("order_1", "pay_2", expected)
    assert not client.verify_signature("order_1", "pay_1", expected.upper())
    assert not client.verify_signature("order_1", "pay_1", "")


def test_verify_without_secret_always_fails():
    client = RazorpayClient("https://api.example.test/v1", "key_id", "")
    forged = hmac.new(b"", b"order_1|pay_1", hashlib.sha256).hexdigest()
    assert not client.verify_signature("order_1", "pay_1", forged)
