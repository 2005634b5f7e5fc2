# backend/services/payment_gateway.py
from __future__ import annotations

import hashlib
import hmac
import logging
import time
from typing import Any, Dict, Optional

import requests
from flask import current_app

from backend.errors import GatewayError, GatewayUnavailable

logger = logging.getLogger(__name__)

# Retry these (typical transient / gateway)
RETRY_STATUS = {502, 503, 504}


def _safe_json(resp: requests.Response) -> Optional[Dict[str, Any]]:
    """
    Return JSON dict if response body is JSON, else None.
    Handles HTML error pages from proxies safely.
    """
    try:
        data = resp.json()
    except ValueError:
        return None
    return data if isinstance(data, dict) else {"data": data}


class RazorpayClient:
    """
    Thin REST client for the payment gateway.

    Amounts are in the gateway's minor unit (paise). Every call has a
    bounded timeout; 502/503/504 and network errors are retried with
    exponential backoff before GatewayUnavailable is raised.
    """

    def __init__(
        self,
        base_url: str,
        key_id: str,
        key_secret: str,
        timeout: float = 10,
        max_retries: int = 2,
        backoff: float = 0.6,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = (base_url or "").rstrip("/")
        self.key_id = key_id or ""
        self._key_secret = key_secret or ""
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.backoff = backoff
        self.session = session or requests.Session()

    # =========================
    # SIGNATURES
    # =========================
    def signature_for(self, order_id: str, payment_id: str) -> str:
        msg = f"{order_id}|{payment_id}"
        return hmac.new(self._key_secret.encode(), msg.encode(), hashlib.sha256).hexdigest()

    def verify_signature(self, order_id: str, payment_id: str, signature: str) -> bool:
        if not self._key_secret:
            logger.warning("Payment signature check attempted without RAZORPAY_KEY_SECRET")
            return False
        expected = self.signature_for(order_id, payment_id)
        return hmac.compare_digest(expected.encode(), (signature or "").encode())

    # =========================
    # API
    # =========================
    def create_order(self, amount_minor: int, currency: str, receipt: str, notes: Dict[str, str]) -> Dict[str, Any]:
        payload = {
            "amount": int(amount_minor),
            "currency": currency,
            "receipt": receipt,
            "notes": notes,
        }
        return self._request("POST", "/orders", json=payload)

    def fetch_payment(self, payment_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/payments/{payment_id}")

    def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        if not self.key_id or not self._key_secret:
            raise GatewayError("Payment gateway is not configured")

        url = f"{self.base_url}{path}"
        last_err: Optional[str] = None

        for attempt in range(1, self.max_retries + 1):
            try:
                resp = self.session.request(
                    method,
                    url,
                    auth=(self.key_id, self._key_secret),
                    timeout=self.timeout,
                    **kwargs,
                )
            except (requests.Timeout, requests.ConnectionError) as e:
                last_err = f"Network error on {method} {path}: {e}"
                logger.warning("%s (attempt %d/%d)", last_err, attempt, self.max_retries)
                self._sleep(attempt)
                continue

            if resp.status_code in RETRY_STATUS:
                last_err = f"Upstream error {resp.status_code} on {method} {path}"
                logger.warning("%s (attempt %d/%d)", last_err, attempt, self.max_retries)
                self._sleep(attempt)
                continue

            data = _safe_json(resp)
            if data is None:
                raise GatewayError(f"Payment gateway returned non-JSON response ({resp.status_code})")

            if resp.status_code >= 400:
                err = data.get("error") if isinstance(data.get("error"), dict) else {}
                msg = err.get("description") or data.get("message") or "Request failed"
                raise GatewayError(f"Payment gateway error: {msg} (HTTP {resp.status_code})")

            return data

        raise GatewayUnavailable(f"Payment gateway not responding. Last: {last_err}")

    def _sleep(self, attempt: int) -> None:
        if attempt < self.max_retries and self.backoff:
            time.sleep(self.backoff * (2 ** (attempt - 1)))


def init_gateway(app):
    app.extensions["payment_gateway"] = RazorpayClient(
        base_url=app.config["RAZORPAY_API_BASE"],
        key_id=app.config["RAZORPAY_KEY_ID"],
        key_secret=app.config["RAZORPAY_KEY_SECRET"],
        timeout=app.config["PAYMENT_GATEWAY_TIMEOUT"],
        max_retries=app.config["PAYMENT_GATEWAY_MAX_RETRIES"],
    )


def get_gateway() -> RazorpayClient:
    return current_app.extensions["payment_gateway"]
