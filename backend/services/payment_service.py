# backend/services/payment_service.py

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict

from flask import current_app

from backend.errors import (
    ConcurrentModification,
    Forbidden,
    GatewayError,
    InvalidSignature,
    InvalidState,
    NotFound,
    ValidationFailed,
)
from backend.models.deal_models import DealStatus
from backend.mongo import mongo
from backend.services.deal_service import DealService
from backend.services.grain_service import GrainService
from backend.services.payment_gateway import get_gateway
from backend.services.user_service import UserService

logger = logging.getLogger(__name__)

# rupees; the gateway charges in paise so anything finer is noise
AMOUNT_TOLERANCE = 0.01


class PaymentService:

    # =========================
    # CREATE ORDER
    # =========================
    @staticmethod
    def create_order(deal_id: str, amount: float, buyer_id: str) -> Dict[str, Any]:
        """
        Open a gateway order for an agreed deal and move it to payment_pending.
        A retry while the deal already waits on an order returns that order.
        """
        deal = DealService.load(deal_id)
        if deal["buyerId"] != buyer_id:
            raise Forbidden("Unauthorized to pay for this deal")

        if deal["status"] == DealStatus.PAYMENT_PENDING.value and deal.get("paymentOrderId"):
            return PaymentService._order_view(deal)

        if deal["status"] != DealStatus.AGREED.value:
            raise InvalidState("Deal must be agreed before payment")

        if abs(amount - deal["totalAmount"]) > AMOUNT_TOLERANCE:
            raise ValidationFailed(
                "Payment amount does not match the deal total",
                [{"field": "amount", "message": f"expected {deal['totalAmount']:.2f}"}],
            )

        currency = current_app.config["PAYMENT_CURRENCY"]
        amount_minor = int(round(deal["totalAmount"] * 100))
        grain = GrainService.summaries([deal["grainId"]]).get(deal["grainId"]) or {}

        order = get_gateway().create_order(
            amount_minor,
            currency,
            receipt=f"deal_{deal['_id']}",
            notes={
                "dealId": str(deal["_id"]),
                "buyerId": deal["buyerId"],
                "farmerId": deal["farmerId"],
                "grainType": grain.get("grainType", ""),
                "quantity": str(deal["quantity"]),
            },
        )
        order_id = order.get("id")
        if not order_id:
            raise GatewayError("Payment gateway returned an order without id")

        updated = DealService.swap(
            deal,
            DealStatus.PAYMENT_PENDING,
            buyer_id,
            {
                "paymentOrderId": order_id,
                "paymentId": order_id,
                "paymentAmount": amount_minor,
                "paymentCurrency": currency,
            },
        )
        if updated is None:
            fresh = DealService.load(deal_id)
            if fresh["status"] == DealStatus.PAYMENT_PENDING.value and fresh.get("paymentOrderId"):
                # a parallel request opened its own order first; ours is never paid
                logger.warning("Deal %s: discarding duplicate gateway order %s", deal_id, order_id)
                return PaymentService._order_view(fresh)
            raise ConcurrentModification("Deal was modified concurrently, please retry")

        logger.info("Deal %s payment order %s created (%d %s)", deal_id, order_id, amount_minor, currency)
        return PaymentService._order_view(updated)

    @staticmethod
    def _order_view(deal: dict) -> Dict[str, Any]:
        parties = UserService.summaries([deal["buyerId"], deal["farmerId"]], ("name",))
        grain = GrainService.summaries([deal["grainId"]]).get(deal["grainId"]) or {}
        return {
            "orderId": deal["paymentOrderId"],
            "amount": deal.get("paymentAmount", int(round(deal["totalAmount"] * 100))),
            "currency": deal.get("paymentCurrency", current_app.config["PAYMENT_CURRENCY"]),
            "keyId": current_app.config["RAZORPAY_KEY_ID"],
            "dealId": str(deal["_id"]),
            "buyerName": (parties.get(deal["buyerId"]) or {}).get("name"),
            "farmerName": (parties.get(deal["farmerId"]) or {}).get("name"),
            "grainDetails": {
                "type": grain.get("grainType"),
                "quantity": deal["quantity"],
                "price": deal["agreedPrice"],
            },
        }

    # =========================
    # VERIFY
    # =========================
    @staticmethod
    def verify_callback(order_id: str, payment_id: str, signature: str, deal_id: str, buyer_id: str) -> Dict[str, Any]:
        if not get_gateway().verify_signature(order_id, payment_id, signature):
            logger.warning("Deal %s: rejected payment %s with a bad signature", deal_id, payment_id)
            raise InvalidSignature()

        deal = DealService.load(deal_id)
        if deal["buyerId"] != buyer_id:
            raise Forbidden("Unauthorized to verify payment for this deal")

        if deal["status"] == DealStatus.PAID.value and deal.get("paymentId") == payment_id:
            return PaymentService._paid_view(deal)

        if deal.get("paymentOrderId") != order_id:
            raise InvalidState("Payment order does not belong to this deal")
        if deal["status"] != DealStatus.PAYMENT_PENDING.value:
            raise InvalidState("Deal is not awaiting payment")

        updated = DealService.swap(
            deal,
            DealStatus.PAID,
            buyer_id,
            {"paymentId": payment_id, "paidAt": datetime.now(timezone.utc)},
        )
        if updated is None:
            fresh = DealService.load(deal_id)
            if fresh["status"] == DealStatus.PAID.value and fresh.get("paymentId") == payment_id:
                return PaymentService._paid_view(fresh)
            raise ConcurrentModification("Deal was modified concurrently, please retry")

        logger.info("Deal %s paid (payment %s, order %s)", deal_id, payment_id, order_id)
        return PaymentService._paid_view(updated)

    @staticmethod
    def _paid_view(deal: dict) -> Dict[str, Any]:
        return {
            "message": "Payment verified successfully",
            "paymentId": deal["paymentId"],
            "dealId": str(deal["_id"]),
            "status": deal["status"],
        }

    # =========================
    # DETAILS
    # =========================
    @staticmethod
    def fetch_payment_details(payment_id: str, requester_id: str) -> Dict[str, Any]:
        deal = mongo.db.deals.find_one({"$or": [{"paymentId": payment_id}, {"paymentOrderId": payment_id}]})
        if not deal:
            raise NotFound("Payment not found")
        if not DealService.is_party(deal, requester_id):
            raise Forbidden("Unauthorized to view this payment")

        result: Dict[str, Any] = {"deal": DealService.present([deal])[0]}

        # before verification only the order exists upstream
        if deal["paymentId"] == deal.get("paymentOrderId"):
            result["payment"] = {"id": payment_id, "status": "created"}
            return result

        try:
            payment = get_gateway().fetch_payment(deal["paymentId"])
        except GatewayError as e:
            logger.warning("Payment %s lookup failed: %s", deal["paymentId"], e.message)
            result["payment"] = {"id": deal["paymentId"], "status": "unknown", "message": "Payment details unavailable"}
            return result

        created = payment.get("created_at")
        result["payment"] = {
            "id": payment.get("id", deal["paymentId"]),
            "amount": (payment.get("amount") or 0) / 100,
            "currency": payment.get("currency"),
            "status": payment.get("status"),
            "method": payment.get("method"),
            "createdAt": datetime.fromtimestamp(created, timezone.utc).isoformat() if created else None,
            "description": payment.get("description"),
        }
        return result
