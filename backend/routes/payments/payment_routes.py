# backend/routes/payments/payment_routes.py

from __future__ import annotations

from flask import Blueprint, jsonify, request

from backend.auth import auth_required, current_user_id, role_required
from backend.models.payment_models import CreateOrderRequest, VerifyPaymentRequest
from backend.services.payment_service import PaymentService

payments_bp = Blueprint("payments", __name__, url_prefix="/payments")


@payments_bp.post("/create-order")
@role_required("buyer")
def create_order():
    req = CreateOrderRequest.model_validate(request.get_json(silent=True) or {})
    return jsonify(PaymentService.create_order(req.dealId, req.amount, current_user_id())), 200


@payments_bp.post("/verify")
@role_required("buyer")
def verify_payment():
    """Checkout callback fields, relayed by the client after the gateway redirect."""
    req = VerifyPaymentRequest.model_validate(request.get_json(silent=True) or {})
    result = PaymentService.verify_callback(
        req.razorpay_order_id,
        req.razorpay_payment_id,
        req.razorpay_signature,
        req.dealId,
        current_user_id(),
    )
    return jsonify(result), 200


@payments_bp.get("/payment/<payment_id>")
@auth_required
def payment_details(payment_id: str):
    return jsonify(PaymentService.fetch_payment_details(payment_id, current_user_id())), 200
