# backend/routes/deals/deal_routes.py

from __future__ import annotations

from flask import Blueprint, jsonify, request

from backend.auth import auth_required, current_role, current_user_id, role_required
from backend.models.deal_models import DealCreateRequest, DealStatusUpdateRequest
from backend.services.deal_service import DealService

deals_bp = Blueprint("deals", __name__, url_prefix="/deals")


@deals_bp.post("")
@role_required("buyer")
def create_deal():
    req = DealCreateRequest.model_validate(request.get_json(silent=True) or {})
    deal = DealService.create_deal(current_user_id(), req)
    return jsonify(message="Deal created successfully", deal=deal), 201


@deals_bp.get("/my-deals")
@auth_required
def my_deals():
    return jsonify(DealService.list_deals_for_user(current_user_id(), current_role())), 200


@deals_bp.put("/<deal_id>/status")
@auth_required
def update_status(deal_id: str):
    req = DealStatusUpdateRequest.model_validate(request.get_json(silent=True) or {})
    deal = DealService.set_status(
        deal_id,
        current_user_id(),
        current_role(),
        req.status,
        delivery_date=req.deliveryDate,
        delivery_address=req.deliveryAddress,
        notes=req.notes,
    )
    return jsonify(message="Deal status updated successfully", deal=deal), 200


@deals_bp.get("/<deal_id>")
@auth_required
def get_deal(deal_id: str):
    return jsonify(DealService.get_deal(deal_id, current_user_id())), 200
