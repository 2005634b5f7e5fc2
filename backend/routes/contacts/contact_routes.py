# backend/routes/contacts/contact_routes.py

from flask import Blueprint, jsonify, request

from backend.auth import auth_required, current_user_id
from backend.models.contact_models import ContactCreateRequest
from backend.services.contact_service import ContactService

contacts_bp = Blueprint("contacts", __name__, url_prefix="/contacts")


@contacts_bp.post("")
@auth_required
def send_message():
    req = ContactCreateRequest.model_validate(request.get_json(silent=True) or {})
    contact = ContactService.send(current_user_id(), req)
    return jsonify(message="Contact message sent successfully", contact=contact), 201


@contacts_bp.get("/received")
@auth_required
def received():
    return jsonify(ContactService.received(current_user_id())), 200


@contacts_bp.get("/sent")
@auth_required
def sent():
    return jsonify(ContactService.sent(current_user_id())), 200


@contacts_bp.put("/<contact_id>/read")
@auth_required
def mark_read(contact_id: str):
    ContactService.mark_read(current_user_id(), contact_id)
    return jsonify(message="Message marked as read"), 200


@contacts_bp.get("/unread-count")
@auth_required
def unread_count():
    return jsonify(count=ContactService.unread_count(current_user_id())), 200
