# backend/routes/users/user_routes.py

from flask import Blueprint, jsonify, request

from backend.models.user_models import UserListQuery
from backend.services.user_service import UserService

users_bp = Blueprint("users", __name__, url_prefix="/users")


# declared before /<user_id> so "farmers" is never taken for an id
@users_bp.get("/farmers/list")
def list_farmers():
    q = UserListQuery.model_validate(request.args.to_dict())
    return jsonify(UserService.list_farmers(q.page, q.limit)), 200


@users_bp.get("/<user_id>")
def get_user(user_id: str):
    return jsonify(UserService.get_user(user_id)), 200
