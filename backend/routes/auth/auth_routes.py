# backend/routes/auth/auth_routes.py

from __future__ import annotations

from flask import Blueprint, jsonify, request

from backend.auth import auth_required, current_role, current_user_id
from backend.models.user_models import LoginRequest, ProfileUpdateRequest, RegisterRequest
from backend.services.auth_service import AuthService
from backend.services.user_service import UserService

# -------------------------------------------------------------------
# Blueprint
# -------------------------------------------------------------------
auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


@auth_bp.post("/register")
def register():
    req = RegisterRequest.model_validate(request.get_json(silent=True) or {})
    user, token = AuthService.register(req)
    return jsonify(message="User registered successfully", token=token, user=user), 201


@auth_bp.post("/login")
def login():
    req = LoginRequest.model_validate(request.get_json(silent=True) or {})
    user, token = AuthService.login(req)
    return jsonify(message="Login successful", token=token, user=user), 200


# -------------------------------------------------------------------
# Profile (token holder only)
# -------------------------------------------------------------------
@auth_bp.get("/profile")
@auth_required
def get_profile():
    return jsonify(user=UserService.get_user(current_user_id())), 200


@auth_bp.put("/profile")
@auth_required
def update_profile():
    req = ProfileUpdateRequest.model_validate(request.get_json(silent=True) or {})
    user = AuthService.update_profile(current_user_id(), current_role(), req)
    return jsonify(message="Profile updated successfully", user=user), 200
