# backend/auth.py

from __future__ import annotations

from datetime import timedelta
from functools import wraps

from flask import jsonify
from flask_bcrypt import Bcrypt
from flask_jwt_extended import (
    JWTManager,
    create_access_token,
    current_user,
    jwt_required,
)

from backend.errors import Forbidden
from backend.mongo import mongo, to_object_id

jwt = JWTManager()
bcrypt = Bcrypt()


def init_auth(app):
    app.config["JWT_ACCESS_TOKEN_EXPIRES"] = timedelta(days=app.config["JWT_ACCESS_TOKEN_DAYS"])
    app.config["JWT_TOKEN_LOCATION"] = ["headers"]
    app.config["JWT_HEADER_TYPE"] = "Bearer"

    jwt.init_app(app)
    bcrypt.init_app(app)


# -------------------------------------------------------------------
# Token contents: sub=<user id>, plus email + role claims
# -------------------------------------------------------------------
def issue_token(user_doc: dict) -> str:
    return create_access_token(
        identity=str(user_doc["_id"]),
        additional_claims={
            "email": user_doc.get("email", ""),
            "role": user_doc.get("role", ""),
        },
    )


@jwt.user_lookup_loader
def _load_user(_jwt_header, jwt_data):
    oid = to_object_id(jwt_data.get("sub"))
    if oid is None:
        return None
    return mongo.db.users.find_one({"_id": oid}, {"password": 0})


@jwt.user_lookup_error_loader
def _user_gone(_jwt_header, _jwt_data):
    return jsonify(message="Invalid token"), 401


@jwt.unauthorized_loader
def _missing_token(_reason):
    return jsonify(message="Access token required"), 401


@jwt.invalid_token_loader
def _invalid_token(_reason):
    return jsonify(message="Invalid or expired token"), 403


@jwt.expired_token_loader
def _expired_token(_jwt_header, _jwt_payload):
    return jsonify(message="Invalid or expired token"), 403


# -------------------------------------------------------------------
# Route guards
# -------------------------------------------------------------------
def auth_required(fn):
    """Bearer token required; the user document is available as `current_user`."""
    return jwt_required()(fn)


def role_required(*roles: str):
    def decorator(fn):
        @wraps(fn)
        @jwt_required()
        def wrapper(*args, **kwargs):
            if current_user.get("role") not in roles:
                raise Forbidden(f"Access denied. Required role: {' or '.join(roles)}")
            return fn(*args, **kwargs)
        return wrapper
    return decorator


def current_user_id() -> str:
    return str(current_user["_id"])


def current_role() -> str:
    return current_user.get("role", "")
