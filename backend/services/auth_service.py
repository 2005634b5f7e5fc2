# backend/services/auth_service.py

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Tuple

from pymongo.errors import DuplicateKeyError

from backend.auth import bcrypt, issue_token
from backend.errors import AuthError, Conflict, NotFound, ValidationFailed
from backend.models.user_models import (
    PROFILE_FIELDS,
    LoginRequest,
    ProfileUpdateRequest,
    RegisterRequest,
)
from backend.mongo import mongo, to_object_id
from backend.services.user_service import UserService

logger = logging.getLogger(__name__)


class AuthService:

    @staticmethod
    def register(req: RegisterRequest) -> Tuple[Dict[str, Any], str]:
        if mongo.db.users.find_one({"email": req.email}, {"_id": 1}):
            raise Conflict("User with this email already exists")

        now = datetime.now(timezone.utc)
        profile = req.profile().model_dump(exclude={"role"}, exclude_none=True)

        user_doc = {
            "name": req.name,
            "email": req.email,
            "password": bcrypt.generate_password_hash(req.password).decode("utf-8"),
            "phone": req.phone,
            "role": req.role,
            "profile": profile,
            "verified": False,
            "avatar": None,
            "createdAt": now,
            "updatedAt": now,
        }

        try:
            inserted = mongo.db.users.insert_one(user_doc)
        except DuplicateKeyError:
            # lost a race with a concurrent registration on the unique index
            raise Conflict("User with this email already exists")
        user_doc["_id"] = inserted.inserted_id

        logger.info("Registered %s %s", req.role, inserted.inserted_id)
        return UserService.public_user(user_doc), issue_token(user_doc)

    @staticmethod
    def login(req: LoginRequest) -> Tuple[Dict[str, Any], str]:
        user = mongo.db.users.find_one({"email": req.email})
        # same answer for unknown email and wrong password
        if not user or not bcrypt.check_password_hash(user["password"], req.password):
            raise AuthError("Invalid email or password")

        return UserService.public_user(user), issue_token(user)

    @staticmethod
    def update_profile(user_id: str, role: str, req: ProfileUpdateRequest) -> Dict[str, Any]:
        patch: Dict[str, Any] = {}
        if req.name:
            patch["name"] = req.name
        if req.phone:
            patch["phone"] = req.phone

        sent = req.model_dump(exclude_unset=True)
        allowed = PROFILE_FIELDS.get(role, ())
        foreign = [f for fields in PROFILE_FIELDS.values() for f in fields if f in sent and f not in allowed]
        if foreign:
            raise ValidationFailed(
                "Validation failed",
                [{"field": f, "message": f"not a {role} profile field"} for f in foreign],
            )
        for f in allowed:
            if f in sent:
                patch[f"profile.{f}"] = sent[f]

        oid = to_object_id(user_id)
        if patch:
            patch["updatedAt"] = datetime.now(timezone.utc)
            mongo.db.users.update_one({"_id": oid}, {"$set": patch})

        user = mongo.db.users.find_one({"_id": oid}, {"password": 0})
        if not user:
            raise NotFound("User not found")
        return UserService.public_user(user)
