# backend/services/user_service.py

from __future__ import annotations

import math
from typing import Any, Dict, Iterable, List

from backend.errors import NotFound
from backend.mongo import mongo, to_object_id

# fields embedded when a deal / listing / message shows its counterparties
SUMMARY_FIELDS = ("name", "email", "phone", "role", "verified")


class UserService:

    # =========================
    # SHAPES
    # =========================
    @staticmethod
    def public_user(u: dict) -> Dict[str, Any]:
        """Safe subset of a user document (never the password hash)."""
        created = u.get("createdAt")
        return {
            "id": str(u["_id"]),
            "name": u.get("name", ""),
            "email": u.get("email", ""),
            "phone": u.get("phone", ""),
            "role": u.get("role", ""),
            "profile": dict(u.get("profile") or {}, role=u.get("role", "")),
            "verified": bool(u.get("verified", False)),
            "avatar": u.get("avatar"),
            "createdAt": created.isoformat() if created else None,
        }

    @staticmethod
    def summaries(user_ids: Iterable[str], fields: Iterable[str] = SUMMARY_FIELDS) -> Dict[str, Dict[str, Any]]:
        """Resolve ids to small display summaries in one query."""
        oids = [oid for oid in (to_object_id(u) for u in set(user_ids)) if oid is not None]
        if not oids:
            return {}
        projection = {f: 1 for f in fields}
        out = {}
        for u in mongo.db.users.find({"_id": {"$in": oids}}, projection):
            summary = {f: u.get(f) for f in fields}
            summary["id"] = str(u["_id"])
            out[summary["id"]] = summary
        return out

    # =========================
    # READ
    # =========================
    @staticmethod
    def get_user(user_id: str) -> Dict[str, Any]:
        oid = to_object_id(user_id)
        u = mongo.db.users.find_one({"_id": oid}, {"password": 0}) if oid else None
        if not u:
            raise NotFound("User not found")
        return UserService.public_user(u)

    @staticmethod
    def list_farmers(page: int, limit: int) -> Dict[str, Any]:
        query = {"role": "farmer"}
        skip = (page - 1) * limit

        docs = list(
            mongo.db.users.find(query, {"password": 0})
            .sort([("createdAt", -1), ("_id", -1)])
            .skip(skip)
            .limit(limit)
        )
        total = mongo.db.users.count_documents(query)

        return {
            "farmers": [UserService.public_user(d) for d in docs],
            "pagination": pagination(page, limit, total),
        }


def pagination(page: int, limit: int, total: int) -> Dict[str, Any]:
    total_pages = math.ceil(total / limit) if limit else 0
    return {
        "currentPage": page,
        "totalPages": total_pages,
        "totalItems": total,
        "itemsPerPage": limit,
        "hasNextPage": page < total_pages,
        "hasPrevPage": page > 1,
    }


def ids_of(docs: List[dict], *keys: str) -> List[str]:
    return [d[k] for d in docs for k in keys if d.get(k)]
