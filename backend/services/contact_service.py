# backend/services/contact_service.py

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List

from backend.errors import Conflict, NotFound
from backend.models.contact_models import ContactCreateRequest
from backend.mongo import mongo, public_doc, to_object_id
from backend.services.grain_service import GrainService
from backend.services.user_service import UserService, ids_of

logger = logging.getLogger(__name__)

PARTY_FIELDS = ("name", "email", "role")


class ContactService:

    @staticmethod
    def _present(contacts: List[dict]) -> List[Dict[str, Any]]:
        users = UserService.summaries(ids_of(contacts, "fromUserId", "toUserId"), PARTY_FIELDS)
        grains = GrainService.summaries(ids_of(contacts, "grainId"))
        rows = []
        for c in contacts:
            row = public_doc(c)
            row["grain"] = grains.get(c.get("grainId"))
            row["fromUser"] = users.get(c.get("fromUserId"))
            row["toUser"] = users.get(c.get("toUserId"))
            rows.append(row)
        return rows

    @staticmethod
    def send(sender_id: str, req: ContactCreateRequest) -> Dict[str, Any]:
        grain = mongo.db.grains.find_one({"_id": to_object_id(req.grainId)}, {"farmerId": 1})
        if not grain:
            raise NotFound("Grain not found")
        if grain["farmerId"] == sender_id:
            raise Conflict("You cannot send a message to yourself")

        now = datetime.now(timezone.utc)
        doc = {
            "grainId": str(grain["_id"]),
            "fromUserId": sender_id,
            "toUserId": grain["farmerId"],
            "subject": req.subject,
            "message": req.message,
            "contactInfo": req.contactInfo.model_dump(),
            "read": False,
            "replied": False,
            "createdAt": now,
            "updatedAt": now,
        }
        inserted = mongo.db.contacts.insert_one(doc)
        doc["_id"] = inserted.inserted_id
        logger.info("Message %s from %s to %s about listing %s", inserted.inserted_id, sender_id, doc["toUserId"], doc["grainId"])
        return ContactService._present([doc])[0]

    @staticmethod
    def received(user_id: str) -> List[Dict[str, Any]]:
        docs = list(mongo.db.contacts.find({"toUserId": user_id}).sort([("createdAt", -1), ("_id", -1)]))
        return ContactService._present(docs)

    @staticmethod
    def sent(user_id: str) -> List[Dict[str, Any]]:
        docs = list(mongo.db.contacts.find({"fromUserId": user_id}).sort([("createdAt", -1), ("_id", -1)]))
        return ContactService._present(docs)

    @staticmethod
    def mark_read(user_id: str, contact_id: str) -> None:
        oid = to_object_id(contact_id)
        # only the recipient can mark; anyone else sees "not found"
        res = mongo.db.contacts.update_one(
            {"_id": oid, "toUserId": user_id},
            {"$set": {"read": True, "updatedAt": datetime.now(timezone.utc)}},
        ) if oid else None
        if res is None or res.matched_count == 0:
            raise NotFound("Contact message not found")

    @staticmethod
    def unread_count(user_id: str) -> int:
        return mongo.db.contacts.count_documents({"toUserId": user_id, "read": False})
