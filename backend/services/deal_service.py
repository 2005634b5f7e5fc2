# backend/services/deal_service.py
"""
Deal engine: owns the deal status field and the stock it holds on a listing.

Stock model
    agreed      reserves the deal quantity (listing.availableQuantity -= qty,
                deal.reservedQuantity = qty)
    completed   consumes the reservation, or takes the stock directly when
                nothing was reserved
    cancelled   hands a held reservation back to the listing

Every status change is a compare-and-swap on (status, version). Stock moves
are conditional updates on the listing. Stock is taken before the swap and
handed back if the swap loses, so a deal never claims stock the listing did
not give up.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from flask import current_app
from pymongo import ReturnDocument

from backend.errors import (
    ConcurrentModification,
    Forbidden,
    InsufficientQuantity,
    InvalidTransition,
    NotFound,
    SelfDealing,
    Unavailable,
)
from backend.models.deal_models import (
    PAYMENT_ONLY_STATUSES,
    TERMINAL_STATUSES,
    TRANSITIONS,
    DealCreateRequest,
    DealStatus,
)
from backend.models.grain_models import ListingStatus
from backend.mongo import mongo, public_doc, to_object_id
from backend.services.grain_service import EPS, GrainService
from backend.services.user_service import UserService, ids_of

logger = logging.getLogger(__name__)


class DealService:

    # =========================
    # LOOKUPS
    # =========================
    @staticmethod
    def load(deal_id: str) -> dict:
        oid = to_object_id(deal_id)
        deal = mongo.db.deals.find_one({"_id": oid}) if oid else None
        if not deal:
            raise NotFound("Deal not found")
        return deal

    @staticmethod
    def is_party(deal: dict, user_id: str) -> bool:
        return user_id in (deal.get("farmerId"), deal.get("buyerId"))

    @staticmethod
    def present(deals: List[dict]) -> List[Dict[str, Any]]:
        """Deals with listing and party summaries resolved by lookup."""
        users = UserService.summaries(ids_of(deals, "farmerId", "buyerId"))
        grains = GrainService.summaries(ids_of(deals, "grainId"))
        rows = []
        for d in deals:
            row = public_doc(d)
            row["grain"] = grains.get(d.get("grainId"))
            row["farmer"] = users.get(d.get("farmerId"))
            row["buyer"] = users.get(d.get("buyerId"))
            rows.append(row)
        return rows

    # =========================
    # CREATE
    # =========================
    @staticmethod
    def create_deal(buyer_id: str, req: DealCreateRequest) -> Dict[str, Any]:
        grain = mongo.db.grains.find_one({"_id": to_object_id(req.grainId)})
        if not grain:
            raise NotFound("Grain not found")

        if grain.get("status") != ListingStatus.AVAILABLE.value:
            raise Unavailable("Grain is not available")

        if req.quantity > grain.get("availableQuantity", 0) + EPS:
            raise InsufficientQuantity(
                f"Requested quantity exceeds available quantity ({grain.get('availableQuantity', 0)} quintals)"
            )

        if grain.get("farmerId") == buyer_id:
            raise SelfDealing("You cannot buy your own grain")

        now = datetime.now(timezone.utc)
        deal = {
            "grainId": str(grain["_id"]),
            "farmerId": grain["farmerId"],
            "buyerId": buyer_id,
            "quantity": req.quantity,
            "agreedPrice": req.agreedPrice,
            "totalAmount": round(req.quantity * req.agreedPrice, 2),
            "status": DealStatus.NEGOTIATING.value,
            "reservedQuantity": 0,
            "deliveryDate": None,
            "deliveryAddress": req.deliveryAddress,
            "paymentId": None,
            "paymentOrderId": None,
            "notes": req.notes,
            "version": 0,
            "history": [{"status": DealStatus.NEGOTIATING.value, "by": buyer_id, "at": now}],
            "createdAt": now,
            "updatedAt": now,
        }
        inserted = mongo.db.deals.insert_one(deal)
        deal["_id"] = inserted.inserted_id

        logger.info(
            "Deal %s opened on listing %s: %.2f qtl @ %.2f by buyer %s",
            inserted.inserted_id, deal["grainId"], req.quantity, req.agreedPrice, buyer_id,
        )
        return DealService.present([deal])[0]

    # =========================
    # READ
    # =========================
    @staticmethod
    def get_deal(deal_id: str, requester_id: str) -> Dict[str, Any]:
        deal = DealService.load(deal_id)
        if not DealService.is_party(deal, requester_id):
            raise Forbidden("Unauthorized to view this deal")
        return DealService.present([deal])[0]

    @staticmethod
    def list_deals_for_user(user_id: str, role: str) -> List[Dict[str, Any]]:
        field = "farmerId" if role == "farmer" else "buyerId"
        deals = list(mongo.db.deals.find({field: user_id}).sort([("createdAt", -1), ("_id", -1)]))
        return DealService.present(deals)

    # =========================
    # STATUS
    # =========================
    @staticmethod
    def set_status(
        deal_id: str,
        requester_id: str,
        requester_role: str,
        new_status: DealStatus,
        delivery_date: Optional[datetime] = None,
        delivery_address: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Dict[str, Any]:
        deal = DealService.load(deal_id)
        if not DealService.is_party(deal, requester_id):
            raise Forbidden("Unauthorized to modify this deal")

        fields: Dict[str, Any] = {}
        if delivery_date is not None:
            fields["deliveryDate"] = delivery_date
        if delivery_address is not None:
            fields["deliveryAddress"] = delivery_address
        if notes is not None:
            fields["notes"] = notes

        new_status = DealStatus(new_status)
        current = DealStatus(deal["status"])

        # repeated request: nothing to move
        if current == new_status:
            if fields:
                fields["updatedAt"] = datetime.now(timezone.utc)
                mongo.db.deals.update_one({"_id": deal["_id"]}, {"$set": fields})
                deal.update(fields)
            return DealService.present([deal])[0]

        DealService._check_transition(current, new_status, requester_role)

        updated = DealService._move(deal, new_status, requester_id, fields)
        return DealService.present([updated])[0]

    @staticmethod
    def _check_transition(current: DealStatus, new_status: DealStatus, role: str) -> None:
        if current in TERMINAL_STATUSES:
            raise InvalidTransition(f"Deal is already {current.value}")

        # no role skips the signature check
        if new_status in PAYMENT_ONLY_STATUSES:
            raise InvalidTransition(f"Status '{new_status.value}' is set by the payment flow")

        if role in current_app.config.get("DEAL_STATUS_OVERRIDE_ROLES", ()):
            return
        if new_status not in TRANSITIONS[current]:
            raise InvalidTransition(f"Cannot move deal from '{current.value}' to '{new_status.value}'")

    @staticmethod
    def _move(deal: dict, new_status: DealStatus, actor_id: str, fields: Dict[str, Any]) -> dict:
        """Take the stock the new status needs, swap the status, then hand back what it releases."""
        grain_oid = to_object_id(deal["grainId"])
        quantity = deal["quantity"]
        reserved = deal.get("reservedQuantity") or 0

        take = 0.0      # stock to pull from the listing
        give_back = 0.0  # reservation to return to the listing
        new_reserved = reserved

        if new_status == DealStatus.AGREED and not reserved:
            take, new_reserved = quantity, quantity
        elif new_status == DealStatus.COMPLETED:
            take = 0.0 if reserved else quantity
            new_reserved = 0
        elif new_status in (DealStatus.CANCELLED, DealStatus.NEGOTIATING) and reserved:
            give_back, new_reserved = reserved, 0

        # the listing gives up stock before any deal may claim it
        if take and not GrainService.take_stock(grain_oid, take):
            raise InsufficientQuantity("Not enough grain available to cover this deal")

        updated = DealService.swap(deal, new_status, actor_id, dict(fields, reservedQuantity=new_reserved))
        if updated is None:
            if take:
                DealService._release(deal, grain_oid, take)
            return DealService._after_lost_race(deal, new_status)

        if take:
            logger.info("Deal %s took %.2f qtl from listing %s", deal["_id"], take, deal["grainId"])
            # reserved vs sold depends on the deal now holding the stock
            GrainService.sync_status(grain_oid)
        elif give_back:
            if GrainService.return_stock(grain_oid, give_back):
                logger.info("Deal %s returned %.2f qtl to listing %s", deal["_id"], give_back, deal["grainId"])
            else:
                logger.error("Deal %s could not return %.2f qtl to listing %s", deal["_id"], give_back, deal["grainId"])
        elif new_status == DealStatus.COMPLETED:
            # stock already left the listing at agreement; only the sold-out label may change
            GrainService.sync_status(grain_oid)

        logger.info("Deal %s %s -> %s by %s", deal["_id"], deal["status"], new_status.value, actor_id)
        return updated

    @staticmethod
    def swap(deal: dict, new_status: DealStatus, actor_id: str, fields: Dict[str, Any]) -> Optional[dict]:
        """
        Compare-and-swap the deal from the snapshot's (status, version).
        Returns the updated document, or None when another writer got there first.
        """
        now = datetime.now(timezone.utc)
        return mongo.db.deals.find_one_and_update(
            {"_id": deal["_id"], "status": deal["status"], "version": deal.get("version", 0)},
            {
                "$set": dict(fields, status=DealStatus(new_status).value, updatedAt=now),
                "$inc": {"version": 1},
                "$push": {"history": {"status": DealStatus(new_status).value, "by": actor_id, "at": now}},
            },
            return_document=ReturnDocument.AFTER,
        )

    @staticmethod
    def _after_lost_race(deal: dict, new_status: DealStatus) -> dict:
        fresh = DealService.load(str(deal["_id"]))
        if fresh["status"] == DealStatus(new_status).value:
            # a duplicate of this request won; its effects already applied
            return fresh
        raise ConcurrentModification("Deal was modified concurrently, please retry")

    @staticmethod
    def _release(deal: dict, grain_oid, quantity: float) -> None:
        """Hand back stock taken for a status swap that lost the race."""
        if GrainService.return_stock(grain_oid, quantity):
            logger.warning("Deal %s released %.2f qtl after losing a status race", deal["_id"], quantity)
        else:
            logger.error("Deal %s could not release %.2f qtl to listing %s", deal["_id"], quantity, deal["grainId"])
