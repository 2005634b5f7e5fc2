# backend/services/grain_service.py

from __future__ import annotations

import logging
import re
from datetime import datetime, time, timezone
from typing import Any, Dict, List

from bson import ObjectId
from pymongo import ReturnDocument

from backend.errors import Conflict, NotFound
from backend.models.deal_models import TERMINAL_STATUSES
from backend.models.grain_models import (
    GrainCreateRequest,
    GrainQuery,
    GrainUpdateRequest,
    ListingStatus,
)
from backend.mongo import mongo, public_doc, to_object_id
from backend.services.media_service import delete_images
from backend.services.user_service import UserService, pagination

logger = logging.getLogger(__name__)

# float dust left by repeated fractional quintal arithmetic
EPS = 1e-6


def _open_deal_filter(grain_oid: ObjectId) -> Dict[str, Any]:
    return {"grainId": str(grain_oid), "status": {"$nin": [s.value for s in TERMINAL_STATUSES]}}


class GrainService:

    # =========================
    # SHAPES
    # =========================
    @staticmethod
    def _with_farmers(docs: List[dict], fields=("name", "email", "phone", "verified")) -> List[Dict[str, Any]]:
        farmers = UserService.summaries([d.get("farmerId") for d in docs if d.get("farmerId")], fields)
        rows = []
        for d in docs:
            row = public_doc(d)
            row["farmer"] = farmers.get(d.get("farmerId"))
            rows.append(row)
        return rows

    @staticmethod
    def _load(grain_id: str) -> dict:
        oid = to_object_id(grain_id)
        grain = mongo.db.grains.find_one({"_id": oid}) if oid else None
        if not grain:
            raise NotFound("Grain not found")
        return grain

    @staticmethod
    def _load_owned(farmer_id: str, grain_id: str) -> dict:
        oid = to_object_id(grain_id)
        grain = mongo.db.grains.find_one({"_id": oid, "farmerId": farmer_id}) if oid else None
        if not grain:
            raise NotFound("Grain not found or unauthorized")
        return grain

    # =========================
    # READ
    # =========================
    @staticmethod
    def list_grains(q: GrainQuery) -> Dict[str, Any]:
        query: Dict[str, Any] = {
            "status": ListingStatus.AVAILABLE.value,
            "availableQuantity": {"$gt": 0},
        }
        if q.grainType:
            query["grainType"] = q.grainType
        if q.location:
            query["location"] = re.compile(re.escape(q.location), re.IGNORECASE)
        if q.quality:
            query["quality"] = q.quality
        if q.minPrice is not None or q.maxPrice is not None:
            price: Dict[str, float] = {}
            if q.minPrice is not None:
                price["$gte"] = q.minPrice
            if q.maxPrice is not None:
                price["$lte"] = q.maxPrice
            query["pricePerQuintal"] = price
        if q.organicOnly:
            query["organicCertified"] = True

        skip = (q.page - 1) * q.limit
        docs = list(mongo.db.grains.find(query).sort([("createdAt", -1), ("_id", -1)]).skip(skip).limit(q.limit))
        total = mongo.db.grains.count_documents(query)

        return {
            "grains": GrainService._with_farmers(docs),
            "pagination": pagination(q.page, q.limit, total),
        }

    @staticmethod
    def get_grain(grain_id: str) -> Dict[str, Any]:
        grain = GrainService._load(grain_id)
        fields = ("name", "email", "phone", "profile", "verified")
        return GrainService._with_farmers([grain], fields)[0]

    @staticmethod
    def my_grains(farmer_id: str) -> List[Dict[str, Any]]:
        docs = mongo.db.grains.find({"farmerId": farmer_id}).sort([("createdAt", -1), ("_id", -1)])
        return [public_doc(d) for d in docs]

    @staticmethod
    def summaries(grain_ids) -> Dict[str, Dict[str, Any]]:
        """Listing display summaries keyed by id, for deals and messages."""
        oids = [oid for oid in (to_object_id(g) for g in set(grain_ids)) if oid is not None]
        if not oids:
            return {}
        docs = mongo.db.grains.find(
            {"_id": {"$in": oids}},
            {"grainType": 1, "quality": 1, "location": 1, "sampleImages": 1, "description": 1, "pricePerQuintal": 1},
        )
        return {str(d["_id"]): public_doc(d) for d in docs}

    # =========================
    # WRITE
    # =========================
    @staticmethod
    def create_grain(farmer_id: str, req: GrainCreateRequest, image_urls: List[str]) -> Dict[str, Any]:
        now = datetime.now(timezone.utc)
        doc = {
            "farmerId": farmer_id,
            "grainType": req.grainType,
            "quantity": req.quantity,
            "availableQuantity": req.quantity,
            "pricePerQuintal": req.pricePerQuintal,
            "quality": req.quality,
            "description": req.description,
            "sampleImages": image_urls,
            "location": req.location,
            # bson has no plain date type
            "harvestDate": datetime.combine(req.harvestDate, time.min, tzinfo=timezone.utc),
            "moistureContent": req.moistureContent,
            "organicCertified": req.organicCertified,
            "status": ListingStatus.AVAILABLE.value,
            "createdAt": now,
            "updatedAt": now,
        }
        inserted = mongo.db.grains.insert_one(doc)
        doc["_id"] = inserted.inserted_id
        logger.info("Listing %s created by farmer %s (%.2f qtl)", inserted.inserted_id, farmer_id, req.quantity)
        return GrainService._with_farmers([doc])[0]

    @staticmethod
    def update_grain(farmer_id: str, grain_id: str, req: GrainUpdateRequest) -> Dict[str, Any]:
        grain = GrainService._load_owned(farmer_id, grain_id)

        patch = req.model_dump(exclude_unset=True, exclude={"quantity"})
        patch = {k: v for k, v in patch.items() if v is not None or k == "moistureContent"}
        patch["updatedAt"] = datetime.now(timezone.utc)

        if req.quantity is not None and req.quantity != grain["quantity"]:
            GrainService._resize(grain, req.quantity, patch)
        else:
            mongo.db.grains.update_one({"_id": grain["_id"]}, {"$set": patch})

        GrainService.sync_status(grain["_id"])
        return GrainService._with_farmers([mongo.db.grains.find_one({"_id": grain["_id"]})])[0]

    @staticmethod
    def _resize(grain: dict, new_quantity: float, patch: Dict[str, Any]) -> None:
        """
        Change the offered quantity and shift availableQuantity by the same
        delta, so stock already sold or reserved stays accounted for.
        """
        for _ in range(3):
            old_quantity = grain["quantity"]
            delta = new_quantity - old_quantity
            query: Dict[str, Any] = {"_id": grain["_id"], "quantity": old_quantity}
            if delta < 0:
                query["availableQuantity"] = {"$gte": -delta - EPS}

            res = mongo.db.grains.update_one(
                query,
                {"$set": dict(patch, quantity=new_quantity), "$inc": {"availableQuantity": delta}},
            )
            if res.modified_count == 1:
                logger.info("Listing %s quantity %.2f -> %.2f", grain["_id"], old_quantity, new_quantity)
                return

            fresh = mongo.db.grains.find_one({"_id": grain["_id"]})
            if not fresh:
                raise NotFound("Grain not found")
            if fresh["quantity"] == old_quantity:
                raise Conflict("Quantity cannot be reduced below the amount already sold or reserved")
            grain = fresh

        raise Conflict("Listing is being modified concurrently, please retry")

    @staticmethod
    def delete_grain(farmer_id: str, grain_id: str) -> None:
        grain = GrainService._load_owned(farmer_id, grain_id)

        if mongo.db.deals.find_one(_open_deal_filter(grain["_id"]), {"_id": 1}):
            raise Conflict("Grain has open deals and cannot be deleted")

        mongo.db.grains.delete_one({"_id": grain["_id"]})
        delete_images(grain.get("sampleImages") or [])
        logger.info("Listing %s deleted by farmer %s", grain["_id"], farmer_id)

    # =========================
    # INVENTORY (used by the deal engine)
    # =========================
    @staticmethod
    def take_stock(grain_oid: ObjectId, quantity: float) -> bool:
        """Atomically decrement availableQuantity; False if it would go below zero."""
        res = mongo.db.grains.find_one_and_update(
            {"_id": grain_oid, "availableQuantity": {"$gte": quantity - EPS}},
            {"$inc": {"availableQuantity": -quantity}, "$set": {"updatedAt": datetime.now(timezone.utc)}},
            return_document=ReturnDocument.AFTER,
        )
        if res is None:
            return False
        GrainService.sync_status(grain_oid)
        return True

    @staticmethod
    def return_stock(grain_oid: ObjectId, quantity: float) -> bool:
        """Atomically increment availableQuantity, never past the offered quantity."""
        for _ in range(3):
            grain = mongo.db.grains.find_one({"_id": grain_oid}, {"quantity": 1})
            if not grain:
                return False
            res = mongo.db.grains.update_one(
                {
                    "_id": grain_oid,
                    "quantity": grain["quantity"],
                    "availableQuantity": {"$lte": grain["quantity"] - quantity + EPS},
                },
                {"$inc": {"availableQuantity": quantity}, "$set": {"updatedAt": datetime.now(timezone.utc)}},
            )
            if res.modified_count == 1:
                GrainService.sync_status(grain_oid)
                return True
            fresh = mongo.db.grains.find_one({"_id": grain_oid}, {"quantity": 1})
            if not fresh or fresh["quantity"] == grain["quantity"]:
                return False
        return False

    @staticmethod
    def sync_status(grain_oid: ObjectId) -> None:
        grains = mongo.db.grains

        grains.update_one(
            {"_id": grain_oid, "availableQuantity": {"$lt": EPS, "$ne": 0}},
            {"$set": {"availableQuantity": 0}},
        )
        grains.update_one(
            {"_id": grain_oid, "availableQuantity": {"$gt": 0}, "status": {"$ne": ListingStatus.AVAILABLE.value}},
            {"$set": {"status": ListingStatus.AVAILABLE.value}},
        )

        held = mongo.db.deals.find_one(
            dict(_open_deal_filter(grain_oid), reservedQuantity={"$gt": 0}),
            {"_id": 1},
        )
        sold_out = ListingStatus.RESERVED.value if held else ListingStatus.SOLD.value
        grains.update_one(
            {"_id": grain_oid, "availableQuantity": 0, "status": {"$ne": sold_out}},
            {"$set": {"status": sold_out}},
        )
