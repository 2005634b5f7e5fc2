# backend/routes/grains/grain_routes.py

from __future__ import annotations

from flask import Blueprint, jsonify, request

from backend.auth import current_user_id, role_required
from backend.models.grain_models import GrainCreateRequest, GrainQuery, GrainUpdateRequest
from backend.services.grain_service import GrainService
from backend.services.media_service import delete_images, save_images

grains_bp = Blueprint("grains", __name__, url_prefix="/grains")


# ------------------------------------------------------------
# Public browsing
# ------------------------------------------------------------
@grains_bp.get("")
def list_grains():
    q = GrainQuery.model_validate(request.args.to_dict())
    return jsonify(GrainService.list_grains(q)), 200


@grains_bp.get("/farmer/my-grains")
@role_required("farmer")
def my_grains():
    return jsonify(GrainService.my_grains(current_user_id())), 200


@grains_bp.get("/<grain_id>")
def get_grain(grain_id: str):
    return jsonify(GrainService.get_grain(grain_id)), 200


# ------------------------------------------------------------
# Farmer listing management
# ------------------------------------------------------------
@grains_bp.post("")
@role_required("farmer")
def create_grain():
    """Multipart form: listing fields plus 1..N `sampleImages` files."""
    req = GrainCreateRequest.model_validate(request.form.to_dict())

    urls = save_images(request.files.getlist("sampleImages"))
    try:
        grain = GrainService.create_grain(current_user_id(), req, urls)
    except Exception:
        delete_images(urls)
        raise

    return jsonify(message="Grain listing created successfully", grain=grain), 201


@grains_bp.put("/<grain_id>")
@role_required("farmer")
def update_grain(grain_id: str):
    req = GrainUpdateRequest.model_validate(request.get_json(silent=True) or {})
    grain = GrainService.update_grain(current_user_id(), grain_id, req)
    return jsonify(message="Grain listing updated successfully", grain=grain), 200


@grains_bp.delete("/<grain_id>")
@role_required("farmer")
def delete_grain(grain_id: str):
    GrainService.delete_grain(current_user_id(), grain_id)
    return jsonify(message="Grain listing deleted successfully"), 200
