# backend/routes/root/root_routes.py

from datetime import datetime, timezone

from flask import Blueprint, jsonify

# Root blueprint
root_bp = Blueprint("root", __name__)


@root_bp.get("/health")
def health():
    return jsonify(
        status="OK",
        message="Grain Marketplace API is running",
        timestamp=datetime.now(timezone.utc).isoformat(),
    ), 200
