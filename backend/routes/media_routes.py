# backend/routes/media_routes.py

from flask import Blueprint, current_app, send_from_directory

from backend.services.media_service import URL_PREFIX

media_bp = Blueprint("media", __name__, url_prefix=URL_PREFIX)


@media_bp.get("/<path:filename>")
def serve_upload(filename):
    """Stored listing images; send_from_directory refuses paths outside the folder."""
    return send_from_directory(current_app.config["UPLOAD_FOLDER"], filename, conditional=True)
