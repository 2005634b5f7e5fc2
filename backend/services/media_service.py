# backend/services/media_service.py
from __future__ import annotations

import logging
import os
import secrets
import time
from typing import List

from flask import current_app
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from backend.errors import ValidationFailed

logger = logging.getLogger(__name__)

ALLOWED_MIMETYPES = {"image/jpeg", "image/jpg", "image/png", "image/webp"}
URL_PREFIX = "/uploads"


def _file_size(f: FileStorage) -> int:
    stream = f.stream
    pos = stream.tell()
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(pos)
    return size


def validate_images(files: List[FileStorage]) -> None:
    """Reject the whole batch before anything touches the disk."""
    cfg = current_app.config
    files = [f for f in files if f and f.filename]

    if not files:
        raise ValidationFailed("At least one sample image is required")
    if len(files) > cfg["MAX_IMAGES_PER_LISTING"]:
        raise ValidationFailed(f"At most {cfg['MAX_IMAGES_PER_LISTING']} images are allowed")

    allowed_ext = cfg["ALLOWED_IMAGE_EXTENSIONS"]
    for f in files:
        ext = os.path.splitext(secure_filename(f.filename))[1].lower().lstrip(".")
        if ext not in allowed_ext or (f.mimetype or "").lower() not in ALLOWED_MIMETYPES:
            raise ValidationFailed("Only image files (jpeg, jpg, png, webp) are allowed")
        if _file_size(f) > cfg["MAX_IMAGE_BYTES"]:
            raise ValidationFailed(f"Image '{f.filename}' exceeds the {cfg['MAX_IMAGE_BYTES'] // (1024 * 1024)}MB limit")


def save_images(files: List[FileStorage], folder: str = "grains") -> List[str]:
    """Store validated uploads under UPLOAD_FOLDER/<folder>/ and return their public urls."""
    validate_images(files)

    abs_dir = os.path.join(current_app.config["UPLOAD_FOLDER"], folder)
    os.makedirs(abs_dir, exist_ok=True)

    urls = []
    try:
        for f in files:
            if not f or not f.filename:
                continue
            ext = os.path.splitext(secure_filename(f.filename))[1].lower()
            stored = f"grain-{int(time.time() * 1000)}-{secrets.token_hex(4)}{ext}"
            f.save(os.path.join(abs_dir, stored))
            urls.append(f"{URL_PREFIX}/{folder}/{stored}")
    except Exception:
        logger.exception("Image upload failed after %d file(s); removing them", len(urls))
        delete_images(urls)
        raise
    return urls


def delete_images(urls: List[str]) -> None:
    root = os.path.abspath(current_app.config["UPLOAD_FOLDER"])
    for url in urls or []:
        if not url.startswith(URL_PREFIX + "/"):
            continue
        path = os.path.abspath(os.path.join(root, url[len(URL_PREFIX) + 1:]))
        # never follow a stored url outside the upload root
        if not path.startswith(root + os.sep):
            continue
        try:
            os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("Could not delete %s: %s", path, e)
