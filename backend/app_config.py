# backend/app_config.py

import logging
import os


def _env_list(name: str, default: str = "") -> list[str]:
    raw = os.getenv(name, default) or ""
    return [p.strip() for p in raw.split(",") if p.strip()]


def load_config(app):
    """
    Load all Flask configuration in a clean centralized way.
    Every value can be overridden by the mapping passed to create_app().
    """
    # ------------------------------
    # Mongo
    # ------------------------------
    app.config["MONGO_URI"] = os.getenv(
        "MONGO_URI",
        "mongodb://localhost:27017/grain_marketplace"
    )

    # ------------------------------
    # Security Keys
    # ------------------------------
    app.config["SECRET_KEY"] = os.getenv("SECRET_KEY", os.urandom(24))
    app.config["JWT_SECRET_KEY"] = os.getenv("JWT_SECRET_KEY", "change-me")
    app.config["JWT_ACCESS_TOKEN_DAYS"] = int(os.getenv("JWT_ACCESS_TOKEN_DAYS", "7"))
    app.config["BCRYPT_LOG_ROUNDS"] = int(os.getenv("BCRYPT_LOG_ROUNDS", "12"))

    app.config["CORS_ORIGINS"] = _env_list("CORS_ORIGINS", "*") or "*"

    # ------------------------------
    # Uploads
    # ------------------------------
    app.config["UPLOAD_FOLDER"] = os.getenv(
        "UPLOAD_FOLDER",
        os.path.join(app.root_path, "uploads")
    )
    app.config["MAX_IMAGE_BYTES"] = int(os.getenv("MAX_IMAGE_BYTES", str(5 * 1024 * 1024)))
    app.config["MAX_IMAGES_PER_LISTING"] = int(os.getenv("MAX_IMAGES_PER_LISTING", "5"))
    app.config["ALLOWED_IMAGE_EXTENSIONS"] = set(
        _env_list("ALLOWED_IMAGE_EXTENSIONS", "jpg,jpeg,png,webp")
    )
    # whole multipart body: every image at the limit plus form fields
    app.config["MAX_CONTENT_LENGTH"] = (
        app.config["MAX_IMAGE_BYTES"] * app.config["MAX_IMAGES_PER_LISTING"] + 1024 * 1024
    )

    # ------------------------------
    # Payment gateway (Razorpay)
    # ------------------------------
    app.config["RAZORPAY_KEY_ID"] = os.getenv("RAZORPAY_KEY_ID", "")
    app.config["RAZORPAY_KEY_SECRET"] = os.getenv("RAZORPAY_KEY_SECRET", "")
    app.config["RAZORPAY_API_BASE"] = os.getenv("RAZORPAY_API_BASE", "https://api.razorpay.com/v1")
    app.config["PAYMENT_CURRENCY"] = os.getenv("PAYMENT_CURRENCY", "INR")
    app.config["PAYMENT_GATEWAY_TIMEOUT"] = float(os.getenv("PAYMENT_GATEWAY_TIMEOUT", "10"))
    app.config["PAYMENT_GATEWAY_MAX_RETRIES"] = int(os.getenv("PAYMENT_GATEWAY_MAX_RETRIES", "2"))

    # ------------------------------
    # Deals
    # ------------------------------
    app.config["DEAL_STATUS_OVERRIDE_ROLES"] = set(_env_list("DEAL_STATUS_OVERRIDE_ROLES"))

    app.config["LOG_LEVEL"] = os.getenv("LOG_LEVEL", "INFO")


def configure_logging(app):
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)

    root = logging.getLogger()
    if not any(getattr(h, "_grain_market", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        handler._grain_market = True
        root.addHandler(handler)
    root.setLevel(level)
    app.logger.setLevel(level)

    app.logger.info("Config loaded (mongo=%s)", "on" if app.config.get("MONGO_URI") else "off")
