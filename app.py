# app.py (Render + Local working)

from __future__ import annotations

from flask import Flask
from flask_cors import CORS

from backend.app_config import configure_logging, load_config
from backend.auth import init_auth
from backend.errors import register_error_handlers
from backend.mongo import init_mongo
from backend.register_blueprints import register_all_blueprints
from backend.services.payment_gateway import init_gateway


def create_app(test_config: dict | None = None):
    app = Flask(__name__)

    # -------------------------
    # Config & logging
    # -------------------------
    load_config(app)
    if test_config:
        app.config.update(test_config)
    configure_logging(app)

    CORS(app, resources={r"/*": {"origins": app.config["CORS_ORIGINS"]}})

    # -------------------------
    # Mongo
    # -------------------------
    init_mongo(app)

    # -------------------------
    # JWT + bcrypt
    # -------------------------
    init_auth(app)

    # -------------------------
    # Payment gateway
    # -------------------------
    init_gateway(app)

    # -------------------------
    # Errors + Blueprints
    # -------------------------
    register_error_handlers(app)
    register_all_blueprints(app)

    return app


# Local run only
if __name__ == "__main__":
    create_app().run(host="0.0.0.0", port=5000, debug=True)
