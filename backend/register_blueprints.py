"""
Centralized Blueprint Registration
All blueprints MUST be registered inside register_all_blueprints(app)
"""
import logging

logger = logging.getLogger(__name__)


def register_all_blueprints(app):

    # Root
    from backend.routes.root.root_routes import root_bp
    app.register_blueprint(root_bp)

    # Uploaded images
    from backend.routes.media_routes import media_bp
    app.register_blueprint(media_bp)

    # Auth + users
    from backend.routes.auth.auth_routes import auth_bp
    from backend.routes.users.user_routes import users_bp
    app.register_blueprint(auth_bp)
    app.register_blueprint(users_bp)

    # Marketplace
    from backend.routes.grains.grain_routes import grains_bp
    from backend.routes.deals.deal_routes import deals_bp
    from backend.routes.payments.payment_routes import payments_bp
    from backend.routes.contacts.contact_routes import contacts_bp
    app.register_blueprint(grains_bp)
    app.register_blueprint(deals_bp)
    app.register_blueprint(payments_bp)
    app.register_blueprint(contacts_bp)

    logger.info("All blueprints registered")
