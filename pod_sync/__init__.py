import sys
import logging
from flask import Flask
from dotenv import load_dotenv


def create_app(config=None, services=None):
    """App factory. Tests pass a ready `services` bundle; production builds one from the env."""
    load_dotenv()
    app = Flask(__name__)

    # =========================================================
    # Configure logging so logs show up under gunicorn
    # =========================================================
    gunicorn_error = logging.getLogger("gunicorn.error")
    app.logger.handlers = list(gunicorn_error.handlers)
    app.logger.setLevel(logging.INFO)

    sh = logging.StreamHandler(sys.stdout)
    sh.setLevel(logging.INFO)
    sh.setFormatter(logging.Formatter("[%(asctime)s][%(levelname)s] %(message)s", "%H:%M:%S"))
    app.logger.addHandler(sh)

    # =========================================================
    # Config + engines
    # =========================================================
    from .config import load_config
    from .services import build_services

    if services is None:
        services = build_services(config or load_config())
    app.extensions["pod_sync"] = services

    # =========================================================
    # Blueprints
    # =========================================================
    from .routes.register import bp as register_bp
    from .routes.webhooks import bp as webhooks_bp
    from .routes.jobs import bp as jobs_bp
    from .routes.setup_metafields import bp as setup_bp

    app.register_blueprint(register_bp, url_prefix="/register_webhooks")
    app.register_blueprint(webhooks_bp, url_prefix="/webhooks/shopify")
    app.register_blueprint(jobs_bp, url_prefix="/jobs")
    app.register_blueprint(setup_bp, url_prefix="/setup/metafields")

    from .cli import register_commands
    register_commands(app)

    # =========================================================
    # Health check
    # =========================================================
    @app.get("/health")
    def health():
        app.logger.info("Health check endpoint called")
        return {"ok": True}, 200

    return app
