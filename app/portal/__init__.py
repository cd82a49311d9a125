import logging
import os

from dotenv import load_dotenv
from flask import Flask, g, jsonify
from werkzeug.exceptions import HTTPException

from app.portal.auth import bp as auth_bp, load_current_identity
from app.portal.config import load_config
from app.portal.db import init_db, teardown_db_session
from app.portal.errors import PortalError
from app.portal.modules.customers.account import bp as customer_account_bp
from app.portal.modules.customers.admin import bp as customers_admin_bp
from app.portal.routes import bp as routes_bp


def create_app() -> Flask:
    load_dotenv()
    app = Flask(__name__)
    app.config.from_mapping(load_config())
    app.json.sort_keys = False

    logging.basicConfig(
        level=app.config["LOG_LEVEL"],
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Production guardrails (fail fast with clear logs)
    env = (app.config.get("ENV") or "").strip().lower()
    if env in ("prod", "production"):
        if not app.config.get("DATABASE_URL") or str(app.config["DATABASE_URL"]).strip() == "":
            raise RuntimeError("DATABASE_URL is required in production.")
        if str(app.config["DATABASE_URL"]).startswith("sqlite"):
            raise RuntimeError("DATABASE_URL must be Postgres in production (not sqlite).")
        if not app.config.get("SECRET_KEY") or str(app.config["SECRET_KEY"]) in ("", "change-me"):
            raise RuntimeError("SECRET_KEY must be set to a strong value in production (not default).")

    init_db(app)

    def _dispose_engine_on_fork() -> None:
        if hasattr(os, "register_at_fork"):
            def _after_fork_child():
                engine = app.extensions.get("sqlalchemy_engine")
                if engine:
                    engine.dispose()
                    app.logger.info("Disposed DB engine after fork (pid=%s)", os.getpid())

            os.register_at_fork(after_in_child=_after_fork_child)

    _dispose_engine_on_fork()

    app.register_blueprint(routes_bp)
    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(customer_account_bp, url_prefix="/api/v1/customers")
    app.register_blueprint(customers_admin_bp, url_prefix="/api/v1/customers")

    app.before_request(load_current_identity)
    app.teardown_appcontext(teardown_db_session)

    @app.errorhandler(PortalError)
    def _err_portal(e: PortalError):  # type: ignore[no-redef]
        return jsonify(e.to_payload()), e.status_code

    @app.errorhandler(HTTPException)
    def _err_http(e: HTTPException):  # type: ignore[no-redef]
        return jsonify({"success": False, "error": e.description or e.name}), e.code or 500

    @app.errorhandler(Exception)
    def _err_500(e: Exception):  # type: ignore[no-redef]
        app.logger.exception("Unhandled 500 (request_id=%s)", getattr(g, "request_id", None))
        return jsonify({"success": False, "error": "Server Error"}), 500

    logging.getLogger(__name__).info("create_app() complete; app ready to serve")

    return app
