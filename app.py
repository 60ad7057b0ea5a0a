#!/usr/bin/env python3
"""
Continuate Quotes — Application Entry Point
Creates the Flask app and registers the quote delivery Blueprint.

    gunicorn "app:create_app()"
"""

import os
import time
import logging

from flask import Flask, g, jsonify, request

log = logging.getLogger("continuate")


def create_app(settings=None, service=None):
    """Application factory.

    settings: a Settings value; read from the environment when omitted.
    service:  a ready QuoteDeliveryService (tests inject fakes this way).
    """
    from logging_config import setup_logging
    from src.core.config import load_settings, startup_check
    from src.core.auth import SupabaseIdentityResolver
    from src.core.db import QuoteStore
    from src.agents.quote_delivery import QuoteDeliveryService
    from src.api.routes_quotes import bp

    if settings is None:
        settings = service.settings if service is not None else load_settings()

    if not logging.getLogger().handlers:
        setup_logging(log_dir=os.path.join(settings.data_dir, "logs") if settings.data_dir else None)

    app = Flask(__name__)
    app.json.sort_keys = False

    # ── Store + delivery service ──────────────────────────────────────────────
    if service is None:
        store = QuoteStore(settings.db_path)
        store.init_db()
        resolver = SupabaseIdentityResolver(settings.supabase_url, settings.supabase_key,
                                            timeout=settings.http_timeout)
        service = QuoteDeliveryService(settings, store, resolver)
        startup_check(settings)
    app.extensions["quote_delivery"] = service

    app.register_blueprint(bp)

    # ── Request-level structured logging ──────────────────────────────────────
    @app.before_request
    def _log_request_start():
        g.start_time = time.time()

    @app.after_request
    def _log_request_end(response):
        start = g.get("start_time")
        if start is not None and request.path != "/api/health":
            duration_ms = round((time.time() - start) * 1000, 1)
            log.info("%s %s → %d (%.0fms)",
                     request.method, request.path, response.status_code, duration_ms,
                     extra={"route": request.path, "method": request.method,
                            "status": response.status_code, "duration_ms": duration_ms})
        return response

    # ── JSON error bodies ─────────────────────────────────────────────────────
    @app.errorhandler(404)
    def _not_found(e):
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(405)
    def _method_not_allowed(e):
        resp = jsonify({"error": "Method not allowed"})
        resp.status_code = 405
        allowed = getattr(e, "valid_methods", None)
        if allowed:
            resp.headers["Allow"] = ", ".join(sorted(allowed))
        return resp

    @app.errorhandler(500)
    def _server_error(e):
        return jsonify({"error": "Internal server error"}), 500

    return app


if __name__ == "__main__":
    create_app().run(host="0.0.0.0", port=int(os.environ.get("PORT", "8000")))
