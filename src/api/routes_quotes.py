"""
Quote delivery routes.

  POST /api/send-quote   {quoteId, dryRun?} + Authorization: Bearer <token>
  GET  /api/health       settings presence (masked), delivery status, DB counts
"""

import logging

from flask import Blueprint, current_app, jsonify, request

from src.core.config import validate_settings
from src.core.errors import QuoteDeliveryError

log = logging.getLogger("continuate.api")

bp = Blueprint("quotes", __name__)

_FALSY = ("", "0", "false", "no", "off")


def _as_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() not in _FALSY
    return bool(value)


def _service():
    return current_app.extensions["quote_delivery"]


# Every other method, OPTIONS included, gets the app-level JSON 405 with Allow: POST.
@bp.route("/api/send-quote", methods=["POST"], provide_automatic_options=False)
def send_quote():
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        body = {}

    try:
        result = _service().deliver_quote(
            body.get("quoteId"),
            dry_run=_as_bool(body.get("dryRun")),
            authorization=request.headers.get("Authorization"),
            request_host=request.headers.get("Host"),
        )
    except QuoteDeliveryError as e:
        if e.status_code >= 500:
            log.error("send-quote failed: %s", e.message)
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        log.exception("send-quote crashed")
        return jsonify({"error": "Failed to send quote."}), 500

    return jsonify(result), 200


@bp.route("/api/health", methods=["GET"])
def health():
    service = _service()
    settings = service.settings
    try:
        db = service.store.get_db_stats()
        db_ok = True
    except Exception as e:
        log.warning("Health DB check failed: %s", e)
        db, db_ok = {}, False
    report = validate_settings(settings)
    return jsonify({
        "status": "ok" if db_ok and settings.delivery_configured else "degraded",
        "delivery_configured": settings.delivery_configured,
        "mail_provider": settings.mail_provider,
        "db": db,
        "settings": {k: {"set": v["set"], "masked": v["masked"]}
                     for k, v in report["settings"].items()},
        "warnings": report["warnings"],
    })
