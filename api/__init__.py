"""
JSON API. Every error raised under ``/api`` comes back as a JSON body.
"""

import logging

from flask import Blueprint, jsonify
from werkzeug.exceptions import HTTPException

logger = logging.getLogger(__name__)

bp = Blueprint("api", __name__, url_prefix="/api")


@bp.errorhandler(HTTPException)
def _http_error(e):
    body = {"error": e.description}
    details = getattr(e, "details", None)
    if details is not None:
        body["details"] = details
    return jsonify(body), e.code


@bp.errorhandler(Exception)
def _unexpected_error(e):
    logger.exception("Unhandled API error")
    return jsonify({"error": "Something went wrong"}), 500


from api import admin, public  # noqa: E402,F401  (registers routes on bp)
