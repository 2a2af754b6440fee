# promocart/errors.py
import logging
from flask import jsonify
from .utils.api import api_error
from .services.promo_service import DuplicatePromoCode, PromoCodeUnavailable

logger = logging.getLogger(__name__)


def _err(msg, status):
    r = jsonify(api_error(msg)); r.status_code = status; return r


def register_error_handlers(app):
    @app.errorhandler(ValueError)
    def handle_value_error(e):
        return _err(str(e), 422)

    @app.errorhandler(PromoCodeUnavailable)
    def handle_promo_unavailable(e):
        return _err(str(e), 409)

    @app.errorhandler(DuplicatePromoCode)
    def handle_duplicate(e):
        return _err(str(e), 409)

    @app.errorhandler(LookupError)
    def handle_lookup_error(e):
        return _err(e.args[0] if e.args else "not found", 404)

    @app.errorhandler(404)
    def handle_not_found(e):
        return _err("resource not found", 404)

    @app.errorhandler(405)
    def handle_method_not_allowed(e):
        return _err("method not allowed", 405)

    @app.errorhandler(500)
    def handle_internal(e):
        logger.error("unhandled error: %s", e)
        return _err("internal server error", 500)
