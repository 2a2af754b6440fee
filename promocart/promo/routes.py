# promocart/promo/routes.py
from __future__ import annotations
from flask import request, jsonify
from ..utils.api import api_ok, api_error
from ..services import promo_service
from . import bp


def ok(msg, data=None, status=200):
    r = jsonify(api_ok(msg, data)); r.status_code = status; return r
def err(msg, status=400, data=None):
    r = jsonify(api_error(msg, data)); r.status_code = status; return r


@bp.post("")
def create_promo_code():
    """
    Body:
      { "code": "SAVE10", "discount_type": "PERCENTAGE" | "FIXED_AMOUNT",
        "discount_value": "10.00", "minimum_order_amount": "50.00" | null,
        "max_usage_count": 100 | null, "valid_from": ISO8601, "valid_until": ISO8601,
        "description": str, "is_active": bool }
    """
    data = request.get_json(silent=True) or {}
    promo = promo_service.create_promo_code(data)
    return ok("Promo code created", {"promo_code": promo.as_api()}, status=201)


@bp.get("")
def list_promo_codes():
    active = request.args.get("active")
    if active is not None:
        active = active.lower() == "true"
    items = promo_service.list_promo_codes(active=active, discount_type=request.args.get("type"))
    return ok("ok", {"promo_codes": [p.as_api() for p in items], "count": len(items)})


@bp.get("/valid")
def list_valid_promo_codes():
    items = promo_service.find_currently_valid_promo_codes()
    return ok("ok", {"promo_codes": [p.as_api() for p in items], "count": len(items)})


@bp.get("/expiring")
def list_expiring_promo_codes():
    try:
        hours = int(request.args.get("hours", 24))
    except ValueError:
        return err("hours must be an integer", 422)
    if hours <= 0:
        return err("hours must be > 0", 422)
    items = promo_service.find_expiring_within(hours)
    return ok("ok", {"promo_codes": [p.as_api() for p in items], "count": len(items), "hours": hours})


@bp.get("/stats")
def promo_code_stats():
    return ok("ok", promo_service.promo_code_stats())


@bp.post("/validate")
def validate_promo_code():
    """
    Body: { "code": "SAVE10", "subtotal": "100.00" }
    Dry run: no usage is recorded.
    """
    data = request.get_json(silent=True) or {}
    subtotal = promo_service.parse_subtotal(data.get("subtotal"))
    result = promo_service.validate_promo_code(data.get("code"), subtotal)
    message = "Promo code is valid" if result.valid else result.error_message
    return ok(message, {"validation": result.as_api()})


@bp.get("/<code>")
def get_promo_code(code: str):
    promo = promo_service.find_active_promo_code_by_code(code)
    if not promo:
        return err(promo_service.PromoError.NOT_FOUND.message, 404)
    return ok("ok", {"promo_code": promo.as_api()})


@bp.get("/<code>/check")
def check_promo_code(code: str):
    return ok("ok", {"code": code.upper(), "valid": promo_service.is_promo_code_valid(code)})


@bp.patch("/<code>/deactivate")
def deactivate_promo_code(code: str):
    promo = promo_service.deactivate_promo_code(code)
    return ok("Promo code deactivated", {"promo_code": promo.as_api()})
