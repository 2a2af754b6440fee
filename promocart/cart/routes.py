# promocart/cart/routes.py
from __future__ import annotations
from flask import request, jsonify

from ..utils.api import api_ok, api_error
from ..model import Cart
from ..services import cart_service
from ..services.promo_service import PromoError
from . import bp

# ---- standard API response format ------------------------------------------
def ok(msg, data=None, status=200):
    r = jsonify(api_ok(msg, data)); r.status_code = status; return r
def err(msg, status=400, data=None):
    r = jsonify(api_error(msg, data)); r.status_code = status; return r

def _with_cart_header(resp, cart: Cart):
    resp.headers["X-Cart-Id"] = cart.uuid
    return resp

def _resolve_cart() -> Cart:
    return cart_service.get_or_create_cart(request.headers.get("X-Cart-Id"))

# ---- endpoints -------------------------------------------------------------

@bp.get("")
def get_cart():
    cart = _resolve_cart()
    return _with_cart_header(ok("cart", cart.as_api()), cart)

@bp.post("")
def create_or_get_cart():
    cart = _resolve_cart()
    return _with_cart_header(ok("cart ready", cart.as_api(), status=201), cart)

@bp.delete("")
def remove_cart():
    """
    Marks the current cart as 'abandoned' and returns a fresh empty cart,
    so clients never hold an X-Cart-Id that points to a non-active cart.
    """
    cart = _resolve_cart()
    new_cart = cart_service.abandon_cart(cart)
    return _with_cart_header(ok("cart removed; new cart ready", new_cart.as_api()), new_cart)

@bp.post("/items")
def add_item():
    """
    Body: { "variant_id": int, "quantity" | "qty": int }
    Header: X-Cart-Id: <uuid>
    """
    cart = _resolve_cart()
    data = request.get_json(silent=True) or {}
    variant_id = data.get("variant_id")
    if not variant_id:
        return err("variant_id is required", 422)

    cart_service.add_item(cart, variant_id, data.get("quantity", data.get("qty", 1)))
    return _with_cart_header(ok("item added", cart.as_api(), status=201), cart)

@bp.put("/items/<int:item_id>")
@bp.patch("/items/<int:item_id>")
def update_item(item_id: int):
    """Body: { "quantity": int }  (>= 1)"""
    cart = _resolve_cart()
    data = request.get_json(silent=True) or {}
    if "quantity" not in data:
        return err("quantity is required", 422)

    cart_service.update_item_quantity(cart, item_id, data.get("quantity"))
    return _with_cart_header(ok("item updated", cart.as_api()), cart)

@bp.delete("/items/<int:item_id>")
def remove_item(item_id: int):
    cart = _resolve_cart()
    cart_service.remove_item(cart, item_id)
    return _with_cart_header(ok("item removed", cart.as_api()), cart)

@bp.delete("/items")
def clear_cart_items():
    cart = _resolve_cart()
    cart_service.clear_items(cart)
    return _with_cart_header(ok("all items removed", cart.as_api()), cart)

@bp.patch("/shipping")
def set_shipping():
    """Body: { "amount": number }"""
    cart = _resolve_cart()
    data = request.get_json(silent=True) or {}
    if "amount" not in data:
        return err("amount is required", 422)

    cart_service.set_shipping_cost(cart, data.get("amount"))
    return _with_cart_header(ok("shipping updated", cart.as_api()), cart)

@bp.post("/promo-code")
def apply_promo_code():
    """
    Body: { "code": "SAVE10" }
    Replaces any promo already on the cart.
    """
    cart = _resolve_cart()
    data = request.get_json(silent=True) or {}

    result = cart_service.apply_promo_to_cart(cart, data.get("code"))
    if not result.valid:
        status = 404 if result.error is PromoError.NOT_FOUND else 422
        resp = err(result.error_message, status, {"validation": result.as_api()})
        return _with_cart_header(resp, cart)

    return _with_cart_header(ok("promo code applied", cart.as_api()), cart)

@bp.delete("/promo-code")
def remove_promo_code():
    cart = _resolve_cart()
    if not cart.has_promo_code():
        return _with_cart_header(err("no promo code on this cart", 404), cart)

    cart_service.remove_promo_from_cart(cart)
    return _with_cart_header(ok("promo code removed", cart.as_api()), cart)
