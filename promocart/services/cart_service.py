# promocart/services/cart_service.py
from __future__ import annotations
import logging
from decimal import Decimal, InvalidOperation
from sqlalchemy.exc import SQLAlchemyError
from ..extensions import db
from ..model import Cart, CartItem, ProductVariant
from ..repository import PromoCodeRepository
from ..utils.money import D, round_money
from .promo_service import PromoCodeApplier, PromoCodeUnavailable, ValidationResult, get_validator

logger = logging.getLogger(__name__)


def recalc_cart(cart: Cart):
    """
    Recalculate cached totals from items + the promo snapshot.
      1) line totals (price snapshot * qty)
      2) subtotal = sum of line totals
      3) total = subtotal - discount + shipping   (VAT is added by the tax collaborator)
    Callers run this after every item or discount change; reads never recompute.
    """
    for it in cart.items:
        it.recalculate_line_total()
    cart.calculate_totals()
    db.session.flush()


# ---- carts -----------------------------------------------------------------

def get_or_create_cart(cart_uuid: str | None) -> Cart:
    q = Cart.query.filter_by(status="active")
    cart = q.filter(Cart.uuid == cart_uuid).first() if cart_uuid else None
    if not cart:
        cart = Cart(status="active")           # uuid autogenerates in model
        db.session.add(cart)
        recalc_cart(cart)
        db.session.commit()
        logger.debug("cart %s created", cart.uuid)
    return cart


def abandon_cart(cart: Cart) -> Cart:
    cart.status = "abandoned"
    db.session.commit()
    logger.info("cart %s abandoned", cart.uuid)
    return get_or_create_cart(None)


def find_item(cart: Cart, item_id: int) -> CartItem | None:
    return next((i for i in cart.items if i.id == item_id), None)


def _parse_quantity(value) -> int:
    try:
        qty = int(value)
    except (TypeError, ValueError):
        raise ValueError("quantity must be an integer")
    if qty < 1:
        raise ValueError("quantity must be >= 1")
    return qty


# ---- items -----------------------------------------------------------------

def add_item(cart: Cart, variant_id, quantity) -> CartItem:
    qty = _parse_quantity(quantity)
    variant: ProductVariant | None = db.session.get(ProductVariant, variant_id) if variant_id else None
    if not variant or variant.status is False:
        raise LookupError("variant not found or inactive")

    item = next((i for i in cart.items if i.variant_id == variant.id), None)
    if item:
        # price snapshot stays at first-add value
        item.qty = item.qty + qty
    else:
        item = CartItem(variant=variant, qty=qty, price_snapshot=round_money(variant.price))
        cart.add_item(item)

    recalc_cart(cart)
    db.session.commit()
    return item


def update_item_quantity(cart: Cart, item_id: int, quantity) -> CartItem:
    item = find_item(cart, item_id)
    if not item:
        raise LookupError("item not found in this cart")
    item.qty = _parse_quantity(quantity)
    recalc_cart(cart)
    db.session.commit()
    return item


def remove_item(cart: Cart, item_id: int):
    item = find_item(cart, item_id)
    if not item:
        raise LookupError("item not found in this cart")
    cart.remove_item(item)
    recalc_cart(cart)
    db.session.commit()


def clear_items(cart: Cart):
    cart.clear_items()
    recalc_cart(cart)
    db.session.commit()


def set_shipping_cost(cart: Cart, amount):
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, ValueError):
        raise ValueError("amount must be numeric")
    if not value.is_finite() or value < 0:
        raise ValueError("amount must be >= 0")
    cart.shipping_cost = round_money(value)
    recalc_cart(cart)
    db.session.commit()


# ---- promo -----------------------------------------------------------------

def apply_promo_to_cart(cart: Cart, code: str, validator=None, applier=None) -> ValidationResult:
    """
    Validate the code against the current subtotal, record the use and put the
    discount snapshot on the cart. Usage increment and cart update commit
    together. A failed validation leaves the cart untouched.
    """
    validator = validator or get_validator()
    applier = applier or PromoCodeApplier(PromoCodeRepository(), validator.clock)

    recalc_cart(cart)
    result = validator.validate(code, D(cart.subtotal))
    if not result.valid:
        logger.info("cart %s: promo %r rejected (%s)", cart.uuid, code, result.error.name)
        return result

    promo = result.promo_code
    try:
        applier.apply(promo, commit=False)
        cart.apply_promo_code(promo.id, promo.code, result.discount_amount)
        recalc_cart(cart)
        db.session.commit()
    except (SQLAlchemyError, PromoCodeUnavailable):
        db.session.rollback()
        raise

    logger.info("cart %s: promo %s applied, discount %s", cart.uuid, promo.code, result.discount_amount)
    return result


def remove_promo_from_cart(cart: Cart):
    # usage count is not given back
    code = cart.promo_code_code
    cart.remove_promo_code()
    recalc_cart(cart)
    db.session.commit()
    if code:
        logger.info("cart %s: promo %s removed", cart.uuid, code)
