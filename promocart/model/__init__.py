# ------ promocart/model/__init__.py ------

from .promo_code import PromoCode, DiscountType
from .variant import ProductVariant
from .cart import Cart, CartItem

__all__ = [
    "PromoCode",
    "DiscountType",
    "ProductVariant",
    "Cart",
    "CartItem",
]
