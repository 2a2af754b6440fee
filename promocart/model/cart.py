# promocart/model/cart.py
from __future__ import annotations
import uuid as _uuid
from decimal import Decimal
from ..extensions import db
from ..utils.clock import utcnow
from ..utils.money import D, ZERO, round_money, to_string_money


class Cart(db.Model):
    __tablename__ = "cart"

    id = db.Column(db.Integer, primary_key=True)
    uuid = db.Column(db.String(36), unique=True, index=True, default=lambda: str(_uuid.uuid4()))
    status = db.Column(db.String(16), default="active", index=True)

    # cached money, refreshed by calculate_totals()
    subtotal = db.Column(db.Numeric(10, 2), nullable=False, default=ZERO)
    vat_amount = db.Column(db.Numeric(10, 2), nullable=False, default=ZERO)     # filled by the tax collaborator
    shipping_cost = db.Column(db.Numeric(10, 2), nullable=False, default=ZERO)
    total = db.Column(db.Numeric(10, 2), nullable=False, default=ZERO)

    # promo snapshot; not a FK so deleting a promo code leaves carts untouched
    promo_code_id = db.Column(db.Integer, nullable=True)
    promo_code_code = db.Column(db.String(50), nullable=True)
    discount_amount = db.Column(db.Numeric(10, 2), nullable=False, default=ZERO)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    items = db.relationship(
        "CartItem",
        backref="cart",
        cascade="all, delete-orphan",
        order_by="CartItem.id.asc()",
    )

    # --------- items ----------
    def add_item(self, item: "CartItem"):
        self.items.append(item)

    def remove_item(self, item: "CartItem"):
        self.items.remove(item)

    def clear_items(self):
        # delete-orphan cascade removes the rows
        self.items.clear()

    # --------- totals ----------
    def calculate_totals(self):
        """
        subtotal = sum of line totals
        total    = subtotal - discount + shipping   (VAT is added elsewhere)
        """
        self.subtotal = round_money(sum((D(i.line_total) for i in self.items), Decimal("0")))
        self.total = round_money(self.subtotal - D(self.discount_amount) + D(self.shipping_cost))

    # --------- promo snapshot ----------
    def apply_promo_code(self, promo_code_id: int, promo_code_code: str, discount_amount):
        self.promo_code_id = promo_code_id
        self.promo_code_code = promo_code_code
        self.discount_amount = round_money(discount_amount)
        self.updated_at = utcnow()

    def remove_promo_code(self):
        self.promo_code_id = None
        self.promo_code_code = None
        self.discount_amount = ZERO
        self.updated_at = utcnow()

    def has_promo_code(self) -> bool:
        return self.promo_code_id is not None and self.promo_code_code is not None

    def as_api(self):
        return {
            "id": self.id,
            "uuid": self.uuid,
            "status": self.status,
            "items": [i.as_api() for i in self.items],
            "totals": {
                "subtotal": to_string_money(self.subtotal),
                "vat_amount": to_string_money(self.vat_amount),
                "shipping_cost": to_string_money(self.shipping_cost),
                "discount_amount": to_string_money(self.discount_amount),
                "total": to_string_money(self.total),
            },
            "promo_code": {
                "code": self.promo_code_code,
                "discount_amount": to_string_money(self.discount_amount),
            } if self.has_promo_code() else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class CartItem(db.Model):
    __tablename__ = "cart_item"

    id = db.Column(db.Integer, primary_key=True)
    cart_id = db.Column(db.Integer, db.ForeignKey("cart.id", ondelete="CASCADE"), nullable=False, index=True)
    variant_id = db.Column(db.Integer, db.ForeignKey("product_variant.id"), nullable=False, index=True)

    qty = db.Column(db.Integer, nullable=False, default=1)
    price_snapshot = db.Column(db.Numeric(10, 2), nullable=False)    # unit price at add time
    line_total = db.Column(db.Numeric(10, 2), nullable=False, default=ZERO)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    variant = db.relationship("ProductVariant", lazy="joined")

    def recalculate_line_total(self):
        self.line_total = round_money(D(self.price_snapshot) * Decimal(int(self.qty or 0)))

    def as_api(self):
        return {
            "id": self.id,
            "variant_id": self.variant_id,
            "qty": self.qty,
            "price_snapshot": to_string_money(self.price_snapshot),
            "line_total": to_string_money(self.line_total),
            "variant": self.variant.as_summary() if self.variant else None,
        }
