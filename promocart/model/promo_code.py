# promocart/model/promo_code.py
from __future__ import annotations
import enum
from decimal import Decimal
from ..extensions import db
from ..utils.clock import utcnow
from ..utils.money import D, round_money, to_string_money


class DiscountType(str, enum.Enum):
    PERCENTAGE = "PERCENTAGE"
    FIXED_AMOUNT = "FIXED_AMOUNT"


class PromoCode(db.Model):
    __tablename__ = "promo_codes"

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(50), unique=True, nullable=False, index=True)   # stored uppercase
    description = db.Column(db.String(255), nullable=True)

    discount_type = db.Column(db.Enum(DiscountType, native_enum=False, length=20), nullable=False)
    discount_value = db.Column(db.Numeric(10, 2), nullable=False)

    # Optional constraints, None means unconstrained
    minimum_order_amount = db.Column(db.Numeric(10, 2), nullable=True)
    max_usage_count = db.Column(db.Integer, nullable=True)
    current_usage_count = db.Column(db.Integer, nullable=False, default=0)

    valid_from = db.Column(db.DateTime, nullable=False)
    valid_until = db.Column(db.DateTime, nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    # --------- rule helpers ----------
    def is_currently_valid(self, now) -> bool:
        return bool(self.is_active) and self.valid_from < now < self.valid_until

    def has_reached_usage_limit(self) -> bool:
        return self.max_usage_count is not None and (self.current_usage_count or 0) >= self.max_usage_count

    def meets_minimum_order_amount(self, cart_subtotal) -> bool:
        return self.minimum_order_amount is None or D(cart_subtotal) >= D(self.minimum_order_amount)

    def calculate_discount(self, cart_subtotal) -> Decimal:
        subtotal = D(cart_subtotal)
        value = D(self.discount_value)
        if self.discount_type == DiscountType.PERCENTAGE:
            return round_money(subtotal * value / Decimal("100"))
        # fixed amount never exceeds the order subtotal
        return round_money(min(value, subtotal))

    def as_api(self):
        return {
            "id": self.id,
            "code": self.code,
            "description": self.description,
            "discount_type": self.discount_type.value if self.discount_type else None,
            "discount_value": to_string_money(self.discount_value),
            "minimum_order_amount": (
                to_string_money(self.minimum_order_amount) if self.minimum_order_amount is not None else None
            ),
            "max_usage_count": self.max_usage_count,
            "current_usage_count": self.current_usage_count,
            "valid_from": self.valid_from.isoformat() if self.valid_from else None,
            "valid_until": self.valid_until.isoformat() if self.valid_until else None,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<PromoCode {self.code} {self.discount_type} {self.discount_value}>"
