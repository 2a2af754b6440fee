# promocart/model/variant.py
from ..extensions import db
from ..utils.clock import utcnow
from ..utils.money import to_string_money

class ProductVariant(db.Model):
    __tablename__ = "product_variant"

    id = db.Column(db.Integer, primary_key=True)
    sku = db.Column(db.String(64), unique=True, nullable=False, index=True)
    title = db.Column(db.String(255), nullable=False)
    product_title = db.Column(db.String(255), nullable=False, index=True)
    price = db.Column(db.Numeric(10, 2), nullable=False)
    status = db.Column(db.Boolean, default=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def as_summary(self):
        return {
            "id": self.id,
            "sku": self.sku,
            "title": self.title,
            "price": to_string_money(self.price),
            "product_title": self.product_title,
        }
