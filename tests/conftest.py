from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from promocart import create_app
from promocart.config import TestConfig
from promocart.extensions import db as _db
from promocart.model import DiscountType, ProductVariant, PromoCode
from promocart.utils.clock import utcnow

FIXED_NOW = datetime(2026, 3, 15, 12, 0, 0)


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def session(app):
    return _db.session


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_NOW


@pytest.fixture
def make_promo(session):
    """Persist a promo code; window defaults to [now - 1 day, now + 30 days)."""
    def _make(code="SAVE10", discount_type=DiscountType.PERCENTAGE, discount_value="10.00",
              minimum=None, max_usage=None, used=0, valid_from=None, valid_until=None,
              is_active=True, now=None):
        now = now or utcnow()
        promo = PromoCode(
            code=code,
            discount_type=discount_type,
            discount_value=Decimal(discount_value),
            minimum_order_amount=Decimal(minimum) if minimum is not None else None,
            max_usage_count=max_usage,
            current_usage_count=used,
            valid_from=valid_from or now - timedelta(days=1),
            valid_until=valid_until or now + timedelta(days=30),
            is_active=is_active,
        )
        session.add(promo)
        session.commit()
        return promo
    return _make


@pytest.fixture
def variants(session):
    rows = [
        ProductVariant(sku="TSHIRT-M", title="Black / M", product_title="T-Shirt", price=Decimal("25.00")),
        ProductVariant(sku="MUG-350", title="350 ml", product_title="Mug", price=Decimal("8.50")),
        ProductVariant(sku="OLD-1", title="Retired", product_title="Old", price=Decimal("5.00"), status=False),
    ]
    session.add_all(rows)
    session.commit()
    return {v.sku: v for v in rows}
