from decimal import Decimal

import pytest

from promocart.model import Cart, CartItem, DiscountType
from promocart.services import cart_service
from promocart.services.promo_service import PromoCodeUnavailable, PromoError


def _cart_with_items(*lines):
    cart = Cart(status="active")
    for price, qty in lines:
        item = CartItem(variant_id=1, qty=qty, price_snapshot=Decimal(price))
        item.recalculate_line_total()
        cart.add_item(item)
    return cart


class TestCalculateTotals:
    def test_empty_cart(self):
        cart = Cart()
        cart.calculate_totals()
        assert cart.subtotal == Decimal("0.00")
        assert cart.total == Decimal("0.00")

    def test_subtotal_is_sum_of_line_totals(self):
        cart = _cart_with_items(("25.00", 2), ("8.50", 3))
        cart.calculate_totals()
        assert [i.line_total for i in cart.items] == [Decimal("50.00"), Decimal("25.50")]
        assert cart.subtotal == Decimal("75.50")
        assert cart.total == Decimal("75.50")

    def test_total_subtracts_discount_and_adds_shipping(self):
        cart = _cart_with_items(("40.00", 1))
        cart.shipping_cost = Decimal("4.99")
        cart.apply_promo_code(7, "SAVE10", Decimal("4.00"))
        cart.calculate_totals()
        assert cart.total == Decimal("40.99")

    def test_vat_is_not_part_of_total(self):
        cart = _cart_with_items(("10.00", 1))
        cart.vat_amount = Decimal("2.00")
        cart.calculate_totals()
        assert cart.total == Decimal("10.00")

    def test_recalculate_is_idempotent(self):
        cart = _cart_with_items(("19.99", 3))
        cart.shipping_cost = Decimal("3.00")
        cart.calculate_totals()
        first = (cart.subtotal, cart.total)
        cart.calculate_totals()
        assert (cart.subtotal, cart.total) == first == (Decimal("59.97"), Decimal("62.97"))


class TestPromoSnapshot:
    def test_has_promo_code(self):
        cart = Cart()
        assert not cart.has_promo_code()
        cart.apply_promo_code(3, "SAVE10", Decimal("10.00"))
        assert cart.has_promo_code()

    def test_apply_then_remove_restores_totals(self):
        cart = _cart_with_items(("100.00", 1))
        cart.calculate_totals()
        undiscounted = cart.total

        cart.apply_promo_code(3, "SAVE10", Decimal("10.00"))
        cart.calculate_totals()
        assert cart.total == Decimal("90.00")

        cart.remove_promo_code()
        cart.calculate_totals()
        assert cart.discount_amount == Decimal("0")
        assert cart.promo_code_id is None and cart.promo_code_code is None
        assert cart.total == undiscounted

    def test_setters_touch_updated_at(self):
        cart = Cart()
        cart.apply_promo_code(3, "SAVE10", Decimal("1.00"))
        stamped = cart.updated_at
        assert stamped is not None
        cart.remove_promo_code()
        assert cart.updated_at >= stamped


class TestCartService:
    def test_add_item_snapshots_price_and_recalculates(self, app, variants):
        cart = cart_service.get_or_create_cart(None)
        cart_service.add_item(cart, variants["TSHIRT-M"].id, 2)
        assert cart.subtotal == Decimal("50.00")

        # price change after the add does not touch the snapshot
        variants["TSHIRT-M"].price = Decimal("99.00")
        cart_service.add_item(cart, variants["TSHIRT-M"].id, 1)
        assert len(cart.items) == 1
        assert cart.items[0].qty == 3
        assert cart.items[0].price_snapshot == Decimal("25.00")
        assert cart.total == Decimal("75.00")

    def test_add_inactive_variant(self, app, variants):
        cart = cart_service.get_or_create_cart(None)
        with pytest.raises(LookupError):
            cart_service.add_item(cart, variants["OLD-1"].id, 1)

    def test_quantity_must_be_positive(self, app, variants):
        cart = cart_service.get_or_create_cart(None)
        with pytest.raises(ValueError, match="quantity must be >= 1"):
            cart_service.add_item(cart, variants["MUG-350"].id, 0)

    def test_update_and_remove_items(self, app, variants):
        cart = cart_service.get_or_create_cart(None)
        item = cart_service.add_item(cart, variants["MUG-350"].id, 1)
        cart_service.add_item(cart, variants["TSHIRT-M"].id, 1)

        cart_service.update_item_quantity(cart, item.id, 4)
        assert cart.subtotal == Decimal("59.00")

        cart_service.remove_item(cart, item.id)
        assert cart.subtotal == Decimal("25.00")

        cart_service.clear_items(cart)
        assert cart.items == []
        assert cart.total == Decimal("0.00")

    def test_apply_promo_records_use_and_snapshot(self, app, variants, make_promo):
        promo = make_promo(code="SAVE10", discount_value="10.00")
        cart = cart_service.get_or_create_cart(None)
        cart_service.add_item(cart, variants["TSHIRT-M"].id, 4)

        result = cart_service.apply_promo_to_cart(cart, "save10")
        assert result.valid
        assert cart.promo_code_code == "SAVE10"
        assert cart.promo_code_id == promo.id
        assert cart.discount_amount == Decimal("10.00")
        assert cart.total == Decimal("90.00")
        assert promo.current_usage_count == 1

    def test_failed_validation_leaves_cart_and_usage_alone(self, app, variants, make_promo):
        promo = make_promo(code="MIN50", discount_type=DiscountType.FIXED_AMOUNT,
                           discount_value="10.00", minimum="50.00")
        cart = cart_service.get_or_create_cart(None)
        cart_service.add_item(cart, variants["TSHIRT-M"].id, 1)

        result = cart_service.apply_promo_to_cart(cart, "MIN50")
        assert result.error is PromoError.MINIMUM_NOT_MET
        assert not cart.has_promo_code()
        assert cart.total == Decimal("25.00")
        assert promo.current_usage_count == 0

    def test_lost_race_rolls_back(self, app, variants, make_promo):
        make_promo(code="LAST", max_usage=1, used=0)
        cart = cart_service.get_or_create_cart(None)
        cart_service.add_item(cart, variants["TSHIRT-M"].id, 1)

        class ExhaustedApplier:
            def apply(self, promo, commit=True):
                raise PromoCodeUnavailable("Promo code usage limit exceeded")

        with pytest.raises(PromoCodeUnavailable):
            cart_service.apply_promo_to_cart(cart, "LAST", applier=ExhaustedApplier())
        assert not cart.has_promo_code()

    def test_remove_promo_keeps_usage(self, app, variants, make_promo):
        promo = make_promo(code="SAVE10")
        cart = cart_service.get_or_create_cart(None)
        cart_service.add_item(cart, variants["TSHIRT-M"].id, 4)
        cart_service.apply_promo_to_cart(cart, "SAVE10")

        cart_service.remove_promo_from_cart(cart)
        assert cart.discount_amount == Decimal("0")
        assert cart.total == Decimal("100.00")
        assert promo.current_usage_count == 1

    def test_shipping_cost(self, app, variants):
        cart = cart_service.get_or_create_cart(None)
        cart_service.add_item(cart, variants["MUG-350"].id, 2)
        cart_service.set_shipping_cost(cart, "4.5")
        assert cart.shipping_cost == Decimal("4.50")
        assert cart.total == Decimal("21.50")
        with pytest.raises(ValueError):
            cart_service.set_shipping_cost(cart, "-1")

    def test_abandon_returns_fresh_cart(self, app):
        cart = cart_service.get_or_create_cart(None)
        fresh = cart_service.abandon_cart(cart)
        assert fresh.uuid != cart.uuid
        assert cart.status == "abandoned"
        assert cart_service.get_or_create_cart(cart.uuid).uuid != cart.uuid
