# promocart/cli.py
import json
from datetime import timedelta
from decimal import Decimal
import click
from flask.cli import with_appcontext
from .extensions import db
from .model import ProductVariant
from .repository import PromoCodeRepository
from .services import promo_service
from .utils.clock import utcnow


@click.command("create-promo-code")
@with_appcontext
@click.option("--code", required=True)
@click.option("--type", "discount_type", required=True,
              type=click.Choice(["PERCENTAGE", "FIXED_AMOUNT"], case_sensitive=False))
@click.option("--value", required=True)
@click.option("--minimum", default=None, help="minimum order amount")
@click.option("--max-uses", type=int, default=None)
@click.option("--days", type=int, default=30, show_default=True, help="valid for N days from now")
@click.option("--description", default=None)
def create_promo_code(code, discount_type, value, minimum, max_uses, days, description):
    now = utcnow()
    try:
        promo = promo_service.create_promo_code({
            "code": code,
            "discount_type": discount_type,
            "discount_value": value,
            "minimum_order_amount": minimum,
            "max_usage_count": max_uses,
            "valid_from": now.isoformat(),
            "valid_until": (now + timedelta(days=days)).isoformat(),
            "description": description,
        })
    except ValueError as e:
        raise click.ClickException(str(e))
    click.echo(f"Promo code created: {promo.id} {promo.code}")


@click.command("deactivate-promo-code")
@with_appcontext
@click.argument("code")
def deactivate_promo_code(code):
    try:
        promo = promo_service.deactivate_promo_code(code)
    except LookupError as e:
        raise click.ClickException(str(e.args[0]))
    click.echo(f"Promo code deactivated: {promo.code}")


@click.command("promo-stats")
@with_appcontext
def promo_stats():
    click.echo(json.dumps(promo_service.promo_code_stats(), indent=2))


_DEMO_VARIANTS = [
    {"sku": "TSHIRT-BLK-M", "title": "Black / M", "product_title": "Cotton T-Shirt", "price": Decimal("19.99")},
    {"sku": "TSHIRT-WHT-L", "title": "White / L", "product_title": "Cotton T-Shirt", "price": Decimal("19.99")},
    {"sku": "MUG-350", "title": "350 ml", "product_title": "Ceramic Mug", "price": Decimal("8.50")},
    {"sku": "CAP-ONE", "title": "One size", "product_title": "Baseball Cap", "price": Decimal("14.00")},
]

_DEMO_PROMOS = [
    {"code": "SAVE10", "discount_type": "PERCENTAGE", "discount_value": "10.00", "description": "10% off"},
    {"code": "MIN50", "discount_type": "FIXED_AMOUNT", "discount_value": "10.00",
     "minimum_order_amount": "50.00", "description": "10 off orders over 50"},
    {"code": "LIMITED", "discount_type": "PERCENTAGE", "discount_value": "15.00", "max_usage_count": 10,
     "description": "first ten customers"},
]


@click.command("seed-demo")
@with_appcontext
def seed_demo():
    now = utcnow()
    added = 0
    for v in _DEMO_VARIANTS:
        if not ProductVariant.query.filter_by(sku=v["sku"]).first():
            db.session.add(ProductVariant(**v)); added += 1
    db.session.commit()

    created = 0
    for p in _DEMO_PROMOS:
        if PromoCodeRepository().find_by_code(p["code"]):
            continue
        promo_service.create_promo_code({
            **p,
            "valid_from": (now - timedelta(days=1)).isoformat(),
            "valid_until": (now + timedelta(days=30)).isoformat(),
        })
        created += 1
    click.echo(f"Seeded {added} variants and {created} promo codes")


def register_cli(app):
    app.cli.add_command(create_promo_code)
    app.cli.add_command(deactivate_promo_code)
    app.cli.add_command(promo_stats)
    app.cli.add_command(seed_demo)
