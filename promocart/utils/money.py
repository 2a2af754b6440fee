# promocart/utils/money.py

from decimal import Decimal, ROUND_HALF_UP

Money = Decimal

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

def D(x) -> Money:
    return x if isinstance(x, Decimal) else Decimal(str(x or "0"))

def round_money(x: Money) -> Money:
    return D(x).quantize(CENT, rounding=ROUND_HALF_UP)

def to_string_money(x) -> str:
    return str(round_money(x))

def format_money(x, symbol: str = "$") -> str:
    # "50" -> "$50.00"
    return f"{symbol}{round_money(x)}"
