# promocart/services/promo_service.py
"""
Promo code rules: validation pipeline, discount maths, usage recording and
the admin lookups built on top of the repository.
"""
from __future__ import annotations
import enum
import logging
import re
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal, InvalidOperation
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError
from ..extensions import db
from ..model import PromoCode, DiscountType
from ..repository import PromoCodeRepository
from ..utils.clock import utcnow, parse_iso8601
from ..utils.money import D, ZERO, format_money

logger = logging.getLogger(__name__)

CODE_MIN_LEN = 3
CODE_MAX_LEN = 50
_CODE_RE = re.compile(r"[A-Za-z0-9]+")


class PromoError(enum.Enum):
    EMPTY_CODE = "Promo code cannot be empty"
    INVALID_LENGTH = f"Promo code must be between {CODE_MIN_LEN} and {CODE_MAX_LEN} characters"
    INVALID_CHARACTERS = "Promo code can only contain letters and numbers"
    NOT_FOUND = "Promo code not found"
    NOT_YET_VALID = "Promo code is not yet valid"
    EXPIRED = "Promo code has expired"
    INACTIVE = "Promo code is not active"
    USAGE_LIMIT_EXCEEDED = "Promo code usage limit exceeded"
    MINIMUM_NOT_MET = "Minimum order amount not met (requires {required})"

    @property
    def message(self) -> str:
        return self.value


class PromoCodeUnavailable(ValueError):
    """The usage cap was reached between validation and application."""


class DuplicatePromoCode(ValueError):
    pass


@dataclass
class ValidationResult:
    valid: bool
    promo_code: PromoCode | None = None
    discount_amount: Decimal = ZERO
    error: PromoError | None = None
    error_message: str | None = None
    required_amount: Decimal | None = None

    @classmethod
    def success(cls, promo_code: PromoCode, discount_amount: Decimal) -> "ValidationResult":
        return cls(valid=True, promo_code=promo_code, discount_amount=discount_amount)

    @classmethod
    def failure(cls, error: PromoError, message: str | None = None, **extra) -> "ValidationResult":
        return cls(valid=False, error=error, error_message=message or error.message, **extra)

    def as_api(self):
        return {
            "valid": self.valid,
            "code": self.promo_code.code if self.promo_code else None,
            "discount_amount": str(self.discount_amount),
            "error": self.error.name if self.error else None,
            "error_message": self.error_message,
            "required_amount": str(self.required_amount) if self.required_amount is not None else None,
        }


def lexical_error(code) -> PromoError | None:
    if not code or not code.strip():
        return PromoError.EMPTY_CODE
    if not (CODE_MIN_LEN <= len(code) <= CODE_MAX_LEN):
        return PromoError.INVALID_LENGTH
    if not _CODE_RE.fullmatch(code):
        return PromoError.INVALID_CHARACTERS
    return None


def calculate_discount(promo_code: PromoCode, cart_subtotal) -> Decimal:
    # percentage: half-up to cents; fixed: capped at the subtotal
    return promo_code.calculate_discount(D(cart_subtotal))


class PromoCodeValidator:
    def __init__(self, repository: PromoCodeRepository | None = None, clock=utcnow, currency_symbol: str = "$"):
        self.repository = repository or PromoCodeRepository()
        self.clock = clock
        self.currency_symbol = currency_symbol

    def validate(self, code: str, cart_subtotal) -> ValidationResult:
        """
        Ordered checks, first failure wins:
          1) lexical (empty, length, characters)
          2) active code exists
          3) validity window, strict on both ends
          4) usage limit
          5) minimum order amount
        """
        code = "" if code is None else str(code)
        err = lexical_error(code)
        if err:
            return ValidationResult.failure(err)

        promo = self.repository.find_active_by_code(code.upper())
        if promo is None:
            return ValidationResult.failure(PromoError.NOT_FOUND)

        now = self.clock()
        if not promo.is_currently_valid(now):
            if now <= promo.valid_from:
                return ValidationResult.failure(PromoError.NOT_YET_VALID)
            if now >= promo.valid_until:
                return ValidationResult.failure(PromoError.EXPIRED)
            if not promo.is_active:
                return ValidationResult.failure(PromoError.INACTIVE)

        if promo.has_reached_usage_limit():
            return ValidationResult.failure(PromoError.USAGE_LIMIT_EXCEEDED)

        subtotal = D(cart_subtotal)
        if not promo.meets_minimum_order_amount(subtotal):
            required = D(promo.minimum_order_amount)
            message = PromoError.MINIMUM_NOT_MET.message.format(
                required=format_money(required, self.currency_symbol)
            )
            return ValidationResult.failure(PromoError.MINIMUM_NOT_MET, message, required_amount=required)

        return ValidationResult.success(promo, calculate_discount(promo, subtotal))


class PromoCodeApplier:
    def __init__(self, repository: PromoCodeRepository | None = None, clock=utcnow):
        self.repository = repository or PromoCodeRepository()
        self.clock = clock

    def apply(self, promo_code: PromoCode, commit: bool = True) -> PromoCode:
        """
        Record one use of an already validated code. The increment is a
        conditional UPDATE, so racing appliers cannot push the counter past
        max_usage_count. With commit=False the caller owns the transaction.
        """
        try:
            applied = self.repository.increment_usage_if_available(promo_code, self.clock())
            if not applied:
                logger.warning("promo %s exhausted before it could be applied", promo_code.code)
                raise PromoCodeUnavailable(PromoError.USAGE_LIMIT_EXCEEDED.message)
            if commit:
                db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            logger.exception("failed to record usage of promo %s", promo_code.code)
            raise

        logger.info("promo %s used (%s/%s)", promo_code.code,
                    promo_code.current_usage_count, promo_code.max_usage_count or "unlimited")
        return promo_code


# ---- app-bound helpers -----------------------------------------------------

def get_validator(clock=utcnow) -> PromoCodeValidator:
    return PromoCodeValidator(clock=clock, currency_symbol=current_app.config.get("CURRENCY_SYMBOL", "$"))


def validate_promo_code(code: str, cart_subtotal) -> ValidationResult:
    return get_validator().validate(code, cart_subtotal)


def find_active_promo_code_by_code(code: str) -> PromoCode | None:
    return PromoCodeRepository().find_active_by_code((code or "").upper())


def find_currently_valid_promo_codes(now=None) -> list[PromoCode]:
    return PromoCodeRepository().find_currently_valid(now or utcnow())


def is_promo_code_valid(code: str, now=None) -> bool:
    return PromoCodeRepository().exists_valid((code or "").upper(), now or utcnow())


def find_expiring_within(hours: int, now=None) -> list[PromoCode]:
    now = now or utcnow()
    return PromoCodeRepository().find_expiring_within(now, now + timedelta(hours=hours))


def promo_code_stats(now=None) -> dict:
    repo = PromoCodeRepository()
    all_codes = repo.find_all()
    return {
        "total_codes": len(all_codes),
        "active_codes": len(repo.find_active()),
        "currently_valid": len(repo.find_currently_valid(now or utcnow())),
        "usage_limit_reached": len(repo.find_usage_limit_reached()),
        "total_usage": sum(p.current_usage_count or 0 for p in all_codes),
    }


def list_promo_codes(active: bool | None = None, discount_type: str | None = None) -> list[PromoCode]:
    repo = PromoCodeRepository()
    if discount_type:
        return repo.find_active_by_discount_type(parse_discount_type(discount_type))
    if active is None:
        return repo.find_all()
    if active:
        return repo.find_active()
    return [p for p in repo.find_all() if not p.is_active]


# ---- administration --------------------------------------------------------

_TYPE_ALIASES = {
    "percentage": DiscountType.PERCENTAGE,
    "percent": DiscountType.PERCENTAGE,
    "fixed_amount": DiscountType.FIXED_AMOUNT,
    "fixed": DiscountType.FIXED_AMOUNT,
}


def parse_discount_type(value) -> DiscountType:
    dtype = _TYPE_ALIASES.get(str(value or "").strip().lower())
    if dtype is None:
        raise ValueError("discount_type must be 'PERCENTAGE' or 'FIXED_AMOUNT'")
    return dtype


def _parse_amount(value, field: str, required: bool = False) -> Decimal | None:
    if value is None or value == "":
        if required:
            raise ValueError(f"{field} is required")
        return None
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"{field} must be numeric")
    if not amount.is_finite() or amount < 0:
        raise ValueError(f"{field} must be >= 0")
    return amount


def parse_subtotal(value) -> Decimal:
    return _parse_amount(value, "subtotal", required=True)


def _parse_count(value, field: str) -> int | None:
    if value is None or value == "":
        return None
    try:
        count = int(value)
    except (TypeError, ValueError):
        raise ValueError(f"{field} must be an integer")
    if count < 0:
        raise ValueError(f"{field} must be >= 0")
    return count


def _parse_flag(value, field: str) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"{field} must be a boolean")
    return value


def create_promo_code(data: dict) -> PromoCode:
    code = data.get("code")
    code = "" if code is None else str(code)
    err = lexical_error(code)
    if err:
        raise ValueError(err.message)

    discount_type = parse_discount_type(data.get("discount_type"))
    discount_value = _parse_amount(data.get("discount_value"), "discount_value", required=True)

    valid_from = parse_iso8601(data.get("valid_from"))
    valid_until = parse_iso8601(data.get("valid_until"))
    if not valid_from:
        raise ValueError("valid_from is required (ISO 8601)")
    if not valid_until:
        raise ValueError("valid_until is required (ISO 8601)")
    if valid_until <= valid_from:
        raise ValueError("valid_until must be after valid_from")

    repo = PromoCodeRepository()
    if repo.find_by_code_ci(code):
        raise DuplicatePromoCode("Promo code already exists")

    promo = PromoCode(
        code=code.upper(),
        description=(data.get("description") or None),
        discount_type=discount_type,
        discount_value=discount_value,
        minimum_order_amount=_parse_amount(data.get("minimum_order_amount"), "minimum_order_amount"),
        max_usage_count=_parse_count(data.get("max_usage_count"), "max_usage_count"),
        current_usage_count=0,
        valid_from=valid_from,
        valid_until=valid_until,
        is_active=_parse_flag(data.get("is_active", True), "is_active"),
    )
    repo.save(promo)
    logger.info("promo %s created (%s %s)", promo.code, discount_type.value, discount_value)
    return promo


def deactivate_promo_code(code: str) -> PromoCode:
    repo = PromoCodeRepository()
    promo = repo.find_by_code((code or "").upper())
    if promo is None:
        raise LookupError(PromoError.NOT_FOUND.message)
    promo.is_active = False
    repo.save(promo)
    logger.info("promo %s deactivated", promo.code)
    return promo
