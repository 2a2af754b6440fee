# promocart/repository/promo_codes.py
from __future__ import annotations
from sqlalchemy import func, or_, update
from ..extensions import db
from ..model import PromoCode, DiscountType


class PromoCodeRepository:
    """
    Storage capabilities the promo rules need, backed by the Flask-SQLAlchemy session.
    Codes are stored uppercase; callers pass the normalised value.
    """

    # ---- lookups ----------------------------------------------------------
    def find_by_code(self, code: str) -> PromoCode | None:
        return PromoCode.query.filter(PromoCode.code == code).first()

    def find_by_code_ci(self, code: str) -> PromoCode | None:
        return PromoCode.query.filter(func.upper(PromoCode.code) == code.upper()).first()

    def find_active_by_code(self, code: str) -> PromoCode | None:
        return (
            PromoCode.query
            .filter(PromoCode.code == code, PromoCode.is_active.is_(True))
            .first()
        )

    def find_all(self) -> list[PromoCode]:
        return PromoCode.query.order_by(PromoCode.id.desc()).all()

    def find_active(self) -> list[PromoCode]:
        return PromoCode.query.filter(PromoCode.is_active.is_(True)).order_by(PromoCode.id.desc()).all()

    def find_currently_valid(self, now) -> list[PromoCode]:
        return (
            PromoCode.query
            .filter(
                PromoCode.is_active.is_(True),
                PromoCode.valid_from <= now,
                PromoCode.valid_until > now,
            )
            .order_by(PromoCode.valid_until.asc())
            .all()
        )

    def find_expiring_within(self, now, threshold) -> list[PromoCode]:
        return (
            PromoCode.query
            .filter(
                PromoCode.is_active.is_(True),
                PromoCode.valid_until > now,
                PromoCode.valid_until <= threshold,
            )
            .order_by(PromoCode.valid_until.asc())
            .all()
        )

    def find_usage_limit_reached(self) -> list[PromoCode]:
        return (
            PromoCode.query
            .filter(
                PromoCode.max_usage_count.isnot(None),
                PromoCode.current_usage_count >= PromoCode.max_usage_count,
            )
            .all()
        )

    def find_active_by_discount_type(self, discount_type: DiscountType) -> list[PromoCode]:
        return (
            PromoCode.query
            .filter(PromoCode.discount_type == discount_type, PromoCode.is_active.is_(True))
            .all()
        )

    def exists_valid(self, code: str, now) -> bool:
        count = (
            db.session.query(func.count(PromoCode.id))
            .filter(
                PromoCode.code == code,
                PromoCode.is_active.is_(True),
                PromoCode.valid_from <= now,
                PromoCode.valid_until > now,
            )
            .scalar()
        )
        return bool(count)

    # ---- writes -----------------------------------------------------------
    def save(self, promo: PromoCode, commit: bool = True) -> PromoCode:
        db.session.add(promo)
        if commit:
            db.session.commit()
        else:
            db.session.flush()
        return promo

    def increment_usage_if_available(self, promo: PromoCode, now) -> bool:
        """
        Conditional increment in a single UPDATE:
            ... WHERE id = :id AND (max_usage_count IS NULL OR current_usage_count < max_usage_count)
        Returns False when no row matched (cap already reached). The row is
        refreshed on success; nothing is committed here.
        """
        stmt = (
            update(PromoCode)
            .where(PromoCode.id == promo.id)
            .where(or_(
                PromoCode.max_usage_count.is_(None),
                PromoCode.current_usage_count < PromoCode.max_usage_count,
            ))
            .values(
                current_usage_count=PromoCode.current_usage_count + 1,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        result = db.session.execute(stmt)
        if result.rowcount != 1:
            return False
        db.session.refresh(promo)
        return True
