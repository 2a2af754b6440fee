from .promo_codes import PromoCodeRepository

__all__ = ["PromoCodeRepository"]
