import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Iterable, Optional

from django.conf import settings

from core.utils.money import D, ZERO, round_money
from promotions.domain import BuyXGetY, DiscountableLine, PromoCode
from promotions.services import PromotionService
from .domain import CartEntry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CheckoutSummary:
    subtotal: Decimal
    paid_drinks_total: Decimal
    discount: Decimal
    subtotal_after_discount: Decimal
    base_delivery_fee: Decimal
    special_delivery_discount: Decimal
    delivery_fee: Decimal
    service_fee: Decimal
    total: Decimal


class CheckoutCalculator:
    """
    Fee breakdown for a cart. Paid drinks are already inside entry prices,
    `paid_drinks_total` is reported for display only.
    """

    def __init__(self, delivery_fee=None, service_fee=None):
        self.delivery_fee = round_money(settings.CART_FALLBACK_DELIVERY_FEE if delivery_fee is None else delivery_fee)
        self.service_fee = round_money(settings.CART_SERVICE_FEE if service_fee is None else service_fee)

    @staticmethod
    def paid_drinks_total(entries: Iterable[CartEntry]) -> Decimal:
        total = ZERO
        for entry in entries:
            paid = entry.customizations.get("paid_drink_quantities") or {}
            prices = {d.get("id"): d.get("price") for d in entry.customizations.get("drinks") or [] if not d.get("is_free")}
            for drink_id, qty in paid.items():
                total += D(prices.get(drink_id)) * qty
        return round_money(total)

    def special_delivery_discount(self, entries: Iterable[CartEntry]) -> Decimal:
        """Largest limited-time delivery offer found in the cart."""
        best = ZERO
        for entry in entries:
            c = entry.customizations
            if not c.get("is_limited_offer"):
                continue
            if "special_delivery" not in (c.get("lto_offer_types") or []):
                continue
            details = c.get("lto_offer_details") or {}
            delivery_type = details.get("delivery_type")
            if delivery_type is None or details.get("delivery_value") is None:
                continue
            try:
                value = D(details["delivery_value"])
            except (InvalidOperation, ValueError, TypeError):
                logger.warning(f"Bad delivery_value on {entry.id}: {details['delivery_value']!r}")
                continue

            if delivery_type == "free":
                discount = self.delivery_fee
            elif delivery_type == "percentage":
                discount = self.delivery_fee * value / Decimal(100)
            elif delivery_type == "fixed":
                discount = value
            else:
                continue
            best = max(best, discount)
        return round_money(min(best, self.delivery_fee))

    def promo_discount(self, entries: list, subtotal: Decimal, promo: Optional[PromoCode], now=None, cache=None) -> Decimal:
        if promo is None:
            return ZERO
        if isinstance(promo.discount, BuyXGetY):
            lines = [
                DiscountableLine(
                    menu_item_id=str(e.customizations.get("menu_item_id") or ""),
                    unit_price=e.unit_price,
                    quantity=e.quantity,
                    category_id=e.customizations.get("category_id"),
                )
                for e in entries
            ]
            return min(PromotionService.buy_x_get_y_discount(promo, lines, now=now), subtotal)
        return PromotionService.calculate_discount(promo, subtotal, now=now, cache=cache)

    def summarize(self, entries: Iterable[CartEntry], promo: Optional[PromoCode] = None, now=None, cache=None) -> CheckoutSummary:
        entries = list(entries)
        subtotal = round_money(sum((e.total_price for e in entries), ZERO))
        discount = self.promo_discount(entries, subtotal, promo, now=now, cache=cache)
        special = self.special_delivery_discount(entries)
        delivery_fee = PromotionService.delivery_fee_after(promo, max(self.delivery_fee - special, ZERO), now=now)
        subtotal_after_discount = max(subtotal - discount, ZERO)
        total = round_money(max(subtotal_after_discount + delivery_fee + self.service_fee, ZERO))

        logger.debug(
            f"Checkout: subtotal={subtotal} discount={discount} delivery={delivery_fee} "
            f"service={self.service_fee} total={total}"
        )
        return CheckoutSummary(
            subtotal=subtotal,
            paid_drinks_total=self.paid_drinks_total(entries),
            discount=round_money(discount),
            subtotal_after_discount=round_money(subtotal_after_discount),
            base_delivery_fee=self.delivery_fee,
            special_delivery_discount=special,
            delivery_fee=round_money(delivery_fee),
            service_fee=self.service_fee,
            total=total,
        )
