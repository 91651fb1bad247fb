import logging
from decimal import Decimal
from typing import Iterable, Optional

from core.utils.dates import now_or
from core.utils.money import ZERO, clamp, round_money, to_amount
from .cache import ActiveStatusCache
from .domain import (
    BuyXGetY, DiscountableLine, FixedAmountOff, FreeDelivery, PercentageOff,
    PromoCode, PromoStatus, PromoValidation,
)

logger = logging.getLogger(__name__)

INACTIVE_MESSAGE = "This promo code is not currently active or has expired"
WRONG_RESTAURANT_MESSAGE = "This promo code is not valid for the selected restaurant"
USER_LIMIT_MESSAGE = "You have already used this promo code the maximum number of times"
NOT_FOUND_MESSAGE = "Promo code not found"
INVALID_AMOUNT_MESSAGE = "Order amount is not a valid number"


class PromotionService:
    """Pure promotion rules. Nothing here writes anywhere."""

    @staticmethod
    def is_active(promo: PromoCode, now=None, cache: Optional[ActiveStatusCache] = None) -> bool:
        """
        Promotion is usable if:
        - status is active
        - start_date <= now < end_date
        - AND (usage_limit unset/0 OR used_count unset OR used_count < usage_limit)
        """
        def compute():
            current_time = now_or(now)
            if promo.status != PromoStatus.ACTIVE:
                return False
            if promo.start_date is None or promo.end_date is None:
                return False
            if not (promo.start_date <= current_time < promo.end_date):
                return False
            return not promo.usage_exhausted

        # an explicit `now` is a what-if question, don't answer it from cache
        if cache is None or now is not None:
            return compute()
        return cache.memoize(promo.id, compute)

    @staticmethod
    def is_expired(promo: PromoCode, now=None) -> bool:
        current_time = now_or(now)
        if promo.end_date is None:
            return True
        return current_time >= promo.end_date or promo.usage_exhausted

    @staticmethod
    def calculate_discount(promo: PromoCode, order_amount, now=None, cache: Optional[ActiveStatusCache] = None) -> Decimal:
        """Discount against the order subtotal, always within [0, order_amount]."""
        amount = to_amount(order_amount)
        if amount is None:
            logger.warning(f"Unparseable order amount {order_amount!r} for promo {promo.code}, no discount")
            return ZERO
        order_amount = max(amount, ZERO)
        if not PromotionService.is_active(promo, now=now, cache=cache):
            return ZERO
        if order_amount < promo.minimum_order_amount:
            return ZERO

        discount = promo.discount
        if isinstance(discount, PercentageOff):
            amount = order_amount * discount.percent / Decimal(100)
        elif isinstance(discount, FixedAmountOff):
            amount = discount.amount
        else:
            # free delivery lowers the delivery fee, BxGy discounts specific lines
            amount = ZERO

        cap = getattr(discount, "cap", None)
        if cap is not None and cap > 0:
            amount = min(amount, cap)

        return round_money(clamp(amount, ZERO, order_amount))

    @staticmethod
    def validate(
        promo: PromoCode,
        restaurant_id=None,
        user_usage_count: Optional[int] = None,
        order_amount=None,
        item_ids: Iterable[str] = (),
        category_ids: Iterable[str] = (),
        now=None,
    ) -> PromoValidation:
        """Check if promo is usable for a given checkout."""
        if not PromotionService.is_active(promo, now=now):
            return PromoValidation(error_message=INACTIVE_MESSAGE)

        # scope check, an unscoped promo works everywhere
        if restaurant_id and promo.restaurant_id and str(promo.restaurant_id) != str(restaurant_id):
            return PromoValidation(error_message=WRONG_RESTAURANT_MESSAGE)

        if (
            user_usage_count is not None
            and promo.user_usage_limit
            and user_usage_count >= promo.user_usage_limit
        ):
            return PromoValidation(error_message=USER_LIMIT_MESSAGE)

        if order_amount is not None:
            amount = to_amount(order_amount)
            if amount is None:
                logger.warning(f"Unparseable order amount {order_amount!r} for promo {promo.code}")
                return PromoValidation(error_message=INVALID_AMOUNT_MESSAGE)
            order_amount = amount

        if order_amount is not None and order_amount < promo.minimum_order_amount:
            return PromoValidation(
                error_message=f"Minimum order amount is {round_money(promo.minimum_order_amount)}"
            )

        # item/category allow-lists, empty means everything
        item_ids = {str(i) for i in item_ids}
        category_ids = {str(c) for c in category_ids}
        if promo.applicable_menu_items or promo.applicable_categories:
            matches_item = bool(item_ids & set(promo.applicable_menu_items))
            matches_category = bool(category_ids & set(promo.applicable_categories))
            if not (matches_item or matches_category):
                return PromoValidation(error_message="This promo code does not apply to the items in your cart")

        return PromoValidation(promo=promo)

    @staticmethod
    def find_by_code(promos: Iterable[PromoCode], code: str, restaurant_id=None, now=None) -> PromoValidation:
        """Look a code up among public promotions, then validate it."""
        wanted = (code or "").strip().upper()
        match = next((p for p in promos if p.code.upper() == wanted), None)
        if match is None:
            logger.info(f"Promo code {wanted} not found")
            return PromoValidation(error_message=NOT_FOUND_MESSAGE)
        result = PromotionService.validate(match, restaurant_id=restaurant_id, now=now)
        if not result.is_valid:
            logger.info(f"Promo code {wanted} rejected: {result.error_message}")
        return result

    @staticmethod
    def eligible(promos: Iterable[PromoCode], restaurant_id=None, now=None, cache: Optional[ActiveStatusCache] = None) -> list[PromoCode]:
        """Active, public promotions usable at `restaurant_id` (or platform-wide)."""
        out = []
        for promo in promos:
            if not promo.is_public:
                continue
            if promo.restaurant_id and restaurant_id and str(promo.restaurant_id) != str(restaurant_id):
                continue
            if PromotionService.is_active(promo, now=now, cache=cache):
                out.append(promo)
        return out

    @staticmethod
    def delivery_fee_after(promo: Optional[PromoCode], delivery_fee, now=None) -> Decimal:
        fee = to_amount(delivery_fee)
        if fee is None:
            logger.warning(f"Unparseable delivery fee {delivery_fee!r}, treating it as 0")
            fee = ZERO
        fee = max(fee, ZERO)
        if promo is None or not isinstance(promo.discount, FreeDelivery):
            return fee
        if not PromotionService.is_active(promo, now=now):
            return fee
        return ZERO

    @staticmethod
    def calculate_free_items(bought: int, buy_amount: int, get_amount: int) -> int:
        """Calculate freebies for Buy X Get Y (with pro-rata leftover)."""
        if buy_amount <= 0 or get_amount <= 0:
            return 0
        if bought < buy_amount:
            return 0  # not enough items to trigger

        group_size = buy_amount + get_amount

        # Exact freebies from full groups
        full_groups = bought // group_size
        free = full_groups * get_amount

        # Handle leftover (partial group, pro-rata)
        leftover = bought % group_size
        free += (leftover * get_amount) // group_size

        return free

    @staticmethod
    def buy_x_get_y_discount(promo: PromoCode, lines: Iterable[DiscountableLine], now=None) -> Decimal:
        """
        Free units for a buy-X-get-Y promotion. Only lines on the promo's
        allow-lists count (all lines when both lists are empty); the cheapest
        units are the ones given away.
        """
        if not isinstance(promo.discount, BuyXGetY):
            return ZERO
        if not PromotionService.is_active(promo, now=now):
            return ZERO

        restricted = bool(promo.applicable_menu_items or promo.applicable_categories)
        unit_prices = []
        for line in lines:
            if restricted and not (
                line.menu_item_id in promo.applicable_menu_items
                or (line.category_id and line.category_id in promo.applicable_categories)
            ):
                continue
            price = to_amount(line.unit_price)
            if price is None:
                logger.warning(f"Skipping line {line.menu_item_id} with unparseable price {line.unit_price!r}")
                continue
            unit_prices.extend([price] * max(line.quantity, 0))

        free_count = PromotionService.calculate_free_items(
            len(unit_prices), promo.discount.buy_amount, promo.discount.get_amount
        )
        if free_count <= 0:
            return ZERO
        return round_money(sum(sorted(unit_prices)[:free_count], ZERO))
