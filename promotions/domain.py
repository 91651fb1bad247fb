from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional, Union

from django.db import models


class DiscountType(models.TextChoices):
    PERCENTAGE = "percentage", "Percentage"
    FIXED_AMOUNT = "fixedAmount", "Fixed-amount"
    FREE_DELIVERY = "freeDelivery", "Free-delivery"
    BUY_ONE_GET_ONE = "buyOneGetOne", "Buy-one-get-one"


class PromoStatus(models.TextChoices):
    ACTIVE = "active", "Active"
    INACTIVE = "inactive", "Inactive"
    EXPIRED = "expired", "Expired"
    PAUSED = "paused", "Paused"


# one payload per discount type, each carrying only what that type needs
@dataclass(frozen=True)
class PercentageOff:
    percent: Decimal
    cap: Optional[Decimal] = None

    discount_type = DiscountType.PERCENTAGE


@dataclass(frozen=True)
class FixedAmountOff:
    amount: Decimal
    cap: Optional[Decimal] = None

    discount_type = DiscountType.FIXED_AMOUNT


@dataclass(frozen=True)
class FreeDelivery:
    discount_type = DiscountType.FREE_DELIVERY


@dataclass(frozen=True)
class BuyXGetY:
    buy_amount: int = 1
    get_amount: int = 1

    discount_type = DiscountType.BUY_ONE_GET_ONE


Discount = Union[PercentageOff, FixedAmountOff, FreeDelivery, BuyXGetY]


@dataclass(frozen=True)
class PromoCode:
    """
    A promotion as the managed backend stores it. Read-only here: usage counts
    are bumped by order finalization, not by anything in this project.

    `start_date`/`end_date` are None when the backend sent something we could
    not parse; such a promotion is never active.
    """
    id: str
    code: str
    discount: Discount
    start_date: Optional[datetime]
    end_date: Optional[datetime]
    name: str = ""
    description: Optional[str] = None
    restaurant_id: Optional[str] = None
    minimum_order_amount: Decimal = Decimal("0")
    status: str = PromoStatus.ACTIVE
    usage_limit: Optional[int] = None
    used_count: Optional[int] = None
    user_usage_limit: Optional[int] = 1
    applicable_categories: tuple = ()
    applicable_menu_items: tuple = ()
    is_public: bool = True
    image_url: Optional[str] = None
    conditions: dict = field(default_factory=dict, compare=False)

    @property
    def discount_type(self) -> str:
        return self.discount.discount_type

    @property
    def value(self) -> Decimal:
        if isinstance(self.discount, PercentageOff):
            return self.discount.percent
        if isinstance(self.discount, FixedAmountOff):
            return self.discount.amount
        return Decimal("0")

    @property
    def maximum_discount_amount(self) -> Optional[Decimal]:
        return getattr(self.discount, "cap", None)

    @property
    def usage_exhausted(self) -> bool:
        # a limit of 0 means unlimited
        if not self.usage_limit or self.used_count is None:
            return False
        return self.used_count >= self.usage_limit


@dataclass(frozen=True)
class PromoValidation:
    promo: Optional[PromoCode] = None
    error_message: Optional[str] = None

    @property
    def is_valid(self) -> bool:
        return self.promo is not None and self.error_message is None


@dataclass(frozen=True)
class DiscountableLine:
    """What buy-X-get-Y needs to know about an order line."""
    menu_item_id: str
    unit_price: Decimal
    quantity: int
    category_id: Optional[str] = None
