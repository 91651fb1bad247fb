from rest_framework import serializers

from core.utils.fields import (
    JSONObjectField, LenientBooleanField, LenientCharField, LenientChoiceField, LenientDateTimeField,
    LenientDecimalField, LenientIntegerField, StringListField,
)
from core.utils.money import ZERO
from .domain import (
    BuyXGetY, DiscountType, FixedAmountOff, FreeDelivery, PercentageOff,
    PromoCode, PromoStatus,
)

TYPE_ALIASES = {
    "percentage": DiscountType.PERCENTAGE,
    "percent": DiscountType.PERCENTAGE,
    "fixedAmount": DiscountType.FIXED_AMOUNT,
    "fixed": DiscountType.FIXED_AMOUNT,
    "freeDelivery": DiscountType.FREE_DELIVERY,
    "buyOneGetOne": DiscountType.BUY_ONE_GET_ONE,
    "bogo": DiscountType.BUY_ONE_GET_ONE,
}

STATUS_ALIASES = {choice.value: choice for choice in PromoStatus}


def build_discount(discount_type, value, cap, conditions):
    if discount_type == DiscountType.FIXED_AMOUNT:
        return FixedAmountOff(amount=value, cap=cap)
    if discount_type == DiscountType.FREE_DELIVERY:
        return FreeDelivery()
    if discount_type == DiscountType.BUY_ONE_GET_ONE:
        counts = LenientIntegerField(min_value=1, fallback=1)
        return BuyXGetY(
            buy_amount=counts.run_validation(conditions.get("buy_amount")),
            get_amount=counts.run_validation(conditions.get("get_amount")),
        )
    return PercentageOff(percent=value, cap=cap)


class PromoCodeSerializer(serializers.Serializer):
    """
    Reads a promotion row from the backend. Individual bad fields degrade
    (see core.utils.fields); only a payload that isn't an object is rejected.

        s = PromoCodeSerializer(data=row)
        s.is_valid(raise_exception=True)
        promo = s.save()
    """
    id = LenientCharField(fallback="")
    code = LenientCharField(fallback="")
    restaurant_id = LenientCharField()
    name = LenientCharField(fallback="")
    description = LenientCharField()
    type = LenientChoiceField(TYPE_ALIASES, fallback=DiscountType.PERCENTAGE, source="discount_type")
    value = LenientDecimalField(fallback=ZERO)
    minimum_order_amount = LenientDecimalField(fallback=ZERO)
    maximum_discount_amount = LenientDecimalField()
    start_date = LenientDateTimeField()
    end_date = LenientDateTimeField()
    status = LenientChoiceField(STATUS_ALIASES, fallback=PromoStatus.ACTIVE)
    usage_limit = LenientIntegerField(min_value=0)
    used_count = LenientIntegerField(min_value=0)
    user_usage_limit = LenientIntegerField(min_value=0, fallback=1)
    applicable_categories = StringListField()
    applicable_menu_items = StringListField()
    is_public = LenientBooleanField(fallback=True)
    image_url = LenientCharField()
    conditions = JSONObjectField()

    def create(self, validated_data):
        data = dict(validated_data)
        conditions = data.pop("conditions")
        discount = build_discount(
            data.pop("discount_type"),
            data.pop("value"),
            data.pop("maximum_discount_amount"),
            conditions,
        )
        return PromoCode(
            discount=discount,
            restaurant_id=data.pop("restaurant_id") or None,
            applicable_categories=tuple(data.pop("applicable_categories")),
            applicable_menu_items=tuple(data.pop("applicable_menu_items")),
            conditions=conditions,
            **data,
        )

    def to_representation(self, instance):
        data = super().to_representation(instance)
        data["applicable_categories"] = list(instance.applicable_categories)
        data["applicable_menu_items"] = list(instance.applicable_menu_items)
        if isinstance(instance.discount, BuyXGetY):
            conditions = dict(data.get("conditions") or {})
            conditions.setdefault("buy_amount", instance.discount.buy_amount)
            conditions.setdefault("get_amount", instance.discount.get_amount)
            data["conditions"] = conditions
        return data
