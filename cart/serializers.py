from decimal import ROUND_HALF_UP

from rest_framework import serializers

from core.utils.fields import (
    JSONObjectField, LenientBooleanField, LenientCharField, LenientDateTimeField,
    MAX_QUANTITY, LenientDecimalField, LenientField, LenientIntegerField, QuantityMapField, StringListField,
)
from core.utils.money import ZERO
from .domain import Drink, MenuItem, Pricing, SavedOrder, Supplement


def build(serializer_class, data):
    serializer = serializer_class(data=data)
    serializer.is_valid(raise_exception=True)
    return serializer.save()


def build_many(serializer_class, items):
    # entries that aren't objects are skipped, not fatal
    return tuple(build(serializer_class, item) for item in items or () if isinstance(item, dict))


class ObjectListField(LenientField):
    def __init__(self, **kwargs):
        kwargs.setdefault("fallback", list)
        super().__init__(**kwargs)

    def parse(self, data):
        if not isinstance(data, (list, tuple)):
            raise TypeError("expected a list")
        return [item for item in data if isinstance(item, dict)]


class DrinkSerializer(serializers.Serializer):
    id = LenientCharField(fallback="")
    name = LenientCharField(fallback="")
    price = LenientDecimalField()
    size = LenientCharField()

    def create(self, validated_data):
        return Drink(**validated_data)


class SupplementSerializer(serializers.Serializer):
    name = LenientCharField(fallback="")
    price = LenientDecimalField(fallback=ZERO)

    def create(self, validated_data):
        return Supplement(**validated_data)


class MenuItemSerializer(serializers.Serializer):
    id = LenientCharField(fallback="")
    name = LenientCharField(fallback="")
    price = LenientDecimalField()
    restaurant_id = LenientCharField(fallback="")
    restaurant_name = LenientCharField(fallback="")
    image = LenientCharField()
    is_limited_offer = LenientBooleanField(fallback=False)
    offer_types = StringListField()
    offer_details = JSONObjectField()

    def create(self, validated_data):
        validated_data["offer_types"] = tuple(validated_data["offer_types"])
        return MenuItem(**validated_data)


class PricingSerializer(serializers.Serializer):
    id = LenientCharField(fallback="")
    size = LenientCharField()
    portion = LenientCharField()
    price = LenientDecimalField()
    variant_id = LenientCharField()
    free_drinks_list = StringListField()
    free_drinks_quantity = LenientIntegerField(min_value=0, max_value=MAX_QUANTITY, fallback=1)
    is_limited_offer = LenientBooleanField(fallback=False)
    offer_start_at = LenientDateTimeField()
    offer_end_at = LenientDateTimeField()
    original_price = LenientDecimalField()
    offer_types = StringListField()
    offer_details = JSONObjectField()

    def create(self, validated_data):
        validated_data["free_drinks_list"] = tuple(validated_data["free_drinks_list"])
        validated_data["offer_types"] = tuple(validated_data["offer_types"])
        return Pricing(**validated_data)


class SavedOrderSerializer(serializers.Serializer):
    """
    A draft line as the ordering flow stores it between visits. Anything
    unreadable degrades: a bad price is treated as missing so the normal
    fallback chain applies, a bad quantity becomes 1.
    """
    variant_id = LenientCharField(fallback="")
    variant_name = LenientCharField(fallback="")
    quantity = LenientIntegerField(min_value=1, max_value=MAX_QUANTITY, fallback=1)
    pricing = JSONObjectField()
    total_price = LenientDecimalField()
    supplements = ObjectListField()
    drinks = ObjectListField()
    drink_quantities = QuantityMapField()
    free_drink_quantities = QuantityMapField(fallback=None)
    paid_drink_quantities = QuantityMapField()
    note = LenientCharField(fallback="")
    removed_ingredients = StringListField()
    ingredient_preferences = JSONObjectField()

    def create(self, validated_data):
        data = dict(validated_data)
        data["pricing"] = build(PricingSerializer, data["pricing"])
        data["supplements"] = build_many(SupplementSerializer, data["supplements"])
        data["drinks"] = build_many(DrinkSerializer, data["drinks"])
        data["removed_ingredients"] = tuple(data["removed_ingredients"])
        data["ingredient_preferences"] = {str(k): str(v) for k, v in data["ingredient_preferences"].items()}
        return SavedOrder(**data)


class CartEntrySerializer(serializers.Serializer):
    id = serializers.CharField(read_only=True)
    name = serializers.CharField(read_only=True)
    price = serializers.DecimalField(
        source="unit_price", max_digits=12, decimal_places=2,
        coerce_to_string=False, rounding=ROUND_HALF_UP, read_only=True,
    )
    quantity = serializers.IntegerField(read_only=True)
    total_price = serializers.DecimalField(
        max_digits=12, decimal_places=2, coerce_to_string=False, read_only=True,
    )
    image = serializers.CharField(read_only=True, allow_null=True)
    restaurant_name = serializers.CharField(read_only=True)
    customizations = serializers.JSONField(read_only=True)
    drink_quantities = serializers.JSONField(read_only=True)
    special_instructions = serializers.CharField(read_only=True)
