from datetime import datetime, timezone as dt_timezone
from decimal import Decimal

import pytest
from rest_framework.exceptions import ValidationError

from promotions.domain import (
    BuyXGetY, DiscountType, FixedAmountOff, FreeDelivery, PercentageOff, PromoStatus,
)
from promotions.serializers import PromoCodeSerializer


def parse(payload):
    serializer = PromoCodeSerializer(data=payload)
    serializer.is_valid(raise_exception=True)
    return serializer.save()


@pytest.fixture
def backend_row():
    return {
        "id": "7f1c",
        "code": "FIXED200",
        "restaurant_id": "r1",
        "name": "Big order",
        "description": "200 off big orders",
        "type": "fixedAmount",
        "value": 200,
        "minimum_order_amount": "500",
        "maximum_discount_amount": 150.0,
        "start_date": "2024-01-01T00:00:00Z",
        "end_date": "2024-12-31T23:59:59+00:00",
        "status": "active",
        "usage_limit": 100,
        "used_count": 3,
        "user_usage_limit": 2,
        "applicable_categories": ["mains"],
        "applicable_menu_items": [],
        "is_public": True,
        "image_url": None,
        "conditions": {"first_order_only": False},
    }


class TestPromoCodeSerializer:
    def test_parses_backend_row(self, backend_row):
        promo = parse(backend_row)
        assert promo.id == "7f1c"
        assert promo.discount == FixedAmountOff(amount=Decimal("200"), cap=Decimal("150.0"))
        assert promo.discount_type == DiscountType.FIXED_AMOUNT
        assert promo.minimum_order_amount == Decimal("500")
        assert promo.start_date == datetime(2024, 1, 1, tzinfo=dt_timezone.utc)
        assert promo.status == PromoStatus.ACTIVE
        assert promo.usage_limit == 100
        assert promo.used_count == 3
        assert promo.user_usage_limit == 2
        assert promo.applicable_categories == ("mains",)
        assert promo.conditions == {"first_order_only": False}

    @pytest.mark.parametrize("raw,expected", [
        ("percentage", DiscountType.PERCENTAGE),
        ("fixed_amount", DiscountType.FIXED_AMOUNT),
        ("fixedamount", DiscountType.FIXED_AMOUNT),
        ("free_delivery", DiscountType.FREE_DELIVERY),
        ("FreeDelivery", DiscountType.FREE_DELIVERY),
        ("buy_one_get_one", DiscountType.BUY_ONE_GET_ONE),
        ("cashback", DiscountType.PERCENTAGE),
        (None, DiscountType.PERCENTAGE),
        (42, DiscountType.PERCENTAGE),
    ])
    def test_type_spellings(self, backend_row, raw, expected):
        backend_row["type"] = raw
        assert parse(backend_row).discount_type == expected

    def test_unknown_status_is_active(self, backend_row):
        backend_row["status"] = "archived"
        assert parse(backend_row).status == PromoStatus.ACTIVE

    def test_bad_numbers_degrade(self, backend_row):
        backend_row.update({
            "type": "percentage",
            "value": "ten",
            "minimum_order_amount": -5,
            "maximum_discount_amount": "n/a",
            "usage_limit": "lots",
            "user_usage_limit": None,
        })
        promo = parse(backend_row)
        assert promo.discount == PercentageOff(percent=Decimal("0"), cap=None)
        assert promo.minimum_order_amount == Decimal("0")
        assert promo.usage_limit is None
        assert promo.user_usage_limit == 1

    def test_bad_dates_become_none(self, backend_row):
        backend_row["start_date"] = "yesterday"
        backend_row["end_date"] = None
        promo = parse(backend_row)
        assert promo.start_date is None
        assert promo.end_date is None

    def test_naive_date_is_utc(self, backend_row):
        backend_row["end_date"] = "2024-06-01T12:00:00"
        assert parse(backend_row).end_date == datetime(2024, 6, 1, 12, tzinfo=dt_timezone.utc)

    def test_defaults_for_missing_fields(self):
        promo = parse({"code": "HELLO"})
        assert promo.code == "HELLO"
        assert promo.id == ""
        assert promo.restaurant_id is None
        assert promo.is_public is True
        assert promo.user_usage_limit == 1
        assert promo.applicable_menu_items == ()
        assert promo.start_date is None

    def test_free_delivery(self, backend_row):
        backend_row["type"] = "freeDelivery"
        assert parse(backend_row).discount == FreeDelivery()

    def test_bogo_counts_from_conditions(self, backend_row):
        backend_row["type"] = "buyOneGetOne"
        backend_row["conditions"] = {"buy_amount": 2, "get_amount": "1"}
        assert parse(backend_row).discount == BuyXGetY(buy_amount=2, get_amount=1)

    def test_bogo_defaults_to_one_for_one(self, backend_row):
        backend_row["type"] = "buyOneGetOne"
        backend_row["conditions"] = {"buy_amount": 0}
        assert parse(backend_row).discount == BuyXGetY(buy_amount=1, get_amount=1)

    def test_rejects_non_object(self):
        serializer = PromoCodeSerializer(data=["not", "a", "promo"])
        with pytest.raises(ValidationError):
            serializer.is_valid(raise_exception=True)

    def test_representation_uses_backend_names(self, backend_row):
        data = PromoCodeSerializer(parse(backend_row)).data
        assert data["type"] == "fixedAmount"
        assert data["value"] == 200.0
        assert data["maximum_discount_amount"] == 150.0
        assert data["minimum_order_amount"] == 500.0
        assert data["status"] == "active"
        assert data["start_date"] == "2024-01-01T00:00:00+00:00"
        assert data["applicable_categories"] == ["mains"]
        assert data["restaurant_id"] == "r1"

    def test_representation_round_trips(self, backend_row):
        promo = parse(backend_row)
        assert parse(PromoCodeSerializer(promo).data) == promo

    def test_bogo_representation_carries_counts(self, promo_code_factory):
        promo = promo_code_factory(discount=BuyXGetY(buy_amount=2, get_amount=1))
        data = PromoCodeSerializer(promo).data
        assert data["type"] == "buyOneGetOne"
        assert data["value"] == 0.0
        assert data["conditions"] == {"buy_amount": 2, "get_amount": 1}
