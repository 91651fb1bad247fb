from datetime import timedelta
from decimal import Decimal

import pytest
from django.core.cache import cache
from django.utils import timezone
from pytest_factoryboy import register

from .factory import PercentageOffFactory, FixedAmountOffFactory, BuyXGetYFactory, PromoCodeFactory

register(PercentageOffFactory)
register(FixedAmountOffFactory)
register(BuyXGetYFactory)
register(PromoCodeFactory)


@pytest.fixture(autouse=True)
def clear_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def now():
    return timezone.now()


@pytest.fixture
def expired_promo(promo_code_factory, now):
    """Ended an hour ago"""
    return promo_code_factory(
        start_date=now - timedelta(days=7),
        end_date=now - timedelta(hours=1),
    )


@pytest.fixture
def fixed_promo(promo_code_factory, fixed_amount_off_factory):
    """200 off, capped at 150, for orders of 500 and up"""
    return promo_code_factory(
        code="FIXED200",
        discount=fixed_amount_off_factory(amount=Decimal("200"), cap=Decimal("150")),
        minimum_order_amount=Decimal("500"),
    )
