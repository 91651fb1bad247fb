from decimal import Decimal

import pytest
from pytest_factoryboy import register

from cart.services import PackOrderAssembler
from promotions.tests.factory import PercentageOffFactory, PromoCodeFactory
from .factory import DrinkFactory, MenuItemFactory, PricingFactory, SavedOrderFactory

register(MenuItemFactory)
register(DrinkFactory)
register(PricingFactory)
register(SavedOrderFactory)
register(PercentageOffFactory)
register(PromoCodeFactory)


@pytest.fixture
def cola(drink_factory):
    return drink_factory(id="cola", name="Cola", price=Decimal("150"), size="33cl")


@pytest.fixture
def water(drink_factory):
    return drink_factory(id="water", name="Water", price=Decimal("50"))


@pytest.fixture
def pack(menu_item_factory):
    """Plain pack at 200"""
    return menu_item_factory(id="pack-1", name="Family Pack")


@pytest.fixture
def assembler(pack, cola, water):
    return PackOrderAssembler(pack, drinks=[cola, water])
