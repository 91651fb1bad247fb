from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional

from core.utils.money import round_money


@dataclass(frozen=True)
class Drink:
    id: str
    name: str = ""
    price: Optional[Decimal] = None
    size: Optional[str] = None


@dataclass(frozen=True)
class Supplement:
    name: str
    price: Decimal = Decimal("0")


@dataclass(frozen=True)
class MenuItem:
    id: str
    name: str = ""
    price: Optional[Decimal] = None
    restaurant_id: str = ""
    restaurant_name: str = ""
    image: Optional[str] = None
    is_limited_offer: bool = False
    offer_types: tuple = ()
    offer_details: dict = field(default_factory=dict)


@dataclass(frozen=True)
class Pricing:
    """One size/portion option of a menu item, possibly a limited-time offer."""
    id: str = ""
    size: Optional[str] = None
    portion: Optional[str] = None
    price: Optional[Decimal] = None
    variant_id: Optional[str] = None
    free_drinks_list: tuple = ()
    free_drinks_quantity: int = 1
    is_limited_offer: bool = False
    offer_start_at: Optional[datetime] = None
    offer_end_at: Optional[datetime] = None
    original_price: Optional[Decimal] = None
    offer_types: tuple = ()
    offer_details: dict = field(default_factory=dict)


@dataclass(frozen=True)
class SavedOrder:
    """
    A draft line saved earlier in the same ordering session.

    `free_drink_quantities` is None for drafts written before free and paid
    drinks were tracked separately; `drink_quantities` is the per-unit free
    allocation in that case.
    """
    variant_id: str = ""
    variant_name: str = ""
    quantity: int = 1
    pricing: Pricing = field(default_factory=Pricing)
    total_price: Optional[Decimal] = None
    supplements: tuple = ()
    drinks: tuple = ()
    drink_quantities: dict = field(default_factory=dict)
    free_drink_quantities: Optional[dict] = None
    paid_drink_quantities: dict = field(default_factory=dict)
    note: str = ""
    removed_ingredients: tuple = ()
    ingredient_preferences: dict = field(default_factory=dict)


@dataclass(frozen=True)
class OrderLine:
    """A variant line still being edited."""
    variant_id: str = ""
    variant_name: str = ""
    quantity: int = 1
    pricing: Pricing = field(default_factory=Pricing)
    supplements: tuple = ()
    note: str = ""
    removed_ingredients: tuple = ()
    ingredient_preferences: dict = field(default_factory=dict)


@dataclass(frozen=True)
class CurrentSelection:
    paid_drink_quantities: dict = field(default_factory=dict)
    # per unit
    free_drink_quantities: dict = field(default_factory=dict)
    drink_prices: dict = field(default_factory=dict)
    lines: tuple = ()


@dataclass
class CartEntry:
    id: str
    name: str
    unit_price: Decimal
    quantity: int
    customizations: dict = field(default_factory=dict)
    drink_quantities: dict = field(default_factory=dict)
    special_instructions: str = ""
    image: Optional[str] = None
    restaurant_name: str = ""

    @property
    def total_price(self) -> Decimal:
        return round_money(self.unit_price * self.quantity)
