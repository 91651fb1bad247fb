import itertools
import logging
from decimal import Decimal
from typing import Iterable, Optional

from django.conf import settings

from core.utils.dates import now_or
from core.utils.money import D, ZERO, allocate, round_money
from .domain import CartEntry, CurrentSelection, MenuItem, Pricing, SavedOrder

logger = logging.getLogger(__name__)

# Synthetic cart ids. Only unique within the process, callers treat them as opaque.
_batch_ids = itertools.count(1)


def combine_drinks(free: dict, paid: dict) -> dict:
    combined = dict(free)
    for drink_id, qty in paid.items():
        combined[drink_id] = combined.get(drink_id, 0) + qty
    return combined


class PackOrderAssembler:
    """
    Turns a menu item's saved draft lines and the in-progress selection into
    cart entries.

    Paid drinks are chosen once for the whole checkout: they are billed on the
    first emitted entry and nowhere else. Free drinks belong to each unit.
    """

    def __init__(
        self,
        menu_item: MenuItem,
        drinks: Iterable = (),
        restaurant_id: Optional[str] = None,
        is_special_pack: bool = False,
        now=None,
    ):
        self.menu_item = menu_item
        self.drinks = {d.id: d for d in drinks}
        self.restaurant_id = (menu_item.restaurant_id or restaurant_id or "").strip()
        self.is_special_pack = is_special_pack
        self.now = now

    # drinks

    def merge_paid_drinks(self, current: Optional[CurrentSelection], saved_orders: Iterable[SavedOrder]) -> dict:
        """One paid-drink map for the whole checkout. The current selection wins."""
        current = current or CurrentSelection()
        merged = {k: v for k, v in current.paid_drink_quantities.items() if v > 0}
        for saved in saved_orders:
            for drink_id, qty in saved.paid_drink_quantities.items():
                if qty <= 0 or drink_id in current.paid_drink_quantities:
                    continue
                # now given for free, no longer billed
                if drink_id in current.free_drink_quantities:
                    continue
                merged.setdefault(drink_id, qty)
        return merged

    def drink_price(self, drink_id: str, current: Optional[CurrentSelection] = None, saved_orders: Iterable[SavedOrder] = ()) -> Optional[Decimal]:
        if current is not None and current.drink_prices.get(drink_id) is not None:
            return D(current.drink_prices[drink_id])
        drink = self.drinks.get(drink_id)
        if drink is not None and drink.price is not None:
            return drink.price
        for saved in saved_orders:
            for entry in saved.drinks:
                if entry.id == drink_id and entry.price is not None:
                    return entry.price
        return None

    def paid_drinks_total(self, paid: dict, current: Optional[CurrentSelection] = None, saved_orders: Iterable[SavedOrder] = ()) -> Decimal:
        saved_orders = list(saved_orders)
        total = ZERO
        for drink_id, qty in paid.items():
            price = self.drink_price(drink_id, current, saved_orders)
            if price is None:
                logger.warning(f"No price for paid drink {drink_id}, billing it at 0")
                continue
            total += price * qty
        return round_money(total)

    def free_drinks_per_unit(self, saved: SavedOrder, current: Optional[CurrentSelection] = None) -> dict:
        if saved.free_drink_quantities is not None:
            free = dict(saved.free_drink_quantities)
        else:
            # older drafts: everything not paid was free
            free = {k: v for k, v in saved.drink_quantities.items() if k not in saved.paid_drink_quantities}
        if current is not None:
            for drink_id in current.paid_drink_quantities:
                free.pop(drink_id, None)
            for drink_id, qty in current.free_drink_quantities.items():
                if drink_id in free:
                    free[drink_id] = qty
        return {k: v for k, v in free.items() if v > 0}

    # prices

    def offer_running(self, pricing: Pricing) -> bool:
        now = now_or(self.now)
        if pricing.offer_start_at and now < pricing.offer_start_at:
            return False
        if pricing.offer_end_at and now > pricing.offer_end_at:
            return False
        return True

    def resolve_base_price(self, pricing: Optional[Pricing]) -> Decimal:
        """
        Special packs and regular items are priced by their size/portion option.
        A limited-time offer that isn't a special pack is priced at the item's
        own price with the option charged on top.
        """
        price = pricing.price if pricing else None
        if pricing and pricing.is_limited_offer and not self.offer_running(pricing):
            if pricing.original_price and pricing.original_price > 0:
                logger.debug(f"Offer {pricing.id} not running, using original price {pricing.original_price}")
                price = pricing.original_price

        if self.menu_item.is_limited_offer and not self.is_special_pack:
            price = (self.menu_item.price or ZERO) + (price or ZERO)
            if price > 0:
                return price
        elif price and price > 0:
            return price
        elif self.menu_item.price and self.menu_item.price > 0:
            return self.menu_item.price

        fallback = D(settings.CART_DEFAULT_ITEM_PRICE)
        logger.warning(f"No usable price for {self.menu_item.id} ({self.menu_item.name}), using placeholder {fallback}")
        return fallback

    def line_total(self, line, quantity: int, saved_total=None) -> Decimal:
        if saved_total is not None:
            return D(saved_total)
        supplements = sum((s.price for s in line.supplements), ZERO)
        return (self.resolve_base_price(line.pricing) + supplements) * quantity

    # assembly

    def assemble(self, saved_orders: Iterable[SavedOrder], current: Optional[CurrentSelection] = None) -> list[CartEntry]:
        saved_orders = list(saved_orders)
        current = current or CurrentSelection()
        paid = self.merge_paid_drinks(current, saved_orders)
        paid_total = self.paid_drinks_total(paid, current, saved_orders)
        batch = next(_batch_ids)

        entries = []
        for index, line in enumerate(current.lines):
            quantity = max(line.quantity, 1)
            free = {k: v for k, v in current.free_drink_quantities.items() if k not in paid and v > 0}
            total = self.line_total(line, quantity) + (paid_total if not entries else ZERO)
            # at most two runs of equal cent prices, so price x quantity stays exact
            shares = allocate(total, quantity)
            runs = [(price, len(list(group))) for price, group in itertools.groupby(shares)]
            for part, (unit_price, run_quantity) in enumerate(runs):
                first = not entries
                run_free = free if self.is_special_pack else {k: v * run_quantity for k, v in free.items()}
                entries.append(self._entry(
                    entry_id=f"cart_{batch}_current_{index}" + (f"_{part}" if part else ""),
                    line=line,
                    unit_price=unit_price,
                    quantity=run_quantity,
                    free=run_free,
                    paid=paid if first else {},
                    current=current,
                    saved_orders=saved_orders,
                ))

        for index, saved in enumerate(saved_orders):
            quantity = max(saved.quantity, 1)
            free = self.free_drinks_per_unit(saved, current)
            shares = allocate(self.line_total(saved, quantity, saved.total_price), quantity)
            for unit, share in enumerate(shares):
                first = not entries
                entries.append(self._entry(
                    entry_id=f"cart_{batch}_saved_{index}_{unit}",
                    line=saved,
                    unit_price=share + (paid_total if first else ZERO),
                    quantity=1,
                    free=free,
                    paid=paid if first else {},
                    current=current,
                    saved_orders=saved_orders,
                ))

        logger.info(
            f"Assembled {len(entries)} cart entries for {self.menu_item.id} "
            f"({len(current.lines)} current, {len(saved_orders)} saved, paid drinks {paid_total})"
        )
        return entries

    def _entry(self, entry_id, line, unit_price, quantity, free, paid, current, saved_orders) -> CartEntry:
        drink_quantities = combine_drinks(free, paid)
        name = self.menu_item.name
        if line.variant_name:
            name = f"{name} - {line.variant_name}"

        entry = CartEntry(
            id=entry_id,
            name=name,
            unit_price=unit_price,
            quantity=quantity,
            customizations=self._customizations(line, quantity, free, paid, current, saved_orders),
            drink_quantities=drink_quantities,
            special_instructions=line.note or "",
            image=self.menu_item.image,
            restaurant_name=self.menu_item.restaurant_name,
        )
        logger.debug(f"Cart entry {entry.id}: {entry.quantity} x {entry.unit_price} = {entry.total_price}")
        return entry

    def _drinks_list(self, free, paid, current, saved_orders) -> list[dict]:
        """One row per free drink and one per paid drink; a drink can be both."""
        drinks = []
        for drink_id, is_free in [(k, True) for k in free] + [(k, False) for k in paid]:
            known = self.drinks.get(drink_id) or next(
                (d for s in saved_orders for d in s.drinks if d.id == drink_id), None
            )
            item = {"id": drink_id, "name": known.name if known and known.name else drink_id}
            if known and known.size:
                item["size"] = known.size
            if is_free:
                item["price"] = ZERO
            else:
                item["price"] = round_money(self.drink_price(drink_id, current, saved_orders) or ZERO)
            item["is_free"] = is_free
            drinks.append(item)
        return drinks

    def _customizations(self, line, quantity, free, paid, current, saved_orders) -> dict:
        pricing = line.pricing
        customizations = {
            "menu_item_id": self.menu_item.id,
            "restaurant_id": self.restaurant_id,
            "main_item_quantity": quantity,
            "variant": {"id": line.variant_id, "name": line.variant_name} if line.variant_id else None,
            "size": pricing.size,
            "portion": pricing.portion,
            "supplements": [{"name": s.name, "price": s.price} for s in line.supplements],
            "drinks": self._drinks_list(free, paid, current, saved_orders),
            "drink_quantities": combine_drinks(free, paid),
            "free_drink_quantities": dict(free) or None,
            "paid_drink_quantities": dict(paid) or None,
            "removed_ingredients": list(line.removed_ingredients),
            "ingredient_preferences": dict(line.ingredient_preferences),
            "is_special_pack": self.is_special_pack,
            "is_limited_offer": self.menu_item.is_limited_offer or pricing.is_limited_offer,
        }
        if customizations["is_limited_offer"]:
            offer_types = pricing.offer_types or self.menu_item.offer_types
            offer_details = pricing.offer_details or self.menu_item.offer_details
            if offer_types:
                customizations["lto_offer_types"] = list(offer_types)
            if offer_details:
                customizations["lto_offer_details"] = dict(offer_details)
        return customizations
