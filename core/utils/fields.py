"""
Serializer fields that never reject a value.

The managed backend hands us JSON that is usually right but sometimes isn't:
prices as strings, dates in odd formats, quantities as floats. Checkout has to
keep working, so these fields fall back to a default instead of raising.
"""
import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation

from django.utils.dateparse import parse_datetime
from rest_framework import serializers
from rest_framework.fields import empty

from .dates import aware
from .money import MAX_AMOUNT

logger = logging.getLogger(__name__)

# per cart line; larger counts are data defects
MAX_QUANTITY = 999
MAX_COUNT = 10 ** 9


class LenientField(serializers.Field):
    def __init__(self, fallback=None, **kwargs):
        kwargs.setdefault("required", False)
        kwargs.setdefault("allow_null", True)
        self.fallback = fallback
        super().__init__(**kwargs)

    def get_fallback(self):
        return self.fallback() if callable(self.fallback) else self.fallback

    def run_validation(self, data=empty):
        if data is empty or data is None or data == "":
            return self.get_fallback()
        try:
            return self.parse(data)
        except (TypeError, ValueError, ArithmeticError) as e:
            logger.warning(f"Unparseable value for '{self.field_name}': {data!r} ({e})")
            return self.get_fallback()

    def parse(self, data):
        return data

    def to_internal_value(self, data):
        return self.parse(data)

    def to_representation(self, value):
        return value


class LenientCharField(LenientField):
    def parse(self, data):
        if isinstance(data, (dict, list, tuple)):
            raise TypeError("expected text")
        return str(data).strip()


class LenientDecimalField(LenientField):
    """Non-negative decimal below MAX_AMOUNT. Anything else falls back."""

    def parse(self, data):
        if isinstance(data, bool):
            raise TypeError("booleans are not amounts")
        try:
            value = data if isinstance(data, Decimal) else Decimal(str(data).strip())
        except InvalidOperation:
            raise ValueError("not a number")
        if not value.is_finite() or value < 0:
            raise ValueError("amount must be a finite, non-negative number")
        if value >= MAX_AMOUNT:
            raise ValueError(f"amount must be below {MAX_AMOUNT}")
        return value

    def to_representation(self, value):
        return None if value is None else float(value)


def parse_count(data, min_value=None, max_value=MAX_COUNT):
    if isinstance(data, bool):
        raise TypeError("booleans are not counts")
    try:
        value = Decimal(str(data).strip())
    except InvalidOperation:
        raise ValueError("not a number")
    if not value.is_finite():
        raise ValueError("count must be finite")
    # bounds are checked before int() so "1e999999" never becomes a huge int
    if max_value is not None and value > max_value:
        raise ValueError(f"must be <= {max_value}")
    value = int(value)
    if min_value is not None and value < min_value:
        raise ValueError(f"must be >= {min_value}")
    return value


class LenientIntegerField(LenientField):
    def __init__(self, min_value=None, max_value=MAX_COUNT, **kwargs):
        self.min_value = min_value
        self.max_value = max_value
        super().__init__(**kwargs)

    def parse(self, data):
        return parse_count(data, self.min_value, self.max_value)


class LenientDateTimeField(LenientField):
    """Aware datetime; naive input is read as UTC."""

    def parse(self, data):
        value = data if isinstance(data, datetime) else parse_datetime(str(data).strip())
        if value is None:
            raise ValueError("not an ISO 8601 datetime")
        return aware(value)

    def to_representation(self, value):
        return value.isoformat() if value else None


class LenientBooleanField(LenientField):
    TRUE_VALUES = {"true", "1", "yes", "on"}
    FALSE_VALUES = {"false", "0", "no", "off"}

    def parse(self, data):
        if isinstance(data, bool):
            return data
        text = str(data).strip().lower()
        if text in self.TRUE_VALUES:
            return True
        if text in self.FALSE_VALUES:
            return False
        raise ValueError("not a boolean")


class LenientChoiceField(LenientField):
    """
    Maps spellings to a choice. `aliases` keys are compared lower-cased with
    underscores, dashes and spaces stripped, so "fixed_amount", "fixedAmount"
    and "Fixed-Amount" all match "fixedamount".
    """

    def __init__(self, aliases, **kwargs):
        self.aliases = {self.normalize(k): v for k, v in aliases.items()}
        super().__init__(**kwargs)

    @staticmethod
    def normalize(text):
        return str(text).strip().lower().replace("_", "").replace("-", "").replace(" ", "")

    def parse(self, data):
        key = self.normalize(data)
        if key not in self.aliases:
            raise ValueError(f"unknown choice {data!r}")
        return self.aliases[key]

    def to_representation(self, value):
        return None if value is None else str(value)


class StringListField(LenientField):
    def __init__(self, **kwargs):
        kwargs.setdefault("fallback", list)
        super().__init__(**kwargs)

    def parse(self, data):
        if not isinstance(data, (list, tuple)):
            raise TypeError("expected a list")
        return [str(v) for v in data if v is not None and str(v).strip()]


class QuantityMapField(LenientField):
    """
    {drink_id: quantity}. Entries whose quantity is not an integer between 1
    and `max_value` are dropped, the rest of the map is kept.
    """

    def __init__(self, max_value=MAX_QUANTITY, **kwargs):
        kwargs.setdefault("fallback", dict)
        self.max_value = max_value
        super().__init__(**kwargs)

    def parse(self, data):
        if not isinstance(data, dict):
            raise TypeError("expected an object")
        quantities = {}
        for key, raw in data.items():
            try:
                qty = parse_count(raw, min_value=1, max_value=self.max_value)
            except (TypeError, ValueError, ArithmeticError):
                continue
            quantities[str(key)] = qty
        return quantities


class JSONObjectField(LenientField):
    def __init__(self, **kwargs):
        kwargs.setdefault("fallback", dict)
        super().__init__(**kwargs)

    def parse(self, data):
        if not isinstance(data, dict):
            raise TypeError("expected an object")
        return dict(data)
