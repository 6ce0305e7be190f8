"""
bizdir.services.pricing

Price-list row building.

Responsibilities:
- Parse loosely formatted prices ("1 200,50", 1200.5, "") into Decimals that fit the
  Numeric(14, 2) price columns.
- Turn request payload rows into ordered `PriceListRow` objects.
- Compute derived-list rows from a base list with a markup/discount percentage.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from bizdir.db.models import ModifierType, PriceListRow

CENTS = Decimal("0.01")
MAX_PERCENT = Decimal("999")
# Largest value a Numeric(14, 2) price column holds.
MAX_PRICE = Decimal("999999999999.99")

_LEADING_NUMBER = re.compile(r"[-+]?(?:\d+(?:\.\d*)?|\.\d+)")


class PriceValueError(ValueError):
    pass


def _number_text(value: Any) -> str | None:
    text = re.sub(r"\s", "", str(value)).replace(",", ".", 1)
    match = _LEADING_NUMBER.match(text)
    return match.group(0) if match else None


def _to_cents(raw: Any, number: Decimal | float | int | str) -> Decimal:
    try:
        price = Decimal(str(number)).quantize(CENTS, rounding=ROUND_HALF_UP)
    except InvalidOperation as e:
        raise PriceValueError(f"Price {str(raw)[:40]!r} is not a storable amount") from e
    if not price.is_finite() or abs(price) > MAX_PRICE:
        raise PriceValueError(f"Price {str(raw)[:40]!r} is out of range")
    return price


def parse_price(value: Any) -> Decimal | None:
    """
    Falsy values (None, "", 0) and text without a leading number mean "no price".
    Numbers that cannot be stored raise `PriceValueError`.
    """

    if not value:
        return None
    if isinstance(value, (int, float, Decimal)):
        return _to_cents(value, value)

    number = _number_text(value)
    if number is None:
        return None
    return _to_cents(value, number)


def looks_numeric(value: Any) -> bool:
    if value is None:
        return False
    return _number_text(value) is not None


def _clean(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def build_rows(rows: Iterable[Mapping[str, Any]]) -> list[PriceListRow]:
    built: list[PriceListRow] = []
    for index, row in enumerate(rows):
        extra = row.get("extra")
        built.append(
            PriceListRow(
                order=index + 1,
                name=str(row.get("name") or ""),
                unit=_clean(row.get("unit")),
                price_with_vat=parse_price(row.get("price_with_vat")),
                price_without_vat=parse_price(row.get("price_without_vat")),
                extra=extra if isinstance(extra, dict) and extra else None,
            )
        )
    return built


def apply_modifier(price: Decimal | None, modifier: ModifierType, percent: Decimal) -> Decimal | None:
    if price is None:
        return None
    factor = Decimal(1) + percent / 100 if modifier == ModifierType.markup else Decimal(1) - percent / 100
    return _to_cents(price, price * factor)


def derive_rows(
    base_rows: Iterable[PriceListRow], modifier: ModifierType, percent: Decimal
) -> list[PriceListRow]:
    """
    Copy base rows into a derived list, adjusting both price columns.
    """

    return [
        PriceListRow(
            order=index + 1,
            name=row.name,
            unit=row.unit,
            price_with_vat=apply_modifier(row.price_with_vat, modifier, percent),
            price_without_vat=apply_modifier(row.price_without_vat, modifier, percent),
            extra=dict(row.extra) if row.extra else None,
        )
        for index, row in enumerate(base_rows)
    ]


def valid_percent(percent: Decimal | None) -> bool:
    return percent is not None and Decimal(0) < percent <= MAX_PERCENT


def price_to_float(value: Decimal | None) -> float | None:
    return float(value) if value is not None else None
