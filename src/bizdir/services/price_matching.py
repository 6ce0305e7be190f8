"""
bizdir.services.price_matching

Cross-supplier price matching for partner businesses.

Responsibilities:
- Normalize product names so the same item from different suppliers lines up.
- Build the per-supplier comparison table for one price category.
- Summarize supplier offers for a draft purchase request.

Inputs are ACTIVE `PriceAssignment` rows addressed to the buyer business, with the
supplier's price list (rows + business) loaded.
"""

from __future__ import annotations

import re
import uuid
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from bizdir.db.init_db import DEFAULT_PRICE_CATEGORY
from bizdir.db.models import Business, PriceAssignment, PriceList
from bizdir.services.pricing import price_to_float

_PUNCTUATION = re.compile(r"""[.,;:()\[\]{}"'`]""")
_WHITESPACE = re.compile(r"\s+")


def normalize_name(name: str | None) -> str:
    text = _PUNCTUATION.sub("", (name or "").lower())
    return _WHITESPACE.sub(" ", text).strip()


def in_category(price_list: PriceList, category: str) -> bool:
    # Uncategorized lists are treated as the default category.
    if price_list.category is None:
        return category == DEFAULT_PRICE_CATEGORY
    return price_list.category == category


@dataclass(frozen=True, slots=True)
class Supplier:
    business_id: uuid.UUID
    legal_name: str
    price_list_id: uuid.UUID

    def as_dict(self) -> dict[str, Any]:
        return {
            "supplier_business_id": str(self.business_id),
            "supplier_legal_name": self.legal_name,
            "price_list_id": str(self.price_list_id),
        }


def _suppliers(price_lists: Iterable[PriceList]) -> list[Supplier]:
    seen: dict[uuid.UUID, Supplier] = {}
    for pl in price_lists:
        business: Business = pl.business
        if business.id in seen:
            continue
        seen[business.id] = Supplier(
            business_id=business.id, legal_name=business.display_legal_name, price_list_id=pl.id
        )
    return sorted(seen.values(), key=lambda s: s.legal_name.lower())


def build_comparison(
    *, counterparty_business_id: uuid.UUID, assignments: Iterable[PriceAssignment], category: str
) -> dict[str, Any]:
    price_lists = [a.price_list for a in assignments if in_category(a.price_list, category)]

    titles: dict[str, str] = {}
    offers: dict[str, dict[uuid.UUID, dict[str, Any]]] = {}
    for pl in price_lists:
        supplier_id = pl.business_id
        for row in pl.rows:
            norm = normalize_name(row.name)
            if not norm:
                continue
            titles[norm] = min(titles.get(norm, row.name), row.name)

            offer = offers.setdefault(norm, {}).setdefault(supplier_id, {"price": None, "unit": None})
            price = row.effective_price
            if price is not None and (offer["price"] is None or price < offer["price"]):
                offer["price"] = price
            if row.unit is not None and (offer["unit"] is None or row.unit < offer["unit"]):
                offer["unit"] = row.unit

    rows = []
    for no, norm in enumerate(sorted(titles), start=1):
        rows.append(
            {
                "no": no,
                "title": titles[norm],
                "norm_title": norm,
                "offers": {
                    str(supplier_id): {"price": price_to_float(o["price"]), "unit": o["unit"]}
                    for supplier_id, o in sorted(offers[norm].items(), key=lambda kv: str(kv[0]))
                },
            }
        )

    return {
        "counterparty_business_id": str(counterparty_business_id),
        "category": category,
        "suppliers": [s.as_dict() for s in _suppliers(price_lists)],
        "rows": rows,
    }


def build_request_summary(
    *, items: Iterable[Mapping[str, str]], assignments: Iterable[PriceAssignment]
) -> dict[str, Any]:
    """
    Match request items against every ACTIVE supplier list, regardless of category.
    Rows without a numeric price are not offers; the cheapest row per supplier wins.
    """

    price_lists = [a.price_list for a in assignments]

    norm_offers: dict[str, dict[uuid.UUID, Decimal]] = {}
    for pl in price_lists:
        for row in pl.rows:
            norm = normalize_name(row.name)
            price = row.effective_price
            if not norm or price is None:
                continue
            per_supplier = norm_offers.setdefault(norm, {})
            current = per_supplier.get(pl.business_id)
            if current is None or price < current:
                per_supplier[pl.business_id] = price

    result_items = []
    for item in items:
        offers = norm_offers.get(normalize_name(item["name"]), {})
        result_items.append(
            {
                "name": item["name"],
                "quantity": item["quantity"],
                "unit": item["unit"],
                "offers": {str(k): float(v) for k, v in offers.items()},
            }
        )

    counterparties = [
        {"id": str(s.business_id), "legal_name": s.legal_name} for s in _suppliers(price_lists)
    ]
    return {"items": result_items, "counterparties": counterparties}
