"""
tests.test_price_services

Unit tests for price parsing, derived rows, cross-supplier matching and CSV/xlsx import.
"""

from __future__ import annotations

import io
import uuid
from decimal import Decimal

import pytest
from openpyxl import Workbook

from bizdir.db.models import (
    Business,
    ModifierType,
    PartnerLinkStatus,
    PriceAssignment,
    PriceList,
    PriceListKind,
    PriceListRow,
)
from bizdir.services.price_import import PriceImportError, find_header_row, parse_price_file, rows_from_items
from bizdir.services.price_matching import build_comparison, build_request_summary, normalize_name
from bizdir.services.pricing import (
    MAX_PRICE,
    PriceValueError,
    apply_modifier,
    build_rows,
    parse_price,
    valid_percent,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("1 200,50", Decimal("1200.50")),
        ("99.999", Decimal("100.00")),
        (80, Decimal("80.00")),
        ("12 руб.", Decimal("12.00")),
        ("", None),
        (None, None),
        (0, None),
        ("n/a", None),
    ],
)
def test_parse_price(raw: object, expected: Decimal | None) -> None:
    assert parse_price(raw) == expected


def test_build_rows_orders_and_defaults() -> None:
    rows = build_rows([{"price_with_vat": "10"}, {"name": "Milk", "unit": " l ", "extra": {}}])
    assert [r.order for r in rows] == [1, 2]
    assert rows[0].name == ""
    assert rows[1].unit == "l"
    assert rows[1].extra is None


def test_modifier_and_percent_bounds() -> None:
    assert apply_modifier(Decimal("100"), ModifierType.markup, Decimal("15")) == Decimal("115.00")
    assert apply_modifier(Decimal("99.99"), ModifierType.discount, Decimal("33")) == Decimal("66.99")
    assert apply_modifier(None, ModifierType.markup, Decimal("10")) is None
    assert valid_percent(Decimal("999"))
    assert not valid_percent(Decimal("0"))
    assert not valid_percent(Decimal("999.01"))
    assert not valid_percent(None)


def test_normalize_name() -> None:
    assert normalize_name("  Tomatoes, (Cherry)  ") == "tomatoes cherry"
    assert normalize_name("Milk 3.2%") == "milk 32%"
    assert normalize_name(None) == ""


def _supplier(name: str, rows: list[tuple[str, str | None, str | None]], category: str | None = None) -> PriceAssignment:
    business = Business(id=uuid.uuid4(), name=name, slug=name.lower())
    pl = PriceList(
        id=uuid.uuid4(),
        business_id=business.id,
        business=business,
        name="Price 1",
        kind=PriceListKind.base,
        category=category,
        rows=[
            PriceListRow(
                order=i + 1,
                name=title,
                unit=unit,
                price_with_vat=Decimal(price) if price is not None else None,
            )
            for i, (title, unit, price) in enumerate(rows)
        ],
    )
    return PriceAssignment(price_list=pl, status=PartnerLinkStatus.active)


def test_build_comparison_groups_by_normalized_title() -> None:
    beta = _supplier("Beta Farm", [("Tomatoes", "kg", "120"), ("tomatoes.", "box", "110"), ("Dill", None, None)])
    alpha = _supplier("Alpha Farm", [("TOMATOES", "kg", "130")])
    dairy = _supplier("Dairy", [("Milk", "l", "90")], category="Dairy")
    buyer_id = uuid.uuid4()

    table = build_comparison(counterparty_business_id=buyer_id, assignments=[beta, alpha, dairy], category="Fresh produce")

    assert table["counterparty_business_id"] == str(buyer_id)
    assert [s["supplier_legal_name"] for s in table["suppliers"]] == ["Alpha Farm", "Beta Farm"]
    assert [r["norm_title"] for r in table["rows"]] == ["dill", "tomatoes"]
    assert [r["no"] for r in table["rows"]] == [1, 2]

    tomatoes = table["rows"][1]
    assert tomatoes["title"] == "TOMATOES"
    beta_id = str(beta.price_list.business_id)
    assert tomatoes["offers"][beta_id] == {"price": 110.0, "unit": "box"}
    assert tomatoes["offers"][str(alpha.price_list.business_id)]["price"] == 130.0

    assert table["rows"][0]["offers"][beta_id] == {"price": None, "unit": None}


def test_build_request_summary_skips_rows_without_price() -> None:
    farm = _supplier("Farm", [("Apples", "kg", "50"), ("Apples", "kg", "45"), ("Pears", "kg", None)])
    summary = build_request_summary(
        items=[
            {"name": "apples", "quantity": "3", "unit": "kg"},
            {"name": "Pears", "quantity": "1", "unit": "kg"},
        ],
        assignments=[farm],
    )
    farm_id = str(farm.price_list.business_id)
    assert summary["items"][0]["offers"] == {farm_id: 45.0}
    assert summary["items"][1]["offers"] == {}
    assert summary["counterparties"] == [{"id": farm_id, "legal_name": "Farm"}]


def test_find_header_row_prefers_title_column() -> None:
    rows = [
        ["Supplier LLC", "", ""],
        ["Some", "notes", "here"],
        ["No", "Наименование", "Цена"],
        ["1", "Apples", "50"],
    ]
    assert find_header_row(rows) == 2


def test_parse_price_file_with_index_column_and_fallback_price() -> None:
    content = (
        "№;Наименование;Цена;Ед.\n"
        "1;Apples;50;kg\n"
        "2;Pears;;kg\n"
        "3;12;99;kg\n"
    )
    result = parse_price_file(filename="export.CSV", content=content)
    assert [(i.title, i.price, i.unit) for i in result.items] == [("Apples", 50.0, "kg"), ("Pears", None, "kg")]
    assert result.warnings == ["Could not recognize a price in 1 rows"]


def test_parse_price_file_warns_on_mostly_missing_prices() -> None:
    content = "Name,Price,Unit\nApples,,kg\nPears,,kg\nFigs,,kg\nPlums,10,kg\n"
    result = parse_price_file(filename="prices.csv", content=content)
    assert len(result.items) == 4
    assert len(result.warnings) == 2


def test_parse_price_file_rejects_unsupported_and_empty() -> None:
    with pytest.raises(PriceImportError, match="xls"):
        parse_price_file(filename="prices.xls", data=b"legacy")
    with pytest.raises(PriceImportError):
        parse_price_file(filename="prices.pdf", content="a;b")
    with pytest.raises(PriceImportError):
        parse_price_file(filename="prices.xlsx", data=b"not a zip archive")
    with pytest.raises(PriceImportError):
        parse_price_file(filename="prices.csv", content="\n\n")


def test_rows_from_items_columns() -> None:
    rows, columns = rows_from_items(
        [
            {"title": "Apples", "price_with_vat": 60},
            {"title": "", "price": 5},
            {"title": "Pears", "price": 40, "sku": "P-1"},
        ]
    )
    assert [r.name for r in rows] == ["Apples", "Pears"]
    assert rows[0].price_with_vat == Decimal("60")
    assert rows[0].price_without_vat is None
    assert rows[1].price_without_vat == Decimal("40")
    assert rows[1].extra == {"sku": "P-1"}
    assert [c["id"] for c in columns] == ["name", "unit", "price_with_vat", "price_without_vat"]


def test_prices_beyond_column_range_are_rejected() -> None:
    huge = "9" * 30
    with pytest.raises(PriceValueError):
        parse_price(huge)
    with pytest.raises(PriceValueError):
        parse_price(float("inf"))
    with pytest.raises(PriceValueError):
        build_rows([{"name": "Gold", "price_with_vat": huge}])
    with pytest.raises(PriceValueError):
        apply_modifier(MAX_PRICE, ModifierType.markup, Decimal("10"))
    with pytest.raises(PriceValueError):
        rows_from_items([{"title": "Gold", "price": 1e20}])
    assert parse_price("999 999 999 999,99") == MAX_PRICE


def test_parse_price_file_treats_unstorable_price_as_missing() -> None:
    content = f"Name;Price\nApples;50\nGold;{'9' * 30}\n"
    result = parse_price_file(filename="prices.csv", content=content)
    assert [(i.title, i.price) for i in result.items] == [("Apples", 50.0), ("Gold", None)]


def test_parse_price_file_reads_first_sheet_of_workbook() -> None:
    workbook = Workbook()
    sheet = workbook.active
    sheet.append(["Supplier LLC price list"])
    sheet.append([])
    sheet.append(["№", "Наименование", "Ед.", "Цена", "Артикул"])
    sheet.append([1, "Apples", "kg", 50.5, "A-1"])
    sheet.append([2, "Pears", "kg", 40, None])
    workbook.create_sheet("Notes").append(["Ignored", "row", "here"])
    buffer = io.BytesIO()
    workbook.save(buffer)

    result = parse_price_file(filename="supplier.XLSX", data=buffer.getvalue())
    assert [i.as_dict() for i in result.items] == [
        {"title": "Apples", "price": 50.5, "unit": "kg", "sku": "A-1"},
        {"title": "Pears", "price": 40.0, "unit": "kg", "sku": None},
    ]
    assert result.warnings == []


def test_parse_price_file_accepts_csv_bytes() -> None:
    data = "\ufeffName;Price\nApples;1 200,50\n".encode()
    result = parse_price_file(filename="prices.csv", data=data)
    assert [(i.title, i.price) for i in result.items] == [("Apples", 1200.5)]
