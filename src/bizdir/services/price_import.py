"""
bizdir.services.price_import

Price-list import from supplier CSV exports and Excel workbooks.

Responsibilities:
- Read CSV text or the first sheet of an .xlsx workbook into rows of text cells.
- Locate the real table header inside a messy export (title rows, notes, blank lines).
- Map title/price/unit/sku columns by English or Russian header names.
- Produce import items plus human-readable warnings for rows without prices.
- Convert reviewed items into price-list rows and column definitions for commit.
"""

from __future__ import annotations

import csv
import io
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any
from zipfile import BadZipFile

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from bizdir.db.models import PriceListRow
from bizdir.services.pricing import MAX_PRICE, PriceValueError, looks_numeric, parse_price

HEADER_SCAN_ROWS = 30
NO_PRICE_WARNING_RATIO = 0.7
EXCEL_EXTENSIONS = ("xlsx",)
LEGACY_EXCEL_EXTENSIONS = ("xls",)
SUPPORTED_EXTENSIONS = ("csv", "txt", *EXCEL_EXTENSIONS)
DELIMITERS = (";", "\t", ",")

TITLE_PATTERN = re.compile(r"^(наименование|товар|позиция|name|title|название|product)$", re.I)
PRICE_PATTERN = re.compile(r"^(цена|price|стоимость|сумма|cost)$", re.I)
UNIT_PATTERN = re.compile(r"^(ед|ед\.|единица|unit|ед\.?\s*изм\.?)$", re.I)
SKU_PATTERN = re.compile(r"^(артикул|sku|код|code)$", re.I)
INDEX_PATTERN = re.compile(r"^(№|№\s*п/п|n|no|#|index|номер)$", re.I)
_PURE_NUMBER = re.compile(r"^[\d\s.,\-]+$")


class PriceImportError(ValueError):
    pass


@dataclass(slots=True)
class ImportItem:
    title: str
    price: float | None
    unit: str | None = None
    sku: str | None = None

    def as_dict(self) -> dict[str, Any]:
        return {"title": self.title, "price": self.price, "unit": self.unit, "sku": self.sku}


@dataclass(slots=True)
class ImportResult:
    items: list[ImportItem] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def _matches(cell: str | None, pattern: re.Pattern[str]) -> bool:
    return bool(pattern.match((cell or "").strip()))


def _is_pure_number(value: str) -> bool:
    text = value.strip()
    return bool(text) and looks_numeric(text) and bool(_PURE_NUMBER.match(text))


def _is_junk_title(title: str) -> bool:
    text = title.strip()
    return len(text) < 3 or _is_pure_number(text)


def _cell(row: list[str], index: int | None) -> str:
    if index is None or index >= len(row):
        return ""
    return (row[index] or "").strip()


def find_header_row(rows: list[list[str]], max_scan: int = HEADER_SCAN_ROWS) -> int:
    """
    A header row has at least 3 non-empty cells, 2 of them text. A row naming the title
    column wins outright; otherwise the first such row is used, falling back to row 0.
    """

    candidates: list[int] = []
    for r, row in enumerate(rows[:max_scan]):
        non_empty = [c.strip() for c in row if c and c.strip()]
        if len(non_empty) < 3:
            continue
        text_cells = [c for c in non_empty if not _is_pure_number(c)]
        if len(text_cells) < 2:
            continue
        if any(_matches(c, TITLE_PATTERN) for c in row):
            return r
        candidates.append(r)
    return candidates[0] if candidates else 0


def guess_delimiter(content: str) -> str:
    """
    Pick the delimiter present on the most non-empty lines of the head of the file.
    Ties go to `;` (spreadsheet exports with decimal commas), then tab, then comma.
    """

    lines = [line for line in content.splitlines() if line.strip()][:HEADER_SCAN_ROWS]
    best, best_hits = ",", 0
    for candidate in DELIMITERS:
        hits = sum(1 for line in lines if candidate in line)
        if hits > best_hits:
            best, best_hits = candidate, hits
    return best


def _read_rows(content: str) -> list[list[str]]:
    try:
        rows = list(csv.reader(io.StringIO(content), delimiter=guess_delimiter(content)))
    except csv.Error as e:
        raise PriceImportError(f"Could not parse CSV: {e}") from e
    return rows


def _sheet_cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def _read_workbook_rows(data: bytes) -> list[list[str]]:
    """
    Rows of the first worksheet as text, the same shape the CSV reader yields.
    """

    try:
        workbook = load_workbook(io.BytesIO(data), read_only=True, data_only=True)
    except (InvalidFileException, BadZipFile, KeyError) as e:
        raise PriceImportError("Could not read the workbook. Is it a valid .xlsx file?") from e
    try:
        if not workbook.worksheets:
            raise PriceImportError("The workbook has no sheets")
        sheet = workbook.worksheets[0]
        return [[_sheet_cell(v) for v in row] for row in sheet.iter_rows(values_only=True)]
    finally:
        workbook.close()


def _decode_text(data: bytes) -> str:
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise PriceImportError("CSV files must be UTF-8 encoded") from e


def _price_or_none(value: str) -> Decimal | None:
    # Amounts too large to store are treated like a missing price.
    try:
        return parse_price(value)
    except PriceValueError:
        return None


def parse_price_file(*, filename: str, content: str | None = None, data: bytes | None = None) -> ImportResult:
    """
    CSV exports may arrive as `content` text or raw `data` bytes; workbooks need `data`.
    """

    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    if ext in LEGACY_EXCEL_EXTENSIONS:
        raise PriceImportError("Legacy .xls files are not supported. Save the file as .xlsx or .csv")
    if ext not in SUPPORTED_EXTENSIONS:
        raise PriceImportError("Unsupported file format. Use a .xlsx or .csv file")

    if ext in EXCEL_EXTENSIONS:
        if not data:
            raise PriceImportError("File is empty or has no data")
        raw_rows = _read_workbook_rows(data)
    else:
        text = content if content is not None else _decode_text(data or b"")
        raw_rows = _read_rows(text)

    rows = [row for row in raw_rows if any(cell.strip() for cell in row)]
    if not rows:
        raise PriceImportError("File is empty or has no data")
    return parse_rows(rows)


def parse_rows(rows: list[list[str]]) -> ImportResult:
    header_idx = find_header_row(rows)
    header = [(c or "").strip() for c in rows[header_idx]]

    offset = 1 if header and _matches(header[0], INDEX_PATTERN) else 0
    title_col, price_col = offset, offset + 1
    unit_col: int | None = None
    sku_col: int | None = None

    has_headers = any(_matches(h, TITLE_PATTERN) or _matches(h, PRICE_PATTERN) for h in header)
    if has_headers:
        for i, h in enumerate(header):
            if i < offset:
                continue
            if _matches(h, TITLE_PATTERN):
                title_col = i
            if _matches(h, PRICE_PATTERN):
                price_col = i
            if _matches(h, UNIT_PATTERN):
                unit_col = i
            if _matches(h, SKU_PATTERN):
                sku_col = i

    result = ImportResult()
    no_price = 0
    for row in rows[header_idx + 1 if has_headers else 0 :]:
        if sum(1 for c in row if c and c.strip()) < 2:
            continue
        title = _cell(row, title_col)
        if not title or _is_junk_title(title):
            continue

        price = _price_or_none(_cell(row, price_col))
        if price is None:
            # Misaligned exports: take the first numeric cell right of the title.
            for col in (price_col, title_col + 1, title_col + 2, title_col + 3):
                if col == title_col or col >= len(row):
                    continue
                value = _cell(row, col)
                if looks_numeric(value):
                    price = _price_or_none(value)
                    if price is not None:
                        break

        if price is None:
            no_price += 1
        result.items.append(
            ImportItem(
                title=title,
                price=float(price) if price is not None else None,
                unit=_cell(row, unit_col) or None,
                sku=_cell(row, sku_col) or None,
            )
        )

    if no_price:
        result.warnings.append(f"Could not recognize a price in {no_price} rows")
    if result.items and no_price / len(result.items) >= NO_PRICE_WARNING_RATIO:
        result.warnings.append(
            "The file may have a complex layout. Check that it has 'Name' and 'Price' columns."
        )
    return result


# --- Commit -------------------------------------------------------------------

_BASE_COLUMNS: list[dict[str, str]] = [
    {"id": "name", "title": "Name", "kind": "text"},
    {"id": "unit", "title": "Unit", "kind": "text"},
    {"id": "price_with_vat", "title": "Price per unit incl. VAT", "kind": "number"},
]
_WITHOUT_VAT_COLUMN = {"id": "price_without_vat", "title": "Price per unit excl. VAT", "kind": "number"}


def _number(value: Any) -> Decimal | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if value != value:  # NaN
        return None
    number = Decimal(str(value))
    if abs(number) > MAX_PRICE:
        raise PriceValueError(f"Price {value!r} is out of range")
    return number


def _only_if(other: Decimal | None, fallback: Decimal | None) -> Decimal | None:
    return fallback if other is None else None


def rows_from_items(
    items: Iterable[Mapping[str, Any]],
) -> tuple[list[PriceListRow], list[dict[str, str]]]:
    """
    Items carry `title` plus either `price` or explicit `price_with_vat` /
    `price_without_vat`. A plain `price` fills whichever VAT column is missing.
    """

    mapped: list[PriceListRow] = []
    for item in items:
        title = item.get("title")
        if not isinstance(title, str) or not title.strip():
            continue
        with_vat = _number(item.get("price_with_vat"))
        without_vat = _number(item.get("price_without_vat"))
        fallback = _number(item.get("price"))
        sku = str(item.get("sku") or "").strip()
        unit = str(item.get("unit") or "").strip()
        mapped.append(
            PriceListRow(
                order=len(mapped) + 1,
                name=title.strip(),
                unit=unit or None,
                price_with_vat=with_vat if with_vat is not None else _only_if(without_vat, fallback),
                price_without_vat=without_vat if without_vat is not None else _only_if(with_vat, fallback),
                extra={"sku": sku} if sku else None,
            )
        )

    if any(row.price_without_vat is not None for row in mapped):
        return mapped, [*_BASE_COLUMNS, _WITHOUT_VAT_COLUMN]
    return mapped, list(_BASE_COLUMNS)
