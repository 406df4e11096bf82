"""
Sheet Scorer & Selector
=======================

Decides which sheets of a supplier workbook hold product data and merges
them into a single row set.

Per sheet:
1. Locate the header row (first of the top 40 rows with >=3 non-empty cells
   and a header indicator keyword; row 0 otherwise).
2. Build records keyed by that header row and drop noise rows (notes,
   section titles, repeated headers, totals, blank lines).
3. Score the sheet from the key columns it carries and its row count.

Sheets without a price column or with a score below 2 are discarded. The
rest are concatenated in workbook order. The header list handed to the
column mapper is the one of the LAST surviving sheet; each row keeps its
own sheet name and field map.
"""

import re
from typing import Any

from supplier_pricing.ingest.workbook import Sheet, Workbook
from supplier_pricing.schemas.sheets import RowRecord, SheetScore, SheetSelection
from supplier_pricing.utils.errors import InputError, NoUsableSheetError
from supplier_pricing.utils.logger import get_logger
from supplier_pricing.utils.price_parser import parse_price
from supplier_pricing.utils.text import cell_to_text, is_blank, normalize_text

logger = get_logger(__name__)


class SheetSelector:
    """
    Scores every sheet of a workbook and consolidates the usable ones.

    Example:
        selection = SheetSelector().select(workbook)
        selection.headers      # headers of the last surviving sheet
        selection.diagnostics  # one SheetScore per sheet
    """

    HEADER_SCAN_LIMIT: int = 40
    MIN_HEADER_CELLS: int = 3
    MIN_SCORE: int = 2

    # Substrings that mark a row as a header row.
    HEADER_KEYWORDS: list[str] = [
        "precio",
        "price",
        "pvp",
        "contado",
        "importe",
        "codigo",
        "cod.",
        "code",
        "sku",
        "modelo",
        "model",
        "descripcion",
        "description",
        "detalle",
        "rubro",
        "categoria",
        "category",
        "familia",
        "tipo",
        "marca",
        "brand",
    ]

    # Noise rows: notes, section titles and summary lines.
    NOTE_PHRASES: list[str] = [
        "nota:",
        "notas:",
        "tel:",
        "telefono:",
        "email:",
        "bornes",
        "precios para la compra",
    ]
    TITLE_PHRASES: list[str] = [
        "sistema de pricing",
        "optimizado para maximo rendimiento",
        "lista de precios vigente",
    ]
    SUMMARY_VALUES: set[str] = {"total", "subtotal", "total general"}

    # Tokens typical of a header line repeated inside the data block.
    REPEATED_HEADER_TOKENS: list[str] = [
        "precio",
        "unitario",
        "contado",
        "caja",
        "pago",
        "dias",
        "iva",
        "aditivos",
        "nafta",
        "funcion",
        "aplicacion",
        "codigo",
        "descripcion",
    ]

    _GENERIC_PRICE_RE = re.compile(r"\b(precio|price|pvp|importe|valor)\b")
    _IDENTIFIER_RE = re.compile(
        r"\b(codigo|cod|sku|modelo|model|referencia|ref|articulo|part number|ean)\b"
    )
    _BRAND_RE = re.compile(r"\b(marca|brand|fabricante)\b")
    _DESCRIPTION_RE = re.compile(r"\b(descripcion|description|detalle)\b")
    _CATEGORY_RE = re.compile(r"\b(rubro|categoria|category|familia|tipo)\b")

    def select(self, workbook: Workbook) -> SheetSelection:
        """
        Score all sheets and consolidate the survivors.

        Raises:
            InputError: The workbook has no sheets
            NoUsableSheetError: Every sheet was discarded
        """
        if not workbook.sheets:
            raise InputError(
                "Workbook contains no sheets",
                details={"file": workbook.source_name},
            )

        rows: list[RowRecord] = []
        headers: list[str] = []
        diagnostics: list[SheetScore] = []

        for sheet in workbook.sheets:
            score, records = self.score_sheet(sheet)
            diagnostics.append(score)
            if score.discarded:
                logger.info(
                    "sheet_selector.discarded",
                    sheet=sheet.name,
                    score=score.score,
                    reason=score.discard_reason,
                )
                continue

            if headers and headers != score.headers:
                logger.warning(
                    "sheet_selector.header_mismatch",
                    sheet=sheet.name,
                    previous_headers=headers,
                    headers=score.headers,
                )
            rows.extend(records)
            headers = score.headers
            logger.info(
                "sheet_selector.selected",
                sheet=sheet.name,
                score=score.score,
                rows=score.row_count,
            )

        if not rows:
            raise NoUsableSheetError(
                "No sheet contains usable product data",
                details={
                    "file": workbook.source_name,
                    "diagnostics": [d.model_dump() for d in diagnostics],
                },
            )

        return SheetSelection(rows=rows, headers=headers, diagnostics=diagnostics)

    # -------------------------------------------------------------------------
    # Per-sheet work
    # -------------------------------------------------------------------------

    def score_sheet(self, sheet: Sheet) -> tuple[SheetScore, list[RowRecord]]:
        """Build the records of one sheet and compute its score."""
        header_index = self.find_header_row(sheet.grid)
        header_cells = sheet.grid[header_index] if sheet.grid else ()
        headers = self.build_headers(header_cells)

        records: list[RowRecord] = []
        filtered = 0
        for offset, row in enumerate(sheet.grid[header_index + 1 :], start=header_index + 2):
            fields = self._row_to_fields(headers, row)
            if self.is_noise_row(fields.values(), headers):
                filtered += 1
                continue
            records.append(RowRecord(sheet=sheet.name, row_number=offset, fields=fields))

        score = self._score(sheet.name, header_index, headers, len(records))
        score.filtered_rows = filtered
        return score, records

    def find_header_row(self, grid: tuple[tuple[Any, ...], ...]) -> int:
        """Index of the header row, or 0 when no row qualifies."""
        for index, row in enumerate(grid[: self.HEADER_SCAN_LIMIT]):
            cells = [normalize_text(cell) for cell in row if not is_blank(cell)]
            if len(cells) < self.MIN_HEADER_CELLS:
                continue
            if any(kw in cell for cell in cells for kw in self.HEADER_KEYWORDS):
                return index
        return 0

    @staticmethod
    def build_headers(cells: tuple[Any, ...]) -> list[str]:
        """Header names from the header row; blanks become ``col_<n>``."""
        headers: list[str] = []
        seen: dict[str, int] = {}
        for idx, cell in enumerate(cells):
            name = cell_to_text(cell) or f"col_{idx + 1}"
            if name in seen:
                seen[name] += 1
                name = f"{name}_{seen[name]}"
            else:
                seen[name] = 1
            headers.append(name)
        # Trailing generated names carry no information.
        while headers and headers[-1] == f"col_{len(headers)}":
            headers.pop()
        return headers

    @staticmethod
    def _row_to_fields(headers: list[str], row: tuple[Any, ...]) -> dict[str, Any]:
        fields: dict[str, Any] = {}
        for idx, value in enumerate(row):
            name = headers[idx] if idx < len(headers) else f"col_{idx + 1}"
            if idx >= len(headers) and is_blank(value):
                continue
            fields[name] = value
        return fields

    def is_noise_row(self, values: Any, headers: list[str] | None = None) -> bool:
        """Blank, note, title, total or repeated-header row."""
        cells = [normalize_text(v) for v in values if not is_blank(v)]
        if not cells:
            return True

        joined = " | ".join(cells)
        if any(phrase in joined for phrase in self.NOTE_PHRASES):
            return True
        if any(phrase in joined for phrase in self.TITLE_PHRASES):
            return True
        if cells[0] in self.SUMMARY_VALUES:
            return True
        if headers and cells == [normalize_text(h) for h in headers if h][: len(cells)]:
            return True
        return self._looks_like_repeated_header(joined, values)

    def _looks_like_repeated_header(self, joined: str, values: Any) -> bool:
        hits = sum(1 for token in self.REPEATED_HEADER_TOKENS if token in joined)
        if hits < 4:
            return False
        has_price_number = any(
            (parse_price(v) or 0) >= 1000 for v in values if not is_blank(v)
        )
        return not has_price_number

    def _score(
        self,
        sheet_name: str,
        header_index: int,
        headers: list[str],
        row_count: int,
    ) -> SheetScore:
        price_column, price_tier = self._find_price_column(headers)
        identifier = self._first_match(headers, self._IDENTIFIER_RE)
        brand = self._first_match(headers, self._BRAND_RE)
        description = self._first_match(headers, self._DESCRIPTION_RE)
        category = self._first_match(headers, self._CATEGORY_RE)

        score = {"primary": 5, "secondary": 4, "tertiary": 3}.get(price_tier or "", 0)
        score += 3 if identifier else 0
        score += 3 if brand else 0
        score += 2 if description else 0
        score += 1 if category else 0

        if row_count >= 10:
            score += 5
        elif row_count >= 5:
            score += 3
        elif row_count >= 2:
            score += 1

        key_columns = sum(
            1 for col in (price_column, identifier, brand, description, category) if col
        )
        if key_columns >= 3:
            score += 2
        if key_columns >= 4:
            score += 3

        if row_count < 2:
            score = 0

        identifier_floor = identifier is not None and row_count >= 5
        if identifier_floor:
            score = max(score, 3)

        discard_reason = None
        if score < self.MIN_SCORE:
            discard_reason = "score below threshold"
        elif price_column is None and not identifier_floor:
            discard_reason = "no price column"

        return SheetScore(
            sheet_name=sheet_name,
            header_row_index=header_index,
            headers=headers,
            row_count=row_count,
            price_column=price_column,
            price_tier=price_tier,
            identifier_column=identifier,
            brand_column=brand,
            description_column=description,
            category_column=category,
            key_columns=key_columns,
            score=score,
            discarded=discard_reason is not None,
            discard_reason=discard_reason,
        )

    def _find_price_column(self, headers: list[str]) -> tuple[str | None, str | None]:
        normalized = [(h, normalize_text(h)) for h in headers]
        for header, h in normalized:
            if "pvp" in h and "off" in h:
                return header, "primary"
        for header, h in normalized:
            if "contado" in h or ("precio" in h and "lista" in h):
                return header, "secondary"
        for header, h in normalized:
            if ("precio" in h and "unit" in h) or self._GENERIC_PRICE_RE.search(h):
                return header, "tertiary"
        return None, None

    @staticmethod
    def _first_match(headers: list[str], pattern: re.Pattern[str]) -> str | None:
        for header in headers:
            if pattern.search(normalize_text(header)):
                return header
        return None
