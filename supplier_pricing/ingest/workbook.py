"""
Workbook Reader
===============

Loads supplier files into an in-memory, read-only workbook of raw grids.

Supported formats:
- .xlsx / .xlsm via openpyxl (cached formula values, read-only mode)
- .csv via pandas (single sheet named after the file)
"""

import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pandas as pd
from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from supplier_pricing.utils.errors import InputError, ParsingError
from supplier_pricing.utils.logger import get_logger

logger = get_logger(__name__)

EXCEL_EXTENSIONS = {".xlsx", ".xlsm"}
CSV_EXTENSIONS = {".csv"}


@dataclass(frozen=True)
class Sheet:
    """A named 2-D grid of raw cell values."""

    name: str
    grid: tuple[tuple[Any, ...], ...]

    @classmethod
    def from_rows(cls, name: str, rows: list[list[Any]]) -> "Sheet":
        return cls(name=name, grid=tuple(tuple(row) for row in rows))


@dataclass(frozen=True)
class Workbook:
    """Ordered collection of sheets plus the file name it came from."""

    source_name: str
    sheets: tuple[Sheet, ...]

    @property
    def sheet_names(self) -> list[str]:
        return [sheet.name for sheet in self.sheets]


def _trim_grid(rows: list[list[Any]]) -> list[list[Any]]:
    """Drop trailing empty rows that openpyxl reports for formatted ranges."""
    while rows and all(cell is None or str(cell).strip() == "" for cell in rows[-1]):
        rows.pop()
    return rows


def _read_excel(path: Path) -> list[Sheet]:
    try:
        wb = load_workbook(path, read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError, ValueError) as e:
        raise ParsingError(
            f"Cannot open workbook: {e}", details={"file": path.name}
        ) from e

    try:
        sheets = []
        for ws in wb.worksheets:
            rows = [list(row) for row in ws.iter_rows(values_only=True)]
            sheets.append(Sheet.from_rows(ws.title, _trim_grid(rows)))
        return sheets
    finally:
        wb.close()


def _read_csv(path: Path) -> list[Sheet]:
    try:
        df = pd.read_csv(
            path,
            header=None,
            dtype=str,
            keep_default_na=False,
            sep=None,
            engine="python",
        )
    except pd.errors.EmptyDataError:
        return [Sheet.from_rows(path.stem, [])]
    except (pd.errors.ParserError, UnicodeDecodeError, OSError) as e:
        raise ParsingError(f"Cannot read CSV: {e}", details={"file": path.name}) from e

    return [Sheet.from_rows(path.stem, _trim_grid(df.values.tolist()))]


def read_workbook(file_path: str | Path) -> Workbook:
    """
    Read a supplier file from disk.

    Raises:
        ParsingError: Unsupported extension, missing or corrupt file
        InputError: The file has no sheets at all
    """
    path = Path(file_path)
    if not path.is_file():
        raise ParsingError(f"File not found: {path}", details={"file": str(path)})

    suffix = path.suffix.lower()
    if suffix in EXCEL_EXTENSIONS:
        sheets = _read_excel(path)
    elif suffix in CSV_EXTENSIONS:
        sheets = _read_csv(path)
    else:
        raise ParsingError(
            f"Unsupported file type: {suffix or '<none>'}",
            details={"file": path.name, "supported": sorted(EXCEL_EXTENSIONS | CSV_EXTENSIONS)},
        )

    if not sheets:
        raise InputError("Workbook contains no sheets", details={"file": path.name})

    logger.info(
        "workbook.loaded",
        file=path.name,
        sheets=len(sheets),
        rows=sum(len(s.grid) for s in sheets),
    )
    return Workbook(source_name=path.name, sheets=tuple(sheets))
