"""Unit tests for the workbook reader."""

import pytest
from openpyxl import Workbook as OpenpyxlWorkbook

from supplier_pricing.ingest.workbook import read_workbook
from supplier_pricing.utils.errors import ParsingError


class TestReadWorkbook:
    """Tests for read_workbook function."""

    def test_reads_every_sheet(self, tmp_path) -> None:
        """Sheets come back in workbook order with raw values."""
        path = tmp_path / "lista_moura.xlsx"
        wb = OpenpyxlWorkbook()
        ws = wb.active
        ws.title = "Baterias"
        ws.append(["Codigo", "Descripcion", "PVP Off Line"])
        ws.append(["M18FD", "Bateria 12x45", 152300])
        notes = wb.create_sheet("Notas")
        notes.append(["Nota: precios sin IVA"])
        wb.save(path)

        workbook = read_workbook(path)

        assert workbook.source_name == "lista_moura.xlsx"
        assert workbook.sheet_names == ["Baterias", "Notas"]
        assert workbook.sheets[0].grid[0] == ("Codigo", "Descripcion", "PVP Off Line")
        assert workbook.sheets[0].grid[1] == ("M18FD", "Bateria 12x45", 152300)

    def test_reads_semicolon_csv(self, tmp_path) -> None:
        """CSV files become a single sheet of strings named after the file."""
        path = tmp_path / "filtros.csv"
        path.write_text(
            "Codigo;Descripcion;Precio\nA1;Filtro aceite;1.500\nA2;Filtro aire;2.300\n",
            encoding="utf-8",
        )

        workbook = read_workbook(path)

        assert workbook.sheet_names == ["filtros"]
        assert workbook.sheets[0].grid[1] == ("A1", "Filtro aceite", "1.500")

    def test_missing_file(self, tmp_path) -> None:
        """A missing file is a parsing error."""
        with pytest.raises(ParsingError, match="File not found"):
            read_workbook(tmp_path / "nope.xlsx")

    def test_unsupported_extension(self, tmp_path) -> None:
        """Only spreadsheets and CSV are accepted."""
        path = tmp_path / "lista.pdf"
        path.write_bytes(b"%PDF-1.4")
        with pytest.raises(ParsingError, match="Unsupported file type"):
            read_workbook(path)

    def test_corrupt_workbook(self, tmp_path) -> None:
        """A file that is not a real workbook is a parsing error."""
        path = tmp_path / "lista.xlsx"
        path.write_bytes(b"this is not a zip archive")
        with pytest.raises(ParsingError, match="Cannot open workbook"):
            read_workbook(path)
