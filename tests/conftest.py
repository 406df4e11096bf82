"""
Test Configuration and Fixtures
===============================

Shared pytest fixtures: settings without external collaborators, a small
battery price list and assistant responses.
"""

import os
import sys
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

# Make the package importable without installation.
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

os.environ.setdefault("LLM_ENABLED", "false")
os.environ.setdefault("CONFIG_FILE_PATH", "")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from supplier_pricing.config.settings import Settings  # noqa: E402
from supplier_pricing.ingest.workbook import Sheet, Workbook  # noqa: E402

BATTERY_HEADERS = ["Codigo", "Descripcion", "Marca", "PVP Off Line"]
BATTERY_ROWS = [
    ["M18FD", "Bateria Moura 12x45 M18FD", "MOURA", "$ 152.300"],
    ["M20GD", "Bateria Moura 12x50 M20GD", "MOURA", "$ 168.900"],
    ["M22GD", "Bateria Moura 12x65 M22GD", "MOURA", "$ 189.400"],
    ["M24KD", "Bateria Moura 12x75 M24KD", "MOURA", "$ 210.750"],
    ["M28KD", "Bateria Moura 12x40 M28KD", "MOURA", "$ 98.500"],
    ["M30LD", "Bateria Moura 12x90 M30LD", "MOURA", "$ 265.000"],
]


def make_sheet(
    name: str,
    headers: list[Any],
    rows: list[list[Any]],
    preamble: list[list[Any]] | None = None,
) -> Sheet:
    """Sheet with optional title rows above the header."""
    return Sheet.from_rows(name, [*(preamble or []), headers, *rows])


def rows_as_dicts(headers: list[str], rows: list[list[Any]]) -> list[dict[str, Any]]:
    return [dict(zip(headers, row)) for row in rows]


@pytest.fixture
def settings() -> Settings:
    """Settings with every external collaborator disabled."""
    return Settings(
        _env_file=None,
        llm_enabled=False,
        config_service_url=None,
        config_file_path=None,
        equivalence_service_url=None,
        processing_timeout_seconds=10,
    )


@pytest.fixture
def battery_workbook() -> Workbook:
    """Single-sheet battery price list with a title row."""
    sheet = make_sheet(
        "Baterias",
        BATTERY_HEADERS,
        BATTERY_ROWS,
        preamble=[["LISTA DE PRECIOS MOURA - OCTUBRE"], []],
    )
    return Workbook(source_name="lista_moura_octubre.xlsx", sheets=(sheet,))


@pytest.fixture
def battery_sample_rows() -> list[dict[str, Any]]:
    return rows_as_dicts(BATTERY_HEADERS, BATTERY_ROWS)


@pytest.fixture
def valid_assistant_response() -> dict[str, Any]:
    """Assistant answer that passes every post-check on the battery list."""
    return {
        "tipo": None,
        "modelo": "Codigo",
        "marca": "Marca",
        "precio_ars": "PVP Off Line",
        "descripcion": "Descripcion",
        "identificador": "Codigo",
        "confianza": 0.92,
        "evidencia": {
            "precio_ars": {
                "columna_elegida": "PVP Off Line",
                "muestras": ["$ 152.300", "$ 168.900"],
                "motivo": "precio final en pesos",
                "coverage_numerico": 1.0,
                "rango_min": 98500,
                "rango_max": 265000,
            },
            "modelo": {
                "columna_elegida": "Codigo",
                "muestras": ["M18FD", "M20GD"],
                "motivo": "códigos de modelo",
            },
        },
        "clasificacion_columnas": [
            {"columna": "Codigo", "categoria_inferida": "modelo", "motivo_breve": "código"},
            {"columna": "PVP Off Line", "categoria_inferida": "precio_ars", "motivo_breve": "precio"},
        ],
        "notas": "mapeo directo",
    }


@pytest.fixture
def mock_llm_client() -> MagicMock:
    """LLM client whose ``complete_json`` is scripted per test."""
    client = MagicMock()
    client.complete_json = AsyncMock()
    client.close = AsyncMock()
    return client


@pytest.fixture
def battery_headers() -> list[str]:
    return list(BATTERY_HEADERS)


@pytest.fixture
def battery_rows() -> list[list[Any]]:
    return [list(row) for row in BATTERY_ROWS]


@pytest.fixture
def sheet_factory():
    """Build in-memory sheets: ``sheet_factory(name, headers, rows, preamble=None)``."""
    return make_sheet
