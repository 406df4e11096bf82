"""
Prompt Templates for Column Mapping
===================================

Instructions sent to the text-completion assistant. Supplier files are
Argentine price lists, so the prompts are written in Spanish and the JSON
contract uses Spanish keys (see ``AssistantMappingResponse``).

Flow:
1. ``MAPPING_SYSTEM_PROMPT`` - fixed rules (ARS only, blacklist, evidence)
2. ``build_mapping_prompt`` - headers, sheets and up to 10 sample rows
3. ``build_feedback_prompt`` - appended to the original request on retry
"""

import json
from typing import Any, Mapping, Sequence

from supplier_pricing.utils.text import cell_to_text

# =============================================================================
# SYSTEM PROMPT
# =============================================================================

MAPPING_SYSTEM_PROMPT = """Sos un analista de listas de precios de proveedores argentinos.
Tu tarea es identificar QUÉ COLUMNA de la planilla corresponde a cada campo del producto.

REGLAS:
1. Devolvé NOMBRES DE COLUMNA exactamente como aparecen en COLUMNAS. Nunca devuelvas valores de celdas.
2. La moneda válida es únicamente ARS. Rechazá columnas en USD (usd, u$s, us$, dólar).
3. LISTA NEGRA: nunca elijas columnas de dimensiones o unidades: pallet, palet, kg, peso, largo,
   ancho, alto, mm, cm, ah, cca, dimensiones, unidades por pallet, capacidad, volumen, voltaje.
4. Para precio_ars preferí, en este orden: "PVP Off Line", "Precio de Lista", "Precio Unitario",
   "Contado", y luego cualquier columna de precio en pesos.
5. La columna de precio debe ser numérica en al menos el 80% de las filas de muestra.
6. Para cada campo elegido incluí en evidencia entre 2 y 5 valores de muestra y un motivo breve.
7. Clasificá cada columna en clasificacion_columnas con una de estas categorías:
   precio_ars, modelo, tipo, descripcion, marca, identificador, dimension, moneda_usd, desconocida.
8. Si tu confianza en un campo es menor a 0.6, devolvé null para ese campo y explicalo en notas.
9. Respondé SOLO con un objeto JSON válido, sin texto adicional ni bloques de código.
"""

RESPONSE_SKELETON: dict[str, Any] = {
    "tipo": "nombre de columna o null",
    "modelo": "nombre de columna o null",
    "marca": "nombre de columna o null",
    "precio_ars": "nombre de columna o null",
    "descripcion": "nombre de columna o null",
    "identificador": "nombre de columna o null",
    "confianza": 0.0,
    "evidencia": {
        "precio_ars": {
            "columna_elegida": "nombre de columna",
            "muestras": ["valor 1", "valor 2"],
            "motivo": "por qué",
            "coverage_numerico": 0.0,
            "rango_min": 0,
            "rango_max": 0,
        },
        "modelo": {"columna_elegida": "", "muestras": [], "motivo": ""},
        "tipo": {"columna_elegida": "", "muestras": [], "motivo": ""},
    },
    "clasificacion_columnas": [
        {"columna": "nombre", "categoria_inferida": "desconocida", "motivo_breve": ""}
    ],
    "notas": "observaciones",
}


def _sample_payload(
    headers: Sequence[str],
    sample_rows: Sequence[Mapping[str, Any]],
) -> list[dict[str, str]]:
    return [
        {header: cell_to_text(row.get(header)) for header in headers}
        for row in sample_rows
    ]


def build_mapping_prompt(
    headers: Sequence[str],
    sample_rows: Sequence[Mapping[str, Any]],
    file_name: str | None = None,
    vendor_hint: str | None = None,
    sheet_names: Sequence[str] = (),
) -> str:
    """
    Build the user prompt for one mapping request.

    Args:
        headers: Consolidated header list
        sample_rows: Up to 10 real data rows
        file_name: Source file name, used only as context
        vendor_hint: Detected or forced vendor name
        sheet_names: Surviving sheet names

    Returns:
        Prompt text
    """
    parts = [
        f"COLUMNAS: {json.dumps(list(headers), ensure_ascii=False)}",
        f"HOJAS: {json.dumps(list(sheet_names), ensure_ascii=False)}",
    ]
    if file_name:
        parts.append(f"ARCHIVO: {file_name}")
    if vendor_hint:
        parts.append(f"PROVEEDOR: {vendor_hint}")
    parts.append(
        f"MUESTRA (hasta {len(sample_rows)} filas reales):\n"
        + json.dumps(_sample_payload(headers, sample_rows), ensure_ascii=False, indent=1)
    )
    parts.append(
        "FORMATO DE RESPUESTA (objeto JSON):\n"
        + json.dumps(RESPONSE_SKELETON, ensure_ascii=False, indent=1)
    )
    return "\n".join(parts)


def build_feedback_prompt(reasons: Sequence[str]) -> str:
    """Feedback block listing the rules the previous answer violated."""
    listed = "\n".join(f"- {reason}" for reason in reasons)
    return (
        "DIAGNÓSTICO: el mapeo anterior fue INVALIDADO.\n"
        f"Motivos:\n{listed}\n"
        "Volvé a mapear evitando cualquier columna cuyo nombre o contenido coincida con la "
        "lista negra (dimensiones o USD). Si la confianza es baja, devolvé null y explicalo en notas."
    )
