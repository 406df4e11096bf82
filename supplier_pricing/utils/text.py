"""Header and cell text normalization helpers."""

import re
import unicodedata
from typing import Any

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_text(value: Any) -> str:
    """
    Lowercase, strip accents and collapse whitespace.

    >>> normalize_text("  Descripción   Modelo ")
    'descripcion modelo'
    """
    if value is None:
        return ""
    text = unicodedata.normalize("NFD", str(value))
    text = "".join(ch for ch in text if unicodedata.category(ch) != "Mn")
    return _WHITESPACE_RE.sub(" ", text).strip().lower()


def cell_to_text(value: Any) -> str:
    """Render a raw cell as stripped text; integral floats lose their ``.0``."""
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def is_blank(value: Any) -> bool:
    return cell_to_text(value) == ""
