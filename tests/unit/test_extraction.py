"""Unit tests for MappedRow field access and price discovery."""

from supplier_pricing.schemas.mapping import ColumnMapping
from supplier_pricing.schemas.sheets import RowRecord
from supplier_pricing.services.extraction import MappedRow

MAPPING = ColumnMapping(
    identifier="Codigo",
    model="Codigo",
    brand="Marca",
    description="Descripcion",
    price="PVP Off Line",
)


def row(**fields) -> MappedRow:
    return MappedRow(RowRecord(sheet="Hoja1", row_number=2, fields=fields), MAPPING)


class TestMappedRow:
    """Tests for MappedRow."""

    def test_lookup_tolerates_header_spelling(self) -> None:
        """Rows from another sheet are read through normalized headers."""
        mapped = row(**{"Código": "M18FD", "PVP OFF LINE": "$ 152.300"})
        assert mapped.identifier == "M18FD"
        assert mapped.resolve_price().value == 152300.0

    def test_integral_floats_render_as_codes(self) -> None:
        """Numeric codes lose the trailing .0."""
        assert row(Codigo=4455.0).identifier == "4455"

    def test_identifier_from_id_named_field(self) -> None:
        """Without mapped identifier columns an ID-named field is used."""
        mapping = ColumnMapping(price="Precio")
        mapped = MappedRow(
            RowRecord(sheet="Hoja1", row_number=2, fields={"Nro Articulo": "A-4455", "Precio": "1500"}),
            mapping,
        )
        assert mapped.identifier == "A-4455"
        assert mapped.model == "A-4455"

    def test_description_falls_back_to_longest_text(self) -> None:
        """A too-short description is replaced by the longest free text."""
        mapped = row(
            Descripcion="Bat",
            Aplicacion="Autos nafta y diesel livianos",
            Observaciones="libre de mantenimiento",
        )
        assert mapped.description == "Autos nafta y diesel livianos"

    def test_brand_from_description(self) -> None:
        """A known brand in the description fills an empty brand column."""
        mapped = row(Marca="", Descripcion="Bateria Moura 12x45")
        assert mapped.brand == "MOURA"

    def test_price_sources(self) -> None:
        """Mapped, alternate and comma sources are tried in order."""
        assert row(**{"PVP Off Line": "$ 152.300"}).resolve_price().source == "mapped"
        assert row(**{"PVP Off Line": None, "Lista": "$ 15.200"}).resolve_price().source == "alternate"
        assert row(**{"PVP Off Line": None, "Detalle": "15.200,50"}).resolve_price().source == "comma"

    def test_unresolved_price(self) -> None:
        """No usable value anywhere resolves to zero."""
        resolved = row(Codigo="M18FD", **{"PVP Off Line": "consultar"}).resolve_price()
        assert resolved.value == 0
        assert resolved.source == "unresolved"
        assert not resolved.resolved
