"""
Pricing Schemas
===============

Pricing configuration snapshot, per-channel results and the priced product
record returned to callers.

``PricingConfig`` accepts both field names and the keys of the legacy
configuration blob (``iva``, ``markups.directa``, ``descuentoProveedor``...).
"""

from typing import Any

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    computed_field,
    field_validator,
)

from supplier_pricing.schemas.mapping import ColumnMapping
from supplier_pricing.schemas.sheets import SheetScore


# =============================================================================
# Configuration Snapshot
# =============================================================================


class ChannelRates(BaseModel):
    """A percentage per sales channel."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    retail: float = Field(validation_alias=AliasChoices("retail", "directa"))
    wholesale: float = Field(validation_alias=AliasChoices("wholesale", "mayorista"))


class VendorOverride(BaseModel):
    """Per-vendor settings. Only the discount is used for pricing."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    discount: float | None = Field(
        default=None,
        ge=0,
        le=100,
        validation_alias=AliasChoices("discount", "descuentoProveedor"),
    )


class PricingConfig(BaseModel):
    """Read-only configuration snapshot for one processing run."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    vat: float = Field(
        default=21.0, ge=0, le=100, validation_alias=AliasChoices("vat", "iva")
    )
    markups: ChannelRates = Field(
        default_factory=lambda: ChannelRates(retail=60.0, wholesale=22.0)
    )
    commissions: ChannelRates = Field(
        default_factory=lambda: ChannelRates(retail=8.0, wholesale=5.0),
        validation_alias=AliasChoices("commissions", "comisiones"),
    )
    vendor_discount: float = Field(
        default=0.0,
        ge=0,
        le=100,
        validation_alias=AliasChoices("vendor_discount", "descuentoProveedor"),
    )
    vendors: dict[str, VendorOverride] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("vendors", "proveedores"),
    )

    @field_validator("vat", "vendor_discount", mode="before")
    @classmethod
    def empty_to_default(cls, v: Any, info: ValidationInfo) -> Any:
        if v is None or (isinstance(v, str) and not v.strip()):
            return cls.model_fields[info.field_name or ""].default
        return v

    def discount_for(self, vendor: str | None) -> float:
        """Per-vendor discount when configured, else the global one."""
        if vendor:
            wanted = vendor.strip().lower()
            for name, override in self.vendors.items():
                if name.strip().lower() == wanted and override.discount is not None:
                    return override.discount
        return self.vendor_discount


# =============================================================================
# Validation And Lookup Results
# =============================================================================


class CurrencyCheck(BaseModel):
    """Advisory plausibility annotation for a resolved price."""

    model_config = ConfigDict(frozen=True)

    plausible: bool
    confidence: float = Field(ge=0.0, le=1.0)
    reason: str


class EquivalenceMatch(BaseModel):
    """Outcome of an equivalence lookup; ``found=False`` means no match."""

    model_config = ConfigDict(frozen=True)

    found: bool = False
    original_model: str | None = None
    matched_model: str | None = None
    reference_price: float | None = Field(default=None, gt=0)
    category: str | None = None
    available: bool | None = None
    reason: str = ""

    @classmethod
    def no_match(cls, model: str | None, reason: str) -> "EquivalenceMatch":
        return cls(found=False, original_model=model, reason=reason)


class EquivalenceResponse(BaseModel):
    """
    Body returned by the equivalence collaborator.

    Accepts snake_case, camelCase and the legacy Spanish keys
    (``encontrada``, ``modelo_varta``, ``precio_varta``).
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    found: bool | None = Field(
        default=None, validation_alias=AliasChoices("found", "encontrada")
    )
    matched_model: str | None = Field(
        default=None,
        validation_alias=AliasChoices("matched_model", "matchedModel", "modelo_varta"),
    )
    reference_price: float | None = Field(
        default=None,
        validation_alias=AliasChoices("reference_price", "referencePrice", "precio_varta"),
    )
    category: str | None = Field(
        default=None, validation_alias=AliasChoices("category", "categoria")
    )
    available: bool | None = Field(
        default=None, validation_alias=AliasChoices("available", "disponible")
    )
    reason: str | None = Field(
        default=None, validation_alias=AliasChoices("reason", "razon")
    )

    @property
    def is_match(self) -> bool:
        """Explicit ``found`` flag, else a positive reference price."""
        if self.found is not None:
            return self.found
        return self.reference_price is not None and self.reference_price > 0

    def to_match(self, model: str) -> EquivalenceMatch:
        return EquivalenceMatch(
            found=True,
            original_model=model,
            matched_model=self.matched_model,
            reference_price=self.reference_price,
            category=self.category,
            available=self.available,
            reason=self.reason or "Equivalence found",
        )


# =============================================================================
# Priced Product
# =============================================================================


class ChannelPricing(BaseModel):
    """Prices for one sales channel."""

    model_config = ConfigDict(frozen=True)

    net: float
    final: int = Field(description="VAT-inclusive price rounded to a multiple of 10")
    markup_pct: float
    profitability_pct: float
    adjusted: bool = False

    @computed_field  # type: ignore[prop-decorator]
    @property
    def markup_applied(self) -> str:
        return f"{self.markup_pct:g}%"

    @computed_field  # type: ignore[prop-decorator]
    @property
    def profitability(self) -> str:
        return f"{self.profitability_pct:.1f}%"


class ProductRecord(BaseModel):
    """One priced row. Never mutated after assembly."""

    model_config = ConfigDict(frozen=True)

    sheet: str
    row_number: int
    identifier: str | None = None
    type: str | None = None
    model: str | None = None
    description: str | None = None
    brand: str | None = None
    price_base: float = 0.0
    discount_pct: float = 0.0
    price_base_retail: float = 0.0
    price_base_wholesale: float = 0.0
    cost_estimate_retail: float = 0.0
    cost_estimate_wholesale: float = 0.0
    currency_check: CurrencyCheck
    equivalence: EquivalenceMatch
    retail: ChannelPricing
    wholesale: ChannelPricing
    flags: list[str] = Field(default_factory=list)

    @property
    def is_flagged(self) -> bool:
        return bool(self.flags)


# =============================================================================
# Run Result
# =============================================================================


class RunStatistics(BaseModel):
    """Run-level counters."""

    total_products: int = 0
    profitable_retail: int = 0
    profitable_wholesale: int = 0
    profitable_both: int = 0
    with_equivalence: int = 0
    flagged_products: int = 0
    unresolved_prices: int = 0

    @classmethod
    def from_products(cls, products: list[ProductRecord]) -> "RunStatistics":
        def rentable(channel: ChannelPricing, base: float) -> bool:
            return base > 0 and channel.profitability_pct > 0

        retail = [rentable(p.retail, p.price_base_retail) for p in products]
        wholesale = [rentable(p.wholesale, p.price_base_wholesale) for p in products]
        return cls(
            total_products=len(products),
            profitable_retail=sum(retail),
            profitable_wholesale=sum(wholesale),
            profitable_both=sum(r and w for r, w in zip(retail, wholesale)),
            with_equivalence=sum(p.equivalence.found for p in products),
            flagged_products=sum(p.is_flagged for p in products),
            unresolved_prices=sum(p.price_base == 0 for p in products),
        )


class PricingRunResult(BaseModel):
    """Complete response of one processing run."""

    source_name: str
    vendor: str | None = None
    config_source: str
    products: list[ProductRecord]
    statistics: RunStatistics
    mapping: ColumnMapping
    headers: list[str]
    diagnostics: list[SheetScore]
