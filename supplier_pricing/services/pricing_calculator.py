"""
Pricing Calculator
==================

Per-row channel pricing.

For each row:
1. Resolve the base price (mapped column, alternate search, comma search).
2. Resolve the vendor discount (per-vendor override or global).
3. Retail base = base * (1 - discount); wholesale base prefers the
   equivalence reference price when one was found.
4. Cost estimates are a fixed 60% of each base.
5. net = base * (1 + markup); final = net * (1 + VAT) rounded half-up to
   the nearest 10; profitability = (net - base) / net.
6. When wholesale.final >= retail.final, wholesale is corrected to 80% of
   retail (rounded) and flagged.
   A priced row whose retail final rounds to 0 is flagged as well.

Rows without a price are priced at 0 and flagged, never dropped.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from supplier_pricing.schemas.mapping import ColumnMapping
from supplier_pricing.schemas.pricing import (
    ChannelPricing,
    EquivalenceMatch,
    PricingConfig,
    ProductRecord,
)
from supplier_pricing.schemas.sheets import RowRecord
from supplier_pricing.services.currency_validator import validate_currency
from supplier_pricing.services.extraction import MappedRow, ResolvedPrice
from supplier_pricing.utils.logger import get_logger

logger = get_logger(__name__)

COST_RATIO = 0.6
WHOLESALE_CORRECTION_RATIO = 0.8

FLAG_PRICE_UNRESOLVED = "price_unresolved"
FLAG_PRICE_ALTERNATE = "price_from_alternate_column"
FLAG_CURRENCY_IMPLAUSIBLE = "currency_implausible"
FLAG_WHOLESALE_ADJUSTED = "wholesale_adjusted"
FLAG_IDENTIFIER_MISSING = "identifier_missing"
FLAG_FINAL_ROUNDS_TO_ZERO = "final_rounds_to_zero"


def round_to_ten(value: float) -> int:
    """
    Round half-up to the nearest multiple of 10.

    >>> round_to_ten(193600.00000000003)
    193600
    >>> round_to_ten(125)
    130
    """
    tens = (Decimal(str(value)) / 10).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return int(tens * 10)


def profitability(net: float, base: float) -> float:
    """(net - base) / net as a percentage; 0 when there is no net price."""
    if net <= 0:
        return 0.0
    return round((net - base) / net * 100, 2)


def channel_pricing(base: float, markup_pct: float, vat_pct: float) -> ChannelPricing:
    """Net, VAT-inclusive final and profitability for one channel."""
    net = base * (1 + markup_pct / 100)
    return ChannelPricing(
        net=round(net, 2),
        final=round_to_ten(net * (1 + vat_pct / 100)),
        markup_pct=markup_pct,
        profitability_pct=profitability(net, base),
    )


def correct_wholesale(
    retail: ChannelPricing,
    wholesale: ChannelPricing,
    wholesale_base: float,
    vat_pct: float,
) -> ChannelPricing:
    """Force wholesale.final below retail.final, deriving net from the new final."""
    final = round_to_ten(retail.final * WHOLESALE_CORRECTION_RATIO)
    if final >= retail.final:
        # Only reachable for retail finals of 0, 10 or 20.
        final = max(retail.final - 10, 0)
    net = final / (1 + vat_pct / 100)
    return ChannelPricing(
        net=round(net, 2),
        final=final,
        markup_pct=wholesale.markup_pct,
        profitability_pct=profitability(net, wholesale_base),
        adjusted=True,
    )


def price_product(
    record: RowRecord,
    mapping: ColumnMapping,
    config: PricingConfig,
    equivalence: Optional[EquivalenceMatch] = None,
    forced_vendor: Optional[str] = None,
    vendor_hint: Optional[str] = None,
    sheet_vendor: Optional[str] = None,
    resolved: Optional[ResolvedPrice] = None,
) -> ProductRecord:
    """
    Price one row.

    Args:
        record: Raw row from the consolidated sheet selection
        mapping: Resolved column mapping
        config: Configuration snapshot for this run
        equivalence: Equivalence lookup outcome for the row's model
        forced_vendor: Vendor named by the caller; wins over the row brand
        vendor_hint: Vendor inferred from the file; used when the row has none
            and its sheet names no vendor
        sheet_vendor: Vendor inferred for the row's sheet
        resolved: Base price already discovered for this row, if any

    Returns:
        The assembled ProductRecord
    """
    row = MappedRow(record, mapping)
    flags: list[str] = []

    if resolved is None:
        resolved = row.resolve_price()
    price_base = resolved.value
    if not resolved.resolved:
        flags.append(FLAG_PRICE_UNRESOLVED)
    elif resolved.source != "mapped":
        flags.append(FLAG_PRICE_ALTERNATE)

    identifier = row.identifier
    if identifier is None:
        flags.append(FLAG_IDENTIFIER_MISSING)

    brand = forced_vendor or row.brand or sheet_vendor or vendor_hint
    discount = config.discount_for(brand)
    factor = 1 - discount / 100

    equivalence = equivalence or EquivalenceMatch.no_match(row.model, "No equivalence found")
    reference = equivalence.reference_price if equivalence.found else None

    base_retail = price_base * factor
    base_wholesale = (reference or price_base) * factor

    retail = channel_pricing(base_retail, config.markups.retail, config.vat)
    wholesale = channel_pricing(base_wholesale, config.markups.wholesale, config.vat)

    if resolved.resolved and retail.final == 0:
        flags.append(FLAG_FINAL_ROUNDS_TO_ZERO)
        logger.warning(
            "pricing.final_rounds_to_zero",
            sheet=record.sheet,
            row=record.row_number,
            price_base=price_base,
        )

    if wholesale.final >= retail.final and wholesale.final > 0:
        wholesale = correct_wholesale(retail, wholesale, base_wholesale, config.vat)
        flags.append(FLAG_WHOLESALE_ADJUSTED)
        logger.warning(
            "pricing.wholesale_adjusted",
            sheet=record.sheet,
            row=record.row_number,
            retail_final=retail.final,
            wholesale_final=wholesale.final,
        )

    currency_check = validate_currency(price_base)
    if resolved.resolved and not currency_check.plausible:
        flags.append(FLAG_CURRENCY_IMPLAUSIBLE)

    return ProductRecord(
        sheet=record.sheet,
        row_number=record.row_number,
        identifier=identifier,
        type=row.type,
        model=row.model,
        description=row.description,
        brand=brand,
        price_base=price_base,
        discount_pct=discount,
        price_base_retail=round(base_retail, 2),
        price_base_wholesale=round(base_wholesale, 2),
        cost_estimate_retail=round(base_retail * COST_RATIO, 2),
        cost_estimate_wholesale=round(base_wholesale * COST_RATIO, 2),
        currency_check=currency_check,
        equivalence=equivalence,
        retail=retail,
        wholesale=wholesale,
        flags=flags,
    )
