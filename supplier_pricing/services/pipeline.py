"""
Pricing Pipeline
================

Orchestrates one processing run:

workbook -> sheet selection -> column mapping -> per-row extraction,
equivalence lookup and pricing -> run statistics.

The whole run, reading the file included, is raced against
``processing_timeout_seconds``. Rows are priced concurrently (bounded by
``max_concurrent_rows``); they share only the read-only configuration
snapshot and column mapping. Rows without a brand take their sheet's vendor
before the file-level one.
"""

import asyncio
from pathlib import Path
from typing import Any, Awaitable, Optional

from supplier_pricing.config.settings import Settings, get_settings
from supplier_pricing.ingest.sheet_selector import SheetSelector
from supplier_pricing.ingest.workbook import Workbook, read_workbook
from supplier_pricing.schemas.mapping import ColumnMapping
from supplier_pricing.schemas.pricing import (
    PricingConfig,
    PricingRunResult,
    ProductRecord,
    RunStatistics,
)
from supplier_pricing.schemas.sheets import RowRecord
from supplier_pricing.services.brand_detector import infer_vendor_hint, sheet_vendor_hints
from supplier_pricing.services.column_mapper import (
    AssistedColumnMapper,
    ColumnMapper,
    MappingThresholds,
)
from supplier_pricing.services.config_source import ConfigLoader
from supplier_pricing.services.equivalence import (
    EquivalenceLookup,
    HttpEquivalenceLookup,
    NullEquivalenceLookup,
    resolve_equivalence,
)
from supplier_pricing.services.extraction import MappedRow
from supplier_pricing.services.llm.client import LLMClient, get_llm_client
from supplier_pricing.services.pricing_calculator import price_product
from supplier_pricing.utils.errors import ProcessingTimeoutError
from supplier_pricing.utils.logger import get_logger
from supplier_pricing.utils.text import is_blank

logger = get_logger(__name__)

MIN_SAMPLE_CELLS = 2


def pick_sample_rows(rows: list[RowRecord], limit: int) -> list[dict[str, Any]]:
    """First ``limit`` rows with at least two filled cells."""
    samples = []
    for record in rows:
        if sum(1 for v in record.fields.values() if not is_blank(v)) >= MIN_SAMPLE_CELLS:
            samples.append(record.fields)
            if len(samples) == limit:
                break
    return samples


class PricingPipeline:
    """
    End-to-end spreadsheet-to-priced-catalog pipeline.

    Example:
        pipeline = PricingPipeline.from_settings(get_settings())
        result = await pipeline.process_file("lista_moura.xlsx")
        result.statistics.total_products
    """

    def __init__(
        self,
        settings: Settings,
        column_mapper: ColumnMapper,
        config_loader: ConfigLoader,
        equivalence: EquivalenceLookup,
        selector: Optional[SheetSelector] = None,
        llm_client: Optional[LLMClient] = None,
    ) -> None:
        self.settings = settings
        self.column_mapper = column_mapper
        self.config_loader = config_loader
        self.equivalence = equivalence
        self.selector = selector or SheetSelector()
        self._llm_client = llm_client

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "PricingPipeline":
        """Wire the pipeline from configuration."""
        settings = settings or get_settings()

        llm_client = get_llm_client(settings) if settings.llm_enabled else None
        assisted = None
        if llm_client is not None:
            assisted = AssistedColumnMapper(
                llm_client,
                thresholds=MappingThresholds.from_settings(settings),
                max_retries=settings.mapping_max_retries,
            )

        equivalence: EquivalenceLookup
        if settings.equivalence_service_url:
            equivalence = HttpEquivalenceLookup(
                settings.equivalence_service_url,
                timeout=settings.equivalence_timeout_seconds,
            )
        else:
            equivalence = NullEquivalenceLookup()

        return cls(
            settings=settings,
            column_mapper=ColumnMapper(assisted),
            config_loader=ConfigLoader(settings),
            equivalence=equivalence,
            llm_client=llm_client,
        )

    async def close(self) -> None:
        if self._llm_client is not None:
            await self._llm_client.close()
        await self.equivalence.close()

    # -------------------------------------------------------------------------
    # Entry points
    # -------------------------------------------------------------------------

    async def process_file(
        self,
        file_path: str | Path,
        vendor: Optional[str] = None,
        config_blob: Optional[dict[str, Any]] = None,
    ) -> PricingRunResult:
        """Read a workbook from disk and process it. The read is part of the timed run."""

        async def read_and_run() -> PricingRunResult:
            workbook = await asyncio.to_thread(read_workbook, file_path)
            return await self._run(workbook, vendor, config_blob)

        return await self._within_time_budget(read_and_run(), Path(file_path).name)

    async def process(
        self,
        workbook: Workbook,
        vendor: Optional[str] = None,
        config_blob: Optional[dict[str, Any]] = None,
    ) -> PricingRunResult:
        """
        Process a workbook within the configured time budget.

        Raises:
            InputError: No usable sheet / empty workbook
            MappingError: Neither price nor identifier column resolved
            ProcessingTimeoutError: The run exceeded its time budget
        """
        return await self._within_time_budget(
            self._run(workbook, vendor, config_blob), workbook.source_name
        )

    async def _within_time_budget(
        self, run: Awaitable[PricingRunResult], source_name: str
    ) -> PricingRunResult:
        timeout = self.settings.processing_timeout_seconds
        try:
            return await asyncio.wait_for(run, timeout=timeout)
        except asyncio.TimeoutError as e:
            logger.error("pipeline.timeout", file=source_name, timeout_seconds=timeout)
            raise ProcessingTimeoutError(
                f"Processing exceeded {timeout:g} seconds",
                details={"file": source_name, "timeout_seconds": timeout},
            ) from e

    # -------------------------------------------------------------------------
    # Stages
    # -------------------------------------------------------------------------

    async def _run(
        self,
        workbook: Workbook,
        vendor: Optional[str],
        config_blob: Optional[dict[str, Any]],
    ) -> PricingRunResult:
        log = logger.bind(file=workbook.source_name)
        loaded = await self.config_loader.load(config_blob)

        selection = self.selector.select(workbook)
        detection = infer_vendor_hint(workbook.source_name, selection.surviving_sheets)
        vendor_hint = vendor or (detection.brand if detection else None)
        sheet_vendors = sheet_vendor_hints(selection.rows)
        log.info(
            "pipeline.sheets_selected",
            sheets=selection.surviving_sheets,
            rows=len(selection.rows),
            vendor_hint=vendor_hint,
            sheet_vendors=sheet_vendors,
        )

        samples = pick_sample_rows(selection.rows, self.settings.mapping_sample_rows)
        mapping = await self.column_mapper.map(
            selection.headers,
            samples,
            file_name=workbook.source_name,
            vendor_hint=vendor_hint,
            sheet_names=selection.surviving_sheets,
        )

        products = await self._price_rows(
            selection.rows,
            mapping,
            loaded.config,
            forced_vendor=vendor,
            vendor_hint=vendor_hint,
            sheet_vendors=sheet_vendors,
        )
        statistics = RunStatistics.from_products(products)
        log.info("pipeline.completed", **statistics.model_dump())

        return PricingRunResult(
            source_name=workbook.source_name,
            vendor=vendor_hint,
            config_source=loaded.source,
            products=products,
            statistics=statistics,
            mapping=mapping,
            headers=selection.headers,
            diagnostics=selection.diagnostics,
        )

    async def _price_rows(
        self,
        rows: list[RowRecord],
        mapping: ColumnMapping,
        config: PricingConfig,
        forced_vendor: Optional[str],
        vendor_hint: Optional[str],
        sheet_vendors: dict[str, str],
    ) -> list[ProductRecord]:
        semaphore = asyncio.Semaphore(self.settings.max_concurrent_rows)

        async def price_row(record: RowRecord) -> ProductRecord:
            row = MappedRow(record, mapping)
            resolved = row.resolve_price()
            async with semaphore:
                equivalence = await resolve_equivalence(
                    self.equivalence, row.model, resolved.value
                )
            return price_product(
                record,
                mapping,
                config,
                equivalence,
                forced_vendor=forced_vendor,
                vendor_hint=vendor_hint,
                sheet_vendor=sheet_vendors.get(record.sheet),
                resolved=resolved,
            )

        # gather keeps input order.
        return list(await asyncio.gather(*(price_row(r) for r in rows)))
