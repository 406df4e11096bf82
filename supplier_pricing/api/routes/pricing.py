"""
Pricing Routes
==============

Endpoints:
- POST /pricing/process - price a supplier workbook synchronously

Errors are raised as ``PricingPipelineError`` subclasses and turned into
structured responses by the application exception handler.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, status

from supplier_pricing.schemas.pricing import PricingRunResult
from supplier_pricing.schemas.requests import ProcessFileRequest
from supplier_pricing.services.pipeline import PricingPipeline
from supplier_pricing.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


def get_pipeline(request: Request) -> PricingPipeline:
    """Pipeline created at application startup."""
    return request.app.state.pipeline


@router.post(
    "/process",
    response_model=PricingRunResult,
    status_code=status.HTTP_200_OK,
    summary="Price a supplier workbook",
    responses={
        400: {"description": "Unreadable file or no usable sheet (diagnostics attached)"},
        408: {"description": "Processing exceeded the time budget"},
        422: {"description": "No price or identifier column could be mapped"},
    },
)
async def process_file(
    body: ProcessFileRequest,
    pipeline: Annotated[PricingPipeline, Depends(get_pipeline)],
) -> PricingRunResult:
    """
    Run the full pipeline on one file and return the priced catalog.

    The response includes run statistics, the resolved column mapping and
    per-sheet diagnostics for auditability.
    """
    logger.info("pricing.process_requested", file_path=body.file_path, vendor=body.vendor)
    return await pipeline.process_file(
        body.file_path, vendor=body.vendor, config_blob=body.config
    )
