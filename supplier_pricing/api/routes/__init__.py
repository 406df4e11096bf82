"""API routers."""

from supplier_pricing.api.routes.pricing import router as pricing_router

__all__ = ["pricing_router"]
