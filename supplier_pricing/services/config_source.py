"""
Pricing Configuration Source
============================

Loads the read-only ``PricingConfig`` snapshot for one processing run from
an ordered chain of providers:

1. remote configuration service (``GET config_service_url``, 10 s timeout)
2. configuration blob supplied by the caller
3. local JSON snapshot file
4. hardcoded defaults

A provider that fails or has nothing to offer is skipped; the defaults
provider always succeeds, so loading never raises.
"""

import asyncio
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from supplier_pricing.config.settings import Settings
from supplier_pricing.schemas.pricing import PricingConfig
from supplier_pricing.utils.errors import ConfigurationError
from supplier_pricing.utils.fallback import AsyncProvider, afirst_success
from supplier_pricing.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class LoadedConfig:
    """Configuration snapshot plus the provider it came from."""

    config: PricingConfig
    source: str


def parse_config(data: Any, source: str) -> PricingConfig:
    """Validate raw configuration data (legacy or current key names)."""
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Configuration from {source} is not an object",
            details={"source": source},
        )
    try:
        return PricingConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid configuration from {source}",
            details={"source": source, "errors": e.errors(include_url=False)},
        ) from e


class ConfigLoader:
    """
    Builds and runs the provider chain.

    Example:
        loaded = await ConfigLoader(settings).load(blob=request.config)
        loaded.config.vat  # 21.0
    """

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.settings = settings
        self._transport = transport

    async def from_service(self) -> PricingConfig | None:
        url = self.settings.config_service_url
        if not url:
            return None
        async with httpx.AsyncClient(
            timeout=self.settings.config_timeout_seconds, transport=self._transport
        ) as client:
            response = await client.get(url)
            response.raise_for_status()
            return parse_config(response.json(), "service")

    @staticmethod
    def from_blob(blob: dict[str, Any] | None) -> PricingConfig | None:
        if not blob:
            return None
        return parse_config(blob, "request")

    def from_file(self) -> PricingConfig | None:
        if not self.settings.config_file_path:
            return None
        path = Path(self.settings.config_file_path)
        if not path.is_file():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(
                f"Cannot read configuration file: {e}", details={"path": str(path)}
            ) from e
        return parse_config(data, "file")

    async def load(self, blob: dict[str, Any] | None = None) -> LoadedConfig:
        """Return the first configuration any provider can supply."""

        async def service() -> PricingConfig | None:
            return await asyncio.wait_for(
                self.from_service(), timeout=self.settings.config_timeout_seconds
            )

        async def request() -> PricingConfig | None:
            return self.from_blob(blob)

        async def local_file() -> PricingConfig | None:
            return self.from_file()

        async def defaults() -> PricingConfig | None:
            return PricingConfig()

        resolution = await afirst_success(
            [
                AsyncProvider("service", service),
                AsyncProvider("request", request),
                AsyncProvider("file", local_file),
                AsyncProvider("defaults", defaults),
            ],
            chain="pricing_config",
            errors=(ConfigurationError, httpx.HTTPError, asyncio.TimeoutError, ValueError),
        )
        if resolution is None:
            raise ConfigurationError("No configuration provider succeeded")
        logger.info(
            "config.loaded",
            source=resolution.provider,
            vat=resolution.value.vat,
            markup_retail=resolution.value.markups.retail,
            markup_wholesale=resolution.value.markups.wholesale,
        )
        return LoadedConfig(config=resolution.value, source=resolution.provider)
