"""
Equivalence Lookup
==================

Client side of the external equivalence collaborator: given a model and the
observed price it may return an alternate reference price, which becomes
the wholesale pricing base.

The collaborator is optional and untrusted. Any failure resolves to
"no match" and is logged, never raised to the caller.
"""

from abc import ABC, abstractmethod
from typing import Optional

import httpx
from pydantic import ValidationError

from supplier_pricing.schemas.pricing import EquivalenceMatch, EquivalenceResponse
from supplier_pricing.utils.errors import EquivalenceLookupError
from supplier_pricing.utils.logger import get_logger

logger = get_logger(__name__)

NO_MATCH_REASON = "No equivalence found"


class EquivalenceLookup(ABC):
    """Abstract equivalence collaborator."""

    @abstractmethod
    async def lookup(self, model: str, price: float) -> Optional[EquivalenceMatch]:
        """Return a match, or None when the collaborator knows no equivalent.

        Raises:
            EquivalenceLookupError: The collaborator failed
        """

    async def close(self) -> None:
        return None


class NullEquivalenceLookup(EquivalenceLookup):
    """Used when no collaborator is configured."""

    async def lookup(self, model: str, price: float) -> Optional[EquivalenceMatch]:
        return None


class HttpEquivalenceLookup(EquivalenceLookup):
    """
    HTTP equivalence collaborator.

    ``POST {base_url}/equivalences/lookup`` with ``{"model", "price"}``;
    a 404, ``{"found": false}`` or a body without a positive reference price
    means no match. Legacy and camelCase response keys are accepted.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._client = httpx.AsyncClient(
            base_url=base_url, timeout=timeout, transport=transport
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def lookup(self, model: str, price: float) -> Optional[EquivalenceMatch]:
        try:
            response = await self._client.post(
                "/equivalences/lookup", json={"model": model, "price": price}
            )
            if response.status_code == 404:
                return None
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise EquivalenceLookupError(
                f"Equivalence lookup failed: {e}", details={"model": model}
            ) from e

        try:
            body = EquivalenceResponse.model_validate(data)
            if not body.is_match:
                return None
            return body.to_match(model)
        except ValidationError as e:
            raise EquivalenceLookupError(
                "Equivalence collaborator returned an invalid match",
                details={"model": model, "errors": e.errors()},
            ) from e


async def resolve_equivalence(
    lookup: EquivalenceLookup,
    model: Optional[str],
    price: float,
) -> EquivalenceMatch:
    """
    Look up an equivalence, always returning a match record.

    Skips the call when there is no model or no price; collaborator errors
    become ``found=False`` with the error as reason.
    """
    if not model or price <= 0:
        return EquivalenceMatch.no_match(model, NO_MATCH_REASON)

    try:
        match = await lookup.lookup(model, price)
    except EquivalenceLookupError as e:
        logger.warning("equivalence.lookup_failed", model=model, error=e.message)
        return EquivalenceMatch.no_match(model, f"Lookup unavailable: {e.message}")

    if match is None or not match.found or match.reference_price is None:
        return EquivalenceMatch.no_match(model, NO_MATCH_REASON)
    return match
