"""
First-Success Combinator
========================

Ordered provider chains used for configuration loading, column mapping and
price discovery. Each provider returns a result or ``None``; the first
non-``None`` result wins. Provider exceptions are logged and the chain moves
on to the next provider.
"""

from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Sequence, TypeVar

from supplier_pricing.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Provider(Generic[T]):
    """A named synchronous provider."""

    name: str
    fn: Callable[[], T | None]


@dataclass(frozen=True)
class AsyncProvider(Generic[T]):
    """A named asynchronous provider."""

    name: str
    fn: Callable[[], Awaitable[T | None]]


@dataclass(frozen=True)
class Resolution(Generic[T]):
    """Winning value plus the name of the provider that produced it."""

    value: T
    provider: str


def first_success(
    providers: Sequence[Provider[T]],
    *,
    chain: str,
    errors: tuple[type[Exception], ...] = (Exception,),
) -> Resolution[T] | None:
    """Run providers in order and return the first non-None result."""
    for provider in providers:
        try:
            value = provider.fn()
        except errors as e:
            logger.warning(
                "fallback.provider_failed",
                chain=chain,
                provider=provider.name,
                error=str(e),
                error_type=type(e).__name__,
            )
            continue
        if value is not None:
            return Resolution(value=value, provider=provider.name)
    return None


async def afirst_success(
    providers: Sequence[AsyncProvider[T]],
    *,
    chain: str,
    errors: tuple[type[Exception], ...] = (Exception,),
) -> Resolution[T] | None:
    """Async variant of :func:`first_success`. Providers run one at a time."""
    for provider in providers:
        try:
            value = await provider.fn()
        except errors as e:
            logger.warning(
                "fallback.provider_failed",
                chain=chain,
                provider=provider.name,
                error=str(e),
                error_type=type(e).__name__,
            )
            continue
        if value is not None:
            logger.debug("fallback.resolved", chain=chain, provider=provider.name)
            return Resolution(value=value, provider=provider.name)
    return None
