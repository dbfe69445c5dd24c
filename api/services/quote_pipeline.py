"""
Quote Pipeline — debounced, cancellable fare recomputation.

Flow for every input change:
  input → debounce → distance lookup (async, cancellable) → calculate_fare → publish

Only the latest submit() may publish a result. Earlier lookups are cancelled,
and if one still resolves late its result is dropped by generation check.
"""

import asyncio
import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Awaitable, Callable

from config import settings
from services.maps import DistanceLookupError, RouteEstimate
from services.pricing import (
    FareBreakdown, InvalidFare, PricingFlow, TripParameters, calculate_fare,
)

logger = logging.getLogger(__name__)

MIN_ADDRESS_LENGTH = 6

DistanceProvider = Callable[[str, str], Awaitable[RouteEstimate]]


class QuoteState(str, Enum):
    IDLE = "IDLE"
    CALCULATING = "CALCULATING"
    READY = "READY"
    INVALID = "INVALID"
    UNAVAILABLE = "UNAVAILABLE"


@dataclass(frozen=True)
class QuoteUpdate:
    generation: int
    state: QuoteState
    breakdown: FareBreakdown | None = None
    invalid: InvalidFare | None = None
    route: RouteEstimate | None = None
    error: str | None = None


def _incomplete_address(address: str | None) -> bool:
    return not address or len(address.strip()) < MIN_ADDRESS_LENGTH


class QuotePipeline:
    """
    Owns the "current quote" for one quoting form.

    Args:
        distance_provider: async (origin, destination) -> RouteEstimate
        publish: called with every QuoteUpdate for the current generation
        flow: pricing flow passed to calculate_fare
        debounce_sec: quiet period before a lookup (default QUOTE_DEBOUNCE_MS)
    """

    def __init__(
        self,
        distance_provider: DistanceProvider,
        publish: Callable[[QuoteUpdate], None],
        flow: PricingFlow = PricingFlow.FULL_QUOTE,
        debounce_sec: float | None = None,
    ):
        self._distance_provider = distance_provider
        self._publish = publish
        self._flow = flow
        self._debounce_sec = (
            debounce_sec if debounce_sec is not None else settings.QUOTE_DEBOUNCE_MS / 1000
        )
        self._generation = 0
        self._task: asyncio.Task | None = None

    @property
    def generation(self) -> int:
        return self._generation

    def _cancel_pending(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    def _emit(self, update: QuoteUpdate) -> None:
        if update.generation == self._generation:
            self._publish(update)

    def submit(self, origin: str, destination: str, params: TripParameters) -> int:
        """
        Register an input change. Returns the generation of this request.

        params.distance_km is ignored; the looked-up distance replaces it.
        """
        self._cancel_pending()
        self._generation += 1
        generation = self._generation

        reasons = []
        if _incomplete_address(origin) or _incomplete_address(destination):
            reasons.append("Pickup and delivery addresses are required")
        if params.vehicle is None:
            reasons.append("Vehicle tariff is missing")
        if reasons:
            self._emit(QuoteUpdate(
                generation, QuoteState.INVALID, invalid=InvalidFare(reasons=tuple(reasons)),
            ))
            return generation

        self._emit(QuoteUpdate(generation, QuoteState.CALCULATING))
        self._task = asyncio.create_task(self._run(generation, origin, destination, params))
        return generation

    def reset(self) -> None:
        """Drop any in-flight work; late results are ignored."""
        self._cancel_pending()
        self._generation += 1
        self._emit(QuoteUpdate(self._generation, QuoteState.IDLE))

    async def wait(self) -> None:
        """Wait for the current request to settle (cancelled requests included)."""
        task = self._task
        if task is None:
            return
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _run(self, generation: int, origin: str, destination: str, params: TripParameters) -> None:
        await asyncio.sleep(self._debounce_sec)
        if generation != self._generation:
            return

        try:
            route = await self._distance_provider(origin, destination)
        except DistanceLookupError as e:
            if generation != self._generation:
                return
            logger.info("Quote %d: distance lookup failed: %s", generation, e)
            self._emit(QuoteUpdate(generation, QuoteState.UNAVAILABLE, error=str(e)))
            return
        except Exception as e:
            if generation != self._generation:
                return
            logger.exception("Quote %d: distance provider crashed", generation)
            self._emit(QuoteUpdate(generation, QuoteState.UNAVAILABLE, error=str(e)))
            return

        if generation != self._generation:
            logger.debug("Quote %d: discarding stale distance result", generation)
            return

        result = calculate_fare(replace(params, distance_km=route.distance_km), self._flow)
        if isinstance(result, InvalidFare):
            self._emit(QuoteUpdate(generation, QuoteState.INVALID, invalid=result, route=route))
        else:
            self._emit(QuoteUpdate(generation, QuoteState.READY, breakdown=result, route=route))
