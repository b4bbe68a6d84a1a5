"""Fan out to every configured provider and join the results."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Sequence

from ingestion.base import BaseProvider, FetchOutcome, FetchStatus
from ingestion.models import CanonicalEvent
from ingestion.observability import log


@dataclass
class AggregateResult:
    events: list[CanonicalEvent] = field(default_factory=list)
    outcomes: list[FetchOutcome] = field(default_factory=list)

    @property
    def failed(self) -> list[FetchOutcome]:
        return [o for o in self.outcomes if o.status is FetchStatus.FAILED]

    @property
    def all_failed(self) -> bool:
        """True when every provider that was attempted failed."""
        attempted = [o for o in self.outcomes if o.status is not FetchStatus.NOT_CONFIGURED]
        return bool(attempted) and all(o.status is FetchStatus.FAILED for o in attempted)


class Aggregator:
    """Run every provider concurrently and settle all of them."""

    def __init__(self, providers: Sequence[BaseProvider]) -> None:
        self.providers = list(providers)

    async def collect(self) -> AggregateResult:
        results = await asyncio.gather(
            *(provider.fetch_events() for provider in self.providers),
            return_exceptions=True,
        )

        combined = AggregateResult()
        for provider, result in zip(self.providers, results):
            if isinstance(result, BaseException):
                # Providers are not supposed to raise; contain it anyway.
                if not isinstance(result, Exception):
                    raise result
                reason = f"{type(result).__name__}: {result}"
                log(f"Error fetching from {provider.name}: {reason}", "api", logging.ERROR)
                combined.outcomes.append(
                    FetchOutcome(provider.name, FetchStatus.FAILED, reason=reason)
                )
                continue

            outcome = provider.last_outcome or FetchOutcome(
                provider.name, FetchStatus.OK, len(result)
            )
            if outcome.status is FetchStatus.FAILED:
                log(
                    f"Error fetching from {provider.name}: {outcome.reason}",
                    "api",
                    logging.ERROR,
                )
            combined.outcomes.append(outcome)
            combined.events.extend(result)

        log(f"Fetched {len(combined.events)} total events from all providers", "api")
        return combined

    async def fetch_all(self) -> list[CanonicalEvent]:
        return (await self.collect()).events
