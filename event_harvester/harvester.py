"""
Harvest orchestration.

Seed sources are fanned out over two bounded pools: a source pool for static
page reads and standalone event IDs, and a browser pool for GraphQL capture
and replay. Every discovered event ID goes through one shared DiscoverySet, so
each event is fetched at most once per run.
"""
import asyncio
import json
import logging
from typing import Any, Callable, Mapping, Optional, Union

import httpx

from .deduplication import DiscoverySet, EventCollector
from .http_client import RetryingClient
from .models import EventRecord, HarvestOptions, SeedSet, SourceSpec, SourceType
from .scrapers.graphql_scraper import graphql_scrape_events
from .scrapers.html_scraper import fetch_event_details, html_scrape_events
from .scrapers.sources import construct_url

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]


class Harvester:
    def __init__(
        self,
        client: RetryingClient,
        options: HarvestOptions,
        on_progress: Optional[ProgressCallback] = None,
    ):
        self.client = client
        self.options = options
        self.on_progress = on_progress
        self.discovered = DiscoverySet()
        self.collector = EventCollector()
        self.source_pool = asyncio.Semaphore(options.concurrency)
        # Browser launches are serialized on constrained hosts
        self.browser_pool = asyncio.Semaphore(options.browser_pool_size)
        self.detail_fetches = 0

    async def _fetch_event(self, event_id: str) -> None:
        try:
            event = await fetch_event_details(self.client, event_id)
        except Exception as e:
            logger.error(f"Event {event_id} error: {type(e).__name__}: {e}")
            event = None

        self.detail_fetches += 1
        if event is not None:
            self.collector.append(event)
        logger.debug(f"Scraped {self.detail_fetches} events ({len(self.collector)} kept)")
        if self.on_progress:
            self.on_progress(self.detail_fetches)

    async def scrape_event_ids(self, event_ids: list[str]) -> None:
        """Fetch details for every ID not seen before in this run."""
        claimed = [event_id for event_id in event_ids if self.discovered.claim(event_id)]
        if not claimed:
            return

        limit = asyncio.Semaphore(self.options.concurrency)

        async def run(event_id: str):
            async with limit:
                await self._fetch_event(event_id)

        await asyncio.gather(*(run(event_id) for event_id in claimed))

    async def _scrape_standalone_event(self, event_id: str) -> None:
        if not self.discovered.claim(event_id):
            return
        async with self.source_pool:
            await self._fetch_event(event_id)

    async def _scrape_source(self, source: SourceSpec) -> None:
        url = construct_url(source.kind, source.value)
        try:
            async with self.source_pool:
                has_next_page = await html_scrape_events(self.client, url, source.kind, self.scrape_event_ids)

            if has_next_page:
                async with self.browser_pool:
                    await graphql_scrape_events(
                        self.client,
                        url,
                        source.kind,
                        self.scrape_event_ids,
                        derestrict=self.options.derestrict,
                    )
        except Exception as e:
            logger.error(f"Source {source.kind.value}={source.value} error: {type(e).__name__}: {e}")

    async def run(self, seeds: SeedSet) -> list[EventRecord]:
        sources = seeds.sources()
        tasks = []
        for source in sources:
            if source.kind == SourceType.EVENT_ID:
                tasks.append(self._scrape_standalone_event(source.value))
            else:
                tasks.append(self._scrape_source(source))

        await asyncio.gather(*tasks)

        logger.info(
            f"Harvest finished: {len(sources)} sources, {self.detail_fetches} detail fetches, "
            f"{len(self.collector)} events kept"
        )
        return self.collector.snapshot()


def save_events(events: list[EventRecord], output_file: str) -> None:
    """Write events as indented JSON. Failures are logged, not raised."""
    try:
        with open(output_file, "w", encoding="utf-8") as f:
            json.dump([event.model_dump(mode="json") for event in events], f, indent=2, ensure_ascii=False)
        logger.info(f"Saved {len(events)} events to {output_file}")
    except OSError as e:
        logger.error(f"Could not write {output_file}: {type(e).__name__}: {e}")


async def harvest(
    seed_set: Union[SeedSet, Mapping[str, list[str]], None] = None,
    options: Union[HarvestOptions, Mapping[str, Any], None] = None,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    on_progress: Optional[ProgressCallback] = None,
) -> list[EventRecord]:
    """
    Harvest events from a set of seed sources.

    Args:
        seed_set: SeedSet, or a mapping with any of the keys eventID, group, page, search_query
        options: HarvestOptions, or a mapping of option names (camelCase aliases accepted)
        transport: Optional httpx transport, used instead of the network
        on_progress: Called with the running count after every detail fetch

    Returns:
        Harvested events in completion order. Past events are never included.
    """
    seeds = seed_set if isinstance(seed_set, SeedSet) else SeedSet.model_validate(seed_set or {})
    options = options if isinstance(options, HarvestOptions) else HarvestOptions.model_validate(options or {})

    if seeds.is_empty():
        logger.info("No sources to harvest")
        events = []
    else:
        async with httpx.AsyncClient(transport=transport) as http:
            harvester = Harvester(RetryingClient(http, options), options, on_progress)
            events = await harvester.run(seeds)

    if options.output_file:
        save_events(events, options.output_file)

    return events
