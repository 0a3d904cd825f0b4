"""
Static HTML tier: first listing page of a source, and event detail pages.
No browser required - data is read from the JSON blobs embedded in the markup.
"""
import logging
from typing import Any, Awaitable, Callable, Optional, TypeVar

from pydantic import BaseModel, ValidationError

from ..extraction import MarkupExtractor
from ..http_client import RetryingClient
from ..models import (
    CoverPhoto,
    EventHost,
    EventLocation,
    EventRecord,
    EventTimestamp,
    ListingPage,
    SourceType,
)
from .sources import LAYOUTS, construct_url, dig, html_listing_page, page_event_ids

logger = logging.getLogger(__name__)

Dispatch = Callable[[list[str]], Awaitable[None]]
T = TypeVar("T", bound=BaseModel)


async def read_listing_page(client: RetryingClient, url: str, source_type: SourceType) -> ListingPage:
    """
    Fetch the first page of a listing.
    A failed fetch yields an empty page with no continuation.
    """
    html = await client.get_html(url)
    if not html:
        return ListingPage()

    blob = MarkupExtractor(html).extract(LAYOUTS[source_type].html_key)
    page = html_listing_page(source_type, blob)
    if blob is None:
        logger.warning(f"No '{LAYOUTS[source_type].html_key}' data found at {url}")
    return page


async def html_scrape_events(
    client: RetryingClient,
    url: str,
    source_type: SourceType,
    dispatch: Dispatch,
) -> bool:
    """Scrape the static listing page, dispatch its events, and report whether more pages exist."""
    page = await read_listing_page(client, url, source_type)
    event_ids = page_event_ids(source_type, page)
    logger.info(f"{source_type.value} {url}: {len(event_ids)} events on static page, has_next_page={page.has_next_page}")

    await dispatch(event_ids)
    return page.has_next_page


def _tolerant(model: type[T], event_id: str, /, **values: Any) -> T:
    """Validate ``values`` into ``model``; a field whose data has an unexpected shape is left empty."""
    try:
        return model(**values)
    except ValidationError as e:
        bad = {err["loc"][0] for err in e.errors() if err["loc"]}
        for field in sorted(bad):
            logger.warning(f"Event {event_id}: dropping {model.__name__}.{field}, unexpected value {values.get(field)!r:.80}")
        return model(**{k: v for k, v in values.items() if k not in bad})


def parse_event_data(event_id: str, url: str, extractor: MarkupExtractor) -> EventRecord:
    """Assemble an EventRecord from the independent blobs of a detail page. Missing or malformed blobs leave fields empty."""
    cover_photo = extractor.extract("cover_photo")
    cover_media = extractor.extract("cover_media")
    cover_media = cover_media[0] if isinstance(cover_media, list) and cover_media else None
    data_detailed = extractor.extract("event", "one_line_address")
    data_general = extractor.extract("event", "name")
    description = extractor.extract("event_description")
    hosts = extractor.extract("event_hosts_that_can_view_guestlist")
    place = extractor.extract("event_place", "location")
    timestamp = extractor.extract("data", "start_timestamp")
    interested = extractor.extract("event_connected_users_public_responded")

    image_url = dig(cover_photo, ("photo", "full_image", "uri"))
    if image_url is None:
        image_url = dig(cover_media, ("full_image", "uri"))
    caption = dig(cover_photo, ("photo", "accessibility_caption"))
    if caption is None:
        caption = dig(cover_media, ("accessibility_caption",))

    return _tolerant(
        EventRecord,
        event_id,
        event_id=event_id,
        event_url=url,
        name=dig(data_general, ("name",)),
        description=dig(description, ("text",)),
        cover_photo=_tolerant(CoverPhoto, event_id, image_url=image_url, accessibility_caption=caption),
        timestamp=_tolerant(
            EventTimestamp,
            event_id,
            timezone=dig(timestamp, ("tz_display_name",)),
            start_timestamp=dig(timestamp, ("start_timestamp",)),
            end_timestamp=dig(timestamp, ("end_timestamp",)),
        ),
        location=_tolerant(
            EventLocation,
            event_id,
            name=dig(place, ("name",)),
            address=dig(data_detailed, ("one_line_address",)),
            coordinates=dig(place, ("location",)),
        ),
        hosts=[
            _tolerant(
                EventHost,
                event_id,
                name=dig(host, ("name",)),
                url=dig(host, ("url",)),
                image_url=dig(host, ("profile_picture", "uri")),
            )
            for host in (hosts if isinstance(hosts, list) else [])
        ],
        event_buy_ticket_url=dig(data_detailed, ("event_buy_ticket_url",)),
        users_interested_count=dig(interested, ("count",)),
        is_online=dig(data_general, ("is_online",)),
        is_past=dig(data_general, ("is_past",)),
        is_canceled=dig(data_general, ("is_canceled",)),
    )


async def fetch_event_details(client: RetryingClient, event_id: str) -> Optional[EventRecord]:
    """
    Fetch and decode one event.
    Returns None when the page could not be fetched, or when the event is already past.
    """
    url = construct_url(SourceType.EVENT_ID, event_id)
    html = await client.get_html(url)
    if not html:
        return None

    event = parse_event_data(event_id, url, MarkupExtractor(html))
    if event.is_past:
        logger.debug(f"Event {event_id} is past, skipping")
        return None
    return event
