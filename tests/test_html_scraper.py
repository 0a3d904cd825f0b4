import httpx
import pytest

from event_harvester.models import SourceType
from event_harvester.scrapers.html_scraper import fetch_event_details, html_scrape_events, read_listing_page
from tests.helpers import event_page, group_listing, page_listing, retrying_client, script_page, search_listing


def serve(pages: dict):
    def handler(request):
        body = pages.get(str(request.url))
        if body is None:
            return httpx.Response(404)
        return httpx.Response(200, text=body)
    return handler


@pytest.mark.asyncio
async def test_fetch_event_details_maps_every_field():
    handler = serve({"https://www.facebook.com/events/123": event_page("123", name="Jazz Night")})

    async with retrying_client(handler) as client:
        event = await fetch_event_details(client, "123")

    assert event.event_id == "123"
    assert event.event_url == "https://www.facebook.com/events/123"
    assert event.name == "Jazz Night"
    assert event.description == "Live music all night"
    assert event.cover_photo.image_url == "https://img.example/123.jpg"
    assert event.cover_photo.accessibility_caption == "A crowd at a concert"
    assert event.timestamp.timezone == "PST"
    assert event.timestamp.start_timestamp == 1767225600
    assert event.timestamp.end_timestamp == 1767240000
    assert event.location.name == "The Crocodile"
    assert event.location.address == "1 Pike St, Seattle"
    assert event.location.coordinates == {"latitude": 47.61, "longitude": -122.34}
    assert [h.name for h in event.hosts] == ["The Crocodile"]
    assert event.hosts[0].image_url == "https://img.example/host.jpg"
    assert event.event_buy_ticket_url == "https://tickets.example/buy"
    assert event.users_interested_count == 128
    assert event.is_online is False
    assert event.is_past is False
    assert event.is_canceled is False


@pytest.mark.asyncio
async def test_past_event_is_dropped():
    handler = serve({"https://www.facebook.com/events/9": event_page("9", is_past=True)})
    async with retrying_client(handler) as client:
        assert await fetch_event_details(client, "9") is None


@pytest.mark.asyncio
async def test_failed_fetch_returns_none():
    async with retrying_client(serve({})) as client:
        assert await fetch_event_details(client, "404") is None


@pytest.mark.asyncio
async def test_cover_media_fallback_and_missing_blobs():
    html = script_page(
        {"cover_media": [{"full_image": {"uri": "https://img.example/media.jpg"}, "accessibility_caption": "poster"}]},
        {"event": {"name": "Sparse", "is_past": False}},
    )
    handler = serve({"https://www.facebook.com/events/5": html})

    async with retrying_client(handler) as client:
        event = await fetch_event_details(client, "5")

    assert event.name == "Sparse"
    assert event.cover_photo.image_url == "https://img.example/media.jpg"
    assert event.cover_photo.accessibility_caption == "poster"
    assert event.description is None
    assert event.hosts == []
    assert event.location.address is None
    assert event.users_interested_count is None


@pytest.mark.asyncio
@pytest.mark.parametrize("source_type,url,html", [
    (SourceType.GROUP, "https://www.facebook.com/groups/g/events", group_listing(["1", "2"], True)),
    (SourceType.PAGE, "https://www.facebook.com/p/upcoming_hosted_events", page_listing(["1", "2"], True)),
    (SourceType.SEARCH_QUERY, "https://www.facebook.com/events/search/?q=jazz", search_listing(["1", "2"], True)),
])
async def test_read_listing_page_per_kind(source_type, url, html):
    async with retrying_client(serve({url: html})) as client:
        page = await read_listing_page(client, url, source_type)

    assert len(page.nodes) == 2
    assert page.has_next_page is True
    assert page.end_cursor == "CURSOR0"


@pytest.mark.asyncio
async def test_html_scrape_events_dispatches_ids_and_reports_next_page():
    url = "https://www.facebook.com/groups/g/events"
    dispatched = []

    async def dispatch(event_ids):
        dispatched.append(event_ids)

    async with retrying_client(serve({url: group_listing(["1", "2"], has_next_page=False)})) as client:
        has_next_page = await html_scrape_events(client, url, SourceType.GROUP, dispatch)

    assert has_next_page is False
    assert dispatched == [["1", "2"]]


@pytest.mark.asyncio
async def test_failed_listing_fetch_stops_pagination():
    dispatched = []

    async def dispatch(event_ids):
        dispatched.append(event_ids)

    async with retrying_client(serve({})) as client:
        has_next_page = await html_scrape_events(client, "https://www.facebook.com/groups/x/events", SourceType.GROUP, dispatch)

    assert has_next_page is False
    assert dispatched == [[]]


@pytest.mark.asyncio
async def test_malformed_field_is_dropped_not_the_event(caplog):
    html = script_page(
        {"event": {"id": "7", "name": "Warehouse Party", "is_online": False, "is_past": False, "is_canceled": False}},
        {"event_place": {"name": "Venue", "location": ["47.6", "-122.3"]}},
        {"data": {"tz_display_name": "PST", "start_timestamp": {"unexpected": True}, "end_timestamp": 1767240000}},
        {"event_hosts_that_can_view_guestlist": [{"name": ["not", "a", "name"], "url": "https://www.facebook.com/h"}]},
    )
    handler = serve({"https://www.facebook.com/events/7": html})

    async with retrying_client(handler) as client:
        event = await fetch_event_details(client, "7")

    assert event is not None
    assert event.name == "Warehouse Party"
    assert event.location.name == "Venue"
    assert event.location.coordinates is None
    assert event.timestamp.timezone == "PST"
    assert event.timestamp.start_timestamp is None
    assert event.timestamp.end_timestamp == 1767240000
    assert event.hosts[0].name is None
    assert event.hosts[0].url == "https://www.facebook.com/h"
    assert "EventLocation.coordinates" in caplog.text
    assert "EventTimestamp.start_timestamp" in caplog.text
