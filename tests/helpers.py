"""Shared builders for fake platform pages and HTTP plumbing."""
import contextlib
import json
from typing import Callable

import httpx

from event_harvester.http_client import RetryingClient
from event_harvester.models import HarvestOptions


def script_page(*blobs) -> str:
    """Wrap JSON blobs in <script> tags the way the platform embeds its data."""
    scripts = "".join(f'<script type="application/json">{json.dumps(blob)}</script>' for blob in blobs)
    return f"<html><head><title>Facebook</title></head><body><div id='root'></div>{scripts}</body></html>"


def event_page(event_id: str, name: str = "Test Event", is_past: bool = False) -> str:
    return script_page(
        {"cover_photo": {"photo": {"full_image": {"uri": f"https://img.example/{event_id}.jpg"},
                                   "accessibility_caption": "A crowd at a concert"}}},
        {"event": {"id": event_id, "name": name, "is_online": False, "is_past": is_past, "is_canceled": False}},
        {"event": {"id": event_id, "one_line_address": "1 Pike St, Seattle",
                   "event_buy_ticket_url": "https://tickets.example/buy"}},
        {"event_description": {"text": "Live music all night"}},
        {"event_hosts_that_can_view_guestlist": [
            {"name": "The Crocodile", "url": "https://www.facebook.com/crocodile",
             "profile_picture": {"uri": "https://img.example/host.jpg"}},
        ]},
        {"event_place": {"name": "The Crocodile", "location": {"latitude": 47.61, "longitude": -122.34}}},
        {"data": {"tz_display_name": "PST", "start_timestamp": 1767225600, "end_timestamp": 1767240000}},
        {"event_connected_users_public_responded": {"count": 128}},
    )


def connection(edges: list, has_next_page: bool, end_cursor: str = "") -> dict:
    return {"edges": edges, "page_info": {"has_next_page": has_next_page, "end_cursor": end_cursor}}


def group_edges(*ids: str) -> list:
    return [{"node": {"id": event_id}} for event_id in ids]


def page_edges(*ids: str) -> list:
    return [{"node": {"node": {"id": event_id}}} for event_id in ids]


def search_edges(*ids: str) -> list:
    return [{"rendering_strategy": {"view_model": {"profile": {"id": event_id}}}} for event_id in ids]


def group_listing(ids: list, has_next_page: bool = False) -> str:
    return script_page({"upcoming_events": connection(group_edges(*ids), has_next_page, "CURSOR0")})


def page_listing(ids: list, has_next_page: bool = False) -> str:
    return script_page({"collection": {"pageItems": connection(page_edges(*ids), has_next_page, "CURSOR0")}})


def search_listing(ids: list, has_next_page: bool = False) -> str:
    return script_page({"results": connection(search_edges(*ids), has_next_page, "CURSOR0")})


def fast_options(**overrides) -> HarvestOptions:
    return HarvestOptions(**{"http_req_retries": 1, "http_req_retry_delay": 0, **overrides})


@contextlib.asynccontextmanager
async def retrying_client(handler: Callable[[httpx.Request], httpx.Response], **overrides):
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
        yield RetryingClient(http, fast_options(**overrides))
