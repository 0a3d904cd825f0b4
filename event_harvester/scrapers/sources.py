"""
Per-source URL shapes and edge projections.

Each listing kind exposes its events through a graph-style connection
(``edges`` + ``page_info``), but the connection sits at a different place in
the static page and in the GraphQL response, and each edge nests the event ID
differently.
"""
from dataclasses import dataclass
from typing import Any, Optional
from urllib.parse import quote

from .. import config
from ..models import ListingPage, SourceType


@dataclass(frozen=True)
class SourceLayout:
    html_key: str                    # anchor key of the connection blob in static markup
    html_path: tuple[str, ...]       # from the extracted blob to the connection
    graphql_path: tuple[str, ...]    # from the response "data" object to the connection
    id_path: tuple[str, ...]         # from an edge to its event ID


LAYOUTS = {
    SourceType.GROUP: SourceLayout(
        html_key="upcoming_events",
        html_path=(),
        graphql_path=("node", "upcoming_events"),
        id_path=("node", "id"),
    ),
    SourceType.PAGE: SourceLayout(
        html_key="collection",
        html_path=("pageItems",),
        graphql_path=("node", "pageItems"),
        id_path=("node", "node", "id"),
    ),
    SourceType.SEARCH_QUERY: SourceLayout(
        html_key="results",
        html_path=(),
        graphql_path=("serpResponse", "results"),
        id_path=("rendering_strategy", "view_model", "profile", "id"),
    ),
}


def construct_url(source_type: SourceType, value: str) -> str:
    if source_type == SourceType.EVENT_ID:
        return f"{config.EVENT_PREFIX}{value}"
    if source_type == SourceType.GROUP:
        return f"{config.GROUP_PREFIX}{value}{config.GROUP_POSTFIX}"
    if source_type == SourceType.PAGE:
        return f"{config.PAGE_PREFIX}{value}{config.PAGE_POSTFIX}"
    if source_type == SourceType.SEARCH_QUERY:
        return f"{config.SEARCH_QUERY_PREFIX}{quote(value)}"
    raise ValueError(f"Unknown source type: {source_type}")


def dig(value: Any, path: tuple[str, ...]) -> Any:
    """Follow ``path`` through nested dicts; None as soon as a step is missing."""
    for key in path:
        if not isinstance(value, dict):
            return None
        value = value.get(key)
    return value


def read_connection(connection: Any) -> ListingPage:
    if not isinstance(connection, dict):
        return ListingPage()
    edges = connection.get("edges") or []
    page_info = connection.get("page_info")
    if not isinstance(page_info, dict):
        page_info = {}
    end_cursor = page_info.get("end_cursor")
    return ListingPage(
        nodes=edges if isinstance(edges, list) else [],
        has_next_page=bool(page_info.get("has_next_page")),
        end_cursor=end_cursor if isinstance(end_cursor, str) else "",
    )


def html_listing_page(source_type: SourceType, blob: Any) -> ListingPage:
    """Project the blob extracted from a static page onto a listing page."""
    return read_connection(dig(blob, LAYOUTS[source_type].html_path))


def graphql_listing_page(source_type: SourceType, data: Any) -> ListingPage:
    """Project the ``data`` object of a GraphQL response onto a listing page."""
    return read_connection(dig(data, LAYOUTS[source_type].graphql_path))


def node_event_id(source_type: SourceType, node: Any) -> Optional[str]:
    event_id = dig(node, LAYOUTS[source_type].id_path)
    if event_id is None or event_id == "":
        return None
    return str(event_id)


def page_event_ids(source_type: SourceType, page: ListingPage) -> list[str]:
    ids = (node_event_id(source_type, node) for node in page.nodes)
    return [event_id for event_id in ids if event_id]
