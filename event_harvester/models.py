"""Data models for the event harvester."""
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from . import config


class SourceType(str, Enum):
    """Kind of seed source. Values match the wire keys of a seed set."""
    EVENT_ID = "eventID"
    GROUP = "group"
    PAGE = "page"
    SEARCH_QUERY = "search_query"


class SourceSpec(BaseModel):
    """A single seed: an event ID, group ID, page ID or search query."""
    model_config = ConfigDict(frozen=True)

    kind: SourceType
    value: str


class SeedSet(BaseModel):
    """Seed sources grouped by kind. Order within each list is preserved."""
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    event_id: list[str] = Field(default_factory=list, alias="eventID")
    group: list[str] = Field(default_factory=list)
    page: list[str] = Field(default_factory=list)
    search_query: list[str] = Field(default_factory=list)

    def by_kind(self) -> dict[SourceType, list[str]]:
        return {
            SourceType.EVENT_ID: self.event_id,
            SourceType.GROUP: self.group,
            SourceType.PAGE: self.page,
            SourceType.SEARCH_QUERY: self.search_query,
        }

    def sources(self) -> list[SourceSpec]:
        return [
            SourceSpec(kind=kind, value=value)
            for kind, values in self.by_kind().items()
            for value in values
        ]

    def is_empty(self) -> bool:
        return not any(self.by_kind().values())


class HarvestOptions(BaseModel):
    """Per-run configuration. Delays and timeouts are in milliseconds."""
    model_config = ConfigDict(populate_by_name=True)

    concurrency: int = Field(default=config.DEFAULT_CONCURRENCY, ge=1)
    # Dispatch the next replay page without waiting for the previous page's detail fetches
    derestrict: bool = config.DEFAULT_DERESTRICT
    http_req_retries: int = Field(default=config.DEFAULT_HTTP_REQ_RETRIES, ge=1, alias="httpReqRetries")
    http_req_retry_delay: int = Field(default=config.DEFAULT_HTTP_REQ_RETRY_DELAY_MS, ge=0, alias="httpReqRetryDelay")
    http_req_timeout: int = Field(default=config.DEFAULT_HTTP_REQ_TIMEOUT_MS, gt=0, alias="httpReqTimeout")
    is_aws: bool = Field(default=config.DEFAULT_IS_AWS, alias="isAWS")
    output_file: Optional[str] = Field(default=config.DEFAULT_OUTPUT_FILE, alias="outputFile")

    @property
    def browser_pool_size(self) -> int:
        return 1 if self.is_aws else config.BROWSER_POOL_SIZE


class CoverPhoto(BaseModel):
    image_url: Optional[str] = None
    accessibility_caption: Optional[str] = None


class EventTimestamp(BaseModel):
    timezone: Optional[str] = None
    start_timestamp: Optional[int] = None
    end_timestamp: Optional[int] = None


class EventLocation(BaseModel):
    name: Optional[str] = None
    address: Optional[str] = None
    coordinates: Optional[dict[str, Any]] = None  # {"latitude": ..., "longitude": ...}


class EventHost(BaseModel):
    name: Optional[str] = None
    url: Optional[str] = None
    image_url: Optional[str] = None


class EventRecord(BaseModel):
    """A decoded event detail page."""
    event_id: str
    event_url: str
    name: Optional[str] = None
    description: Optional[str] = None
    cover_photo: CoverPhoto = Field(default_factory=CoverPhoto)
    timestamp: EventTimestamp = Field(default_factory=EventTimestamp)
    location: EventLocation = Field(default_factory=EventLocation)
    hosts: list[EventHost] = Field(default_factory=list)
    event_buy_ticket_url: Optional[str] = None
    users_interested_count: Optional[int] = None
    is_online: Optional[bool] = None
    is_past: Optional[bool] = None
    is_canceled: Optional[bool] = None


class ListingPage(BaseModel):
    """One page of a paginated listing: its raw edges and continuation cursor."""
    nodes: list[Any] = Field(default_factory=list)
    has_next_page: bool = False
    end_cursor: str = ""


class ReplayTemplate(BaseModel):
    """A captured GraphQL request body plus the session cookie header."""
    post_data: str
    cookies: str
