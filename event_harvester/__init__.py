"""Harvest public Facebook events from event IDs, groups, pages and search queries."""
from .harvester import Harvester, harvest, save_events
from .models import EventRecord, HarvestOptions, SeedSet, SourceSpec, SourceType

__all__ = [
    "EventRecord",
    "HarvestOptions",
    "Harvester",
    "SeedSet",
    "SourceSpec",
    "SourceType",
    "harvest",
    "save_events",
]
