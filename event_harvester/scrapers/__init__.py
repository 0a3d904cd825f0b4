"""Listing and detail scrapers for the two fetch tiers."""
