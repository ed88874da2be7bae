"""Listing-page parsing."""

from bulkdata_crawler.extraction.listing import ListingEntry, parse_listing

__all__ = ["ListingEntry", "parse_listing"]
