"""
Bulk-data listing extraction via BeautifulSoup.

A listing page is an HTML table with ``id="bulkdata"``; each cell that
names an entry holds an ``<a>`` whose ``href`` points at a sub-listing
(no extension) or a downloadable file.
"""

from dataclasses import dataclass

from bs4 import BeautifulSoup

from bulkdata_crawler.config import LISTING_CELL_SELECTOR, PARENT_DIRECTORY_LABEL
from bulkdata_crawler.utils.log import log
from bulkdata_crawler.utils.url import resolve_link, url_extension


@dataclass(frozen=True)
class ListingEntry:
    """One resolved row of a listing page."""

    url: str
    ext: str

    @property
    def is_directory(self) -> bool:
        return not self.ext


def parse_listing(html: str | bytes, base: str) -> list[ListingEntry]:
    """
    Return the entries of a bulk-data listing page, resolved against
    *base*.  The "Parent Directory" row and cells without a usable direct
    ``<a href>`` child are skipped.
    """
    soup = BeautifulSoup(html, "lxml")
    entries: list[ListingEntry] = []
    for cell in soup.select(LISTING_CELL_SELECTOR):
        if cell.get_text(strip=True) == PARENT_DIRECTORY_LABEL:
            continue
        anchor = cell.find("a", recursive=False)
        if anchor is None:
            continue
        href = anchor.get("href")
        if not href:
            continue
        url = resolve_link(href, base)
        if url is None:
            log.debug("  Skipping malformed link %r", href)
            continue
        entries.append(ListingEntry(url, url_extension(url)))
    return entries
