"""
Data model for a gallery crawl.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

from .errors import WriteFailure


@dataclass(frozen=True)
class ListingEntry:
    """One entry discovered on a listing page."""
    detail_url: str
    title: Optional[str] = None


@dataclass(frozen=True)
class ExtractedDocument:
    """Text content pulled from a single detail page."""
    title: Optional[str]
    body_text: str


@dataclass(frozen=True)
class OutputRecord:
    """A file to be written once into the output directory."""
    file_name: str
    content: bytes

    @classmethod
    def from_document(cls, sanitized_title: str, document: ExtractedDocument) -> "OutputRecord":
        file_name = f"{sanitized_title}.txt"
        try:
            content = document.body_text.encode("utf-8")
        except UnicodeEncodeError as e:
            raise WriteFailure(f"Cannot encode {file_name} as UTF-8: {e}") from e
        return cls(file_name=file_name, content=content)


@dataclass
class CrawlState:
    """Loop state owned by the orchestrator for the duration of one run."""
    current_page_index: int = 1
    current_listing_url: Optional[str] = None
    visited_listing_urls: Set[str] = field(default_factory=set)

    def visit(self, url: str) -> None:
        self.current_listing_url = url
        self.visited_listing_urls.add(url)

    def has_visited(self, url: str) -> bool:
        return url in self.visited_listing_urls


@dataclass
class CrawlResult:
    """Result of a crawl run."""
    saved_files: List[str] = field(default_factory=list)
    errors: List[Dict] = field(default_factory=list)
    stats: Dict = field(default_factory=dict)
    aborted: bool = False

    def to_dict(self) -> dict:
        return {
            'stats': self.stats,
            'aborted': self.aborted,
            'saved_files': self.saved_files,
            'errors': self.errors,
        }
