"""
Models for responses from the FBI wanted API and the gallery built from them.

Includes:
- WantedImage: one image entry (size variants + caption)
- WantedPerson: one listing entry from /@wanted (every field optional)
- WantedResultSet: paginated response
- WantedPersonSummary: display projection (image, name, detail link)
- PageOutcome / PagesResult: per-page fetch outcome and the folded result
- Gallery: final record list plus what was missing from it

"""

from __future__ import annotations
from typing import List, NamedTuple, Optional, Tuple, TypedDict

# GET /@wanted (items[].images[])
class WantedImage(TypedDict, total=False):
    original: Optional[str]
    large: Optional[str]
    thumb: Optional[str]
    caption: Optional[str]

# GET /@wanted (items)
class WantedPerson(TypedDict, total=False):
    uid: Optional[str]
    pathId: Optional[str]
    path: Optional[str]
    title: Optional[str]
    description: Optional[str]
    images: Optional[List[WantedImage]]
    poster_classification: Optional[str]
    person_classification: Optional[str]
    status: Optional[str]
    reward_text: Optional[str]
    field_offices: Optional[List[str]]
    subjects: Optional[List[str]]
    modified: Optional[str]
    publication: Optional[str]

# GET /@wanted (page)
class WantedResultSet(TypedDict):
    total: int
    page: int
    items: List[WantedPerson]

# gallery item
class WantedPersonSummary(TypedDict):
    image: WantedImage
    name: str
    detail_url: str

class PageOutcome(NamedTuple):
    page: int
    result: Optional[WantedResultSet]   # None: rate limited past the retry budget

class PagesResult(NamedTuple):
    total: int
    pages: Tuple[WantedResultSet, ...]
    failed_pages: Tuple[int, ...] = ()

class Gallery(NamedTuple):
    records: Tuple[WantedPersonSummary, ...]
    total: int
    failed_pages: Tuple[int, ...] = ()
    retrieved: int = 0

    @property
    def partial(self) -> bool:
        return bool(self.failed_pages) or self.retrieved < self.total
