from __future__ import annotations
import asyncio, logging
from typing import Iterable, List, Optional, Sequence, Tuple
from .api import WantedAPI
from .models import Gallery, PageOutcome, PagesResult, WantedPerson, WantedPersonSummary
from .utils import UNKNOWN_NAME, build_detail_url, chunked, page_count

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 5

class FirstPageUnavailable(RuntimeError):
    """Page 1 could not be retrieved, so the total (and every other page) is unknown."""

async def fetch_page_batch(
    api: WantedAPI, pages: Sequence[int], page_size: int, poster_classification: Optional[str] = None
) -> Tuple[PageOutcome, ...]:
    """
    Fetch one batch of pages concurrently and wait for all of them to settle.
    Outcomes come back in the order the pages were given. If any page failed
    fatally, the first such error (in page order) is re-raised once the batch
    has settled.
    """
    async def fetch_one(page: int) -> PageOutcome:
        return PageOutcome(page, await api.get_wanted_page(page, page_size, poster_classification))

    settled = await asyncio.gather(*(fetch_one(p) for p in pages), return_exceptions=True)
    for page, res in zip(pages, settled):
        if isinstance(res, BaseException):
            logger.error("Page %d failed fatally: %s", page, res, extra={"page": page})
            raise res
    return tuple(settled)

async def fetch_remaining_pages(
    api: WantedAPI,
    total_pages: int,
    page_size: int,
    poster_classification: Optional[str] = None,
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> Tuple[PageOutcome, ...]:
    """
    Fetch pages 2..total_pages in fixed-size batches.
    A batch only starts once the previous one has fully settled, so at most
    `batch_size` requests are ever in flight.
    """
    batch_size = max(1, batch_size)
    batches = list(chunked(range(2, total_pages + 1), batch_size))
    outcomes: Tuple[PageOutcome, ...] = ()
    for i, batch in enumerate(batches, 1):
        outcomes += await fetch_page_batch(api, batch, page_size, poster_classification)
        logger.debug("Fetched batch %d/%d (pages %d-%d)", i, len(batches), batch[0], batch[-1])
    return outcomes

async def fetch_all_pages(
    api: WantedAPI,
    page_size: int,
    poster_classification: Optional[str] = None,
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> PagesResult:
    """
    Walk through paginated /@wanted.
    Starts with page 1 to learn the total, then fetches the rest in batches.
    Pages that stay rate limited are reported in `failed_pages`; anything
    else going wrong aborts the whole walk.
    """
    first = await api.get_wanted_page(1, page_size, poster_classification)
    if first is None:
        raise FirstPageUnavailable("FBI API: failed to fetch first page after retries (429 Too Many Requests)")

    total = first["total"]
    total_pages = page_count(total, page_size)
    logger.info("Upstream reports %d record(s) across %d page(s)", total, total_pages)

    outcomes = await fetch_remaining_pages(api, total_pages, page_size, poster_classification, batch_size)
    pages = (first,) + tuple(o.result for o in outcomes if o.result is not None)
    failed = tuple(o.page for o in outcomes if o.result is None)

    if failed:
        logger.warning("Failed to fetch %d page(s) after retries: %s. Continuing with available data.",
                       len(failed), ", ".join(map(str, failed)))
    return PagesResult(total=total, pages=pages, failed_pages=failed)

def transform_record(person: WantedPerson) -> Optional[WantedPersonSummary]:
    """
    Project one listing entry onto what the gallery shows.
    Returns None when there is no usable first image or no detail link,
    including entries that are not objects at all.
    """
    if not isinstance(person, dict):
        return None

    images = person.get("images")
    if not images or not isinstance(images, list):
        return None

    image = images[0]
    if not isinstance(image, dict) or not image.get("original"):
        return None

    detail_url = build_detail_url(person.get("path"), person.get("pathId"))
    if not detail_url:
        return None

    # only a missing title gets the placeholder, an empty one is kept
    title = person.get("title")
    return {
        "image": dict(image),
        "name": UNKNOWN_NAME if title is None else str(title),
        "detail_url": detail_url,
    }

def transform_records(people: Iterable[WantedPerson]) -> List[WantedPersonSummary]:
    """Transform every entry, dropping the ones that can't be displayed."""
    transformed: List[WantedPersonSummary] = []
    skipped = 0
    for person in people:
        rec = transform_record(person)
        if rec is None:
            skipped += 1
            continue
        transformed.append(rec)

    if skipped:
        logger.info("Skipped %d record(s) without an image or detail link.", skipped)
    return transformed

async def collect_gallery(
    api: WantedAPI,
    page_size: int,
    poster_classification: Optional[str] = None,
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> Gallery:
    """
    Orchestrate one aggregation:
        1. Page 1 + total
        2. Remaining pages in batches
        3. Flatten items (page 1 first, then ascending page order)
        4. Transform
    """
    result = await fetch_all_pages(api, page_size, poster_classification, batch_size)
    people = [person for page in result.pages for person in page["items"]]

    # sanity check, informational only
    if len(people) < result.total:
        missing = result.total - len(people)
        logger.warning("Expected %d items but only received %d (missing %d items%s)",
                       result.total, len(people), missing,
                       f" from {len(result.failed_pages)} failed page(s)" if result.failed_pages else "")

    records = transform_records(people)
    return Gallery(records=tuple(records), total=result.total, failed_pages=result.failed_pages, retrieved=len(people))
