import asyncio
import logging

import httpx
import pytest
from wanted_gallery.pipeline import (
    FirstPageUnavailable,
    collect_gallery,
    fetch_all_pages,
    fetch_page_batch,
    fetch_remaining_pages,
)

def person(page: int, i: int):
    return {
        "title": f"Person {page}-{i}",
        "path": f"/wanted/{page}-{i}",
        "images": [{"original": f"https://img.test/{page}-{i}.jpg", "caption": None}],
    }

class FakeAPI:
    """Serves `total` records in pages; chosen pages rate limited or failing."""
    def __init__(self, total, page_size=50, rate_limited=(), fatal=None, delay=None, short_by=0):
        self.total = total
        self.page_size = page_size
        self.rate_limited = set(rate_limited)
        self.fatal = fatal or {}
        self.delay = delay or (lambda page: 0)
        self.short_by = short_by
        self.calls = []
        self.filters = []
        self.in_flight = 0
        self.max_in_flight = 0

    def items_for(self, page):
        n = max(0, min(self.page_size, self.total - (page - 1) * self.page_size))
        if page == 1:
            n -= self.short_by
        return [person(page, i) for i in range(n)]

    async def get_wanted_page(self, page, page_size, poster_classification=None):
        self.calls.append(page)
        self.filters.append(poster_classification)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay(page))
        finally:
            self.in_flight -= 1
        if page in self.fatal:
            raise self.fatal[page]
        if page in self.rate_limited:
            return None
        return {"total": self.total, "page": page, "items": self.items_for(page)}

def server_error(status=500):
    request = httpx.Request("GET", "https://api.fbi.gov/@wanted")
    return httpx.HTTPStatusError(f"HTTP {status}", request=request, response=httpx.Response(status, request=request))

@pytest.mark.asyncio
async def test_total_determines_page_count():
    api = FakeAPI(total=120)

    result = await fetch_all_pages(api, page_size=50)

    assert api.calls == [1, 2, 3]
    assert result.total == 120
    assert [p["page"] for p in result.pages] == [1, 2, 3]
    assert result.failed_pages == ()

@pytest.mark.asyncio
async def test_rate_limited_page_is_absorbed(caplog):
    api = FakeAPI(total=120, rate_limited={3})

    with caplog.at_level(logging.WARNING, logger="wanted_gallery.pipeline"):
        gallery = await collect_gallery(api, page_size=50)

    assert len(gallery.records) == 100
    assert gallery.failed_pages == (3,)
    assert gallery.partial
    assert gallery.records[0]["name"] == "Person 1-0"
    assert gallery.records[-1]["name"] == "Person 2-49"
    messages = " ".join(r.getMessage() for r in caplog.records)
    assert "Failed to fetch 1 page(s) after retries: 3" in messages
    assert "Expected 120 items but only received 100 (missing 20 items from 1 failed page(s))" in messages

@pytest.mark.asyncio
async def test_first_page_rate_limited_fails_everything():
    api = FakeAPI(total=120, rate_limited={1})

    with pytest.raises(FirstPageUnavailable):
        await collect_gallery(api, page_size=50)
    assert api.calls == [1]

@pytest.mark.asyncio
async def test_first_page_server_error_fails_everything():
    api = FakeAPI(total=120, fatal={1: server_error(500)})

    with pytest.raises(httpx.HTTPStatusError):
        await collect_gallery(api, page_size=50)
    assert api.calls == [1]

@pytest.mark.asyncio
async def test_fatal_page_aborts_after_its_batch_settles():
    api = FakeAPI(total=550, fatal={3: server_error(503)})

    with pytest.raises(httpx.HTTPStatusError):
        await fetch_all_pages(api, page_size=50)

    # the rest of the first batch still ran, the second batch never started
    assert sorted(api.calls) == [1, 2, 3, 4, 5, 6]

@pytest.mark.asyncio
async def test_first_fatal_error_in_page_order_wins():
    api = FakeAPI(total=300, fatal={4: RuntimeError("page 4"), 2: RuntimeError("page 2")},
                  delay=lambda page: 0.02 if page == 2 else 0)

    with pytest.raises(RuntimeError, match="page 2"):
        await fetch_page_batch(api, [2, 3, 4], page_size=50)

@pytest.mark.asyncio
async def test_batches_bound_in_flight_requests():
    # pages 2-11 in two batches of five
    api = FakeAPI(total=550, delay=lambda page: 0.01)

    outcomes = await fetch_remaining_pages(api, total_pages=11, page_size=50, batch_size=5)

    assert api.max_in_flight == 5
    assert sorted(api.calls[:5]) == [2, 3, 4, 5, 6]
    assert sorted(api.calls[5:]) == [7, 8, 9, 10, 11]
    assert [o.page for o in outcomes] == list(range(2, 12))

@pytest.mark.asyncio
async def test_records_keep_page_order_regardless_of_completion():
    # later pages finish first
    api = FakeAPI(total=250, delay=lambda page: 0.05 / page)

    gallery = await collect_gallery(api, page_size=50)

    pages = [int(r["name"].split()[1].split("-")[0]) for r in gallery.records]
    assert pages == sorted(pages)
    assert len(gallery.records) == 250

@pytest.mark.asyncio
async def test_filter_is_passed_to_every_page():
    api = FakeAPI(total=120)
    await fetch_all_pages(api, page_size=50, poster_classification="ten")
    assert api.filters == ["ten", "ten", "ten"]

@pytest.mark.asyncio
async def test_empty_listing():
    api = FakeAPI(total=0)

    gallery = await collect_gallery(api, page_size=50)

    assert api.calls == [1]
    assert gallery.records == ()
    assert not gallery.partial

@pytest.mark.asyncio
async def test_shortfall_without_failed_pages_is_informational(caplog):
    api = FakeAPI(total=3, short_by=1)

    with caplog.at_level(logging.WARNING, logger="wanted_gallery.pipeline"):
        gallery = await collect_gallery(api, page_size=50)

    assert len(gallery.records) == 2
    assert gallery.failed_pages == ()
    assert gallery.partial
    assert "Expected 3 items but only received 2 (missing 1 items)" in caplog.text
