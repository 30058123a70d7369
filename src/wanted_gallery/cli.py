"""
Command-line entrypoint for the wanted gallery.

- Parses CLI args and config
- Initializes HttpClient, WantedAPI and WantedGallery
- Runs one aggregation:
    1. Fetch page 1 to learn the total
    2. Fetch the remaining pages in batches of 5
    3. Transform records
    4. Write the gallery as JSON

Total failure exits with 1, interrupts with 130. A partial gallery is still
written; the missing pages are reported on stderr.
"""
from __future__ import annotations
import asyncio, json, logging, sys

import httpx

from http_client import HttpClient, RequestTimeout

from .api import UpstreamParseError, WantedAPI
from .cache import TTLCache
from .config import Settings, parse_args
from .gallery import WantedGallery
from .models import Gallery

async def run(args) -> Gallery:
    settings = Settings.from_args(args)
    async with HttpClient(
        base_url=settings.base_url,
        timeout=settings.timeout,
        retries=settings.retries,
        initial_delay=settings.initial_delay,
    ) as http:
        gallery = WantedGallery(
            WantedAPI(http),
            cache=TTLCache(0),
            page_size=settings.page_size,
            batch_size=settings.batch_size,
        )
        print(f"""
            ====== Wanted gallery ======
            Base URL       : {settings.base_url}
            Page size      : {settings.page_size}
            Batch size     : {settings.batch_size}
            Retries        : {settings.retries} (initial delay {settings.initial_delay}s)
            Timeout (s)    : {settings.timeout}
            Filter         : {args.poster_classification or '-'}
            ============================
        """, file=sys.stderr)
        return await gallery.get_gallery(args.poster_classification)

def write_gallery(gallery: Gallery, output: str) -> None:
    payload = json.dumps(gallery.records, indent=2)
    if output == "-":
        print(payload)
        return
    with open(output, "w", encoding="utf-8") as fh:
        fh.write(payload + "\n")

def main() -> None:
    args = parse_args()
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    try:
        gallery = asyncio.run(run(args))
    except (RuntimeError, RequestTimeout, UpstreamParseError, httpx.HTTPError) as e:
        print(f"Failed to fetch the wanted list: {e}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        print("Aborted.", file=sys.stderr)
        sys.exit(130)

    write_gallery(gallery, args.output)
    if gallery.partial:
        print(f"Partial result: {gallery.retrieved}/{gallery.total} record(s) retrieved, "
              f"failed pages: {', '.join(map(str, gallery.failed_pages)) or 'none'}", file=sys.stderr)
    print(f"Wrote {len(gallery.records)} record(s).", file=sys.stderr)

if __name__ == "__main__":
    main()
