from __future__ import annotations
import argparse, os
from dataclasses import dataclass
from typing import Optional, Sequence

from .cache import DEFAULT_MAX_ENTRIES, ONE_WEEK
from .utils import FBI_API_BASE_URL, MAX_PAGE_SIZE, clamp_page_size

@dataclass(frozen=True)
class Settings:
    base_url: str = FBI_API_BASE_URL
    page_size: int = MAX_PAGE_SIZE
    batch_size: int = 5
    retries: int = 5
    initial_delay: float = 1.0
    timeout: float = 30.0
    cache_ttl: float = ONE_WEEK
    cache_max_entries: int = DEFAULT_MAX_ENTRIES

    @classmethod
    def from_env(cls) -> "Settings":
        return cls.from_args(build_parser().parse_args([]))

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> "Settings":
        return cls(
            base_url=args.base_url,
            page_size=clamp_page_size(args.page_size),
            batch_size=max(1, args.batch_size),
            retries=max(0, args.retries),
            initial_delay=args.initial_delay,
            timeout=args.timeout,
            cache_ttl=args.cache_ttl,
            cache_max_entries=max(1, args.cache_max_entries),
        )

def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Fetch the FBI wanted list as a display-ready gallery")
    p.add_argument("--base-url", default=os.getenv("FBI_API_BASE_URL", FBI_API_BASE_URL))
    p.add_argument("--page-size", type=int, default=int(os.getenv("PAGE_SIZE", str(MAX_PAGE_SIZE))))
    p.add_argument("--batch-size", type=int, default=int(os.getenv("BATCH_SIZE", "5")))
    p.add_argument("--retries", type=int, default=int(os.getenv("MAX_RETRIES", "5")))
    p.add_argument("--initial-delay", type=float, default=float(os.getenv("INITIAL_DELAY", "1")))
    p.add_argument("--timeout", type=float, default=float(os.getenv("REQUEST_TIMEOUT", "30")))
    p.add_argument("--cache-ttl", type=float, default=float(os.getenv("CACHE_TTL", str(ONE_WEEK))))
    p.add_argument("--cache-max-entries", type=int, default=int(os.getenv("CACHE_MAX_ENTRIES", str(DEFAULT_MAX_ENTRIES))))
    p.add_argument("--poster-classification", default=os.getenv("POSTER_CLASSIFICATION") or None)
    p.add_argument("--output", default="-", help="file to write the JSON gallery to ('-' for stdout)")
    p.add_argument("--log-level", default=os.getenv("LOG_LEVEL", "INFO"))
    return p

def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)
