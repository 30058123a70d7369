from typing import List, Optional

from pydantic import BaseModel


class WantedImageOut(BaseModel):
    original: str
    large: Optional[str] = None
    thumb: Optional[str] = None
    caption: Optional[str] = None


class WantedPersonOut(BaseModel):
    image: WantedImageOut
    name: str
    detail_url: str


class WantedGalleryResponse(BaseModel):
    items: List[WantedPersonOut]
    total: int
    failed_pages: List[int]
    partial: bool
    """True when some pages could not be fetched or upstream returned fewer
    records than it reported. The items are still usable."""
