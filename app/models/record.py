from datetime import datetime
from typing import Dict, List, Literal

from pydantic import BaseModel

HeadingLevel = Literal["h1", "h2", "h3", "h4", "h5", "h6"]


class ImageItem(BaseModel):
    src: str
    alt: str = ""


class LinkItem(BaseModel):
    href: str
    text: str


class HeadingItem(BaseModel):
    level: HeadingLevel
    text: str


class ContentRecord(BaseModel):
    """Normalized, structured content extracted from one fetched page."""

    title: str
    description: str
    domain: str
    source_url: str  # the URL exactly as requested (also the cache key)
    meta_tags: Dict[str, str]
    images: List[ImageItem]
    links: List[LinkItem]
    headings: List[HeadingItem]
    paragraphs: List[str]
    body_text_preview: str
    fetched_at: datetime
    http_status: int
    content_type: str
