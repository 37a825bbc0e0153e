from pydantic import BaseModel, Field


class ScrapeRequest(BaseModel):
    url: str = Field(
        description=(
            "Absolute http(s) URL of the page to scrape.  Used verbatim as the "
            "cache key, so ``http://x`` and ``http://x/`` are cached separately."
        ),
        examples=["https://example.com/article"],
    )
