"""Markdown document reports for cached scrape results."""

import io
import json
import re
import unicodedata
import zipfile
from typing import List, Sequence
from urllib.parse import urlparse

from app.models.record import ContentRecord
from app.services.extractor import MAX_BODY_TEXT

# Only the first few meta tags are worth showing in a human-readable report
MAX_REPORT_META_TAGS = 12


def generate_slug(url: str, title: str = "") -> str:
    """Generate a file-name slug from the URL path, falling back to title or host."""
    parsed = urlparse(url)
    path = parsed.path.strip("/")

    # Remove file extension from the last path segment
    path = re.sub(r"\.[^/]+$", "", path)

    if path:
        slug_base = path.split("/")[-1] or path.replace("/", "-")
    elif title:
        slug_base = title
    else:
        slug_base = parsed.netloc

    slug = unicodedata.normalize("NFKD", slug_base)
    slug = slug.encode("ascii", "ignore").decode("ascii")
    slug = re.sub(r"[^a-z0-9]+", "-", slug.lower()).strip("-")

    return slug or "page"


def _escape_yaml(value: str) -> str:
    """Escape characters that would break inline double-quoted YAML strings."""
    return value.replace("\\", "\\\\").replace('"', '\\"')


def _escape_md(value: str) -> str:
    """Keep link text from closing the surrounding Markdown bracket."""
    return value.replace("[", "\\[").replace("]", "\\]")


def make_frontmatter(record: ContentRecord) -> str:
    """Return a YAML frontmatter block describing *record*."""
    lines = [
        "---",
        f'title: "{_escape_yaml(record.title)}"',
        f'description: "{_escape_yaml(record.description)}"',
        f'url: "{_escape_yaml(record.source_url)}"',
        f'domain: "{record.domain}"',
        f'fetched_at: "{record.fetched_at.isoformat()}"',
        f"http_status: {record.http_status}",
        f'content_type: "{_escape_yaml(record.content_type)}"',
        "---",
    ]
    return "\n".join(lines)


def _section(title: str, items: List[str], empty: str, separator: str = "\n") -> str:
    body = separator.join(items) if items else f"_{empty}_"
    return f"## {title}\n\n{body}"


def render_record(record: ContentRecord, frontmatter: bool = True) -> str:
    """Render one record as Markdown, optionally preceded by YAML frontmatter."""
    meta_items = [
        f"- **{key}**: {value}" for key, value in record.meta_tags.items() if value
    ][:MAX_REPORT_META_TAGS]
    image_items = [f"- ![{_escape_md(img.alt)}]({img.src})" for img in record.images]
    heading_items = [f"- `{h.level}` {h.text}" for h in record.headings]
    link_items = [f"- [{_escape_md(link.text)}]({link.href})" for link in record.links]
    paragraph_items = [f"> {p}" for p in record.paragraphs]

    preview = record.body_text_preview
    if len(preview) >= MAX_BODY_TEXT:
        preview += "..."

    parts = [make_frontmatter(record)] if frontmatter else []
    parts += [
        f"# {record.title}",
        f"<{record.source_url}> ({record.domain}, HTTP {record.http_status})",
        record.description,
    ]
    if meta_items:
        parts.append(_section("Meta Tags", meta_items, ""))
    parts += [
        _section(f"Images ({len(record.images)})", image_items, "No images found on this page"),
        _section(f"Headings ({len(record.headings)})", heading_items, "No headings found on this page"),
        _section(f"Links ({len(record.links)})", link_items, "No links found on this page"),
        _section(
            f"Content Paragraphs ({len(record.paragraphs)})",
            paragraph_items,
            "No paragraphs found on this page",
            separator="\n\n",
        ),
        _section("Page Text Preview", [preview] if preview else [], "No text found on this page"),
    ]
    return "\n\n".join(parts) + "\n"


def render_report(records: Sequence[ContentRecord]) -> str:
    """Render all *records* into a single Markdown report, separated by rules."""
    header = f"# Scrape Report\n\n{len(records)} page(s)."
    bodies = [render_record(record, frontmatter=False).strip() for record in records]
    return "\n\n---\n\n".join([header, *bodies]) + "\n"


def _unique_slugs(records: Sequence[ContentRecord]) -> List[str]:
    taken: set = set()
    slugs: List[str] = []
    for record in records:
        base = generate_slug(record.source_url, record.title)
        slug, n = base, 1
        while slug in taken:
            n += 1
            slug = f"{base}-{n}"
        taken.add(slug)
        slugs.append(slug)
    return slugs


def build_archive(records: Sequence[ContentRecord]) -> bytes:
    """Return a ZIP archive with ``index.json`` and one Markdown file per record.

    The archive holds:
    - ``index.json`` – metadata index listing all reports.
    - ``reports/<slug>.md`` – one Markdown report per record.
    """
    entries = list(zip(_unique_slugs(records), records))

    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
        index = {
            "reports_found": len(entries),
            "reports": [
                {
                    "slug": slug,
                    "url": record.source_url,
                    "title": record.title,
                    "fetched_at": record.fetched_at.isoformat(),
                }
                for slug, record in entries
            ],
        }
        zf.writestr("index.json", json.dumps(index, ensure_ascii=False, indent=2))

        for slug, record in entries:
            zf.writestr(f"reports/{slug}.md", render_record(record))

    return buffer.getvalue()
