from __future__ import annotations

import logging
import os
import re
from typing import Any, Dict, List, Sequence

import httpx
from pydantic import BaseModel

from sitegen.models import FileRecord

log = logging.getLogger(__name__)

UNSPLASH_ACCESS_KEY = os.getenv("UNSPLASH_ACCESS_KEY", "").strip()
UNSPLASH_API_BASE = os.getenv("UNSPLASH_API_BASE", "https://api.unsplash.com").strip().rstrip("/")
try:
    UNSPLASH_TIMEOUT_SECS = float(os.getenv("UNSPLASH_TIMEOUT_SECS", "10"))
except Exception:
    UNSPLASH_TIMEOUT_SECS = 10.0
try:
    IMAGE_BATCH_SIZE = max(1, int(os.getenv("IMAGE_BATCH_SIZE", "6")))
except Exception:
    IMAGE_BATCH_SIZE = 6

MAX_SEARCH_TERMS = 3
DEFAULT_TERMS = ["dashboard", "website", "interface", "design", "technology", "business"]

# (trigger words, search terms); every matching bucket contributes, in order
_TERM_BUCKETS = [
    (("shop", "store", "ecommerce", "buy", "sell"), ["ecommerce", "shopping", "retail"]),
    (("blog", "article", "news", "content"), ["writing", "journalism", "content"]),
    (("portfolio", "gallery", "photo", "image"), ["photography", "portfolio", "creative"]),
    (("dashboard", "admin", "management", "analytics"), ["dashboard", "analytics", "business"]),
    (("game", "play", "fun", "entertainment"), ["gaming", "entertainment", "fun"]),
]

_WORD_RE = re.compile(r"\b\w+\b")
_PLACEHOLDER_RE = re.compile(
    r"https://via\.placeholder\.com/\d+x?\d*[^\"')\s]*"
    r"|https://images\.unsplash\.com/[^\"')\s]*"
    r"|placeholder\.(?:jpg|jpeg|png|gif)"
    r"|image\d*\.(?:jpg|jpeg|png|gif)"
)
_BACKGROUND_DECL_RE = re.compile(r"background:\s*[^;\"]+;")
_IMG_SRC_RE = re.compile(r"(<img\b[^>]*?\bsrc=)([\"'])[^\"']*\2", re.IGNORECASE)
_BODY_RE = re.compile(r"<body\b", re.IGNORECASE)


class ImageSearchError(RuntimeError):
    pass


class Photo(BaseModel):
    id: str
    full_url: str
    thumbnail_url: str = ""
    width: int = 0
    height: int = 0
    description: str = ""


def enabled() -> bool:
    return bool(UNSPLASH_ACCESS_KEY)


def status() -> Dict[str, Any]:
    return {"provider": "unsplash", "enabled": enabled(), "batch_size": IMAGE_BATCH_SIZE}


def search_terms(prompt: str) -> List[str]:
    words = set(_WORD_RE.findall((prompt or "").lower()))
    terms: List[str] = []
    for triggers, bucket in _TERM_BUCKETS:
        if words.intersection(triggers):
            terms.extend(bucket)
    if not terms:
        terms = list(DEFAULT_TERMS)
    return terms[:MAX_SEARCH_TERMS]


def _make_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=UNSPLASH_TIMEOUT_SECS)


def _to_photo(raw: Dict[str, Any]) -> Photo:
    urls = raw.get("urls") or {}
    return Photo(
        id=str(raw.get("id", "")),
        full_url=urls.get("regular") or urls.get("full") or "",
        thumbnail_url=urls.get("thumb") or urls.get("small") or "",
        width=int(raw.get("width") or 0),
        height=int(raw.get("height") or 0),
        description=raw.get("description") or raw.get("alt_description") or "",
    )


async def search_photos(query: str, count: int = IMAGE_BATCH_SIZE, orientation: str = "landscape") -> List[Photo]:
    if not UNSPLASH_ACCESS_KEY:
        raise ImageSearchError("UNSPLASH_ACCESS_KEY is not configured")
    params = {"query": query, "per_page": count, "orientation": orientation}
    headers = {"Authorization": f"Client-ID {UNSPLASH_ACCESS_KEY}"}
    try:
        async with _make_client() as client:
            resp = await client.get(f"{UNSPLASH_API_BASE}/search/photos", params=params, headers=headers)
    except httpx.HTTPError as exc:
        raise ImageSearchError(f"image search request error: {exc!r}") from exc
    if resp.status_code != 200:
        raise ImageSearchError(f"image search HTTP {resp.status_code}: {(resp.text or '')[:200]}")
    try:
        results = resp.json().get("results") or []
        photos = [_to_photo(r) for r in results if isinstance(r, dict)]
    except Exception as exc:
        raise ImageSearchError(f"image search returned an unexpected body: {exc!r}") from exc
    return [p for p in photos if p.full_url]


def inject_photos(html: str, photos: Sequence[Photo]) -> str:
    """Swap placeholder image references for photo URLs, rotating through `photos`."""
    if not photos:
        return html
    counter = [0]

    def _next_url(_match: "re.Match[str]") -> str:
        url = photos[counter[0] % len(photos)].full_url
        counter[0] += 1
        return url

    out = _PLACEHOLDER_RE.sub(_next_url, html)
    if out != html:
        return out

    # No placeholders: give the page a background and its images real sources
    out = _BACKGROUND_DECL_RE.sub(
        lambda _m: f"background: url('{photos[0].full_url}') center/cover no-repeat;",
        out,
        count=1,
    )
    counter[0] = 0

    def _img_src(m: "re.Match[str]") -> str:
        url = photos[counter[0] % len(photos)].full_url
        counter[0] += 1
        return f"{m.group(1)}{m.group(2)}{url}{m.group(2)}"

    return _IMG_SRC_RE.sub(_img_src, out)


def _is_html_page(f: FileRecord) -> bool:
    return f.path.lower().endswith((".html", ".htm")) and bool(_BODY_RE.search(f.content))


async def decorate(files: Sequence[FileRecord], prompt: str) -> List[FileRecord]:
    """Best-effort photo injection; returns the input unchanged when disabled or on any failure."""
    original = list(files)
    if not enabled():
        return original
    if not any(_is_html_page(f) for f in original):
        return original
    query = search_terms(prompt)[0]
    try:
        photos = await search_photos(query, IMAGE_BATCH_SIZE)
    except Exception as exc:
        log.warning("images: decoration skipped, search for %r failed: %s", query, exc)
        return original
    if not photos:
        log.info("images: no photos found for %r", query)
        return original
    out: List[FileRecord] = []
    try:
        for f in original:
            if _is_html_page(f):
                out.append(f.model_copy(update={"content": inject_photos(f.content, photos)}))
            else:
                out.append(f)
    except Exception as exc:
        log.warning("images: decoration skipped, rewrite failed: %s", exc)
        return original
    log.info("images: decorated with %d photo(s) for %r", len(photos), query)
    return out
