from __future__ import annotations

import logging
import re
from typing import List, Optional, Tuple

from sitegen import catalog
from sitegen.models import DescriptionContext, FileRecord
from sitegen.render import render_description

log = logging.getLogger(__name__)

MIN_DESCRIPTION_LENGTH = 50

FALLBACK_PAGE_NAMES = ["index.html", "about.html", "contact.html"]

_EXTENSION_LANGUAGES = {
    "html": "html",
    "htm": "html",
    "css": "css",
    "js": "javascript",
    "mjs": "javascript",
    "ts": "typescript",
    "json": "json",
    "md": "markdown",
    "svg": "svg",
    "xml": "xml",
    "txt": "text",
    "py": "python",
}

# Marker line: the literal keyword is case-sensitive; markdown decoration around it is tolerated
_MARKER = r"^[ \t]*(?:(?:[-*+]|\d+[.)])[ \t]+)?(?:#{1,6}[ \t]*)?(?:\*\*|__)?FILE:"
_FILE_BLOCK_RE = re.compile(
    _MARKER
    + r"[ \t]*(?P<path>[^\n\r]*?)[ \t]*(?:\*\*|__)?[ \t]*\r?\n"
    r"(?:[ \t]*\r?\n)*"
    r"[ \t]*```(?P<lang>[\w+#.-]*)[^\n\r]*(?:\r?\n|\Z)"
    r"(?P<body>.*?)"
    r"(?:^[ \t]*```[ \t]*$|(?=" + _MARKER + r")|\Z)",
    re.MULTILINE | re.DOTALL,
)
_BARE_HTML_BLOCK_RE = re.compile(
    r"^[ \t]*```html[ \t]*\r?\n(?P<body>.*?)(?:^[ \t]*```[ \t]*$|\Z)",
    re.MULTILINE | re.DOTALL | re.IGNORECASE,
)
_TRAILING_FENCE_RE = re.compile(r"(?:^|\n)[ \t]*`{1,3}[ \t]*\Z")

_FENCED_BLOCK_RE = re.compile(r"```.*?```", re.DOTALL)
_DANGLING_FENCE_RE = re.compile(r"```.*\Z", re.DOTALL)
_MARKER_LINE_RE = re.compile(_MARKER + r"[^\n]*", re.MULTILINE)
_CSS_RULE_RE = re.compile(r"[^{}\n]*\{[^{}]*\}")
_CSS_SELECTOR_LINE_RE = re.compile(
    r"^[ \t]*(?:[.#][\w-]+|:root|@media[^\n{]*|@keyframes[^\n{]*)"
    r"(?:(?:[ \t]*[,>+~][ \t]*|[ \t]+|(?=[.#:]))[.#:]?[\w-]+)*[ \t]*"
    r"(?:\{[ \t]*$|$(?=\n[ \t]*(?:\{|[a-z-]+[ \t]*:[^\n]*;)))",
    re.MULTILINE,
)
_CUSTOM_PROPERTY_RE = re.compile(r"^[ \t]*--[\w-]+[ \t]*:[^\n]*$", re.MULTILINE)
_CSS_DECLARATION_RE = re.compile(r"^[ \t]*[a-z-]+[ \t]*:[ \t]*[^;\n]+;[ \t]*$", re.MULTILINE)
_LONE_BRACE_RE = re.compile(r"^[ \t]*[{}][ \t]*$", re.MULTILINE)
_TRAILING_WS_RE = re.compile(r"[ \t]+$", re.MULTILINE)
_EXCESS_NEWLINES_RE = re.compile(r"\n[ \t]*(?:\n[ \t]*){2,}")
_GENERATED_FILES_RE = re.compile(
    r"(?:^|\n)[ \t]*(?:#{1,6}[ \t]*)?(?:\*\*)?Generated Files?\b.*\Z",
    re.IGNORECASE | re.DOTALL,
)
_FILE_BULLET_TAIL_RE = re.compile(
    r"(?:\n|^)[ \t]*[-*+][ \t]+(?:\*\*|`)?[\w./-]+\.(?:html?|css|js|json|md|txt|svg)\b[^\n]*\s*\Z",
    re.IGNORECASE,
)
_LOW_INFO_OPENER_RE = re.compile(r"^(?:Generated Files?|Here|The)\b", re.IGNORECASE)


def language_for_path(path: str, declared: Optional[str] = None) -> str:
    """Declared fence tag wins; otherwise infer from the extension, defaulting to html."""
    tag = (declared or "").strip().lower()
    if tag:
        return tag
    _, dot, ext = (path or "").rpartition(".")
    if dot:
        return _EXTENSION_LANGUAGES.get(ext.lower(), "html")
    return "html"


def _clean_path(raw: str) -> str:
    return (raw or "").strip().strip("`*_'\"").strip()


def _clean_content(raw: str) -> str:
    body = (raw or "").strip()
    prev = None
    while prev != body:
        prev = body
        body = _TRAILING_FENCE_RE.sub("", body).rstrip()
    return body


def _primary_blocks(text: str) -> Tuple[List[FileRecord], List[Tuple[int, int]]]:
    files: List[FileRecord] = []
    spans: List[Tuple[int, int]] = []
    for m in _FILE_BLOCK_RE.finditer(text):
        spans.append(m.span())
        path = _clean_path(m.group("path"))
        content = _clean_content(m.group("body"))
        if not path or not content:
            log.debug("parse: dropping empty file block path=%r size=%d", path, len(content))
            continue
        files.append(FileRecord(path=path, content=content, language=language_for_path(path, m.group("lang"))))
    return files, spans


def _fallback_name(idx: int) -> str:
    if idx < len(FALLBACK_PAGE_NAMES):
        return FALLBACK_PAGE_NAMES[idx]
    return f"page{idx + 1}.html"


def _bare_html_blocks(text: str) -> Tuple[List[FileRecord], List[Tuple[int, int]]]:
    files: List[FileRecord] = []
    spans: List[Tuple[int, int]] = []
    for m in _BARE_HTML_BLOCK_RE.finditer(text):
        spans.append(m.span())
        content = _clean_content(m.group("body"))
        if not content:
            continue
        files.append(FileRecord(path=_fallback_name(len(files)), content=content, language="html"))
    return files, spans


def _cut(text: str, spans: List[Tuple[int, int]]) -> str:
    out: List[str] = []
    pos = 0
    for start, end in spans:
        out.append(text[pos:start])
        pos = end
    out.append(text[pos:])
    return "".join(out)


def split_completion(text: str) -> Tuple[List[FileRecord], str]:
    """Return (files, remainder) where remainder is the text with every matched block removed.

    Bare ```html fences are only considered when no FILE: block produced a record.
    """
    t = text or ""
    files, spans = _primary_blocks(t)
    if not files:
        fb_files, fb_spans = _bare_html_blocks(t)
        if fb_files:
            log.info("parse: no FILE: markers; recovered %d bare html block(s)", len(fb_files))
            files = fb_files
            spans = spans + fb_spans
            spans.sort()
    return files, _cut(t, spans)


def extract_files(text: str) -> List[FileRecord]:
    return split_completion(text)[0]


def clean_description(text: str) -> str:
    """Strip code residue from model prose; repeated until stable so the result is a fixed point."""
    t = (text or "").replace("\r\n", "\n")
    for _ in range(8):
        prev = t
        t = _FENCED_BLOCK_RE.sub("", t)
        t = _DANGLING_FENCE_RE.sub("", t)
        t = _MARKER_LINE_RE.sub("", t)
        # Selector lines need their brace or declaration still in place
        t = _CSS_SELECTOR_LINE_RE.sub("", t)
        for _ in range(4):
            stripped = _CSS_RULE_RE.sub("", t)
            if stripped == t:
                break
            t = stripped
        t = _CUSTOM_PROPERTY_RE.sub("", t)
        t = _CSS_DECLARATION_RE.sub("", t)
        t = _LONE_BRACE_RE.sub("", t)
        t = _TRAILING_WS_RE.sub("", t)
        t = _EXCESS_NEWLINES_RE.sub("\n\n", t)
        t = _GENERATED_FILES_RE.sub("", t).rstrip()
        while True:
            trimmed = _FILE_BULLET_TAIL_RE.sub("", t).rstrip()
            if trimmed == t:
                break
            t = trimmed
        t = t.strip()
        if t == prev:
            break
    return t


def is_acceptable_description(text: str) -> bool:
    if len(text) < MIN_DESCRIPTION_LENGTH:
        return False
    if "```" in text or "{" in text or "}" in text:
        return False
    return not _LOW_INFO_OPENER_RE.match(text)


def default_context(file_count: int = 0) -> DescriptionContext:
    tpl = catalog.get_template(catalog.DEFAULT_TEMPLATE_ID)
    return DescriptionContext(
        template_name=tpl.name,
        category=tpl.category,
        features=list(tpl.features),
        pages=list(tpl.pages),
        file_count=file_count,
        single_page=True,
    )


def fallback_description(context: Optional[DescriptionContext] = None) -> str:
    return render_description(context or default_context())


def sanitize_description(text: str, context: Optional[DescriptionContext] = None) -> str:
    """Turn the non-file remainder of a completion into a short readable summary.

    Returns the cleaned prose when it passes the acceptance checks, else the
    synthesized summary for `context`.
    """
    cleaned = clean_description(text)
    if is_acceptable_description(cleaned):
        return cleaned
    log.debug("parse: description rejected (len=%d); using synthesized summary", len(cleaned))
    return fallback_description(context)
