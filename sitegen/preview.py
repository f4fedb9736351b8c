from __future__ import annotations

from typing import Optional, Sequence

from sitegen.models import FileRecord

VIEWPORT_META = '<meta name="viewport" content="width=device-width, initial-scale=1.0">'


def _is_html(f: FileRecord) -> bool:
    return f.path.lower().endswith((".html", ".htm"))


def pick_page(files: Sequence[FileRecord], path: Optional[str] = None) -> Optional[FileRecord]:
    if path:
        for f in files:
            if f.path == path and _is_html(f):
                return f
        return None
    for f in files:
        if _is_html(f):
            return f
    return None


def assemble_preview(files: Sequence[FileRecord], path: Optional[str] = None) -> Optional[str]:
    """Single self-contained HTML document for an iframe srcdoc.

    Stylesheets are inlined before </head>, scripts before </body>. None when
    there is no HTML page to show.
    """
    page = pick_page(files, path)
    if page is None:
        return None
    html = page.content

    for f in files:
        if f.path.lower().endswith(".css"):
            tag = f"<style>{f.content}</style>"
            html = html.replace("</head>", f"{tag}\n</head>", 1) if "</head>" in html else tag + html

    for f in files:
        if f.path.lower().endswith((".js", ".mjs")):
            tag = f"<script>{f.content}</script>"
            html = html.replace("</body>", f"{tag}\n</body>", 1) if "</body>" in html else html + tag

    if "viewport" not in html:
        if "<head>" in html:
            html = html.replace("<head>", f"<head>\n{VIEWPORT_META}", 1)
        else:
            html = f"<!DOCTYPE html><html><head>{VIEWPORT_META}</head><body>{html}</body></html>"
    return html
