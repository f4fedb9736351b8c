from __future__ import annotations

import os
from typing import Optional, Sequence

from jinja2 import Environment, FileSystemLoader, select_autoescape

from sitegen.models import DescriptionContext, FileRecord

TEMPLATE_DIR = os.path.join(os.path.dirname(__file__), "templates")

_env = Environment(
    loader=FileSystemLoader(TEMPLATE_DIR),
    autoescape=select_autoescape(["html", "xml"]),
    trim_blocks=True,
    lstrip_blocks=True,
    enable_async=False,
)


def render_description(ctx: DescriptionContext) -> str:
    """Markdown summary of a generation built only from catalog data; never contains code."""
    tpl = _env.get_template("description.md")
    return tpl.render(
        single_page=ctx.single_page,
        template_name=ctx.template_name,
        category=ctx.category,
        file_count=ctx.file_count,
        features=ctx.features,
        pages=ctx.pages,
    ).strip()


def render_placeholder_page(prompt: str, title: Optional[str] = None) -> FileRecord:
    """Self-contained index.html shown when the model returned no usable files.

    The prompt is embedded as-is; the preview runs in a sandboxed frame.
    """
    tpl = _env.get_template("placeholder.html")
    html = tpl.render(
        title=title or "Your Generated Site",
        prompt=prompt,
        primary="#34bfc2",
        secondary="#F78D2B",
    )
    return FileRecord(path="index.html", content=html, language="html")


def render_edit_summary(files: Sequence[FileRecord]) -> str:
    tpl = _env.get_template("edit_summary.md")
    return tpl.render(files=list(files)).strip()
