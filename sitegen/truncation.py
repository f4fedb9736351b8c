from __future__ import annotations

import re
from typing import List

# Unclosed elements tolerated before the whole-text imbalance check fires.
# Optional end tags (<li>, <p>, <td>, ...) are legal HTML and are not counted as void.
TAG_IMBALANCE_THRESHOLD = 3

VOID_ELEMENTS = frozenset(
    {
        "area",
        "base",
        "br",
        "col",
        "embed",
        "hr",
        "img",
        "input",
        "link",
        "meta",
        "param",
        "source",
        "track",
        "wbr",
    }
)

_UNCLOSED_TAG_RE = re.compile(r"<[A-Za-z!/][^<>]*$")
_OPEN_FENCE_RE = re.compile(r"^\s*```[\w+#.-]+\s*$")
_UNCLOSED_ATTR_RE = re.compile(r"""[\w:.-]+\s*=\s*(?:"[^"]*|'[^']*)$""")
_BLOCK_OPENER_RE = re.compile(
    r"\b(?:function|if|else|for|while|switch|try|catch|finally|do)\b[^{}]*\{[^}]*$"
)
_TRAILING_BRACE_RE = re.compile(r"\{\s*$")
_FENCE_LINE_RE = re.compile(r"^\s*```", re.MULTILINE)
_OPEN_TAG_RE = re.compile(r"<([A-Za-z][\w:-]*)\b[^<>]*?(/?)>")
_CLOSE_TAG_RE = re.compile(r"</([A-Za-z][\w:-]*)\s*>")


def _last_non_empty_line(text: str) -> str:
    for line in reversed(text.splitlines()):
        if line.strip():
            return line.rstrip()
    return ""


def tail_signals(text: str) -> List[str]:
    """Name every cutoff signal found on the last non-empty line."""
    line = _last_non_empty_line((text or "").strip())
    if not line:
        return []
    found: List[str] = []
    if _UNCLOSED_TAG_RE.search(line):
        found.append("unclosed_tag")
    if _OPEN_FENCE_RE.match(line):
        found.append("open_fence")
    if _UNCLOSED_ATTR_RE.search(line):
        found.append("unclosed_attribute")
    if _BLOCK_OPENER_RE.search(line):
        found.append("open_block")
    elif _TRAILING_BRACE_RE.search(line):
        found.append("trailing_brace")
    return found


def tag_imbalance(text: str) -> int:
    """Open-minus-close element count, ignoring void and self-closing tags."""
    opens = 0
    for name, self_closing in _OPEN_TAG_RE.findall(text or ""):
        if self_closing or name.lower() in VOID_ELEMENTS:
            continue
        opens += 1
    closes = len(_CLOSE_TAG_RE.findall(text or ""))
    return opens - closes


def has_unbalanced_fences(text: str) -> bool:
    return len(_FENCE_LINE_RE.findall(text or "")) % 2 == 1


def is_truncated(text: str) -> bool:
    """Best-effort guess whether a completion stopped before it was finished.

    Checks the final line for local cutoff signals (dangling tag, attribute,
    fence or brace), then the whole text for an odd number of fences and for
    more open elements than close ones beyond TAG_IMBALANCE_THRESHOLD.
    """
    t = (text or "").strip()
    if not t:
        return False
    if tail_signals(t):
        return True
    if has_unbalanced_fences(t):
        return True
    return tag_imbalance(t) > TAG_IMBALANCE_THRESHOLD
