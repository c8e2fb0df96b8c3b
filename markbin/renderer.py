"""
Markdown rendering shared by paste views and the live preview.

Raw HTML in paste content is escaped rather than passed through, so the
output can be embedded in a page as-is.
"""
import html
import logging
import re
from typing import Iterable, List
from urllib.parse import urlparse

import markdown
from markdown import util
from markdown.extensions import Extension
from markdown.treeprocessors import Treeprocessor

logger = logging.getLogger(__name__)

# Optional extensions a caller may switch on by flag name
EXTENSION_FLAGS = {
    "tables": "markdown.extensions.tables",
    "fenced_code": "markdown.extensions.fenced_code",
    "footnotes": "markdown.extensions.footnotes",
    "toc": "markdown.extensions.toc",
    "sane_lists": "markdown.extensions.sane_lists",
    "nl2br": "markdown.extensions.nl2br",
    "smarty": "markdown.extensions.smarty",
}


SAFE_SCHEMES = ("http", "https", "mailto", "")

# Backslash escapes are held as STX<codepoint>ETX until the tree is unescaped
ESCAPED_CHAR_RE = re.compile(f"{util.STX}(\\d+){util.ETX}")


def link_scheme(target: str) -> str:
    """Scheme a browser would see for a link target, lowercased."""
    decoded = html.unescape(ESCAPED_CHAR_RE.sub(lambda m: chr(int(m.group(1))), target))
    # Browsers ignore whitespace and control characters inside the scheme
    cleaned = "".join(ch for ch in decoded if ch.isprintable() and not ch.isspace())
    return urlparse(cleaned).scheme.lower()


class UnsafeLinkTreeprocessor(Treeprocessor):
    """Drop link and image targets with a scheme outside SAFE_SCHEMES."""

    def run(self, root):
        for element in root.iter():
            for attr in ("href", "src"):
                target = element.get(attr)
                if target is None:
                    continue
                try:
                    safe = link_scheme(target) in SAFE_SCHEMES
                except ValueError:
                    safe = False
                if not safe:
                    element.set(attr, "#")


class SafeHtmlExtension(Extension):
    """Treat raw HTML as text instead of markup and neutralise script links."""

    def extendMarkdown(self, md):
        md.preprocessors.deregister("html_block")
        md.inlinePatterns.deregister("html")
        md.treeprocessors.register(UnsafeLinkTreeprocessor(md), "unsafe_link", 5)


def _extensions(flags: Iterable[str]) -> List:
    extensions = [SafeHtmlExtension()]
    for flag in flags:
        name = EXTENSION_FLAGS.get(flag)
        if name is None:
            logger.warning(f"Ignoring unknown markdown flag {flag!r}")
            continue
        extensions.append(name)
    return extensions


def render_markdown(content: str, flags: Iterable[str] = ()) -> str:
    """
    Render markdown source to HTML.

    Args:
        content: Raw markdown text
        flags: Names from ``EXTENSION_FLAGS`` to enable

    Returns:
        Rendered HTML fragment
    """
    # A fresh Markdown instance per call; instances keep per-document state
    renderer = markdown.Markdown(extensions=_extensions(flags))
    return renderer.convert(content)
