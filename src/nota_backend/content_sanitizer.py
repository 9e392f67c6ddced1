"""Allow-list HTML sanitizer for rich-text note bodies.

Applied on every note write, never on read. Unsafe markup is removed and safe
text is kept:

- allowed tags are re-emitted without attributes, except an http(s) ``href`` on ``a``
- script-like containers are dropped together with their subtree
- any other tag is unwrapped and its text kept

Output is balanced and re-parses to itself, so sanitizing twice is a no-op.
"""

from __future__ import annotations

import html
import logging
import re
from html.parser import HTMLParser
from urllib.parse import urlsplit

logger = logging.getLogger(__name__)

ALLOWED_TAGS = frozenset(
    {
        "p",
        "h1",
        "h2",
        "h3",
        "h4",
        "h5",
        "h6",
        "strong",
        "em",
        "u",
        "b",
        "i",
        "s",
        "br",
        "div",
        "span",
        "blockquote",
        "ul",
        "ol",
        "li",
        "pre",
        "code",
        "a",
    }
)

# Removed including everything inside them.
_DROP_WITH_CONTENT = frozenset(
    {
        "script",
        "style",
        "iframe",
        "object",
        "noscript",
        "noembed",
        "noframes",
        "template",
        "svg",
        "math",
        "applet",
        "frameset",
        "textarea",
        "select",
        "head",
        "title",
        "xmp",
    }
)

_VOID_TAGS = frozenset(
    {
        "area",
        "base",
        "br",
        "col",
        "embed",
        "frame",
        "hr",
        "img",
        "input",
        "keygen",
        "link",
        "meta",
        "param",
        "source",
        "track",
        "wbr",
    }
)

_ALLOWED_URL_SCHEMES = frozenset({"http", "https"})

# Whitespace and control characters browsers ignore inside URL schemes.
_URL_IGNORED_CHARS_RE = re.compile(r"[\x00-\x20\x7f]+")

# Textual lookalikes of script vectors keep their meaning for readers but are
# emitted with the separator as a character reference.
_JS_SCHEME_RE = re.compile(r"(?i)(javascript\s*):")
_EVENT_HANDLER_RE = re.compile(r"(?i)(on[a-z]+\s*)=")


def _escape(value: str, *, quote: bool) -> str:
    escaped = html.escape(value, quote=quote)
    escaped = _JS_SCHEME_RE.sub(r"\1&#58;", escaped)
    return _EVENT_HANDLER_RE.sub(r"\1&#61;", escaped)


def _safe_href(attrs: list[tuple[str, str | None]]) -> str | None:
    for name, value in attrs:
        if name != "href":
            continue
        candidate = _URL_IGNORED_CHARS_RE.sub("", value or "")
        try:
            scheme = urlsplit(candidate).scheme.lower()
        except ValueError:
            return None
        if scheme in _ALLOWED_URL_SCHEMES:
            return candidate
        return None
    return None


class _SanitizingParser(HTMLParser):
    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self._out: list[str] = []
        # Adjacent text chunks are escaped together so lookalikes split by
        # unwrapped tags are still caught.
        self._pending_text: list[str] = []
        self._open: list[str] = []
        self._skip: list[str] = []

    def _flush_text(self) -> None:
        if self._pending_text:
            self._out.append(_escape("".join(self._pending_text), quote=False))
            self._pending_text = []

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        if tag in _DROP_WITH_CONTENT:
            self._skip.append(tag)
            return
        if self._skip or tag not in ALLOWED_TAGS:
            return

        self._flush_text()
        if tag == "a":
            href = _safe_href(attrs)
            self._out.append(f'<a href="{_escape(href, quote=True)}">' if href else "<a>")
        else:
            self._out.append(f"<{tag}>")
        if tag not in _VOID_TAGS:
            self._open.append(tag)

    def handle_startendtag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        self.handle_starttag(tag, attrs)
        if tag not in _VOID_TAGS:
            self.handle_endtag(tag)

    def handle_endtag(self, tag: str) -> None:
        if self._skip:
            if tag == self._skip[-1]:
                self._skip.pop()
            return
        if tag not in ALLOWED_TAGS or tag in _VOID_TAGS or tag not in self._open:
            return

        self._flush_text()
        while self._open:
            current = self._open.pop()
            self._out.append(f"</{current}>")
            if current == tag:
                break

    def handle_data(self, data: str) -> None:
        if not self._skip:
            self._pending_text.append(data)

    def result(self) -> str:
        self._flush_text()
        while self._open:
            self._out.append(f"</{self._open.pop()}>")
        return "".join(self._out)


def sanitize_html(raw: str | None) -> str:
    if not raw:
        return ""

    parser = _SanitizingParser()
    try:
        parser.feed(raw)
        parser.close()
    except Exception:
        # Some malformed declarations make the stdlib parser raise; degrade to plain text.
        logger.warning("html parser failed; storing content as escaped text", exc_info=True)
        return _escape(raw, quote=False).strip()
    return parser.result().strip()
