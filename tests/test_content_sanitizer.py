from __future__ import annotations

import re

import pytest

from nota_backend.content_sanitizer import sanitize_html

_HANDLER_PAIR_RE = re.compile(r"on[a-z]+\s*=")


def test_empty_input_gives_empty_output():
    assert sanitize_html("") == ""
    assert sanitize_html(None) == ""


def test_allowed_markup_is_kept():
    raw = "<h1>Title</h1><p>Some <strong>bold</strong> and <em>italic</em></p><ul><li>one</li></ul>"
    assert sanitize_html(raw) == raw


def test_script_is_removed_with_its_content():
    assert sanitize_html("<p>Hello <script>alert(1)</script>world</p>") == "<p>Hello world</p>"


@pytest.mark.parametrize("tag", ["style", "iframe", "object", "svg", "template", "textarea"])
def test_container_tags_are_removed_with_subtree(tag: str):
    out = sanitize_html(f"<p>a</p><{tag}><b>hidden</b></{tag}><p>b</p>")
    assert out == "<p>a</p><p>b</p>"
    assert "hidden" not in out


def test_event_handlers_and_attributes_are_stripped():
    out = sanitize_html('<div onmouseover="steal()" class="x" style="color:red">hi</div>')
    assert out == "<div>hi</div>"


def test_img_onerror_vector_is_dropped():
    out = sanitize_html('<img src=x onerror="alert(1)">caption')
    assert out == "caption"
    assert "onerror" not in out


def test_javascript_href_is_removed_but_link_text_kept():
    out = sanitize_html('<a href="javascript:alert(1)" onclick="x()">click</a>')
    assert out == "<a>click</a>"


def test_obfuscated_javascript_href_is_removed():
    out = sanitize_html('<a href=" java\tscript:alert(1)">click</a>')
    assert out == "<a>click</a>"


def test_http_links_keep_escaped_href():
    out = sanitize_html('<a href="https://example.com/?a=1&b=2" target="_blank">x</a>')
    assert out == '<a href="https://example.com/?a=1&amp;b=2">x</a>'


def test_unknown_tags_are_unwrapped():
    assert sanitize_html("<custom><b>kept</b></custom>") == "<b>kept</b>"


def test_unclosed_tags_are_balanced():
    assert sanitize_html("<p><b>bold") == "<p><b>bold</b></p>"


def test_textual_script_lookalikes_are_neutralized():
    out = sanitize_html("<p>javascript:alert(1) and onload=go()</p>")
    assert "javascript:" not in out.lower()
    assert "onload=" not in out.lower()
    assert out == "<p>javascript&#58;alert(1) and onload&#61;go()</p>"


def test_text_is_html_escaped():
    assert sanitize_html("<p>1 < 2 & 3 > 2</p>") == "<p>1 &lt; 2 &amp; 3 &gt; 2</p>"


def test_output_is_trimmed():
    assert sanitize_html("   <p>x</p>\n  ") == "<p>x</p>"


@pytest.mark.parametrize(
    "raw",
    [
        "<p>Hello <script>alert(1)</script>world</p>",
        '<a href="https://example.com/?a=1&b=2">x</a>',
        "<p>javascript:alert(1) onload=go()</p>",
        "<div><p><b>unclosed",
        '<IMG SRC="javascript:alert(1)"><SCRIPT>x</SCRIPT>plain &amp; text',
        "  leading and trailing  ",
        "<ul><li>a<li>b</ul>",
    ],
)
def test_sanitizing_twice_is_a_no_op(raw: str):
    once = sanitize_html(raw)
    assert sanitize_html(once) == once


@pytest.mark.parametrize(
    "raw",
    [
        "<script>alert(1)</script>",
        "<body onload=alert(1)>",
        '<a href="javascript:void(0)">x</a>',
        "<svg/onload=alert(1)>",
        '<p style="background:url(javascript:alert(1))">x</p>',
        '<p onclick="x()">buttononclick=steal()</p>',
        '<a href="http://e.com/#xonload=1">x</a>',
        "<p>ONMOUSEOVER = go()</p>",
    ],
)
def test_output_never_contains_script_vectors(raw: str):
    out = sanitize_html(raw).lower()
    assert "<script" not in out
    assert "javascript:" not in out
    assert _HANDLER_PAIR_RE.search(out) is None
