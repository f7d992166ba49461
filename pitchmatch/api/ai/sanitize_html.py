"""
sanitize_html.py
================

Scrubs markup out of everything the marketplace stores on behalf of users
or the model: startup fields, profiles, chat messages, market analyses and
pitch-deck slides.

Two levels, both backed by **bleach**:

* rich text (`sanitize_html`) keeps a small formatting subset so slides and
  analyses can still carry bold text, lists and links;
* plain text (`sanitize_plain_text`) drops every tag and hands back the
  literal text, used for everything a user types (startup fields,
  profiles, messages).

Public API
----------
sanitize_html(text: str) -> str
sanitize_plain_text(text: str) -> str
cleanse_json(value: Any, sanitizer=sanitize_html) -> Any   # every str leaf
"""

from __future__ import annotations

import html
from typing import Any, Callable

import bleach

# Formatting the web client knows how to render
RICH_TEXT_TAGS = frozenset({
    "p", "br", "span",
    "b", "strong", "i", "em", "u",
    "ul", "ol", "li",
    "a",
})
RICH_TEXT_ATTRIBUTES: dict[str, list[str]] = {
    "a": ["href", "title", "rel"],
}
LINK_PROTOCOLS = frozenset({"http", "https", "mailto"})


def sanitize_html(text: str) -> str:
    """
    Keep the rich-text subset; every other tag is stripped (its text stays),
    event-handler attributes go, and links must use http(s) or mailto.
    """
    return bleach.clean(
        text,
        tags=RICH_TEXT_TAGS,
        attributes=RICH_TEXT_ATTRIBUTES,
        protocols=LINK_PROTOCOLS,
        strip=True,
    )


def sanitize_plain_text(text: str) -> str:
    """
    Strip every tag and decode the entities bleach escapes, so `AT&T` is
    stored as typed. Callers render the result as text, never as HTML.
    """
    cleaned = bleach.clean(text, tags=set(), attributes={}, strip=True)
    return html.unescape(cleaned).strip()


def cleanse_json(value: Any, sanitizer: Callable[[str], str] = sanitize_html) -> Any:
    """
    Walk a decoded JSON value and sanitise each string leaf::

        payload = cleanse_json(model_output)
        fields = cleanse_json(body, sanitizer=sanitize_plain_text)

    Numbers, booleans and None come back untouched.
    """
    if isinstance(value, str):
        return sanitizer(value)
    if isinstance(value, list):
        return [cleanse_json(item, sanitizer) for item in value]
    if isinstance(value, dict):
        return {key: cleanse_json(item, sanitizer) for key, item in value.items()}
    return value
