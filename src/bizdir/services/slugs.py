"""
bizdir.services.slugs

Slug and name helpers for public business URLs.
"""

from __future__ import annotations

import re

FALLBACK_SLUG = "business"

_WHITESPACE = re.compile(r"\s+")
_NOT_SLUG_CHAR = re.compile(r"[^a-z0-9а-яё-]")
_DASH_RUN = re.compile(r"-+")
_LATIN_ONLY = re.compile(r"^[A-Za-z0-9\s-]+$")


def generate_slug(name: str) -> str:
    """
    Lowercase, dash-separated slug; Cyrillic letters are kept as-is (no transliteration).
    """

    slug = _WHITESPACE.sub("-", name.lower().strip())
    slug = _NOT_SLUG_CHAR.sub("", slug)
    slug = _DASH_RUN.sub("-", slug).strip("-")
    return slug or FALLBACK_SLUG


def is_latin_only(text: str) -> bool:
    return bool(_LATIN_ONLY.match(text))
