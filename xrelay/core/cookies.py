"""Cookie adaptation between browser exports and the scraper session."""

import json
from typing import Any, Iterable

from pydantic import ValidationError

from xrelay.exceptions import CookieFormatError
from xrelay.models.cookie import Cookie

PRIMARY_DOMAIN = "x.com"
LEGACY_DOMAIN = "twitter.com"

INVALID_JSON_MESSAGE = "Invalid JSON format. Please check your cookies.json"
NOT_AN_ARRAY_MESSAGE = "Invalid format: Expected an array of cookies"


def alias_domain(domain: str) -> str:
    """
    Rewrite the platform's primary domain to its legacy form.

    Examples:
        ".x.com" -> ".twitter.com"
        "x.com" -> "twitter.com"
        "api.x.com" -> "api.twitter.com"
        "box.com" -> "box.com"
    """
    if domain == PRIMARY_DOMAIN:
        return LEGACY_DOMAIN
    if domain.endswith("." + PRIMARY_DOMAIN):
        return domain[: -len(PRIMARY_DOMAIN)] + LEGACY_DOMAIN
    return domain


def serialize_cookie(cookie: Cookie, legacy_domain: bool = True) -> str:
    """
    Render a cookie as a Set-Cookie style attribute string.

    Args:
        cookie: Cookie to serialize
        legacy_domain: Rewrite x.com domains to twitter.com

    Returns:
        String like "name=value; Domain=.twitter.com; Path=/; Secure; HttpOnly"
    """
    parts = [f"{cookie.name}={cookie.value}"]

    domain = cookie.domain or ""
    if legacy_domain:
        domain = alias_domain(domain)
    if domain:
        parts.append(f"Domain={domain}")
    if cookie.path:
        parts.append(f"Path={cookie.path}")
    if cookie.secure:
        parts.append("Secure")
    if cookie.http_only:
        parts.append("HttpOnly")

    return "; ".join(parts)


def serialize_cookies(
    cookies: Iterable[str | Cookie],
    legacy_domain: bool = True,
) -> list[str]:
    """Serialize cookie objects, passing already-serialized strings through."""
    return [
        c if isinstance(c, str) else serialize_cookie(c, legacy_domain)
        for c in cookies
    ]


def parse_cookie_json(text: str, legacy_domain: bool = True) -> list[str]:
    """
    Adapt a user-pasted cookies.json document into cookie strings.

    Args:
        text: JSON array of cookie objects
        legacy_domain: Rewrite x.com domains to twitter.com

    Returns:
        List of serialized cookie strings, in input order

    Raises:
        CookieFormatError: If the JSON is invalid or not an array of cookies
    """
    try:
        raw: Any = json.loads(text)
    except json.JSONDecodeError as e:
        raise CookieFormatError(INVALID_JSON_MESSAGE) from e

    if not isinstance(raw, list):
        raise CookieFormatError(NOT_AN_ARRAY_MESSAGE)

    cookies = []
    for index, item in enumerate(raw):
        try:
            cookies.append(Cookie.model_validate(item))
        except ValidationError as e:
            raise CookieFormatError(f"Invalid cookie at index {index}") from e

    return serialize_cookies(cookies, legacy_domain)


def cookie_pairs(cookie_strings: Iterable[str]) -> dict[str, str]:
    """
    Extract name/value pairs from serialized cookie strings.

    Attributes after the first ';' (Domain, Path, flags) are dropped.
    Strings without a name=value head are skipped.
    """
    pairs: dict[str, str] = {}
    for cookie in cookie_strings:
        head = cookie.split(";", 1)[0].strip()
        name, sep, value = head.partition("=")
        if sep and name.strip():
            pairs[name.strip()] = value.strip()
    return pairs
