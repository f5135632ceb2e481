"""Header and secret text helpers.

This module provides functions for:
- Case-insensitive header replacement on plain dictionaries
- Substituting secret placeholders with their real or masked values
"""

from collections.abc import Mapping
from typing import TypeVar

MASK_CHAR = "*"

V = TypeVar("V")


def set_header(headers: dict[str, V], key: str, value: V) -> dict[str, V]:
    """Set a header, replacing any existing entry that differs only in case.

    The dictionary is updated in place and returned. The key keeps the case
    used by the latest call.

    Args:
        headers: Headers dictionary to update
        key: Header name
        value: Header value

    Returns:
        The updated dictionary

    Example:
        >>> headers = {"content-type": "text/html"}
        >>> set_header(headers, "Content-Type", "application/json")
        {'Content-Type': 'application/json'}
    """
    key_lower = key.lower()
    for existing in [k for k in headers if k.lower() == key_lower and k != key]:
        del headers[existing]
    headers[key] = value
    return headers


def mask(value: str) -> str:
    """Return a mask of the same length as ``value``.

    Example:
        >>> mask("secret")
        '******'
    """
    return MASK_CHAR * len(value)


def substitute_secrets(text: str, secrets: Mapping[str, str], masked: bool = False) -> str:
    """Replace every secret placeholder found in ``text``.

    Placeholders are replaced by the real secret, or by a mask of equal
    length when ``masked`` is True. Literal text that happens to match a
    placeholder is rewritten as well.

    Args:
        text: Rendered text that may contain placeholders
        secrets: Mapping of placeholder (``${name}``) to the real secret value
        masked: Replace with masks instead of real values

    Returns:
        Text with placeholders substituted

    Example:
        >>> substitute_secrets("Bearer ${token}", {"${token}": "abc"}, masked=True)
        'Bearer ***'
    """
    for placeholder, value in secrets.items():
        if placeholder in text:
            text = text.replace(placeholder, mask(value) if masked else value)
    return text
